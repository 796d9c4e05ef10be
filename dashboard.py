import logging
import threading
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

import dash
import dash_leaflet as dl
import pandas as pd
from dash import dcc, html
from dash.dependencies import Input, Output

from loaders import load_bike_lanes, load_stations, load_trips
from markers import MapView, MarkerLayer, SqrtScale, flow_cmap
from settings import (
    CENTER,
    DEBUG,
    FLOW_LEVELS,
    LANE_COLOR,
    LANE_OPACITY,
    LANE_WEIGHT,
    LAST_MINUTE,
    LOG_LEVEL,
    MAPBOX_ACCESS_TOKEN,
    MAPBOX_STYLE,
    MAX_ZOOM,
    MIN_ZOOM,
    NO_FILTER,
    OSM_ATTRIBUTION,
    OSM_TILES,
    RADIUS_RANGE_FILTERED,
    RADIUS_RANGE_UNFILTERED,
    ZOOM,
)
from traffic import compute_station_traffic, filter_trips_by_time, format_time

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )


# ───────── STATE & CONTROLLER ─────────
@dataclass
class AppState:
    time_filter: int = NO_FILTER

    @property
    def filtered(self) -> bool:
        return self.time_filter != NO_FILTER

    def set_time_filter(self, value) -> int:
        value = int(value)
        if value != NO_FILTER and not 0 <= value <= LAST_MINUTE:
            raise ValueError(f"time filter must be {NO_FILTER} or 0..{LAST_MINUTE}, got {value}")
        self.time_filter = value
        return value


@dataclass(frozen=True)
class TimeDisplay:
    text: str
    show_hint: bool


def time_display(time_filter: int) -> TimeDisplay:
    if time_filter == NO_FILTER:
        return TimeDisplay(text="", show_hint=True)
    return TimeDisplay(text=format_time(time_filter), show_hint=False)


class TrafficController:
    """
    Runs filter -> aggregate -> markers whenever the time filter changes and
    repositions markers whenever the map view changes.

    The radius scale domain is fixed from the full trip set, so filtered
    views are sized against the busiest station of the whole month. Dash
    serves callbacks from several threads, so every pass holds `lock`.
    """

    def __init__(self, stations: pd.DataFrame, trips: pd.DataFrame, state: Optional[AppState] = None):
        self.lock = threading.Lock()
        self.trips = trips
        self.stations = compute_station_traffic(stations, trips)
        self.state = state or AppState()
        busiest = int(self.stations["totalTraffic"].max()) if len(self.stations) else 0
        self.radius_scale = SqrtScale(domain=(0, busiest))
        self.layer = MarkerLayer()
        self.view: Optional[MapView] = None

    def update_markers(self):
        filtered = filter_trips_by_time(self.trips, self.state.time_filter)
        compute_station_traffic(self.stations, filtered)
        self.radius_scale.range = (
            RADIUS_RANGE_FILTERED if self.state.filtered else RADIUS_RANGE_UNFILTERED
        )
        self.layer.reconcile(self.stations, self.radius_scale)
        self.update_positions()

    def update_positions(self) -> Dict:
        if self.view is None:
            return {}
        return self.layer.update_positions(self.view.project)

    def on_time_input(self, value) -> Tuple[TimeDisplay, List]:
        with self.lock:
            value = self.state.set_time_filter(value)
            logger.debug("time filter -> %s", value)
            self.update_markers()
            return time_display(value), self.layer.snapshot()

    def on_view_change(self, view: MapView) -> Dict:
        with self.lock:
            self.view = view
            return dict(self.update_positions())


# ───────── LAYOUT ─────────
def tile_layer():
    if MAPBOX_ACCESS_TOKEN:
        return dl.TileLayer(
            url=(
                f"https://api.mapbox.com/styles/v1/{MAPBOX_STYLE}/tiles/256/{{z}}/{{x}}/{{y}}"
                f"?access_token={MAPBOX_ACCESS_TOKEN}"
            ),
            attribution="© Mapbox © OpenStreetMap contributors",
        )
    return dl.TileLayer(url=OSM_TILES, attribution=OSM_ATTRIBUTION)


def lane_overlays(lanes: Dict[str, List]):
    overlays = []
    for i, (name, lines) in enumerate(lanes.items()):
        group = dl.LayerGroup(
            [
                dl.Polyline(positions=pts, color=LANE_COLOR, weight=LANE_WEIGHT, opacity=LANE_OPACITY)
                for pts in lines
            ],
            id=f"bike-lanes-{i}",
        )
        overlays.append(dl.Overlay(group, name=name, checked=True))
    return overlays


def hint_style(show: bool) -> Dict[str, str]:
    return {"display": "block" if show else "none"}


def positions_payload(positions) -> Dict[str, List[float]]:
    return {key: [float(x), float(y)] for key, (x, y) in positions.items()}


def legend_div():
    labels = {0: "More arrivals", 0.5: "Balanced", 1: "More departures"}
    items = []
    for level in reversed(FLOW_LEVELS):
        items.append(html.Span([
            html.Span(style={
                "backgroundColor": flow_cmap(level), "width": "14px", "height": "14px",
                "display": "inline-block", "borderRadius": "50%", "marginRight": "4px"}),
            labels[level],
        ], style={"marginRight": "15px"}))
    return html.Div([html.B("Legend: ", style={"marginRight": "10px"}), *items],
                    style={"textAlign": "center", "marginTop": "10px"})


def time_controls(enabled: bool):
    return html.Div([
        html.Label("Filter by time:", htmlFor="time-slider", style={"marginRight": "10px"}),
        html.Div(
            dcc.Slider(
                id="time-slider", min=NO_FILTER, max=LAST_MINUTE, step=1, value=NO_FILTER,
                marks=None, updatemode="drag", disabled=not enabled,
            ),
            style={"width": "300px"},
        ),
        html.Time(id="time-display", style={"display": "block"}),
        html.Em("(any time)", id="time-hint", style=hint_style(True)),
    ], style={"display": "flex", "alignItems": "center", "justifyContent": "flex-end"})


def build_layout(markers: List, lanes: Dict[str, List], enabled: bool):
    return html.Div([
        html.Div([
            html.H1("🚲 Bikewatching", style={"margin": 0}),
            time_controls(enabled),
        ], style={"display": "flex", "justifyContent": "space-between", "alignItems": "center"}),

        dl.Map([
            dl.LayersControl([
                dl.BaseLayer(tile_layer(), name="Streets", checked=True),
                dl.Overlay(dl.LayerGroup(markers, id="station-markers"), name="Station traffic", checked=True),
                *lane_overlays(lanes),
            ], position="topleft"),
        ],
        id="station-map", center=CENTER, zoom=ZOOM, minZoom=MIN_ZOOM, maxZoom=MAX_ZOOM,
        style={"height": "80vh", "width": "100%", "margin": "auto"}),

        legend_div(),
        dcc.Store(id="time-filter", data=NO_FILTER),
        # pixel positions of each station marker in the current view, for
        # client-side consumers; Leaflet itself places markers from lat/lon
        dcc.Store(id="marker-positions", data={}),
    ])


# ───────── APP ─────────
def create_app(stations: pd.DataFrame, trips: Optional[pd.DataFrame], lanes: Dict[str, List]):
    """
    Dash app for the loaded data. Without trips the map shows only tiles and
    bike lanes and the time slider is inert.
    """
    app = dash.Dash(__name__)
    app.title = "Bluebikes Traffic"

    if trips is None:
        logger.error("No trip data; rendering the base map without station traffic")
        app.layout = build_layout([], lanes, enabled=False)
        return app

    controller = TrafficController(stations, trips)
    _, markers = controller.on_time_input(NO_FILTER)
    app.layout = build_layout(markers, lanes, enabled=True)

    @app.callback(
        Output("station-markers", "children"),
        Output("time-display", "children"),
        Output("time-hint", "style"),
        Output("time-filter", "data"),
        Input("time-slider", "value"),
    )
    def update_time_display(value):
        time_filter = NO_FILTER if value is None else int(value)
        display, markers = controller.on_time_input(time_filter)
        return markers, display.text, hint_style(display.show_hint), time_filter

    @app.callback(
        Output("marker-positions", "data"),
        Input("station-map", "zoom"),
        Input("station-map", "center"),
        Input("station-map", "bounds"),
        Input("time-filter", "data"),
    )
    def update_positions(zoom, _center, bounds, _time_filter):
        if zoom is None or not bounds:
            return dash.no_update
        positions = controller.on_view_change(MapView.from_bounds(zoom, bounds))
        return positions_payload(positions)

    return app


def main():
    configure_logging(LOG_LEVEL)
    stations = load_stations()
    trips = load_trips()
    lanes = load_bike_lanes()
    app = create_app(stations, trips, lanes)
    app.run(debug=DEBUG)


if __name__ == "__main__":
    main()
