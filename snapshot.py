#!/usr/bin/env python3
"""
Static Bluebikes traffic map
----------------------------

Same encoding as the dashboard (√traffic radius, departure-ratio fill,
trip-count tooltip) frozen at one time filter and written to a standalone
HTML file with folium.

  SNAPSHOT_TIME=480 python snapshot.py     # trips within an hour of 8:00 AM
"""

import logging
from typing import Dict, List

import folium
import pandas as pd
from branca.colormap import LinearColormap

from dashboard import configure_logging
from loaders import load_bike_lanes, load_stations, load_trips
from markers import SqrtScale, flow_color, tooltip_text
from settings import (
    ARRIVALS_COLOR,
    CENTER,
    DEPARTURES_COLOR,
    LANE_COLOR,
    LANE_OPACITY,
    LANE_WEIGHT,
    LOG_LEVEL,
    MARKER_OPACITY,
    MARKER_STROKE,
    MARKER_WEIGHT,
    MAX_ZOOM,
    MIN_ZOOM,
    NO_FILTER,
    RADIUS_RANGE_FILTERED,
    RADIUS_RANGE_UNFILTERED,
    SNAPSHOT_HTML,
    SNAPSHOT_TIME,
    ZOOM,
)
from traffic import compute_station_traffic, filter_trips_by_time, format_time

logger = logging.getLogger(__name__)


def build_snapshot(
    stations: pd.DataFrame,
    trips: pd.DataFrame,
    lanes: Dict[str, List],
    time_filter: int = NO_FILTER,
) -> folium.Map:
    stations = compute_station_traffic(stations.copy(), trips)
    busiest = int(stations["totalTraffic"].max()) if len(stations) else 0
    scale = SqrtScale(
        domain=(0, busiest),
        range_=RADIUS_RANGE_UNFILTERED if time_filter == NO_FILTER else RADIUS_RANGE_FILTERED,
    )
    compute_station_traffic(stations, filter_trips_by_time(trips, time_filter))

    m = folium.Map(location=CENTER, tiles="CartoDB positron",
                   zoom_start=ZOOM, min_zoom=MIN_ZOOM, max_zoom=MAX_ZOOM)

    for name, lines in lanes.items():
        fg = folium.FeatureGroup(name=name, show=True)
        for pts in lines:
            folium.PolyLine(locations=pts, color=LANE_COLOR,
                            weight=LANE_WEIGHT, opacity=LANE_OPACITY).add_to(fg)
        fg.add_to(m)

    label = "any time" if time_filter == NO_FILTER else format_time(time_filter)
    station_fg = folium.FeatureGroup(name=f"Station traffic ({label})", show=True)
    for _, r in stations.iterrows():
        total, dep, arr = int(r.totalTraffic), int(r.departures), int(r.arrivals)
        fill = flow_color(dep, total)
        folium.CircleMarker(
            [r.lat, r.lon], radius=scale(total),
            color=MARKER_STROKE, weight=MARKER_WEIGHT,
            fill=True, fill_color=fill, fill_opacity=MARKER_OPACITY,
            tooltip=tooltip_text(total, dep, arr),
        ).add_to(station_fg)
    station_fg.add_to(m)

    LinearColormap([ARRIVALS_COLOR, DEPARTURES_COLOR], vmin=0, vmax=1,
                   caption="Departure ratio (arrivals → departures)").add_to(m)
    folium.LayerControl(collapsed=False).add_to(m)
    return m


def save_snapshot(stations, trips, lanes, time_filter=NO_FILTER, path=SNAPSHOT_HTML):
    build_snapshot(stations, trips, lanes, time_filter).save(path)
    logger.info("map written to %s", path)
    return path


def main():
    configure_logging(LOG_LEVEL)
    trips = load_trips()
    if trips is None:
        logger.error("No trip data; snapshot not written")
        return
    save_snapshot(load_stations(), trips, load_bike_lanes(), SNAPSHOT_TIME)


if __name__ == "__main__":
    main()
