"""
Station markers: size/color encoding, keyed CircleMarkers and pixel
positions for the current map view.
"""

import logging
import math
from bisect import bisect_right
from dataclasses import dataclass

import dash_leaflet as dl
import numpy as np
from branca.colormap import LinearColormap
from pyproj import Transformer

from settings import (
    ARRIVALS_COLOR,
    DEPARTURES_COLOR,
    FLOW_LEVELS,
    MARKER_OPACITY,
    MARKER_STROKE,
    MARKER_WEIGHT,
    RADIUS_RANGE_UNFILTERED,
)

logger = logging.getLogger(__name__)

TILE_SIZE = 256
EARTH_RADIUS_M = 6378137
HALF_WORLD_M = math.pi * EARTH_RADIUS_M

tf_to_mercator = Transformer.from_crs("EPSG:4326", "EPSG:3857", always_xy=True)

# 0 = all arrivals, 1 = all departures
flow_cmap = LinearColormap([ARRIVALS_COLOR, DEPARTURES_COLOR], vmin=0, vmax=1)


class SqrtScale:
    """d3.scaleSqrt: unclamped, degenerate domain -> middle of the range."""

    def __init__(self, domain=(0, 1), range_=RADIUS_RANGE_UNFILTERED):
        self.domain = tuple(domain)
        self.range = tuple(range_)

    def __call__(self, value):
        d0, d1 = np.sqrt(self.domain)
        r0, r1 = self.range
        if d1 == d0:
            t = np.full(np.shape(value), 0.5)
        else:
            t = (np.sqrt(value) - d0) / (d1 - d0)
        out = r0 + (r1 - r0) * t
        return float(out) if np.ndim(out) == 0 else out


def departure_ratio(departures, total):
    return departures / total if total else 0.5


def station_flow(ratio):
    n = len(FLOW_LEVELS)
    thresholds = [i / n for i in range(1, n)]
    return FLOW_LEVELS[bisect_right(thresholds, ratio)]


def flow_color(departures, total):
    return flow_cmap(station_flow(departure_ratio(departures, total)))


def tooltip_text(total, departures, arrivals):
    return f"{total} trips ({departures} departures, {arrivals} arrivals)"


def station_marker(key, center, radius, fill, text):
    return dl.CircleMarker(
        id={"type": "station-marker", "index": key},
        center=center,
        radius=radius,
        color=MARKER_STROKE,
        weight=MARKER_WEIGHT,
        fillColor=fill,
        fillOpacity=MARKER_OPACITY,
        children=[dl.Tooltip(text)],
    )


# ╭──────────────────────── PROJECTION ───────────────────────╮
def world_pixel(lon, lat, zoom):
    """Pixel of lon/lat in the whole-world 256px-tile image at `zoom`."""
    x_m, y_m = tf_to_mercator.transform(lon, lat)
    px_per_m = TILE_SIZE * 2 ** zoom / (2 * HALF_WORLD_M)
    return (x_m + HALF_WORLD_M) * px_per_m, (HALF_WORLD_M - y_m) * px_per_m


@dataclass(frozen=True)
class MapView:
    zoom: float
    north: float
    west: float

    @classmethod
    def from_bounds(cls, zoom, bounds):
        # dash-leaflet bounds: [[south, west], [north, east]]
        (_, west), (north, _) = bounds
        return cls(zoom=zoom, north=north, west=west)

    def project(self, lon, lat):
        x, y = world_pixel(lon, lat, self.zoom)
        x0, y0 = world_pixel(self.west, self.north, self.zoom)
        return x - x0, y - y0
# ╰────────────────────────────────────────────────────────────╯


class MarkerLayer:
    """
    One CircleMarker per station, keyed by short_name. `reconcile` creates
    markers for new keys, updates known ones in place and drops stale ones.
    """

    def __init__(self):
        self.markers = {}
        self.coords = {}
        self.positions = {}

    def __len__(self):
        return len(self.markers)

    def reconcile(self, stations, scale):
        created, updated = set(), set()
        markers, coords = {}, {}

        for _, row in stations.iterrows():
            key = row["short_name"]
            lon, lat = float(row["lon"]), float(row["lat"])
            total, dep, arr = int(row["totalTraffic"]), int(row["departures"]), int(row["arrivals"])
            radius = scale(total)
            fill = flow_color(dep, total)
            text = tooltip_text(total, dep, arr)

            marker = self.markers.get(key)
            if marker is None:
                marker = station_marker(key, (lat, lon), radius, fill, text)
                created.add(key)
            else:
                marker.center = (lat, lon)
                marker.radius = radius
                marker.fillColor = fill
                marker.children[0].children = text
                updated.add(key)
            markers[key] = marker
            coords[key] = (lon, lat)

        removed = set(self.markers) - set(markers)
        for key in removed:
            self.positions.pop(key, None)
        self.markers, self.coords = markers, coords

        logger.debug("markers: %d created, %d updated, %d removed",
                     len(created), len(updated), len(removed))
        return {"created": created, "updated": updated, "removed": removed}

    def update_positions(self, project):
        self.positions = {key: project(lon, lat) for key, (lon, lat) in self.coords.items()}
        return self.positions

    def components(self):
        return list(self.markers.values())

    def snapshot(self):
        # detached copies; the live handles keep changing on later updates
        return [
            station_marker(key, m.center, m.radius, m.fillColor, m.children[0].children)
            for key, m in self.markers.items()
        ]
