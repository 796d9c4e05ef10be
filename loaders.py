import logging
from http.client import HTTPException
from typing import Dict, List, Optional

import pandas as pd
import requests
from shapely.errors import ShapelyError
from shapely.geometry import shape

from settings import BIKE_LANE_SOURCES, REQUEST_TIMEOUT, STATIONS_URL, TRIPS_URL

logger = logging.getLogger(__name__)

STATION_COLUMNS = ["short_name", "lon", "lat"]
TRIP_COLUMNS = ["start_station_id", "end_station_id", "started_at", "ended_at"]


def _fetch_json(url):
    resp = requests.get(url, timeout=REQUEST_TIMEOUT)
    resp.raise_for_status()
    return resp.json()


def empty_stations() -> pd.DataFrame:
    return pd.DataFrame(columns=STATION_COLUMNS)


def stations_from_payload(payload) -> pd.DataFrame:
    """
    `{"data": {"stations": [...]}}` -> station frame. Anything else is
    treated as zero stations.
    """
    data = payload.get("data") if isinstance(payload, dict) else None
    records = data.get("stations") if isinstance(data, dict) else None
    if not isinstance(records, list):
        logger.warning("Station JSON has no data.stations list; using zero stations")
        return empty_stations()

    stations = pd.DataFrame(records)
    missing = [c for c in STATION_COLUMNS if c not in stations.columns]
    if missing:
        logger.warning("Station records missing %s; using zero stations", missing)
        return empty_stations()

    stations["short_name"] = stations["short_name"].astype(str)
    stations[["lon", "lat"]] = stations[["lon", "lat"]].apply(pd.to_numeric, errors="coerce")
    bad = stations[["lon", "lat"]].isna().any(axis=1)
    if bad.any():
        logger.warning("Dropping %d stations without coordinates", int(bad.sum()))
        stations = stations[~bad]
    return stations.reset_index(drop=True)


def load_stations(url=STATIONS_URL) -> pd.DataFrame:
    try:
        payload = _fetch_json(url)
    except (requests.RequestException, ValueError):
        logger.exception("Error loading station JSON from %s", url)
        return empty_stations()

    stations = stations_from_payload(payload)
    logger.info("Loaded %d stations", len(stations))
    return stations


def load_trips(url=TRIPS_URL) -> Optional[pd.DataFrame]:
    """
    Trip CSV with started_at / ended_at parsed to timestamps. Returns None
    when the file cannot be read, which leaves the map without traffic.
    """
    try:
        trips = pd.read_csv(
            url, dtype={"start_station_id": str, "end_station_id": str}
        )
        missing = [c for c in TRIP_COLUMNS if c not in trips.columns]
        if missing:
            raise ValueError(f"trip CSV missing columns {missing}")
    except (OSError, HTTPException, ValueError):
        logger.exception("Error loading trips CSV from %s", url)
        return None

    for c in ("started_at", "ended_at"):
        trips[c] = pd.to_datetime(trips[c], errors="coerce")
    logger.info("Loaded %d trips", len(trips))
    return trips


def geojson_lines(collection):
    """LineStrings of a FeatureCollection as [[lat, lon], ...]; bad features are skipped."""
    lines = []
    skipped = 0
    features = collection.get("features") if isinstance(collection, dict) else None
    for feature in features or []:
        geom = feature.get("geometry") if isinstance(feature, dict) else None
        if not geom:
            continue
        try:
            sh = shape(geom)
        except (AttributeError, KeyError, TypeError, ValueError, ShapelyError):
            skipped += 1
            continue

        if sh.geom_type == "LineString":
            parts = [sh]
        elif sh.geom_type == "MultiLineString":
            parts = list(sh.geoms)
        else:
            continue
        for part in parts:
            pts = [[lat, lon] for lon, lat, *_ in part.coords]
            if len(pts) > 1:
                lines.append(pts)

    if skipped:
        logger.warning("Skipped %d malformed bike lane features", skipped)
    return lines


def load_bike_lanes(sources: Dict[str, str] = BIKE_LANE_SOURCES) -> Dict[str, List]:
    lanes = {}
    for name, url in sources.items():
        try:
            lanes[name] = geojson_lines(_fetch_json(url))
        except (requests.RequestException, ValueError):
            logger.exception("Error loading bike lanes %r from %s", name, url)
            continue
        logger.info("Loaded %d lines for %s", len(lanes[name]), name)
    return lanes
