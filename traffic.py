"""
Station traffic: time-of-day helpers, trip filtering and the
arrivals / departures / totalTraffic aggregation.
"""

import pandas as pd

from settings import NO_FILTER, WINDOW_MINUTES


def minutes_since_midnight(ts):
    if isinstance(ts, pd.Series):
        return ts.dt.hour * 60 + ts.dt.minute
    return ts.hour * 60 + ts.minute


def format_time(minutes):
    hour, minute = divmod(int(minutes), 60)
    suffix = "AM" if hour % 24 < 12 else "PM"
    return f"{hour % 12 or 12}:{minute:02d} {suffix}"


def filter_trips_by_time(trips, time_filter):
    # no wraparound: a filter at 00:10 does not match a trip at 23:50
    if time_filter == NO_FILTER:
        return trips

    started = minutes_since_midnight(trips["started_at"])
    ended = minutes_since_midnight(trips["ended_at"])
    # NaT -> NaN, which never compares true
    keep = ((started - time_filter).abs() <= WINDOW_MINUTES) | (
        (ended - time_filter).abs() <= WINDOW_MINUTES
    )
    return trips[keep]


def compute_station_traffic(stations, trips):
    """Overwrites the traffic columns on `stations` and returns it."""
    departures = trips.groupby("start_station_id").size()
    arrivals = trips.groupby("end_station_id").size()

    ids = stations["short_name"]
    stations["arrivals"] = ids.map(arrivals).fillna(0).astype(int)
    stations["departures"] = ids.map(departures).fillna(0).astype(int)
    stations["totalTraffic"] = stations["arrivals"] + stations["departures"]
    return stations
