import pandas as pd
import pytest


def make_trips(rows):
    """rows of (start_station_id, end_station_id, started_at, ended_at)"""
    trips = pd.DataFrame(rows, columns=["start_station_id", "end_station_id", "started_at", "ended_at"])
    for c in ("started_at", "ended_at"):
        trips[c] = pd.to_datetime(trips[c], errors="coerce")
    return trips


@pytest.fixture
def stations():
    return pd.DataFrame(
        {
            "short_name": ["A", "B", "C"],
            "lon": [-71.09, -71.06, -71.12],
            "lat": [42.36, 42.35, 42.37],
        }
    )


@pytest.fixture
def trips():
    return make_trips(
        [
            ("A", "B", "2024-03-01 08:00", "2024-03-01 08:10"),
            ("A", "A", "2024-03-01 08:30", "2024-03-01 08:45"),
            ("B", "A", "2024-03-02 17:05", "2024-03-02 17:20"),
            ("B", "Z", "2024-03-02 23:50", "2024-03-03 00:05"),
            ("Z", "B", "2024-03-03 12:00", "2024-03-03 12:30"),
        ]
    )
