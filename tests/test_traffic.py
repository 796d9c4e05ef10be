import pandas as pd
import pytest

from conftest import make_trips
from traffic import (
    compute_station_traffic,
    filter_trips_by_time,
    format_time,
    minutes_since_midnight,
)


def test_minutes_since_midnight_scalar_and_series():
    assert minutes_since_midnight(pd.Timestamp("2024-03-01 08:10")) == 490
    series = pd.to_datetime(pd.Series(["2024-03-01 00:00", "2024-03-01 23:59", None]))
    minutes = minutes_since_midnight(series)
    assert minutes.iloc[0] == 0
    assert minutes.iloc[1] == 1439
    assert pd.isna(minutes.iloc[2])


@pytest.mark.parametrize(
    "minutes, expected",
    [(0, "12:00 AM"), (5, "12:05 AM"), (480, "8:00 AM"), (720, "12:00 PM"), (780, "1:00 PM"), (1439, "11:59 PM")],
)
def test_format_time(minutes, expected):
    assert format_time(minutes) == expected


def test_single_round_trip_counts_twice():
    stations = pd.DataFrame({"short_name": ["A"], "lon": [0.0], "lat": [0.0]})
    trips = make_trips([("A", "A", "2024-03-01 08:00", "2024-03-01 08:10")])
    out = compute_station_traffic(stations, trips)
    row = out.iloc[0]
    assert (row.arrivals, row.departures, row.totalTraffic) == (1, 1, 2)


def test_aggregate_returns_same_frame_with_totals(stations, trips):
    out = compute_station_traffic(stations, trips)
    assert out is stations
    assert (out["totalTraffic"] == out["arrivals"] + out["departures"]).all()
    counts = out.set_index("short_name")
    assert counts.loc["A", "departures"] == 2
    assert counts.loc["A", "arrivals"] == 2
    assert counts.loc["B", "departures"] == 2
    assert counts.loc["B", "arrivals"] == 2


def test_unknown_station_trips_are_not_displayed(stations, trips):
    out = compute_station_traffic(stations, trips)
    assert "Z" not in set(out["short_name"])
    # 5 trips, one departure and one arrival at Z are dropped
    assert out["totalTraffic"].sum() == 2 * len(trips) - 2


def test_station_without_trips_is_zero(stations, trips):
    counts = compute_station_traffic(stations, trips).set_index("short_name")
    assert counts.loc["C", ["arrivals", "departures", "totalTraffic"]].tolist() == [0, 0, 0]


def test_aggregate_does_not_accumulate(stations, trips):
    subset = filter_trips_by_time(trips, 480)
    first = compute_station_traffic(stations, subset).copy()
    compute_station_traffic(stations, trips)
    second = compute_station_traffic(stations, subset)
    pd.testing.assert_frame_equal(first, second)


def test_aggregate_with_no_trips(stations):
    out = compute_station_traffic(stations, make_trips([]))
    assert out["totalTraffic"].tolist() == [0, 0, 0]


def test_no_filter_is_identity(trips):
    assert filter_trips_by_time(trips, -1) is trips


def test_trip_outside_window_is_excluded():
    # started 09:10 (550) and ended 09:20 (560), 70+ minutes from 08:00
    trips = make_trips([("A", "B", "2024-03-01 09:10", "2024-03-01 09:20")])
    assert filter_trips_by_time(trips, 480).empty


def test_window_is_inclusive():
    trips = make_trips(
        [
            ("A", "B", "2024-03-01 07:00", "2024-03-01 07:05"),
            ("A", "B", "2024-03-01 05:00", "2024-03-01 09:00"),
            ("A", "B", "2024-03-01 09:01", "2024-03-01 09:30"),
        ]
    )
    kept = filter_trips_by_time(trips, 480)
    assert kept.index.tolist() == [0, 1]


def test_window_does_not_wrap_midnight():
    trips = make_trips([("A", "B", "2024-03-01 23:50", "2024-03-01 23:55")])
    assert filter_trips_by_time(trips, 10).empty


def test_unparsed_times_never_match():
    trips = make_trips([("A", "B", "not a time", None)])
    assert trips["started_at"].isna().all()
    assert filter_trips_by_time(trips, 0).empty


@pytest.mark.parametrize("m", [0, 480, 500, 1030, 1439])
def test_filter_partitions_trips(trips, m):
    kept = filter_trips_by_time(trips, m)
    start = minutes_since_midnight(trips["started_at"])
    end = minutes_since_midnight(trips["ended_at"])
    near = ((start - m).abs() <= 60) | ((end - m).abs() <= 60)
    assert set(kept.index) == set(trips.index[near])
    assert not near[~trips.index.isin(kept.index)].any()
