import folium

from snapshot import build_snapshot, save_snapshot


def test_build_snapshot_leaves_input_untouched(stations, trips):
    m = build_snapshot(stations, trips, {})
    assert isinstance(m, folium.Map)
    assert "totalTraffic" not in stations.columns


def test_save_snapshot_writes_tooltips(tmp_path, stations, trips):
    lanes = {"Boston bike network": [[[42.3, -71.1], [42.4, -71.0]]]}
    path = save_snapshot(stations, trips, lanes, time_filter=480, path=str(tmp_path / "map.html"))
    html = (tmp_path / "map.html").read_text(encoding="utf-8")
    assert path.endswith("map.html")
    assert "3 trips (2 departures, 1 arrivals)" in html
    assert "Station traffic (8:00 AM)" in html
