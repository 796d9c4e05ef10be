import os

# ───────── CONFIG ─────────
STATIONS_URL = os.getenv(
    "STATIONS_URL", "https://dsc106.com/labs/lab07/data/bluebikes-stations.json"
)
TRIPS_URL = os.getenv(
    "TRIPS_URL", "https://dsc106.com/labs/lab07/data/bluebikes-traffic-2024-03.csv"
)
BIKE_LANE_SOURCES = {
    "Boston bike network": "https://bostonopendata-boston.opendata.arcgis.com/datasets/boston::existing-bike-network-2022.geojson",
    "Cambridge bike facilities": "https://raw.githubusercontent.com/cambridgegis/cambridgegis_data/main/Recreation/Bike_Facilities/RECREATION_BikeFacilities.geojson",
}
REQUEST_TIMEOUT = 30       # seconds

MAPBOX_ACCESS_TOKEN = os.getenv("MAPBOX_ACCESS_TOKEN", "")
MAPBOX_STYLE = "mapbox/streets-v12"
OSM_TILES = "https://{s}.tile.openstreetmap.org/{z}/{x}/{y}.png"
OSM_ATTRIBUTION = "© OpenStreetMap contributors"

CENTER   = (42.36027, -71.09415)   # (lat, lon)
ZOOM     = 12
MIN_ZOOM = 5
MAX_ZOOM = 18

NO_FILTER      = -1
LAST_MINUTE    = 1439
WINDOW_MINUTES = 60

RADIUS_RANGE_UNFILTERED = (0, 25)
RADIUS_RANGE_FILTERED   = (3, 50)

DEPARTURES_COLOR = "steelblue"
ARRIVALS_COLOR   = "darkorange"
FLOW_LEVELS      = (0, 0.5, 1)
MARKER_STROKE    = "white"
MARKER_WEIGHT    = 1
MARKER_OPACITY   = 0.6

LANE_COLOR   = "#32D400"
LANE_WEIGHT  = 5
LANE_OPACITY = 0.6

SNAPSHOT_HTML = "bluebikes_traffic_map.html"
SNAPSHOT_TIME = int(os.getenv("SNAPSHOT_TIME", "-1"))

DEBUG     = os.getenv("DASH_DEBUG", "0").lower() in ("1", "true", "yes")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
