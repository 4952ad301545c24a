from pathlib import Path

# Project Root
PROJECT_ROOT = Path(__file__).resolve().parent

# Data Directory
DATA_DIR = PROJECT_ROOT / "data"

RAW_DIR = DATA_DIR / "raw"
RAW_CRIME_CSV = RAW_DIR / "chicago_crimes.csv"

# Outputs
OUTPUTS_DIR = PROJECT_ROOT / "outputs"
PROCESSED_SUBDIR = "processed"
PLOTS_SUBDIR = "plots"
MAPS_SUBDIR = "maps"
MODELS_SUBDIR = "models"

# Intermediate artifact format version
SCHEMA_VERSION = 1

# Ingestion
RAW_SAMPLE_SIZE = 50_000
SYNTHETIC_RECORDS = 10_000
RANDOM_SEED = 123

SYNTHETIC_START = "2021-01-01"
SYNTHETIC_END = "2024-10-31"

SYNTHETIC_CRIME_TYPES = {
    "THEFT": 0.25,
    "BATTERY": 0.18,
    "CRIMINAL DAMAGE": 0.12,
    "ASSAULT": 0.10,
    "BURGLARY": 0.08,
    "MOTOR VEHICLE THEFT": 0.08,
    "ROBBERY": 0.06,
    "DECEPTIVE PRACTICE": 0.05,
    "NARCOTICS": 0.04,
    "OTHER OFFENSE": 0.04,
}

SYNTHETIC_LOCATIONS = [
    "STREET", "RESIDENCE", "APARTMENT", "SIDEWALK",
    "PARKING LOT", "RESTAURANT", "SCHOOL", "STORE",
]

SYNTHETIC_ARREST_RATE = 0.25
SYNTHETIC_DOMESTIC_RATE = 0.15

# Chicago bounding box (lat, lon)
SYNTHETIC_LAT_RANGE = (41.64, 42.02)
SYNTHETIC_LON_RANGE = (-87.94, -87.52)

# Temporal features
HOLIDAY_COUNTRY = "US"
TOP_CRIME_TYPES = 5

# Hotspots
GRID_SIZE_DEG = 0.01  # ~1km
TOP_N_HOTSPOTS = 20
CRIME_TYPE_LABEL_MAX = 100
HIGH_CRIME_QUANTILE = 0.75

# Forecasting
FORECAST_HORIZON = 6
SEASONAL_PERIOD = 12
FORECAST_MODELS = ("ARIMA", "Prophet")

# Map sampling
MAP_SAMPLE_ALL = 5_000
MAP_SAMPLE_HEATMAP = 10_000
MAP_SAMPLE_BY_TYPE = 3_000
MAP_SAMPLE_TEMPORAL = 2_000
RECENT_WINDOW_MONTHS = 6
