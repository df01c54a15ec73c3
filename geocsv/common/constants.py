"""Application constants."""

USER_AGENT = "geocsv/1.0 (+batch geocoding)"

GOOGLE_GEOCODE_URL = "https://maps.googleapis.com/maps/api/geocode/json"
API_KEY_ENV_VAR = "GOOGLE_API_KEY"
API_KEY_PLACEHOLDER = "YOUR_GOOGLE_MAPS_API_KEY"
API_KEY_MIN_LENGTH = 10

LATITUDE_FIELD = "Latitude"
LONGITUDE_FIELD = "Longitude"

DEFAULT_CONFIG_PATH = "config/default.yml"
DIAGNOSTICS_LOG_PREFIX = "geocsv"

EXIT_SUCCESS = 0
EXIT_PARTIAL = 10
EXIT_HARD_FAIL = 20
JSON_LOG_FIELDS = (
    "timestamp",
    "run_id",
    "event",
    "status",
    "ordinal",
    "outcome",
    "severity",
    "rows_in",
    "rows_out",
    "duration_ms",
    "error_code",
    "record",
    "message",
)
