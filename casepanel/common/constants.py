"""Application constants."""

USER_AGENT = "casepanel/0.3 (+outbreak-panel; contact: configured-email)"
STAGES = (
    "fetch",
    "build",
    "plot",
)
EXIT_SUCCESS = 0
EXIT_PARTIAL = 10
EXIT_HARD_FAIL = 20
METRIC_FIELDS = ("confirmed", "deaths", "recovered")
# Tried in order, first match wins.
TIMESTAMP_FORMATS = (
    "%m/%d/%Y %I:%M %p",
    "%m/%d/%Y %H:%M",
    "%m/%d/%Y %H:%M:%S",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%dT%H:%M:%S",
    "%m/%d/%y %H:%M",
)
SNAPSHOT_NAME_FORMAT = "%m-%d-%Y"
RAW_SNAPSHOT_DIR = "raw/daily"
MANIFEST_FILENAME = "manifest.json"
JSON_LOG_FIELDS = (
    "timestamp",
    "run_id",
    "stage",
    "source",
    "event",
    "status",
    "attempt",
    "duration_ms",
    "rows_in",
    "rows_out",
    "error_code",
    "message",
)
