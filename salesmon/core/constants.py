"""Constants and default values for the monitoring subsystem."""

# Collection defaults
DEFAULT_METRICS_INTERVAL_MS = 60000  # 1 minute
DEFAULT_CPU_SAMPLE_WINDOW_S = 1.0  # CPU busy/idle delta window
DEFAULT_METRICS_DIR = "data/metrics"

# Retention defaults
DEFAULT_MAX_METRICS_FILES = 1440  # 24 hours at a 1-minute interval

# History query defaults
DEFAULT_HISTORY_LIMIT = 60  # last hour at a 1-minute interval

# Alert threshold defaults
DEFAULT_THRESHOLD_CPU = 80.0  # % CPU
DEFAULT_THRESHOLD_MEMORY = 80.0  # % memory
DEFAULT_THRESHOLD_RESPONSE_TIME = 5000.0  # ms average response time
DEFAULT_THRESHOLD_ERROR_RATE = 5.0  # % of messages
DEFAULT_THRESHOLD_QUEUE_SIZE = 100  # queued messages

# Snapshot file naming
METRICS_FILE_PREFIX = "metrics-"
METRICS_FILE_SUFFIX = ".json"

# Alert evaluation order
THRESHOLD_METRICS = ("cpu", "memory", "responseTime", "errorRate", "queueSize")

# History periods accepted by the HTTP API (milliseconds)
HISTORY_PERIODS_MS = {
    "1h": 60 * 60 * 1000,
    "24h": 24 * 60 * 60 * 1000,
    "7d": 7 * 24 * 60 * 60 * 1000,
    "30d": 30 * 24 * 60 * 60 * 1000,
}
DEFAULT_HISTORY_PERIOD = "24h"
