"""Global configuration: dashboard defaults and constants."""

# Reserved id of the built-in view; never deletable
DEFAULT_VIEW_ID = "default"

# Number of calendar-month buckets in every revenue series
MONTHS_OF_HISTORY = 12

# Default filter window (trailing days, inclusive of today)
DEFAULT_DATE_RANGE_DAYS = 30

# Top-entities widget length
DEFAULT_TOP_N = 4

# Products with stock strictly above this count as healthy inventory
DEFAULT_MIN_STOCK_THRESHOLD = 10

# Estimated share of stock sold, used when no sales history exists
DEFAULT_SALES_FRACTION = 0.3

# Forecast horizon embedded in each snapshot
DEFAULT_FORECAST_PERIODS = 3

# z-score at which a bucket is flagged as anomalous
DEFAULT_ANOMALY_THRESHOLD = 2.0

# Auto-refresh cadence, seconds
DEFAULT_REFRESH_INTERVAL = 30.0

# Grid used when computing widget spans
GRID_COLUMNS = 4

# Project-local state directory
STATE_DIR = ".shopdash"
