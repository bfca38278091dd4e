"""Default limits shared across bulkedit components."""

DEFAULT_PAGE_SIZE = 1000
DEFAULT_INTERVAL_CAP = 5
DEFAULT_INTERVAL = 1.0
DEFAULT_LOCALE = "en-US"
