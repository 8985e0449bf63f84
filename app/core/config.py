from typing import List

from atams import AtamsBaseSettings


class Settings(AtamsBaseSettings):
    """
    Application Settings

    Inherits from AtamsBaseSettings which includes:
    - DATABASE_URL (required)
    - ATLAS_SSO_URL, ATLAS_APP_CODE, ATLAS_ENCRYPTION_KEY, ATLAS_ENCRYPTION_IV
    - ENCRYPTION_ENABLED, ENCRYPTION_KEY, ENCRYPTION_IV (response encryption)
    - LOGGING_ENABLED, LOG_LEVEL, LOG_TO_FILE, LOG_FILE_PATH
    - CORS_ORIGINS, CORS_ALLOW_CREDENTIALS, CORS_ALLOW_METHODS, CORS_ALLOW_HEADERS
    - RATE_LIMIT_ENABLED, RATE_LIMIT_REQUESTS, RATE_LIMIT_WINDOW
    - DEBUG

    Gate policy values below are facility defaults; a facility may override
    any of them through its stored gate policy.
    """
    APP_NAME: str = "Hostel Gate Attendance"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False

    # Facility defaults
    DEFAULT_TIMEZONE: str = "Asia/Kolkata"

    # Classifier thresholds
    DEFAULT_SHORT_DURATION_MINUTES: int = 5
    DEFAULT_DUPLICATE_WINDOW_SECONDS: int = 120
    DEFAULT_MAX_DAILY_EVENTS: int = 10
    DEFAULT_GATE_OPEN_HOUR: int = 5
    DEFAULT_GATE_CLOSE_HOUR: int = 23
    DEFAULT_WEEKEND_DAYS: List[str] = ["Sunday"]
    DEFAULT_FLAG_WEEKEND_ENTRIES: bool = True

    # Detector behaviour
    GUARD_REPEATED_ENTRY: bool = True
    CLASSIFY_ON_INGEST: bool = True

    # Sanity bounds for event timestamps
    EARLIEST_EVENT_YEAR: int = 2000
    MAX_FUTURE_SKEW_MINUTES: int = 10


settings = Settings()
