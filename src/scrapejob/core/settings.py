# Logging adapter for application-wide logging
from scrapejob.adapters.logging_adapter import LoggingAdapter

from pydantic import HttpUrl, field_validator
from pydantic_settings import BaseSettings
from rich import print

from scrapejob.core.interfaces.logging import LoggingPort

# using pydantic_settings to manage environment variables
# and do automatic type casting in a central place
class ScrapeJobSettings(BaseSettings):
    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": True,
        "extra": "ignore"
    }
    SCRAPEJOB_LOG_LEVEL: str = "INFO"
    # Base URL of the scrape backend (POST /scrape, GET /status/{id}, DELETE /cancel/{id})
    SCRAPEJOB_BACKEND_URL: HttpUrl = HttpUrl("http://localhost:8000")
    # Seconds between two status polls of an active job
    SCRAPEJOB_POLL_INTERVAL: float = 2.0
    # Deadline in seconds for a single submit/poll/cancel call; 0 disables it
    SCRAPEJOB_CALL_TIMEOUT: float = 30.0
    # Total timeout in seconds for a single HTTP request
    SCRAPEJOB_REQUEST_TIMEOUT: float = 10.0
    # Transport-level attempts for transient errors; 1 means no retry
    SCRAPEJOB_TRANSPORT_MAX_ATTEMPTS: int = 1
    SCRAPEJOB_TRANSPORT_RETRY_BASE_WAIT: float = 0.2
    SCRAPEJOB_TRANSPORT_RETRY_MAX_WAIT: float = 1.0

    def print_settings(self, logger: LoggingPort):
        """Prints the settings for debugging purposes"""
        logger.info("scrapejob settings:")
        print(self)

    @field_validator("SCRAPEJOB_BACKEND_URL", mode="before")
    def strip_trailing_slash(cls, value):
        """Endpoints are appended with a leading slash."""
        if isinstance(value, str):
            return value.rstrip("/")
        return value


app_settings = ScrapeJobSettings()

logger = LoggingAdapter("scrapejob", app_settings.SCRAPEJOB_LOG_LEVEL)
