"""Configuration models for core and transport components.

Pydantic-based configuration classes consolidate the settings each
component needs, so composition roots and tests inject them explicitly.
"""

from typing import Optional
from pydantic import BaseModel, Field, HttpUrl, TypeAdapter, ValidationError, field_validator

_http_url = TypeAdapter(HttpUrl)


class JobControllerConfig(BaseModel):
    """Configuration for JobController behavior.

    Attributes:
        poll_interval: Seconds between status poll requests (float for test flexibility)
        call_timeout: Deadline in seconds for one transport call (None = wait forever)
    """

    poll_interval: float = Field(
        default=2.0,
        gt=0,
        description="Interval in seconds between remote job status polling requests"
    )

    call_timeout: Optional[float] = Field(
        default=30.0,
        gt=0,
        description="Maximum seconds to await a single submit/poll/cancel call (None for no deadline)"
    )

    model_config = {
        "frozen": True,
        "extra": "forbid",
    }

    @classmethod
    def from_app_settings(cls, settings) -> "JobControllerConfig":
        """Build config from a ScrapeJobSettings instance."""
        return cls(
            poll_interval=settings.SCRAPEJOB_POLL_INTERVAL,
            # 0 in the environment disables the deadline
            call_timeout=settings.SCRAPEJOB_CALL_TIMEOUT or None,
        )


class HttpTransportConfig(BaseModel):
    """Configuration for the HTTP transport adapter.

    Attributes:
        base_url: Root URL of the scrape backend
        request_timeout: Total timeout in seconds for one HTTP request
        max_attempts: Attempts for transient errors when a retry port is injected
    """

    base_url: str = Field(
        default="http://localhost:8000",
        min_length=1,
        description="Root URL of the scrape backend"
    )

    request_timeout: float = Field(
        default=10.0,
        gt=0,
        description="Total timeout in seconds for a single HTTP request"
    )

    max_attempts: int = Field(
        default=1,
        ge=1,
        le=10,
        description="Attempts for transient transport errors (1 disables retries)"
    )

    retry_base_wait: float = Field(
        default=0.2,
        gt=0,
        description="Base wait time in seconds for exponential backoff between retries"
    )

    retry_max_wait: float = Field(
        default=1.0,
        gt=0,
        description="Maximum wait time in seconds between retry attempts"
    )

    model_config = {
        "frozen": True,
        "extra": "forbid",
    }

    @field_validator("base_url")
    @classmethod
    def check_base_url(cls, value: str) -> str:
        """Only absolute http(s) URLs; endpoints are appended with a leading slash."""
        try:
            _http_url.validate_python(value)
        except ValidationError:
            raise ValueError(f"base_url must be an absolute http(s) URL, got {value!r}")
        return value.rstrip("/")

    @classmethod
    def from_app_settings(cls, settings) -> "HttpTransportConfig":
        return cls(
            base_url=str(settings.SCRAPEJOB_BACKEND_URL).rstrip("/"),
            request_timeout=settings.SCRAPEJOB_REQUEST_TIMEOUT,
            max_attempts=settings.SCRAPEJOB_TRANSPORT_MAX_ATTEMPTS,
            retry_base_wait=settings.SCRAPEJOB_TRANSPORT_RETRY_BASE_WAIT,
            retry_max_wait=settings.SCRAPEJOB_TRANSPORT_RETRY_MAX_WAIT,
        )
