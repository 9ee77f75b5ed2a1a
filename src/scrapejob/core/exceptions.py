from typing import Optional

from scrapejob.core.models.transport_error import TransportError


class ScrapeJobError(Exception):
    """Base exception for scrape job client failures.

    Attributes:
        message: Human-readable error description
        diagnostic: Technical diagnostic information for debugging
        job_id: Optional job identifier
    """
    def __init__(
        self,
        message: str,
        diagnostic: Optional[str] = None,
        job_id: Optional[str] = None
    ):
        self.message = message
        self.diagnostic = diagnostic
        self.job_id = job_id
        super().__init__(message)


class InvalidRequest(ScrapeJobError):
    """Raised by JobController.start when the job parameters are rejected.

    No transport call is made and the controller state is left untouched.
    """


class TransportException(ScrapeJobError):
    """Raised by HTTP client adapters; transport adapters turn it into an Err result."""
    def __init__(self, error: TransportError):
        self.error = error
        super().__init__(message=error.title, diagnostic=error.detail)
