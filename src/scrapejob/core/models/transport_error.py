from typing import Optional

from pydantic import BaseModel


class TransportError(BaseModel):
    """Structured description of a failed exchange with the scrape backend."""

    operation: str
    title: str
    detail: str
    status: Optional[int] = None

    model_config = {"frozen": True}

    @property
    def is_transient(self) -> bool:
        # Connection errors and timeouts carry no upstream status.
        if self.status is None:
            return True
        return self.status in (502, 503, 504)

    def describe(self) -> str:
        if self.status is not None:
            return f"{self.operation}: {self.title} ({self.status}) - {self.detail}"
        return f"{self.operation}: {self.title} - {self.detail}"
