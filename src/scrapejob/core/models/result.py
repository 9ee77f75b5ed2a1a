"""Tagged results returned by transport operations.

Transport adapters never raise across the port; they return either `Ok`
with the payload or `Err` with a `TransportError`, so callers can match
exhaustively:

    match await transport.fetch_status(job_id):
        case Ok(value=status): ...
        case Err(error=error): ...
"""

from dataclasses import dataclass
from typing import Generic, TypeVar, Union

from scrapejob.core.models.transport_error import TransportError

T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Err:
    error: TransportError

    @property
    def ok(self) -> bool:
        return False


Result = Union[Ok[T], Err]
