from enum import StrEnum
from typing import NewType, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

JobId = NewType("JobId", str)


class JobState(StrEnum):
    queued = "queued"
    running = "running"
    completed = "completed"
    failed = "failed"
    cancelled = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_JOB_STATES


TERMINAL_JOB_STATES = frozenset({JobState.completed, JobState.failed, JobState.cancelled})


class Phase(StrEnum):
    idle = "idle"
    submitting = "submitting"
    active = "active"
    terminal = "terminal"


class ErrorKind(StrEnum):
    invalid_request = "invalid_request"
    submission_failed = "submission_failed"
    polling_failed = "polling_failed"
    cancel_unconfirmed = "cancel_unconfirmed"
    not_cancellable = "not_cancellable"


class JobRequest(BaseModel):
    """Parameters of one scrape job submission."""

    search_term: str = Field(min_length=1)
    count: int = Field(default=10, ge=1, le=50)

    model_config = {
        "frozen": True,
        "extra": "forbid",
    }

    @field_validator("search_term")
    @classmethod
    def reject_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("search_term must not be blank")
        return value


class JobStatus(BaseModel):
    """Snapshot of a remote job as returned by one status poll.

    Only the latest snapshot is kept by the controller; older ones are
    superseded. `result_location` is only meaningful for completed jobs.
    """

    state: JobState
    progress_count: int = Field(default=0, ge=0)
    progress_total: int = Field(default=0, ge=0)
    result_location: Optional[str] = None

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def result_location_only_when_completed(self) -> "JobStatus":
        if self.result_location is not None and self.state != JobState.completed:
            raise ValueError(
                f"result_location is only allowed for completed jobs (state={self.state})"
            )
        return self

    @property
    def is_terminal(self) -> bool:
        return self.state.is_terminal

    @property
    def progress_fraction(self) -> float:
        if self.progress_total == 0:
            return 0.0
        return min(1.0, self.progress_count / self.progress_total)

    @property
    def progress_percent(self) -> float:
        return self.progress_fraction * 100


class ErrorInfo(BaseModel):
    kind: ErrorKind
    message: str
    detail: Optional[str] = None
    job_id: Optional[JobId] = None

    model_config = {"frozen": True}


class ControllerState(BaseModel):
    """Externally observable aggregate of a JobController.

    Notes:
    - `current_job` is only known once the transport answered the submission,
      so it is unset while `submitting` and always set while `active`.
    - A terminal phase reached without an error carries a terminal snapshot.
      Submission and polling failures keep whatever snapshot was last seen.
    """

    phase: Phase = Phase.idle
    current_job: Optional[JobId] = None
    last_status: Optional[JobStatus] = None
    last_error: Optional[ErrorInfo] = None

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def check_invariants(self) -> "ControllerState":
        if self.current_job is not None and self.phase not in (Phase.submitting, Phase.active):
            raise ValueError(f"current_job must be unset in phase {self.phase}")
        if self.phase == Phase.active and self.current_job is None:
            raise ValueError("current_job must be set while active")
        if self.last_status is not None and self.last_status.is_terminal and self.phase != Phase.terminal:
            raise ValueError(
                f"terminal job state {self.last_status.state} requires terminal phase, got {self.phase}"
            )
        if self.phase == Phase.terminal:
            unexplained = self.last_error is None or self.last_error.kind == ErrorKind.cancel_unconfirmed
            if unexplained and (self.last_status is None or not self.last_status.is_terminal):
                raise ValueError("terminal phase without error requires a terminal job status")
        return self

    @property
    def is_busy(self) -> bool:
        return self.phase in (Phase.submitting, Phase.active)

    @property
    def progress_fraction(self) -> float:
        return self.last_status.progress_fraction if self.last_status else 0.0
