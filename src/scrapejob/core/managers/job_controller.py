"""JobController: drives one remote scrape job at a time from the client side.

Responsibilities:
1. Validate and submit a job request through the transport port.
2. Poll the job status at a fixed interval while the job is active.
3. Reconcile poll results, transport failures and user cancellation into
   `ControllerState` transitions, notifying observers on each one.
4. Keep at most one live polling task and tear it down on every exit from
   the active phase.

Transitions are serialized by the event loop. Every step that follows an
await re-checks the run generation and phase before touching state, so a
late submit/poll/cancel answer for an abandoned or cancelled run is dropped.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Mapping, Optional, Set, Union

from pydantic import ValidationError

from scrapejob.core.config import JobControllerConfig
from scrapejob.core.exceptions import InvalidRequest
from scrapejob.core.interfaces.observers import ControllerStateObserver
from scrapejob.core.interfaces.transport import TransportPort
from scrapejob.core.logging_config import job_id_var
from scrapejob.core.managers.polling_task import PollingTask
from scrapejob.core.models.job import (
    ControllerState,
    ErrorInfo,
    ErrorKind,
    JobId,
    JobRequest,
    JobState,
    JobStatus,
    Phase,
)
from scrapejob.core.models.result import Err, Ok, Result
from scrapejob.core.models.transport_error import TransportError
from scrapejob.core.settings import logger

SUBMISSION_FAILED_MESSAGE = "Failed to start image search. Please try again."
POLLING_FAILED_MESSAGE = "Failed to get job status"
CANCEL_UNCONFIRMED_MESSAGE = "Search cancelled, but the server did not confirm the cancellation"
NOT_CANCELLABLE_MESSAGE = "No active job to cancel"


class JobController:
    """Client-side lifecycle controller for a single remote job at a time.

    Attributes:
        config: Immutable configuration (poll interval, per-call deadline)
    """

    def __init__(
        self,
        transport: TransportPort,
        config: Optional[JobControllerConfig] = None,
        observers: Optional[list[ControllerStateObserver]] = None,
    ) -> None:
        self._transport = transport
        # Re-validate: model_copy(update=...) and model_construct skip field checks.
        self.config = JobControllerConfig.model_validate((config or JobControllerConfig()).model_dump())
        self._state = ControllerState()
        self._observers: list[ControllerStateObserver] = list(observers or [])
        self._poll_task: Optional[PollingTask] = None
        self._poll_tasks: Set[PollingTask] = set()
        # Incremented by every start(); answers for older runs are discarded.
        self._run_id = 0
        self._settled = asyncio.Event()
        self._settled.set()

    # ---------------- Observation -----------------
    @property
    def state(self) -> ControllerState:
        return self._state

    @property
    def live_timer_count(self) -> int:
        return sum(1 for task in self._poll_tasks if task.live)

    def subscribe(self, observer: ControllerStateObserver) -> Callable[[], None]:
        """Register an observer; returns a callable that unsubscribes it."""
        self._observers.append(observer)

        def unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return unsubscribe

    async def wait(self, timeout: Optional[float] = None) -> ControllerState:
        """Wait until the current run is terminal or superseded.

        Returns immediately when nothing is in flight. Raises
        asyncio.TimeoutError when `timeout` elapses first.
        """
        settled = self._settled
        if timeout is None:
            await settled.wait()
        else:
            await asyncio.wait_for(settled.wait(), timeout=timeout)
        return self._state

    def _notify_state_changed(self, old_state: ControllerState, new_state: ControllerState) -> None:
        for observer in list(self._observers):
            try:
                observer.on_state_changed(old_state, new_state)
            except Exception as exc:
                logger.error(
                    f"[observer:error] on_state_changed failed observer={type(observer).__name__} "
                    f"phase={new_state.phase} error={exc}"
                )

    def _notify_job_terminal(self, final_state: ControllerState) -> None:
        for observer in list(self._observers):
            try:
                observer.on_job_terminal(final_state)
            except Exception as exc:
                logger.error(
                    f"[observer:error] on_job_terminal failed observer={type(observer).__name__} "
                    f"error={exc}"
                )

    def _transition(self, **changes: Any) -> ControllerState:
        """Replace the state snapshot, validating invariants, and notify observers."""
        old_state = self._state
        new_state = ControllerState(**{**dict(old_state), **changes})
        self._state = new_state
        logger.debug(
            f"[controller:transition] {old_state.phase} -> {new_state.phase} "
            f"job_id={new_state.current_job} "
            f"status={new_state.last_status.state if new_state.last_status else None} "
            f"error={new_state.last_error.kind if new_state.last_error else None}"
        )
        self._notify_state_changed(old_state, new_state)
        if new_state.phase == Phase.terminal and old_state.phase != Phase.terminal:
            self._settled.set()
            self._notify_job_terminal(new_state)
        return new_state

    # ---------------- Commands -----------------
    async def start(self, request: Union[JobRequest, Mapping[str, Any]]) -> ControllerState:
        """Submit a new job, superseding whatever run is in progress.

        Raises InvalidRequest (without any transport call) when the request
        parameters are rejected. Every other failure is reported through the
        returned/observed state.
        """
        job_request = self._validate_request(request)

        self._abandon_current_run()
        self._run_id += 1
        run_id = self._run_id
        self._settled = asyncio.Event()

        self._transition(
            phase=Phase.submitting,
            current_job=None,
            last_status=None,
            last_error=None,
        )
        logger.info(
            f"[controller:start] submitting run={run_id} search_term={job_request.search_term!r} "
            f"count={job_request.count}"
        )

        result = await self._call("submit", None, self._transport.submit(job_request))

        if run_id != self._run_id:
            logger.info(f"[controller:start] discarding submit result of superseded run={run_id}")
            return self._state

        match result:
            case Ok(value=job_id) if job_id:
                job_id = JobId(str(job_id))
                # Build the timer first so nothing can fail after `active` is published.
                task = self._build_polling_task(run_id, job_id)
                self._transition(phase=Phase.active, current_job=job_id)
                logger.info(f"[controller:start] job accepted job_id={job_id} run={run_id}")
                self._schedule_polling(task)
            case Err(error=error):
                logger.warning(f"[controller:start] submission failed run={run_id} error={error.describe()}")
                self._transition(
                    phase=Phase.terminal,
                    last_error=ErrorInfo(
                        kind=ErrorKind.submission_failed,
                        message=SUBMISSION_FAILED_MESSAGE,
                        detail=error.describe(),
                    ),
                )
            case _:
                logger.error(f"[controller:start] unusable submit result run={run_id} result={result!r}")
                self._transition(
                    phase=Phase.terminal,
                    last_error=ErrorInfo(
                        kind=ErrorKind.submission_failed,
                        message=SUBMISSION_FAILED_MESSAGE,
                        detail=f"unexpected submit result {result!r}",
                    ),
                )
        return self._state

    async def cancel(self) -> Optional[ErrorInfo]:
        """Cancel the active job.

        Local state becomes terminal/cancelled immediately, before the remote
        cancel is even sent. Returns None on confirmed cancellation, otherwise
        the NotCancellable or CancelUnconfirmed error.
        """
        state = self._state
        job_id = state.current_job
        if state.phase not in (Phase.submitting, Phase.active) or job_id is None:
            logger.warning(f"[controller:cancel] nothing to cancel phase={state.phase}")
            return ErrorInfo(kind=ErrorKind.not_cancellable, message=NOT_CANCELLABLE_MESSAGE)

        run_id = self._run_id
        self._stop_polling()
        previous = state.last_status
        self._transition(
            phase=Phase.terminal,
            current_job=None,
            last_status=JobStatus(
                state=JobState.cancelled,
                progress_count=previous.progress_count if previous else 0,
                progress_total=previous.progress_total if previous else 0,
            ),
            last_error=None,
        )
        logger.info(f"[controller:cancel] cancelled locally job_id={job_id} run={run_id}")

        result = await self._call("cancel", job_id, self._transport.cancel(job_id))
        if isinstance(result, Ok):
            logger.debug(f"[controller:cancel] remote cancel confirmed job_id={job_id}")
            return None

        detail = result.error.describe() if isinstance(result, Err) else f"unexpected cancel result {result!r}"
        error = ErrorInfo(
            kind=ErrorKind.cancel_unconfirmed,
            message=CANCEL_UNCONFIRMED_MESSAGE,
            detail=detail,
            job_id=job_id,
        )
        logger.warning(f"[controller:cancel] remote cancel unconfirmed job_id={job_id} detail={detail}")
        if run_id == self._run_id:
            self._transition(last_error=error)
        return error

    async def shutdown(self) -> None:
        """Stop polling and drop any in-flight answers. State is left as is."""
        self._run_id += 1
        self._stop_polling()
        self._settled.set()
        tasks = list(self._poll_tasks)
        for task in tasks:
            await task.wait_closed()
        self._poll_tasks.clear()

    # ----------------- Helper methods -----------------
    def _validate_request(self, request: Union[JobRequest, Mapping[str, Any]]) -> JobRequest:
        try:
            if isinstance(request, JobRequest):
                # Re-validate: instances built with model_construct skip checks.
                return JobRequest.model_validate(dict(request))
            if isinstance(request, Mapping):
                return JobRequest.model_validate(dict(request))
        except ValidationError as exc:
            logger.warning(f"[controller:start] invalid request errors={exc.error_count()}")
            raise InvalidRequest("Invalid job request", diagnostic=str(exc)) from exc
        raise InvalidRequest(
            "Invalid job request",
            diagnostic=f"expected JobRequest or mapping, got {type(request).__name__}",
        )

    def _abandon_current_run(self) -> None:
        state = self._state
        if state.phase in (Phase.submitting, Phase.active):
            # Abandoned, not cancelled: the remote job keeps running.
            logger.warning(
                f"[controller:start] abandoning run={self._run_id} job_id={state.current_job} "
                f"phase={state.phase} without remote cancel"
            )
        self._stop_polling()
        self._settled.set()

    async def _call(self, operation: str, job_id: Optional[JobId], call: Awaitable[Result]) -> Result:
        """Await one transport call under the configured deadline.

        Timeouts and unexpected adapter exceptions become Err results.
        """
        token = job_id_var.set(job_id or "-")
        try:
            if self.config.call_timeout is None:
                return await call
            return await asyncio.wait_for(call, timeout=self.config.call_timeout)
        except asyncio.TimeoutError:
            logger.warning(
                f"[controller:{operation}] no answer within {self.config.call_timeout}s job_id={job_id}"
            )
            return Err(
                TransportError(
                    operation=operation,
                    title="Call Timeout",
                    detail=f"No answer within {self.config.call_timeout}s",
                )
            )
        except Exception as exc:
            logger.error(f"[controller:{operation}] transport raised job_id={job_id} error={exc!r}")
            return Err(
                TransportError(
                    operation=operation,
                    title="Transport Failure",
                    detail=str(exc) or type(exc).__name__,
                )
            )
        finally:
            job_id_var.reset(token)

    # ---------------- Polling -----------------
    def _build_polling_task(self, run_id: int, job_id: JobId) -> PollingTask:
        async def tick() -> bool:
            try:
                return await self._poll_once(run_id, job_id)
            except Exception as exc:
                # Never leave the run active behind a dead timer.
                logger.error(f"[controller:poll] tick raised job_id={job_id} error={exc!r}")
                if self._is_current(run_id, job_id):
                    self._fail_polling(job_id, f"status poll raised {exc!r}")
                return True

        return PollingTask(tick, self.config.poll_interval, name=f"poll-{job_id}")

    def _schedule_polling(self, task: PollingTask) -> None:
        self._stop_polling()
        self._poll_tasks = {t for t in self._poll_tasks if not t.done}
        self._poll_tasks.add(task)
        self._poll_task = task
        task.start()

    def _stop_polling(self) -> None:
        task = self._poll_task
        if task is None:
            return
        self._poll_task = None
        task.stop()

    def _is_current(self, run_id: int, job_id: JobId) -> bool:
        return (
            run_id == self._run_id
            and self._state.phase == Phase.active
            and self._state.current_job == job_id
        )

    async def _poll_once(self, run_id: int, job_id: JobId) -> bool:
        """Run one polling tick; returns True when polling must stop."""
        if not self._is_current(run_id, job_id):
            logger.debug(f"[controller:poll] run no longer active, stopping job_id={job_id}")
            return True

        result = await self._call("fetch_status", job_id, self._transport.fetch_status(job_id))

        # Re-read state: cancel() or a newer start() may have happened meanwhile.
        if not self._is_current(run_id, job_id):
            logger.info(f"[controller:poll] discarding stale status response job_id={job_id} run={run_id}")
            return True

        match result:
            case Ok(value=JobStatus() as status):
                if status.is_terminal:
                    self._stop_polling()
                    self._transition(phase=Phase.terminal, current_job=None, last_status=status)
                    logger.info(f"[controller:poll] terminal state reached job_id={job_id} state={status.state}")
                    return True
                self._transition(last_status=status)
                logger.debug(
                    f"[controller:poll] job_id={job_id} state={status.state} "
                    f"progress={status.progress_count}/{status.progress_total}"
                )
                return False
            case Err(error=error):
                detail = error.describe()
            case _:
                detail = f"unexpected status result {result!r}"

        self._fail_polling(job_id, detail)
        return True

    def _fail_polling(self, job_id: JobId, detail: str) -> None:
        logger.warning(f"[controller:poll] polling failed job_id={job_id} detail={detail}")
        self._stop_polling()
        self._transition(
            phase=Phase.terminal,
            current_job=None,
            last_error=ErrorInfo(
                kind=ErrorKind.polling_failed,
                message=POLLING_FAILED_MESSAGE,
                detail=detail,
                job_id=job_id,
            ),
        )
