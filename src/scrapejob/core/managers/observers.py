"""Concrete observer implementations for controller state transitions.

This module provides observers that handle:
- Structured logging of every transition
- In-memory history of observed snapshots (used by renderers and tests)
"""

import logging
from typing import List, Optional

from scrapejob.core.models.job import ControllerState, Phase


logger = logging.getLogger(__name__)


class LoggingStateObserver:
    """Logs phase changes at INFO and progress updates at DEBUG."""

    def on_state_changed(
        self,
        old_state: ControllerState,
        new_state: ControllerState,
    ) -> None:
        if old_state.phase != new_state.phase:
            logger.info(
                f"[observer:log] phase {old_state.phase} -> {new_state.phase} "
                f"job_id={new_state.current_job or old_state.current_job}"
            )
        elif new_state.last_status is not None and new_state.last_status != old_state.last_status:
            logger.debug(
                f"[observer:log] progress {new_state.last_status.progress_count}/"
                f"{new_state.last_status.progress_total} state={new_state.last_status.state}"
            )

    def on_job_terminal(
        self,
        final_state: ControllerState,
    ) -> None:
        if final_state.last_error is not None:
            logger.warning(
                f"[observer:log] run ended with error kind={final_state.last_error.kind} "
                f"detail={final_state.last_error.detail}"
            )
        else:
            status = final_state.last_status
            logger.info(
                f"[observer:log] run ended state={status.state if status else None} "
                f"result_location={status.result_location if status else None}"
            )


class StateHistoryObserver:
    """Records every snapshot the controller publishes.

    Keeps an optional bounded window so long-running sessions don't grow
    without limit.
    """

    def __init__(self, max_entries: Optional[int] = None):
        self._max_entries = max_entries
        self.states: List[ControllerState] = []
        self.terminal_states: List[ControllerState] = []

    def on_state_changed(
        self,
        old_state: ControllerState,
        new_state: ControllerState,
    ) -> None:
        if not self.states:
            self.states.append(old_state)
        self.states.append(new_state)
        if self._max_entries is not None and len(self.states) > self._max_entries:
            del self.states[: len(self.states) - self._max_entries]

    def on_job_terminal(
        self,
        final_state: ControllerState,
    ) -> None:
        self.terminal_states.append(final_state)

    @property
    def phases(self) -> List[Phase]:
        return [state.phase for state in self.states]

    def clear(self) -> None:
        self.states.clear()
        self.terminal_states.clear()
