"""Observer protocol for controller state transitions.

Observers are how a presentation layer (or any other side effect such as
logging or history recording) follows a JobController. Every transition is
delivered, in order, right after the controller replaced its state.
"""

from typing import Protocol

from scrapejob.core.models.job import ControllerState


class ControllerStateObserver(Protocol):
    """Observer protocol for controller state transitions.

    Implementations can react to lifecycle events:
    - on_state_changed: After every transition (old and new snapshot)
    - on_job_terminal: After the controller reached the terminal phase

    Callbacks are synchronous and run inside the transition. They must not
    block; anything slow should be handed off to a task by the observer.
    """

    def on_state_changed(
        self,
        old_state: ControllerState,
        new_state: ControllerState,
    ) -> None:
        """Called after each state transition.

        Args:
            old_state: Snapshot before the transition
            new_state: Snapshot after the transition
        """
        ...

    def on_job_terminal(
        self,
        final_state: ControllerState,
    ) -> None:
        """Called after the terminal phase was entered.

        Args:
            final_state: Terminal snapshot (completed/failed/cancelled or error)
        """
        ...
