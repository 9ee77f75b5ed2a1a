"""Console presentation of controller state using rich.

Renders one line per meaningful transition; it never drives the controller.
"""

from typing import Optional

from rich.console import Console
from rich.markup import escape

from scrapejob.core.models.job import ControllerState, ErrorInfo, ErrorKind, JobState, Phase


def describe_state(state: ControllerState) -> Optional[str]:
    """Return the user-facing line for a state snapshot (None when nothing to show)."""
    if state.phase == Phase.submitting:
        return "Searching..."
    status = state.last_status
    if state.phase == Phase.active and status is None:
        return "Search started, waiting for progress..."
    if status is None:
        return None
    if status.state == JobState.completed:
        return "Complete!"
    if status.state == JobState.failed:
        return "Failed"
    if status.state == JobState.cancelled:
        return "Cancelled"
    return f"Processing: {status.progress_count} of {status.progress_total} images"


class ConsoleStateRenderer:
    """ControllerStateObserver that prints progress and outcome lines."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()
        self._last_line: Optional[str] = None

    def on_state_changed(self, old_state: ControllerState, new_state: ControllerState) -> None:
        # Late error on an already terminal run (unconfirmed remote cancel)
        if (
            old_state.phase == Phase.terminal
            and new_state.last_error is not None
            and old_state.last_error != new_state.last_error
        ):
            self._print_error(new_state.last_error)
            return

        line = describe_state(new_state)
        if line is None or line == self._last_line:
            return
        self._last_line = line
        if new_state.phase == Phase.active and new_state.last_status is not None:
            percent = new_state.progress_fraction * 100
            self.console.print(f"[magenta]{escape(line)}[/magenta] ({percent:.0f}%)")
        else:
            self.console.print(escape(line))

    def on_job_terminal(self, final_state: ControllerState) -> None:
        self._last_line = None
        if final_state.last_error is not None:
            self._print_error(final_state.last_error)
            return
        status = final_state.last_status
        if status is not None and status.state == JobState.completed and status.result_location:
            self.console.print("Images have been saved to:")
            self.console.print(f"[bold]{escape(status.result_location)}[/bold]")
        elif status is not None and status.state == JobState.cancelled:
            self.console.print("[red]Search cancelled[/red]")

    def _print_error(self, error: ErrorInfo) -> None:
        style = "yellow" if error.kind == ErrorKind.cancel_unconfirmed else "bold red"
        self.console.print(f"[{style}]Error:[/{style}] {escape(error.message)}")
        if error.detail:
            self.console.print(f"[dim]{escape(error.detail)}[/dim]")
