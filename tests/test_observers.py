"""Unit tests for controller state observers and the console renderer.

Each observer is tested independently for both lifecycle methods.
"""

import io
import logging

import pytest
from rich.console import Console

from scrapejob.adapters.console_renderer import ConsoleStateRenderer, describe_state
from scrapejob.core.managers.observers import LoggingStateObserver, StateHistoryObserver
from scrapejob.core.models.job import (
    ControllerState,
    ErrorInfo,
    ErrorKind,
    JobId,
    JobState,
    JobStatus,
    Phase,
)


# --- Test Fixtures ---

@pytest.fixture
def idle_state():
    return ControllerState()


@pytest.fixture
def submitting_state():
    return ControllerState(phase=Phase.submitting)


@pytest.fixture
def running_state():
    """Active job with 3 of 10 images done."""
    return ControllerState(
        phase=Phase.active,
        current_job=JobId("J1"),
        last_status=JobStatus(state=JobState.running, progress_count=3, progress_total=10),
    )


@pytest.fixture
def completed_state():
    return ControllerState(
        phase=Phase.terminal,
        last_status=JobStatus(
            state=JobState.completed,
            progress_count=10,
            progress_total=10,
            result_location="/out/J1",
        ),
    )


@pytest.fixture
def cancelled_state():
    return ControllerState(
        phase=Phase.terminal,
        last_status=JobStatus(state=JobState.cancelled, progress_count=3, progress_total=10),
    )


@pytest.fixture
def polling_failed_state():
    return ControllerState(
        phase=Phase.terminal,
        last_error=ErrorInfo(
            kind=ErrorKind.polling_failed,
            message="Failed to get job status",
            detail="fetch_status: Upstream HTTP Error (500) - boom",
            job_id=JobId("J1"),
        ),
    )


@pytest.fixture
def console_buffer():
    buffer = io.StringIO()
    return buffer, Console(file=buffer, force_terminal=False, color_system=None, width=120)


# --- StateHistoryObserver ---

class TestStateHistoryObserver:

    def test_records_initial_and_following_states(self, idle_state, submitting_state, running_state):
        observer = StateHistoryObserver()

        observer.on_state_changed(idle_state, submitting_state)
        observer.on_state_changed(submitting_state, running_state)

        assert observer.phases == [Phase.idle, Phase.submitting, Phase.active]

    def test_bounded_history(self, idle_state, submitting_state, running_state):
        observer = StateHistoryObserver(max_entries=2)

        observer.on_state_changed(idle_state, submitting_state)
        observer.on_state_changed(submitting_state, running_state)

        assert observer.phases == [Phase.submitting, Phase.active]

    def test_terminal_states_and_clear(self, completed_state):
        observer = StateHistoryObserver()

        observer.on_job_terminal(completed_state)
        assert observer.terminal_states == [completed_state]

        observer.clear()
        assert observer.terminal_states == []
        assert observer.states == []


# --- LoggingStateObserver ---

class TestLoggingStateObserver:

    def test_logs_phase_change(self, caplog, idle_state, submitting_state):
        caplog.set_level(logging.INFO, logger="scrapejob.core.managers.observers")

        LoggingStateObserver().on_state_changed(idle_state, submitting_state)

        assert "phase idle -> submitting" in caplog.text

    def test_logs_progress_at_debug(self, caplog, running_state):
        caplog.set_level(logging.DEBUG, logger="scrapejob.core.managers.observers")
        advanced = running_state.model_copy(
            update={"last_status": JobStatus(state=JobState.running, progress_count=5, progress_total=10)}
        )

        LoggingStateObserver().on_state_changed(running_state, advanced)

        assert "progress 5/10" in caplog.text

    def test_logs_error_outcome_as_warning(self, caplog, polling_failed_state):
        caplog.set_level(logging.INFO, logger="scrapejob.core.managers.observers")

        LoggingStateObserver().on_job_terminal(polling_failed_state)

        records = [r for r in caplog.records if "run ended with error" in r.getMessage()]
        assert records and records[0].levelno == logging.WARNING

    def test_logs_success_outcome(self, caplog, completed_state):
        caplog.set_level(logging.INFO, logger="scrapejob.core.managers.observers")

        LoggingStateObserver().on_job_terminal(completed_state)

        assert "result_location=/out/J1" in caplog.text


# --- ConsoleStateRenderer ---

class TestConsoleStateRenderer:

    def test_describe_state(self, idle_state, submitting_state, running_state, completed_state, cancelled_state):
        assert describe_state(idle_state) is None
        assert describe_state(submitting_state) == "Searching..."
        assert describe_state(running_state) == "Processing: 3 of 10 images"
        assert describe_state(completed_state) == "Complete!"
        assert describe_state(cancelled_state) == "Cancelled"

    def test_renders_progress_and_result(self, console_buffer, idle_state, submitting_state, running_state, completed_state):
        buffer, console = console_buffer
        renderer = ConsoleStateRenderer(console)

        renderer.on_state_changed(idle_state, submitting_state)
        renderer.on_state_changed(submitting_state, running_state)
        renderer.on_state_changed(running_state, running_state)
        renderer.on_state_changed(running_state, completed_state)
        renderer.on_job_terminal(completed_state)

        output = buffer.getvalue()
        assert "Searching..." in output
        assert output.count("Processing: 3 of 10 images (30%)") == 1
        assert "Complete!" in output
        assert "Images have been saved to:" in output
        assert "/out/J1" in output

    def test_renders_error(self, console_buffer, running_state, polling_failed_state):
        buffer, console = console_buffer
        renderer = ConsoleStateRenderer(console)

        renderer.on_state_changed(running_state, polling_failed_state)
        renderer.on_job_terminal(polling_failed_state)

        output = buffer.getvalue()
        assert "Error: Failed to get job status" in output
        assert "Upstream HTTP Error (500)" in output

    def test_renders_unconfirmed_cancel_after_terminal(self, console_buffer, cancelled_state):
        buffer, console = console_buffer
        renderer = ConsoleStateRenderer(console)
        unconfirmed = cancelled_state.model_copy(
            update={
                "last_error": ErrorInfo(
                    kind=ErrorKind.cancel_unconfirmed,
                    message="Search cancelled, but the server did not confirm the cancellation",
                )
            }
        )

        renderer.on_job_terminal(cancelled_state)
        renderer.on_state_changed(cancelled_state, unconfirmed)

        output = buffer.getvalue()
        assert "Search cancelled" in output
        assert "did not confirm" in output
