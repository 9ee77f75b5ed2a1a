# main.py
import argparse
import asyncio
import signal
import sys
from typing import Optional, Sequence

from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape

from scrapejob.adapters.aiohttp_client_adapter import AioHttpClientAdapter
from scrapejob.adapters.console_renderer import ConsoleStateRenderer
from scrapejob.adapters.http_transport_adapter import HttpTransportAdapter
from scrapejob.adapters.retry_tenacity import TenacityRetryAdapter
from scrapejob.core.config import HttpTransportConfig, JobControllerConfig
from scrapejob.core.exceptions import InvalidRequest
from scrapejob.core.logging_config import configure_logging
from scrapejob.core.managers.job_controller import JobController
from scrapejob.core.managers.observers import LoggingStateObserver
from scrapejob.core.models.job import JobRequest, JobState, Phase
from scrapejob.core.settings import app_settings, logger


# main lives at the outermost layer (not in core)
# Instantiates all the concrete adapters
# Wires dependencies together
# Runs one job to completion

EXIT_COMPLETED = 0
EXIT_NOT_COMPLETED = 1
EXIT_INVALID_REQUEST = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="scrapejob",
        description="Submit an image search job and follow it until it finishes.",
    )
    parser.add_argument("search_term", help="Search term for the images")
    parser.add_argument(
        "-n", "--num-images", type=int, default=10, dest="count",
        help="Number of images to fetch (1-50, default 10)",
    )
    parser.add_argument("--backend-url", default=None, help="Override SCRAPEJOB_BACKEND_URL")
    parser.add_argument("--poll-interval", type=float, default=None, help="Override SCRAPEJOB_POLL_INTERVAL")
    parser.add_argument("--show-settings", action="store_true", help="Print effective settings first")
    return parser


def build_configs(args: argparse.Namespace) -> tuple[JobControllerConfig, HttpTransportConfig]:
    """Settings-derived configs with command line overrides applied.

    Overrides go through model_validate so bad values raise ValidationError.
    """
    controller_config = JobControllerConfig.from_app_settings(app_settings)
    if args.poll_interval is not None:
        controller_config = JobControllerConfig.model_validate(
            {**controller_config.model_dump(), "poll_interval": args.poll_interval}
        )
    transport_config = HttpTransportConfig.from_app_settings(app_settings)
    if args.backend_url:
        transport_config = HttpTransportConfig.model_validate(
            {**transport_config.model_dump(), "base_url": args.backend_url}
        )
    return controller_config, transport_config


async def run_job(
    request: JobRequest,
    controller_config: JobControllerConfig,
    transport_config: HttpTransportConfig,
    console: Console,
) -> int:
    retry_adapter = None
    if transport_config.max_attempts > 1:
        retry_adapter = TenacityRetryAdapter(
            attempts=transport_config.max_attempts,
            wait_initial=transport_config.retry_base_wait,
            wait_max=transport_config.retry_max_wait,
        )

    async with AioHttpClientAdapter(default_timeout=transport_config.request_timeout) as http_client:
        transport = HttpTransportAdapter(http_client, transport_config, retry_port=retry_adapter)
        controller = JobController(
            transport,
            controller_config,
            observers=[LoggingStateObserver(), ConsoleStateRenderer(console)],
        )

        # Ctrl-C cancels the job instead of killing the process
        loop = asyncio.get_running_loop()
        cancel_tasks: set = set()

        def request_cancel() -> None:
            task = asyncio.create_task(controller.cancel())
            cancel_tasks.add(task)
            task.add_done_callback(cancel_tasks.discard)

        try:
            loop.add_signal_handler(signal.SIGINT, request_cancel)
        except NotImplementedError:  # pragma: no cover - Windows event loops
            logger.debug("SIGINT handler not supported on this platform")

        try:
            await controller.start(request)
            final_state = await controller.wait()
            # Let a pending remote cancel finish so its outcome is reported
            if cancel_tasks:
                await asyncio.gather(*cancel_tasks, return_exceptions=True)
                final_state = controller.state
        finally:
            try:
                loop.remove_signal_handler(signal.SIGINT)
            except NotImplementedError:  # pragma: no cover
                pass
            await controller.shutdown()

    if (
        final_state.phase == Phase.terminal
        and final_state.last_status is not None
        and final_state.last_status.state == JobState.completed
    ):
        return EXIT_COMPLETED
    return EXIT_NOT_COMPLETED


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    console = Console()

    configure_logging(app_settings.SCRAPEJOB_LOG_LEVEL)
    if args.show_settings:
        app_settings.print_settings(logger)

    try:
        request = JobRequest(search_term=args.search_term, count=args.count)
    except ValueError as exc:
        console.print(f"[bold red]Invalid request:[/bold red] {escape(str(exc))}")
        return EXIT_INVALID_REQUEST

    try:
        controller_config, transport_config = build_configs(args)
    except ValidationError as exc:
        console.print(f"[bold red]Invalid configuration:[/bold red] {escape(str(exc))}")
        return EXIT_INVALID_REQUEST

    try:
        return asyncio.run(run_job(request, controller_config, transport_config, console))
    except InvalidRequest as exc:
        console.print(f"[bold red]Invalid request:[/bold red] {escape(exc.message)}")
        return EXIT_INVALID_REQUEST


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()
