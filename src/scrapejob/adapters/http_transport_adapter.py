"""HTTP implementation of TransportPort for the image scrape backend.

Endpoints (relative to the configured base URL):
- POST   /scrape            {"search_term": str, "num_images": int} -> {"job_id": str}
- GET    /status/{job_id}   -> {"status", "images_scraped", "total_images", "folder_path"}
- DELETE /cancel/{job_id}   -> any 2xx means the backend accepted the cancel

Every failure is returned as Err(TransportError); nothing raises across the port.
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Dict, Optional
from urllib.parse import quote

from pydantic import BaseModel, Field, ValidationError

from scrapejob.core.config import HttpTransportConfig
from scrapejob.core.exceptions import TransportException
from scrapejob.core.interfaces.http_client import HttpClientPort
from scrapejob.core.interfaces.retry import RetryPort
from scrapejob.core.interfaces.transport import TransportPort
from scrapejob.core.models.job import JobId, JobRequest, JobState, JobStatus
from scrapejob.core.models.result import Err, Ok, Result
from scrapejob.core.models.transport_error import TransportError
from scrapejob.core.settings import logger


class TransientTransportError(TransportException):
    """Wrapper for transport errors that should be retried.

    Used to distinguish retryable errors (timeouts, connection errors,
    502/503/504) from non-retryable client errors (4xx) in retry logic.
    """

    pass


class ScrapeStatusPayload(BaseModel):
    """Wire shape of the backend's status response."""

    status: JobState
    images_scraped: int = Field(default=0, ge=0)
    total_images: int = Field(default=0, ge=0)
    folder_path: Optional[str] = None

    model_config = {"extra": "ignore"}

    def to_job_status(self) -> JobStatus:
        return JobStatus(
            state=self.status,
            progress_count=self.images_scraped,
            progress_total=self.total_images,
            # The backend may echo the target folder early; it is only a result once completed.
            result_location=self.folder_path if self.status == JobState.completed else None,
        )


class HttpTransportAdapter(TransportPort):
    def __init__(
        self,
        http_client: HttpClientPort,
        config: Optional[HttpTransportConfig] = None,
        retry_port: Optional[RetryPort] = None,
    ) -> None:
        self._http = http_client
        self.config = config or HttpTransportConfig()
        self._retry = retry_port
        self._base = self.config.base_url.rstrip("/")

    # ---------------- TransportPort -----------------
    async def submit(self, request: JobRequest) -> Result[JobId]:
        url = f"{self._base}/scrape"
        payload = {"search_term": request.search_term, "num_images": request.count}
        logger.debug(f"[transport:submit] POST url={url} num_images={request.count}")

        async def do_submit() -> Dict[str, Any]:
            resp = await self._http.post(url, json=payload, timeout=self.config.request_timeout)
            self._check_status("submit", resp)
            return resp

        try:
            resp = await self._with_retry(do_submit)
        except TransportException as exc:
            logger.warning(f"[transport:submit] failed error={exc.error.describe()}")
            return Err(self._with_operation("submit", exc.error))

        body = resp.get("body")
        job_id = body.get("job_id") if isinstance(body, dict) else None
        if job_id is None or str(job_id) == "":
            logger.warning(f"[transport:submit] response without job_id body_type={type(body).__name__}")
            return Err(
                TransportError(
                    operation="submit",
                    title="Malformed Response",
                    status=resp.get("status"),
                    detail="The scrape backend did not return a job_id",
                )
            )
        logger.debug(f"[transport:submit] accepted job_id={job_id}")
        return Ok(JobId(str(job_id)))

    async def fetch_status(self, job_id: JobId) -> Result[JobStatus]:
        url = f"{self._base}/status/{quote(str(job_id), safe='')}"

        async def do_fetch() -> Dict[str, Any]:
            return await self._http.get(url, timeout=self.config.request_timeout)

        try:
            body = await self._with_retry(do_fetch)
        except TransportException as exc:
            logger.warning(f"[transport:status] failed job_id={job_id} error={exc.error.describe()}")
            return Err(self._with_operation("fetch_status", exc.error))

        try:
            payload = ScrapeStatusPayload.model_validate(body)
            status = payload.to_job_status()
        except ValidationError as exc:
            logger.warning(f"[transport:status] malformed status job_id={job_id} errors={exc.error_count()}")
            return Err(
                TransportError(
                    operation="fetch_status",
                    title="Malformed Response",
                    detail=f"Unexpected status payload: {str(body)[:100]}",
                )
            )
        logger.debug(
            f"[transport:status] job_id={job_id} status={status.state} "
            f"progress={status.progress_count}/{status.progress_total}"
        )
        return Ok(status)

    async def cancel(self, job_id: JobId) -> Result[None]:
        url = f"{self._base}/cancel/{quote(str(job_id), safe='')}"
        logger.debug(f"[transport:cancel] DELETE url={url}")

        async def do_cancel() -> Dict[str, Any]:
            resp = await self._http.delete(url, timeout=self.config.request_timeout)
            self._check_status("cancel", resp)
            return resp

        try:
            await self._with_retry(do_cancel)
        except TransportException as exc:
            logger.warning(f"[transport:cancel] failed job_id={job_id} error={exc.error.describe()}")
            return Err(self._with_operation("cancel", exc.error))
        return Ok(None)

    # ----------------- Helper methods -----------------
    def _check_status(self, operation: str, resp: Dict[str, Any]) -> None:
        status = resp.get("status")
        if isinstance(status, int) and 200 <= status < 300:
            return
        body = resp.get("body")
        detail = body.get("detail") if isinstance(body, dict) else body
        raise TransportException(
            TransportError(
                operation=operation,
                title="Upstream HTTP Error",
                status=status if isinstance(status, int) else None,
                detail=str(detail)[:200] if detail else f"The scrape backend answered {status}",
            )
        )

    def _with_operation(self, operation: str, error: TransportError) -> TransportError:
        if error.operation == operation:
            return error
        return error.model_copy(update={"operation": operation})

    async def _with_retry(self, func: Callable[[], Awaitable[Any]]) -> Any:
        """Run a transport call, retrying transient errors if a retry port is set."""

        async def classified():
            try:
                return await func()
            except TransientTransportError:
                raise
            except TransportException as exc:
                if exc.error.is_transient:
                    raise TransientTransportError(exc.error) from exc
                raise

        if self._retry is None or self.config.max_attempts <= 1:
            return await classified()
        return await self._retry.execute(
            classified,
            attempts=self.config.max_attempts,
            wait_initial=self.config.retry_base_wait,
            wait_max=self.config.retry_max_wait,
            exception_types=(TransientTransportError,),
        )
