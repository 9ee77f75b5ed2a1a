# scrapejob/adapters/aiohttp_client_adapter.py
import asyncio
import aiohttp
from typing import Any, Dict, Optional

from scrapejob.core.interfaces.http_client import HttpClientPort
from scrapejob.core.exceptions import TransportException
from scrapejob.core.models.transport_error import TransportError
from scrapejob.core.settings import logger


class AioHttpClientAdapter(HttpClientPort):
    def __init__(self, default_timeout: float = 10.0):
        self._session: Optional[aiohttp.ClientSession] = None
        # Per-field timeouts are fixed at init time so callers only pass a
        # total timeout when they need a different one.
        self._default_total: float = default_timeout
        self._default_sock_read: float = default_timeout
        self._default_sock_connect: float = min(5.0, default_timeout)
        self._default_client_timeout = aiohttp.ClientTimeout(
            total=self._default_total,
            sock_read=self._default_sock_read,
            sock_connect=self._default_sock_connect,
        )

    async def __aenter__(self):
        """Async context manager entry"""
        self._session = aiohttp.ClientSession()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit"""
        await self.close()
        return False

    def _client_timeout(self, timeout: float | None) -> aiohttp.ClientTimeout:
        if timeout is None:
            return self._default_client_timeout
        # Keep adapter-level sock_read/sock_connect values but apply provided total
        return aiohttp.ClientTimeout(
            total=timeout,
            sock_read=self._default_sock_read,
            sock_connect=self._default_sock_connect,
        )

    def _require_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            raise RuntimeError("HTTP client not initialized. Use 'async with' context manager.")
        return self._session

    async def get(self, url: str, timeout: float | None = None) -> Dict[str, Any]:
        """Fetch JSON from URL, translating HTTP/network errors into TransportException."""
        session = self._require_session()
        operation = f"GET {url}"

        try:
            async with session.get(url, timeout=self._client_timeout(timeout)) as response:
                # Error statuses win over body parsing problems
                response.raise_for_status()
                try:
                    response_data = await response.json()
                except (aiohttp.ContentTypeError, ValueError):
                    response_text = await response.text()
                    logger.error(
                        "Invalid JSON response from scrape backend. URL: %s, Content: %s",
                        url,
                        response_text[:500],
                    )
                    raise TransportException(
                        TransportError(
                            operation=operation,
                            title="Invalid Response Content",
                            status=502,
                            detail=(
                                "The response from the scrape backend was not valid JSON"
                                f": '{response_text[:100]}'"
                            ),
                        )
                    )

                return response_data

        except TransportException:
            raise
        except Exception as exc:
            raise self._map_error(operation, url, exc) from exc

    async def post(self, url: str, json: Dict[str, Any] | None, timeout: float | None = None, headers: Dict[str, str] | None = None) -> Dict[str, Any]:
        session = self._require_session()
        return await self._exchange(
            f"POST {url}",
            url,
            session.post(url, json=json, timeout=self._client_timeout(timeout), headers=headers),
        )

    async def delete(self, url: str, timeout: float | None = None) -> Dict[str, Any]:
        session = self._require_session()
        return await self._exchange(
            f"DELETE {url}",
            url,
            session.delete(url, timeout=self._client_timeout(timeout)),
        )

    async def _exchange(self, operation: str, url: str, request_cm) -> Dict[str, Any]:
        """Run a request and return status, headers and body without raising for status."""
        try:
            async with request_cm as response:
                try:
                    body = await response.json()
                except (aiohttp.ContentTypeError, ValueError):
                    body = await response.text()

                return {
                    "status": response.status,
                    "headers": dict(response.headers),
                    "body": body,
                }
        except Exception as exc:
            raise self._map_error(operation, url, exc) from exc

    def _map_error(self, operation: str, url: str, exc: Exception) -> TransportException:
        if isinstance(exc, asyncio.TimeoutError):
            logger.error("Timeout when requesting scrape backend. URL: %s", url)
            return TransportException(
                TransportError(
                    operation=operation,
                    title="Upstream Timeout",
                    status=504,
                    detail="The request to the scrape backend timed out.",
                )
            )

        if isinstance(exc, aiohttp.ClientResponseError):
            logger.error(
                "HTTP error when requesting scrape backend. URL: %s, Status: %s, Error: %s",
                url,
                exc.status,
                str(exc),
            )
            return TransportException(
                TransportError(
                    operation=operation,
                    title="Upstream HTTP Error",
                    status=exc.status,
                    detail=f"The scrape backend returned an HTTP error: {exc.status}",
                )
            )

        if isinstance(exc, aiohttp.ClientError):
            logger.error(
                "Connection error when requesting scrape backend. URL: %s, Error: %s",
                url,
                str(exc),
            )
            return TransportException(
                TransportError(
                    operation=operation,
                    title="Upstream Connection Error",
                    detail="There was a connection error with the scrape backend.",
                )
            )

        logger.error(
            "Unexpected error for scrape backend. URL: %s, Error: %s",
            url,
            str(exc),
        )
        return TransportException(
            TransportError(
                operation=operation,
                title="Unexpected Transport Error",
                detail=str(exc) or type(exc).__name__,
            )
        )

    async def close(self) -> None:
        """Close the session"""
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None
