"""Base HTTP client with error mapping and optional retry."""

import asyncio

import httpx
from loguru import logger
from tenacity import (
    AsyncRetrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from crema_client.errors import FetchError
from settings import API_TIMEOUT, MAX_CONCURRENT, RETRY_ATTEMPTS


def _is_retryable_error(exc: BaseException) -> bool:
    """Check if exception is retryable (network errors + 5xx server errors)."""
    if isinstance(exc, (httpx.ReadError, httpx.ConnectError, httpx.TimeoutException)):
        return True
    return isinstance(exc, httpx.HTTPStatusError) and exc.response.status_code >= 500


class BaseClient:
    """Base async HTTP client.

    Failures surface as ``FetchError``. With the default ``retry_attempts=1``
    nothing is retried; larger values retry network errors and 5xx responses
    with exponential backoff.
    """

    def __init__(
        self,
        max_concurrent: int = MAX_CONCURRENT,
        timeout: float = API_TIMEOUT,
        retry_attempts: int = RETRY_ATTEMPTS,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._client: httpx.AsyncClient | None = None
        self._sem = asyncio.Semaphore(max_concurrent)
        self._timeout = timeout
        self._retry_attempts = max(1, retry_attempts)
        self._transport = transport
        self._request_count = 0
        logger.debug("{}: max_concurrent={}, retry_attempts={}", self.__class__.__name__, max_concurrent, retry_attempts)

    async def __aenter__(self):
        self._open()
        return self

    async def __aexit__(self, *_):
        await self.aclose()

    def _open(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self._timeout,
                limits=httpx.Limits(max_connections=100, max_keepalive_connections=20),
                transport=self._transport,
            )
        return self._client

    async def aclose(self) -> None:
        """Close the underlying connection pool."""
        if self._client:
            logger.debug("Total HTTP requests: {}", self._request_count)
            await self._client.aclose()
            self._client = None

    @property
    def request_count(self) -> int:
        return self._request_count

    async def _send(self, method: str, url: str, **kwargs) -> httpx.Response:
        async with self._sem:
            self._request_count += 1
            resp = await self._open().request(method, url, **kwargs)
            resp.raise_for_status()
            return resp

    async def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        """Send a request, mapping failures to FetchError."""
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self._retry_attempts),
                wait=wait_exponential(multiplier=1, min=1, max=30),
                retry=retry_if_exception(_is_retryable_error),
                reraise=True,
            ):
                with attempt:
                    return await self._send(method, url, **kwargs)
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            raise FetchError(f"{method} {url} failed: {status}", url=url, status_code=status) from e
        except httpx.HTTPError as e:
            raise FetchError(f"{method} {url} failed: {e}", url=url) from e

    async def _get(self, url: str, **kwargs) -> httpx.Response:
        return await self._request("GET", url, **kwargs)

    async def _head(self, url: str, **kwargs) -> httpx.Response:
        return await self._request("HEAD", url, **kwargs)

    async def _post(self, url: str, **kwargs) -> httpx.Response:
        return await self._request("POST", url, **kwargs)
