"""
Shared HTTP plumbing for every external provider.

Each provider owns its client, timeout and retry policy: transport errors,
timeouts, 429 and 5xx responses are retried with exponential backoff, other
HTTP errors (404 in particular) are raised immediately so callers can treat
them as "no data".
"""
from typing import Any, Dict, Optional

import httpx
from tenacity import AsyncRetrying, retry_if_exception, stop_after_attempt, wait_exponential

from game_evaluator.core.logging import get_logger

logger = get_logger(__name__)

RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}


def is_retryable_error(exc: BaseException) -> bool:
    """Transport failures and throttling/server errors are worth retrying."""
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code in RETRYABLE_STATUS_CODES
    return isinstance(exc, (httpx.RequestError, httpx.TimeoutException))


class HttpSource:
    """
    Base for classes that talk to one external HTTP API.

    Args:
        client: Optional shared client (not closed by this object)
        timeout: Request timeout in seconds for an owned client
        max_attempts: Attempts per request, including the first
        retry_wait: tenacity wait strategy between attempts
        headers: Default headers for an owned client
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 10.0,
        max_attempts: int = 3,
        retry_wait=None,
        headers: Optional[Dict[str, str]] = None
    ):
        self._client = client
        self._owns_client = client is None
        self.timeout = timeout
        self.max_attempts = max(1, max_attempts)
        self.retry_wait = retry_wait or wait_exponential(multiplier=1, min=2, max=10)
        self.headers = headers or {}

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout, headers=self.headers)
        return self._client

    async def close(self) -> None:
        """Close the client if this object created it."""
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    async def request(self, method: str, url: str, **kwargs) -> httpx.Response:
        """
        Send a request with retries and raise for non-2xx status.

        Raises:
            httpx.HTTPStatusError: On non-retryable status or exhausted retries
            httpx.RequestError: On network errors after exhausted retries
        """
        client = self._get_client()
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=self.retry_wait,
            retry=retry_if_exception(is_retryable_error),
            reraise=True
        ):
            with attempt:
                response = await client.request(method, url, **kwargs)
                response.raise_for_status()
        return response

    async def get_json(self, url: str, params: Optional[Dict[str, Any]] = None, **kwargs) -> Any:
        response = await self.request("GET", url, params=params, **kwargs)
        return response.json()

    async def get_text(self, url: str, params: Optional[Dict[str, Any]] = None, **kwargs) -> str:
        response = await self.request("GET", url, params=params, **kwargs)
        return response.text
