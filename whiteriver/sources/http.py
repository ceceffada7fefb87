"""Shared HTTP client for every source adapter."""

import logging

import httpx
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from whiteriver.config import Settings

logger = logging.getLogger(__name__)

_DEFAULT_HEADERS = {
    "Accept": "application/json,text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
    "Cache-Control": "no-cache",
}


def build_client(
    settings: Settings, transport: httpx.AsyncBaseTransport | None = None
) -> httpx.AsyncClient:
    """One AsyncClient per run; *transport* lets tests swap in a MockTransport."""
    return httpx.AsyncClient(
        timeout=settings.request_timeout_seconds,
        headers={"User-Agent": settings.user_agent, **_DEFAULT_HEADERS},
        follow_redirects=True,
        transport=transport,
    )


def _is_retryable(exc: BaseException) -> bool:
    """Transport errors and 5xx responses are worth another attempt; 4xx are not."""
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code >= 500
    return isinstance(exc, httpx.TransportError)


async def get_with_retries(
    client: httpx.AsyncClient,
    url: str,
    params: dict | None = None,
    retries: int = 2,
    backoff_seconds: float = 1.0,
) -> httpx.Response:
    """GET *url*, retrying transport errors and 5xx with exponential backoff.

    Raises:
        httpx.HTTPError: The last error once retries are exhausted, or
            immediately for a 4xx response.
    """
    async for attempt in AsyncRetrying(
        stop=stop_after_attempt(retries + 1),
        wait=wait_exponential(multiplier=backoff_seconds),
        retry=retry_if_exception(_is_retryable),
        before_sleep=before_sleep_log(logger, logging.DEBUG),
        reraise=True,
    ):
        with attempt:
            resp = await client.get(url, params=params)
            resp.raise_for_status()
    return resp
