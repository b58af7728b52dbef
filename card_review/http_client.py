"""
RetryingClient — shared request executor for every network-backed call.

Wraps one httpx.AsyncClient. Each request is retried with exponential backoff
on rate limiting (429), server errors (5xx) and transport failures; 401, 404
and other client errors fail on the first response. Knows nothing about
flashcards.
"""
import asyncio
import logging
from typing import Any, Dict, Optional

import httpx

from card_review.config_loader import get_config_value
from card_review.errors import (
    AuthenticationError,
    ClientError,
    HttpError,
    NetworkError,
    NotFoundError,
    RateLimitError,
    ServerError,
)
from card_review.resilience import DelayFn, SleepFn, exponential_delay, get_resilience_config, retry_async

logger = logging.getLogger(__name__)

RETRYABLE = (RateLimitError, ServerError, NetworkError)


def _error_payload(response: httpx.Response) -> Dict[str, Any]:
    """Return the `error` object of an error response ({} when absent or not JSON)."""
    try:
        body = response.json()
    except ValueError:
        return {}
    if isinstance(body, dict) and isinstance(body.get("error"), dict):
        return body["error"]
    return {}


def classify_response(response: httpx.Response) -> None:
    """Raise the ClientError matching a non-success response; return for 2xx."""
    status = response.status_code
    if response.is_success:
        return
    if status == 401:
        raise AuthenticationError("Authentication required. Please sign in again.", status_code=status)
    if status == 404:
        raise NotFoundError("Resource not found. It may have been deleted.", status_code=status)

    error = _error_payload(response)
    code = error.get("code")
    server_message = error.get("message")
    if status == 429:
        raise RateLimitError(
            server_message or "Too many requests. Please wait a moment and try again.",
            status_code=status,
            code=code,
        )
    if status >= 500:
        raise ServerError(server_message or f"Server error: HTTP {status}", status_code=status, code=code)
    raise HttpError(server_message or f"Request failed: HTTP {status}", status_code=status, code=code)


class RetryingClient:
    """Async JSON client with bounded retry.

    Reads get `read_max_retries` attempts (3), writes `write_max_retries` (2)
    so a write whose response was lost is duplicated at most once.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        token: Optional[str] = None,
        timeout: Optional[float] = None,
        retry_delay: Optional[DelayFn] = None,
        sleep: SleepFn = asyncio.sleep,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        cfg = get_resilience_config()
        self.read_max_retries = cfg["read_max_retries"]
        self.write_max_retries = cfg["write_max_retries"]
        self.retry_delay = retry_delay or exponential_delay
        self._sleep = sleep

        base_url = base_url or get_config_value("api.base_url", "http://localhost:4321")
        token = token if token is not None else get_config_value("api.token")
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._client = httpx.AsyncClient(
            base_url=base_url,
            headers=headers,
            timeout=timeout or float(get_config_value("api.timeout", 30.0)),
            transport=transport,
        )
        logger.debug("Created HTTP client for %s", base_url)

    async def __aenter__(self) -> "RetryingClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _send_once(self, method: str, path: str, json: Any = None) -> Any:
        try:
            response = await self._client.request(method, path, json=json)
        except httpx.TransportError as e:
            raise NetworkError(f"{method} {path} failed: {e}") from e
        classify_response(response)
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise HttpError(
                f"Invalid response body from {method} {path}", status_code=response.status_code
            ) from e

    async def request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        max_retries: Optional[int] = None,
    ) -> Any:
        """Send one request with retry and return the decoded JSON body.

        Raises the last ClientError once the attempt budget is spent.
        """
        if max_retries is None:
            max_retries = self.read_max_retries if method.upper() == "GET" else self.write_max_retries
        return await retry_async(
            self._send_once,
            method,
            path,
            json,
            attempts=max_retries,
            delay=self.retry_delay,
            retryable=RETRYABLE,
            sleep=self._sleep,
            context=f"{method} {path}",
        )

    async def get(self, path: str, *, max_retries: Optional[int] = None) -> Any:
        return await self.request("GET", path, max_retries=max_retries)

    async def post(self, path: str, json: Any, *, max_retries: Optional[int] = None) -> Any:
        return await self.request("POST", path, json=json, max_retries=max_retries)


__all__ = ["RetryingClient", "ClientError", "classify_response", "RETRYABLE"]
