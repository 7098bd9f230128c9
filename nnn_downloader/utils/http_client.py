"""Shared HTTP helpers for the nnn API and media servers."""

from __future__ import annotations

import asyncio
import json
import logging
import random
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Union

import aiohttp

from ..models import Session
from .session_store import build_cookie_header

DEFAULT_USER_AGENT = "nnn-downloader/1.0"

API_V1_BASE = "https://api.nnn.ed.nico/v1/"
API_V2_BASE = "https://api.nnn.ed.nico/v2/"
WWW_BASE = "https://www.nnn.ed.nico/"

API_HEADERS_TEMPLATE: Dict[str, str] = {
    "accept": "application/json, text/plain, */*",
}

MEDIA_HEADERS_TEMPLATE: Dict[str, str] = {
    "accept": "*/*",
    "referer": WWW_BASE,
}

BODY_SNIPPET_LIMIT = 500
MAX_JITTER = 0.25


class NetworkError(Exception):
    """The request never produced an HTTP response."""

    def __init__(self, url: str, message: str) -> None:
        super().__init__(f"Network error for {url}: {message}")
        self.url = url
        self.message = message


class HttpError(Exception):
    """The server answered with a non-success status."""

    def __init__(self, status: int, url: str, body_snippet: str = "") -> None:
        super().__init__(f"HTTP {status} for {url}")
        self.status = status
        self.url = url
        self.body_snippet = body_snippet


@dataclass(frozen=True)
class FetchResult:
    """Outcome of :func:`fetch_json_with_retry`; exactly one of value/error is meaningful."""

    value: Any = None
    error: Optional[Union[HttpError, NetworkError]] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> Any:
        if self.error is not None:
            raise self.error
        return self.value


def retry_on_server_error(status: int) -> bool:
    return status >= 500


def compute_backoff(attempt: int, min_delay: float, max_delay: float) -> float:
    """Exponential backoff for ``attempt`` (0-based) plus up to 250ms of jitter."""

    delay = min(max_delay, min_delay * (2 ** attempt))
    return delay + random.random() * min(MAX_JITTER, delay)


async def _sleep_before_retry(delay: float) -> None:
    await asyncio.sleep(delay)


async def _read_body_snippet(response: aiohttp.ClientResponse) -> str:
    try:
        raw = await response.content.read(BODY_SNIPPET_LIMIT)
    except aiohttp.ClientError:
        return ""
    return raw.decode("utf-8", errors="replace")


async def fetch_json_with_retry(
    session: aiohttp.ClientSession,
    url: str,
    *,
    headers: Optional[Dict[str, str]] = None,
    method: str = "GET",
    retries: int = 3,
    min_delay: float = 0.25,
    max_delay: float = 2.0,
    retry_on_status: Callable[[int], bool] = retry_on_server_error,
) -> FetchResult:
    """Request ``url`` and decode its JSON body, retrying transient failures.

    Network errors are always retried; HTTP errors only when
    ``retry_on_status`` accepts the status. At most ``retries`` retries follow
    the first attempt. Ordinary failures are returned, never raised.
    """

    attempt = 0
    while True:
        error: Union[HttpError, NetworkError]
        try:
            async with session.request(method, url, headers=headers) as response:
                if 200 <= response.status < 300:
                    try:
                        return FetchResult(value=json.loads(await response.text()))
                    except ValueError as exc:
                        error = NetworkError(url, f"invalid JSON body: {exc}")
                        retryable = True
                else:
                    error = HttpError(response.status, url, await _read_body_snippet(response))
                    retryable = retry_on_status(response.status)
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            error = NetworkError(url, str(exc) or exc.__class__.__name__)
            retryable = True

        if not retryable or attempt >= retries:
            return FetchResult(error=error)

        delay = compute_backoff(attempt, min_delay, max_delay)
        logging.warning(
            "Request failed (attempt %s/%s): %s; retrying in %.2fs",
            attempt + 1,
            retries + 1,
            error,
            delay,
        )
        await _sleep_before_retry(delay)
        attempt += 1


class HttpClient:
    """Owns the aiohttp session and derives per-request headers from the login session."""

    def __init__(
        self,
        session: Session,
        timeout: int = 30,
        retries: int = 3,
        min_delay: float = 0.25,
        max_delay: float = 2.0,
    ) -> None:
        self.session = session
        self.timeout = timeout
        self.retries = retries
        self.min_delay = min_delay
        self.max_delay = max_delay
        self._http: Optional[aiohttp.ClientSession] = None

    @property
    def user_agent(self) -> str:
        return self.session.user_agent or DEFAULT_USER_AGENT

    def api_headers(self, url: str) -> Dict[str, str]:
        headers = API_HEADERS_TEMPLATE.copy()
        headers["user-agent"] = self.user_agent
        cookie = build_cookie_header(self.session, url)
        if cookie:
            headers["cookie"] = cookie
        return headers

    def media_headers(self) -> Dict[str, str]:
        """Headers for playlist and segment requests (cookies scoped to the www host)."""

        headers = MEDIA_HEADERS_TEMPLATE.copy()
        headers["user-agent"] = self.user_agent
        cookie = build_cookie_header(self.session, WWW_BASE)
        if cookie:
            headers["cookie"] = cookie
        return headers

    async def get_json(self, url: str) -> FetchResult:
        """GET an API resource with the standard retry policy (5xx and network errors)."""

        return await fetch_json_with_retry(
            await self.get_session(),
            url,
            headers=self.api_headers(url),
            retries=self.retries,
            min_delay=self.min_delay,
            max_delay=self.max_delay,
            retry_on_status=retry_on_server_error,
        )

    async def get_session(self) -> aiohttp.ClientSession:
        if self._http is None or self._http.closed:
            timeout = aiohttp.ClientTimeout(total=None, sock_connect=self.timeout, sock_read=self.timeout)
            # Cookies are computed per request from the stored session, never from responses.
            self._http = aiohttp.ClientSession(timeout=timeout, cookie_jar=aiohttp.DummyCookieJar())
        return self._http

    async def close(self) -> None:
        if self._http is not None and not self._http.closed:
            await self._http.close()
        self._http = None

    async def __aenter__(self) -> "HttpClient":
        return self

    async def __aexit__(self, exc_type, exc_value, traceback) -> None:
        await self.close()
