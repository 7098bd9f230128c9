"""Tests for the retrying JSON fetcher and header building."""

from unittest.mock import AsyncMock, patch

import aiohttp
import pytest
from aiohttp import web

from nnn_downloader.utils.http_client import (
    HttpClient,
    HttpError,
    NetworkError,
    compute_backoff,
    fetch_json_with_retry,
)


def _flaky_app(statuses, body="{}"):
    """Answers with each status in turn, then 200 with ``body``."""

    state = {"hits": 0}

    async def handler(request):
        state["hits"] += 1
        if state["hits"] <= len(statuses):
            return web.Response(status=statuses[state["hits"] - 1], text="x" * 1000)
        return web.Response(text=body, content_type="application/json")

    app = web.Application()
    app.router.add_get("/resource", handler)
    return app, state


@pytest.mark.asyncio
async def test_returns_decoded_json_on_success(serve, http_session):
    app, state = _flaky_app([], body='{"course": {"id": 1}}')
    server = await serve(app)

    result = await fetch_json_with_retry(http_session, str(server.make_url("/resource")))

    assert result.ok
    assert result.value == {"course": {"id": 1}}
    assert state["hits"] == 1


@pytest.mark.asyncio
async def test_retries_server_errors_then_succeeds(serve, http_session):
    app, state = _flaky_app([503, 503], body='{"ok": true}')
    server = await serve(app)

    with patch("nnn_downloader.utils.http_client._sleep_before_retry", new=AsyncMock()) as sleep:
        result = await fetch_json_with_retry(http_session, str(server.make_url("/resource")), retries=3)

    assert result.ok
    assert result.value == {"ok": True}
    assert state["hits"] == 3
    assert sleep.await_count == 2


@pytest.mark.asyncio
async def test_client_errors_fail_immediately_with_snippet(serve, http_session):
    app, state = _flaky_app([404, 404, 404])
    server = await serve(app)
    url = str(server.make_url("/resource"))

    with patch("nnn_downloader.utils.http_client._sleep_before_retry", new=AsyncMock()) as sleep:
        result = await fetch_json_with_retry(http_session, url, retries=3)

    assert not result.ok
    assert isinstance(result.error, HttpError)
    assert result.error.status == 404
    assert result.error.url == url
    assert 0 < len(result.error.body_snippet) <= 500
    assert state["hits"] == 1
    sleep.assert_not_awaited()


@pytest.mark.asyncio
async def test_gives_up_after_retry_budget(serve, http_session):
    app, state = _flaky_app([500, 500, 500, 500, 500])
    server = await serve(app)

    with patch("nnn_downloader.utils.http_client._sleep_before_retry", new=AsyncMock()) as sleep:
        result = await fetch_json_with_retry(http_session, str(server.make_url("/resource")), retries=2)

    assert isinstance(result.error, HttpError)
    assert result.error.status == 500
    assert state["hits"] == 3
    assert sleep.await_count == 2


@pytest.mark.asyncio
async def test_undecodable_body_is_returned_as_network_error(serve, http_session):
    async def handler(request):
        return web.Response(body=b'{"a": "\xff\xfe"}', content_type="application/json", charset="utf-8")

    app = web.Application()
    app.router.add_get("/resource", handler)
    server = await serve(app)

    result = await fetch_json_with_retry(http_session, str(server.make_url("/resource")), retries=0)

    assert isinstance(result.error, NetworkError)
    assert "invalid JSON body" in result.error.message


@pytest.mark.asyncio
async def test_invalid_json_is_retried(serve, http_session):
    app, state = _flaky_app([], body="not json")
    server = await serve(app)

    with patch("nnn_downloader.utils.http_client._sleep_before_retry", new=AsyncMock()) as sleep:
        result = await fetch_json_with_retry(http_session, str(server.make_url("/resource")), retries=1)

    assert isinstance(result.error, NetworkError)
    assert state["hits"] == 2
    assert sleep.await_count == 1


@pytest.mark.asyncio
async def test_network_errors_are_retried_and_returned():
    class RefusingSession:
        calls = 0

        def request(self, method, url, headers=None):
            RefusingSession.calls += 1
            raise aiohttp.ClientConnectionError("connection refused")

    with patch("nnn_downloader.utils.http_client._sleep_before_retry", new=AsyncMock()) as sleep:
        result = await fetch_json_with_retry(RefusingSession(), "https://api.example.test/x", retries=2)

    assert isinstance(result.error, NetworkError)
    assert "connection refused" in result.error.message
    assert RefusingSession.calls == 3
    assert sleep.await_count == 2
    with pytest.raises(NetworkError):
        result.unwrap()


def test_backoff_grows_and_is_capped():
    with patch("nnn_downloader.utils.http_client.random.random", return_value=0.0):
        assert compute_backoff(0, 0.25, 2.0) == 0.25
        assert compute_backoff(1, 0.25, 2.0) == 0.5
        assert compute_backoff(5, 0.25, 2.0) == 2.0


def test_backoff_jitter_is_bounded():
    with patch("nnn_downloader.utils.http_client.random.random", return_value=0.999):
        assert compute_backoff(0, 0.1, 2.0) < 0.2
        assert compute_backoff(4, 0.25, 2.0) < 2.25


def test_api_headers_carry_cookie_and_user_agent(session):
    client = HttpClient(session)

    headers = client.api_headers("https://api.nnn.ed.nico/v2/material/courses/1")

    assert headers["cookie"] == "_session=abc"
    assert headers["user-agent"] == "pytest-agent"
    assert headers["accept"].startswith("application/json")


def test_media_headers_use_www_cookies_and_referer(session):
    headers = HttpClient(session).media_headers()

    assert headers["referer"] == "https://www.nnn.ed.nico/"
    assert headers["cookie"] == "_session=abc"
