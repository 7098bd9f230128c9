"""Shared fixtures for downloader tests."""

import aiohttp
import pytest
import pytest_asyncio
from aiohttp.test_utils import TestServer

from nnn_downloader.models import Session, StoredCookie


@pytest_asyncio.fixture
async def serve():
    """Start an in-process aiohttp application and return its TestServer."""

    servers = []

    async def _serve(app):
        server = TestServer(app)
        await server.start_server()
        servers.append(server)
        return server

    yield _serve

    for server in servers:
        await server.close()


@pytest_asyncio.fixture
async def http_session():
    async with aiohttp.ClientSession() as session:
        yield session


@pytest.fixture
def session():
    return Session(
        saved_at="2024-01-01T00:00:00Z",
        user_agent="pytest-agent",
        cookies=[
            StoredCookie(name="_session", value="abc", domain=".nnn.ed.nico", path="/"),
        ],
    )
