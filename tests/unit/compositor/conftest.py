"""Fixtures for compositor client tests: a live mock obs-websocket server."""

import pytest_asyncio

from herdview.compositor.client import CompositorError
from herdview.compositor.obs_websocket import ObsWebSocketClient
from herdview.compositor.retry_policy import RetryPolicy
from tests.infrastructure.mocks.obs_server import MockObsServer


@pytest_asyncio.fixture
async def obs_server():
    server = MockObsServer()
    await server.start()
    yield server
    await server.close()


@pytest_asyncio.fixture
async def obs_client(obs_server):
    client = ObsWebSocketClient(
        obs_server.url,
        request_timeout=0.5,
        retry_policy=RetryPolicy(max_attempts=1, retry_on=(CompositorError,)),
    )
    yield client
    await client.disconnect()
