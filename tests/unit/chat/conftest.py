"""Fixtures for chat tests: a started view on the fake compositor."""

import pytest
import pytest_asyncio

from herdview.chat.dispatcher import ChatDispatcher
from herdview.view import ObsView
from tests.infrastructure.mocks.chat_mocks import RecordingTransport


@pytest_asyncio.fixture
async def view(compositor, settings):
    view = ObsView(compositor, settings)
    await view.start()
    compositor.reset_calls()
    yield view
    await view.close()


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def make_dispatcher(view, transport, settings):
    def _make(**overrides) -> ChatDispatcher:
        return ChatDispatcher(view, transport, settings.with_overrides(**overrides))
    return _make


@pytest.fixture
def dispatcher(make_dispatcher) -> ChatDispatcher:
    return make_dispatcher()
