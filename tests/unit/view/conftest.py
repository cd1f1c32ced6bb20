"""Fixtures for view engine tests: a mirror loaded from the fake compositor."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest
import pytest_asyncio

from herdview.core.state_store import StateStore
from herdview.view.aliases import AliasRegistry
from herdview.view.layout import WindowLayoutEngine
from herdview.view.mirror import SceneMirror, ScenesBuilder
from herdview.view.reconciler import Reconciler


@pytest.fixture
def mirror(settings) -> SceneMirror:
    return SceneMirror(WindowLayoutEngine(settings.window_kinds, settings.fudge_factor), AliasRegistry())


@pytest_asyncio.fixture
async def built(mirror, compositor) -> SceneMirror:
    """Mirror after a full resync; the fake's call log starts empty."""
    await ScenesBuilder(compositor, mirror).build()
    compositor.reset_calls()
    return mirror


@pytest.fixture
def store() -> AsyncMock:
    store = AsyncMock(spec=StateStore)
    store.fetch.return_value = None
    store.store.return_value = True
    return store


@pytest_asyncio.fixture
async def reconciler(built, compositor, store):
    reconciler = Reconciler(built, compositor, store, retry_disabled=True)
    yield reconciler
    await reconciler.close()
