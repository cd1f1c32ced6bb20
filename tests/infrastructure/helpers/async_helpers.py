"""Async polling helpers for reconciler and app tests."""

from __future__ import annotations

import asyncio
from typing import Callable

from herdview.view.reconciler import ReconcileState, Reconciler


async def wait_for_condition(predicate: Callable[[], bool], timeout: float = 1.0, interval: float = 0.005) -> None:
    """Poll ``predicate`` until it holds; raises asyncio.TimeoutError otherwise."""
    async def _poll() -> None:
        while not predicate():
            await asyncio.sleep(interval)

    await asyncio.wait_for(_poll(), timeout=timeout)


async def wait_until_idle(reconciler: Reconciler, scene: str, timeout: float = 1.0) -> None:
    """Poll until ``scene`` has no running pass and nothing dirty."""
    await wait_for_condition(lambda: reconciler.state(scene) is ReconcileState.IDLE, timeout=timeout)
