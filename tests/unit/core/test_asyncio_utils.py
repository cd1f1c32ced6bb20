"""Unit tests for background task helpers."""

import asyncio
import logging

import pytest

from herdview.core.asyncio_utils import cancel_tasks, create_logged_task


class TestCreateLoggedTask:

    @pytest.mark.asyncio
    async def test_failure_is_logged(self, caplog):
        caplog.set_level(logging.ERROR, logger="herdview")

        async def boom():
            raise RuntimeError("kaput")

        task = create_logged_task(boom(), context="reconcile:Main")
        with pytest.raises(RuntimeError):
            await task

        assert task.get_name() == "reconcile:Main"
        assert any("reconcile:Main" in r.getMessage() for r in caplog.records)

    @pytest.mark.asyncio
    async def test_pending_set_tracks_running_tasks(self):
        pending = set()
        gate = asyncio.Event()

        task = create_logged_task(gate.wait(), pending=pending)
        assert task in pending

        gate.set()
        await task
        await asyncio.sleep(0)
        assert task not in pending


class TestCancelTasks:

    @pytest.mark.asyncio
    async def test_cancels_and_clears(self):
        pending = set()
        task = create_logged_task(asyncio.sleep(10), pending=pending)

        await cancel_tasks(pending)

        assert task.cancelled()
        assert pending == set()
