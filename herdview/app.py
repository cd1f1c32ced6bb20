"""
HerdView application - compositor connection, view engine and chat loop.

The compositor connection is kept alive for the life of the process: when
it drops, the app reconnects (with the client's own backoff) and resyncs
the whole mirror before carrying on.
"""

from __future__ import annotations

import asyncio
import signal
from typing import Optional, Set

from herdview.chat.dispatcher import ChatDispatcher
from herdview.chat.transport import ChatTransport
from herdview.compositor.client import CompositorClient, CompositorError
from herdview.core.asyncio_utils import cancel_tasks, create_logged_task
from herdview.core.config_manager import ViewSettings
from herdview.core.logging_utils import get_module_logger
from herdview.core.state_store import StateStore
from herdview.view.obs_view import ObsView

logger = get_module_logger("HerdViewApp")

RECONNECT_DELAY = 5.0


class HerdViewApp:

    def __init__(
        self,
        settings: ViewSettings,
        client: CompositorClient,
        transport: ChatTransport,
        store: Optional[StateStore] = None,
        reconnect_delay: float = RECONNECT_DELAY,
    ):
        self.settings = settings
        self.client = client
        self.transport = transport
        self.store = store
        self.reconnect_delay = reconnect_delay

        self.view = ObsView(client, settings, store)
        self.dispatcher = ChatDispatcher(self.view, transport, settings)

        self._stop = asyncio.Event()
        self._tasks: Set[asyncio.Task] = set()

    def request_stop(self, reason: str = "requested") -> None:
        if not self._stop.is_set():
            logger.info("Stopping (%s)", reason)
            self._stop.set()

    def _install_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, self.request_stop, sig.name)
            except NotImplementedError:
                pass  # Windows doesn't support add_signal_handler

    async def _chat_loop(self) -> None:
        async for message in self.transport.messages():
            try:
                await self.dispatcher.handle(message)
            except Exception:
                logger.exception("Failed to handle chat message from %s: %r", message.sender, message.text)
        self.request_stop("chat input closed")

    async def _wait_for_stop_or_disconnect(self) -> None:
        closed = asyncio.ensure_future(self.client.wait_closed())
        stopped = asyncio.ensure_future(self._stop.wait())
        try:
            await asyncio.wait({closed, stopped}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for future in (closed, stopped):
                future.cancel()

    async def _sleep_unless_stopped(self, delay: float) -> None:
        try:
            await asyncio.wait_for(self._stop.wait(), timeout=delay)
        except asyncio.TimeoutError:
            pass

    async def run(self) -> None:
        self._install_signal_handlers()
        create_logged_task(self._chat_loop(), logger=logger, context="chat-loop", pending=self._tasks)

        try:
            while not self._stop.is_set():
                try:
                    await self.client.connect()
                    await self.view.start()
                except CompositorError as e:
                    logger.error("Compositor unavailable: %s", e)
                    await self._sleep_unless_stopped(self.reconnect_delay)
                    continue

                await self._wait_for_stop_or_disconnect()
                if not self._stop.is_set():
                    logger.warning("Compositor connection lost, reconnecting")
        finally:
            await self.shutdown()

    async def shutdown(self) -> None:
        await cancel_tasks(self._tasks)
        await self.view.close()
        await self.client.disconnect()
        await self.transport.close()
        if self.store is not None:
            await self.store.close()
        logger.info("Shutdown complete")


__all__ = ["HerdViewApp"]
