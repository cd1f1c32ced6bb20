"""
Event Ingestor - keeps the mirror in step with compositor notifications.

The compositor client hands raw notifications to :meth:`EventIngestor.submit`,
which only parses and enqueues. A single consumer task applies them one at
a time in arrival order, so a rename and a later transform change for the
renamed source can never be applied out of order, even when a handler has
to await a fetch.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional, Type

from herdview.compositor.client import CompositorClient, CompositorError
from herdview.compositor.events import (
    CompositorEvent,
    CurrentSceneChanged,
    SceneListChanged,
    SceneRemoved,
    SceneRenamed,
    SourceCreated,
    SourceRemoved,
    SourceRenamed,
    SourceTransformChanged,
    SourceVisibilityChanged,
    parse_event,
)
from herdview.core.asyncio_utils import create_logged_task
from herdview.core.logging_utils import get_module_logger

from .mirror import SceneMirror, ScenesBuilder
from .models import Source, WindowSlot
from .reconciler import Reconciler

logger = get_module_logger("EventIngestor")

Handler = Callable[[Any], Awaitable[None]]


class EventIngestor:

    def __init__(
        self,
        mirror: SceneMirror,
        builder: ScenesBuilder,
        client: CompositorClient,
        reconciler: Optional[Reconciler] = None,
        on_resync: Optional[Callable[[], Awaitable[None]]] = None,
    ):
        self.mirror = mirror
        self.builder = builder
        self.client = client
        self.reconciler = reconciler
        self.on_resync = on_resync

        self._queue: "asyncio.Queue[CompositorEvent]" = asyncio.Queue()
        self._consumer: Optional[asyncio.Task] = None
        self._handlers: Dict[Type[Any], Handler] = {
            CurrentSceneChanged: self._on_scene_switched,
            SourceCreated: self._on_source_created,
            SourceRemoved: self._on_source_removed,
            SourceRenamed: self._on_source_renamed,
            SourceVisibilityChanged: self._on_visibility_changed,
            SourceTransformChanged: self._on_transform_changed,
            SceneListChanged: self._on_scene_list_changed,
            SceneRemoved: self._on_scene_removed,
            SceneRenamed: self._on_scene_renamed,
        }

    # ------------------------------------------------------------------
    # Intake

    async def submit(self, event_type: str, data: Mapping[str, Any]) -> None:
        """Compositor subscription callback: parse and enqueue, never block."""
        event = parse_event(event_type, data)
        if event is not None:
            self.enqueue(event)

    def enqueue(self, event: CompositorEvent) -> None:
        self._queue.put_nowait(event)

    def start(self) -> None:
        if self._consumer is None or self._consumer.done():
            self._consumer = create_logged_task(
                self._consume(), logger=logger, context="event-ingestor"
            )

    async def stop(self) -> None:
        if self._consumer is None:
            return
        self._consumer.cancel()
        try:
            await self._consumer
        except asyncio.CancelledError:
            pass
        self._consumer = None

    async def drain(self) -> None:
        """Wait until every queued notification has been applied."""
        await self._queue.join()

    async def _consume(self) -> None:
        while True:
            event = await self._queue.get()
            try:
                await self.handle(event)
            except Exception:
                logger.exception("Failed to apply %s", type(event).__name__)
            finally:
                self._queue.task_done()

    async def handle(self, event: CompositorEvent) -> None:
        handler = self._handlers.get(type(event))
        if handler is None:
            logger.debug("No handler for %s", type(event).__name__)
            return
        await handler(event)

    # ------------------------------------------------------------------
    # Handlers

    async def _on_scene_switched(self, event: CurrentSceneChanged) -> None:
        if event.scene not in self.mirror.scenes:
            logger.warning("Switched to unknown scene %s", event.scene)
        self.mirror.current_scene = event.scene
        logger.info("Current scene is now %s", event.scene)

    async def _on_source_created(self, event: SourceCreated) -> None:
        if event.scene not in self.mirror.scenes:
            logger.warning("Source %s created in unknown scene %s", event.source, event.scene)
            return
        try:
            item = await self.client.get_scene_item(event.scene, event.source)
        except CompositorError as e:
            logger.error("Could not fetch new source %s in %s: %s", event.source, event.scene, e)
            return
        if item is None:
            logger.warning("New source %s vanished from %s before it was fetched", event.source, event.scene)
            return
        if self.mirror.add_source(event.scene, Source.from_item(item)):
            logger.debug("%s: added source %s", event.scene, event.source)

    async def _on_source_removed(self, event: SourceRemoved) -> None:
        if self.mirror.remove_source(event.scene, event.source) is None:
            logger.warning("Removed source %s was not known in %s", event.source, event.scene)
            return
        logger.debug("%s: removed source %s", event.scene, event.source)

    async def _on_source_renamed(self, event: SourceRenamed) -> None:
        touched = self.mirror.rename_source(event.old_name, event.new_name)
        if not touched:
            logger.warning("Renamed source %s is not in any known scene", event.old_name)
            return
        if self.reconciler is not None:
            self.reconciler.rename_source(event.old_name, event.new_name)
        logger.info("Source %s renamed to %s in %s", event.old_name, event.new_name, ", ".join(touched))

    async def _on_visibility_changed(self, event: SourceVisibilityChanged) -> None:
        source = self._lookup_item(event.scene, event.item_id)
        if source is not None:
            source.enabled = event.enabled

    async def _on_transform_changed(self, event: SourceTransformChanged) -> None:
        source = self._lookup_item(event.scene, event.item_id)
        if source is None:
            return
        source.transform = event.transform

        scene = self.mirror.scenes[event.scene]
        index = scene.slot_of(source.name)
        # a dirty occupant is about to be moved; its old spot is not the slot
        if index is None or source.name in scene.dirty.cams or index in scene.dirty.windows:
            return
        scene.windows[index] = WindowSlot.from_transform(event.transform)

    async def _on_scene_list_changed(self, event: SceneListChanged) -> None:
        logger.info("Scene list changed, resyncing %d scenes", len(event.scenes))
        try:
            await self.builder.build()
        except CompositorError as e:
            logger.error("Resync after scene list change failed: %s", e)
            return
        if self.on_resync is not None:
            await self.on_resync()

    async def _on_scene_removed(self, event: SceneRemoved) -> None:
        if self.mirror.remove_scene(event.scene) is None:
            logger.warning("Removed scene %s was not known", event.scene)
            return
        if self.reconciler is not None:
            self.reconciler.forget_scene(event.scene)
        logger.info("Scene %s removed", event.scene)

    async def _on_scene_renamed(self, event: SceneRenamed) -> None:
        scene = self.mirror.rename_scene(event.old_name, event.new_name)
        if scene is None:
            logger.warning("Renamed scene %s was not known", event.old_name)
            return
        logger.info("Scene %s renamed to %s", event.old_name, event.new_name)
        if self.reconciler is not None:
            self.reconciler.forget_scene(event.old_name)
            if scene.dirty:
                self.reconciler.schedule(event.new_name)

    def _lookup_item(self, scene_name: str, item_id: int) -> Optional[Source]:
        scene = self.mirror.scenes.get(scene_name)
        if scene is None:
            logger.warning("Notification for unknown scene %s", scene_name)
            return None
        source = scene.source_by_item(item_id)
        if source is None:
            logger.warning("Notification for unknown item %d in %s", item_id, scene_name)
        return source


__all__ = ["EventIngestor"]
