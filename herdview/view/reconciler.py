"""
Reconciler - pushes the mirror's desired layout to the compositor.

Each scene moves through::

    IDLE --set_window--> DIRTY --schedule--> RECONCILING --> IDLE | DIRTY

Passes are serialized per scene by a :class:`_SceneJob`: one task at most,
plus a ``pending`` flag that asks the running task for one more pass. A
failed remote call leaves its id dirty; when a pass ends with work left
over, a single retry timer is armed ``retry_delay`` seconds out. Arming a
new one replaces the old, so timers never pile up.
"""

from __future__ import annotations

import asyncio
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Set, Tuple

from herdview.compositor.client import CompositorClient, CompositorError, ItemTransform
from herdview.core.asyncio_utils import cancel_tasks, create_logged_task
from herdview.core.logging_utils import get_module_logger
from herdview.core.state_store import StateStore

from .mirror import SceneMirror
from .models import DirtyState, Scene, WindowSlot, fit_to_slot

logger = get_module_logger("Reconciler")

LAYOUT_KEY = "view.windows"
DEFAULT_RETRY_DELAY = 5.0
DEFAULT_MAX_ATTEMPTS = 10


class ReconcileState(Enum):
    IDLE = "idle"
    DIRTY = "dirty"
    RECONCILING = "reconciling"


@dataclass
class PassResult:
    """What one reconciliation pass did for a scene."""
    scene: str
    shown: List[str] = field(default_factory=list)
    hidden: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)
    abandoned: List[str] = field(default_factory=list)
    calls: int = 0
    remaining: DirtyState = field(default_factory=DirtyState)

    @property
    def complete(self) -> bool:
        return not self.remaining


@dataclass
class _SceneJob:
    task: Optional[asyncio.Task] = None
    pending: bool = False
    retry: Optional[asyncio.TimerHandle] = None

    @property
    def running(self) -> bool:
        return self.task is not None and not self.task.done()


class Reconciler:

    def __init__(
        self,
        mirror: SceneMirror,
        client: CompositorClient,
        store: Optional[StateStore] = None,
        *,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        retry_disabled: bool = False,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    ):
        self.mirror = mirror
        self.client = client
        self.store = store
        self.retry_delay = retry_delay
        self.retry_disabled = retry_disabled
        self.max_attempts = max_attempts

        self._jobs: Dict[str, _SceneJob] = {}
        self._tasks: Set[asyncio.Task] = set()
        self._failures: Dict[Tuple[str, str], int] = {}

    # ------------------------------------------------------------------
    # Desired-state edits (synchronous, never touch the compositor)

    def set_window(self, scene_name: str, index: int, source_id: str) -> Optional[DirtyState]:
        """Put ``source_id`` in slot ``index``, swapping with its old slot.

        Returns the scene's dirty state afterwards, or None when the scene,
        slot or source is unknown (a silent no-op).
        """
        scene = self.mirror.get_scene(scene_name)
        if scene is None or not 0 <= index < scene.slot_count:
            logger.debug("set_window(%s, %d): no such scene or slot", scene_name, index)
            return None

        source = scene.sources.get(source_id)
        if source is None or not self.mirror.layout.accepts_kind(source.kind):
            logger.debug("set_window(%s, %d): %s is not a window source", scene_name, index, source_id)
            return None

        current = scene.slot_of(source_id)
        if current == index:
            return scene.dirty.copy()

        displaced = scene.cams[index]
        scene.dirty.cams.add(source_id)
        if displaced is not None:
            scene.dirty.cams.add(displaced)
        if current is not None:
            scene.cams[current] = displaced
        scene.cams[index] = source_id

        logger.debug("%s: cam%d <- %s (displaced %s to %s)", scene_name, index, source_id,
                     displaced, f"cam{current}" if current is not None else "hidden")
        return scene.dirty.copy()

    def set_window_geometry(
        self,
        scene_name: str,
        index: int,
        *,
        x: Optional[float] = None,
        y: Optional[float] = None,
        width: Optional[float] = None,
        height: Optional[float] = None,
    ) -> Optional[DirtyState]:
        scene = self.mirror.get_scene(scene_name)
        if scene is None or not 0 <= index < scene.slot_count:
            return None

        changes = {"x": x, "y": y, "width": width, "height": height}
        if any(value is not None and not math.isfinite(value) for value in changes.values()):
            logger.debug("%s: ignoring non-finite geometry for cam%d", scene_name, index)
            return None
        if width is not None and width <= 0 or height is not None and height <= 0:
            logger.debug("%s: ignoring non-positive size for cam%d", scene_name, index)
            return None

        slot = scene.windows[index].with_changes(**changes)
        return self._replace_slot(scene, index, slot)

    def reset_window(self, scene_name: str, index: int) -> Optional[DirtyState]:
        """Restore a slot to its geometry as of the last full resync."""
        scene = self.mirror.get_scene(scene_name)
        if scene is None or not 0 <= index < len(scene.home_windows):
            return None
        return self._replace_slot(scene, index, scene.home_windows[index])

    @staticmethod
    def _replace_slot(scene: Scene, index: int, slot: WindowSlot) -> DirtyState:
        if scene.windows[index] != slot:
            scene.windows[index] = slot
            scene.dirty.windows.add(index)
        return scene.dirty.copy()

    def state(self, scene_name: str) -> ReconcileState:
        job = self._jobs.get(scene_name)
        if job is not None and job.running:
            return ReconcileState.RECONCILING
        scene = self.mirror.get_scene(scene_name)
        if scene is not None and scene.dirty:
            return ReconcileState.DIRTY
        return ReconcileState.IDLE

    # ------------------------------------------------------------------
    # Pass scheduling

    def schedule(self, scene_name: str) -> asyncio.Task:
        """Request a pass for ``scene_name`` and return the task that will run it."""
        job = self._jobs.setdefault(scene_name, _SceneJob())
        job.pending = True
        if job.retry is not None:
            job.retry.cancel()
            job.retry = None

        if not job.running:
            job.task = create_logged_task(
                self._drain(scene_name, job),
                logger=logger,
                context=f"reconcile:{scene_name}",
                pending=self._tasks,
            )
        return job.task

    async def update_obs(self, scene_name: str) -> PassResult:
        """Run (or join) a reconciliation pass for ``scene_name`` and wait for it."""
        return await asyncio.shield(self.schedule(scene_name))

    async def _drain(self, scene_name: str, job: _SceneJob) -> PassResult:
        result = PassResult(scene=scene_name)
        while job.pending:
            job.pending = False
            result = await self._reconcile_pass(scene_name)

        if result.remaining and not self.retry_disabled and scene_name in self.mirror.scenes:
            logger.info("%s: %d item(s) still dirty, retrying in %.1fs",
                        scene_name, len(result.remaining.cams) + len(result.remaining.windows),
                        self.retry_delay)
            job.retry = asyncio.get_running_loop().call_later(
                self.retry_delay, self._retry, scene_name
            )
        return result

    def _retry(self, scene_name: str) -> None:
        job = self._jobs.get(scene_name)
        if job is not None:
            job.retry = None
        if scene_name in self.mirror.scenes:
            self.schedule(scene_name)

    def rename_source(self, old_name: str, new_name: str) -> None:
        """Carry failure counts over to a source's new name."""
        for scene_name, source_id in [k for k in self._failures if k[1] == old_name]:
            self._failures[(scene_name, new_name)] = self._failures.pop((scene_name, source_id))

    def forget_scene(self, scene_name: str) -> None:
        """Drop retry bookkeeping for a scene that no longer exists."""
        job = self._jobs.pop(scene_name, None)
        if job is not None and job.retry is not None:
            job.retry.cancel()
        for key in [k for k in self._failures if k[0] == scene_name]:
            del self._failures[key]

    async def close(self) -> None:
        for job in self._jobs.values():
            if job.retry is not None:
                job.retry.cancel()
                job.retry = None
        await cancel_tasks(self._tasks)
        self._jobs.clear()

    # ------------------------------------------------------------------
    # The pass itself

    async def _reconcile_pass(self, scene_name: str) -> PassResult:
        result = PassResult(scene=scene_name)
        scene = self.mirror.get_scene(scene_name)
        if scene is None:
            logger.warning("Reconcile requested for unknown scene %s", scene_name)
            return result

        self._refill_vacated_slots(scene)
        if not scene.dirty:
            await self._persist()
            return result

        work = scene.dirty.copy()
        logger.debug("%s: pass over cams=%s windows=%s", scene_name, sorted(work.cams), sorted(work.windows))

        targets: Dict[str, int] = {}
        for index, cam in enumerate(scene.cams):
            if cam is not None and (cam in work.cams or index in work.windows):
                targets[cam] = index
        # slots left empty have nothing to move
        scene.dirty.windows.difference_update(
            i for i in work.windows if i >= scene.slot_count or scene.cams[i] is None
        )

        for source_id in targets:
            # earlier awaits may have moved or dropped it
            index = scene.slot_of(source_id)
            if index is None or source_id not in scene.sources:
                continue
            await self._show(scene, source_id, index, result)

        for source_id in sorted(work.cams):
            if source_id not in targets and source_id not in scene.cams:
                await self._hide(scene, source_id, result)

        result.remaining = scene.dirty.copy()
        # persisted even when some calls failed
        await self._persist()

        logger.info(
            "%s: pass done, shown=%d hidden=%d failed=%d remaining=%d",
            scene_name, len(result.shown), len(result.hidden), len(result.failed),
            len(result.remaining.cams) + len(result.remaining.windows),
        )
        return result

    def _refill_vacated_slots(self, scene: Scene) -> None:
        """Hand slots whose occupant left the scene to the next best source."""
        for index, cam in enumerate(scene.cams):
            if cam is None or cam in scene.sources:
                continue
            scene.dirty.cams.discard(cam)
            replacement = next(
                (s.name for s in self.mirror.layout.rank(scene.sources.values()) if s.name not in scene.cams),
                None,
            )
            scene.cams[index] = replacement
            if replacement is not None:
                scene.dirty.cams.add(replacement)
            logger.info("%s: %s left cam%d, now %s", scene.name, cam, index, replacement or "empty")

    async def _show(self, scene: Scene, source_id: str, index: int, result: PassResult) -> None:
        source = scene.sources[source_id]
        slot = scene.windows[index]
        try:
            result.calls += 1
            await self.client.set_item_enabled(scene.name, source.item_id, True)
            source.enabled = True
            result.calls += 1
            native = await self.client.get_item_transform(scene.name, source.item_id)
            update = fit_to_slot(slot, native)
            result.calls += 1
            await self.client.set_item_transform(scene.name, source.item_id, update)
        except CompositorError as e:
            self._record_failure(scene, source_id, e, result)
            return

        source.transform = ItemTransform(
            x=update.x,
            y=update.y,
            width=slot.width,
            height=slot.height,
            source_width=native.source_width,
            source_height=native.source_height,
            scale_x=update.scale_x,
            scale_y=update.scale_y,
        )
        self._failures.pop((scene.name, source_id), None)
        result.shown.append(source_id)

        # only clear what this write actually confirmed
        if scene.slot_of(source_id) == index and scene.windows[index] == slot:
            scene.dirty.cams.discard(source_id)
            scene.dirty.windows.discard(index)

    async def _hide(self, scene: Scene, source_id: str, result: PassResult) -> None:
        source = scene.sources.get(source_id)
        if source is None:
            # gone from the compositor; there is nothing left to hide
            scene.dirty.cams.discard(source_id)
            result.abandoned.append(source_id)
            return

        try:
            result.calls += 1
            await self.client.set_item_enabled(scene.name, source.item_id, False)
        except CompositorError as e:
            self._record_failure(scene, source_id, e, result)
            return

        source.enabled = False
        self._failures.pop((scene.name, source_id), None)
        result.hidden.append(source_id)
        if source_id not in scene.cams:
            scene.dirty.cams.discard(source_id)

    def _record_failure(self, scene: Scene, source_id: str, error: CompositorError, result: PassResult) -> None:
        key = (scene.name, source_id)
        attempts = self._failures.get(key, 0) + 1
        self._failures[key] = attempts
        result.failed.append(source_id)

        if self.max_attempts and attempts >= self.max_attempts:
            logger.error("%s: giving up on %s after %d failed attempts: %s",
                         scene.name, source_id, attempts, error)
            del self._failures[key]
            scene.dirty.cams.discard(source_id)
            index = scene.slot_of(source_id)
            if index is not None:
                scene.dirty.windows.discard(index)
            result.abandoned.append(source_id)
            return

        logger.error("%s: update of %s failed (attempt %d): %s", scene.name, source_id, attempts, error)

    # ------------------------------------------------------------------
    # Persistence

    def snapshot(self) -> Dict[str, List[Dict[str, Any]]]:
        return {name: scene.snapshot() for name, scene in self.mirror.scenes.items()}

    async def _persist(self) -> None:
        if self.store is None:
            return
        if not await self.store.store(LAYOUT_KEY, self.snapshot()):
            logger.error("Could not persist window layout")

    async def restore_layout(self) -> List[str]:
        """Reapply the stored layout to the freshly built mirror.

        Returns the scenes that picked up stored state; a pass is scheduled
        for each of them.
        """
        if self.store is None:
            return []
        stored = await self.store.fetch(LAYOUT_KEY)
        if not isinstance(stored, Mapping):
            if stored is not None:
                logger.warning("Ignoring malformed stored layout: %r", type(stored).__name__)
            return []

        restored: List[str] = []
        for scene_name, entries in stored.items():
            scene = self.mirror.get_scene(scene_name)
            if scene is None or not isinstance(entries, list):
                continue
            for index, entry in enumerate(entries[:scene.slot_count]):
                self._restore_slot(scene, index, entry)
            if scene.dirty:
                restored.append(scene_name)
                self.schedule(scene_name)

        if restored:
            logger.info("Restored stored layout for %s", ", ".join(restored))
        return restored

    def _restore_slot(self, scene: Scene, index: int, entry: Any) -> None:
        if not isinstance(entry, Mapping):
            return
        try:
            slot = WindowSlot.from_dict(entry)
        except (KeyError, TypeError, ValueError):
            logger.warning("%s: skipping malformed stored cam%d: %r", scene.name, index, entry)
            return

        values = (slot.x, slot.y, slot.width, slot.height)
        if all(math.isfinite(v) for v in values) and slot.width > 0 and slot.height > 0:
            self._replace_slot(scene, index, slot)

        source_id = entry.get("source")
        if isinstance(source_id, str) and source_id in scene.sources:
            self.set_window(scene.name, index, source_id)


__all__ = ["LAYOUT_KEY", "PassResult", "ReconcileState", "Reconciler"]
