"""
OBS View - the view synchronization engine behind one facade.

Wires the mirror, builder, layout engine, reconciler and event ingestor to
a compositor client and a state store. Chat-facing callers only ever talk
to :class:`ObsView`.
"""

from __future__ import annotations

from typing import Dict, List, Optional

from herdview.compositor.client import CompositorClient, CompositorError
from herdview.core.config_manager import ViewSettings
from herdview.core.logging_utils import get_module_logger
from herdview.core.state_store import StateStore

from .aliases import AliasRegistry
from .ingestor import EventIngestor
from .layout import WindowLayoutEngine
from .mirror import SceneMirror, ScenesBuilder
from .models import DirtyState, WindowSlot
from .parser import Intent, parse_chat_commands
from .reconciler import PassResult, Reconciler

logger = get_module_logger("ObsView")


class ObsView:

    def __init__(
        self,
        client: CompositorClient,
        settings: ViewSettings,
        store: Optional[StateStore] = None,
    ):
        self.client = client
        self.settings = settings
        self.layout = WindowLayoutEngine(settings.window_kinds, settings.fudge_factor)
        self.mirror = SceneMirror(self.layout, AliasRegistry())
        self.builder = ScenesBuilder(client, self.mirror)
        self.reconciler = Reconciler(
            self.mirror,
            client,
            store,
            retry_delay=settings.retry_delay,
            retry_disabled=settings.retry_disabled,
            max_attempts=settings.max_attempts,
        )
        self.ingestor = EventIngestor(
            self.mirror,
            self.builder,
            client,
            reconciler=self.reconciler,
            on_resync=self._after_resync,
        )
        self._subscribed = False

    # ------------------------------------------------------------------
    # Lifecycle

    async def start(self) -> None:
        """Subscribe to notifications and load the compositor's scenes."""
        if not self._subscribed:
            self.client.subscribe(self.ingestor.submit)
            self._subscribed = True
        self.ingestor.start()
        await self.sync_from_obs()

    async def sync_from_obs(self) -> None:
        """Full resync: rebuild every scene, then reapply the stored layout."""
        await self.builder.build()
        await self._after_resync()

    async def _after_resync(self) -> None:
        await self.reconciler.restore_layout()

    async def close(self) -> None:
        await self.ingestor.stop()
        await self.reconciler.close()

    # ------------------------------------------------------------------
    # Layout changes

    @property
    def current_scene(self) -> Optional[str]:
        return self.mirror.current_scene

    def parse(self, text: str, scene: Optional[str] = None) -> List[Intent]:
        target = self.mirror.get_scene(scene)
        if target is None:
            return []
        return parse_chat_commands(text, self.mirror.get_aliases(target.name), target.slot_count)

    async def process_chat(self, text: str, scene: Optional[str] = None) -> List[Intent]:
        """Apply slot assignments from ``text`` and push them to the compositor.

        Intents are applied left to right, each seeing the previous one's
        swap. Returns the intents that were parsed.
        """
        target = self.mirror.get_scene(scene)
        if target is None:
            logger.debug("Ignoring chat command, scene %s not loaded", scene or "(current)")
            return []

        intents = self.parse(text, target.name)
        changed = False
        for intent in intents:
            if self.reconciler.set_window(target.name, intent.index, intent.source_id) is not None:
                changed = True
        if changed and target.dirty:
            await self.reconciler.update_obs(target.name)
        return intents

    def set_window(self, index: int, source_id: str, scene: Optional[str] = None) -> Optional[DirtyState]:
        target = self.mirror.get_scene(scene)
        if target is None:
            return None
        return self.reconciler.set_window(target.name, index, source_id)

    async def update_obs(self, scene: Optional[str] = None) -> Optional[PassResult]:
        target = self.mirror.get_scene(scene)
        if target is None:
            return None
        return await self.reconciler.update_obs(target.name)

    async def set_window_geometry(
        self,
        index: int,
        *,
        x: Optional[float] = None,
        y: Optional[float] = None,
        width: Optional[float] = None,
        height: Optional[float] = None,
        scene: Optional[str] = None,
    ) -> Optional[DirtyState]:
        target = self.mirror.get_scene(scene)
        if target is None:
            return None
        dirty = self.reconciler.set_window_geometry(
            target.name, index, x=x, y=y, width=width, height=height
        )
        if dirty:
            await self.reconciler.update_obs(target.name)
        return dirty

    async def reset_window(self, index: int, scene: Optional[str] = None) -> Optional[DirtyState]:
        target = self.mirror.get_scene(scene)
        if target is None:
            return None
        dirty = self.reconciler.reset_window(target.name, index)
        if dirty:
            await self.reconciler.update_obs(target.name)
        return dirty

    def get_window(self, index: int, scene: Optional[str] = None) -> Optional[WindowSlot]:
        windows = self.mirror.get_windows(scene)
        return windows[index] if 0 <= index < len(windows) else None

    # ------------------------------------------------------------------
    # Scenes

    def get_scenes(self) -> List[str]:
        return self.mirror.get_scene_aliases()

    async def set_current_scene(self, alias: str) -> bool:
        """Ask the compositor to switch to the scene named by ``alias``."""
        target = self.mirror.resolve_scene(alias)
        if target is None:
            logger.debug("No scene matches %r", alias)
            return False
        try:
            await self.client.set_current_scene(target.name)
        except CompositorError as e:
            logger.error("Switching to scene %s failed: %s", target.name, e)
            return False
        return True

    # ------------------------------------------------------------------
    # Read-only accessors

    def get_sources(self, eligible_only: bool = False, scene: Optional[str] = None) -> List[str]:
        kinds = self.layout.window_kinds if eligible_only else None
        return self.mirror.get_sources(kinds, scene)

    def get_windows(self, scene: Optional[str] = None) -> List[WindowSlot]:
        return self.mirror.get_windows(scene)

    def get_cams(self, scene: Optional[str] = None) -> List[Optional[str]]:
        return self.mirror.get_cams(scene)

    def in_view(self, source_id: str, scene: Optional[str] = None) -> bool:
        return self.mirror.in_view(source_id, scene)

    def has_source_alias(self, alias: str, scene: Optional[str] = None) -> bool:
        return self.mirror.has_source_alias(alias, scene)

    def get_aliases(self, scene: Optional[str] = None) -> Dict[str, str]:
        return self.mirror.get_aliases(scene)

    def add_source_alias(self, alias: str, source_id: str, scene: Optional[str] = None) -> bool:
        """Register an extra alias for a source of ``scene``."""
        target = self.mirror.get_scene(scene)
        if target is None or source_id not in target.sources:
            return False
        return bool(self.mirror.aliases.add_source_alias(alias, source_id, target.name))


__all__ = ["ObsView"]
