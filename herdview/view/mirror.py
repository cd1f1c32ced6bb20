"""
Scene Mirror - local copy of every compositor scene.

:class:`ScenesBuilder` is the only path that replaces a scene's source map
wholesale. Everything else (chat commands through the reconciler, change
notifications through the ingestor) patches the scenes it holds in place.
"""

from __future__ import annotations

from typing import Collection, Dict, Iterable, List, Optional

from herdview.compositor.client import CompositorClient, SceneItem
from herdview.core.logging_utils import get_module_logger

from .aliases import AliasRegistry
from .layout import WindowLayoutEngine
from .models import DirtyState, Scene, Source, WindowSlot

logger = get_module_logger("SceneMirror")


class SceneMirror:

    def __init__(self, layout: WindowLayoutEngine, aliases: Optional[AliasRegistry] = None):
        self.layout = layout
        self.aliases = aliases or AliasRegistry()
        self.scenes: Dict[str, Scene] = {}
        self.current_scene: Optional[str] = None

    # ------------------------------------------------------------------
    # Construction

    def build_scene(self, name: str, items: Iterable[SceneItem]) -> Scene:
        sources: Dict[str, Source] = {}
        for item in items:
            if item.source_name in sources:
                logger.debug("Scene %s lists %s twice, keeping item %d",
                             name, item.source_name, sources[item.source_name].item_id)
                continue
            sources[item.source_name] = Source.from_item(item)

        windows, cams = self.layout.compute(sources.values())
        return Scene(
            name=name,
            sources=sources,
            windows=windows,
            cams=cams,
            dirty=DirtyState(),
            home_windows=list(windows),
        )

    def replace_all(self, scenes: Dict[str, Scene], current: Optional[str]) -> None:
        self.aliases.clear()
        self.scenes = dict(scenes)
        for scene in self.scenes.values():
            self.aliases.add_scene_alias(scene.name, scene.name)
            for source_name in scene.sources:
                self.aliases.add_source_alias(source_name, source_name, scene.name)
        self.current_scene = current

    # ------------------------------------------------------------------
    # Incremental patches

    def add_source(self, scene_name: str, source: Source) -> bool:
        scene = self.scenes.get(scene_name)
        if scene is None:
            return False
        scene.sources[source.name] = source
        self.aliases.add_source_alias(source.name, source.name, scene_name)
        return True

    def remove_source(self, scene_name: str, source_name: str) -> Optional[Source]:
        """Forget a source. Any slot it occupies is left for the next pass."""
        scene = self.scenes.get(scene_name)
        if scene is None:
            return None
        self.aliases.remove_aliases_for_source(source_name, scene_name)
        return scene.sources.pop(source_name, None)

    def rename_source(self, old_name: str, new_name: str) -> List[str]:
        """Apply a compositor-wide source rename to every scene holding it."""
        touched: List[str] = []
        for scene in self.scenes.values():
            source = scene.sources.pop(old_name, None)
            if source is None:
                continue
            source.name = new_name
            scene.sources[new_name] = source
            self.aliases.remove_aliases_for_source(old_name, scene.name)
            self.aliases.add_source_alias(new_name, new_name, scene.name)
            scene.cams = [new_name if cam == old_name else cam for cam in scene.cams]
            scene.dirty.rename(old_name, new_name)
            touched.append(scene.name)
        return touched

    def remove_scene(self, name: str) -> Optional[Scene]:
        scene = self.scenes.pop(name, None)
        if scene is None:
            return None
        self.aliases.remove_aliases_for_scene(name)
        if self.current_scene == name:
            self.current_scene = None
        return scene

    def rename_scene(self, old_name: str, new_name: str) -> Optional[Scene]:
        scene = self.scenes.pop(old_name, None)
        if scene is None:
            return None
        scene.name = new_name
        self.scenes[new_name] = scene
        self.aliases.rename_scene_scope(old_name, new_name)
        self.aliases.remove_aliases_for_scene(old_name)
        self.aliases.add_scene_alias(new_name, new_name)
        if self.current_scene == old_name:
            self.current_scene = new_name
        return scene

    # ------------------------------------------------------------------
    # Accessors

    def get_scene(self, name: Optional[str] = None) -> Optional[Scene]:
        return self.scenes.get(name if name is not None else self.current_scene or "")

    def resolve_scene(self, name: Optional[str]) -> Optional[Scene]:
        """Look a scene up by its name or any of its aliases."""
        if name is None:
            return self.get_scene()
        scene = self.scenes.get(name)
        if scene is None:
            target = self.aliases.resolve_scene(name)
            scene = self.scenes.get(target) if target else None
        return scene

    def get_sources(self, kind_filter: Optional[Collection[str]] = None, scene: Optional[str] = None) -> List[str]:
        """Lowercased source names of a scene.

        With ``kind_filter`` only visible sources of those kinds are listed,
        otherwise all of them.
        """
        target = self.get_scene(scene)
        if target is None:
            return []
        return sorted(
            source.name.lower()
            for source in target.sources.values()
            if kind_filter is None or (source.enabled and source.kind in kind_filter)
        )

    def get_windows(self, scene: Optional[str] = None) -> List[WindowSlot]:
        target = self.get_scene(scene)
        return list(target.windows) if target else []

    def get_cams(self, scene: Optional[str] = None) -> List[Optional[str]]:
        target = self.get_scene(scene)
        return list(target.cams) if target else []

    def in_view(self, source_id: str, scene: Optional[str] = None) -> bool:
        target = self.get_scene(scene)
        return target is not None and source_id in target.cams

    def has_source_alias(self, alias: str, scene: Optional[str] = None) -> bool:
        return self.resolve_source(alias, scene) is not None

    def resolve_source(self, alias: str, scene: Optional[str] = None) -> Optional[str]:
        target = self.get_scene(scene)
        if target is None:
            return None
        return self.aliases.resolve_source(alias, target.name)

    def get_aliases(self, scene: Optional[str] = None) -> Dict[str, str]:
        target = self.get_scene(scene)
        return self.aliases.source_aliases(target.name) if target else {}

    def get_scene_aliases(self) -> List[str]:
        return sorted(self.aliases.scene_aliases())


class ScenesBuilder:
    """Full resync: refetch every scene and rebuild the mirror from it."""

    def __init__(self, client: CompositorClient, mirror: SceneMirror):
        self.client = client
        self.mirror = mirror

    async def build(self) -> Dict[str, Scene]:
        scene_list = await self.client.get_scene_list()
        scenes: Dict[str, Scene] = {}
        for info in scene_list.scenes:
            items = await self.client.get_scene_items(info.name)
            scenes[info.name] = self.mirror.build_scene(info.name, items)

        self.mirror.replace_all(scenes, scene_list.current)
        logger.info(
            "Loaded %d scenes (current: %s)", len(scenes), scene_list.current or "none"
        )
        return scenes


__all__ = ["SceneMirror", "ScenesBuilder"]
