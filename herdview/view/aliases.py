"""Alias Registry - human-friendly names for scenes and sources."""

from __future__ import annotations

import re
from typing import Dict, List, Optional

_SEPARATOR = "-"
_NON_ALNUM = re.compile(r"[^0-9a-z]+")


def normalize(name: str) -> str:
    """Lowercase ``name`` and collapse each run of non-alphanumerics to ``-``.

    ``"Kidding A"`` -> ``"kidding-a"``, ``"  Treat!! "`` -> ``"treat"``.
    """
    return _NON_ALNUM.sub(_SEPARATOR, name.lower()).strip(_SEPARATOR)


class AliasRegistry:
    """Bidirectional alias lookup.

    Source aliases are scoped per scene, scene aliases are global. Several
    aliases may point at the same id but each alias points at exactly one.
    Lookups never raise: an unknown alias resolves to None.
    """

    def __init__(self):
        self._scene_aliases: Dict[str, str] = {}
        self._source_aliases: Dict[str, Dict[str, str]] = {}

    def clear(self) -> None:
        self._scene_aliases.clear()
        self._source_aliases.clear()

    # Sources

    def add_source_alias(self, alias: str, source_id: str, scene_id: str) -> str:
        key = normalize(alias)
        if key:
            self._source_aliases.setdefault(scene_id, {})[key] = source_id
        return key

    def remove_aliases_for_source(self, source_id: str, scene_id: str) -> List[str]:
        table = self._source_aliases.get(scene_id)
        if not table:
            return []
        stale = [alias for alias, target in table.items() if target == source_id]
        for alias in stale:
            del table[alias]
        return stale

    def resolve_source(self, alias: str, scene_id: str) -> Optional[str]:
        return self._source_aliases.get(scene_id, {}).get(normalize(alias))

    def source_aliases(self, scene_id: str) -> Dict[str, str]:
        return dict(self._source_aliases.get(scene_id, {}))

    # Scenes

    def add_scene_alias(self, alias: str, scene_id: str) -> str:
        key = normalize(alias)
        if key:
            self._scene_aliases[key] = scene_id
        return key

    def remove_aliases_for_scene(self, scene_id: str) -> List[str]:
        stale = [alias for alias, target in self._scene_aliases.items() if target == scene_id]
        for alias in stale:
            del self._scene_aliases[alias]
        self._source_aliases.pop(scene_id, None)
        return stale

    def rename_scene_scope(self, old_scene_id: str, new_scene_id: str) -> None:
        """Move the source-alias table of a renamed scene to its new id."""
        table = self._source_aliases.pop(old_scene_id, None)
        if table is not None:
            self._source_aliases[new_scene_id] = table

    def resolve_scene(self, alias: str) -> Optional[str]:
        return self._scene_aliases.get(normalize(alias))

    def scene_aliases(self) -> Dict[str, str]:
        return dict(self._scene_aliases)


__all__ = ["AliasRegistry", "normalize"]
