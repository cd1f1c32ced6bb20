"""
Compositor Events - typed change notifications.

Raw notifications arrive as ``(event_type, event_data)`` pairs. They are
converted here, once, into small frozen dataclasses so the ingestor can
dispatch on type and never reads loosely-typed payloads.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from herdview.core.logging_utils import get_module_logger

from .client import ItemTransform

logger = get_module_logger("CompositorEvents")


@dataclass(frozen=True)
class CurrentSceneChanged:
    scene: str


@dataclass(frozen=True)
class SourceCreated:
    scene: str
    source: str
    item_id: int


@dataclass(frozen=True)
class SourceRemoved:
    scene: str
    source: str
    item_id: int


@dataclass(frozen=True)
class SourceRenamed:
    old_name: str
    new_name: str


@dataclass(frozen=True)
class SourceVisibilityChanged:
    scene: str
    item_id: int
    enabled: bool


@dataclass(frozen=True)
class SourceTransformChanged:
    scene: str
    item_id: int
    transform: ItemTransform


@dataclass(frozen=True)
class SceneListChanged:
    scenes: List[str]


@dataclass(frozen=True)
class SceneRemoved:
    scene: str


@dataclass(frozen=True)
class SceneRenamed:
    old_name: str
    new_name: str


CompositorEvent = Union[
    CurrentSceneChanged,
    SourceCreated,
    SourceRemoved,
    SourceRenamed,
    SourceVisibilityChanged,
    SourceTransformChanged,
    SceneListChanged,
    SceneRemoved,
    SceneRenamed,
]


def _scene_list(data: Mapping[str, Any]) -> SceneListChanged:
    return SceneListChanged(scenes=[str(s["sceneName"]) for s in data.get("scenes") or []])


_PARSERS: Dict[str, Callable[[Mapping[str, Any]], CompositorEvent]] = {
    "CurrentProgramSceneChanged": lambda d: CurrentSceneChanged(scene=str(d["sceneName"])),
    "SceneItemCreated": lambda d: SourceCreated(
        scene=str(d["sceneName"]), source=str(d["sourceName"]), item_id=int(d["sceneItemId"])
    ),
    "SceneItemRemoved": lambda d: SourceRemoved(
        scene=str(d["sceneName"]), source=str(d["sourceName"]), item_id=int(d["sceneItemId"])
    ),
    "InputNameChanged": lambda d: SourceRenamed(
        old_name=str(d["oldInputName"]), new_name=str(d["inputName"])
    ),
    "SceneItemEnableStateChanged": lambda d: SourceVisibilityChanged(
        scene=str(d["sceneName"]), item_id=int(d["sceneItemId"]), enabled=bool(d["sceneItemEnabled"])
    ),
    "SceneItemTransformChanged": lambda d: SourceTransformChanged(
        scene=str(d["sceneName"]),
        item_id=int(d["sceneItemId"]),
        transform=ItemTransform.from_payload(d.get("sceneItemTransform") or {}),
    ),
    "SceneListChanged": _scene_list,
    "SceneRemoved": lambda d: SceneRemoved(scene=str(d["sceneName"])),
    "SceneNameChanged": lambda d: SceneRenamed(
        old_name=str(d["oldSceneName"]), new_name=str(d["sceneName"])
    ),
}

EVENT_TYPES = frozenset(_PARSERS)


def parse_event(event_type: str, data: Optional[Mapping[str, Any]]) -> Optional[CompositorEvent]:
    """Convert a raw notification into a typed event.

    Returns None for notification kinds the view engine does not track and
    for payloads missing required fields (logged as a warning).
    """
    parser = _PARSERS.get(event_type)
    if parser is None:
        return None

    try:
        return parser(data or {})
    except (KeyError, TypeError, ValueError) as e:
        logger.warning("Malformed %s notification (%s): %r", event_type, e, data)
        return None


__all__ = [
    "CompositorEvent",
    "CurrentSceneChanged",
    "EVENT_TYPES",
    "SceneListChanged",
    "SceneRemoved",
    "SceneRenamed",
    "SourceCreated",
    "SourceRemoved",
    "SourceRenamed",
    "SourceTransformChanged",
    "SourceVisibilityChanged",
    "parse_event",
]
