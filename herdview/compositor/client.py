"""
Compositor Client - boundary contract for the remote compositor.

The view engine never sees raw protocol payloads. Every call on a
:class:`CompositorClient` returns one of the dataclasses below, and every
failure surfaces as :class:`CompositorError`.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional


class CompositorError(Exception):
    """A remote compositor call failed (transport, timeout or request status)."""

    def __init__(self, message: str, *, request_type: Optional[str] = None, code: Optional[int] = None):
        super().__init__(message)
        self.request_type = request_type
        self.code = code


class CompositorNotConnected(CompositorError):
    """A request was issued while no connection was open."""


@dataclass(frozen=True)
class ItemTransform:
    """Placement of a scene item on the canvas.

    ``width``/``height`` are the rendered size; ``source_width`` and
    ``source_height`` are the source's native pixel size, which the fit
    scale is computed from.
    """
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0
    source_width: float = 0.0
    source_height: float = 0.0
    scale_x: float = 1.0
    scale_y: float = 1.0

    @classmethod
    def from_payload(cls, data: Mapping[str, Any]) -> "ItemTransform":
        return cls(
            x=float(data.get("positionX", 0.0)),
            y=float(data.get("positionY", 0.0)),
            width=float(data.get("width", 0.0)),
            height=float(data.get("height", 0.0)),
            source_width=float(data.get("sourceWidth", 0.0)),
            source_height=float(data.get("sourceHeight", 0.0)),
            scale_x=float(data.get("scaleX", 1.0)),
            scale_y=float(data.get("scaleY", 1.0)),
        )


@dataclass(frozen=True)
class TransformUpdate:
    """Position and scale written back to a scene item."""
    x: float
    y: float
    scale_x: float
    scale_y: float

    def to_payload(self) -> Dict[str, float]:
        return {
            "positionX": self.x,
            "positionY": self.y,
            "scaleX": self.scale_x,
            "scaleY": self.scale_y,
        }


@dataclass(frozen=True)
class SceneItem:
    """One source placed in a scene."""
    item_id: int
    source_name: str
    kind: str
    enabled: bool
    transform: ItemTransform = field(default_factory=ItemTransform)

    @classmethod
    def from_payload(cls, data: Mapping[str, Any]) -> "SceneItem":
        return cls(
            item_id=int(data["sceneItemId"]),
            source_name=str(data["sourceName"]),
            kind=str(data.get("inputKind") or data.get("sourceType") or ""),
            enabled=bool(data.get("sceneItemEnabled", True)),
            transform=ItemTransform.from_payload(data.get("sceneItemTransform") or {}),
        )


@dataclass(frozen=True)
class SceneInfo:
    name: str
    index: int = 0


@dataclass(frozen=True)
class SceneList:
    current: Optional[str]
    scenes: List[SceneInfo] = field(default_factory=list)

    @classmethod
    def from_payload(cls, data: Mapping[str, Any]) -> "SceneList":
        scenes = [
            SceneInfo(name=str(s["sceneName"]), index=int(s.get("sceneIndex", i)))
            for i, s in enumerate(data.get("scenes") or [])
        ]
        return cls(current=data.get("currentProgramSceneName"), scenes=scenes)

    @property
    def names(self) -> List[str]:
        return [s.name for s in self.scenes]


EventCallback = Callable[[str, Dict[str, Any]], Awaitable[None]]


class CompositorClient(ABC):
    """Request/response calls plus a subscribable event stream."""

    @abstractmethod
    async def connect(self) -> None: ...

    @abstractmethod
    async def disconnect(self) -> None: ...

    @property
    @abstractmethod
    def connected(self) -> bool: ...

    @abstractmethod
    async def wait_closed(self) -> None:
        """Block until the current connection drops."""

    @abstractmethod
    def subscribe(self, callback: EventCallback) -> None:
        """Register ``callback(event_type, event_data)`` for every notification."""

    @abstractmethod
    async def get_scene_list(self) -> SceneList: ...

    @abstractmethod
    async def get_scene_items(self, scene: str) -> List[SceneItem]: ...

    async def get_scene_item(self, scene: str, source_name: str) -> Optional[SceneItem]:
        """Fetch a single item by source name (used when a source is created)."""
        for item in await self.get_scene_items(scene):
            if item.source_name == source_name:
                return item
        return None

    @abstractmethod
    async def get_item_transform(self, scene: str, item_id: int) -> ItemTransform: ...

    @abstractmethod
    async def set_item_enabled(self, scene: str, item_id: int, enabled: bool) -> None: ...

    @abstractmethod
    async def set_item_transform(self, scene: str, item_id: int, transform: TransformUpdate) -> None: ...

    @abstractmethod
    async def set_current_scene(self, scene: str) -> None: ...


__all__ = [
    "CompositorClient",
    "CompositorError",
    "CompositorNotConnected",
    "EventCallback",
    "ItemTransform",
    "SceneInfo",
    "SceneItem",
    "SceneList",
    "TransformUpdate",
]
