"""
View Models - the local mirror of a compositor scene.

A :class:`Scene` pairs two parallel lists:

- ``windows[i]`` is the target geometry of window slot ``i`` ("cam<i>")
- ``cams[i]`` is the source meant to occupy that slot (None when empty)

and a :class:`DirtyState` naming what still has to be pushed to the
compositor.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Mapping, Optional, Set

from herdview.compositor.client import ItemTransform, SceneItem, TransformUpdate


@dataclass(frozen=True)
class WindowSlot:
    """Geometry of one window slot, in canvas pixels."""
    x: float
    y: float
    width: float
    height: float

    @property
    def area(self) -> float:
        return self.width * self.height

    @classmethod
    def from_transform(cls, transform: ItemTransform) -> "WindowSlot":
        return cls(x=transform.x, y=transform.y, width=transform.width, height=transform.height)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "WindowSlot":
        return cls(
            x=float(data["x"]),
            y=float(data["y"]),
            width=float(data["width"]),
            height=float(data["height"]),
        )

    def to_dict(self) -> Dict[str, float]:
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}

    def with_changes(self, **changes: Optional[float]) -> "WindowSlot":
        return replace(self, **{k: float(v) for k, v in changes.items() if v is not None})

    def describe(self) -> str:
        return f"x:{self.x:g} y:{self.y:g} w:{self.width:g} h:{self.height:g}"


@dataclass
class Source:
    """A source placed in a scene. ``name`` is its identity."""
    name: str
    item_id: int
    kind: str
    enabled: bool
    transform: ItemTransform = field(default_factory=ItemTransform)

    @classmethod
    def from_item(cls, item: SceneItem) -> "Source":
        return cls(
            name=item.source_name,
            item_id=item.item_id,
            kind=item.kind,
            enabled=item.enabled,
            transform=item.transform,
        )

    @property
    def geometry(self) -> WindowSlot:
        return WindowSlot.from_transform(self.transform)


def fit_to_slot(slot: WindowSlot, native: ItemTransform) -> TransformUpdate:
    """Position and scale that stretch a source of native size onto ``slot``."""
    scale_x = slot.width / native.source_width if native.source_width else 1.0
    scale_y = slot.height / native.source_height if native.source_height else 1.0
    return TransformUpdate(x=slot.x, y=slot.y, scale_x=scale_x, scale_y=scale_y)


@dataclass
class DirtyState:
    """Work a reconciliation pass still owes the compositor.

    ``cams`` holds source names whose on-screen occupancy changed;
    ``windows`` holds slot indices whose geometry changed.
    """
    cams: Set[str] = field(default_factory=set)
    windows: Set[int] = field(default_factory=set)

    def __bool__(self) -> bool:
        return bool(self.cams or self.windows)

    def copy(self) -> "DirtyState":
        return DirtyState(cams=set(self.cams), windows=set(self.windows))

    def rename(self, old: str, new: str) -> None:
        if old in self.cams:
            self.cams.discard(old)
            self.cams.add(new)


@dataclass
class Scene:
    name: str
    sources: Dict[str, Source] = field(default_factory=dict)
    windows: List[WindowSlot] = field(default_factory=list)
    cams: List[Optional[str]] = field(default_factory=list)
    dirty: DirtyState = field(default_factory=DirtyState)
    # slot geometry as of the last full resync, restored by "reset"
    home_windows: List[WindowSlot] = field(default_factory=list)

    @property
    def slot_count(self) -> int:
        return len(self.cams)

    def slot_of(self, source_name: str) -> Optional[int]:
        for index, cam in enumerate(self.cams):
            if cam == source_name:
                return index
        return None

    def source_by_item(self, item_id: int) -> Optional[Source]:
        for source in self.sources.values():
            if source.item_id == item_id:
                return source
        return None

    def snapshot(self) -> List[Dict[str, Any]]:
        """Serializable view of every slot: occupant plus geometry."""
        return [
            {"source": cam, **slot.to_dict()}
            for cam, slot in zip(self.cams, self.windows)
        ]


__all__ = ["DirtyState", "Scene", "Source", "WindowSlot", "fit_to_slot"]
