"""In-memory compositor for testing the view engine without OBS.

Holds scenes and items, answers the :class:`CompositorClient` calls from
them, records every call, and can be told to fail chosen requests.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional, Set, Tuple

from herdview.compositor.client import (
    CompositorClient,
    CompositorError,
    EventCallback,
    ItemTransform,
    SceneInfo,
    SceneItem,
    SceneList,
    TransformUpdate,
)

WRITE_CALLS = frozenset({"set_item_enabled", "set_item_transform", "set_current_scene"})


def make_item(
    item_id: int,
    name: str,
    x: float,
    y: float,
    width: float,
    height: float,
    *,
    kind: str = "ffmpeg_source",
    enabled: bool = True,
    source_width: Optional[float] = None,
    source_height: Optional[float] = None,
) -> SceneItem:
    """A scene item rendered at ``width`` x ``height`` (native size defaults to the same)."""
    native_w = source_width if source_width is not None else width
    native_h = source_height if source_height is not None else height
    return SceneItem(
        item_id=item_id,
        source_name=name,
        kind=kind,
        enabled=enabled,
        transform=ItemTransform(
            x=x,
            y=y,
            width=width,
            height=height,
            source_width=native_w,
            source_height=native_h,
            scale_x=width / native_w if native_w else 1.0,
            scale_y=height / native_h if native_h else 1.0,
        ),
    )


@dataclass
class MockCall:
    method: str
    args: Tuple[Any, ...]


@dataclass
class FakeCompositor(CompositorClient):
    scenes: Dict[str, List[SceneItem]] = field(default_factory=dict)
    current: Optional[str] = None
    calls: List[MockCall] = field(default_factory=list)
    failing: Set[str] = field(default_factory=set)
    failing_items: Set[int] = field(default_factory=set)
    callbacks: List[EventCallback] = field(default_factory=list)
    is_connected: bool = False

    def __post_init__(self):
        self._closed = asyncio.Event()

    # -- helpers ---------------------------------------------------------

    def add_scene(self, name: str, *items: SceneItem) -> None:
        self.scenes[name] = list(items)
        if self.current is None:
            self.current = name

    def fail(self, method: str, item_id: Optional[int] = None) -> None:
        """Make ``method`` raise CompositorError (only for ``item_id`` if given)."""
        if item_id is None:
            self.failing.add(method)
        else:
            self.failing_items.add(item_id)
            self.failing.add(method)

    def heal(self) -> None:
        self.failing.clear()
        self.failing_items.clear()

    def reset_calls(self) -> None:
        self.calls.clear()

    @property
    def write_calls(self) -> List[MockCall]:
        return [c for c in self.calls if c.method in WRITE_CALLS]

    def calls_for(self, method: str) -> List[MockCall]:
        return [c for c in self.calls if c.method == method]

    def find_item(self, scene: str, item_id: int) -> SceneItem:
        for item in self.scenes[scene]:
            if item.item_id == item_id:
                return item
        raise CompositorError(f"no item {item_id} in {scene}", code=600)

    def _record(self, method: str, *args: Any, item_id: Optional[int] = None) -> None:
        self.calls.append(MockCall(method, args))
        if method in self.failing and (not self.failing_items or item_id in self.failing_items):
            raise CompositorError(f"{method} failed", request_type=method, code=500)

    def _replace_item(self, scene: str, item: SceneItem) -> None:
        self.scenes[scene] = [item if i.item_id == item.item_id else i for i in self.scenes[scene]]

    async def emit(self, event_type: str, data: Dict[str, Any]) -> None:
        for callback in list(self.callbacks):
            await callback(event_type, data)

    # -- CompositorClient ------------------------------------------------

    async def connect(self) -> None:
        self._record("connect")
        self.is_connected = True
        self._closed.clear()

    async def disconnect(self) -> None:
        self.is_connected = False
        self._closed.set()

    @property
    def connected(self) -> bool:
        return self.is_connected

    async def wait_closed(self) -> None:
        await self._closed.wait()

    def subscribe(self, callback: EventCallback) -> None:
        self.callbacks.append(callback)

    async def get_scene_list(self) -> SceneList:
        self._record("get_scene_list")
        return SceneList(
            current=self.current,
            scenes=[SceneInfo(name=name, index=i) for i, name in enumerate(self.scenes)],
        )

    async def get_scene_items(self, scene: str) -> List[SceneItem]:
        self._record("get_scene_items", scene)
        return list(self.scenes.get(scene, []))

    async def get_item_transform(self, scene: str, item_id: int) -> ItemTransform:
        self._record("get_item_transform", scene, item_id, item_id=item_id)
        return self.find_item(scene, item_id).transform

    async def set_item_enabled(self, scene: str, item_id: int, enabled: bool) -> None:
        self._record("set_item_enabled", scene, item_id, enabled, item_id=item_id)
        item = self.find_item(scene, item_id)
        self._replace_item(scene, replace(item, enabled=enabled))

    async def set_item_transform(self, scene: str, item_id: int, transform: TransformUpdate) -> None:
        self._record("set_item_transform", scene, item_id, transform, item_id=item_id)
        item = self.find_item(scene, item_id)
        t = item.transform
        self._replace_item(scene, replace(item, transform=replace(
            t,
            x=transform.x,
            y=transform.y,
            scale_x=transform.scale_x,
            scale_y=transform.scale_y,
            width=t.source_width * transform.scale_x,
            height=t.source_height * transform.scale_y,
        )))

    async def set_current_scene(self, scene: str) -> None:
        self._record("set_current_scene", scene)
        if scene not in self.scenes:
            raise CompositorError(f"No scene {scene}", request_type="SetCurrentProgramScene", code=600)
        self.current = scene


__all__ = ["FakeCompositor", "MockCall", "WRITE_CALLS", "make_item"]
