"""Compositor boundary: abstract client, typed notifications, OBS websocket client."""

from .client import (
    CompositorClient,
    CompositorError,
    CompositorNotConnected,
    ItemTransform,
    SceneInfo,
    SceneItem,
    SceneList,
    TransformUpdate,
)
from .events import CompositorEvent, parse_event
from .obs_websocket import ObsWebSocketClient
from .retry_policy import RetryPolicy

__all__ = [
    "CompositorClient",
    "CompositorError",
    "CompositorEvent",
    "CompositorNotConnected",
    "ItemTransform",
    "ObsWebSocketClient",
    "RetryPolicy",
    "SceneInfo",
    "SceneItem",
    "SceneList",
    "TransformUpdate",
    "parse_event",
]
