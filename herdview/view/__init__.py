"""View synchronization engine: mirror, layout, parser, reconciler, ingestor."""

from .aliases import AliasRegistry, normalize
from .ingestor import EventIngestor
from .layout import WindowLayoutEngine
from .mirror import SceneMirror, ScenesBuilder
from .models import DirtyState, Scene, Source, WindowSlot
from .obs_view import ObsView
from .parser import Intent, parse_chat_commands
from .reconciler import LAYOUT_KEY, PassResult, ReconcileState, Reconciler

__all__ = [
    "AliasRegistry",
    "DirtyState",
    "EventIngestor",
    "Intent",
    "LAYOUT_KEY",
    "ObsView",
    "PassResult",
    "ReconcileState",
    "Reconciler",
    "Scene",
    "SceneMirror",
    "ScenesBuilder",
    "Source",
    "WindowLayoutEngine",
    "WindowSlot",
    "normalize",
    "parse_chat_commands",
]
