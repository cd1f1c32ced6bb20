"""
Chat Commands - tagged variants parsed once per message.

    !cam 1treat 2does     CamCommand      slot assignments
    !camera treat         CamCommand
    !cam2 x:100 w:640     WindowCommand   geometry edits on cam2
    !cam0 info            WindowCommand   reply with cam0's geometry
    !cam1 reset           WindowCommand   back to the resync geometry
    !scene                SceneCommand    list scenes
    !scene kidding-a      SceneCommand    switch scene
    !sources              SourcesCommand  list camera aliases
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Union

_COMMAND = re.compile(r"^\s*!(?P<name>[a-z]+)(?P<index>[0-9]+)?\b\s*(?P<rest>.*)$", re.IGNORECASE | re.DOTALL)
# "x : 100", "x: 100", "x :100" -> "x:100"
_SPACED_COLON = re.compile(r"\s*:\s*")


@dataclass(frozen=True)
class CamCommand:
    args: str


@dataclass(frozen=True)
class ShowInfo:
    pass


@dataclass(frozen=True)
class SetGeometry:
    name: str  # "x" | "y" | "width" | "height"
    value: float


@dataclass(frozen=True)
class ResetWindow:
    pass


WindowOp = Union[ShowInfo, SetGeometry, ResetWindow]


@dataclass(frozen=True)
class WindowCommand:
    index: int
    ops: List[WindowOp] = field(default_factory=list)

    @property
    def changes(self) -> Dict[str, float]:
        """Geometry edits folded together, last one per field wins."""
        return {op.name: op.value for op in self.ops if isinstance(op, SetGeometry)}


@dataclass(frozen=True)
class SceneCommand:
    target: Optional[str] = None


@dataclass(frozen=True)
class SourcesCommand:
    pass


ChatCommand = Union[CamCommand, WindowCommand, SceneCommand, SourcesCommand]

_GEOMETRY_FIELDS = {"x": "x", "y": "y", "w": "width", "h": "height"}


def parse_window_ops(text: str) -> List[WindowOp]:
    ops: List[WindowOp] = []
    for word in _SPACED_COLON.sub(":", text.strip().lower()).split():
        name, _, value = word.partition(":")
        if name in ("info", "i"):
            ops.append(ShowInfo())
        elif name == "reset":
            ops.append(ResetWindow())
        elif name in _GEOMETRY_FIELDS and value:
            try:
                number = float(value)
            except ValueError:
                continue
            if math.isfinite(number):
                ops.append(SetGeometry(_GEOMETRY_FIELDS[name], number))
    return ops


def _cam(index: Optional[str], rest: str) -> Optional[ChatCommand]:
    if index is None:
        return CamCommand(args=rest)
    return WindowCommand(index=int(index), ops=parse_window_ops(rest))


def _scene(index: Optional[str], rest: str) -> Optional[ChatCommand]:
    if index is not None:
        return None
    target = rest.strip()
    return SceneCommand(target=target or None)


def _sources(index: Optional[str], rest: str) -> Optional[ChatCommand]:
    return SourcesCommand() if index is None else None


_PARSERS: Dict[str, Callable[[Optional[str], str], Optional[ChatCommand]]] = {
    "cam": _cam,
    "camera": lambda index, rest: CamCommand(args=rest) if index is None else None,
    "scene": _scene,
    "scenes": _scene,
    "sources": _sources,
}


def parse_command(text: str) -> Optional[ChatCommand]:
    """Parse one chat message, or return None if it is not a command we know."""
    match = _COMMAND.match(text)
    if match is None:
        return None
    parser = _PARSERS.get(match.group("name").lower())
    if parser is None:
        return None
    return parser(match.group("index"), match.group("rest"))


__all__ = [
    "CamCommand",
    "ChatCommand",
    "ResetWindow",
    "SceneCommand",
    "SetGeometry",
    "ShowInfo",
    "SourcesCommand",
    "WindowCommand",
    "WindowOp",
    "parse_command",
    "parse_window_ops",
]
