"""
Command Parser - turns slot-assignment text into intents.

The caller strips the command keyword first, so for ``!cam 1treat 2does``
the parser sees ``"1treat 2does"``. Each whitespace-separated token is an
optional slot index followed by a source alias; a bare alias means slot 0.
``"1 treat"`` reads the same as ``"1treat"``. Tokens that name no known
alias or an out-of-range slot are dropped without complaint.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Mapping, Optional, Tuple

from .aliases import normalize

# a bare "<digits>" token followed by an alias: "1 treat" -> "1treat"
_DETACHED_INDEX = re.compile(r"(?<!\S)([0-9]+)\s+(?=[^0-9\s])")
_DIGITS = frozenset("0123456789")


@dataclass(frozen=True)
class Intent:
    """Put ``source_id`` into window slot ``index``."""
    index: int
    source_id: str


def split_token(token: str) -> Tuple[Optional[int], str]:
    """Split ``"2does"`` into ``(2, "does")``; ``"does"`` gives ``(None, "does")``."""
    for position, char in enumerate(token):
        if char not in _DIGITS:
            digits = token[:position]
            return (int(digits) if digits else None), token[position:]
    return int(token) if token else None, ""


def parse_chat_commands(text: str, aliases: Mapping[str, str], slot_count: int) -> List[Intent]:
    intents: List[Intent] = []
    collapsed = _DETACHED_INDEX.sub(r"\1", text.strip())
    for token in collapsed.split():
        index, candidate = split_token(token)
        if not candidate:
            continue
        source_id = aliases.get(normalize(candidate))
        if index is None:
            index = 0
        if source_id is None or not 0 <= index < slot_count:
            continue
        intents.append(Intent(index=index, source_id=source_id))
    return intents


__all__ = ["Intent", "parse_chat_commands", "split_token"]
