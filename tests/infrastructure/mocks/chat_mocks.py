"""In-memory chat transport for dispatcher and app tests."""

from __future__ import annotations

import asyncio
from typing import AsyncIterator, Iterable, List, Tuple

from herdview.chat.transport import ChatMessage, ChatTransport


class RecordingTransport(ChatTransport):
    """Replays a fixed inbox and records every reply.

    With ``hold_open`` the message stream stays open after the inbox is
    exhausted, until :meth:`close` is called.
    """

    def __init__(self, inbox: Iterable[ChatMessage] = (), *, hold_open: bool = False):
        self.inbox: List[ChatMessage] = list(inbox)
        self.hold_open = hold_open
        self.sent: List[Tuple[str, str]] = []
        self.fail_sends = False
        self.closed = False
        self._hang_up = asyncio.Event()

    async def messages(self) -> AsyncIterator[ChatMessage]:
        for message in self.inbox:
            yield message
        if self.hold_open:
            await self._hang_up.wait()

    async def send(self, channel: str, text: str) -> None:
        if self.fail_sends:
            raise ConnectionError("chat service unavailable")
        self.sent.append((channel, text))

    async def close(self) -> None:
        self.closed = True
        self._hang_up.set()

    @property
    def replies(self) -> List[str]:
        return [text for _, text in self.sent]


def subscriber(text: str, sender: str = "goatfan", channel: str = "#herd") -> ChatMessage:
    return ChatMessage(sender=sender, text=text, channel=channel, is_subscriber=True)


def viewer(text: str, sender: str = "lurker", channel: str = "#herd") -> ChatMessage:
    return ChatMessage(sender=sender, text=text, channel=channel, is_subscriber=False)


__all__ = ["RecordingTransport", "subscriber", "viewer"]
