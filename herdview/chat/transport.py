"""
Chat Transport - where chat messages come from and replies go.

Only the boundary is defined here. :class:`ConsoleChatTransport` reads
``sender: text`` lines from stdin so the engine can be driven by hand
without a chat service.
"""

from __future__ import annotations

import asyncio
import sys
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import AsyncIterator, Callable, Optional, TextIO

from herdview.core.logging_utils import get_module_logger

logger = get_module_logger("ChatTransport")


@dataclass(frozen=True)
class ChatMessage:
    sender: str
    text: str
    channel: str = ""
    is_subscriber: bool = False


class ChatTransport(ABC):

    @abstractmethod
    def messages(self) -> AsyncIterator[ChatMessage]:
        """Inbound messages, in the order the transport received them."""

    @abstractmethod
    async def send(self, channel: str, text: str) -> None:
        """Post ``text`` to ``channel``. May raise on transport failure."""

    async def close(self) -> None:
        return None


class ConsoleChatTransport(ChatTransport):
    """stdin/stdout chat. Every console sender counts as a subscriber."""

    def __init__(
        self,
        channel: str = "#herd",
        default_sender: str = "console",
        readline: Optional[Callable[[], str]] = None,
        output: Optional[TextIO] = None,
    ):
        self.channel = channel
        self.default_sender = default_sender
        self._readline = readline or sys.stdin.readline
        self._output = output or sys.stdout
        self._running = True

    def parse_line(self, line: str) -> Optional[ChatMessage]:
        line = line.strip()
        if not line:
            return None
        sender, sep, text = line.partition(":")
        # "!cam2 x:10" has a colon but no sender
        if not sep or not sender.strip() or " " in sender.strip() or sender.lstrip().startswith("!"):
            sender, text = self.default_sender, line
        return ChatMessage(
            sender=sender.strip(),
            text=text.strip(),
            channel=self.channel,
            is_subscriber=True,
        )

    async def messages(self) -> AsyncIterator[ChatMessage]:
        loop = asyncio.get_running_loop()
        while self._running:
            line = await loop.run_in_executor(None, self._readline)
            if line == "":
                logger.info("Console input closed")
                break
            message = self.parse_line(line)
            if message is not None:
                yield message

    async def send(self, channel: str, text: str) -> None:
        print(f"[{channel}] {text}", file=self._output, flush=True)

    async def close(self) -> None:
        self._running = False


__all__ = ["ChatMessage", "ChatTransport", "ConsoleChatTransport"]
