"""
Chat Dispatcher - routes parsed chat commands to the view.

One handler per command variant, picked by type. Layout-changing commands
can be limited to subscribers; everyone else is told so. Replies are best
effort: a failed send is logged and dropped.
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Dict, Optional, Type

from herdview.core.config_manager import ViewSettings
from herdview.core.logging_utils import get_module_logger
from herdview.view.aliases import normalize
from herdview.view.obs_view import ObsView

from .commands import (
    CamCommand,
    ChatCommand,
    ResetWindow,
    SceneCommand,
    ShowInfo,
    SourcesCommand,
    WindowCommand,
    parse_command,
)
from .transport import ChatMessage, ChatTransport

logger = get_module_logger("ChatDispatcher")

SUBSCRIBERS_ONLY_REPLY = "This command is reserved for Subscribers"


class ChatDispatcher:

    def __init__(self, view: ObsView, transport: ChatTransport, settings: ViewSettings):
        self.view = view
        self.transport = transport
        self.settings = settings
        self._handlers: Dict[Type[Any], Callable[[Any, ChatMessage], Awaitable[None]]] = {
            CamCommand: self._on_cam,
            WindowCommand: self._on_window,
            SceneCommand: self._on_scene,
            SourcesCommand: self._on_sources,
        }
        # commands anyone may use
        self._open_commands = (SourcesCommand,)

    def is_ignored(self, message: ChatMessage) -> bool:
        sender = message.sender.lower()
        return sender == self.settings.bot_name.lower() or sender in self.settings.blocked_users

    async def handle(self, message: ChatMessage) -> Optional[ChatCommand]:
        """Parse and run one chat message. Returns the command it ran, if any."""
        if self.is_ignored(message):
            return None

        command = parse_command(message.text)
        if command is None:
            return None

        if (self.settings.subscriber_only and not message.is_subscriber
                and not isinstance(command, self._open_commands)):
            await self.reply(message, SUBSCRIBERS_ONLY_REPLY)
            return None

        logger.debug("%s: %s", message.sender, command)
        await self._handlers[type(command)](command, message)
        return command

    async def reply(self, message: ChatMessage, text: str) -> None:
        channel = message.channel or self.settings.chat_channel
        try:
            await self.transport.send(channel, text)
        except Exception as e:
            logger.warning("Reply to %s failed: %s", channel, e)

    # ------------------------------------------------------------------
    # Handlers

    async def _on_cam(self, command: CamCommand, message: ChatMessage) -> None:
        await self.view.process_chat(command.args)

    async def _on_window(self, command: WindowCommand, message: ChatMessage) -> None:
        index = command.index
        if self.view.get_window(index) is None:
            return

        for op in command.ops:
            if isinstance(op, ResetWindow):
                await self.view.reset_window(index)

        changes = command.changes
        if changes:
            await self.view.set_window_geometry(index, **changes)

        if any(isinstance(op, ShowInfo) for op in command.ops):
            slot = self.view.get_window(index)
            if slot is not None:
                await self.reply(message, f"cam{index} {slot.describe()}")

    async def _on_scene(self, command: SceneCommand, message: ChatMessage) -> None:
        if command.target is None:
            await self.reply(message, "Scenes: " + ", ".join(self.view.get_scenes()))
            return
        await self.view.set_current_scene(command.target)

    async def _on_sources(self, command: SourcesCommand, message: ChatMessage) -> None:
        names = sorted({normalize(name) for name in self.view.get_sources(eligible_only=True)})
        if names:
            await self.reply(message, "Cameras: " + ", ".join(names))


__all__ = ["ChatDispatcher", "SUBSCRIBERS_ONLY_REPLY"]
