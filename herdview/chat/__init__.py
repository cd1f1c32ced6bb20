"""Chat surface: transport boundary, command variants, dispatcher."""

from .commands import ChatCommand, parse_command
from .dispatcher import ChatDispatcher
from .transport import ChatMessage, ChatTransport, ConsoleChatTransport

__all__ = [
    "ChatCommand",
    "ChatDispatcher",
    "ChatMessage",
    "ChatTransport",
    "ConsoleChatTransport",
    "parse_command",
]
