"""Messaging pipeline -- normalization, commands, send gateway and webhook."""

from .commands import CommandDispatcher, NormalizedCommand
from .extract import InboundMessageEvent, extract_text
from .router import MessageRouter, admits_group_message
from .sender import SendGateway
from .webhook import WebhookForwarder

__all__ = [
    "CommandDispatcher",
    "InboundMessageEvent",
    "MessageRouter",
    "NormalizedCommand",
    "SendGateway",
    "WebhookForwarder",
    "admits_group_message",
    "extract_text",
]
