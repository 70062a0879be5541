"""Inbound message normalization.

Provider payloads nest the user-visible text in one of many message
shapes.  :func:`extract_text` reduces them to a single trimmed string and
:class:`InboundMessageEvent` captures the routing-relevant fields once.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

from .addresses import is_group_address, normalize_user_id

_ENVELOPES = ("ephemeralMessage", "viewOnceMessageV2")
_CONTEXT_CARRIERS = (
    "extendedTextMessage",
    "imageMessage",
    "videoMessage",
    "documentMessage",
    "stickerMessage",
)


def _dig(data: Any, *path: str) -> Any:
    for key in path:
        if not isinstance(data, dict):
            return None
        data = data.get(key)
    return data


def _unwrap(message: dict[str, Any]) -> dict[str, Any]:
    for key in _ENVELOPES:
        envelope = message.get(key)
        if isinstance(envelope, dict):
            inner = envelope.get("message")
            return inner if isinstance(inner, dict) else envelope
    return message


def _reduce_params(raw: str) -> str:
    try:
        parsed = json.loads(raw)
    except (TypeError, ValueError):
        return ""
    if isinstance(parsed, dict):
        for key in ("text", "id", "payload"):
            if parsed.get(key):
                return str(parsed[key])
    return json.dumps(parsed)


def extract_text(raw: dict[str, Any]) -> str:
    """Return the display text of a provider message payload, or ``""``."""
    message = _dig(raw, "message")
    if not isinstance(message, dict):
        return ""
    m = _unwrap(message)

    for path in (
        ("conversation",),
        ("extendedTextMessage", "text"),
        ("imageMessage", "caption"),
        ("videoMessage", "caption"),
    ):
        value = _dig(m, *path)
        if isinstance(value, str) and value:
            return value.strip()

    for path in (
        ("buttonsResponseMessage", "selectedDisplayText"),
        ("templateButtonReplyMessage", "selectedDisplayText"),
        ("listResponseMessage", "singleSelectReply", "selectedRowId"),
        ("interactiveResponseMessage", "body", "text"),
    ):
        value = _dig(m, *path)
        if isinstance(value, str) and value:
            return value.strip()

    params = _dig(m, "interactiveResponseMessage", "nativeFlowResponseMessage", "paramsJson")
    if isinstance(params, str) and params:
        return _reduce_params(params).strip()
    return ""


def mentioned_ids(raw: dict[str, Any]) -> list[str]:
    """Normalized ids from the first message part carrying a mention list."""
    message = _dig(raw, "message") or {}
    for key in _CONTEXT_CARRIERS:
        context = _dig(message, key, "contextInfo")
        if isinstance(context, dict):
            mentions = context.get("mentionedJid") or []
            if isinstance(mentions, list):
                return [normalize_user_id(str(j or "")) for j in mentions]
            return []
    return []


@dataclass(frozen=True)
class InboundMessageEvent:
    sender_id: str
    conversation_id: str
    is_group: bool
    raw_payload: dict[str, Any] = field(repr=False)
    timestamp_ms: int = 0
    sender_display_name: str = ""
    message_id: str = ""
    from_me: bool = False
    mentions: tuple[str, ...] = ()

    @classmethod
    def from_raw(cls, raw: dict[str, Any]) -> InboundMessageEvent:
        key = raw.get("key") or {}
        conversation = str(key.get("remoteJid") or "")
        is_group = is_group_address(conversation)
        sender = str(key.get("participant") or "") if is_group else conversation
        try:
            timestamp_ms = int(raw.get("messageTimestamp") or 0) * 1000
        except (TypeError, ValueError):
            timestamp_ms = 0
        return cls(
            sender_id=sender or conversation,
            conversation_id=conversation,
            is_group=is_group,
            raw_payload=raw,
            timestamp_ms=timestamp_ms,
            sender_display_name=str(raw.get("pushName") or ""),
            message_id=str(key.get("id") or ""),
            from_me=bool(key.get("fromMe")),
            mentions=tuple(mentioned_ids(raw)),
        )
