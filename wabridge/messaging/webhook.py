"""Webhook forwarder -- fire-and-forget POST of inbound messages."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import aiohttp

from .extract import InboundMessageEvent

logger = logging.getLogger(__name__)

TOKEN_HEADER = "X-Webhook-Token"
_TIMEOUT = aiohttp.ClientTimeout(total=10)


def build_payload(event: InboundMessageEvent, text: str) -> dict[str, Any]:
    return {
        "from": event.conversation_id,
        "text": text,
        "pushName": event.sender_display_name,
        "messageId": event.message_id,
        "timestamp": event.timestamp_ms,
        "isGroup": event.is_group,
    }


class WebhookForwarder:
    """Posts each qualifying inbound message to an automation endpoint.

    No queue and no retry: a failed POST is logged and forgotten.
    """

    def __init__(self, url: str, token: str = "") -> None:
        self.url = url
        self.token = token
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def enabled(self) -> bool:
        return bool(self.url)

    def fire(self, event: InboundMessageEvent, text: str) -> asyncio.Task[None] | None:
        if not self.enabled:
            return None
        task = asyncio.create_task(self.forward(event, text))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def forward(self, event: InboundMessageEvent, text: str) -> None:
        headers = {"Content-Type": "application/json", TOKEN_HEADER: self.token}
        try:
            async with aiohttp.ClientSession(timeout=_TIMEOUT) as session:
                async with session.post(self.url, json=build_payload(event, text), headers=headers) as resp:
                    if resp.status >= 400:
                        logger.warning("Webhook POST to %s returned HTTP %d", self.url, resp.status)
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            logger.warning("Webhook POST to %s failed: %s", self.url, exc)

    async def drain(self) -> None:
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
