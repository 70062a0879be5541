"""Inbound message router.

Every transport message goes through the same steps: normalize, forward
to the webhook, gate group traffic on a mention, then try the command
table.  Nothing here raises to the transport's dispatch loop.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from ..errors import GatewayError
from ..session.transport import OutboundContent
from .addresses import msisdn_of, normalize_user_id
from .commands import CommandDispatcher
from .extract import InboundMessageEvent, extract_text

if TYPE_CHECKING:
    from .sender import SendGateway
    from .webhook import WebhookForwarder

logger = logging.getLogger(__name__)

_BOT_WORD_RE = re.compile(r"\b(bot|wa-?bot)\b", re.IGNORECASE)
SUFFIX_DIGITS = 7


def admits_group_message(
    event: InboundMessageEvent,
    text: str,
    own_id: str | None,
    *,
    fallback: bool,
) -> bool:
    """Private messages always pass; group messages must address the bot.

    With the text fallback on and no known own address there is no suffix
    to look for, so every group message is admitted.
    """
    if not event.is_group:
        return True
    me = normalize_user_id(own_id) if own_id else ""
    if me and me in event.mentions:
        return True
    if not fallback:
        return False
    suffix = msisdn_of(me)[-SUFFIX_DIGITS:]
    return suffix in text or bool(_BOT_WORD_RE.search(text))


class MessageRouter:
    def __init__(
        self,
        gateway: SendGateway,
        own_id: Callable[[], str | None],
        *,
        webhook: WebhookForwarder | None = None,
        commands: CommandDispatcher | None = None,
        fallback_mention: bool = True,
    ) -> None:
        self._gateway = gateway
        self._own_id = own_id
        self._webhook = webhook
        self._commands = commands or CommandDispatcher()
        self.fallback_mention = fallback_mention

    async def handle(self, raw: dict[str, Any]) -> None:
        event = InboundMessageEvent.from_raw(raw)
        if event.from_me or not event.conversation_id:
            return

        text = extract_text(raw)
        logger.info(
            "Incoming message from=%s pushName=%r text=%r",
            event.conversation_id, event.sender_display_name, text,
        )

        if self._webhook is not None and text:
            self._webhook.fire(event, text)

        if not text:
            return

        if not admits_group_message(event, text, self._own_id(), fallback=self.fallback_mention):
            logger.debug("Ignoring group message in %s without a mention", event.conversation_id)
            return

        async def reply(content: OutboundContent) -> object:
            return await self._gateway.send(event.conversation_id, content)

        try:
            await self._commands.try_handle(event, text, reply)
        except GatewayError as exc:
            logger.error("Reply to %s failed: %s", event.conversation_id, exc)
        except Exception:
            logger.exception("Failed to process message from %s", event.conversation_id)
