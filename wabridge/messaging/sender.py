"""Send gateway -- the only path from the gateway to the transport's send."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from ..errors import PermanentSendError, TransientUnavailable, is_connection_closed
from ..session.lifecycle import READY_TIMEOUT
from ..session.transport import OutboundContent
from ..util.async_helpers import sleep_jitter

if TYPE_CHECKING:
    from ..session.lifecycle import LifecycleManager

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 2


class SendGateway:
    """Readiness-gated dispatch with a single retry on a dropped connection."""

    def __init__(
        self,
        lifecycle: LifecycleManager,
        *,
        ready_timeout: float = READY_TIMEOUT,
        jitter_ms: tuple[int, int] = (300, 1200),
    ) -> None:
        self._lifecycle = lifecycle
        self._ready_timeout = ready_timeout
        self._jitter_ms = jitter_ms

    async def send(self, target: str, content: OutboundContent) -> Any:
        """Deliver *content* to *target*.

        Raises :class:`TransientUnavailable` if the session is not ready in
        time and :class:`PermanentSendError` if the transport rejects the
        message, or drops the connection twice in a row.
        """
        await self._lifecycle.wait_ready(self._ready_timeout)
        await sleep_jitter(*self._jitter_ms)

        for attempt in range(1, MAX_ATTEMPTS + 1):
            session = self._lifecycle.session
            try:
                if session is None or not self._lifecycle.is_ready:
                    raise TransientUnavailable("session not ready")
                return await session.send(target, content)
            except TransientUnavailable as exc:
                if attempt == MAX_ATTEMPTS:
                    raise PermanentSendError(str(exc)) from exc
            except Exception as exc:
                if attempt == MAX_ATTEMPTS or not is_connection_closed(exc):
                    raise PermanentSendError(str(exc)) from exc
                logger.warning("Send to %s failed: connection closed. Waiting & retrying once...", target)
            await self._lifecycle.wait_ready(self._ready_timeout)
        raise PermanentSendError("send attempts exhausted")  # pragma: no cover

    async def send_text(self, target: str, text: str, mentions: list[str] | None = None) -> Any:
        return await self.send(target, OutboundContent.of_text(text, mentions))
