"""Connection lifecycle -- the single owner of the session state machine.

States move ``DISCONNECTED -> CONNECTING -> READY`` on a healthy bring-up.
Any close drops back to ``DISCONNECTED`` and schedules a debounced
reconnect; a close that means the server logged this device out passes
through ``RESETTING`` first, which wipes the credential store so the next
start asks for a fresh pairing.

A new session is only opened from ``DISCONNECTED``.  Every reset re-arms
the one-time boot notification.
"""

from __future__ import annotations

import asyncio
import enum
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from ..errors import TransientUnavailable
from .credentials import CredentialStore
from .transport import (
    LOGGED_OUT_STATUS,
    ConnectionUpdate,
    CredentialsUpdated,
    DisconnectInfo,
    MessageReceived,
    TransportEvent,
    TransportFactory,
    TransportSession,
)

logger = logging.getLogger(__name__)

RECONNECT_DELAY = 1.5
START_RETRY_DELAY = 2.0
MANUAL_RECONNECT_DELAY = 0.3
READY_TIMEOUT = 15.0

MessageHandler = Callable[[dict[str, Any]], Awaitable[None]]
ReadyHook = Callable[[], Awaitable[None]]
QrHook = Callable[[str], None]


class SessionState(str, enum.Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    READY = "ready"
    RESETTING = "resetting"


class CloseKind(str, enum.Enum):
    RECOVERABLE = "recoverable"
    LOGGED_OUT = "logged_out"


def classify_close(info: DisconnectInfo | None) -> CloseKind:
    """Decide whether a close invalidated the session server-side."""
    if info is None:
        return CloseKind.RECOVERABLE
    if info.status_code == LOGGED_OUT_STATUS or "logged out" in (info.reason or "").lower():
        return CloseKind.LOGGED_OUT
    return CloseKind.RECOVERABLE


class LifecycleManager:
    """Brings the transport session up, keeps it up, and tears it down."""

    def __init__(
        self,
        factory: TransportFactory,
        credentials: CredentialStore,
        *,
        on_message: MessageHandler | None = None,
        on_ready: ReadyHook | None = None,
        on_qr: QrHook | None = None,
    ) -> None:
        self._factory = factory
        self.credentials = credentials
        self.on_message = on_message
        self.on_ready = on_ready
        self.on_qr = on_qr

        self._state = SessionState.DISCONNECTED
        self._ready = asyncio.Event()
        self._session: TransportSession | None = None
        self._pending_qr: str | None = None
        self._starting = False
        self._announced = False
        self._reconnect: asyncio.TimerHandle | None = None
        self._dispatch_task: asyncio.Task[None] | None = None
        self._tasks: set[asyncio.Task[Any]] = set()

    # -- read-only accessors -----------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_ready(self) -> bool:
        return self._state is SessionState.READY

    @property
    def is_starting(self) -> bool:
        return self._starting

    @property
    def pending_qr(self) -> str | None:
        return self._pending_qr

    @property
    def session(self) -> TransportSession | None:
        return self._session

    @property
    def own_id(self) -> str | None:
        return self._session.own_id if self._session else None

    @property
    def reconnect_pending(self) -> bool:
        return self._reconnect is not None

    async def wait_ready(self, timeout: float = READY_TIMEOUT) -> None:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        # The event can be set and cleared again before this waiter runs.
        while not self.is_ready:
            remaining = deadline - loop.time()
            if remaining <= 0:
                raise TransientUnavailable("not-ready-timeout")
            try:
                await asyncio.wait_for(self._ready.wait(), remaining)
            except asyncio.TimeoutError:
                raise TransientUnavailable("not-ready-timeout") from None

    # -- state changes -----------------------------------------------------

    def _set_state(self, state: SessionState) -> None:
        if state is self._state:
            return
        logger.debug("Session state %s -> %s", self._state.value, state.value)
        self._state = state
        if state is SessionState.READY:
            self._ready.set()
        else:
            self._ready.clear()

    async def start(self) -> None:
        """Open a new transport session unless one is already on its way."""
        if self._starting or self._state is not SessionState.DISCONNECTED:
            return
        self._starting = True
        self._set_state(SessionState.CONNECTING)
        try:
            self.credentials.ensure()
            session = await self._factory(self.credentials)
        except Exception:
            logger.exception("Transport start failed; retrying in %.1fs", START_RETRY_DELAY)
            self._starting = False
            self._set_state(SessionState.DISCONNECTED)
            self.schedule_reconnect(START_RETRY_DELAY)
            return

        self._session = session
        self._dispatch_task = asyncio.create_task(self._dispatch(session))

    def schedule_reconnect(self, delay: float = RECONNECT_DELAY) -> None:
        """Schedule :meth:`start` after *delay*, replacing any pending schedule."""
        if self._reconnect is not None:
            self._reconnect.cancel()
        loop = asyncio.get_running_loop()
        self._reconnect = loop.call_later(delay, self._fire_reconnect)

    def _fire_reconnect(self) -> None:
        self._reconnect = None
        self._spawn(self.start())

    async def logout(self) -> None:
        """End the session without touching stored credentials."""
        await self._drop_session(graceful=True)
        self._pending_qr = None
        self._starting = False
        self._set_state(SessionState.DISCONNECTED)
        self.schedule_reconnect(MANUAL_RECONNECT_DELAY)

    async def reset_session(self) -> None:
        """Destroy the session and its credentials; the next start re-pairs."""
        await self._reset()
        self.schedule_reconnect(MANUAL_RECONNECT_DELAY)

    async def stop(self) -> None:
        if self._reconnect is not None:
            self._reconnect.cancel()
            self._reconnect = None
        await self._drop_session(graceful=False)
        self._starting = False
        self._set_state(SessionState.DISCONNECTED)
        for task in list(self._tasks):
            task.cancel()

    async def _reset(self) -> None:
        self._set_state(SessionState.RESETTING)
        self._starting = True
        self._pending_qr = None
        try:
            await self._drop_session(graceful=True)
            await self.credentials.wipe()
        except OSError:
            logger.exception("Failed to reset credential store at %s", self.credentials.path)
        finally:
            self._starting = False
            self._announced = False
            self._set_state(SessionState.DISCONNECTED)

    async def _drop_session(self, *, graceful: bool) -> None:
        session, self._session = self._session, None
        task, self._dispatch_task = self._dispatch_task, None
        if task is not None and task is not asyncio.current_task():
            task.cancel()
        if session is None:
            return
        if graceful:
            try:
                await session.end_session()
            except Exception as exc:
                logger.debug("end_session failed: %s", exc)
        try:
            await session.close()
        except Exception as exc:
            logger.debug("Transport close failed: %s", exc)

    # -- event handling ----------------------------------------------------

    async def _dispatch(self, session: TransportSession) -> None:
        try:
            async for event in session.events():
                if session is not self._session:
                    return
                await self._handle_event(event)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Transport event stream failed")
            if session is self._session:
                await self._on_close(DisconnectInfo(reason="event stream error"))
            return

        if session is self._session and self._state is not SessionState.DISCONNECTED:
            logger.warning("Transport event stream ended without a close event")
            await self._on_close(DisconnectInfo(reason="event stream ended"))

    async def _handle_event(self, event: TransportEvent) -> None:
        if isinstance(event, CredentialsUpdated):
            self.credentials.save(event.blob)
        elif isinstance(event, ConnectionUpdate):
            if event.state == "pairing-challenge" and event.qr:
                self._on_qr(event.qr)
            elif event.state == "open":
                self._on_open()
            elif event.state == "close":
                await self._on_close(event.disconnect)
        elif isinstance(event, MessageReceived):
            if self.on_message is not None:
                self._spawn(self.on_message(event.payload))

    def _on_qr(self, qr: str) -> None:
        self._pending_qr = qr
        logger.info("Pairing QR updated -- open /qr to scan.")
        if self.on_qr is not None:
            self.on_qr(qr)

    def _on_open(self) -> None:
        self._pending_qr = None
        self._starting = False
        self._set_state(SessionState.READY)
        logger.info("Transport connected as %s", self.own_id or "(unknown)")
        if not self._announced:
            self._announced = True
            if self.on_ready is not None:
                self._spawn(self.on_ready())

    async def _on_close(self, info: DisconnectInfo | None) -> None:
        self._starting = False
        self._set_state(SessionState.DISCONNECTED)
        kind = classify_close(info)
        logger.warning(
            "Connection closed (code=%s reason=%r, %s)",
            info.status_code if info else None,
            info.reason if info else "",
            kind.value,
        )
        if kind is CloseKind.LOGGED_OUT:
            logger.warning("Session logged out -- resetting credential store")
            await self._reset()
        else:
            await self._drop_session(graceful=False)
        self.schedule_reconnect(RECONNECT_DELAY)

    def _spawn(self, coro: Awaitable[Any]) -> asyncio.Task[Any]:
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)
        return task

    def _task_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("Background task failed", exc_info=task.exception())
