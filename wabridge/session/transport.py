"""Transport provider contract.

The chat network's wire protocol, pairing and session crypto live in an
external provider.  The gateway only sees the objects defined here: a
factory that opens a :class:`TransportSession` against a credential store,
and the events that session yields.
"""

from __future__ import annotations

import importlib
from collections.abc import AsyncIterator, Awaitable, Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Literal, Protocol, Union

if TYPE_CHECKING:
    from .credentials import CredentialStore

# Status code the provider reports when the server invalidated the session.
LOGGED_OUT_STATUS = 401


@dataclass(frozen=True)
class DisconnectInfo:
    status_code: int | None = None
    reason: str = ""


@dataclass(frozen=True)
class CredentialsUpdated:
    blob: dict[str, Any]


@dataclass(frozen=True)
class ConnectionUpdate:
    state: Literal["open", "close", "pairing-challenge"]
    qr: str | None = None
    disconnect: DisconnectInfo | None = None


@dataclass(frozen=True)
class MessageReceived:
    payload: dict[str, Any]


TransportEvent = Union[CredentialsUpdated, ConnectionUpdate, MessageReceived]


@dataclass
class OutboundContent:
    """What to send: plain text, or an image with an optional caption."""

    text: str | None = None
    image: bytes | None = None
    caption: str | None = None
    mentions: list[str] = field(default_factory=list)

    @classmethod
    def of_text(cls, text: str, mentions: list[str] | None = None) -> OutboundContent:
        return cls(text=text, mentions=list(mentions or []))

    @classmethod
    def of_image(cls, data: bytes, caption: str = "") -> OutboundContent:
        return cls(image=data, caption=caption)


class TransportSession(Protocol):
    """A live connection opened by the provider."""

    @property
    def own_id(self) -> str | None: ...

    def events(self) -> AsyncIterator[TransportEvent]: ...

    async def send(self, target: str, content: OutboundContent) -> Any: ...

    async def end_session(self) -> None:
        """Log this device out gracefully; stored credentials are left alone."""
        ...

    async def close(self) -> None:
        """Drop the underlying connection."""
        ...


TransportFactory = Callable[["CredentialStore"], Awaitable[TransportSession]]


def load_transport_factory(path: str) -> TransportFactory:
    """Resolve a ``package.module:attribute`` path to a transport factory."""
    module_name, sep, attr = path.partition(":")
    if not sep or not module_name or not attr:
        raise ValueError(f"Invalid transport factory {path!r}, expected 'module:attribute'")
    module = importlib.import_module(module_name)
    factory = getattr(module, attr, None)
    if not callable(factory):
        raise ValueError(f"Transport factory {path!r} is not callable")
    return factory
