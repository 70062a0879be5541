"""Transport session ownership -- lifecycle state machine and credentials."""

from .credentials import CredentialStore
from .lifecycle import CloseKind, LifecycleManager, SessionState, classify_close
from .transport import (
    ConnectionUpdate,
    CredentialsUpdated,
    DisconnectInfo,
    MessageReceived,
    OutboundContent,
    TransportSession,
    load_transport_factory,
)

__all__ = [
    "CloseKind",
    "ConnectionUpdate",
    "CredentialStore",
    "CredentialsUpdated",
    "DisconnectInfo",
    "LifecycleManager",
    "MessageReceived",
    "OutboundContent",
    "SessionState",
    "TransportSession",
    "classify_close",
    "load_transport_factory",
]
