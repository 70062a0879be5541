"""Exception hierarchy shared by the session and messaging layers."""

from __future__ import annotations


class GatewayError(Exception):
    """Base class for errors surfaced to callers of the send path."""


class TransientUnavailable(GatewayError):
    """The session did not become ready within the wait window."""


class PermanentSendError(GatewayError):
    """An outbound message could not be delivered, even after a retry."""


class TransportClosedError(Exception):
    """Raised by transport providers when the underlying connection is closed."""


_CLOSED_MARKERS = ("connection closed", "sock is closed")


def is_connection_closed(exc: BaseException) -> bool:
    """Return True when *exc* reports a dropped transport connection."""
    if isinstance(exc, TransportClosedError):
        return True
    text = str(exc).lower()
    return any(marker in text for marker in _CLOSED_MARKERS)
