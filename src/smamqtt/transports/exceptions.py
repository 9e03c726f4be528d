"""Transport-specific exceptions.

Every :class:`TransportError` carries a :class:`FaultKind` so the fault
policy can tell a dead link (timeout, reset, refused, unreachable) from a
bad answer on a healthy link.

All transport exceptions inherit from :class:`~smamqtt.exceptions.SmaBridgeError`.
"""

from __future__ import annotations

from enum import StrEnum

from smamqtt.exceptions import SmaBridgeError


class FaultKind(StrEnum):
    """Classification of a transport failure."""

    TIMEOUT = "timeout"
    CONNECTION_RESET = "connection_reset"
    CONNECTION_REFUSED = "connection_refused"
    HOST_UNREACHABLE = "host_unreachable"
    CONNECTION_LOST = "connection_lost"
    MALFORMED_RESPONSE = "malformed_response"
    DEVICE_ERROR = "device_error"
    UNKNOWN = "unknown"


class TransportError(SmaBridgeError):
    """Base exception for all transport errors."""

    default_kind: FaultKind = FaultKind.UNKNOWN

    def __init__(self, message: str, *, kind: FaultKind | None = None) -> None:
        """Initialize with a message and optional fault classification.

        Args:
            message: Human-readable error detail
            kind: Fault classification; defaults to the class's ``default_kind``
        """
        super().__init__(message)
        self.kind = kind if kind is not None else self.default_kind


class TransportConnectionError(TransportError):
    """Failed to connect to the device, or the connection was lost."""

    default_kind = FaultKind.CONNECTION_LOST


class TransportTimeoutError(TransportError):
    """Operation timed out."""

    default_kind = FaultKind.TIMEOUT


class TransportReadError(TransportError):
    """Failed to read data from device."""

    default_kind = FaultKind.MALFORMED_RESPONSE


class TransportWriteError(TransportError):
    """Failed to write data to device."""

    default_kind = FaultKind.DEVICE_ERROR


class TransportFatalError(SmaBridgeError):
    """A transport fault the process cannot recover from locally.

    Raised by the fault policy when a connection-level error is observed.
    It deliberately does not derive from :class:`TransportError` so that
    call sites absorbing transient transport errors let it through.
    """

    def __init__(self, cause: TransportError) -> None:
        """Initialize from the transport error that triggered it.

        Args:
            cause: The classified transport error
        """
        self.cause = cause
        self.kind = cause.kind
        super().__init__(f"Fatal transport fault ({cause.kind.value}): {cause}")
