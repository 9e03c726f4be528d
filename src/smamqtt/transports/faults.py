"""Transport fault policy.

Connection-level faults (timeout, reset, refused, unreachable, lost) cannot
be repaired in-process: the transport handle may be half-open or hold a
stale response.  The policy escalates them to :class:`TransportFatalError`
and the bridge exits so the process supervisor restarts it from a clean
state.  Everything else is returned to the call site, which logs it and
carries on.
"""

from __future__ import annotations

import errno
import logging

from .exceptions import FaultKind, TransportError, TransportFatalError

_LOGGER = logging.getLogger(__name__)

EXIT_TRANSPORT_FAULT = 1

FATAL_KINDS: frozenset[FaultKind] = frozenset(
    {
        FaultKind.TIMEOUT,
        FaultKind.CONNECTION_RESET,
        FaultKind.CONNECTION_REFUSED,
        FaultKind.HOST_UNREACHABLE,
        FaultKind.CONNECTION_LOST,
    }
)

_ERRNO_KINDS: dict[int, FaultKind] = {
    errno.ETIMEDOUT: FaultKind.TIMEOUT,
    errno.ECONNRESET: FaultKind.CONNECTION_RESET,
    errno.ECONNREFUSED: FaultKind.CONNECTION_REFUSED,
    errno.EHOSTUNREACH: FaultKind.HOST_UNREACHABLE,
    errno.EPIPE: FaultKind.CONNECTION_LOST,
    errno.ECONNABORTED: FaultKind.CONNECTION_LOST,
}


def classify_os_error(err: OSError) -> FaultKind:
    """Map an ``OSError`` to a fault kind using its errno."""
    if isinstance(err, TimeoutError):
        return FaultKind.TIMEOUT
    if err.errno is not None and err.errno in _ERRNO_KINDS:
        return _ERRNO_KINDS[err.errno]
    if isinstance(err, ConnectionRefusedError):
        return FaultKind.CONNECTION_REFUSED
    if isinstance(err, ConnectionResetError):
        return FaultKind.CONNECTION_RESET
    if isinstance(err, ConnectionError):
        return FaultKind.CONNECTION_LOST
    return FaultKind.UNKNOWN


class FaultPolicy:
    """Decide whether a transport error is fatal to the process."""

    def __init__(self, fatal_kinds: frozenset[FaultKind] = FATAL_KINDS) -> None:
        self._fatal_kinds = fatal_kinds
        self._tripped: TransportFatalError | None = None

    @property
    def tripped(self) -> bool:
        """True once a fatal fault has been observed."""
        return self._tripped is not None

    @property
    def fatal_error(self) -> TransportFatalError | None:
        """The first fatal fault observed, if any."""
        return self._tripped

    def is_fatal(self, err: TransportError) -> bool:
        """Return True if ``err`` is a connection-level fault."""
        return err.kind in self._fatal_kinds

    def check(self, err: TransportError) -> TransportError:
        """Escalate fatal faults, hand transient ones back to the caller.

        Args:
            err: The transport error observed during a transaction

        Returns:
            ``err`` itself when it is transient.

        Raises:
            TransportFatalError: If ``err`` is a connection-level fault.
        """
        if not self.is_fatal(err):
            return err

        fatal = TransportFatalError(err)
        if self._tripped is None:
            self._tripped = fatal
            _LOGGER.critical(
                "Fatal transport fault (%s): %s; exiting for supervisor restart",
                err.kind.value,
                err,
            )
        raise fatal from err

    def ensure_healthy(self) -> None:
        """Refuse further transactions once the policy has tripped.

        Raises:
            TransportFatalError: If a fatal fault was already observed.
        """
        if self._tripped is not None:
            raise TransportFatalError(self._tripped.cause)
