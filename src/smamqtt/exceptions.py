"""Exception classes for smamqtt.

Every error raised by the bridge derives from :class:`SmaBridgeError` so
callers can use a single ``except SmaBridgeError``.  Transport failures live
in :mod:`smamqtt.transports.exceptions` and carry a fault classification.
"""

from __future__ import annotations


class SmaBridgeError(Exception):
    """Base exception for all bridge errors."""

    pass


class DecodeError(SmaBridgeError):
    """A register block is shorter than its layout requires."""

    def __init__(self, layout: str, required: int, actual: int) -> None:
        """Initialize with the layout name and the byte counts involved.

        Args:
            layout: Name of the register layout being decoded
            required: Number of bytes the layout needs
            actual: Number of bytes that were supplied
        """
        self.layout = layout
        self.required = required
        self.actual = actual
        super().__init__(
            f"Register block for layout '{layout}' is {actual} bytes, "
            f"need at least {required}"
        )


class ConfigurationError(SmaBridgeError):
    """Bridge configuration is invalid or incomplete."""

    pass
