"""Shared Modbus transport logic for TCP and Serial transports.

This module provides the BaseModbusTransport class containing the
single-register and block read/write primitives the bridge needs, plus the
translation of pymodbus and socket errors into classified
:class:`~smamqtt.transports.exceptions.TransportError` instances.

The transport does not serialize callers itself and does not retry:
exclusive access is the job of :class:`smamqtt.bus.BusCoordinator`, and the
only retry strategy is the next poll cycle or the next command.

Subclasses must implement:
- connect() / disconnect(): protocol-specific connection management
"""

from __future__ import annotations

import logging
from types import TracebackType
from typing import Any

from pymodbus.exceptions import ConnectionException, ModbusException, ModbusIOException

from .exceptions import (
    FaultKind,
    TransportConnectionError,
    TransportError,
    TransportReadError,
    TransportTimeoutError,
    TransportWriteError,
)
from .faults import classify_os_error

_LOGGER = logging.getLogger(__name__)

__all__ = ["BaseModbusTransport", "MAX_UNIT_ID", "MIN_UNIT_ID"]

MIN_UNIT_ID = 1
MAX_UNIT_ID = 247


class BaseModbusTransport:
    """Base class for Modbus-based transports (TCP and Serial).

    Subclasses must set ``self._client`` to a pymodbus async client
    in ``connect()`` and clear it in ``disconnect()``.
    """

    transport_type: str = "modbus"

    def __init__(
        self,
        *,
        unit_id: int = MIN_UNIT_ID,
        timeout: float = 1.0,
    ) -> None:
        """Initialize base Modbus transport.

        Args:
            unit_id: Initial Modbus unit/slave ID
            timeout: Per-call timeout in seconds
        """
        self._unit_id = unit_id
        self._timeout = timeout
        self._client: Any = None
        self._connected = False

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def unit_id(self) -> int:
        """Get the Modbus unit/slave ID addressed by the next request."""
        return self._unit_id

    @unit_id.setter
    def unit_id(self, value: int) -> None:
        """Select the Modbus unit/slave ID for subsequent requests."""
        if not MIN_UNIT_ID <= value <= MAX_UNIT_ID:
            raise ValueError(f"Modbus unit id must be {MIN_UNIT_ID}-{MAX_UNIT_ID}, got {value}")
        self._unit_id = value

    @property
    def timeout(self) -> float:
        """Get the per-call timeout in seconds."""
        return self._timeout

    @property
    def is_connected(self) -> bool:
        """Check if the transport is connected."""
        return self._connected

    @property
    def description(self) -> str:
        """Short human-readable description of the endpoint."""
        return self.transport_type

    # ------------------------------------------------------------------
    # Connection management
    # ------------------------------------------------------------------

    async def connect(self) -> None:
        """Establish the connection."""
        raise NotImplementedError

    async def disconnect(self) -> None:
        """Close the connection."""
        raise NotImplementedError

    async def __aenter__(self) -> BaseModbusTransport:
        await self.connect()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.disconnect()

    def _ensure_connected(self) -> None:
        if not self._connected or self._client is None:
            raise TransportConnectionError(
                "Transport not connected",
                kind=FaultKind.CONNECTION_LOST,
            )

    # ------------------------------------------------------------------
    # Register Read/Write
    # ------------------------------------------------------------------

    async def read_holding_registers(self, address: int, count: int) -> list[int]:
        """Read a block of holding registers (function code 0x03).

        Args:
            address: Starting register address
            count: Number of registers to read (max 125 per request)

        Returns:
            List of 16-bit register values

        Raises:
            TransportReadError: If the device answers with an error or garbage
            TransportTimeoutError: If the device does not answer in time
            TransportConnectionError: If the link is down
        """
        self._ensure_connected()

        try:
            result = await self._client.read_holding_registers(
                address=address,
                count=count,
                device_id=self._unit_id,
            )
        except (ModbusException, OSError) as err:
            raise self._translate(err, "reading", address, TransportReadError) from err

        if result.isError():
            raise TransportReadError(
                f"Modbus read error at address {address}: {result}",
                kind=FaultKind.DEVICE_ERROR,
            )

        registers = getattr(result, "registers", None)
        if registers is None or len(registers) < count:
            raise TransportReadError(
                f"Invalid Modbus response at address {address}: "
                f"expected {count} registers, got {0 if registers is None else len(registers)}"
            )

        return list(registers)

    async def write_register(self, address: int, value: int) -> None:
        """Write a single holding register (function code 0x06).

        Args:
            address: Register address
            value: 16-bit value to write

        Raises:
            TransportWriteError: If the device rejects the write
            TransportTimeoutError: If the device does not answer in time
            TransportConnectionError: If the link is down
        """
        self._ensure_connected()

        try:
            result = await self._client.write_register(
                address=address,
                value=value,
                device_id=self._unit_id,
            )
        except (ModbusException, OSError) as err:
            raise self._translate(err, "writing", address, TransportWriteError) from err

        if result.isError():
            _LOGGER.error("Modbus error writing register %d: %s", address, result)
            raise TransportWriteError(f"Modbus write error at address {address}: {result}")

    def _translate(
        self,
        err: Exception,
        action: str,
        address: int,
        fallback: type[TransportError],
    ) -> TransportError:
        """Convert a pymodbus/socket exception into a classified TransportError."""
        if isinstance(err, TimeoutError):
            return TransportTimeoutError(f"Timeout {action} register {address}")

        if isinstance(err, OSError):
            kind = classify_os_error(err)
            if kind is FaultKind.TIMEOUT:
                return TransportTimeoutError(f"Timeout {action} register {address}")
            return TransportConnectionError(
                f"Connection error {action} register {address}: {err}",
                kind=kind if kind is not FaultKind.UNKNOWN else FaultKind.CONNECTION_LOST,
            )

        if isinstance(err, ConnectionException):
            return TransportConnectionError(
                f"Connection lost {action} register {address}: {err}",
                kind=FaultKind.CONNECTION_LOST,
            )

        message = str(err).lower()
        if isinstance(err, ModbusIOException) and (
            "timeout" in message or "no response" in message
        ):
            return TransportTimeoutError(f"Timeout {action} register {address}")

        return fallback(f"Failed {action} register {address}: {err}")
