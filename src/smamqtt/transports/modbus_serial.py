"""Modbus RTU serial transport implementation.

This module provides the ModbusSerialTransport class for direct local
communication with inverters via Modbus RTU over USB-to-RS485 serial
adapters.

IMPORTANT: Single-Client Limitation
------------------------------------
RS485 is half-duplex: one request/response pair may be on the wire at a
time, across every unit on the line.  Route all traffic through
:class:`smamqtt.bus.BusCoordinator`.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from ._modbus_base import BaseModbusTransport
from .exceptions import TransportConnectionError

if TYPE_CHECKING:
    from pymodbus.client import AsyncModbusSerialClient

_LOGGER = logging.getLogger(__name__)

__all__ = ["DEFAULT_BAUDRATE", "ModbusSerialTransport"]

DEFAULT_BAUDRATE = 9600


class ModbusSerialTransport(BaseModbusTransport):
    """Modbus RTU serial transport for local inverter communication.

    Example:
        transport = ModbusSerialTransport(port="/dev/ttyUSB0")
        async with transport:
            transport.unit_id = 3
            registers = await transport.read_holding_registers(30005, 4)

    Note:
        Requires the `pymodbus` and `pyserial` packages to be installed.
    """

    transport_type: str = "modbus_serial"

    def __init__(
        self,
        port: str,
        baudrate: int = DEFAULT_BAUDRATE,
        bytesize: int = 8,
        parity: str = "N",
        stopbits: int = 1,
        unit_id: int = 1,
        timeout: float = 1.0,
    ) -> None:
        """Initialize Modbus serial transport.

        Args:
            port: Serial port path (e.g., /dev/ttyUSB0, COM3)
            baudrate: Serial baud rate (default 9600)
            bytesize: Data bits per byte (default 8)
            parity: Parity setting - 'N' (none), 'E' (even), 'O' (odd)
            stopbits: Number of stop bits (default 1)
            unit_id: Initial Modbus unit/slave ID
            timeout: Per-call timeout in seconds
        """
        super().__init__(unit_id=unit_id, timeout=timeout)
        self._port = port
        self._baudrate = baudrate
        self._bytesize = bytesize
        self._parity = parity
        self._stopbits = stopbits
        # Narrow type for serial client
        self._client: AsyncModbusSerialClient | None = None

    @property
    def port(self) -> str:
        """Get the serial port path."""
        return self._port

    @property
    def baudrate(self) -> int:
        """Get the serial baud rate."""
        return self._baudrate

    @property
    def description(self) -> str:
        return f"{self._port}@{self._baudrate}"

    async def connect(self) -> None:
        """Establish Modbus RTU serial connection.

        Raises:
            TransportConnectionError: If connection fails
        """
        try:
            from pymodbus.client import AsyncModbusSerialClient

            self._client = AsyncModbusSerialClient(
                port=self._port,
                baudrate=self._baudrate,
                bytesize=self._bytesize,
                parity=self._parity,
                stopbits=self._stopbits,
                timeout=self._timeout,
                retries=0,
                reconnect_delay=0,
            )

            connected = await self._client.connect()
            if not connected:
                raise TransportConnectionError(f"Failed to connect to serial port {self._port}")

            self._connected = True
            _LOGGER.info(
                "Modbus serial transport connected to %s @ %d baud",
                self._port,
                self._baudrate,
            )

            # Brief delay to allow serial port to stabilize
            await asyncio.sleep(0.2)

        except ImportError as err:
            raise TransportConnectionError(
                "pymodbus or pyserial package not installed"
            ) from err
        except PermissionError as err:
            _LOGGER.error("Permission denied opening serial port %s: %s", self._port, err)
            raise TransportConnectionError(
                f"Permission denied for {self._port}. "
                "On Linux, add user to 'dialout' group: "
                "sudo usermod -a -G dialout $USER"
            ) from err
        except (TimeoutError, OSError) as err:
            _LOGGER.error("Failed to connect to serial port %s: %s", self._port, err)
            raise TransportConnectionError(
                f"Failed to connect to {self._port}: {err}. "
                "Verify: (1) serial port exists, (2) device is connected, "
                "(3) port is not in use by another application."
            ) from err

    async def disconnect(self) -> None:
        """Close Modbus serial connection."""
        if self._client:
            self._client.close()
            self._client = None

        self._connected = False
        _LOGGER.debug("Modbus serial transport disconnected from %s", self._port)
