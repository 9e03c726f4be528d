"""Modbus TCP transport implementation.

This module provides the ModbusTransport class for local communication
with inverters via Modbus TCP, either directly or through an
RS485-to-Ethernet gateway.

IMPORTANT: Single-Client Limitation
------------------------------------
A Modbus TCP gateway answers exactly one request at a time on a session.
Interleaved requests cause transaction ID desynchronization and responses
delivered to the wrong caller.  The bridge funnels every request through
:class:`smamqtt.bus.BusCoordinator`; do not share this transport with code
that bypasses it.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ._modbus_base import BaseModbusTransport
from .exceptions import FaultKind, TransportConnectionError
from .faults import classify_os_error

if TYPE_CHECKING:
    from pymodbus.client import AsyncModbusTcpClient

_LOGGER = logging.getLogger(__name__)

__all__ = ["DEFAULT_MODBUS_PORT", "ModbusTransport"]

DEFAULT_MODBUS_PORT = 502


class ModbusTransport(BaseModbusTransport):
    """Modbus TCP transport for local inverter communication.

    Example:
        transport = ModbusTransport(host="192.168.1.100")
        async with transport:
            transport.unit_id = 3
            registers = await transport.read_holding_registers(30005, 4)
    """

    transport_type: str = "modbus_tcp"

    def __init__(
        self,
        host: str,
        port: int = DEFAULT_MODBUS_PORT,
        unit_id: int = 1,
        timeout: float = 1.0,
    ) -> None:
        """Initialize Modbus transport.

        Args:
            host: IP address or hostname of the inverter or Modbus TCP gateway
            port: TCP port (default 502 for Modbus)
            unit_id: Initial Modbus unit/slave ID
            timeout: Per-call timeout in seconds
        """
        super().__init__(unit_id=unit_id, timeout=timeout)
        self._host = host
        self._port = port
        # Narrow type for TCP client
        self._client: AsyncModbusTcpClient | None = None

    @property
    def host(self) -> str:
        """Get the Modbus host."""
        return self._host

    @property
    def port(self) -> int:
        """Get the Modbus TCP port."""
        return self._port

    @property
    def description(self) -> str:
        return f"{self._host}:{self._port}"

    async def connect(self) -> None:
        """Establish Modbus TCP connection.

        pymodbus retries and automatic reconnects are disabled; a lost
        session is a fatal fault handled by the process supervisor.

        Raises:
            TransportConnectionError: If connection fails
        """
        try:
            # Import pymodbus here so patching the client class in tests works
            from pymodbus.client import AsyncModbusTcpClient

            self._client = AsyncModbusTcpClient(
                host=self._host,
                port=self._port,
                timeout=self._timeout,
                retries=0,
                reconnect_delay=0,
            )

            connected = await self._client.connect()
            if not connected:
                raise TransportConnectionError(
                    f"Failed to connect to Modbus host at {self._host}:{self._port}",
                    kind=FaultKind.CONNECTION_REFUSED,
                )

            self._connected = True
            _LOGGER.info("Modbus transport connected to %s:%s", self._host, self._port)

        except ImportError as err:
            raise TransportConnectionError("pymodbus package not installed") from err
        except (TimeoutError, OSError) as err:
            _LOGGER.error(
                "Failed to connect to Modbus host at %s:%s: %s",
                self._host,
                self._port,
                err,
            )
            raise TransportConnectionError(
                f"Failed to connect to {self._host}:{self._port}: {err}",
                kind=classify_os_error(err),
            ) from err

    async def disconnect(self) -> None:
        """Close Modbus TCP connection."""
        if self._client:
            self._client.close()
            self._client = None

        self._connected = False
        _LOGGER.debug("Modbus transport disconnected from %s:%s", self._host, self._port)
