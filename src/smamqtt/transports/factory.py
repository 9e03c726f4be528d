"""Factory functions for creating transport instances.

Example:
    # Modbus TCP (inverter or RS485-to-Ethernet gateway)
    transport = create_modbus_transport(host="192.168.1.100")

    # Modbus RTU (USB-to-RS485 adapter)
    transport = create_serial_transport(port="/dev/ttyUSB0")

    # From bridge configuration
    transport = create_transport_from_config(config)
"""

from __future__ import annotations

from enum import StrEnum
from typing import TYPE_CHECKING

from ._modbus_base import BaseModbusTransport
from .modbus import DEFAULT_MODBUS_PORT, ModbusTransport
from .modbus_serial import DEFAULT_BAUDRATE, ModbusSerialTransport

if TYPE_CHECKING:
    from smamqtt.config import BridgeConfig


class TransportType(StrEnum):
    """Transport type enumeration."""

    # Modbus TCP, directly or via RS485-to-Ethernet adapter
    MODBUS_TCP = "modbus_tcp"

    # Modbus RTU over a local serial port
    MODBUS_SERIAL = "modbus_serial"


def create_modbus_transport(
    host: str,
    *,
    port: int = DEFAULT_MODBUS_PORT,
    timeout: float = 1.0,
) -> ModbusTransport:
    """Create a Modbus TCP transport.

    Args:
        host: Inverter or gateway IP address or hostname
        port: Modbus TCP port (default: 502)
        timeout: Per-call timeout in seconds (default: 1.0)

    Returns:
        ModbusTransport instance, not yet connected
    """
    return ModbusTransport(host=host, port=port, timeout=timeout)


def create_serial_transport(
    port: str,
    *,
    baudrate: int = DEFAULT_BAUDRATE,
    parity: str = "N",
    timeout: float = 1.0,
) -> ModbusSerialTransport:
    """Create a Modbus RTU serial transport.

    Args:
        port: Serial port path (e.g. /dev/ttyUSB0)
        baudrate: Serial baud rate (default: 9600)
        parity: Parity setting (default: 'N')
        timeout: Per-call timeout in seconds (default: 1.0)

    Returns:
        ModbusSerialTransport instance, not yet connected
    """
    return ModbusSerialTransport(port=port, baudrate=baudrate, parity=parity, timeout=timeout)


def create_transport_from_config(config: BridgeConfig) -> BaseModbusTransport:
    """Create the transport selected by a bridge configuration.

    Args:
        config: Validated bridge configuration

    Returns:
        TCP transport when ``inverter_host`` is set, serial transport otherwise
    """
    if config.transport_type is TransportType.MODBUS_TCP:
        assert config.inverter_host is not None
        return create_modbus_transport(
            config.inverter_host,
            port=config.inverter_port,
            timeout=config.timeout,
        )

    assert config.serial_port is not None
    return create_serial_transport(
        config.serial_port,
        baudrate=config.baudrate,
        timeout=config.timeout,
    )
