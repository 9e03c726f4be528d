"""Transport layer for smamqtt.

Local Modbus access to the inverter over TCP or RTU serial, plus the fault
classification that decides when a transport error is fatal.

Usage:
    from smamqtt.transports import create_modbus_transport

    transport = create_modbus_transport(host="192.168.1.100")
    async with transport:
        transport.unit_id = 3
        registers = await transport.read_holding_registers(30005, 4)
"""

from __future__ import annotations

from ._modbus_base import BaseModbusTransport
from .exceptions import (
    FaultKind,
    TransportConnectionError,
    TransportError,
    TransportFatalError,
    TransportReadError,
    TransportTimeoutError,
    TransportWriteError,
)
from .factory import (
    TransportType,
    create_modbus_transport,
    create_serial_transport,
    create_transport_from_config,
)
from .faults import EXIT_TRANSPORT_FAULT, FATAL_KINDS, FaultPolicy, classify_os_error
from .modbus import ModbusTransport
from .modbus_serial import ModbusSerialTransport

__all__ = [
    # Factory functions (recommended)
    "create_modbus_transport",
    "create_serial_transport",
    "create_transport_from_config",
    "TransportType",
    # Transport implementations
    "BaseModbusTransport",
    "ModbusTransport",
    "ModbusSerialTransport",
    # Fault policy
    "FaultPolicy",
    "FaultKind",
    "FATAL_KINDS",
    "EXIT_TRANSPORT_FAULT",
    "classify_os_error",
    # Exceptions
    "TransportError",
    "TransportConnectionError",
    "TransportTimeoutError",
    "TransportReadError",
    "TransportWriteError",
    "TransportFatalError",
]
