"""Bridge SMA inverter Modbus registers to MQTT.

Usage:
    Run the bridge:
        sma-mqtt-bridge --inverterhost 192.168.1.50 --address 3

    Embed the pieces:
        from smamqtt import BusCoordinator, DeviceRegistry, PollEngine
        from smamqtt.transports import create_modbus_transport

        transport = create_modbus_transport("192.168.1.50")
        async with transport:
            bus = BusCoordinator(transport)
            registry = DeviceRegistry([3], bus)
            serial = await registry.resolve(3)
"""

from __future__ import annotations

from .bus import BusCoordinator
from .codec import decode, decode_registers, registers_to_bytes
from .commands import Command, CommandDispatcher
from .config import BridgeConfig
from .exceptions import ConfigurationError, DecodeError, SmaBridgeError
from .identity import DeviceRegistry
from .mqtt import MqttPublisher, Topics
from .poller import PollEngine

__version__ = "0.1.0"
__all__ = [
    "BridgeConfig",
    "BusCoordinator",
    "Command",
    "CommandDispatcher",
    "DeviceRegistry",
    "MqttPublisher",
    "PollEngine",
    "Topics",
    # Codec
    "decode",
    "decode_registers",
    "registers_to_bytes",
    # Exceptions
    "SmaBridgeError",
    "DecodeError",
    "ConfigurationError",
]
