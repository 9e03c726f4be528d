"""Inbound MQTT command handling.

A command arrives on ``SMA/<serial>/<function>/set``.  The function name
selects one holding register from a closed table; an empty payload reads
it, a decimal payload writes it.  Every command that reaches a known
device gets exactly one result message, success or failure.  Commands for
unknown functions or serials are dropped without a result.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

from smamqtt.mqtt import Topics
from smamqtt.registers.holding import REGISTER_MAX_VALUE, REGISTER_MIN_VALUE, register_for
from smamqtt.transports.exceptions import TransportError, TransportFatalError

if TYPE_CHECKING:
    from smamqtt.bus import BusCoordinator
    from smamqtt.identity import DeviceRegistry
    from smamqtt.mqtt import MqttPublisher

_LOGGER = logging.getLogger(__name__)

FAILED_PREFIX = "failed: "
_DECIMAL = re.compile(r"-?[0-9]+")


@dataclass(frozen=True)
class Command:
    """A parsed inbound command.

    Attributes:
        serial: Target device serial number as it appears in the topic.
        function: Command function name.
        payload: Raw payload; empty means query.
    """

    serial: str
    function: str
    payload: bytes = b""

    @classmethod
    def from_message(
        cls,
        topic: str,
        payload: bytes | str | None,
        topics: Topics | None = None,
    ) -> Command | None:
        """Parse a command from an MQTT topic and payload.

        Returns None if the topic is not a command topic.
        """
        parsed = (topics if topics is not None else Topics()).parse_command(topic)
        if parsed is None:
            return None
        if payload is None:
            payload = b""
        elif isinstance(payload, str):
            payload = payload.encode()
        serial, function = parsed
        return cls(serial=serial, function=function, payload=payload)

    @property
    def is_query(self) -> bool:
        return len(self.payload) == 0

    def value(self) -> int:
        """Return the value to write.

        Raises:
            ValueError: If the payload is not a decimal integer in 16-bit range.
        """
        text = self.payload.decode("utf-8", errors="replace").strip()
        if _DECIMAL.fullmatch(text) is None:
            raise ValueError(f"invalid value '{text}'")
        value = int(text)
        if not REGISTER_MIN_VALUE <= value <= REGISTER_MAX_VALUE:
            raise ValueError(
                f"value {value} out of range {REGISTER_MIN_VALUE}-{REGISTER_MAX_VALUE}"
            )
        return value


class CommandDispatcher:
    """Turn commands into single guarded register reads or writes."""

    def __init__(
        self,
        bus: BusCoordinator,
        registry: DeviceRegistry,
        publisher: MqttPublisher,
    ) -> None:
        self._bus = bus
        self._registry = registry
        self._publisher = publisher

    async def handle_message(self, topic: str, payload: bytes | str | None) -> str | None:
        """Parse and dispatch one MQTT message.

        Returns:
            The published result, or None if the message was dropped.
        """
        _LOGGER.debug("MQTT message for topic %s received: %r", topic, payload)
        command = Command.from_message(topic, payload, self._publisher.topics)
        if command is None:
            _LOGGER.debug("Ignoring message on non-command topic %s", topic)
            return None
        return await self.dispatch(command)

    async def dispatch(self, command: Command) -> str | None:
        """Execute a command and publish its result.

        Returns:
            The published result, or None if the command was dropped.

        Raises:
            TransportFatalError: On a connection-level transport fault, after
                the failure result has been published.
        """
        register = register_for(command.function)
        if register is None:
            _LOGGER.debug("Unknown command function '%s'", command.function)
            return None

        address: int | None = None
        try:
            async with self._bus.acquire() as transport:
                address = self._registry.reverse_lookup(command.serial)
                if address is None:
                    _LOGGER.debug(
                        "Dropping %s for unknown serial %s", command.function, command.serial
                    )
                    return None

                transport.unit_id = address
                if command.is_query:
                    registers = await transport.read_holding_registers(register, 1)
                    result = str(registers[0] & 0xFFFF)
                else:
                    value = command.value()
                    await transport.write_register(register, value)
                    result = str(value)
        except TransportFatalError as err:
            # Refused before the serial was matched to a unit: no result.
            if address is not None:
                await self._publish(command, f"{FAILED_PREFIX}{err.cause}")
            raise
        except (TransportError, ValueError) as err:
            _LOGGER.error("Command %s for %s failed: %s", command.function, command.serial, err)
            return await self._publish(command, f"{FAILED_PREFIX}{err}")

        _LOGGER.info(
            "Command %s for %s (unit %d, register %d): %s",
            command.function,
            command.serial,
            address,
            register,
            result,
        )
        return await self._publish(command, result)

    async def _publish(self, command: Command, result: str) -> str:
        await self._publisher.publish_result(command.serial, command.function, result)
        return result
