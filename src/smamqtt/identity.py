"""Device identity registry.

Maps each configured Modbus unit address to the serial number read from the
device.  Serials are resolved lazily, once, and kept for the lifetime of
the process; MQTT topics use the serial, so this registry is also the only
way back from a command topic to a unit address.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING

from smamqtt.codec import decode_registers
from smamqtt.exceptions import DecodeError
from smamqtt.registers.measurements import SERIAL_NUMBER_LAYOUT
from smamqtt.transports.exceptions import TransportError

if TYPE_CHECKING:
    from smamqtt.bus import BusCoordinator, RegisterTransport

_LOGGER = logging.getLogger(__name__)


class DeviceRegistry:
    """Address ⇄ serial number mapping for the configured devices."""

    def __init__(self, addresses: Iterable[int], bus: BusCoordinator) -> None:
        self._addresses: tuple[int, ...] = tuple(addresses)
        self._bus = bus
        self._serials: dict[int, int] = {}

    @property
    def addresses(self) -> tuple[int, ...]:
        """Configured unit addresses in poll order."""
        return self._addresses

    def serial_for(self, address: int) -> int | None:
        """Return the cached serial for an address without touching the bus."""
        return self._serials.get(address)

    def record(self, address: int, serial: int) -> None:
        """Store the serial number read from ``address``."""
        previous = self._serials.get(address)
        if previous is not None and previous != serial:
            _LOGGER.warning(
                "Unit %d serial changed from %d to %d", address, previous, serial
            )
        self._serials[address] = serial

    def invalidate(self, address: int) -> None:
        """Forget the serial for ``address`` so the next poll re-reads it."""
        self._serials.pop(address, None)

    async def resolve(self, address: int) -> int | None:
        """Return the serial for ``address``, reading it from the device if needed.

        The read and the update of the cache happen in one bus transaction.
        Transient failures leave the address unresolved for the next cycle.

        Returns:
            The serial number, or None if it could not be read this time.

        Raises:
            TransportFatalError: On a connection-level transport fault.
        """
        serial = self._serials.get(address)
        if serial is not None:
            return serial

        async def _read_serial(transport: RegisterTransport) -> int:
            registers = await transport.read_holding_registers(
                SERIAL_NUMBER_LAYOUT.start, SERIAL_NUMBER_LAYOUT.count
            )
            value = int(decode_registers(registers, SERIAL_NUMBER_LAYOUT)["SerialNumber"])
            self.record(address, value)
            return value

        try:
            serial = await self._bus.with_bus(address, _read_serial)
        except (TransportError, DecodeError) as err:
            _LOGGER.debug("Could not read serial number of unit %d: %s", address, err)
            return None

        _LOGGER.info("Unit %d has serial number %d", address, serial)
        return serial

    def reverse_lookup(self, serial: int | str) -> int | None:
        """Return the configured address whose serial is ``serial``.

        Accepts the serial as it appears in a topic (decimal string).
        """
        try:
            wanted = int(serial)
        except (TypeError, ValueError):
            _LOGGER.debug("Not a serial number: %r", serial)
            return None

        for address in self._addresses:
            if self._serials.get(address) == wanted:
                _LOGGER.debug("Serial %d is unit %d", wanted, address)
                return address

        _LOGGER.debug("No unit address known for serial %d", wanted)
        return None
