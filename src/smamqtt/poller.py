"""Poll cycle engine.

Walks the configured unit addresses forever.  For each address it resolves
the serial number if still unknown, pauses briefly so the device can settle
between transactions, then reads every measurement group in one bus
transaction and publishes the merged Measurement Set.

A failure for one address never affects the others, and a failed cycle
never stops the loop.  Only fatal transport faults escape.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING

from smamqtt.codec import Measurements, decode_registers, merge
from smamqtt.exceptions import DecodeError
from smamqtt.registers.measurements import DEFAULT_PROFILE, MeasurementProfile
from smamqtt.transports.exceptions import TransportError, TransportFatalError

if TYPE_CHECKING:
    from smamqtt.bus import BusCoordinator, RegisterTransport
    from smamqtt.identity import DeviceRegistry
    from smamqtt.mqtt import MqttPublisher

_LOGGER = logging.getLogger(__name__)

DEFAULT_WAIT = 10.0
DEFAULT_DEVICE_DELAY = 0.1


class PollEngine:
    """Periodic register polling and publishing for all configured units."""

    def __init__(
        self,
        bus: BusCoordinator,
        registry: DeviceRegistry,
        publisher: MqttPublisher,
        addresses: Iterable[int] | None = None,
        *,
        wait: float = DEFAULT_WAIT,
        device_delay: float = DEFAULT_DEVICE_DELAY,
        profile: MeasurementProfile = DEFAULT_PROFILE,
    ) -> None:
        """Initialize the poll engine.

        Args:
            bus: Coordinator guarding the shared transport
            registry: Identity registry shared with the command dispatcher
            publisher: Destination for Measurement Sets
            addresses: Units to poll, in order (default: the registry's)
            wait: Pause after each full cycle in seconds
            device_delay: Pause between resolving and reading a unit in seconds
            profile: Register groups to read and the publish guard
        """
        self._bus = bus
        self._registry = registry
        self._publisher = publisher
        self._addresses = tuple(addresses) if addresses is not None else registry.addresses
        self._wait = wait
        self._device_delay = device_delay
        self._profile = profile
        self._stopping = False
        self._cycles = 0

    @property
    def cycles(self) -> int:
        """Number of completed cycles."""
        return self._cycles

    def stop(self) -> None:
        """Ask ``run_forever`` to return after the current cycle."""
        self._stopping = True

    async def run_forever(self) -> None:
        """Poll until stopped or a fatal transport fault occurs.

        Raises:
            TransportFatalError: On a connection-level transport fault.
        """
        self._stopping = False
        while not self._stopping:
            try:
                await self.run_cycle()
            except TransportFatalError:
                raise
            except Exception:
                _LOGGER.exception("Poll cycle failed")
            if self._stopping:
                break
            await asyncio.sleep(self._wait)

    async def run_cycle(self) -> dict[int, Measurements]:
        """Poll every configured unit once.

        Returns:
            The Measurement Sets published in this cycle, keyed by address.
        """
        published: dict[int, Measurements] = {}
        for address in self._addresses:
            try:
                measurements = await self._poll_address(address)
            except TransportFatalError:
                raise
            except Exception:
                _LOGGER.exception("Poll of unit %d failed", address)
                continue
            if measurements is not None:
                published[address] = measurements

        self._cycles += 1
        return published

    async def _poll_address(self, address: int) -> Measurements | None:
        _LOGGER.debug("query: %d", address)
        serial = await self._registry.resolve(address)
        await asyncio.sleep(self._device_delay)
        if serial is None:
            _LOGGER.debug("Unit %d has no known serial yet, skipping", address)
            return None
        return await self.poll_device(address, serial)

    async def poll_device(self, address: int, serial: int) -> Measurements | None:
        """Read, decode and publish one unit's measurements.

        Returns:
            The published Measurement Set, or None if nothing was published.

        Raises:
            TransportFatalError: On a connection-level transport fault.
        """
        try:
            measurements = await self._bus.with_bus(address, self._read_measurements)
        except (TransportError, DecodeError) as err:
            _LOGGER.error("Failed to read measurements from unit %d: %s", address, err)
            return None

        if not self._profile.is_publishable(measurements):
            _LOGGER.debug(
                "Unit %d reports %s as not available, not publishing",
                address,
                self._profile.guard.field,
            )
            return None

        _LOGGER.debug("Unit %d (%d): %s", address, serial, measurements)
        await self._publisher.publish_measurements(serial, measurements)
        return measurements

    async def _read_measurements(self, transport: RegisterTransport) -> Measurements:
        fragments = []
        for layout in self._profile.groups:
            registers = await transport.read_holding_registers(layout.start, layout.count)
            fragments.append(decode_registers(registers, layout))
        return merge(fragments)
