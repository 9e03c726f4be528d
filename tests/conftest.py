"""Pytest configuration and fixtures for smamqtt tests."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from smamqtt.bus import BusCoordinator
from smamqtt.identity import DeviceRegistry
from smamqtt.mqtt import MqttPublisher, Topics
from smamqtt.transports.faults import FaultPolicy

SERIAL = 123456789
ADDRESS = 3


class FakeTransport:
    """In-memory register bank standing in for a Modbus transport.

    Registers are stored per unit id.  Every read/write records the unit id
    selected when the call began plus begin/end events, so tests can check
    that calls never overlap.
    """

    description = "fake"

    def __init__(self, delay: float = 0.0) -> None:
        self.unit_id = 1
        self.delay = delay
        self.banks: dict[int, dict[int, int]] = {}
        self.calls: list[tuple[str, int, int, int]] = []
        self.events: list[tuple[str, int]] = []
        self.errors: dict[tuple[int, int], Exception] = {}
        self.connect = AsyncMock()
        self.disconnect = AsyncMock()

    # -- register helpers -------------------------------------------------

    def set_words(self, unit: int, address: int, words: list[int]) -> None:
        bank = self.banks.setdefault(unit, {})
        for offset, word in enumerate(words):
            bank[address + offset] = word & 0xFFFF

    def set_u16(self, unit: int, address: int, value: int) -> None:
        self.set_words(unit, address, [value])

    def set_u32(self, unit: int, address: int, value: int) -> None:
        value &= 0xFFFFFFFF
        self.set_words(unit, address, [value >> 16, value & 0xFFFF])

    def set_s32(self, unit: int, address: int, value: int) -> None:
        self.set_u32(unit, address, value & 0xFFFFFFFF)

    def set_u64(self, unit: int, address: int, value: int) -> None:
        self.set_words(unit, address, [(value >> shift) & 0xFFFF for shift in (48, 32, 16, 0)])

    def fail(self, unit: int, address: int, error: Exception) -> None:
        """Make every call for ``address`` on ``unit`` raise ``error``."""
        self.errors[(unit, address)] = error

    # -- transport interface ----------------------------------------------

    async def read_holding_registers(self, address: int, count: int) -> list[int]:
        unit = self.unit_id
        self.events.append(("begin", unit))
        try:
            await asyncio.sleep(self.delay)
            self.calls.append(("read", unit, address, count))
            error = self.errors.get((unit, address))
            if error is not None:
                raise error
            bank = self.banks.get(unit, {})
            return [bank.get(address + offset, 0) for offset in range(count)]
        finally:
            self.events.append(("end", unit))

    async def write_register(self, address: int, value: int) -> None:
        unit = self.unit_id
        self.events.append(("begin", unit))
        try:
            await asyncio.sleep(self.delay)
            self.calls.append(("write", unit, address, value))
            error = self.errors.get((unit, address))
            if error is not None:
                raise error
            self.set_u16(unit, address, value)
        finally:
            self.events.append(("end", unit))


def load_inverter(transport: FakeTransport, unit: int = ADDRESS, serial: int = SERIAL) -> None:
    """Fill a unit's bank with a plausible daytime reading."""
    transport.set_u32(unit, 30005, serial)
    transport.set_u64(unit, 30513, 12_345_678)
    transport.set_u64(unit, 30517, 4_321)
    transport.set_s32(unit, 30769, 8_250)  # PV1Current
    transport.set_s32(unit, 30771, 41_230)  # PV1Voltage
    transport.set_u32(unit, 30773, 3_401)  # PV1Power
    transport.set_s32(unit, 30775, 5_980)  # ActivePower
    transport.set_s32(unit, 30777, 1_990)
    transport.set_s32(unit, 30779, 1_995)
    transport.set_s32(unit, 30781, 1_995)
    transport.set_u32(unit, 30783, 23_010)
    transport.set_u32(unit, 30785, 23_120)
    transport.set_u32(unit, 30787, 22_980)
    transport.set_u32(unit, 30795, 26_100)  # TotalCurrent
    transport.set_u32(unit, 30803, 5_002)  # Frequency
    transport.set_s32(unit, 30805, -120)  # ReactivePower
    transport.set_s32(unit, 30813, 6_010)  # ApparentPower
    transport.set_s32(unit, 30953, 415)  # Temperature
    transport.set_s32(unit, 30957, 7_100)  # PV2Current
    transport.set_s32(unit, 30959, 38_850)  # PV2Voltage
    transport.set_u32(unit, 30961, 2_758)  # PV2Power


@pytest.fixture
def transport() -> FakeTransport:
    """Empty fake transport."""
    return FakeTransport()


@pytest.fixture
def fault_policy() -> FaultPolicy:
    return FaultPolicy()


@pytest.fixture
def bus(transport: FakeTransport, fault_policy: FaultPolicy) -> BusCoordinator:
    return BusCoordinator(transport, fault_policy)


@pytest.fixture
def registry(bus: BusCoordinator) -> DeviceRegistry:
    """Registry for the single default unit address."""
    return DeviceRegistry([ADDRESS], bus)


@pytest.fixture
def mqtt_client() -> MagicMock:
    """Mock aiomqtt client recording publishes."""
    client = MagicMock()
    client.publish = AsyncMock()
    client.subscribe = AsyncMock()
    return client


@pytest.fixture
def publisher(mqtt_client: MagicMock) -> MqttPublisher:
    return MqttPublisher(mqtt_client, Topics())
