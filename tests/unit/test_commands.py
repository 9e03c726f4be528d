"""Tests for inbound command handling."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from conftest import ADDRESS, SERIAL, FakeTransport

from smamqtt.bus import BusCoordinator
from smamqtt.commands import Command, CommandDispatcher
from smamqtt.identity import DeviceRegistry
from smamqtt.mqtt import MqttPublisher, Topics
from smamqtt.transports.exceptions import (
    FaultKind,
    TransportConnectionError,
    TransportFatalError,
    TransportTimeoutError,
    TransportWriteError,
)
from smamqtt.transports.faults import FaultPolicy

RESULT_TOPIC = f"SMA/{SERIAL}/chargeforcesoc/result"


@pytest.fixture
def dispatcher(
    bus: BusCoordinator, registry: DeviceRegistry, publisher: MqttPublisher
) -> CommandDispatcher:
    registry.record(ADDRESS, SERIAL)
    return CommandDispatcher(bus, registry, publisher)


class TestCommand:
    """Parsing of command messages."""

    def test_from_message(self) -> None:
        command = Command.from_message(f"SMA/{SERIAL}/chargeforcesoc/set", b"1200")

        assert command == Command(str(SERIAL), "chargeforcesoc", b"1200")
        assert command.is_query is False
        assert command.value() == 1200

    def test_string_payload(self) -> None:
        command = Command.from_message(f"SMA/{SERIAL}/socminongrid/set", "50")
        assert command is not None
        assert command.payload == b"50"

    @pytest.mark.parametrize("payload", [b"", None])
    def test_empty_payload_is_query(self, payload: bytes | None) -> None:
        command = Command.from_message(f"SMA/{SERIAL}/socminongrid/set", payload)
        assert command is not None
        assert command.is_query is True

    @pytest.mark.parametrize(
        "topic",
        [f"SMA/{SERIAL}", f"SMA/{SERIAL}/socminongrid/result", "other/1/x/set"],
    )
    def test_non_command_topic(self, topic: str) -> None:
        assert Command.from_message(topic, b"1") is None

    def test_custom_prefix(self) -> None:
        command = Command.from_message("home/sma/42/chargeforcegrid/set", b"0", Topics("home/sma"))
        assert command == Command("42", "chargeforcegrid", b"0")

    @pytest.mark.parametrize(
        ("payload", "message"),
        [
            (b"abc", "invalid value 'abc'"),
            (b"12.5", "invalid value '12.5'"),
            (b"1_200", "invalid value '1_200'"),
            (b"+5", "invalid value '\\+5'"),
            ("\u0661\u0662".encode(), "invalid value"),
            (b"-1", "value -1 out of range 0-65535"),
            (b"65536", "value 65536 out of range 0-65535"),
        ],
    )
    def test_invalid_value(self, payload: bytes, message: str) -> None:
        command = Command("1", "chargeforcesoc", payload)
        with pytest.raises(ValueError, match=message):
            command.value()

    @pytest.mark.parametrize(("payload", "value"), [(b"0", 0), (b" 65535\n", 65535)])
    def test_value_bounds(self, payload: bytes, value: int) -> None:
        assert Command("1", "chargeforcesoc", payload).value() == value


class TestDispatchWrite:
    """Commands with a payload write the function's register."""

    @pytest.mark.asyncio
    async def test_write_and_echo(
        self,
        dispatcher: CommandDispatcher,
        transport: FakeTransport,
        mqtt_client: MagicMock,
    ) -> None:
        result = await dispatcher.handle_message(f"SMA/{SERIAL}/chargeforcesoc/set", b"1200")

        assert result == "1200"
        assert transport.calls == [("write", ADDRESS, 47546, 1200)]
        mqtt_client.publish.assert_awaited_once_with(RESULT_TOPIC, payload="1200")

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("function", "register"),
        [
            ("socminongrid", 45356),
            ("socminoffgrid", 45358),
            ("chargeforcegrid", 47545),
            ("chargeforcesoc", 47546),
            ("chargeforcepower", 47603),
        ],
    )
    async def test_function_registers(
        self,
        dispatcher: CommandDispatcher,
        transport: FakeTransport,
        function: str,
        register: int,
    ) -> None:
        await dispatcher.handle_message(f"SMA/{SERIAL}/{function}/set", b"7")

        assert transport.calls == [("write", ADDRESS, register, 7)]

    @pytest.mark.asyncio
    async def test_write_rejected_publishes_failure(
        self,
        dispatcher: CommandDispatcher,
        transport: FakeTransport,
        mqtt_client: MagicMock,
        fault_policy: FaultPolicy,
    ) -> None:
        transport.fail(
            ADDRESS, 47546, TransportWriteError("Modbus write error at address 47546: illegal")
        )

        result = await dispatcher.handle_message(f"SMA/{SERIAL}/chargeforcesoc/set", b"1200")

        assert result == "failed: Modbus write error at address 47546: illegal"
        mqtt_client.publish.assert_awaited_once_with(RESULT_TOPIC, payload=result)
        assert fault_policy.tripped is False

    @pytest.mark.asyncio
    async def test_invalid_payload_publishes_failure_without_bus_io(
        self,
        dispatcher: CommandDispatcher,
        transport: FakeTransport,
        mqtt_client: MagicMock,
    ) -> None:
        result = await dispatcher.handle_message(f"SMA/{SERIAL}/chargeforcesoc/set", b"lots")

        assert result == "failed: invalid value 'lots'"
        assert transport.calls == []
        mqtt_client.publish.assert_awaited_once_with(RESULT_TOPIC, payload=result)


class TestDispatchQuery:
    """Empty payloads read the function's register."""

    @pytest.mark.asyncio
    async def test_query_returns_register_value(
        self,
        dispatcher: CommandDispatcher,
        transport: FakeTransport,
        mqtt_client: MagicMock,
    ) -> None:
        transport.set_u16(ADDRESS, 45356, 20)

        result = await dispatcher.handle_message(f"SMA/{SERIAL}/socminongrid/set", b"")

        assert result == "20"
        assert transport.calls == [("read", ADDRESS, 45356, 1)]
        mqtt_client.publish.assert_awaited_once_with(
            f"SMA/{SERIAL}/socminongrid/result", payload="20"
        )


class TestDispatchDropped:
    """Commands that produce no result at all."""

    @pytest.mark.asyncio
    async def test_unknown_serial(
        self,
        dispatcher: CommandDispatcher,
        transport: FakeTransport,
        mqtt_client: MagicMock,
    ) -> None:
        result = await dispatcher.handle_message("SMA/987654321/chargeforcesoc/set", b"1200")

        assert result is None
        assert transport.calls == []
        mqtt_client.publish.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unknown_function(
        self,
        dispatcher: CommandDispatcher,
        transport: FakeTransport,
        mqtt_client: MagicMock,
    ) -> None:
        result = await dispatcher.handle_message(f"SMA/{SERIAL}/reboot/set", b"1")

        assert result is None
        assert transport.calls == []
        mqtt_client.publish.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_non_command_topic(
        self, dispatcher: CommandDispatcher, mqtt_client: MagicMock
    ) -> None:
        assert await dispatcher.handle_message(f"SMA/{SERIAL}", b"{}") is None
        mqtt_client.publish.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_serial_not_yet_resolved(
        self,
        bus: BusCoordinator,
        publisher: MqttPublisher,
        transport: FakeTransport,
        mqtt_client: MagicMock,
    ) -> None:
        dispatcher = CommandDispatcher(bus, DeviceRegistry([ADDRESS], bus), publisher)

        assert await dispatcher.handle_message(f"SMA/{SERIAL}/chargeforcesoc/set", b"1") is None
        assert transport.calls == []
        mqtt_client.publish.assert_not_awaited()


class TestDispatchFatal:
    """Connection level faults during a command."""

    @pytest.mark.asyncio
    async def test_connection_refused(
        self,
        dispatcher: CommandDispatcher,
        transport: FakeTransport,
        mqtt_client: MagicMock,
    ) -> None:
        cause = TransportConnectionError(
            "Connection error writing register 47546: [Errno 111] Connection refused",
            kind=FaultKind.CONNECTION_REFUSED,
        )
        transport.fail(ADDRESS, 47546, cause)

        with pytest.raises(TransportFatalError) as exc_info:
            await dispatcher.handle_message(f"SMA/{SERIAL}/chargeforcesoc/set", b"1200")

        assert exc_info.value.cause is cause
        mqtt_client.publish.assert_awaited_once_with(
            RESULT_TOPIC, payload=f"failed: {cause}"
        )

        # The bus refuses every later transaction.
        with pytest.raises(TransportFatalError):
            await dispatcher.handle_message(f"SMA/{SERIAL}/socminongrid/set", b"")
        assert transport.calls == [("write", ADDRESS, 47546, 1200)]
        mqtt_client.publish.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_refused_command_for_unknown_serial_has_no_result(
        self,
        dispatcher: CommandDispatcher,
        fault_policy: FaultPolicy,
        transport: FakeTransport,
        mqtt_client: MagicMock,
    ) -> None:
        with pytest.raises(TransportFatalError):
            fault_policy.check(TransportTimeoutError("Timeout reading register 30005"))

        with pytest.raises(TransportFatalError):
            await dispatcher.handle_message("SMA/987654321/chargeforcesoc/set", b"1200")

        assert transport.calls == []
        mqtt_client.publish.assert_not_awaited()
