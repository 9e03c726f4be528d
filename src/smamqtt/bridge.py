"""Bridge runtime.

Wires one Modbus transport, one MQTT session and the process-scoped state
(bus lock, identity registry) shared by the poll loop and the command
listener.  Both run as tasks on a single event loop; the first fatal error
in either ends the process with a non-zero exit status so the supervisor
can restart it cleanly.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

import aiomqtt

from smamqtt.bus import BusCoordinator
from smamqtt.commands import CommandDispatcher
from smamqtt.identity import DeviceRegistry
from smamqtt.mqtt import MqttPublisher, Topics
from smamqtt.poller import PollEngine
from smamqtt.transports.exceptions import TransportError, TransportFatalError
from smamqtt.transports.factory import create_transport_from_config
from smamqtt.transports.faults import EXIT_TRANSPORT_FAULT, FaultPolicy

if TYPE_CHECKING:
    from smamqtt.bus import RegisterTransport
    from smamqtt.config import BridgeConfig

_LOGGER = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_MQTT_ERROR = 2


def _payload_bytes(payload: object) -> bytes:
    if payload is None:
        return b""
    if isinstance(payload, (bytes, bytearray)):
        return bytes(payload)
    return str(payload).encode()


class Bridge:
    """Poll loop and command listener sharing one bus and one registry."""

    def __init__(
        self,
        config: BridgeConfig,
        transport: RegisterTransport,
        client: aiomqtt.Client,
    ) -> None:
        self._config = config
        self._client = client
        self.fault_policy = FaultPolicy()
        self.bus = BusCoordinator(transport, self.fault_policy)
        self.registry = DeviceRegistry(config.addresses, self.bus)
        self.topics = Topics(config.topic_prefix)
        self.publisher = MqttPublisher(client, self.topics)
        self.poller = PollEngine(
            self.bus,
            self.registry,
            self.publisher,
            wait=config.wait,
            device_delay=config.device_delay,
        )
        self.dispatcher = CommandDispatcher(self.bus, self.registry, self.publisher)

    async def listen(self) -> None:
        """Subscribe to command topics and dispatch messages until cancelled."""
        await self._client.subscribe(self.topics.command_subscription)
        _LOGGER.info("Subscribed to %s", self.topics.command_subscription)
        async for message in self._client.messages:
            await self.dispatcher.handle_message(
                str(message.topic), _payload_bytes(message.payload)
            )

    async def run(self) -> None:
        """Run poll loop and command listener until one of them fails."""
        async with asyncio.TaskGroup() as group:
            group.create_task(self.poller.run_forever(), name="poll")
            group.create_task(self.listen(), name="commands")


async def run_bridge(config: BridgeConfig) -> int:
    """Connect transport and broker, then run the bridge.

    Returns:
        Process exit status.
    """
    transport = create_transport_from_config(config)
    try:
        await transport.connect()
    except TransportError as err:
        _LOGGER.error("Cannot connect to inverter at %s: %s", transport.description, err)
        return EXIT_TRANSPORT_FAULT

    exit_code = EXIT_OK
    try:
        async with aiomqtt.Client(
            hostname=config.mqtt_host,
            port=config.mqtt_port,
            identifier=config.mqtt_client_id,
            username=config.mqtt_username,
            password=config.mqtt_password,
        ) as client:
            _LOGGER.info("MQTT connected to %s:%d", config.mqtt_host, config.mqtt_port)
            await Bridge(config, transport, client).run()
    except* TransportFatalError:
        exit_code = EXIT_TRANSPORT_FAULT
    except* aiomqtt.MqttError as group:
        _LOGGER.error("MQTT error: %s", group.exceptions[0])
        exit_code = EXIT_MQTT_ERROR
    finally:
        await transport.disconnect()

    return exit_code
