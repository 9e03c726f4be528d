"""MQTT topic scheme and publishing.

Topics (prefix defaults to ``SMA``):

- ``SMA/<serial>``                      retained Measurement Set as JSON
- ``SMA/<serial>/<function>/set``       inbound command (subscribed as ``SMA/+/+/set``)
- ``SMA/<serial>/<function>/result``    command outcome, value or ``failed: <detail>``
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import aiomqtt

_LOGGER = logging.getLogger(__name__)

DEFAULT_TOPIC_PREFIX = "SMA"
COMMAND_SUFFIX = "set"
RESULT_SUFFIX = "result"


class Topics:
    """Build and parse bridge topics for one prefix."""

    def __init__(self, prefix: str = DEFAULT_TOPIC_PREFIX) -> None:
        self._prefix = prefix.rstrip("/")

    @property
    def prefix(self) -> str:
        return self._prefix

    @property
    def command_subscription(self) -> str:
        """Wildcard subscription matching every command topic."""
        return f"{self._prefix}/+/+/{COMMAND_SUFFIX}"

    def measurement(self, serial: int | str) -> str:
        return f"{self._prefix}/{serial}"

    def result(self, serial: int | str, function: str) -> str:
        return f"{self._prefix}/{serial}/{function}/{RESULT_SUFFIX}"

    def parse_command(self, topic: str) -> tuple[str, str] | None:
        """Split a command topic into ``(serial, function)``.

        Returns None for topics outside ``<prefix>/<serial>/<function>/set``.
        """
        parts = topic.split("/")
        prefix_parts = self._prefix.split("/")
        if len(parts) != len(prefix_parts) + 3:
            return None
        if parts[: len(prefix_parts)] != prefix_parts or parts[-1] != COMMAND_SUFFIX:
            return None
        serial, function = parts[len(prefix_parts)], parts[len(prefix_parts) + 1]
        if not serial or not function:
            return None
        return serial, function


class MqttPublisher:
    """Publish measurements and command results on an aiomqtt client."""

    def __init__(self, client: aiomqtt.Client, topics: Topics | None = None) -> None:
        self._client = client
        self._topics = topics if topics is not None else Topics()

    @property
    def topics(self) -> Topics:
        return self._topics

    async def publish_measurements(
        self,
        serial: int,
        measurements: Mapping[str, int | float],
    ) -> None:
        """Publish a Measurement Set as retained JSON on ``<prefix>/<serial>``."""
        topic = self._topics.measurement(serial)
        payload = json.dumps(dict(measurements))
        _LOGGER.debug("publish: %s %s", topic, payload)
        await self._client.publish(topic, payload=payload, retain=True)

    async def publish_result(self, serial: int | str, function: str, result: str) -> None:
        """Publish a command result on ``<prefix>/<serial>/<function>/result``."""
        topic = self._topics.result(serial, function)
        _LOGGER.debug("publish: %s %s", topic, result)
        await self._client.publish(topic, payload=result)
