"""Bridge configuration.

``BridgeConfig`` holds every setting the bridge needs: MQTT broker, topic
prefix, inverter connection (TCP host or serial port), unit addresses to
poll and timing.  It validates on construction and round-trips through
plain dictionaries.

Example:
    config = BridgeConfig(inverter_host="192.168.1.50", addresses=[3, 4])
    config.transport_type  # TransportType.MODBUS_TCP

    data = config.to_dict()
    restored = BridgeConfig.from_dict(data)
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from smamqtt.exceptions import ConfigurationError
from smamqtt.mqtt import DEFAULT_TOPIC_PREFIX
from smamqtt.transports._modbus_base import MAX_UNIT_ID, MIN_UNIT_ID
from smamqtt.transports.factory import TransportType
from smamqtt.transports.modbus import DEFAULT_MODBUS_PORT
from smamqtt.transports.modbus_serial import DEFAULT_BAUDRATE


class BridgeConfig(BaseModel):
    """Configuration for one bridge process.

    Attributes:
        mqtt_host: MQTT broker hostname
        mqtt_port: MQTT broker port
        mqtt_client_id: MQTT client identifier
        mqtt_username: Optional broker username
        mqtt_password: Optional broker password
        topic_prefix: First topic segment for every published/subscribed topic
        inverter_host: Modbus TCP host (mutually exclusive with serial_port)
        inverter_port: Modbus TCP port
        serial_port: Modbus RTU serial device (mutually exclusive with inverter_host)
        baudrate: Serial baud rate
        addresses: Modbus unit addresses to poll, in order
        wait: Pause between poll cycles in seconds
        device_delay: Pause between identity resolution and measurement read
        timeout: Per-call Modbus timeout in seconds
        debug: Verbose logging
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    mqtt_host: str = "localhost"
    mqtt_port: int = Field(default=1883, ge=1, le=65535)
    mqtt_client_id: str = "SMAClient"
    mqtt_username: str | None = None
    mqtt_password: str | None = None
    topic_prefix: str = DEFAULT_TOPIC_PREFIX

    inverter_host: str | None = None
    inverter_port: int = Field(default=DEFAULT_MODBUS_PORT, ge=1, le=65535)
    serial_port: str | None = None
    baudrate: int = Field(default=DEFAULT_BAUDRATE, gt=0)

    addresses: tuple[int, ...] = (3,)
    wait: float = Field(default=10.0, ge=0)
    device_delay: float = Field(default=0.1, ge=0)
    timeout: float = Field(default=1.0, gt=0)
    debug: bool = False

    @field_validator("addresses")
    @classmethod
    def _check_addresses(cls, value: tuple[int, ...]) -> tuple[int, ...]:
        if not value:
            raise ValueError("at least one Modbus address is required")
        for address in value:
            if not MIN_UNIT_ID <= address <= MAX_UNIT_ID:
                raise ValueError(
                    f"Modbus address {address} outside {MIN_UNIT_ID}-{MAX_UNIT_ID}"
                )
        if len(set(value)) != len(value):
            raise ValueError("Modbus addresses must be unique")
        return value

    @field_validator("topic_prefix")
    @classmethod
    def _check_topic_prefix(cls, value: str) -> str:
        value = value.strip("/")
        if not value or any(char in value for char in "+#"):
            raise ValueError("topic prefix must be non-empty and free of wildcards")
        return value

    @model_validator(mode="after")
    def _check_inverter(self) -> BridgeConfig:
        if bool(self.inverter_host) == bool(self.serial_port):
            raise ValueError("exactly one of inverter_host or serial_port is required")
        return self

    @property
    def transport_type(self) -> TransportType:
        """Transport selected by the inverter connection settings."""
        if self.inverter_host:
            return TransportType.MODBUS_TCP
        return TransportType.MODBUS_SERIAL

    def to_dict(self) -> dict[str, Any]:
        """Convert configuration to a JSON-serializable dictionary."""
        data = self.model_dump()
        data["addresses"] = list(self.addresses)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BridgeConfig:
        """Create configuration from a dictionary.

        Raises:
            ConfigurationError: If the values are invalid
        """
        try:
            return cls.model_validate(data)
        except ValidationError as err:
            raise ConfigurationError(str(err)) from err
