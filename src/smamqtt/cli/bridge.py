#!/usr/bin/env python3
"""SMA Modbus to MQTT bridge.

Polls SMA inverters over Modbus TCP or RTU and publishes their
measurements on MQTT; accepts register read/write commands on
``SMA/<serial>/<function>/set``.

Every option can also be set through an ``SMA_*`` environment variable,
which may come from a ``.env`` file in the working directory.

Usage:
    sma-mqtt-bridge --inverterhost 192.168.1.50 --address 3
    sma-mqtt-bridge --inverterport /dev/ttyUSB0 --address 3 4 --debug
    sma-mqtt-bridge --help
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from collections.abc import Mapping, Sequence
from typing import Any

from dotenv import load_dotenv

from smamqtt import __version__
from smamqtt.bridge import run_bridge
from smamqtt.config import BridgeConfig
from smamqtt.exceptions import ConfigurationError

_LOGGER = logging.getLogger(__name__)

ENV_PREFIX = "SMA_"


def _env(environ: Mapping[str, str], name: str, default: Any = None) -> Any:
    return environ.get(f"{ENV_PREFIX}{name}", default)


def _env_flag(environ: Mapping[str, str], name: str) -> bool:
    return str(_env(environ, name, "")).lower() in ("1", "true", "yes", "on")


def create_parser(environ: Mapping[str, str] | None = None) -> argparse.ArgumentParser:
    """Create argument parser with defaults taken from the environment."""
    env = os.environ if environ is None else environ

    parser = argparse.ArgumentParser(
        prog="sma-mqtt-bridge",
        description="Bridge SMA inverter Modbus registers to MQTT.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  sma-mqtt-bridge -i 192.168.1.50
      Poll unit 3 via Modbus TCP, publish to MQTT on localhost

  sma-mqtt-bridge -p /dev/ttyUSB0 -a 3 4 -w 5000
      Poll units 3 and 4 via RS485 every 5 seconds
""",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    mqtt_group = parser.add_argument_group("MQTT Options")
    mqtt_group.add_argument(
        "--mqtthost",
        "-m",
        default=_env(env, "MQTT_HOST", "localhost"),
        help="MQTT broker host (default: %(default)s)",
    )
    mqtt_group.add_argument(
        "--mqttport",
        type=int,
        default=int(_env(env, "MQTT_PORT", 1883)),
        help="MQTT broker port (default: %(default)s)",
    )
    mqtt_group.add_argument(
        "--mqttclientid",
        "-c",
        default=_env(env, "MQTT_CLIENT_ID", "SMAClient"),
        help="MQTT client identifier (default: %(default)s)",
    )
    mqtt_group.add_argument(
        "--mqttuser",
        default=_env(env, "MQTT_USERNAME"),
        help="MQTT username",
    )
    mqtt_group.add_argument(
        "--mqttpassword",
        default=_env(env, "MQTT_PASSWORD"),
        help="MQTT password",
    )
    mqtt_group.add_argument(
        "--prefix",
        default=_env(env, "TOPIC_PREFIX", "SMA"),
        help="Topic prefix (default: %(default)s)",
    )

    conn_group = parser.add_argument_group("Inverter Connection Options")
    conn_group.add_argument(
        "--inverterhost",
        "-i",
        default=_env(env, "INVERTER_HOST"),
        help="Inverter or Modbus TCP gateway host",
    )
    conn_group.add_argument(
        "--modbusport",
        type=int,
        default=int(_env(env, "MODBUS_PORT", 502)),
        help="Modbus TCP port (default: %(default)s)",
    )
    conn_group.add_argument(
        "--inverterport",
        "-p",
        default=_env(env, "INVERTER_PORT"),
        help="Serial port for Modbus RTU (e.g. /dev/ttyUSB0)",
    )
    conn_group.add_argument(
        "--baudrate",
        type=int,
        default=int(_env(env, "BAUDRATE", 9600)),
        help="Serial baud rate (default: %(default)s)",
    )
    conn_group.add_argument(
        "--timeout",
        type=float,
        default=float(_env(env, "TIMEOUT", 1.0)),
        help="Modbus per-call timeout in seconds (default: %(default)s)",
    )

    poll_group = parser.add_argument_group("Polling Options")
    poll_group.add_argument(
        "--address",
        "-a",
        type=int,
        nargs="+",
        action="extend",
        help="Modbus unit address(es) to poll (default: 3)",
    )
    poll_group.add_argument(
        "--wait",
        "-w",
        type=float,
        default=float(_env(env, "WAIT", 10000)),
        help="Wait between poll cycles in milliseconds (default: %(default)s)",
    )
    parser.add_argument(
        "--debug",
        "-d",
        action="store_true",
        default=_env_flag(env, "DEBUG"),
        help="Enable debug logging",
    )
    return parser


def config_from_args(
    args: argparse.Namespace,
    environ: Mapping[str, str] | None = None,
) -> BridgeConfig:
    """Build a validated configuration from parsed arguments.

    Raises:
        ConfigurationError: If the arguments do not form a valid configuration
    """
    env = os.environ if environ is None else environ
    addresses = args.address
    if not addresses:
        raw = _env(env, "ADDRESSES", "3")
        try:
            addresses = [int(part) for part in raw.replace(",", " ").split()]
        except ValueError as err:
            raise ConfigurationError(f"Invalid {ENV_PREFIX}ADDRESSES value: {raw!r}") from err

    return BridgeConfig.from_dict(
        {
            "mqtt_host": args.mqtthost,
            "mqtt_port": args.mqttport,
            "mqtt_client_id": args.mqttclientid,
            "mqtt_username": args.mqttuser,
            "mqtt_password": args.mqttpassword,
            "topic_prefix": args.prefix,
            "inverter_host": args.inverterhost,
            "inverter_port": args.modbusport,
            "serial_port": args.inverterport,
            "baudrate": args.baudrate,
            "addresses": addresses,
            "wait": args.wait / 1000.0,
            "timeout": args.timeout,
            "debug": args.debug,
        }
    )


def setup_logging(debug: bool) -> None:
    """Configure root logging; pymodbus stays quiet unless debugging."""
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logging.getLogger("pymodbus").setLevel(logging.DEBUG if debug else logging.WARNING)


def log_banner(config: BridgeConfig) -> None:
    _LOGGER.info("MQTT Host         : %s", config.mqtt_host)
    _LOGGER.info("MQTT Client ID    : %s", config.mqtt_client_id)
    _LOGGER.info("SMA MODBUS addr   : %s", ", ".join(str(a) for a in config.addresses))
    if config.inverter_host:
        _LOGGER.info("SMA host          : %s:%d", config.inverter_host, config.inverter_port)
    else:
        _LOGGER.info("SMA serial port   : %s", config.serial_port)


def main(argv: Sequence[str] | None = None) -> int:
    """Main entry point."""
    load_dotenv()
    parser = create_parser()
    args = parser.parse_args(argv)

    try:
        config = config_from_args(args)
    except ConfigurationError as err:
        parser.error(str(err))

    setup_logging(config.debug)
    log_banner(config)

    try:
        return asyncio.run(run_bridge(config))
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    sys.exit(main())
