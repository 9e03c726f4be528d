"""Canonical Modbus register maps for SMA inverters.

- measurements: polled register groups, their layouts and the publish guard
- holding: holding registers reachable through MQTT commands
"""

from smamqtt.registers.holding import (
    COMMAND_REGISTERS,
    COMMAND_REGISTERS_TABLE,
    REGISTER_MAX_VALUE,
    REGISTER_MIN_VALUE,
    CommandFunction,
    CommandRegister,
    register_for,
)
from smamqtt.registers.measurements import (
    AC_LAYOUT,
    BY_NAME,
    DEFAULT_PROFILE,
    MEASUREMENT_GROUPS,
    NAN_U32,
    SECONDARY_LAYOUT,
    SERIAL_NUMBER_LAYOUT,
    TOTALS_LAYOUT,
    MeasurementProfile,
    PublishGuard,
    RegisterField,
    RegisterLayout,
    ScaleFactor,
    Skip,
)

__all__ = [
    # Measurement layouts
    "AC_LAYOUT",
    "BY_NAME",
    "DEFAULT_PROFILE",
    "MEASUREMENT_GROUPS",
    "NAN_U32",
    "SECONDARY_LAYOUT",
    "SERIAL_NUMBER_LAYOUT",
    "TOTALS_LAYOUT",
    "MeasurementProfile",
    "PublishGuard",
    "RegisterField",
    "RegisterLayout",
    "ScaleFactor",
    "Skip",
    # Command registers
    "COMMAND_REGISTERS",
    "COMMAND_REGISTERS_TABLE",
    "REGISTER_MAX_VALUE",
    "REGISTER_MIN_VALUE",
    "CommandFunction",
    "CommandRegister",
    "register_for",
]
