"""Writable holding registers reachable through MQTT commands.

Closed table mapping a command function name (third segment of
``SMA/<serial>/<function>/set``) to the single holding register it reads
or writes.  Values are raw unsigned 16-bit register contents; no scaling is
applied in either direction.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

REGISTER_MIN_VALUE = 0
REGISTER_MAX_VALUE = 0xFFFF


class CommandFunction(StrEnum):
    """Command function names accepted on the set topic."""

    SOC_MIN_ON_GRID = "socminongrid"
    SOC_MIN_OFF_GRID = "socminoffgrid"
    CHARGE_FORCE_GRID = "chargeforcegrid"
    CHARGE_FORCE_SOC = "chargeforcesoc"
    CHARGE_FORCE_POWER = "chargeforcepower"


@dataclass(frozen=True)
class CommandRegister:
    """Holding register behind a command function.

    Attributes:
        function: Command function name.
        address: Holding register address.
        description: Human-readable description.
    """

    function: CommandFunction
    address: int
    description: str = ""


COMMAND_REGISTERS_TABLE: tuple[CommandRegister, ...] = (
    CommandRegister(
        CommandFunction.SOC_MIN_ON_GRID,
        45356,
        "Minimum battery state of charge while grid connected.",
    ),
    CommandRegister(
        CommandFunction.SOC_MIN_OFF_GRID,
        45358,
        "Minimum battery state of charge in off-grid operation.",
    ),
    CommandRegister(
        CommandFunction.CHARGE_FORCE_GRID,
        47545,
        "Enable forced battery charging from the grid.",
    ),
    CommandRegister(
        CommandFunction.CHARGE_FORCE_SOC,
        47546,
        "Target state of charge for forced charging.",
    ),
    CommandRegister(
        CommandFunction.CHARGE_FORCE_POWER,
        47603,
        "Power limit for forced charging.",
    ),
)

COMMAND_REGISTERS: dict[str, int] = {
    entry.function.value: entry.address for entry in COMMAND_REGISTERS_TABLE
}


def register_for(function: str) -> int | None:
    """Return the register behind a command function, or None if unknown."""
    return COMMAND_REGISTERS.get(function)
