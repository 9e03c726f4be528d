"""Measurement register layouts for SMA inverters.

Fixed binary layouts for the holding register groups the bridge polls.
Each layout is a declarative table: fields are decoded in order from a
big-endian byte block, and gaps between documented sub-fields are explicit
``Skip`` entries rather than offsets to validate.

Register groups (function code 0x03):

| Group | Start | Count | Contents |
|-------|-------|-------|----------|
| serial_number | 30005 | 4 | Device serial number (U32) |
| totals | 30513 | 8 | Lifetime and daily PV generation (U64, Wh) |
| ac | 30769 | 76 | PV1 DC input, AC power/voltage/current/frequency |
| secondary | 30953 | 12 | Internal temperature, PV2 DC input |

Field names are the JSON keys published on MQTT.  Once published they
MUST NOT change.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Literal


class ScaleFactor(int, Enum):
    """Divisor applied to raw register value."""

    NONE = 1
    DIV_10 = 10
    DIV_100 = 100
    DIV_1000 = 1000


@dataclass(frozen=True)
class RegisterField:
    """Single numeric field within a register layout.

    Attributes:
        name: Key of the decoded value in the Measurement Set.
        bit_width: 16, 32 or 64 bits (1, 2 or 4 registers), big-endian.
        signed: True for two's-complement signed values.
        scale: Divisor applied after sign interpretation.
    """

    name: str
    bit_width: Literal[16, 32, 64] = 32
    signed: bool = False
    scale: ScaleFactor = ScaleFactor.NONE

    @property
    def byte_count(self) -> int:
        return self.bit_width // 8

    def apply_scale(self, raw: int) -> int | float:
        """Scale a raw value; unscaled fields keep their integer value."""
        if self.scale is ScaleFactor.NONE:
            return raw
        return raw / self.scale.value


@dataclass(frozen=True)
class Skip:
    """Fixed-width gap between documented fields."""

    byte_count: int


LayoutEntry = RegisterField | Skip


@dataclass(frozen=True)
class RegisterLayout:
    """Contiguous register group and how to decode it.

    Attributes:
        name: Group name used in logs and errors.
        start: First holding register of the group.
        count: Number of registers read for the group.  May exceed what the
            entries consume; trailing registers are ignored.
        entries: Ordered fields and skips.
    """

    name: str
    start: int
    count: int
    entries: tuple[LayoutEntry, ...]

    @property
    def required_bytes(self) -> int:
        """Number of bytes the entries consume."""
        return sum(entry.byte_count for entry in self.entries)

    def fields(self) -> list[tuple[RegisterField, int]]:
        """Return each field with its byte offset in the block."""
        offset = 0
        located: list[tuple[RegisterField, int]] = []
        for entry in self.entries:
            if isinstance(entry, RegisterField):
                located.append((entry, offset))
            offset += entry.byte_count
        return located

    def field(self, name: str) -> RegisterField:
        """Look up a field by name.

        Raises:
            KeyError: If the layout has no such field.
        """
        for entry, _offset in self.fields():
            if entry.name == name:
                return entry
        raise KeyError(f"Layout '{self.name}' has no field '{name}'")


# =============================================================================
# LAYOUTS
# =============================================================================

SERIAL_NUMBER_LAYOUT = RegisterLayout(
    name="serial_number",
    start=30005,
    count=4,
    entries=(RegisterField("SerialNumber"),),
)

TOTALS_LAYOUT = RegisterLayout(
    name="totals",
    start=30513,
    count=8,
    entries=(
        RegisterField("TotalPVGeneration", 64, scale=ScaleFactor.DIV_1000),
        RegisterField("TodayPVGeneration", 64, scale=ScaleFactor.DIV_1000),
    ),
)

AC_LAYOUT = RegisterLayout(
    name="ac",
    start=30769,
    count=76,
    entries=(
        RegisterField("PV1Current", signed=True, scale=ScaleFactor.DIV_1000),
        RegisterField("PV1Voltage", signed=True, scale=ScaleFactor.DIV_100),
        RegisterField("PV1Power"),
        RegisterField("ActivePower", signed=True),
        RegisterField("L1ActivePower", signed=True),
        RegisterField("L2ActivePower", signed=True),
        RegisterField("L3ActivePower", signed=True),
        RegisterField("L1Voltage", scale=ScaleFactor.DIV_100),
        RegisterField("L2Voltage", scale=ScaleFactor.DIV_100),
        RegisterField("L3Voltage", scale=ScaleFactor.DIV_100),
        # L1-L2, L2-L3, L3-L1 line voltages
        Skip(12),
        RegisterField("TotalCurrent", scale=ScaleFactor.DIV_1000),
        # L1, L2, L3 currents
        Skip(12),
        RegisterField("Frequency", scale=ScaleFactor.DIV_100),
        RegisterField("ReactivePower", signed=True),
        RegisterField("L1ReactivePower", signed=True),
        RegisterField("L2ReactivePower", signed=True),
        RegisterField("L3ReactivePower", signed=True),
        RegisterField("ApparentPower", signed=True),
        RegisterField("L1ApparentPower", signed=True),
        RegisterField("L2ApparentPower", signed=True),
        RegisterField("L3ApparentPower", signed=True),
    ),
)

SECONDARY_LAYOUT = RegisterLayout(
    name="secondary",
    start=30953,
    count=12,
    entries=(
        RegisterField("Temperature", signed=True, scale=ScaleFactor.DIV_10),
        Skip(4),
        RegisterField("PV2Current", signed=True, scale=ScaleFactor.DIV_1000),
        RegisterField("PV2Voltage", signed=True, scale=ScaleFactor.DIV_100),
        RegisterField("PV2Power"),
    ),
)

# SMA "not available" marker for 32-bit values.
NAN_U32 = 0x80000000


@dataclass(frozen=True)
class PublishGuard:
    """Field whose sentinel value suppresses publication of a poll."""

    field: str
    sentinel: int = NAN_U32


@dataclass(frozen=True)
class MeasurementProfile:
    """Register groups read per poll and the guard deciding publication."""

    groups: tuple[RegisterLayout, ...]
    guard: PublishGuard

    def __post_init__(self) -> None:
        # Unknown guard fields are rejected on construction.
        self.guard_field()

    def guard_field(self) -> RegisterField:
        """Return the field definition the guard refers to.

        Raises:
            KeyError: If no group contains the guard field.
        """
        for layout in self.groups:
            try:
                return layout.field(self.guard.field)
            except KeyError:
                continue
        raise KeyError(f"No register group defines guard field '{self.guard.field}'")

    def is_publishable(self, measurements: dict[str, int | float]) -> bool:
        """True unless the guard field holds the "not available" sentinel."""
        if self.guard.field not in measurements:
            return False
        field = self.guard_field()
        raw = self.guard.sentinel
        if field.signed and raw >= 1 << (field.bit_width - 1):
            raw -= 1 << field.bit_width
        sentinel = field.apply_scale(raw)
        return measurements[self.guard.field] != sentinel


MEASUREMENT_GROUPS: tuple[RegisterLayout, ...] = (TOTALS_LAYOUT, AC_LAYOUT, SECONDARY_LAYOUT)

DEFAULT_PROFILE = MeasurementProfile(
    groups=MEASUREMENT_GROUPS,
    guard=PublishGuard("PV1Power"),
)

BY_NAME: dict[str, RegisterLayout] = {
    layout.name: layout for layout in (SERIAL_NUMBER_LAYOUT, *MEASUREMENT_GROUPS)
}
