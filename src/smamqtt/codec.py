"""Register block decoding.

One generic routine turns a raw big-endian byte block into named values by
walking a :class:`~smamqtt.registers.measurements.RegisterLayout`.  The
decoder is stateless and never rejects a value for being out of range; the
only failure is a block too short for its layout.
"""

from __future__ import annotations

import struct
from collections.abc import Iterable, Sequence

from smamqtt.exceptions import DecodeError
from smamqtt.registers.measurements import RegisterLayout

Measurements = dict[str, int | float]


def registers_to_bytes(registers: Sequence[int]) -> bytes:
    """Pack 16-bit register values into a big-endian byte block."""
    return struct.pack(f">{len(registers)}H", *(value & 0xFFFF for value in registers))


def decode(block: bytes, layout: RegisterLayout) -> Measurements:
    """Decode a register block according to a layout.

    Args:
        block: Raw bytes, two per register, big-endian
        layout: Layout describing the block

    Returns:
        Mapping of field name to scaled value

    Raises:
        DecodeError: If ``block`` is shorter than the layout requires
    """
    required = layout.required_bytes
    if len(block) < required:
        raise DecodeError(layout.name, required, len(block))

    values: Measurements = {}
    for field, offset in layout.fields():
        raw = int.from_bytes(
            block[offset : offset + field.byte_count],
            "big",
            signed=field.signed,
        )
        values[field.name] = field.apply_scale(raw)
    return values


def decode_registers(registers: Sequence[int], layout: RegisterLayout) -> Measurements:
    """Decode a list of register values as returned by the transport."""
    return decode(registers_to_bytes(registers), layout)


def merge(fragments: Iterable[Measurements]) -> Measurements:
    """Combine decoded fragments into one Measurement Set."""
    merged: Measurements = {}
    for fragment in fragments:
        merged.update(fragment)
    return merged
