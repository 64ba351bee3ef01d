"""Conversions between values and the 4-byte little-endian form sent on the wire."""

from __future__ import annotations

import struct
from collections.abc import Iterable
from enum import Enum

_INT32 = struct.Struct("<i")
_FLOAT32 = struct.Struct("<f")


class LineEnd(Enum):
    """Line ending appended when writing a line."""

    RN = "\r\n"
    N = "\n"
    R = "\r"
    NR = "\n\r"


def _four_bytes(data: Iterable[int]) -> bytes:
    raw = bytes(data)
    if len(raw) != 4:
        raise ValueError(f"exactly 4 bytes are needed, got {len(raw)}")
    return raw


def bytes_to_int(data: Iterable[int]) -> int:
    """Decode 4 little-endian bytes as a signed 32-bit integer."""
    return _INT32.unpack(_four_bytes(data))[0]


def int_to_bytes(value: int) -> bytes:
    """Encode a signed 32-bit integer as 4 little-endian bytes."""
    value = int(value)
    if not -(2**31) <= value < 2**31:
        raise ValueError(f"{value} does not fit in a signed 32-bit integer")
    return _INT32.pack(value)


def bytes_to_float(data: Iterable[int]) -> float:
    """Decode 4 little-endian bytes as an IEEE 754 single-precision float."""
    return _FLOAT32.unpack(_four_bytes(data))[0]


def float_to_bytes(value: float) -> bytes:
    """Encode a float as 4 little-endian IEEE 754 single-precision bytes."""
    return _FLOAT32.pack(float(value))


def line_end_to_str(line_end: LineEnd) -> str:
    """The characters a line ending stands for."""
    return LineEnd(line_end).value