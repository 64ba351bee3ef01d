"""Error codes and exceptions raised by the ASerial protocol layer."""

from __future__ import annotations

from enum import IntEnum


class ErrorCode(IntEnum):
    """Codes recorded by a packet codec when reading goes wrong."""

    NONE = 0x0000
    WARNING_READ_SKIP = 0x0010
    ADD_FLAG_CASCADE = 0x0020
    DEVICE_ID_MISMATCH = 0x0021
    DATA_COUNT_OVER = 0x0022
    CHECK_DATA_MISMATCH = 0x0023


class ASerialError(Exception):
    """Base class of every error raised by this package."""


class PacketError(ASerialError):
    """A received byte could not be accepted as part of a valid packet."""

    def __init__(self, code: ErrorCode, message: str) -> None:
        super().__init__(message)
        self.code = ErrorCode(code)
        self.message = message

    def __repr__(self) -> str:
        return f"PacketError(code={self.code.name}, message={self.message!r})"