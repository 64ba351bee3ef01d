"""A general-purpose serial port for text, bytes and 4-byte numbers."""

from __future__ import annotations

from collections.abc import Iterable
from types import TracebackType

import serial

from .byteconv import LineEnd, bytes_to_float, bytes_to_int, float_to_bytes, int_to_bytes
from .errors import ASerialError
from .serial_port import port_name

DEFAULT_PORT = 1
DEFAULT_OPEN_PORT = 2
DEFAULT_BAUDRATE = 9600
BUFFER_SIZE = 10000
WRITE_TIMEOUT = 0.01
FLUSH_CHUNK = 8192
DEFAULT_READ_LIMIT = 256

_SERIAL_FAILURES = (serial.SerialException, OSError, ValueError)


def _terminator_byte(terminator: int | str | bytes) -> int:
    if isinstance(terminator, (str, bytes)):
        raw = terminator.encode("utf-8") if isinstance(terminator, str) else terminator
        if len(raw) != 1:
            raise ValueError("terminator must be a single byte")
        return raw[0]
    value = int(terminator)
    if not 0 <= value <= 0xFF:
        raise ValueError(f"terminator must be in range(0, 256), got {value}")
    return value


class SerialCom:
    """A serial port with helpers for strings, lines, bytes, ints and floats.

    Reads never wait: they return what has already arrived.
    """

    def __init__(self, line_end: LineEnd = LineEnd.N) -> None:
        self.line_end = LineEnd(line_end)
        self._handle: serial.Serial | None = None
        self._port = -1
        self._baud = -1

    @classmethod
    def open_port(
        cls,
        port: int = DEFAULT_PORT,
        baudrate: int = DEFAULT_BAUDRATE,
        dtr: bool = True,
        rts: bool = True,
    ) -> SerialCom:
        """Create an instance and open ``port`` on it."""
        com = cls()
        com.open(port, baudrate, dtr, rts)
        return com

    @property
    def is_open(self) -> bool:
        return self._handle is not None

    @property
    def port(self) -> int:
        """The number of the last port opened, -1 if none was."""
        return self._port

    @property
    def baud(self) -> int:
        """The baud rate of the last port opened, -1 if none was."""
        return self._baud

    def open(
        self,
        port: int = DEFAULT_OPEN_PORT,
        baudrate: int = DEFAULT_BAUDRATE,
        dtr: bool = True,
        rts: bool = True,
    ) -> None:
        """Open ``COM<port>``; raises if this instance already has a port open."""
        port = int(port)
        if port < 0:
            raise ASerialError(f"invalid port number: {port}")
        if self.is_open:
            raise ASerialError(
                f"a port is already open on this instance (COM{self._port}); "
                f"cannot open COM{port}"
            )

        name = port_name(port)
        handle = serial.Serial()
        try:
            handle.port = name
            handle.baudrate = int(baudrate)
            handle.bytesize = serial.EIGHTBITS
            handle.dtr = bool(dtr)
            handle.rts = bool(rts)
            handle.timeout = 0
            handle.inter_byte_timeout = None
            handle.write_timeout = WRITE_TIMEOUT
            handle.open()
        except _SERIAL_FAILURES as exc:
            raise ASerialError(f"failed to open port COM{port} ({name}): {exc}") from exc

        set_buffer_size = getattr(handle, "set_buffer_size", None)
        if callable(set_buffer_size):
            try:
                set_buffer_size(rx_size=BUFFER_SIZE, tx_size=BUFFER_SIZE)
            except _SERIAL_FAILURES as exc:
                handle.close()
                raise ASerialError(f"failed to set up port COM{port}: {exc}") from exc

        self._handle = handle
        self._port = port
        self._baud = int(baudrate)

    def close(self) -> None:
        """Close the port; does nothing if it is not open."""
        handle = self._handle
        if handle is None:
            return
        self._handle = None
        try:
            handle.close()
        except _SERIAL_FAILURES as exc:
            raise ASerialError(f"could not close COM{self._port}: {exc}") from exc

    def read_string(self) -> str | None:
        """Read until a null byte or the end of the waiting data."""
        return self.read_string_until(0)

    def read_line(self) -> str | None:
        """Read until a newline; a carriage return before it is dropped."""
        return self.read_string_until("\n")

    def read_string_until(self, terminator: int | str | bytes) -> str | None:
        """Read until ``terminator``, a null byte or the end of the waiting data.

        The terminator is not part of the result. Returns None when nothing
        was waiting to be read.
        """
        stop = _terminator_byte(terminator)
        handle = self._require_open()
        if self._waiting(handle) == 0:
            return None

        chars = bytearray()
        while True:
            chunk = self._read(handle, 1)
            if not chunk or chunk[0] == stop:
                if stop == 0x0A and chars.endswith(b"\r"):
                    del chars[-1]
                break
            if chunk[0] == 0:
                break
            chars += chunk
        return chars.decode("utf-8", errors="replace")

    def read_float(self) -> float | None:
        """Read a 4-byte little-endian float; None unless 4 bytes were read."""
        data = self.read_bytes(4)
        if len(data) != 4:
            return None
        return bytes_to_float(data)

    def read_int(self) -> int | None:
        """Read a 4-byte little-endian signed int; None unless 4 bytes were read."""
        data = self.read_bytes(4)
        if len(data) != 4:
            return None
        return bytes_to_int(data)

    def read_byte(self) -> int | None:
        """Read one byte; None when nothing was waiting."""
        data = self.read_bytes(1)
        if not data:
            return None
        return data[0]

    def read_bytes(self, limit: int = DEFAULT_READ_LIMIT) -> bytes:
        """Read up to ``limit`` waiting bytes; empty when nothing was waiting."""
        limit = int(limit)
        if limit <= 0:
            raise ValueError(f"limit must be positive, got {limit}")
        handle = self._require_open()
        if self._waiting(handle) == 0:
            return b""
        return self._read(handle, limit)

    def write_text(self, text: str) -> None:
        """Write a string encoded as UTF-8, without a line ending."""
        self.write_bytes(str(text).encode("utf-8"))

    def write_line(self, text: str) -> None:
        """Write a string followed by this instance's line ending."""
        self.write_text(str(text) + self.line_end.value)

    def write_float(self, value: float) -> None:
        """Write a float as 4 little-endian bytes."""
        self.write_bytes(float_to_bytes(value))

    def write_int(self, value: int) -> None:
        """Write a signed 32-bit int as 4 little-endian bytes."""
        self.write_bytes(int_to_bytes(value))

    def write_byte(self, value: int) -> None:
        """Write one byte."""
        value = int(value)
        if not 0 <= value <= 0xFF:
            raise ValueError(f"byte value must be in range(0, 256), got {value}")
        self.write_bytes(bytes((value,)))

    def write_bytes(self, data: Iterable[int]) -> None:
        """Write a sequence of bytes; raises if they cannot all be sent in time."""
        payload = bytes(data)
        handle = self._require_open()
        try:
            written = handle.write(payload)
        except serial.SerialTimeoutException as exc:
            raise ASerialError("write timed out") from exc
        except _SERIAL_FAILURES as exc:
            raise ASerialError(f"write failed: {exc}") from exc
        if written is not None and written != len(payload):
            raise ASerialError(f"wrote {written} of {len(payload)} bytes")

    def flush(self) -> None:
        """Discard everything waiting to be read; does nothing if not open."""
        if not self.is_open:
            return
        while self.read_bytes(FLUSH_CHUNK):
            pass

    def __enter__(self) -> SerialCom:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def _require_open(self) -> serial.Serial:
        if self._handle is None:
            raise ASerialError("serial port is not open")
        return self._handle

    @staticmethod
    def _waiting(handle: serial.Serial) -> int:
        try:
            return int(handle.in_waiting)
        except _SERIAL_FAILURES as exc:
            raise ASerialError(f"could not query the receive buffer: {exc}") from exc

    @staticmethod
    def _read(handle: serial.Serial, size: int) -> bytes:
        try:
            return bytes(handle.read(size))
        except _SERIAL_FAILURES as exc:
            raise ASerialError(f"read failed: {exc}") from exc