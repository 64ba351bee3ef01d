"""A byte-oriented serial port addressed by COM number."""

from __future__ import annotations

from collections.abc import Iterable
from types import TracebackType

import serial

from .errors import ASerialError

DEFAULT_BAUDRATE = 115200
DEFAULT_RECEIVE_BUFFER = 1024
DEFAULT_TRANSMIT_BUFFER = 1024
DEFAULT_READ_INTERVAL_TIMEOUT = 50
DEFAULT_READ_TIMEOUT = 200
DEFAULT_WRITE_TIMEOUT = 200

_SERIAL_FAILURES = (serial.SerialException, OSError, ValueError)


def port_name(com_num: int) -> str:
    """Device name for a COM number; ports from 10 up use the device namespace."""
    com_num = int(com_num)
    if com_num >= 10:
        return f"\\\\.\\COM{com_num}"
    return f"COM{com_num}"


def _seconds(milliseconds: int) -> float | None:
    milliseconds = int(milliseconds)
    if milliseconds <= 0:
        return None
    return milliseconds / 1000


class SerialPort:
    """An 8N1 serial port without flow control, read and written byte by byte."""

    def __init__(self, baudrate: int = DEFAULT_BAUDRATE) -> None:
        self.baudrate = int(baudrate)
        self._handle: serial.Serial | None = None
        self._com_num = 0

    @property
    def is_open(self) -> bool:
        return self._handle is not None

    @property
    def com_num(self) -> int:
        """The COM number of the open port, 0 when closed."""
        return self._com_num

    def open(
        self,
        com_num: int,
        receive_buffer: int = DEFAULT_RECEIVE_BUFFER,
        transmit_buffer: int = DEFAULT_TRANSMIT_BUFFER,
        read_interval_timeout: int = DEFAULT_READ_INTERVAL_TIMEOUT,
        read_timeout: int = DEFAULT_READ_TIMEOUT,
        write_timeout: int = DEFAULT_WRITE_TIMEOUT,
    ) -> None:
        """Open ``COM<com_num>``, closing any port this object already has open.

        Timeouts are in milliseconds; buffer sizes in bytes.
        """
        if self.is_open:
            self.close()

        name = port_name(com_num)
        handle = serial.Serial()
        handle.port = name
        handle.dtr = False
        handle.rts = False
        try:
            handle.open()
        except _SERIAL_FAILURES as exc:
            raise ASerialError(f"could not open {name}: {exc}") from exc

        try:
            handle.baudrate = self.baudrate
            handle.bytesize = serial.EIGHTBITS
            handle.parity = serial.PARITY_NONE
            handle.stopbits = serial.STOPBITS_ONE
            handle.xonxoff = False
            handle.rtscts = False
            handle.dsrdtr = False
        except _SERIAL_FAILURES as exc:
            handle.close()
            raise ASerialError(f"could not configure {name}: {exc}") from exc

        set_buffer_size = getattr(handle, "set_buffer_size", None)
        if callable(set_buffer_size):
            try:
                set_buffer_size(rx_size=int(receive_buffer), tx_size=int(transmit_buffer))
            except _SERIAL_FAILURES as exc:
                handle.close()
                raise ASerialError(f"could not set buffer sizes on {name}: {exc}") from exc

        try:
            handle.inter_byte_timeout = _seconds(read_interval_timeout)
            handle.timeout = _seconds(read_timeout)
            handle.write_timeout = _seconds(write_timeout)
        except _SERIAL_FAILURES as exc:
            handle.close()
            raise ASerialError(f"could not set timeouts on {name}: {exc}") from exc

        self._handle = handle
        self._com_num = int(com_num)

    def close(self) -> None:
        """Close the port; raises if it is not open or closing fails."""
        handle = self._require_open()
        self._handle = None
        self._com_num = 0
        try:
            handle.close()
        except _SERIAL_FAILURES as exc:
            raise ASerialError(f"could not close port: {exc}") from exc

    def available(self) -> int:
        """Number of bytes waiting in the receive buffer."""
        handle = self._require_open()
        try:
            return int(handle.in_waiting)
        except _SERIAL_FAILURES as exc:
            raise ASerialError(f"could not query the receive buffer: {exc}") from exc

    def read(self) -> int | None:
        """Read one byte; None when none arrived before the timeout."""
        handle = self._require_open()
        try:
            data = handle.read(1)
        except _SERIAL_FAILURES as exc:
            raise ASerialError(f"read failed: {exc}") from exc
        if len(data) != 1:
            return None
        return data[0]

    def write(self, data: int | str | bytes | Iterable[int]) -> int:
        """Write a byte value, a string or a sequence of bytes; returns the count."""
        handle = self._require_open()
        if isinstance(data, int):
            if not 0 <= data <= 0xFF:
                raise ValueError(f"byte value must be in range(0, 256), got {data}")
            payload = bytes((data,))
        elif isinstance(data, str):
            payload = data.encode("utf-8")
        else:
            payload = bytes(data)
        try:
            written = handle.write(payload)
        except _SERIAL_FAILURES as exc:
            raise ASerialError(f"write failed: {exc}") from exc
        if written != len(payload):
            raise ASerialError(f"wrote {written} of {len(payload)} bytes")
        return written

    def clear(self) -> None:
        """Discard everything in the receive and transmit buffers."""
        handle = self._require_open()
        try:
            handle.reset_input_buffer()
            handle.reset_output_buffer()
        except _SERIAL_FAILURES as exc:
            raise ASerialError(f"could not clear buffers: {exc}") from exc

    def __enter__(self) -> SerialPort:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if self.is_open:
            self.close()

    def _require_open(self) -> serial.Serial:
        if self._handle is None:
            raise ASerialError("serial port is not open")
        return self._handle