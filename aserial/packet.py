"""Building and parsing ASerial packets for controller and device roles."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from enum import IntEnum

from .errors import ASerialError, ErrorCode, PacketError

START_FLAG = 0xD0
ADD_FLAG = 0xAD
RESERVED_COMMAND_RESET = 0x00
RESERVED_COMMAND_GET_INFO = 0x01
DATA_NUM_MAX = 32

_RESERVED_COMMANDS = frozenset({RESERVED_COMMAND_RESET, RESERVED_COMMAND_GET_INFO})
_FLAGS = frozenset({START_FLAG, ADD_FLAG})


class Mode(IntEnum):
    """Role a codec plays on the link."""

    DEVICE = 0
    CONTROLLER = 1


@dataclass(frozen=True)
class ASerialData:
    """A decoded packet: its command and its data bytes."""

    command: int = 0
    data: bytes = b""

    @property
    def data_num(self) -> int:
        return len(self.data)


def _check_byte(value: int, what: str) -> int:
    value = int(value)
    if not 0 <= value <= 0xFF:
        raise ValueError(f"{what} must be in range(0, 256), got {value}")
    return value


def _as_payload(data: Iterable[int]) -> bytes:
    if isinstance(data, int):
        raise TypeError("data must be an iterable of byte values, not an int")
    payload = bytes(data)
    if len(payload) > 0xFF:
        raise ValueError(f"at most 255 data bytes fit in a packet, got {len(payload)}")
    return payload


def _escape(value: int) -> bytes:
    if value in _FLAGS:
        return bytes((ADD_FLAG, value - 1))
    return bytes((value,))


def _encode_payload(payload: bytes) -> tuple[bytes, bytes]:
    body = b"".join(_escape(b) for b in payload)
    checksum = sum(payload) & 0xFFFF
    return body, _escape(checksum >> 8) + _escape(checksum & 0xFF)


class PacketCodec:
    """Encodes outgoing packets and decodes incoming bytes one at a time."""

    def __init__(
        self,
        mode: Mode,
        device_id: int = 0,
        device_ver: int = 0,
        target_device_id: int = 0,
    ) -> None:
        self._mode = Mode(mode)
        self._device_id = _check_byte(device_id, "device_id")
        self._device_ver = _check_byte(device_ver, "device_ver")
        self._target_device_id = _check_byte(target_device_id, "target_device_id")
        self._connection_state = False
        self._last_error = ErrorCode.NONE

        self._add_flag = False
        self._reading = False
        self._error_flag = False
        self._step = 0
        self._count = 0
        self._sum = 0
        self._check_high = 0
        self._packet_target_id = 0
        self._data_num = 0
        self._command = 0
        self._data: list[int] = []

    @classmethod
    def device(cls, device_id: int, device_ver: int) -> PacketCodec:
        """Create a codec acting as a device with the given id and version."""
        return cls(Mode.DEVICE, device_id=device_id, device_ver=device_ver)

    @classmethod
    def controller(cls, target_device_id: int) -> PacketCodec:
        """Create a codec acting as a controller talking to one device id."""
        return cls(Mode.CONTROLLER, target_device_id=target_device_id)

    @property
    def mode(self) -> Mode:
        return self._mode

    @property
    def id(self) -> int:
        """The device id in device mode, the target device id otherwise."""
        if self._mode is Mode.DEVICE:
            return self._device_id
        return self._target_device_id

    @property
    def version(self) -> int:
        """The device version in device mode, 0 in controller mode."""
        if self._mode is Mode.DEVICE:
            return self._device_ver
        return 0

    @property
    def connected(self) -> bool:
        """Connection state; always False in device mode."""
        if self._mode is Mode.CONTROLLER:
            return self._connection_state
        return False

    @connected.setter
    def connected(self, state: bool) -> None:
        self._connection_state = bool(state)

    @property
    def last_error(self) -> ErrorCode:
        return self._last_error

    def needed_packet_size(self, data: Iterable[int]) -> int:
        """Size of a packet carrying ``data``, counting escapes in the data only."""
        payload = _as_payload(data)
        header = 2 if self._mode is Mode.DEVICE else 4
        body = sum(2 if b in _FLAGS else 1 for b in payload)
        return header + body + 2

    def make_command_packet(self, command: int, data: Iterable[int] = b"") -> bytes:
        """Build a controller-to-device packet."""
        if self._mode is not Mode.CONTROLLER:
            raise ASerialError("command packets can only be made in controller mode")
        command = _check_byte(command, "command")
        if not self.connected and command not in _RESERVED_COMMANDS:
            raise ASerialError(
                f"command 0x{command:02X} needs a connection; only reset and "
                "device info requests may be sent before connecting"
            )
        payload = _as_payload(data)
        body, check = _encode_payload(payload)
        return (
            bytes((START_FLAG,))
            + _escape(self._target_device_id)
            + _escape(len(payload))
            + _escape(command)
            + body
            + check
        )

    def make_response_packet(self, data: Iterable[int]) -> bytes:
        """Build a device-to-controller packet."""
        if self._mode is not Mode.DEVICE:
            raise ASerialError("response packets can only be made in device mode")
        payload = _as_payload(data)
        body, check = _encode_payload(payload)
        return bytes((START_FLAG,)) + _escape(len(payload)) + body + check

    def feed(self, byte: int) -> ASerialData | None:
        """Consume one received byte.

        Returns the decoded packet when it completes, None while reading,
        and raises PacketError for a byte that cannot be accepted.
        """
        byte = _check_byte(byte, "byte")

        if byte == START_FLAG:
            if self._reading:
                self._last_error = ErrorCode.WARNING_READ_SKIP
            self._start_packet()
            return None

        if self._error_flag:
            self._reading = False
            raise PacketError(self._last_error, "packet discarded after an earlier error")

        if byte == ADD_FLAG:
            if self._add_flag:
                self._error_flag = True
                self._reading = False
                self._fail(ErrorCode.ADD_FLAG_CASCADE, "two add flags in a row")
            self._add_flag = True
            return None

        if not self._reading:
            raise PacketError(ErrorCode.NONE, "byte received outside of a packet")

        if self._add_flag:
            byte = (byte + 1) & 0xFF
            self._add_flag = False

        if self._mode is Mode.DEVICE:
            return self._feed_device(byte)
        return self._feed_controller(byte)

    def _start_packet(self) -> None:
        self._add_flag = False
        self._error_flag = False
        self._reading = True
        self._step = 0
        self._count = 0
        self._sum = 0
        self._data = []
        if self._mode is Mode.DEVICE:
            self._command = 0

    def _fail(self, code: ErrorCode, message: str) -> None:
        self._last_error = code
        raise PacketError(code, message)

    def _read_data_num(self, byte: int, next_step: int) -> None:
        self._data_num = byte
        self._step = next_step
        if byte > DATA_NUM_MAX:
            self._error_flag = True
            self._fail(
                ErrorCode.DATA_COUNT_OVER,
                f"data count {byte} exceeds the maximum of {DATA_NUM_MAX}",
            )

    def _take_data(self, byte: int, next_step: int) -> None:
        self._data.append(byte)
        self._sum = (self._sum + byte) & 0xFFFF
        if self._count >= self._data_num - 1:
            self._step = next_step
        self._count += 1

    def _finish(self, low: int, command: int) -> ASerialData:
        check = (self._check_high << 8) | low
        if self._sum != check:
            self._fail(
                ErrorCode.CHECK_DATA_MISMATCH,
                f"check data 0x{check:04X} does not match sum 0x{self._sum:04X}",
            )
        self._reading = False
        return ASerialData(command, bytes(self._data[: self._data_num]))

    def _feed_device(self, byte: int) -> ASerialData | None:
        step = self._step
        if step == 0:
            self._packet_target_id = byte
            self._step = 1
        elif step == 1:
            self._read_data_num(byte, 2)
        elif step == 2:
            self._command = byte
            self._step = 4 if self._data_num == 0 else 3
            if byte not in _RESERVED_COMMANDS and self._packet_target_id != self._device_id:
                self._error_flag = True
                self._fail(
                    ErrorCode.DEVICE_ID_MISMATCH,
                    f"packet for device 0x{self._packet_target_id:02X}, "
                    f"this device is 0x{self._device_id:02X}",
                )
        elif step == 3:
            self._take_data(byte, 4)
        elif step == 4:
            self._check_high = byte
            self._step = 5
        else:
            return self._finish(byte, self._command)
        return None

    def _feed_controller(self, byte: int) -> ASerialData | None:
        step = self._step
        if step == 0:
            self._read_data_num(byte, 1)
        elif step == 1:
            self._take_data(byte, 2)
        elif step == 2:
            self._check_high = byte
            self._step = 3
        else:
            return self._finish(byte, 0x00)
        return None