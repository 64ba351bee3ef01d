"""A packet link over any byte stream, usable in device or controller role."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import Protocol

from .errors import ASerialError
from .packet import (
    RESERVED_COMMAND_GET_INFO,
    RESERVED_COMMAND_RESET,
    ASerialData,
    Mode,
    PacketCodec,
)

ASERIAL_VER = 100


class ByteStream(Protocol):
    """The stream operations a link needs."""

    def available(self) -> int: ...

    def read(self) -> int | None: ...

    def write(self, data: bytes) -> int: ...


class SerialLink:
    """Reads and writes ASerial packets over a byte stream.

    In device mode, reset and device-info requests are answered
    automatically while polling.
    """

    def __init__(
        self,
        codec: PacketCodec,
        stream: ByteStream,
        reset_callback: Callable[[], None] | None = None,
    ) -> None:
        if stream is None:
            raise ASerialError("a stream is required")
        self.codec = codec
        self.stream = stream
        self.reset_callback = reset_callback

    @classmethod
    def device(
        cls,
        device_id: int,
        device_ver: int,
        stream: ByteStream,
        reset_callback: Callable[[], None] | None = None,
    ) -> SerialLink:
        """Create a link acting as a device."""
        return cls(PacketCodec.device(device_id, device_ver), stream, reset_callback)

    @classmethod
    def controller(cls, target_device_id: int, stream: ByteStream) -> SerialLink:
        """Create a link acting as a controller."""
        return cls(PacketCodec.controller(target_device_id), stream)

    def poll(self) -> ASerialData | None:
        """Read at most one waiting byte; return a packet once one completes."""
        if self.stream.available() <= 0:
            return None
        byte = self.stream.read()
        if byte is None or byte < 0:
            return None
        packet = self.codec.feed(byte & 0xFF)
        if packet is not None and self.codec.mode is Mode.DEVICE:
            if packet.command == RESERVED_COMMAND_RESET:
                if self.reset_callback is not None:
                    self.reset_callback()
            elif packet.command == RESERVED_COMMAND_GET_INFO:
                self.write_device_info()
        return packet

    def write_command(self, command: int, data: Iterable[int] = b"") -> None:
        """Send a command packet; controller mode only."""
        if self.codec.mode is Mode.DEVICE:
            raise ASerialError("a device cannot send command packets")
        self.stream.write(self.codec.make_command_packet(command, data))

    def write_response(self, data: Iterable[int]) -> None:
        """Send a response packet; device mode only."""
        if self.codec.mode is Mode.CONTROLLER:
            raise ASerialError("a controller cannot send response packets")
        self.stream.write(self.codec.make_response_packet(data))

    def write_device_info(self) -> None:
        """Send the device id, device version and protocol version."""
        self.write_response(
            (
                self.codec.id,
                self.codec.version,
                (ASERIAL_VER >> 8) & 0xFF,
                ASERIAL_VER & 0xFF,
            )
        )