"""Controller side of an ASerial link over a serial port."""

from __future__ import annotations

import time
from collections.abc import Iterable

from .errors import ASerialError
from .packet import RESERVED_COMMAND_GET_INFO, ASerialData, PacketCodec
from .serial_port import SerialPort

DEFAULT_RESPONSE_TIMEOUT = 0.05
_MAX_COM_NUM = 255


class Controller:
    """Finds, connects to and exchanges packets with one ASerial device."""

    def __init__(
        self,
        target_device_id: int,
        device_ver_min: int,
        device_ver_max: int | None = None,
        interface: SerialPort | None = None,
    ) -> None:
        if device_ver_max is None:
            device_ver_max = device_ver_min
        self.codec = PacketCodec.controller(target_device_id)
        self.device_ver_min = int(device_ver_min)
        self.device_ver_max = int(device_ver_max)
        self.interface = interface if interface is not None else SerialPort()
        self.response_timeout = DEFAULT_RESPONSE_TIMEOUT

    @property
    def connected(self) -> bool:
        return self.codec.connected

    def connect(self, com_num: int) -> None:
        """Open ``com_num`` and check that the expected device answers there."""
        if self.connected:
            raise ASerialError("already connected to a device")

        self.interface.open(com_num)
        try:
            self.send(RESERVED_COMMAND_GET_INFO)
            info = self._await_reply()
        except ASerialError as exc:
            self.interface.close()
            raise ASerialError(f"no valid device answer on COM{com_num}") from exc

        if info is None or not self._accepts(info):
            self.interface.close()
            raise ASerialError(f"no matching device on COM{com_num}")

        self.codec.connected = True

    def auto_connect(self) -> int:
        """Try COM1 to COM255 in order; return the number that connected."""
        if self.connected:
            raise ASerialError("already connected to a device")
        for com_num in range(1, _MAX_COM_NUM + 1):
            try:
                self.connect(com_num)
            except ASerialError:
                continue
            return com_num
        raise ASerialError("no matching device found on any COM port")

    def disconnect(self) -> None:
        """Close the port and drop the connection state."""
        if not self.interface.is_open:
            raise ASerialError("not connected to a device")
        try:
            self.interface.close()
        finally:
            self.codec.connected = False

    def poll(self) -> ASerialData | None:
        """Read at most one waiting byte; return a packet once one completes."""
        if not self.interface.is_open:
            raise ASerialError("serial port is not open")
        if self.interface.available() > 0:
            byte = self.interface.read()
            if byte is not None:
                return self.codec.feed(byte)
        return None

    def send(self, command: int, data: Iterable[int] | None = None) -> None:
        """Send a command, with data bytes or on its own."""
        payload = b"" if data is None else data
        packet = self.codec.make_command_packet(command, payload)
        self.interface.write(packet)

    def _await_reply(self) -> ASerialData | None:
        deadline = time.monotonic() + self.response_timeout
        while True:
            reply = self.poll()
            if reply is not None:
                return reply
            if time.monotonic() >= deadline:
                return None

    def _accepts(self, info: ASerialData) -> bool:
        if info.data_num < 2:
            return False
        device_id, device_ver = info.data[0], info.data[1]
        return (
            device_id == self.codec.id
            and self.device_ver_min <= device_ver <= self.device_ver_max
        )