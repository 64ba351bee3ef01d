from collections import deque

import pytest

from aserial.device import SerialLink
from aserial.echo import echo_step, main
from aserial.errors import ASerialError, PacketError
from aserial.packet import PacketCodec


class FakeStream:
    def __init__(self, incoming=b""):
        self.incoming = deque(incoming)
        self.written = bytearray()

    def available(self):
        return len(self.incoming)

    def read(self):
        return self.incoming.popleft()

    def write(self, data):
        self.written.extend(data)
        return len(data)


def drive(link, command=0x03):
    packets = []
    while link.stream.available() > 0:
        packet = echo_step(link, command)
        if packet is not None:
            packets.append(packet)
    return packets


def _connected_controller(target):
    codec = PacketCodec.controller(target)
    codec.connected = True
    return codec


def test_controller_echoes_response_as_command():
    wire = PacketCodec.device(0x01, 0x01).make_response_packet(b"\x05\x06")
    stream = FakeStream(wire)
    link = SerialLink.controller(0x01, stream)
    link.codec.connected = True

    packets = drive(link)

    assert [p.data for p in packets] == [b"\x05\x06"]
    expected = _connected_controller(0x01).make_command_packet(0x03, b"\x05\x06")
    assert bytes(stream.written) == expected


def test_controller_uses_given_command():
    wire = PacketCodec.device(0x01, 0x01).make_response_packet(b"\x07")
    stream = FakeStream(wire)
    link = SerialLink.controller(0x01, stream)
    link.codec.connected = True

    drive(link, command=0x42)

    expected = _connected_controller(0x01).make_command_packet(0x42, b"\x07")
    assert bytes(stream.written) == expected


def test_controller_without_connection_cannot_echo():
    wire = PacketCodec.device(0x01, 0x01).make_response_packet(b"\x01")
    link = SerialLink.controller(0x01, FakeStream(wire))

    with pytest.raises(ASerialError):
        drive(link)


def test_device_echoes_command_as_response():
    wire = _connected_controller(0x01).make_command_packet(0x10, b"\x01\x02")
    stream = FakeStream(wire)
    link = SerialLink.device(0x01, 0x01, stream)

    packets = drive(link)

    assert [(p.command, p.data) for p in packets] == [(0x10, b"\x01\x02")]
    expected = PacketCodec.device(0x01, 0x01).make_response_packet(b"\x01\x02")
    assert bytes(stream.written) == expected


def test_device_info_request_answers_then_echoes():
    wire = PacketCodec.controller(0x01).make_command_packet(0x01)
    stream = FakeStream(wire)
    link = SerialLink.device(0x01, 0x01, stream)

    drive(link)

    device = PacketCodec.device(0x01, 0x01)
    info = device.make_response_packet((0x01, 0x01, 0x00, 100))
    echo = device.make_response_packet(b"")
    assert bytes(stream.written) == info + echo


def test_nothing_waiting_returns_none_and_writes_nothing():
    stream = FakeStream()
    link = SerialLink.device(0x01, 0x01, stream)

    assert echo_step(link) is None
    assert stream.written == bytearray()


def test_bad_check_data_raises_packet_error():
    wire = bytearray(PacketCodec.device(0x01, 0x01).make_response_packet(b"\x05"))
    wire[-1] ^= 0x01
    link = SerialLink.controller(0x01, FakeStream(bytes(wire)))
    link.codec.connected = True

    with pytest.raises(PacketError):
        drive(link)


def test_main_reports_unopenable_port():
    assert main(["250"]) == 1


def test_main_rejects_bad_mode():
    with pytest.raises(SystemExit):
        main(["1", "--mode", "bridge"])