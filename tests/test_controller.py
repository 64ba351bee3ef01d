import pytest
import serial

from aserial.controller import Controller
from aserial.errors import ASerialError, PacketError
from aserial.packet import RESERVED_COMMAND_GET_INFO, ASerialData, PacketCodec


class FakeSerial:
    ports: dict = {}
    instances: list = []

    def __init__(self):
        self.port = None
        self.is_open = False
        self.rx = bytearray()
        self.written = bytearray()
        type(self).instances.append(self)

    def open(self):
        if self.port not in self.ports:
            raise serial.SerialException(f"no such port {self.port}")
        self.is_open = True

    def close(self):
        self.is_open = False

    def set_buffer_size(self, rx_size=4096, tx_size=None):
        pass

    @property
    def in_waiting(self):
        return len(self.rx)

    def read(self, size=1):
        out = bytes(self.rx[:size])
        del self.rx[:size]
        return out

    def write(self, data):
        data = bytes(data)
        self.written += data
        self.rx += self.ports[self.port](data)
        return len(data)

    def reset_input_buffer(self):
        self.rx.clear()

    def reset_output_buffer(self):
        pass


def device_responder(device_id, device_ver):
    codec = PacketCodec.device(device_id, device_ver)

    def respond(data):
        out = b""
        for byte in data:
            try:
                packet = codec.feed(byte)
            except PacketError:
                continue
            if packet is not None and packet.command == RESERVED_COMMAND_GET_INFO:
                out += codec.make_response_packet([codec.id, codec.version, 0x00, 0x64])
        return out

    return respond


def decode_as_device(device_id, data):
    codec = PacketCodec.device(device_id, 0x01)
    results = []
    for byte in data:
        packet = codec.feed(byte)
        if packet is not None:
            results.append(packet)
    return results


def silent(data):
    return b""


def echo(data):
    return data


@pytest.fixture
def fake(monkeypatch):
    cls = type("Fake", (FakeSerial,), {"ports": {}, "instances": []})
    monkeypatch.setattr(serial, "Serial", cls)
    return cls


def make_controller(*args):
    controller = Controller(*args)
    controller.response_timeout = 0.01
    return controller


def test_connect_to_matching_device(fake):
    fake.ports["COM3"] = device_responder(0x01, 0x01)
    controller = make_controller(0x01, 0x01)
    controller.connect(3)
    assert controller.connected is True
    assert controller.interface.com_num == 3
    assert bytes(fake.instances[-1].written) == bytes([0xD0, 0x01, 0x00, 0x01, 0x00, 0x00])


def test_auto_connect_then_disconnect(fake):
    fake.ports["COM2"] = echo
    fake.ports["COM5"] = device_responder(0x01, 0x01)
    controller = make_controller(0x01, 0x01)
    assert controller.auto_connect() == 5
    assert controller.connected is True
    controller.disconnect()
    assert controller.connected is False
    assert controller.interface.is_open is False


def test_auto_connect_on_high_com_number(fake):
    fake.ports["\\\\.\\COM12"] = device_responder(0x01, 0x01)
    controller = make_controller(0x01, 0x01)
    assert controller.auto_connect() == 12


def test_auto_connect_without_device_raises(fake):
    controller = make_controller(0x01, 0x01)
    with pytest.raises(ASerialError):
        controller.auto_connect()
    assert controller.connected is False


def test_connect_missing_port_raises(fake):
    controller = make_controller(0x01, 0x01)
    with pytest.raises(ASerialError):
        controller.connect(9)
    assert controller.connected is False


def test_connect_silent_port_times_out(fake):
    fake.ports["COM2"] = silent
    controller = make_controller(0x01, 0x01)
    with pytest.raises(ASerialError):
        controller.connect(2)
    assert controller.connected is False
    assert controller.interface.is_open is False


def test_connect_echo_port_fails(fake):
    fake.ports["COM4"] = echo
    controller = make_controller(0x01, 0x01)
    with pytest.raises(ASerialError):
        controller.connect(4)
    assert controller.interface.is_open is False


def test_connect_rejects_other_device_id(fake):
    fake.ports["COM3"] = device_responder(0x02, 0x01)
    controller = make_controller(0x01, 0x01)
    with pytest.raises(ASerialError):
        controller.connect(3)
    assert controller.connected is False


def test_connect_rejects_version_outside_range(fake):
    fake.ports["COM3"] = device_responder(0x01, 0x05)
    controller = make_controller(0x01, 0x01, 0x03)
    with pytest.raises(ASerialError):
        controller.connect(3)
    assert controller.interface.is_open is False


def test_connect_accepts_version_inside_range(fake):
    fake.ports["COM3"] = device_responder(0x01, 0x02)
    controller = make_controller(0x01, 0x01, 0x03)
    controller.connect(3)
    assert controller.connected is True


def test_connect_twice_raises(fake):
    fake.ports["COM3"] = device_responder(0x01, 0x01)
    controller = make_controller(0x01, 0x01)
    controller.connect(3)
    with pytest.raises(ASerialError):
        controller.connect(3)
    with pytest.raises(ASerialError):
        controller.auto_connect()


def test_disconnect_when_closed_raises():
    controller = Controller(0x01, 0x01)
    with pytest.raises(ASerialError):
        controller.disconnect()


def test_send_with_data(fake):
    fake.ports["COM3"] = device_responder(0x01, 0x01)
    controller = make_controller(0x01, 0x01)
    controller.connect(3)
    handle = fake.instances[-1]
    handle.written.clear()
    controller.send(0x03, [0x01, 0x02])
    assert bytes(handle.written) == bytes([0xD0, 0x01, 0x02, 0x03, 0x01, 0x02, 0x00, 0x03])
    packets = decode_as_device(0x01, handle.written)
    assert packets == [ASerialData(0x03, b"\x01\x02")]


def test_send_command_only(fake):
    fake.ports["COM3"] = device_responder(0x01, 0x01)
    controller = make_controller(0x01, 0x01)
    controller.connect(3)
    handle = fake.instances[-1]
    handle.written.clear()
    controller.send(0x05)
    assert bytes(handle.written) == bytes([0xD0, 0x01, 0x00, 0x05, 0x00, 0x00])
    packets = decode_as_device(0x01, handle.written)
    assert packets == [ASerialData(0x05, b"")]


def test_send_unreserved_command_before_connect_raises():
    controller = Controller(0x01, 0x01)
    with pytest.raises(ASerialError):
        controller.send(0x03, [0x01])


def test_send_reserved_command_on_closed_port_raises():
    controller = Controller(0x01, 0x01)
    with pytest.raises(ASerialError):
        controller.send(RESERVED_COMMAND_GET_INFO)


def test_poll_decodes_device_packet(fake):
    fake.ports["COM3"] = device_responder(0x01, 0x01)
    controller = make_controller(0x01, 0x01)
    controller.connect(3)
    fake.instances[-1].rx += bytes([0xD0, 0x02, 0x0A, 0x0B, 0x00, 0x15])
    results = [controller.poll() for _ in range(6)]
    assert results[:5] == [None] * 5
    assert results[5] == ASerialData(0x00, b"\x0a\x0b")
    assert controller.poll() is None


def test_poll_decodes_escaped_bytes(fake):
    fake.ports["COM3"] = device_responder(0x01, 0x01)
    controller = make_controller(0x01, 0x01)
    controller.connect(3)
    fake.instances[-1].rx += bytes([0xD0, 0x01, 0xAD, 0xCF, 0x00, 0xAD, 0xCF])
    results = [controller.poll() for _ in range(7)]
    assert results[6] == ASerialData(0x00, b"\xd0")


def test_poll_raises_on_stray_byte(fake):
    fake.ports["COM3"] = device_responder(0x01, 0x01)
    controller = make_controller(0x01, 0x01)
    controller.connect(3)
    fake.instances[-1].rx += bytes([0x01])
    with pytest.raises(PacketError):
        controller.poll()


def test_poll_on_closed_port_raises():
    controller = Controller(0x01, 0x01)
    with pytest.raises(ASerialError):
        controller.poll()