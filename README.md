# aserial

`aserial` implements a small framed serial protocol for exchanging commands and
data between a host (the "controller") and a microcontroller (the "device"). It
also has helpers for plain serial I/O.

## The protocol

Every packet starts with the start flag `0xD0`. Inside a packet, a byte equal to
`0xD0` or to the add flag `0xAD` is sent as `0xAD` followed by the byte minus
one. The start flag therefore appears only at the start of a packet. This
applies to the header, the data and the checksum bytes.

* Controller to device: start flag, target device ID, data count, command,
  data bytes, 16-bit checksum (high byte first).
* Device to controller: start flag, data count, data bytes, 16-bit checksum.

The checksum is the sum of the data bytes, kept to 16 bits. A packet carries at
most 32 data bytes. Two commands are reserved: `0x00` (reset) and `0x01` (device
information request).

When a received byte cannot be accepted, the codec raises `PacketError`. Its
`code` is one of the `ErrorCode` values:

* `ADD_FLAG_CASCADE`
* `DEVICE_ID_MISMATCH`
* `DATA_COUNT_OVER`
* `CHECK_DATA_MISMATCH`
* `NONE`, for a byte that arrives outside a packet

A start flag that arrives while a packet is still being read starts a new
packet. It also records `WARNING_READ_SKIP` as the codec's `last_error`. Every
other error in the package is raised as `ASerialError`, which is also the base
class of `PacketError`.

## Installation

```
pip install aserial
```

The package needs `pyserial`.

## Modules

* `aserial.errors` holds `ErrorCode`, `ASerialError` and `PacketError`.
* `aserial.packet` holds `PacketCodec`, which works in either role: create it
  with `PacketCodec.controller(target_device_id)` or
  `PacketCodec.device(device_id, device_ver)`.
  * Build packets with `make_command_packet(command, data)` (controller) or
    `make_response_packet(data)` (device).
  * Pass received bytes to `feed(byte)` one at a time. It returns an
    `ASerialData` (`command`, `data`, `data_num`) once a packet completes, and
    `None` while a packet is still being read.
  * A controller codec only builds reset and information-request packets until
    its `connected` property is set.
* `aserial.serial_port` holds `SerialPort`, a port addressed by COM number. It
  runs at 115200 baud by default with 8N1 framing and no flow control.
  * `open`, `close`, `available`, `read`, `write` and `clear` give
    byte-at-a-time I/O.
  * It can be used as a context manager.
  * `port_name(com_num)` gives the device name for a COM number.
* `aserial.controller` holds `Controller`, which talks to one device over a
  `SerialPort`.
  * `connect(com_num)` sends an information request. It accepts the port only if
    the device answers within the response timeout (0.05 s by default) with the
    expected ID and a version between `device_ver_min` and `device_ver_max`.
  * `auto_connect()` tries COM1 to COM255 and returns the number that connected.
  * `disconnect()` closes the port.
  * `poll()` reads at most one byte per call.
  * `send(command, data)` writes a command packet.
* `aserial.device` holds `SerialLink`, which runs either role over any stream
  that has `available()`, `read()` and `write(bytes)`.
  * In the device role, `poll()` answers information requests with
    `write_device_info()` and calls the reset callback when a reset command
    arrives.
* `aserial.echo` holds `echo_step(link, command)` and the `aserial-echo`
  command.
* `aserial.byteconv` holds `bytes_to_int`, `int_to_bytes`, `bytes_to_float`
  and `float_to_bytes`, which convert 4 little-endian bytes. It also holds the
  `LineEnd` enum and `line_end_to_str`.
* `aserial.serialcom` holds `SerialCom`, a general serial port helper.
  * It reads and writes strings, lines, single bytes, raw bytes, and 32-bit
    integers and floats.
  * Reads never wait. They return what has already arrived, or `None` (an empty
    `bytes` from `read_bytes`) when nothing has.

## Example

```python
from aserial.packet import PacketCodec

controller = PacketCodec.controller(0x01)
packet = controller.make_command_packet(0x01)  # device information request

device = PacketCodec.device(0x01, 0x01)
for byte in packet:
    request = device.feed(byte)
print(request.command)  # 1
```

Talking to a real device:

```python
from aserial.controller import Controller
from aserial.serial_port import SerialPort

controller = Controller(0x01, 0x01, 0x01, SerialPort(115200))
com_num = controller.auto_connect()
controller.send(0x03, b"\x10\x20")
reply = None
while reply is None:
    reply = controller.poll()
controller.disconnect()
```

## Command line

`aserial-echo` is a communication test. It opens a COM port and echoes every
packet it receives back to the other side:

* As a controller (the default), it echoes responses back as command packets
  with `--command`, which defaults to `0x03`.
* As a device (`--mode device`), it echoes commands back as responses.

Packets with errors are skipped. Press Ctrl+C to stop.

```
aserial-echo 6 --mode device --id 0x01 --version 0x01
aserial-echo --help
```

## What it does not do

* Ports are addressed by Windows COM numbers (`COM3`, `\\.\COM12`). There is no
  way to pass another device path.
* Nothing reads in the background. The caller must call `poll()` repeatedly to
  receive packets.
* The package does not interpret the data bytes of a packet. Beyond the two
  reserved commands, what commands and data mean is left to the application.

## Tests

```
pip install aserial[test]
pytest
```