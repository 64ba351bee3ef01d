"""Echo loop for exercising an ASerial link over a serial port.

A device echoes every received command packet back as a response packet;
a controller echoes every received response back as a command packet.
"""

from __future__ import annotations

import argparse
import sys
from collections.abc import Sequence

from .device import SerialLink
from .errors import ASerialError, PacketError
from .packet import ASerialData, Mode
from .serial_port import DEFAULT_BAUDRATE, SerialPort

DEFAULT_ECHO_COMMAND = 0x03


def echo_step(link: SerialLink, command: int = DEFAULT_ECHO_COMMAND) -> ASerialData | None:
    """Poll ``link`` once and send back the data of a packet that completes.

    In controller mode the data goes out as a command packet with ``command``;
    in device mode as a response packet. Returns the received packet, or None
    while one is still being read. Packet errors propagate.
    """
    packet = link.poll()
    if packet is None:
        return None
    if link.codec.mode is Mode.DEVICE:
        link.write_response(packet.data)
    else:
        link.write_command(command, packet.data)
    return packet


def _byte(text: str) -> int:
    value = int(text, 0)
    if not 0 <= value <= 0xFF:
        raise argparse.ArgumentTypeError(f"{text} is not a byte value")
    return value


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="aserial-echo",
        description="Echo ASerial packets back over a serial port.",
    )
    parser.add_argument("port", type=int, help="COM number to open")
    parser.add_argument(
        "--mode",
        choices=("controller", "device"),
        default="controller",
        help="role to play on the link (default: controller)",
    )
    parser.add_argument("--id", type=_byte, default=0x01, help="device or target device id")
    parser.add_argument("--version", type=_byte, default=0x01, help="device version")
    parser.add_argument(
        "--command",
        type=_byte,
        default=DEFAULT_ECHO_COMMAND,
        help="command used when echoing as a controller",
    )
    parser.add_argument("--baudrate", type=int, default=DEFAULT_BAUDRATE)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run the echo loop until interrupted."""
    args = _parser().parse_args(argv)

    with SerialPort(args.baudrate) as port:
        try:
            port.open(args.port)
        except ASerialError as exc:
            print(f"aserial-echo: {exc}", file=sys.stderr)
            return 1

        if args.mode == "device":
            link = SerialLink.device(args.id, args.version, port)
        else:
            link = SerialLink.controller(args.id, port)
            link.codec.connected = True

        try:
            while True:
                try:
                    echo_step(link, args.command)
                except PacketError:
                    continue
        except KeyboardInterrupt:
            return 0


if __name__ == "__main__":
    sys.exit(main())