"""Opening and configuring a serial port for raw KISS traffic."""

from __future__ import annotations

import fcntl
import os
import termios

_SPEEDS = {
    0: "B0",
    50: "B50",
    75: "B75",
    110: "B110",
    134: "B134",
    150: "B150",
    200: "B200",
    300: "B300",
    600: "B600",
    1200: "B1200",
    2400: "B2400",
    4800: "B4800",
    9600: "B9600",
    19200: "B19200",
    38400: "B38400",
    57600: "B57600",
    115200: "B115200",
    230400: "B230400",
}

_IFLAG, _OFLAG, _CFLAG, _LFLAG, _ISPEED, _OSPEED, _CC = range(7)


class SerialPortError(OSError):
    """Raised when the serial port cannot be opened or configured."""


def speed_constant(speed: int) -> int:
    """Return the termios speed constant for a baud rate."""
    try:
        return getattr(termios, _SPEEDS[speed])
    except KeyError:
        raise SerialPortError(f"Invalid port speed {speed} specified") from None


def open_port(path: str) -> int:
    """Open a serial device for reading and writing; return its descriptor."""
    flags = os.O_RDWR | os.O_NOCTTY | os.O_SYNC | os.O_NDELAY
    try:
        fd = os.open(path, flags)
    except OSError as exc:
        raise SerialPortError(f"The serial port could not be opened: {exc}") from exc
    fcntl.fcntl(fd, fcntl.F_SETFL, 0)
    return fd


def close_port(fd: int) -> None:
    """Close a serial port descriptor."""
    os.close(fd)


def _get_attrs(fd: int, message: str) -> list:
    try:
        return termios.tcgetattr(fd)
    except termios.error as exc:
        raise SerialPortError(f"{message}: {exc}") from exc


def _set_attrs(fd: int, attrs: list, message: str) -> None:
    try:
        termios.tcsetattr(fd, termios.TCSANOW, attrs)
    except termios.error as exc:
        raise SerialPortError(f"{message}: {exc}") from exc


def setup_port(fd: int, speed: int) -> None:
    """Configure the port for raw 8N1 traffic at the given baud rate."""
    attrs = _get_attrs(fd, "Error setting port speed, could not read port parameters")
    baud = speed_constant(speed)
    attrs[_ISPEED] = baud
    attrs[_OSPEED] = baud

    # 8-bit characters, no parity, one stop bit, no hardware flow control
    cflag = attrs[_CFLAG]
    cflag |= termios.CS8
    cflag &= ~termios.PARENB
    cflag &= ~termios.CSTOPB
    cflag &= ~getattr(termios, "CRTSCTS", 0)
    cflag |= termios.CREAD | termios.CLOCAL
    attrs[_CFLAG] = cflag

    attrs[_LFLAG] &= ~(
        termios.ICANON | termios.ECHO | termios.ECHOE | termios.ECHONL | termios.ISIG
    )
    attrs[_IFLAG] &= ~(
        termios.IGNBRK
        | termios.BRKINT
        | termios.PARMRK
        | termios.ISTRIP
        | termios.INLCR
        | termios.IGNCR
        | termios.ICRNL
        | termios.IXON
        | termios.IXOFF
        | termios.IXANY
    )
    attrs[_OFLAG] &= ~(termios.OPOST | termios.ONLCR)

    cc = list(attrs[_CC])
    cc[termios.VMIN] = 1
    cc[termios.VTIME] = 0
    attrs[_CC] = cc

    _set_attrs(fd, attrs, "Could not configure serial port parameters")


def set_port_blocking(fd: int, should_block: bool) -> None:
    """Make reads block for at least one byte, or return immediately."""
    attrs = _get_attrs(
        fd, "Error configuring port blocking behaviour, could not read port parameters"
    )
    cc = list(attrs[_CC])
    cc[termios.VMIN] = 1 if should_block else 0
    cc[termios.VTIME] = 0
    attrs[_CC] = cc
    _set_attrs(
        fd, attrs, "Could not set port parameters while configuring blocking behaviour"
    )