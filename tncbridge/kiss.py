"""KISS framing: byte-wise decoding of TNC data and encoding of outgoing frames."""

from __future__ import annotations

import os
from typing import Iterable

from .constants import MTU_MAX

FEND = 0xC0
FESC = 0xDB
TFEND = 0xDC
TFESC = 0xDD

CMD_UNKNOWN = 0xFE
CMD_DATA = 0x00
CMD_PREAMBLE = 0x01
CMD_P = 0x02
CMD_SLOTTIME = 0x03
CMD_TXTAIL = 0x04
CMD_FULLDUPLEX = 0x05
CMD_SETHARDWARE = 0x06

MAX_PAYLOAD = MTU_MAX


class KissDecoder:
    """Stateful decoder turning a stream of KISS bytes into data frames."""

    def __init__(self) -> None:
        self.in_frame = False
        self.escape = False
        self.command = CMD_UNKNOWN
        self._buffer = bytearray()

    def feed_byte(self, byte: int) -> bytes | None:
        """Consume one byte; return the payload when a data frame completes."""
        if self.in_frame and byte == FEND and self.command == CMD_DATA:
            self.in_frame = False
            return bytes(self._buffer)

        if byte == FEND:
            self.in_frame = True
            self.command = CMD_UNKNOWN
            self._buffer.clear()
            return None

        if not self.in_frame or len(self._buffer) >= MAX_PAYLOAD:
            return None

        if not self._buffer and self.command == CMD_UNKNOWN:
            # Strip the port nibble from the command byte
            self.command = byte & 0x0F
        elif self.command == CMD_DATA:
            if byte == FESC:
                self.escape = True
            else:
                if self.escape:
                    if byte == TFEND:
                        byte = FEND
                    elif byte == TFESC:
                        byte = FESC
                    self.escape = False
                self._buffer.append(byte)
        return None

    def feed(self, data: Iterable[int]) -> list[bytes]:
        """Consume a chunk of bytes and return every data frame it completed."""
        frames = []
        for byte in data:
            frame = self.feed_byte(byte)
            if frame is not None:
                frames.append(frame)
        return frames


def encode_frame(payload: bytes) -> bytes:
    """Wrap a payload in a KISS data frame, escaping FEND and FESC."""
    out = bytearray((FEND, CMD_DATA))
    for byte in payload:
        if byte == FEND:
            out += bytes((FESC, TFEND))
        elif byte == FESC:
            out += bytes((FESC, TFESC))
        else:
            out.append(byte)
    out.append(FEND)
    return bytes(out)


def write_frame(fd: int, payload: bytes) -> int:
    """Write a payload as a KISS data frame to a file descriptor.

    Returns the number of bytes written.
    """
    return os.write(fd, encode_frame(payload))