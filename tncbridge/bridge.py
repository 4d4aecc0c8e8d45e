"""Moving frames between the network interface and the TNC."""

from __future__ import annotations

import os
import select
import time

from .constants import MTU_MAX, DeviceType
from .kiss import KissDecoder, write_frame

ETHERTYPE_IPV6 = b"\x86\xdd"
POLL_TIMEOUT_MS = 1000


class BridgeError(RuntimeError):
    """Raised when the bridge cannot continue moving traffic."""


def _device(device_type) -> DeviceType:
    try:
        return DeviceType(device_type)
    except ValueError:
        raise BridgeError("Unsupported interface type") from None


def is_ipv6(frame: bytes, device_type) -> bool:
    """Tell whether a frame read from the interface carries IPv6."""
    kind = _device(device_type)
    # Ethernet frames carry the ethertype after two MAC addresses; TUN frames
    # carry the protocol after the two flag bytes of the packet-info header.
    offset = 12 if kind is DeviceType.TAP else 2
    return bytes(frame[offset:offset + 2]) == ETHERTYPE_IPV6


class Bridge:
    """Relays frames between an interface descriptor and a KISS TNC descriptor."""

    def __init__(
        self,
        interface_fd: int,
        tnc_fd: int,
        device_type=DeviceType.TUN,
        noipv6: bool = False,
        verbose: bool = False,
        daemonize: bool = False,
        identity: str | bytes | None = None,
        id_interval: int = -1,
        if_name: str = "",
    ) -> None:
        self.interface_fd = interface_fd
        self.tnc_fd = tnc_fd
        self.device_type = _device(device_type)
        self.min_frame_size = self.device_type.min_frame_size()
        self.noipv6 = noipv6
        self.verbose = verbose
        self.daemonize = daemonize
        self.identity = identity
        self.id_interval = id_interval
        self.if_name = if_name
        self.last_id = 0.0
        self.tx_since_last_id = False
        self.decoder = KissDecoder()

    def _say(self, message: str) -> None:
        if self.verbose and not self.daemonize:
            print(message)

    def _write_tnc(self, payload: bytes) -> int:
        try:
            return write_frame(self.tnc_fd, payload)
        except OSError as exc:
            raise BridgeError(f"Could not write to TNC: {exc}") from exc

    def handle_interface_frame(self, frame: bytes) -> int | None:
        """Send a frame from the interface to the TNC.

        Returns the number of KISS bytes written, or None when the frame
        was too short or filtered out.
        """
        if len(frame) < self.min_frame_size:
            return None
        if self.noipv6 and is_ipv6(frame, self.device_type):
            return None

        written = self._write_tnc(frame)
        self._say(
            f"Got {len(frame)} bytes from interface, wrote {written} bytes "
            "(KISS-framed and escaped) to TNC"
        )
        self.tx_since_last_id = True

        now = time.time()
        if self.should_id(now):
            self.transmit_id(now)
        return written

    def handle_tnc_data(self, data: bytes) -> list[bytes]:
        """Decode bytes from the TNC and write complete frames to the interface.

        Returns the frames that were delivered to the interface.
        """
        delivered = []
        for frame in self.decoder.feed(data):
            if len(frame) < self.min_frame_size:
                continue
            try:
                written = os.write(self.interface_fd, frame)
            except OSError:
                self._say(
                    f"Could not write received KISS frame ({len(frame)} bytes) "
                    "to network interface, is the interface up?"
                )
                continue
            if written != len(frame):
                raise BridgeError(
                    f"Could only write {written} of {len(frame)} bytes to interface"
                )
            self._say(f"Got {len(frame)} bytes from TNC, wrote {written} bytes to interface")
            delivered.append(frame)
        return delivered

    def should_id(self, now: float) -> bool:
        """Tell whether the identification interval has run out at time now."""
        return self.id_interval >= 0 and now > self.last_id + self.id_interval

    def transmit_id(self, now: float) -> None:
        """Send the station identification to the TNC."""
        if self.identity is None:
            raise BridgeError("No identification data configured")
        data = (
            self.identity.encode()
            if isinstance(self.identity, str)
            else bytes(self.identity)
        )
        text = data.decode(errors="replace")
        self._say(
            f"Transmitting {len(data)} bytes of identification data on "
            f"{self.if_name}: {text}"
        )
        self._write_tnc(data)
        self.last_id = now
        self.tx_since_last_id = False

    def run_scheduled(self, now: float) -> bool:
        """Identify if traffic went out and the interval ran out; tell if it did."""
        if self.tx_since_last_id and self.should_id(now):
            self.transmit_id(now)
            return True
        return False

    def _read_interface(self) -> None:
        try:
            data = os.read(self.interface_fd, MTU_MAX)
        except OSError:
            data = b""
        if not data:
            raise BridgeError("Could not read from network interface, exiting now")
        self.handle_interface_frame(data)

    def _read_tnc(self) -> None:
        try:
            data = os.read(self.tnc_fd, MTU_MAX)
        except OSError:
            data = b""
        if not data:
            raise BridgeError("Could not read from TNC, exiting now")
        self.handle_tnc_data(data)

    def run(self):
        """Relay traffic until a descriptor fails; always ends with BridgeError."""
        poller = select.poll()
        poller.register(self.interface_fd, select.POLLIN)
        poller.register(self.tnc_fd, select.POLLIN)
        sources = (
            (self.interface_fd, "interface", self._read_interface),
            (self.tnc_fd, "TNC", self._read_tnc),
        )

        while True:
            try:
                events = dict(poller.poll(POLL_TIMEOUT_MS))
            except OSError as exc:
                raise BridgeError(f"Polling failed: {exc}") from exc

            if not events:
                # Nothing to read, run scheduled tasks instead.
                self.run_scheduled(time.time())
                continue

            for fd, label, reader in sources:
                revents = events.get(fd, 0)
                if not revents:
                    continue
                if revents & select.POLLHUP:
                    raise BridgeError(f"Received hangup from {label}")
                if revents & select.POLLERR:
                    raise BridgeError(f"Received error event from {label}")
                if revents & select.POLLIN:
                    reader()

    def shutdown(self) -> None:
        """Send a final identification if traffic went out since the last one."""
        if self.id_interval >= 0 and self.tx_since_last_id:
            self.transmit_id(time.time())