"""Creating and configuring the TUN/TAP interface that carries TNC traffic."""

from __future__ import annotations

import fcntl
import ipaddress
import logging
import os
import socket
import struct
from dataclasses import dataclass
from pathlib import Path

from .constants import (
    ARP_BASE_REACHABLE_TIME,
    ARP_RETRANS_TIME,
    MTU_DEFAULT,
    TXQUEUELEN,
    DeviceType,
)

logger = logging.getLogger(__name__)

IFNAMSIZ = 16
IFREQ_SIZE = 40

IFF_UP = 0x0001
IFF_RUNNING = 0x0040
IFF_TUN = 0x0001
IFF_TAP = 0x0002
IFF_NO_PI = 0x1000

TUNSETIFF = 0x400454CA
SIOCGIFFLAGS = 0x8913
SIOCSIFFLAGS = 0x8914
SIOCSIFADDR = 0x8916
SIOCSIFNETMASK = 0x891C
SIOCGIFMTU = 0x8921
SIOCSIFMTU = 0x8922
SIOCGIFINDEX = 0x8933
SIOCGIFTXQLEN = 0x8942
SIOCSIFTXQLEN = 0x8943

_IFR_DATA_OFFSET = IFNAMSIZ


class TapError(OSError):
    """Raised when the network interface cannot be created or configured."""


@dataclass
class InterfaceConfig:
    """How the virtual interface should be created and configured."""

    device_type: DeviceType = DeviceType.TUN
    mtu: int = MTU_DEFAULT
    noup: bool = False
    ipv4_addr: str | None = None
    netmask: str | None = None
    ipv6_addr: str | None = None
    ipv6_prefix_len: int = 0
    link_local: bool = False
    name_template: str = "tnc%d"
    clone_device: str = "/dev/net/tun"
    proc_root: str = "/proc"


def _encode_name(name: str) -> bytes:
    raw = name.encode()
    if len(raw) >= IFNAMSIZ:
        raise ValueError(f"Interface name {name!r} is longer than {IFNAMSIZ - 1} bytes")
    return raw


def _ifreq_name(buf: bytes) -> str:
    return buf[:IFNAMSIZ].split(b"\0", 1)[0].decode()


def _ifreq_int_value(buf: bytes) -> int:
    return struct.unpack_from("=i", buf, _IFR_DATA_OFFSET)[0]


def _ifreq_flags_value(buf: bytes) -> int:
    return struct.unpack_from("=H", buf, _IFR_DATA_OFFSET)[0]


def ifreq_flags(name: str, flags: int) -> bytes:
    """Build a struct ifreq carrying interface flags."""
    return struct.pack("=16sH22x", _encode_name(name), flags & 0xFFFF)


def ifreq_int(name: str, value: int) -> bytes:
    """Build a struct ifreq carrying an integer (MTU, queue length, index)."""
    return struct.pack("=16si20x", _encode_name(name), value)


def ifreq_sockaddr_in(name: str, address: str) -> bytes:
    """Build a struct ifreq carrying an IPv4 socket address."""
    try:
        packed = socket.inet_pton(socket.AF_INET, address)
    except OSError:
        raise ValueError(f"Invalid IPv4 address {address!r}") from None
    return struct.pack(
        "=16sH2s4s8x8x", _encode_name(name), socket.AF_INET, b"\0\0", packed
    )


def in6_ifreq(if_index: int, address, prefix_len: int) -> bytes:
    """Build a struct in6_ifreq for assigning an IPv6 address."""
    packed = ipaddress.IPv6Address(address).packed
    return struct.pack("=16sIi", packed, prefix_len, if_index)


def arp_proc_paths(name: str, proc_root: str = "/proc") -> tuple[Path, Path]:
    """Return the proc entries for base reachable time and retransmit time."""
    base = Path(proc_root) / "sys" / "net" / "ipv4" / "neigh" / name
    return base / "base_reachable_time_ms", base / "retrans_time_ms"


def set_arp_parameters(name: str, proc_root: str = "/proc") -> None:
    """Write the ARP timing parameters for an interface."""
    reachable_path, retrans_path = arp_proc_paths(name, proc_root)
    for path, value, label in (
        (reachable_path, ARP_BASE_REACHABLE_TIME * 1000, "base_reachable_time_ms"),
        (retrans_path, ARP_RETRANS_TIME * 1000, "retrans_time_ms"),
    ):
        try:
            handle = open(path, "w")
        except OSError as exc:
            raise TapError(f"Could not open proc entry for ARP parameters: {exc}") from exc
        with handle:
            try:
                handle.write(str(value))
            except OSError as exc:
                raise TapError(
                    f"Could not configure interface ARP parameter {label}: {exc}"
                ) from exc


def add_ipv6_address(if_index: int, address, prefix_len: int) -> None:
    """Assign an IPv6 address with prefix length to the interface at if_index."""
    try:
        request = in6_ifreq(if_index, address, prefix_len)
    except ValueError:
        raise TapError(f"Error parsing IPv6 address '{address}'") from None
    text = str(ipaddress.IPv6Address(address))
    logger.info(
        "Adding IPv6 address of '%s/%d' to interface at if_index %d",
        text,
        prefix_len,
        if_index,
    )
    try:
        inet6 = socket.socket(socket.AF_INET6, socket.SOCK_DGRAM)
    except OSError as exc:
        raise TapError(
            "Error opening control socket for adding IPv6 address to interface"
        ) from exc
    with inet6:
        try:
            fcntl.ioctl(inet6.fileno(), SIOCSIFADDR, request)
        except OSError as exc:
            raise TapError(
                f"There was an error assigning address '{text}/{prefix_len}' "
                f"to if_index {if_index}"
            ) from exc
    logger.info("Address '%s/%d' added", text, prefix_len)


def _ioctl(fd: int, request: int, arg: bytes, message: str) -> bytes:
    try:
        return fcntl.ioctl(fd, request, arg)
    except OSError as exc:
        raise TapError(f"{message}: {exc}") from exc


def _tun_flags(device_type) -> int:
    try:
        kind = DeviceType(device_type)
    except ValueError:
        raise TapError("Unsupported interface type") from None
    if kind is DeviceType.TAP:
        return IFF_TAP | IFF_NO_PI
    return IFF_TUN


def _configure_ipv4(ctl: int, name: str, config: InterfaceConfig) -> None:
    try:
        address_req = ifreq_sockaddr_in(name, config.ipv4_addr)
    except ValueError:
        raise TapError("Invalid IPv4 address specified") from None
    _ioctl(ctl, SIOCSIFADDR, address_req, "Could not set IP-address")
    if config.netmask is not None:
        try:
            mask_req = ifreq_sockaddr_in(name, config.netmask)
        except ValueError:
            raise TapError("Invalid subnet mask specified") from None
        _ioctl(ctl, SIOCSIFNETMASK, mask_req, "Could not set subnet mask")


def _configure_ipv6(name: str, config: InterfaceConfig) -> None:
    try:
        inet6 = socket.socket(socket.AF_INET6, socket.SOCK_DGRAM)
    except OSError as exc:
        raise TapError(
            "Error opening control socket for adding IPv6 address to interface"
        ) from exc
    with inet6:
        try:
            reply = fcntl.ioctl(inet6.fileno(), SIOCGIFINDEX, ifreq_int(name, 0))
        except OSError as exc:
            raise TapError(
                f"Could not get interface index for interface '{name}'"
            ) from exc
        if_index = _ifreq_int_value(reply)
        # With only link-local requested the kernel assigns the address itself.
        if config.ipv6_addr is not None:
            add_ipv6_address(if_index, config.ipv6_addr, config.ipv6_prefix_len)


def _configure(fd: int, config: InterfaceConfig) -> str:
    flags = _tun_flags(config.device_type)
    reply = _ioctl(
        fd,
        TUNSETIFF,
        ifreq_flags(config.name_template, flags),
        "Could not configure network interface",
    )
    name = _ifreq_name(reply)

    try:
        inet = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    except OSError as exc:
        raise TapError(f"Could not open control socket: {exc}") from exc

    with inet:
        ctl = inet.fileno()
        _ioctl(ctl, SIOCGIFMTU, ifreq_int(name, 0), "Could not get interface flags from kernel")
        _ioctl(ctl, SIOCSIFMTU, ifreq_int(name, config.mtu), "Could not configure interface MTU")

        _ioctl(ctl, SIOCGIFTXQLEN, ifreq_int(name, 0), "Could not get interface flags from kernel")
        _ioctl(
            ctl,
            SIOCSIFTXQLEN,
            ifreq_int(name, TXQUEUELEN),
            "Could not set interface TX queue length",
        )

        if DeviceType(config.device_type) is DeviceType.TAP:
            set_arp_parameters(name, config.proc_root)

        if not config.noup:
            reply = _ioctl(
                ctl,
                SIOCGIFFLAGS,
                ifreq_flags(name, 0),
                "Could not get interface flags from kernel",
            )
            current = _ifreq_flags_value(reply)
            _ioctl(
                ctl,
                SIOCSIFFLAGS,
                ifreq_flags(name, current | IFF_UP | IFF_RUNNING),
                "Could not bring up interface",
            )

            if config.ipv4_addr is not None:
                _configure_ipv4(ctl, name, config)

            if config.ipv6_addr is not None or config.link_local:
                _configure_ipv6(name, config)

    return name


def open_tap(config: InterfaceConfig) -> tuple[int, str]:
    """Create and configure the interface; return its descriptor and name."""
    try:
        fd = os.open(config.clone_device, os.O_RDWR)
    except OSError as exc:
        raise TapError(f"Could not open clone device: {exc}") from exc
    try:
        name = _configure(fd, config)
    except BaseException:
        os.close(fd)
        raise
    return fd, name


def close_tap(fd: int) -> None:
    """Close the interface descriptor."""
    os.close(fd)