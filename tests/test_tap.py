import ipaddress
import os
import socket
import struct
from pathlib import Path

import pytest

from tncbridge.constants import (
    ARP_BASE_REACHABLE_TIME,
    ARP_RETRANS_TIME,
    MTU_DEFAULT,
    DeviceType,
)
from tncbridge.tap import (
    IFNAMSIZ,
    InterfaceConfig,
    TapError,
    add_ipv6_address,
    arp_proc_paths,
    close_tap,
    ifreq_flags,
    ifreq_int,
    ifreq_sockaddr_in,
    in6_ifreq,
    open_tap,
    set_arp_parameters,
)


def test_ifreq_flags_layout():
    buf = ifreq_flags("tnc%d", 0x1002)
    assert len(buf) == 40
    assert buf[:IFNAMSIZ].rstrip(b"\0") == b"tnc%d"
    assert struct.unpack_from("=H", buf, IFNAMSIZ)[0] == 0x1002


def test_ifreq_int_round_trip():
    buf = ifreq_int("tnc0", 1280)
    assert len(buf) == 40
    assert buf[:IFNAMSIZ].split(b"\0", 1)[0] == b"tnc0"
    assert struct.unpack_from("=i", buf, IFNAMSIZ)[0] == 1280


def test_ifreq_name_too_long():
    with pytest.raises(ValueError):
        ifreq_int("x" * IFNAMSIZ, 0)


def test_ifreq_sockaddr_in_layout():
    buf = ifreq_sockaddr_in("tnc0", "10.0.0.1")
    assert len(buf) == 40
    family = struct.unpack_from("=H", buf, IFNAMSIZ)[0]
    assert family == socket.AF_INET
    assert buf[IFNAMSIZ + 2:IFNAMSIZ + 4] == b"\0\0"
    assert buf[IFNAMSIZ + 4:IFNAMSIZ + 8] == socket.inet_aton("10.0.0.1")
    assert buf[IFNAMSIZ + 8:] == bytes(len(buf) - IFNAMSIZ - 8)


def test_ifreq_sockaddr_in_invalid():
    with pytest.raises(ValueError):
        ifreq_sockaddr_in("tnc0", "10.0.0.300")


def test_in6_ifreq_layout():
    buf = in6_ifreq(3, "fd00::1", 64)
    assert len(buf) == 24
    addr, prefix, index = struct.unpack("=16sIi", buf)
    assert addr == ipaddress.IPv6Address("fd00::1").packed
    assert prefix == 64
    assert index == 3


def test_in6_ifreq_invalid_address():
    with pytest.raises(ValueError):
        in6_ifreq(1, "not-an-address", 64)


def test_add_ipv6_address_invalid_address():
    with pytest.raises(TapError):
        add_ipv6_address(1, "fd00::zz", 64)


def test_arp_proc_paths():
    reachable, retrans = arp_proc_paths("tnc0", "/proc")
    base = Path("/proc/sys/net/ipv4/neigh/tnc0")
    assert reachable == base / "base_reachable_time_ms"
    assert retrans == base / "retrans_time_ms"


def test_set_arp_parameters_writes_values(tmp_path):
    reachable, retrans = arp_proc_paths("tnc0", str(tmp_path))
    reachable.parent.mkdir(parents=True)
    set_arp_parameters("tnc0", str(tmp_path))
    assert reachable.read_text() == str(ARP_BASE_REACHABLE_TIME * 1000)
    assert retrans.read_text() == str(ARP_RETRANS_TIME * 1000)


def test_set_arp_parameters_missing_entry(tmp_path):
    with pytest.raises(TapError):
        set_arp_parameters("tnc0", str(tmp_path))


def test_interface_config_defaults():
    config = InterfaceConfig()
    assert config.device_type is DeviceType.TUN
    assert config.mtu == MTU_DEFAULT
    assert config.noup is False
    assert config.ipv4_addr is None


def test_open_tap_missing_clone_device(tmp_path):
    config = InterfaceConfig(clone_device=str(tmp_path / "missing"))
    with pytest.raises(TapError):
        open_tap(config)


def test_open_tap_unsupported_type(tmp_path):
    clone = tmp_path / "clone"
    clone.write_bytes(b"")
    config = InterfaceConfig(device_type=99, clone_device=str(clone))
    with pytest.raises(TapError, match="Unsupported interface type"):
        open_tap(config)


@pytest.mark.parametrize("device_type", [DeviceType.TUN, DeviceType.TAP])
def test_open_tap_on_regular_file_fails(tmp_path, device_type):
    clone = tmp_path / "clone"
    clone.write_bytes(b"")
    config = InterfaceConfig(device_type=device_type, clone_device=str(clone))
    with pytest.raises(TapError, match="Could not configure network interface"):
        open_tap(config)


def test_close_tap_closes_descriptor(tmp_path):
    path = tmp_path / "file"
    path.write_bytes(b"")
    fd = os.open(path, os.O_RDONLY)
    close_tap(fd)
    with pytest.raises(OSError):
        os.fstat(fd)