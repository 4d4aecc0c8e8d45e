import pytest

from tncbridge.constants import (
    ETHERNET_MIN_FRAME_SIZE,
    MTU_MIN,
    TUN_MIN_FRAME_SIZE,
    DeviceType,
)


def test_tap_min_frame_size_is_ethernet_header():
    assert DeviceType.TAP.min_frame_size() == ETHERNET_MIN_FRAME_SIZE
    assert DeviceType.TAP.min_frame_size() == 14


def test_tun_min_frame_size():
    assert DeviceType.TUN.min_frame_size() == TUN_MIN_FRAME_SIZE
    assert DeviceType.TUN.min_frame_size() == 5


@pytest.mark.parametrize("value, expected", [(1, DeviceType.TAP), (2, DeviceType.TUN)])
def test_device_type_from_value(value, expected):
    assert DeviceType(value) is expected


def test_unknown_device_type_rejected():
    with pytest.raises(ValueError):
        DeviceType(3)


@pytest.mark.parametrize("name", ["TAP", "TUN"])
def test_min_frame_size_fits_within_smallest_mtu(name):
    size = DeviceType[name].min_frame_size()
    assert 0 < size <= MTU_MIN