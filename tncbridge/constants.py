"""Interface types, frame sizes, MTU limits and ARP timings."""

from enum import IntEnum

ETHERNET_MIN_FRAME_SIZE = 14
TUN_MIN_FRAME_SIZE = 5

MTU_MIN = 74
MTU_MAX = 1522
MTU_DEFAULT = 329

TXQUEUELEN = 10

# ARP timings, in seconds
ARP_BASE_REACHABLE_TIME = 300
ARP_RETRANS_TIME = 5


class DeviceType(IntEnum):
    """Kind of virtual network interface attached to the TNC."""

    TAP = 1
    TUN = 2

    def min_frame_size(self) -> int:
        """Smallest frame worth passing between interface and TNC."""
        if self is DeviceType.TAP:
            return ETHERNET_MIN_FRAME_SIZE
        return TUN_MIN_FRAME_SIZE