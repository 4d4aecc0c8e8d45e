"""Command-line options for attaching a TNC as a network interface."""

from __future__ import annotations

import argparse
import ipaddress
import logging
import re
from dataclasses import dataclass, field

from .constants import MTU_DEFAULT, MTU_MAX, MTU_MIN, DeviceType

logger = logging.getLogger(__name__)

BAUDRATE_DEFAULT = 0
IPV6_MIN_MTU = 1280
N_ARGS = 2
VERSION = "0.1.9"

_DESCRIPTION = "Attach TNC devices as system network interfaces"
_EPILOG = (
    "To attach the TNC connected to /dev/ttyUSB0 as an ethernet device with an "
    "MTU of 512 bytes and assign an IPv4 address, while filtering IPv6 traffic, "
    "use: %(prog)s /dev/ttyUSB0 115200 -m 512 -e --noipv6 --ipv4 10.0.0.1/24. "
    "Station identification can be performed automatically to comply with "
    "Part 97 rules. Use the --id and --interval options, which should commonly "
    "be set to your callsign, and 600 seconds."
)

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


class UsageError(ValueError):
    """Raised when the command line is invalid."""


@dataclass
class Options:
    """Everything the command line configures."""

    port: str | None = None
    baudrate: int = BAUDRATE_DEFAULT
    socket_path: str | None = None
    device_type: DeviceType = DeviceType.TUN
    mtu: int = MTU_DEFAULT
    ipv4_addr: str | None = None
    netmask: str | None = None
    ipv6_addr: str | None = None
    ipv6_prefix_len: int = 0
    link_local: bool = False
    noipv6: bool = False
    noup: bool = False
    kiss_over_tcp: bool = False
    tcp_host: str | None = None
    tcp_port: int | None = None
    id_interval: int = -1
    identity: str | None = None
    daemon: bool = False
    verbose: bool = False
    arguments: list[str] = field(default_factory=list, repr=False)


def _leading_int(text: str) -> int:
    """Parse a leading decimal integer, giving 0 when there is none."""
    match = _LEADING_INT.match(text)
    return int(match.group(1)) if match else 0


def prefix_to_netmask(prefix: int) -> str:
    """Return the dotted IPv4 netmask for a prefix length from 0 to 32."""
    if not 0 <= prefix <= 32:
        raise UsageError("Invalid subnet mask specified")
    return str(ipaddress.IPv4Network((0, prefix)).netmask)


def parse_ipv4(arg: str) -> tuple[str, str | None]:
    """Split ADDRESS[/PREFIX] into the address and its netmask, if given."""
    if "/" in arg:
        address, _, prefix = arg.partition("/")
        return address, prefix_to_netmask(_leading_int(prefix))
    return arg, None


def parse_ipv6(arg: str) -> tuple[str, int]:
    """Split ADDRESS/PREFIX into the IPv6 address and its prefix length."""
    tokens = [token for token in arg.split("/") if token]
    if len(tokens) < 2:
        raise UsageError("No prefix length was provided")
    address, prefix_text = tokens[0], tokens[1]
    prefix = _leading_int(prefix_text)
    if prefix == 0:
        raise UsageError(f"Prefix length '{prefix_text}' is not numeric")
    if not 0 <= prefix <= 128:
        raise UsageError(
            f"Prefix length '{prefix_text}' is not within valid range of 0-128"
        )
    return address, prefix


def _set_mtu(opts: Options, arg: str) -> None:
    mtu = _leading_int(arg)
    if mtu < MTU_MIN or mtu > MTU_MAX:
        raise UsageError("Invalid MTU specified")
    if (opts.ipv6_addr is not None or opts.link_local) and mtu < IPV6_MIN_MTU:
        raise UsageError(
            "IPv6 and/or link-local IPv6 was requested, but the MTU provided "
            f"is lower than {IPV6_MIN_MTU}"
        )
    opts.mtu = mtu


def _raise_mtu_for_ipv6(opts: Options) -> None:
    logger.info(
        "MTU was %d, setting to minimum of %d as is required for IPv6",
        opts.mtu,
        IPV6_MIN_MTU,
    )
    opts.mtu = IPV6_MIN_MTU


def _set_ethernet(opts: Options, _arg) -> None:
    opts.device_type = DeviceType.TAP


def _set_ipv4(opts: Options, arg: str) -> None:
    opts.ipv4_addr, opts.netmask = parse_ipv4(arg)


def _set_ipv6(opts: Options, arg: str) -> None:
    if opts.noipv6:
        raise UsageError("Sorry, but you had noipv6 set yet want to use ipv6?")
    opts.ipv6_addr, opts.ipv6_prefix_len = parse_ipv6(arg)
    _raise_mtu_for_ipv6(opts)


def _set_link_local(opts: Options, _arg) -> None:
    if opts.noipv6:
        raise UsageError(
            "Sorry, but you had noipv6 set yet want to use ipv6 link-local?"
        )
    opts.link_local = True
    _raise_mtu_for_ipv6(opts)


def _set_noipv6(opts: Options, _arg) -> None:
    opts.noipv6 = True
    if opts.ipv6_addr is not None:
        raise UsageError(
            f"Requested no IPv6 yet you have set the IPv6 to '{opts.ipv6_addr}'"
        )


def _set_noup(opts: Options, _arg) -> None:
    opts.noup = True


def _set_kisstcp(opts: Options, _arg) -> None:
    opts.kiss_over_tcp = True


def _set_tcp_host(opts: Options, arg: str) -> None:
    opts.tcp_host = arg


def _set_tcp_port(opts: Options, arg: str) -> None:
    opts.tcp_port = _leading_int(arg)


def _set_interval(opts: Options, arg: str) -> None:
    interval = _leading_int(arg)
    if interval < 0:
        raise UsageError("Invalid identification interval specified")
    opts.id_interval = interval


def _set_identity(opts: Options, arg: str) -> None:
    length = len(arg.encode())
    if length < 1 or length > opts.mtu:
        raise UsageError("Invalid identification string specified")
    opts.identity = arg


def _set_daemon(opts: Options, _arg) -> None:
    opts.daemon = True
    opts.verbose = False


def _set_verbose(opts: Options, _arg) -> None:
    opts.verbose = True


class _Parser(argparse.ArgumentParser):
    def error(self, message: str):
        raise UsageError(message)


class _Apply(argparse.Action):
    """Apply an option to the Options namespace at the moment it is seen."""

    def __init__(self, option_strings, dest, handler, nargs=None, **kwargs):
        super().__init__(option_strings, dest, nargs=nargs, **kwargs)
        self.handler = handler

    def __call__(self, parser, namespace, values, option_string=None):
        self.handler(namespace, values)


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser; its errors raise UsageError."""
    parser = _Parser(
        prog="tncbridge",
        description=_DESCRIPTION,
        epilog=_EPILOG,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {VERSION}")

    def add(*names, handler, metavar=None, help):
        kwargs = {"nargs": 0} if metavar is None else {"metavar": metavar}
        parser.add_argument(
            *names,
            action=_Apply,
            handler=handler,
            default=argparse.SUPPRESS,
            help=help,
            **kwargs,
        )

    add("-m", "--mtu", handler=_set_mtu, metavar="MTU", help="Specify interface MTU")
    add("-e", "--ethernet", handler=_set_ethernet, help="Create a full ethernet device")
    add("-i", "--ipv4", handler=_set_ipv4, metavar="IP_ADDRESS",
        help="Configure an IPv4 address on interface")
    add("-6", "--ipv6", handler=_set_ipv6, metavar="IP6_ADDRESS",
        help="Configure an IPv6 address on interface")
    add("-l", "--ll", handler=_set_link_local, help="Add a link-local Ipv6 address")
    add("-n", "--noipv6", handler=_set_noipv6,
        help="Filter IPv6 traffic from reaching TNC")
    add("--noup", handler=_set_noup, help="Only create interface, don't bring it up")
    add("-T", "--kisstcp", handler=_set_kisstcp,
        help="Use KISS over TCP instead of serial port")
    add("-H", "--tcphost", handler=_set_tcp_host, metavar="TCP_HOST",
        help="Host to connect to when using KISS over TCP")
    add("-P", "--tcpport", handler=_set_tcp_port, metavar="TCP_PORT",
        help="TCP port when using KISS over TCP")
    add("-t", "--interval", handler=_set_interval, metavar="SECONDS",
        help="Maximum interval between station identifications")
    add("-s", "--id", handler=_set_identity, metavar="CALLSIGN",
        help="Station identification data")
    add("-d", "--daemon", handler=_set_daemon, help="Run as a daemon")
    add("-v", "--verbose", handler=_set_verbose, help="Enable verbose output")

    parser.add_argument(
        "arguments",
        nargs="*",
        metavar="port baudrate",
        help="serial port and baud rate, or a port followed by unix:PATH",
    )
    return parser


def _apply_positionals(opts: Options) -> list[str]:
    stored: list[str] = []
    for arg in opts.arguments:
        if opts.socket_path is None and arg.startswith("unix:"):
            opts.socket_path = arg[len("unix:"):]
        elif opts.socket_path is not None or len(stored) >= N_ARGS:
            raise UsageError("Too many arguments")
        else:
            stored.append(arg)

    given = len(opts.arguments)
    if not opts.kiss_over_tcp and given < N_ARGS:
        raise UsageError("Too few arguments, expected port and baudrate")
    if opts.kiss_over_tcp and given != 0:
        raise UsageError("No port or baudrate may be given with KISS over TCP")
    return stored


def parse_args(argv=None) -> Options:
    """Parse and validate a command line into Options."""
    opts = Options()
    build_parser().parse_intermixed_args(argv, namespace=opts)
    stored = _apply_positionals(opts)
    if stored:
        opts.port = stored[0]

    if opts.socket_path is not None:
        pass
    elif opts.kiss_over_tcp:
        problems = []
        if opts.tcp_host is None:
            problems.append("KISS over TCP was requested, but no host was specified")
        if opts.tcp_port is None:
            problems.append("KISS over TCP was requested, but no port was specified")
        if problems:
            raise UsageError("; ".join(problems))
    else:
        opts.baudrate = _leading_int(stored[1])

    if opts.id_interval >= 0:
        if opts.identity is None:
            raise UsageError(
                "Periodic identification requested, but no valid "
                "identification data specified"
            )
    elif opts.identity is not None:
        raise UsageError(
            "Periodic identification requested, but no identification "
            "interval specified"
        )
    return opts