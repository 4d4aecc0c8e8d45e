"""Command entry point: attach a TNC as a system network interface."""

from __future__ import annotations

import contextlib
import logging
import os
import signal
import sys
import syslog

from .bridge import Bridge, BridgeError
from .options import Options, UsageError, build_parser, parse_args
from .serialport import SerialPortError, close_port, open_port, setup_port
from .tap import InterfaceConfig, close_tap, open_tap
from .transport import close_tcp, close_unix_socket, open_tcp, open_unix_socket

SYSLOG_IDENT = "tncbridge"


class _Terminate(Exception):
    """Raised from a signal handler to stop the bridge cleanly."""


def _raise_terminate(signum, _frame):
    raise _Terminate(signum)


def become_daemon() -> None:
    """Detach from the controlling terminal in-process and log to syslog.

    A new session is started where the process is allowed to lead one,
    standard streams are pointed at the null device, the umask is cleared
    and the working directory becomes the root.
    """
    with contextlib.suppress(PermissionError):
        os.setsid()
    sys.stdout.flush()
    sys.stderr.flush()
    devnull = os.open(os.devnull, os.O_RDWR)
    try:
        for fd in (0, 1, 2):
            os.dup2(devnull, fd)
    finally:
        os.close(devnull)
    os.umask(0)
    os.chdir("/")
    syslog.openlog(SYSLOG_IDENT, syslog.LOG_PID, syslog.LOG_DAEMON)


def _report(message: str, daemonized: bool) -> None:
    if daemonized:
        syslog.syslog(syslog.LOG_ERR, message)
    else:
        print(f"Error: {message}", file=sys.stderr)


def _interface_config(opts: Options) -> InterfaceConfig:
    return InterfaceConfig(
        device_type=opts.device_type,
        mtu=opts.mtu,
        noup=opts.noup,
        ipv4_addr=opts.ipv4_addr,
        netmask=opts.netmask,
        ipv6_addr=opts.ipv6_addr,
        ipv6_prefix_len=opts.ipv6_prefix_len,
        link_local=opts.link_local,
    )


def _open_tnc(opts: Options, stack: contextlib.ExitStack) -> int:
    if opts.socket_path is not None:
        sock = open_unix_socket(opts.socket_path)
        stack.callback(close_unix_socket, sock)
        return sock.fileno()
    if opts.kiss_over_tcp:
        sock = open_tcp(opts.tcp_host, opts.tcp_port)
        stack.callback(close_tcp, sock)
        return sock.fileno()
    fd = open_port(opts.port)
    stack.callback(close_port, fd)
    try:
        setup_port(fd, opts.baudrate)
    except SerialPortError as exc:
        raise SerialPortError(f"Error during serial port setup: {exc}") from exc
    return fd


def main(argv=None) -> int:
    """Parse the command line, set up interface and TNC, and relay traffic."""
    logging.basicConfig(level=logging.INFO, format="%(message)s")

    try:
        opts = parse_args(argv)
    except UsageError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        build_parser().print_usage(sys.stderr)
        return 1

    with contextlib.ExitStack() as stack:
        try:
            interface_fd, if_name = open_tap(_interface_config(opts))
            stack.callback(close_tap, interface_fd)
            tnc_fd = _open_tnc(opts, stack)
        except OSError as exc:
            _report(str(exc), False)
            return 1

        print(f"TNC interface configured as {if_name}")

        bridge = Bridge(
            interface_fd,
            tnc_fd,
            device_type=opts.device_type,
            noipv6=opts.noipv6,
            verbose=opts.verbose,
            daemonize=opts.daemon,
            identity=opts.identity,
            id_interval=opts.id_interval,
            if_name=if_name,
        )

        previous = signal.signal(signal.SIGINT, _raise_terminate)
        try:
            if opts.daemon:
                become_daemon()
                signal.signal(signal.SIGCHLD, _raise_terminate)
                signal.signal(signal.SIGHUP, _raise_terminate)
                syslog.syslog(syslog.LOG_NOTICE, f"{SYSLOG_IDENT} daemon running")
            bridge.run()
        except _Terminate:
            if opts.daemon:
                syslog.syslog(syslog.LOG_NOTICE, f"{SYSLOG_IDENT} daemon exiting")
            try:
                bridge.shutdown()
            except BridgeError as exc:
                _report(str(exc), opts.daemon)
            return 0
        except (BridgeError, OSError) as exc:
            _report(str(exc), opts.daemon)
            return 1
        finally:
            signal.signal(signal.SIGINT, previous)
    return 1


if __name__ == "__main__":
    sys.exit(main())