"""KISS transports over TCP and over a listening Unix domain socket."""

from __future__ import annotations

import contextlib
import os
import socket


class TransportError(OSError):
    """Raised when a TNC connection cannot be established."""


def open_tcp(host: str, port: int) -> socket.socket:
    """Connect to a KISS-over-TCP TNC and return the connected socket."""
    try:
        address = socket.gethostbyname(host)
    except OSError as exc:
        raise TransportError(f"Error resolving host {host!r}: {exc}") from exc

    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    try:
        sock.connect((address, port))
    except OSError as exc:
        sock.close()
        raise TransportError(f"Could not connect TCP socket: {exc}") from exc
    return sock


def close_tcp(sock: socket.socket) -> None:
    """Close a TCP connection to the TNC."""
    sock.close()


def open_unix_socket(path: str) -> socket.socket:
    """Listen on a Unix socket at path and return the first client to connect."""
    with contextlib.suppress(FileNotFoundError):
        os.unlink(path)

    try:
        listener = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
    except OSError as exc:
        raise TransportError(f"Could not open AF_UNIX socket: {exc}") from exc

    with listener:
        try:
            listener.bind(path)
        except OSError as exc:
            raise TransportError(f"Could not bind to AF_UNIX socket: {exc}") from exc
        try:
            listener.listen(1)
        except OSError as exc:
            raise TransportError(f"Could not listen on AF_UNIX socket: {exc}") from exc
        client, _ = listener.accept()
    return client


def close_unix_socket(sock: socket.socket) -> None:
    """Close a Unix socket connection to the TNC."""
    sock.close()