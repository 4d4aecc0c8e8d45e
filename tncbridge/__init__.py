"""Attach KISS TNC devices as Linux TUN/TAP network interfaces."""

__version__ = "0.1.9"