"""Transport helpers for the debug port."""

from .serial import SerialTransport, Transport

__all__ = ["SerialTransport", "Transport"]
