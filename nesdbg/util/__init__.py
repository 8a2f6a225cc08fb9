"""Small helpers shared by the nesdbg services."""

from __future__ import annotations

import logging

from ..protocol.hextext import format_hex

__all__ = [
    "chunk_bytes",
    "log_hexdump",
]


def chunk_bytes(payload: bytes, chunk_size: int) -> list[bytes]:
    """Split ``payload`` into ``chunk_size`` pieces; the last may be shorter."""
    if chunk_size <= 0:
        raise ValueError("chunk_size must be positive")
    view = memoryview(payload)
    return [bytes(view[offset : offset + chunk_size]) for offset in range(0, len(view), chunk_size)]


def log_hexdump(logger: logging.Logger, level: int, label: str, data: bytes) -> None:
    """Log ``data`` as ``[HEXDUMP] label: AA BB ...`` if ``level`` is enabled."""
    if logger.isEnabledFor(level):
        logger.log(level, "[HEXDUMP] %s: %s", label, format_hex(data) or "<empty>")
