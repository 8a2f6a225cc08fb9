"""Shared constants for nesdbg components."""

from __future__ import annotations

from typing import Final

DEFAULT_SERIAL_PORT: Final[str] = "/dev/ttyUSB0"
DEFAULT_SERIAL_BAUD: Final[int] = 38400
DEFAULT_SERIAL_BYTESIZE: Final[int] = 8
DEFAULT_SERIAL_PARITY: Final[str] = "O"
DEFAULT_SERIAL_STOPBITS: Final[int] = 1
DEFAULT_SERIAL_TIMEOUT: Final[float] = 5.0
# First transfer after open is unreliable without a short settle.
DEFAULT_SERIAL_SETTLE_DELAY: Final[float] = 0.2

DEFAULT_SCRIPT_DIR: Final[str] = "scripts"
DEFAULT_ASM_DIR: Final[str] = "asm/prg"
SCRIPT_SUFFIX: Final[str] = ".py"

DEFAULT_HALT_POLL_INTERVAL: Final[float] = 0.01
DEFAULT_HALT_WAIT_TIMEOUT: Final[float] = 0.0

DEFAULT_ROM_CHUNK_SIZE: Final[int] = 0x400

DEFAULT_DEBUG_LOGGING: Final[bool] = False
DEFAULT_METRICS_ENABLED: Final[bool] = False
DEFAULT_METRICS_HOST: Final[str] = "127.0.0.1"
DEFAULT_METRICS_PORT: Final[int] = 9131

LIVENESS_TOKEN: Final[bytes] = b"NES\x00"

SERIAL_PARITIES: Final[frozenset[str]] = frozenset({"N", "E", "O", "M", "S"})
SERIAL_BYTESIZES: Final[frozenset[int]] = frozenset({5, 6, 7, 8})
SERIAL_STOPBITS: Final[frozenset[float]] = frozenset({1, 1.5, 2})

__all__ = [
    "DEFAULT_SERIAL_PORT",
    "DEFAULT_SERIAL_BAUD",
    "DEFAULT_SERIAL_BYTESIZE",
    "DEFAULT_SERIAL_PARITY",
    "DEFAULT_SERIAL_STOPBITS",
    "DEFAULT_SERIAL_TIMEOUT",
    "DEFAULT_SERIAL_SETTLE_DELAY",
    "DEFAULT_SCRIPT_DIR",
    "DEFAULT_ASM_DIR",
    "SCRIPT_SUFFIX",
    "DEFAULT_HALT_POLL_INTERVAL",
    "DEFAULT_HALT_WAIT_TIMEOUT",
    "DEFAULT_ROM_CHUNK_SIZE",
    "DEFAULT_DEBUG_LOGGING",
    "DEFAULT_METRICS_ENABLED",
    "DEFAULT_METRICS_HOST",
    "DEFAULT_METRICS_PORT",
    "LIVENESS_TOKEN",
    "SERIAL_PARITIES",
    "SERIAL_BYTESIZES",
    "SERIAL_STOPBITS",
]
