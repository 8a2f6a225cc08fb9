"""Data model for nesdbg configuration."""

from __future__ import annotations

from dataclasses import dataclass

from ..const import (
    DEFAULT_ASM_DIR,
    DEFAULT_DEBUG_LOGGING,
    DEFAULT_HALT_POLL_INTERVAL,
    DEFAULT_HALT_WAIT_TIMEOUT,
    DEFAULT_METRICS_ENABLED,
    DEFAULT_METRICS_HOST,
    DEFAULT_METRICS_PORT,
    DEFAULT_ROM_CHUNK_SIZE,
    DEFAULT_SCRIPT_DIR,
    DEFAULT_SERIAL_BAUD,
    DEFAULT_SERIAL_BYTESIZE,
    DEFAULT_SERIAL_PARITY,
    DEFAULT_SERIAL_PORT,
    DEFAULT_SERIAL_SETTLE_DELAY,
    DEFAULT_SERIAL_STOPBITS,
    DEFAULT_SERIAL_TIMEOUT,
)


@dataclass(slots=True)
class RuntimeConfig:
    """Strongly typed configuration for the debug console."""

    serial_port: str = DEFAULT_SERIAL_PORT
    serial_baud: int = DEFAULT_SERIAL_BAUD
    serial_bytesize: int = DEFAULT_SERIAL_BYTESIZE
    serial_parity: str = DEFAULT_SERIAL_PARITY
    serial_stopbits: float = DEFAULT_SERIAL_STOPBITS
    serial_timeout: float = DEFAULT_SERIAL_TIMEOUT
    serial_settle_delay: float = DEFAULT_SERIAL_SETTLE_DELAY
    script_dir: str = DEFAULT_SCRIPT_DIR
    asm_dir: str = DEFAULT_ASM_DIR
    rom_chunk_size: int = DEFAULT_ROM_CHUNK_SIZE
    halt_poll_interval: float = DEFAULT_HALT_POLL_INTERVAL
    # 0 waits forever.
    halt_wait_timeout: float = DEFAULT_HALT_WAIT_TIMEOUT
    debug_logging: bool = DEFAULT_DEBUG_LOGGING
    log_file: str | None = None
    metrics_enabled: bool = DEFAULT_METRICS_ENABLED
    metrics_host: str = DEFAULT_METRICS_HOST
    metrics_port: int = DEFAULT_METRICS_PORT
