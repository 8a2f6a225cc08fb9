"""Byte-stream transports for the NES FPGA debug port.

The device speaks raw opcode packets over a UART; there is no framing,
so every transfer must move exactly the number of bytes requested.
"""

from __future__ import annotations

import logging
from types import TracebackType
from typing import Protocol, Self

import serial

from ..config.model import RuntimeConfig
from ..errors import TransportError

logger = logging.getLogger("nesdbg.transport")


class Transport(Protocol):
    """Blocking byte stream used by the command executor."""

    def send(self, data: bytes) -> int: ...

    def receive(self, count: int) -> bytes: ...

    def close(self) -> None: ...


class SerialTransport:
    """pyserial-backed transport (38400 8O1 by default)."""

    def __init__(
        self,
        port: str,
        baudrate: int,
        *,
        bytesize: int = serial.EIGHTBITS,
        parity: str = serial.PARITY_ODD,
        stopbits: float = serial.STOPBITS_ONE,
        timeout: float | None = None,
    ) -> None:
        self.port = port
        self.baudrate = baudrate
        self._bytesize = bytesize
        self._parity = parity
        self._stopbits = stopbits
        self._timeout = timeout
        self._device: serial.Serial | None = None

    @classmethod
    def from_config(cls, config: RuntimeConfig) -> Self:
        return cls(
            config.serial_port,
            config.serial_baud,
            bytesize=config.serial_bytesize,
            parity=config.serial_parity,
            stopbits=config.serial_stopbits,
            timeout=config.serial_timeout,
        )

    @property
    def is_open(self) -> bool:
        return self._device is not None and self._device.is_open

    def open(self) -> None:
        if self._device is not None:
            return
        try:
            self._device = serial.Serial(
                port=self.port,
                baudrate=self.baudrate,
                bytesize=self._bytesize,
                parity=self._parity,
                stopbits=self._stopbits,
                timeout=self._timeout,
                write_timeout=self._timeout,
            )
        except (serial.SerialException, ValueError) as e:
            raise TransportError(f"Failed to open serial port {self.port}: {e}") from e
        logger.info(
            "Serial connected",
            extra={"port": self.port, "baud": self.baudrate},
        )

    def _require_device(self) -> serial.Serial:
        if self._device is None:
            raise TransportError(f"Serial port {self.port} is not open")
        return self._device

    def send(self, data: bytes) -> int:
        device = self._require_device()
        try:
            written = device.write(data)
            device.flush()
        except serial.SerialException as e:
            raise TransportError(f"Serial write failed: {e}") from e
        written = int(written) if written is not None else 0
        if written != len(data):
            raise TransportError(f"Short write: {written} of {len(data)} bytes")
        return written

    def receive(self, count: int) -> bytes:
        device = self._require_device()
        try:
            data = bytes(device.read(count))
        except serial.SerialException as e:
            raise TransportError(f"Serial read failed: {e}") from e
        if len(data) != count:
            raise TransportError(f"Short read: {len(data)} of {count} bytes")
        return data

    def close(self) -> None:
        if self._device is None:
            return
        try:
            self._device.close()
        finally:
            self._device = None
            logger.info("Serial disconnected", extra={"port": self.port})

    def __enter__(self) -> Self:
        self.open()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()


__all__ = ["Transport", "SerialTransport"]
