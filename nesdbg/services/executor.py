"""Command executor: one packet out, one fixed-size response back."""

from __future__ import annotations

import logging
import threading
import time

from ..errors import TransportError
from ..metrics import DebugMetrics
from ..protocol.structures import BasePacket
from ..transport.serial import Transport
from ..util import log_hexdump

logger = logging.getLogger("nesdbg.executor")


class CommandExecutor:
    """Serialise packet round trips over a single transport.

    The device has no framing or acknowledgement, so a command is exactly
    one send of the encoded packet followed by at most one receive of
    ``packet.response_length`` bytes. Nothing is retried.
    """

    def __init__(self, transport: Transport, metrics: DebugMetrics | None = None) -> None:
        self._transport = transport
        self._metrics = metrics
        self._lock = threading.Lock()

    @property
    def transport(self) -> Transport:
        return self._transport

    def execute(self, packet: BasePacket) -> bytes:
        encoded = packet.encode()
        expected = packet.response_length
        started = time.monotonic()

        with self._lock:
            try:
                log_hexdump(logger, logging.DEBUG, f"TX {packet.OPCODE.name}", encoded)
                written = self._transport.send(encoded)
                if written != len(encoded):
                    raise TransportError(
                        f"{packet.OPCODE.name} short write: {written} of {len(encoded)} bytes"
                    )
                response = self._transport.receive(expected) if expected > 0 else b""
            except TransportError:
                self._record_failure(packet)
                raise
            except OSError as e:
                self._record_failure(packet)
                raise TransportError(f"{packet.OPCODE.name} failed: {e}") from e

        if len(response) != expected:
            self._record_failure(packet)
            raise TransportError(
                f"{packet.OPCODE.name} expected {expected} response bytes, got {len(response)}"
            )

        if response:
            log_hexdump(logger, logging.DEBUG, f"RX {packet.OPCODE.name}", response)
        if self._metrics is not None:
            self._metrics.record_packet(packet.OPCODE, len(encoded), len(response), time.monotonic() - started)
        return response

    def _record_failure(self, packet: BasePacket) -> None:
        logger.error("Transport failure during %s", packet.OPCODE.name)
        if self._metrics is not None:
            self._metrics.record_transport_error()


__all__ = ["CommandExecutor"]
