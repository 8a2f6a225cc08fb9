"""Prometheus counters and exporter for the debug console."""

from __future__ import annotations

import logging
from threading import Thread
from typing import TYPE_CHECKING
from wsgiref.simple_server import WSGIServer

from prometheus_client import CollectorRegistry, Counter, Summary, start_http_server

from .protocol.protocol import Opcode

if TYPE_CHECKING:
    from .services.scripting import ScriptResult

logger = logging.getLogger("nesdbg.metrics")


class DebugMetrics:
    """Counters for packet traffic and script verdicts.

    Each instance owns its registry so several sessions (and tests) can
    coexist in one process.
    """

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        self.registry = registry if registry is not None else CollectorRegistry()
        self.packets = Counter(
            "nesdbg_packets",
            "Packets sent to the device, by opcode",
            labelnames=("opcode",),
            registry=self.registry,
        )
        self.bytes_sent = Counter(
            "nesdbg_bytes_sent",
            "Bytes written to the debug port",
            registry=self.registry,
        )
        self.bytes_received = Counter(
            "nesdbg_bytes_received",
            "Bytes read from the debug port",
            registry=self.registry,
        )
        self.transport_errors = Counter(
            "nesdbg_transport_errors",
            "Short reads, short writes and I/O failures",
            registry=self.registry,
        )
        self.script_results = Counter(
            "nesdbg_script_results",
            "Script verdicts, by result",
            labelnames=("result",),
            registry=self.registry,
        )
        self.round_trip = Summary(
            "nesdbg_round_trip_seconds",
            "Packet send plus response receive latency",
            registry=self.registry,
        )

    def record_packet(self, opcode: Opcode, sent: int, received: int, elapsed: float) -> None:
        self.packets.labels(opcode=opcode.name).inc()
        self.bytes_sent.inc(sent)
        if received:
            self.bytes_received.inc(received)
        self.round_trip.observe(elapsed)

    def record_transport_error(self) -> None:
        self.transport_errors.inc()

    def record_script_result(self, result: ScriptResult) -> None:
        self.script_results.labels(result=result.name).inc()

    def value(self, name: str, labels: dict[str, str] | None = None) -> float:
        """Current sample value, 0.0 when the series has not been touched."""
        sample = self.registry.get_sample_value(name, labels or {})
        return sample if sample is not None else 0.0


class PrometheusExporter:
    """Serve a :class:`DebugMetrics` registry over HTTP in a daemon thread."""

    def __init__(self, metrics: DebugMetrics, host: str, port: int) -> None:
        self._metrics = metrics
        self._host = host
        self._port = port
        self._server: WSGIServer | None = None
        self._thread: Thread | None = None

    @property
    def port(self) -> int:
        if self._server is not None:
            return self._server.server_port
        return self._port

    def start(self) -> None:
        if self._server is not None:
            return
        self._server, self._thread = start_http_server(
            self._port,
            addr=self._host,
            registry=self._metrics.registry,
        )
        logger.info(
            "Prometheus exporter listening",
            extra={"host": self._host, "port": self.port},
        )

    def stop(self) -> None:
        if self._server is None:
            return
        self._server.shutdown()
        self._server.server_close()
        if self._thread is not None:
            self._thread.join(timeout=1.0)
        self._server = None
        self._thread = None
        logger.info("Prometheus exporter stopped")


__all__ = ["DebugMetrics", "PrometheusExporter"]
