"""Tests for the command executor."""

from __future__ import annotations

import logging
from unittest.mock import MagicMock

import pytest

from nesdbg.errors import TransportError
from nesdbg.metrics import DebugMetrics
from nesdbg.protocol.structures import (
    CpuMemReadPacket,
    CpuMemWritePacket,
    DebugHaltPacket,
    EchoPacket,
)
from nesdbg.services.executor import CommandExecutor


def test_write_then_read_round_trip(executor: CommandExecutor, transport) -> None:
    assert executor.execute(CpuMemWritePacket(address=0x0300, data=b"\x11\x22\x33")) == b""
    assert executor.execute(CpuMemReadPacket(address=0x0300, count=3)) == b"\x11\x22\x33"
    assert transport.sent[0] == bytes([0x02, 0x00, 0x03, 0x03, 0x00, 0x11, 0x22, 0x33])


def test_one_send_and_one_receive_per_command() -> None:
    transport = MagicMock()
    transport.send.side_effect = len
    transport.receive.return_value = b"ab"
    executor = CommandExecutor(transport)

    assert executor.execute(EchoPacket(data=b"ab")) == b"ab"
    transport.send.assert_called_once_with(bytes([0x00, 0x02, 0x00, 0x61, 0x62]))
    transport.receive.assert_called_once_with(2)


def test_no_receive_when_no_response_expected() -> None:
    transport = MagicMock()
    transport.send.side_effect = len
    executor = CommandExecutor(transport)

    assert executor.execute(DebugHaltPacket()) == b""
    transport.send.assert_called_once_with(b"\x03")
    transport.receive.assert_not_called()


def test_short_read_raises_and_counts(executor: CommandExecutor, transport, metrics: DebugMetrics) -> None:
    transport.short_reads = True
    with pytest.raises(TransportError, match="Short read"):
        executor.execute(CpuMemReadPacket(address=0, count=4))
    assert metrics.value("nesdbg_transport_errors_total") == 1.0


def test_os_error_is_wrapped() -> None:
    transport = MagicMock()
    transport.send.side_effect = OSError("unplugged")
    executor = CommandExecutor(transport)

    with pytest.raises(TransportError, match="unplugged"):
        executor.execute(DebugHaltPacket())


def test_response_of_wrong_length_is_rejected() -> None:
    transport = MagicMock()
    transport.send.side_effect = len
    transport.receive.return_value = b"\x00"
    executor = CommandExecutor(transport)

    with pytest.raises(TransportError, match="expected 2"):
        executor.execute(CpuMemReadPacket(address=0, count=2))


def test_executor_does_not_retry() -> None:
    transport = MagicMock()
    transport.send.side_effect = TransportError("Short write")
    executor = CommandExecutor(transport)

    with pytest.raises(TransportError):
        executor.execute(DebugHaltPacket())
    assert transport.send.call_count == 1


def test_metrics_record_traffic(executor: CommandExecutor, metrics: DebugMetrics) -> None:
    executor.execute(EchoPacket(data=b"NES\x00"))
    executor.execute(DebugHaltPacket())

    assert metrics.value("nesdbg_packets_total", {"opcode": "ECHO"}) == 1.0
    assert metrics.value("nesdbg_packets_total", {"opcode": "DBG_HLT"}) == 1.0
    assert metrics.value("nesdbg_bytes_sent_total") == 7.0 + 1.0
    assert metrics.value("nesdbg_bytes_received_total") == 4.0


def test_hexdump_logged_at_debug(executor: CommandExecutor, caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.DEBUG, logger="nesdbg.executor"):
        executor.execute(CpuMemReadPacket(address=0x8000, count=1))

    messages = [record.getMessage() for record in caplog.records]
    assert "[HEXDUMP] TX CPU_MEM_RD: 01 00 80 01 00" in messages
    assert "[HEXDUMP] RX CPU_MEM_RD: 00" in messages


def test_short_write_reported_by_transport(metrics: DebugMetrics) -> None:
    transport = MagicMock()
    transport.send.side_effect = lambda data: len(data) - 1
    executor = CommandExecutor(transport, metrics)

    with pytest.raises(TransportError, match="short write: 4 of 5 bytes"):
        executor.execute(CpuMemReadPacket(address=0x8000, count=1))
    transport.receive.assert_not_called()
    assert metrics.value("nesdbg_transport_errors_total") == 1.0
