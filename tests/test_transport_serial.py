"""Tests for the pyserial transport."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest
import serial

from nesdbg.config.model import RuntimeConfig
from nesdbg.errors import TransportError
from nesdbg.transport.serial import SerialTransport


@pytest.fixture
def mock_serial():
    with patch("nesdbg.transport.serial.serial.Serial") as factory:
        device = MagicMock()
        device.is_open = True
        factory.return_value = device
        yield factory, device


def test_open_uses_line_settings(mock_serial) -> None:
    factory, _ = mock_serial
    config = RuntimeConfig(serial_port="/dev/ttyUSB3", serial_timeout=1.5)
    transport = SerialTransport.from_config(config)
    transport.open()

    factory.assert_called_once_with(
        port="/dev/ttyUSB3",
        baudrate=38400,
        bytesize=8,
        parity="O",
        stopbits=1,
        timeout=1.5,
        write_timeout=1.5,
    )
    assert transport.is_open


def test_open_failure_is_transport_error(mock_serial) -> None:
    factory, _ = mock_serial
    factory.side_effect = serial.SerialException("no such device")
    transport = SerialTransport("/dev/missing", 38400)

    with pytest.raises(TransportError, match="/dev/missing"):
        transport.open()
    assert not transport.is_open


def test_send_and_receive(mock_serial) -> None:
    _, device = mock_serial
    device.write.return_value = 3
    device.read.return_value = b"\x4e\x45"

    with SerialTransport("/dev/ttyUSB0", 38400) as transport:
        assert transport.send(b"\x00\x01\x00") == 3
        assert transport.receive(2) == b"\x4e\x45"

    device.flush.assert_called_once()
    device.read.assert_called_once_with(2)
    device.close.assert_called_once()


def test_short_write(mock_serial) -> None:
    _, device = mock_serial
    device.write.return_value = 1
    with SerialTransport("/dev/ttyUSB0", 38400) as transport:
        with pytest.raises(TransportError, match="Short write: 1 of 3 bytes"):
            transport.send(b"\x0a\x0b\x0c")


def test_short_read_is_timeout_failure(mock_serial) -> None:
    _, device = mock_serial
    device.read.return_value = b"\x01"
    with SerialTransport("/dev/ttyUSB0", 38400) as transport:
        with pytest.raises(TransportError, match="Short read: 1 of 4 bytes"):
            transport.receive(4)


def test_io_error_is_wrapped(mock_serial) -> None:
    _, device = mock_serial
    device.read.side_effect = serial.SerialException("device disconnected")
    with SerialTransport("/dev/ttyUSB0", 38400) as transport:
        with pytest.raises(TransportError, match="Serial read failed"):
            transport.receive(1)


def test_use_before_open() -> None:
    with pytest.raises(TransportError, match="not open"):
        SerialTransport("/dev/ttyUSB0", 38400).send(b"\x00")


def test_close_is_idempotent(mock_serial) -> None:
    _, device = mock_serial
    transport = SerialTransport("/dev/ttyUSB0", 38400)
    transport.open()
    transport.close()
    transport.close()
    device.close.assert_called_once()
