"""Pytest configuration for nesdbg tests."""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Iterable
from pathlib import Path

import pytest

from nesdbg.config.model import RuntimeConfig
from nesdbg.errors import TransportError
from nesdbg.metrics import DebugMetrics
from nesdbg.protocol import protocol
from nesdbg.protocol.protocol import CpuReg
from nesdbg.protocol.structures import (
    BasePacket,
    CpuMemReadPacket,
    CpuMemWritePacket,
    CpuRegReadPacket,
    CpuRegWritePacket,
    DebugHaltPacket,
    DebugRunPacket,
    EchoPacket,
    PpuMemReadPacket,
    PpuMemWritePacket,
    QueryHaltedPacket,
    decode_packet,
)
from nesdbg.services.bridge import ScriptBridge
from nesdbg.services.executor import CommandExecutor


class FakeDevice:
    """Just enough of the FPGA debug port to answer every opcode."""

    def __init__(self) -> None:
        self.cpu_memory = bytearray(0x10000)
        self.ppu_memory = bytearray(0x4000)
        self.registers = {register: 0 for register in CpuReg}
        self.halted = False
        # Responses for QueryHalted; falls back to ``halted`` once drained.
        self.halt_replies: deque[int] = deque()

    def respond(self, packet: BasePacket) -> bytes:
        match packet:
            case EchoPacket(data=data):
                return data
            case CpuMemReadPacket(address=address, count=count):
                return bytes(self.cpu_memory[(address + i) & 0xFFFF] for i in range(count))
            case CpuMemWritePacket(address=address, data=data):
                for i, value in enumerate(data):
                    self.cpu_memory[(address + i) & 0xFFFF] = value
            case PpuMemReadPacket(address=address, count=count):
                return bytes(self.ppu_memory[(address + i) & 0x3FFF] for i in range(count))
            case PpuMemWritePacket(address=address, data=data):
                for i, value in enumerate(data):
                    self.ppu_memory[(address + i) & 0x3FFF] = value
            case CpuRegReadPacket(register=register):
                return bytes([self.registers[CpuReg(register)]])
            case CpuRegWritePacket(register=register, value=value):
                self.registers[CpuReg(register)] = value
            case DebugHaltPacket():
                self.halted = True
            case DebugRunPacket():
                self.halted = False
            case QueryHaltedPacket():
                if self.halt_replies:
                    return bytes([self.halt_replies.popleft()])
                return bytes([1 if self.halted else 0])
        return b""


class FakeTransport:
    """Records sent packets and replays the fake device's answers."""

    def __init__(self, device: FakeDevice | None = None) -> None:
        self.device = device if device is not None else FakeDevice()
        self.sent: list[bytes] = []
        self.opened = False
        self.closed = False
        self.fail_on_send: int | None = None
        self.short_reads = False
        self._pending = bytearray()

    def open(self) -> None:
        self.opened = True

    def send(self, data: bytes) -> int:
        if self.fail_on_send is not None and len(self.sent) >= self.fail_on_send:
            raise TransportError("Short write: 0 of %d bytes" % len(data))
        self.sent.append(bytes(data))
        self._pending.extend(self.device.respond(decode_packet(data)))
        return len(data)

    def receive(self, count: int) -> bytes:
        available = min(count, len(self._pending))
        if self.short_reads:
            available = max(0, available - 1)
        data = bytes(self._pending[:available])
        del self._pending[:available]
        if len(data) != count:
            raise TransportError(f"Short read: {len(data)} of {count} bytes")
        return data

    def close(self) -> None:
        self.closed = True

    @property
    def opcodes(self) -> list[int]:
        return [packet[0] for packet in self.sent]


def make_ines(
    prg_banks: int = 1,
    chr_banks: int = 1,
    *,
    flags6: int = 0x01,
    flags7: int = 0x00,
    reset_vector: int = 0xC000,
    signature: bytes = protocol.INES_SIGNATURE,
    pad: Iterable[int] | None = None,
) -> bytes:
    """Build an iNES image whose PRG/CHR bytes follow a simple pattern."""
    header = signature + bytes([prg_banks, chr_banks, flags6, flags7]) + bytes(8)
    prg = bytearray((i * 7) & 0xFF for i in range(prg_banks * protocol.INES_PRG_BANK_SIZE))
    if prg:
        prg[-4] = reset_vector & 0xFF
        prg[-3] = reset_vector >> 8
    chr_rom = bytes((i * 3) & 0xFF for i in range(chr_banks * protocol.INES_CHR_BANK_SIZE))
    return header + bytes(prg) + chr_rom + bytes(pad or ())


@pytest.fixture
def device() -> FakeDevice:
    return FakeDevice()


@pytest.fixture
def transport(device: FakeDevice) -> FakeTransport:
    return FakeTransport(device)


@pytest.fixture
def metrics() -> DebugMetrics:
    return DebugMetrics()


@pytest.fixture
def executor(transport: FakeTransport, metrics: DebugMetrics) -> CommandExecutor:
    return CommandExecutor(transport, metrics)


@pytest.fixture
def asm_dir(tmp_path: Path) -> Path:
    directory = tmp_path / "asm" / "prg"
    directory.mkdir(parents=True)
    return directory


@pytest.fixture
def script_dir(tmp_path: Path) -> Path:
    directory = tmp_path / "scripts"
    directory.mkdir()
    return directory


@pytest.fixture
def bridge(executor: CommandExecutor, asm_dir: Path, metrics: DebugMetrics) -> ScriptBridge:
    return ScriptBridge(
        executor,
        asm_dir=asm_dir,
        halt_poll_interval=0.0,
        halt_wait_timeout=0.0,
        metrics=metrics,
    )


@pytest.fixture
def runtime_config(tmp_path: Path) -> RuntimeConfig:
    return RuntimeConfig(
        serial_port="/dev/ttyUSB9",
        script_dir=str(tmp_path / "scripts"),
        asm_dir=str(tmp_path / "asm" / "prg"),
        halt_poll_interval=0.0,
        serial_settle_delay=0.0,
    )


@pytest.fixture(autouse=True)
def reset_logging_handlers():
    """Close and remove all logging handlers after each test to prevent ResourceWarnings."""
    yield
    root = logging.getLogger()
    for handler in root.handlers[:]:
        try:
            handler.close()
        except (OSError, RuntimeError):
            pass
        root.removeHandler(handler)
