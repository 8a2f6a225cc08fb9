"""Tests for the raw packet console."""

from __future__ import annotations

import io
from unittest.mock import MagicMock

from nesdbg.errors import TransportError
from nesdbg.services.executor import CommandExecutor
from nesdbg.tools.console import PROMPT, RawConsole


def test_read_renders_uppercase_hex(executor: CommandExecutor, device) -> None:
    device.cpu_memory[0x8000:0x8003] = b"\x4c\xab\x0f"
    console = RawConsole(executor)
    assert console.handle_line("01 00 80 03 00\n") == "4C AB 0F"


def test_echo_round_trip(executor: CommandExecutor) -> None:
    assert RawConsole(executor).handle_line("00 04 00 4E 45 53 00") == "4E 45 53 00"


def test_write_reports_ok(executor: CommandExecutor, device) -> None:
    assert RawConsole(executor).handle_line("02 10 00 01 00 99") == "OK (CPU_MEM_WR)"
    assert device.cpu_memory[0x0010] == 0x99


def test_bad_input_keeps_session_alive(executor: CommandExecutor, transport) -> None:
    console = RawConsole(executor)
    assert console.handle_line("0").startswith("Error: Odd number")
    assert console.handle_line("FF").startswith("Error: Unknown opcode")
    assert console.handle_line("03").startswith("Error:")
    assert transport.sent == []
    assert console.handle_line("01 00 00 01 00") == "00"


def test_transport_error_is_reported() -> None:
    transport = MagicMock()
    transport.send.side_effect = TransportError("Short write: 0 of 5 bytes")
    console = RawConsole(CommandExecutor(transport))
    assert console.handle_line("01 00 00 01 00") == "Transport error: Short write: 0 of 5 bytes"


def test_run_loop(executor: CommandExecutor) -> None:
    out = io.StringIO()
    RawConsole(executor).run(["00 01 00 2A\n", "\n", "zz\n", "quit\n", "00 01 00 2B\n"], out)

    lines = out.getvalue().split(PROMPT)
    assert "2A\n" in lines
    assert any(line.startswith("Error: Invalid hex character") for line in lines)
    assert "2B\n" not in lines


def test_run_without_prompt(executor: CommandExecutor) -> None:
    out = io.StringIO()
    RawConsole(executor).run(["00 01 00 2A\n"], out, prompt=False)
    assert out.getvalue() == "2A\n"
