"""Tests for console hex-text decoding."""

from __future__ import annotations

import pytest

from nesdbg.errors import DecodeError, MalformedHex, TruncatedPayload, UnknownOpcode
from nesdbg.protocol.hextext import decode_from_hex_text, format_hex, parse_hex_text
from nesdbg.protocol.structures import CpuMemReadPacket, CpuMemWritePacket, EchoPacket


def test_echo_vector() -> None:
    assert decode_from_hex_text("00 04 00 4E 45 53 00") == EchoPacket(data=b"NES\x00")


def test_cpu_mem_read_vector() -> None:
    assert decode_from_hex_text("01 00 80 10 00") == CpuMemReadPacket(address=0x8000, count=0x10)


def test_cpu_mem_write_vector_lowercase() -> None:
    packet = decode_from_hex_text("02 00 02 02 00 de ad")
    assert packet == CpuMemWritePacket(address=0x0200, data=b"\xde\xad")


def test_single_nibble_is_malformed() -> None:
    with pytest.raises(MalformedHex):
        decode_from_hex_text("0")


def test_unknown_opcode() -> None:
    with pytest.raises(UnknownOpcode):
        decode_from_hex_text("FF")


def test_invalid_character() -> None:
    with pytest.raises(MalformedHex, match="'G'"):
        decode_from_hex_text("0G")


def test_tabs_are_not_separators() -> None:
    with pytest.raises(MalformedHex):
        parse_hex_text("01\t00")


def test_nibbles_pair_across_spaces() -> None:
    assert parse_hex_text("0 1 0 0 8 0 1 0 0 0") == bytes([0x01, 0x00, 0x80, 0x10, 0x00])
    assert parse_hex_text("0100801000") == bytes([0x01, 0x00, 0x80, 0x10, 0x00])


def test_empty_input_is_truncated() -> None:
    with pytest.raises(TruncatedPayload):
        decode_from_hex_text("   ")


def test_truncated_read() -> None:
    with pytest.raises(TruncatedPayload):
        decode_from_hex_text("01 00 80")


def test_manual_entry_rejects_other_opcodes() -> None:
    # DebugHalt is a valid opcode but not accepted from the console.
    with pytest.raises(UnknownOpcode):
        decode_from_hex_text("03")


def test_decode_errors_share_base() -> None:
    for text in ("0", "FF", "01"):
        with pytest.raises(DecodeError):
            decode_from_hex_text(text)


def test_format_hex() -> None:
    assert format_hex(b"\x00\xab\x10") == "00 AB 10"
    assert format_hex(b"") == ""
