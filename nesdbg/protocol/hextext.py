"""Operator hex-text input for the raw packet console."""

from __future__ import annotations

from ..errors import MalformedHex
from .structures import MANUAL_OPCODES, Packet, decode_packet

_HEX_DIGITS = frozenset("0123456789abcdefABCDEF")


def parse_hex_text(text: str) -> bytes:
    """Turn operator hex text into raw bytes.

    Only the space character is skipped; nibbles pair up continuously so
    ``"0 0"`` and ``"00"`` both yield ``b"\\x00"``.
    """
    digits: list[str] = []
    for position, char in enumerate(text):
        if char == " ":
            continue
        if char not in _HEX_DIGITS:
            raise MalformedHex(f"Invalid hex character {char!r} at position {position}")
        digits.append(char)

    if len(digits) % 2:
        raise MalformedHex(f"Odd number of hex digits ({len(digits)})")
    return bytes.fromhex("".join(digits))


def decode_from_hex_text(text: str) -> Packet:
    """Decode console input into one of the manually-enterable packets."""
    return decode_packet(parse_hex_text(text), accepted=MANUAL_OPCODES)


def format_hex(data: bytes | bytearray | memoryview) -> str:
    """Render bytes as space-separated uppercase hex pairs."""
    return bytes(data).hex(" ").upper()


__all__ = ["parse_hex_text", "decode_from_hex_text", "format_hex"]
