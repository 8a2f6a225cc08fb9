"""Debug packet protocol for the NES FPGA."""

from . import protocol, structures
from .hextext import decode_from_hex_text, format_hex, parse_hex_text
from .protocol import CpuReg, Opcode
from .structures import MANUAL_OPCODES, BasePacket, Packet, decode_packet

__all__ = [
    "protocol",
    "structures",
    "CpuReg",
    "Opcode",
    "BasePacket",
    "Packet",
    "MANUAL_OPCODES",
    "decode_packet",
    "decode_from_hex_text",
    "parse_hex_text",
    "format_hex",
]
