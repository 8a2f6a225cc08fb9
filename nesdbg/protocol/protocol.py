"""Debug packet protocol constants for the NES FPGA debug port."""
from __future__ import annotations
from construct import Int8ul, Int16ul, Bytes, Struct as BinStruct  # type: ignore
from enum import IntEnum
from typing import Final

UINT8_MAX: Final[int] = 255
UINT16_MAX: Final[int] = 65535
OPCODE_SIZE: Final[int] = 1
CART_CONFIG_SIZE: Final[int] = 5

INES_HEADER_SIZE: Final[int] = 16
INES_SIGNATURE: Final[bytes] = b"NES\x1a"
INES_PRG_BANK_SIZE: Final[int] = 0x4000
INES_CHR_BANK_SIZE: Final[int] = 0x2000
INES_MAX_PRG_BANKS: Final[int] = 2
INES_MAX_CHR_BANKS: Final[int] = 1
INES_FLAGS6_FOUR_SCREEN: Final[int] = 0x08
INES_CART_CONFIG_OFFSET: Final[int] = 4

CPU_PRG_ROM_BASE: Final[int] = 0x8000
PPU_CHR_ROM_BASE: Final[int] = 0x0000
# Reset vector sits at $FFFC/$FFFD, i.e. 4 bytes before the end of PRG ROM.
RESET_VECTOR_TAIL_OFFSET: Final[int] = 4


class Opcode(IntEnum):
    ECHO = 0x00
    CPU_MEM_RD = 0x01
    CPU_MEM_WR = 0x02
    DBG_HLT = 0x03
    DBG_RUN = 0x04
    CPU_REG_RD = 0x05
    CPU_REG_WR = 0x06
    QUERY_HLT = 0x07
    # Reserved by the device firmware; no packet type uses it.
    QUERY_ERR_CODE = 0x08
    PPU_MEM_RD = 0x09
    PPU_MEM_WR = 0x0A
    PPU_DISABLE = 0x0B
    CART_SET_CFG = 0x0C


class CpuReg(IntEnum):
    PCL = 0x00
    PCH = 0x01
    AC = 0x02
    X = 0x03
    Y = 0x04
    P = 0x05
    S = 0x06


OPCODE_STRUCT: Final = Int8ul
ADDRESS_STRUCT: Final = Int16ul
COUNT_STRUCT: Final = Int16ul
MEM_READ_STRUCT: Final = BinStruct(
    "address" / Int16ul,
    "count" / Int16ul,
)
REG_READ_STRUCT: Final = BinStruct(
    "register" / Int8ul,
)
REG_WRITE_STRUCT: Final = BinStruct(
    "register" / Int8ul,
    "value" / Int8ul,
)
CART_CONFIG_STRUCT: Final = BinStruct(
    "config" / Bytes(CART_CONFIG_SIZE),
)
INES_HEADER_STRUCT: Final = BinStruct(
    "signature" / Bytes(4),
    "prg_banks" / Int8ul,
    "chr_banks" / Int8ul,
    "flags6" / Int8ul,
    "flags7" / Int8ul,
    "reserved" / Bytes(8),
)

MEM_READ_SIZE: Final[int] = MEM_READ_STRUCT.sizeof()  # type: ignore
REG_READ_SIZE: Final[int] = REG_READ_STRUCT.sizeof()  # type: ignore
REG_WRITE_SIZE: Final[int] = REG_WRITE_STRUCT.sizeof()  # type: ignore
COUNT_SIZE: Final[int] = COUNT_STRUCT.sizeof()  # type: ignore
ADDRESS_SIZE: Final[int] = ADDRESS_STRUCT.sizeof()  # type: ignore
QUERY_HLT_RESPONSE_SIZE: Final[int] = 1
CPU_REG_RESPONSE_SIZE: Final[int] = 1
