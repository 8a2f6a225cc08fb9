"""Debug packet catalogue.

SINGLE SOURCE OF TRUTH for packet layouts. Each packet is an immutable
Msgspec struct whose argument bytes are described declaratively with
Construct. The opcode byte is prepended by :meth:`BasePacket.encode` and
interpreted exactly once, in :func:`decode_packet`.

Wire layout (little-endian):
    [opcode (1 byte)] [arguments (0..N bytes)]

Packets carry no checksum or sequence number; the device answers each
request with exactly :attr:`BasePacket.response_length` raw bytes.
"""

from __future__ import annotations

from collections.abc import Collection
from typing import Any, ClassVar, Self, Type, TypeVar

import msgspec
from construct import (  # type: ignore
    Bytes,
    Construct,
    ConstructError,
    Int16ul,
    Struct as BinStruct,
    this,
)

from ..errors import InvalidField, TruncatedPayload, UnknownOpcode
from . import protocol
from .protocol import CpuReg, Opcode

T = TypeVar("T", bound="BasePacket")


def _require_uint16(name: str, value: int) -> None:
    if not 0 <= value <= protocol.UINT16_MAX:
        raise ValueError(f"{name} {value} outside 16-bit range")


def _require_uint8(name: str, value: int) -> None:
    if not 0 <= value <= protocol.UINT8_MAX:
        raise ValueError(f"{name} {value} outside 8-bit range")


class BasePacket(msgspec.Struct, frozen=True):
    """Base class for hybrid Msgspec/Construct packets."""

    OPCODE: ClassVar[Opcode]
    # Argument layout following the opcode byte; None for bare opcodes.
    _SCHEMA: ClassVar[Construct | None] = None

    def _schema_fields(self) -> dict[str, Any]:
        return msgspec.structs.asdict(self)

    def encode(self) -> bytes:
        """Encode opcode and arguments into the wire representation."""
        header = protocol.OPCODE_STRUCT.build(int(self.OPCODE))
        if self._SCHEMA is None:
            return header
        return header + self._SCHEMA.build(self._schema_fields())

    @property
    def size(self) -> int:
        """Total encoded size in bytes (opcode included)."""
        return len(self.encode())

    @property
    def response_length(self) -> int:
        """Number of raw bytes the device sends back for this packet."""
        return 0

    @classmethod
    def decode_body(cls: Type[T], body: bytes) -> T:
        """Decode the bytes following the opcode into a typed packet.

        Bytes beyond the opcode's layout are ignored.
        """
        if cls._SCHEMA is None:
            return cls()
        try:
            container: Any = cls._SCHEMA.parse(bytes(body))
        except ConstructError as e:
            raise TruncatedPayload(
                f"{cls.OPCODE.name} packet truncated: {len(body)} argument bytes present"
            ) from e
        return cls._from_container(container)

    @classmethod
    def _from_container(cls, container: Any) -> Self:
        # Drop construct metadata and derived length fields.
        names = {f.name for f in msgspec.structs.fields(cls)}
        return cls(**{k: v for k, v in container.items() if k in names})


# --- Length-prefixed packets ---


class EchoPacket(BasePacket, frozen=True):
    """Echo ``data`` back from the device (liveness check)."""

    OPCODE = Opcode.ECHO
    data: bytes = b""

    _SCHEMA = BinStruct("count" / Int16ul, "data" / Bytes(this.count))

    def __post_init__(self) -> None:
        _require_uint16("echo count", len(self.data))

    @property
    def count(self) -> int:
        return len(self.data)

    def _schema_fields(self) -> dict[str, Any]:
        return {"count": self.count, "data": self.data}

    @property
    def response_length(self) -> int:
        return self.count


class _MemWritePacket(BasePacket, frozen=True):
    address: int
    data: bytes

    _SCHEMA = BinStruct("address" / Int16ul, "count" / Int16ul, "data" / Bytes(this.count))

    def __post_init__(self) -> None:
        _require_uint16("address", self.address)
        _require_uint16("write count", len(self.data))

    @property
    def count(self) -> int:
        return len(self.data)

    def _schema_fields(self) -> dict[str, Any]:
        return {"address": self.address, "count": self.count, "data": self.data}


class CpuMemWritePacket(_MemWritePacket, frozen=True):
    OPCODE = Opcode.CPU_MEM_WR


class PpuMemWritePacket(_MemWritePacket, frozen=True):
    OPCODE = Opcode.PPU_MEM_WR


# --- Fixed-layout packets ---


class _MemReadPacket(BasePacket, frozen=True):
    address: int
    count: int

    _SCHEMA = protocol.MEM_READ_STRUCT

    def __post_init__(self) -> None:
        _require_uint16("address", self.address)
        _require_uint16("read count", self.count)

    @property
    def response_length(self) -> int:
        return self.count


class CpuMemReadPacket(_MemReadPacket, frozen=True):
    OPCODE = Opcode.CPU_MEM_RD


class PpuMemReadPacket(_MemReadPacket, frozen=True):
    OPCODE = Opcode.PPU_MEM_RD


class CpuRegReadPacket(BasePacket, frozen=True):
    OPCODE = Opcode.CPU_REG_RD
    register: CpuReg

    _SCHEMA = protocol.REG_READ_STRUCT

    def __post_init__(self) -> None:
        # Raises ValueError for selectors outside the register file.
        CpuReg(self.register)

    def _schema_fields(self) -> dict[str, Any]:
        return {"register": int(self.register)}

    @classmethod
    def _from_container(cls, container: Any) -> Self:
        try:
            register = CpuReg(container.register)
        except ValueError as e:
            raise InvalidField(f"Unknown CPU register selector 0x{container.register:02X}") from e
        return cls(register=register)

    @property
    def response_length(self) -> int:
        return protocol.CPU_REG_RESPONSE_SIZE


class CpuRegWritePacket(BasePacket, frozen=True):
    OPCODE = Opcode.CPU_REG_WR
    register: CpuReg
    value: int

    _SCHEMA = protocol.REG_WRITE_STRUCT

    def __post_init__(self) -> None:
        CpuReg(self.register)
        _require_uint8("register value", self.value)

    def _schema_fields(self) -> dict[str, Any]:
        return {"register": int(self.register), "value": self.value}

    @classmethod
    def _from_container(cls, container: Any) -> Self:
        try:
            register = CpuReg(container.register)
        except ValueError as e:
            raise InvalidField(f"Unknown CPU register selector 0x{container.register:02X}") from e
        return cls(register=register, value=container.value)


class CartSetConfigPacket(BasePacket, frozen=True):
    """Mapper configuration taken verbatim from iNES header bytes 4..8."""

    OPCODE = Opcode.CART_SET_CFG
    config: bytes

    _SCHEMA = protocol.CART_CONFIG_STRUCT

    def __post_init__(self) -> None:
        if len(self.config) != protocol.CART_CONFIG_SIZE:
            raise ValueError(
                f"cartridge config must be {protocol.CART_CONFIG_SIZE} bytes, got {len(self.config)}"
            )

    @classmethod
    def from_ines_header(cls, header: bytes) -> Self:
        start = protocol.INES_CART_CONFIG_OFFSET
        return cls(config=bytes(header[start : start + protocol.CART_CONFIG_SIZE]))


class DebugHaltPacket(BasePacket, frozen=True):
    OPCODE = Opcode.DBG_HLT


class DebugRunPacket(BasePacket, frozen=True):
    OPCODE = Opcode.DBG_RUN


class QueryHaltedPacket(BasePacket, frozen=True):
    """Response byte is 0 while running, nonzero once halted."""

    OPCODE = Opcode.QUERY_HLT

    @property
    def response_length(self) -> int:
        return protocol.QUERY_HLT_RESPONSE_SIZE


class PpuDisablePacket(BasePacket, frozen=True):
    OPCODE = Opcode.PPU_DISABLE


Packet = (
    EchoPacket
    | CpuMemReadPacket
    | CpuMemWritePacket
    | DebugHaltPacket
    | DebugRunPacket
    | CpuRegReadPacket
    | CpuRegWritePacket
    | QueryHaltedPacket
    | PpuMemReadPacket
    | PpuMemWritePacket
    | PpuDisablePacket
    | CartSetConfigPacket
)

# Opcodes an operator may type into the raw console.
MANUAL_OPCODES: frozenset[Opcode] = frozenset(
    {
        Opcode.ECHO,
        Opcode.CPU_MEM_RD,
        Opcode.CPU_MEM_WR,
    }
)


def _packet_type(opcode: Opcode) -> type[BasePacket]:
    match opcode:
        case Opcode.ECHO:
            return EchoPacket
        case Opcode.CPU_MEM_RD:
            return CpuMemReadPacket
        case Opcode.CPU_MEM_WR:
            return CpuMemWritePacket
        case Opcode.DBG_HLT:
            return DebugHaltPacket
        case Opcode.DBG_RUN:
            return DebugRunPacket
        case Opcode.CPU_REG_RD:
            return CpuRegReadPacket
        case Opcode.CPU_REG_WR:
            return CpuRegWritePacket
        case Opcode.QUERY_HLT:
            return QueryHaltedPacket
        case Opcode.PPU_MEM_RD:
            return PpuMemReadPacket
        case Opcode.PPU_MEM_WR:
            return PpuMemWritePacket
        case Opcode.PPU_DISABLE:
            return PpuDisablePacket
        case Opcode.CART_SET_CFG:
            return CartSetConfigPacket
        case Opcode.QUERY_ERR_CODE:
            raise UnknownOpcode("Opcode 0x08 (QUERY_ERR_CODE) is reserved and has no packet type")
        case _:
            raise UnknownOpcode(f"Unknown opcode 0x{int(opcode):02X}")


def decode_packet(
    data: bytes | bytearray | memoryview,
    *,
    accepted: Collection[Opcode] | None = None,
) -> Packet:
    """Interpret byte 0 as the opcode and the remainder per its layout.

    ``accepted`` restricts which opcodes may be decoded (e.g. raw console
    input); ``None`` accepts the whole catalogue.
    """
    raw = bytes(data)
    if not raw:
        raise TruncatedPayload("Packet is empty; expected at least an opcode byte")

    try:
        opcode = Opcode(raw[0])
    except ValueError as e:
        raise UnknownOpcode(f"Unknown opcode 0x{raw[0]:02X}") from e

    packet_type = _packet_type(opcode)
    if accepted is not None and opcode not in accepted:
        allowed = ", ".join(op.name for op in sorted(accepted))
        raise UnknownOpcode(f"Opcode 0x{raw[0]:02X} ({opcode.name}) not accepted here; allowed: {allowed}")

    return packet_type.decode_body(raw[protocol.OPCODE_SIZE :])  # type: ignore[return-value]


__all__ = [
    "BasePacket",
    "EchoPacket",
    "CpuMemReadPacket",
    "CpuMemWritePacket",
    "DebugHaltPacket",
    "DebugRunPacket",
    "CpuRegReadPacket",
    "CpuRegWritePacket",
    "QueryHaltedPacket",
    "PpuMemReadPacket",
    "PpuMemWritePacket",
    "PpuDisablePacket",
    "CartSetConfigPacket",
    "Packet",
    "MANUAL_OPCODES",
    "decode_packet",
]
