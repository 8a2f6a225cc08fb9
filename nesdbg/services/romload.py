"""iNES ROM loader.

Validates a mapper-0 iNES image on the host, then streams it into the
FPGA cartridge memories while the CPU is halted:

    DebugHalt, PpuDisable, CartSetConfig,
    CpuMemWrite x N (PRG at $8000), PpuMemWrite x M (CHR at $0000),
    CpuRegWrite PCL, CpuRegWrite PCH (reset vector), DebugRun

A transport failure aborts the sequence where it stands; nothing is
rolled back and the CPU stays halted.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from construct import ConstructError  # type: ignore

from ..const import DEFAULT_ROM_CHUNK_SIZE
from ..errors import ImageValidationError
from ..protocol import protocol
from ..protocol.protocol import CpuReg
from ..protocol.structures import (
    BasePacket,
    CartSetConfigPacket,
    CpuMemWritePacket,
    CpuRegWritePacket,
    DebugHaltPacket,
    DebugRunPacket,
    PpuDisablePacket,
    PpuMemWritePacket,
)
from ..util import chunk_bytes
from .executor import CommandExecutor

logger = logging.getLogger("nesdbg.romload")

ProgressCallback = Callable[[int, int], None]


@dataclass(slots=True, frozen=True)
class RomImage:
    """A validated mapper-0 iNES image split into its regions."""

    header: bytes
    prg_rom: bytes
    chr_rom: bytes

    @property
    def reset_vector(self) -> tuple[int, int]:
        """(PCL, PCH) taken from $FFFC/$FFFD of the PRG region."""
        tail = len(self.prg_rom) - protocol.RESET_VECTOR_TAIL_OFFSET
        return self.prg_rom[tail], self.prg_rom[tail + 1]

    @property
    def total_bytes(self) -> int:
        return len(self.prg_rom) + len(self.chr_rom)


def parse_ines_image(image: bytes) -> RomImage:
    """Validate ``image`` and split it into header, PRG and CHR regions.

    Raises :class:`ImageValidationError` for anything the FPGA
    cartridge cannot hold.
    """
    try:
        header = protocol.INES_HEADER_STRUCT.parse(image)
    except ConstructError as e:
        raise ImageValidationError("Invalid ROM header.") from e

    if header.signature != protocol.INES_SIGNATURE:
        raise ImageValidationError("Invalid ROM header.")

    if header.prg_banks > protocol.INES_MAX_PRG_BANKS or header.chr_banks > protocol.INES_MAX_CHR_BANKS:
        raise ImageValidationError("Too many ROM banks.")

    if header.flags6 & protocol.INES_FLAGS6_FOUR_SCREEN:
        raise ImageValidationError("Only horizontal and vertical mirroring are supported.")

    mapper = ((header.flags6 & 0xF0) >> 4) | (header.flags7 & 0xF0)
    if mapper != 0:
        raise ImageValidationError("Only mapper 0 is supported.")

    prg_size = header.prg_banks * protocol.INES_PRG_BANK_SIZE
    chr_size = header.chr_banks * protocol.INES_CHR_BANK_SIZE
    # Need at least the reset vector.
    if prg_size == 0:
        raise ImageValidationError("ROM has no PRG banks.")

    expected = protocol.INES_HEADER_SIZE + prg_size + chr_size
    if len(image) < expected:
        raise ImageValidationError(f"ROM image truncated: expected {expected} bytes, got {len(image)}.")

    prg_start = protocol.INES_HEADER_SIZE
    chr_start = prg_start + prg_size
    return RomImage(
        header=bytes(image[: protocol.INES_HEADER_SIZE]),
        prg_rom=bytes(image[prg_start:chr_start]),
        chr_rom=bytes(image[chr_start : chr_start + chr_size]),
    )


def build_load_sequence(rom: RomImage, chunk_size: int = DEFAULT_ROM_CHUNK_SIZE) -> list[BasePacket]:
    """Every packet needed to load ``rom``, in send order."""
    packets: list[BasePacket] = [
        DebugHaltPacket(),
        PpuDisablePacket(),
        CartSetConfigPacket.from_ines_header(rom.header),
    ]

    offset = 0
    for chunk in chunk_bytes(rom.prg_rom, chunk_size):
        packets.append(CpuMemWritePacket(address=protocol.CPU_PRG_ROM_BASE + offset, data=chunk))
        offset += len(chunk)

    offset = 0
    for chunk in chunk_bytes(rom.chr_rom, chunk_size):
        packets.append(PpuMemWritePacket(address=protocol.PPU_CHR_ROM_BASE + offset, data=chunk))
        offset += len(chunk)

    pcl, pch = rom.reset_vector
    packets.append(CpuRegWritePacket(register=CpuReg.PCL, value=pcl))
    packets.append(CpuRegWritePacket(register=CpuReg.PCH, value=pch))
    packets.append(DebugRunPacket())
    return packets


class RomLoader:
    """Drive the ROM load sequence through a :class:`CommandExecutor`."""

    def __init__(
        self,
        executor: CommandExecutor,
        *,
        chunk_size: int = DEFAULT_ROM_CHUNK_SIZE,
        progress: ProgressCallback | None = None,
    ) -> None:
        if not 0 < chunk_size <= protocol.UINT16_MAX:
            raise ValueError(f"chunk_size {chunk_size} outside 1..{protocol.UINT16_MAX}")
        self._executor = executor
        self._chunk_size = chunk_size
        self._progress = progress

    def load_rom(self, image: bytes) -> RomImage:
        """Validate and load an in-memory iNES image.

        Validation happens before any byte is sent.
        """
        rom = parse_ines_image(image)
        packets = build_load_sequence(rom, self._chunk_size)
        logger.info(
            "Loading ROM",
            extra={"prg_bytes": len(rom.prg_rom), "chr_bytes": len(rom.chr_rom), "packets": len(packets)},
        )

        transferred = 0
        for packet in packets:
            self._executor.execute(packet)
            if isinstance(packet, (CpuMemWritePacket, PpuMemWritePacket)):
                transferred += packet.count
                if self._progress is not None:
                    self._progress(transferred, rom.total_bytes)

        logger.info("ROM loaded; CPU running from $%02X%02X", rom.reset_vector[1], rom.reset_vector[0])
        return rom

    def load_rom_file(self, path: str | Path) -> RomImage:
        rom_path = Path(path)
        try:
            image = rom_path.read_bytes()
        except OSError as e:
            raise ImageValidationError(f"Cannot read ROM {rom_path}: {e}") from e
        return self.load_rom(image)


__all__ = ["RomImage", "RomLoader", "build_load_sequence", "parse_ines_image"]
