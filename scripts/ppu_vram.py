"""PPU nametable write/read check."""

NAMETABLE = 0x2000


def main():
    DbgHlt()
    tiles = list(range(32))
    PpuMemWr(NAMETABLE, len(tiles), tiles)
    readback = PpuMemRd(NAMETABLE, len(tiles))
    DbgRun()
    return PASS if readback == tiles else FAIL
