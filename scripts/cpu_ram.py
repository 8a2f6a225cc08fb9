"""Walk a pattern through CPU work RAM and read it back.

Command functions (CpuMemWr, CpuMemRd, ...) and the PASS/FAIL/ERROR
verdicts are injected by the test runner.
"""

BASE = 0x0300
PATTERN = [0x00, 0xFF, 0x55, 0xAA, 0x01, 0x80, 0x7E, 0xE7]


def main():
    DbgHlt()
    CpuMemWr(BASE, len(PATTERN), PATTERN)
    readback = CpuMemRd(BASE, len(PATTERN))
    DbgRun()
    if readback != PATTERN:
        print("Mismatch at $%04X: wrote %s, read %s" % (BASE, PATTERN, readback))
        return FAIL
    return PASS
