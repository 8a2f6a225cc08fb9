"""Run a small program from asm/prg and check the accumulator.

lda_loop.prg loads #$42 into A and then spins on a JMP to itself.
"""


def main():
    DbgHlt()
    start = LoadAsm("lda_loop.prg")
    CpuRegWr(PCL, start & 0xFF)
    CpuRegWr(PCH, start >> 8)
    DbgRun()
    DbgHlt()
    if CpuRegRd(AC) != 0x42:
        print("A != $42 after running lda_loop.prg")
        return FAIL
    DbgRun()
    return PASS
