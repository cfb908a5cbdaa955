"""Integer register file (x0-x31) and its text dump."""

from __future__ import annotations

NUM_REGS = 32

# RISC-V ABI register names (x0-x31)
ABI_NAMES: list[str] = [
    "zero", "ra", "sp", "gp", "tp",
    "t0", "t1", "t2",
    "s0", "s1",
    "a0", "a1", "a2", "a3", "a4", "a5", "a6", "a7",
    "s2", "s3", "s4", "s5", "s6", "s7", "s8", "s9", "s10", "s11",
    "t3", "t4", "t5", "t6",
]


class RegisterFile:
    """32 unsigned 32-bit registers. Reads of x0 are 0 and writes to it are dropped."""

    def __init__(self) -> None:
        self._values: list[int] = [0] * NUM_REGS

    def read(self, index: int) -> int:
        return self._values[index] if index else 0

    def write(self, index: int, value: int) -> None:
        if index:
            self._values[index] = value & 0xFFFFFFFF

    def pin_zero(self) -> None:
        """Clear the x0 slot. The CPU calls this around every instruction."""
        self._values[0] = 0

    def snapshot(self) -> list[int]:
        return [self.read(i) for i in range(NUM_REGS)]


def format_registers(regs: RegisterFile, cols: int = 4) -> str:
    """Render all registers as plain text, `cols` per line, column-major.

    Each entry reads ``x10 a0   0x00000037``.
    """
    values = regs.snapshot()
    rows = NUM_REGS // cols
    lines: list[str] = []
    for row in range(rows):
        parts = []
        for col in range(cols):
            idx = row + col * rows
            parts.append(f"x{idx:<2d} {ABI_NAMES[idx]:<4s} 0x{values[idx]:08X}")
        lines.append("  ".join(parts))
    return "\n".join(lines)
