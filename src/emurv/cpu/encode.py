"""Instruction encoder: packs fields into 32-bit RV32I instruction words.

The inverse of :mod:`emurv.cpu.decode`, used to hand-assemble small
programs for tests and demos. Immediates are given as signed Python ints
and range-checked against their format.
"""

from .decode import (
    OP_BRANCH,
    OP_I_ARITH,
    OP_JAL,
    OP_LUI,
    OP_R_TYPE,
    OP_STORE,
    OP_SYSTEM,
)

ECALL = OP_SYSTEM
NOP = OP_I_ARITH  # ADDI x0, x0, 0

# Signed range of each immediate format: (min, max, alignment)
IMM_RANGES: dict[str, tuple[int, int, int]] = {
    "I": (-(1 << 11), (1 << 11) - 1, 1),
    "S": (-(1 << 11), (1 << 11) - 1, 1),
    "B": (-(1 << 12), (1 << 12) - 2, 2),
    "U": (-(1 << 19), (1 << 19) - 1, 1),
    "J": (-(1 << 20), (1 << 20) - 2, 2),
}


def _check_imm(fmt: str, imm: int) -> int:
    lo, hi, align = IMM_RANGES[fmt]
    if not lo <= imm <= hi:
        raise ValueError(f"{fmt}-type immediate {imm} out of range [{lo}, {hi}]")
    if imm % align:
        raise ValueError(f"{fmt}-type immediate {imm} must be a multiple of {align}")
    return imm


def _check_reg(*indices: int) -> None:
    for index in indices:
        if not 0 <= index <= 31:
            raise ValueError(f"Register index out of range: {index}")


def encode_r(opcode: int, rd: int, funct3: int, rs1: int, rs2: int, funct7: int) -> int:
    _check_reg(rd, rs1, rs2)
    return ((funct7 & 0x7F) << 25) | (rs2 << 20) | (rs1 << 15) | \
           ((funct3 & 0x7) << 12) | (rd << 7) | (opcode & 0x7F)


def encode_i(opcode: int, rd: int, funct3: int, rs1: int, imm: int) -> int:
    _check_reg(rd, rs1)
    u = _check_imm("I", imm) & 0xFFF
    return (u << 20) | (rs1 << 15) | ((funct3 & 0x7) << 12) | (rd << 7) | (opcode & 0x7F)


def encode_s(opcode: int, funct3: int, rs1: int, rs2: int, imm: int) -> int:
    _check_reg(rs1, rs2)
    u = _check_imm("S", imm) & 0xFFF
    return ((u >> 5) << 25) | (rs2 << 20) | (rs1 << 15) | \
           ((funct3 & 0x7) << 12) | ((u & 0x1F) << 7) | (opcode & 0x7F)


def encode_b(funct3: int, rs1: int, rs2: int, imm: int, opcode: int = OP_BRANCH) -> int:
    _check_reg(rs1, rs2)
    u = _check_imm("B", imm) & 0x1FFF
    bit_12 = (u >> 12) & 1
    bit_11 = (u >> 11) & 1
    bits_10_5 = (u >> 5) & 0x3F
    bits_4_1 = (u >> 1) & 0xF
    return (bit_12 << 31) | (bits_10_5 << 25) | (rs2 << 20) | (rs1 << 15) | \
           ((funct3 & 0x7) << 12) | (bits_4_1 << 8) | (bit_11 << 7) | (opcode & 0x7F)


def encode_u(opcode: int, rd: int, imm20: int) -> int:
    """Encode LUI/AUIPC. ``imm20`` is the upper immediate (signed 20 bits)."""
    _check_reg(rd)
    u = _check_imm("U", imm20) & 0xFFFFF
    return (u << 12) | (rd << 7) | (opcode & 0x7F)


def encode_j(rd: int, imm: int, opcode: int = OP_JAL) -> int:
    _check_reg(rd)
    u = _check_imm("J", imm) & 0x1FFFFF
    bit_20 = (u >> 20) & 1
    bits_10_1 = (u >> 1) & 0x3FF
    bit_11 = (u >> 11) & 1
    bits_19_12 = (u >> 12) & 0xFF
    return (bit_20 << 31) | (bits_10_1 << 21) | (bit_11 << 20) | \
           (bits_19_12 << 12) | (rd << 7) | (opcode & 0x7F)


# Convenience wrappers for the instructions test programs use most

def lui(rd: int, imm20: int) -> int:
    return encode_u(OP_LUI, rd, imm20)


def addi(rd: int, rs1: int, imm: int) -> int:
    return encode_i(OP_I_ARITH, rd, 0b000, rs1, imm)


def add(rd: int, rs1: int, rs2: int) -> int:
    return encode_r(OP_R_TYPE, rd, 0b000, rs1, rs2, 0)


def sb(rs2: int, imm: int, rs1: int) -> int:
    return encode_s(OP_STORE, 0b000, rs1, rs2, imm)


def sw(rs2: int, imm: int, rs1: int) -> int:
    return encode_s(OP_STORE, 0b010, rs1, rs2, imm)


def beq(rs1: int, rs2: int, imm: int) -> int:
    return encode_b(0b000, rs1, rs2, imm)


def jal(rd: int, imm: int) -> int:
    return encode_j(rd, imm)


def to_bytes(words: list[int]) -> bytes:
    """Serialize instruction words as a little-endian flat image."""
    return b"".join((w & 0xFFFFFFFF).to_bytes(4, "little") for w in words)
