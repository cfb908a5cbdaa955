"""Disassembly: converts decoded instructions to human-readable text for traces."""

from __future__ import annotations

from .decode import (
    Instruction,
    OP_BRANCH,
    OP_I_ARITH,
    OP_JAL,
    OP_JALR,
    OP_LOAD,
    OP_R_TYPE,
    OP_STORE,
    OP_SYSTEM,
    OP_AUIPC,
    OP_LUI,
    describe_unknown,
    to_signed,
)


def _reg(index: int) -> str:
    """Format a register reference as 'x<N>'."""
    return f"x{index}"


def disassemble(inst: Instruction) -> str:
    """Convert a decoded Instruction into a human-readable mnemonic string.

    Args:
        inst: A decoded Instruction.

    Returns:
        A string like "ADD x1, x2, x3", "SB x2, 0(x1)" or
        "UNKNOWN (OP-IMM f3=2 f7=0x00)".
    """
    name = inst.mnemonic
    if name is None:
        return f"UNKNOWN ({describe_unknown(inst)})"

    op = inst.opcode
    imm = to_signed(inst.imm)
    if op == OP_R_TYPE:
        return f"{name} {_reg(inst.rd)}, {_reg(inst.rs1)}, {_reg(inst.rs2)}"
    elif op == OP_I_ARITH:
        if name in ("SLLI", "SRLI", "SRAI"):
            imm = inst.imm & 0x1F
        return f"{name} {_reg(inst.rd)}, {_reg(inst.rs1)}, {imm}"
    elif op in (OP_LOAD, OP_JALR):
        return f"{name} {_reg(inst.rd)}, {imm}({_reg(inst.rs1)})"
    elif op == OP_STORE:
        return f"{name} {_reg(inst.rs2)}, {imm}({_reg(inst.rs1)})"
    elif op == OP_BRANCH:
        return f"{name} {_reg(inst.rs1)}, {_reg(inst.rs2)}, {imm}"
    elif op in (OP_LUI, OP_AUIPC):
        return f"{name} {_reg(inst.rd)}, 0x{inst.imm >> 12:X}"
    elif op == OP_JAL:
        return f"{name} {_reg(inst.rd)}, {imm}"
    elif op == OP_SYSTEM:
        if inst.word == OP_SYSTEM:
            return "ECALL"
        return f"SYSTEM (0x{inst.word:08X})"
    return name
