"""Instruction execution: implements the supported RV32I operations."""

from __future__ import annotations

from collections.abc import Callable

from ..memory.bus import MemoryBus
from .decode import Instruction, sign_extend, to_signed
from .registers import RegisterFile

Handler = Callable[[Instruction, RegisterFile, MemoryBus, int], int]


def execute(inst: Instruction, regs: RegisterFile, mem: MemoryBus, pc: int) -> int:
    """Execute a decoded instruction. Returns the next PC value.

    ECALL and unrecognized encodings are the caller's business; they have
    no handler here.

    Raises:
        AddressFault: If a load or store touches an unmapped address.
        ValueError: If the instruction has no handler.
    """
    handler = _HANDLERS.get(inst.mnemonic) if inst.mnemonic else None
    if handler is None:
        raise ValueError(f"No handler for instruction 0x{inst.word:08X} ({inst.mnemonic})")
    return handler(inst, regs, mem, pc)


def _next(pc: int) -> int:
    return (pc + 4) & 0xFFFFFFFF


# ---------------------------------------------------------------------------
# Upper immediates and jumps
# ---------------------------------------------------------------------------

def _lui(inst: Instruction, regs: RegisterFile, mem: MemoryBus, pc: int) -> int:
    regs.write(inst.rd, inst.imm)
    return _next(pc)


def _auipc(inst: Instruction, regs: RegisterFile, mem: MemoryBus, pc: int) -> int:
    regs.write(inst.rd, (pc + inst.imm) & 0xFFFFFFFF)
    return _next(pc)


def _jal(inst: Instruction, regs: RegisterFile, mem: MemoryBus, pc: int) -> int:
    regs.write(inst.rd, _next(pc))
    return (pc + to_signed(inst.imm)) & 0xFFFFFFFF


def _jalr(inst: Instruction, regs: RegisterFile, mem: MemoryBus, pc: int) -> int:
    # Read rs1 before writing rd: they may be the same register
    target = (regs.read(inst.rs1) + to_signed(inst.imm)) & 0xFFFFFFFE
    regs.write(inst.rd, _next(pc))
    return target


# ---------------------------------------------------------------------------
# Branches
# ---------------------------------------------------------------------------

_BRANCH_CONDITIONS: dict[str, Callable[[int, int], bool]] = {
    "BEQ": lambda a, b: a == b,
    "BNE": lambda a, b: a != b,
    "BLT": lambda a, b: to_signed(a) < to_signed(b),
    "BGE": lambda a, b: to_signed(a) >= to_signed(b),
    "BLTU": lambda a, b: a < b,
    "BGEU": lambda a, b: a >= b,
}


def _branch(inst: Instruction, regs: RegisterFile, mem: MemoryBus, pc: int) -> int:
    taken = _BRANCH_CONDITIONS[inst.mnemonic](regs.read(inst.rs1), regs.read(inst.rs2))
    if taken:
        return (pc + to_signed(inst.imm)) & 0xFFFFFFFF
    return _next(pc)


# ---------------------------------------------------------------------------
# Loads and stores
# ---------------------------------------------------------------------------

def effective_address(inst: Instruction, regs: RegisterFile) -> int:
    """rs1 + sign-extended offset, wrapped to 32 bits."""
    return (regs.read(inst.rs1) + inst.imm) & 0xFFFFFFFF


def _lb(inst: Instruction, regs: RegisterFile, mem: MemoryBus, pc: int) -> int:
    value = mem.read8(effective_address(inst, regs))
    regs.write(inst.rd, sign_extend(value, 8))
    return _next(pc)


def _lbu(inst: Instruction, regs: RegisterFile, mem: MemoryBus, pc: int) -> int:
    regs.write(inst.rd, mem.read8(effective_address(inst, regs)))
    return _next(pc)


def _lw(inst: Instruction, regs: RegisterFile, mem: MemoryBus, pc: int) -> int:
    regs.write(inst.rd, mem.read32(effective_address(inst, regs)))
    return _next(pc)


def _sb(inst: Instruction, regs: RegisterFile, mem: MemoryBus, pc: int) -> int:
    mem.write8(effective_address(inst, regs), regs.read(inst.rs2) & 0xFF)
    return _next(pc)


def _sw(inst: Instruction, regs: RegisterFile, mem: MemoryBus, pc: int) -> int:
    mem.write32(effective_address(inst, regs), regs.read(inst.rs2))
    return _next(pc)


# ---------------------------------------------------------------------------
# Arithmetic, logic, shifts
# ---------------------------------------------------------------------------

# Shared by the register-register and register-immediate forms.
# Operands are unsigned 32-bit; shifts use only the low 5 bits of b.
_ALU_OPS: dict[str, Callable[[int, int], int]] = {
    "ADD": lambda a, b: a + b,
    "SUB": lambda a, b: a - b,
    "XOR": lambda a, b: a ^ b,
    "OR": lambda a, b: a | b,
    "AND": lambda a, b: a & b,
    "SLL": lambda a, b: a << (b & 0x1F),
    "SRL": lambda a, b: a >> (b & 0x1F),
    "SRA": lambda a, b: to_signed(a) >> (b & 0x1F),
    "SLT": lambda a, b: 1 if to_signed(a) < to_signed(b) else 0,
    "SLTU": lambda a, b: 1 if a < b else 0,
}

# Immediate mnemonic -> ALU operation
_IMM_OPS: dict[str, str] = {
    "ADDI": "ADD", "XORI": "XOR", "ORI": "OR", "ANDI": "AND",
    "SLLI": "SLL", "SRLI": "SRL", "SRAI": "SRA",
}


def _r_type(inst: Instruction, regs: RegisterFile, mem: MemoryBus, pc: int) -> int:
    result = _ALU_OPS[inst.mnemonic](regs.read(inst.rs1), regs.read(inst.rs2))
    regs.write(inst.rd, result)
    return _next(pc)


def _i_arith(inst: Instruction, regs: RegisterFile, mem: MemoryBus, pc: int) -> int:
    # For shifts the ALU only looks at imm[4:0] (shamt)
    op = _ALU_OPS[_IMM_OPS[inst.mnemonic]]
    regs.write(inst.rd, op(regs.read(inst.rs1), inst.imm))
    return _next(pc)


_HANDLERS: dict[str, Handler] = {
    "LUI": _lui,
    "AUIPC": _auipc,
    "JAL": _jal,
    "JALR": _jalr,
    "LB": _lb,
    "LBU": _lbu,
    "LW": _lw,
    "SB": _sb,
    "SW": _sw,
}
_HANDLERS.update(dict.fromkeys(_BRANCH_CONDITIONS, _branch))
_HANDLERS.update(dict.fromkeys(_ALU_OPS, _r_type))
_HANDLERS.update(dict.fromkeys(_IMM_OPS, _i_arith))
