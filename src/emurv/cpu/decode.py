"""Instruction decoder: extracts fields, reconstructs immediates, names the operation."""

from dataclasses import dataclass


def sign_extend(value: int, bits: int) -> int:
    """Sign-extend a `bits`-wide value to 32 bits."""
    value &= (1 << bits) - 1
    sign_bit = 1 << (bits - 1)
    return ((value ^ sign_bit) - sign_bit) & 0xFFFFFFFF


def to_signed(value: int) -> int:
    """Interpret a 32-bit unsigned value as signed Python int."""
    return value - 0x100000000 if value >= 0x80000000 else value


@dataclass(frozen=True)
class Instruction:
    """Decoded RISC-V instruction.

    ``mnemonic`` names the operation ("ADDI", "BEQ", ...) or is None when
    the encoding is not one this emulator implements. ``imm`` is already
    sign-extended to 32 bits and stored unsigned.
    """

    word: int
    opcode: int
    mnemonic: str | None = None
    rd: int = 0
    rs1: int = 0
    rs2: int = 0
    imm: int = 0
    funct3: int = 0
    funct7: int = 0


# Opcode constants
OP_R_TYPE = 0x33
OP_I_ARITH = 0x13
OP_LOAD = 0x03
OP_STORE = 0x23
OP_BRANCH = 0x63
OP_LUI = 0x37
OP_AUIPC = 0x17
OP_JAL = 0x6F
OP_JALR = 0x67
OP_SYSTEM = 0x73

# Opcode family names, used in diagnostics
OPCODE_NAMES: dict[int, str] = {
    OP_R_TYPE: "OP",
    OP_I_ARITH: "OP-IMM",
    OP_LOAD: "LOAD",
    OP_STORE: "STORE",
    OP_BRANCH: "BRANCH",
    OP_LUI: "LUI",
    OP_AUIPC: "AUIPC",
    OP_JAL: "JAL",
    OP_JALR: "JALR",
    OP_SYSTEM: "SYSTEM",
}

# R-type mnemonics: (funct3, funct7) -> name
R_MNEMONICS: dict[tuple[int, int], str] = {
    (0b000, 0b0000000): "ADD",
    (0b000, 0b0100000): "SUB",
    (0b001, 0b0000000): "SLL",
    (0b010, 0b0000000): "SLT",
    (0b011, 0b0000000): "SLTU",
    (0b100, 0b0000000): "XOR",
    (0b101, 0b0000000): "SRL",
    (0b101, 0b0100000): "SRA",
    (0b110, 0b0000000): "OR",
    (0b111, 0b0000000): "AND",
}

# I-type arithmetic mnemonics (non-shift): funct3 -> name
I_MNEMONICS: dict[int, str] = {
    0b000: "ADDI", 0b100: "XORI", 0b110: "ORI", 0b111: "ANDI",
}

# I-type shift mnemonics: (funct3, imm[11:5]) -> name
SHIFT_IMM_MNEMONICS: dict[tuple[int, int], str] = {
    (0b001, 0b0000000): "SLLI",
    (0b101, 0b0000000): "SRLI",
    (0b101, 0b0100000): "SRAI",
}

# Load mnemonics: funct3 -> name
LOAD_MNEMONICS: dict[int, str] = {
    0b000: "LB", 0b010: "LW", 0b100: "LBU",
}

# Store mnemonics: funct3 -> name
STORE_MNEMONICS: dict[int, str] = {
    0b000: "SB", 0b010: "SW",
}

# Branch mnemonics: funct3 -> name
BRANCH_MNEMONICS: dict[int, str] = {
    0b000: "BEQ", 0b001: "BNE", 0b100: "BLT",
    0b101: "BGE", 0b110: "BLTU", 0b111: "BGEU",
}


def imm_i(word: int) -> int:
    """I-type: imm = sign_extend(inst[31:20], 12)."""
    return sign_extend(word >> 20, 12)


def imm_s(word: int) -> int:
    """S-type: imm = sign_extend(inst[31:25] << 5 | inst[11:7], 12)."""
    return sign_extend(((word >> 25) & 0x7F) << 5 | ((word >> 7) & 0x1F), 12)


def imm_b(word: int) -> int:
    """B-type: [12|10:5|4:1|11], LSB always 0."""
    return sign_extend(
        ((word >> 31) & 1) << 12
        | ((word >> 7) & 1) << 11
        | ((word >> 25) & 0x3F) << 5
        | ((word >> 8) & 0xF) << 1,
        13,
    )


def imm_u(word: int) -> int:
    """U-type: inst[31:12] << 12 (already in upper position)."""
    return word & 0xFFFFF000


def imm_j(word: int) -> int:
    """J-type: [20|10:1|11|19:12], LSB always 0."""
    return sign_extend(
        ((word >> 31) & 1) << 20
        | ((word >> 12) & 0xFF) << 12
        | ((word >> 20) & 1) << 11
        | ((word >> 21) & 0x3FF) << 1,
        21,
    )


def decode(word: int) -> Instruction:
    """Decode a 32-bit instruction word into an Instruction.

    Never raises: encodings outside the supported subset come back with
    ``mnemonic=None`` so the caller can decide how to treat them.
    """
    word &= 0xFFFFFFFF
    opcode = word & 0x7F
    rd = (word >> 7) & 0x1F
    funct3 = (word >> 12) & 0x7
    rs1 = (word >> 15) & 0x1F
    rs2 = (word >> 20) & 0x1F
    funct7 = (word >> 25) & 0x7F

    if opcode == OP_R_TYPE:
        return Instruction(word, opcode, R_MNEMONICS.get((funct3, funct7)),
                           rd=rd, rs1=rs1, rs2=rs2, funct3=funct3, funct7=funct7)

    elif opcode == OP_I_ARITH:
        if funct3 in (0b001, 0b101):
            # Shifts: shamt lives in imm[4:0], imm[11:5] selects the variant
            name = SHIFT_IMM_MNEMONICS.get((funct3, funct7))
        else:
            name = I_MNEMONICS.get(funct3)
        return Instruction(word, opcode, name, rd=rd, rs1=rs1, imm=imm_i(word),
                           funct3=funct3, funct7=funct7)

    elif opcode == OP_LOAD:
        return Instruction(word, opcode, LOAD_MNEMONICS.get(funct3), rd=rd,
                           rs1=rs1, imm=imm_i(word), funct3=funct3)

    elif opcode == OP_STORE:
        return Instruction(word, opcode, STORE_MNEMONICS.get(funct3), rs1=rs1,
                           rs2=rs2, imm=imm_s(word), funct3=funct3)

    elif opcode == OP_BRANCH:
        return Instruction(word, opcode, BRANCH_MNEMONICS.get(funct3), rs1=rs1,
                           rs2=rs2, imm=imm_b(word), funct3=funct3)

    elif opcode in (OP_LUI, OP_AUIPC):
        return Instruction(word, opcode, OPCODE_NAMES[opcode], rd=rd, imm=imm_u(word))

    elif opcode == OP_JAL:
        return Instruction(word, opcode, "JAL", rd=rd, imm=imm_j(word))

    elif opcode == OP_JALR:
        return Instruction(word, opcode, "JALR", rd=rd, rs1=rs1, imm=imm_i(word),
                           funct3=funct3)

    elif opcode == OP_SYSTEM:
        # Every SYSTEM encoding is treated as a halt request
        return Instruction(word, opcode, "ECALL", rd=rd, rs1=rs1, imm=imm_i(word),
                           funct3=funct3)

    return Instruction(word, opcode, rd=rd, rs1=rs1, rs2=rs2,
                       funct3=funct3, funct7=funct7)


def describe_unknown(inst: Instruction) -> str:
    """Explain why an instruction was not recognized, for warning messages."""
    family = OPCODE_NAMES.get(inst.opcode)
    if family is None:
        return f"unsupported opcode 0x{inst.opcode:02x}"
    if inst.opcode in (OP_R_TYPE, OP_I_ARITH):
        return f"{family} f3={inst.funct3} f7=0x{inst.funct7:02x}"
    return f"{family} f3={inst.funct3}"
