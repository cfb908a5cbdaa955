"""Tests for instruction execution."""

from emurv.cpu.cpu import StepResult
from emurv.cpu.decode import (
    OP_AUIPC,
    OP_I_ARITH,
    OP_JALR,
    OP_LOAD,
    OP_LUI,
    OP_R_TYPE,
    OP_STORE,
    to_signed,
)
from emurv.cpu.encode import encode_b, encode_i, encode_j, encode_r, encode_s, encode_u


def _r(funct3: int, rd: int, rs1: int, rs2: int, funct7: int = 0) -> int:
    return encode_r(OP_R_TYPE, rd, funct3, rs1, rs2, funct7)


def _i(funct3: int, rd: int, rs1: int, imm: int, opcode: int = OP_I_ARITH) -> int:
    return encode_i(opcode, rd, funct3, rs1, imm)


DATA = 0x1000


# ==================== R-type tests ====================

class TestRegisterRegister:
    def test_add(self, exec_instruction, make_cpu, set_regs) -> None:
        cpu = make_cpu()
        set_regs(cpu, x1=5, x2=10)
        exec_instruction(cpu, _r(0b000, 3, 1, 2))
        assert cpu.registers.read(3) == 15

    def test_add_overflow_wraps(self, exec_instruction, make_cpu, set_regs) -> None:
        cpu = make_cpu()
        set_regs(cpu, x1=0xFFFFFFFF, x2=1)
        exec_instruction(cpu, _r(0b000, 3, 1, 2))
        assert cpu.registers.read(3) == 0

    def test_sub(self, exec_instruction, make_cpu, set_regs) -> None:
        cpu = make_cpu()
        set_regs(cpu, x1=3, x2=10)
        exec_instruction(cpu, _r(0b000, 3, 1, 2, funct7=0b0100000))
        assert to_signed(cpu.registers.read(3)) == -7

    def test_logic(self, exec_instruction, make_cpu, set_regs) -> None:
        cpu = make_cpu()
        set_regs(cpu, x1=0b1100, x2=0b1010)
        exec_instruction(cpu, _r(0b100, 3, 1, 2))  # XOR
        exec_instruction(cpu, _r(0b110, 4, 1, 2))  # OR
        exec_instruction(cpu, _r(0b111, 5, 1, 2))  # AND
        assert cpu.registers.read(3) == 0b0110
        assert cpu.registers.read(4) == 0b1110
        assert cpu.registers.read(5) == 0b1000

    def test_sll_uses_low_five_bits(self, exec_instruction, make_cpu, set_regs) -> None:
        cpu = make_cpu()
        set_regs(cpu, x1=1, x2=33)
        exec_instruction(cpu, _r(0b001, 3, 1, 2))
        assert cpu.registers.read(3) == 2

    def test_srl_vs_sra(self, exec_instruction, make_cpu, set_regs) -> None:
        cpu = make_cpu()
        set_regs(cpu, x1=0x80000000, x2=4)
        exec_instruction(cpu, _r(0b101, 3, 1, 2))
        exec_instruction(cpu, _r(0b101, 4, 1, 2, funct7=0b0100000))
        assert cpu.registers.read(3) == 0x08000000
        assert cpu.registers.read(4) == 0xF8000000

    def test_slt_signed(self, exec_instruction, make_cpu, set_regs) -> None:
        cpu = make_cpu()
        set_regs(cpu, x1=0xFFFFFFFF, x2=1)  # -1 < 1
        exec_instruction(cpu, _r(0b010, 3, 1, 2))
        exec_instruction(cpu, _r(0b010, 4, 2, 1))
        assert cpu.registers.read(3) == 1
        assert cpu.registers.read(4) == 0

    def test_sltu_unsigned(self, exec_instruction, make_cpu, set_regs) -> None:
        cpu = make_cpu()
        set_regs(cpu, x1=0xFFFFFFFF, x2=1)
        exec_instruction(cpu, _r(0b011, 3, 1, 2))
        exec_instruction(cpu, _r(0b011, 4, 2, 1))
        assert cpu.registers.read(3) == 0
        assert cpu.registers.read(4) == 1

    def test_write_to_x0_discarded(self, exec_instruction, make_cpu, set_regs) -> None:
        cpu = make_cpu()
        set_regs(cpu, x1=5, x2=6)
        exec_instruction(cpu, _r(0b000, 0, 1, 2))
        assert cpu.registers.read(0) == 0


# ==================== I-type arithmetic ====================

class TestRegisterImmediate:
    def test_addi_negative(self, exec_instruction, make_cpu, set_regs) -> None:
        cpu = make_cpu()
        set_regs(cpu, x1=10)
        exec_instruction(cpu, _i(0b000, 2, 1, -11))
        assert cpu.registers.read(2) == 0xFFFFFFFF

    def test_xori_sign_extended(self, exec_instruction, make_cpu, set_regs) -> None:
        cpu = make_cpu()
        set_regs(cpu, x1=0x0000FFFF)
        exec_instruction(cpu, _i(0b100, 2, 1, -1))  # NOT
        assert cpu.registers.read(2) == 0xFFFF0000

    def test_ori_andi(self, exec_instruction, make_cpu, set_regs) -> None:
        cpu = make_cpu()
        set_regs(cpu, x1=0xF0)
        exec_instruction(cpu, _i(0b110, 2, 1, 0x0F))
        exec_instruction(cpu, _i(0b111, 3, 1, 0x3C))
        assert cpu.registers.read(2) == 0xFF
        assert cpu.registers.read(3) == 0x30

    def test_shifts(self, exec_instruction, make_cpu, set_regs) -> None:
        cpu = make_cpu()
        set_regs(cpu, x1=0x80000001)
        exec_instruction(cpu, _i(0b001, 2, 1, 4))           # SLLI
        exec_instruction(cpu, _i(0b101, 3, 1, 4))           # SRLI
        exec_instruction(cpu, _i(0b101, 4, 1, 0x400 | 4))   # SRAI
        assert cpu.registers.read(2) == 0x00000010
        assert cpu.registers.read(3) == 0x08000000
        assert cpu.registers.read(4) == 0xF8000000


# ==================== Upper immediates and jumps ====================

class TestUpperAndJumps:
    def test_lui(self, exec_instruction, make_cpu) -> None:
        cpu = exec_instruction(make_cpu(), encode_u(OP_LUI, 1, 0x10000))
        assert cpu.registers.read(1) == 0x10000000

    def test_auipc(self, exec_instruction, make_cpu) -> None:
        cpu = make_cpu()
        cpu.pc = 0x100
        exec_instruction(cpu, encode_u(OP_AUIPC, 1, 1))
        assert cpu.registers.read(1) == 0x1100

    def test_jal_links_and_jumps(self, exec_instruction, make_cpu) -> None:
        cpu = make_cpu()
        cpu.pc = 0x200
        exec_instruction(cpu, encode_j(1, -0x100))
        assert cpu.registers.read(1) == 0x204
        assert cpu.pc == 0x100

    def test_jalr_clears_bit_zero(self, exec_instruction, make_cpu, set_regs) -> None:
        cpu = make_cpu()
        set_regs(cpu, x5=0x301)
        exec_instruction(cpu, _i(0, 1, 5, 4, opcode=OP_JALR))
        assert cpu.pc == 0x304
        assert cpu.registers.read(1) == 4

    def test_jalr_same_register(self, exec_instruction, make_cpu, set_regs) -> None:
        """rs1 is read before rd is written."""
        cpu = make_cpu()
        set_regs(cpu, x1=0x400)
        exec_instruction(cpu, _i(0, 1, 1, 0, opcode=OP_JALR))
        assert cpu.pc == 0x400
        assert cpu.registers.read(1) == 4


# ==================== Branches ====================

class TestBranches:
    CASES = [
        # funct3, a, b, taken
        (0b000, 5, 5, True),                   # BEQ
        (0b000, 5, 6, False),
        (0b001, 5, 6, True),                   # BNE
        (0b001, 5, 5, False),
        (0b100, 0xFFFFFFFF, 1, True),          # BLT -1 < 1
        (0b100, 1, 0xFFFFFFFF, False),
        (0b101, 1, 0xFFFFFFFF, True),          # BGE 1 >= -1
        (0b101, 3, 3, True),
        (0b101, 0xFFFFFFFF, 1, False),
        (0b110, 1, 0xFFFFFFFF, True),          # BLTU
        (0b110, 0xFFFFFFFF, 1, False),
        (0b111, 0xFFFFFFFF, 1, True),          # BGEU
        (0b111, 1, 0xFFFFFFFF, False),
    ]

    def test_conditions(self, exec_instruction, make_cpu, set_regs) -> None:
        for funct3, a, b, taken in self.CASES:
            cpu = make_cpu()
            cpu.pc = 0x100
            set_regs(cpu, x1=a, x2=b)
            exec_instruction(cpu, encode_b(funct3, 1, 2, -16))
            expected = 0xF0 if taken else 0x104
            assert cpu.pc == expected, (funct3, a, b)


# ==================== Loads and stores ====================

class TestLoadsStores:
    def test_lb_sign_extends(self, exec_instruction, make_cpu, set_regs) -> None:
        cpu = make_cpu()
        cpu.memory.write8(DATA, 0xFF)
        set_regs(cpu, x1=DATA)
        exec_instruction(cpu, _i(0b000, 2, 1, 0, opcode=OP_LOAD))
        assert cpu.registers.read(2) == 0xFFFFFFFF

    def test_lbu_zero_extends(self, exec_instruction, make_cpu, set_regs) -> None:
        cpu = make_cpu()
        cpu.memory.write8(DATA, 0xFF)
        set_regs(cpu, x1=DATA)
        exec_instruction(cpu, _i(0b100, 2, 1, 0, opcode=OP_LOAD))
        assert cpu.registers.read(2) == 0x000000FF

    def test_lw_negative_offset(self, exec_instruction, make_cpu, set_regs) -> None:
        cpu = make_cpu()
        cpu.memory.write32(DATA, 0xCAFEBABE)
        set_regs(cpu, x1=DATA + 8)
        exec_instruction(cpu, _i(0b010, 2, 1, -8, opcode=OP_LOAD))
        assert cpu.registers.read(2) == 0xCAFEBABE

    def test_lw_unaligned(self, exec_instruction, make_cpu, set_regs) -> None:
        cpu = make_cpu()
        cpu.memory.write32(DATA + 1, 0x11223344)
        set_regs(cpu, x1=DATA + 1)
        exec_instruction(cpu, _i(0b010, 2, 1, 0, opcode=OP_LOAD))
        assert cpu.registers.read(2) == 0x11223344

    def test_sb_writes_low_byte(self, exec_instruction, make_cpu, set_regs) -> None:
        cpu = make_cpu()
        set_regs(cpu, x1=DATA, x2=0x12345678)
        exec_instruction(cpu, encode_s(OP_STORE, 0b000, 1, 2, 3))
        assert cpu.memory.read8(DATA + 3) == 0x78
        assert cpu.memory.read8(DATA + 4) == 0

    def test_sw_little_endian(self, exec_instruction, make_cpu, set_regs) -> None:
        cpu = make_cpu()
        set_regs(cpu, x1=DATA, x2=0x04030201)
        exec_instruction(cpu, encode_s(OP_STORE, 0b010, 1, 2, 0))
        assert [cpu.memory.read8(DATA + i) for i in range(4)] == [1, 2, 3, 4]

    def test_load_fault_halts(self, exec_instruction, make_cpu, set_regs) -> None:
        cpu = make_cpu()
        set_regs(cpu, x1=0x20000000, x2=7)
        exec_instruction(cpu, _i(0b010, 2, 1, 0, opcode=OP_LOAD))
        assert cpu.result is StepResult.FAULT
        assert cpu.fault is not None
        assert cpu.fault.kind == "load"
        assert cpu.fault.mnemonic == "LW"
        assert cpu.registers.read(2) == 7  # not written
        assert cpu.pc == 0

    def test_store_fault_halts(self, exec_instruction, make_cpu, set_regs) -> None:
        cpu = make_cpu()
        set_regs(cpu, x1=0x20000000)
        exec_instruction(cpu, encode_s(OP_STORE, 0b000, 1, 2, 0))
        assert cpu.halted is True
        assert cpu.fault is not None
        assert cpu.fault.kind == "store"
        assert cpu.fault.addr == 0x20000000


# ==================== Anomalies ====================

class TestUnknownEncodings:
    def test_unknown_opcode_skipped(self, exec_instruction, make_cpu) -> None:
        cpu = make_cpu()
        result_cpu = exec_instruction(cpu, 0x0000007F)
        assert result_cpu.pc == 4
        assert result_cpu.halted is False
        assert result_cpu.result is StepResult.CONTINUE
        assert list(result_cpu.anomalies) == ["unsupported opcode 0x7f at pc=00000000"]
        assert result_cpu.instruction_stats == {"UNKNOWN": 1}

    def test_unknown_funct_skipped(self, exec_instruction, make_cpu, set_regs) -> None:
        cpu = make_cpu()
        set_regs(cpu, x1=6, x2=7)
        exec_instruction(cpu, _r(0b000, 3, 1, 2, funct7=0b0000001))  # MUL
        assert cpu.registers.read(3) == 0
        assert cpu.pc == 4
        assert len(cpu.anomalies) == 1
