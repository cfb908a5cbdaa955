"""CPU core: fetch-decode-execute loop."""

from __future__ import annotations

import enum
from collections import deque
from dataclasses import dataclass

from rich.console import Console

from ..errors import AddressFault
from ..memory.bus import MemoryBus
from .decode import OP_LOAD, Instruction, decode, describe_unknown
from .disasm import disassemble
from .execute import execute
from .registers import RegisterFile

DEFAULT_MAX_STEPS = 10_000_000
MAX_ANOMALIES = 64  # most recent unknown-encoding warnings kept on the CPU


class StepResult(enum.Enum):
    """Outcome of a single step (or of a run)."""

    CONTINUE = "continue"
    HALT = "halt"    # ECALL: the program finished
    FAULT = "fault"  # addressing fault: the program crashed


@dataclass(frozen=True)
class Fault:
    """Where and why the machine stopped on an addressing fault."""

    kind: str  # "fetch", "load" or "store"
    pc: int
    addr: int
    mnemonic: str | None = None

    def __str__(self) -> str:
        what = self.mnemonic or self.kind
        return f"{what} OOB at 0x{self.addr:08x} (pc={self.pc:08x})"


class CPU:
    """RISC-V CPU: fetch-decode-execute over a register file and a memory bus.

    The CPU only knows how to take a single step; ``run`` is a convenience
    loop with a step budget. Once halted (ECALL or fault) the CPU stays
    halted and further steps return the same result.

    Diagnostics (``[trap]``, ``[halt]``, ``[warn]`` and trace lines) go to
    ``console``, a Rich console on stderr unless one is supplied.
    """

    def __init__(
        self,
        memory: MemoryBus,
        console: Console | None = None,
        trace: bool = False,
    ) -> None:
        self.pc: int = 0
        self.registers = RegisterFile()
        self.memory = memory
        self.console = console if console is not None else Console(stderr=True, highlight=False)
        self.trace = trace
        self.halted: bool = False
        self.result: StepResult = StepResult.CONTINUE
        self.fault: Fault | None = None
        self.step_count: int = 0
        self.instruction_stats: dict[str, int] = {}
        self.anomalies: deque[str] = deque(maxlen=MAX_ANOMALIES)
        self.anomaly_count: int = 0

    def _diag(self, message: str) -> None:
        self.console.print(message, markup=False, highlight=False, soft_wrap=True)

    def _stop(self, result: StepResult) -> StepResult:
        self.halted = True
        self.result = result
        return result

    def _trap(self, kind: str, addr: int, inst: Instruction | None = None) -> StepResult:
        self.fault = Fault(kind=kind, pc=self.pc, addr=addr,
                           mnemonic=inst.mnemonic if inst else None)
        self._diag(f"[trap] {self.fault}")
        return self._stop(StepResult.FAULT)

    def step(self) -> StepResult:
        """Execute one instruction cycle: fetch, decode, execute.

        Returns:
            CONTINUE if the machine can keep going, HALT after an ECALL,
            FAULT after an addressing fault. On HALT and FAULT the PC is
            left on the instruction that stopped the machine.
        """
        if self.halted:
            return self.result

        try:
            word = self.memory.read32(self.pc)
        except AddressFault as e:
            return self._trap("fetch", e.addr)

        inst = decode(word)
        if self.trace:
            self._diag(f"pc={self.pc:08x} inst={word:08x}  {disassemble(inst)}")

        mnemonic = inst.mnemonic or "UNKNOWN"
        self.instruction_stats[mnemonic] = self.instruction_stats.get(mnemonic, 0) + 1
        self.step_count += 1

        self.registers.pin_zero()
        if inst.mnemonic is None:
            message = f"{describe_unknown(inst)} at pc={self.pc:08x}"
            self.anomalies.append(message)
            self.anomaly_count += 1
            self._diag(f"[warn] {message}")
            next_pc = (self.pc + 4) & 0xFFFFFFFF
        elif inst.mnemonic == "ECALL":
            self._diag("[halt] ECALL")
            return self._stop(StepResult.HALT)
        else:
            try:
                next_pc = execute(inst, self.registers, self.memory, self.pc)
            except AddressFault as e:
                kind = "load" if inst.opcode == OP_LOAD else "store"
                return self._trap(kind, e.addr, inst)

        self.pc = next_pc
        self.registers.pin_zero()
        return StepResult.CONTINUE

    def run(self, max_steps: int = DEFAULT_MAX_STEPS) -> StepResult:
        """Step until halted or ``max_steps`` instructions have been attempted.

        Returns:
            The last step's result; CONTINUE means the budget ran out.
        """
        result = self.result
        for _ in range(max_steps):
            result = self.step()
            if result is not StepResult.CONTINUE:
                break
        return result
