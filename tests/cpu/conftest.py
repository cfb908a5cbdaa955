"""Shared fixtures for CPU tests."""

import io

import pytest
from rich.console import Console

from emurv.cpu.cpu import CPU
from emurv.machine import Machine, build_machine

RAM_SIZE = 1024 * 1024  # 1 MB


@pytest.fixture
def make_machine():
    """Factory fixture: returns a function that creates a fresh machine.

    UART output is captured in ``machine.uart_out`` and diagnostics in
    ``machine.diag`` so tests can assert on both.
    """
    def _make(mem_bytes: int = RAM_SIZE) -> Machine:
        tx = io.BytesIO()
        diag = io.StringIO()
        machine = build_machine(
            mem_bytes=mem_bytes,
            tx_stream=tx,
            console=Console(file=diag, width=200),
        )
        machine.uart_out = tx  # type: ignore[attr-defined]
        machine.diag = diag  # type: ignore[attr-defined]
        return machine
    return _make


@pytest.fixture
def make_cpu(make_machine):
    """Factory fixture: returns a function that creates a fresh CPU at pc=0."""
    def _make() -> CPU:
        return make_machine().cpu
    return _make


@pytest.fixture
def exec_instruction(make_cpu):
    """Write a 32-bit instruction word at the current PC, step once, return the cpu."""
    def _exec(cpu: CPU | None = None, word: int = 0) -> CPU:
        if cpu is None:
            cpu = make_cpu()
        cpu.memory.write32(cpu.pc, word)
        cpu.step()
        return cpu
    return _exec


@pytest.fixture
def set_regs():
    """Set named registers (e.g., set_regs(cpu, x1=5, x2=10))."""
    def _set(cpu: CPU, **kwargs: int) -> None:
        for name, value in kwargs.items():
            if not name.startswith("x"):
                raise ValueError(f"Register name must start with 'x': {name}")
            index = int(name[1:])
            cpu.registers.write(index, value)
    return _set
