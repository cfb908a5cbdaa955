"""Machine assembly: wires RAM, the UART and the CPU onto one bus."""

from __future__ import annotations

from dataclasses import dataclass
from typing import BinaryIO

from rich.console import Console

from .cpu.cpu import CPU
from .cpu.encode import to_bytes
from .devices.uart import UART, UART_BASE, UART_SIZE
from .loader.elf import load_elf
from .loader.flat import load_flat
from .memory.bus import MemoryBus
from .memory.ram import RAM

DEFAULT_MEM_MIB = 16
MIB = 1024 * 1024


@dataclass
class Machine:
    """One emulated system: RAM at 0, the UART window, and the CPU driving them."""

    cpu: CPU
    bus: MemoryBus
    ram: RAM
    uart: UART

    def load_elf(self, path: str) -> int:
        """Load an ELF image and point the PC at its entry. Returns the entry."""
        entry = load_elf(path, self.ram)
        self.cpu.pc = entry
        return entry

    def load_flat(self, path: str, base: int = 0) -> None:
        """Load a raw image at `base` and reset the PC to 0.

        The PC is not moved to `base`; a nonzero `base` needs an explicit
        `cpu.pc` assignment (the CLI's `--pc`) to start in the image.
        """
        load_flat(path, self.ram, base)
        self.cpu.pc = 0

    def load_words(self, words: list[int], base: int = 0) -> None:
        """Place instruction words in RAM (little-endian) at `base`."""
        self.ram.load_segment(base, to_bytes(words))


def build_machine(
    mem_mib: int = DEFAULT_MEM_MIB,
    tx_stream: BinaryIO | None = None,
    console: Console | None = None,
    trace: bool = False,
    mem_bytes: int | None = None,
) -> Machine:
    """Create a fresh machine with zeroed RAM and registers.

    Args:
        mem_mib: RAM size in MiB.
        tx_stream: Where UART output goes (default: stdout).
        console: Diagnostic console for the CPU (default: stderr).
        trace: Print one line per executed instruction.
        mem_bytes: Exact RAM size in bytes; overrides ``mem_mib``.

    Raises:
        ValueError: If the RAM size is not positive or RAM would overlap
            the UART register window.
    """
    size = mem_bytes if mem_bytes is not None else mem_mib * MIB
    if size <= 0:
        raise ValueError(f"RAM size must be positive, got {size}")
    if size > UART_BASE:
        raise ValueError(
            f"RAM [0x00000000, 0x{size:08X}) overlaps the UART window at 0x{UART_BASE:08X}"
        )

    bus = MemoryBus()
    ram = RAM(size)
    uart = UART(tx_stream=tx_stream)
    bus.register(UART_BASE, UART_SIZE, uart)
    bus.register(0, size, ram)

    cpu = CPU(bus, console=console, trace=trace)
    return Machine(cpu=cpu, bus=bus, ram=ram, uart=uart)
