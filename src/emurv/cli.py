"""Command-line interface for the emurv emulator."""

import argparse
import sys

from rich.console import Console

from .cpu.cpu import DEFAULT_MAX_STEPS, StepResult
from .cpu.registers import format_registers
from .errors import LoadError
from .machine import DEFAULT_MEM_MIB, build_machine


def _parse_addr(value: str) -> int:
    """Parse a --pc argument: decimal or 0x-prefixed hex, 32-bit."""
    try:
        addr = int(value, 0)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid address '{value}'") from None
    if not 0 <= addr <= 0xFFFFFFFF:
        raise argparse.ArgumentTypeError(f"address '{value}' is not a 32-bit value")
    return addr


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="emurv", description="Minimal RV32I emulator with a memory-mapped UART",
    )
    image = parser.add_mutually_exclusive_group(required=True)
    image.add_argument("--elf", metavar="PATH", help="ELF file to load")
    image.add_argument("--bin", metavar="PATH", help="Flat binary to load at 0x0")
    parser.add_argument(
        "--steps", type=int, default=DEFAULT_MAX_STEPS, help="Max steps",
    )
    parser.add_argument(
        "--trace", action="store_true", help="Print each instruction",
    )
    parser.add_argument(
        "--mem", type=int, default=DEFAULT_MEM_MIB, metavar="MIB",
        help=f"RAM MiB (default {DEFAULT_MEM_MIB})",
    )
    parser.add_argument(
        "--pc", type=_parse_addr, default=0, metavar="ADDR",
        help="Override start PC (0 keeps loader entry/reset)",
    )
    parser.add_argument(
        "--regs", action="store_true", help="Dump registers after the run",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    """Entry point for the emulator CLI. Returns the process exit code."""
    args = build_parser().parse_args(argv)
    console = Console(stderr=True, highlight=False)

    try:
        machine = build_machine(mem_mib=args.mem, console=console, trace=args.trace)
    except ValueError as e:
        console.print(f"Error: {e}", markup=False, soft_wrap=True)
        return 2

    cpu = machine.cpu
    try:
        if args.elf:
            machine.load_elf(args.elf)
        else:
            machine.load_flat(args.bin)
    except LoadError as e:
        kind = "ELF" if args.elf else "BIN"
        console.print(f"{kind} load error: {e}", markup=False, soft_wrap=True)
        return 1

    if args.pc != 0:
        cpu.pc = args.pc

    result = cpu.run(args.steps)

    if result is StepResult.CONTINUE:
        status = "step budget exhausted"
    elif result is StepResult.HALT:
        status = "halted"
    else:
        status = "faulted"
    sys.stdout.flush()
    console.print(
        f"{status} after {cpu.step_count} steps, pc=0x{cpu.pc:08X}, "
        f"{machine.uart.transmitted} bytes transmitted",
        markup=False, soft_wrap=True,
    )
    if args.regs:
        console.print(format_registers(cpu.registers), markup=False, soft_wrap=True)
    return 0


if __name__ == "__main__":
    sys.exit(main())
