"""emurv: a small RV32I emulator with a memory-mapped serial console."""

__version__ = "0.1.0"
