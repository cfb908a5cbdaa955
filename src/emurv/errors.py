"""Exceptions raised by the emulator core and the program loader."""


class AddressFault(MemoryError):
    """Access to an address outside RAM and outside every device window."""

    def __init__(self, addr: int, message: str | None = None) -> None:
        self.addr = addr & 0xFFFFFFFF
        super().__init__(message or f"Access out of bounds: 0x{self.addr:08X}")


class LoadError(Exception):
    """A program image could not be read, parsed, or placed in RAM."""
