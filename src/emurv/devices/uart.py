"""UART device: minimal memory-mapped serial transmitter."""

import sys
from typing import BinaryIO

# Register window
UART_BASE = 0x10000000
UART_SIZE = 0x100

# Register offsets (relative to base)
_TX = 0x00      # Transmit (write-only)
_STATUS = 0x04  # Status (read-only)

_STATUS_READY = 0x01

UART_TX = UART_BASE + _TX
UART_STATUS = UART_BASE + _STATUS


class UART:
    """Write-only serial console exposed through a 256-byte register window.

    TX: a byte written at offset 0 appears on the host output stream
    immediately, in call order. STATUS (offset 4) always reads as ready.
    Every other offset reads as 0 and ignores writes.
    """

    def __init__(
        self,
        base: int = UART_BASE,
        tx_stream: BinaryIO | None = None,
    ) -> None:
        self._base = base
        self._tx = tx_stream if tx_stream is not None else sys.stdout.buffer
        self.transmitted = 0

    def transmit(self, value: int) -> None:
        """Send one byte to the TX output stream."""
        self._tx.write(bytes([value & 0xFF]))
        self._tx.flush()
        self.transmitted += 1

    def read8(self, addr: int) -> int:
        """Read a byte from a UART register. Only STATUS is non-zero."""
        if addr - self._base == _STATUS:
            return _STATUS_READY
        return 0

    def write8(self, addr: int, value: int) -> None:
        """Write a byte to a UART register. Only TX has an effect."""
        if addr - self._base == _TX:
            self.transmit(value)

    def write32(self, addr: int, value: int) -> None:
        """Write a word to the register window.

        A word store to TX sends only its low byte, so programs can print
        a character with SW as well as SB. Elsewhere the word is split into
        four byte writes like any other device.
        """
        if addr - self._base == _TX:
            self.transmit(value)
            return
        for i in range(4):
            self.write8(addr + i, (value >> (8 * i)) & 0xFF)
