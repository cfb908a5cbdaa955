"""Main memory: a zero-filled bytearray mapped at a fixed base address."""

from ..errors import AddressFault


class RAM:
    """Contiguous little-endian RAM of `size` bytes starting at `base`."""

    def __init__(self, size: int, base: int = 0) -> None:
        self.base = base
        self.size = size
        self._data = bytearray(size)

    def contains(self, addr: int, width: int = 1) -> bool:
        """True if every byte of [addr, addr+width) is backed by RAM."""
        offset = addr - self.base
        return 0 <= offset and offset + width <= self.size

    def _span(self, addr: int, width: int) -> slice:
        if not self.contains(addr, width):
            raise AddressFault(addr)
        start = addr - self.base
        return slice(start, start + width)

    def read8(self, addr: int) -> int:
        return self._data[self._span(addr, 1).start]

    def write8(self, addr: int, value: int) -> None:
        self._data[self._span(addr, 1).start] = value & 0xFF

    def read32(self, addr: int) -> int:
        return int.from_bytes(self._data[self._span(addr, 4)], "little")

    def write32(self, addr: int, value: int) -> None:
        self._data[self._span(addr, 4)] = (value & 0xFFFFFFFF).to_bytes(4, "little")

    def load_segment(self, addr: int, data: bytes) -> None:
        """Copy `data` into RAM at absolute address `addr`.

        The whole range is checked first; on AddressFault RAM is untouched.
        """
        self._data[self._span(addr, len(data))] = data
