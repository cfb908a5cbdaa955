"""Memory bus: routes address ranges to RAM and memory-mapped devices."""

from __future__ import annotations

from typing import Any

from ..errors import AddressFault
from .device import Device


class DeviceMapping:
    """A device registered on the bus with its address range and capabilities."""

    __slots__ = ("base", "size", "device",
                 "has_read32", "has_write32", "has_load_segment")

    def __init__(self, base: int, size: int, device: Device) -> None:
        self.base = base
        self.size = size
        self.device: Any = device
        self.has_read32: bool = hasattr(device, "read32")
        self.has_write32: bool = hasattr(device, "write32")
        self.has_load_segment: bool = hasattr(device, "load_segment")

    def covers(self, addr: int, width: int) -> bool:
        return addr >= self.base and addr + width <= self.base + self.size


class MemoryBus:
    """Routes memory accesses to registered devices by address range.

    Devices are registered with a base address and size. Byte accesses go
    to the device that owns the target address. Word accesses that fall
    entirely inside one device are delegated to its native ``read32`` /
    ``write32`` when it has one; every other word access is composed from
    four byte accesses at ``addr..addr+3`` in ascending order, so a word
    that straddles two regions is routed byte by byte and a store stops at
    the first byte that faults.

    Addresses past 0xFFFFFFFF are never wrapped back to 0; they are simply
    unmapped.
    """

    def __init__(self) -> None:
        self._devices: list[DeviceMapping] = []
        self._last_hit: DeviceMapping | None = None

    def register(self, base: int, size: int, device: Device) -> None:
        """Register a device at the given address range.

        Args:
            base: Start address of the device's address space.
            size: Number of bytes the device occupies.
            device: The device to register.

        Raises:
            ValueError: If the new range overlaps an existing device.
        """
        new_end = base + size
        for mapping in self._devices:
            existing_end = mapping.base + mapping.size
            if base < existing_end and new_end > mapping.base:
                raise ValueError(
                    f"Address range [0x{base:08X}, 0x{new_end:08X}) overlaps "
                    f"existing device at [0x{mapping.base:08X}, 0x{existing_end:08X})"
                )
        self._devices.append(DeviceMapping(base=base, size=size, device=device))

    def _find_device(self, addr: int, width: int) -> DeviceMapping | None:
        """Return the mapping spanning [addr, addr+width), or None.

        The last successful mapping is tried first; most traffic is RAM.
        """
        hit = self._last_hit
        if hit is not None and hit.covers(addr, width):
            return hit
        for mapping in self._devices:
            if mapping.covers(addr, width):
                self._last_hit = mapping
                return mapping
        return None

    def _require(self, addr: int) -> DeviceMapping:
        mapping = self._find_device(addr, 1)
        if mapping is None:
            raise AddressFault(addr, f"Unmapped address: 0x{addr:08X}")
        return mapping

    def read8(self, addr: int) -> int:
        return self._require(addr).device.read8(addr) & 0xFF

    def write8(self, addr: int, value: int) -> None:
        self._require(addr).device.write8(addr, value & 0xFF)

    def read32(self, addr: int) -> int:
        """Read an unsigned 32-bit word (little-endian).

        Raises:
            AddressFault: If any of the four bytes is unmapped.
        """
        mapping = self._find_device(addr, 4)
        if mapping is not None and mapping.has_read32:
            return mapping.device.read32(addr)
        value = 0
        for i in range(4):
            value |= self.read8(addr + i) << (8 * i)
        return value

    def write32(self, addr: int, value: int) -> None:
        """Write a 32-bit word (little-endian).

        Raises:
            AddressFault: At the first unmapped byte. Bytes below it have
                already been written.
        """
        mapping = self._find_device(addr, 4)
        if mapping is not None and mapping.has_write32:
            mapping.device.write32(addr, value)
            return
        for i in range(4):
            self.write8(addr + i, value >> (8 * i))

    def load_segment(self, addr: int, data: bytes) -> None:
        """Copy `data` into the single device that spans [addr, addr+len).

        Raises:
            AddressFault: If no single device covers the whole range.
        """
        mapping = self._find_device(addr, len(data))
        if mapping is None:
            raise AddressFault(addr, f"Segment does not fit: 0x{addr:08X} (+{len(data)})")
        if mapping.has_load_segment:
            mapping.device.load_segment(addr, data)
        else:
            for i, byte in enumerate(data):
                self.write8(addr + i, byte)
