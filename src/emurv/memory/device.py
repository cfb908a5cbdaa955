"""Interface every bus-attached peripheral and RAM region implements."""

from typing import Protocol, runtime_checkable


@runtime_checkable
class Device(Protocol):
    """Byte-addressable target of the MemoryBus.

    Only byte access is required. A device may also define ``read32``,
    ``write32`` or ``load_segment``; the bus detects them at registration
    and uses them for accesses that fit entirely inside the device.

    The bus passes absolute bus addresses, not offsets. A device raises
    ``AddressFault`` for any address it cannot serve.
    """

    def read8(self, addr: int) -> int:
        ...

    def write8(self, addr: int, value: int) -> None:
        ...
