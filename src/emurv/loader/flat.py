"""Flat binary loader: copies a raw image verbatim into RAM."""

from __future__ import annotations

from typing import TYPE_CHECKING

from ..errors import AddressFault, LoadError

if TYPE_CHECKING:
    from ..memory.ram import RAM


def load_flat(path: str, ram: RAM, base: int = 0) -> None:
    """Load a raw binary into RAM starting at `base`.

    Args:
        path: Path to the binary file.
        ram: RAM instance to load into.
        base: Absolute address of the first byte.

    Raises:
        LoadError: If the file cannot be read or does not fit in RAM.
    """
    try:
        with open(path, "rb") as f:
            data = f.read()
    except OSError as e:
        raise LoadError(f"cannot read '{path}': {e}") from e

    try:
        ram.load_segment(base, data)
    except AddressFault as e:
        raise LoadError(
            f"{len(data)} bytes at 0x{base:08X} do not fit in RAM ({ram.size} bytes)"
        ) from e
