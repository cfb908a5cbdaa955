"""Program loaders: ELF32 images and flat binaries."""

from .elf import ElfProgram, ElfSegment, load_elf, parse_elf
from .flat import load_flat

__all__ = ["ElfProgram", "ElfSegment", "load_elf", "load_flat", "parse_elf"]
