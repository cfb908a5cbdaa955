"""ELF binary parser and loader: validates, extracts, and loads ELF32 RISC-V files."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import TYPE_CHECKING

from ..errors import LoadError

if TYPE_CHECKING:
    from ..memory.ram import RAM


# ELF constants
_ELF_MAGIC = b"\x7fELF"
_ELFCLASS32 = 1
_ELFDATA2LSB = 1  # Little-endian
_EM_RISCV = 0xF3
_PT_LOAD = 1

# e_ident, e_type, e_machine, e_version, e_entry, e_phoff, e_shoff, e_flags,
# e_ehsize, e_phentsize, e_phnum, e_shentsize, e_shnum, e_shstrndx
_EHDR = struct.Struct("<16sHHIIIIIHHHHHH")
# p_type, p_offset, p_vaddr, p_paddr, p_filesz, p_memsz, p_flags, p_align
_PHDR = struct.Struct("<IIIIIIII")


@dataclass(frozen=True)
class ElfSegment:
    """A PT_LOAD segment, identity-mapped at its virtual address."""

    vaddr: int
    data: bytes
    memsz: int

    def image(self) -> bytes:
        """Segment contents zero-padded to memsz (covers .bss)."""
        return self.data.ljust(self.memsz, b"\x00")


@dataclass(frozen=True)
class ElfProgram:
    entry: int
    segments: list[ElfSegment]


def _check_ident(ident: bytes, e_machine: int) -> None:
    if ident[:4] != _ELF_MAGIC:
        raise LoadError(f"Bad ELF magic: {ident[:4]!r} (expected {_ELF_MAGIC!r})")
    if ident[4] != _ELFCLASS32:
        raise LoadError(f"Unsupported ELF class: {ident[4]} (only ELF32 is loadable)")
    if ident[5] != _ELFDATA2LSB:
        raise LoadError(f"Unsupported ELF endianness: {ident[5]} (only little-endian)")
    if e_machine != _EM_RISCV:
        raise LoadError(
            f"Unsupported machine type: 0x{e_machine:04X} "
            f"(expected 0x{_EM_RISCV:04X} for RISC-V)"
        )


def _program_headers(data: bytes, phoff: int, phentsize: int, phnum: int):
    """Yield (index, header tuple) for every program header in the file."""
    for i in range(phnum):
        offset = phoff + i * phentsize
        if offset + _PHDR.size > len(data):
            raise LoadError(
                f"Program header {i} extends beyond file "
                f"(offset {offset}, file size {len(data)})"
            )
        yield i, _PHDR.unpack_from(data, offset)


def parse_elf(data: bytes) -> ElfProgram:
    """Parse a 32-bit little-endian RISC-V ELF image.

    Only PT_LOAD segments are kept. Addresses are truncated to 32 bits and
    physical addresses are ignored.

    Raises:
        LoadError: If the header is malformed or describes another target,
            or a segment points outside the file.
    """
    if len(data) < _EHDR.size:
        raise LoadError(
            f"File too small for ELF header: {len(data)} bytes "
            f"(need at least {_EHDR.size})"
        )
    (ident, _e_type, e_machine, _e_version, e_entry, e_phoff, _e_shoff,
     _e_flags, _e_ehsize, e_phentsize, e_phnum, *_shdr) = _EHDR.unpack_from(data)
    _check_ident(ident, e_machine)

    segments: list[ElfSegment] = []
    for i, (p_type, p_offset, p_vaddr, _paddr, p_filesz, p_memsz, _flags,
            _align) in _program_headers(data, e_phoff, e_phentsize, e_phnum):
        if p_type != _PT_LOAD:
            continue
        if p_offset + p_filesz > len(data):
            raise LoadError(
                f"Segment {i} data extends beyond file "
                f"(offset {p_offset}, filesz {p_filesz}, file size {len(data)})"
            )
        if p_memsz < p_filesz:
            raise LoadError(f"Segment {i} memsz {p_memsz} smaller than filesz {p_filesz}")
        segments.append(ElfSegment(
            vaddr=p_vaddr & 0xFFFFFFFF,
            data=bytes(data[p_offset:p_offset + p_filesz]),
            memsz=p_memsz,
        ))

    return ElfProgram(entry=e_entry & 0xFFFFFFFF, segments=segments)


def load_elf(path: str, ram: RAM) -> int:
    """Load an ELF binary into RAM.

    Reads the file at `path`, parses it as an ELF32 RISC-V binary, checks
    that every PT_LOAD segment fits in RAM, then copies them in. Segments
    with memsz > filesz are zero-padded (handles .bss). If any segment does
    not fit, RAM is left untouched.

    Args:
        path: Path to the ELF file.
        ram: RAM instance to load segments into.

    Returns:
        The entry point address from the ELF header.

    Raises:
        LoadError: If the file cannot be read, is not a valid ELF, or a
            segment falls outside RAM.
    """
    try:
        with open(path, "rb") as f:
            data = f.read()
    except OSError as e:
        raise LoadError(f"cannot read '{path}': {e}") from e

    prog = parse_elf(data)

    for seg in prog.segments:
        if not ram.contains(seg.vaddr, seg.memsz):
            raise LoadError(
                f"map segment @0x{seg.vaddr:x}: {seg.memsz} bytes do not fit in "
                f"RAM [0x{ram.base:08X}, 0x{ram.base + ram.size:08X})"
            )

    for seg in prog.segments:
        ram.load_segment(seg.vaddr, seg.image())

    return prog.entry
