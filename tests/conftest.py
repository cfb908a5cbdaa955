"""Fixtures shared across test packages: synthetic ELF32 images."""

import struct

import pytest

_ELF_MAGIC = b"\x7fELF"
_ELFCLASS32 = 1
_ELFDATA2LSB = 1
_EM_RISCV = 0xF3
_PT_LOAD = 1

_ELF32_EHDR_SIZE = 52
_ELF32_PHDR_SIZE = 32


def build_elf_header(
    *,
    magic: bytes = _ELF_MAGIC,
    ei_class: int = _ELFCLASS32,
    ei_data: int = _ELFDATA2LSB,
    e_machine: int = _EM_RISCV,
    e_entry: int = 0,
    e_phoff: int = _ELF32_EHDR_SIZE,
    e_phentsize: int = _ELF32_PHDR_SIZE,
    e_phnum: int = 0,
) -> bytes:
    """Build a minimal ELF32 header."""
    e_ident = bytearray(16)
    e_ident[0:4] = magic
    e_ident[4] = ei_class
    e_ident[5] = ei_data
    e_ident[6] = 1  # EV_CURRENT

    rest = struct.pack(
        "<HHIIIIIHHHHHH",
        2,            # e_type: ET_EXEC
        e_machine,
        1,            # e_version
        e_entry,
        e_phoff,
        0,            # e_shoff
        0,            # e_flags
        _ELF32_EHDR_SIZE,
        e_phentsize,
        e_phnum,
        0, 0, 0,      # no section headers
    )
    return bytes(e_ident) + rest


def build_elf(segments: list[dict], entry: int = 0) -> bytes:
    """Build a complete ELF image with the given segments.

    Each segment dict has: data (bytes), and optionally vaddr (default 0),
    memsz (default len(data)) and p_type (default PT_LOAD).
    """
    e_phnum = len(segments)
    current_offset = _ELF32_EHDR_SIZE + e_phnum * _ELF32_PHDR_SIZE

    phdrs = bytearray()
    seg_data = bytearray()
    for seg in segments:
        seg_bytes = seg.get("data", b"")
        phdrs += struct.pack(
            "<IIIIIIII",
            seg.get("p_type", _PT_LOAD),
            current_offset,
            seg.get("vaddr", 0),
            seg.get("vaddr", 0),
            len(seg_bytes),
            seg.get("memsz", len(seg_bytes)),
            5,        # PF_R | PF_X
            0x1000,
        )
        seg_data += seg_bytes
        current_offset += len(seg_bytes)

    return build_elf_header(e_entry=entry, e_phnum=e_phnum) + bytes(phdrs) + bytes(seg_data)


@pytest.fixture
def elf_file(tmp_path):
    """Write an ELF image built from segments to a temp file, return its path."""
    def _write(segments: list[dict], entry: int = 0, name: str = "prog.elf") -> str:
        path = tmp_path / name
        path.write_bytes(build_elf(segments, entry=entry))
        return str(path)
    return _write


@pytest.fixture
def elf_builder():
    """The raw builders, for tests that need to corrupt headers."""
    return build_elf, build_elf_header
