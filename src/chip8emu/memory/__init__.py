"""Flat CHIP-8 address space with the interpreter-resident font."""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from chip8emu.errors import OutOfBounds, RomTooLarge

logger = logging.getLogger(__name__)

MEMORY_SIZE = 0x1000
FONT_START = 0x000
FONT_GLYPH_BYTES = 5
PROGRAM_START = 0x200
PROGRAM_CAPACITY = MEMORY_SIZE - PROGRAM_START

# 4x5 hexadecimal digit sprites 0-F.
FONT_SET = (
    0xF0, 0x90, 0x90, 0x90, 0xF0,  # 0
    0x20, 0x60, 0x20, 0x20, 0x70,  # 1
    0xF0, 0x10, 0xF0, 0x80, 0xF0,  # 2
    0xF0, 0x10, 0xF0, 0x10, 0xF0,  # 3
    0x90, 0x90, 0xF0, 0x10, 0x10,  # 4
    0xF0, 0x80, 0xF0, 0x10, 0xF0,  # 5
    0xF0, 0x80, 0xF0, 0x90, 0xF0,  # 6
    0xF0, 0x10, 0x20, 0x40, 0x40,  # 7
    0xF0, 0x90, 0xF0, 0x90, 0xF0,  # 8
    0xF0, 0x90, 0xF0, 0x10, 0xF0,  # 9
    0xF0, 0x90, 0xF0, 0x90, 0x90,  # A
    0xE0, 0x90, 0xE0, 0x90, 0xE0,  # B
    0xF0, 0x80, 0x80, 0x80, 0xF0,  # C
    0xE0, 0x90, 0x90, 0x90, 0xE0,  # D
    0xF0, 0x80, 0xF0, 0x80, 0xF0,  # E
    0xF0, 0x80, 0xF0, 0x80, 0x80,  # F
)


class Memory:
    """4 KiB RAM supporting 8/16-bit big-endian accesses.

    Unlike a mapped bus the CHIP-8 space does not wrap: any address outside
    ``0x000-0xFFF`` raises :class:`OutOfBounds`.
    """

    length: int
    data: bytearray

    def __init__(self, length: int = MEMORY_SIZE) -> None:
        if length <= PROGRAM_START:
            raise ValueError("invalid memory size")
        self.length = length
        self.data = bytearray(length)
        self.load_font()

    def _check(self, address: int, pc: Optional[int] = None) -> int:
        if not (0 <= address < self.length):
            raise OutOfBounds(address, pc)
        return address

    def load8(self, address: int, pc: Optional[int] = None) -> int:
        return self.data[self._check(address, pc)]

    def store8(self, address: int, value: int, pc: Optional[int] = None) -> None:
        self.data[self._check(address, pc)] = value & 0xFF

    def load16(self, address: int, pc: Optional[int] = None) -> int:
        hi = self.data[self._check(address, pc)]
        lo = self.data[self._check(address + 1, pc)]
        return (hi << 8) | lo

    def read_block(self, address: int, count: int, pc: Optional[int] = None) -> bytes:
        if count <= 0:
            return b""
        self._check(address, pc)
        self._check(address + count - 1, pc)
        return bytes(self.data[address:address + count])

    # ------------------------------------------------------------------
    # Image loading
    # ------------------------------------------------------------------
    def load_font(self) -> None:
        self.data[FONT_START:FONT_START + len(FONT_SET)] = bytes(FONT_SET)

    def load_program(self, data: Iterable[int]) -> int:
        """Copy a ROM image to ``PROGRAM_START`` and return its size."""

        payload = bytes(data)
        capacity = self.length - PROGRAM_START
        if len(payload) > capacity:
            raise RomTooLarge(len(payload), capacity)
        end = PROGRAM_START + len(payload)
        self.data[PROGRAM_START:end] = payload
        self.data[end:] = bytes(self.length - end)
        logger.debug("loaded %d program bytes at %03X-%03X", len(payload), PROGRAM_START, max(end - 1, PROGRAM_START))
        return len(payload)

    def clear(self) -> None:
        self.data[:] = bytes(self.length)
        self.load_font()


def font_address(digit: int) -> int:
    return FONT_START + (digit & 0x0F) * FONT_GLYPH_BYTES


__all__ = [
    "FONT_SET",
    "FONT_START",
    "FONT_GLYPH_BYTES",
    "MEMORY_SIZE",
    "PROGRAM_START",
    "PROGRAM_CAPACITY",
    "Memory",
    "font_address",
]
