"""Fatal error conditions raised by the CHIP-8 core."""

from __future__ import annotations

from typing import Optional


class Chip8Error(RuntimeError):
    """Base class for interpreter errors that halt execution."""


class InvalidOpcode(Chip8Error):
    def __init__(self, word: int, pc: int) -> None:
        self.word = word & 0xFFFF
        self.pc = pc & 0xFFFF
        super().__init__(f"invalid opcode {self.word:04X} at PC={self.pc:03X}")


class OutOfBounds(Chip8Error):
    def __init__(self, address: int, pc: Optional[int] = None) -> None:
        self.address = address
        self.pc = pc
        message = f"memory access out of bounds: address={address:04X}"
        if pc is not None:
            message += f" PC={pc:03X}"
        super().__init__(message)


class StackOverflow(Chip8Error):
    def __init__(self, depth: int, pc: int) -> None:
        self.depth = depth
        self.pc = pc & 0xFFFF
        super().__init__(f"call stack overflow (depth={depth}) at PC={self.pc:03X}")


class StackUnderflow(Chip8Error):
    def __init__(self, depth: int, pc: int) -> None:
        self.depth = depth
        self.pc = pc & 0xFFFF
        super().__init__(f"return with empty call stack (depth={depth}) at PC={self.pc:03X}")


class RomTooLarge(Chip8Error):
    def __init__(self, size: int, capacity: int) -> None:
        self.size = size
        self.capacity = capacity
        super().__init__(f"ROM is {size} bytes but only {capacity} bytes are available")


__all__ = [
    "Chip8Error",
    "InvalidOpcode",
    "OutOfBounds",
    "StackOverflow",
    "StackUnderflow",
    "RomTooLarge",
]
