"""Headless execution helpers for CHIP-8 programs."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence

from chip8emu.chip8.computer import Chip8Computer


@dataclass(frozen=True)
class KeyEvent:
    """Represents a keypad event scheduled by clock count."""

    clock: int
    key: int
    pressed: bool


def run_program(
    rom: bytes,
    *,
    total_cycles: int,
    events: Sequence[KeyEvent] | None = None,
    step_cycles: int = 16,
    seed: int = 0,
) -> tuple[Chip8Computer, List[int]]:
    """Execute a CHIP-8 ROM image in emulated time and capture PC history."""

    computer = Chip8Computer(seed=seed)
    computer.load_rom(rom)
    computer.power_on()

    pc_history: List[int] = []
    scheduled = sorted(events or [], key=lambda evt: evt.clock)
    index = 0

    target_clock = computer.clock_count + total_cycles
    while computer.clock_count < target_clock:
        while index < len(scheduled) and scheduled[index].clock <= computer.clock_count:
            evt = scheduled[index]
            if evt.pressed:
                computer.press_key(evt.key)
            else:
                computer.release_key(evt.key)
            index += 1

        computer.tick(min(step_cycles, target_clock - computer.clock_count))
        pc_history.append(computer.cpu_core.registers.program_counter)

    return computer, pc_history
