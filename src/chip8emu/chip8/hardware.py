"""CHIP-8 hardware bundle shared by the CPU and the scheduler."""

from __future__ import annotations

from dataclasses import dataclass

from chip8emu.chip8.display import Chip8Display
from chip8emu.chip8.keyboard import Chip8Keypad
from chip8emu.chip8.rng import SeededRandom
from chip8emu.chip8.sound import Chip8Beeper
from chip8emu.chip8.timers import TimerPair
from chip8emu.memory import Memory


@dataclass
class Chip8Hardware:
    memory: Memory
    display: Chip8Display
    keyboard: Chip8Keypad
    timers: TimerPair
    beeper: Chip8Beeper
    rng: SeededRandom
