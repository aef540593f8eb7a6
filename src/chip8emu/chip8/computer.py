"""CHIP-8 system wiring: one independent machine per instance."""

from __future__ import annotations

import logging
import os
from pathlib import Path
import time
from typing import Callable, List, Optional

from chip8emu.chip8.display import Chip8Display
from chip8emu.chip8.hardware import Chip8Hardware
from chip8emu.chip8.keyboard import Chip8Keypad
from chip8emu.chip8.rng import DEFAULT_SEED, SeededRandom
from chip8emu.chip8.sound import Chip8Beeper
from chip8emu.chip8.timers import TimerPair
from chip8emu.cpu.cpu import Chip8CPU, RegisterSnapshot, StepResult
from chip8emu.memory import Memory
from chip8emu.system.computer import DEFAULT_CPU_FREQUENCY, Computer

logger = logging.getLogger(__name__)


class Chip8Computer(Computer):
    """Concrete CHIP-8 machine.

    Owns memory, registers, stack, timers, framebuffer and RNG for the
    lifetime of a run. The keypad is the only part written from outside.
    """

    ENV_ROM_PATH = "CHIP8EMU_ROM"

    def __init__(
        self,
        *,
        seed: int = DEFAULT_SEED,
        cpu_clock_frequency: float = DEFAULT_CPU_FREQUENCY,
        enable_audio: bool = False,
        clock: Callable[[], int] = time.perf_counter_ns,
    ) -> None:
        hardware = Chip8Hardware(
            memory=Memory(),
            display=Chip8Display(),
            keyboard=Chip8Keypad(),
            timers=TimerPair(),
            beeper=Chip8Beeper(enable_audio=enable_audio),
            rng=SeededRandom(seed),
        )
        super().__init__(hardware, cpu_clock_frequency=cpu_clock_frequency, clock=clock)

        self.seed = seed
        self.rom_path: Optional[Path] = None
        self._rom_image: bytes = b""
        self.cpu_core = Chip8CPU(hardware)
        self.set_cpu(self.cpu_core)

    @property
    def memory(self) -> Memory:
        return self.hardware.memory

    @property
    def display(self) -> Chip8Display:
        return self.hardware.display

    # ------------------------------------------------------------------
    # ROM loading
    # ------------------------------------------------------------------
    def load_rom(self, data: bytes) -> int:
        """Copy a ROM image to 0x200 and restart execution there."""

        size = self.memory.load_program(data)
        self._rom_image = bytes(data)
        self.cpu_core.reset()
        logger.info("ROM loaded (%d bytes)", size)
        return size

    def load_rom_file(self, path: str | os.PathLike[str]) -> int:
        rom_path = Path(path)
        data = rom_path.read_bytes()
        size = self.load_rom(data)
        self.rom_path = rom_path
        return size

    @classmethod
    def resolve_rom_path(cls, rom_path: str | os.PathLike[str] | None) -> Optional[Path]:
        if rom_path:
            return Path(rom_path)
        env_path = os.environ.get(cls.ENV_ROM_PATH)
        if env_path:
            return Path(env_path)
        return None

    # ------------------------------------------------------------------
    # Execution entry points
    # ------------------------------------------------------------------
    def step(self) -> StepResult:
        return self.cpu_core.step()

    def _reset_hardware(self) -> None:
        super()._reset_hardware()
        hardware = self.hardware
        hardware.memory.clear()
        if self._rom_image:
            hardware.memory.load_program(self._rom_image)
        hardware.display.clear()
        hardware.keyboard.clear()
        hardware.beeper.stop()
        logger.debug("machine reset")

    # ------------------------------------------------------------------
    # Observable state and input surface
    # ------------------------------------------------------------------
    def framebuffer(self) -> List[List[int]]:
        return self.display.snapshot()

    @property
    def sound_active(self) -> bool:
        return self.hardware.timers.sound_active

    def register_snapshot(self) -> RegisterSnapshot:
        return self.cpu_core.snapshot()

    def press_key(self, key: int) -> None:
        self.hardware.keyboard.press(key)

    def release_key(self, key: int) -> None:
        self.hardware.keyboard.release(key)
