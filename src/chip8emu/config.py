"""Run configuration shared by the front end and the headless runner."""

from __future__ import annotations

import argparse
from dataclasses import dataclass
from pathlib import Path

from chip8emu.chip8.computer import Chip8Computer
from chip8emu.chip8.rng import DEFAULT_SEED
from chip8emu.system.computer import DEFAULT_CPU_FREQUENCY


@dataclass(frozen=True)
class Chip8Config:
    rom_path: Path
    verbosity: str = "normal"
    single_step: bool = False
    seed: int = DEFAULT_SEED
    scale: int = 10
    cpu_hz: int = int(DEFAULT_CPU_FREQUENCY)
    fps: int = 60
    audio: bool = False

    @classmethod
    def from_args(cls, args: argparse.Namespace) -> "Chip8Config":
        rom_path = Chip8Computer.resolve_rom_path(args.rom)
        if rom_path is None:
            raise ValueError(f"a ROM path is required (--rom or ${Chip8Computer.ENV_ROM_PATH})")
        if args.scale <= 0:
            raise ValueError("scale must be positive")
        if args.fps <= 0:
            raise ValueError("fps must be positive")
        if args.cpu_hz <= 0:
            raise ValueError("cpu-hz must be positive")
        return cls(
            rom_path=rom_path,
            verbosity=verbosity_from_args(args),
            single_step=args.step,
            seed=args.seed,
            scale=args.scale,
            cpu_hz=args.cpu_hz,
            fps=args.fps,
            audio=args.audio,
        )


def add_verbosity_arguments(parser: argparse.ArgumentParser) -> None:
    group = parser.add_mutually_exclusive_group()
    group.add_argument("-q", "--quiet", action="store_true", help="Only log warnings and errors")
    group.add_argument("-d", "--debug", action="store_true", help="Enable debug level logging")
    group.add_argument("-t", "--trace", action="store_true", help="Log every executed instruction")


def verbosity_from_args(args: argparse.Namespace) -> str:
    if getattr(args, "trace", False):
        return "trace"
    if getattr(args, "debug", False):
        return "debug"
    if getattr(args, "quiet", False):
        return "quiet"
    return "normal"


def parse_seed(value: str) -> int:
    """Accept decimal or 0x-prefixed seeds."""

    try:
        return int(value, 0)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid seed '{value}'") from None


__all__ = [
    "Chip8Config",
    "add_verbosity_arguments",
    "verbosity_from_args",
    "parse_seed",
]
