"""CHIP-8 emulator front end (pygame window, keyboard and beeper)."""

from __future__ import annotations

import argparse
import logging
from typing import Dict, Iterable, Optional

from chip8emu.chip8.computer import Chip8Computer
from chip8emu.chip8.rng import DEFAULT_SEED
from chip8emu.config import Chip8Config, add_verbosity_arguments, parse_seed
from chip8emu.errors import Chip8Error
from chip8emu.log import configure_logging
from chip8emu.system.computer import DEFAULT_CPU_FREQUENCY

logger = logging.getLogger(__name__)

BASE_CAPTION = "CHIP-8 Emulator"

# Host keys (pygame key codes are the lowercase ASCII values) laid out like
# the COSMAC VIP hex keypad:
#   1 2 3 C      1 2 3 4
#   4 5 6 D  ->  q w e r
#   7 8 9 E      a s d f
#   A 0 B F      z x c v
KEY_MAP: Dict[int, int] = {
    ord("1"): 0x1,
    ord("2"): 0x2,
    ord("3"): 0x3,
    ord("4"): 0xC,
    ord("q"): 0x4,
    ord("w"): 0x5,
    ord("e"): 0x6,
    ord("r"): 0xD,
    ord("a"): 0x7,
    ord("s"): 0x8,
    ord("d"): 0x9,
    ord("f"): 0xE,
    ord("z"): 0xA,
    ord("x"): 0x0,
    ord("c"): 0xB,
    ord("v"): 0xF,
}

STEP_KEY = ord("n")
GO_KEY = ord("g")
PAUSE_KEY = ord("p")


def _handle_key_event(computer: Chip8Computer, key: int, pressed: bool) -> bool:
    mapping = KEY_MAP.get(key)
    if mapping is None:
        return False
    if pressed:
        computer.press_key(mapping)
    else:
        computer.release_key(mapping)
    return True


def _log_step(computer: Chip8Computer) -> None:
    logger.info("%s", computer.register_snapshot().format())
    logger.info("[n] next, [g] go, [esc] quit")


def _create_computer(config: Chip8Config) -> Chip8Computer:
    computer = Chip8Computer(
        seed=config.seed,
        cpu_clock_frequency=config.cpu_hz,
        enable_audio=config.audio,
    )
    computer.load_rom_file(config.rom_path)
    computer.single_step = config.single_step
    return computer


def _pygame_loop(computer: Chip8Computer, config: Chip8Config) -> None:
    import pygame  # type: ignore

    display = computer.display
    pygame.init()
    screen = pygame.display.set_mode((display.WIDTH * config.scale, display.HEIGHT * config.scale))
    pygame.display.set_caption(f"{BASE_CAPTION} | {config.rom_path.name}")
    clock = pygame.time.Clock()

    computer.power_on()
    stepped_pc: Optional[int] = None
    running = True
    try:
        while running:
            for event in pygame.event.get():
                if event.type == pygame.QUIT:
                    running = False
                    continue
                if event.type == pygame.KEYDOWN:
                    if event.key == pygame.K_ESCAPE:
                        running = False
                        continue
                    if _handle_key_event(computer, event.key, True):
                        continue
                    if event.key == PAUSE_KEY and not computer.single_step:
                        computer.single_step = True
                        logger.info("single-step mode on")
                    elif computer.single_step and event.key == STEP_KEY:
                        computer.step_instruction()
                        stepped_pc = None
                    elif computer.single_step and event.key == GO_KEY:
                        computer.single_step = False
                        computer.resume()
                        logger.info("single-step mode off")
                elif event.type == pygame.KEYUP:
                    _handle_key_event(computer, event.key, False)

            computer.sync()
            if computer.single_step and not computer.running:
                pc = computer.cpu_core.registers.program_counter
                if pc != stepped_pc:
                    stepped_pc = pc
                    _log_step(computer)

            if display.consume_dirty():
                screen.blit(display.render_pygame_surface(config.scale), (0, 0))
                pygame.display.flip()
            clock.tick(config.fps)
    finally:
        computer.hardware.beeper.stop()
        pygame.quit()


def _build_argument_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="chip8emu", description="CHIP-8 emulator")
    parser.add_argument(
        "-r",
        "--rom",
        metavar="FILE",
        help=f"Path to CHIP-8 ROM file to run (defaults to ${Chip8Computer.ENV_ROM_PATH})",
    )
    add_verbosity_arguments(parser)
    parser.add_argument("--step", action="store_true", help="Pause after every instruction ([n] next, [g] go)")
    parser.add_argument(
        "--seed",
        type=parse_seed,
        default=DEFAULT_SEED,
        help=f"Seed for the RND instruction (default: {DEFAULT_SEED})",
    )
    parser.add_argument("--scale", type=int, default=10, help="Integer scaling factor for display (default: 10)")
    parser.add_argument(
        "--cpu-hz",
        type=int,
        default=int(DEFAULT_CPU_FREQUENCY),
        help=f"Instructions per second (default: {int(DEFAULT_CPU_FREQUENCY)})",
    )
    parser.add_argument("--fps", type=int, default=60, help="Target frames per second for the window loop")
    parser.add_argument("--audio", action="store_true", help="Enable the beeper (requires pygame mixer)")
    return parser


def main(argv: Iterable[str] | None = None) -> int:
    parser = _build_argument_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    try:
        config = Chip8Config.from_args(args)
    except ValueError as exc:
        parser.error(str(exc))
    configure_logging(config.verbosity)

    try:
        computer = _create_computer(config)
    except OSError as exc:
        logger.error("failed to load ROM: %s", exc)
        return 1
    except Chip8Error as exc:
        logger.error("%s", exc)
        return 1

    try:
        _pygame_loop(computer, config)
    except Chip8Error as exc:
        logger.error("%s", exc)
        logger.debug("state at halt: %s", computer.register_snapshot().format())
        return 1
    except KeyboardInterrupt:
        logger.info("interrupted")
    except RuntimeError as exc:
        logger.error("%s", exc)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
