"""Headless runner for CHIP-8 ROM debugging workflows."""

from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Sequence, Tuple

from chip8emu.chip8.computer import Chip8Computer
from chip8emu.chip8.rng import DEFAULT_SEED
from chip8emu.config import add_verbosity_arguments, parse_seed, verbosity_from_args
from chip8emu.errors import Chip8Error
from chip8emu.log import configure_logging
from chip8emu.memory import MEMORY_SIZE
from chip8emu.system.computer import DEFAULT_CPU_FREQUENCY

logger = logging.getLogger(__name__)

DEFAULT_MAX_CYCLES = 10_000
DEFAULT_HOLD_CYCLES = 30
ADDRESS_MASK = MEMORY_SIZE - 1


@dataclass(frozen=True)
class DumpRange:
    """Inclusive memory range used for dumping."""

    start: int
    end: int

    def iter_addresses(self) -> Iterable[int]:
        for address in range(self.start, self.end + 1):
            yield address & ADDRESS_MASK


@dataclass(frozen=True)
class KeyHold:
    """A keypad key held down over ``[press, release)`` instruction slots."""

    key: int
    press: int
    release: int


def _parse_hex(value: str) -> int:
    text = value.strip().lower()
    if text.startswith("0x"):
        text = text[2:]
    if not text:
        raise ValueError("empty hexadecimal value")
    result = int(text, 16)
    if not (0 <= result <= ADDRESS_MASK):
        raise ValueError("hex value out of range")
    return result


def _parse_range(spec: str) -> DumpRange:
    start_str, sep, end_str = spec.partition(":")
    if not sep:
        raise ValueError("range specification must contain ':'")
    start = _parse_hex(start_str)
    end = _parse_hex(end_str)
    if end < start:
        raise ValueError("range end must be >= start")
    return DumpRange(start, end)


def _parse_key_hold(spec: str) -> KeyHold:
    """Parse ``KEY@PRESS[:RELEASE]`` where KEY is a hex digit and cycles are decimal."""

    key_str, sep, timing = spec.partition("@")
    if not sep:
        raise ValueError("key specification must contain '@'")
    key = int(key_str.strip(), 16)
    if not (0 <= key <= 0xF):
        raise ValueError("key must be 0-F")
    press_str, sep, release_str = timing.partition(":")
    press = int(press_str)
    release = int(release_str) if sep else press + DEFAULT_HOLD_CYCLES
    if press < 0 or release <= press:
        raise ValueError("release cycle must be after press cycle")
    return KeyHold(key, press, release)


def _merge_ranges(ranges: Sequence[DumpRange]) -> List[DumpRange]:
    if not ranges:
        return [DumpRange(0x000, ADDRESS_MASK)]
    ordered = sorted(ranges, key=lambda r: (r.start, r.end))
    merged: List[DumpRange] = []
    for current in ordered:
        if not merged:
            merged.append(current)
            continue
        last = merged[-1]
        if current.start <= last.end + 1:
            merged[-1] = DumpRange(last.start, max(last.end, current.end))
        else:
            merged.append(current)
    return merged


def _format_hex_dump(memory, dump_ranges: Sequence[DumpRange]) -> str:
    lines: List[str] = []
    header = "ADDR " + " ".join(f"+{offset:X}" for offset in range(16))
    for index, dump_range in enumerate(dump_ranges):
        if index:
            lines.append("")
        lines.append(header)
        start_line = dump_range.start & ~0x0F
        end_line = dump_range.end | 0x0F
        for base in range(start_line, end_line + 1, 16):
            row = [f"{base & ADDRESS_MASK:03X}"]
            for offset in range(16):
                address = (base + offset) & ADDRESS_MASK
                value = memory.load8(address) & 0xFF
                row.append(f"{value:02X}")
            lines.append(" ".join(row))
    return "\n".join(lines)


def _write_text(text: str, target: Path | None) -> None:
    if target is None:
        print(text)
    else:
        target.write_text(text + "\n")


def _write_dump(computer: Chip8Computer, dump_ranges: Sequence[DumpRange], *, target: Path | None, fmt: str) -> None:
    if fmt == "display":
        _write_text(computer.display.render_text(), target)
        return
    if fmt == "registers":
        _write_text(computer.register_snapshot().format(), target)
        return

    memory = computer.memory
    ranges = _merge_ranges(dump_ranges)
    if fmt == "bin":
        data = bytearray()
        for dump_range in ranges:
            for address in dump_range.iter_addresses():
                data.append(memory.load8(address) & 0xFF)
        if target is None:
            sys.stdout.buffer.write(bytes(data))
            return
        target.write_bytes(bytes(data))
        return

    _write_text(_format_hex_dump(memory, ranges), target)


def _setup_computer(rom_path: Path, *, seed: int, cpu_hz: int) -> Chip8Computer:
    computer = Chip8Computer(seed=seed, cpu_clock_frequency=cpu_hz)
    computer.load_rom_file(rom_path)
    computer.power_on()
    return computer


def _apply_key_holds(computer: Chip8Computer, holds: Sequence[KeyHold]) -> None:
    clock = computer.clock_count
    for hold in holds:
        if clock == hold.press:
            computer.press_key(hold.key)
        elif clock == hold.release:
            computer.release_key(hold.key)


def _execute_program(
    computer: Chip8Computer,
    *,
    max_cycles: int,
    breakpoints: Sequence[int],
    key_holds: Sequence[KeyHold] = (),
) -> Tuple[int, bool]:
    """Run ``max_cycles`` slots in emulated time; stop early at a breakpoint."""

    break_set = {value & ADDRESS_MASK for value in breakpoints}
    executed = 0
    while executed < max_cycles:
        _apply_key_holds(computer, key_holds)
        if computer.tick(1) == 0:
            break
        executed += 1
        if computer.cpu_core.registers.program_counter in break_set:
            return executed, True
    return executed, False


def _build_argument_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="chip8-debug-runner",
        description="Headless CHIP-8 runner for ROM diagnostics.",
    )
    parser.add_argument(
        "--rom",
        type=str,
        default=None,
        help=f"CHIP-8 ROM image (defaults to ${Chip8Computer.ENV_ROM_PATH})",
    )
    parser.add_argument(
        "--cycles",
        type=int,
        default=DEFAULT_MAX_CYCLES,
        help=f"Instruction slots to execute (default: {DEFAULT_MAX_CYCLES})",
    )
    parser.add_argument(
        "--seed",
        type=parse_seed,
        default=DEFAULT_SEED,
        help=f"Seed for the RND instruction (default: {DEFAULT_SEED})",
    )
    parser.add_argument(
        "--cpu-hz",
        type=int,
        default=int(DEFAULT_CPU_FREQUENCY),
        help="Emulated instructions per second; sets how many slots pass per timer tick",
    )
    parser.add_argument(
        "--break-pc",
        action="append",
        default=[],
        help="Break when PC reaches the given hex address (repeatable)",
    )
    parser.add_argument(
        "--press",
        action="append",
        default=[],
        help="Hold keypad KEY from cycle PRESS to RELEASE, as KEY@PRESS[:RELEASE] (repeatable)",
    )
    parser.add_argument(
        "--dump",
        type=str,
        default=None,
        help="File path for the dump (defaults to stdout)",
    )
    parser.add_argument(
        "--dump-range",
        action="append",
        default=[],
        help="Memory range to dump in START:END hex form (inclusive). Repeat to add multiple ranges.",
    )
    parser.add_argument(
        "--dump-format",
        choices=("hex", "bin", "display", "registers"),
        default="hex",
        help="Dump format (hex table, raw binary, framebuffer text or register line)",
    )
    add_verbosity_arguments(parser)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_argument_parser()
    args = parser.parse_args(argv)

    breakpoints: List[int] = []
    for spec in args.break_pc:
        try:
            breakpoints.append(_parse_hex(spec))
        except ValueError as exc:
            parser.error(f"invalid breakpoint address '{spec}': {exc}")

    dump_ranges: List[DumpRange] = []
    for spec in args.dump_range:
        try:
            dump_ranges.append(_parse_range(spec))
        except ValueError as exc:
            parser.error(f"invalid dump range '{spec}': {exc}")

    key_holds: List[KeyHold] = []
    for spec in args.press:
        try:
            key_holds.append(_parse_key_hold(spec))
        except ValueError as exc:
            parser.error(f"invalid key press '{spec}': {exc}")

    if args.cpu_hz <= 0:
        parser.error("cpu-hz must be positive")

    rom_path = Chip8Computer.resolve_rom_path(args.rom)
    if rom_path is None:
        parser.error(f"a ROM path is required (--rom or ${Chip8Computer.ENV_ROM_PATH})")

    configure_logging(verbosity_from_args(args))

    try:
        computer = _setup_computer(rom_path, seed=args.seed, cpu_hz=args.cpu_hz)
    except (OSError, Chip8Error) as exc:
        logger.error("failed to load ROM: %s", exc)
        return 1

    try:
        executed, break_hit = _execute_program(
            computer,
            max_cycles=max(args.cycles, 0),
            breakpoints=breakpoints,
            key_holds=key_holds,
        )
    except Chip8Error as exc:
        logger.error("execution halted: %s", exc)
        logger.debug("state at halt: %s", computer.register_snapshot().format())
        return 1

    dump_target = Path(args.dump) if args.dump is not None else None
    _write_dump(computer, dump_ranges, target=dump_target, fmt=args.dump_format)

    if break_hit:
        logger.info("breakpoint hit at %03X after %d cycles", computer.cpu_core.registers.program_counter, executed)
    else:
        logger.info("executed %d cycles", executed)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
