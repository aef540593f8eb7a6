"""CLI helper tests."""

import io
import logging
from pathlib import Path

import pytest

from chip8emu import app
from chip8emu.chip8.computer import Chip8Computer
from chip8emu.config import Chip8Config, parse_seed
from chip8emu.log import TRACE, configure_logging


def _parse(argv):
    return app._build_argument_parser().parse_args(argv)


def test_config_from_args(monkeypatch) -> None:
    monkeypatch.delenv(Chip8Computer.ENV_ROM_PATH, raising=False)
    config = Chip8Config.from_args(_parse(["-r", "pong.ch8", "--seed", "0x10", "-d", "--step"]))

    assert config.rom_path == Path("pong.ch8")
    assert config.seed == 16
    assert config.verbosity == "debug"
    assert config.single_step is True
    assert config.cpu_hz == 500
    assert config.scale == 10


def test_config_uses_environment_rom(monkeypatch) -> None:
    monkeypatch.setenv(Chip8Computer.ENV_ROM_PATH, "/tmp/env.ch8")
    config = Chip8Config.from_args(_parse(["-t"]))
    assert config.rom_path == Path("/tmp/env.ch8")
    assert config.verbosity == "trace"


def test_config_rejects_missing_rom(monkeypatch) -> None:
    monkeypatch.delenv(Chip8Computer.ENV_ROM_PATH, raising=False)
    with pytest.raises(ValueError):
        Chip8Config.from_args(_parse([]))


def test_config_rejects_non_positive_values() -> None:
    with pytest.raises(ValueError):
        Chip8Config.from_args(_parse(["-r", "a.ch8", "--scale", "0"]))
    with pytest.raises(ValueError):
        Chip8Config.from_args(_parse(["-r", "a.ch8", "--cpu-hz", "-5"]))


def test_verbosity_flags_are_exclusive() -> None:
    with pytest.raises(SystemExit) as info:
        _parse(["-r", "a.ch8", "-q", "-d"])
    assert info.value.code == 2


def test_parse_seed_accepts_hex_and_decimal() -> None:
    assert parse_seed("42") == 42
    assert parse_seed("0xFF") == 255


def test_invalid_seed_is_a_usage_error() -> None:
    with pytest.raises(SystemExit) as info:
        _parse(["-r", "a.ch8", "--seed", "abc"])
    assert info.value.code == 2


def test_main_without_rom_is_a_usage_error(monkeypatch) -> None:
    monkeypatch.delenv(Chip8Computer.ENV_ROM_PATH, raising=False)
    with pytest.raises(SystemExit) as info:
        app.main([])
    assert info.value.code == 2


def test_main_reports_missing_rom_file(tmp_path: Path) -> None:
    assert app.main(["-r", str(tmp_path / "missing.ch8"), "-q"]) == 1


def test_main_reports_oversized_rom(tmp_path: Path) -> None:
    rom = tmp_path / "big.ch8"
    rom.write_bytes(bytes(4000))
    assert app.main(["-r", str(rom), "-q"]) == 1


def test_handle_key_event_maps_cosmac_layout() -> None:
    computer = Chip8Computer()

    assert app._handle_key_event(computer, ord("v"), True) is True
    assert computer.hardware.keyboard.is_pressed(0xF)
    assert app._handle_key_event(computer, ord("v"), False) is True
    assert not computer.hardware.keyboard.is_pressed(0xF)
    assert app._handle_key_event(computer, ord("m"), True) is False


def test_key_map_covers_all_sixteen_keys() -> None:
    assert sorted(app.KEY_MAP.values()) == list(range(16))


def test_configure_logging_levels() -> None:
    stream = io.StringIO()
    assert configure_logging("quiet", stream=stream) == logging.WARNING
    assert configure_logging("trace", stream=stream) == TRACE

    logging.getLogger("chip8emu.cpu.cpu").log(TRACE, "200: 00E0  CLS")
    assert "[TRACE] chip8emu.cpu.cpu: 200: 00E0  CLS" in stream.getvalue()

    with pytest.raises(ValueError):
        configure_logging("loud")
    configure_logging("quiet", stream=stream)
