"""Tests for Chip8Display drawing and rendering."""

import pytest

from chip8emu.chip8.display import Chip8Display


def test_new_display_is_blank() -> None:
    display = Chip8Display()
    assert sum(map(sum, display.pixels)) == 0
    assert len(display.snapshot()) == 32
    assert all(len(row) == 64 for row in display.snapshot())


def test_draw_sprite_xor_and_collision() -> None:
    display = Chip8Display()

    assert display.draw_sprite(10, 5, [0b10100000]) is False
    assert display.pixels[5][10] == 1
    assert display.pixels[5][11] == 0
    assert display.pixels[5][12] == 1

    assert display.draw_sprite(11, 5, [0b11000000]) is True
    assert display.pixels[5][11] == 1
    assert display.pixels[5][12] == 0


def test_empty_sprite_marks_dirty_only() -> None:
    display = Chip8Display()
    display.consume_dirty()

    assert display.draw_sprite(0, 0, []) is False
    assert sum(map(sum, display.pixels)) == 0
    assert display.consume_dirty() is True
    assert display.consume_dirty() is False


def test_start_coordinates_wrap() -> None:
    display = Chip8Display()
    display.draw_sprite(64 + 3, 32 + 2, [0x80])
    assert display.pixels[2][3] == 1


def test_snapshot_is_a_copy() -> None:
    display = Chip8Display()
    snapshot = display.snapshot()
    snapshot[0][0] = 1
    assert display.pixels[0][0] == 0


def test_dimensions_are_fixed() -> None:
    assert Chip8Display.WIDTH == 64
    assert Chip8Display.HEIGHT == 32
    with pytest.raises(TypeError):
        Chip8Display(WIDTH=10)


def test_render_text() -> None:
    display = Chip8Display()
    display.draw_sprite(0, 0, [0xC0])

    first_line = display.render_text().splitlines()[0]
    assert first_line.startswith("##..")
    assert len(first_line) == 64


def test_clear_blanks_every_pixel() -> None:
    display = Chip8Display()
    display.draw_sprite(0, 0, [0xFF] * 15)
    display.clear()
    assert sum(map(sum, display.pixels)) == 0
