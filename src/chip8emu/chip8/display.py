"""CHIP-8 monochrome framebuffer."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import ClassVar, List, Sequence

WIDTH = 64
HEIGHT = 32


@dataclass
class Chip8Display:
    WIDTH: ClassVar[int] = WIDTH
    HEIGHT: ClassVar[int] = HEIGHT

    foreground: int = 0xFFFFFF
    background: int = 0x000000
    pixels: List[List[int]] = field(default_factory=lambda: [[0] * WIDTH for _ in range(HEIGHT)])
    dirty: bool = False

    # ------------------------------------------------------------------
    # Mutation (CLS / DRW only)
    # ------------------------------------------------------------------
    def clear(self) -> None:
        for row in self.pixels:
            row[:] = [0] * self.WIDTH
        self.dirty = True

    def draw_sprite(self, x: int, y: int, sprite: Sequence[int]) -> bool:
        """XOR ``sprite`` rows at ``(x, y)`` and report whether a lit pixel was erased.

        Every pixel wraps independently around both screen edges.
        """

        collision = False
        for row_offset, line in enumerate(sprite):
            py = (y + row_offset) % self.HEIGHT
            row = self.pixels[py]
            for bit in range(8):
                if not (line >> (7 - bit)) & 0x01:
                    continue
                px = (x + bit) % self.WIDTH
                if row[px]:
                    collision = True
                row[px] ^= 1
        self.dirty = True
        return collision

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------
    def snapshot(self) -> List[List[int]]:
        return [list(row) for row in self.pixels]

    def consume_dirty(self) -> bool:
        dirty = self.dirty
        self.dirty = False
        return dirty

    def render_text(self, on: str = "#", off: str = ".") -> str:
        return "\n".join("".join(on if value else off for value in row) for row in self.pixels)

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------
    def render_pygame_surface(self, scaling: int = 1):
        """Render the framebuffer into a pygame Surface.

        Parameters
        ----------
        scaling:
            Integer scale factor applied to both axes.

        Returns
        -------
        pygame.Surface
            RGB surface representing the current screen.

        Raises
        ------
        RuntimeError
            If pygame is not available.
        """

        if scaling <= 0:
            raise ValueError("scaling factor must be positive")

        try:
            import pygame  # type: ignore
        except Exception as exc:  # pragma: no cover - optional dependency
            raise RuntimeError("pygame is required for render_pygame_surface") from exc

        surface = pygame.Surface((self.WIDTH * scaling, self.HEIGHT * scaling))
        surface.fill(self.background)
        surface.lock()
        try:
            for y, row in enumerate(self.pixels):
                for x, value in enumerate(row):
                    if value:
                        surface.fill(self.foreground, (x * scaling, y * scaling, scaling, scaling))
        finally:
            surface.unlock()
        return surface
