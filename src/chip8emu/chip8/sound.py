"""Beeper driven by the sound timer flag with optional pygame playback."""

from __future__ import annotations

from array import array
from dataclasses import dataclass, field
import logging
from typing import List, Optional

logger = logging.getLogger(__name__)


@dataclass
class Chip8Beeper:
    """Square-wave tone that sounds while the sound timer is non-zero."""

    history: List[bool] = field(default_factory=list)
    sample_rate: int = 44100
    frequency: float = 440.0
    volume: float = 0.3
    enable_audio: bool = False

    def __post_init__(self) -> None:
        self._active: bool = False
        self._audio_initialized: bool = False
        self._channel = None
        self._sound = None

    @property
    def active(self) -> bool:
        return self._active

    def update(self, active: bool) -> None:
        """Receive the sound flag once per timer tick."""

        if active == self._active:
            return
        self._active = active
        self.history.append(active)
        if not self.enable_audio:
            return
        if not self._ensure_mixer():
            return
        if active:
            self._channel.play(self._sound, loops=-1)
            self._channel.set_volume(self.volume)
        else:
            self._channel.stop()

    # ------------------------------------------------------------------
    # Audio control helpers
    # ------------------------------------------------------------------

    def _ensure_mixer(self) -> bool:
        if not self.enable_audio:
            return False
        if self._audio_initialized:
            return True
        try:
            import pygame  # type: ignore

            if not pygame.mixer.get_init():
                pygame.mixer.init(frequency=self.sample_rate, size=-16, channels=1)
            self._channel = pygame.mixer.Channel(0)
            self._sound = pygame.mixer.Sound(buffer=self._render_period())
            self._audio_initialized = True
        except Exception as exc:
            logger.warning("audio output disabled: %s", exc)
            self.enable_audio = False
            self._channel = None
            self._sound = None
            self._audio_initialized = False
        return self._audio_initialized

    def _render_period(self) -> Optional[array]:
        period = max(2, int(self.sample_rate / self.frequency))
        amplitude = int(self.volume * 32767)
        half = period // 2
        buffer = array("h", [amplitude] * half + [-amplitude] * (period - half))
        return buffer

    def stop(self) -> None:
        if self._active:
            self.update(False)
