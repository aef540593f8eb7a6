"""CHIP-8 hexadecimal keypad latch."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

KEY_COUNT = 16


@dataclass
class Chip8Keypad:
    """Sixteen key states plus a one-shot "just pressed" edge.

    The edge is recorded only on an up -> down transition and is consumed by
    the wait-for-key instruction.
    """

    _keys: List[bool] = field(default_factory=lambda: [False] * KEY_COUNT)
    _pending: Optional[int] = None

    @staticmethod
    def _check(key: int) -> None:
        if not (0 <= key < KEY_COUNT):
            raise ValueError("key out of range")

    def press(self, key: int) -> None:
        self._check(key)
        if not self._keys[key]:
            self._pending = key
        self._keys[key] = True

    def release(self, key: int) -> None:
        self._check(key)
        self._keys[key] = False

    def is_pressed(self, key: int) -> bool:
        self._check(key)
        return self._keys[key]

    def consume_press(self) -> Optional[int]:
        key = self._pending
        self._pending = None
        return key

    def get_key_states(self) -> List[bool]:
        return list(self._keys)

    def clear(self) -> None:
        self._keys = [False] * KEY_COUNT
        self._pending = None
