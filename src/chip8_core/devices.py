"""Peripherals the CHIP-8 engine calls into.

The engine does not own a screen, a keyboard or a clock. It reaches them
through two narrow interfaces:

    Display: cls(), draw(x, y, sprite) -> collision
    Keypad:  is_pressed(key), wait_key() -> key or None

FrameBuffer and KeyState are in-memory implementations used by the CLI, the
demo and the tests. Timers are plain 8-bit counters; whoever hosts the engine
decrements them at 60 Hz by calling tick().
"""

import random
from collections import deque
from dataclasses import dataclass, field
from typing import Deque, List, Optional, Protocol, Set


SCREEN_W, SCREEN_H = 64, 32
SPRITE_WIDTH = 8
NUM_KEYS = 16


class Display(Protocol):
    def cls(self) -> None:
        ...

    def draw(self, x: int, y: int, sprite: bytes) -> int:
        ...


class Keypad(Protocol):
    def is_pressed(self, key: int) -> bool:
        ...

    def wait_key(self) -> Optional[int]:
        ...


class FrameBuffer:
    """Monochrome 64x32 display.

    Sprites are XOR-blitted, one byte per row, most significant bit leftmost.
    Coordinates and pixels wrap around the screen edges.
    """

    def __init__(self, width: int = SCREEN_W, height: int = SCREEN_H):
        self.width = width
        self.height = height
        self.pixels = bytearray(width * height)
        self.draw_count = 0

    def cls(self) -> None:
        self.pixels = bytearray(self.width * self.height)

    def draw(self, x: int, y: int, sprite: bytes) -> int:
        """XOR a sprite onto the screen.

        Args:
            x: Column of the sprite's left edge
            y: Row of the sprite's top edge
            sprite: One byte per row

        Returns:
            1 if any lit pixel was switched off, else 0
        """
        collision = 0
        x %= self.width
        y %= self.height
        for row, bits in enumerate(sprite):
            py = (y + row) % self.height
            for col in range(SPRITE_WIDTH):
                if not (bits >> (7 - col)) & 1:
                    continue
                idx = py * self.width + (x + col) % self.width
                if self.pixels[idx]:
                    collision = 1
                self.pixels[idx] ^= 1
        self.draw_count += 1
        return collision

    def pixel(self, x: int, y: int) -> int:
        return self.pixels[(y % self.height) * self.width + (x % self.width)]

    def render(self, on: str = "#", off: str = ".") -> str:
        """Text rendering, one line per row."""
        rows = []
        for y in range(self.height):
            row = self.pixels[y * self.width:(y + 1) * self.width]
            rows.append("".join(on if p else off for p in row))
        return "\n".join(rows)


class KeyState:
    """Hex keypad state fed by the host.

    press() marks a key as held and queues a press event; wait_key()
    consumes queued events in order and returns None when none are pending.
    """

    def __init__(self):
        self._held: Set[int] = set()
        self._events: Deque[int] = deque()

    @staticmethod
    def _check(key: int) -> int:
        if not 0 <= key < NUM_KEYS:
            raise ValueError(f"Invalid key: {key}")
        return key

    def press(self, key: int) -> None:
        self._held.add(self._check(key))
        self._events.append(key)

    def release(self, key: int) -> None:
        self._held.discard(self._check(key))

    def is_pressed(self, key: int) -> bool:
        return key in self._held

    def wait_key(self) -> Optional[int]:
        if self._events:
            return self._events.popleft()
        return None

    @property
    def held(self) -> List[int]:
        return sorted(self._held)


@dataclass
class Timers:
    """Delay and sound timers (8-bit, count down to zero)."""
    delay: int = 0
    sound: int = 0

    def tick(self) -> None:
        """Advance one 60 Hz period."""
        if self.delay > 0:
            self.delay -= 1
        if self.sound > 0:
            self.sound -= 1

    @property
    def sound_active(self) -> bool:
        return self.sound > 0


@dataclass
class Peripherals:
    """Everything the engine consumes but does not own.

    Attributes:
        display: Drawing capability
        keypad: Key queries
        timers: Delay/sound timers
        rng: Random source for RND
    """
    display: Display = field(default_factory=FrameBuffer)
    keypad: Keypad = field(default_factory=KeyState)
    timers: Timers = field(default_factory=Timers)
    rng: random.Random = field(default_factory=random.Random)

    @classmethod
    def seeded(cls, seed: Optional[int]) -> "Peripherals":
        return cls(rng=random.Random(seed))
