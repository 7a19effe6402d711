"""
Frontend settings: display, speed and sound.

Settings come from defaults, optionally a JSON file, then command line
overrides, in that order.
"""

import dataclasses
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Tuple, Union

Color = Tuple[int, int, int]

# Colors (RGB)
COLORS = {
    'bg_dark': (15, 15, 25),
    'fg_green': (0, 255, 128),
    'fg_amber': (255, 176, 0),
    'fg_white': (220, 220, 220),
    'fg_blue': (100, 180, 255),
}

COLOR_SCHEMES = {
    'green': COLORS['fg_green'],
    'amber': COLORS['fg_amber'],
    'white': COLORS['fg_white'],
    'blue': COLORS['fg_blue'],
}


def _check_int(name: str, value) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{name} must be an integer, got {value!r}")


def _check_color(name: str, value) -> Color:
    if (isinstance(value, (list, tuple)) and len(value) == 3
            and all(isinstance(c, int) and not isinstance(c, bool) and 0 <= c <= 255 for c in value)):
        return tuple(value)
    raise ValueError(f"{name} must be three integers in 0-255, got {value!r}")


@dataclass
class Settings:
    scale: int = 12                     # Display scale factor
    clock_hz: int = 500                 # Instructions per second
    frame_rate: int = 60                # Frames per second
    fg_color: Color = COLORS['fg_green']
    bg_color: Color = COLORS['bg_dark']
    glow: bool = True
    bloom_strength: float = 0.55        # Glow intensity (0.0-1.0)
    blur_radius: int = 1                # Box blur passes (0-3)
    tone_hz: int = 440
    volume: float = 0.25

    def __post_init__(self):
        for name in ('scale', 'clock_hz', 'frame_rate', 'blur_radius', 'tone_hz'):
            _check_int(name, getattr(self, name))
        for name in ('bloom_strength', 'volume'):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValueError(f"{name} must be a number, got {value!r}")
        if not isinstance(self.glow, bool):
            raise ValueError(f"glow must be true or false, got {self.glow!r}")
        self.fg_color = _check_color('fg_color', self.fg_color)
        self.bg_color = _check_color('bg_color', self.bg_color)

        if self.scale < 1:
            raise ValueError(f"scale must be at least 1, got {self.scale}")
        if self.clock_hz < 1 or self.frame_rate < 1 or self.tone_hz < 1:
            raise ValueError("clock_hz, frame_rate and tone_hz must be positive")
        if not 0.0 <= self.volume <= 1.0:
            raise ValueError(f"volume must be within 0.0-1.0, got {self.volume}")

    @property
    def ticks_per_frame(self) -> int:
        return max(1, self.clock_hz // self.frame_rate)

    def replace(self, **overrides) -> "Settings":
        """Copy with the given fields changed; ``None`` values are ignored"""
        changes = {k: v for k, v in overrides.items() if v is not None}
        return dataclasses.replace(self, **changes)

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "Settings":
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"{path}: expected a JSON object")

        known = {f.name for f in dataclasses.fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"{path}: unknown settings {', '.join(unknown)}")
        return cls(**data)


def scheme_color(name: str) -> Color:
    try:
        return COLOR_SCHEMES[name]
    except KeyError:
        raise ValueError(f"unknown color scheme {name!r}; choose from {', '.join(COLOR_SCHEMES)}") from None
