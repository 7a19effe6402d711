from collections import defaultdict

import pygame

from chip8vm.config import Settings
from chip8vm.frontend import KEY_MAP, Emulator, keypad_snapshot
from chip8vm.machine import Machine


def test_key_map_covers_every_key():
    assert sorted(KEY_MAP.values()) == list(range(16))


def test_keypad_snapshot():
    pressed = defaultdict(bool)
    pressed[pygame.K_x] = True      # 0
    pressed[pygame.K_4] = True      # C
    pressed[pygame.K_p] = True      # not a keypad key
    keys = keypad_snapshot(pressed)
    assert len(keys) == 16
    assert [i for i, k in enumerate(keys) if k] == [0x0, 0xC]


class _SilentBeeper:
    def update(self, beep):
        pass


def test_failing_frame_sets_caption_once(monkeypatch):
    # Build without opening a window
    emu = Emulator.__new__(Emulator)
    emu.settings = Settings(clock_hz=600, frame_rate=60)
    emu.machine = Machine()
    emu.machine.load(bytes([0x00, 0xEE]))
    emu.beeper = _SilentBeeper()
    captions = []
    monkeypatch.setattr(emu, "_set_caption", captions.append)
    monkeypatch.setattr(pygame.key, "get_pressed", lambda: defaultdict(bool))

    assert emu.settings.ticks_per_frame == 10
    assert emu.update() is False
    assert captions == ["$200: RET (return with an empty stack)"]
