"""
pygame frontend: screen, keypad and beeper adapters around a ``Machine``,
plus the real-time loop that drives it.
"""

import logging
from pathlib import Path
from typing import List, Optional, Tuple

import numpy as np
import pygame

from .config import Settings
from .constants import DISPLAY_H, DISPLAY_W, NUM_KEYS
from .disasm import disassemble_word
from .machine import Machine
from .rom import read_program

logger = logging.getLogger(__name__)

GLOW_UPSCALE = 4                        # Internal upscale for glow blur
SAMPLE_RATE = 44100

# Keyboard mapping (QWERTY -> CHIP-8 hex keypad)
# CHIP-8 Keypad:    Keyboard:
# 1 2 3 C          1 2 3 4
# 4 5 6 D          Q W E R
# 7 8 9 E          A S D F
# A 0 B F          Z X C V
KEY_MAP = {
    pygame.K_1: 0x1, pygame.K_2: 0x2, pygame.K_3: 0x3, pygame.K_4: 0xC,
    pygame.K_q: 0x4, pygame.K_w: 0x5, pygame.K_e: 0x6, pygame.K_r: 0xD,
    pygame.K_a: 0x7, pygame.K_s: 0x8, pygame.K_d: 0x9, pygame.K_f: 0xE,
    pygame.K_z: 0xA, pygame.K_x: 0x0, pygame.K_c: 0xB, pygame.K_v: 0xF,
}


def keypad_snapshot(pressed) -> List[bool]:
    """Build the 16-key snapshot from ``pygame.key.get_pressed()``"""
    keys = [False] * NUM_KEYS
    for keycode, chip8_key in KEY_MAP.items():
        if pressed[keycode]:
            keys[chip8_key] = True
    return keys


# ═══════════════════════════════════════════════════════════════════════════════
# GLOW EFFECT SYSTEM
# ═══════════════════════════════════════════════════════════════════════════════

class ScreenRenderer:
    """Scales the framebuffer to surfaces, with optional phosphor glow"""

    def __init__(self, settings: Settings):
        self.settings = settings
        self.final_size = (DISPLAY_W * settings.scale, DISPLAY_H * settings.scale)

    @staticmethod
    def box_blur(arr: np.ndarray, passes: int = 1) -> np.ndarray:
        """Fast box blur using rolling averages"""
        a = arr.copy()
        for _ in range(passes):
            a = (np.roll(a, 1, axis=1) + a + np.roll(a, -1, axis=1)) / 3.0
            a = (np.roll(a, 1, axis=0) + a + np.roll(a, -1, axis=0)) / 3.0
        return a

    def _colorize(self, intensity: np.ndarray) -> np.ndarray:
        """(w, h) intensities in 0-1 -> (w, h, 3) RGB using the foreground color"""
        rgb = np.zeros(intensity.shape + (3,), dtype=np.uint8)
        for i, c in enumerate(self.settings.fg_color):
            rgb[:, :, i] = (intensity * c).astype(np.uint8)
        return rgb

    def render(self, framebuffer: np.ndarray) -> Tuple[pygame.Surface, Optional[pygame.Surface]]:
        """
        Convert the (height, width) framebuffer to surfaces

        Returns:
            (base_surface, glow_surface) tuple; glow is None when disabled
        """
        # surfarray is (width, height); nonzero means lit
        base = (framebuffer.T != 0).astype(np.float32)
        base_surf = pygame.surfarray.make_surface(self._colorize(base))
        base_final = pygame.transform.scale(base_surf, self.final_size)

        if not self.settings.glow:
            return base_final, None

        up = np.kron(base, np.ones((GLOW_UPSCALE, GLOW_UPSCALE), dtype=np.float32))
        glow = self.box_blur(up, passes=1 + self.settings.blur_radius)
        glow = np.clip(glow * self.settings.bloom_strength, 0.0, 1.0)
        glow_surf = pygame.surfarray.make_surface(self._colorize(glow))
        glow_final = pygame.transform.smoothscale(glow_surf, self.final_size)
        return base_final, glow_final

    def create_background(self) -> pygame.Surface:
        """Create CRT-style background with scanlines"""
        bg = self.settings.bg_color
        surf = pygame.Surface(self.final_size)
        surf.fill(bg)
        line = tuple(min(255, c + 5) for c in bg)
        for y in range(0, self.final_size[1], 2):
            pygame.draw.line(surf, line, (0, y), (self.final_size[0], y))
        return surf


# ═══════════════════════════════════════════════════════════════════════════════
# SOUND
# ═══════════════════════════════════════════════════════════════════════════════

class Beeper:
    """Looping square wave switched by the machine's beep flag"""

    def __init__(self, tone_hz: int, volume: float):
        self.playing = False
        self.sound: Optional[pygame.mixer.Sound] = None
        try:
            pygame.mixer.init(SAMPLE_RATE, -16, 1)
        except pygame.error as e:
            logger.warning(f"Audio unavailable, running silent: {e}")
            return

        frequency, _, channels = pygame.mixer.get_init()
        period = max(2, frequency // tone_hz)
        one_cycle = np.where(np.arange(period) < period // 2, 1, -1)
        wave = (np.resize(one_cycle, frequency) * volume * 32767).astype(np.int16)
        if channels > 1:
            wave = np.repeat(wave[:, np.newaxis], channels, axis=1)
        self.sound = pygame.sndarray.make_sound(wave)

    def update(self, beep: bool):
        if self.sound is None or beep == self.playing:
            return
        if beep:
            self.sound.play(loops=-1)
        else:
            self.sound.stop()
        self.playing = beep


# ═══════════════════════════════════════════════════════════════════════════════
# MAIN EMULATOR APPLICATION
# ═══════════════════════════════════════════════════════════════════════════════

class Emulator:
    """Drives a Machine in real time inside a pygame window"""

    def __init__(self, settings: Settings, machine: Optional[Machine] = None):
        self.settings = settings
        self.machine = machine if machine is not None else Machine()
        self.rom_path: Optional[Path] = None
        self.running = True
        self.paused = False

        pygame.init()
        self.renderer = ScreenRenderer(settings)
        self.screen = pygame.display.set_mode(self.renderer.final_size)
        self.background = self.renderer.create_background()
        self.clock = pygame.time.Clock()
        self.beeper = Beeper(settings.tone_hz, settings.volume)
        self._set_caption()

    def _set_caption(self, status: str = ""):
        name = self.rom_path.stem if self.rom_path else "no ROM"
        caption = f"chip8vm - {name}"
        if status:
            caption += f" - {status}"
        pygame.display.set_caption(caption)

    def load(self, path: Path):
        """Reset the machine and load a ROM file"""
        data = read_program(path)
        self.machine.reset()
        self.machine.load(data)
        self.rom_path = Path(path)
        self._set_caption()
        logger.info(f"Loaded {self.rom_path.name}")

    def _reset(self):
        if self.rom_path:
            self.load(self.rom_path)
        else:
            self.machine.reset()

    def _toggle_pause(self):
        self.paused = not self.paused
        self._set_caption("Paused" if self.paused else "")
        if self.paused:
            self.beeper.update(False)

    def handle_events(self):
        """Process window and control events"""
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                self.running = False
            elif event.type == pygame.KEYDOWN:
                if event.key == pygame.K_ESCAPE:
                    self.running = False
                elif event.key == pygame.K_p:
                    self._toggle_pause()
                elif event.key == pygame.K_BACKSPACE:
                    self._reset()

    def update(self) -> bool:
        """Run one frame's worth of ticks; True if the screen changed"""
        keys = keypad_snapshot(pygame.key.get_pressed())
        changed = False
        beep = False
        error = None
        for _ in range(self.settings.ticks_per_frame):
            output = self.machine.tick(keys)
            changed |= output.changed
            beep = output.beep
            if output.error is not None:
                error = output.error
        if error is not None:
            word = self.machine.fetch()
            self._set_caption(f"${self.machine.program_counter:03X}: {disassemble_word(word)} ({error})")
        self.beeper.update(beep)
        return changed

    def render(self):
        base_surf, glow_surf = self.renderer.render(self.machine.framebuffer)
        self.screen.blit(self.background, (0, 0))
        if glow_surf is not None:
            self.screen.blit(glow_surf, (0, 0), special_flags=pygame.BLEND_ADD)
        self.screen.blit(base_surf, (0, 0), special_flags=pygame.BLEND_ADD)
        pygame.display.flip()

    def run(self):
        """Main loop"""
        self.render()
        while self.running:
            self.handle_events()
            if not self.paused and self.update():
                self.render()
            self.clock.tick(self.settings.frame_rate)

        self.beeper.update(False)
        pygame.quit()
