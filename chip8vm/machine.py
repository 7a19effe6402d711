"""
CHIP-8 machine state and executor.

``Machine.tick`` is the only transition: it takes a keypad snapshot,
executes at most one instruction and returns a ``TickOutput``. Handlers
either return how the program counter moves or raise a ``Chip8Error``
before writing any state.
"""

import logging
import random
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, NamedTuple, Optional, Sequence, Tuple, Union

import numpy as np

from .constants import (
    ADDRESS_MASK,
    DISPLAY_H,
    DISPLAY_W,
    FLAG_REGISTER,
    FONT_START,
    FONTSET,
    GLYPH_SIZE,
    INSTRUCTION_SIZE,
    MEMORY_SIZE,
    NUM_KEYS,
    NUM_REGISTERS,
    PROGRAM_CAPACITY,
    PROGRAM_START,
    STACK_SIZE,
)
from .decoder import Instruction, Opcode, decode
from .errors import Chip8Error, StackOverflow, StackUnderflow

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════════
# VALUE TYPES
# ═══════════════════════════════════════════════════════════════════════════════

class IndexRegister(int):
    """The 12-bit I register; the upper bits are dropped on construction"""

    def __new__(cls, value: int = 0):
        return super().__new__(cls, value & ADDRESS_MASK)

    def overflowing_add(self, rhs: int) -> Tuple["IndexRegister", bool]:
        total = int(self) + rhs
        return IndexRegister(total), total > ADDRESS_MASK

    def __repr__(self):
        return f"IndexRegister(0x{int(self):03X})"


class MachineState(Enum):
    RUNNING = "running"
    AWAITING_KEY = "awaiting_key"


class Step(Enum):
    """Sequential program counter moves, in instructions"""
    NEXT = 1
    SKIP = 2


@dataclass(frozen=True)
class Jump:
    address: int


PcChange = Union[Step, Jump]


class TickOutput(NamedTuple):
    framebuffer: np.ndarray     # read-only (height, width) view
    changed: bool
    beep: bool
    error: Optional[Chip8Error] = None


# ═══════════════════════════════════════════════════════════════════════════════
# CHIP-8 MACHINE
# ═══════════════════════════════════════════════════════════════════════════════

class Machine:
    """CHIP-8 interpreter state plus the per-tick transition function"""

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng if rng is not None else random.Random()
        self._handlers: Dict[Opcode, Callable[[Instruction], PcChange]] = {
            Opcode.CLS: self._clear_screen,
            Opcode.RET: self._return_from_subroutine,
            Opcode.JP: self._jump,
            Opcode.CALL: self._call,
            Opcode.SE_VX_BYTE: self._skip_if_vx_equals_byte,
            Opcode.SNE_VX_BYTE: self._skip_if_vx_not_equals_byte,
            Opcode.SE_VX_VY: self._skip_if_vx_equals_vy,
            Opcode.LD_VX_BYTE: self._load_byte,
            Opcode.ADD_VX_BYTE: self._add_byte,
            Opcode.LD_VX_VY: self._copy_register,
            Opcode.OR: self._or,
            Opcode.AND: self._and,
            Opcode.XOR: self._xor,
            Opcode.ADD_VX_VY: self._add_registers,
            Opcode.SUB: self._sub,
            Opcode.SHR: self._shift_right,
            Opcode.SUBN: self._subn,
            Opcode.SHL: self._shift_left,
            Opcode.SNE_VX_VY: self._skip_if_vx_not_equals_vy,
            Opcode.LD_I: self._load_index,
            Opcode.JP_V0: self._jump_plus_v0,
            Opcode.RND: self._random_byte,
            Opcode.DRW: self._draw_sprite,
            Opcode.SKP: self._skip_if_key_pressed,
            Opcode.SKNP: self._skip_if_key_not_pressed,
            Opcode.LD_VX_DT: self._read_delay_timer,
            Opcode.LD_VX_K: self._wait_for_key,
            Opcode.LD_DT_VX: self._set_delay_timer,
            Opcode.LD_ST_VX: self._set_sound_timer,
            Opcode.ADD_I_VX: self._add_to_index,
            Opcode.LD_F_VX: self._point_index_at_glyph,
            Opcode.LD_B_VX: self._store_bcd,
            Opcode.LD_I_VX: self._store_registers,
            Opcode.LD_VX_I: self._load_registers,
        }
        self.reset()

    def reset(self):
        """Return to the freshly constructed state"""
        self.memory = bytearray(MEMORY_SIZE)
        self.registers = bytearray(NUM_REGISTERS)
        self._index = IndexRegister(0)
        self.program_counter = PROGRAM_START
        self.stack: List[int] = [0] * STACK_SIZE
        self.stack_pointer = 0
        self.delay_timer = 0
        self.sound_timer = 0
        self.framebuffer = np.zeros((DISPLAY_H, DISPLAY_W), dtype=np.uint8)
        self.framebuffer_changed = False
        self.keypad: List[bool] = [False] * NUM_KEYS
        self.awaiting_key: Optional[int] = None
        self.last_error: Optional[Chip8Error] = None
        self._load_fontset()

    def _load_fontset(self):
        """Load built-in font sprites to memory"""
        self.memory[FONT_START:FONT_START + len(FONTSET)] = bytes(FONTSET)

    @property
    def index_register(self) -> IndexRegister:
        return self._index

    @index_register.setter
    def index_register(self, value: int):
        self._index = IndexRegister(value)

    @property
    def state(self) -> MachineState:
        if self.awaiting_key is None:
            return MachineState.RUNNING
        return MachineState.AWAITING_KEY

    def load(self, data: bytes):
        """Copy a program image to the load origin, dropping what does not fit"""
        image = bytes(data[:PROGRAM_CAPACITY])
        self.memory[PROGRAM_START:PROGRAM_START + len(image)] = image
        if len(data) > PROGRAM_CAPACITY:
            logger.debug(f"Program truncated from {len(data)} to {PROGRAM_CAPACITY} bytes.")
        logger.debug(f"Loaded {len(image)} bytes at 0x{PROGRAM_START:03X}.")

    def _address(self, offset: int = 0) -> int:
        """Memory address ``offset`` bytes past I, wrapping at the end of RAM"""
        return (self._index + offset) % MEMORY_SIZE

    def fetch(self) -> int:
        """The 16-bit word at the program counter"""
        pc = self.program_counter % MEMORY_SIZE
        hi = self.memory[pc]
        lo = self.memory[(pc + 1) % MEMORY_SIZE]
        return (hi << 8) | lo

    def current_instruction(self) -> Instruction:
        return decode(self.fetch())

    # ─── Tick ───

    def tick(self, keypad: Sequence[bool]) -> TickOutput:
        """Advance the machine by one step"""
        if len(keypad) != NUM_KEYS:
            raise ValueError(f"keypad snapshot needs {NUM_KEYS} keys, got {len(keypad)}")
        self.keypad = [bool(k) for k in keypad]
        self.framebuffer_changed = False
        self.last_error = None

        if self.awaiting_key is not None:
            self._sample_key()
        else:
            if self.delay_timer > 0:
                self.delay_timer -= 1
            self._step()

        view = self.framebuffer.view()
        view.flags.writeable = False
        return TickOutput(view, self.framebuffer_changed, self.sound_timer != 0, self.last_error)

    def _sample_key(self):
        for key, pressed in enumerate(self.keypad):
            if pressed:
                self.registers[self.awaiting_key] = key
                logger.debug(f"Key {key:X} stored in V{self.awaiting_key:X}, resuming.")
                self.awaiting_key = None
                return

    def _step(self):
        try:
            instruction = self.current_instruction()
            change = self._handlers[instruction.opcode](instruction)
        except Chip8Error as e:
            logger.warning(f"PC ${self.program_counter:03X}: {e}")
            self.last_error = e
            return

        if isinstance(change, Jump):
            self.program_counter = change.address
        else:
            self.program_counter = (self.program_counter + INSTRUCTION_SIZE * change.value) % MEMORY_SIZE

    # ═══════════════════════════════════════════════════════════════════════════
    # INSTRUCTION HANDLERS
    # ═══════════════════════════════════════════════════════════════════════════

    # ─── 00E0: CLS ───
    def _clear_screen(self, ins: Instruction) -> PcChange:
        self.framebuffer.fill(0)
        self.framebuffer_changed = True
        return Step.NEXT

    # ─── 00EE: RET ───
    def _return_from_subroutine(self, ins: Instruction) -> PcChange:
        if self.stack_pointer == 0:
            raise StackUnderflow()
        self.stack_pointer -= 1
        return Jump(self.stack[self.stack_pointer])

    # ─── 1NNN: JP addr ───
    def _jump(self, ins: Instruction) -> PcChange:
        return Jump(ins.nnn)

    # ─── 2NNN: CALL addr ───
    def _call(self, ins: Instruction) -> PcChange:
        if self.stack_pointer >= STACK_SIZE:
            raise StackOverflow()
        self.stack[self.stack_pointer] = (self.program_counter + INSTRUCTION_SIZE) % MEMORY_SIZE
        self.stack_pointer += 1
        return Jump(ins.nnn)

    # ─── 3XNN / 4XNN / 5XY0 / 9XY0: conditional skips ───
    def _skip_if_vx_equals_byte(self, ins: Instruction) -> PcChange:
        return Step.SKIP if self.registers[ins.x] == ins.kk else Step.NEXT

    def _skip_if_vx_not_equals_byte(self, ins: Instruction) -> PcChange:
        return Step.SKIP if self.registers[ins.x] != ins.kk else Step.NEXT

    def _skip_if_vx_equals_vy(self, ins: Instruction) -> PcChange:
        return Step.SKIP if self.registers[ins.x] == self.registers[ins.y] else Step.NEXT

    def _skip_if_vx_not_equals_vy(self, ins: Instruction) -> PcChange:
        return Step.SKIP if self.registers[ins.x] != self.registers[ins.y] else Step.NEXT

    # ─── 6XNN: LD Vx, byte ───
    def _load_byte(self, ins: Instruction) -> PcChange:
        self.registers[ins.x] = ins.kk
        return Step.NEXT

    # ─── 7XNN: ADD Vx, byte ───
    def _add_byte(self, ins: Instruction) -> PcChange:
        """Wrapping add; VF is left alone"""
        self.registers[ins.x] = (self.registers[ins.x] + ins.kk) & 0xFF
        return Step.NEXT

    # ─── 8XYZ: ALU operations ───
    def _copy_register(self, ins: Instruction) -> PcChange:
        self.registers[ins.x] = self.registers[ins.y]
        return Step.NEXT

    def _or(self, ins: Instruction) -> PcChange:
        self.registers[ins.x] |= self.registers[ins.y]
        return Step.NEXT

    def _and(self, ins: Instruction) -> PcChange:
        self.registers[ins.x] &= self.registers[ins.y]
        return Step.NEXT

    def _xor(self, ins: Instruction) -> PcChange:
        self.registers[ins.x] ^= self.registers[ins.y]
        return Step.NEXT

    def _set_with_flag(self, x: int, value: int, flag: bool):
        # Flag written last so VF holds the flag when x is VF
        self.registers[x] = value & 0xFF
        self.registers[FLAG_REGISTER] = 1 if flag else 0

    def _add_registers(self, ins: Instruction) -> PcChange:
        """Vx += Vy; VF = 1 on carry out of 8 bits, else 0"""
        total = self.registers[ins.x] + self.registers[ins.y]
        self._set_with_flag(ins.x, total, total > 0xFF)
        return Step.NEXT

    def _sub(self, ins: Instruction) -> PcChange:
        """Vx -= Vy; VF = 1 when no borrow (Vx >= Vy), else 0"""
        vx, vy = self.registers[ins.x], self.registers[ins.y]
        self._set_with_flag(ins.x, vx - vy, vx >= vy)
        return Step.NEXT

    def _subn(self, ins: Instruction) -> PcChange:
        """Vx = Vy - Vx; VF = 1 when no borrow (Vy >= Vx), else 0"""
        vx, vy = self.registers[ins.x], self.registers[ins.y]
        self._set_with_flag(ins.x, vy - vx, vy >= vx)
        return Step.NEXT

    def _shift_right(self, ins: Instruction) -> PcChange:
        """Vx >>= 1; VF = the bit shifted out (old bit 0)"""
        vx = self.registers[ins.x]
        self._set_with_flag(ins.x, vx >> 1, vx & 0x01)
        return Step.NEXT

    def _shift_left(self, ins: Instruction) -> PcChange:
        """Vx <<= 1; VF = the bit shifted out (old bit 7)"""
        vx = self.registers[ins.x]
        self._set_with_flag(ins.x, vx << 1, vx & 0x80)
        return Step.NEXT

    # ─── ANNN: LD I, addr ───
    def _load_index(self, ins: Instruction) -> PcChange:
        self.index_register = ins.nnn
        return Step.NEXT

    # ─── BNNN: JP V0, addr ───
    def _jump_plus_v0(self, ins: Instruction) -> PcChange:
        return Jump((ins.nnn + self.registers[0]) & ADDRESS_MASK)

    # ─── CXNN: RND Vx, byte ───
    def _random_byte(self, ins: Instruction) -> PcChange:
        self.registers[ins.x] = self.rng.randint(0, 255) & ins.kk
        return Step.NEXT

    # ─── DXYN: DRW Vx, Vy, nibble ───
    def _draw_sprite(self, ins: Instruction) -> PcChange:
        """XOR an 8xN sprite from memory[I] onto the screen, wrapping at the edges.

        VF = 1 if any lit pixel was turned off, else 0.
        """
        V = self.registers
        origin_x, origin_y = V[ins.x], V[ins.y]
        V[FLAG_REGISTER] = 0
        collision = 0

        for row in range(ins.n):
            sprite_byte = self.memory[self._address(row)]
            py = (origin_y + row) % DISPLAY_H

            for col in range(8):
                bit = (sprite_byte >> (7 - col)) & 1
                px = (origin_x + col) % DISPLAY_W
                collision |= bit & int(self.framebuffer[py, px])
                self.framebuffer[py, px] ^= bit

        V[FLAG_REGISTER] = collision
        self.framebuffer_changed = True
        return Step.NEXT

    # ─── EX9E/EXA1: Key operations ───
    def _skip_if_key_pressed(self, ins: Instruction) -> PcChange:
        return Step.SKIP if self.keypad[self.registers[ins.x] & 0xF] else Step.NEXT

    def _skip_if_key_not_pressed(self, ins: Instruction) -> PcChange:
        return Step.NEXT if self.keypad[self.registers[ins.x] & 0xF] else Step.SKIP

    # ─── FX07 / FX15 / FX18: Timers ───
    def _read_delay_timer(self, ins: Instruction) -> PcChange:
        self.registers[ins.x] = self.delay_timer
        return Step.NEXT

    def _set_delay_timer(self, ins: Instruction) -> PcChange:
        self.delay_timer = self.registers[ins.x]
        return Step.NEXT

    def _set_sound_timer(self, ins: Instruction) -> PcChange:
        self.sound_timer = self.registers[ins.x]
        return Step.NEXT

    # ─── FX0A: LD Vx, K ───
    def _wait_for_key(self, ins: Instruction) -> PcChange:
        self.awaiting_key = ins.x
        logger.debug(f"Waiting for a key press into V{ins.x:X}.")
        return Step.NEXT

    # ─── FX1E: ADD I, Vx ───
    def _add_to_index(self, ins: Instruction) -> PcChange:
        """I += Vx within 12 bits; VF = 1 if the sum passed 0xFFF, else 0"""
        value, overflow = self._index.overflowing_add(self.registers[ins.x])
        self._index = value
        self.registers[FLAG_REGISTER] = 1 if overflow else 0
        return Step.NEXT

    # ─── FX29: LD F, Vx ───
    def _point_index_at_glyph(self, ins: Instruction) -> PcChange:
        self.index_register = FONT_START + (self.registers[ins.x] & 0xF) * GLYPH_SIZE
        return Step.NEXT

    # ─── FX33: LD B, Vx ───
    def _store_bcd(self, ins: Instruction) -> PcChange:
        value = self.registers[ins.x]
        self.memory[self._address(0)] = value // 100
        self.memory[self._address(1)] = (value // 10) % 10
        self.memory[self._address(2)] = value % 10
        return Step.NEXT

    # ─── FX55: LD [I], Vx (store V0-Vx) ───
    def _store_registers(self, ins: Instruction) -> PcChange:
        for i in range(ins.x + 1):
            self.memory[self._address(i)] = self.registers[i]
        return Step.NEXT

    # ─── FX65: LD Vx, [I] (load V0-Vx) ───
    def _load_registers(self, ins: Instruction) -> PcChange:
        for i in range(ins.x + 1):
            self.registers[i] = self.memory[self._address(i)]
        return Step.NEXT
