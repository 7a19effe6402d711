"""
CHIP-8 instruction decoder.

Decoding is pure: a 16-bit word goes in, an ``Instruction`` comes out, and
nothing about the machine is touched. Every word either matches exactly one
row of ``OPCODE_TABLE`` or raises ``UnrecognizedInstruction``.
"""

from enum import Enum
from typing import List, NamedTuple, Tuple

from .errors import UnrecognizedInstruction


class Opcode(Enum):
    """The 34 recognised CHIP-8 instructions (0nnn SYS is not one of them)"""
    CLS = "00E0"
    RET = "00EE"
    JP = "1nnn"
    CALL = "2nnn"
    SE_VX_BYTE = "3xkk"
    SNE_VX_BYTE = "4xkk"
    SE_VX_VY = "5xy0"
    LD_VX_BYTE = "6xkk"
    ADD_VX_BYTE = "7xkk"
    LD_VX_VY = "8xy0"
    OR = "8xy1"
    AND = "8xy2"
    XOR = "8xy3"
    ADD_VX_VY = "8xy4"
    SUB = "8xy5"
    SHR = "8xy6"
    SUBN = "8xy7"
    SHL = "8xyE"
    SNE_VX_VY = "9xy0"
    LD_I = "Annn"
    JP_V0 = "Bnnn"
    RND = "Cxkk"
    DRW = "Dxyn"
    SKP = "Ex9E"
    SKNP = "ExA1"
    LD_VX_DT = "Fx07"
    LD_VX_K = "Fx0A"
    LD_DT_VX = "Fx15"
    LD_ST_VX = "Fx18"
    ADD_I_VX = "Fx1E"
    LD_F_VX = "Fx29"
    LD_B_VX = "Fx33"
    LD_I_VX = "Fx55"
    LD_VX_I = "Fx65"


def _pattern(form: str) -> Tuple[int, int]:
    """Turn a form such as ``"8xy4"`` into a (mask, value) pair.

    Hex digits are fixed nibbles; lowercase letters are operand wildcards.
    """
    mask = value = 0
    for ch in form:
        mask <<= 4
        value <<= 4
        if ch in "0123456789ABCDEF":
            mask |= 0xF
            value |= int(ch, 16)
    return mask, value


# (mask, value, opcode), matched in order
OPCODE_TABLE: List[Tuple[int, int, Opcode]] = [
    (*_pattern(op.value), op) for op in Opcode
]


class Instruction(NamedTuple):
    """A decoded instruction word and its operand fields"""
    word: int
    opcode: Opcode

    @property
    def kind(self) -> int:
        """First nibble: the instruction class"""
        return (self.word >> 12) & 0xF

    @property
    def x(self) -> int:
        return (self.word >> 8) & 0xF

    @property
    def y(self) -> int:
        return (self.word >> 4) & 0xF

    @property
    def n(self) -> int:
        return self.word & 0x000F

    @property
    def kk(self) -> int:
        return self.word & 0x00FF

    @property
    def nnn(self) -> int:
        return self.word & 0x0FFF


def lookup(word: int) -> Opcode:
    """Resolve a word to its opcode or raise ``UnrecognizedInstruction``"""
    for mask, value, opcode in OPCODE_TABLE:
        if word & mask == value:
            return opcode
    raise UnrecognizedInstruction(word)


def decode(word: int) -> Instruction:
    """Decode a 16-bit instruction word"""
    word &= 0xFFFF
    return Instruction(word, lookup(word))
