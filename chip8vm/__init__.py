"""
chip8vm - a CHIP-8 virtual machine core with a pygame frontend.
"""

from .decoder import Instruction, Opcode, decode
from .errors import Chip8Error, StackOverflow, StackUnderflow, UnrecognizedInstruction
from .machine import IndexRegister, Jump, Machine, MachineState, Step, TickOutput

__version__ = "0.1.0"

__all__ = [
    "Chip8Error",
    "IndexRegister",
    "Instruction",
    "Jump",
    "Machine",
    "MachineState",
    "Opcode",
    "StackOverflow",
    "StackUnderflow",
    "Step",
    "TickOutput",
    "UnrecognizedInstruction",
    "decode",
]
