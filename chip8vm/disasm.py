"""
Chip-8 disassembler: renders decoded instructions as mnemonics.
"""

from typing import List

from .constants import PROGRAM_START
from .decoder import Instruction, Opcode, decode
from .errors import UnrecognizedInstruction


def mnemonic(ins: Instruction) -> str:
    """Return a mnemonic string for a decoded instruction."""
    op = ins.opcode
    x, y = ins.x, ins.y

    if op is Opcode.CLS:
        return "CLS"
    elif op is Opcode.RET:
        return "RET"
    elif op is Opcode.JP:
        return f"JP 0x{ins.nnn:03X}"
    elif op is Opcode.CALL:
        return f"CALL 0x{ins.nnn:03X}"
    elif op is Opcode.SE_VX_BYTE:
        return f"SE V{x:X}, 0x{ins.kk:02X}"
    elif op is Opcode.SNE_VX_BYTE:
        return f"SNE V{x:X}, 0x{ins.kk:02X}"
    elif op is Opcode.SE_VX_VY:
        return f"SE V{x:X}, V{y:X}"
    elif op is Opcode.LD_VX_BYTE:
        return f"LD V{x:X}, 0x{ins.kk:02X}"
    elif op is Opcode.ADD_VX_BYTE:
        return f"ADD V{x:X}, 0x{ins.kk:02X}"
    elif op is Opcode.SNE_VX_VY:
        return f"SNE V{x:X}, V{y:X}"
    elif op is Opcode.LD_I:
        return f"LD I, 0x{ins.nnn:03X}"
    elif op is Opcode.JP_V0:
        return f"JP V0, 0x{ins.nnn:03X}"
    elif op is Opcode.RND:
        return f"RND V{x:X}, 0x{ins.kk:02X}"
    elif op is Opcode.DRW:
        return f"DRW V{x:X}, V{y:X}, 0x{ins.n:X}"

    # 8xyN - register ALU; shifts only name Vx
    alu = {Opcode.LD_VX_VY: "LD", Opcode.OR: "OR", Opcode.AND: "AND",
           Opcode.XOR: "XOR", Opcode.ADD_VX_VY: "ADD", Opcode.SUB: "SUB",
           Opcode.SUBN: "SUBN"}
    if op in alu:
        return f"{alu[op]} V{x:X}, V{y:X}"
    if op is Opcode.SHR:
        return f"SHR V{x:X}"
    if op is Opcode.SHL:
        return f"SHL V{x:X}"

    # Ex/Fx - keys, timers, index and memory
    fops = {Opcode.SKP: "SKP Vx", Opcode.SKNP: "SKNP Vx",
            Opcode.LD_VX_DT: "LD Vx, DT", Opcode.LD_VX_K: "LD Vx, K",
            Opcode.LD_DT_VX: "LD DT, Vx", Opcode.LD_ST_VX: "LD ST, Vx",
            Opcode.ADD_I_VX: "ADD I, Vx", Opcode.LD_F_VX: "LD F, Vx",
            Opcode.LD_B_VX: "LD B, Vx", Opcode.LD_I_VX: "LD [I], Vx",
            Opcode.LD_VX_I: "LD Vx, [I]"}
    return fops[op].replace("Vx", f"V{x:X}")


def disassemble_word(word: int) -> str:
    try:
        return mnemonic(decode(word))
    except UnrecognizedInstruction:
        return f".word 0x{word:04X}   ; unknown opcode"


def disassemble(data: bytes, origin: int = PROGRAM_START) -> List[str]:
    """
    Convert binary Chip-8 data into a list of disassembly lines.
    Each line: "ADDR:  MNEMONIC"
    """
    lines = []
    addr = origin
    i = 0
    while i + 1 < len(data):
        # Read two bytes (big-endian)
        word = (data[i] << 8) | data[i + 1]
        lines.append(f"{addr:04X}:  {disassemble_word(word)}")
        addr += 2
        i += 2
    # If there is a trailing byte, show it as data
    if i < len(data):
        lines.append(f"{addr:04X}:  .byte 0x{data[i]:02X}  (odd trailing byte)")
    return lines
