"""
Command line entry point: ``chip8vm run ROM`` and ``chip8vm disasm ROM``.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .config import COLOR_SCHEMES, Settings, scheme_color
from .disasm import disassemble
from .rom import read_program

logger = logging.getLogger(__name__)


def _address(text: str) -> int:
    return int(text, 0)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="chip8vm", description="CHIP-8 virtual machine")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", help="Run a ROM in a window")
    run.add_argument("rom", type=Path)
    run.add_argument("--config", type=Path, help="JSON settings file")
    run.add_argument("--scale", type=int, help="Display scale factor")
    run.add_argument("--hz", type=int, dest="clock_hz", help="Instructions per second")
    run.add_argument("--color", choices=sorted(COLOR_SCHEMES), help="Foreground color scheme")
    run.add_argument("--no-glow", action="store_true", help="Disable the phosphor glow effect")

    dis = sub.add_parser("disasm", help="Disassemble a ROM")
    dis.add_argument("rom", type=Path)
    dis.add_argument("-o", "--output", type=Path, help="Write the listing to a file")
    dis.add_argument("--origin", type=_address, default=0x200, help="Address of the first byte")
    return parser


def load_settings(args: argparse.Namespace) -> Settings:
    settings = Settings.from_file(args.config) if args.config else Settings()
    return settings.replace(
        scale=args.scale,
        clock_hz=args.clock_hz,
        fg_color=scheme_color(args.color) if args.color else None,
        glow=False if args.no_glow else None,
    )


def cmd_run(args: argparse.Namespace) -> int:
    # pygame is only needed for the window
    from .frontend import Emulator

    settings = load_settings(args)
    emu = Emulator(settings)
    emu.load(args.rom)
    emu.run()
    return 0


def cmd_disasm(args: argparse.Namespace) -> int:
    lines = disassemble(read_program(args.rom), origin=args.origin)
    text = "\n".join(lines) + "\n"
    if args.output:
        args.output.write_text(text, encoding="utf-8")
        logger.info(f"Wrote {len(lines)} lines to {args.output}")
    else:
        sys.stdout.write(text)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format="[%(levelname)s]:  %(message)s", stream=sys.stderr)

    handler = cmd_run if args.command == "run" else cmd_disasm
    try:
        return handler(args)
    except (OSError, ValueError) as e:
        print(f"chip8vm: {e}", file=sys.stderr)
        return 1
