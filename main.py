#!/usr/bin/env python3
"""chip8-core Command Line Interface.

Run CHIP-8 programs headless and inspect the final machine state.

Usage:
    python main.py --rom games/PONG --cycles 5000 --show-display
    python main.py --inline "6007 6102 8014 0000"
"""

import argparse
import logging
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent / "src"))

from chip8_core import Chip8CPU, Chip8Error


TIMER_HZ = 60


def run_with_timers(cpu: Chip8CPU, cycles: int, clock_hz: int) -> None:
    """Step the CPU for a fixed number of cycles, ticking timers at 60 Hz."""
    cycles_per_tick = max(1, clock_hz // TIMER_HZ)
    executed = 0
    while executed < cycles and not cpu.is_halted():
        cpu.step()
        executed += 1
        if executed % cycles_per_tick == 0:
            cpu.io.timers.tick()


def main():
    parser = argparse.ArgumentParser(
        description="chip8-core: CHIP-8 interpreter",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Run a ROM for 5000 instructions and print the screen
    python main.py --rom games/PONG --cycles 5000 --show-display

    # Run inline words until the 0000 halt word
    python main.py --inline "6007 6102 8014 0000"

    # Program with a subroutine segment and full trace
    python main.py --inline "6005 610A 2100 2100 0000 0x100: 8014 8014 00EE" --trace
        """
    )

    parser.add_argument(
        "--rom", "-r",
        type=str,
        help="Path to a CHIP-8 ROM (loaded at 0x200)"
    )
    parser.add_argument(
        "--inline", "-i",
        type=str,
        help="Inline hex words (';' separates lines, 'ADDR:' starts a segment)"
    )
    parser.add_argument(
        "--address", "-a",
        type=lambda s: int(s, 0),
        default=None,
        help="Load address and start PC for --inline. Default: 0"
    )
    parser.add_argument(
        "--max-cycles",
        type=int,
        default=Chip8CPU.DEFAULT_MAX_CYCLES,
        help="Maximum execution cycles when running to HALT. Default: %(default)s"
    )
    parser.add_argument(
        "--cycles", "-c",
        type=int,
        help="Run exactly this many cycles (or until HALT) instead of running to HALT"
    )
    parser.add_argument(
        "--clock",
        type=int,
        default=700,
        help="Instructions per second, used to tick timers at 60 Hz with --cycles. Default: 700"
    )
    parser.add_argument(
        "--seed",
        type=int,
        help="Seed for the RND instruction"
    )
    parser.add_argument(
        "--legacy-store",
        action="store_true",
        help="Fx55/Fx65 increment I (original interpreter quirk)"
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Fault on unknown opcodes instead of skipping them"
    )
    parser.add_argument(
        "--trace", "-t",
        action="store_true",
        help="Print full execution trace"
    )
    parser.add_argument(
        "--show-display",
        action="store_true",
        help="Print the framebuffer after execution"
    )
    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Minimal output (non-zero registers only)"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Log every executed instruction"
    )

    args = parser.parse_args()

    if not args.rom and not args.inline:
        parser.error("Either --rom or --inline is required")
    if args.rom and args.address is not None:
        parser.error("--address applies only to --inline; ROMs always load at 0x200")

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="[%(levelname)s] %(name)s: %(message)s",
    )

    cpu = Chip8CPU(
        seed=args.seed,
        max_cycles=args.max_cycles,
        strict_opcodes=args.strict,
        legacy_store=args.legacy_store,
        record_trace=args.trace,
    )

    try:
        if args.rom:
            rom_path = Path(args.rom)
            if not rom_path.exists():
                print(f"Error: ROM file not found: {args.rom}")
                return 1
            cpu.load_rom(rom_path.read_bytes())
            if not args.quiet:
                print(f"Loading ROM: {args.rom}")
        else:
            address = args.address if args.address is not None else 0
            cpu.load_program(args.inline.replace(";", "\n"), address)
            cpu.state.registers.pc = address
            if not args.quiet:
                print("Running inline program")
    except (ValueError, Chip8Error) as e:
        print(f"Load error: {e}")
        return 1

    if not args.quiet:
        print("-" * 60)
        print("Executing...")
        print("-" * 60)

    failed = False
    try:
        if args.cycles is not None:
            run_with_timers(cpu, args.cycles, args.clock)
        else:
            cpu.run()
    except Chip8Error as e:
        print(f"Execution error: {e}")
        failed = True

    if args.trace:
        cpu.print_trace()
    elif not args.quiet:
        print()
        summary = cpu.get_summary()
        print(f"Cycles: {summary['cycles']}")
        print(f"Halted: {summary['halted']}")
        if summary["fault"]:
            print(f"Fault: {summary['fault']}")
        print(f"Registers: {summary['registers']}")
        print(f"Stack: {summary['stack']}")
        print(f"Timers: {summary['timers']}")
    else:
        regs = cpu.dump_registers()
        for reg, value in regs.items():
            if value != 0:
                print(f"{reg}={value}")

    if args.show_display:
        print(cpu.io.display.render())

    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
