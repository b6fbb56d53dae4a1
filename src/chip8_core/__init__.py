"""chip8-core: CHIP-8 interpreter engine.

This package implements the CHIP-8 virtual machine as a fetch-decode-execute
engine over a 4096-byte memory, sixteen 8-bit registers, a 16-bit index
register, a program counter and a 16-entry call stack.

Core Cycle:
    fetch (2 bytes at PC) -> decode (pure) -> key -> registry -> NextPc

Architecture:
    MEMORY -> FETCH -> DECODE -> KEY -> REGISTRY -> EXECUTE -> NEXT PC
                                           |
                                      PERIPHERALS
                               (display, keypad, timers, rng)

Modules:
    state: Memory, Registers, Stack and the MachineState aggregate
    decode: Total opcode decoder producing Instruction keys
    registry: Instruction handlers returning NextPc directives
    devices: Display/keypad interfaces, framebuffer, timers
    program: Program text parsing and font data
    cpu: Main Chip8CPU orchestrator
    errors: Machine fault taxonomy
"""

__version__ = "0.1.0"
__author__ = "chip8-core contributors"

from .errors import (
    AddressRangeError,
    Chip8Error,
    CycleLimitError,
    RegisterIndexError,
    StackOverflowError,
    StackUnderflowError,
    UnrecognizedOpcodeError,
)
from .state import MachineState, Memory, Registers, Stack
from .decode import Instruction, decode
from .registry import ADVANCE, SKIP, Chip8Registry, NextPc
from .devices import FrameBuffer, KeyState, Peripherals, Timers
from .cpu import Chip8CPU

__all__ = [
    "AddressRangeError",
    "Chip8Error",
    "CycleLimitError",
    "RegisterIndexError",
    "StackOverflowError",
    "StackUnderflowError",
    "UnrecognizedOpcodeError",
    "MachineState",
    "Memory",
    "Registers",
    "Stack",
    "Instruction",
    "decode",
    "ADVANCE",
    "SKIP",
    "Chip8Registry",
    "NextPc",
    "FrameBuffer",
    "KeyState",
    "Peripherals",
    "Timers",
    "Chip8CPU",
]
