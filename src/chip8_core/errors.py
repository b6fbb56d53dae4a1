"""Fault taxonomy for the CHIP-8 machine.

Every fault raised while executing a program derives from Chip8Error, so a
host can stop on any machine fault with a single except clause. None of these
are recovered inside the engine: a faulting instruction halts the machine.
"""


class Chip8Error(Exception):
    """Base class for all machine faults."""


class AddressRangeError(Chip8Error, IndexError):
    """Memory access outside the 4096-byte address space."""

    def __init__(self, addr: int, length: int, size: int):
        self.addr = addr
        self.length = length
        self.size = size
        super().__init__(
            f"memory access out of range: 0x{addr:03X}..0x{addr + length:03X} "
            f"(size 0x{size:03X})"
        )


class RegisterIndexError(Chip8Error, IndexError):
    """General-purpose register index outside V0..VF."""

    def __init__(self, index: int):
        self.index = index
        super().__init__(f"invalid register index: {index}")


class StackOverflowError(Chip8Error):
    """CALL with every stack slot in use."""


class StackUnderflowError(Chip8Error):
    """RET with nothing to return to."""


class UnrecognizedOpcodeError(Chip8Error):
    """Opcode with no matching pattern (strict mode only)."""

    def __init__(self, opcode: int, pc: int):
        self.opcode = opcode
        self.pc = pc
        super().__init__(f"unrecognized opcode {opcode:04X} at PC 0x{pc:03X}")


class CycleLimitError(Chip8Error, RuntimeError):
    """run() reached its safety limit before the program halted."""
