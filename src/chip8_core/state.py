"""Machine state for the CHIP-8 interpreter.

This module holds the three leaf models the engine mutates, plus the
aggregate that bundles them into one owned machine.

State Components:
    - Memory: 4096 bytes, bounds-checked range access
    - Registers: V0-VF (8-bit), I (16-bit index), PC (16-bit)
    - Stack: 16 return addresses with an explicit stack pointer
    - Halted: Execution termination flag
    - Cycle count: Total executed cycles

Everything starts zeroed. Only the CPU engine mutates state once a program
is running.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .errors import (
    AddressRangeError,
    Chip8Error,
    RegisterIndexError,
    StackOverflowError,
    StackUnderflowError,
)


MEMORY_SIZE = 4096
NUM_REGISTERS = 16
STACK_DEPTH = 16
VF = 0xF


class Memory:
    """Flat byte-addressable memory.

    Any range ``[addr, addr + length)`` that does not fit entirely inside the
    address space is rejected; nothing is read or written partially.
    """

    def __init__(self, size: int = MEMORY_SIZE):
        self._data = bytearray(size)

    def __len__(self) -> int:
        return len(self._data)

    def check_range(self, addr: int, length: int) -> None:
        """Raise AddressRangeError unless ``[addr, addr + length)`` fits."""
        if addr < 0 or length < 0 or addr + length > len(self._data):
            raise AddressRangeError(addr, length, len(self._data))

    def read(self, addr: int, length: int) -> bytes:
        """Read a range of bytes.

        Args:
            addr: Start address
            length: Number of bytes

        Returns:
            Copy of the bytes in ``[addr, addr + length)``

        Raises:
            AddressRangeError: If the range exceeds the address space
        """
        self.check_range(addr, length)
        return bytes(self._data[addr:addr + length])

    def write(self, addr: int, data: bytes) -> None:
        """Write a range of bytes starting at addr.

        Raises:
            AddressRangeError: If the range exceeds the address space
        """
        self.check_range(addr, len(data))
        self._data[addr:addr + len(data)] = data

    def read_word(self, addr: int) -> int:
        """Read a big-endian 16-bit word."""
        hi, lo = self.read(addr, 2)
        return (hi << 8) | lo

    def clear(self) -> None:
        self._data = bytearray(len(self._data))


class Registers:
    """Register file: V0-VF, I and PC.

    I and PC are plain attributes; the engine keeps them within 16 bits.
    """

    def __init__(self):
        self._v = bytearray(NUM_REGISTERS)
        self.i = 0
        self.pc = 0

    def get_v(self, x: int) -> int:
        """Get value of register Vx.

        Raises:
            RegisterIndexError: If x is not in 0..15
        """
        if not 0 <= x < NUM_REGISTERS:
            raise RegisterIndexError(x)
        return self._v[x]

    def set_v(self, x: int, value: int) -> None:
        """Set register Vx, reduced modulo 256.

        Raises:
            RegisterIndexError: If x is not in 0..15
        """
        if not 0 <= x < NUM_REGISTERS:
            raise RegisterIndexError(x)
        self._v[x] = value & 0xFF

    @property
    def v(self) -> List[int]:
        return list(self._v)

    def snapshot(self) -> Dict[str, int]:
        regs = {f"V{x:X}": value for x, value in enumerate(self._v)}
        regs["I"] = self.i
        regs["PC"] = self.pc
        return regs


class Stack:
    """Fixed-depth return-address stack.

    Attributes:
        sp: Number of occupied slots (0..depth)
    """

    def __init__(self, depth: int = STACK_DEPTH):
        self._slots = [0] * depth
        self.sp = 0

    def __len__(self) -> int:
        return self.sp

    @property
    def depth(self) -> int:
        return len(self._slots)

    def push(self, addr: int) -> None:
        """Push a return address.

        Raises:
            StackOverflowError: If all slots are in use
        """
        if self.sp >= len(self._slots):
            raise StackOverflowError(
                f"stack overflow: depth {len(self._slots)} exhausted pushing 0x{addr:03X}"
            )
        self._slots[self.sp] = addr
        self.sp += 1

    def pop(self) -> int:
        """Pop the most recent return address.

        Raises:
            StackUnderflowError: If the stack is empty
        """
        if self.sp == 0:
            raise StackUnderflowError("stack underflow: return with empty stack")
        self.sp -= 1
        return self._slots[self.sp]

    def snapshot(self) -> List[int]:
        """Occupied slots, bottom first."""
        return self._slots[:self.sp]


@dataclass
class MachineState:
    """The single owned aggregate the engine executes against.

    Attributes:
        memory: 4096-byte address space
        registers: V0-VF, I, PC
        stack: Return-address stack
        halted: Whether the machine executed HALT or faulted
        cycle_count: Number of execution cycles completed
        fault: The error that halted the machine, if any
    """
    memory: Memory = field(default_factory=Memory)
    registers: Registers = field(default_factory=Registers)
    stack: Stack = field(default_factory=Stack)
    halted: bool = False
    cycle_count: int = 0
    fault: Optional[Chip8Error] = None

    def snapshot(self) -> dict:
        """Capture registers, stack and status for tracing.

        Memory is left out; it is too large to copy every cycle.
        """
        return {
            "registers": self.registers.snapshot(),
            "stack": self.stack.snapshot(),
            "sp": self.stack.sp,
            "halted": self.halted,
            "cycle_count": self.cycle_count,
        }

    def __str__(self) -> str:
        """Human-readable state representation."""
        regs = " ".join(f"V{x:X}={value:02X}" for x, value in enumerate(self.registers.v))
        return (
            f"[Cycle {self.cycle_count}] PC={self.registers.pc:03X} I={self.registers.i:03X} "
            f"SP={self.stack.sp} {regs} {'HALTED' if self.halted else ''}"
        ).rstrip()
