"""Chip8CPU: Main orchestrator for the CHIP-8 interpreter.

This module implements the full execution cycle:
    MEMORY -> FETCH -> DECODE -> KEY -> REGISTRY -> EXECUTE -> NEXT PC

Each handler returns a NextPc directive; the CPU applies it after the
handler returns. Machine faults halt the CPU, are recorded in the trace
and propagate to the caller unchanged.
"""

import logging
from collections import deque
from dataclasses import dataclass
from typing import Deque, Dict, Iterable, List, Optional, Union

from .decode import Instruction, decode
from .devices import Peripherals
from .errors import Chip8Error, CycleLimitError
from .program import FONT_ADDRESS, FONTSET, ROM_ADDRESS, parse_program, words_to_bytes
from .registry import Chip8Registry
from .state import MachineState


logger = logging.getLogger(__name__)


@dataclass
class ExecutionTraceEntry:
    """Single entry in the execution trace.

    Attributes:
        cycle: Cycle number (0-indexed)
        pc: Address the instruction was fetched from
        opcode: Raw instruction word (None if the fetch itself faulted)
        instruction: Decoded instruction (None if the fetch itself faulted)
        pre_state: State before execution
        post_state: State after execution
        error: Error message if execution faulted
    """
    cycle: int
    pc: int
    opcode: Optional[int]
    instruction: Optional[Instruction]
    pre_state: dict
    post_state: dict
    error: Optional[str] = None

    @property
    def key(self) -> str:
        return self.instruction.key if self.instruction else "<FETCH FAULT>"

    @property
    def params(self) -> dict:
        return dict(self.instruction.params) if self.instruction else {}


class Chip8CPU:
    """CHIP-8 interpreter.

    Attributes:
        io: Display, keypad, timers and random source
        registry: Instruction handlers
        state: Current machine state
        trace: Most recent execution trace entries (at most trace_limit)
        max_cycles: Cycle limit for run() (safety limit)
        record_trace: Whether step() appends trace entries
    """

    DEFAULT_MAX_CYCLES = 10000
    DEFAULT_TRACE_LIMIT = 10000

    def __init__(
        self,
        peripherals: Optional[Peripherals] = None,
        seed: Optional[int] = None,
        max_cycles: int = DEFAULT_MAX_CYCLES,
        strict_opcodes: bool = False,
        legacy_store: bool = False,
        record_trace: bool = True,
        trace_limit: Optional[int] = DEFAULT_TRACE_LIMIT,
    ):
        """Initialize the CPU with an all-zero machine.

        Args:
            peripherals: Collaborators to use (fresh in-memory ones if None)
            seed: Seed for the RND source when peripherals is None
            max_cycles: Maximum cycles run() executes before failing
            strict_opcodes: Fault on unknown opcodes instead of skipping them
            legacy_store: Fx55/Fx65 advance I (original interpreter quirk)
            record_trace: Record an ExecutionTraceEntry per cycle
            trace_limit: Entries kept before the oldest are dropped (None keeps all)
        """
        self.io = peripherals if peripherals is not None else Peripherals.seeded(seed)
        self.registry = Chip8Registry(strict_opcodes=strict_opcodes, legacy_store=legacy_store)
        self.state = MachineState()
        self.trace: Deque[ExecutionTraceEntry] = deque(maxlen=trace_limit)
        self.max_cycles = max_cycles
        self.record_trace = record_trace

    def reset(self) -> None:
        """Return to the all-zero machine and clear the trace."""
        self.state = MachineState()
        self.trace.clear()
        logger.info("Machine reset")

    # =========================================================================
    # Loading
    # =========================================================================

    def load_bytes(self, data: bytes, address: int = 0) -> None:
        """Write raw bytes into memory.

        Raises:
            AddressRangeError: If the data does not fit
        """
        self.state.memory.write(address, bytes(data))
        logger.info("Loaded %d bytes at 0x%03X", len(data), address)

    def load_words(self, words: Iterable[int], address: int = 0) -> None:
        """Write 16-bit words into memory, big-endian.

        Raises:
            AddressRangeError: If the words do not fit
        """
        self.load_bytes(words_to_bytes(list(words)), address)

    def load_program(self, source: str, address: int = 0) -> None:
        """Load hex program text (see program.parse_program).

        Every segment is checked before any is written.

        Raises:
            ValueError: On malformed text
            AddressRangeError: If a segment does not fit
        """
        segments = [(start, words_to_bytes(words)) for start, words in parse_program(source, address)]
        for start, data in segments:
            self.state.memory.check_range(start, len(data))
        for start, data in segments:
            self.load_bytes(data, start)

    def load_font(self) -> None:
        """Write the hex digit glyphs at FONT_ADDRESS."""
        self.state.memory.write(FONT_ADDRESS, FONTSET)

    def load_rom(self, data: bytes) -> None:
        """Load a ROM the way a CHIP-8 machine boots it.

        Font at 0x050, ROM at 0x200, PC at 0x200.

        Raises:
            AddressRangeError: If the ROM is too large
        """
        self.state.memory.check_range(ROM_ADDRESS, len(data))
        self.load_font()
        self.load_bytes(data, ROM_ADDRESS)
        self.state.registers.pc = ROM_ADDRESS

    # =========================================================================
    # Execution
    # =========================================================================

    def fetch(self) -> int:
        """Read the instruction word at PC.

        Raises:
            AddressRangeError: If PC + 1 is past the end of memory
        """
        return self.state.memory.read_word(self.state.registers.pc)

    def step(self) -> Optional[ExecutionTraceEntry]:
        """Execute a single instruction cycle.

        Performs: FETCH -> DECODE -> EXECUTE -> apply NextPc

        Returns:
            ExecutionTraceEntry for the cycle (None if tracing is off)

        Raises:
            RuntimeError: If the machine is halted
            Chip8Error: On a machine fault; the machine is halted first
        """
        state = self.state
        self._check_fault()
        if state.halted:
            raise RuntimeError("CPU is halted")

        pc = state.registers.pc
        cycle = state.cycle_count
        pre_state = state.snapshot() if self.record_trace else {}
        opcode: Optional[int] = None
        instruction: Optional[Instruction] = None

        try:
            opcode = self.fetch()
            instruction = decode(opcode)
            logger.debug("PC=0x%03X %s", pc, instruction)
            next_pc = self.registry.execute(state, self.io, instruction)
        except Chip8Error as e:
            state.halted = True
            state.fault = e
            logger.error("Fault at PC 0x%03X: %s", pc, e)
            self._record(cycle, pc, opcode, instruction, pre_state, str(e))
            raise

        state.registers.pc = next_pc.resolve(pc)
        state.cycle_count += 1
        return self._record(cycle, pc, opcode, instruction, pre_state)

    def _record(
        self,
        cycle: int,
        pc: int,
        opcode: Optional[int],
        instruction: Optional[Instruction],
        pre_state: dict,
        error: Optional[str] = None,
    ) -> Optional[ExecutionTraceEntry]:
        if not self.record_trace:
            return None
        entry = ExecutionTraceEntry(
            cycle=cycle,
            pc=pc,
            opcode=opcode,
            instruction=instruction,
            pre_state=pre_state,
            post_state=self.state.snapshot(),
            error=error,
        )
        self.trace.append(entry)
        return entry

    def run(self, max_cycles: Optional[int] = None) -> List[ExecutionTraceEntry]:
        """Run until HALT.

        Args:
            max_cycles: Override maximum cycles (uses instance default if None)

        Returns:
            Execution trace (the most recent trace_limit entries)

        Raises:
            CycleLimitError: If the limit is reached before HALT
            Chip8Error: On a machine fault
            RuntimeError: If an earlier fault already halted the machine
        """
        self._check_fault()
        limit = max_cycles if max_cycles is not None else self.max_cycles

        while not self.state.halted and self.state.cycle_count < limit:
            self.step()

        if not self.state.halted:
            raise CycleLimitError(f"Max cycles ({limit}) exceeded")

        return self.get_trace()

    def run_for(self, cycles: int) -> int:
        """Execute at most ``cycles`` instructions, stopping early on HALT.

        Returns:
            Number of instructions executed

        Raises:
            Chip8Error: On a machine fault
            RuntimeError: If an earlier fault already halted the machine
        """
        self._check_fault()
        executed = 0
        while executed < cycles and not self.state.halted:
            self.step()
            executed += 1
        return executed

    def _check_fault(self) -> None:
        fault = self.state.fault
        if fault is not None:
            raise RuntimeError(f"CPU halted by fault: {fault}") from fault

    # =========================================================================
    # Inspection
    # =========================================================================

    def get_register(self, reg: Union[str, int]) -> int:
        """Get value of a register.

        Args:
            reg: "V0".."VF", "I", "PC", "SP" (case insensitive) or an index 0-15

        Returns:
            Register value

        Raises:
            RegisterIndexError: If a V register index is out of range
            KeyError: If the name is not a register
        """
        regs = self.state.registers
        if isinstance(reg, int):
            return regs.get_v(reg)

        name = reg.upper()
        if name == "I":
            return regs.i
        if name == "PC":
            return regs.pc
        if name == "SP":
            return self.state.stack.sp
        if name.startswith("V") and len(name) == 2:
            try:
                index = int(name[1], 16)
            except ValueError:
                raise KeyError(f"Invalid register: {reg}") from None
            return regs.get_v(index)
        raise KeyError(f"Invalid register: {reg}")

    def dump_registers(self) -> Dict[str, int]:
        """Get V0-VF, I and PC."""
        return self.state.registers.snapshot()

    def get_pc(self) -> int:
        return self.state.registers.pc

    def get_cycle_count(self) -> int:
        return self.state.cycle_count

    def is_halted(self) -> bool:
        return self.state.halted

    def get_trace(self) -> List[ExecutionTraceEntry]:
        return list(self.trace)

    def print_trace(self) -> None:
        """Print execution trace in human-readable format."""
        print("=" * 70)
        print("CHIP-8 EXECUTION TRACE")
        print("=" * 70)

        for entry in self.trace:
            status = "OK" if not entry.error else f"ERROR: {entry.error}"
            print(f"\n[Cycle {entry.cycle}] PC=0x{entry.pc:03X} {status}")
            if entry.opcode is not None:
                print(f"  Opcode: {entry.opcode:04X}")
            print(f"  Key: {entry.key}")
            print(f"  Params: {entry.params}")

            pre_regs = entry.pre_state.get("registers", {})
            post_regs = entry.post_state.get("registers", {})
            changes = []
            for reg, value in pre_regs.items():
                if reg != "PC" and value != post_regs.get(reg, value):
                    changes.append(f"{reg}: {value:02X} → {post_regs[reg]:02X}")
            if changes:
                print(f"  Changes: {', '.join(changes)}")

        print("\n" + "=" * 70)
        print("FINAL STATE")
        print("=" * 70)
        print(f"  {self.state}")

    def get_summary(self) -> Dict:
        """Get execution summary.

        Returns:
            Dictionary with execution statistics and final state
        """
        return {
            "cycles": self.get_cycle_count(),
            "halted": self.is_halted(),
            "fault": str(self.state.fault) if self.state.fault is not None else None,
            "registers": self.dump_registers(),
            "stack": self.state.stack.snapshot(),
            "pc": self.get_pc(),
            "timers": {"delay": self.io.timers.delay, "sound": self.io.timers.sound},
            "trace_length": len(self.trace),
            "errors": [e.error for e in self.trace if e.error],
        }
