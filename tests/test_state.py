"""Tests for Memory, Registers, Stack and MachineState."""

import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest
from chip8_core.errors import (
    AddressRangeError,
    Chip8Error,
    RegisterIndexError,
    StackOverflowError,
    StackUnderflowError,
)
from chip8_core.state import MEMORY_SIZE, MachineState, Memory, Registers, Stack


class TestMemory:
    """Test bounds-checked memory access."""

    @pytest.fixture
    def memory(self):
        return Memory()

    def test_starts_zeroed(self, memory):
        """Fresh memory is 4096 zero bytes."""
        assert len(memory) == MEMORY_SIZE
        assert memory.read(0, MEMORY_SIZE) == bytes(MEMORY_SIZE)

    @pytest.mark.parametrize("addr,data", [
        (0, b"\x12\x34"),
        (0x200, bytes(range(16))),
        (MEMORY_SIZE - 3, b"\xAA\xBB\xCC"),
        (0, bytes([0xFF]) * MEMORY_SIZE),
    ])
    def test_write_then_read(self, memory, addr, data):
        """Written bytes read back unchanged."""
        memory.write(addr, data)
        assert memory.read(addr, len(data)) == data

    def test_read_past_end(self, memory):
        """Reading beyond the last byte fails."""
        with pytest.raises(AddressRangeError):
            memory.read(MEMORY_SIZE - 1, 2)

    def test_write_past_end_leaves_memory_unmodified(self, memory):
        """A partially out-of-range write writes nothing."""
        with pytest.raises(AddressRangeError):
            memory.write(MEMORY_SIZE - 2, b"\x01\x02\x03")
        assert memory.read(MEMORY_SIZE - 2, 2) == b"\x00\x00"

    def test_negative_address(self, memory):
        with pytest.raises(AddressRangeError):
            memory.read(-1, 1)

    def test_empty_range_at_end(self, memory):
        """A zero-length access at the boundary is in range."""
        assert memory.read(MEMORY_SIZE, 0) == b""

    def test_check_range(self, memory):
        memory.check_range(MEMORY_SIZE - 2, 2)
        with pytest.raises(AddressRangeError):
            memory.check_range(MEMORY_SIZE - 1, 2)

    def test_error_is_chip8_and_index_error(self, memory):
        with pytest.raises(Chip8Error):
            memory.read(MEMORY_SIZE, 1)
        with pytest.raises(IndexError):
            memory.read(MEMORY_SIZE, 1)

    def test_read_word_big_endian(self, memory):
        memory.write(0x10, b"\x8A\x14")
        assert memory.read_word(0x10) == 0x8A14

    def test_read_word_at_last_byte(self, memory):
        with pytest.raises(AddressRangeError):
            memory.read_word(MEMORY_SIZE - 1)

    def test_clear(self, memory):
        memory.write(0, b"\x01")
        memory.clear()
        assert memory.read(0, 1) == b"\x00"


class TestRegisters:
    """Test the register file."""

    @pytest.fixture
    def regs(self):
        return Registers()

    def test_defaults(self, regs):
        assert regs.v == [0] * 16
        assert regs.i == 0
        assert regs.pc == 0

    def test_set_get(self, regs):
        regs.set_v(0xA, 0x42)
        assert regs.get_v(0xA) == 0x42

    def test_set_wraps_to_byte(self, regs):
        regs.set_v(0, 0x1FF)
        assert regs.get_v(0) == 0xFF
        regs.set_v(1, -1)
        assert regs.get_v(1) == 0xFF

    @pytest.mark.parametrize("index", [16, 17, 255, -1])
    def test_invalid_index(self, regs, index):
        """Indices outside 0..15 fail."""
        with pytest.raises(RegisterIndexError):
            regs.get_v(index)
        with pytest.raises(RegisterIndexError):
            regs.set_v(index, 0)

    def test_snapshot(self, regs):
        regs.set_v(0xF, 1)
        regs.i = 0x300
        regs.pc = 0x202
        snap = regs.snapshot()
        assert snap["VF"] == 1
        assert snap["V0"] == 0
        assert snap["I"] == 0x300
        assert snap["PC"] == 0x202
        assert len(snap) == 18


class TestStack:
    """Test the return-address stack."""

    @pytest.fixture
    def stack(self):
        return Stack()

    def test_lifo(self, stack):
        """Pops return addresses in reverse push order."""
        addrs = [0x200 + 2 * n for n in range(16)]
        for addr in addrs:
            stack.push(addr)
        assert stack.sp == 16
        popped = [stack.pop() for _ in addrs]
        assert popped == list(reversed(addrs))
        assert stack.sp == 0

    def test_seventeenth_push_overflows(self, stack):
        for n in range(16):
            stack.push(n)
        with pytest.raises(StackOverflowError):
            stack.push(0x300)
        assert stack.sp == 16

    def test_pop_empty_underflows(self, stack):
        with pytest.raises(StackUnderflowError):
            stack.pop()
        assert stack.sp == 0

    def test_snapshot_and_len(self, stack):
        stack.push(0x10)
        stack.push(0x20)
        assert len(stack) == 2
        assert stack.snapshot() == [0x10, 0x20]
        assert stack.depth == 16


class TestMachineState:
    """Test the aggregate state."""

    def test_default_state(self):
        state = MachineState()
        assert state.halted is False
        assert state.cycle_count == 0
        assert state.registers.pc == 0
        assert state.stack.sp == 0

    def test_snapshot_is_detached(self):
        """Snapshots do not change when state changes later."""
        state = MachineState()
        snap = state.snapshot()
        state.registers.set_v(3, 9)
        state.stack.push(0x100)
        assert snap["registers"]["V3"] == 0
        assert snap["stack"] == []
        assert snap["sp"] == 0

    def test_str(self):
        state = MachineState()
        state.halted = True
        text = str(state)
        assert "PC=000" in text
        assert "HALTED" in text
