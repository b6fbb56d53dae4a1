"""Chip8Registry: Instruction handlers for the CHIP-8 interpreter.

Each operation key produced by the decoder maps to one handler. A handler
mutates the machine state (and calls into peripherals where needed) and
returns a NextPc directive instead of touching PC itself:

    ADVANCE:        PC + 2
    SKIP:           PC + 4
    NextPc.jump(a): PC = a

The engine applies the directive after the handler returns, so every
instruction moves PC the same way.

Registry Keys:
    OP_HALT, OP_CLS, OP_RET, OP_JP, OP_CALL: control flow
    OP_SE_*, OP_SNE_*, OP_SKP, OP_SKNP: conditional skips
    OP_LD_*, OP_ADD_*, OP_OR, OP_AND, OP_XOR, OP_SUB, OP_SUBN, OP_SHR, OP_SHL:
        register and memory transfers, ALU
    OP_RND, OP_DRW: random numbers, sprites
    OP_UNKNOWN: unmatched opcodes

The registry checks at construction that every decoder key has a handler,
then freezes.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict

from .decode import VALID_KEYS, Instruction
from .devices import Peripherals
from .errors import UnrecognizedOpcodeError
from .program import glyph_address
from .state import VF, MachineState


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NextPc:
    """Where PC goes after an instruction."""
    kind: str
    addr: int = 0

    @classmethod
    def jump(cls, addr: int) -> "NextPc":
        return cls("jump", addr)

    def resolve(self, pc: int) -> int:
        if self.kind == "advance":
            return (pc + 2) & 0xFFFF
        if self.kind == "skip":
            return (pc + 4) & 0xFFFF
        return self.addr & 0xFFFF


ADVANCE = NextPc("advance")
SKIP = NextPc("skip")

Handler = Callable[[MachineState, Peripherals, Dict[str, Any]], NextPc]


def _skip_if(condition: bool) -> NextPc:
    return SKIP if condition else ADVANCE


class Chip8Registry:
    """Frozen table of instruction handlers.

    Attributes:
        strict_opcodes: Raise on OP_UNKNOWN instead of skipping over it
        legacy_store: Fx55/Fx65 advance I past the stored registers
    """

    def __init__(self, strict_opcodes: bool = False, legacy_store: bool = False):
        self.strict_opcodes = strict_opcodes
        self.legacy_store = legacy_store
        self._handlers: Dict[str, Handler] = {}
        self._frozen = False
        self._register_all_handlers()

        missing = VALID_KEYS - set(self._handlers)
        if missing:
            raise RuntimeError(f"No handler for: {', '.join(sorted(missing))}")
        self.freeze()

    def _register_all_handlers(self) -> None:
        # Control flow
        self.register("OP_HALT", self._op_halt)
        self.register("OP_CLS", self._op_cls)
        self.register("OP_RET", self._op_ret)
        self.register("OP_JP", self._op_jp)
        self.register("OP_CALL", self._op_call)
        self.register("OP_JP_V0", self._op_jp_v0)

        # Conditional skips
        self.register("OP_SE_VX_BYTE", self._op_se_vx_byte)
        self.register("OP_SNE_VX_BYTE", self._op_sne_vx_byte)
        self.register("OP_SE_VX_VY", self._op_se_vx_vy)
        self.register("OP_SNE_VX_VY", self._op_sne_vx_vy)
        self.register("OP_SKP", self._op_skp)
        self.register("OP_SKNP", self._op_sknp)

        # Loads and immediate arithmetic
        self.register("OP_LD_VX_BYTE", self._op_ld_vx_byte)
        self.register("OP_ADD_VX_BYTE", self._op_add_vx_byte)
        self.register("OP_LD_I_ADDR", self._op_ld_i_addr)
        self.register("OP_ADD_I_VX", self._op_add_i_vx)

        # ALU
        self.register("OP_LD_VX_VY", self._op_ld_vx_vy)
        self.register("OP_OR", self._op_or)
        self.register("OP_AND", self._op_and)
        self.register("OP_XOR", self._op_xor)
        self.register("OP_ADD_VX_VY", self._op_add_vx_vy)
        self.register("OP_SUB", self._op_sub)
        self.register("OP_SHR", self._op_shr)
        self.register("OP_SUBN", self._op_subn)
        self.register("OP_SHL", self._op_shl)

        # Peripherals
        self.register("OP_RND", self._op_rnd)
        self.register("OP_DRW", self._op_drw)
        self.register("OP_LD_VX_DT", self._op_ld_vx_dt)
        self.register("OP_LD_VX_K", self._op_ld_vx_k)
        self.register("OP_LD_DT_VX", self._op_ld_dt_vx)
        self.register("OP_LD_ST_VX", self._op_ld_st_vx)

        # Memory
        self.register("OP_LD_F_VX", self._op_ld_f_vx)
        self.register("OP_LD_B_VX", self._op_ld_b_vx)
        self.register("OP_LD_I_VX", self._op_ld_i_vx)
        self.register("OP_LD_VX_I", self._op_ld_vx_i)

        self.register("OP_UNKNOWN", self._op_unknown)

    def register(self, key: str, handler: Handler) -> None:
        """Register an instruction handler.

        Args:
            key: Operation key (e.g., "OP_ADD_VX_VY")
            handler: Function taking (state, peripherals, params), returning NextPc

        Raises:
            RuntimeError: If registry is frozen
            ValueError: If key already registered or not a decoder key
        """
        if self._frozen:
            raise RuntimeError("Cannot register handlers: registry is frozen")
        if key in self._handlers:
            raise ValueError(f"Handler already registered: {key}")
        if key not in VALID_KEYS:
            raise ValueError(f"Not a decoder key: {key}")
        self._handlers[key] = handler

    def freeze(self) -> None:
        """Freeze the registry to prevent further modifications."""
        self._frozen = True

    def is_frozen(self) -> bool:
        return self._frozen

    def get_valid_keys(self) -> set:
        return set(self._handlers.keys())

    def execute(self, state: MachineState, io: Peripherals, instruction: Instruction) -> NextPc:
        """Execute a decoded instruction.

        Args:
            state: Machine state, mutated in place
            io: Peripherals
            instruction: Decoded instruction

        Returns:
            Directive for the next PC

        Raises:
            Chip8Error: On any machine fault
        """
        handler = self._handlers[instruction.key]
        params = instruction.params if instruction.valid else {"opcode": instruction.opcode}
        return handler(state, io, params)

    # =========================================================================
    # Control Flow
    # =========================================================================

    def _op_halt(self, state: MachineState, io: Peripherals, params: Dict[str, Any]) -> NextPc:
        """0000 - Stop execution. PC stays on the halt word."""
        state.halted = True
        return NextPc.jump(state.registers.pc)

    def _op_cls(self, state: MachineState, io: Peripherals, params: Dict[str, Any]) -> NextPc:
        """00E0 - Clear the display."""
        io.display.cls()
        return ADVANCE

    def _op_ret(self, state: MachineState, io: Peripherals, params: Dict[str, Any]) -> NextPc:
        """00EE - Return from a subroutine.

        Raises:
            StackUnderflowError: If there is no caller to return to
        """
        return NextPc.jump(state.stack.pop())

    def _op_jp(self, state: MachineState, io: Peripherals, params: Dict[str, Any]) -> NextPc:
        """1nnn - Jump to nnn."""
        return NextPc.jump(params["addr"])

    def _op_call(self, state: MachineState, io: Peripherals, params: Dict[str, Any]) -> NextPc:
        """2nnn - Call subroutine at nnn.

        Pushes the address of the following instruction, so RET resumes there.

        Raises:
            StackOverflowError: If the stack is full
        """
        state.stack.push((state.registers.pc + 2) & 0xFFFF)
        return NextPc.jump(params["addr"])

    def _op_jp_v0(self, state: MachineState, io: Peripherals, params: Dict[str, Any]) -> NextPc:
        """Bnnn - Jump to nnn + V0."""
        return NextPc.jump(params["addr"] + state.registers.get_v(0))

    # =========================================================================
    # Conditional Skips
    # =========================================================================

    def _op_se_vx_byte(self, state: MachineState, io: Peripherals, params: Dict[str, Any]) -> NextPc:
        """3xkk - Skip next instruction if Vx == kk."""
        return _skip_if(state.registers.get_v(params["x"]) == params["byte"])

    def _op_sne_vx_byte(self, state: MachineState, io: Peripherals, params: Dict[str, Any]) -> NextPc:
        """4xkk - Skip next instruction if Vx != kk."""
        return _skip_if(state.registers.get_v(params["x"]) != params["byte"])

    def _op_se_vx_vy(self, state: MachineState, io: Peripherals, params: Dict[str, Any]) -> NextPc:
        """5xy0 - Skip next instruction if Vx == Vy."""
        regs = state.registers
        return _skip_if(regs.get_v(params["x"]) == regs.get_v(params["y"]))

    def _op_sne_vx_vy(self, state: MachineState, io: Peripherals, params: Dict[str, Any]) -> NextPc:
        """9xy0 - Skip next instruction if Vx != Vy."""
        regs = state.registers
        return _skip_if(regs.get_v(params["x"]) != regs.get_v(params["y"]))

    def _op_skp(self, state: MachineState, io: Peripherals, params: Dict[str, Any]) -> NextPc:
        """Ex9E - Skip next instruction if key Vx is pressed."""
        key = state.registers.get_v(params["x"]) & 0xF
        return _skip_if(io.keypad.is_pressed(key))

    def _op_sknp(self, state: MachineState, io: Peripherals, params: Dict[str, Any]) -> NextPc:
        """ExA1 - Skip next instruction if key Vx is not pressed."""
        key = state.registers.get_v(params["x"]) & 0xF
        return _skip_if(not io.keypad.is_pressed(key))

    # =========================================================================
    # Loads and Immediate Arithmetic
    # =========================================================================

    def _op_ld_vx_byte(self, state: MachineState, io: Peripherals, params: Dict[str, Any]) -> NextPc:
        state.registers.set_v(params["x"], params["byte"])
        return ADVANCE

    def _op_add_vx_byte(self, state: MachineState, io: Peripherals, params: Dict[str, Any]) -> NextPc:
        """7xkk - Vx = Vx + kk, wrapping. VF is not touched."""
        x = params["x"]
        state.registers.set_v(x, state.registers.get_v(x) + params["byte"])
        return ADVANCE

    def _op_ld_i_addr(self, state: MachineState, io: Peripherals, params: Dict[str, Any]) -> NextPc:
        state.registers.i = params["addr"]
        return ADVANCE

    def _op_add_i_vx(self, state: MachineState, io: Peripherals, params: Dict[str, Any]) -> NextPc:
        """Fx1E - I = I + Vx, wrapping at 16 bits."""
        regs = state.registers
        regs.i = (regs.i + regs.get_v(params["x"])) & 0xFFFF
        return ADVANCE

    # =========================================================================
    # ALU (8xy_)
    #
    # VF is always written last, so with x == F the flag wins over the result.
    # =========================================================================

    def _op_ld_vx_vy(self, state: MachineState, io: Peripherals, params: Dict[str, Any]) -> NextPc:
        regs = state.registers
        regs.set_v(params["x"], regs.get_v(params["y"]))
        return ADVANCE

    def _op_or(self, state: MachineState, io: Peripherals, params: Dict[str, Any]) -> NextPc:
        regs = state.registers
        x, y = params["x"], params["y"]
        regs.set_v(x, regs.get_v(x) | regs.get_v(y))
        return ADVANCE

    def _op_and(self, state: MachineState, io: Peripherals, params: Dict[str, Any]) -> NextPc:
        regs = state.registers
        x, y = params["x"], params["y"]
        regs.set_v(x, regs.get_v(x) & regs.get_v(y))
        return ADVANCE

    def _op_xor(self, state: MachineState, io: Peripherals, params: Dict[str, Any]) -> NextPc:
        regs = state.registers
        x, y = params["x"], params["y"]
        regs.set_v(x, regs.get_v(x) ^ regs.get_v(y))
        return ADVANCE

    def _op_add_vx_vy(self, state: MachineState, io: Peripherals, params: Dict[str, Any]) -> NextPc:
        """8xy4 - Vx = Vx + Vy, VF = carry."""
        regs = state.registers
        x, y = params["x"], params["y"]
        total = regs.get_v(x) + regs.get_v(y)
        regs.set_v(x, total)
        regs.set_v(VF, 1 if total > 0xFF else 0)
        return ADVANCE

    def _op_sub(self, state: MachineState, io: Peripherals, params: Dict[str, Any]) -> NextPc:
        """8xy5 - Vx = Vx - Vy, VF = 1 when there is no borrow (Vx >= Vy)."""
        regs = state.registers
        x, y = params["x"], params["y"]
        vx, vy = regs.get_v(x), regs.get_v(y)
        regs.set_v(x, vx - vy)
        regs.set_v(VF, 1 if vx >= vy else 0)
        return ADVANCE

    def _op_shr(self, state: MachineState, io: Peripherals, params: Dict[str, Any]) -> NextPc:
        """8xy6 - Vx = Vx >> 1, VF = bit shifted out."""
        regs = state.registers
        vx = regs.get_v(params["x"])
        regs.set_v(params["x"], vx >> 1)
        regs.set_v(VF, vx & 0x1)
        return ADVANCE

    def _op_subn(self, state: MachineState, io: Peripherals, params: Dict[str, Any]) -> NextPc:
        """8xy7 - Vx = Vy - Vx, VF = 1 when there is no borrow (Vy >= Vx)."""
        regs = state.registers
        x, y = params["x"], params["y"]
        vx, vy = regs.get_v(x), regs.get_v(y)
        regs.set_v(x, vy - vx)
        regs.set_v(VF, 1 if vy >= vx else 0)
        return ADVANCE

    def _op_shl(self, state: MachineState, io: Peripherals, params: Dict[str, Any]) -> NextPc:
        """8xyE - Vx = Vx << 1, VF = bit shifted out."""
        regs = state.registers
        vx = regs.get_v(params["x"])
        regs.set_v(params["x"], vx << 1)
        regs.set_v(VF, (vx >> 7) & 0x1)
        return ADVANCE

    # =========================================================================
    # Peripherals
    # =========================================================================

    def _op_rnd(self, state: MachineState, io: Peripherals, params: Dict[str, Any]) -> NextPc:
        """Cxkk - Vx = random byte AND kk."""
        state.registers.set_v(params["x"], io.rng.randrange(256) & params["byte"])
        return ADVANCE

    def _op_drw(self, state: MachineState, io: Peripherals, params: Dict[str, Any]) -> NextPc:
        """Dxyn - Draw n-byte sprite from memory at I to (Vx, Vy), VF = collision.

        Raises:
            AddressRangeError: If the sprite runs past the end of memory
        """
        regs = state.registers
        sprite = state.memory.read(regs.i, params["nibble"])
        collision = io.display.draw(regs.get_v(params["x"]), regs.get_v(params["y"]), sprite)
        regs.set_v(VF, 1 if collision else 0)
        return ADVANCE

    def _op_ld_vx_dt(self, state: MachineState, io: Peripherals, params: Dict[str, Any]) -> NextPc:
        state.registers.set_v(params["x"], io.timers.delay)
        return ADVANCE

    def _op_ld_vx_k(self, state: MachineState, io: Peripherals, params: Dict[str, Any]) -> NextPc:
        """Fx0A - Wait for a key press, store the key in Vx.

        With no key available the same instruction runs again next cycle.
        """
        key = io.keypad.wait_key()
        if key is None:
            return NextPc.jump(state.registers.pc)
        state.registers.set_v(params["x"], key)
        return ADVANCE

    def _op_ld_dt_vx(self, state: MachineState, io: Peripherals, params: Dict[str, Any]) -> NextPc:
        io.timers.delay = state.registers.get_v(params["x"])
        return ADVANCE

    def _op_ld_st_vx(self, state: MachineState, io: Peripherals, params: Dict[str, Any]) -> NextPc:
        io.timers.sound = state.registers.get_v(params["x"])
        return ADVANCE

    # =========================================================================
    # Memory
    # =========================================================================

    def _op_ld_f_vx(self, state: MachineState, io: Peripherals, params: Dict[str, Any]) -> NextPc:
        """Fx29 - I = address of the font glyph for digit Vx."""
        state.registers.i = glyph_address(state.registers.get_v(params["x"]))
        return ADVANCE

    def _op_ld_b_vx(self, state: MachineState, io: Peripherals, params: Dict[str, Any]) -> NextPc:
        """Fx33 - Store BCD of Vx at I, I+1, I+2."""
        value = state.registers.get_v(params["x"])
        state.memory.write(state.registers.i, bytes([value // 100, (value // 10) % 10, value % 10]))
        return ADVANCE

    def _op_ld_i_vx(self, state: MachineState, io: Peripherals, params: Dict[str, Any]) -> NextPc:
        """Fx55 - Store V0..Vx in memory starting at I."""
        regs = state.registers
        count = params["x"] + 1
        state.memory.write(regs.i, bytes(regs.v[:count]))
        if self.legacy_store:
            regs.i = (regs.i + count) & 0xFFFF
        return ADVANCE

    def _op_ld_vx_i(self, state: MachineState, io: Peripherals, params: Dict[str, Any]) -> NextPc:
        """Fx65 - Load V0..Vx from memory starting at I."""
        regs = state.registers
        count = params["x"] + 1
        for x, value in enumerate(state.memory.read(regs.i, count)):
            regs.set_v(x, value)
        if self.legacy_store:
            regs.i = (regs.i + count) & 0xFFFF
        return ADVANCE

    # =========================================================================
    # Unmatched opcodes
    # =========================================================================

    def _op_unknown(self, state: MachineState, io: Peripherals, params: Dict[str, Any]) -> NextPc:
        """Skip over an opcode outside the instruction set.

        Raises:
            UnrecognizedOpcodeError: In strict mode
        """
        opcode = params.get("opcode", 0)
        pc = state.registers.pc
        if self.strict_opcodes:
            raise UnrecognizedOpcodeError(opcode, pc)
        logger.warning("Ignoring unknown opcode %04X at PC 0x%03X", opcode, pc)
        return ADVANCE
