"""Instruction decoder for the CHIP-8 interpreter.

Splits a 16-bit opcode into four nibbles and maps it onto an operation key
plus operands. The high nibble selects the instruction group; the low
nibble(s) disambiguate within a group.

Architecture:
    opcode -> decode -> Instruction(key, params) -> Registry -> execute

Decoding is total: every 16-bit value yields exactly one Instruction, with
OP_UNKNOWN for nibble patterns outside the instruction set.

Operand names:
    addr:   12-bit address (nnn)
    byte:   8-bit immediate (kk)
    nibble: 4-bit immediate (n)
    x, y:   register indices
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import FrozenSet, Mapping


HALT_OPCODE = 0x0000


@dataclass(frozen=True)
class Instruction:
    """Result of decoding one opcode.

    Attributes:
        key: Operation key (e.g., "OP_ADD_VX_VY")
        params: Read-only operands for the handler
        opcode: Raw 16-bit instruction word
    """
    key: str
    params: Mapping[str, int] = field(default_factory=dict, hash=False)
    opcode: int = 0

    def __post_init__(self):
        object.__setattr__(self, "params", MappingProxyType(dict(self.params)))

    @property
    def valid(self) -> bool:
        return self.key != "OP_UNKNOWN"

    def __str__(self) -> str:
        operands = ", ".join(f"{name}={value:X}" for name, value in self.params.items())
        return f"{self.opcode:04X} {self.key}({operands})"


# Valid operation keys that decode() can emit
VALID_KEYS: FrozenSet[str] = frozenset({
    "OP_HALT",
    "OP_CLS",
    "OP_RET",
    "OP_JP",
    "OP_CALL",
    "OP_SE_VX_BYTE",
    "OP_SNE_VX_BYTE",
    "OP_SE_VX_VY",
    "OP_LD_VX_BYTE",
    "OP_ADD_VX_BYTE",
    "OP_LD_VX_VY",
    "OP_OR",
    "OP_AND",
    "OP_XOR",
    "OP_ADD_VX_VY",
    "OP_SUB",
    "OP_SHR",
    "OP_SUBN",
    "OP_SHL",
    "OP_SNE_VX_VY",
    "OP_LD_I_ADDR",
    "OP_JP_V0",
    "OP_RND",
    "OP_DRW",
    "OP_SKP",
    "OP_SKNP",
    "OP_LD_VX_DT",
    "OP_LD_VX_K",
    "OP_LD_DT_VX",
    "OP_LD_ST_VX",
    "OP_ADD_I_VX",
    "OP_LD_F_VX",
    "OP_LD_B_VX",
    "OP_LD_I_VX",
    "OP_LD_VX_I",
    "OP_UNKNOWN",
})

# 8xy_ group, keyed by the low nibble
_ALU_KEYS = {
    0x0: "OP_LD_VX_VY",
    0x1: "OP_OR",
    0x2: "OP_AND",
    0x3: "OP_XOR",
    0x4: "OP_ADD_VX_VY",
    0x5: "OP_SUB",
    0x6: "OP_SHR",
    0x7: "OP_SUBN",
    0xE: "OP_SHL",
}

# Ex__ and Fx__ groups, keyed by the low byte
_KEY_KEYS = {
    0x9E: "OP_SKP",
    0xA1: "OP_SKNP",
}

_MISC_KEYS = {
    0x07: "OP_LD_VX_DT",
    0x0A: "OP_LD_VX_K",
    0x15: "OP_LD_DT_VX",
    0x18: "OP_LD_ST_VX",
    0x1E: "OP_ADD_I_VX",
    0x29: "OP_LD_F_VX",
    0x33: "OP_LD_B_VX",
    0x55: "OP_LD_I_VX",
    0x65: "OP_LD_VX_I",
}


def decode(opcode: int) -> Instruction:
    """Decode a 16-bit opcode.

    Args:
        opcode: Raw instruction word (only the low 16 bits are used)

    Returns:
        Instruction with operation key and operands
    """
    opcode &= 0xFFFF
    group = (opcode & 0xF000) >> 12
    x = (opcode & 0x0F00) >> 8
    y = (opcode & 0x00F0) >> 4
    nibble = opcode & 0x000F
    byte = opcode & 0x00FF
    addr = opcode & 0x0FFF

    def make(key: str, **params: int) -> Instruction:
        return Instruction(key, params, opcode)

    if group == 0x0:
        if opcode == HALT_OPCODE:
            return make("OP_HALT")
        if opcode == 0x00E0:
            return make("OP_CLS")
        if opcode == 0x00EE:
            return make("OP_RET")
    elif group == 0x1:
        return make("OP_JP", addr=addr)
    elif group == 0x2:
        return make("OP_CALL", addr=addr)
    elif group == 0x3:
        return make("OP_SE_VX_BYTE", x=x, byte=byte)
    elif group == 0x4:
        return make("OP_SNE_VX_BYTE", x=x, byte=byte)
    elif group == 0x5:
        if nibble == 0x0:
            return make("OP_SE_VX_VY", x=x, y=y)
    elif group == 0x6:
        return make("OP_LD_VX_BYTE", x=x, byte=byte)
    elif group == 0x7:
        return make("OP_ADD_VX_BYTE", x=x, byte=byte)
    elif group == 0x8:
        key = _ALU_KEYS.get(nibble)
        if key in ("OP_SHR", "OP_SHL"):
            return make(key, x=x)
        if key is not None:
            return make(key, x=x, y=y)
    elif group == 0x9:
        if nibble == 0x0:
            return make("OP_SNE_VX_VY", x=x, y=y)
    elif group == 0xA:
        return make("OP_LD_I_ADDR", addr=addr)
    elif group == 0xB:
        return make("OP_JP_V0", addr=addr)
    elif group == 0xC:
        return make("OP_RND", x=x, byte=byte)
    elif group == 0xD:
        return make("OP_DRW", x=x, y=y, nibble=nibble)
    elif group == 0xE:
        key = _KEY_KEYS.get(byte)
        if key is not None:
            return make(key, x=x)
    else:
        key = _MISC_KEYS.get(byte)
        if key is not None:
            return make(key, x=x)

    return make("OP_UNKNOWN")
