"""Tests for the opcode decoder."""

import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest
from chip8_core.decode import VALID_KEYS, Instruction, decode


class TestDecodeControlFlow:
    """Test decode of 0nnn, 1nnn, 2nnn, Bnnn."""

    def test_halt(self):
        assert decode(0x0000).key == "OP_HALT"

    def test_cls(self):
        assert decode(0x00E0).key == "OP_CLS"

    def test_ret(self):
        assert decode(0x00EE).key == "OP_RET"

    def test_jp(self):
        result = decode(0x1ABC)
        assert result.key == "OP_JP"
        assert result.params == {"addr": 0xABC}

    def test_call(self):
        result = decode(0x2100)
        assert result.key == "OP_CALL"
        assert result.params == {"addr": 0x100}

    def test_jp_v0(self):
        result = decode(0xB123)
        assert result.key == "OP_JP_V0"
        assert result.params == {"addr": 0x123}

    @pytest.mark.parametrize("opcode", [0x0001, 0x00E1, 0x00EF, 0x0123, 0x0FFF])
    def test_other_0nnn_unknown(self, opcode):
        """0nnn machine-code calls are outside the instruction set."""
        assert decode(opcode).key == "OP_UNKNOWN"


class TestDecodeRegisterOps:
    """Test decode of register load, skip and ALU groups."""

    def test_se_vx_byte(self):
        result = decode(0x3A42)
        assert result.key == "OP_SE_VX_BYTE"
        assert result.params == {"x": 0xA, "byte": 0x42}

    def test_sne_vx_byte(self):
        assert decode(0x4A42).key == "OP_SNE_VX_BYTE"

    def test_se_vx_vy(self):
        result = decode(0x5120)
        assert result.key == "OP_SE_VX_VY"
        assert result.params == {"x": 1, "y": 2}

    def test_5xy_nonzero_nibble_unknown(self):
        assert decode(0x5121).key == "OP_UNKNOWN"

    def test_sne_vx_vy(self):
        assert decode(0x9AB0).key == "OP_SNE_VX_VY"
        assert decode(0x9AB1).key == "OP_UNKNOWN"

    def test_ld_vx_byte(self):
        result = decode(0x6007)
        assert result.key == "OP_LD_VX_BYTE"
        assert result.params == {"x": 0, "byte": 7}

    def test_add_vx_byte(self):
        result = decode(0x7FFF)
        assert result.key == "OP_ADD_VX_BYTE"
        assert result.params == {"x": 0xF, "byte": 0xFF}

    @pytest.mark.parametrize("opcode,key", [
        (0x8010, "OP_LD_VX_VY"),
        (0x8011, "OP_OR"),
        (0x8012, "OP_AND"),
        (0x8013, "OP_XOR"),
        (0x8014, "OP_ADD_VX_VY"),
        (0x8015, "OP_SUB"),
        (0x8017, "OP_SUBN"),
    ])
    def test_alu_two_register(self, opcode, key):
        result = decode(opcode)
        assert result.key == key
        assert result.params == {"x": 0, "y": 1}

    def test_shifts_take_x_only(self):
        assert decode(0x8A16) == Instruction("OP_SHR", {"x": 0xA}, 0x8A16)
        assert decode(0x8A1E) == Instruction("OP_SHL", {"x": 0xA}, 0x8A1E)

    @pytest.mark.parametrize("low", [0x8, 0x9, 0xA, 0xB, 0xC, 0xD, 0xF])
    def test_alu_gaps_unknown(self, low):
        assert decode(0x8120 | low).key == "OP_UNKNOWN"


class TestDecodeMemoryAndDevices:
    """Test decode of Annn, Cxkk, Dxyn, Ex__ and Fx__."""

    def test_ld_i_addr(self):
        result = decode(0xA2F0)
        assert result.key == "OP_LD_I_ADDR"
        assert result.params == {"addr": 0x2F0}

    def test_rnd(self):
        result = decode(0xC30F)
        assert result.key == "OP_RND"
        assert result.params == {"x": 3, "byte": 0x0F}

    def test_drw(self):
        result = decode(0xD125)
        assert result.key == "OP_DRW"
        assert result.params == {"x": 1, "y": 2, "nibble": 5}

    def test_key_skips(self):
        assert decode(0xE49E) == Instruction("OP_SKP", {"x": 4}, 0xE49E)
        assert decode(0xE4A1) == Instruction("OP_SKNP", {"x": 4}, 0xE4A1)
        assert decode(0xE4A2).key == "OP_UNKNOWN"

    @pytest.mark.parametrize("low,key", [
        (0x07, "OP_LD_VX_DT"),
        (0x0A, "OP_LD_VX_K"),
        (0x15, "OP_LD_DT_VX"),
        (0x18, "OP_LD_ST_VX"),
        (0x1E, "OP_ADD_I_VX"),
        (0x29, "OP_LD_F_VX"),
        (0x33, "OP_LD_B_VX"),
        (0x55, "OP_LD_I_VX"),
        (0x65, "OP_LD_VX_I"),
    ])
    def test_fx_group(self, low, key):
        result = decode(0xF700 | low)
        assert result.key == key
        assert result.params == {"x": 7}

    def test_fx_gap_unknown(self):
        assert decode(0xF0A7).key == "OP_UNKNOWN"
        assert decode(0xF000).key == "OP_UNKNOWN"


class TestDecodeTotality:
    """Every 16-bit value decodes to exactly one known key."""

    def test_all_opcodes(self):
        seen = set()
        for opcode in range(0x10000):
            result = decode(opcode)
            assert result.key in VALID_KEYS
            assert result.opcode == opcode
            seen.add(result.key)
        assert seen == set(VALID_KEYS)

    def test_operands_fit_nibbles(self):
        for opcode in (0x8FE4, 0xDFFF, 0xFF65):
            params = decode(opcode).params
            for name in ("x", "y", "nibble"):
                if name in params:
                    assert 0 <= params[name] <= 0xF

    def test_only_low_16_bits_used(self):
        assert decode(0x16007) == decode(0x6007)

    def test_valid_flag(self):
        assert decode(0x6007).valid is True
        assert decode(0x5121).valid is False

    def test_hashable(self):
        assert hash(decode(0x6007)) == hash(decode(0x6007))
        assert len({decode(0x6007), decode(0x6007), decode(0x6008)}) == 2

    def test_params_read_only(self):
        with pytest.raises(TypeError):
            decode(0x6007).params["x"] = 5

    def test_params_detached_from_caller(self):
        operands = {"x": 1}
        instruction = Instruction("OP_SHR", operands, 0x8116)
        operands["x"] = 9
        assert instruction.params == {"x": 1}

    def test_str(self):
        assert str(decode(0x6007)) == "6007 OP_LD_VX_BYTE(x=0, byte=7)"
