"""Tests for the command line interface."""

import sys
from pathlib import Path

# Add repo root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

import pytest
import main as cli


def run_cli(monkeypatch, *args):
    monkeypatch.setattr(sys, "argv", ["main.py", *args])
    return cli.main()


class TestArguments:
    """Test argument validation."""

    def test_requires_program(self, monkeypatch):
        with pytest.raises(SystemExit):
            run_cli(monkeypatch)

    def test_address_rejected_with_rom(self, monkeypatch, tmp_path, capsys):
        rom = tmp_path / "prog.ch8"
        rom.write_bytes(bytes([0x60, 0x01, 0x00, 0x00]))
        with pytest.raises(SystemExit):
            run_cli(monkeypatch, "--rom", str(rom), "--address", "0x300")
        assert "--address" in capsys.readouterr().err

    def test_rom_without_address(self, monkeypatch, tmp_path, capsys):
        rom = tmp_path / "prog.ch8"
        rom.write_bytes(bytes([0x60, 0x2A, 0x00, 0x00]))
        assert run_cli(monkeypatch, "--rom", str(rom), "--quiet") == 0
        assert "V0=42" in capsys.readouterr().out


class TestInline:
    """Test running inline programs."""

    def test_inline_at_address(self, monkeypatch, capsys):
        assert run_cli(monkeypatch, "--inline", "6007 6102 8014 0000", "--address", "0x200", "--quiet") == 0
        out = capsys.readouterr().out
        assert "V0=9" in out
        assert "PC=518" in out

    def test_fault_exit_code(self, monkeypatch, capsys):
        assert run_cli(monkeypatch, "--inline", "00EE") == 1
        out = capsys.readouterr().out
        assert "Execution error" in out
        assert "Fault:" in out
