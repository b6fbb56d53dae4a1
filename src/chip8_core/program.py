"""Program text and built-in data for the CHIP-8 interpreter.

Program text is a list of 16-bit hex words, one or more per line:

    6005 610A 2100 2100 0000    ; main
    0x100: 8014 8014 00EE       ; subroutine

A ``ADDR:`` prefix starts a new segment at ADDR; words without one continue
the current segment. ``;`` starts a comment.
"""

import re
from typing import List, Tuple


FONT_ADDRESS = 0x50
FONT_GLYPH_SIZE = 5
ROM_ADDRESS = 0x200

# 4x5 hex digit glyphs 0-F
FONTSET = bytes([
    0xF0, 0x90, 0x90, 0x90, 0xF0,  # 0
    0x20, 0x60, 0x20, 0x20, 0x70,  # 1
    0xF0, 0x10, 0xF0, 0x80, 0xF0,  # 2
    0xF0, 0x10, 0xF0, 0x10, 0xF0,  # 3
    0x90, 0x90, 0xF0, 0x10, 0x10,  # 4
    0xF0, 0x80, 0xF0, 0x10, 0xF0,  # 5
    0xF0, 0x80, 0xF0, 0x90, 0xF0,  # 6
    0xF0, 0x10, 0x20, 0x40, 0x40,  # 7
    0xF0, 0x90, 0xF0, 0x90, 0xF0,  # 8
    0xF0, 0x90, 0xF0, 0x10, 0xF0,  # 9
    0xF0, 0x90, 0xF0, 0x90, 0x90,  # A
    0xE0, 0x90, 0xE0, 0x90, 0xE0,  # B
    0xF0, 0x80, 0x80, 0x80, 0xF0,  # C
    0xE0, 0x90, 0x90, 0x90, 0xE0,  # D
    0xF0, 0x80, 0xF0, 0x80, 0xF0,  # E
    0xF0, 0x80, 0xF0, 0x80, 0x80,  # F
])

_WORD = re.compile(r'^(?:0x)?([0-9a-f]{1,4})$', re.IGNORECASE)
_SEGMENT = re.compile(r'^(?:0x)?([0-9a-f]{1,3}):$', re.IGNORECASE)


def glyph_address(digit: int) -> int:
    """Address of the font glyph for a hex digit (low nibble only)."""
    return FONT_ADDRESS + (digit & 0xF) * FONT_GLYPH_SIZE


def words_to_bytes(words: List[int]) -> bytes:
    """Pack 16-bit words big-endian."""
    data = bytearray()
    for word in words:
        if not 0 <= word <= 0xFFFF:
            raise ValueError(f"Not a 16-bit word: {word!r}")
        data += bytes([(word >> 8) & 0xFF, word & 0xFF])
    return bytes(data)


def parse_program(source: str, address: int = 0) -> List[Tuple[int, List[int]]]:
    """Parse hex program text into memory segments.

    Args:
        source: Program text
        address: Load address of the first segment

    Returns:
        List of (address, words) segments in source order

    Raises:
        ValueError: On a token that is neither a word nor a segment address
    """
    segments: List[Tuple[int, List[int]]] = []
    current: List[int] = []
    start = address

    for lineno, line in enumerate(source.splitlines(), 1):
        line = line.split(";", 1)[0]
        for token in line.split():
            seg_match = _SEGMENT.match(token)
            if seg_match:
                if current:
                    segments.append((start, current))
                start = int(seg_match.group(1), 16)
                current = []
                continue

            word_match = _WORD.match(token)
            if not word_match:
                raise ValueError(f"Line {lineno}: invalid word {token!r}")
            current.append(int(word_match.group(1), 16))

    if current:
        segments.append((start, current))
    return segments
