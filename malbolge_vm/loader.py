"""
Loader for Malbolge source text.

Turns raw source bytes into an initialized AddressSpace:

  1. Bytes below 33 (space, tab, CR, LF, ...) are formatting and are
     dropped without taking a position.
  2. Every remaining byte must be printable (33..126). Anything else is
     illegal source and is reported with its offset, line and column.
  3. The program may not be longer than the address space.
  4. Program bytes go to addresses 0..n-1.
  5. The rest of memory is filled with crazy(mem[i-1], mem[i-2]).
     Programs rely on these exact values, so the fill is not optional.

In strict mode each byte must also decode to one of the eight real
instructions at its position, as the reference interpreter requires.
"""

import logging
from pathlib import Path
from typing import Optional, Union

from .cpu.decoder import is_printable, is_valid_instruction
from .cpu.ternary import SIZE, crazy
from .mem.memory import AddressSpace

log = logging.getLogger(__name__)

FORMATTING_MAX = 32  # bytes <= this are whitespace / line terminators


class LoadError(Exception):
    """Malformed source. Raised before any instruction runs."""

    def __init__(self, message: str, offset: Optional[int] = None,
                 byte: Optional[int] = None, line: int = 0, col: int = 0):
        self.offset = offset
        self.byte = byte
        self.line = line
        self.col = col
        if offset is None:
            super().__init__(message)
        else:
            super().__init__(f"{message} at offset {offset} "
                             f"(L{line}:{col})")


def _line_col(data: bytes, offset: int) -> tuple:
    line = data.count(b'\n', 0, offset) + 1
    col = offset - (data.rfind(b'\n', 0, offset) + 1) + 1
    return line, col


def parse_source(source: Union[bytes, str], strict: bool = False) -> bytes:
    """Filter and validate source text. Returns the program bytes.

    Raises LoadError on an illegal byte, an invalid instruction (strict
    mode only) or a program that does not fit in memory.
    """
    if isinstance(source, str):
        data = source.encode('utf-8')
    else:
        data = bytes(source)

    program = bytearray()
    for offset, b in enumerate(data):
        if b <= FORMATTING_MAX:
            continue

        if not is_printable(b):
            line, col = _line_col(data, offset)
            raise LoadError(f"Illegal byte 0x{b:02X} in source",
                            offset, b, line, col)

        if strict and not is_valid_instruction(b, len(program)):
            line, col = _line_col(data, offset)
            raise LoadError(f"Invalid instruction {chr(b)!r} "
                            f"at position {len(program)}",
                            offset, b, line, col)

        if len(program) >= SIZE:
            raise LoadError(f"Source program is too long "
                            f"(more than {SIZE} instructions)")
        program.append(b)

    return bytes(program)


def fill(mem: AddressSpace, start: int):
    """Extend memory from `start` to the end with the crazy-op fill.

    Predecessors before address 0 read as 0, so a program shorter than
    two bytes still produces a deterministic memory image.
    """
    prev2 = mem.read(start - 2) if start >= 2 else 0
    prev1 = mem.read(start - 1) if start >= 1 else 0
    words = []
    for _ in range(start, SIZE):
        w = crazy(prev1, prev2)
        words.append(w)
        prev2, prev1 = prev1, w
    mem.load_words(words, start)


def load_source(source: Union[bytes, str], mem: Optional[AddressSpace] = None,
                strict: bool = False) -> AddressSpace:
    """Validate source and build a fully initialized AddressSpace."""
    program = parse_source(source, strict=strict)
    if mem is None:
        mem = AddressSpace()
    n = mem.load_words(program, 0)
    fill(mem, n)
    log.debug("loaded %d program words, filled %d", n, SIZE - n)
    return mem


def load_file(path: Union[str, Path], mem: Optional[AddressSpace] = None,
              strict: bool = False) -> AddressSpace:
    """Read a source file from disk and load it.

    OSError from the filesystem propagates unchanged.
    """
    data = Path(path).read_bytes()
    log.debug("read %d bytes from %s", len(data), path)
    return load_source(data, mem, strict=strict)
