"""
Malbolge Virtual Machine
========================
An execution engine for Malbolge, the ternary, self-modifying esoteric
language. Source is validated, loaded into a 3^10-word address space and
run until it halts, crashes or the host stops it.

Architecture:
    ┌──────────┐    ┌──────────┐    ┌───────────────┐    ┌───────────┐
    │  Source  │───>│  Loader  │───>│ Address Space │<──>│  Engine   │<──> Console
    │ (bytes)  │    │ + fill   │    │ (59049 words) │    │ A / C / D │     (bytes)
    └──────────┘    └──────────┘    └───────────────┘    └───────────┘

    - cpu/ternary.py:   10-trit words, crazy op, rotate
    - cpu/decoder.py:   effective opcode + mutation cipher
    - cpu/regs.py:      A, C, D registers
    - mem/memory.py:    address space with self-mutation
    - loader.py:        source filtering, validation and memory fill
    - periph/console.py byte I/O adapters
    - emu.py:           fetch / decode / execute / mutate / advance loop
"""

__version__ = "1.0.0"

from .cpu.ternary import SIZE, to_trits, from_trits, crazy, rotate_right
from .cpu.decoder import MUTATION_TABLE, IllegalInstruction
from .mem.memory import AddressSpace, MemoryFault
from .loader import LoadError, load_source, load_file
from .periph.console import BufferConsole, StreamConsole, ConsoleError
from .emu import MalbolgeVM, StopReason, EOF_WORD, EOF_PROFILES


def run_source(source, *, stdin: bytes = b"", eof_value=EOF_WORD,
               strict: bool = False, max_steps=None) -> tuple:
    """Load and run a program against an in-memory console.

    Full pipeline: Loader -> AddressSpace -> MalbolgeVM -> BufferConsole.

    Args:
        source: program text (bytes or str).
        stdin: bytes made available to IN instructions.
        eof_value: word IN yields at end of input (None = crash).
        strict: reject bytes that do not decode to a real instruction.
        max_steps: host step guard (None = unbounded).

    Returns:
        (StopReason, output bytes). LoadError propagates.
    """
    console = BufferConsole(stdin)
    vm = MalbolgeVM(console=console, eof_value=eof_value)
    vm.load(source, strict=strict)
    reason = vm.run(max_steps=max_steps)
    return reason, console.output
