"""
Malbolge VM - Main Emulator Class

Integrates:
  - Register set (cpu/regs.py)
  - Address space (mem/memory.py)
  - Opcode decoder + mutation cipher (cpu/decoder.py)
  - Ternary codec (cpu/ternary.py)
  - Console I/O adapter (periph/console.py)

Execution model, one step:
  1. Fetch [C]; a non-printable cell is a crash
  2. Decode op = ([C] + C) % 94
  3. Execute the instruction (HLT stops here: no mutation, no advance)
  4. Mutate the cell at C through the mutation table. After a JMP this
     is the cell at the jump target, as in the reference interpreter.
  5. C += 1, D += 1 (both mod 3^10). JMP is not exempt, so execution
     continues at [D] + 1.

A step is atomic: host termination (step budget, cancel()) is only
observed between steps, so memory is always left step-consistent.

Termination reasons:
  - HALT:      HLT instruction (success)
  - CRASH:     non-printable instruction cell, or EOF under the crash policy
  - IO_ERROR:  the host console failed
  - TIMEOUT:   max_steps exhausted ("terminated by host")
  - CANCELLED: cancel() was called ("terminated by host")
  - BREAK:     breakpoint address reached
"""

import logging
from collections import deque
from enum import Enum
from pathlib import Path
from typing import Optional, Set, Union

from .cpu.regs import Registers
from .cpu.decoder import (
    decode_opcode, mnemonic, IllegalInstruction,
    OP_JMP, OP_OUT, OP_IN, OP_ROT, OP_MOVD, OP_CRZ, OP_NOP, OP_HLT,
)
from .cpu.ternary import MAX_WORD, crazy, rotate_right
from .mem.memory import AddressSpace, MemoryFault
from .periph.console import StreamConsole, ConsoleError
from . import loader

log = logging.getLogger(__name__)

# Value IN leaves in A at end of input. Reference interpreters disagree;
# the default matches the reference C interpreter (all trits = 2).
EOF_WORD = MAX_WORD

# Named end-of-input policies. None means "crash".
EOF_PROFILES = {
    'max':   EOF_WORD,
    'zero':  0,
    'crash': None,
}

HOST_TERMINATED = "terminated by host"

# Trace lines kept in memory; older lines are dropped. Every line is also
# logged at DEBUG as it is produced.
TRACE_DEPTH = 4096


class StopReason(Enum):
    HALT = 'HALT'
    CRASH = 'CRASH'
    IO_ERROR = 'IO_ERROR'
    TIMEOUT = 'TIMEOUT'
    CANCELLED = 'CANCELLED'
    BREAK = 'BREAK'


class MalbolgeVM:
    """Malbolge virtual machine.

    Owns the registers and the address space; nothing else writes them.

    Usage:
        vm = MalbolgeVM(console=BufferConsole())
        vm.load(source)
        result = vm.run(max_steps=1_000_000)
        print(vm.console.output)   # b"Hello, world."
    """

    def __init__(self, console=None, eof_value: Optional[int] = EOF_WORD):
        self.regs = Registers()
        self.mem = AddressSpace()
        self.console = console if console is not None else StreamConsole()
        if eof_value is not None and not 0 <= eof_value <= MAX_WORD:
            raise ValueError(f"EOF value must be a word, got {eof_value}")
        self.eof_value = eof_value

        self.crash_reason: Optional[str] = None
        self.io_error: Optional[ConsoleError] = None
        self._cancelled = False

        # Breakpoints: set of C addresses that trigger BREAK
        self._breakpoints: Set[int] = set()

        self._trace = False
        self._trace_output = deque(maxlen=TRACE_DEPTH)

        self._dispatch = self._build_dispatch()

    # ══════════════════════════════════════════════
    # Loading
    # ══════════════════════════════════════════════

    def load(self, source: Union[bytes, str], strict: bool = False):
        """Validate source and load it. Raises loader.LoadError.

        Registers are reset; a failed load leaves memory untouched.
        """
        loader.load_source(source, self.mem, strict=strict)
        self.reset()

    def load_file(self, path: Union[str, Path], strict: bool = False):
        loader.load_file(path, self.mem, strict=strict)
        self.reset()

    # ══════════════════════════════════════════════
    # Execution
    # ══════════════════════════════════════════════

    def step(self) -> Optional[StopReason]:
        """Execute one instruction. Returns StopReason if stopped, else None."""
        regs = self.regs
        c = regs.C

        try:
            op = decode_opcode(self.mem.read(c), c)
        except IllegalInstruction as e:
            return self._crash(str(e))

        if self._trace:
            line = f"{c:05d}: {mnemonic(op) or '.'} op={op:02d} {regs.display()}"
            self._trace_output.append(line)
            log.debug("%s", line)

        handler = self._dispatch.get(op)
        if handler is not None:
            try:
                handler()
            except _HaltException:
                log.debug("HLT at %d", c)
                return StopReason.HALT
            except _EndOfInput:
                return self._crash(f"end of input at address {c}")
            except ConsoleError as e:
                self.io_error = e
                log.error("console failure at %d: %s", c, e)
                return StopReason.IO_ERROR

        try:
            self.mem.mutate_in_place(regs.C)
        except MemoryFault as e:
            return self._crash(str(e))

        regs.advance()
        regs.steps += 1
        return None

    def run(self, max_steps: Optional[int] = None) -> StopReason:
        """Run until termination condition.

        Args:
            max_steps: host step guard. None runs until the program stops
                by itself, which may be never.

        Returns:
            StopReason indicating why execution stopped. The console is
            flushed before returning.
        """
        reason = None
        executed = 0
        while reason is None:
            if self._cancelled:
                self._cancelled = False
                reason = self._terminate(StopReason.CANCELLED)
                break
            if max_steps is not None and executed >= max_steps:
                reason = self._terminate(StopReason.TIMEOUT)
                break
            # A breakpoint on the current C is skipped so run() can resume.
            if executed and self.regs.C in self._breakpoints:
                reason = StopReason.BREAK
                break
            reason = self.step()
            executed += 1

        try:
            self.console.flush()
        except ConsoleError as e:
            self.io_error = e
            log.error("console flush failed: %s", e)
            reason = StopReason.IO_ERROR

        log.info("stopped: %s after %d steps", reason.value, self.regs.steps)
        return reason

    def cancel(self):
        """Ask a running run() to stop at the next step boundary."""
        self._cancelled = True

    def _build_dispatch(self) -> dict:
        # Unlisted opcodes (and OP_NOP) fall through as no-ops
        return {
            OP_JMP:  self._op_jmp,
            OP_OUT:  self._op_out,
            OP_IN:   self._op_in,
            OP_ROT:  self._op_rot,
            OP_MOVD: self._op_movd,
            OP_CRZ:  self._op_crz,
            OP_NOP:  None,
            OP_HLT:  self._op_hlt,
        }

    def _crash(self, reason: str) -> StopReason:
        self.crash_reason = reason
        log.warning("crash: %s [%s]", reason, self.regs.display())
        return StopReason.CRASH

    def _terminate(self, reason: StopReason) -> StopReason:
        self.crash_reason = HOST_TERMINATED
        log.info("%s (%s)", HOST_TERMINATED, reason.value)
        return reason

    # ══════════════════════════════════════════════
    # Instruction handlers
    # ══════════════════════════════════════════════

    def _op_jmp(self):
        self.regs.C = self.mem.read(self.regs.D)

    def _op_out(self):
        self.console.write_byte(self.regs.A % 256)

    def _op_in(self):
        b = self.console.read_byte()
        if b is not None:
            self.regs.A = b
        elif self.eof_value is None:
            raise _EndOfInput()
        else:
            self.regs.A = self.eof_value

    def _op_rot(self):
        d = self.regs.D
        w = rotate_right(self.mem.read(d))
        self.mem.write_raw(d, w)
        self.regs.A = w

    def _op_movd(self):
        self.regs.D = self.mem.read(self.regs.D)

    def _op_crz(self):
        d = self.regs.D
        w = crazy(self.regs.A, self.mem.read(d))
        self.mem.write_raw(d, w)
        self.regs.A = w

    def _op_hlt(self):
        raise _HaltException()

    # ══════════════════════════════════════════════
    # Breakpoint API
    # ══════════════════════════════════════════════

    def add_breakpoint(self, addr: int):
        """Stop with BREAK when C reaches addr (before executing it)."""
        self._breakpoints.add(addr)

    def remove_breakpoint(self, addr: int):
        self._breakpoints.discard(addr)

    def clear_breakpoints(self):
        self._breakpoints.clear()

    # ══════════════════════════════════════════════
    # Trace / Debug
    # ══════════════════════════════════════════════

    def enable_trace(self, enable: bool = True):
        """Record one line per executed instruction.

        Only the last TRACE_DEPTH lines are kept by get_trace().
        """
        self._trace = enable

    def get_trace(self) -> str:
        return '\n'.join(self._trace_output)

    def clear_trace(self):
        self._trace_output.clear()

    def reset(self):
        """Reset registers and run state. Memory is left as loaded."""
        self.regs.reset()
        self.crash_reason = None
        self.io_error = None
        self._cancelled = False
        self._trace_output.clear()


# Internal exceptions for flow control
class _HaltException(Exception):
    pass

class _EndOfInput(Exception):
    pass
