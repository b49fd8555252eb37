"""
Malbolge VM - Register Set

Register model:
  A  - accumulator (a word, not an address)
  C  - code pointer, address of the next instruction
  D  - data pointer, address of the operand cell

All three start at 0. C and D wrap modulo 3^10 when advanced.
"""

from .ternary import SIZE


class Registers:
    """Malbolge register set plus an executed-step counter."""

    __slots__ = ('A', 'C', 'D', 'steps')

    def __init__(self):
        self.A: int = 0      # Accumulator
        self.C: int = 0      # Code pointer
        self.D: int = 0      # Data pointer
        self.steps: int = 0  # Completed instructions (halt not counted)

    def advance(self):
        """Post-instruction increment of C and D (both wrap at 3^10)."""
        self.C = (self.C + 1) % SIZE
        self.D = (self.D + 1) % SIZE

    def display(self) -> str:
        """Format register state for traces and crash reports."""
        return f"C={self.C:05d} D={self.D:05d} A={self.A:05d}"

    def reset(self):
        self.A = 0
        self.C = 0
        self.D = 0
        self.steps = 0
