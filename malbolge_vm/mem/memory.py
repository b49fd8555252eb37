"""
Malbolge VM - Address Space

A flat array of 3^10 = 59049 words, addressed 0..59048. There are no
regions, no I/O windows and no write protection: every cell can be read,
overwritten by an instruction, or mutated after being executed.

The mutation rule is the self-modification primitive of the language:
after the cell at [C] runs, it is replaced by MUTATION_TABLE[value - 33].
Only printable cells (33..126) can be mutated. A loaded program only
ever executes printable cells, but a jump can land anywhere, so the
check is enforced here rather than assumed.
"""

from typing import Callable, Dict, Iterable, List, Optional

from ..cpu.decoder import is_printable, mutate
from ..cpu.ternary import SIZE


class MemoryFault(Exception):
    """A cell outside the printable window was asked to self-mutate."""

    def __init__(self, addr: int, value: int):
        self.addr = addr
        self.value = value
        super().__init__(f"cannot mutate cell {addr}: value {value} "
                         f"is outside [33, 126]")


def _check_addr(addr: int):
    if not 0 <= addr < SIZE:
        raise ValueError(f"address out of range: {addr}")


class AddressSpace:
    """59049-word memory with a self-mutation rule and write watchpoints.

    Usage:
        mem = AddressSpace()
        mem.write_raw(0, ord('v'))
        mem.mutate_in_place(0)
        mem.read(0)   # -> MUTATION_TABLE[ord('v') - 33]
    """

    def __init__(self):
        self._mem: List[int] = [0] * SIZE

        # Watchpoints: addr -> [callback(addr, old_val, new_val)]
        self._watchpoints: Dict[int, List[Callable]] = {}

    def __len__(self) -> int:
        return SIZE

    # --- Core read/write ---

    def read(self, addr: int) -> int:
        _check_addr(addr)
        return self._mem[addr]

    def write_raw(self, addr: int, value: int):
        """Overwrite one cell. Watchpoint callbacks fire before the write."""
        _check_addr(addr)
        if not 0 <= value < SIZE:
            raise ValueError(f"word out of range: {value}")
        if addr in self._watchpoints:
            old = self._mem[addr]
            for cb in self._watchpoints[addr]:
                cb(addr, old, value)
        self._mem[addr] = value

    def mutate_in_place(self, addr: int):
        """Re-encrypt the cell at `addr` through the mutation table.

        Raises MemoryFault (cell untouched) if the value is not printable.
        """
        value = self.read(addr)
        if not is_printable(value):
            raise MemoryFault(addr, value)
        self.write_raw(addr, mutate(value))

    # --- Bulk load ---

    def load_words(self, words: Iterable[int], base_addr: int = 0) -> int:
        """Copy words into memory starting at base_addr. Returns the count.

        Bypasses watchpoints; used by the loader before execution starts.
        """
        n = 0
        for i, w in enumerate(words):
            self._mem[base_addr + i] = w
            n += 1
        return n

    # --- Watchpoints ---

    def add_watchpoint(self, addr: int, callback: Callable):
        """Call callback(addr, old_val, new_val) on every write to addr.

        Mutation of an executed cell counts as a write.
        """
        self._watchpoints.setdefault(addr, []).append(callback)

    def remove_watchpoint(self, addr: int, callback: Optional[Callable] = None):
        """Remove a watchpoint. If callback is None, removes all on that addr."""
        if addr in self._watchpoints:
            if callback is None:
                del self._watchpoints[addr]
            else:
                self._watchpoints[addr] = [
                    cb for cb in self._watchpoints[addr] if cb != callback
                ]

    # --- Snapshots ---

    def snapshot(self, start: int = 0, end: int = SIZE - 1) -> tuple:
        """Copy of cells start..end (inclusive) for later diffing."""
        return tuple(self._mem[start:end + 1])

    def diff_snapshots(self, snap_a, snap_b,
                       base_addr: int = 0) -> Dict[int, tuple]:
        """Compare two snapshots, return {addr: (old, new)} for changes."""
        changes = {}
        for i in range(min(len(snap_a), len(snap_b))):
            if snap_a[i] != snap_b[i]:
                changes[base_addr + i] = (snap_a[i], snap_b[i])
        return changes

    # --- Dump ---

    def hexdump(self, start: int, length: int = 64) -> str:
        """Eight words per line, with the printable cells shown as text."""
        lines = []
        for offset in range(0, length, 8):
            addr = (start + offset) % SIZE
            cells = [self._mem[(addr + i) % SIZE] for i in range(8)]
            words = ' '.join(f'{w:05d}' for w in cells)
            text = ''.join(chr(w) if is_printable(w) else '.' for w in cells)
            lines.append(f'{addr:05d}  {words}  {text}')
        return '\n'.join(lines)
