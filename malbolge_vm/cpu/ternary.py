"""
Malbolge VM - Ternary Codec

Every word in the machine is a 10-trit unsigned number in [0, 3^10).
This module converts words to and from their trit digits and implements
the two ternary primitives the instruction set is built on:

  crazy(x, y)      trit-wise lookup in the 3x3 "crazy" table
  rotate_right(x)  least-significant trit moves to the top

Table orientation: for crazy(x, y) the ROW trit comes from y (the memory
operand) and the COLUMN trit from x (the accumulator, or the previous
cell during the load-time fill). Swapping the two breaks every
reference program.

    CRAZY[y_trit][x_trit]
             x=0 x=1 x=2
      y=0  [  1,  0,  0 ]
      y=1  [  1,  0,  2 ]
      y=2  [  2,  2,  1 ]
"""

from typing import List, Sequence

TRITS = 10
SIZE = 3 ** TRITS            # 59049 words / addresses
MAX_WORD = SIZE - 1          # 2222222222 in ternary
TOP_TRIT = 3 ** (TRITS - 1)  # 19683, weight of the most significant trit

CRAZY = (
    (1, 0, 0),
    (1, 0, 2),
    (2, 2, 1),
)


def _check_word(w: int) -> int:
    if not 0 <= w < SIZE:
        raise ValueError(f"word out of range: {w}")
    return w


# ══════════════════════════════════════════════
# Trit conversion
# ══════════════════════════════════════════════

def to_trits(w: int) -> List[int]:
    """Decompose a word into exactly 10 trits, most significant first.

    Leading zero trits are kept: to_trits(5) == [0,0,0,0,0,0,0,0,1,2]
    """
    _check_word(w)
    trits = [0] * TRITS
    for i in range(TRITS - 1, -1, -1):
        w, trits[i] = divmod(w, 3)
    return trits


def from_trits(trits: Sequence[int]) -> int:
    """Recompose 10 trits (most significant first) into a word."""
    if len(trits) != TRITS:
        raise ValueError(f"expected {TRITS} trits, got {len(trits)}")
    w = 0
    for t in trits:
        if t not in (0, 1, 2):
            raise ValueError(f"not a trit: {t!r}")
        w = w * 3 + t
    return w


# ══════════════════════════════════════════════
# Ternary operators
# ══════════════════════════════════════════════

def crazy(x: int, y: int) -> int:
    """Trit-wise crazy operation: result trit = CRAZY[y_trit][x_trit]."""
    xt = to_trits(x)
    yt = to_trits(y)
    return from_trits([CRAZY[b][a] for a, b in zip(xt, yt)])


def rotate_right(x: int) -> int:
    """Rotate the 10-trit word one place right.

    The least-significant trit wraps around to the most-significant
    position. Ten rotations give back the original word.
    """
    q, r = divmod(_check_word(x), 3)
    return q + r * TOP_TRIT
