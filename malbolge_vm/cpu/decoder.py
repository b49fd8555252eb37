"""
Malbolge VM - Opcode Decoder + Mutation Cipher

Instructions are not stored as opcodes. The byte fetched from [C] is
combined with the address it was fetched from:

    op = (mem[C] + C) % 94

and `op` is looked up in OPCODES. Only eight of the 94 residues mean
anything; every other residue executes as a no-op.

    op  mnem  name     effect
    --  ----  -------  --------------------------------------------
     4   i    JMP      C = [D]
     5   <    OUT      write A % 256
    23   /    IN       A = next input byte (EOF word at end of input)
    39   *    ROT      [D] = rotate_right([D]); A = [D]
    40   j    MOVD     D = [D]
    62   p    CRZ      [D] = crazy(A, [D]); A = [D]
    68   o    NOP
    81   v    HLT

After an instruction runs, the cell at [C] is re-encrypted through
MUTATION_TABLE (see mutate()). Both tables are fixed by the language
definition and must match byte for byte.
"""

from typing import Optional

# ──────────────────────────────────────────────
# Printable window: every executable cell lives here
# ──────────────────────────────────────────────

PRINTABLE_MIN = 33
PRINTABLE_MAX = 126
CIPHER_LEN = PRINTABLE_MAX - PRINTABLE_MIN + 1  # 94

# Position i holds the code that (33 + i) becomes after one mutation.
MUTATION_TABLE = (
    b'5z]&gqtyfr$(we4{WP)H-Zn,[%\\3dL+Q;>U!pJS72FhOA1C'
    b'B6v^=I_0/8|jsb9m<.TVac`uY*MK\'X~xDl}REokN:#?G"i@'
)

# ──────────────────────────────────────────────
# Effective opcodes
# ──────────────────────────────────────────────

OP_JMP = 4
OP_OUT = 5
OP_IN = 23
OP_ROT = 39
OP_MOVD = 40
OP_CRZ = 62
OP_NOP = 68
OP_HLT = 81

# op -> (mnemonic char, name)
OPCODES = {
    OP_JMP:  ('i', 'JMP'),
    OP_OUT:  ('<', 'OUT'),
    OP_IN:   ('/', 'IN'),
    OP_ROT:  ('*', 'ROT'),
    OP_MOVD: ('j', 'MOVD'),
    OP_CRZ:  ('p', 'CRZ'),
    OP_NOP:  ('o', 'NOP'),
    OP_HLT:  ('v', 'HLT'),
}


class IllegalInstruction(Exception):
    """Fetched cell is outside the printable window [33, 126]."""

    def __init__(self, addr: int, value: int):
        self.addr = addr
        self.value = value
        super().__init__(
            f"invalid instruction byte {value} at address {addr}")


def is_printable(value: int) -> bool:
    return PRINTABLE_MIN <= value <= PRINTABLE_MAX


def decode_opcode(value: int, addr: int) -> int:
    """Return the effective opcode for `value` stored at `addr`.

    Raises IllegalInstruction if the cell cannot be executed.
    """
    if not is_printable(value):
        raise IllegalInstruction(addr, value)
    return (value + addr) % CIPHER_LEN


def mnemonic(op: int) -> Optional[str]:
    """Mnemonic character for an effective opcode, None for implicit no-ops."""
    entry = OPCODES.get(op)
    return entry[0] if entry else None


def is_valid_instruction(value: int, addr: int) -> bool:
    """True if `value` placed at `addr` decodes to one of the eight instructions.

    This is the check the reference interpreter applies to every
    source byte at load time.
    """
    return is_printable(value) and (value + addr) % CIPHER_LEN in OPCODES


def mutate(value: int) -> int:
    """Encrypt a printable cell value through the mutation table."""
    if not is_printable(value):
        raise ValueError(f"cannot mutate non-printable value {value}")
    return MUTATION_TABLE[value - PRINTABLE_MIN]
