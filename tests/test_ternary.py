"""
Ternary codec tests: trit conversion, crazy op, rotation.

Expected crazy-op values were cross-checked against the reference
interpreter's 9x9 packed table (two trits per lookup).
"""

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest
from malbolge_vm.cpu.ternary import (
    SIZE, MAX_WORD, CRAZY, to_trits, from_trits, crazy, rotate_right,
)

# Words with every trit position exercised
SAMPLE_WORDS = [0, 1, 2, 3, 5, 17, 33, 126, 19682, 19683, 29524, 39366,
                59047, MAX_WORD]


class TestTritConversion:
    def test_size(self):
        assert SIZE == 59049 == 3 ** 10
        assert MAX_WORD == 59048

    def test_leading_zeros_kept(self):
        assert to_trits(0) == [0] * 10
        assert to_trits(5) == [0, 0, 0, 0, 0, 0, 0, 0, 1, 2]

    def test_msb_first(self):
        assert to_trits(19683) == [1] + [0] * 9
        assert to_trits(MAX_WORD) == [2] * 10

    def test_round_trip_all_words(self):
        """from_trits(to_trits(w)) == w over the whole domain."""
        for w in range(SIZE):
            t = to_trits(w)
            assert len(t) == 10
            assert from_trits(t) == w

    def test_out_of_range(self):
        with pytest.raises(ValueError):
            to_trits(SIZE)
        with pytest.raises(ValueError):
            to_trits(-1)

    def test_bad_trits(self):
        with pytest.raises(ValueError):
            from_trits([0] * 9)
        with pytest.raises(ValueError):
            from_trits([0] * 9 + [3])


class TestCrazy:
    def test_table(self):
        assert CRAZY == ((1, 0, 0), (1, 0, 2), (2, 2, 1))

    def test_all_nine_single_trit_cases(self):
        """crazy(b, a) puts CRAZY[a][b] in the low trit.

        Nine leading zero trits each map through CRAZY[0][0] = 1, so the
        upper part of the result is always 1111111110 (ternary) = 29523.
        """
        for a in range(3):
            for b in range(3):
                assert crazy(b, a) == 29523 + CRAZY[a][b], (a, b)

    def test_row_comes_from_second_operand(self):
        # x=1, y=0 -> CRAZY[0][1] = 0;  x=0, y=1 -> CRAZY[1][0] = 1
        assert crazy(1, 0) == 29523
        assert crazy(0, 1) == 29524

    def test_zero_zero(self):
        assert crazy(0, 0) == 29524

    def test_mixed_word(self):
        # 5 = ..012, 7 = ..021 -> low trits CRAZY[1][2]=2, CRAZY[2][1]=2
        assert crazy(5, 7) == 29528

    def test_matches_trit_definition(self):
        for x in SAMPLE_WORDS:
            for y in SAMPLE_WORDS:
                expected = from_trits([CRAZY[b][a]
                                       for a, b in zip(to_trits(x), to_trits(y))])
                assert crazy(x, y) == expected


class TestRotate:
    def test_low_trit_moves_to_top(self):
        assert rotate_right(1) == 19683
        assert rotate_right(2) == 39366
        assert rotate_right(3) == 1

    def test_matches_trit_definition(self):
        for w in SAMPLE_WORDS:
            t = to_trits(w)
            assert rotate_right(w) == from_trits([t[-1]] + t[:-1])

    def test_ten_rotations_identity_all_words(self):
        for w in range(SIZE):
            r = w
            for _ in range(10):
                r = rotate_right(r)
            assert r == w

    def test_out_of_range(self):
        with pytest.raises(ValueError):
            rotate_right(SIZE)
