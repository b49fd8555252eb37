"""
Loader tests: filtering, validation, memory fill.
"""

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest
from malbolge_vm.cpu.ternary import SIZE, crazy
from malbolge_vm.loader import LoadError, load_source, load_file, parse_source

PROGRAMS = os.path.join(os.path.dirname(os.path.abspath(__file__)), "programs")


class TestFiltering:
    def test_formatting_bytes_dropped(self):
        assert parse_source(b" a\tb\r\nc\x00d\x1f") == b"abcd"

    def test_str_source(self):
        assert parse_source("ab\ncd") == b"abcd"

    def test_positions_ignore_formatting(self):
        mem = load_source(b"a \n b")
        assert mem.read(0) == ord('a')
        assert mem.read(1) == ord('b')


class TestValidation:
    def test_del_rejected(self):
        with pytest.raises(LoadError) as exc:
            parse_source(b"ab\x7fcd")
        assert exc.value.offset == 2
        assert exc.value.byte == 0x7F

    def test_high_byte_rejected_with_line_col(self):
        with pytest.raises(LoadError) as exc:
            parse_source(b"ab\ncd\xe9")
        err = exc.value
        assert err.offset == 5
        assert (err.line, err.col) == (2, 3)
        assert "0xE9" in str(err)

    def test_non_ascii_str_rejected(self):
        with pytest.raises(LoadError):
            parse_source("abé")

    def test_too_long(self):
        parse_source(b"!" * SIZE)
        with pytest.raises(LoadError):
            parse_source(b"!" * (SIZE + 1))

    def test_strict_accepts_reference_programs(self):
        for name in ("hello.mb", "cat.mb"):
            with open(os.path.join(PROGRAMS, name), "rb") as f:
                parse_source(f.read(), strict=True)

    def test_strict_rejects_non_instruction(self):
        # 'v' at position 0 decodes to op 24, which is not an instruction
        parse_source(b"v")
        with pytest.raises(LoadError) as exc:
            parse_source(b" v", strict=True)
        assert exc.value.offset == 1


class TestFill:
    def test_fill_rule(self):
        mem = load_source(b"ab")
        for i in range(2, SIZE):
            assert mem.read(i) == crazy(mem.read(i - 1), mem.read(i - 2))

    def test_known_fill_values(self):
        mem = load_source(b"ab")
        assert mem.read(2) == 29435
        assert mem.read(3) == 97
        assert mem.read(4) == 29438
        assert mem.read(SIZE - 1) == 29435

    def test_hello_fill_values(self):
        mem = load_file(os.path.join(PROGRAMS, "hello.mb"))
        assert mem.read(87) == ord('j')
        assert [mem.read(i) for i in (88, 89, 90)] == [29444, 107, 29455]
        assert mem.read(SIZE - 1) == 29456

    def test_deterministic(self):
        a = load_source(b"(=<`#9]~6ZY32").snapshot()
        b = load_source(b"(=<`#9]~6ZY32").snapshot()
        assert a == b

    def test_short_sources_seed_with_zero(self):
        mem = load_source(b"")
        assert mem.read(0) == crazy(0, 0) == 29524
        assert mem.read(1) == crazy(29524, 0)

        mem = load_source(b"a")
        assert mem.read(0) == ord('a')
        assert mem.read(1) == crazy(ord('a'), 0)

    def test_load_file_missing(self, tmp_path):
        with pytest.raises(OSError):
            load_file(tmp_path / "nope.mb")
