"""Tests for utility functions and file discovery."""

import pytest
from conftest import write_file

from refscope.errors import InvalidLineRangeError, InvalidLocationError
from refscope.files import discover_source_files, make_file_filter
from refscope.utils import (
    detect_newline,
    find_block_end,
    find_closing_line,
    line_start_offset,
    parse_line_range,
)


class TestParseLineRange:
    def test_single_line(self):
        assert parse_line_range("42") == (42, 42)

    def test_range(self):
        assert parse_line_range(" 10-12 ") == (10, 12)

    @pytest.mark.parametrize("spec", ["", "a-b", "10:12", "-3"])
    def test_invalid_format(self, spec):
        with pytest.raises(InvalidLocationError):
            parse_line_range(spec)

    def test_reversed_range(self):
        with pytest.raises(InvalidLineRangeError):
            parse_line_range("12-10")

    def test_zero_start(self):
        with pytest.raises(InvalidLineRangeError):
            parse_line_range("0-3")


class TestBraceScanning:
    def test_closing_line(self):
        lines = ["void A()", "{", "    if (x) { y(); }", "}", "void B() { }"]

        assert find_closing_line(lines, 1) == 4
        assert find_closing_line(lines, 5) == 5

    def test_unbalanced_returns_start(self):
        assert find_closing_line(["void A()", "{"], 1) == 1

    def test_block_end(self):
        text = "a { b { c } d } e"

        assert find_block_end(text, 2) == text.index("} e")
        assert find_block_end("{ {", 0) is None


class TestOffsets:
    def test_line_start_offset(self):
        content = "one\ntwo\nthree"
        lines = content.split("\n")

        assert line_start_offset(lines, 1) == content.index("two")
        assert line_start_offset(lines, 3) == len(content)

    def test_detect_newline(self):
        assert detect_newline("a\r\nb") == "\r\n"
        assert detect_newline("a\nb") == "\n"


class TestDiscovery:
    def test_filter_and_sorting(self, temp_dir):
        write_file(temp_dir, "b/Two.cs", "")
        write_file(temp_dir, "a/One.CS", "")
        write_file(temp_dir, "a/notes.md", "")
        write_file(temp_dir, "Library/Gen.cs", "")

        include = make_file_filter(temp_dir, [".cs"], ["Library/*"])
        found = discover_source_files(temp_dir, include)

        assert [p.relative_to(temp_dir).as_posix() for p in found] == ["a/One.CS", "b/Two.cs"]

    def test_symlinks_skipped(self, temp_dir):
        outside = write_file(temp_dir, "outside/Secret.cs", "")
        root = temp_dir / "root"
        write_file(root, "Real.cs", "")
        try:
            (root / "Link.cs").symlink_to(outside)
        except (OSError, NotImplementedError):
            pytest.skip("symlinks not supported")

        found = discover_source_files(root, make_file_filter(root, [".cs"]))

        assert [p.name for p in found] == ["Real.cs"]
