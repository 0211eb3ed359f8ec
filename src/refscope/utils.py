"""Utility functions for refscope."""

import re
from functools import lru_cache

from .errors import InvalidLineRangeError, InvalidLocationError


def parse_line_range(spec: str) -> tuple[int, int]:
    """
    Parse a line range spec into (start_line, end_line).

    Formats:
    - 42 (single line)
    - 42-45 (range)

    Returns:
        Tuple of (start_line, end_line), both 1-based inclusive.

    Raises:
        InvalidLocationError: If the format is invalid.
        InvalidLineRangeError: If the line range is invalid.
    """
    match = re.match(r"^(\d+)(?:-(\d+))?$", spec.strip())
    if not match:
        raise InvalidLocationError(spec, "expected format 'line' or 'start-end'")

    start = int(match.group(1))
    end = int(match.group(2)) if match.group(2) else start

    if start < 1:
        raise InvalidLineRangeError(start, end, "start line must be >= 1")
    if end < start:
        raise InvalidLineRangeError(start, end, "end line must be >= start line")

    return start, end


@lru_cache(maxsize=256)
def whole_word_pattern(name: str) -> re.Pattern[str]:
    """Compile a regex matching ``name`` bounded by non-identifier characters."""
    return re.compile(rf"\b{re.escape(name)}\b")


def line_number_at(content: str, index: int) -> int:
    """Return the 1-based line number containing character ``index``."""
    return content.count("\n", 0, index) + 1


def line_start_offset(lines: list[str], line: int) -> int:
    """
    Return the offset just past the end of 1-based ``line``.

    ``lines`` is ``content.split("\\n")``; the result is clamped to the
    content length when the last line has no trailing newline.
    """
    offset = sum(len(text) + 1 for text in lines[:line])
    content_length = sum(len(text) for text in lines) + len(lines) - 1
    return min(offset, content_length)


def find_closing_line(lines: list[str], start_line: int) -> int:
    """
    Find the line where braces balance, scanning from ``start_line``.

    Counts ``{`` and ``}`` from the beginning of ``start_line``; the first
    line where the count returns to zero after becoming positive is the
    end line. Braces inside strings and comments are counted too.

    Returns:
        1-based end line, or ``start_line`` if the braces never balance.
    """
    depth = 0
    started = False
    for idx in range(start_line - 1, len(lines)):
        for char in lines[idx]:
            if char == "{":
                depth += 1
                started = True
            elif char == "}":
                depth -= 1
                if started and depth == 0:
                    return idx + 1
    return start_line


def find_block_end(content: str, open_index: int) -> int | None:
    """Return the index of the brace closing the one at ``open_index``."""
    depth = 0
    for idx in range(open_index, len(content)):
        char = content[idx]
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return idx
    return None


def detect_newline(content: str) -> str:
    """Return the file's newline convention."""
    return "\r\n" if "\r\n" in content else "\n"
