"""Line splitting shared by the stack parser and context extraction."""

from __future__ import annotations


def split_lines(text: str) -> list[str]:
    """Split on ``\\n`` only, dropping one trailing ``\\r`` per line.

    Unlike :meth:`str.splitlines`, form feeds, ``\\x85`` and the Unicode
    line/paragraph separators stay inside the line, which is how JavaScript
    source and ``error.stack`` text count lines.  A final newline does not
    start an extra empty line.
    """
    lines = text.split("\n")
    if lines[-1] == "":
        lines.pop()
    return [line[:-1] if line.endswith("\r") else line for line in lines]
