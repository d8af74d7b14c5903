"""Split raw error text into a message line and an ordered list of frames."""

from __future__ import annotations

from stackmap.models.frames import ErrorStack, ParsedFrame
from stackmap.parser.stack_line import StackLineParser, parse_stack_line
from stackmap.text import split_lines


def split_error_stack(error_raw: str, parser: StackLineParser | None = None) -> ErrorStack:
    """Split ``error.stack``-style text.

    The first line is always the error message, even if it looks like a
    frame.  Remaining lines that don't parse as frames are dropped.
    """
    parse = parser.parse if parser is not None else parse_stack_line
    lines = split_lines(error_raw)
    if not lines:
        return ErrorStack(error_message="")

    frames: list[ParsedFrame] = []
    for line in lines[1:]:
        frame = parse(line.strip())
        if frame is not None:
            frames.append(frame)
    return ErrorStack(error_message=lines[0], frames=frames)


def parse_stack_trace(trace: str, parser: StackLineParser | None = None) -> list[ParsedFrame]:
    """Parse every line of a bare stack trace (no message header)."""
    parse = parser.parse if parser is not None else parse_stack_line
    frames: list[ParsedFrame] = []
    for line in split_lines(trace):
        frame = parse(line.strip())
        if frame is not None:
            frames.append(frame)
    return frames
