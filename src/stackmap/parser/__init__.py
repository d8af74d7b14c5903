"""Stack-trace text parsing for stackmap."""

from stackmap.parser.error_stack import parse_stack_trace, split_error_stack
from stackmap.parser.stack_line import (
    STACK_LINE_FALLBACK,
    STACK_LINE_PATTERNS,
    FramePattern,
    StackLineParser,
    parse_stack_line,
)

__all__ = [
    "STACK_LINE_FALLBACK",
    "STACK_LINE_PATTERNS",
    "FramePattern",
    "StackLineParser",
    "parse_stack_line",
    "parse_stack_trace",
    "split_error_stack",
]
