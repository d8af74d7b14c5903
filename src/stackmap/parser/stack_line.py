"""Classify a single raw stack-trace line and extract its frame fields.

Recognised shapes, tried in order (first match wins)::

    at NAME (URL:LINE:COL)        V8 / Node
    at URL:LINE:COL               V8, anonymous
    [async ]NAME@URL:LINE:COL     Firefox / Safari
    @URL:LINE:COL                 Firefox / Safari, anonymous

If none match, a looser V8-style pattern is tried to recover frames with
leading noise or odd spacing.  Anything else is not a frame.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass

from stackmap.models.frames import ParsedFrame

_U32_MAX = 0xFFFFFFFF


def _to_u32(text: str | None) -> int:
    """Parse a line/column field; missing or out-of-range values become 0."""
    if not text:
        return 0
    try:
        value = int(text)
    except ValueError:
        return 0
    return value if 0 <= value <= _U32_MAX else 0


@dataclass(frozen=True)
class FramePattern:
    """A named frame shape and the capture groups holding each field.

    Each field lists one or more group names; the first group that
    participated in the match is used.  This lets a single regex with
    alternative branches (and thus distinct group names) feed one frame.
    """

    label: str
    regex: re.Pattern[str]
    name_groups: tuple[str, ...] = ("name",)
    url_groups: tuple[str, ...] = ("url",)
    line_groups: tuple[str, ...] = ("line",)
    column_groups: tuple[str, ...] = ("column",)
    anchored: bool = True

    def extract(self, line: str) -> ParsedFrame | None:
        match = self.regex.match(line) if self.anchored else self.regex.search(line)
        if match is None:
            return None
        groups = match.groupdict()

        def first(names: tuple[str, ...]) -> str | None:
            for group in names:
                value = groups.get(group)
                if value is not None:
                    return value
            return None

        return ParsedFrame(
            name=first(self.name_groups) or "",
            source_file=first(self.url_groups) or "",
            generated_line=_to_u32(first(self.line_groups)),
            generated_column=_to_u32(first(self.column_groups)),
            original_raw=line,
        )


STACK_LINE_PATTERNS: tuple[FramePattern, ...] = (
    FramePattern(
        "v8_named",
        re.compile(r"^at\s+(?P<name>.+?)\s*\((?P<url>.+?):(?P<line>\d+):(?P<column>\d+)\)$"),
    ),
    FramePattern(
        "v8_anonymous",
        re.compile(r"^at\s+(?P<url>.+?):(?P<line>\d+):(?P<column>\d+)$"),
    ),
    FramePattern(
        "gecko_named",
        re.compile(
            r"^(?:async\s+)?(?P<name>[^@]+?)@(?P<url>.+?):(?P<line>\d+):(?P<column>\d+)$"
        ),
    ),
    FramePattern(
        "gecko_anonymous",
        re.compile(r"^@(?P<url>.+?):(?P<line>\d+):(?P<column>\d+)$"),
    ),
)

STACK_LINE_FALLBACK = FramePattern(
    "v8_loose",
    re.compile(
        r"at\s+(?P<name>.+?)?\s*\((?P<url>.+?):(?P<line>\d+):(?P<column>\d+)\)"
        r"|at\s+(?P<url2>.+?):(?P<line2>\d+):(?P<column2>\d+)"
    ),
    url_groups=("url", "url2"),
    line_groups=("line", "line2"),
    column_groups=("column", "column2"),
    anchored=False,
)


class StackLineParser:
    """Ordered first-match-wins dispatch over a fixed table of frame patterns."""

    def __init__(
        self,
        patterns: Sequence[FramePattern] = STACK_LINE_PATTERNS,
        fallback: FramePattern | None = STACK_LINE_FALLBACK,
    ) -> None:
        self._patterns = tuple(patterns)
        self._fallback = fallback

    @property
    def patterns(self) -> tuple[FramePattern, ...]:
        return self._patterns

    def parse(self, raw_line: str) -> ParsedFrame | None:
        """Parse one stack line.  Returns ``None`` for anything that isn't a frame."""
        line = raw_line.strip()
        # Cheap rejection: a frame always carries ``:LINE:COL``
        if line.count(":") < 2:
            return None
        for pattern in self._patterns:
            frame = pattern.extract(line)
            if frame is not None:
                return frame
        if self._fallback is not None:
            return self._fallback.extract(line)
        return None


_default_parser = StackLineParser()


def parse_stack_line(raw_line: str) -> ParsedFrame | None:
    """Parse one stack line with the default pattern table."""
    return _default_parser.parse(raw_line)
