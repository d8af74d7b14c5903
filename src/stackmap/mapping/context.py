"""Context windows around a resolved original line."""

from __future__ import annotations

from stackmap.models.tokens import ContextLine
from stackmap.text import split_lines


def extract_context(
    source_text: str,
    target_line: int,
    radius: int,
    *,
    clip_end: bool = False,
) -> list[ContextLine]:
    """Return lines ``[target_line - radius, target_line + radius]`` of *source_text*.

    The window is clipped at line 0 but, unless *clip_end* is set, not at the
    end of the text: slots past the last line are emitted with empty code.
    """
    lines = split_lines(source_text)
    start = max(target_line - radius, 0)
    end = target_line + radius
    if clip_end:
        end = min(end, max(len(lines) - 1, target_line))

    context: list[ContextLine] = []
    for number in range(start, end + 1):
        code = lines[number] if number < len(lines) else ""
        context.append(ContextLine(line_number=number, is_target=number == target_line, code=code))
    return context
