"""Facade binding one decoded source map to stack-resolution operations."""

from __future__ import annotations

from stackmap.mapping.context import extract_context
from stackmap.mapping.decoder import DecodedMapping, all_sources, decode_mapping, lookup_position
from stackmap.models.tokens import MappedErrorStack, OriginalPosition, ResolvedToken
from stackmap.parser.error_stack import parse_stack_trace, split_error_stack
from stackmap.parser.stack_line import StackLineParser


def resolve_with_context(
    mapping: DecodedMapping,
    line: int,
    column: int,
    context_lines: int,
    *,
    clip_end: bool = False,
    frame_index: int | None = None,
) -> ResolvedToken | None:
    """Look up a generated position and cut a context window around the result.

    Returns ``None`` when the position doesn't map or the source map carries
    no content for the resolved source.
    """
    position = lookup_position(mapping, line, column)
    if position is None or position.source_text is None:
        return None
    return ResolvedToken(
        line=position.line,
        column=position.column,
        source=position.source or "",
        context=extract_context(
            position.source_text, position.line, context_lines, clip_end=clip_end
        ),
        frame_index=frame_index,
    )


class SourceMapClient:
    """Stateless operations over a single, read-only source map.

    All ``line`` arguments are generated (1-based) lines as printed by the
    JavaScript runtime; returned lines are 0-based original lines.
    """

    def __init__(self, mapping: DecodedMapping, parser: StackLineParser | None = None) -> None:
        self._mapping = mapping
        self._parser = parser or StackLineParser()

    @classmethod
    def from_bytes(cls, content: bytes) -> SourceMapClient:
        """Decode *content*.  Raises :class:`MappingDocumentInvalid`."""
        return cls(decode_mapping(content))

    @classmethod
    def from_str(cls, content: str) -> SourceMapClient:
        """Decode *content*.  Raises :class:`MappingDocumentInvalid`."""
        return cls(decode_mapping(content))

    @property
    def mapping(self) -> DecodedMapping:
        return self._mapping

    # -- position lookups ----------------------------------------------------

    def lookup_token(self, line: int, column: int) -> OriginalPosition | None:
        """Original position for a generated position, without context."""
        return lookup_position(self._mapping, line, column)

    def lookup_token_with_context(
        self, line: int, column: int, context_lines: int
    ) -> ResolvedToken | None:
        """Original position plus ``context_lines`` lines either side."""
        return resolve_with_context(self._mapping, line, column, context_lines)

    def lookup_context(self, line: int, column: int, context_lines: int) -> ResolvedToken | None:
        """Position → source snippet, for callers that aren't mapping a stack trace."""
        return resolve_with_context(self._mapping, line, column, context_lines)

    # -- stack lines ---------------------------------------------------------

    def map_stack_line(self, stack_line: str) -> OriginalPosition | None:
        frame = self._parser.parse(stack_line)
        if frame is None:
            return None
        return self.lookup_token(frame.generated_line, frame.generated_column)

    def map_stack_line_with_context(
        self, stack_line: str, context_lines: int
    ) -> ResolvedToken | None:
        frame = self._parser.parse(stack_line)
        if frame is None:
            return None
        return self.lookup_token_with_context(
            frame.generated_line, frame.generated_column, context_lines
        )

    def map_stack_trace(self, trace: str) -> list[OriginalPosition]:
        """Map every frame of a bare trace; frames that don't parse or resolve are skipped."""
        positions: list[OriginalPosition] = []
        for frame in parse_stack_trace(trace, self._parser):
            position = self.lookup_token(frame.generated_line, frame.generated_column)
            if position is not None:
                positions.append(position)
        return positions

    def map_error_stack(
        self, error_raw: str, context_lines: int | None = None
    ) -> MappedErrorStack:
        """Map a full ``error.stack`` (message line + frames).

        Without *context_lines* only ``basic_tokens`` is filled; with it only
        ``context_tokens`` is.
        """
        stack = split_error_stack(error_raw, self._parser)
        basic: list[OriginalPosition] = []
        with_context: list[ResolvedToken] = []
        for frame in stack.frames:
            if context_lines is not None:
                token = self.lookup_token_with_context(
                    frame.generated_line, frame.generated_column, context_lines
                )
                if token is not None:
                    with_context.append(token)
            else:
                position = self.lookup_token(frame.generated_line, frame.generated_column)
                if position is not None:
                    basic.append(position)
        return MappedErrorStack(
            error_message=stack.error_message,
            basic_tokens=basic,
            context_tokens=with_context,
        )

    # -- sources -------------------------------------------------------------

    def unpack_all_sources(self) -> dict[str, str]:
        """All embedded sources, keyed by source path."""
        return all_sources(self._mapping)
