"""Resolution result types: original positions, context windows, batch results."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel

from stackmap.models.frames import ParsedFrame


class FailureKind(StrEnum):
    NO_RESOLVER = "no_resolver"
    RESOLVER_ERROR = "resolver_error"
    RESOLVER_EMPTY = "resolver_empty"
    FORMATTER_ERROR = "formatter_error"
    DECODE_ERROR = "decode_error"
    UNRESOLVED = "unresolved"


class OriginalPosition(BaseModel):
    """Position in the original source (0-based line) for a generated position."""

    line: int
    column: int
    source: str | None = None
    source_text: str | None = None

    model_config = {"frozen": True}


class ContextLine(BaseModel):
    """A single line of a context window."""

    line_number: int
    is_target: bool = False
    code: str = ""

    model_config = {"frozen": True}


class ResolvedToken(BaseModel):
    """An original position together with the surrounding source lines."""

    line: int
    column: int
    source: str = ""
    context: list[ContextLine] = []
    frame_index: int | None = None

    model_config = {"frozen": True}

    @property
    def target(self) -> ContextLine | None:
        """The context line flagged as the resolved target, if any."""
        return next((c for c in self.context if c.is_target), None)


class ResolutionFailure(BaseModel):
    """A frame that could not be resolved, with the reason."""

    original_raw: str
    reason: str
    kind: FailureKind = FailureKind.RESOLVER_ERROR
    frame_index: int | None = None

    model_config = {"frozen": True}


class BatchResult(BaseModel):
    """Outcome of resolving a whole error stack frame by frame."""

    frames: list[ParsedFrame] = []
    successes: list[ResolvedToken] = []
    failures: list[ResolutionFailure] = []

    model_config = {"frozen": True}


class MappedErrorStack(BaseModel):
    """Error stack mapped through a single source map.

    Exactly one of ``basic_tokens`` / ``context_tokens`` is populated,
    depending on whether a context radius was requested.
    """

    error_message: str
    basic_tokens: list[OriginalPosition] = []
    context_tokens: list[ResolvedToken] = []

    model_config = {"frozen": True}
