"""API request/response Pydantic schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from stackmap.models.tokens import OriginalPosition, ResolvedToken


class ErrorResponse(BaseModel):
    """Standard error response body."""

    error: str
    message: str


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "ok"
    version: str = ""


# ---------------------------------------------------------------------------
# Lookup schemas
# ---------------------------------------------------------------------------


class PositionRequest(BaseModel):
    """A generated position (1-based line, as printed in stack traces)."""

    line: int = Field(ge=0, description="Generated line, 1-based; 0 never resolves")
    column: int = Field(ge=0, description="Generated column, 0-based")
    context_lines: int | None = Field(
        default=None, ge=0, description="Lines of context either side of the target"
    )


class StackLineRequest(BaseModel):
    """Request body for mapping a single stack line."""

    stack_line: str
    context_lines: int | None = Field(default=None, ge=0)


class TraceRequest(BaseModel):
    """Request body for mapping a bare stack trace (no message line)."""

    trace: str


class ErrorStackRequest(BaseModel):
    """Request body for mapping a full ``error.stack`` text."""

    error_stack: str
    context_lines: int | None = Field(default=None, ge=0)


class LookupResponse(BaseModel):
    """Result of a single lookup.

    ``position`` is filled for plain lookups, ``token`` when context was
    requested; ``found`` is false when neither resolved.
    """

    found: bool
    position: OriginalPosition | None = None
    token: ResolvedToken | None = None


class TraceResponse(BaseModel):
    """Positions for every frame of a trace that resolved."""

    positions: list[OriginalPosition] = []


# ---------------------------------------------------------------------------
# Stateless schemas (source map content supplied inline)
# ---------------------------------------------------------------------------


class InlineLookupRequest(PositionRequest):
    """Request body for POST /resolve/lookup."""

    sourcemap: str = Field(description="Source map JSON content")


class InlineErrorStackRequest(ErrorStackRequest):
    """Request body for POST /resolve/error-stack."""

    sourcemap: str = Field(description="Source map JSON content")


class ValidateRequest(BaseModel):
    """Request body for POST /resolve/validate."""

    sourcemap: str = Field(description="Source map JSON content")


class ValidateResponse(BaseModel):
    """Whether source map content decodes, and why not."""

    valid: bool
    error: str | None = None
    sources: int = 0


class ParseRequest(BaseModel):
    """Request body for POST /resolve/parse."""

    error_stack: str


class BatchResolveRequest(BaseModel):
    """Request body for POST /resolve/stack.

    Each frame's source path is rewritten (prefix rewrites, then suffix) and
    the result is looked up in ``sourcemaps``.
    """

    error_stack: str
    sourcemaps: dict[str, str] = Field(
        default_factory=dict, description="Source map content keyed by (rewritten) path"
    )
    path_rewrites: dict[str, str] = Field(
        default_factory=dict, description="Prefix → replacement applied to frame paths"
    )
    path_suffix: str | None = Field(
        default=None, description="Appended to frame paths, e.g. '.map'"
    )
    context_lines: int | None = Field(default=None, ge=0)
    report_unresolved: bool = False


# ---------------------------------------------------------------------------
# Session schemas
# ---------------------------------------------------------------------------


class SessionCreateRequest(BaseModel):
    """Request body for POST /sessions."""

    metadata: dict[str, str] = Field(default_factory=dict)


class SessionResponse(BaseModel):
    """Single session info."""

    session_id: str
    created_at: datetime
    last_accessed_at: datetime
    sourcemap_count: int
    metadata: dict[str, str] = Field(default_factory=dict)


class SessionListResponse(BaseModel):
    """Response for GET /sessions."""

    sessions: list[SessionResponse]


class SourceMapLoadRequest(BaseModel):
    """Request body for POST /sessions/{session_id}/sourcemaps."""

    sourcemap: str = Field(description="Source map JSON content")
    label: str | None = None


class SourceMapLoadResponse(BaseModel):
    """Response for POST /sessions/{session_id}/sourcemaps."""

    map_id: str
    file: str | None = None
    sources: int
    sources_with_content: int
    label: str | None = None


class SourceMapSummaryResponse(BaseModel):
    """Short source map summary for listing."""

    map_id: str
    file: str | None = None
    sources: list[str] = []
    label: str | None = None


class SourcesResponse(BaseModel):
    """Embedded original sources keyed by path."""

    sources: dict[str, str] = {}
