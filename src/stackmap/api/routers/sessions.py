"""Session-scoped endpoints for source map management and lookups."""

from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException

from stackmap.api.deps import (
    check_context_lines,
    get_session_manager,
    get_settings,
    is_session_list_disabled,
)
from stackmap.api.routers.resolve import build_lookup_response
from stackmap.api.schemas import (
    ErrorStackRequest,
    LookupResponse,
    PositionRequest,
    SessionCreateRequest,
    SessionListResponse,
    SessionResponse,
    SourceMapLoadRequest,
    SourceMapLoadResponse,
    SourceMapSummaryResponse,
    SourcesResponse,
    StackLineRequest,
    TraceRequest,
    TraceResponse,
)
from stackmap.models.tokens import MappedErrorStack
from stackmap.service.client import SourceMapClient
from stackmap.service.mapping_store import MappingStore
from stackmap.service.session_manager import SessionInfo, SessionManager, SessionNotFoundError
from stackmap.settings import Settings

router = APIRouter()


# -- helpers -----------------------------------------------------------------


def _get_store(session_id: str, mgr: SessionManager) -> MappingStore:
    """Resolve session_id to MappingStore, raise 404 if missing/expired."""
    try:
        return mgr.get_store(session_id)
    except SessionNotFoundError:
        raise HTTPException(status_code=404, detail=f"Session '{session_id}' not found") from None


def _get_client(session_id: str, map_id: str, mgr: SessionManager) -> SourceMapClient:
    store = _get_store(session_id, mgr)
    try:
        return store.get_client(map_id)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Source map '{map_id}' not found") from None


def _session_response(info: SessionInfo) -> SessionResponse:
    """Convert a SessionInfo dataclass to a Pydantic response."""
    return SessionResponse(**asdict(info))


# -- session CRUD ------------------------------------------------------------


@router.post("", response_model=SessionResponse, status_code=201)
async def create_session(
    body: SessionCreateRequest | None = None,
    mgr: SessionManager = Depends(get_session_manager),  # noqa: B008
) -> SessionResponse:
    """Create a new session."""
    metadata = body.metadata if body else {}
    info = mgr.create_session(metadata=metadata)
    return _session_response(info)


@router.get("", response_model=SessionListResponse)
async def list_sessions(
    mgr: SessionManager = Depends(get_session_manager),  # noqa: B008
) -> SessionListResponse:
    """List all active sessions."""
    if is_session_list_disabled():
        raise HTTPException(status_code=403, detail="Session listing is disabled")
    sessions = mgr.list_sessions()
    return SessionListResponse(sessions=[_session_response(s) for s in sessions])


@router.get("/{session_id}", response_model=SessionResponse)
async def get_session(
    session_id: str,
    mgr: SessionManager = Depends(get_session_manager),  # noqa: B008
) -> SessionResponse:
    """Get info for a specific session."""
    try:
        info = mgr.get_session(session_id)
    except SessionNotFoundError:
        raise HTTPException(status_code=404, detail=f"Session '{session_id}' not found") from None
    return _session_response(info)


@router.delete("/{session_id}", status_code=204)
async def close_session(
    session_id: str,
    mgr: SessionManager = Depends(get_session_manager),  # noqa: B008
) -> None:
    """Close a session and release its source maps."""
    try:
        mgr.close_session(session_id)
    except SessionNotFoundError:
        raise HTTPException(status_code=404, detail=f"Session '{session_id}' not found") from None


# -- source map management ---------------------------------------------------


@router.post(
    "/{session_id}/sourcemaps",
    response_model=SourceMapLoadResponse,
    status_code=201,
)
async def load_sourcemap(
    session_id: str,
    body: SourceMapLoadRequest,
    mgr: SessionManager = Depends(get_session_manager),  # noqa: B008
) -> SourceMapLoadResponse:
    """Decode a source map and keep it in the session."""
    store = _get_store(session_id, mgr)
    result = store.load(body.sourcemap, label=body.label)
    return SourceMapLoadResponse(**asdict(result))


@router.get("/{session_id}/sourcemaps", response_model=list[SourceMapSummaryResponse])
async def list_sourcemaps(
    session_id: str,
    mgr: SessionManager = Depends(get_session_manager),  # noqa: B008
) -> list[SourceMapSummaryResponse]:
    """List all source maps loaded in a session."""
    store = _get_store(session_id, mgr)
    return [SourceMapSummaryResponse(**asdict(s)) for s in store.list_maps()]


@router.delete("/{session_id}/sourcemaps/{map_id}", status_code=204)
async def remove_sourcemap(
    session_id: str,
    map_id: str,
    mgr: SessionManager = Depends(get_session_manager),  # noqa: B008
) -> None:
    """Remove a source map from a session."""
    store = _get_store(session_id, mgr)
    try:
        store.remove(map_id)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Source map '{map_id}' not found") from None


@router.get("/{session_id}/sourcemaps/{map_id}/sources", response_model=SourcesResponse)
async def unpack_sources(
    session_id: str,
    map_id: str,
    mgr: SessionManager = Depends(get_session_manager),  # noqa: B008
) -> SourcesResponse:
    """Return every original source embedded in the source map."""
    client = _get_client(session_id, map_id, mgr)
    return SourcesResponse(sources=client.unpack_all_sources())


# -- lookups -----------------------------------------------------------------


@router.post("/{session_id}/sourcemaps/{map_id}/lookup", response_model=LookupResponse)
async def lookup(
    session_id: str,
    map_id: str,
    body: PositionRequest,
    mgr: SessionManager = Depends(get_session_manager),  # noqa: B008
    settings: Settings = Depends(get_settings),  # noqa: B008
) -> LookupResponse:
    """Resolve one generated position."""
    check_context_lines(body.context_lines, settings)
    client = _get_client(session_id, map_id, mgr)
    return build_lookup_response(client, body.line, body.column, body.context_lines)


@router.post("/{session_id}/sourcemaps/{map_id}/stack-line", response_model=LookupResponse)
async def map_stack_line(
    session_id: str,
    map_id: str,
    body: StackLineRequest,
    mgr: SessionManager = Depends(get_session_manager),  # noqa: B008
    settings: Settings = Depends(get_settings),  # noqa: B008
) -> LookupResponse:
    """Parse and resolve a single stack line."""
    check_context_lines(body.context_lines, settings)
    client = _get_client(session_id, map_id, mgr)
    if body.context_lines is None:
        position = client.map_stack_line(body.stack_line)
        return LookupResponse(found=position is not None, position=position)
    token = client.map_stack_line_with_context(body.stack_line, body.context_lines)
    return LookupResponse(found=token is not None, token=token)


@router.post("/{session_id}/sourcemaps/{map_id}/trace", response_model=TraceResponse)
async def map_trace(
    session_id: str,
    map_id: str,
    body: TraceRequest,
    mgr: SessionManager = Depends(get_session_manager),  # noqa: B008
) -> TraceResponse:
    """Resolve every frame of a bare stack trace."""
    client = _get_client(session_id, map_id, mgr)
    return TraceResponse(positions=client.map_stack_trace(body.trace))


@router.post("/{session_id}/sourcemaps/{map_id}/error-stack", response_model=MappedErrorStack)
async def map_error_stack(
    session_id: str,
    map_id: str,
    body: ErrorStackRequest,
    mgr: SessionManager = Depends(get_session_manager),  # noqa: B008
    settings: Settings = Depends(get_settings),  # noqa: B008
) -> MappedErrorStack:
    """Map a full error stack (message line + frames)."""
    check_context_lines(body.context_lines, settings)
    client = _get_client(session_id, map_id, mgr)
    return client.map_error_stack(body.error_stack, body.context_lines)
