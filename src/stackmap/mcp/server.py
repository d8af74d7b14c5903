"""FastMCP server exposing stackmap's resolution operations as MCP tools.

Run via::

    stackmap-mcp                       # reads .env (default: stdio)
    MCP_TRANSPORT=http stackmap-mcp    # streamable HTTP on port 9000
    MCP_TRANSPORT=sse  stackmap-mcp    # legacy SSE on port 9000

Sessions scope each client's ``MappingStore``.  In stdio mode a default
session is used automatically; in HTTP/SSE mode callers must create sessions
explicitly.
"""

from __future__ import annotations

import json
import logging

from fastmcp import FastMCP
from fastmcp.exceptions import ToolError

from stackmap import __version__
from stackmap.mapping.decoder import MappingDocumentInvalid
from stackmap.models.tokens import OriginalPosition, ResolvedToken
from stackmap.parser.error_stack import split_error_stack
from stackmap.service.batch import BatchCapabilities, BatchResolutionPipeline
from stackmap.service.client import SourceMapClient
from stackmap.service.mapping_store import MappingStore
from stackmap.service.session_manager import SessionManager, SessionNotFoundError
from stackmap.settings import Settings

# ---------------------------------------------------------------------------
# Server + shared state
# ---------------------------------------------------------------------------

logger = logging.getLogger("stackmap.mcp")

mcp = FastMCP("stackmap")
_session_manager: SessionManager | None = None
_settings = Settings()


def _resolve_store(session_id: str | None = None) -> MappingStore:
    """Resolve a session_id to its MappingStore.

    - If *session_id* is provided, look it up in the session manager.
    - If ``None``, use the default session (stdio).
    """
    if _session_manager is None:
        raise ToolError("Session manager not initialised")
    if session_id is not None:
        try:
            return _session_manager.get_store(session_id)
        except SessionNotFoundError as exc:
            raise ToolError(str(exc)) from exc
    return _session_manager.get_or_create_default()


def _resolve_client(map_id: str, session_id: str | None) -> SourceMapClient:
    store = _resolve_store(session_id)
    try:
        return store.get_client(map_id)
    except KeyError as exc:
        raise ToolError(str(exc)) from exc


def _check_context_lines(context_lines: int | None) -> None:
    if context_lines is not None and not 0 <= context_lines <= _settings.max_context_lines:
        raise ToolError(f"context_lines must be between 0 and {_settings.max_context_lines}")


def _format_position(position: OriginalPosition) -> str:
    # Human-facing output uses 1-based lines, like the stack traces it came from
    return f"{position.source or '<unknown>'}:{position.line + 1}:{position.column}"


def _format_token(token: ResolvedToken) -> str:
    lines = [f"{token.source or '<unknown>'}:{token.line + 1}:{token.column}"]
    width = len(str(max((c.line_number for c in token.context), default=0) + 1))
    for ctx in token.context:
        marker = ">" if ctx.is_target else " "
        lines.append(f"  {marker} {ctx.line_number + 1:>{width}} | {ctx.code}")
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Resources
# ---------------------------------------------------------------------------

STACK_FORMATS_REFERENCE = """\
# Supported stack-frame formats

Frames are recognised in this order (first match wins):

1. V8 / Node, named:        `at handleClick (https://cdn.example.com/app.min.js:1:4521)`
2. V8 / Node, anonymous:    `at https://cdn.example.com/app.min.js:1:4521`
3. Firefox / Safari, named: `handleClick@https://cdn.example.com/app.min.js:1:4521`
   (an `async ` prefix is accepted)
4. Firefox / Safari, anon:  `@https://cdn.example.com/app.min.js:1:4521`

Lines with fewer than two `:` are never frames.  In a full `error.stack` the
first line is always the error message.  Generated lines are 1-based; a line
number of 0 never resolves.  Resolved original lines are reported 1-based in
tool output.
"""


@mcp.resource("stackmap://formats")
def stack_formats() -> str:
    """Stack-frame formats understood by the parser."""
    return STACK_FORMATS_REFERENCE


@mcp.prompt
def debug_stack_trace() -> str:
    """How to take a minified production stack trace back to original source."""
    return """\
1. Call `parse_error_stack` to see which bundle URLs the frames point at.
2. For each bundle, call `load_sourcemap` with its `.map` content and note the
   returned map_id.
3. One bundle: call `map_error_stack` with that map_id and `context_lines=3`.
   Several bundles: call `resolve_stack` with `map_ids_by_path` mapping each
   frame URL to its map_id (or set `path_suffix=".map"` and key by map URL).
4. Frames reported under `failures` name the reason: a missing map, an empty
   map, or a path the formatter could not rewrite.
"""


# ---------------------------------------------------------------------------
# Session tools
# ---------------------------------------------------------------------------


@mcp.tool
def create_session(metadata_json: str | None = None) -> str:
    """Create a new session and return its session_id.

    Each session has its own source map store.

    Args:
        metadata_json: Optional JSON object with metadata key-value pairs.
    """
    if _session_manager is None:
        raise ToolError("Session manager not initialised")
    metadata: dict[str, str] = {}
    if metadata_json:
        try:
            metadata = json.loads(metadata_json)
        except json.JSONDecodeError as exc:
            raise ToolError(f"Invalid metadata JSON: {exc}") from exc
    info = _session_manager.create_session(metadata=metadata)
    return (
        f"Session created.  session_id: {info.session_id}\n"
        f"  created_at: {info.created_at.isoformat()}"
    )


@mcp.tool
def close_session(session_id: str) -> str:
    """Close a session and release its source maps.

    Args:
        session_id: The session to close.
    """
    if _session_manager is None:
        raise ToolError("Session manager not initialised")
    try:
        _session_manager.close_session(session_id)
    except SessionNotFoundError as exc:
        raise ToolError(str(exc)) from exc
    return f"Session '{session_id}' closed."


@mcp.tool
def list_sessions() -> str:
    """List all active sessions."""
    if _session_manager is None:
        raise ToolError("Session manager not initialised")
    sessions = _session_manager.list_sessions()
    if not sessions:
        return "No active sessions."
    lines = ["Active sessions:", ""]
    for s in sessions:
        lines.append(
            f"  {s.session_id}  "
            f"(sourcemaps: {s.sourcemap_count}, "
            f"last accessed: {s.last_accessed_at.isoformat()})"
        )
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Source map tools (session-aware)
# ---------------------------------------------------------------------------


@mcp.tool
def load_sourcemap(
    sourcemap_json: str, label: str | None = None, session_id: str | None = None
) -> str:
    """Decode a source map and keep it in a session.

    Returns a map_id to pass to the lookup tools.

    Args:
        sourcemap_json: Source map v3 JSON content.
        label: Optional name to recognise the map by (e.g. the bundle URL).
        session_id: Session to load into (optional in stdio mode).
    """
    logger.info("load_sourcemap called (length=%d)", len(sourcemap_json))
    store = _resolve_store(session_id)
    try:
        result = store.load(sourcemap_json, label=label)
    except MappingDocumentInvalid as exc:
        logger.warning("load_sourcemap rejected: %s", exc.reason)
        raise ToolError(str(exc)) from exc
    parts = [
        f"Source map loaded.  map_id: {result.map_id}",
        f"  file:    {result.file or '-'}",
        f"  sources: {result.sources} ({result.sources_with_content} with content)",
    ]
    return "\n".join(parts)


@mcp.tool
def validate_sourcemap(sourcemap_json: str) -> str:
    """Check whether source map content decodes, without storing it.

    Args:
        sourcemap_json: Source map v3 JSON content.
    """
    summary = MappingStore().validate(sourcemap_json)
    if summary.valid:
        return f"Source map is valid ({summary.sources} sources)."
    return f"Source map is invalid: {summary.error}"


@mcp.tool
def list_sourcemaps(session_id: str | None = None) -> str:
    """List the source maps loaded in a session.

    Args:
        session_id: Session to inspect (optional in stdio mode).
    """
    store = _resolve_store(session_id)
    maps = store.list_maps()
    if not maps:
        return "No source maps loaded."
    lines = ["Loaded source maps:", ""]
    for m in maps:
        label = f"  [{m.label}]" if m.label else ""
        lines.append(f"  {m.map_id}  file: {m.file or '-'}  sources: {len(m.sources)}{label}")
    return "\n".join(lines)


@mcp.tool
def remove_sourcemap(map_id: str, session_id: str | None = None) -> str:
    """Unload a source map from a session.

    Args:
        map_id: The id returned by ``load_sourcemap``.
        session_id: Session that holds the map (optional in stdio mode).
    """
    store = _resolve_store(session_id)
    try:
        store.remove(map_id)
    except KeyError as exc:
        raise ToolError(str(exc)) from exc
    return f"Source map '{map_id}' removed."


@mcp.tool
def unpack_sources(map_id: str, session_id: str | None = None) -> str:
    """Return every original source embedded in a source map as JSON (path → text).

    Args:
        map_id: The id returned by ``load_sourcemap``.
        session_id: Session that holds the map (optional in stdio mode).
    """
    client = _resolve_client(map_id, session_id)
    return json.dumps(client.unpack_all_sources(), indent=2)


# ---------------------------------------------------------------------------
# Lookup tools
# ---------------------------------------------------------------------------


@mcp.tool
def lookup_position(
    map_id: str, line: int, column: int, session_id: str | None = None
) -> str:
    """Map a generated position in the minified file to the original source.

    Args:
        map_id: The id returned by ``load_sourcemap``.
        line: Generated line, 1-based (as printed in stack traces).
        column: Generated column.
        session_id: Session that holds the map (optional in stdio mode).
    """
    client = _resolve_client(map_id, session_id)
    position = client.lookup_token(line, column)
    return _format_position(position) if position else f"No mapping for {line}:{column}."


@mcp.tool
def lookup_context(
    map_id: str,
    line: int,
    column: int,
    context_lines: int = 3,
    session_id: str | None = None,
) -> str:
    """Show the original source around a generated position.

    The resolved line is marked with ``>``.  Lines past the end of the file
    are shown empty.

    Args:
        map_id: The id returned by ``load_sourcemap``.
        line: Generated line, 1-based (as printed in stack traces).
        column: Generated column.
        context_lines: Lines of original source to show either side.
        session_id: Session that holds the map (optional in stdio mode).
    """
    _check_context_lines(context_lines)
    client = _resolve_client(map_id, session_id)
    token = client.lookup_context(line, column, context_lines)
    if token is None:
        return f"No mapping (or no embedded source) for {line}:{column}."
    return _format_token(token)


@mcp.tool
def map_stack_line(
    map_id: str,
    stack_line: str,
    context_lines: int | None = None,
    session_id: str | None = None,
) -> str:
    """Parse one stack-trace line and map it to the original source.

    Args:
        map_id: The id returned by ``load_sourcemap``.
        stack_line: A single frame, e.g. ``at foo (https://x/app.min.js:1:200)``.
        context_lines: Lines of original source to show either side.
        session_id: Session that holds the map (optional in stdio mode).
    """
    _check_context_lines(context_lines)
    client = _resolve_client(map_id, session_id)
    if context_lines is None:
        position = client.map_stack_line(stack_line)
        return _format_position(position) if position else "Stack line could not be mapped."
    token = client.map_stack_line_with_context(stack_line, context_lines)
    return _format_token(token) if token else "Stack line could not be mapped."


@mcp.tool
def map_error_stack(
    map_id: str,
    error_stack: str,
    context_lines: int | None = None,
    session_id: str | None = None,
) -> str:
    """Map a full ``error.stack`` (message line + frames) through one source map.

    Frames that can't be parsed or resolved are skipped.

    Args:
        map_id: The id returned by ``load_sourcemap``.
        error_stack: The raw error text.
        context_lines: Lines of original source to show either side.
        session_id: Session that holds the map (optional in stdio mode).
    """
    logger.info("map_error_stack called (map_id=%s)", map_id)
    _check_context_lines(context_lines)
    client = _resolve_client(map_id, session_id)
    mapped = client.map_error_stack(error_stack, context_lines)
    lines = [mapped.error_message]
    if context_lines is None:
        lines.extend(f"    at {_format_position(p)}" for p in mapped.basic_tokens)
    else:
        lines.extend(_format_token(t) for t in mapped.context_tokens)
    if len(lines) == 1:
        lines.append("(no frames could be mapped)")
    return "\n".join(lines)


@mcp.tool
def resolve_stack(
    error_stack: str,
    map_ids_by_path: dict[str, str],
    path_suffix: str | None = None,
    session_id: str | None = None,
) -> str:
    """Resolve each frame of an error stack against its own source map.

    Frame paths (plus ``path_suffix``, if given) are looked up in
    ``map_ids_by_path`` to pick the source map.  Returns a JSON batch result
    with ``frames``, ``successes`` and ``failures``.

    Args:
        error_stack: The raw error text.
        map_ids_by_path: Frame path → map_id of a loaded source map.
        path_suffix: Appended to every frame path before lookup (e.g. ``.map``).
        session_id: Session that holds the maps (optional in stdio mode).
    """
    store = _resolve_store(session_id)

    def resolver(path: str) -> str | bytes:
        map_id = map_ids_by_path.get(path)
        if map_id is None:
            raise LookupError(f"no source map registered for '{path}'")
        return store.get_content(map_id)

    formatter = (lambda path: path + path_suffix) if path_suffix else None
    pipeline = BatchResolutionPipeline(context_lines=_settings.batch_context_lines)
    result = pipeline.run(
        error_stack, BatchCapabilities(formatter=formatter, resolver=resolver)
    )
    return result.model_dump_json(indent=2)


@mcp.tool
def parse_error_stack(error_stack: str) -> str:
    """Split an error stack into its message and frames (no source map needed).

    Args:
        error_stack: The raw error text.
    """
    stack = split_error_stack(error_stack)
    lines = [f"message: {stack.error_message}", f"frames: {len(stack.frames)}"]
    for i, frame in enumerate(stack.frames):
        name = frame.name or "<anonymous>"
        lines.append(
            f"  #{i} {name}  {frame.source_file}:{frame.generated_line}:{frame.generated_column}"
        )
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main() -> None:
    """Run the MCP server using settings from environment / .env file."""
    global _session_manager, _settings  # noqa: PLW0603
    _settings = Settings()

    logging.basicConfig(level=_settings.log_level.upper())
    logger.info(
        "stackmap MCP Server v%s starting (transport=%s)",
        __version__,
        _settings.mcp_transport,
    )

    _session_manager = SessionManager(
        ttl_seconds=_settings.session_ttl_seconds,
        cleanup_interval=_settings.session_cleanup_interval,
    )
    _session_manager.start()

    try:
        if _settings.mcp_transport == "stdio":
            mcp.run(transport="stdio")
        else:
            mcp.run(
                transport=_settings.mcp_transport,
                host=_settings.mcp_server_host,
                port=_settings.mcp_server_port,
                log_level=_settings.log_level.lower(),
            )
    finally:
        _session_manager.stop()


if __name__ == "__main__":
    main()
