"""Stateless resolution endpoints: source map content is supplied per request."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from stackmap.api.deps import check_context_lines, get_settings
from stackmap.api.schemas import (
    BatchResolveRequest,
    InlineErrorStackRequest,
    InlineLookupRequest,
    LookupResponse,
    ParseRequest,
    ValidateRequest,
    ValidateResponse,
)
from stackmap.models.frames import ErrorStack
from stackmap.models.tokens import BatchResult, MappedErrorStack
from stackmap.parser.error_stack import split_error_stack
from stackmap.service.batch import BatchCapabilities, BatchResolutionPipeline, Formatter, Resolver
from stackmap.service.client import SourceMapClient
from stackmap.service.mapping_store import MappingStore
from stackmap.settings import Settings

router = APIRouter()


def build_lookup_response(
    client: SourceMapClient, line: int, column: int, context_lines: int | None
) -> LookupResponse:
    """Plain lookup without a radius, context lookup with one."""
    if context_lines is None:
        position = client.lookup_token(line, column)
        return LookupResponse(found=position is not None, position=position)
    token = client.lookup_context(line, column, context_lines)
    return LookupResponse(found=token is not None, token=token)


def _path_formatter(rewrites: dict[str, str], suffix: str | None) -> Formatter:
    def format_path(path: str) -> str:
        for prefix, replacement in rewrites.items():
            if path.startswith(prefix):
                path = replacement + path[len(prefix) :]
                break
        return path + suffix if suffix else path

    return format_path


def _dict_resolver(sourcemaps: dict[str, str]) -> Resolver:
    def resolve(path: str) -> str:
        try:
            return sourcemaps[path]
        except KeyError:
            raise LookupError(f"no sourcemap supplied for '{path}'") from None

    return resolve


@router.post("/parse", response_model=ErrorStack)
async def parse_error_stack(body: ParseRequest) -> ErrorStack:
    """Split an error stack into its message and parsed frames."""
    return split_error_stack(body.error_stack)


@router.post("/lookup", response_model=LookupResponse)
async def lookup(
    body: InlineLookupRequest,
    settings: Settings = Depends(get_settings),  # noqa: B008
) -> LookupResponse:
    """Resolve one generated position against inline source map content."""
    check_context_lines(body.context_lines, settings)
    client = SourceMapClient.from_str(body.sourcemap)
    return build_lookup_response(client, body.line, body.column, body.context_lines)


@router.post("/error-stack", response_model=MappedErrorStack)
async def map_error_stack(
    body: InlineErrorStackRequest,
    settings: Settings = Depends(get_settings),  # noqa: B008
) -> MappedErrorStack:
    """Map every frame of an error stack through one inline source map."""
    check_context_lines(body.context_lines, settings)
    client = SourceMapClient.from_str(body.sourcemap)
    return client.map_error_stack(body.error_stack, body.context_lines)


@router.post("/stack", response_model=BatchResult)
async def resolve_stack(
    body: BatchResolveRequest,
    settings: Settings = Depends(get_settings),  # noqa: B008
) -> BatchResult:
    """Resolve each frame against its own source map, reporting failures per frame."""
    check_context_lines(body.context_lines, settings)
    formatter = None
    if body.path_rewrites or body.path_suffix:
        formatter = _path_formatter(body.path_rewrites, body.path_suffix)
    pipeline = BatchResolutionPipeline(
        context_lines=(
            body.context_lines if body.context_lines is not None else settings.batch_context_lines
        ),
        report_unresolved=body.report_unresolved,
    )
    return pipeline.run(
        body.error_stack,
        BatchCapabilities(formatter=formatter, resolver=_dict_resolver(body.sourcemaps)),
    )


@router.post("/validate", response_model=ValidateResponse)
async def validate_sourcemap(body: ValidateRequest) -> ValidateResponse:
    """Check whether source map content decodes, without storing it."""
    summary = MappingStore().validate(body.sourcemap)
    return ValidateResponse(valid=summary.valid, error=summary.error, sources=summary.sources)
