"""Service layer: single-map facade, batch pipeline, and session-scoped stores."""

from stackmap.service.batch import (
    BatchCapabilities,
    BatchResolutionPipeline,
    generate_token_by_single_stack,
    generate_tokens_by_stack,
)
from stackmap.service.client import SourceMapClient
from stackmap.service.mapping_store import MappingStore
from stackmap.service.session_manager import SessionManager, SessionNotFoundError

__all__ = [
    "BatchCapabilities",
    "BatchResolutionPipeline",
    "MappingStore",
    "SessionManager",
    "SessionNotFoundError",
    "SourceMapClient",
    "generate_token_by_single_stack",
    "generate_tokens_by_stack",
]
