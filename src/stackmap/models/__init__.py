"""Pydantic domain models for stackmap."""

from stackmap.models.frames import ErrorStack, ParsedFrame
from stackmap.models.tokens import (
    BatchResult,
    ContextLine,
    FailureKind,
    MappedErrorStack,
    OriginalPosition,
    ResolutionFailure,
    ResolvedToken,
)

__all__ = [
    "BatchResult",
    "ContextLine",
    "ErrorStack",
    "FailureKind",
    "MappedErrorStack",
    "OriginalPosition",
    "ParsedFrame",
    "ResolutionFailure",
    "ResolvedToken",
]
