"""Source map decoding, position lookup and context extraction."""

from stackmap.mapping.context import extract_context
from stackmap.mapping.decoder import (
    DecodedMapping,
    MappingDocumentInvalid,
    all_sources,
    decode_mapping,
    lookup_position,
)

__all__ = [
    "DecodedMapping",
    "MappingDocumentInvalid",
    "all_sources",
    "decode_mapping",
    "extract_context",
    "lookup_position",
]
