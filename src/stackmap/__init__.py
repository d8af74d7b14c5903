"""Resolve minified JavaScript error stacks back to original source positions."""

from stackmap.mapping.decoder import MappingDocumentInvalid
from stackmap.service.batch import BatchCapabilities, BatchResolutionPipeline
from stackmap.service.client import SourceMapClient

__version__ = "0.3.0"

__all__ = [
    "BatchCapabilities",
    "BatchResolutionPipeline",
    "MappingDocumentInvalid",
    "SourceMapClient",
    "__version__",
]
