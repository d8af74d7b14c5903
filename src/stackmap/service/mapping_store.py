"""In-memory source map registry, the service layer shared by MCP and REST API."""

from __future__ import annotations

import threading
import uuid
from dataclasses import dataclass, field

from stackmap.mapping.decoder import MappingDocumentInvalid, decode_mapping
from stackmap.service.client import SourceMapClient

# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass
class LoadResult:
    """Result of loading a source map into the store."""

    map_id: str
    file: str | None
    sources: int
    sources_with_content: int
    label: str | None = None


@dataclass
class SourceMapSummary:
    """Short summary for listing loaded source maps."""

    map_id: str
    file: str | None
    sources: list[str] = field(default_factory=list)
    label: str | None = None


@dataclass
class ValidationSummary:
    """Result of checking source map content without storing it."""

    valid: bool
    error: str | None = None
    sources: int = 0


@dataclass
class _Entry:
    client: SourceMapClient
    content: str | bytes
    label: str | None


# ---------------------------------------------------------------------------
# MappingStore
# ---------------------------------------------------------------------------


class MappingStore:
    """In-memory registry of decoded source maps.  Thread-safe via ``threading.Lock``.

    Source maps are keyed by short UUID (8-char hex).  Each entry wraps a
    :class:`SourceMapClient`, which is read-only once built.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._maps: dict[str, _Entry] = {}

    @staticmethod
    def _new_id() -> str:
        return uuid.uuid4().hex[:8]

    def load(self, content: str | bytes, label: str | None = None) -> LoadResult:
        """Decode and store a source map.  Returns id + summary.

        Raises :class:`MappingDocumentInvalid` if the content cannot be decoded.
        """
        client = SourceMapClient(decode_mapping(content))
        map_id = self._new_id()
        with self._lock:
            self._maps[map_id] = _Entry(client=client, content=content, label=label)

        mapping = client.mapping
        return LoadResult(
            map_id=map_id,
            file=mapping.file,
            sources=len(mapping.sources),
            sources_with_content=len(mapping.contents),
            label=label,
        )

    def get_client(self, map_id: str) -> SourceMapClient:
        """Look up a loaded source map.  Raises ``KeyError`` if not found."""
        with self._lock:
            try:
                return self._maps[map_id].client
            except KeyError:
                raise KeyError(f"No source map loaded with id '{map_id}'") from None

    def get_content(self, map_id: str) -> str | bytes:
        """Raw content a source map was loaded from.  Raises ``KeyError`` if not found."""
        with self._lock:
            try:
                return self._maps[map_id].content
            except KeyError:
                raise KeyError(f"No source map loaded with id '{map_id}'") from None

    def list_maps(self) -> list[SourceMapSummary]:
        """Return a short summary for every loaded source map."""
        with self._lock:
            items = list(self._maps.items())

        return [
            SourceMapSummary(
                map_id=mid,
                file=entry.client.mapping.file,
                sources=entry.client.mapping.sources,
                label=entry.label,
            )
            for mid, entry in items
        ]

    def remove(self, map_id: str) -> None:
        """Unload a source map.  Raises ``KeyError`` if not found."""
        with self._lock:
            try:
                del self._maps[map_id]
            except KeyError:
                raise KeyError(f"No source map loaded with id '{map_id}'") from None

    def validate(self, content: str | bytes) -> ValidationSummary:
        """Check that *content* decodes, without storing it."""
        try:
            mapping = decode_mapping(content)
        except MappingDocumentInvalid as exc:
            return ValidationSummary(valid=False, error=exc.reason)
        return ValidationSummary(valid=True, sources=len(mapping.sources))
