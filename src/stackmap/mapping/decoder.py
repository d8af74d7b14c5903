"""Source map decoding and position lookup, backed by the ``sourcemap`` library.

Generated lines are 1-based at this boundary (as printed in stack traces);
original lines are 0-based (as stored in the source map).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import sourcemap

from stackmap.models.tokens import OriginalPosition

if TYPE_CHECKING:
    from sourcemap.objects import SourceMapIndex


class MappingDocumentInvalid(ValueError):
    """Raised when source map content cannot be decoded."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"invalid sourcemap: {reason}")


@dataclass(frozen=True)
class DecodedMapping:
    """A decoded source map plus its embedded source contents (by source path)."""

    index: SourceMapIndex
    contents: dict[str, str] = field(default_factory=dict)

    @property
    def file(self) -> str | None:
        return self.index.raw.get("file")

    @property
    def sources(self) -> list[str]:
        # ``null`` entries in ``sources`` carry no path
        return [path for path in self.index.sources if isinstance(path, str)]


def decode_mapping(content: bytes | str) -> DecodedMapping:
    """Decode source map JSON.  Raises :class:`MappingDocumentInvalid`."""
    if isinstance(content, bytes):
        try:
            content = content.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise MappingDocumentInvalid(f"not UTF-8: {exc}") from exc
    try:
        index = sourcemap.loads(content)
    except KeyError as exc:
        raise MappingDocumentInvalid(f"missing field {exc}") from exc
    except RecursionError as exc:
        raise MappingDocumentInvalid("document nested too deeply") from exc
    except (ValueError, TypeError, IndexError, AttributeError) as exc:
        raise MappingDocumentInvalid(str(exc) or type(exc).__name__) from exc
    return DecodedMapping(index=index, contents=_source_contents(index))


def _source_contents(index: SourceMapIndex) -> dict[str, str]:
    raw: dict[str, Any] = index.raw
    contents = raw.get("sourcesContent") or []
    result: dict[str, str] = {}
    for path, text in zip(index.sources, contents, strict=False):
        if isinstance(path, str) and isinstance(text, str):
            result[path] = text
    return result


def lookup_position(mapping: DecodedMapping, line: int, column: int) -> OriginalPosition | None:
    """Map a generated position (1-based line) to its original position.

    Line ``0`` is the "no line number" sentinel and never reaches the index.
    """
    if line <= 0:
        return None
    try:
        token = mapping.index.lookup(line - 1, column)
    except (IndexError, KeyError):
        return None
    if token is None:
        return None
    source = token.src
    return OriginalPosition(
        line=token.src_line,
        column=token.src_col,
        source=source,
        source_text=mapping.contents.get(source) if source is not None else None,
    )


def all_sources(mapping: DecodedMapping) -> dict[str, str]:
    """Every source path that has embedded content, mapped to that content."""
    return dict(mapping.contents)
