"""Shared test fixtures for stackmap."""

from __future__ import annotations

import json

import pytest

from stackmap.mapping.decoder import DecodedMapping, decode_mapping
from stackmap.service.client import SourceMapClient
from stackmap.service.mapping_store import MappingStore
from stackmap.service.session_manager import SessionManager

# Original source behind ``app.min.js``.  Seven lines, 0-based:
#   0 function add(a, b) {
#   1   return a + b;
#   2 }
#   3
#   4 function fail() {
#   5   throw new Error("boom");
#   6 }
APP_SOURCE = "\n".join(
    [
        "function add(a, b) {",
        "  return a + b;",
        "}",
        "",
        "function fail() {",
        '  throw new Error("boom");',
        "}",
    ]
)

# Generated line 1: col 0 → 0:0, col 5 → 1:0, col 10 → 2:0
# Generated line 2: col 0 → 5:0
APP_MAPPINGS = "AAAA,KACA,KACA;AAGA"

BUNDLE_URL = "https://cdn.example.com/app.min.js"
VENDOR_URL = "https://cdn.example.com/vendor.min.js"


def make_sourcemap(
    mappings: str = APP_MAPPINGS,
    sources: list[str] | None = None,
    contents: list[str | None] | None = None,
    file: str | None = "app.min.js",
) -> str:
    """Build source map v3 JSON.  Defaults to the ``app.js`` map above."""
    doc: dict[str, object] = {
        "version": 3,
        "sources": sources if sources is not None else ["app.js"],
        "names": [],
        "mappings": mappings,
    }
    if contents is not None:
        doc["sourcesContent"] = contents
    elif sources is None:
        doc["sourcesContent"] = [APP_SOURCE]
    if file is not None:
        doc["file"] = file
    return json.dumps(doc)


SAMPLE_SOURCEMAP = make_sourcemap()

# Generated line 1: col 0 → app.js 0:0 (with content), col 5 → lib.js 0:0 (no content)
MULTI_SOURCE_SOURCEMAP = make_sourcemap(
    mappings="AAAA,KCAA",
    sources=["app.js", "lib.js"],
    contents=[APP_SOURCE, None],
)

SAMPLE_ERROR_STACK = "\n".join(
    [
        "Error: boom",
        f"    at fail ({BUNDLE_URL}:2:0)",
        f"    at add ({BUNDLE_URL}:1:10)",
        f"    at {VENDOR_URL}:1:0",
    ]
)


@pytest.fixture
def mapping() -> DecodedMapping:
    return decode_mapping(SAMPLE_SOURCEMAP)


@pytest.fixture
def client() -> SourceMapClient:
    return SourceMapClient.from_str(SAMPLE_SOURCEMAP)


@pytest.fixture
def store() -> MappingStore:
    return MappingStore()


@pytest.fixture
def session_manager() -> SessionManager:
    """SessionManager with long TTL and no cleanup thread (for tests)."""
    return SessionManager(ttl_seconds=3600, cleanup_interval=9999)
