"""Tests for the SourceMapClient facade."""

from __future__ import annotations

import pytest

from stackmap.mapping.decoder import MappingDocumentInvalid
from stackmap.service.client import SourceMapClient
from tests.conftest import (
    APP_SOURCE,
    BUNDLE_URL,
    MULTI_SOURCE_SOURCEMAP,
    SAMPLE_ERROR_STACK,
    SAMPLE_SOURCEMAP,
    make_sourcemap,
)


class TestConstruction:
    def test_from_bytes(self) -> None:
        client = SourceMapClient.from_bytes(SAMPLE_SOURCEMAP.encode())
        assert client.mapping.sources == ["app.js"]

    def test_from_str_invalid(self) -> None:
        with pytest.raises(MappingDocumentInvalid):
            SourceMapClient.from_str("not json")


class TestLookupToken:
    def test_found(self, client: SourceMapClient) -> None:
        position = client.lookup_token(1, 0)
        assert position is not None
        assert (position.line, position.column, position.source) == (0, 0, "app.js")

    def test_line_zero(self, client: SourceMapClient) -> None:
        assert client.lookup_token(0, 0) is None

    def test_unmapped(self, client: SourceMapClient) -> None:
        assert client.lookup_token(99, 0) is None


class TestLookupWithContext:
    def test_context_window(self, client: SourceMapClient) -> None:
        token = client.lookup_token_with_context(2, 0, 1)
        assert token is not None
        assert token.line == 5
        assert token.source == "app.js"
        assert [c.line_number for c in token.context] == [4, 5, 6]
        assert token.target is not None
        assert token.target.code == '  throw new Error("boom");'
        assert token.frame_index is None

    def test_lookup_context_same_result(self, client: SourceMapClient) -> None:
        assert client.lookup_context(2, 0, 1) == client.lookup_token_with_context(2, 0, 1)

    def test_no_source_content(self) -> None:
        client = SourceMapClient.from_str(MULTI_SOURCE_SOURCEMAP)
        assert client.lookup_token(1, 5) is not None
        assert client.lookup_token_with_context(1, 5, 2) is None

    def test_unmapped(self, client: SourceMapClient) -> None:
        assert client.lookup_context(99, 0, 2) is None

    def test_form_feed_in_source(self) -> None:
        source = 'var s = "a\x0cb";\nthrow boom;\n'
        client = SourceMapClient.from_str(make_sourcemap(mappings="AAAA;AACA", contents=[source]))
        token = client.lookup_token_with_context(2, 0, 0)
        assert token is not None
        assert token.target is not None
        assert token.target.code == "throw boom;"


class TestStackLines:
    def test_map_stack_line(self, client: SourceMapClient) -> None:
        position = client.map_stack_line(f"at add ({BUNDLE_URL}:1:10)")
        assert position is not None
        assert position.line == 2

    def test_map_stack_line_not_a_frame(self, client: SourceMapClient) -> None:
        assert client.map_stack_line("Error: boom") is None

    def test_map_stack_line_with_context(self, client: SourceMapClient) -> None:
        token = client.map_stack_line_with_context(f"fail@{BUNDLE_URL}:2:0", 0)
        assert token is not None
        assert len(token.context) == 1
        assert token.context[0].line_number == 5

    def test_map_stack_trace_skips_unresolved(self, client: SourceMapClient) -> None:
        trace = "\n".join(
            [
                f"at fail ({BUNDLE_URL}:2:0)",
                "garbage",
                f"at late ({BUNDLE_URL}:40:0)",
                f"at add ({BUNDLE_URL}:1:10)",
            ]
        )
        positions = client.map_stack_trace(trace)
        assert [p.line for p in positions] == [5, 2]


class TestMapErrorStack:
    def test_basic_tokens(self, client: SourceMapClient) -> None:
        mapped = client.map_error_stack(SAMPLE_ERROR_STACK)
        assert mapped.error_message == "Error: boom"
        # vendor frame resolves against this map too; it is a single-map facade
        assert [p.line for p in mapped.basic_tokens] == [5, 2, 0]
        assert mapped.context_tokens == []

    def test_context_tokens(self, client: SourceMapClient) -> None:
        mapped = client.map_error_stack(SAMPLE_ERROR_STACK, context_lines=1)
        assert mapped.basic_tokens == []
        assert [t.line for t in mapped.context_tokens] == [5, 2, 0]
        assert [c.line_number for c in mapped.context_tokens[2].context] == [0, 1]

    def test_message_only(self, client: SourceMapClient) -> None:
        mapped = client.map_error_stack("Error: nothing")
        assert mapped.error_message == "Error: nothing"
        assert mapped.basic_tokens == []


class TestUnpackSources:
    def test_unpack(self, client: SourceMapClient) -> None:
        assert client.unpack_all_sources() == {"app.js": APP_SOURCE}

    def test_unpack_skips_missing(self) -> None:
        client = SourceMapClient.from_str(MULTI_SOURCE_SOURCEMAP)
        assert client.unpack_all_sources() == {"app.js": APP_SOURCE}
