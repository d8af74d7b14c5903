"""Tests for single stack-line parsing."""

from __future__ import annotations

import re

import pytest

from stackmap.parser.stack_line import (
    STACK_LINE_PATTERNS,
    FramePattern,
    StackLineParser,
    parse_stack_line,
)


class TestV8Frames:
    def test_named(self) -> None:
        frame = parse_stack_line("at handleClick (https://cdn.example.com/app.min.js:1:4521)")
        assert frame is not None
        assert frame.name == "handleClick"
        assert frame.source_file == "https://cdn.example.com/app.min.js"
        assert frame.generated_line == 1
        assert frame.generated_column == 4521

    def test_named_with_dots_and_spaces(self) -> None:
        frame = parse_stack_line("at new Foo.bar [as baz] (webpack:///src/foo.js:12:3)")
        assert frame is not None
        assert frame.name == "new Foo.bar [as baz]"
        assert frame.source_file == "webpack:///src/foo.js"
        assert (frame.generated_line, frame.generated_column) == (12, 3)

    def test_anonymous(self) -> None:
        frame = parse_stack_line("at https://cdn.example.com/app.min.js:3:17")
        assert frame is not None
        assert frame.name == ""
        assert frame.source_file == "https://cdn.example.com/app.min.js"
        assert (frame.generated_line, frame.generated_column) == (3, 17)

    def test_leading_whitespace_is_trimmed(self) -> None:
        frame = parse_stack_line("    at foo (app.js:1:2)   ")
        assert frame is not None
        assert frame.original_raw == "at foo (app.js:1:2)"


class TestGeckoFrames:
    def test_named(self) -> None:
        frame = parse_stack_line("handleClick@https://cdn.example.com/app.min.js:1:4521")
        assert frame is not None
        assert frame.name == "handleClick"
        assert frame.source_file == "https://cdn.example.com/app.min.js"
        assert (frame.generated_line, frame.generated_column) == (1, 4521)

    def test_async_prefix(self) -> None:
        frame = parse_stack_line("async loadData@https://cdn.example.com/app.min.js:2:10")
        assert frame is not None
        assert frame.name == "loadData"

    def test_anonymous(self) -> None:
        frame = parse_stack_line("@https://cdn.example.com/app.min.js:5:6")
        assert frame is not None
        assert frame.name == ""
        assert frame.source_file == "https://cdn.example.com/app.min.js"
        assert (frame.generated_line, frame.generated_column) == (5, 6)


class TestFallback:
    def test_leading_noise(self) -> None:
        frame = parse_stack_line("[worker] at foo (https://x.example/a.js:3:4) extra")
        assert frame is not None
        assert frame.name == "foo"
        assert frame.source_file == "https://x.example/a.js"
        assert (frame.generated_line, frame.generated_column) == (3, 4)

    def test_leading_noise_anonymous(self) -> None:
        frame = parse_stack_line("[worker] at https://x.example/a.js:7:8")
        assert frame is not None
        assert frame.source_file == "https://x.example/a.js"
        assert (frame.generated_line, frame.generated_column) == (7, 8)

    def test_disabled_fallback(self) -> None:
        parser = StackLineParser(fallback=None)
        assert parser.parse("[worker] at foo (https://x.example/a.js:3:4) extra") is None


class TestRejection:
    @pytest.mark.parametrize(
        "line",
        [
            "",
            "Error: something went wrong",
            "no colons here",
            "just:two:colons",
            "    at <anonymous>",
        ],
    )
    def test_not_a_frame(self, line: str) -> None:
        assert parse_stack_line(line) is None

    def test_line_overflow_becomes_zero(self) -> None:
        frame = parse_stack_line("at foo (app.js:99999999999:5)")
        assert frame is not None
        assert frame.generated_line == 0
        assert frame.generated_column == 5

    def test_column_overflow_becomes_zero(self) -> None:
        frame = parse_stack_line("at foo (app.js:4:99999999999)")
        assert frame is not None
        assert frame.generated_line == 4
        assert frame.generated_column == 0


class TestPatternOrder:
    def test_default_table_order(self) -> None:
        labels = [p.label for p in STACK_LINE_PATTERNS]
        assert labels == ["v8_named", "v8_anonymous", "gecko_named", "gecko_anonymous"]
        assert StackLineParser().patterns == tuple(STACK_LINE_PATTERNS)

    def test_first_match_wins(self) -> None:
        catch_all = FramePattern(
            "everything",
            re.compile(r"^(?P<url>.+?):(?P<line>\d+):(?P<column>\d+)\)?$"),
        )
        parser = StackLineParser(patterns=[catch_all, *STACK_LINE_PATTERNS])
        frame = parser.parse("at foo (app.js:1:2)")
        assert frame is not None
        assert frame.name == ""
        assert frame.source_file == "at foo (app.js"
