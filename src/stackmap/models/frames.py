"""Parsed stack frame types."""

from __future__ import annotations

from pydantic import BaseModel


class ParsedFrame(BaseModel):
    """One call-site extracted from a raw stack line.

    ``generated_line`` is 1-based as printed by the runtime; ``0`` means the
    line number was missing or unparseable and the frame cannot be resolved.
    """

    name: str = ""
    source_file: str
    generated_line: int = 0
    generated_column: int = 0
    original_raw: str

    model_config = {"frozen": True}


class ErrorStack(BaseModel):
    """An error message (first line) plus the frames that followed it."""

    error_message: str
    frames: list[ParsedFrame] = []

    model_config = {"frozen": True}
