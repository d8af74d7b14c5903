"""Batch resolution of a whole error stack, one source map per frame.

Each frame's source map is obtained on demand through caller-supplied
callbacks (see :class:`BatchCapabilities`).  Classification of every frame
happens first; decoding and lookup run afterwards in a second pass.
Failures are returned as data and, optionally, reported to ``on_error``.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

from stackmap.mapping.context import extract_context
from stackmap.mapping.decoder import MappingDocumentInvalid, decode_mapping, lookup_position
from stackmap.models.frames import ParsedFrame
from stackmap.models.tokens import (
    BatchResult,
    ContextLine,
    FailureKind,
    ResolutionFailure,
    ResolvedToken,
)
from stackmap.parser.error_stack import split_error_stack
from stackmap.parser.stack_line import StackLineParser
from stackmap.service.client import resolve_with_context

logger = logging.getLogger("stackmap.batch")

DEFAULT_CONTEXT_LINES = 5

NO_RESOLVER_MESSAGE = "no resolver provided"
RESOLVER_NOT_STRING_MESSAGE = "resolver did not return string"
RESOLVER_ERROR_MESSAGE = "resolver error"

Formatter = Callable[[str], str]
Resolver = Callable[[str], str | bytes | None]
OnError = Callable[[str, str], object]


@dataclass(frozen=True)
class BatchCapabilities:
    """Caller-supplied callbacks used while resolving a batch.

    ``formatter``
        Rewrites a frame's source path before resolution (e.g. append ``.map``).
    ``resolver``
        Returns source map content for a (rewritten) path; may raise.
    ``on_error``
        Called once per failure with ``(original_raw, message)``; its own
        errors are ignored.
    """

    formatter: Formatter | None = None
    resolver: Resolver | None = None
    on_error: OnError | None = None


@dataclass(frozen=True)
class _PendingTask:
    frame_index: int
    frame: ParsedFrame
    content: str | bytes
    context_lines: int


class BatchResolutionPipeline:
    """Orchestrates: split → format path → resolve content → decode → lookup."""

    def __init__(
        self,
        context_lines: int = DEFAULT_CONTEXT_LINES,
        *,
        report_unresolved: bool = False,
        parser: StackLineParser | None = None,
    ) -> None:
        self._context_lines = context_lines
        self._report_unresolved = report_unresolved
        self._parser = parser or StackLineParser()

    def run(self, error_raw: str, capabilities: BatchCapabilities | None = None) -> BatchResult:
        """Resolve every frame of *error_raw*.

        ``successes`` are in resolution order and ``failures`` in detection
        order; both carry ``frame_index`` pointing into ``frames``.
        """
        caps = capabilities or BatchCapabilities()
        stack = split_error_stack(error_raw, self._parser)
        failures: list[ResolutionFailure] = []
        tasks: list[_PendingTask] = []

        def fail(index: int, frame: ParsedFrame, kind: FailureKind, reason: str) -> None:
            logger.debug("frame %d (%s) failed: %s", index, frame.original_raw, reason)
            failures.append(
                ResolutionFailure(
                    original_raw=frame.original_raw,
                    reason=reason,
                    kind=kind,
                    frame_index=index,
                )
            )
            self._notify(caps.on_error, frame.original_raw, reason)

        # Pass 1: classify every frame
        for index, frame in enumerate(stack.frames):
            path = frame.source_file

            if caps.formatter is not None:
                try:
                    path = caps.formatter(path)
                except Exception as exc:
                    fail(index, frame, FailureKind.FORMATTER_ERROR, f"formatter failed: {exc}")
                    continue
                if not isinstance(path, str):
                    fail(
                        index,
                        frame,
                        FailureKind.FORMATTER_ERROR,
                        "formatter did not return string",
                    )
                    continue

            if caps.resolver is None:
                fail(index, frame, FailureKind.NO_RESOLVER, NO_RESOLVER_MESSAGE)
                continue

            try:
                content = caps.resolver(path)
            except Exception as exc:
                fail(index, frame, FailureKind.RESOLVER_ERROR, str(exc) or RESOLVER_ERROR_MESSAGE)
                continue

            if isinstance(content, (str, bytes)) and content:
                tasks.append(
                    _PendingTask(
                        frame_index=index,
                        frame=frame,
                        content=content,
                        context_lines=self._context_lines,
                    )
                )
            else:
                fail(index, frame, FailureKind.RESOLVER_EMPTY, RESOLVER_NOT_STRING_MESSAGE)

        # Pass 2: decode and look up the pending tasks
        successes: list[ResolvedToken] = []
        for task in tasks:
            token = self._resolve_task(task, fail)
            if token is not None:
                successes.append(token)

        logger.info(
            "resolved %d of %d frames (%d failures, %d unresolved)",
            len(successes),
            len(stack.frames),
            len(failures),
            len(tasks) - len(successes),
        )
        return BatchResult(frames=stack.frames, successes=successes, failures=failures)

    def _resolve_task(
        self,
        task: _PendingTask,
        fail: Callable[[int, ParsedFrame, FailureKind, str], None],
    ) -> ResolvedToken | None:
        frame = task.frame
        if frame.generated_line == 0:
            self._unresolved(task, fail, FailureKind.UNRESOLVED, "frame has no line number")
            return None
        try:
            mapping = decode_mapping(task.content)
        except MappingDocumentInvalid as exc:
            self._unresolved(task, fail, FailureKind.DECODE_ERROR, str(exc))
            return None
        token = resolve_with_context(
            mapping,
            frame.generated_line,
            frame.generated_column,
            task.context_lines,
            frame_index=task.frame_index,
        )
        if token is None:
            self._unresolved(
                task,
                fail,
                FailureKind.UNRESOLVED,
                f"no mapping for {frame.generated_line}:{frame.generated_column}",
            )
        return token

    def _unresolved(
        self,
        task: _PendingTask,
        fail: Callable[[int, ParsedFrame, FailureKind, str], None],
        kind: FailureKind,
        reason: str,
    ) -> None:
        if self._report_unresolved:
            fail(task.frame_index, task.frame, kind, reason)
        else:
            logger.debug("dropping frame %d: %s", task.frame_index, reason)

    @staticmethod
    def _notify(on_error: OnError | None, original_raw: str, message: str) -> None:
        if on_error is None:
            return
        try:
            on_error(original_raw, message)
        except Exception:
            logger.debug("on_error callback raised; ignoring", exc_info=True)


def generate_tokens_by_stack(
    error_raw: str,
    formatter: Formatter | None = None,
    resolver: Resolver | None = None,
    on_error: OnError | None = None,
    *,
    context_lines: int = DEFAULT_CONTEXT_LINES,
) -> BatchResult:
    """Convenience wrapper: resolve *error_raw* with the given callbacks."""
    pipeline = BatchResolutionPipeline(context_lines=context_lines)
    return pipeline.run(
        error_raw,
        BatchCapabilities(formatter=formatter, resolver=resolver, on_error=on_error),
    )


def generate_token_by_single_stack(
    line: int,
    column: int,
    content: str | bytes,
    context_lines: int | None = None,
) -> ResolvedToken | None:
    """Resolve one generated position against raw source map content.

    Without *context_lines* the context holds just the target line.  Returns
    ``None`` for line 0, undecodable content, or an unmapped position; a
    resolved position without embedded source yields an empty context.

    The window is the same inclusive one :func:`extract_context` builds
    everywhere else rather than an end-exclusive one, so ``context_lines=0``
    still returns the target line instead of an empty context.
    """
    if line == 0:
        return None
    try:
        mapping = decode_mapping(content)
    except MappingDocumentInvalid as exc:
        logger.debug("single-stack lookup skipped: %s", exc)
        return None
    position = lookup_position(mapping, line, column)
    if position is None:
        return None
    context: list[ContextLine] = []
    if position.source_text is not None:
        context = extract_context(position.source_text, position.line, context_lines or 0)
    return ResolvedToken(
        line=position.line,
        column=position.column,
        source=position.source or "",
        context=context,
    )
