"""Span resolution for the evaluate commands.

Three modes decide which part of a document gets sent to the engine:

* ``SELECTION`` uses an explicit (or the editor's) non-empty selection and
  falls back to ``LINE`` when it is empty.
* ``LINE`` covers every whole line touched by the selection.
* ``REGION`` finds the smallest block delimited by a line opening with ``(``
  and a line closing with ``)``, honouring nested blocks.

All helpers are pure and return ``None`` when nothing should be evaluated.
"""

from __future__ import annotations

import re
from enum import Enum

from ..core.ranges import TextSpan
from .document_model import TextDocument

REGION_START_RE = re.compile(r"^\(\s*(//)?\s*(.*)\s*$")
REGION_END_RE = re.compile(r"^\)\s*;?\s*(//.*)?$")


class EvaluationMode(Enum):
    """How the evaluated span is derived from the editor selection."""

    SELECTION = "selection"
    LINE = "line"
    REGION = "region"


def is_region_start(text: str) -> bool:
    return REGION_START_RE.search(text) is not None


def is_region_end(text: str) -> bool:
    return REGION_END_RE.search(text) is not None


def selection_span(
    document: TextDocument,
    selection: TextSpan,
    explicit: TextSpan | None = None,
) -> TextSpan | None:
    """Return the explicit span (or the selection) unless empty, else the current lines."""

    candidate = explicit if explicit is not None else selection
    clamped = document.clamp(candidate)
    if not clamped.is_empty:
        return clamped
    return line_span(document, selection)


def line_span(document: TextDocument, selection: TextSpan) -> TextSpan:
    """Return the whole lines from the selection start line to its end line."""

    start_line = document.line_at(selection.start)
    end_line = document.line_at(selection.end)
    return TextSpan(start_line.span.start, end_line.span.end)


def region_span(document: TextDocument, selection: TextSpan) -> TextSpan | None:
    """Return the enclosing ``( ... )`` block around ``selection``.

    The opening line is the nearest line at or above the selection start that
    matches :data:`REGION_START_RE`. From the selection end line downward a
    depth counter starting at one is incremented for every opening line and
    decremented for every closing line (both checks run on every line, open
    first); the block ends on the line where the counter hits zero.
    """

    start_line = document.line_at(selection.start)
    while not is_region_start(start_line.text):
        if start_line.line_number == 0:
            return None
        start_line = document.line_at(start_line.line_number - 1)

    end_line = document.line_at(selection.end)
    depth = 1
    while True:
        if is_region_start(end_line.text):
            depth += 1
        if is_region_end(end_line.text):
            depth -= 1
        if depth == 0:
            break
        if end_line.line_number == document.line_count - 1:
            return None
        end_line = document.line_at(end_line.line_number + 1)

    return TextSpan(start_line.span.start, end_line.span.end)


def locate(
    mode: EvaluationMode,
    document: TextDocument,
    selection: TextSpan,
    explicit: TextSpan | None = None,
) -> TextSpan | None:
    """Resolve the span for ``mode``; ``None`` means there is nothing to evaluate."""

    if mode is EvaluationMode.SELECTION:
        span = selection_span(document, selection, explicit)
    elif mode is EvaluationMode.LINE:
        span = line_span(document, selection)
    else:
        span = region_span(document, selection)
    return span


__all__ = [
    "EvaluationMode",
    "REGION_END_RE",
    "REGION_START_RE",
    "is_region_end",
    "is_region_start",
    "line_span",
    "locate",
    "region_span",
    "selection_span",
]
