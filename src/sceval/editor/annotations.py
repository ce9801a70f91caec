"""Annotation styles and instances painted over evaluated spans."""

from __future__ import annotations

from dataclasses import dataclass

from ..core.ranges import TextSpan


@dataclass(slots=True, frozen=True)
class AnnotationStyle:
    """Process-wide, immutable description of how a span is highlighted.

    Attributes:
        name: Stable identifier used by renderers to key their state.
        background: ``(red, green, blue, alpha)`` with alpha in ``[0, 1]``.
        whole_line: Highlight the full editor width of every touched line.
    """

    name: str
    background: tuple[int, int, int, float]
    whole_line: bool = True


@dataclass(slots=True, frozen=True)
class Annotation:
    """A single painted span with optional hover text."""

    span: TextSpan
    hover: str | None = None


EVALUATING_STYLE = AnnotationStyle(name="evaluating", background=(50, 50, 255, 0.05))
SUCCESS_STYLE = AnnotationStyle(name="success", background=(0, 255, 200, 0.05))
ERROR_STYLE = AnnotationStyle(name="error", background=(255, 0, 0, 0.05))

EVALUATING_HOVER = "Evaluating..."


__all__ = [
    "Annotation",
    "AnnotationStyle",
    "ERROR_STYLE",
    "EVALUATING_HOVER",
    "EVALUATING_STYLE",
    "SUCCESS_STYLE",
]
