"""Tests for the AnnotationTracker domain manager."""

from __future__ import annotations

from typing import Callable
from unittest.mock import MagicMock

import pytest

from sceval.core.ranges import TextSpan
from sceval.editor.annotations import ERROR_STYLE, EVALUATING_STYLE, SUCCESS_STYLE, Annotation
from sceval.editor.editor_handle import BufferEditor
from sceval.ui.domain.annotation_tracker import AnnotationTracker

EditorFactory = Callable[..., BufferEditor]

# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def tracker() -> AnnotationTracker:
    return AnnotationTracker()


def _annotation(line: int = 0, hover: str | None = None) -> Annotation:
    return Annotation(span=TextSpan.from_lines(line, line, 1), hover=hover)


# =============================================================================
# Painting
# =============================================================================


class TestPaint:
    def test_paint_forwards_to_editor(self, tracker: AnnotationTracker, make_editor: EditorFactory) -> None:
        editor = make_editor("a\nb")
        annotation = _annotation(1, "2")

        assert tracker.paint(editor, SUCCESS_STYLE, [annotation]) is True

        assert editor.annotations(SUCCESS_STYLE) == (annotation,)
        assert tracker.applied(editor.editor_id, SUCCESS_STYLE) == (annotation,)

    def test_paint_replaces_previous_list(self, tracker: AnnotationTracker, make_editor: EditorFactory) -> None:
        editor = make_editor("a\nb")
        tracker.paint(editor, ERROR_STYLE, [_annotation(0)])

        tracker.paint(editor, ERROR_STYLE, [_annotation(1)])

        assert [item.span.start_line for item in editor.annotations(ERROR_STYLE)] == [1]

    def test_styles_are_independent(self, tracker: AnnotationTracker, make_editor: EditorFactory) -> None:
        editor = make_editor("a")
        tracker.paint(editor, EVALUATING_STYLE, [_annotation()])
        tracker.paint(editor, SUCCESS_STYLE, [_annotation()])

        tracker.clear(editor, EVALUATING_STYLE)

        assert editor.annotations(EVALUATING_STYLE) == ()
        assert len(editor.annotations(SUCCESS_STYLE)) == 1
        assert tracker.has_annotations(editor.editor_id)

    def test_renderer_failure_returns_false(self, tracker: AnnotationTracker) -> None:
        editor = MagicMock()
        editor.editor_id = "broken"
        editor.set_annotations.side_effect = RuntimeError("widget gone")

        assert tracker.paint(editor, SUCCESS_STYLE, [_annotation()]) is False
        assert tracker.applied("broken", SUCCESS_STYLE) == ()


# =============================================================================
# Queries and cleanup
# =============================================================================


class TestQueries:
    def test_editor_ids_only_lists_painted_editors(
        self, tracker: AnnotationTracker, make_editor: EditorFactory
    ) -> None:
        first = make_editor("a", editor_id="b-editor")
        second = make_editor("a", editor_id="a-editor")
        tracker.paint(first, SUCCESS_STYLE, [_annotation()])
        tracker.paint(second, SUCCESS_STYLE, [_annotation()])
        tracker.clear(first, SUCCESS_STYLE)

        assert tracker.editor_ids() == ("a-editor",)

    def test_forget_skips_renderer(self, tracker: AnnotationTracker) -> None:
        editor = MagicMock()
        editor.editor_id = "closed"
        tracker.paint(editor, SUCCESS_STYLE, [_annotation()])
        editor.set_annotations.reset_mock()

        tracker.forget("closed")

        editor.set_annotations.assert_not_called()
        assert not tracker.has_annotations("closed")

    def test_reset(self, tracker: AnnotationTracker, make_editor: EditorFactory) -> None:
        editor = make_editor("a")
        tracker.paint(editor, SUCCESS_STYLE, [_annotation()])

        tracker.reset()

        assert tracker.editor_ids() == ()
