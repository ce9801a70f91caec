"""Qt editor adapter tests (require PySide6 and pytest-qt)."""

from __future__ import annotations

from typing import Any
from unittest.mock import MagicMock

import pytest

pytest.importorskip("PySide6")

from PySide6.QtGui import QTextFormat  # noqa: E402

from sceval.core.ranges import Position, TextSpan  # noqa: E402
from sceval.editor.annotations import ERROR_STYLE, EVALUATING_STYLE, SUCCESS_STYLE, Annotation  # noqa: E402
from sceval.editor.document_model import TextDocument  # noqa: E402
from sceval.editor.editor_handle import EditorHandle  # noqa: E402
from sceval.editor.qt_editor import QtEditorAdapter  # noqa: E402
from sceval.editor.workspace import EditorWorkspace  # noqa: E402
from sceval.ui.application.commands import (  # noqa: E402
    EVALUATE_LINE_COMMAND,
    EVALUATE_REGION_COMMAND,
    EVALUATE_SELECTION_COMMAND,
    LANGUAGE_MENU,
    SERVER_MENU,
    create_engine_actions,
    create_evaluation_actions,
)
from sceval.ui.main_window import MainWindow, WindowContext  # noqa: E402

EVALUATION_COMMANDS = (EVALUATE_SELECTION_COMMAND, EVALUATE_LINE_COMMAND, EVALUATE_REGION_COMMAND)


@pytest.fixture
def adapter(qapp: Any) -> QtEditorAdapter:
    return QtEditorAdapter(document=TextDocument(text="(\n1 + 1;\n)\n1 / 0;"), editor_id="qt-1")


class TestQtEditorAdapter:
    def test_is_an_editor_handle(self, adapter: QtEditorAdapter) -> None:
        assert isinstance(adapter, EditorHandle)
        assert adapter.editor_id == "qt-1"
        assert adapter.widget.toPlainText() == "(\n1 + 1;\n)\n1 / 0;"

    def test_selection_round_trips_through_cursor(self, adapter: QtEditorAdapter) -> None:
        span = TextSpan(Position(1, 0), Position(1, 5))

        adapter.set_selection(span)

        assert adapter.selection == span
        assert adapter.widget.textCursor().selectedText() == "1 + 1"

    def test_typing_updates_document(self, adapter: QtEditorAdapter) -> None:
        adapter.widget.setPlainText("s.boot;")

        assert adapter.document.text == "s.boot;"
        assert adapter.document.line_count == 1

    def test_annotations_become_full_width_extra_selections(self, adapter: QtEditorAdapter) -> None:
        adapter.set_annotations(EVALUATING_STYLE, [Annotation(TextSpan.from_lines(0, 2, 1), "Evaluating...")])
        adapter.set_annotations(ERROR_STYLE, [Annotation(TextSpan.from_lines(3, 3, 6), "DivideByZero")])

        selections = adapter.extra_selections()

        assert len(selections) == 2
        first = selections[0]
        assert first.cursor.selectionStart() == 0
        assert first.cursor.selectionEnd() == len("(\n1 + 1;\n)")
        assert first.format.property(QTextFormat.Property.FullWidthSelection) is True
        assert first.format.background().color().alpha() == round(0.05 * 255)

    def test_clearing_a_style_keeps_the_others(self, adapter: QtEditorAdapter) -> None:
        adapter.set_annotations(SUCCESS_STYLE, [Annotation(TextSpan.from_lines(1, 1, 6), "2")])
        adapter.set_annotations(ERROR_STYLE, [Annotation(TextSpan.from_lines(3, 3, 6), "boom")])

        adapter.set_annotations(SUCCESS_STYLE, [])

        assert len(adapter.extra_selections()) == 1
        assert adapter.hover_text_at(1) is None
        assert adapter.hover_text_at(3) == "boom"

    def test_hover_prefers_latest_layer(self, adapter: QtEditorAdapter) -> None:
        adapter.set_annotations(EVALUATING_STYLE, [Annotation(TextSpan.from_lines(0, 2, 1), "Evaluating...")])
        adapter.set_annotations(SUCCESS_STYLE, [Annotation(TextSpan.from_lines(1, 1, 6), "2")])

        assert adapter.hover_text_at(1) == "2"
        assert adapter.hover_text_at(0) == "Evaluating..."
        assert adapter.hover_text_at(3) is None


class TestMainWindow:
    def test_tabs_drive_active_editor(self, qapp: Any) -> None:
        workspace = EditorWorkspace()
        window = MainWindow(WindowContext(workspace=workspace))

        first = window.open_document(TextDocument(text="1;"))
        second = window.open_untitled()

        assert window.tab_count == 2
        assert workspace.active_editor() is second

        window._tabs.setCurrentIndex(0)
        assert workspace.active_editor() is first

        window._handle_close_requested(0)
        assert window.tab_count == 1
        assert workspace.active_editor() is second

    def test_actions_are_installed_with_shortcuts(self, qapp: Any) -> None:
        calls: list[str] = []
        actions = create_evaluation_actions(
            object(),
            overrides={
                name: (lambda name=name: calls.append(name))
                for name in EVALUATION_COMMANDS
            },
        )
        window = MainWindow(WindowContext(workspace=EditorWorkspace(), actions=actions))

        qt_action = window.qt_actions[EVALUATE_REGION_COMMAND]
        qt_action.trigger()

        assert calls == [EVALUATE_REGION_COMMAND]
        assert qt_action.shortcut().toString() == "Ctrl+Shift+Return"

    def test_actions_are_grouped_by_menu(self, qapp: Any) -> None:
        actions = {
            **create_evaluation_actions(object(), overrides={name: (lambda: None) for name in EVALUATION_COMMANDS}),
            **create_engine_actions(MagicMock()),
        }

        window = MainWindow(WindowContext(workspace=EditorWorkspace(), actions=actions))

        titles = [menu_action.text() for menu_action in window.menuBar().actions()]
        assert titles == [LANGUAGE_MENU, SERVER_MENU]
        assert window.qt_actions["sceval.cmdPeriod"].shortcut().toString() == "Ctrl+."
