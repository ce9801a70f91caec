"""PySide6 editor adapter.

:class:`QtEditorAdapter` wraps a ``QPlainTextEdit`` and satisfies the
:class:`~sceval.editor.editor_handle.EditorHandle` protocol. Annotations are
rendered as ``QTextEdit.ExtraSelection`` entries (one list per style, drawn
in insertion order) and their hover text is shown as a tooltip when the mouse
rests over an annotated line.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Sequence

from PySide6.QtCore import QEvent, QObject
from PySide6.QtGui import QColor, QTextCursor, QTextFormat
from PySide6.QtWidgets import QPlainTextEdit, QTextEdit, QToolTip

from ..core.ranges import Position, TextSpan
from .annotations import Annotation, AnnotationStyle
from .document_model import DocumentMetadata, TextDocument

LOGGER = logging.getLogger(__name__)


class QtEditorAdapter(QObject):
    """Expose a ``QPlainTextEdit`` as an evaluation target."""

    def __init__(
        self,
        widget: QPlainTextEdit | None = None,
        *,
        document: TextDocument | None = None,
        editor_id: str | None = None,
        parent: QObject | None = None,
    ) -> None:
        super().__init__(parent)
        self._editor_id = editor_id or uuid.uuid4().hex
        self._widget = widget if widget is not None else QPlainTextEdit()
        if document is None:
            document = TextDocument(text=self._widget.toPlainText())
        else:
            self._widget.setPlainText(document.text)
        self._document = document
        self._layers: dict[str, tuple[AnnotationStyle, tuple[Annotation, ...]]] = {}
        self._widget.textChanged.connect(self._handle_text_changed)
        self._widget.viewport().installEventFilter(self)

    # ------------------------------------------------------------------
    # EditorHandle
    # ------------------------------------------------------------------
    @property
    def editor_id(self) -> str:
        return self._editor_id

    @property
    def document(self) -> TextDocument:
        return self._document

    @property
    def selection(self) -> TextSpan:
        cursor = self._widget.textCursor()
        return TextSpan(
            self._position_at(cursor.selectionStart()),
            self._position_at(cursor.selectionEnd()),
        )

    def set_annotations(self, style: AnnotationStyle, annotations: Sequence[Annotation]) -> None:
        if annotations:
            self._layers[style.name] = (style, tuple(annotations))
        else:
            self._layers.pop(style.name, None)
        self._apply_extra_selections()

    # ------------------------------------------------------------------
    # Widget helpers
    # ------------------------------------------------------------------
    @property
    def widget(self) -> QPlainTextEdit:
        return self._widget

    def set_metadata(self, metadata: DocumentMetadata) -> None:
        self._document.metadata = metadata

    def set_selection(self, selection: TextSpan) -> None:
        span = self._document.clamp(selection)
        cursor = self._widget.textCursor()
        cursor.setPosition(self._document.offset_at(span.start))
        cursor.setPosition(self._document.offset_at(span.end), QTextCursor.MoveMode.KeepAnchor)
        self._widget.setTextCursor(cursor)

    def hover_text_at(self, line: int) -> str | None:
        """Return the hover text of the most recently painted annotation covering ``line``."""

        for _style, annotations in reversed(list(self._layers.values())):
            for annotation in annotations:
                span = annotation.span
                if annotation.hover and span.start_line <= line <= span.end_line:
                    return annotation.hover
        return None

    def extra_selections(self) -> list[QTextEdit.ExtraSelection]:
        return list(self._widget.extraSelections())

    def eventFilter(self, watched: QObject, event: QEvent) -> bool:  # noqa: N802 - Qt override
        if watched is self._widget.viewport() and event.type() == QEvent.Type.ToolTip:
            cursor = self._widget.cursorForPosition(event.pos())  # type: ignore[attr-defined]
            text = self.hover_text_at(cursor.blockNumber())
            if text:
                QToolTip.showText(event.globalPos(), text, self._widget)  # type: ignore[attr-defined]
            else:
                QToolTip.hideText()
                event.ignore()
            return True
        return super().eventFilter(watched, event)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _handle_text_changed(self) -> None:
        self._document.update_text(self._widget.toPlainText())

    def _position_at(self, offset: int) -> Position:
        block = self._widget.document().findBlock(offset)
        return Position(block.blockNumber(), offset - block.position())

    def _apply_extra_selections(self) -> None:
        selections: list[Any] = []
        for style, annotations in self._layers.values():
            color = _qcolor(style)
            for annotation in annotations:
                span = self._document.clamp(annotation.span)
                cursor = QTextCursor(self._widget.document())
                cursor.setPosition(self._document.offset_at(span.start))
                cursor.setPosition(self._document.offset_at(span.end), QTextCursor.MoveMode.KeepAnchor)
                selection = QTextEdit.ExtraSelection()
                selection.cursor = cursor
                selection.format.setBackground(color)
                if style.whole_line:
                    selection.format.setProperty(QTextFormat.Property.FullWidthSelection, True)
                selections.append(selection)
        LOGGER.debug("Editor %s: %d extra selection(s)", self._editor_id, len(selections))
        self._widget.setExtraSelections(selections)


def _qcolor(style: AnnotationStyle) -> QColor:
    red, green, blue, alpha = style.background
    return QColor(red, green, blue, round(alpha * 255))


__all__ = ["QtEditorAdapter"]
