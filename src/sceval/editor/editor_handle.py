"""Editor contract consumed by the evaluation subsystem plus a headless implementation.

The dispatcher and feedback controller never touch a widget directly. They
talk to an :class:`EditorHandle`, which exposes the document, the current
selection and a way to replace the annotations painted for a style. The
:class:`BufferEditor` keeps everything in memory so tests and headless tools
can drive the full evaluation flow; :mod:`sceval.editor.qt_editor` provides
the PySide6-backed variant.
"""

from __future__ import annotations

import uuid
from typing import Protocol, Sequence, runtime_checkable

from ..core.ranges import TextSpan
from .annotations import Annotation, AnnotationStyle
from .document_model import TextDocument


@runtime_checkable
class EditorHandle(Protocol):
    """Minimal editor surface required to evaluate and annotate spans."""

    @property
    def editor_id(self) -> str:
        ...

    @property
    def document(self) -> TextDocument:
        ...

    @property
    def selection(self) -> TextSpan:
        ...

    def set_annotations(self, style: AnnotationStyle, annotations: Sequence[Annotation]) -> None:
        """Replace every annotation painted with ``style`` by ``annotations``."""
        ...


class BufferEditor:
    """In-memory editor used when no Qt widget is available."""

    def __init__(
        self,
        document: TextDocument | None = None,
        *,
        selection: TextSpan | None = None,
        editor_id: str | None = None,
    ) -> None:
        self._editor_id = editor_id or uuid.uuid4().hex
        self._document = document or TextDocument()
        self._selection = selection or TextSpan.caret(0)
        self._annotations: dict[str, tuple[Annotation, ...]] = {}

    @property
    def editor_id(self) -> str:
        return self._editor_id

    @property
    def document(self) -> TextDocument:
        return self._document

    @property
    def selection(self) -> TextSpan:
        return self._selection

    def set_selection(self, selection: TextSpan) -> None:
        self._selection = self._document.clamp(selection)

    def set_text(self, text: str) -> None:
        self._document.update_text(text)
        self._selection = self._document.clamp(self._selection)

    def set_annotations(self, style: AnnotationStyle, annotations: Sequence[Annotation]) -> None:
        self._annotations[style.name] = tuple(annotations)

    def annotations(self, style: AnnotationStyle) -> tuple[Annotation, ...]:
        """Return the annotations currently painted with ``style``."""

        return self._annotations.get(style.name, ())


__all__ = ["BufferEditor", "EditorHandle"]
