"""Annotation tracker domain service.

Keeps the per-editor record of which spans are painted with which style.
Styles themselves are process-wide immutable descriptors; the applied
annotations are state owned by one editor and are always replaced as a
whole, never merged.
"""

from __future__ import annotations

import logging
from typing import Sequence

from ...editor.annotations import Annotation, AnnotationStyle
from ...editor.editor_handle import EditorHandle

LOGGER = logging.getLogger(__name__)


class AnnotationTracker:
    """Domain manager for painted evaluation annotations.

    Rendering is delegated to :meth:`EditorHandle.set_annotations`; this
    manager records what was last sent for each ``(editor, style)`` pair so
    callers can query it and so closing an editor can drop its state.
    """

    def __init__(self) -> None:
        self._applied: dict[str, dict[str, tuple[Annotation, ...]]] = {}

    # ------------------------------------------------------------------
    # Painting
    # ------------------------------------------------------------------

    def paint(
        self,
        editor: EditorHandle,
        style: AnnotationStyle,
        annotations: Sequence[Annotation],
    ) -> bool:
        """Replace the ``style`` annotations shown by ``editor``.

        Args:
            editor: The editor to paint into.
            style: The style whose annotation list is replaced.
            annotations: The complete new list; empty clears the style.

        Returns:
            True if the editor accepted the annotations.
        """
        payload = tuple(annotations)
        try:
            editor.set_annotations(style, payload)
        except Exception:  # pragma: no cover - renderer failures are not fatal
            LOGGER.debug(
                "AnnotationTracker.paint: renderer failed for editor=%s style=%s",
                editor.editor_id,
                style.name,
                exc_info=True,
            )
            return False
        per_editor = self._applied.setdefault(editor.editor_id, {})
        if payload:
            per_editor[style.name] = payload
        else:
            per_editor.pop(style.name, None)
        return True

    def clear(self, editor: EditorHandle, style: AnnotationStyle) -> bool:
        """Remove every ``style`` annotation from ``editor``."""
        return self.paint(editor, style, ())

    # ------------------------------------------------------------------
    # Query Methods
    # ------------------------------------------------------------------

    def applied(self, editor_id: str, style: AnnotationStyle) -> tuple[Annotation, ...]:
        return self._applied.get(editor_id, {}).get(style.name, ())

    def has_annotations(self, editor_id: str) -> bool:
        return bool(self._applied.get(editor_id))

    def editor_ids(self) -> tuple[str, ...]:
        """Get the editors that currently show at least one annotation."""
        return tuple(sorted(editor_id for editor_id, styles in self._applied.items() if styles))

    # ------------------------------------------------------------------
    # Internal State Management
    # ------------------------------------------------------------------

    def forget(self, editor_id: str) -> None:
        """Drop tracking for a closed editor without calling its renderer."""
        self._applied.pop(editor_id, None)

    def reset(self) -> None:
        self._applied.clear()


__all__ = ["AnnotationTracker"]
