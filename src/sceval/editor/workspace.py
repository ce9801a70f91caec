"""Workspace tracking open editors and the active one."""

from __future__ import annotations

import logging
from typing import Callable, Dict, Iterator, List, Optional, Protocol

from .editor_handle import EditorHandle

__all__ = ["EditorWorkspace", "ActiveEditorListener"]

LOGGER = logging.getLogger(__name__)


class ActiveEditorListener(Protocol):
    """Callback signature fired whenever the active editor changes."""

    def __call__(self, editor: Optional[EditorHandle]) -> None:  # pragma: no cover - protocol
        ...


class EditorWorkspace:
    """Keeps editors in open order and remembers which one has focus."""

    def __init__(self) -> None:
        self._editors: Dict[str, EditorHandle] = {}
        self._order: List[str] = []
        self._active_editor_id: str | None = None
        self._listeners: List[ActiveEditorListener] = []
        self._close_listeners: List[Callable[[EditorHandle], None]] = []

    # ------------------------------------------------------------------
    # Editor lifecycle
    # ------------------------------------------------------------------
    def add_editor(self, editor: EditorHandle, *, make_active: bool = True) -> EditorHandle:
        editor_id = editor.editor_id
        if editor_id not in self._editors:
            self._order.append(editor_id)
        self._editors[editor_id] = editor
        if make_active or self._active_editor_id is None:
            self.set_active_editor(editor_id)
        return editor

    def close_editor(self, editor_id: str) -> EditorHandle:
        editor = self._editors.pop(editor_id)
        self._order.remove(editor_id)
        for listener in list(self._close_listeners):
            listener(editor)
        if self._active_editor_id == editor_id:
            self.set_active_editor(self._order[-1] if self._order else None)
        return editor

    def get_editor(self, editor_id: str) -> EditorHandle:
        return self._editors[editor_id]

    def iter_editors(self) -> Iterator[EditorHandle]:
        for editor_id in self._order:
            yield self._editors[editor_id]

    # ------------------------------------------------------------------
    # Active editor
    # ------------------------------------------------------------------
    @property
    def active_editor_id(self) -> str | None:
        return self._active_editor_id

    def active_editor(self) -> EditorHandle | None:
        if self._active_editor_id is None:
            return None
        return self._editors.get(self._active_editor_id)

    def set_active_editor(self, editor_id: str | None) -> None:
        if editor_id is not None and editor_id not in self._editors:
            raise KeyError(f"Unknown editor: {editor_id}")
        if editor_id == self._active_editor_id:
            return
        self._active_editor_id = editor_id
        LOGGER.debug("Active editor changed: %s", editor_id)
        active = self.active_editor()
        for listener in list(self._listeners):
            listener(active)

    def add_active_editor_listener(self, listener: ActiveEditorListener) -> None:
        self._listeners.append(listener)

    def add_close_listener(self, listener: Callable[[EditorHandle], None]) -> None:
        self._close_listeners.append(listener)

    def __len__(self) -> int:
        return len(self._editors)
