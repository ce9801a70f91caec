"""Main window: tabbed SuperCollider editors with the evaluate actions installed."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

from PySide6.QtGui import QAction, QKeySequence
from PySide6.QtWidgets import QMainWindow, QMenu, QTabWidget, QWidget

from ..editor.document_model import DocumentMetadata, TextDocument
from ..editor.qt_editor import QtEditorAdapter
from ..editor.workspace import EditorWorkspace
from .models.actions import WindowAction

LOGGER = logging.getLogger(__name__)

WINDOW_TITLE = "sceval"
DEFAULT_MENU = "&Language"


@dataclass(slots=True)
class WindowContext:
    """Dependencies handed to :class:`MainWindow` by the application bootstrap."""

    workspace: EditorWorkspace
    actions: Mapping[str, WindowAction] = field(default_factory=dict)
    settings: Any = None


class MainWindow(QMainWindow):
    """One tab per open document; the active tab is the workspace's active editor."""

    def __init__(self, context: WindowContext, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self._context = context
        self._adapters: dict[str, QtEditorAdapter] = {}
        self._tabs = QTabWidget(self)
        self._tabs.setTabsClosable(True)
        self._tabs.setDocumentMode(True)
        self._tabs.currentChanged.connect(self._handle_current_changed)
        self._tabs.tabCloseRequested.connect(self._handle_close_requested)
        self.setCentralWidget(self._tabs)
        self.setWindowTitle(WINDOW_TITLE)
        self.resize(960, 720)
        self._qt_actions = self._install_actions(context.actions)

    @property
    def qt_actions(self) -> dict[str, QAction]:
        return dict(self._qt_actions)

    @property
    def tab_count(self) -> int:
        return self._tabs.count()

    def open_document(self, document: TextDocument) -> QtEditorAdapter:
        """Add a tab editing ``document`` and make it active."""

        adapter = QtEditorAdapter(document=document, parent=self)
        self._adapters[adapter.editor_id] = adapter
        self._context.workspace.add_editor(adapter, make_active=True)
        index = self._tabs.addTab(adapter.widget, _tab_title(document.metadata))
        self._tabs.setCurrentIndex(index)
        adapter.widget.setFocus()
        LOGGER.debug("Opened %s in editor %s", document.uri, adapter.editor_id)
        return adapter

    def open_untitled(self) -> QtEditorAdapter:
        return self.open_document(TextDocument())

    # ------------------------------------------------------------------
    # Qt wiring
    # ------------------------------------------------------------------
    def _install_actions(self, actions: Mapping[str, WindowAction]) -> dict[str, QAction]:
        qt_actions: dict[str, QAction] = {}
        menus: dict[str, QMenu] = {}
        for action in actions.values():
            title = action.menu or DEFAULT_MENU
            menu = menus.get(title)
            if menu is None:
                menu = menus[title] = self.menuBar().addMenu(title)
            qt_action = QAction(action.text, self)
            if action.shortcut:
                qt_action.setShortcut(QKeySequence(action.shortcut))
            if action.status_tip:
                qt_action.setStatusTip(action.status_tip)
            # ``triggered`` carries the checked flag; the commands take no positional input.
            qt_action.triggered.connect(lambda _checked=False, target=action: target.trigger())
            menu.addAction(qt_action)
            self.addAction(qt_action)
            qt_actions[action.name] = qt_action
        return qt_actions

    def _editor_id_at(self, index: int) -> str | None:
        widget = self._tabs.widget(index)
        for editor_id, adapter in self._adapters.items():
            if adapter.widget is widget:
                return editor_id
        return None

    def _handle_current_changed(self, index: int) -> None:
        editor_id = self._editor_id_at(index) if index >= 0 else None
        if editor_id is not None or index < 0:
            self._context.workspace.set_active_editor(editor_id)

    def _handle_close_requested(self, index: int) -> None:
        editor_id = self._editor_id_at(index)
        if editor_id is None:
            return
        adapter = self._adapters.pop(editor_id)
        self._context.workspace.close_editor(editor_id)
        self._tabs.removeTab(index)
        adapter.widget.deleteLater()
        adapter.deleteLater()


def _tab_title(metadata: DocumentMetadata) -> str:
    path = metadata.path
    return Path(path).name if path is not None else "Untitled"


__all__ = ["MainWindow", "WindowContext"]
