"""Shared pytest fixtures."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Callable

import pytest

from sceval.core.ranges import TextSpan
from sceval.editor.document_model import DocumentMetadata, TextDocument
from sceval.editor.editor_handle import BufferEditor
from sceval.protocol.capabilities import EvaluateSelectionFeature, EvaluateSelectionRegistrationOptions
from sceval.ui.events import EventBus

# Qt tests run headless unless a platform is chosen explicitly.
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

EditorFactory = Callable[..., BufferEditor]


@pytest.fixture
def event_bus() -> EventBus:
    return EventBus()


@pytest.fixture
def make_editor() -> EditorFactory:
    """Build a :class:`BufferEditor` holding SuperCollider text."""

    def _factory(
        text: str = "",
        selection: TextSpan | None = None,
        *,
        path: Path | None = None,
        language: str = "supercollider",
        editor_id: str | None = None,
    ) -> BufferEditor:
        document = TextDocument(text=text, metadata=DocumentMetadata(path=path, language=language))
        return BufferEditor(document, selection=selection, editor_id=editor_id)

    return _factory


@pytest.fixture
def active_feature(event_bus: EventBus) -> EvaluateSelectionFeature:
    """A feature registered for every SuperCollider document."""

    feature = EvaluateSelectionFeature(event_bus=event_bus)
    feature.register(
        "static",
        EvaluateSelectionRegistrationOptions(document_selector=({"language": "supercollider"},)),
    )
    return feature
