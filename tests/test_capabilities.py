"""Tests for :mod:`sceval.protocol.capabilities`."""

from __future__ import annotations

from pathlib import Path

import pytest
from lsprotocol import converters
from lsprotocol.types import ClientCapabilities, InitializeResult, ServerCapabilities

from sceval.editor.document_model import DocumentMetadata, TextDocument
from sceval.protocol.capabilities import (
    EvaluateSelectionFeature,
    EvaluateSelectionRegistrationOptions,
    document_matches,
    install_server_capability_hook,
)
from sceval.ui.events import EventBus, FeatureRegistrationChanged

SELECTOR = [{"language": "supercollider"}]


def _sc_document(path: Path | None = None) -> TextDocument:
    return TextDocument(text="1;", metadata=DocumentMetadata(path=path, language="supercollider"))


# =============================================================================
# Client capabilities
# =============================================================================


class TestClientCapabilities:
    def test_fills_experimental_evaluation_flag(self) -> None:
        feature = EvaluateSelectionFeature()

        capabilities = feature.fill_client_capabilities(ClientCapabilities())

        assert capabilities.experimental == {
            "textDocument": {"evaluation": {"evaluateSelection": True}}
        }

    def test_preserves_existing_experimental_entries(self) -> None:
        feature = EvaluateSelectionFeature()
        base = ClientCapabilities(experimental={"other": 1, "textDocument": {"x": True}})

        capabilities = feature.fill_client_capabilities(base)

        assert capabilities.experimental["other"] == 1
        assert capabilities.experimental["textDocument"] == {
            "x": True,
            "evaluation": {"evaluateSelection": True},
        }


# =============================================================================
# Static registration
# =============================================================================


class TestInitialize:
    def test_registers_when_server_grants_execution_provider(self) -> None:
        feature = EvaluateSelectionFeature()
        server = ServerCapabilities(experimental={"executionProvider": True})

        registration = feature.initialize(server, SELECTOR)

        assert registration is not None
        assert len(registration.id) == 32
        assert registration.options.document_selector == ({"language": "supercollider"},)
        assert feature.is_registered

    def test_accepts_plain_mapping_capabilities(self) -> None:
        feature = EvaluateSelectionFeature()

        registration = feature.initialize({"executionProvider": {"workDoneProgress": True}}, SELECTOR)

        assert registration is not None
        assert registration.options.work_done_progress is True
        assert registration.options.document_selector == ({"language": "supercollider"},)

    @pytest.mark.parametrize(
        "server",
        [None, ServerCapabilities(), ServerCapabilities(experimental={"executionProvider": False})],
    )
    def test_no_registration_without_provider(self, server: ServerCapabilities | None) -> None:
        feature = EvaluateSelectionFeature()

        assert feature.initialize(server, SELECTOR) is None
        assert not feature.is_registered

    def test_no_registration_without_selector(self) -> None:
        feature = EvaluateSelectionFeature()

        assert feature.initialize({"executionProvider": True}, None) is None

    def test_top_level_provider_survives_structuring(self) -> None:
        converter = install_server_capability_hook(converters.get_converter())
        result = converter.structure(
            {"capabilities": {"executionProvider": True, "textDocumentSync": 1}},
            InitializeResult,
        )
        feature = EvaluateSelectionFeature()

        registration = feature.initialize(result.capabilities, SELECTOR)

        assert registration is not None
        assert result.capabilities.text_document_sync == 1

    def test_structuring_keeps_existing_experimental_entries(self) -> None:
        converter = install_server_capability_hook(converters.get_converter())

        capabilities = converter.structure(
            {"executionProvider": {"workDoneProgress": True}, "experimental": {"other": 1}},
            ServerCapabilities,
        )

        assert capabilities.experimental == {
            "other": 1,
            "executionProvider": {"workDoneProgress": True},
        }

    def test_structuring_without_provider_is_unchanged(self) -> None:
        converter = install_server_capability_hook(converters.get_converter())

        capabilities = converter.structure({"hoverProvider": True}, ServerCapabilities)

        assert capabilities.hover_provider is True
        assert capabilities.experimental is None
        assert EvaluateSelectionFeature().initialize(capabilities, SELECTOR) is None

    def test_each_initialize_uses_a_fresh_id(self) -> None:
        feature = EvaluateSelectionFeature()

        first = feature.initialize({"executionProvider": True}, SELECTOR)
        second = feature.initialize({"executionProvider": True}, SELECTOR)

        assert first is not None and second is not None
        assert first.id != second.id
        assert len(feature.registrations) == 2


# =============================================================================
# Dynamic registration and bookkeeping
# =============================================================================


class TestRegistrationBookkeeping:
    def test_register_and_unregister_publish_events(self, event_bus: EventBus) -> None:
        received: list[FeatureRegistrationChanged] = []
        event_bus.subscribe(FeatureRegistrationChanged, received.append)
        feature = EvaluateSelectionFeature(event_bus=event_bus)
        options = EvaluateSelectionRegistrationOptions(document_selector=({"language": "supercollider"},))

        feature.register("r1", options)
        assert feature.unregister("r1") is True
        assert feature.unregister("r1") is False

        assert [(event.registration_id, event.registered) for event in received] == [
            ("r1", True),
            ("r1", False),
        ]

    def test_dynamic_registration_uses_server_selector(self) -> None:
        feature = EvaluateSelectionFeature()

        registration = feature.register_dynamic(
            "dyn", {"documentSelector": [{"language": "schelp"}]}, SELECTOR
        )

        assert registration is not None
        assert registration.options.document_selector == ({"language": "schelp"},)

    def test_dynamic_registration_falls_back_to_client_selector(self) -> None:
        feature = EvaluateSelectionFeature()

        registration = feature.register_dynamic("dyn", None, SELECTOR)

        assert registration is not None
        assert feature.is_active_for(_sc_document())

    def test_dynamic_registration_without_any_selector(self) -> None:
        feature = EvaluateSelectionFeature()

        assert feature.register_dynamic("dyn", {}, None) is None

    def test_clear_drops_everything(self) -> None:
        feature = EvaluateSelectionFeature()
        feature.initialize({"executionProvider": True}, SELECTOR)

        feature.clear()

        assert not feature.is_registered
        assert not feature.is_active_for(_sc_document())


class TestDocumentMatching:
    def test_language_filter(self) -> None:
        assert document_matches(_sc_document(), [{"language": "supercollider"}])
        assert not document_matches(_sc_document(), [{"language": "python"}])

    def test_scheme_filter(self, tmp_path: Path) -> None:
        saved = _sc_document(tmp_path / "a.scd")

        assert document_matches(saved, [{"scheme": "file"}])
        assert not document_matches(_sc_document(), [{"scheme": "file"}])
        assert document_matches(_sc_document(), [{"scheme": "untitled"}])

    def test_pattern_filter(self, tmp_path: Path) -> None:
        saved = _sc_document(tmp_path / "a.scd")

        assert document_matches(saved, [{"pattern": "*.scd"}])
        assert not document_matches(saved, [{"pattern": "*.sc"}])

    def test_any_filter_matches(self) -> None:
        assert document_matches(_sc_document(), [{"language": "python"}, {"language": "supercollider"}])

    def test_inactive_feature(self) -> None:
        assert not EvaluateSelectionFeature().is_active_for(_sc_document())
