"""Capability negotiation and registration for the evaluate extension.

The client advertises the extension during ``initialize``; the server answers
with an ``executionProvider`` entry at the top level of its capabilities
(:func:`install_server_capability_hook` keeps it through structuring). When
that entry is present the feature registers itself for the document selector,
and commands only dispatch for documents matched by an active registration.
"""

from __future__ import annotations

import fnmatch
import logging
import uuid
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

import cattrs
from lsprotocol.types import ClientCapabilities, ServerCapabilities

from ..editor.document_model import TextDocument
from ..ui.events import EventBus, FeatureRegistrationChanged
from .evaluate import EVALUATE_SELECTION

LOGGER = logging.getLogger(__name__)

SERVER_CAPABILITY_KEY = "executionProvider"

DocumentFilter = Mapping[str, str]
DocumentSelector = Sequence[DocumentFilter]


@dataclass(slots=True, frozen=True)
class EvaluationClientCapabilities:
    """Client-side flags advertised under ``experimental.textDocument.evaluation``."""

    evaluate_selection: bool = True

    def to_payload(self) -> dict[str, Any]:
        return {"textDocument": {"evaluation": {"evaluateSelection": self.evaluate_selection}}}


@dataclass(slots=True, frozen=True)
class EvaluateSelectionRegistrationOptions:
    """Options the server granted for the evaluate request."""

    document_selector: tuple[dict[str, str], ...]
    work_done_progress: bool | None = None
    registration_id: str | None = None

    @classmethod
    def from_value(
        cls, value: Any, document_selector: DocumentSelector | None
    ) -> EvaluateSelectionRegistrationOptions | None:
        """Build options from a server capability value.

        ``True`` yields the client's selector; a mapping is merged with it.
        Falsy values, and a missing selector, mean the feature stays off.
        """

        if not value or document_selector is None:
            return None
        selector = tuple(dict(entry) for entry in document_selector)
        if value is True:
            return cls(document_selector=selector)
        if not isinstance(value, Mapping):
            LOGGER.debug("Ignoring unsupported %s value: %r", SERVER_CAPABILITY_KEY, value)
            return None
        progress = value.get("workDoneProgress")
        registration_id = value.get("id")
        return cls(
            document_selector=selector,
            work_done_progress=bool(progress) if progress is not None else None,
            registration_id=str(registration_id) if registration_id else None,
        )

    @classmethod
    def from_dynamic(
        cls, value: Any, fallback_selector: DocumentSelector | None
    ) -> EvaluateSelectionRegistrationOptions | None:
        """Build options from ``client/registerCapability`` register options."""

        options = value if isinstance(value, Mapping) else {}
        selector = options.get("documentSelector") or fallback_selector
        if not selector:
            return None
        progress = options.get("workDoneProgress")
        return cls(
            document_selector=tuple(dict(entry) for entry in selector),
            work_done_progress=bool(progress) if progress is not None else None,
        )


@dataclass(slots=True, frozen=True)
class FeatureRegistration:
    id: str
    options: EvaluateSelectionRegistrationOptions


def document_matches(document: TextDocument, selector: DocumentSelector) -> bool:
    """Return ``True`` when any filter in ``selector`` matches ``document``."""

    uri = document.uri
    scheme = uri.split(":", 1)[0]
    path = str(document.metadata.path) if document.metadata.path is not None else uri
    for entry in selector:
        language = entry.get("language")
        if language and language != document.metadata.language:
            continue
        wanted_scheme = entry.get("scheme")
        if wanted_scheme and wanted_scheme != scheme:
            continue
        pattern = entry.get("pattern")
        if pattern and not fnmatch.fnmatch(path, pattern):
            continue
        return True
    return False


@dataclass(slots=True)
class EvaluateSelectionFeature:
    """Tracks whether ``textDocument/evaluateSelection`` is active and where."""

    capabilities: EvaluationClientCapabilities = field(default_factory=EvaluationClientCapabilities)
    event_bus: EventBus | None = None
    _registrations: dict[str, FeatureRegistration] = field(default_factory=dict)

    @property
    def method(self) -> str:
        return EVALUATE_SELECTION

    @property
    def registrations(self) -> tuple[FeatureRegistration, ...]:
        return tuple(self._registrations.values())

    @property
    def is_registered(self) -> bool:
        return bool(self._registrations)

    # ------------------------------------------------------------------
    # Negotiation
    # ------------------------------------------------------------------
    def fill_client_capabilities(self, capabilities: ClientCapabilities) -> ClientCapabilities:
        """Merge the evaluation flags into ``capabilities.experimental``."""

        experimental = capabilities.experimental
        merged: dict[str, Any] = dict(experimental) if isinstance(experimental, Mapping) else {}
        payload = self.capabilities.to_payload()
        text_document = dict(merged.get("textDocument") or {})
        text_document.update(payload["textDocument"])
        merged["textDocument"] = text_document
        capabilities.experimental = merged
        return capabilities

    def initialize(
        self,
        server_capabilities: ServerCapabilities | Mapping[str, Any] | None,
        document_selector: DocumentSelector | None,
    ) -> FeatureRegistration | None:
        """Register statically when the server granted the execution provider."""

        value = _server_capability(server_capabilities)
        options = EvaluateSelectionRegistrationOptions.from_value(value, document_selector)
        if options is None:
            LOGGER.debug("Server did not grant %s; evaluate feature inactive", SERVER_CAPABILITY_KEY)
            return None
        return self.register(uuid.uuid4().hex, options)

    # ------------------------------------------------------------------
    # Registration bookkeeping
    # ------------------------------------------------------------------
    def register(
        self, registration_id: str, options: EvaluateSelectionRegistrationOptions
    ) -> FeatureRegistration:
        registration = FeatureRegistration(id=registration_id, options=options)
        self._registrations[registration_id] = registration
        LOGGER.debug(
            "Registered %s id=%s selector=%s",
            EVALUATE_SELECTION,
            registration_id,
            list(options.document_selector),
        )
        if self.event_bus is not None:
            self.event_bus.publish(FeatureRegistrationChanged(registration_id, registered=True))
        return registration

    def register_dynamic(
        self,
        registration_id: str,
        register_options: Any,
        fallback_selector: DocumentSelector | None,
    ) -> FeatureRegistration | None:
        """Handle a server-driven registration for the evaluate method."""

        options = EvaluateSelectionRegistrationOptions.from_dynamic(register_options, fallback_selector)
        if options is None:
            LOGGER.debug("Dynamic registration %s has no document selector", registration_id)
            return None
        return self.register(registration_id, options)

    def unregister(self, registration_id: str) -> bool:
        if self._registrations.pop(registration_id, None) is None:
            return False
        if self.event_bus is not None:
            self.event_bus.publish(FeatureRegistrationChanged(registration_id, registered=False))
        return True

    def clear(self) -> None:
        for registration_id in list(self._registrations):
            self.unregister(registration_id)

    def is_active_for(self, document: TextDocument) -> bool:
        return any(
            document_matches(document, registration.options.document_selector)
            for registration in self._registrations.values()
        )


def _server_capability(capabilities: ServerCapabilities | Mapping[str, Any] | None) -> Any:
    if capabilities is None:
        return None
    if isinstance(capabilities, Mapping):
        if SERVER_CAPABILITY_KEY in capabilities:
            return capabilities[SERVER_CAPABILITY_KEY]
        experimental = capabilities.get("experimental")
    else:
        experimental = capabilities.experimental
    if isinstance(experimental, Mapping):
        return experimental.get(SERVER_CAPABILITY_KEY)
    return None


def install_server_capability_hook(converter: cattrs.Converter) -> cattrs.Converter:
    """Keep a top-level ``executionProvider`` when structuring ``ServerCapabilities``.

    lsprotocol drops keys it does not know, so the hook moves the entry under
    ``experimental`` before the stock structuring runs.
    """

    structure = converter.get_structure_hook(ServerCapabilities)

    def _structure(value: Any, cls: type) -> ServerCapabilities:
        if not isinstance(value, Mapping) or SERVER_CAPABILITY_KEY not in value:
            return structure(value, cls)
        payload = dict(value)
        provider = payload.pop(SERVER_CAPABILITY_KEY)
        experimental = payload.get("experimental")
        merged = dict(experimental) if isinstance(experimental, Mapping) else {}
        merged.setdefault(SERVER_CAPABILITY_KEY, provider)
        payload["experimental"] = merged
        return structure(payload, cls)

    converter.register_structure_hook(ServerCapabilities, _structure)
    return converter


__all__ = [
    "DocumentSelector",
    "EvaluateSelectionFeature",
    "EvaluateSelectionRegistrationOptions",
    "EvaluationClientCapabilities",
    "FeatureRegistration",
    "SERVER_CAPABILITY_KEY",
    "document_matches",
    "install_server_capability_hook",
]
