"""Wire contract for the ``textDocument/evaluateSelection`` extension request."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from lsprotocol import converters
from lsprotocol.types import TextDocumentIdentifier

LOGGER = logging.getLogger(__name__)

EVALUATE_SELECTION = "textDocument/evaluateSelection"

RESULT_FIELD = "result"
COMPILE_ERROR_FIELD = "compileError"
ERROR_FIELD = "error"
_RESULT_FIELDS: tuple[str, ...] = (RESULT_FIELD, COMPILE_ERROR_FIELD, ERROR_FIELD)
_ATTRIBUTE_ALIASES: Mapping[str, tuple[str, ...]] = {
    RESULT_FIELD: ("result",),
    COMPILE_ERROR_FIELD: ("compileError", "compile_error"),
    ERROR_FIELD: ("error",),
}

_CONVERTER = converters.get_converter()


@dataclass(slots=True, frozen=True)
class EvaluateSelectionParams:
    """Request payload: the target document plus the literal source to run."""

    uri: str
    source_code: str

    @property
    def text_document(self) -> TextDocumentIdentifier:
        return TextDocumentIdentifier(uri=self.uri)

    def to_payload(self) -> dict[str, Any]:
        """Return the JSON-RPC ``params`` object."""

        return {
            "textDocument": _CONVERTER.unstructure(self.text_document),
            "sourceCode": self.source_code,
        }


class EvaluationOutcome(Enum):
    """Which of the mutually exclusive result fields the engine populated."""

    RESULT = RESULT_FIELD
    COMPILE_ERROR = COMPILE_ERROR_FIELD
    ERROR = ERROR_FIELD
    MALFORMED = "malformed"

    @property
    def is_error(self) -> bool:
        return self in (EvaluationOutcome.COMPILE_ERROR, EvaluationOutcome.ERROR)


@dataclass(slots=True, frozen=True)
class EvaluationReply:
    """Classified engine response."""

    outcome: EvaluationOutcome
    text: str = ""

    @property
    def is_error(self) -> bool:
        return self.outcome.is_error

    @property
    def is_malformed(self) -> bool:
        return self.outcome is EvaluationOutcome.MALFORMED


MALFORMED_REPLY = EvaluationReply(EvaluationOutcome.MALFORMED)


def _read_field(payload: Any, name: str) -> Any:
    if isinstance(payload, Mapping):
        return payload.get(name)
    for attribute in _ATTRIBUTE_ALIASES[name]:
        value = getattr(payload, attribute, None)
        if value is not None:
            return value
    return None


def classify_result(payload: Any) -> EvaluationReply:
    """Classify an ``evaluateSelection`` response.

    Exactly one of ``result``, ``compileError`` and ``error`` must be present
    (a ``None`` value counts as absent). Anything else, including a missing
    payload, is reported as :attr:`EvaluationOutcome.MALFORMED`.
    """

    if payload is None:
        return MALFORMED_REPLY
    populated: list[tuple[str, Any]] = []
    for name in _RESULT_FIELDS:
        value = _read_field(payload, name)
        if value is not None:
            populated.append((name, value))
    if len(populated) != 1:
        LOGGER.debug(
            "Malformed evaluation result: populated=%s",
            [name for name, _ in populated],
        )
        return MALFORMED_REPLY
    name, value = populated[0]
    return EvaluationReply(EvaluationOutcome(name), str(value))


__all__ = [
    "COMPILE_ERROR_FIELD",
    "ERROR_FIELD",
    "EVALUATE_SELECTION",
    "EvaluateSelectionParams",
    "EvaluationOutcome",
    "EvaluationReply",
    "MALFORMED_REPLY",
    "RESULT_FIELD",
    "classify_result",
]
