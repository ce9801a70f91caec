"""LSP extension for evaluating source text on a remote engine."""

from .capabilities import (
    EvaluateSelectionFeature,
    EvaluateSelectionRegistrationOptions,
    EvaluationClientCapabilities,
    FeatureRegistration,
)
from .evaluate import (
    EVALUATE_SELECTION,
    EvaluateSelectionParams,
    EvaluationOutcome,
    EvaluationReply,
    classify_result,
)

__all__ = [
    "EVALUATE_SELECTION",
    "EvaluateSelectionFeature",
    "EvaluateSelectionParams",
    "EvaluateSelectionRegistrationOptions",
    "EvaluationClientCapabilities",
    "EvaluationOutcome",
    "EvaluationReply",
    "FeatureRegistration",
    "classify_result",
]
