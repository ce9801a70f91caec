"""Plain data models used by the UI domain and application layers."""

from .actions import WindowAction
from .evaluation_models import EvaluationSession, EvaluationState, FlashTiming

__all__ = ["EvaluationSession", "EvaluationState", "FlashTiming", "WindowAction"]
