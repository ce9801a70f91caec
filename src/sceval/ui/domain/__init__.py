"""Domain layer for evaluation feedback.

Domain Managers:
    - AnnotationTracker: Per-editor record of painted annotations
    - FeedbackController: Per-editor evaluation feedback state machine
    - FeedbackRegistry: Editor identity -> FeedbackController map

All domain managers:
    - Receive dependencies via constructor injection
    - Emit events through an optional event bus
    - Have no direct dependencies on Qt widgets
"""

from __future__ import annotations

from .annotation_tracker import AnnotationTracker
from .feedback_controller import Completion, FeedbackController, FeedbackRegistry

__all__: list[str] = [
    "AnnotationTracker",
    "Completion",
    "FeedbackController",
    "FeedbackRegistry",
]
