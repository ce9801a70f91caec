"""Evaluation feedback state models.

These dataclasses and enums describe one editor's evaluation feedback. They
are owned by the domain layer (:class:`FeedbackController`) and only live as
long as the invocation they describe.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping

from ...core.ranges import TextSpan

DEFAULT_FLASH_TIME_MS = 50
DEFAULT_POST_FLASH_TIME_MS = 600
EVALUATION_TIMEOUT_MS = 5000


class EvaluationState(Enum):
    """Visual state of an editor's most recent evaluation.

    Values:
        IDLE: Nothing painted.
        EVALUATING: The request is in flight.
        SUCCESS: The result annotation is showing.
        ERROR: The compile/runtime error annotation is showing.
    """

    IDLE = "idle"
    EVALUATING = "evaluating"
    SUCCESS = "success"
    ERROR = "error"


@dataclass(slots=True, frozen=True)
class FlashTiming:
    """Delays applied around the result annotation, in milliseconds.

    Attributes:
        pre_delay_ms: Minimum time between the evaluating annotation and the
            result annotation.
        post_delay_ms: Time after invocation start at which the result
            annotation is removed.
    """

    pre_delay_ms: int = DEFAULT_FLASH_TIME_MS
    post_delay_ms: int = DEFAULT_POST_FLASH_TIME_MS

    def __post_init__(self) -> None:
        object.__setattr__(self, "pre_delay_ms", max(0, int(self.pre_delay_ms)))
        object.__setattr__(self, "post_delay_ms", max(0, int(self.post_delay_ms)))

    @classmethod
    def from_settings(cls, settings: Any) -> FlashTiming:
        """Read ``evaluate.flashTime``/``evaluate.postFlashTime`` from a settings object."""

        getter = getattr(settings, "get", None)
        if getter is None and isinstance(settings, Mapping):
            getter = settings.get
        if getter is None:
            return cls()
        return cls(
            pre_delay_ms=_as_int(getter("evaluate.flashTime", DEFAULT_FLASH_TIME_MS), DEFAULT_FLASH_TIME_MS),
            post_delay_ms=_as_int(
                getter("evaluate.postFlashTime", DEFAULT_POST_FLASH_TIME_MS),
                DEFAULT_POST_FLASH_TIME_MS,
            ),
        )


def _as_int(value: Any, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


@dataclass(slots=True)
class EvaluationSession:
    """One invocation's feedback bookkeeping.

    Attributes:
        generation: Token compared against the controller's counter to
            detect superseded invocations.
        target_span: Span the annotations are painted over.
        editor_id: Identity of the editor displaying the span.
        timing: Flash delays read when the invocation started.
        flash_deadline: Loop time before which the result annotation must
            not be painted (invocation start plus ``pre_delay_ms``).
        post_flash_deadline: Loop time at which the result annotation is
            cleared (invocation start plus ``post_delay_ms``).
        timeout_handle: Safety timer clearing the evaluating annotation.
        state: Current visual state of this invocation.
    """

    generation: int
    target_span: TextSpan
    editor_id: str
    timing: FlashTiming = field(default_factory=FlashTiming)
    flash_deadline: float = 0.0
    post_flash_deadline: float = 0.0
    timeout_handle: asyncio.TimerHandle | None = None
    state: EvaluationState = EvaluationState.EVALUATING

    def cancel_timeout(self) -> None:
        if self.timeout_handle is not None:
            self.timeout_handle.cancel()
            self.timeout_handle = None


__all__ = [
    "DEFAULT_FLASH_TIME_MS",
    "DEFAULT_POST_FLASH_TIME_MS",
    "EVALUATION_TIMEOUT_MS",
    "EvaluationSession",
    "EvaluationState",
    "FlashTiming",
]
