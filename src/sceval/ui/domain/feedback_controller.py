"""Evaluation feedback domain service.

Drives the annotations shown while a span is being evaluated. Each editor
gets its own :class:`FeedbackController` with its own generation counter;
the counter is bumped synchronously when an invocation starts, and every
later step (completion, flash delays, safety timeout) checks it again so an
older invocation that resolves late can never overwrite a newer one.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional

from ...core.ranges import TextSpan
from ...editor.annotations import (
    ERROR_STYLE,
    EVALUATING_HOVER,
    EVALUATING_STYLE,
    SUCCESS_STYLE,
    Annotation,
)
from ...editor.editor_handle import EditorHandle
from ..events import (
    EvaluationCompleted,
    EvaluationDiscarded,
    EvaluationStarted,
    EvaluationTimedOut,
    EventBus,
)
from ..models.evaluation_models import (
    EVALUATION_TIMEOUT_MS,
    EvaluationSession,
    EvaluationState,
    FlashTiming,
)
from .annotation_tracker import AnnotationTracker

LOGGER = logging.getLogger(__name__)

Completion = Callable[[str, bool], Optional["asyncio.Task[None]"]]


class FeedbackController:
    """Per-editor state machine: ``IDLE -> EVALUATING -> SUCCESS|ERROR -> IDLE``.

    :meth:`start` paints the evaluating annotation and returns a completion
    callback bound to the new generation. Calling the completion with
    ``(text, is_error)`` schedules the result annotation; calling it after a
    newer :meth:`start` does nothing.

    Events Emitted:
        - EvaluationStarted: When an invocation enters EVALUATING
        - EvaluationCompleted: When a success/error annotation is painted
        - EvaluationTimedOut: When the safety timeout clears EVALUATING
        - EvaluationDiscarded: When a stale completion is dropped
    """

    def __init__(
        self,
        editor: EditorHandle,
        tracker: AnnotationTracker,
        *,
        event_bus: EventBus | None = None,
        timeout_ms: int = EVALUATION_TIMEOUT_MS,
    ) -> None:
        """Initialize the controller.

        Args:
            editor: The editor whose annotations this controller owns.
            tracker: Shared record of painted annotations.
            event_bus: Optional bus receiving lifecycle events.
            timeout_ms: Delay before a still-evaluating span is cleared.
        """
        self._editor = editor
        self._tracker = tracker
        self._bus = event_bus
        self._timeout_ms = timeout_ms
        self._generation = 0
        self._session: EvaluationSession | None = None
        self._pending: set[asyncio.Task[None]] = set()

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def editor(self) -> EditorHandle:
        return self._editor

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def session(self) -> EvaluationSession | None:
        return self._session

    @property
    def state(self) -> EvaluationState:
        if self._session is None:
            return EvaluationState.IDLE
        return self._session.state

    def is_current(self, session: EvaluationSession) -> bool:
        return session.generation == self._generation

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self, span: TextSpan, timing: FlashTiming | None = None) -> Completion:
        """Enter EVALUATING for ``span`` and return the completion callback.

        Must be called from the running event loop. The generation bump and
        the annotation changes happen before this method returns.
        """
        loop = asyncio.get_running_loop()
        timing = timing or FlashTiming()

        self._generation += 1
        previous = self._session
        if previous is not None:
            previous.cancel_timeout()

        now = loop.time()
        session = EvaluationSession(
            generation=self._generation,
            target_span=span,
            editor_id=self._editor.editor_id,
            timing=timing,
            flash_deadline=now + timing.pre_delay_ms / 1000.0,
            post_flash_deadline=now + timing.post_delay_ms / 1000.0,
        )
        self._session = session

        self._tracker.clear(self._editor, SUCCESS_STYLE)
        self._tracker.clear(self._editor, ERROR_STYLE)
        self._tracker.paint(
            self._editor,
            EVALUATING_STYLE,
            [Annotation(span=span, hover=EVALUATING_HOVER)],
        )
        session.timeout_handle = loop.call_later(
            self._timeout_ms / 1000.0, self._handle_timeout, session
        )

        LOGGER.debug(
            "FeedbackController.start: editor=%s generation=%d lines=%d-%d",
            session.editor_id,
            session.generation,
            span.start_line,
            span.end_line,
        )
        self._publish(
            EvaluationStarted(
                editor_id=session.editor_id,
                generation=session.generation,
                start_line=span.start_line,
                end_line=span.end_line,
            )
        )

        def complete(text: str, is_error: bool) -> asyncio.Task[None] | None:
            return self._complete(session, text, is_error)

        return complete

    def _complete(
        self, session: EvaluationSession, text: str, is_error: bool
    ) -> asyncio.Task[None] | None:
        if not self.is_current(session):
            self._discard(session)
            return None
        task = asyncio.ensure_future(self._render_result(session, text, is_error))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _render_result(self, session: EvaluationSession, text: str, is_error: bool) -> None:
        loop = asyncio.get_running_loop()
        await asyncio.sleep(max(0.0, session.flash_deadline - loop.time()))
        if not self.is_current(session):
            self._discard(session)
            return

        session.cancel_timeout()
        style = ERROR_STYLE if is_error else SUCCESS_STYLE
        other = SUCCESS_STYLE if is_error else ERROR_STYLE
        self._tracker.clear(self._editor, EVALUATING_STYLE)
        self._tracker.clear(self._editor, other)
        self._tracker.paint(self._editor, style, [Annotation(span=session.target_span, hover=text)])
        session.state = EvaluationState.ERROR if is_error else EvaluationState.SUCCESS
        self._publish(
            EvaluationCompleted(
                editor_id=session.editor_id,
                generation=session.generation,
                text=text,
                is_error=is_error,
            )
        )

        await asyncio.sleep(max(0.0, session.post_flash_deadline - loop.time()))
        if not self.is_current(session):
            return
        self._tracker.clear(self._editor, style)
        session.state = EvaluationState.IDLE

    def _handle_timeout(self, session: EvaluationSession) -> None:
        session.timeout_handle = None
        if not self.is_current(session) or session.state is not EvaluationState.EVALUATING:
            return
        self._tracker.clear(self._editor, EVALUATING_STYLE)
        session.state = EvaluationState.IDLE
        LOGGER.debug(
            "FeedbackController: evaluation timed out, editor=%s generation=%d",
            session.editor_id,
            session.generation,
        )
        self._publish(EvaluationTimedOut(editor_id=session.editor_id, generation=session.generation))

    def _discard(self, session: EvaluationSession) -> None:
        LOGGER.debug(
            "FeedbackController: discarding stale completion, editor=%s generation=%d current=%d",
            session.editor_id,
            session.generation,
            self._generation,
        )
        self._publish(
            EvaluationDiscarded(
                editor_id=session.editor_id,
                generation=session.generation,
                current_generation=self._generation,
            )
        )

    async def wait_idle(self) -> None:
        """Wait for every scheduled result rendering to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def close(self) -> None:
        """Invalidate outstanding work; used when the editor goes away."""
        self._generation += 1
        if self._session is not None:
            self._session.cancel_timeout()
            self._session = None
        for task in list(self._pending):
            task.cancel()

    def _publish(self, event: object) -> None:
        if self._bus is not None:
            self._bus.publish(event)  # type: ignore[arg-type]


class FeedbackRegistry:
    """Owns one :class:`FeedbackController` per editor, keyed by editor identity."""

    def __init__(
        self,
        tracker: AnnotationTracker | None = None,
        *,
        event_bus: EventBus | None = None,
        timeout_ms: int = EVALUATION_TIMEOUT_MS,
    ) -> None:
        self._tracker = tracker or AnnotationTracker()
        self._bus = event_bus
        self._timeout_ms = timeout_ms
        self._controllers: dict[str, FeedbackController] = {}

    @property
    def tracker(self) -> AnnotationTracker:
        return self._tracker

    def controller_for(self, editor: EditorHandle) -> FeedbackController:
        controller = self._controllers.get(editor.editor_id)
        if controller is None or controller.editor is not editor:
            controller = FeedbackController(
                editor,
                self._tracker,
                event_bus=self._bus,
                timeout_ms=self._timeout_ms,
            )
            self._controllers[editor.editor_id] = controller
        return controller

    def get(self, editor_id: str) -> FeedbackController | None:
        return self._controllers.get(editor_id)

    def discard(self, editor: EditorHandle) -> None:
        """Forget the controller and annotations of a closed editor."""
        controller = self._controllers.pop(editor.editor_id, None)
        if controller is not None:
            controller.close()
        self._tracker.forget(editor.editor_id)

    def __len__(self) -> int:
        return len(self._controllers)


__all__ = ["Completion", "FeedbackController", "FeedbackRegistry"]
