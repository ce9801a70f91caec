"""Evaluation use cases.

This module wires the evaluate commands to the engine:

- ``evaluate_selection``: the explicit range, or the selection, or the line
- ``evaluate_line``: every line touched by the selection
- ``evaluate_region``: the enclosing ``( ... )`` block

Each command resolves a span for the active editor, starts the editor's
feedback controller, sends ``textDocument/evaluateSelection`` and completes
the controller from the classified response. Nothing here raises into the
command layer; every failure is logged at debug level and dropped.
"""

from __future__ import annotations

import asyncio
import functools
import logging
from typing import TYPE_CHECKING, Any, Callable

from ...core.ranges import TextSpan
from ...editor.region_locator import EvaluationMode, locate
from ...protocol.evaluate import EVALUATE_SELECTION, EvaluateSelectionParams, classify_result
from ..models.evaluation_models import FlashTiming

if TYPE_CHECKING:  # pragma: no cover - imports for type checking only
    from ...editor.editor_handle import EditorHandle
    from ...protocol.capabilities import EvaluateSelectionFeature
    from ...services.engine_client import EvaluationTransport
    from ..domain.feedback_controller import Completion, FeedbackRegistry

LOGGER = logging.getLogger(__name__)


class EvaluationDispatcher:
    """Use case for sending spans of the active editor to the engine.

    The dispatcher never awaits the engine. :meth:`evaluate` returns the
    pending request future; the response is handled in a done callback so a
    second invocation can start while the first is still in flight.
    """

    __slots__ = (
        "_transport",
        "_feature",
        "_feedback",
        "_editor_provider",
        "_settings_provider",
        "_in_flight",
    )

    def __init__(
        self,
        transport: EvaluationTransport,
        feature: EvaluateSelectionFeature,
        feedback: FeedbackRegistry,
        editor_provider: Callable[[], EditorHandle | None],
        *,
        settings_provider: Callable[[], Any] | None = None,
    ) -> None:
        """Initialize the use case.

        Args:
            transport: Sends the evaluate request to the engine.
            feature: Registration state of the evaluate request.
            feedback: Per-editor feedback controllers.
            editor_provider: Returns the active editor, if any.
            settings_provider: Returns the current settings (read per invocation).
        """
        self._transport = transport
        self._feature = feature
        self._feedback = feedback
        self._editor_provider = editor_provider
        self._settings_provider = settings_provider or (lambda: None)
        self._in_flight: set[asyncio.Future[Any]] = set()

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------
    def evaluate_selection(self, range: Any = None) -> asyncio.Future[Any] | None:
        """Evaluate ``range`` (command payload shape) or the current selection."""

        explicit: TextSpan | None = None
        if range is not None:
            try:
                explicit = TextSpan.from_value(range)
            except (TypeError, ValueError, KeyError):
                LOGGER.debug("evaluate_selection: ignoring unparsable range %r", range)
        return self._run(EvaluationMode.SELECTION, explicit)

    def evaluate_line(self) -> asyncio.Future[Any] | None:
        return self._run(EvaluationMode.LINE)

    def evaluate_region(self) -> asyncio.Future[Any] | None:
        return self._run(EvaluationMode.REGION)

    def _run(
        self, mode: EvaluationMode, explicit: TextSpan | None = None
    ) -> asyncio.Future[Any] | None:
        editor = self._active_editor()
        if editor is None:
            return None
        span = locate(mode, editor.document, editor.selection, explicit)
        if span is None:
            LOGGER.debug("EvaluationDispatcher: no %s span in editor %s", mode.value, editor.editor_id)
            return None
        return self.evaluate(editor, span)

    def _active_editor(self) -> EditorHandle | None:
        editor = self._editor_provider()
        if editor is None:
            LOGGER.debug("EvaluationDispatcher: no active editor")
            return None
        if not self._feature.is_active_for(editor.document):
            LOGGER.debug(
                "EvaluationDispatcher: %s not registered for %s",
                EVALUATE_SELECTION,
                editor.document.uri,
            )
            return None
        return editor

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------
    def evaluate(self, editor: EditorHandle, span: TextSpan) -> asyncio.Future[Any] | None:
        """Start feedback for ``span`` and send its text to the engine.

        Must be called from the running event loop. Returns the pending
        request future, or ``None`` when the request could not be sent.
        """
        timing = FlashTiming.from_settings(self._settings_provider())
        complete = self._feedback.controller_for(editor).start(span, timing)

        document = editor.document
        params = EvaluateSelectionParams(uri=document.uri, source_code=document.get_text(span))
        try:
            future = asyncio.ensure_future(
                self._transport.send_request(EVALUATE_SELECTION, params.to_payload())
            )
        except Exception:
            LOGGER.debug("EvaluationDispatcher: failed to send request", exc_info=True)
            return None

        self._in_flight.add(future)
        future.add_done_callback(self._in_flight.discard)
        future.add_done_callback(functools.partial(self._handle_response, complete))
        return future

    @staticmethod
    def _handle_response(complete: Completion, future: asyncio.Future[Any]) -> None:
        if future.cancelled():
            LOGGER.debug("EvaluationDispatcher: request cancelled")
            return
        exc = future.exception()
        if exc is not None:
            LOGGER.debug("EvaluationDispatcher: request failed: %s", exc)
            return
        reply = classify_result(future.result())
        if reply.is_malformed:
            return
        complete(reply.text, reply.is_error)

    async def drain(self) -> None:
        """Wait for every in-flight request to resolve."""
        while self._in_flight:
            await asyncio.gather(*list(self._in_flight), return_exceptions=True)


__all__ = ["EvaluationDispatcher"]
