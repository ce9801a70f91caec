"""Event bus and evaluation lifecycle events.

Components such as the feedback controller and the capability feature report
what they did through these events, so status widgets or tests can observe
the evaluation flow without holding references to the components.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Callable, Generic, TypeVar
from weakref import WeakMethod

logger = logging.getLogger(__name__)

E = TypeVar("E", bound="Event")

Handler = Callable[[E], None]


@dataclass(slots=True)
class Event:
    """Base class for all events published on the :class:`EventBus`."""


# =============================================================================
# Evaluation events
# =============================================================================


@dataclass(slots=True)
class EvaluationStarted(Event):
    """Emitted when an editor enters the evaluating state.

    Attributes:
        editor_id: Identity of the editor showing the span.
        generation: Generation token of the new invocation.
        start_line: First line of the evaluated span.
        end_line: Last line of the evaluated span.
    """

    editor_id: str
    generation: int
    start_line: int
    end_line: int


@dataclass(slots=True)
class EvaluationCompleted(Event):
    """Emitted when a success or error annotation is painted.

    Attributes:
        editor_id: Identity of the editor showing the span.
        generation: Generation token of the completed invocation.
        text: Result or error text carried as hover payload.
        is_error: ``True`` for compile and runtime errors.
    """

    editor_id: str
    generation: int
    text: str
    is_error: bool


@dataclass(slots=True)
class EvaluationTimedOut(Event):
    """Emitted when the safety timeout clears a still-evaluating span."""

    editor_id: str
    generation: int


@dataclass(slots=True)
class EvaluationDiscarded(Event):
    """Emitted when a completion arrives for a superseded invocation.

    Attributes:
        editor_id: Identity of the editor.
        generation: Generation of the stale completion.
        current_generation: Generation that owns the editor's visual state.
    """

    editor_id: str
    generation: int
    current_generation: int


@dataclass(slots=True)
class FeatureRegistrationChanged(Event):
    """Emitted when the evaluate feature gains or loses a registration."""

    registration_id: str
    registered: bool


class EventBus(Generic[E]):
    """Synchronous publish/subscribe hub.

    Bound-method handlers are held weakly so a subscriber that goes away is
    dropped on the next publish; plain functions are held strongly. A handler
    that raises is logged and does not stop delivery to the others. Not
    thread-safe; use it from the event loop thread only.
    """

    __slots__ = ("_handlers",)

    def __init__(self) -> None:
        self._handlers: defaultdict[type[Event], list[_HandlerRef]] = defaultdict(list)

    def subscribe(self, event_type: type[E], handler: Handler[E]) -> None:
        self._handlers[event_type].append(_HandlerRef.create(handler))
        logger.debug("Subscribed %s to %s", _handler_name(handler), event_type.__name__)

    def unsubscribe(self, event_type: type[E], handler: Handler[E]) -> None:
        handlers = self._handlers.get(event_type)
        if not handlers:
            return
        for index, handler_ref in enumerate(handlers):
            if handler_ref.matches(handler):
                handlers.pop(index)
                return

    def publish(self, event: E) -> None:
        event_type = type(event)
        handlers = self._handlers.get(event_type)
        if not handlers:
            return
        logger.debug("Publishing %s to %d handler(s)", event_type.__name__, len(handlers))
        stale: list[_HandlerRef] = []
        for handler_ref in list(handlers):
            handler = handler_ref.resolve()
            if handler is None:
                stale.append(handler_ref)
                continue
            try:
                handler(event)
            except Exception:
                logger.exception(
                    "Handler %s failed for %s", _handler_name(handler), event_type.__name__
                )
        for handler_ref in stale:
            handlers.remove(handler_ref)

    def clear(self) -> None:
        self._handlers.clear()

    def handler_count(self, event_type: type[E] | None = None) -> int:
        if event_type is not None:
            return len(self._handlers.get(event_type, []))
        return sum(len(handlers) for handlers in self._handlers.values())


class _HandlerRef:
    """Weak reference for bound methods, strong reference for everything else."""

    __slots__ = ("_target", "_weak")

    def __init__(self, target: object, weak: bool) -> None:
        self._target = target
        self._weak = weak

    @classmethod
    def create(cls, handler: Handler) -> _HandlerRef:
        if hasattr(handler, "__self__") and hasattr(handler, "__func__"):
            try:
                return cls(WeakMethod(handler), weak=True)
            except TypeError:
                pass
        return cls(handler, weak=False)

    def resolve(self) -> Handler | None:
        if self._weak:
            return self._target()  # type: ignore[operator]
        return self._target  # type: ignore[return-value]

    def matches(self, handler: Handler) -> bool:
        resolved = self.resolve()
        return resolved is not None and resolved == handler


def _handler_name(handler: Handler) -> str:
    if hasattr(handler, "__self__") and hasattr(handler, "__func__"):
        return f"{type(handler.__self__).__name__}.{handler.__func__.__name__}"
    return getattr(handler, "__name__", repr(handler))


__all__ = [
    "Event",
    "EventBus",
    "Handler",
    "EvaluationStarted",
    "EvaluationCompleted",
    "EvaluationTimedOut",
    "EvaluationDiscarded",
    "FeatureRegistrationChanged",
]
