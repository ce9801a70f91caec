"""UI layer: evaluation feedback state, commands and events."""

from .events import EventBus

__all__ = ["EventBus"]
