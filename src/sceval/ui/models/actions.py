"""Command descriptors exposed through shortcuts and menus."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable


@dataclass(slots=True)
class WindowAction:
    """A named command with an optional keyboard shortcut."""

    name: str
    text: str
    shortcut: str | None = None
    status_tip: str | None = None
    menu: str | None = None
    callback: Callable[..., Any] | None = None

    def trigger(self, *args: Any) -> Any:
        """Invoke the registered callback, if available."""

        if self.callback is None:
            return None
        return self.callback(*args)


__all__ = ["WindowAction"]
