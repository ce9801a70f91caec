"""Structured helpers for representing line/character spans."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from functools import total_ordering
from typing import Any, Iterator


@total_ordering
@dataclass(slots=True, frozen=True)
class Position:
    """Zero-based ``(line, character)`` location inside a document."""

    line: int
    character: int

    def __post_init__(self) -> None:
        object.__setattr__(self, "line", self._coerce_index(self.line, "line"))
        object.__setattr__(self, "character", self._coerce_index(self.character, "character"))

    @staticmethod
    def _coerce_index(value: Any, label: str) -> int:
        try:
            number = int(value)
        except (TypeError, ValueError) as exc:
            raise ValueError(f"Position {label} must be an integer") from exc
        if number < 0:
            return 0
        return number

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Position):
            return NotImplemented
        return self.to_tuple() < other.to_tuple()

    def to_tuple(self) -> tuple[int, int]:
        """Return the position as a ``(line, character)`` tuple."""

        return (self.line, self.character)

    def to_dict(self) -> dict[str, int]:
        """Return the position in the LSP wire shape."""

        return {"line": self.line, "character": self.character}

    @classmethod
    def from_value(cls, value: Any) -> Position:
        """Coerce ``value`` into a :class:`Position`."""

        if isinstance(value, Position):
            return value
        if isinstance(value, Mapping):
            line = value.get("line")
            character = value.get("character")
            if line is None or character is None:
                raise ValueError("Position mappings require line and character keys")
            return cls(line, character)
        if isinstance(value, Sequence) and not isinstance(value, (str, bytes)):
            seq = list(value)
            if len(seq) != 2:
                raise ValueError("Position sequences must have exactly two entries")
            return cls(seq[0], seq[1])
        line = getattr(value, "line", None)
        character = getattr(value, "character", None)
        if line is not None and character is not None:
            return cls(line, character)
        raise TypeError("Unsupported Position input")


@dataclass(slots=True, frozen=True)
class TextSpan(Sequence[Position]):
    """Ordered pair of positions; reversed inputs are swapped on construction."""

    start: Position
    end: Position

    def __post_init__(self) -> None:
        start = Position.from_value(self.start)
        end = Position.from_value(self.end)
        if end < start:
            start, end = end, start
        object.__setattr__(self, "start", start)
        object.__setattr__(self, "end", end)

    def __len__(self) -> int:
        return 2

    def __getitem__(self, index: int | slice) -> Any:
        if isinstance(index, slice):
            return (self.start, self.end)[index]
        if index == 0:
            return self.start
        if index == 1:
            return self.end
        raise IndexError("TextSpan index out of range")

    def __iter__(self) -> Iterator[Position]:
        yield self.start
        yield self.end

    @property
    def is_empty(self) -> bool:
        """Return ``True`` when the span collapses to a caret."""

        return self.start == self.end

    @property
    def start_line(self) -> int:
        return self.start.line

    @property
    def end_line(self) -> int:
        return self.end.line

    def to_dict(self) -> dict[str, dict[str, int]]:
        """Return the span in the ``{start:{line,character}, end:{...}}`` shape."""

        return {"start": self.start.to_dict(), "end": self.end.to_dict()}

    @classmethod
    def caret(cls, line: int, character: int = 0) -> TextSpan:
        """Return a zero-width span at ``(line, character)``."""

        position = Position(line, character)
        return cls(position, position)

    @classmethod
    def from_lines(cls, start_line: int, end_line: int, end_character: int) -> TextSpan:
        return cls(Position(start_line, 0), Position(end_line, end_character))

    @classmethod
    def from_value(cls, value: Any) -> TextSpan:
        """Coerce ``value`` into a :class:`TextSpan`."""

        if isinstance(value, TextSpan):
            return value
        if value is None:
            raise ValueError("TextSpan value is required")
        if isinstance(value, Mapping):
            start = value.get("start")
            end = value.get("end")
            if start is None or end is None:
                raise ValueError("TextSpan mappings require start and end keys")
            return cls(Position.from_value(start), Position.from_value(end))
        if isinstance(value, Sequence) and not isinstance(value, (str, bytes)):
            seq = list(value)
            if len(seq) != 2:
                raise ValueError("TextSpan sequences must have exactly two entries")
            return cls(Position.from_value(seq[0]), Position.from_value(seq[1]))
        start = getattr(value, "start", None)
        end = getattr(value, "end", None)
        if start is not None and end is not None:
            return cls(Position.from_value(start), Position.from_value(end))
        raise TypeError("Unsupported TextSpan input")


__all__ = ["Position", "TextSpan"]
