"""Dataclasses representing editor document state."""

from __future__ import annotations

import hashlib
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from ..core.ranges import Position, TextSpan

DEFAULT_LANGUAGE = "supercollider"


def _hash_text(text: str) -> str:
    return hashlib.sha1(text.encode("utf-8")).hexdigest()


@dataclass(slots=True, frozen=True)
class TextLine:
    """A single document line without its terminator."""

    line_number: int
    text: str

    @property
    def span(self) -> TextSpan:
        """Return the span covering the line from column 0 to its last character."""

        return TextSpan.from_lines(self.line_number, self.line_number, len(self.text))


@dataclass(slots=True)
class DocumentMetadata:
    """Metadata describing the currently loaded document."""

    path: Optional[Path] = None
    language: str = DEFAULT_LANGUAGE
    scheme: str = "file"


@dataclass(slots=True)
class TextDocument:
    """Line-addressable snapshot of an editor document."""

    text: str = ""
    metadata: DocumentMetadata = field(default_factory=DocumentMetadata)
    document_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    version_id: int = 1
    content_hash: str = field(default_factory=str)
    _lines: list[str] = field(default_factory=list, init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        self._split()

    def _split(self) -> None:
        if not self.content_hash:
            self.content_hash = _hash_text(self.text)
        # Only "\n" ends a line, matching Qt blocks; other separators stay in the text.
        self._lines = self.text.split("\n")

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------
    def update_text(self, new_text: str) -> None:
        """Replace the document text and bump the version."""

        self.text = new_text
        self.version_id += 1
        self.content_hash = _hash_text(new_text)
        self._split()

    # ------------------------------------------------------------------
    # Line access
    # ------------------------------------------------------------------
    @property
    def line_count(self) -> int:
        return len(self._lines)

    @property
    def uri(self) -> str:
        """Return the document identifier sent over the wire."""

        path = self.metadata.path
        if path is not None:
            return path.expanduser().resolve().as_uri()
        return f"untitled:{self.document_id}"

    def line_at(self, value: int | Position) -> TextLine:
        """Return the line holding ``value`` (a line number or position), clamped."""

        number = value.line if isinstance(value, Position) else int(value)
        number = max(0, min(number, self.line_count - 1))
        return TextLine(line_number=number, text=self._lines[number])

    def clamp(self, span: TextSpan) -> TextSpan:
        """Clamp ``span`` to positions that exist in this document."""

        return TextSpan(self._clamp_position(span.start), self._clamp_position(span.end))

    def _clamp_position(self, position: Position) -> Position:
        line = self.line_at(position.line)
        if position.line > line.line_number:
            return Position(line.line_number, len(line.text))
        return Position(line.line_number, min(position.character, len(line.text)))

    def offset_at(self, position: Position) -> int:
        """Return the absolute character offset of ``position``, assuming ``\\n`` terminators."""

        clamped = self._clamp_position(position)
        offset = sum(len(self._lines[index]) + 1 for index in range(clamped.line))
        return offset + clamped.character

    def get_text(self, span: TextSpan | None = None) -> str:
        """Return the literal characters covered by ``span`` (whole text when omitted)."""

        if span is None:
            return self.text
        span = self.clamp(span)
        if span.start.line == span.end.line:
            return self._lines[span.start.line][span.start.character : span.end.character]
        parts = [self._lines[span.start.line][span.start.character :]]
        parts.extend(self._lines[span.start.line + 1 : span.end.line])
        parts.append(self._lines[span.end.line][: span.end.character])
        return "\n".join(parts)

    def snapshot(self) -> Dict[str, Any]:
        """Return a serializable summary used in debug logging."""

        payload: Dict[str, Any] = {
            "uri": self.uri,
            "language": self.metadata.language,
            "line_count": self.line_count,
            "document_id": self.document_id,
            "version_id": self.version_id,
            "content_hash": self.content_hash,
        }
        return payload


__all__ = ["DocumentMetadata", "TextDocument", "TextLine", "DEFAULT_LANGUAGE"]
