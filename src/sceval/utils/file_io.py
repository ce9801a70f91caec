"""File helpers used when opening documents from disk."""

from __future__ import annotations

import codecs
from pathlib import Path

from ..editor.document_model import DEFAULT_LANGUAGE

__all__ = ["infer_language", "read_text"]

_BOM_MAP: dict[bytes, str] = {
    codecs.BOM_UTF8: "utf-8-sig",
    codecs.BOM_UTF16_LE: "utf-16-le",
    codecs.BOM_UTF16_BE: "utf-16-be",
}
_LANGUAGE_EXTENSIONS: dict[str, str] = {
    ".scd": DEFAULT_LANGUAGE,
    ".sc": DEFAULT_LANGUAGE,
    ".schelp": "schelp",
}


def read_text(path: Path | str, *, encoding: str | None = None) -> str:
    """Read ``path`` as text, honouring a byte-order mark and normalising newlines."""

    raw = Path(path).read_bytes()
    text = raw.decode(encoding or _detect_encoding(raw))
    return text.replace("\r\n", "\n").replace("\r", "\n")


def infer_language(path: Path | str | None) -> str:
    """Map a file suffix to a language id; unknown suffixes become ``plaintext``."""

    if path is None:
        return DEFAULT_LANGUAGE
    return _LANGUAGE_EXTENSIONS.get(Path(path).suffix.lower(), "plaintext")


def _detect_encoding(raw: bytes) -> str:
    for bom, name in _BOM_MAP.items():
        if raw.startswith(bom):
            return name
    return "utf-8"
