"""Core domain types shared by the editor, protocol and UI layers."""

from .ranges import Position, TextSpan

__all__ = ["Position", "TextSpan"]
