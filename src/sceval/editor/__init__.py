"""Editor-side models: documents, editor handles, span resolution."""

from .annotations import (
    ERROR_STYLE,
    EVALUATING_STYLE,
    SUCCESS_STYLE,
    Annotation,
    AnnotationStyle,
)
from .document_model import DocumentMetadata, TextDocument, TextLine
from .editor_handle import BufferEditor, EditorHandle
from .region_locator import EvaluationMode, line_span, locate, region_span, selection_span
from .workspace import EditorWorkspace

__all__ = [
    "Annotation",
    "AnnotationStyle",
    "BufferEditor",
    "DocumentMetadata",
    "EditorHandle",
    "EditorWorkspace",
    "ERROR_STYLE",
    "EVALUATING_STYLE",
    "EvaluationMode",
    "SUCCESS_STYLE",
    "TextDocument",
    "TextLine",
    "line_span",
    "locate",
    "region_span",
    "selection_span",
]
