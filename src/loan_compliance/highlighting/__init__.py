"""Span resolution, highlight application and highlighted views."""

from .docx_exporter import ExportConfig, HighlightedDocxExporter
from .highlighter import HighlightResult, apply_highlights, clear_highlights, get_issue_at_position
from .span_resolver import SpanRange, find_text_in_document, map_offsets, resolve_issue_range
from .view_renderer import ViewRenderer, highlight_css_class

__all__ = [
    "ExportConfig",
    "HighlightedDocxExporter",
    "HighlightResult",
    "apply_highlights",
    "clear_highlights",
    "get_issue_at_position",
    "SpanRange",
    "find_text_in_document",
    "map_offsets",
    "resolve_issue_range",
    "ViewRenderer",
    "highlight_css_class",
]
