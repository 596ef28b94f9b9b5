"""Document flattening with reversible position mapping."""

from .text_flattener import FlattenedText, collapse_whitespace, flatten

__all__ = [
    "FlattenedText",
    "collapse_whitespace",
    "flatten",
]
