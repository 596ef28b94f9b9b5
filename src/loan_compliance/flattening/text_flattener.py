"""
Text flattener.

Turns a structured document tree into a linear string plus a position map
that sends every character of that string back to a document coordinate.
Block boundaries and hard breaks become single separator spaces so that
words from adjacent blocks never run together.
"""

import re
from dataclasses import dataclass
from typing import List, Optional, Tuple, Union

from ..models.document import DocumentNode, StructuredDocument

_WHITESPACE_RUN = re.compile(r"\s+")

SEPARATOR = " "


@dataclass(frozen=True)
class FlattenedText:
    """
    Flattened view of a document.

    Attributes:
        text: Position-mapped text; offsets into it are resolvable.
        position_map: Document coordinate of each character of ``text``.
        search_text: Whitespace-collapsed, trimmed variant of ``text`` for
            boolean presence checks only. Offsets into it are not mapped.
    """
    text: str
    position_map: Tuple[int, ...]
    search_text: str

    def __len__(self) -> int:
        return len(self.text)

    def coordinate_at(self, offset: int) -> Optional[int]:
        """Map a text offset to its document coordinate, or None if out of range."""
        if offset is None or offset < 0 or offset >= len(self.position_map):
            return None
        return self.position_map[offset]

    @classmethod
    def empty(cls) -> "FlattenedText":
        return cls(text="", position_map=(), search_text="")

    @classmethod
    def from_plain_text(cls, text: Optional[str]) -> "FlattenedText":
        """Wrap a bare string, using an identity position map."""
        text = text or ""
        return cls(
            text=text,
            position_map=tuple(range(len(text))),
            search_text=collapse_whitespace(text),
        )


def collapse_whitespace(text: str) -> str:
    return _WHITESPACE_RUN.sub(" ", text).strip()


class _FlattenBuilder:
    """Accumulates characters and coordinates for one flatten call."""

    def __init__(self):
        self.chars: List[str] = []
        self.positions: List[int] = []
        self.last_was_separator = False

    def emit_text(self, text: str, pos: int) -> None:
        for index, char in enumerate(text):
            self.chars.append(char)
            self.positions.append(pos + index)
        if text:
            self.last_was_separator = False

    def emit_separator(self, pos: int) -> None:
        # Never lead the text with a separator, never emit two in a row.
        if not self.chars or self.last_was_separator:
            return
        self.chars.append(SEPARATOR)
        self.positions.append(pos)
        self.last_was_separator = True

    def visit_children(self, node: DocumentNode, start: int) -> None:
        pos = start
        for child in node.content:
            self.visit(child, pos)
            pos += child.node_size

    def visit(self, node: DocumentNode, pos: int) -> None:
        if node.is_text:
            self.emit_text(node.text or "", pos)
            return
        if node.is_hard_break:
            self.emit_separator(pos)
            return
        if node.is_block:
            self.emit_separator(pos)
            if not node.is_leaf:
                self.visit_children(node, pos + 1)
            self.emit_separator(pos + node.node_size - 1)
            return
        if not node.is_leaf:
            self.visit_children(node, pos + 1)

    def build(self) -> FlattenedText:
        text = "".join(self.chars)
        return FlattenedText(
            text=text,
            position_map=tuple(self.positions),
            search_text=collapse_whitespace(text),
        )


def flatten(document: Union[StructuredDocument, DocumentNode, None]) -> FlattenedText:
    """
    Flatten a document into position-mapped text.

    The root's content starts at coordinate 0. The result satisfies
    ``len(position_map) == len(text)`` and the map is non-decreasing.
    Empty or missing content flattens to empty text and an empty map.

    Args:
        document: A structured document, its root node, or None.

    Returns:
        The flattened text with its position map and search variant.
    """
    if document is None:
        return FlattenedText.empty()
    root = document.root if isinstance(document, StructuredDocument) else document
    if root is None or not root.content:
        return FlattenedText.empty()

    builder = _FlattenBuilder()
    builder.visit_children(root, 0)
    return builder.build()
