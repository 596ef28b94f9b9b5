"""Splitting of text nodes at highlight boundaries for rendering."""

from dataclasses import dataclass, field
from typing import List

from ..models.document import HighlightMark


@dataclass
class MarkedSegment:
    """A run of text covered by the same set of marks."""
    text: str
    start: int
    end: int
    marks: List[HighlightMark] = field(default_factory=list)


def split_text(text: str, pos: int, marks: List[HighlightMark]) -> List[MarkedSegment]:
    """
    Cut a text node starting at coordinate ``pos`` wherever a mark starts or ends.

    Each returned segment lists the marks covering it entirely, in
    annotation order.
    """
    end = pos + len(text)
    boundaries = {pos, end}
    for mark in marks:
        if mark.from_pos < end and mark.to_pos > pos:
            boundaries.add(max(mark.from_pos, pos))
            boundaries.add(min(mark.to_pos, end))

    cuts = sorted(boundaries)
    return [
        MarkedSegment(
            text=text[start - pos:stop - pos],
            start=start,
            end=stop,
            marks=[mark for mark in marks if mark.from_pos <= start and mark.to_pos >= stop],
        )
        for start, stop in zip(cuts, cuts[1:])
    ]
