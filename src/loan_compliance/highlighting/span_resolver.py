"""Resolution of issue spans from flattened-text offsets to document coordinates."""

from dataclasses import dataclass
from typing import Optional

from ..flattening.text_flattener import FlattenedText
from ..models.issue import ComplianceIssue

SEARCH_WINDOW = 50


@dataclass(frozen=True)
class SpanRange:
    """Half-open [from_pos, to_pos) range in document coordinates."""
    from_pos: int
    to_pos: int

    def is_valid(self, content_size: int) -> bool:
        return 0 <= self.from_pos < self.to_pos <= content_size


def map_offsets(flattened: FlattenedText, start_offset: int, end_offset: int) -> Optional[SpanRange]:
    """Map [start_offset, end_offset) through the position map; None if either end is unmapped."""
    first = flattened.coordinate_at(start_offset)
    last = flattened.coordinate_at(end_offset - 1)
    if first is None or last is None:
        return None
    return SpanRange(first, last + 1)


def find_text_in_document(
    flattened: FlattenedText,
    search_text: str,
    start_offset: Optional[int] = None,
) -> Optional[SpanRange]:
    """
    Locate text case-insensitively and map the hit to document coordinates.

    A valid ``start_offset`` hint first restricts the search to a window of
    50 characters on either side of the hinted span; otherwise, or when the
    window has no hit, the whole text is searched from the start.
    """
    if not search_text or not flattened.text:
        return None

    haystack = flattened.text.lower()
    needle = search_text.lower()
    index = -1
    if start_offset is not None and 0 <= start_offset < len(haystack):
        window_start = max(0, start_offset - SEARCH_WINDOW)
        window_end = min(len(haystack), start_offset + len(needle) + SEARCH_WINDOW)
        found = haystack[window_start:window_end].find(needle)
        if found != -1:
            index = window_start + found
    if index == -1:
        index = haystack.find(needle)
    if index == -1:
        return None

    end_index = min(index + len(needle) - 1, len(flattened.position_map) - 1)
    return SpanRange(flattened.position_map[index], flattened.position_map[end_index] + 1)


def resolve_issue_range(issue: ComplianceIssue, flattened: FlattenedText) -> Optional[SpanRange]:
    """
    Resolve where an issue sits in the document.

    Direct offset mapping wins when both offsets are present and give a
    non-empty range; otherwise the issue's text match is searched for near
    its hinted offset. Returns None when the issue cannot be placed.
    """
    if not issue.text_match:
        return None

    if issue.has_offsets:
        mapped = map_offsets(flattened, issue.start_offset, issue.end_offset)
        if mapped is not None and mapped.from_pos < mapped.to_pos:
            return mapped

    return find_text_in_document(flattened, issue.text_match, issue.start_offset)
