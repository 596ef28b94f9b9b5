"""
Highlight application onto a structured document's annotation layer.

Each pass drops the previous compliance marks and installs a freshly
built set, so re-running with the same issues yields the same marks.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from ..flattening.text_flattener import FlattenedText, flatten
from ..models.document import HighlightMark, StructuredDocument
from ..models.issue import ComplianceIssue
from .span_resolver import resolve_issue_range

logger = logging.getLogger(__name__)


@dataclass
class HighlightResult:
    """Marks installed by a highlight pass and issues that could not be placed."""
    applied: List[HighlightMark] = field(default_factory=list)
    skipped_issue_ids: List[str] = field(default_factory=list)

    @property
    def applied_count(self) -> int:
        return len(self.applied)


def _resolution_order(issues: Sequence[ComplianceIssue]) -> List[ComplianceIssue]:
    # Descending start offset; issues without one go last, ties keep input order.
    return sorted(
        issues,
        key=lambda issue: (issue.start_offset is None, -(issue.start_offset or 0)),
    )


def clear_highlights(document: StructuredDocument) -> int:
    """Remove every compliance mark; other annotations are kept. Returns the number removed."""
    kept = [mark for mark in document.annotations if not mark.is_compliance]
    removed = len(document.annotations) - len(kept)
    document.replace_annotations(kept)
    return removed


def apply_highlights(
    document: StructuredDocument,
    issues: Sequence[ComplianceIssue],
    flattened: Optional[FlattenedText] = None,
) -> HighlightResult:
    """
    Replace the document's compliance marks with marks for ``issues``.

    Only issues with a non-empty text match are placed. Unplaceable issues
    are reported in ``skipped_issue_ids``. Overlapping marks from different
    issues are allowed.

    Args:
        document: Document whose annotation layer is replaced.
        issues: Issues from an analysis of the same content.
        flattened: Flattened text of the document; rebuilt when omitted.

    Returns:
        The installed marks and the skipped issue ids.
    """
    if flattened is None:
        flattened = flatten(document)
    content_size = document.content_size

    result = HighlightResult()
    for issue in _resolution_order([issue for issue in issues if issue.text_match]):
        span = resolve_issue_range(issue, flattened)
        if span is None or not span.is_valid(content_size):
            logger.debug(f"Skipping highlight for issue {issue.id}: no valid span for {issue.text_match!r}")
            result.skipped_issue_ids.append(issue.id)
            continue
        result.applied.append(HighlightMark.from_issue(issue, span.from_pos, span.to_pos))

    others = [mark for mark in document.annotations if not mark.is_compliance]
    document.replace_annotations(others + result.applied)
    logger.info(
        f"Applied {len(result.applied)} highlights to document {document.id} "
        f"({len(result.skipped_issue_ids)} skipped)"
    )
    return result


def get_issue_at_position(document: StructuredDocument, pos: int) -> Optional[ComplianceIssue]:
    """Return the issue carried by the first compliance mark covering ``pos``."""
    if pos is None or pos < 0:
        return None
    for mark in document.annotations:
        if mark.is_compliance and mark.covers(pos):
            return mark.to_issue()
    return None
