"""Issue and report value objects for the Loan Document Compliance System."""

import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from .enums import FavoredParty, IssueSeverity, IssueType


def new_issue_id() -> str:
    """Generate a fresh issue identifier."""
    return str(uuid.uuid4())


def _pick(data: Dict[str, Any], snake: str, camel: str, default=None):
    if snake in data:
        return data[snake]
    return data.get(camel, default)


def _parse_severity(value) -> IssueSeverity:
    if isinstance(value, IssueSeverity):
        return value
    try:
        return IssueSeverity(str(value).lower())
    except ValueError:
        return IssueSeverity.INFO


def _parse_issue_type(value) -> Optional[IssueType]:
    if value is None or value == "":
        return None
    if isinstance(value, IssueType):
        return value
    try:
        return IssueType(value)
    except ValueError:
        return None


def _parse_offset(value) -> Optional[int]:
    """Integer offset from JSON input; integral floats and digit strings are accepted."""
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValueError(f"Invalid offset: {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        return int(value)
    raise ValueError(f"Invalid offset: {value!r}")


def _parse_favored_party(value) -> Optional[FavoredParty]:
    if value is None or value == "":
        return None
    if isinstance(value, FavoredParty):
        return value
    try:
        return FavoredParty(str(value).lower())
    except ValueError:
        return None


@dataclass(frozen=True)
class ComplianceIssue:
    """
    A single compliance or fairness finding.

    Offsets, when present, index into the position-mapped flattened text
    of the analysed document as a half-open range [start_offset, end_offset).
    Issues without a text match are document-level findings and are never
    highlighted.
    """
    id: str
    severity: IssueSeverity
    category: str
    message: str
    suggestion: Optional[str] = None
    regulation: Optional[str] = None
    jurisdiction: Optional[str] = None
    text_match: Optional[str] = None
    start_offset: Optional[int] = None
    end_offset: Optional[int] = None
    issue_type: Optional[IssueType] = None
    favored_party: Optional[FavoredParty] = None

    @property
    def is_highlightable(self) -> bool:
        return bool(self.text_match)

    @property
    def has_offsets(self) -> bool:
        return self.start_offset is not None and self.end_offset is not None

    def with_updates(self, **changes) -> "ComplianceIssue":
        """Return a copy of this issue with the given fields replaced."""
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "severity": self.severity.value,
            "category": self.category,
            "message": self.message,
            "suggestion": self.suggestion,
            "regulation": self.regulation,
            "jurisdiction": self.jurisdiction,
            "text_match": self.text_match,
            "start_offset": self.start_offset,
            "end_offset": self.end_offset,
            "issue_type": self.issue_type.value if self.issue_type else None,
            "favored_party": self.favored_party.value if self.favored_party else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ComplianceIssue":
        """
        Build an issue from a dictionary.

        Accepts both snake_case keys and the camelCase keys used by
        editor clients (textMatch, startOffset, issueType, ...).

        Raises:
            ValueError: When an offset is not an integer.
        """
        return cls(
            id=data.get("id") or new_issue_id(),
            severity=_parse_severity(data.get("severity", "info")),
            category=data.get("category") or "",
            message=data.get("message") or "",
            suggestion=data.get("suggestion"),
            regulation=data.get("regulation"),
            jurisdiction=data.get("jurisdiction"),
            text_match=_pick(data, "text_match", "textMatch"),
            start_offset=_parse_offset(_pick(data, "start_offset", "startOffset")),
            end_offset=_parse_offset(_pick(data, "end_offset", "endOffset")),
            issue_type=_parse_issue_type(_pick(data, "issue_type", "issueType")),
            favored_party=_parse_favored_party(_pick(data, "favored_party", "favoredParty")),
        )


@dataclass(frozen=True)
class ComplianceReport:
    """
    Result of one analysis invocation.

    Reports are never mutated after creation; re-analysing a document
    produces a new report.
    """
    id: str
    document_id: str
    score: int
    issues: Tuple[ComplianceIssue, ...] = ()
    analyzed_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    metadata: Dict[str, Any] = field(default_factory=dict)

    def count_by_severity(self) -> Dict[str, int]:
        counts = {severity.value: 0 for severity in IssueSeverity}
        for issue in self.issues:
            counts[issue.severity.value] += 1
        return counts

    def issues_of_type(self, issue_type: IssueType) -> List[ComplianceIssue]:
        return [issue for issue in self.issues if issue.issue_type == issue_type]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "document_id": self.document_id,
            "score": self.score,
            "issues": [issue.to_dict() for issue in self.issues],
            "analyzed_at": self.analyzed_at.isoformat(),
            "metadata": dict(self.metadata),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ComplianceReport":
        analyzed_at = _pick(data, "analyzed_at", "analyzedAt")
        if isinstance(analyzed_at, str):
            analyzed_at = datetime.fromisoformat(analyzed_at)
        elif analyzed_at is None:
            analyzed_at = datetime.now(timezone.utc)
        return cls(
            id=data["id"],
            document_id=_pick(data, "document_id", "documentId"),
            score=int(data.get("score", 100)),
            issues=tuple(
                ComplianceIssue.from_dict(item) for item in data.get("issues") or []
            ),
            analyzed_at=analyzed_at,
            metadata=dict(data.get("metadata") or {}),
        )


@dataclass
class AdvisoryResult:
    """Response of an advisory service call."""
    issues: List[ComplianceIssue] = field(default_factory=list)
    suggestions: List[str] = field(default_factory=list)
    overall_assessment: str = ""

    def __post_init__(self):
        if self.issues is None:
            self.issues = []
        if self.suggestions is None:
            self.suggestions = []
