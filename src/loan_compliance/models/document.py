"""Structured document models for the Loan Document Compliance System."""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .enums import (
    BLOCK_NODE_TYPES,
    COMPLIANCE_MARK,
    DOC_NODE,
    HARD_BREAK,
    LEAF_NODE_TYPES,
    TEXT_NODE,
)
from .issue import (
    ComplianceIssue,
    _parse_favored_party,
    _parse_issue_type,
    _parse_severity,
)


@dataclass
class DocumentNode:
    """
    Node of a rich-text document tree.

    Coordinates follow the editor convention: a text node spans one
    coordinate per character, a leaf node (hard break, rule, image, or
    any other childless inline node such as a mention) spans one
    coordinate, and a container spans its content plus an opening and a
    closing token.
    """
    type: str
    text: Optional[str] = None
    attrs: dict = field(default_factory=dict)
    content: List["DocumentNode"] = field(default_factory=list)
    marks: List[dict] = field(default_factory=list)  # inline formatting: bold, italic, ...

    def __post_init__(self):
        if self.attrs is None:
            self.attrs = {}
        if self.content is None:
            self.content = []
        if self.marks is None:
            self.marks = []

    @property
    def is_text(self) -> bool:
        return self.type == TEXT_NODE

    @property
    def is_block(self) -> bool:
        return self.type in BLOCK_NODE_TYPES

    @property
    def is_hard_break(self) -> bool:
        return self.type == HARD_BREAK

    @property
    def is_leaf(self) -> bool:
        if self.content or self.is_text:
            return False
        # Empty blocks keep their open and close tokens; other childless nodes are atoms.
        return self.type in LEAF_NODE_TYPES or not (self.is_block or self.type == DOC_NODE)

    @property
    def content_size(self) -> int:
        return sum(child.node_size for child in self.content)

    @property
    def node_size(self) -> int:
        if self.is_text:
            return len(self.text or "")
        if self.is_leaf:
            return 1
        return self.content_size + 2

    def iter_text(self) -> Iterable[str]:
        """Yield text payloads below this node in reading order."""
        if self.is_text and self.text:
            yield self.text
        for child in self.content:
            yield from child.iter_text()


@dataclass(frozen=True)
class HighlightMark:
    """
    Range-tagged annotation over [from_pos, to_pos) in document coordinates.

    Compliance marks carry a copy of the issue's display metadata. Marks of
    other types (comments, suggestions) share the same annotation layer and
    are left alone when compliance highlights are cleared.
    """
    from_pos: int
    to_pos: int
    severity: str = "info"
    issue_id: str = ""
    message: str = ""
    category: str = ""
    regulation: str = ""
    suggestion: str = ""
    jurisdiction: str = ""
    issue_type: str = ""
    favored_party: str = ""
    mark_type: str = COMPLIANCE_MARK

    @property
    def is_compliance(self) -> bool:
        return self.mark_type == COMPLIANCE_MARK

    def covers(self, pos: int) -> bool:
        return self.from_pos <= pos < self.to_pos

    @classmethod
    def from_issue(cls, issue: ComplianceIssue, from_pos: int, to_pos: int) -> "HighlightMark":
        return cls(
            from_pos=from_pos,
            to_pos=to_pos,
            severity=issue.severity.value,
            issue_id=issue.id,
            message=issue.message,
            category=issue.category or "",
            regulation=issue.regulation or "",
            suggestion=issue.suggestion or "",
            jurisdiction=issue.jurisdiction or "",
            issue_type=issue.issue_type.value if issue.issue_type else "",
            favored_party=issue.favored_party.value if issue.favored_party else "",
        )

    def to_issue(self) -> ComplianceIssue:
        """Rebuild the issue data carried by this mark."""
        return ComplianceIssue(
            id=self.issue_id,
            severity=_parse_severity(self.severity or "info"),
            category=self.category or "Compliance",
            message=self.message,
            suggestion=self.suggestion or None,
            regulation=self.regulation or None,
            jurisdiction=self.jurisdiction or None,
            issue_type=_parse_issue_type(self.issue_type),
            favored_party=_parse_favored_party(self.favored_party),
        )

    def to_attrs(self) -> Dict[str, str]:
        """Attributes in the editor's mark attribute naming."""
        return {
            "severity": self.severity,
            "issueId": self.issue_id,
            "message": self.message,
            "category": self.category,
            "regulation": self.regulation,
            "suggestion": self.suggestion,
            "jurisdiction": self.jurisdiction,
            "issueType": self.issue_type,
            "favoredParty": self.favored_party,
        }


@dataclass
class StructuredDocument:
    """
    A document tree plus its annotation layer.

    The annotation layer is an immutable tuple that is only ever replaced
    wholesale, so a reader sees either the old or the new set of marks.
    """
    id: str
    root: DocumentNode = field(default_factory=lambda: DocumentNode(type=DOC_NODE))
    annotations: Tuple[HighlightMark, ...] = ()
    metadata: dict = field(default_factory=dict)

    def __post_init__(self):
        if self.root is None:
            self.root = DocumentNode(type=DOC_NODE)
        self.annotations = tuple(self.annotations or ())
        if self.metadata is None:
            self.metadata = {}

    @property
    def content_size(self) -> int:
        return self.root.content_size

    @property
    def compliance_marks(self) -> List[HighlightMark]:
        return [mark for mark in self.annotations if mark.is_compliance]

    def replace_annotations(self, annotations: Iterable[HighlightMark]) -> None:
        """Swap in a freshly built annotation layer."""
        self.annotations = tuple(annotations)

    def marks_at(self, pos: int) -> List[HighlightMark]:
        return [mark for mark in self.annotations if mark.covers(pos)]

    @property
    def plain_text(self) -> str:
        return "".join(self.root.iter_text())
