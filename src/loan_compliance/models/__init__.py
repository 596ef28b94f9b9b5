"""Data models and enums for the Loan Document Compliance System."""

from .enums import (
    BLOCK_NODE_TYPES,
    COMPLIANCE_MARK,
    EU_COUNTRY_NAMES,
    EUCountry,
    FavoredParty,
    IssueSeverity,
    IssueType,
    REGION_WIDE,
    REGION_WIDE_LABEL,
)
from .issue import AdvisoryResult, ComplianceIssue, ComplianceReport, new_issue_id
from .document import DocumentNode, HighlightMark, StructuredDocument

__all__ = [
    # Enums
    "EUCountry",
    "FavoredParty",
    "IssueSeverity",
    "IssueType",
    "EU_COUNTRY_NAMES",
    "BLOCK_NODE_TYPES",
    "COMPLIANCE_MARK",
    "REGION_WIDE",
    "REGION_WIDE_LABEL",
    # Issues and reports
    "AdvisoryResult",
    "ComplianceIssue",
    "ComplianceReport",
    "new_issue_id",
    # Document models
    "DocumentNode",
    "HighlightMark",
    "StructuredDocument",
]
