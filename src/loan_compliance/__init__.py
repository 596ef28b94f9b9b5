"""
Loan Document Compliance System

Rule-based compliance analysis of loan documents against EU regulation
and the Green Loan Principles, with findings mapped back onto the
document as highlights.
"""

__version__ = "0.1.0"

# Export main components
from .models.enums import (
    EUCountry,
    FavoredParty,
    IssueSeverity,
    IssueType,
)
from .models.issue import AdvisoryResult, ComplianceIssue, ComplianceReport
from .models.document import DocumentNode, HighlightMark, StructuredDocument
from .flattening import FlattenedText, flatten
from .rules import ComplianceRule, RuleEngine
from .scanners import DisparityScanner, ScanSettings
from .advisory import OpenAIAdvisoryService, merge_advisory_issues
from .scoring import ScoringPolicy, calculate_score
from .highlighting import HighlightResult, apply_highlights, get_issue_at_position
from .interfaces.audit import AuditEvent, AuditEventType, IAuditLogger
from .audit import AuditLogger, DatabaseManager, ReportStore
from .config import (
    ConfigurationManager,
    ConfigurationError,
    ValidationResult,
)
from .pipeline import CompliancePipeline, PipelineConfig

__all__ = [
    "EUCountry",
    "FavoredParty",
    "IssueSeverity",
    "IssueType",
    "AdvisoryResult",
    "ComplianceIssue",
    "ComplianceReport",
    "DocumentNode",
    "HighlightMark",
    "StructuredDocument",
    "FlattenedText",
    "flatten",
    "ComplianceRule",
    "RuleEngine",
    "DisparityScanner",
    "ScanSettings",
    "OpenAIAdvisoryService",
    "merge_advisory_issues",
    "ScoringPolicy",
    "calculate_score",
    "HighlightResult",
    "apply_highlights",
    "get_issue_at_position",
    "AuditEvent",
    "AuditEventType",
    "IAuditLogger",
    "AuditLogger",
    "DatabaseManager",
    "ReportStore",
    "ConfigurationManager",
    "ConfigurationError",
    "ValidationResult",
    "CompliancePipeline",
    "PipelineConfig",
]
