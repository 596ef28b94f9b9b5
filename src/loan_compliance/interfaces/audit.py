"""Audit trail interface for the Loan Document Compliance System."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional

from ..models.issue import ComplianceReport


class AuditEventType(Enum):
    """Steps of the compliance workflow that leave an audit record."""
    DOCUMENT_LOADED = "document_loaded"
    ANALYSIS_COMPLETED = "analysis_completed"
    ADVISORY_MERGED = "advisory_merged"
    ADVISORY_UNAVAILABLE = "advisory_unavailable"
    HIGHLIGHTS_APPLIED = "highlights_applied"
    CONFIGURATION_LOADED = "configuration_loaded"


@dataclass
class AuditEvent:
    """
    One audit record.

    ``report_id`` is set for analysis events only; configuration events
    carry no document.
    """
    id: str
    event_type: AuditEventType
    timestamp: datetime
    document_id: Optional[str] = None
    report_id: Optional[str] = None
    user_id: Optional[str] = None
    details: dict = field(default_factory=dict)
    metadata: dict = field(default_factory=dict)

    def __post_init__(self):
        self.details = self.details or {}
        self.metadata = self.metadata or {}


class IAuditLogger(ABC):
    """
    Records what the pipeline did to each document.

    The pipeline calls the ``log_*`` hooks; storage failures surface as
    SQLAlchemy errors, which the pipeline downgrades to warnings.
    """

    @abstractmethod
    def log_event(self, event: AuditEvent) -> None:
        pass

    @abstractmethod
    def get_events(
        self,
        document_id: Optional[str] = None,
        event_type: Optional[AuditEventType] = None,
        start_time: Optional[datetime] = None,
        end_time: Optional[datetime] = None,
    ) -> List[AuditEvent]:
        """Events matching every given filter, newest first."""
        pass

    @abstractmethod
    def export_log(self, document_id: str, format: str = "json") -> str:
        """
        Render a document's audit trail as ``json`` or ``csv``.

        Raises:
            ValueError: For any other format.
        """
        pass

    @abstractmethod
    def log_document_loaded(
        self,
        document_id: str,
        filename: str,
        doc_type: str,
        content_size: int,
        user_id: Optional[str] = None,
    ) -> None:
        pass

    @abstractmethod
    def log_analysis_completed(self, report: ComplianceReport, user_id: Optional[str] = None) -> None:
        pass

    @abstractmethod
    def log_advisory_merged(self, document_id: Optional[str], accepted: int, proposed: int) -> None:
        pass

    @abstractmethod
    def log_advisory_unavailable(self, document_id: Optional[str], reason: str) -> None:
        pass

    @abstractmethod
    def log_highlights_applied(
        self,
        document_id: str,
        applied: int,
        skipped: int,
        user_id: Optional[str] = None,
    ) -> None:
        pass

    @abstractmethod
    def log_configuration_loaded(
        self,
        config_dir: str,
        custom_rule_count: int,
        pattern_count: int,
        warnings: List[str],
    ) -> None:
        pass
