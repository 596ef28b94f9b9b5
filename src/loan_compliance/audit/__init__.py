"""Report persistence and audit trail for the Loan Document Compliance System."""

from .audit_logger import AuditLogger
from .database import DatabaseManager, get_database_url
from .models import (
    AuditEventModel,
    ComplianceReportModel,
    Base,
)
from .report_store import ReportStore

__all__ = [
    "AuditLogger",
    "DatabaseManager",
    "get_database_url",
    "AuditEventModel",
    "ComplianceReportModel",
    "Base",
    "ReportStore",
]
