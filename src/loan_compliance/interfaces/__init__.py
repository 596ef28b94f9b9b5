"""Abstract interfaces for external collaborators."""

from .advisory import IAdvisoryService
from .audit import AuditEvent, AuditEventType, IAuditLogger
from .report_store import IReportStore

__all__ = [
    "IAdvisoryService",
    "AuditEvent",
    "AuditEventType",
    "IAuditLogger",
    "IReportStore",
]
