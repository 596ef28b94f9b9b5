"""SQLAlchemy models for compliance reports and the audit trail."""

from datetime import datetime, timezone

from sqlalchemy import (
    Column,
    String,
    DateTime,
    Integer,
    Index,
    CheckConstraint,
    JSON,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.types import TypeDecorator


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class JSONType(TypeDecorator):
    """Platform-independent JSON type.

    Uses JSONB for PostgreSQL and JSON for other databases (like SQLite).
    """
    impl = JSON
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == 'postgresql':
            return dialect.type_descriptor(JSONB())
        else:
            return dialect.type_descriptor(JSON())


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


class ComplianceReportModel(Base):
    """Compliance reports table model."""
    __tablename__ = "compliance_reports"

    id = Column(String(36), primary_key=True)
    document_id = Column(String(100), nullable=False)
    score = Column(Integer, nullable=False)
    issues = Column(JSONType, nullable=False)
    error_count = Column(Integer, default=0)
    warning_count = Column(Integer, default=0)
    info_count = Column(Integer, default=0)
    analyzed_at = Column(DateTime(timezone=True), default=_utcnow)
    metadata_ = Column("metadata", JSONType)
    created_at = Column(DateTime(timezone=True), default=_utcnow)

    __table_args__ = (
        CheckConstraint("score >= 0 AND score <= 100", name="check_report_score"),
        Index("idx_compliance_reports_document_id", "document_id"),
        Index("idx_compliance_reports_analyzed_at", "analyzed_at"),
    )


class AuditEventModel(Base):
    """Audit events table model."""
    __tablename__ = "audit_events"

    id = Column(String(36), primary_key=True)
    event_type = Column(String(50), nullable=False)
    timestamp = Column(DateTime(timezone=True), default=_utcnow)
    document_id = Column(String(100), nullable=True)
    report_id = Column(String(36), nullable=True)
    user_id = Column(String(100), nullable=True)
    details = Column(JSONType)
    metadata_ = Column("metadata", JSONType)

    __table_args__ = (
        Index("idx_audit_events_event_type", "event_type"),
        Index("idx_audit_events_timestamp", "timestamp"),
        Index("idx_audit_events_document_id", "document_id"),
        Index("idx_audit_events_user_id", "user_id"),
    )
