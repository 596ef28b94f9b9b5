"""Audit logger implementation for the Loan Document Compliance System."""

import csv
import io
import json
import uuid
from datetime import datetime, timezone
from typing import Dict, List, Optional

from sqlalchemy import and_, select

from ..interfaces.audit import AuditEvent, AuditEventType, IAuditLogger
from ..models.issue import ComplianceReport
from .database import DatabaseManager
from .models import AuditEventModel


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive timestamps read back from backends that drop the zone."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class AuditLogger(IAuditLogger):
    """
    Audit logger implementation with a SQLAlchemy backend.

    Records analysis, advisory and highlighting events for traceability,
    supports querying and exporting audit logs.
    """

    def __init__(
        self,
        db_manager: Optional[DatabaseManager] = None,
        database_url: Optional[str] = None,
    ):
        """
        Initialize the audit logger.

        Args:
            db_manager: Optional DatabaseManager instance. If not provided,
                       a new one will be created.
            database_url: Database URL for creating a new DatabaseManager.
        """
        if db_manager is not None:
            self._db_manager = db_manager
            self._owns_db_manager = False
        else:
            self._db_manager = DatabaseManager(database_url=database_url)
            self._owns_db_manager = True

    def _to_model(self, event: AuditEvent) -> AuditEventModel:
        """Convert AuditEvent dataclass to SQLAlchemy model."""
        return AuditEventModel(
            id=str(event.id),
            event_type=event.event_type.value if isinstance(event.event_type, AuditEventType) else event.event_type,
            timestamp=event.timestamp,
            document_id=event.document_id,
            report_id=event.report_id,
            user_id=event.user_id,
            details=event.details or {},
            metadata_=event.metadata or {},
        )

    def _from_model(self, model: AuditEventModel) -> AuditEvent:
        """Convert SQLAlchemy model to AuditEvent dataclass."""
        return AuditEvent(
            id=str(model.id),
            event_type=AuditEventType(model.event_type),
            timestamp=as_utc(model.timestamp),
            document_id=model.document_id,
            report_id=model.report_id,
            user_id=model.user_id,
            details=model.details or {},
            metadata=model.metadata_ or {},
        )

    def log_event(self, event: AuditEvent) -> None:
        """
        Record an audit event to the database.

        Args:
            event: The audit event to record.
        """
        model = self._to_model(event)
        with self._db_manager.get_session() as session:
            session.add(model)

    def get_events(
        self,
        document_id: Optional[str] = None,
        event_type: Optional[AuditEventType] = None,
        start_time: Optional[datetime] = None,
        end_time: Optional[datetime] = None,
    ) -> List[AuditEvent]:
        """
        Query audit events with optional filters.

        Args:
            document_id: Filter by document ID.
            event_type: Filter by event type.
            start_time: Filter events after this time.
            end_time: Filter events before this time.

        Returns:
            List of matching audit events, newest first.
        """
        with self._db_manager.get_session() as session:
            query = select(AuditEventModel)

            conditions = []
            if document_id:
                conditions.append(AuditEventModel.document_id == document_id)
            if event_type:
                event_type_value = event_type.value if isinstance(event_type, AuditEventType) else event_type
                conditions.append(AuditEventModel.event_type == event_type_value)
            if start_time:
                conditions.append(AuditEventModel.timestamp >= start_time)
            if end_time:
                conditions.append(AuditEventModel.timestamp <= end_time)

            if conditions:
                query = query.where(and_(*conditions))

            query = query.order_by(AuditEventModel.timestamp.desc())

            result = session.execute(query)
            models = result.scalars().all()

            return [self._from_model(m) for m in models]

    def export_log(
        self,
        document_id: str,
        format: str = "json",
    ) -> str:
        """
        Export audit log for a document.

        Args:
            document_id: The document ID to export logs for.
            format: Export format ("json" or "csv").

        Returns:
            Exported log content as a string.

        Raises:
            ValueError: If format is not supported.
        """
        if format not in ("json", "csv"):
            raise ValueError(f"Unsupported export format: {format}. Use 'json' or 'csv'.")

        events = self.get_events(document_id=document_id)

        if format == "json":
            return self._export_json(events)
        else:
            return self._export_csv(events)

    def _export_json(self, events: List[AuditEvent]) -> str:
        """Export events to JSON format with an analysis history and score summary."""
        analyses = []
        for e in events:
            if e.event_type == AuditEventType.ANALYSIS_COMPLETED:
                analyses.append({
                    "report_id": e.report_id,
                    "score": e.details.get("score"),
                    "issue_count": e.details.get("issue_count"),
                    "severity_counts": e.details.get("severity_counts", {}),
                    "advisory_used": e.details.get("advisory_used"),
                    "timestamp": e.timestamp.isoformat() if e.timestamp else None,
                })

        scores = [entry["score"] for entry in analyses if entry.get("score") is not None]

        data = {
            "export_timestamp": datetime.now(timezone.utc).isoformat(),
            "event_count": len(events),
            "analyses": analyses,
            "score_summary": {
                "total_analyses": len(analyses),
                "latest_score": scores[0] if scores else None,
                "min_score": min(scores) if scores else None,
                "max_score": max(scores) if scores else None,
            },
            "events": [
                {
                    "id": e.id,
                    "event_type": e.event_type.value if isinstance(e.event_type, AuditEventType) else e.event_type,
                    "timestamp": e.timestamp.isoformat() if e.timestamp else None,
                    "document_id": e.document_id,
                    "report_id": e.report_id,
                    "user_id": e.user_id,
                    "details": e.details,
                    "metadata": e.metadata,
                }
                for e in events
            ],
        }
        return json.dumps(data, indent=2, ensure_ascii=False)

    def _export_csv(self, events: List[AuditEvent]) -> str:
        """Export events to CSV format."""
        output = io.StringIO()
        writer = csv.writer(output)

        writer.writerow([
            "id", "event_type", "timestamp", "document_id",
            "report_id", "user_id", "details", "metadata"
        ])

        for e in events:
            writer.writerow([
                e.id,
                e.event_type.value if isinstance(e.event_type, AuditEventType) else e.event_type,
                e.timestamp.isoformat() if e.timestamp else "",
                e.document_id or "",
                e.report_id or "",
                e.user_id or "",
                json.dumps(e.details, ensure_ascii=False),
                json.dumps(e.metadata, ensure_ascii=False),
            ])

        return output.getvalue()

    # ========== Convenience Logging Methods ==========

    def _log(
        self,
        event_type: AuditEventType,
        document_id: Optional[str],
        details: Dict,
        report_id: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> None:
        self.log_event(AuditEvent(
            id=str(uuid.uuid4()),
            event_type=event_type,
            timestamp=datetime.now(timezone.utc),
            document_id=document_id,
            report_id=report_id,
            user_id=user_id,
            details=details,
        ))

    def log_document_loaded(
        self,
        document_id: str,
        filename: str,
        doc_type: str,
        content_size: int,
        user_id: Optional[str] = None,
    ) -> None:
        """Log a document loading event."""
        self._log(AuditEventType.DOCUMENT_LOADED, document_id, {
            "filename": filename,
            "doc_type": doc_type,
            "content_size": content_size,
        }, user_id=user_id)

    def log_analysis_completed(
        self,
        report: ComplianceReport,
        user_id: Optional[str] = None,
    ) -> None:
        """Log a completed analysis with its score and severity counts."""
        self._log(AuditEventType.ANALYSIS_COMPLETED, report.document_id, {
            "score": report.score,
            "issue_count": len(report.issues),
            "severity_counts": report.count_by_severity(),
            "advisory_used": report.metadata.get("advisory_used", False),
            "provider_country": report.metadata.get("provider_country"),
            "recipient_country": report.metadata.get("recipient_country"),
        }, report_id=report.id, user_id=user_id)

    def log_advisory_merged(
        self,
        document_id: Optional[str],
        accepted: int,
        proposed: int,
    ) -> None:
        """Log how many advisory issues survived the merge."""
        self._log(AuditEventType.ADVISORY_MERGED, document_id, {
            "accepted": accepted,
            "proposed": proposed,
        })

    def log_advisory_unavailable(
        self,
        document_id: Optional[str],
        reason: str,
    ) -> None:
        """Log that the analysis fell back to deterministic results."""
        self._log(AuditEventType.ADVISORY_UNAVAILABLE, document_id, {"reason": reason})

    def log_highlights_applied(
        self,
        document_id: str,
        applied: int,
        skipped: int,
        user_id: Optional[str] = None,
    ) -> None:
        """Log a highlight pass over a document."""
        self._log(AuditEventType.HIGHLIGHTS_APPLIED, document_id, {
            "applied": applied,
            "skipped": skipped,
        }, user_id=user_id)

    def log_configuration_loaded(
        self,
        config_dir: str,
        custom_rule_count: int,
        pattern_count: int,
        warnings: List[str],
    ) -> None:
        """Log a configuration load."""
        self._log(AuditEventType.CONFIGURATION_LOADED, None, {
            "config_dir": config_dir,
            "custom_rule_count": custom_rule_count,
            "pattern_count": pattern_count,
            "warnings": warnings,
        })

    def close(self) -> None:
        """Close the audit logger and release resources."""
        if self._owns_db_manager:
            self._db_manager.close()
