"""SQLAlchemy-backed compliance report store."""

import logging
from typing import List, Optional

from sqlalchemy import select

from ..interfaces.report_store import IReportStore
from ..models.issue import ComplianceIssue, ComplianceReport
from .audit_logger import as_utc
from .database import DatabaseManager
from .models import ComplianceReportModel

logger = logging.getLogger(__name__)


class ReportStore(IReportStore):
    """
    Persists compliance reports, one row per analysis.

    Reports are append-only; re-analysing a document adds a row and the
    history is read back newest first.
    """

    def __init__(
        self,
        db_manager: Optional[DatabaseManager] = None,
        database_url: Optional[str] = None,
    ):
        if db_manager is not None:
            self._db_manager = db_manager
            self._owns_db_manager = False
        else:
            self._db_manager = DatabaseManager(database_url=database_url)
            self._owns_db_manager = True

    def _to_model(self, report: ComplianceReport) -> ComplianceReportModel:
        counts = report.count_by_severity()
        return ComplianceReportModel(
            id=report.id,
            document_id=report.document_id,
            score=report.score,
            issues=[issue.to_dict() for issue in report.issues],
            error_count=counts["error"],
            warning_count=counts["warning"],
            info_count=counts["info"],
            analyzed_at=report.analyzed_at,
            metadata_=report.metadata or {},
        )

    def _from_model(self, model: ComplianceReportModel) -> ComplianceReport:
        return ComplianceReport(
            id=model.id,
            document_id=model.document_id,
            score=model.score,
            issues=tuple(ComplianceIssue.from_dict(item) for item in model.issues or []),
            analyzed_at=as_utc(model.analyzed_at),
            metadata=model.metadata_ or {},
        )

    def save(self, report: ComplianceReport) -> ComplianceReport:
        with self._db_manager.get_session() as session:
            session.add(self._to_model(report))
        logger.debug(f"Stored report {report.id} for document {report.document_id}")
        return report

    def get_reports(self, document_id: str) -> List[ComplianceReport]:
        with self._db_manager.get_session() as session:
            query = (
                select(ComplianceReportModel)
                .where(ComplianceReportModel.document_id == document_id)
                .order_by(ComplianceReportModel.analyzed_at.desc())
            )
            models = session.execute(query).scalars().all()
            return [self._from_model(m) for m in models]

    def get_latest(self, document_id: str) -> Optional[ComplianceReport]:
        with self._db_manager.get_session() as session:
            query = (
                select(ComplianceReportModel)
                .where(ComplianceReportModel.document_id == document_id)
                .order_by(ComplianceReportModel.analyzed_at.desc())
                .limit(1)
            )
            model = session.execute(query).scalars().first()
            return self._from_model(model) if model else None

    def close(self) -> None:
        if self._owns_db_manager:
            self._db_manager.close()
