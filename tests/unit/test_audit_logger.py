"""Unit tests for the Audit Logger."""

import json
import uuid
from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

import pytest

from loan_compliance.audit.audit_logger import AuditLogger
from loan_compliance.audit.models import AuditEventModel
from loan_compliance.interfaces.audit import AuditEvent, AuditEventType
from loan_compliance.models.enums import IssueSeverity
from loan_compliance.models.issue import ComplianceIssue, ComplianceReport


class MockSession:
    """Mock SQLAlchemy session for testing."""

    def __init__(self):
        self.added = []
        self.committed = False
        self.rolled_back = False
        self.closed = False
        self._execute_results = []

    def add(self, obj):
        self.added.append(obj)

    def commit(self):
        self.committed = True

    def rollback(self):
        self.rolled_back = True

    def close(self):
        self.closed = True

    def execute(self, query):
        result = MagicMock()
        result.scalars.return_value.all.return_value = list(self._execute_results)
        return result

    def set_execute_results(self, results):
        self._execute_results = results


class MockDatabaseManager:
    """Mock DatabaseManager for testing."""

    def __init__(self):
        self._session = MockSession()
        self.closed = False

    def get_session(self):
        return MockContextManager(self._session)

    def close(self):
        self.closed = True


class MockContextManager:
    """Mock context manager for session."""

    def __init__(self, session):
        self._session = session

    def __enter__(self):
        return self._session

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is None:
            self._session.commit()
        else:
            self._session.rollback()
        self._session.close()
        return False


@pytest.fixture
def db_manager():
    return MockDatabaseManager()


@pytest.fixture
def audit_logger(db_manager):
    return AuditLogger(db_manager=db_manager)


def make_report(score=77, advisory_used=True):
    issues = (
        ComplianceIssue(id="i-1", severity=IssueSeverity.ERROR, category="CCD", message="m"),
        ComplianceIssue(id="i-2", severity=IssueSeverity.INFO, category="GDPR", message="m"),
    )
    return ComplianceReport(
        id=str(uuid.uuid4()),
        document_id="loan-001",
        score=score,
        issues=issues,
        metadata={"advisory_used": advisory_used, "provider_country": "DE", "recipient_country": None},
    )


def analysis_event(score, report_id="r-1"):
    return AuditEvent(
        id=str(uuid.uuid4()),
        event_type=AuditEventType.ANALYSIS_COMPLETED,
        timestamp=datetime.now(timezone.utc),
        document_id="loan-001",
        report_id=report_id,
        details={"score": score, "issue_count": 2, "severity_counts": {"error": 1}, "advisory_used": False},
    )


class TestAuditLogger:
    """Tests for AuditLogger class."""

    def test_log_event_adds_to_session(self, db_manager, audit_logger):
        """Test that log_event adds an event to the database session."""
        event = AuditEvent(
            id=str(uuid.uuid4()),
            event_type=AuditEventType.DOCUMENT_LOADED,
            timestamp=datetime.now(timezone.utc),
            document_id="loan-001",
            details={"filename": "loan.docx"},
        )

        audit_logger.log_event(event)

        assert len(db_manager._session.added) == 1
        assert db_manager._session.committed
        assert db_manager._session.closed

    def test_log_document_loaded(self, db_manager, audit_logger):
        audit_logger.log_document_loaded(
            document_id="loan-001",
            filename="loan.docx",
            doc_type="docx",
            content_size=420,
            user_id="analyst",
        )

        added_model = db_manager._session.added[0]
        assert added_model.event_type == AuditEventType.DOCUMENT_LOADED.value
        assert added_model.details["content_size"] == 420
        assert added_model.user_id == "analyst"

    def test_log_analysis_completed(self, db_manager, audit_logger):
        report = make_report()

        audit_logger.log_analysis_completed(report, user_id="analyst")

        added_model = db_manager._session.added[0]
        assert added_model.event_type == AuditEventType.ANALYSIS_COMPLETED.value
        assert added_model.report_id == report.id
        assert added_model.document_id == "loan-001"
        assert added_model.details["score"] == 77
        assert added_model.details["issue_count"] == 2
        assert added_model.details["severity_counts"] == {"error": 1, "warning": 0, "info": 1}
        assert added_model.details["advisory_used"] is True
        assert added_model.details["provider_country"] == "DE"

    def test_log_advisory_merged(self, db_manager, audit_logger):
        audit_logger.log_advisory_merged("loan-001", accepted=2, proposed=5)

        added_model = db_manager._session.added[0]
        assert added_model.event_type == AuditEventType.ADVISORY_MERGED.value
        assert added_model.details == {"accepted": 2, "proposed": 5}

    def test_log_advisory_unavailable(self, db_manager, audit_logger):
        audit_logger.log_advisory_unavailable("loan-001", reason="timeout")

        added_model = db_manager._session.added[0]
        assert added_model.event_type == AuditEventType.ADVISORY_UNAVAILABLE.value
        assert added_model.details["reason"] == "timeout"

    def test_log_highlights_applied(self, db_manager, audit_logger):
        audit_logger.log_highlights_applied("loan-001", applied=4, skipped=1)

        added_model = db_manager._session.added[0]
        assert added_model.event_type == AuditEventType.HIGHLIGHTS_APPLIED.value
        assert added_model.details == {"applied": 4, "skipped": 1}

    def test_log_configuration_loaded(self, db_manager, audit_logger):
        audit_logger.log_configuration_loaded("config", 3, 1, ["dup pattern"])

        added_model = db_manager._session.added[0]
        assert added_model.event_type == AuditEventType.CONFIGURATION_LOADED.value
        assert added_model.document_id is None
        assert added_model.details["custom_rule_count"] == 3
        assert added_model.details["warnings"] == ["dup pattern"]

    def test_get_events_converts_models(self, db_manager, audit_logger):
        naive = datetime(2024, 5, 1, 12, 0, 0)
        db_manager._session.set_execute_results([
            AuditEventModel(
                id="e-1",
                event_type="highlights_applied",
                timestamp=naive,
                document_id="loan-001",
                details={"applied": 1, "skipped": 0},
                metadata_=None,
            ),
        ])

        events = audit_logger.get_events(document_id="loan-001", event_type=AuditEventType.HIGHLIGHTS_APPLIED)

        assert len(events) == 1
        assert events[0].event_type == AuditEventType.HIGHLIGHTS_APPLIED
        assert events[0].timestamp.tzinfo == timezone.utc
        assert events[0].metadata == {}

    def test_close_only_releases_own_manager(self, db_manager, audit_logger):
        audit_logger.close()
        assert not db_manager.closed


class TestAuditLoggerExport:
    """Tests for audit log export functionality."""

    def test_export_json_format(self, audit_logger):
        mock_events = [
            AuditEvent(
                id=str(uuid.uuid4()),
                event_type=AuditEventType.DOCUMENT_LOADED,
                timestamp=datetime.now(timezone.utc),
                document_id="loan-001",
                details={"filename": "loan.docx"},
            ),
        ]

        with patch.object(audit_logger, 'get_events', return_value=mock_events):
            result = audit_logger.export_log("loan-001", format="json")

        data = json.loads(result)
        assert "export_timestamp" in data
        assert data["event_count"] == 1
        assert data["events"][0]["event_type"] == "document_loaded"
        assert data["analyses"] == []
        assert data["score_summary"]["total_analyses"] == 0
        assert data["score_summary"]["latest_score"] is None

    def test_export_json_with_score_history(self, audit_logger):
        """Newest-first events make the first analysis the latest score."""
        mock_events = [analysis_event(81, "r-2"), analysis_event(64, "r-1")]

        with patch.object(audit_logger, 'get_events', return_value=mock_events):
            data = json.loads(audit_logger.export_log("loan-001", format="json"))

        assert [entry["report_id"] for entry in data["analyses"]] == ["r-2", "r-1"]
        assert data["score_summary"] == {
            "total_analyses": 2,
            "latest_score": 81,
            "min_score": 64,
            "max_score": 81,
        }

    def test_export_csv_format(self, audit_logger):
        mock_events = [analysis_event(81)]

        with patch.object(audit_logger, 'get_events', return_value=mock_events):
            result = audit_logger.export_log("loan-001", format="csv")

        lines = result.strip().split('\n')
        assert len(lines) == 2  # Header + 1 data row
        assert "id,event_type,timestamp" in lines[0]
        assert "analysis_completed" in lines[1]

    def test_export_invalid_format_raises_error(self, audit_logger):
        with pytest.raises(ValueError) as exc_info:
            audit_logger.export_log("loan-001", format="xml")

        assert "Unsupported export format" in str(exc_info.value)
