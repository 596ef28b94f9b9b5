"""End-to-end compliance pipeline for the Loan Document Compliance System.

This module wires the flattener, rule engine, scanners, advisory merger,
scorer and highlighter together into the operations callers use: analyze
a document, paint its findings back onto it, and list the rules and
jurisdictions the engine knows about.
"""

import logging
import os
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError

from .advisory.merger import AdvisoryOutcome, DEFAULT_ADVISORY_TIMEOUT, merge_with_advisory
from .advisory.openai_advisory import DEFAULT_MAX_PROMPT_CHARS, DEFAULT_MODEL, OpenAIAdvisoryService
from .audit.audit_logger import AuditLogger
from .audit.database import DatabaseManager
from .audit.report_store import ReportStore
from .config.config_manager import ConfigurationManager
from .flattening.text_flattener import FlattenedText, flatten
from .highlighting.docx_exporter import HighlightedDocxExporter
from .highlighting.highlighter import HighlightResult, apply_highlights, get_issue_at_position
from .highlighting.view_renderer import ViewRenderer
from .interfaces.advisory import IAdvisoryService
from .interfaces.audit import IAuditLogger
from .interfaces.report_store import IReportStore
from .models.document import StructuredDocument
from .models.enums import EU_COUNTRY_NAMES
from .models.issue import ComplianceIssue, ComplianceReport
from .parsers.base import DocumentLoader
from .parsers.serialization import DocumentSerializer
from .rules.rule_engine import ComplianceRule, RuleEngine
from .scanners.disparity_scanner import DisparityScanner, ScanSettings
from .scoring import ScoringPolicy, calculate_score


logger = logging.getLogger(__name__)

_TRUE_VALUES = {"1", "true", "yes", "on"}


def _env_flag(environ: Mapping[str, str], name: str, default: bool) -> bool:
    value = environ.get(name)
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in _TRUE_VALUES


@dataclass
class PipelineConfig:
    """Configuration for the compliance pipeline."""

    # Database configuration
    database_url: Optional[str] = None

    # Feature flags
    enable_report_store: bool = False
    enable_audit_logging: bool = False
    enable_advisory: bool = True
    enable_scans: bool = True

    # Advisory configuration
    openai_api_key: Optional[str] = None
    advisory_model: str = DEFAULT_MODEL
    advisory_timeout: float = DEFAULT_ADVISORY_TIMEOUT
    advisory_max_prompt_chars: int = DEFAULT_MAX_PROMPT_CHARS

    # Scanning and scoring; overridden by scoring.json when a config_dir provides one
    scan_settings: ScanSettings = field(default_factory=ScanSettings)
    scoring_policy: ScoringPolicy = field(default_factory=ScoringPolicy)

    # Configuration files
    config_dir: Optional[str] = None

    # Output directory for .docx exports
    export_dir: str = "data/exports"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "PipelineConfig":
        """
        Build a configuration from ``COMPLIANCE_*`` environment variables.

        ``OPENAI_API_KEY`` supplies the advisory key. Unset variables keep
        the dataclass defaults.
        """
        environ = os.environ if environ is None else environ
        defaults = cls()
        return cls(
            database_url=environ.get("COMPLIANCE_DATABASE_URL") or None,
            enable_report_store=_env_flag(environ, "COMPLIANCE_ENABLE_REPORT_STORE", defaults.enable_report_store),
            enable_audit_logging=_env_flag(environ, "COMPLIANCE_ENABLE_AUDIT", defaults.enable_audit_logging),
            enable_advisory=_env_flag(environ, "COMPLIANCE_ENABLE_ADVISORY", defaults.enable_advisory),
            enable_scans=_env_flag(environ, "COMPLIANCE_ENABLE_SCANS", defaults.enable_scans),
            openai_api_key=environ.get("OPENAI_API_KEY") or None,
            advisory_model=environ.get("COMPLIANCE_ADVISORY_MODEL", defaults.advisory_model),
            advisory_timeout=float(environ.get("COMPLIANCE_ADVISORY_TIMEOUT", defaults.advisory_timeout)),
            advisory_max_prompt_chars=int(
                environ.get("COMPLIANCE_ADVISORY_MAX_CHARS", defaults.advisory_max_prompt_chars)
            ),
            config_dir=environ.get("COMPLIANCE_CONFIG_DIR") or None,
            export_dir=environ.get("COMPLIANCE_EXPORT_DIR", defaults.export_dir),
        )


class CompliancePipeline:
    """
    Main compliance pipeline.

    Every analysis flattens the document once and runs rules, scans,
    advisory merge and scoring against that one snapshot. Analyses never
    fail because of the advisory service or the report store; those
    degrade to a logged warning.
    """

    def __init__(
        self,
        config: Optional[PipelineConfig] = None,
        rule_engine: Optional[RuleEngine] = None,
        scanner: Optional[DisparityScanner] = None,
        advisory_service: Optional[IAdvisoryService] = None,
        report_store: Optional[IReportStore] = None,
        audit_logger: Optional[IAuditLogger] = None,
        config_manager: Optional[ConfigurationManager] = None,
    ):
        """
        Initialize the compliance pipeline.

        Args:
            config: Pipeline configuration.
            rule_engine: Optional rule engine (built-in registry if not provided).
            scanner: Optional scanner (created from the config if not provided).
            advisory_service: Optional advisory service (OpenAI-backed if not provided).
            report_store: Optional report store (created when enabled in config).
            audit_logger: Optional audit logger (created when enabled in config).
            config_manager: Optional configuration manager (created if not provided).
        """
        self.config = config or PipelineConfig()

        # Initialize database manager if needed
        self._db_manager = None
        if (report_store is None and self.config.enable_report_store) or (
            audit_logger is None and self.config.enable_audit_logging
        ):
            self._db_manager = DatabaseManager(database_url=self.config.database_url)
            self._db_manager.init_database()

        self._report_store = report_store
        if self._report_store is None and self.config.enable_report_store:
            self._report_store = ReportStore(db_manager=self._db_manager)

        self._audit_logger = audit_logger
        if self._audit_logger is None and self.config.enable_audit_logging:
            self._audit_logger = AuditLogger(db_manager=self._db_manager)

        self._config_manager = config_manager or ConfigurationManager(
            config_dir=self.config.config_dir
        )
        if self.config.config_dir:
            self._load_configuration(self.config.config_dir)

        scan_settings = self._config_manager.scan_settings() or self.config.scan_settings
        self._scoring_policy = self._config_manager.scoring_policy() or self.config.scoring_policy

        self._rule_engine = rule_engine or RuleEngine()
        custom_rules = self._config_manager.build_rules()
        if custom_rules:
            self._rule_engine.add_rules(custom_rules)

        self._scanner = scanner or DisparityScanner(
            settings=scan_settings,
            extra_disparity_patterns=self._config_manager.build_disparity_patterns(),
        )

        self._advisory_service = advisory_service
        if self._advisory_service is None and self.config.enable_advisory:
            self._advisory_service = OpenAIAdvisoryService(
                api_key=self.config.openai_api_key,
                model=self.config.advisory_model,
                max_prompt_chars=self.config.advisory_max_prompt_chars,
            )

        self._loader = DocumentLoader()
        self._renderer = ViewRenderer()

        logger.info(f"Compliance pipeline initialized with {len(self._rule_engine.rules)} rules")

    def _load_configuration(self, config_dir: str) -> None:
        result = self._config_manager.load_from_directory(config_dir)
        for warning in result.warnings:
            logger.warning(f"Configuration warning: {warning}")
        for error in result.errors:
            logger.warning(f"Configuration error: {error}")
        logger.info(f"Loaded configuration from {config_dir}")

        if self._audit_logger:
            try:
                self._audit_logger.log_configuration_loaded(
                    config_dir=str(config_dir),
                    custom_rule_count=len(self._config_manager.configuration.custom_rules),
                    pattern_count=len(self._config_manager.configuration.disparity_patterns),
                    warnings=result.warnings,
                )
            except SQLAlchemyError as e:
                logger.warning(f"Failed to audit configuration load: {e}")

    # =========================================================================
    # Analysis
    # =========================================================================

    def analyze(
        self,
        document: Any,
        provider_country: Optional[str] = None,
        recipient_country: Optional[str] = None,
        document_id: Optional[str] = None,
        include_scans: Optional[bool] = None,
        use_advisory: bool = True,
        user_id: Optional[str] = None,
        advisory_timeout: Optional[float] = None,
    ) -> ComplianceReport:
        """
        Analyze a document and produce a compliance report.

        Args:
            document: StructuredDocument, editor JSON content, or plain text.
            provider_country: Jurisdiction hint for the lender (ISO code).
            recipient_country: Jurisdiction hint for the borrower (ISO code).
            document_id: Identifier stamped on the report; defaults to the document's id.
            include_scans: Run the multi-match scanners; defaults to the config flag.
            use_advisory: Merge the advisory service's findings when available.
            user_id: Optional user ID for audit logging.
            advisory_timeout: Seconds to wait for the advisory service; defaults
                to the configured timeout.

        Returns:
            The report; also stored and audited when those are configured.
        """
        report, _ = self._run_analysis(
            self._as_document(document, document_id),
            provider_country,
            recipient_country,
            document_id,
            include_scans,
            use_advisory,
            user_id,
            advisory_timeout,
        )
        return report

    def analyze_rules_only(
        self,
        document: Any,
        provider_country: Optional[str] = None,
        recipient_country: Optional[str] = None,
        document_id: Optional[str] = None,
    ) -> ComplianceReport:
        """Deterministic analysis: rules and scans, no advisory call."""
        return self.analyze(
            document,
            provider_country=provider_country,
            recipient_country=recipient_country,
            document_id=document_id,
            use_advisory=False,
        )

    def analyze_and_highlight(
        self,
        document: Any,
        provider_country: Optional[str] = None,
        recipient_country: Optional[str] = None,
        document_id: Optional[str] = None,
        include_scans: Optional[bool] = None,
        use_advisory: bool = True,
        user_id: Optional[str] = None,
        advisory_timeout: Optional[float] = None,
    ) -> Tuple[ComplianceReport, HighlightResult, StructuredDocument]:
        """
        Analyze a document and paint the findings onto it.

        Highlighting reuses the flattened snapshot the analysis ran on, so
        issue offsets are resolved against exactly the text they came from.

        Returns:
            The report, the highlight result, and the highlighted document.
        """
        structured = self._as_document(document, document_id)
        report, flattened = self._run_analysis(
            structured,
            provider_country,
            recipient_country,
            document_id,
            include_scans,
            use_advisory,
            user_id,
            advisory_timeout,
        )
        result = self._highlight(structured, report.issues, flattened, user_id)
        return report, result, structured

    def _run_analysis(
        self,
        document: StructuredDocument,
        provider_country: Optional[str],
        recipient_country: Optional[str],
        document_id: Optional[str],
        include_scans: Optional[bool],
        use_advisory: bool,
        user_id: Optional[str],
        advisory_timeout: Optional[float] = None,
    ) -> Tuple[ComplianceReport, FlattenedText]:
        document_id = document_id or document.id
        logger.info(f"Analyzing document {document_id}")

        flattened = flatten(document)

        rules = self._rule_engine.applicable_rules(provider_country, recipient_country)
        issues: List[ComplianceIssue] = self._rule_engine.run_rules(rules, document, flattened)
        logger.info(f"Rule check: {len(issues)} issues from {len(rules)} applicable rules")

        if self.config.enable_scans if include_scans is None else include_scans:
            scan_issues = self._scanner.scan(flattened)
            issues.extend(scan_issues)
            logger.info(f"Scanners: {len(scan_issues)} additional issues")

        outcome = AdvisoryOutcome()
        if use_advisory and self.config.enable_advisory:
            timeout = self.config.advisory_timeout if advisory_timeout is None else advisory_timeout
            issues, outcome = merge_with_advisory(issues, self._advisory_service, flattened.text, timeout)
            self._audit_advisory(document_id, outcome)

        score = calculate_score(issues, self._scoring_policy)
        report = ComplianceReport(
            id=str(uuid.uuid4()),
            document_id=document_id,
            score=score,
            issues=tuple(issues),
            metadata=self._report_metadata(rules, provider_country, recipient_country, outcome),
        )
        logger.info(f"Document {document_id} scored {score} with {len(issues)} issues")

        self._persist(report, user_id)
        return report, flattened

    def _report_metadata(
        self,
        rules: List[ComplianceRule],
        provider_country: Optional[str],
        recipient_country: Optional[str],
        outcome: AdvisoryOutcome,
    ) -> Dict[str, Any]:
        metadata: Dict[str, Any] = {
            "applicable_rules": [rule.id for rule in rules],
            "provider_country": provider_country,
            "recipient_country": recipient_country,
            "advisory_used": outcome.used,
            "advisory_accepted": outcome.accepted,
            "scoring_policy": self._scoring_policy.to_dict(),
        }
        if outcome.result is not None:
            metadata["overall_assessment"] = outcome.result.overall_assessment
            metadata["suggestions"] = list(outcome.result.suggestions)
        if outcome.error:
            metadata["advisory_error"] = outcome.error
        return metadata

    def _audit_advisory(self, document_id: Optional[str], outcome: AdvisoryOutcome) -> None:
        if not self._audit_logger:
            return
        try:
            if outcome.used:
                self._audit_logger.log_advisory_merged(
                    document_id, accepted=outcome.accepted, proposed=len(outcome.issues)
                )
            else:
                self._audit_logger.log_advisory_unavailable(document_id, reason=outcome.error or "unavailable")
        except SQLAlchemyError as e:
            logger.warning(f"Failed to audit advisory outcome: {e}")

    def _persist(self, report: ComplianceReport, user_id: Optional[str]) -> None:
        if self._report_store is not None:
            try:
                self._report_store.save(report)
            except SQLAlchemyError as e:
                logger.warning(f"Failed to store report {report.id}: {e}")
        if self._audit_logger:
            try:
                self._audit_logger.log_analysis_completed(report, user_id=user_id)
            except SQLAlchemyError as e:
                logger.warning(f"Failed to audit analysis {report.id}: {e}")

    # =========================================================================
    # Highlighting
    # =========================================================================

    def apply_highlights(
        self,
        document: StructuredDocument,
        issues: List[ComplianceIssue],
        user_id: Optional[str] = None,
    ) -> HighlightResult:
        """
        Replace the document's compliance marks with marks for ``issues``.

        The issues must come from an analysis of the document's current
        content; the document is flattened again to resolve them.
        """
        return self._highlight(document, issues, None, user_id)

    def _highlight(
        self,
        document: StructuredDocument,
        issues,
        flattened: Optional[FlattenedText],
        user_id: Optional[str],
    ) -> HighlightResult:
        result = apply_highlights(document, issues, flattened)
        if self._audit_logger:
            try:
                self._audit_logger.log_highlights_applied(
                    document.id,
                    applied=result.applied_count,
                    skipped=len(result.skipped_issue_ids),
                    user_id=user_id,
                )
            except SQLAlchemyError as e:
                logger.warning(f"Failed to audit highlights for {document.id}: {e}")
        return result

    def get_issue_at_position(self, document: StructuredDocument, pos: int) -> Optional[ComplianceIssue]:
        return get_issue_at_position(document, pos)

    def render_html(self, document: StructuredDocument, report: Optional[ComplianceReport] = None) -> str:
        return self._renderer.render_document(document, report)

    def export_docx(self, document: StructuredDocument, output_path: Optional[str] = None) -> str:
        exporter = HighlightedDocxExporter(output_dir=self.config.export_dir)
        return exporter.export(document, output_path)

    # =========================================================================
    # Documents, rules and history
    # =========================================================================

    def load_document(
        self,
        file_path: str,
        document_id: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> StructuredDocument:
        """Load a .json/.docx/.pdf/.txt file; loader exceptions propagate."""
        document = self._loader.load(file_path, document_id)
        logger.info(f"Loaded document {document.id} from {file_path}")
        if self._audit_logger:
            try:
                self._audit_logger.log_document_loaded(
                    document.id,
                    filename=os.path.basename(file_path),
                    doc_type=os.path.splitext(file_path)[1].lstrip(".").lower(),
                    content_size=document.content_size,
                    user_id=user_id,
                )
            except SQLAlchemyError as e:
                logger.warning(f"Failed to audit document load: {e}")
        return document

    def get_applicable_rules(
        self,
        provider_country: Optional[str] = None,
        recipient_country: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        return [
            rule.describe()
            for rule in self._rule_engine.applicable_rules(provider_country, recipient_country)
        ]

    def get_rules(self) -> List[Dict[str, Any]]:
        return self._rule_engine.describe_rules()

    def get_eu_countries(self) -> List[Dict[str, str]]:
        return [
            {"code": country.value, "name": name}
            for country, name in EU_COUNTRY_NAMES.items()
        ]

    def get_reports(self, document_id: str) -> List[ComplianceReport]:
        if self._report_store is None:
            return []
        return self._report_store.get_reports(document_id)

    def get_latest_report(self, document_id: str) -> Optional[ComplianceReport]:
        if self._report_store is None:
            return None
        return self._report_store.get_latest(document_id)

    def is_advisory_available(self) -> bool:
        return (
            self.config.enable_advisory
            and self._advisory_service is not None
            and self._advisory_service.is_available()
        )

    def negotiation_advice(self, clause: str, concern: str) -> str:
        """Ask the advisory service how a borrower could renegotiate a clause."""
        if self._advisory_service is None:
            return "AI negotiation assistance unavailable. Configure OPENAI_API_KEY to enable."
        return self._advisory_service.advise_on_clause(clause, concern)

    @property
    def configuration_manager(self) -> ConfigurationManager:
        return self._config_manager

    def _as_document(self, document: Any, document_id: Optional[str]) -> StructuredDocument:
        if isinstance(document, StructuredDocument):
            return document
        return DocumentSerializer.from_content(document, document_id)

    def close(self) -> None:
        """Close the pipeline and release resources."""
        if self._db_manager:
            self._db_manager.close()
        logger.info("Compliance pipeline closed")
