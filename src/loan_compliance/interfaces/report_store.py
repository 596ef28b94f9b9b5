"""Report store interface for the Loan Document Compliance System."""

from abc import ABC, abstractmethod
from typing import List, Optional

from ..models.issue import ComplianceReport


class IReportStore(ABC):
    """Abstract interface for persisting compliance reports."""

    @abstractmethod
    def save(self, report: ComplianceReport) -> ComplianceReport:
        """
        Persist a report.

        Args:
            report: The report to store.

        Returns:
            The stored report.
        """
        pass

    @abstractmethod
    def get_reports(self, document_id: str) -> List[ComplianceReport]:
        """
        List reports for a document, newest first.

        Args:
            document_id: The analysed document.

        Returns:
            Reports ordered by analysis time, descending.
        """
        pass

    @abstractmethod
    def get_latest(self, document_id: str) -> Optional[ComplianceReport]:
        """
        Fetch the most recent report for a document.

        Args:
            document_id: The analysed document.

        Returns:
            The newest report, or None if the document was never analysed.
        """
        pass
