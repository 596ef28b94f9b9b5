"""Advisory service interface for the Loan Document Compliance System."""

from abc import ABC, abstractmethod
from typing import Optional

from ..models.issue import AdvisoryResult


class IAdvisoryService(ABC):
    """
    Abstract interface for an external advisory source.

    Implementations must tolerate being unconfigured: ``analyze`` then
    returns a neutral result instead of raising.
    """

    @abstractmethod
    def is_available(self) -> bool:
        """
        Report whether the service is configured.

        Returns:
            True if calls can reach the backing service.
        """
        pass

    @abstractmethod
    def analyze(self, document_text: str, timeout: Optional[float] = None) -> AdvisoryResult:
        """
        Request advisory issues for a document.

        Args:
            document_text: Position-mapped flattened text of the document.
                Implementations may truncate it to a bounded prefix.
            timeout: Upper bound in seconds for the outbound call.

        Returns:
            Advisory issues, general suggestions and an overall assessment.
        """
        pass

    @abstractmethod
    def advise_on_clause(self, clause: str, concern: str) -> str:
        """
        Produce negotiation guidance for a clause.

        Args:
            clause: Clause text under negotiation.
            concern: The borrower's concern about it.

        Returns:
            Plain-language advice.
        """
        pass
