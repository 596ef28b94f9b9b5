"""External advisory signal and its merge into local findings."""

from .merger import (
    AdvisoryOutcome,
    fetch_advisory,
    merge_advisory_issues,
    merge_with_advisory,
)
from .openai_advisory import AdvisoryError, OpenAIAdvisoryService, parse_advisory_response

__all__ = [
    "AdvisoryOutcome",
    "fetch_advisory",
    "merge_advisory_issues",
    "merge_with_advisory",
    "AdvisoryError",
    "OpenAIAdvisoryService",
    "parse_advisory_response",
]
