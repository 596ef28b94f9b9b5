"""
OpenAI-backed advisory service.

Asks a chat model for green-loan compliance findings in JSON mode and
turns the answer into issues whose offsets point at the first exact
occurrence of the quoted text.
"""

import json
import logging
import os
from typing import Any, Dict, List, Optional

from openai import OpenAI, OpenAIError
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..interfaces.advisory import IAdvisoryService
from ..models.enums import IssueSeverity
from ..models.issue import AdvisoryResult, ComplianceIssue, new_issue_id

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gpt-4o"
DEFAULT_MAX_PROMPT_CHARS = 8000
DEFAULT_CLIENT_TIMEOUT = 60.0

UNAVAILABLE_ASSESSMENT = "AI analysis unavailable"
FAILED_ASSESSMENT = "AI analysis could not be completed"

ANALYSIS_SYSTEM_PROMPT = (
    "You are an expert in Green Finance, specifically LMA Green Loan Principles and "
    "EU sustainable finance regulations. Provide precise, actionable compliance analysis."
)

ANALYSIS_PROMPT = """You are a Green Loan compliance expert. Analyze the following document for compliance issues with the LMA Green Loan Principles 2023 and EU Taxonomy Regulation.

DOCUMENT:
{document}

Identify:
1. CRITICAL issues (fossil fuel references, greenwashing, non-eligible uses of proceeds)
2. WARNING issues (weak language, missing mandatory clauses, inadequate verification)
3. INFO issues (missing best practices, vague metrics)

For each issue found, provide:
- The exact text that is problematic (for highlighting)
- The severity level (error/warning/info)
- A clear explanation
- A specific suggestion to fix it

Respond in JSON format:
{{
  "issues": [
    {{
      "severity": "error|warning|info",
      "category": "Category name",
      "message": "Clear description of the issue",
      "textMatch": "exact text from document",
      "suggestion": "How to fix it"
    }}
  ],
  "suggestions": ["General improvement suggestions"],
  "overallAssessment": "Brief overall compliance assessment"
}}"""

NEGOTIATION_SYSTEM_PROMPT = (
    "You are a financial negotiation expert helping borrowers understand and "
    "negotiate loan terms fairly."
)

NEGOTIATION_PROMPT = """A borrower has a concern about this loan clause:

CLAUSE:
{clause}

BORROWER'S CONCERN:
{concern}

Provide:
1. Plain-language explanation of what this clause means
2. Whether the concern is reasonable
3. Suggested alternative language that would be more balanced
4. Key negotiation points the borrower could raise"""


class AdvisoryError(Exception):
    """Raised when the advisory call fails or returns an unusable answer."""


class AdvisoryIssuePayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    severity: Optional[str] = None
    category: Optional[str] = None
    message: Optional[str] = None
    text_match: Optional[str] = Field(default=None, alias="textMatch")
    suggestion: Optional[str] = None


class AdvisoryResponsePayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    issues: List[AdvisoryIssuePayload] = Field(default_factory=list)
    suggestions: List[str] = Field(default_factory=list)
    overall_assessment: Optional[str] = Field(default=None, alias="overallAssessment")


def _coerce_issue(item: Any) -> Optional[Dict[str, Any]]:
    # Models occasionally answer with bare strings instead of objects.
    if isinstance(item, dict):
        return item
    if isinstance(item, str) and item.strip():
        return {"message": item.strip()}
    return None


def _normalize(data: Any) -> Dict[str, Any]:
    if not isinstance(data, dict):
        return {}
    raw_issues = data.get("issues")
    if not isinstance(raw_issues, list):
        raw_issues = []
    data["issues"] = [coerced for coerced in map(_coerce_issue, raw_issues) if coerced is not None]
    suggestions = data.get("suggestions")
    if not isinstance(suggestions, list):
        suggestions = []
    data["suggestions"] = [str(s) for s in suggestions if s]
    return data


def _severity(value: Optional[str]) -> IssueSeverity:
    try:
        return IssueSeverity((value or "").strip().lower())
    except ValueError:
        return IssueSeverity.INFO


def parse_advisory_response(content: str, document_text: str) -> AdvisoryResult:
    """
    Turn a JSON answer into an advisory result.

    Offsets are the first case-sensitive occurrence of each quoted text in
    ``document_text``; quotes that do not occur verbatim keep no offsets.

    Raises:
        AdvisoryError: If the content is not valid JSON.
    """
    try:
        data = json.loads(content)
    except json.JSONDecodeError as exc:
        raise AdvisoryError(f"Invalid JSON from advisory service: {exc}") from exc

    try:
        payload = AdvisoryResponsePayload.model_validate(_normalize(data))
    except ValidationError as exc:
        raise AdvisoryError(f"Unexpected advisory response shape: {exc}") from exc

    issues = []
    for item in payload.issues:
        text_match = item.text_match or None
        start_offset = end_offset = None
        if text_match:
            index = document_text.find(text_match)
            if index != -1:
                start_offset = index
                end_offset = index + len(text_match)
        issues.append(ComplianceIssue(
            id=new_issue_id(),
            severity=_severity(item.severity),
            category=item.category or "AI Analysis",
            message=item.message or "Compliance issue detected",
            suggestion=item.suggestion,
            text_match=text_match,
            start_offset=start_offset,
            end_offset=end_offset,
        ))

    return AdvisoryResult(
        issues=issues,
        suggestions=payload.suggestions,
        overall_assessment=payload.overall_assessment or "Analysis complete",
    )


class OpenAIAdvisoryService(IAdvisoryService):
    """
    Advisory service backed by the OpenAI chat completions API.

    Args:
        api_key: API key; defaults to the OPENAI_API_KEY environment variable.
            Without a key the service reports itself unavailable.
        model: Chat model name.
        max_prompt_chars: Prefix of the document sent to the model.
        client: Pre-built client, mainly for tests.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = DEFAULT_MODEL,
        temperature: float = 0.3,
        max_tokens: int = 2000,
        max_prompt_chars: int = DEFAULT_MAX_PROMPT_CHARS,
        client_timeout: float = DEFAULT_CLIENT_TIMEOUT,
        client: Optional[OpenAI] = None,
    ):
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.max_prompt_chars = max_prompt_chars
        self._client = client
        if self._client is None:
            api_key = api_key or os.getenv("OPENAI_API_KEY")
            if api_key:
                self._client = OpenAI(api_key=api_key, timeout=client_timeout)

    def is_available(self) -> bool:
        return self._client is not None

    def analyze(self, document_text: str, timeout: Optional[float] = None) -> AdvisoryResult:
        if self._client is None:
            return AdvisoryResult(
                suggestions=["Enable AI analysis by configuring OPENAI_API_KEY"],
                overall_assessment=UNAVAILABLE_ASSESSMENT,
            )

        prompt = ANALYSIS_PROMPT.format(document=document_text[: self.max_prompt_chars])
        request = dict(
            model=self.model,
            messages=[
                {"role": "system", "content": ANALYSIS_SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            response_format={"type": "json_object"},
            temperature=self.temperature,
            max_tokens=self.max_tokens,
        )
        if timeout is not None:
            request["timeout"] = timeout

        try:
            response = self._client.chat.completions.create(**request)
        except OpenAIError as exc:
            raise AdvisoryError(f"Advisory request failed: {exc}") from exc

        content = response.choices[0].message.content if response.choices else None
        if not content:
            logger.warning("Advisory service returned an empty answer")
            return AdvisoryResult(overall_assessment=FAILED_ASSESSMENT)
        return parse_advisory_response(content, document_text)

    def advise_on_clause(self, clause: str, concern: str) -> str:
        if self._client is None:
            return "AI negotiation assistance unavailable. Configure OPENAI_API_KEY to enable."

        try:
            response = self._client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": NEGOTIATION_SYSTEM_PROMPT},
                    {"role": "user", "content": NEGOTIATION_PROMPT.format(clause=clause, concern=concern)},
                ],
                temperature=0.5,
                max_tokens=1000,
            )
        except OpenAIError as exc:
            logger.warning(f"Negotiation advice failed: {exc}")
            return "AI analysis temporarily unavailable."

        content = response.choices[0].message.content if response.choices else None
        return content or "Unable to generate negotiation advice."
