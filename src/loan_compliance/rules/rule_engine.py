"""
Jurisdiction-scoped rule engine.

Rules are immutable records holding compiled patterns plus metadata.
Presence checks run against the whitespace-collapsed search text; any
offsets an issue carries come from the position-mapped text so that the
highlighter can resolve them back into document coordinates.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Pattern, Sequence, Tuple

from ..flattening.text_flattener import FlattenedText
from ..models.enums import (
    EU_COUNTRY_NAMES,
    EUCountry,
    IssueSeverity,
    IssueType,
    REGION_WIDE,
    REGION_WIDE_LABEL,
)
from ..models.issue import ComplianceIssue, new_issue_id
from .patterns import PatternLike, compile_pattern, contains, first_match

logger = logging.getLogger(__name__)

DEFAULT_FALLBACK_LENGTH = 20


def _compile_all(patterns: Iterable[PatternLike]) -> Tuple[Pattern, ...]:
    return tuple(compile_pattern(pattern) for pattern in patterns)


@dataclass(frozen=True)
class ComplianceRule:
    """
    Base rule record.

    Attributes:
        id: Stable rule identifier.
        name: Display name.
        category: Rule family (e.g. "Consumer Credit Directive").
        regulation: Regulation citation stamped onto issues.
        severity: Severity of raised issues.
        issue_category: Category carried by raised issues.
        message: Issue message; first-match rules may use ``{match}``.
        suggestion: Remediation hint.
        country: Member state the rule is scoped to, None for region-wide.
        requires: Patterns that must all be present for the rule to apply.
    """
    id: str
    name: str
    category: str
    regulation: str
    severity: IssueSeverity
    issue_category: str
    message: str
    suggestion: str = ""
    country: Optional[EUCountry] = None
    requires: Tuple[Pattern, ...] = ()

    @property
    def jurisdiction(self) -> str:
        return self.country.value if self.country else REGION_WIDE

    @property
    def jurisdiction_label(self) -> str:
        return EU_COUNTRY_NAMES[self.country] if self.country else REGION_WIDE_LABEL

    @property
    def is_region_wide(self) -> bool:
        return self.country is None

    def applies_to(self, flattened: FlattenedText) -> bool:
        return all(contains(flattened.search_text, pattern) for pattern in self.requires)

    def check(self, document: Any, flattened: FlattenedText) -> Optional[ComplianceIssue]:
        """
        Evaluate the rule.

        Args:
            document: The raw document the text was flattened from.
            flattened: Flattened text of the document.

        Returns:
            At most one issue, or None when the rule passes.
        """
        raise NotImplementedError

    def _issue(self, message: Optional[str] = None, **span) -> ComplianceIssue:
        return ComplianceIssue(
            id=new_issue_id(),
            severity=self.severity,
            category=self.issue_category,
            message=message or self.message,
            suggestion=self.suggestion or None,
            regulation=self.regulation,
            jurisdiction=self.jurisdiction_label,
            issue_type=IssueType.REGULATORY,
            **span,
        )

    def describe(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "regulation": self.regulation,
            "jurisdiction": self.jurisdiction,
            "severity": self.severity.value,
        }


@dataclass(frozen=True)
class AbsenceRule(ComplianceRule):
    """
    Fires when a required disclosure is missing.

    Without an anchor the issue is document-level. With an anchor, the
    issue points at the first anchor hit, or at offset 0 with the fallback
    label when the anchor is absent too.
    """
    present: Pattern = None
    anchor: Optional[Pattern] = None
    fallback_label: str = ""
    fallback_length: int = DEFAULT_FALLBACK_LENGTH

    def check(self, document: Any, flattened: FlattenedText) -> Optional[ComplianceIssue]:
        if not self.applies_to(flattened):
            return None
        if contains(flattened.search_text, self.present):
            return None
        if self.anchor is None or not flattened.text:
            return self._issue()

        hit = first_match(flattened.text, self.anchor)
        if hit is not None:
            return self._issue(text_match=hit.text, start_offset=hit.start, end_offset=hit.end)
        return self._issue(
            text_match=self.fallback_label,
            start_offset=0,
            end_offset=self.fallback_length,
        )


@dataclass(frozen=True)
class FirstMatchRule(ComplianceRule):
    """
    Fires on the first hit of a pattern.

    ``unless`` suppresses the rule when it is present anywhere in the text.
    """
    pattern: Pattern = None
    unless: Optional[Pattern] = None

    def check(self, document: Any, flattened: FlattenedText) -> Optional[ComplianceIssue]:
        if not self.applies_to(flattened):
            return None
        if self.unless is not None and contains(flattened.search_text, self.unless):
            return None
        hit = first_match(flattened.text, self.pattern)
        if hit is None:
            return None
        return self._issue(
            message=self.message.replace("{match}", hit.text),
            text_match=hit.text,
            start_offset=hit.start,
            end_offset=hit.end,
        )


def absence_rule(
    id: str,
    name: str,
    category: str,
    regulation: str,
    severity: IssueSeverity,
    issue_category: str,
    message: str,
    suggestion: str,
    present: PatternLike,
    requires: Sequence[PatternLike] = (),
    anchor: Optional[PatternLike] = None,
    fallback_label: str = "",
    country: Optional[EUCountry] = None,
) -> AbsenceRule:
    """Build an absence rule from pattern sources."""
    return AbsenceRule(
        id=id,
        name=name,
        category=category,
        regulation=regulation,
        severity=severity,
        issue_category=issue_category,
        message=message,
        suggestion=suggestion,
        country=country,
        requires=_compile_all(requires),
        present=compile_pattern(present),
        anchor=compile_pattern(anchor) if anchor else None,
        fallback_label=fallback_label,
    )


def first_match_rule(
    id: str,
    name: str,
    category: str,
    regulation: str,
    severity: IssueSeverity,
    issue_category: str,
    message: str,
    suggestion: str,
    pattern: PatternLike,
    requires: Sequence[PatternLike] = (),
    unless: Optional[PatternLike] = None,
    country: Optional[EUCountry] = None,
) -> FirstMatchRule:
    """Build a first-match rule from pattern sources."""
    return FirstMatchRule(
        id=id,
        name=name,
        category=category,
        regulation=regulation,
        severity=severity,
        issue_category=issue_category,
        message=message,
        suggestion=suggestion,
        country=country,
        requires=_compile_all(requires),
        pattern=compile_pattern(pattern),
        unless=compile_pattern(unless) if unless else None,
    )


class RuleEngine:
    """
    Runs an ordered rule registry against flattened text.

    The registry order is the evaluation order and therefore the issue
    order. Extra rules (e.g. from configuration) run after the built-ins.
    """

    def __init__(self, rules: Optional[Sequence[ComplianceRule]] = None):
        if rules is None:
            from .rule_registry import BUILTIN_RULES
            rules = BUILTIN_RULES
        self._rules: Tuple[ComplianceRule, ...] = tuple(rules)

    @property
    def rules(self) -> Tuple[ComplianceRule, ...]:
        return self._rules

    def add_rules(self, rules: Iterable[ComplianceRule]) -> None:
        """Append rules after the current registry, rejecting duplicate ids."""
        known = {rule.id for rule in self._rules}
        added = []
        for rule in rules:
            if rule.id in known:
                raise ValueError(f"Duplicate rule id: {rule.id}")
            known.add(rule.id)
            added.append(rule)
        self._rules = self._rules + tuple(added)

    def applicable_rules(
        self,
        provider_country: Any = None,
        recipient_country: Any = None,
    ) -> List[ComplianceRule]:
        """
        Select the rules for a pair of jurisdiction hints.

        Region-wide rules always apply; country-scoped rules apply when
        their country matches either hint. Unknown codes count as no hint.
        """
        hints = set()
        for hint in (provider_country, recipient_country):
            country = EUCountry.parse(hint)
            if country is not None:
                hints.add(country)
            elif hint:
                logger.debug(f"Ignoring unknown jurisdiction hint: {hint!r}")

        region_wide = [rule for rule in self._rules if rule.is_region_wide]
        scoped = [rule for rule in self._rules if rule.country is not None and rule.country in hints]
        return region_wide + scoped

    def run_rules(
        self,
        rules: Sequence[ComplianceRule],
        document: Any,
        flattened: FlattenedText,
    ) -> List[ComplianceIssue]:
        """Evaluate rules in order and collect the issues they raise."""
        issues: List[ComplianceIssue] = []
        for rule in rules:
            issue = rule.check(document, flattened)
            if issue is not None:
                issues.append(issue)
        logger.debug(f"{len(rules)} rules raised {len(issues)} issues")
        return issues

    def describe_rules(self) -> List[Dict[str, Any]]:
        return [rule.describe() for rule in self._rules]
