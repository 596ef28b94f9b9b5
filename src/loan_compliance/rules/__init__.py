"""Jurisdiction-scoped compliance rules."""

from .patterns import PatternMatch, compile_pattern, contains, find_all_matches, first_match
from .rule_engine import (
    AbsenceRule,
    ComplianceRule,
    FirstMatchRule,
    RuleEngine,
    absence_rule,
    first_match_rule,
)
from .rule_registry import BUILTIN_RULES, GREEN_LOAN_CONTEXT, GREEN_LOAN_RULES, REGULATORY_RULES

__all__ = [
    "PatternMatch",
    "compile_pattern",
    "contains",
    "find_all_matches",
    "first_match",
    "AbsenceRule",
    "ComplianceRule",
    "FirstMatchRule",
    "RuleEngine",
    "absence_rule",
    "first_match_rule",
    "BUILTIN_RULES",
    "GREEN_LOAN_CONTEXT",
    "GREEN_LOAN_RULES",
    "REGULATORY_RULES",
]
