"""Data models for configuration management."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class ConfigurationType(Enum):
    """Types of configuration supported by the system."""
    RULES = "rules"
    PATTERNS = "patterns"
    SCORING = "scoring"


class CustomRuleKind(Enum):
    """Rule variants that can be declared in configuration."""
    ABSENCE = "absence"
    FIRST_MATCH = "first_match"


@dataclass
class CustomRuleConfig:
    """
    Custom pattern rule declared in configuration.

    An ``absence`` rule fires when ``pattern`` is missing from the document;
    a ``first_match`` rule fires on the first hit of ``pattern``. Both are
    skipped unless every ``requires`` pattern is present, and a
    ``first_match`` rule is suppressed when ``unless`` matches.
    """
    id: str
    name: str
    kind: CustomRuleKind
    pattern: str
    severity: str  # "error", "warning", "info"
    message: str
    category: str = "Custom"
    regulation: str = ""
    suggestion: str = ""
    jurisdiction: Optional[str] = None  # ISO country code, None for EU-wide
    requires: List[str] = field(default_factory=list)
    unless: Optional[str] = None
    anchor: Optional[str] = None
    fallback_label: str = ""
    enabled: bool = True
    description: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "kind": self.kind.value,
            "pattern": self.pattern,
            "severity": self.severity,
            "message": self.message,
            "category": self.category,
            "regulation": self.regulation,
            "suggestion": self.suggestion,
            "jurisdiction": self.jurisdiction,
            "requires": self.requires,
            "unless": self.unless,
            "anchor": self.anchor,
            "fallback_label": self.fallback_label,
            "enabled": self.enabled,
            "description": self.description,
            "metadata": self.metadata,
        }


@dataclass
class DisparityPatternConfig:
    """
    Extra party-favoring pattern for the fairness scan.
    """
    id: str
    pattern: str
    category: str
    severity: str
    message: str
    favored_party: str  # "lender", "borrower", "neutral"
    suggestion: Optional[str] = None
    enabled: bool = True
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "pattern": self.pattern,
            "category": self.category,
            "severity": self.severity,
            "message": self.message,
            "favored_party": self.favored_party,
            "suggestion": self.suggestion,
            "enabled": self.enabled,
            "metadata": self.metadata,
        }


@dataclass
class ScoringConfig:
    """Severity penalties and scanner caps."""
    error_penalty: int = 15
    warning_penalty: int = 8
    info_penalty: int = 3
    critical_cap: int = 5
    warning_cap: int = 5
    info_cap: int = 3
    disparity_cap: int = 3

    def to_dict(self) -> Dict[str, int]:
        return {
            "error_penalty": self.error_penalty,
            "warning_penalty": self.warning_penalty,
            "info_penalty": self.info_penalty,
            "critical_cap": self.critical_cap,
            "warning_cap": self.warning_cap,
            "info_cap": self.info_cap,
            "disparity_cap": self.disparity_cap,
        }


@dataclass
class ValidationResult:
    """Result of configuration validation."""
    is_valid: bool
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def add_error(self, message: str) -> None:
        """Add an error message."""
        self.errors.append(message)
        self.is_valid = False

    def add_warning(self, message: str) -> None:
        """Add a warning message."""
        self.warnings.append(message)

    def merge(self, other: "ValidationResult") -> "ValidationResult":
        """Merge another validation result into this one."""
        return ValidationResult(
            is_valid=self.is_valid and other.is_valid,
            errors=self.errors + other.errors,
            warnings=self.warnings + other.warnings
        )


class ConfigurationError(Exception):
    """Exception raised for configuration errors."""

    def __init__(self, message: str, validation_result: Optional[ValidationResult] = None):
        super().__init__(message)
        self.message = message
        self.validation_result = validation_result


@dataclass
class SystemConfiguration:
    """
    Complete system configuration.

    Aggregates custom rules, extra fairness patterns and the scoring
    policy into a single structure.
    """
    custom_rules: List[CustomRuleConfig] = field(default_factory=list)
    disparity_patterns: List[DisparityPatternConfig] = field(default_factory=list)
    scoring: Optional[ScoringConfig] = None
    version: int = 1
    metadata: Dict[str, Any] = field(default_factory=dict)

    def get_enabled_rules(self) -> List[CustomRuleConfig]:
        return [r for r in self.custom_rules if r.enabled]

    def get_enabled_patterns(self) -> List[DisparityPatternConfig]:
        return [p for p in self.disparity_patterns if p.enabled]

    def get_rules_by_jurisdiction(self, jurisdiction: Optional[str]) -> List[CustomRuleConfig]:
        """Get enabled custom rules scoped to a country code (None for EU-wide)."""
        return [r for r in self.get_enabled_rules() if r.jurisdiction == jurisdiction]
