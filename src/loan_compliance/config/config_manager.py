"""Configuration Manager implementation for the Loan Document Compliance System.

This module provides functionality to load, validate, and manage configuration
for custom pattern rules, extra fairness patterns, and the scoring policy.
"""

import json
import logging
import re
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

from ..models.enums import EUCountry, FavoredParty, IssueSeverity
from ..rules.rule_engine import ComplianceRule, absence_rule, first_match_rule
from ..rules.rule_registry import BUILTIN_RULES
from ..scanners.disparity_scanner import ScanPattern, ScanSettings, scan_pattern
from ..scoring import ScoringPolicy
from .models import (
    ConfigurationError,
    ConfigurationType,
    CustomRuleConfig,
    CustomRuleKind,
    DisparityPatternConfig,
    ScoringConfig,
    SystemConfiguration,
    ValidationResult,
)

logger = logging.getLogger(__name__)

ConfigSource = Union[str, Path, Dict[str, Any], List[Dict[str, Any]]]

CONFIG_FILES = {
    ConfigurationType.RULES: "rules.json",
    ConfigurationType.PATTERNS: "patterns.json",
    ConfigurationType.SCORING: "scoring.json",
}

_SEVERITIES = [s.value for s in IssueSeverity]
_PARTIES = [p.value for p in FavoredParty]
_KINDS = [k.value for k in CustomRuleKind]


class ConfigurationManager:
    """
    Manager for system configuration.

    Handles loading, validation, and access to custom pattern rules,
    extra fairness patterns and the scoring policy, and turns them into
    the rule and scan objects the engine runs.
    """

    def __init__(self, config_dir: Optional[Union[str, Path]] = None):
        """
        Initialize the configuration manager.

        Args:
            config_dir: Optional directory path for configuration files.
        """
        self._config_dir = Path(config_dir) if config_dir else None
        self._configuration = SystemConfiguration()
        self._is_loaded = False

    @property
    def configuration(self) -> SystemConfiguration:
        """Get the current system configuration."""
        return self._configuration

    @property
    def is_loaded(self) -> bool:
        """Check if configuration has been loaded."""
        return self._is_loaded

    # =========================================================================
    # Custom Rule Methods
    # =========================================================================

    def load_custom_rules(self, source: ConfigSource) -> ValidationResult:
        """
        Load and validate custom pattern rules.

        Supports loading from:
        - JSON file path
        - Dictionary with a "rules" list
        - List of rule dictionaries

        Args:
            source: File path, dictionary, or list of dictionaries.

        Returns:
            ValidationResult indicating success or failure with details.

        Raises:
            ConfigurationError: If validation fails and configuration cannot be applied.
        """
        rules_data = self._unwrap(self._parse_source(source), "rules")

        result = ValidationResult(is_valid=True)
        rules: List[CustomRuleConfig] = []

        for i, rule_dict in enumerate(rules_data):
            rule_result, rule = self._validate_custom_rule(rule_dict, index=i)
            result = result.merge(rule_result)
            if rule:
                rules.append(rule)

        ids = [r.id for r in rules]
        duplicates = {rule_id for rule_id in ids if ids.count(rule_id) > 1}
        if duplicates:
            result.add_error(f"Duplicate custom rule IDs found: {duplicates}")

        builtin_ids = {rule.id for rule in BUILTIN_RULES}
        clashes = set(ids) & builtin_ids
        if clashes:
            result.add_error(f"Custom rule IDs collide with built-in rules: {clashes}")

        if not result.is_valid:
            raise ConfigurationError(
                "Custom rule validation failed",
                validation_result=result
            )

        self._configuration.custom_rules = rules
        self._is_loaded = True
        logger.info(f"Loaded {len(rules)} custom rules")
        return result

    def _validate_custom_rule(
        self,
        data: Dict[str, Any],
        index: int = 0
    ) -> Tuple[ValidationResult, Optional[CustomRuleConfig]]:
        """Validate a single custom rule dictionary."""
        result = ValidationResult(is_valid=True)
        prefix = f"Custom rule [{index}]"

        if not isinstance(data, dict):
            result.add_error(f"{prefix}: must be an object")
            return result, None

        required_fields = ["id", "name", "kind", "pattern", "severity", "message"]
        for field_name in required_fields:
            if field_name not in data:
                result.add_error(f"{prefix}: Missing required field '{field_name}'")

        if not result.is_valid:
            return result, None

        for text_field in ["id", "name", "message"]:
            value = data[text_field]
            if not isinstance(value, str) or not value.strip():
                result.add_error(f"{prefix}: '{text_field}' must be a non-empty string")

        if data["kind"] not in _KINDS:
            result.add_error(f"{prefix}: 'kind' must be one of {_KINDS}")

        if data["severity"] not in _SEVERITIES:
            result.add_error(f"{prefix}: 'severity' must be one of {_SEVERITIES}")

        jurisdiction = data.get("jurisdiction")
        if jurisdiction is not None and EUCountry.parse(jurisdiction) is None:
            result.add_error(
                f"{prefix}: 'jurisdiction' must be an EU country code, got {jurisdiction!r}"
            )

        self._check_regex(result, prefix, "pattern", data["pattern"], required=True)
        for optional_field in ["unless", "anchor"]:
            if data.get(optional_field) is not None:
                self._check_regex(result, prefix, optional_field, data[optional_field])

        requires = data.get("requires", [])
        if not isinstance(requires, list):
            result.add_error(f"{prefix}: 'requires' must be a list")
        else:
            for pos, pattern in enumerate(requires):
                self._check_regex(result, prefix, f"requires[{pos}]", pattern, required=True)

        if data["kind"] == CustomRuleKind.ABSENCE.value and data.get("unless"):
            result.add_warning(f"{prefix}: 'unless' is ignored for absence rules")
        if data["kind"] == CustomRuleKind.FIRST_MATCH.value and data.get("anchor"):
            result.add_warning(f"{prefix}: 'anchor' is ignored for first_match rules")

        if not result.is_valid:
            return result, None

        rule = CustomRuleConfig(
            id=data["id"].strip(),
            name=data["name"].strip(),
            kind=CustomRuleKind(data["kind"]),
            pattern=data["pattern"],
            severity=data["severity"],
            message=data["message"],
            category=data.get("category", "Custom"),
            regulation=data.get("regulation", ""),
            suggestion=data.get("suggestion", ""),
            jurisdiction=EUCountry.parse(jurisdiction).value if jurisdiction else None,
            requires=list(requires),
            unless=data.get("unless"),
            anchor=data.get("anchor"),
            fallback_label=data.get("fallback_label", ""),
            enabled=data.get("enabled", True),
            description=data.get("description"),
            metadata=data.get("metadata", {})
        )

        return result, rule

    def get_custom_rule(self, rule_id: str) -> Optional[CustomRuleConfig]:
        """Get a custom rule by ID."""
        for rule in self._configuration.custom_rules:
            if rule.id == rule_id:
                return rule
        return None

    def build_rules(self) -> List[ComplianceRule]:
        """Compile the enabled custom rules into engine rules."""
        rules: List[ComplianceRule] = []
        for config in self._configuration.get_enabled_rules():
            common = dict(
                id=config.id,
                name=config.name,
                category=config.category,
                regulation=config.regulation,
                severity=IssueSeverity(config.severity),
                issue_category=config.category,
                message=config.message,
                suggestion=config.suggestion,
                requires=config.requires,
                country=EUCountry.parse(config.jurisdiction),
            )
            if config.kind == CustomRuleKind.ABSENCE:
                rules.append(absence_rule(
                    present=config.pattern,
                    anchor=config.anchor,
                    fallback_label=config.fallback_label,
                    **common
                ))
            else:
                rules.append(first_match_rule(
                    pattern=config.pattern,
                    unless=config.unless,
                    **common
                ))
        return rules

    # =========================================================================
    # Disparity Pattern Methods
    # =========================================================================

    def load_disparity_patterns(self, source: ConfigSource) -> ValidationResult:
        """
        Load and validate extra party-favoring patterns for the fairness scan.

        Args:
            source: File path, dictionary with a "patterns" list, or list.

        Returns:
            ValidationResult indicating success or failure with details.

        Raises:
            ConfigurationError: If validation fails.
        """
        patterns_data = self._unwrap(self._parse_source(source), "patterns")

        result = ValidationResult(is_valid=True)
        patterns: List[DisparityPatternConfig] = []

        for i, pattern_dict in enumerate(patterns_data):
            pattern_result, pattern = self._validate_disparity_pattern(pattern_dict, index=i)
            result = result.merge(pattern_result)
            if pattern:
                patterns.append(pattern)

        ids = [p.id for p in patterns]
        duplicates = {pattern_id for pattern_id in ids if ids.count(pattern_id) > 1}
        if duplicates:
            result.add_error(f"Duplicate disparity pattern IDs found: {duplicates}")

        if not result.is_valid:
            raise ConfigurationError(
                "Disparity pattern validation failed",
                validation_result=result
            )

        self._configuration.disparity_patterns = patterns
        self._is_loaded = True
        logger.info(f"Loaded {len(patterns)} disparity patterns")
        return result

    def _validate_disparity_pattern(
        self,
        data: Dict[str, Any],
        index: int = 0
    ) -> Tuple[ValidationResult, Optional[DisparityPatternConfig]]:
        """Validate a single disparity pattern dictionary."""
        result = ValidationResult(is_valid=True)
        prefix = f"Disparity pattern [{index}]"

        if not isinstance(data, dict):
            result.add_error(f"{prefix}: must be an object")
            return result, None

        required_fields = ["id", "pattern", "category", "severity", "message", "favored_party"]
        for field_name in required_fields:
            if field_name not in data:
                result.add_error(f"{prefix}: Missing required field '{field_name}'")

        if not result.is_valid:
            return result, None

        for text_field in ["id", "category", "message"]:
            value = data[text_field]
            if not isinstance(value, str) or not value.strip():
                result.add_error(f"{prefix}: '{text_field}' must be a non-empty string")

        if data["severity"] not in _SEVERITIES:
            result.add_error(f"{prefix}: 'severity' must be one of {_SEVERITIES}")

        if data["favored_party"] not in _PARTIES:
            result.add_error(f"{prefix}: 'favored_party' must be one of {_PARTIES}")

        self._check_regex(result, prefix, "pattern", data["pattern"], required=True)

        if not result.is_valid:
            return result, None

        pattern = DisparityPatternConfig(
            id=data["id"].strip(),
            pattern=data["pattern"],
            category=data["category"].strip(),
            severity=data["severity"],
            message=data["message"],
            favored_party=data["favored_party"],
            suggestion=data.get("suggestion"),
            enabled=data.get("enabled", True),
            metadata=data.get("metadata", {})
        )

        return result, pattern

    def build_disparity_patterns(self) -> List[ScanPattern]:
        """Compile the enabled disparity patterns into scan patterns."""
        return [
            scan_pattern(
                config.pattern,
                category=config.category,
                severity=IssueSeverity(config.severity),
                message=config.message,
                suggestion=config.suggestion,
                favored_party=FavoredParty(config.favored_party),
            )
            for config in self._configuration.get_enabled_patterns()
        ]

    # =========================================================================
    # Scoring Methods
    # =========================================================================

    def load_scoring(self, source: Union[str, Path, Dict[str, Any]]) -> ValidationResult:
        """
        Load and validate severity penalties and scanner caps.

        Missing keys keep their defaults; every value must be a
        non-negative integer.

        Raises:
            ConfigurationError: If validation fails.
        """
        data = self._parse_source(source)
        result = ValidationResult(is_valid=True)

        if not isinstance(data, dict):
            result.add_error("Scoring configuration must be an object")
            raise ConfigurationError("Scoring validation failed", validation_result=result)

        defaults = ScoringConfig().to_dict()
        values: Dict[str, int] = {}
        for key, value in data.items():
            if key not in defaults:
                result.add_warning(f"Scoring: unknown key '{key}' ignored")
                continue
            if isinstance(value, bool) or not isinstance(value, int):
                result.add_error(f"Scoring: '{key}' must be an integer")
            elif value < 0:
                result.add_error(f"Scoring: '{key}' must be non-negative")
            else:
                values[key] = value

        if not result.is_valid:
            raise ConfigurationError("Scoring validation failed", validation_result=result)

        self._configuration.scoring = ScoringConfig(**{**defaults, **values})
        self._is_loaded = True
        return result

    def scoring_policy(self) -> Optional[ScoringPolicy]:
        """Penalties from scoring.json, or None when none were loaded."""
        scoring = self._configuration.scoring
        if scoring is None:
            return None
        return ScoringPolicy(
            error_penalty=scoring.error_penalty,
            warning_penalty=scoring.warning_penalty,
            info_penalty=scoring.info_penalty,
        )

    def scan_settings(self) -> Optional[ScanSettings]:
        scoring = self._configuration.scoring
        if scoring is None:
            return None
        return ScanSettings(
            critical_cap=scoring.critical_cap,
            warning_cap=scoring.warning_cap,
            info_cap=scoring.info_cap,
            disparity_cap=scoring.disparity_cap,
        )

    # =========================================================================
    # Validation Methods
    # =========================================================================

    def validate_configuration(
        self,
        config: Optional[SystemConfiguration] = None
    ) -> ValidationResult:
        """
        Validate a configuration for internal consistency.

        Args:
            config: Configuration to validate. Uses the current one if None.

        Returns:
            ValidationResult; overlaps are reported as warnings.
        """
        config = config or self._configuration
        result = ValidationResult(is_valid=True)

        result = result.merge(self._validate_rules_consistency(config))
        result = result.merge(self._validate_patterns_consistency(config))

        return result

    def _validate_rules_consistency(
        self,
        config: SystemConfiguration
    ) -> ValidationResult:
        """Validate custom rules for internal consistency."""
        result = ValidationResult(is_valid=True)

        # Same pattern and jurisdiction -> the document gets two issues for one hit
        pattern_map: Dict[Tuple[str, Optional[str]], List[str]] = {}
        for rule in config.custom_rules:
            key = (rule.pattern, rule.jurisdiction)
            pattern_map.setdefault(key, []).append(rule.id)

        for (pattern, jurisdiction), rule_ids in pattern_map.items():
            if len(rule_ids) > 1:
                scope = jurisdiction or "EU-wide"
                result.add_warning(
                    f"Multiple custom rules share pattern '{pattern}' ({scope}): {rule_ids}"
                )

        return result

    def _validate_patterns_consistency(
        self,
        config: SystemConfiguration
    ) -> ValidationResult:
        """Validate disparity patterns for internal consistency."""
        result = ValidationResult(is_valid=True)

        pattern_map: Dict[str, List[str]] = {}
        for pattern in config.disparity_patterns:
            pattern_map.setdefault(pattern.pattern, []).append(pattern.id)

        for pattern, pattern_ids in pattern_map.items():
            if len(pattern_ids) > 1:
                result.add_warning(
                    f"Multiple disparity patterns share pattern '{pattern}': {pattern_ids}. "
                    f"Only the first hit per position is reported."
                )

        return result

    # =========================================================================
    # Utility Methods
    # =========================================================================

    def _check_regex(
        self,
        result: ValidationResult,
        prefix: str,
        field_name: str,
        pattern: Any,
        required: bool = False
    ) -> None:
        if not isinstance(pattern, str):
            result.add_error(f"{prefix}: '{field_name}' must be a string")
            return
        if not pattern:
            if required:
                result.add_error(f"{prefix}: '{field_name}' must not be empty")
            return
        try:
            re.compile(pattern)
        except re.error as e:
            result.add_error(f"{prefix}: '{field_name}' is not a valid regex: {e}")

    def _unwrap(self, raw_data: Any, key: str) -> List[Dict[str, Any]]:
        # Both {"<key>": [...]} and bare lists/objects are accepted
        if isinstance(raw_data, dict):
            return raw_data[key] if key in raw_data else [raw_data]
        return raw_data

    def _parse_source(self, source: ConfigSource) -> Union[Dict[str, Any], List[Dict[str, Any]]]:
        """Parse configuration source to raw data."""
        if isinstance(source, (str, Path)):
            path = Path(source)
            if not path.exists():
                raise ConfigurationError(f"Configuration file not found: {path}")

            try:
                with open(path, "r", encoding="utf-8") as f:
                    return json.load(f)
            except json.JSONDecodeError as e:
                raise ConfigurationError(f"Invalid JSON in {path}: {e}")

        return source

    def load_from_directory(self, config_dir: Union[str, Path]) -> ValidationResult:
        """
        Load all configuration files from a directory.

        Expects files named:
        - rules.json
        - patterns.json
        - scoring.json

        Args:
            config_dir: Directory containing configuration files.

        Returns:
            Combined ValidationResult for all loaded configurations.
        """
        config_dir = Path(config_dir)
        result = ValidationResult(is_valid=True)

        loaders = [
            (ConfigurationType.RULES, self.load_custom_rules),
            (ConfigurationType.PATTERNS, self.load_disparity_patterns),
            (ConfigurationType.SCORING, self.load_scoring),
        ]
        for config_type, loader in loaders:
            path = config_dir / CONFIG_FILES[config_type]
            if not path.exists():
                continue
            try:
                result = result.merge(loader(path))
            except ConfigurationError as e:
                logger.warning(f"{config_type.value} configuration rejected: {e.message}")
                result.add_error(f"{config_type.value.capitalize()} loading failed: {e.message}")
                if e.validation_result:
                    result = result.merge(e.validation_result)

        self._config_dir = config_dir
        return result

    def save_to_directory(
        self,
        config_dir: Optional[Union[str, Path]] = None
    ) -> None:
        """
        Save current configuration to a directory.

        Args:
            config_dir: Directory to save to. Uses current config_dir if None.
        """
        config_dir = Path(config_dir) if config_dir else self._config_dir
        if not config_dir:
            raise ConfigurationError("No configuration directory specified")

        config_dir.mkdir(parents=True, exist_ok=True)

        if self._configuration.custom_rules:
            rules_data = {"rules": [r.to_dict() for r in self._configuration.custom_rules]}
            with open(config_dir / CONFIG_FILES[ConfigurationType.RULES], "w", encoding="utf-8") as f:
                json.dump(rules_data, f, indent=2, ensure_ascii=False)

        if self._configuration.disparity_patterns:
            patterns_data = {"patterns": [p.to_dict() for p in self._configuration.disparity_patterns]}
            with open(config_dir / CONFIG_FILES[ConfigurationType.PATTERNS], "w", encoding="utf-8") as f:
                json.dump(patterns_data, f, indent=2, ensure_ascii=False)

        if self._configuration.scoring is not None:
            with open(config_dir / CONFIG_FILES[ConfigurationType.SCORING], "w", encoding="utf-8") as f:
                json.dump(self._configuration.scoring.to_dict(), f, indent=2)

    def reset(self) -> None:
        """Reset configuration to empty state."""
        self._configuration = SystemConfiguration()
        self._is_loaded = False

    def to_dict(self) -> Dict[str, Any]:
        """Export current configuration as a dictionary."""
        return {
            "version": self._configuration.version,
            "custom_rules": [r.to_dict() for r in self._configuration.custom_rules],
            "disparity_patterns": [p.to_dict() for p in self._configuration.disparity_patterns],
            "scoring": self._configuration.scoring.to_dict() if self._configuration.scoring else None,
            "metadata": self._configuration.metadata,
        }
