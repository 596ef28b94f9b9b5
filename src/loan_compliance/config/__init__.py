"""Configuration management for the Loan Document Compliance System."""

from .config_manager import ConfigurationManager
from .models import (
    ConfigurationType,
    CustomRuleConfig,
    CustomRuleKind,
    DisparityPatternConfig,
    ScoringConfig,
    SystemConfiguration,
    ConfigurationError,
    ValidationResult,
)

__all__ = [
    "ConfigurationManager",
    "ConfigurationType",
    "CustomRuleConfig",
    "CustomRuleKind",
    "DisparityPatternConfig",
    "ScoringConfig",
    "SystemConfiguration",
    "ConfigurationError",
    "ValidationResult",
]
