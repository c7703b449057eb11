"""
Core data model, rule registry and evaluation for configguard.
"""

from configguard.core.entries import ConfigEntry, ConfigFileFormat, ParsedConfigFile
from configguard.core.findings import (
    ScanResult, ScanStatistics, Severity, Violation, parse_severity
)
from configguard.core.platforms import Platform, ScanProfile, parse_profile
from configguard.core.rules import Rule, RuleMetadata, RuleRegistry, create_rule_registry

__all__ = [
    "ConfigEntry",
    "ConfigFileFormat",
    "ParsedConfigFile",
    "ScanResult",
    "ScanStatistics",
    "Severity",
    "Violation",
    "parse_severity",
    "Platform",
    "ScanProfile",
    "parse_profile",
    "Rule",
    "RuleMetadata",
    "RuleRegistry",
    "create_rule_registry",
]
