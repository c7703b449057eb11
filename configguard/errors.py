"""
Exception hierarchy for configguard.

Parse failures of individual files are never raised; they are reported as
warnings on the parsed file. Everything raised from the core derives from
ConfigGuardError so callers can decide how to map it to an exit code.
"""

from typing import Optional


class ConfigGuardError(Exception):
    """Base class for all configguard errors."""


class ConfigurationError(ConfigGuardError):
    """Invalid scanner configuration or rule authoring mistake."""


class DuplicateRuleError(ConfigurationError):
    """Raised when two applicable rules share an id in one registry."""

    def __init__(self, rule_id: str):
        self.rule_id = rule_id
        super().__init__(
            f'Rule with ID "{rule_id}" is already registered. Rule IDs must be unique.'
        )


class PolicyError(ConfigGuardError):
    """Raised when a policy document cannot be loaded or compiled."""

    def __init__(self, message: str, source: Optional[str] = None):
        self.source = source
        if source:
            message = f"{source}: {message}"
        super().__init__(message)
