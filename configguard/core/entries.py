"""
Canonical config entry model.

Every parser turns its format into a flat list of ConfigEntry facts keyed
by dot notation, so rules never see format-specific syntax.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional


class ConfigFileFormat(Enum):
    """Supported configuration file formats."""
    YAML = "yaml"
    PROPERTIES = "properties"
    ENV = "env"
    JSON = "json"


# Filename globs per format, matched case-insensitively against basenames
CONFIG_FILE_PATTERNS: Dict[ConfigFileFormat, List[str]] = {
    ConfigFileFormat.YAML: [
        "application.yml",
        "application.yaml",
        "application-*.yml",
        "application-*.yaml",
        "bootstrap.yml",
        "bootstrap.yaml",
    ],
    ConfigFileFormat.PROPERTIES: [
        "application.properties",
        "application-*.properties",
        "bootstrap.properties",
    ],
    ConfigFileFormat.ENV: [
        ".env",
        ".env.*",
    ],
    ConfigFileFormat.JSON: [
        "appsettings.json",
        "appsettings.*.json",
        "config.json",
        "package.json",
    ],
}


@dataclass(frozen=True)
class ConfigEntry:
    """One key/value fact extracted from a config file."""
    key: str
    value: str
    source_file: str
    line_number: Optional[int] = None

    def __str__(self) -> str:
        return f"{self.key}={self.value}"


@dataclass
class ParsedConfigFile:
    """Result of parsing one file. Warnings are non-fatal parse problems."""
    file_path: str
    format: ConfigFileFormat
    entries: List[ConfigEntry] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.warnings
