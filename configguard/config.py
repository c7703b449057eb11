"""
Configuration for configguard scans.

Options come from dataclass defaults, then an optional YAML or JSON
config file, then command-line flags.

Example ``.configguard.yaml``::

    scan:
      environment: prod
      profile: all
      fail_on: HIGH
      max_workers: 8
      exclude_dirs:
        - node_modules
        - .git
    output:
      format: sarif
"""

from dataclasses import dataclass, field, fields
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional
import json

import yaml

from configguard.core.findings import Severity, parse_severity
from configguard.core.platforms import DEFAULT_PROFILE, ScanProfile, parse_profile
from configguard.discovery import DEFAULT_EXCLUDE_DIRS, DEFAULT_MAX_DEPTH
from configguard.errors import ConfigurationError


# Default configuration file names to search for
CONFIG_FILE_NAMES = [
    ".configguard.yaml",
    ".configguard.yml",
    ".configguard.json",
]


class OutputFormat(Enum):
    CONSOLE = "console"
    JSON = "json"
    SARIF = "sarif"


def parse_output_format(text: str) -> OutputFormat:
    try:
        return OutputFormat(str(text).strip().lower())
    except ValueError:
        valid = ", ".join(f.value for f in OutputFormat)
        raise ValueError(f'Invalid output format: "{text}". Valid values are: {valid}') from None


@dataclass
class ScanOptions:
    """
    Everything a scan needs to know.

    ``target_directory`` and ``environment`` are informational for the
    core; ``profile`` drives rule selection and ``fail_on_severity`` is
    only used for exit-code gating.
    """
    target_directory: str = "."
    environment: str = "prod"
    profile: ScanProfile = DEFAULT_PROFILE
    fail_on_severity: Severity = Severity.HIGH
    output_format: OutputFormat = OutputFormat.CONSOLE
    output_file: Optional[str] = None
    verbose: bool = False
    use_color: bool = True
    max_workers: int = 4
    policy_file: Optional[str] = None
    exclude_dirs: List[str] = field(default_factory=lambda: list(DEFAULT_EXCLUDE_DIRS))
    max_depth: int = DEFAULT_MAX_DEPTH

    def __post_init__(self):
        if isinstance(self.profile, str):
            self.profile = parse_profile(self.profile)
        if isinstance(self.fail_on_severity, str):
            self.fail_on_severity = parse_severity(self.fail_on_severity)
        if isinstance(self.output_format, str):
            self.output_format = parse_output_format(self.output_format)
        if self.max_workers < 1:
            raise ValueError(f"max_workers must be at least 1, got {self.max_workers}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "target_directory": self.target_directory,
            "environment": self.environment,
            "profile": self.profile.value,
            "fail_on_severity": self.fail_on_severity.label,
            "output_format": self.output_format.value,
            "output_file": self.output_file,
            "verbose": self.verbose,
            "use_color": self.use_color,
            "max_workers": self.max_workers,
            "policy_file": self.policy_file,
            "exclude_dirs": list(self.exclude_dirs),
            "max_depth": self.max_depth,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ScanOptions":
        """Create options from a (possibly nested) config mapping."""
        data = dict(data)

        # Flatten the 'scan' and 'output' sections
        for section in ("scan", "output"):
            nested = data.pop(section, None)
            if isinstance(nested, dict):
                for key, value in nested.items():
                    if section == "output":
                        key = _OUTPUT_ALIASES.get(key, key)
                    data.setdefault(key, value)

        for alias, name in _ALIASES.items():
            if alias in data:
                data.setdefault(name, data.pop(alias))

        known_fields = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known_fields})


_ALIASES = {
    "target": "target_directory",
    "directory": "target_directory",
    "env": "environment",
    "fail_on": "fail_on_severity",
    "format": "output_format",
    "policy": "policy_file",
    "exclude": "exclude_dirs",
    "jobs": "max_workers",
}

_OUTPUT_ALIASES = {
    "file": "output_file",
    "color": "use_color",
}


def load_config(path: str) -> Dict[str, Any]:
    """
    Load configuration from a file.

    ``.json`` files are read as JSON; anything else as YAML.
    """
    path = Path(path)

    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    content = path.read_text(encoding="utf-8")
    try:
        if path.suffix == ".json":
            data = json.loads(content)
        else:
            data = yaml.safe_load(content)
    except (ValueError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Invalid configuration file {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Invalid configuration file {path}: must be a mapping")
    return data


def find_config(start_path: str = ".") -> Optional[str]:
    """
    Find a configuration file by searching up the directory tree.

    Returns the path to the first config file found, or None.
    """
    current = Path(start_path).resolve()
    if current.is_file():
        current = current.parent

    while True:
        for name in CONFIG_FILE_NAMES:
            config_path = current / name
            if config_path.is_file():
                return str(config_path)
        if current == current.parent:
            return None
        current = current.parent


def load_scan_options(path: Optional[str] = None, start_dir: str = ".") -> ScanOptions:
    """
    Load ScanOptions from a file, or return defaults.

    If path is None, searches for a config file starting from start_dir.
    """
    if path is None:
        path = find_config(start_dir)

    if path is None:
        return ScanOptions(target_directory=start_dir)

    data = load_config(path)
    data.setdefault("target_directory", start_dir)
    try:
        return ScanOptions.from_dict(data)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid configuration file {path}: {e}") from e
