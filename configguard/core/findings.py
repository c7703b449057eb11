"""
Finding data structures for configguard.

This module defines the severity scale, the immutable Violation reported by
rules, and the aggregate ScanResult handed to reporters.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, List, Dict, Any, Iterable
import json

from configguard.core.platforms import ScanProfile


class Severity(Enum):
    """Severity levels for violations, ordered by numeric rank."""
    INFO = 1
    LOW = 2
    MEDIUM = 3
    HIGH = 4
    CRITICAL = 5

    def __lt__(self, other):
        if not isinstance(other, Severity):
            return NotImplemented
        return self.value < other.value

    def __le__(self, other):
        if not isinstance(other, Severity):
            return NotImplemented
        return self.value <= other.value

    def __gt__(self, other):
        if not isinstance(other, Severity):
            return NotImplemented
        return self.value > other.value

    def __ge__(self, other):
        if not isinstance(other, Severity):
            return NotImplemented
        return self.value >= other.value

    @property
    def level(self) -> int:
        return self.value

    @property
    def label(self) -> str:
        return SEVERITY_LABELS[self]


SEVERITY_LABELS: Dict[Severity, str] = {
    Severity.INFO: "INFO",
    Severity.LOW: "LOW",
    Severity.MEDIUM: "MEDIUM",
    Severity.HIGH: "HIGH",
    Severity.CRITICAL: "CRITICAL",
}

LABEL_TO_SEVERITY: Dict[str, Severity] = {
    label: severity for severity, label in SEVERITY_LABELS.items()
}

# Highest first, used by reporters and summaries
SEVERITIES_DESCENDING: List[Severity] = sorted(SEVERITY_LABELS, reverse=True)


def parse_severity(text: str) -> Severity:
    """
    Parse a severity label such as "high" or " CRITICAL ".

    Raises:
        ValueError: if the label is empty or unknown.
    """
    normalized = str(text).strip().upper() if text is not None else ""
    severity = LABEL_TO_SEVERITY.get(normalized)
    if severity is None:
        valid = ", ".join(SEVERITY_LABELS[s] for s in sorted(SEVERITY_LABELS))
        raise ValueError(f'Invalid severity: "{text}". Valid values are: {valid}')
    return severity


def compare_severity(a: Severity, b: Severity) -> int:
    """Negative when a < b, zero when equal, positive when a > b."""
    return a.value - b.value


def max_severity(severities: Iterable[Severity]) -> Severity:
    """Return the highest severity, or INFO when there are none."""
    return max(severities, default=Severity.INFO)


@dataclass(frozen=True)
class Violation:
    """
    One reported instance of a rule matching a config entry.

    ``config_value`` may already be redacted by the rule that produced it.
    """
    rule_id: str
    severity: Severity
    message: str
    file_path: str
    config_key: str
    config_value: str
    suggestion: str
    line_number: Optional[int] = None

    def __str__(self) -> str:
        location = self.file_path
        if self.line_number is not None:
            location = f"{location}:{self.line_number}"
        return f"[{self.severity.label}] {self.rule_id} {location} {self.config_key}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rule_id": self.rule_id,
            "severity": self.severity.label,
            "message": self.message,
            "file_path": self.file_path,
            "config_key": self.config_key,
            "config_value": self.config_value,
            "line_number": self.line_number,
            "suggestion": self.suggestion,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2)


@dataclass(frozen=True)
class ScanStatistics:
    """Counters collected while scanning."""
    files_scanned: int = 0
    entries_evaluated: int = 0
    rules_executed: int = 0
    duration_ms: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {
            "files_scanned": self.files_scanned,
            "entries_evaluated": self.entries_evaluated,
            "rules_executed": self.rules_executed,
            "duration_ms": self.duration_ms,
        }


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


@dataclass
class ScanResult:
    """
    Complete results of one scan.

    Violations are kept in evaluation order; grouping and ordering for
    display is done by ``configguard.core.aggregation``.
    """
    target_directory: str
    environment: str
    profile: ScanProfile
    violations: List[Violation] = field(default_factory=list)
    statistics: ScanStatistics = field(default_factory=ScanStatistics)
    scanned_at: str = field(default_factory=_utc_now)
    errors: List[str] = field(default_factory=list)

    @property
    def total_violations(self) -> int:
        return len(self.violations)

    @property
    def violations_by_severity(self) -> Dict[Severity, int]:
        counts = {severity: 0 for severity in SEVERITIES_DESCENDING}
        for violation in self.violations:
            counts[violation.severity] += 1
        return counts

    @property
    def max_severity(self) -> Severity:
        return max_severity(v.severity for v in self.violations)

    @property
    def critical_count(self) -> int:
        return self.violations_by_severity[Severity.CRITICAL]

    @property
    def high_count(self) -> int:
        return self.violations_by_severity[Severity.HIGH]

    @property
    def medium_count(self) -> int:
        return self.violations_by_severity[Severity.MEDIUM]

    @property
    def low_count(self) -> int:
        return self.violations_by_severity[Severity.LOW]

    @property
    def info_count(self) -> int:
        return self.violations_by_severity[Severity.INFO]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "scanned_at": self.scanned_at,
            "target_directory": self.target_directory,
            "environment": self.environment,
            "profile": self.profile.value,
            "summary": {
                "total_violations": self.total_violations,
                "max_severity": self.max_severity.label,
                "by_severity": {
                    severity.label: count
                    for severity, count in self.violations_by_severity.items()
                },
            },
            "statistics": self.statistics.to_dict(),
            "violations": [v.to_dict() for v in self.violations],
            "errors": list(self.errors),
        }

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)


def create_scan_result(
    target_directory: str,
    environment: str,
    profile: ScanProfile,
    violations: List[Violation],
    statistics: ScanStatistics,
    errors: Optional[List[str]] = None,
) -> ScanResult:
    """Build a ScanResult, stamping the current UTC time."""
    return ScanResult(
        target_directory=target_directory,
        environment=environment,
        profile=profile,
        violations=list(violations),
        statistics=statistics,
        errors=list(errors or []),
    )
