"""
Grouping and gating of violations.

Output ordering here is deterministic: identical violations always
produce identical grouped output, whatever order they arrived in.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Union

from configguard.core.findings import (
    SEVERITIES_DESCENDING, ScanResult, Severity, Violation, max_severity
)


@dataclass(frozen=True)
class ViolationOccurrence:
    """Where one violation of a grouped rule was found."""
    file_path: str
    config_key: str
    config_value: str
    message: str
    suggestion: str
    line_number: Optional[int] = None

    @classmethod
    def from_violation(cls, violation: Violation) -> "ViolationOccurrence":
        return cls(
            file_path=violation.file_path,
            config_key=violation.config_key,
            config_value=violation.config_value,
            message=violation.message,
            suggestion=violation.suggestion,
            line_number=violation.line_number,
        )

    def to_dict(self) -> Dict[str, object]:
        return {
            "file_path": self.file_path,
            "line_number": self.line_number,
            "config_key": self.config_key,
            "config_value": self.config_value,
            "message": self.message,
            "suggestion": self.suggestion,
        }


@dataclass(frozen=True)
class GroupedViolation:
    """All violations of one rule."""
    rule_id: str
    severity: Severity
    occurrences: List[ViolationOccurrence] = field(default_factory=list)

    @property
    def severity_level(self) -> int:
        return self.severity.level

    @property
    def count(self) -> int:
        return len(self.occurrences)

    def to_dict(self) -> Dict[str, object]:
        return {
            "rule_id": self.rule_id,
            "severity": self.severity.label,
            "severity_level": self.severity_level,
            "count": self.count,
            "occurrences": [o.to_dict() for o in self.occurrences],
        }


def _occurrence_sort_key(violation: Violation):
    # Missing line numbers sort after every real line in the same file
    line = violation.line_number
    return (violation.file_path, line is None, line if line is not None else 0)


def group_violations(violations: Iterable[Violation]) -> List[GroupedViolation]:
    """
    Group violations by rule id.

    Occurrences are ordered by file path, then line number with missing
    lines last. Groups are ordered by severity (highest first), then rule
    id. A group's severity is the highest among its violations.
    """
    by_rule: Dict[str, List[Violation]] = {}
    for violation in violations:
        by_rule.setdefault(violation.rule_id, []).append(violation)

    groups = []
    for rule_id, members in by_rule.items():
        # Full tie-break on message and value keeps output stable for equal locations
        members.sort(key=lambda v: (_occurrence_sort_key(v), v.config_key, v.message, v.config_value))
        groups.append(GroupedViolation(
            rule_id=rule_id,
            severity=max_severity(v.severity for v in members),
            occurrences=[ViolationOccurrence.from_violation(v) for v in members],
        ))

    groups.sort(key=lambda g: (-g.severity_level, g.rule_id))
    return groups


def _violations_of(source: Union[ScanResult, Iterable[Violation]]) -> List[Violation]:
    if isinstance(source, ScanResult):
        return source.violations
    return list(source)


def has_violations_above_threshold(
    source: Union[ScanResult, Iterable[Violation]],
    threshold: Severity,
) -> bool:
    """True iff any violation's severity is at or above ``threshold``."""
    return any(v.severity >= threshold for v in _violations_of(source))


def count_by_severity(violations: Iterable[Violation]) -> Dict[Severity, int]:
    """Per-severity counts, with every severity present."""
    counts = {severity: 0 for severity in SEVERITIES_DESCENDING}
    for violation in violations:
        counts[violation.severity] += 1
    return counts


def get_top_blockers(
    grouped: List[GroupedViolation],
    threshold: Severity,
    limit: int = 5,
) -> List[GroupedViolation]:
    """The first ``limit`` groups at or above ``threshold``, in grouped order."""
    return [g for g in grouped if g.severity >= threshold][:limit]
