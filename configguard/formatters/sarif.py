"""
SARIF output formatter for CI and code scanning integration.

SARIF (Static Analysis Results Interchange Format) is understood by
GitHub Code Scanning, Azure DevOps and most IDE viewers.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional
import json

from configguard import __version__
from configguard.core.aggregation import group_violations
from configguard.core.findings import ScanResult, Severity, Violation
from configguard.core.rules import Rule


SARIF_LEVEL = {
    Severity.CRITICAL: "error",
    Severity.HIGH: "error",
    Severity.MEDIUM: "warning",
    Severity.LOW: "note",
    Severity.INFO: "none",
}


class SARIFFormatter:
    """
    Formats scan results in SARIF 2.1.0.

    Rule descriptors use the metadata of ``rules`` when given; rules not
    found there (or when no rules are given) are described from their
    first violation.
    """

    SARIF_VERSION = "2.1.0"
    SCHEMA_URI = "https://raw.githubusercontent.com/oasis-tcs/sarif-spec/master/Schemata/sarif-schema-2.1.0.json"

    def __init__(self, rules: Optional[Iterable[Rule]] = None):
        self.rules = {rule.rule_id: rule for rule in (rules or [])}

    def format_result(self, result: ScanResult) -> str:
        sarif = {
            "$schema": self.SCHEMA_URI,
            "version": self.SARIF_VERSION,
            "runs": [self._create_run(result)],
        }
        return json.dumps(sarif, indent=2)

    def _create_run(self, result: ScanResult) -> Dict[str, Any]:
        grouped = group_violations(result.violations)
        first_by_rule = {}
        for violation in result.violations:
            first_by_rule.setdefault(violation.rule_id, violation)

        return {
            "tool": {
                "driver": {
                    "name": "configguard",
                    "version": __version__,
                    "rules": [self._create_rule(g.rule_id, first_by_rule[g.rule_id]) for g in grouped],
                }
            },
            "results": [self._create_result(v) for v in result.violations],
            "invocations": [self._create_invocation(result)],
            "properties": {
                "environment": result.environment,
                "profile": result.profile.value,
            },
        }

    def _create_rule(self, rule_id: str, sample: Violation) -> Dict[str, Any]:
        rule = self.rules.get(rule_id)
        if rule is not None:
            meta = rule.metadata
            return {
                "id": rule_id,
                "name": meta.name,
                "shortDescription": {"text": meta.name},
                "fullDescription": {"text": meta.description},
                "defaultConfiguration": {"level": SARIF_LEVEL[meta.severity]},
                "properties": {"tags": list(meta.tags)},
            }
        return {
            "id": rule_id,
            "shortDescription": {"text": rule_id},
            "fullDescription": {"text": sample.message},
            "defaultConfiguration": {"level": SARIF_LEVEL[sample.severity]},
            "help": {"text": sample.suggestion},
        }

    def _create_result(self, violation: Violation) -> Dict[str, Any]:
        location: Dict[str, Any] = {
            "artifactLocation": {"uri": violation.file_path},
        }
        if violation.line_number is not None:
            location["region"] = {"startLine": violation.line_number}

        return {
            "ruleId": violation.rule_id,
            "level": SARIF_LEVEL[violation.severity],
            "message": {"text": violation.message},
            "locations": [{"physicalLocation": location}],
            "properties": {
                "severity": violation.severity.label,
                "configKey": violation.config_key,
                "configValue": violation.config_value,
                "suggestion": violation.suggestion,
            },
        }

    def _create_invocation(self, result: ScanResult) -> Dict[str, Any]:
        notifications: List[Dict[str, Any]] = [
            {"message": {"text": error}, "level": "warning"}
            for error in result.errors
        ]
        return {
            "executionSuccessful": True,
            "endTimeUtc": datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
            "toolExecutionNotifications": notifications,
        }
