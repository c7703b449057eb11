"""
JSON output formatter for machine-readable results.
"""

import json

from configguard.core.aggregation import group_violations, has_violations_above_threshold
from configguard.core.findings import ScanResult, Severity


class JSONFormatter:
    """
    Formats scan results as JSON for machine consumption.

    The document holds the scan summary, the grouped violations in their
    deterministic order, and the raw violation list.
    """

    def __init__(self, indent: int = 2, fail_on: Severity = Severity.HIGH):
        self.indent = indent
        self.fail_on = fail_on

    def format_result(self, result: ScanResult) -> str:
        data = result.to_dict()
        data["fail_on"] = self.fail_on.label
        data["passed"] = not has_violations_above_threshold(result, self.fail_on)
        data["grouped_violations"] = [g.to_dict() for g in group_violations(result.violations)]
        return json.dumps(data, indent=self.indent)
