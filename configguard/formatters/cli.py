"""
Console output formatter for human-readable results.
"""

from typing import List
import sys

from configguard.core.aggregation import (
    GroupedViolation, get_top_blockers, group_violations, has_violations_above_threshold
)
from configguard.core.findings import SEVERITIES_DESCENDING, ScanResult, Severity


# ANSI color codes
class Colors:
    RESET = "\033[0m"
    BOLD = "\033[1m"
    DIM = "\033[2m"

    RED = "\033[91m"
    GREEN = "\033[92m"
    YELLOW = "\033[93m"
    BLUE = "\033[94m"
    CYAN = "\033[96m"
    WHITE = "\033[97m"

    BG_RED = "\033[41m"


def supports_color() -> bool:
    """Check if the terminal supports color output."""
    if not hasattr(sys.stdout, "isatty"):
        return False
    return sys.stdout.isatty()


class CLIFormatter:
    """
    Formats scan results for the terminal.

    Violations are shown grouped by rule, most severe first, followed by
    the top blockers and a pass/fail verdict against ``fail_on``.
    """

    def __init__(self, use_color: bool = True, verbose: bool = False,
                 fail_on: Severity = Severity.HIGH):
        self.use_color = use_color and supports_color()
        self.verbose = verbose
        self.fail_on = fail_on

    def _color(self, text: str, color: str) -> str:
        """Apply color to text if colors are enabled."""
        if self.use_color:
            return f"{color}{text}{Colors.RESET}"
        return text

    def _severity_color(self, severity: Severity) -> str:
        colors = {
            Severity.CRITICAL: Colors.BG_RED + Colors.WHITE,
            Severity.HIGH: Colors.RED,
            Severity.MEDIUM: Colors.YELLOW,
            Severity.LOW: Colors.BLUE,
            Severity.INFO: Colors.DIM,
        }
        return colors.get(severity, "")

    def _severity_label(self, severity: Severity, width: int = 0) -> str:
        label = f"[{severity.label}]"
        # Pad outside the colour codes so columns line up in a terminal
        padding = " " * max(width - len(label), 0)
        return self._color(label, self._severity_color(severity)) + padding

    def format_result(self, result: ScanResult) -> str:
        """Format a complete scan result."""
        lines = []
        stats = result.statistics

        lines.append("")
        lines.append(self._color("=" * 70, Colors.DIM))
        lines.append(self._color(" CONFIGURATION SCAN RESULTS ", Colors.BOLD))
        lines.append(self._color("=" * 70, Colors.DIM))
        lines.append("")

        lines.append(self._color("Summary", Colors.BOLD))
        lines.append(self._color("-" * 40, Colors.DIM))
        lines.append(f"  Target:            {result.target_directory}")
        lines.append(f"  Environment:       {result.environment}")
        lines.append(f"  Profile:           {result.profile.value}")
        lines.append(f"  Files scanned:     {stats.files_scanned}")
        lines.append(f"  Entries evaluated: {stats.entries_evaluated}")
        lines.append(f"  Rules executed:    {stats.rules_executed}")
        lines.append(f"  Duration:          {stats.duration_ms}ms")
        lines.append("")

        lines.append(self._color("Violations", Colors.BOLD))
        lines.append(self._color("-" * 40, Colors.DIM))
        if not result.violations:
            lines.append(self._color("  No issues found!", Colors.GREEN))
        else:
            counts = result.violations_by_severity
            for severity in SEVERITIES_DESCENDING:
                lines.append(f"  {self._severity_label(severity, width=12)} {counts[severity]}")
        lines.append("")

        grouped = group_violations(result.violations)
        if grouped:
            lines.append(self._color("=" * 70, Colors.DIM))
            lines.append(self._color(" DETAILED FINDINGS ", Colors.BOLD))
            lines.append(self._color("=" * 70, Colors.DIM))
            lines.append("")
            for group in grouped:
                lines.extend(self._format_group(group))
                lines.append("")

            blockers = get_top_blockers(grouped, self.fail_on)
            if blockers:
                lines.append(self._color(f"Top blockers (>= {self.fail_on.label})", Colors.BOLD))
                for group in blockers:
                    lines.append(f"  {self._severity_label(group.severity)} "
                                 f"{group.rule_id} ({group.count})")
                lines.append("")

        if result.errors:
            lines.append(self._color("Warnings", Colors.YELLOW))
            for error in result.errors:
                lines.append(f"  - {error}")
            lines.append("")

        if has_violations_above_threshold(result, self.fail_on):
            lines.append(self._color(
                f"FAILED: violations at or above {self.fail_on.label}", Colors.RED))
        else:
            lines.append(self._color(
                f"PASSED: no violations at or above {self.fail_on.label}", Colors.GREEN))

        return "\n".join(lines)

    def _format_group(self, group: GroupedViolation) -> List[str]:
        lines = []
        title = self._color(group.rule_id, Colors.BOLD)
        lines.append(f"  {self._severity_label(group.severity)} {title} ({group.count})")

        for occurrence in group.occurrences:
            location = occurrence.file_path
            if occurrence.line_number is not None:
                location = f"{location}:{occurrence.line_number}"
            lines.append(f"    {self._color(location, Colors.CYAN)}")
            lines.append(f"      {occurrence.config_key} = {occurrence.config_value}")
            lines.append(f"      {occurrence.message}")
            if self.verbose:
                lines.append(self._color(f"      Fix: {occurrence.suggestion}", Colors.GREEN))

        if not self.verbose and group.occurrences:
            lines.append(self._color(f"    Fix: {group.occurrences[0].suggestion}", Colors.GREEN))

        lines.append(self._color("  " + "-" * 66, Colors.DIM))
        return lines
