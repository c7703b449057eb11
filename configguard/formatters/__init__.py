"""
Output formatters for scan results.

Provides multiple output formats including:
- Human-readable console output
- JSON for machine processing
- SARIF for code scanning integration
"""

from configguard.formatters.cli import CLIFormatter
from configguard.formatters.json_formatter import JSONFormatter
from configguard.formatters.sarif import SARIFFormatter

__all__ = [
    "CLIFormatter",
    "JSONFormatter",
    "SARIFFormatter",
    "get_formatter",
]


def get_formatter(format_name: str, **options):
    """
    Get a formatter by name.

    ``options`` are passed to the formatter constructor.
    """
    formatters = {
        "console": CLIFormatter,
        "text": CLIFormatter,
        "json": JSONFormatter,
        "sarif": SARIFFormatter,
    }

    formatter_class = formatters.get(format_name.lower())
    if formatter_class:
        return formatter_class(**options)

    raise ValueError(f"Unknown format: {format_name}")
