"""
configguard: production configuration security scanner.

Scans Spring Boot, Node.js and ASP.NET Core configuration files (YAML,
properties, .env and JSON) for settings that are unsafe in production,
plus organization-specific policies written in YAML.
"""

__version__ = "1.0.0"
__author__ = "configguard Team"

from configguard.core.engine import ScanEngine, execute_rules
from configguard.core.findings import ScanResult, Severity, Violation
from configguard.core.platforms import ScanProfile
from configguard.config import ScanOptions

__all__ = [
    "ScanEngine",
    "execute_rules",
    "ScanResult",
    "Severity",
    "Violation",
    "ScanProfile",
    "ScanOptions",
]
