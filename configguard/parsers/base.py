"""
Base parser class for configuration file formats.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime
from typing import Any, List
import logging
import math

from configguard.core.entries import ConfigEntry, ConfigFileFormat, ParsedConfigFile


logger = logging.getLogger(__name__)


def stringify_scalar(value: Any) -> str:
    """
    Render a scalar in its canonical string form.

    Booleans become ``true``/``false`` and dates use ISO format, so the same
    setting reads identically whichever format it came from.
    """
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, float):
        return _stringify_float(value)
    return str(value)


def _stringify_float(value: float) -> str:
    # Whole numbers print without a fraction: 1.0 is "1", 1e5 is "100000"
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    if value.is_integer() and abs(value) < 1e21:
        return str(int(value))
    return str(value)


class BaseParser(ABC):
    """
    Base class for format parsers.

    ``parse`` never raises for malformed input. When a file cannot be parsed
    it returns a ParsedConfigFile with no entries and a warning.
    """

    @property
    @abstractmethod
    def format(self) -> ConfigFileFormat:
        """Return the format handled by this parser."""
        pass

    @abstractmethod
    def parse(self, content: str, file_path: str) -> ParsedConfigFile:
        """
        Parse file content into config entries.

        Args:
            content: Raw file text.
            file_path: Path recorded on every entry.
        """
        pass

    def _result(self, file_path: str, entries: List[ConfigEntry]) -> ParsedConfigFile:
        return ParsedConfigFile(file_path=file_path, format=self.format, entries=entries)

    def _failure(self, file_path: str, error: Exception) -> ParsedConfigFile:
        message = f"Failed to parse {self.format.value.upper()} file {file_path}: {error}"
        logger.warning(message)
        return ParsedConfigFile(
            file_path=file_path,
            format=self.format,
            entries=[],
            warnings=[message],
        )
