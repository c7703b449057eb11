"""
Dotenv parser.

Keys are folded from UPPER_SNAKE_CASE to lowercase dot notation, so
``NODE_ENV`` is reported as ``node.env`` and matches the same rules as a
nested ``node: {env: ...}`` entry in YAML or JSON.
"""

import re
from typing import List

from configguard.core.entries import ConfigEntry, ConfigFileFormat, ParsedConfigFile
from configguard.parsers import register_parser
from configguard.parsers.base import BaseParser


LINE_BREAK = re.compile(r"\r\n|\r|\n")


def normalize_env_key(key: str) -> str:
    return key.lower().replace("_", ".")


def strip_quotes(value: str) -> str:
    """Remove one pair of matching surrounding quotes."""
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
        return value[1:-1]
    return value


@register_parser(ConfigFileFormat.ENV)
class EnvParser(BaseParser):
    """Parser for .env files."""

    @property
    def format(self) -> ConfigFileFormat:
        return ConfigFileFormat.ENV

    def parse(self, content: str, file_path: str) -> ParsedConfigFile:
        entries: List[ConfigEntry] = []

        for line_number, raw_line in enumerate(LINE_BREAK.split(content), start=1):
            line = raw_line.strip()
            if not line or line.startswith("#"):
                continue
            if line.startswith("export "):
                line = line[len("export "):].lstrip()

            key, sep, value = line.partition("=")
            key = key.strip()
            if not sep or not key:
                continue

            entries.append(ConfigEntry(
                key=normalize_env_key(key),
                value=strip_quotes(value.strip()),
                source_file=file_path,
                line_number=line_number,
            ))

        return self._result(file_path, entries)
