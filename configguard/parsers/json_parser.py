"""
JSON parser.

Objects are joined with dots and array items get ``.i`` segments. Unlike
YAML, an explicit ``null`` is kept as an entry with an empty value: in full
application configs such as appsettings.json a null is meaningful.
"""

import json
from typing import Any, List

from configguard.core.entries import ConfigEntry, ConfigFileFormat, ParsedConfigFile
from configguard.parsers import register_parser
from configguard.parsers.base import BaseParser, stringify_scalar


@register_parser(ConfigFileFormat.JSON)
class JSONParser(BaseParser):
    """Parser for appsettings.json, config.json and package.json."""

    @property
    def format(self) -> ConfigFileFormat:
        return ConfigFileFormat.JSON

    def parse(self, content: str, file_path: str) -> ParsedConfigFile:
        entries: List[ConfigEntry] = []
        try:
            document = json.loads(content)
            if isinstance(document, (dict, list)):
                self._flatten(document, "", file_path, entries)
        except (ValueError, RecursionError) as e:
            # Deeply nested arrays exhaust the decoder stack
            return self._failure(file_path, e)
        return self._result(file_path, entries)

    def _flatten(self, node: Any, prefix: str, file_path: str, entries: List[ConfigEntry]):
        if isinstance(node, dict):
            children = node.items()
        elif isinstance(node, list):
            children = enumerate(node)
        else:
            entries.append(ConfigEntry(
                key=prefix,
                value="" if node is None else stringify_scalar(node),
                source_file=file_path,
            ))
            return

        for key, value in children:
            key = str(key)
            self._flatten(value, f"{prefix}.{key}" if prefix else key, file_path, entries)
