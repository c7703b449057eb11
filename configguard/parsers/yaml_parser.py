"""
YAML parser.

Nested mappings are joined with dots and sequence items get ``[i]``
segments, e.g. ``spring.datasource.url`` or ``servers[0].host``. Null
values produce no entry.
"""

from typing import Any, List, Set

import yaml

from configguard.core.entries import ConfigEntry, ConfigFileFormat, ParsedConfigFile
from configguard.parsers import register_parser
from configguard.parsers.base import BaseParser, stringify_scalar


class RecursiveAliasError(ValueError):
    """A YAML alias refers to one of its own ancestors."""


@register_parser(ConfigFileFormat.YAML)
class YAMLParser(BaseParser):
    """Parser for Spring-style application.yml files."""

    @property
    def format(self) -> ConfigFileFormat:
        return ConfigFileFormat.YAML

    def parse(self, content: str, file_path: str) -> ParsedConfigFile:
        entries: List[ConfigEntry] = []
        try:
            document = yaml.safe_load(content)
            if isinstance(document, dict):
                self._flatten(document, "", file_path, entries, set())
        except (yaml.YAMLError, RecursiveAliasError, RecursionError) as e:
            return self._failure(file_path, e)
        return self._result(file_path, entries)

    def _flatten(self, node: Any, prefix: str, file_path: str,
                 entries: List[ConfigEntry], active: Set[int]):
        if node is None:
            return
        if isinstance(node, (dict, list)):
            # Aliases may share a container; only a cycle back to an ancestor is an error
            if id(node) in active:
                raise RecursiveAliasError(f"recursive alias at {prefix or '<root>'}")
            active.add(id(node))
            if isinstance(node, dict):
                for key, value in node.items():
                    key = stringify_scalar(key)
                    self._flatten(value, f"{prefix}.{key}" if prefix else key,
                                  file_path, entries, active)
            else:
                for index, item in enumerate(node):
                    self._flatten(item, f"{prefix}[{index}]", file_path, entries, active)
            active.discard(id(node))
        else:
            entries.append(ConfigEntry(
                key=prefix,
                value=stringify_scalar(node),
                source_file=file_path,
            ))
