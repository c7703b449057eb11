"""
Java properties parser.

Handles ``#``/``!`` comments, ``=``/``:`` separators, backslash line
continuation and the usual escape sequences. An entry built from continued
lines carries the line number of its first physical line.
"""

import re
from typing import Iterator, List, Optional, Tuple

from configguard.core.entries import ConfigEntry, ConfigFileFormat, ParsedConfigFile
from configguard.parsers import register_parser
from configguard.parsers.base import BaseParser


LINE_BREAK = re.compile(r"\r\n|\r|\n")

_SIMPLE_ESCAPES = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "f": "\f",
}

_HEX_DIGITS = set("0123456789abcdefABCDEF")


def _ends_with_continuation(line: str) -> bool:
    """True when the line ends in an odd number of backslashes."""
    trailing = len(line) - len(line.rstrip("\\"))
    return trailing % 2 == 1


def find_separator(line: str) -> Optional[int]:
    """Index of the first ``=`` or ``:`` not escaped by a backslash."""
    escaped = False
    for index, char in enumerate(line):
        if escaped:
            escaped = False
        elif char == "\\":
            escaped = True
        elif char in "=:":
            return index
    return None


def unescape(text: str) -> str:
    """
    Resolve properties escape sequences.

    ``\\n``, ``\\t``, ``\\r``, ``\\f`` and ``\\uXXXX`` are decoded; any other
    escaped character stands for itself. A malformed ``\\u`` escape is kept
    verbatim.
    """
    if "\\" not in text:
        return text

    out: List[str] = []
    i = 0
    length = len(text)
    while i < length:
        char = text[i]
        if char != "\\" or i + 1 >= length:
            out.append(char)
            i += 1
            continue

        nxt = text[i + 1]
        if nxt in _SIMPLE_ESCAPES:
            out.append(_SIMPLE_ESCAPES[nxt])
            i += 2
        elif nxt == "u":
            digits = text[i + 2:i + 6]
            if len(digits) == 4 and all(d in _HEX_DIGITS for d in digits):
                out.append(chr(int(digits, 16)))
                i += 6
            else:
                out.append(text[i:i + 2])
                i += 2
        else:
            out.append(nxt)
            i += 2
    return "".join(out)


def logical_lines(content: str) -> Iterator[Tuple[int, str]]:
    """
    Yield ``(line_number, text)`` for each logical line.

    Continued lines are joined with the leading whitespace of each
    continuation removed.
    """
    physical = LINE_BREAK.split(content)
    index = 0
    while index < len(physical):
        start = index + 1
        line = physical[index].lstrip()
        index += 1

        # Comments never continue
        if line.startswith(("#", "!")):
            yield start, line
            continue

        while _ends_with_continuation(line) and index < len(physical):
            line = line[:-1] + physical[index].lstrip()
            index += 1
        if _ends_with_continuation(line):
            line = line[:-1]

        yield start, line


@register_parser(ConfigFileFormat.PROPERTIES)
class PropertiesParser(BaseParser):
    """Parser for application.properties files."""

    @property
    def format(self) -> ConfigFileFormat:
        return ConfigFileFormat.PROPERTIES

    def parse(self, content: str, file_path: str) -> ParsedConfigFile:
        entries: List[ConfigEntry] = []

        for line_number, line in logical_lines(content):
            stripped = line.strip()
            if not stripped or stripped.startswith(("#", "!")):
                continue

            separator = find_separator(stripped)
            if separator is None:
                key, value = stripped, ""
            else:
                key, value = stripped[:separator], stripped[separator + 1:]

            key = unescape(key.strip())
            if not key:
                continue

            entries.append(ConfigEntry(
                key=key,
                value=unescape(value.strip()),
                source_file=file_path,
                line_number=line_number,
            ))

        return self._result(file_path, entries)
