"""
Configuration file parsers.

Each parser turns one file format into flat dot-notation ConfigEntry
facts. Parsers register themselves by format with ``register_parser``.
"""

from typing import Dict, List, Type

from configguard.core.entries import ConfigFileFormat, ParsedConfigFile
from configguard.parsers.base import BaseParser

# Registry of available parsers
_parsers: Dict[ConfigFileFormat, Type[BaseParser]] = {}


def register_parser(file_format: ConfigFileFormat):
    """Decorator to register a parser for a file format."""
    def decorator(cls: Type[BaseParser]) -> Type[BaseParser]:
        _parsers[file_format] = cls
        return cls
    return decorator


def get_parser(file_format: ConfigFileFormat) -> BaseParser:
    """Get a parser instance for a file format."""
    if not isinstance(file_format, ConfigFileFormat):
        try:
            file_format = ConfigFileFormat(str(file_format).lower())
        except ValueError:
            raise ValueError(f"Unsupported config format: {file_format}") from None

    if file_format not in _parsers:
        raise ValueError(f"No parser registered for format: {file_format.value}")
    return _parsers[file_format]()


def parse_config_file(content: str, file_path: str, file_format: ConfigFileFormat) -> ParsedConfigFile:
    """Parse ``content`` with the parser registered for ``file_format``."""
    return get_parser(file_format).parse(content, file_path)


def list_supported_formats() -> List[ConfigFileFormat]:
    """List all formats with registered parsers."""
    return list(_parsers.keys())


# Import parsers to register them
from configguard.parsers.yaml_parser import YAMLParser  # noqa: E402
from configguard.parsers.properties_parser import PropertiesParser  # noqa: E402
from configguard.parsers.env_parser import EnvParser  # noqa: E402
from configguard.parsers.json_parser import JSONParser  # noqa: E402

__all__ = [
    "BaseParser",
    "get_parser",
    "register_parser",
    "parse_config_file",
    "list_supported_formats",
    "YAMLParser",
    "PropertiesParser",
    "EnvParser",
    "JSONParser",
]
