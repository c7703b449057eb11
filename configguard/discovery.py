"""
Config file discovery.

Walks a directory tree and returns the files whose names match a known
config file pattern, sorted by path.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional
import fnmatch
import logging
import os

from configguard.core.entries import CONFIG_FILE_PATTERNS, ConfigFileFormat


logger = logging.getLogger(__name__)


DEFAULT_EXCLUDE_DIRS = [
    "node_modules",
    ".git",
    ".svn",
    ".hg",
    "target",
    "build",
    "dist",
    "out",
    ".idea",
    ".vscode",
    "__pycache__",
    ".gradle",
]

DEFAULT_MAX_DEPTH = 10


@dataclass(frozen=True)
class DiscoveredFile:
    file_path: str
    format: ConfigFileFormat


def detect_file_format(file_name: str) -> Optional[ConfigFileFormat]:
    """Return the format of a config file by its name, or None."""
    name = os.path.basename(file_name).lower()
    for file_format, patterns in CONFIG_FILE_PATTERNS.items():
        for pattern in patterns:
            if fnmatch.fnmatchcase(name, pattern.lower()):
                return file_format
    return None


def discover_config_files(
    root: str,
    exclude_dirs: Optional[Iterable[str]] = None,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> List[DiscoveredFile]:
    """
    Find config files under ``root``.

    Directories named in ``exclude_dirs`` are not entered, and nothing
    deeper than ``max_depth`` levels below ``root`` is visited.
    """
    root_path = Path(root).resolve()
    if root_path.is_file():
        file_format = detect_file_format(root_path.name)
        return [DiscoveredFile(str(root_path), file_format)] if file_format else []
    if not root_path.is_dir():
        raise FileNotFoundError(f"Directory not found: {root}")

    excluded = set(DEFAULT_EXCLUDE_DIRS if exclude_dirs is None else exclude_dirs)
    found: List[DiscoveredFile] = []

    for current, dirs, files in os.walk(root_path):
        depth = len(Path(current).relative_to(root_path).parts)
        if depth >= max_depth:
            dirs[:] = []
        else:
            dirs[:] = [d for d in dirs if d not in excluded]

        for name in files:
            file_format = detect_file_format(name)
            if file_format is not None:
                found.append(DiscoveredFile(os.path.join(current, name), file_format))

    found.sort(key=lambda f: f.file_path)
    logger.debug("Discovered %d config files under %s", len(found), root_path)
    return found


def read_file_content(file_path: str) -> str:
    """Read a config file as UTF-8 text, replacing undecodable bytes."""
    with open(file_path, "r", encoding="utf-8", errors="replace") as f:
        return f.read()
