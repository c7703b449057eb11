"""
Platforms and scan profiles.

A profile is a named bundle of platforms; the rule registry uses it to
decide which platform-specific rules take part in a scan.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, Iterable, List
import fnmatch
import os


class Platform(Enum):
    """Application platforms with dedicated rules."""
    SPRING_BOOT = "spring-boot"
    NODEJS = "nodejs"
    DOTNET = "dotnet"
    GENERIC = "generic"


class ScanProfile(Enum):
    """Named platform bundles selectable from the command line."""
    SPRING = "spring"
    NODE = "node"
    DOTNET = "dotnet"
    ALL = "all"


DEFAULT_PROFILE = ScanProfile.SPRING

PROFILE_TO_PLATFORMS: Dict[ScanProfile, FrozenSet[Platform]] = {
    ScanProfile.SPRING: frozenset({Platform.SPRING_BOOT}),
    ScanProfile.NODE: frozenset({Platform.NODEJS}),
    ScanProfile.DOTNET: frozenset({Platform.DOTNET}),
    ScanProfile.ALL: frozenset(Platform),
}

_PROFILE_ALIASES: Dict[str, ScanProfile] = {
    "spring": ScanProfile.SPRING,
    "node": ScanProfile.NODE,
    "nodejs": ScanProfile.NODE,
    "dotnet": ScanProfile.DOTNET,
    ".net": ScanProfile.DOTNET,
    "all": ScanProfile.ALL,
}


@dataclass(frozen=True)
class PlatformMetadata:
    display_name: str
    description: str
    file_patterns: List[str]


PLATFORM_METADATA: Dict[Platform, PlatformMetadata] = {
    Platform.SPRING_BOOT: PlatformMetadata(
        display_name="Spring Boot",
        description="Java Spring Boot applications",
        file_patterns=[
            "application.yml", "application.yaml", "application-*.yml",
            "application-*.yaml", "application.properties",
            "application-*.properties", "bootstrap.yml", "bootstrap.yaml",
            "bootstrap.properties",
        ],
    ),
    Platform.NODEJS: PlatformMetadata(
        display_name="Node.js",
        description="Node.js applications",
        file_patterns=[".env", ".env.*", "package.json", "config.json"],
    ),
    Platform.DOTNET: PlatformMetadata(
        display_name=".NET",
        description="ASP.NET Core applications",
        file_patterns=["appsettings.json", "appsettings.*.json", "web.config"],
    ),
    Platform.GENERIC: PlatformMetadata(
        display_name="Generic",
        description="Rules that apply to any platform",
        file_patterns=[],
    ),
}


def parse_profile(text: str) -> ScanProfile:
    """
    Parse a profile name (case-insensitive).

    Accepts spring, node, nodejs, dotnet, .net and all.
    """
    profile = _PROFILE_ALIASES.get(str(text).strip().lower())
    if profile is None:
        raise ValueError(
            f'Invalid profile: "{text}". Valid values are: spring, node, dotnet, all'
        )
    return profile


def platforms_for_profile(profile: ScanProfile) -> FrozenSet[Platform]:
    return PROFILE_TO_PLATFORMS[profile]


def profile_includes_platform(profile: ScanProfile, platform: Platform) -> bool:
    return platform in PROFILE_TO_PLATFORMS[profile]


def detect_platform(file_paths: Iterable[str]) -> Platform:
    """
    Guess the platform from a set of config file paths.

    Checks Spring Boot, then Node.js, then .NET; falls back to GENERIC.
    """
    names = [os.path.basename(p).lower() for p in file_paths]
    for platform in (Platform.SPRING_BOOT, Platform.NODEJS, Platform.DOTNET):
        patterns = PLATFORM_METADATA[platform].file_patterns
        for name in names:
            if any(fnmatch.fnmatchcase(name, pattern.lower()) for pattern in patterns):
                return platform
    return Platform.GENERIC
