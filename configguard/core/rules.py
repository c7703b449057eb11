"""
Rule base classes and the per-scan rule registry.

Rules are stateless detectors evaluated against one ConfigEntry at a time.
A RuleRegistry is built for each scan with a profile; it indexes rules by
the exact keys they target and keeps wildcard rules in a separate set.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, List, Optional, Set, Type

from configguard.core.entries import ConfigEntry
from configguard.core.findings import Severity, Violation
from configguard.core.platforms import (
    DEFAULT_PROFILE, Platform, ScanProfile, platforms_for_profile
)
from configguard.errors import DuplicateRuleError


WILDCARD_KEY = "*"


@dataclass(frozen=True)
class RuleMetadata:
    """Static description of a rule."""
    rule_id: str
    name: str
    description: str
    severity: Severity
    target_keys: FrozenSet[str]
    # Empty means the rule applies under every profile
    platforms: FrozenSet[Platform] = frozenset()
    tags: List[str] = field(default_factory=list)


class Rule(ABC):
    """
    Base class for all configuration rules.

    Subclasses provide ``metadata`` and ``evaluate``. ``evaluate`` must be a
    pure function of the entry: rules hold no per-scan state, so a single
    instance can be shared by any number of registries.
    """

    @property
    @abstractmethod
    def metadata(self) -> RuleMetadata:
        """Return rule metadata."""
        pass

    @abstractmethod
    def evaluate(self, entry: ConfigEntry) -> List[Violation]:
        """
        Evaluate one config entry.

        Returns:
            Zero or more violations for the entry.
        """
        pass

    @property
    def rule_id(self) -> str:
        return self.metadata.rule_id

    @property
    def target_keys(self) -> FrozenSet[str]:
        return self.metadata.target_keys

    @property
    def platforms(self) -> FrozenSet[Platform]:
        return self.metadata.platforms

    @property
    def default_severity(self) -> Severity:
        return self.metadata.severity

    def applies_to_profile(self, profile: ScanProfile) -> bool:
        """Check whether this rule takes part in scans with ``profile``."""
        if not self.platforms:
            return True
        return bool(self.platforms & platforms_for_profile(profile))

    def create_violation(
        self,
        entry: ConfigEntry,
        message: str,
        suggestion: str,
        severity: Optional[Severity] = None,
        value: Optional[str] = None,
    ) -> Violation:
        """
        Create a violation for ``entry`` using the rule's metadata as defaults.

        Pass ``value`` to report a redacted value instead of the real one.
        """
        return Violation(
            rule_id=self.metadata.rule_id,
            severity=severity or self.metadata.severity,
            message=message,
            file_path=entry.source_file,
            config_key=entry.key,
            config_value=entry.value if value is None else value,
            line_number=entry.line_number,
            suggestion=suggestion,
        )

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.rule_id!r})"


class RuleRegistry:
    """
    Active rule set for one scan profile.

    Rules whose platforms do not intersect the profile are ignored at
    registration. Registering an applicable rule whose id is already taken
    raises DuplicateRuleError.
    """

    def __init__(self, profile: ScanProfile = DEFAULT_PROFILE):
        self._profile = profile
        self._rules: Dict[str, Rule] = {}
        self._order: Dict[str, int] = {}
        self._key_to_rule_ids: Dict[str, Set[str]] = {}
        self._wildcard_rule_ids: Set[str] = set()

    @property
    def profile(self) -> ScanProfile:
        return self._profile

    @property
    def size(self) -> int:
        return len(self._rules)

    def __len__(self) -> int:
        return len(self._rules)

    def __contains__(self, rule_id: str) -> bool:
        return rule_id in self._rules

    def register(self, rule: Rule) -> bool:
        """
        Register a rule.

        Returns:
            True if the rule was added, False if it does not apply to the
            registry's profile.
        """
        if not rule.applies_to_profile(self._profile):
            return False

        rule_id = rule.rule_id
        if rule_id in self._rules:
            raise DuplicateRuleError(rule_id)

        self._rules[rule_id] = rule
        self._order[rule_id] = len(self._order)
        for key in rule.target_keys:
            if key == WILDCARD_KEY:
                self._wildcard_rule_ids.add(rule_id)
            else:
                self._key_to_rule_ids.setdefault(key, set()).add(rule_id)
        return True

    def register_all(self, rules: Iterable[Rule]) -> int:
        """Register several rules; returns how many were added."""
        return sum(1 for rule in rules if self.register(rule))

    def get_rules_for_key(self, key: str) -> List[Rule]:
        """Return exact-key rules plus every wildcard rule, without duplicates."""
        rule_ids = self._key_to_rule_ids.get(key, set()) | self._wildcard_rule_ids
        # Registration order keeps evaluation reproducible
        return [self._rules[rule_id] for rule_id in sorted(rule_ids, key=self._order.__getitem__)]

    def get_all_rules(self) -> List[Rule]:
        return list(self._rules.values())

    def get_rule(self, rule_id: str) -> Optional[Rule]:
        return self._rules.get(rule_id)

    def clear(self):
        """Remove every rule. Intended for test isolation."""
        self._rules.clear()
        self._order.clear()
        self._key_to_rule_ids.clear()
        self._wildcard_rule_ids.clear()


# Built-in rule classes, collected by the @builtin decorator
_builtin_rule_classes: List[Type[Rule]] = []


def builtin(cls: Type[Rule]) -> Type[Rule]:
    """Decorator adding a rule class to the built-in catalogue."""
    _builtin_rule_classes.append(cls)
    return cls


def get_builtin_rules() -> List[Rule]:
    """Instantiate every built-in rule, in declaration order."""
    # Importing the package runs the @builtin decorators
    import configguard.rules  # noqa: F401

    return [cls() for cls in _builtin_rule_classes]


def create_rule_registry(
    rules: Iterable[Rule],
    profile: ScanProfile = DEFAULT_PROFILE,
) -> RuleRegistry:
    """Build a registry for ``profile`` and register ``rules`` into it."""
    registry = RuleRegistry(profile)
    registry.register_all(rules)
    return registry
