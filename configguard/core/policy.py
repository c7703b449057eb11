"""
Organization policies.

A policy is a YAML document of user-defined rules layered on top of the
built-in rule set::

    policies:
      name: acme-security
      version: "1.0"
      rules:
        - id: NO_DEBUG_LOGGERS
          description: Loggers must not run at debug level
          key: logging.level.*
          forbiddenValues: [debug, trace]
          severity: HIGH
          message: Debug logging is not allowed in production

Each policy rule compiles into a PolicyRuleAdapter reported as
``POLICY:<id>``.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Pattern, Union
import logging
import re

import yaml

from configguard.core.entries import ConfigEntry
from configguard.core.findings import Severity, Violation, parse_severity
from configguard.core.rules import WILDCARD_KEY, Rule, RuleMetadata
from configguard.errors import PolicyError
from configguard.parsers.base import stringify_scalar


logger = logging.getLogger(__name__)


POLICY_FILE_NAMES = [
    ".prod-analyzer-policy.yml",
    ".prod-analyzer-policy.yaml",
    "prod-analyzer-policy.yml",
    "prod-analyzer-policy.yaml",
]

POLICY_RULE_PREFIX = "POLICY:"
DEFAULT_POLICY_SUGGESTION = "Review company security policy"


@dataclass(frozen=True)
class PolicyRule:
    """One user-defined rule inside a policy."""
    id: str
    description: str
    key: str
    message: str
    severity: Severity = Severity.HIGH
    suggestion: Optional[str] = None
    case_insensitive: bool = True
    forbidden_values: Optional[List[str]] = None
    required_value: Optional[str] = None
    forbidden_pattern: Optional[str] = None


@dataclass(frozen=True)
class PolicyMetadata:
    author: Optional[str] = None
    organization: Optional[str] = None
    created_at: Optional[str] = None
    tags: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class Policy:
    name: str
    version: str
    rules: List[PolicyRule]
    description: Optional[str] = None
    metadata: Optional[PolicyMetadata] = None


def _normalize_key(key: str) -> str:
    return key.lower().replace("_", ".").replace("-", ".")


def compile_key_pattern(pattern: str) -> Pattern:
    """
    Compile a policy key pattern into an anchored regex.

    Keys and patterns are compared case-insensitively with ``_`` and ``-``
    treated as ``.``; ``*`` matches any run of characters.
    """
    parts = _normalize_key(pattern).split("*")
    return re.compile("^" + ".*".join(re.escape(part) for part in parts) + "$")


def matches_key_pattern(key: str, pattern: str) -> bool:
    return bool(compile_key_pattern(pattern).match(_normalize_key(key)))


class PolicyRuleAdapter(Rule):
    """
    A compiled policy rule.

    It registers under the wildcard key and applies its own key pattern in
    ``evaluate``, so ``logging.level.*`` style prefixes need no special
    support in the registry. Checks run in order (forbidden values,
    required value, forbidden pattern) and the first match wins.
    """

    def __init__(self, policy_rule: PolicyRule, policy_name: str):
        self.policy_rule = policy_rule
        self.policy_name = policy_name
        self._key_pattern = compile_key_pattern(policy_rule.key)

        # Patterns always ignore case; caseInsensitive only governs value comparisons
        self._forbidden_pattern = None
        if policy_rule.forbidden_pattern is not None:
            self._forbidden_pattern = re.compile(policy_rule.forbidden_pattern, re.IGNORECASE)

        self._forbidden_values = None
        if policy_rule.forbidden_values is not None:
            self._forbidden_values = {self._normalize(v) for v in policy_rule.forbidden_values}

        self._required_value = None
        if policy_rule.required_value is not None:
            self._required_value = self._normalize(policy_rule.required_value)

        self._metadata = RuleMetadata(
            rule_id=f"{POLICY_RULE_PREFIX}{policy_rule.id}",
            name=policy_rule.id,
            description=policy_rule.description,
            severity=policy_rule.severity,
            target_keys=frozenset({WILDCARD_KEY}),
            tags=["policy", policy_name],
        )

    @property
    def metadata(self) -> RuleMetadata:
        return self._metadata

    def _normalize(self, value: str) -> str:
        value = str(value).strip()
        return value.lower() if self.policy_rule.case_insensitive else value

    def matches_key(self, key: str) -> bool:
        return bool(self._key_pattern.match(_normalize_key(key)))

    def evaluate(self, entry: ConfigEntry) -> List[Violation]:
        if not self.matches_key(entry.key):
            return []

        rule = self.policy_rule
        value = self._normalize(entry.value)
        message = None
        suggestion = rule.suggestion

        if self._forbidden_values is not None and value in self._forbidden_values:
            message = rule.message
        elif self._required_value is not None and value != self._required_value:
            message = f"{rule.message} (expected: {rule.required_value}, found: {entry.value.strip()})"
            suggestion = suggestion or f"Set {entry.key} to {rule.required_value}"
        elif self._forbidden_pattern is not None and self._forbidden_pattern.search(value):
            message = rule.message

        if message is None:
            return []
        return [self.create_violation(
            entry,
            message=f"[{self.policy_name}] {message}",
            suggestion=suggestion or DEFAULT_POLICY_SUGGESTION,
        )]


def _require_string(data: Dict[str, Any], field_name: str, error: str, source: str) -> str:
    value = data.get(field_name)
    if value is None or isinstance(value, (dict, list)) or str(value).strip() == "":
        raise PolicyError(error, source)
    return str(value)


def _parse_rule(raw: Any, index: int, source: str) -> PolicyRule:
    if not isinstance(raw, dict):
        raise PolicyError(f"invalid policy rule at index {index}: must be an object", source)

    rule_id = _require_string(raw, "id", f"invalid policy rule at index {index}: missing 'id'", source)
    description = _require_string(raw, "description", f"invalid policy rule {rule_id}: missing 'description'", source)
    key = _require_string(raw, "key", f"invalid policy rule {rule_id}: missing 'key'", source)
    message = _require_string(raw, "message", f"invalid policy rule {rule_id}: missing 'message'", source)

    severity = Severity.HIGH
    if raw.get("severity") is not None:
        try:
            severity = parse_severity(raw["severity"])
        except ValueError:
            raise PolicyError(
                f"invalid policy rule {rule_id}: invalid severity '{raw['severity']}'", source
            ) from None

    forbidden_values = raw.get("forbiddenValues")
    required_value = raw.get("requiredValue")
    forbidden_pattern = raw.get("forbiddenPattern")

    if forbidden_values is None and required_value is None and forbidden_pattern is None:
        raise PolicyError(
            f"invalid policy rule {rule_id}: must specify at least one of "
            "'forbiddenValues', 'requiredValue' or 'forbiddenPattern'",
            source,
        )
    if forbidden_values is not None:
        if not isinstance(forbidden_values, list):
            raise PolicyError(f"invalid policy rule {rule_id}: 'forbiddenValues' must be an array", source)
        forbidden_values = [stringify_scalar(v) for v in forbidden_values if v is not None]
    if required_value is not None:
        required_value = stringify_scalar(required_value)
    if forbidden_pattern is not None:
        forbidden_pattern = str(forbidden_pattern)
        try:
            re.compile(forbidden_pattern)
        except re.error as e:
            raise PolicyError(
                f"invalid policy rule {rule_id}: bad 'forbiddenPattern' {forbidden_pattern!r}: {e}",
                source,
            ) from None

    case_insensitive = raw.get("caseInsensitive", True)
    if not isinstance(case_insensitive, bool):
        raise PolicyError(f"invalid policy rule {rule_id}: 'caseInsensitive' must be a boolean", source)

    suggestion = raw.get("suggestion")
    return PolicyRule(
        id=rule_id,
        description=description,
        key=key,
        message=message,
        severity=severity,
        suggestion=str(suggestion) if suggestion is not None else None,
        case_insensitive=case_insensitive,
        forbidden_values=forbidden_values,
        required_value=required_value,
        forbidden_pattern=forbidden_pattern,
    )


def _parse_metadata(raw: Any) -> Optional[PolicyMetadata]:
    if not isinstance(raw, dict):
        return None
    tags = raw.get("tags") or []
    created_at = raw.get("createdAt")
    return PolicyMetadata(
        author=raw.get("author"),
        organization=raw.get("organization"),
        created_at=stringify_scalar(created_at) if created_at is not None else None,
        tags=[str(t) for t in tags] if isinstance(tags, list) else [],
    )


def policy_from_dict(document: Any, source: str = "<policy>") -> Policy:
    """
    Validate a parsed policy document.

    Raises:
        PolicyError: on the first structural problem found.
    """
    if not isinstance(document, dict):
        raise PolicyError("invalid policy file: must be a YAML object", source)

    section = document.get("policies")
    if not isinstance(section, dict):
        raise PolicyError("invalid policy file: missing 'policies' section", source)

    name = _require_string(section, "name", "invalid policy file: missing 'policies.name'", source)
    version = _require_string(section, "version", "invalid policy file: missing 'policies.version'", source)

    raw_rules = section.get("rules")
    if not isinstance(raw_rules, list):
        raise PolicyError("invalid policy file: 'policies.rules' must be an array", source)

    description = section.get("description")
    return Policy(
        name=name,
        version=version,
        description=str(description) if description is not None else None,
        rules=[_parse_rule(raw, index, source) for index, raw in enumerate(raw_rules)],
        metadata=_parse_metadata(section.get("metadata")),
    )


def parse_policy_yaml(content: str, source: str = "<policy>") -> Policy:
    """Parse and validate policy YAML text."""
    try:
        document = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise PolicyError(f"failed to parse policy YAML: {e}", source) from e
    return policy_from_dict(document, source)


def compile_policy(policy: Union[Policy, Dict[str, Any], str]) -> List[Rule]:
    """
    Compile a policy into rules.

    Accepts a Policy, a parsed document mapping, or YAML text.
    """
    if isinstance(policy, str):
        policy = parse_policy_yaml(policy)
    elif not isinstance(policy, Policy):
        policy = policy_from_dict(policy)
    return [PolicyRuleAdapter(rule, policy.name) for rule in policy.rules]


def load_policy_file(path: Union[str, Path]) -> Policy:
    """Read and validate a policy file."""
    path = Path(path)
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as e:
        raise PolicyError(f"cannot read policy file: {e}", str(path)) from e
    policy = parse_policy_yaml(content, str(path))
    logger.info("Loaded policy %s v%s (%d rules) from %s",
                policy.name, policy.version, len(policy.rules), path)
    return policy


def find_policy_file(directory: Union[str, Path]) -> Optional[Path]:
    """Return the first conventional policy file in ``directory``, if any."""
    directory = Path(directory)
    for name in POLICY_FILE_NAMES:
        candidate = directory / name
        if candidate.is_file():
            return candidate
    return None


def find_and_load_policy(directory: Union[str, Path]) -> Optional[Policy]:
    """Load the conventional policy file from ``directory``; None when absent."""
    path = find_policy_file(directory)
    if path is None:
        return None
    return load_policy_file(path)
