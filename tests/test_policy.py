"""
Tests for organization policy loading and evaluation.
"""

import pytest
import os
import sys

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from configguard.core.entries import ConfigEntry
from configguard.core.findings import Severity
from configguard.core.policy import (
    Policy, PolicyRule, PolicyRuleAdapter, compile_policy, find_and_load_policy,
    find_policy_file, load_policy_file, matches_key_pattern, parse_policy_yaml
)
from configguard.core.rules import WILDCARD_KEY, create_rule_registry
from configguard.errors import PolicyError


POLICY_YAML = """
policies:
  name: acme-security
  version: "1.2"
  description: ACME production baseline
  metadata:
    author: platform-team
    tags: [prod, baseline]
  rules:
    - id: NO_DEBUG_LOGGERS
      description: Loggers must not run at debug level
      key: logging.level.*
      forbiddenValues: [debug, trace]
      severity: CRITICAL
      message: Debug logging is not allowed
    - id: REQUIRE_TLS
      description: TLS must be on
      key: server.ssl.enabled
      requiredValue: true
      message: TLS must be enabled
"""


def entry(key, value):
    return ConfigEntry(key=key, value=value, source_file="/app/application.yml")


def policy_rule(**overrides):
    fields = dict(
        id="R1",
        description="test rule",
        key="app.mode",
        message="bad mode",
    )
    fields.update(overrides)
    return PolicyRule(**fields)


class TestPolicyParsing:
    """Tests for policy document validation."""

    def test_parse_valid_policy(self):
        policy = parse_policy_yaml(POLICY_YAML)

        assert policy.name == "acme-security"
        assert policy.version == "1.2"
        assert policy.metadata.author == "platform-team"
        assert policy.metadata.tags == ["prod", "baseline"]
        assert [r.id for r in policy.rules] == ["NO_DEBUG_LOGGERS", "REQUIRE_TLS"]
        assert policy.rules[0].severity == Severity.CRITICAL
        assert policy.rules[1].severity == Severity.HIGH
        assert policy.rules[1].required_value == "true"

    @pytest.mark.parametrize("content, fragment", [
        ("- a\n- b\n", "must be a YAML object"),
        ("other: 1\n", "missing 'policies' section"),
        ("policies:\n  version: '1'\n  rules: []\n", "policies.name"),
        ("policies:\n  name: p\n  rules: []\n", "policies.version"),
        ("policies:\n  name: p\n  version: '1'\n  rules: x\n", "must be an array"),
    ])
    def test_structural_errors(self, content, fragment):
        """Malformed documents raise PolicyError naming the problem."""
        with pytest.raises(PolicyError, match=fragment):
            parse_policy_yaml(content)

    def test_rule_without_check_rejected(self):
        content = (
            "policies:\n  name: p\n  version: '1'\n  rules:\n"
            "    - {id: X, description: d, key: k, message: m}\n"
        )
        with pytest.raises(PolicyError, match="at least one of"):
            parse_policy_yaml(content)

    def test_invalid_severity_rejected(self):
        content = (
            "policies:\n  name: p\n  version: '1'\n  rules:\n"
            "    - {id: X, description: d, key: k, message: m, requiredValue: a, severity: SEVERE}\n"
        )
        with pytest.raises(PolicyError, match="invalid severity"):
            parse_policy_yaml(content)

    def test_invalid_pattern_rejected(self):
        content = (
            "policies:\n  name: p\n  version: '1'\n  rules:\n"
            "    - {id: X, description: d, key: k, message: m, forbiddenPattern: '[unclosed'}\n"
        )
        with pytest.raises(PolicyError, match="forbiddenPattern"):
            parse_policy_yaml(content)

    def test_missing_rule_field_rejected(self):
        content = (
            "policies:\n  name: p\n  version: '1'\n  rules:\n"
            "    - {id: X, key: k, message: m, requiredValue: a}\n"
        )
        with pytest.raises(PolicyError, match="description"):
            parse_policy_yaml(content)

    def test_error_carries_source(self):
        with pytest.raises(PolicyError) as exc_info:
            parse_policy_yaml("other: 1\n", "policy.yml")
        assert str(exc_info.value).startswith("policy.yml: ")

    def test_malformed_yaml(self):
        with pytest.raises(PolicyError, match="failed to parse"):
            parse_policy_yaml("policies: [unclosed\n")


class TestKeyPatterns:
    """Tests for policy key matching."""

    def test_wildcard_suffix(self):
        """logging.level.* matches any logger but not a sibling key."""
        assert matches_key_pattern("logging.level.root", "logging.level.*")
        assert matches_key_pattern("logging.level.com.foo", "logging.level.*")
        assert not matches_key_pattern("logging.levels", "logging.level.*")

    def test_separators_and_case_are_folded(self):
        assert matches_key_pattern("SERVER_SSL_ENABLED", "server.ssl.enabled")
        assert matches_key_pattern("server.ssl-enabled", "server.ssl.enabled")
        assert not matches_key_pattern("server.ssl.enabled.extra", "server.ssl.enabled")


class TestPolicyRuleAdapter:
    """Tests for compiled policy rules."""

    def test_rule_id_and_wildcard_target(self):
        adapter = PolicyRuleAdapter(policy_rule(required_value="prod"), "acme")

        assert adapter.rule_id == "POLICY:R1"
        assert adapter.target_keys == frozenset({WILDCARD_KEY})

    def test_forbidden_value(self):
        adapter = PolicyRuleAdapter(policy_rule(forbidden_values=["debug"]), "acme")

        violations = adapter.evaluate(entry("app.mode", "DEBUG"))
        assert len(violations) == 1
        assert violations[0].message == "[acme] bad mode"
        assert violations[0].suggestion == "Review company security policy"
        assert adapter.evaluate(entry("app.mode", "info")) == []

    def test_required_value_message(self):
        adapter = PolicyRuleAdapter(policy_rule(required_value="prod"), "acme")

        violations = adapter.evaluate(entry("app.mode", "dev"))
        assert violations[0].message == "[acme] bad mode (expected: prod, found: dev)"
        assert violations[0].suggestion == "Set app.mode to prod"
        assert adapter.evaluate(entry("app.mode", " PROD ")) == []

    def test_case_sensitive_rule(self):
        adapter = PolicyRuleAdapter(
            policy_rule(forbidden_values=["Debug"], case_insensitive=False), "acme"
        )
        assert len(adapter.evaluate(entry("app.mode", "Debug"))) == 1
        assert adapter.evaluate(entry("app.mode", "debug")) == []

    def test_forbidden_pattern(self):
        adapter = PolicyRuleAdapter(policy_rule(forbidden_pattern=r"^http://"), "acme")

        assert len(adapter.evaluate(entry("app.mode", "HTTP://x"))) == 1
        assert adapter.evaluate(entry("app.mode", "https://x")) == []

    def test_forbidden_pattern_ignores_case_even_when_case_sensitive(self):
        """caseInsensitive: false applies to value lists, never to the pattern."""
        adapter = PolicyRuleAdapter(
            policy_rule(forbidden_pattern="^DEBUG$", case_insensitive=False), "acme"
        )
        assert len(adapter.evaluate(entry("app.mode", "debug"))) == 1
        assert len(adapter.evaluate(entry("app.mode", "DEBUG"))) == 1
        assert adapter.evaluate(entry("app.mode", "debugger")) == []

    def test_first_matching_check_wins(self):
        """A value hitting several checks yields one violation."""
        adapter = PolicyRuleAdapter(
            policy_rule(forbidden_values=["dev"], required_value="prod", forbidden_pattern="d"),
            "acme",
        )
        violations = adapter.evaluate(entry("app.mode", "dev"))

        assert len(violations) == 1
        assert violations[0].message == "[acme] bad mode"

    def test_other_keys_ignored(self):
        adapter = PolicyRuleAdapter(policy_rule(forbidden_values=["x"]), "acme")
        assert adapter.evaluate(entry("other.key", "x")) == []

    def test_custom_suggestion(self):
        adapter = PolicyRuleAdapter(
            policy_rule(forbidden_values=["x"], suggestion="Ask security"), "acme"
        )
        assert adapter.evaluate(entry("app.mode", "x"))[0].suggestion == "Ask security"

    def test_compiled_rules_register_under_any_profile(self):
        rules = compile_policy(POLICY_YAML)
        registry = create_rule_registry(rules)

        assert [r.rule_id for r in registry.get_rules_for_key("logging.level.root")] == [
            "POLICY:NO_DEBUG_LOGGERS", "POLICY:REQUIRE_TLS"
        ]
        violations = rules[0].evaluate(entry("logging.level.root", "debug"))
        assert violations[0].severity == Severity.CRITICAL

    def test_compile_from_policy_object(self):
        policy = Policy(name="p", version="1", rules=[policy_rule(required_value="a")])
        assert [r.rule_id for r in compile_policy(policy)] == ["POLICY:R1"]


class TestPolicyFiles:
    """Tests for locating and loading policy files."""

    def test_find_and_load(self, tmp_path):
        (tmp_path / ".prod-analyzer-policy.yml").write_text(POLICY_YAML, encoding="utf-8")

        assert find_policy_file(tmp_path) == tmp_path / ".prod-analyzer-policy.yml"
        policy = find_and_load_policy(tmp_path)
        assert policy.name == "acme-security"

    def test_first_conventional_name_wins(self, tmp_path):
        (tmp_path / "prod-analyzer-policy.yaml").write_text(POLICY_YAML, encoding="utf-8")
        (tmp_path / ".prod-analyzer-policy.yaml").write_text(POLICY_YAML, encoding="utf-8")

        assert find_policy_file(tmp_path).name == ".prod-analyzer-policy.yaml"

    def test_no_policy(self, tmp_path):
        assert find_policy_file(tmp_path) is None
        assert find_and_load_policy(tmp_path) is None

    def test_missing_file(self, tmp_path):
        with pytest.raises(PolicyError, match="cannot read"):
            load_policy_file(tmp_path / "nope.yml")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
