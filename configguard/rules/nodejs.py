"""
Node.js configuration rules.

Most Node.js settings come from .env files, whose keys the env parser
folds to dot notation (``JWT_SECRET`` becomes ``jwt.secret``).
"""

import re
from typing import List

from configguard.core.entries import ConfigEntry
from configguard.core.findings import Severity, Violation
from configguard.core.platforms import Platform
from configguard.core.rules import Rule, RuleMetadata, builtin


NODE_ONLY = frozenset({Platform.NODEJS})
NODE_AND_DOTNET = frozenset({Platform.NODEJS, Platform.DOTNET})

REDACTED = "***REDACTED***"


@builtin
class NodeEnvNotProductionRule(Rule):

    PRODUCTION_VALUES = frozenset({"production", "prod"})

    @property
    def metadata(self) -> RuleMetadata:
        return RuleMetadata(
            rule_id="NODE_ENV_NOT_PRODUCTION",
            name="NODE_ENV Not Production",
            description="NODE_ENV is not set to production.",
            severity=Severity.HIGH,
            target_keys=frozenset({"node.env"}),
            platforms=NODE_ONLY,
            tags=["environment"],
        )

    def evaluate(self, entry: ConfigEntry) -> List[Violation]:
        value = entry.value.strip().lower()
        if value in self.PRODUCTION_VALUES:
            return []
        shown = entry.value.strip() or "(empty)"
        return [self.create_violation(
            entry,
            message=f"NODE_ENV is {shown}. Frameworks such as Express enable verbose "
                    "errors and disable caching outside production mode.",
            suggestion="Set NODE_ENV=production",
        )]


@builtin
class NodeDebugEnabledRule(Rule):

    DEBUG_VALUES = frozenset({"debug", "trace", "verbose", "*", "true", "1"})

    @property
    def metadata(self) -> RuleMetadata:
        return RuleMetadata(
            rule_id="NODEJS_DEBUG_ENABLED",
            name="Debug Mode Enabled",
            description="Debug output or verbose logging is enabled.",
            severity=Severity.MEDIUM,
            target_keys=frozenset({"debug", "log.level", "logging.level"}),
            platforms=NODE_ONLY,
            tags=["logging"],
        )

    def evaluate(self, entry: ConfigEntry) -> List[Violation]:
        if entry.value.strip().lower() not in self.DEBUG_VALUES:
            return []
        return [self.create_violation(
            entry,
            message=f"Debug logging is enabled ({entry.key}={entry.value.strip()}). "
                    "Debug output can leak request data and internal state.",
            suggestion=f"Set {entry.key} to info or warn, or remove it in production",
        )]


@builtin
class ExposedSecretsRule(Rule):
    """Secrets with placeholder, default or very short values."""

    SECRET_KEYS = (
        "api.key",
        "secret",
        "password",
        "token",
        "private.key",
        "aws.access.key",
        "aws.secret",
        "database.url",
        "db.password",
        "stripe.secret",
        "jwt.secret",
        "session.secret",
    )

    WEAK_PATTERNS = [
        re.compile(r"^(test|example|placeholder|changeme|default|admin|password|secret|demo)", re.IGNORECASE),
        re.compile(r"^(123|abc|xxx|yyy|zzz)", re.IGNORECASE),
        re.compile(r"^.{1,8}$"),
    ]

    @property
    def metadata(self) -> RuleMetadata:
        return RuleMetadata(
            rule_id="EXPOSED_SECRETS",
            name="Weak or Placeholder Secret",
            description="A secret has a weak, default or placeholder value.",
            severity=Severity.CRITICAL,
            target_keys=frozenset(self.SECRET_KEYS),
            platforms=NODE_AND_DOTNET,
            tags=["secrets"],
        )

    def evaluate(self, entry: ConfigEntry) -> List[Violation]:
        value = entry.value.strip()
        if not any(pattern.search(value) for pattern in self.WEAK_PATTERNS):
            return []
        return [self.create_violation(
            entry,
            message=f'Secret "{entry.key}" has a weak or placeholder value.',
            suggestion="Generate a strong random secret of at least 32 characters and "
                       "load it from a secrets manager. Keep .env files out of version control.",
            value=REDACTED,
        )]


@builtin
class CorsWildcardOriginRule(Rule):

    @property
    def metadata(self) -> RuleMetadata:
        return RuleMetadata(
            rule_id="CORS_WILDCARD_ORIGIN",
            name="CORS Wildcard Origin",
            description="CORS allows requests from any origin.",
            severity=Severity.HIGH,
            target_keys=frozenset({
                "cors.origin",
                "cors.allowed.origins",
                "allowed.origins",
                "access.control.allow.origin",
            }),
            platforms=NODE_AND_DOTNET,
            tags=["cors", "web"],
        )

    def evaluate(self, entry: ConfigEntry) -> List[Violation]:
        if entry.value.strip() != "*":
            return []
        return [self.create_violation(
            entry,
            message="CORS accepts requests from any origin, letting any website call "
                    "the API from a user's browser.",
            suggestion="List the allowed origins explicitly, e.g. https://app.example.com",
        )]


@builtin
class JwtWeakSecretRule(Rule):
    """
    Weak JWT signing secrets.

    Length and predictability are checked separately, so one entry can
    produce two violations.
    """

    MIN_LENGTH = 32

    WEAK_PATTERNS = [
        re.compile(r"^(secret|password|key|token|jwt|changeme|admin|test|demo|example)", re.IGNORECASE),
        re.compile(r"^[0-9]{1,10}$"),
        re.compile(r"^[a-z]{1,15}$", re.IGNORECASE),
        re.compile(r"^(.)\1+$"),
    ]

    @property
    def metadata(self) -> RuleMetadata:
        return RuleMetadata(
            rule_id="JWT_WEAK_SECRET",
            name="Weak JWT Secret",
            description="JWT signing secret is short or predictable and can be brute-forced.",
            severity=Severity.CRITICAL,
            target_keys=frozenset({
                "jwt.secret",
                "jwt.key",
                "jwt.signing.key",
                "jwt.token.secret",
                "access.token.secret",
                "refresh.token.secret",
            }),
            platforms=NODE_ONLY,
            tags=["secrets", "jwt"],
        )

    def evaluate(self, entry: ConfigEntry) -> List[Violation]:
        value = entry.value.strip()
        violations = []

        if len(value) < self.MIN_LENGTH:
            violations.append(self.create_violation(
                entry,
                message=f'JWT secret "{entry.key}" is too short ({len(value)} characters). '
                        f"Use at least {self.MIN_LENGTH} characters (256 bits).",
                suggestion="Generate a secret with "
                           "node -e \"console.log(require('crypto').randomBytes(32).toString('hex'))\"",
            ))

        if any(pattern.search(value) for pattern in self.WEAK_PATTERNS):
            violations.append(self.create_violation(
                entry,
                message=f'JWT secret "{entry.key}" uses a predictable pattern and can be '
                        "brute-forced to forge tokens.",
                suggestion="Use a cryptographically random secret stored in a secrets manager",
            ))

        return violations


@builtin
class RateLimitDisabledRule(Rule):

    @property
    def metadata(self) -> RuleMetadata:
        return RuleMetadata(
            rule_id="RATE_LIMIT_DISABLED",
            name="Rate Limiting Disabled",
            description="Request rate limiting is turned off.",
            severity=Severity.HIGH,
            target_keys=frozenset({
                "rate.limit.enabled",
                "rate.limiting.enabled",
                "ratelimit.enabled",
                "throttle.enabled",
            }),
            platforms=NODE_ONLY,
            tags=["dos", "brute-force"],
        )

    def evaluate(self, entry: ConfigEntry) -> List[Violation]:
        if entry.value.strip().lower() not in ("false", "0"):
            return []
        return [self.create_violation(
            entry,
            message="Rate limiting is disabled, leaving login and API endpoints open to "
                    "brute force and denial of service.",
            suggestion=f"Set {entry.key}=true and configure limits, e.g. with express-rate-limit",
        )]


@builtin
class HelmetDisabledRule(Rule):

    @property
    def metadata(self) -> RuleMetadata:
        return RuleMetadata(
            rule_id="HELMET_DISABLED",
            name="Security Headers Disabled",
            description="Helmet security headers are turned off.",
            severity=Severity.MEDIUM,
            target_keys=frozenset({"helmet.enabled", "security.headers.enabled", "use.helmet"}),
            platforms=NODE_ONLY,
            tags=["headers", "web"],
        )

    def evaluate(self, entry: ConfigEntry) -> List[Violation]:
        if entry.value.strip().lower() != "false":
            return []
        return [self.create_violation(
            entry,
            message="Security headers (CSP, HSTS, X-Frame-Options) are disabled.",
            suggestion=f"Set {entry.key}=true and use helmet() middleware",
        )]
