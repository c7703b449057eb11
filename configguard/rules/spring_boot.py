"""
Spring Boot configuration rules.

Cover actuator exposure, logging levels, error pages, session cookies,
CSRF, active profiles and Hibernate schema management.
"""

from typing import List

from configguard.core.entries import ConfigEntry
from configguard.core.findings import Severity, Violation
from configguard.core.platforms import Platform
from configguard.core.rules import Rule, RuleMetadata, builtin


SPRING_ONLY = frozenset({Platform.SPRING_BOOT})


def _normalized(entry: ConfigEntry) -> str:
    return entry.value.strip().lower()


def _split_list(value: str) -> List[str]:
    return [part.strip().lower() for part in value.split(",") if part.strip()]


@builtin
class ActuatorEndpointsExposedRule(Rule):
    """Flags ``management.endpoints.web.exposure.include`` containing ``*``."""

    @property
    def metadata(self) -> RuleMetadata:
        return RuleMetadata(
            rule_id="ACTUATOR_ENDPOINTS_EXPOSED",
            name="Actuator Endpoints Exposed",
            description="All Spring Boot actuator endpoints are exposed over HTTP, "
                        "including env, heapdump and configprops.",
            severity=Severity.HIGH,
            target_keys=frozenset({"management.endpoints.web.exposure.include"}),
            platforms=SPRING_ONLY,
            tags=["actuator", "information-disclosure"],
        )

    def evaluate(self, entry: ConfigEntry) -> List[Violation]:
        if "*" not in _split_list(entry.value):
            return []
        return [self.create_violation(
            entry,
            message="All actuator endpoints are exposed over HTTP. Endpoints such as "
                    "env and heapdump can leak credentials and memory contents.",
            suggestion="Expose only what is needed, for example "
                       "management.endpoints.web.exposure.include=health,info",
        )]


@builtin
class DebugLoggingEnabledRule(Rule):

    DANGEROUS_LEVELS = frozenset({"debug", "trace", "all"})

    @property
    def metadata(self) -> RuleMetadata:
        return RuleMetadata(
            rule_id="DEBUG_LOGGING_ENABLED",
            name="Debug Logging Enabled",
            description="Root logger runs at DEBUG or TRACE level in production.",
            severity=Severity.HIGH,
            target_keys=frozenset({"logging.level.root"}),
            platforms=SPRING_ONLY,
            tags=["logging"],
        )

    def evaluate(self, entry: ConfigEntry) -> List[Violation]:
        if _normalized(entry) not in self.DANGEROUS_LEVELS:
            return []
        return [self.create_violation(
            entry,
            message=f"Root logging level is {entry.value.strip().upper()}. Verbose logs "
                    "may record request payloads, tokens and SQL parameters.",
            suggestion="Set logging.level.root to INFO or WARN in production",
        )]


@builtin
class HealthDetailsExposedRule(Rule):

    @property
    def metadata(self) -> RuleMetadata:
        return RuleMetadata(
            rule_id="HEALTH_DETAILS_EXPOSED",
            name="Health Details Exposed",
            description="Health endpoint shows component details to every caller.",
            severity=Severity.MEDIUM,
            target_keys=frozenset({"management.endpoint.health.show-details"}),
            platforms=SPRING_ONLY,
            tags=["actuator", "information-disclosure"],
        )

    def evaluate(self, entry: ConfigEntry) -> List[Violation]:
        if _normalized(entry) != "always":
            return []
        return [self.create_violation(
            entry,
            message="Health endpoint details are shown to unauthenticated users, "
                    "revealing database, disk and downstream service information.",
            suggestion="Set management.endpoint.health.show-details to never or when-authorized",
        )]


@builtin
class HibernateDdlAutoUnsafeRule(Rule):
    """
    Flags schema auto-management in production.

    Not tied to a platform: any JPA application can carry this key.
    ``create`` and ``create-drop`` wipe data and are reported as CRITICAL.
    """

    DESTRUCTIVE = frozenset({"create", "create-drop"})
    UNSAFE = DESTRUCTIVE | {"update"}

    @property
    def metadata(self) -> RuleMetadata:
        return RuleMetadata(
            rule_id="HIBERNATE_DDL_AUTO_UNSAFE",
            name="Unsafe Hibernate DDL Auto",
            description="Hibernate modifies the database schema on startup.",
            severity=Severity.HIGH,
            target_keys=frozenset({"spring.jpa.hibernate.ddl-auto"}),
            tags=["database", "data-loss"],
        )

    def evaluate(self, entry: ConfigEntry) -> List[Violation]:
        value = _normalized(entry)
        if value not in self.UNSAFE:
            return []

        if value in self.DESTRUCTIVE:
            return [self.create_violation(
                entry,
                message=f"spring.jpa.hibernate.ddl-auto={value} drops and recreates the "
                        "schema on startup, destroying production data.",
                suggestion="Use validate or none and manage schema changes with "
                           "Flyway or Liquibase",
                severity=Severity.CRITICAL,
            )]
        return [self.create_violation(
            entry,
            message="spring.jpa.hibernate.ddl-auto=update alters the schema automatically "
                    "and can leave it in an inconsistent state.",
            suggestion="Use validate or none and manage schema changes with "
                       "Flyway or Liquibase",
        )]


@builtin
class SpringProfileDevActiveRule(Rule):
    """Reports at most one violation even when several dev profiles are listed."""

    DEV_PROFILES = frozenset({"dev", "development", "test", "testing", "local"})

    @property
    def metadata(self) -> RuleMetadata:
        return RuleMetadata(
            rule_id="SPRING_PROFILE_DEV_ACTIVE",
            name="Development Profile Active",
            description="A development or test Spring profile is active.",
            severity=Severity.HIGH,
            target_keys=frozenset({"spring.profiles.active"}),
            platforms=SPRING_ONLY,
            tags=["profiles"],
        )

    def evaluate(self, entry: ConfigEntry) -> List[Violation]:
        active = [p for p in _split_list(entry.value) if p in self.DEV_PROFILES]
        if not active:
            return []
        return [self.create_violation(
            entry,
            message=f"Non-production Spring profile active: {', '.join(active)}. "
                    "Development profiles often relax security and enable debug tooling.",
            suggestion="Activate only production profiles, e.g. spring.profiles.active=prod",
        )]


@builtin
class SpringCsrfDisabledRule(Rule):

    @property
    def metadata(self) -> RuleMetadata:
        return RuleMetadata(
            rule_id="SPRING_CSRF_DISABLED",
            name="CSRF Protection Disabled",
            description="Spring Security CSRF protection is turned off.",
            severity=Severity.HIGH,
            target_keys=frozenset({"spring.security.csrf.enabled"}),
            platforms=SPRING_ONLY,
            tags=["csrf", "web"],
        )

    def evaluate(self, entry: ConfigEntry) -> List[Violation]:
        if _normalized(entry) != "false":
            return []
        return [self.create_violation(
            entry,
            message="CSRF protection is disabled, allowing cross-site request forgery "
                    "against authenticated users.",
            suggestion="Remove spring.security.csrf.enabled=false; disable CSRF only for "
                       "stateless token-authenticated APIs",
        )]


class _CookieFlagRule(Rule):
    """Shared check for session cookie flags explicitly set to false."""

    FLAG = ""

    def _target_keys(self):
        return frozenset({
            f"server.servlet.session.cookie.{self.FLAG}",
            f"server.session.cookie.{self.FLAG}",
        })

    def evaluate(self, entry: ConfigEntry) -> List[Violation]:
        if _normalized(entry) != "false":
            return []
        return [self.create_violation(
            entry,
            message=self._message(),
            suggestion=f"Set {entry.key}=true",
        )]

    def _message(self) -> str:
        raise NotImplementedError


@builtin
class SpringHttpOnlyCookieDisabledRule(_CookieFlagRule):

    FLAG = "http-only"

    @property
    def metadata(self) -> RuleMetadata:
        return RuleMetadata(
            rule_id="SPRING_HTTP_ONLY_COOKIE_DISABLED",
            name="HttpOnly Cookie Disabled",
            description="Session cookie is readable from JavaScript.",
            severity=Severity.HIGH,
            target_keys=self._target_keys(),
            platforms=SPRING_ONLY,
            tags=["cookies", "xss"],
        )

    def _message(self) -> str:
        return ("Session cookie HttpOnly flag is disabled; any XSS can steal "
                "the session id.")


@builtin
class SpringSecureCookieDisabledRule(_CookieFlagRule):

    FLAG = "secure"

    @property
    def metadata(self) -> RuleMetadata:
        return RuleMetadata(
            rule_id="SPRING_SECURE_COOKIE_DISABLED",
            name="Secure Cookie Disabled",
            description="Session cookie may be sent over plain HTTP.",
            severity=Severity.HIGH,
            target_keys=self._target_keys(),
            platforms=SPRING_ONLY,
            tags=["cookies", "tls"],
        )

    def _message(self) -> str:
        return ("Session cookie Secure flag is disabled; the session id can be "
                "sent over unencrypted connections.")


@builtin
class SpringStackTraceExposedRule(Rule):

    EXPOSING_VALUES = frozenset({"always", "on-param", "true"})

    @property
    def metadata(self) -> RuleMetadata:
        return RuleMetadata(
            rule_id="SPRING_STACK_TRACE_EXPOSED",
            name="Stack Trace Exposed",
            description="Error responses include stack traces or exception details.",
            severity=Severity.MEDIUM,
            target_keys=frozenset({
                "server.error.include-stacktrace",
                "server.error.include-exception",
                "server.error.include-message",
            }),
            platforms=SPRING_ONLY,
            tags=["information-disclosure"],
        )

    def evaluate(self, entry: ConfigEntry) -> List[Violation]:
        if _normalized(entry) not in self.EXPOSING_VALUES:
            return []
        detail = entry.key.rsplit(".", 1)[-1].replace("include-", "")
        return [self.create_violation(
            entry,
            message=f"Error responses include the {detail}, exposing internal "
                    "implementation details to clients.",
            suggestion=f"Set {entry.key} to never",
        )]
