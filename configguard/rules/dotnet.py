"""
ASP.NET Core configuration rules.

Keys follow appsettings.json nesting (``Logging.LogLevel.Default``).
"""

import re
from typing import List

from configguard.core.entries import ConfigEntry
from configguard.core.findings import Severity, Violation
from configguard.core.platforms import Platform
from configguard.core.rules import WILDCARD_KEY, Rule, RuleMetadata, builtin


DOTNET_ONLY = frozenset({Platform.DOTNET})


@builtin
class AspNetCoreEnvironmentRule(Rule):
    """
    ASPNETCORE_ENVIRONMENT set to a development value.

    Targets both the literal key (appsettings, properties) and the folded
    ``aspnetcore.environment`` produced by the env parser.
    """

    DEV_VALUES = frozenset({"development", "dev", "local", "test"})

    @property
    def metadata(self) -> RuleMetadata:
        return RuleMetadata(
            rule_id="ASPNETCORE_ENVIRONMENT_DEVELOPMENT",
            name="ASP.NET Core Development Environment",
            description="ASPNETCORE_ENVIRONMENT enables development behaviour.",
            severity=Severity.HIGH,
            target_keys=frozenset({"ASPNETCORE_ENVIRONMENT", "aspnetcore.environment"}),
            platforms=DOTNET_ONLY,
            tags=["environment"],
        )

    def evaluate(self, entry: ConfigEntry) -> List[Violation]:
        if entry.value.strip().lower() not in self.DEV_VALUES:
            return []
        return [self.create_violation(
            entry,
            message=f"ASPNETCORE_ENVIRONMENT is {entry.value.strip()}, which enables "
                    "developer exception pages and detailed errors.",
            suggestion="Set ASPNETCORE_ENVIRONMENT=Production",
        )]


@builtin
class DotNetDetailedErrorsRule(Rule):

    @property
    def metadata(self) -> RuleMetadata:
        return RuleMetadata(
            rule_id="DOTNET_DETAILED_ERRORS_ENABLED",
            name="Detailed Errors Enabled",
            description="Detailed error output or debug logging is enabled.",
            severity=Severity.HIGH,
            target_keys=frozenset({
                "customErrors",
                "Logging.LogLevel.Default",
                "Logging.LogLevel.Microsoft",
                "DetailedErrors",
            }),
            platforms=DOTNET_ONLY,
            tags=["information-disclosure", "logging"],
        )

    def evaluate(self, entry: ConfigEntry) -> List[Violation]:
        value = entry.value.strip().lower()

        if entry.key == "customErrors" and value == "off":
            return [self.create_violation(
                entry,
                message="customErrors is Off; detailed errors are shown to remote users.",
                suggestion="Set customErrors mode to On or RemoteOnly",
            )]

        if "LogLevel" in entry.key and value in ("debug", "trace"):
            return [self.create_violation(
                entry,
                message=f"{entry.key} is {entry.value.strip()}. Debug logging can record "
                        "sensitive request data.",
                suggestion=f"Set {entry.key} to Information or Warning",
                severity=Severity.MEDIUM,
            )]

        if entry.key == "DetailedErrors" and value in ("true", "1"):
            return [self.create_violation(
                entry,
                message="DetailedErrors is enabled; exception details are returned to clients.",
                suggestion="Set DetailedErrors to false in production",
            )]

        return []


@builtin
class DotNetConnectionStringExposedRule(Rule):
    """Plain-text connection strings, checked on every key."""

    MARKERS = ("ConnectionStrings", "connectionString", "Data Source", "Server=", "Database=")

    WEAK_PASSWORD_PATTERNS = [
        re.compile(r"password=.*;", re.IGNORECASE),
        re.compile(r"pwd=.*;", re.IGNORECASE),
        re.compile(r"password=(admin|root|sa|password|123)", re.IGNORECASE),
        re.compile(r"Integrated Security=false", re.IGNORECASE),
    ]

    @property
    def metadata(self) -> RuleMetadata:
        return RuleMetadata(
            rule_id="DOTNET_CONNECTION_STRING_EXPOSED",
            name="Connection String Exposed",
            description="A database connection string with credentials is stored in config.",
            severity=Severity.CRITICAL,
            target_keys=frozenset({WILDCARD_KEY}),
            platforms=DOTNET_ONLY,
            tags=["secrets", "database"],
        )

    def evaluate(self, entry: ConfigEntry) -> List[Violation]:
        key_matches = any(marker in entry.key for marker in self.MARKERS)
        value_matches = any(marker in entry.value for marker in self.MARKERS)
        if not key_matches and not value_matches:
            return []

        has_password = any(p.search(entry.value) for p in self.WEAK_PASSWORD_PATTERNS)
        if not (has_password or key_matches):
            return []
        return [self.create_violation(
            entry,
            message=f'Connection string "{entry.key}" is stored in plain text and may '
                    "contain database credentials.",
            suggestion="Move connection strings to user secrets, environment variables "
                       "or Azure Key Vault and prefer managed identities",
            value="***REDACTED***",
        )]


@builtin
class DotNetDeveloperExceptionPageRule(Rule):

    @property
    def metadata(self) -> RuleMetadata:
        return RuleMetadata(
            rule_id="DOTNET_DEVELOPER_EXCEPTION_PAGE",
            name="Developer Exception Page Enabled",
            description="The developer exception page is enabled.",
            severity=Severity.HIGH,
            target_keys=frozenset({"UseDeveloperExceptionPage", "DeveloperExceptionPage"}),
            platforms=DOTNET_ONLY,
            tags=["information-disclosure"],
        )

    def evaluate(self, entry: ConfigEntry) -> List[Violation]:
        if entry.value.strip().lower() not in ("true", "1"):
            return []
        return [self.create_violation(
            entry,
            message="Developer exception page is enabled; stack traces, source snippets "
                    "and environment variables are shown to users.",
            suggestion='Use app.UseExceptionHandler("/Error") outside the Development environment',
        )]


@builtin
class DotNetHttpsRedirectionDisabledRule(Rule):

    @property
    def metadata(self) -> RuleMetadata:
        return RuleMetadata(
            rule_id="DOTNET_HTTPS_REDIRECTION_DISABLED",
            name="HTTPS Redirection Disabled",
            description="HTTPS redirection or enforcement is turned off.",
            severity=Severity.HIGH,
            target_keys=frozenset({"UseHttpsRedirection", "RequireHttps", "HttpsRedirection"}),
            platforms=DOTNET_ONLY,
            tags=["tls"],
        )

    def evaluate(self, entry: ConfigEntry) -> List[Violation]:
        if entry.value.strip().lower() not in ("false", "0"):
            return []
        return [self.create_violation(
            entry,
            message="HTTPS redirection is disabled; clients may talk to the app over "
                    "plain HTTP.",
            suggestion="Enable app.UseHttpsRedirection() and HSTS in production",
        )]
