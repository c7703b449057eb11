"""
Tests for the scan engine, discovery, configuration, formatters and CLI.
"""

import json
import re
import pytest
import os
import sys

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from configguard.cli import (
    EXIT_ERROR, EXIT_INVALID_ARGUMENTS, EXIT_SUCCESS, EXIT_VIOLATIONS_FOUND, main
)
from configguard.config import OutputFormat, ScanOptions, load_config, load_scan_options
from configguard.core.engine import ScanEngine
from configguard.core.entries import ConfigFileFormat
from configguard.core.findings import Severity
from configguard.core.platforms import ScanProfile
from configguard.discovery import DiscoveredFile, detect_file_format, discover_config_files
from configguard.errors import ConfigurationError, PolicyError
from configguard.formatters import CLIFormatter, JSONFormatter, SARIFFormatter, get_formatter


DEBUG_POLICY = """
policies:
  name: acme
  version: "1"
  rules:
    - id: NO_DEBUG
      description: No debug loggers
      key: logging.level.*
      forbiddenValues: [debug]
      message: Debug logging is forbidden
"""


def write(path, content):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


@pytest.fixture
def project(tmp_path):
    """A small multi-platform project with known problems."""
    write(tmp_path / "application.yml",
          "spring:\n  profiles:\n    active: dev\n"
          "management:\n  endpoints:\n    web:\n      exposure:\n        include: '*'\n")
    write(tmp_path / "service" / "application-prod.properties",
          "spring.jpa.hibernate.ddl-auto=create-drop\nserver.port=8443\n")
    write(tmp_path / ".env", "NODE_ENV=development\nJWT_SECRET=shortjwt\n")
    write(tmp_path / "api" / "appsettings.json",
          '{"DetailedErrors": true, "Logging": {"LogLevel": {"Default": "Debug"}}}')
    write(tmp_path / "node_modules" / "lib" / ".env", "NODE_ENV=development\n")
    return tmp_path


def rule_ids(result):
    return {v.rule_id for v in result.violations}


class TestScanEngine:
    """Tests for the main scan engine."""

    def test_engine_defaults(self):
        """A default engine uses the built-in rules and the Spring profile."""
        engine = ScanEngine()
        assert len(engine.rules) == 27
        assert engine.options.profile == ScanProfile.SPRING
        assert engine.max_workers == 4

    def test_scan_spring_profile(self, project):
        """Only Spring and cross-platform rules fire under the Spring profile."""
        result = ScanEngine(ScanOptions(target_directory=str(project))).scan()

        assert rule_ids(result) == {
            "SPRING_PROFILE_DEV_ACTIVE",
            "ACTUATOR_ENDPOINTS_EXPOSED",
            "HIBERNATE_DDL_AUTO_UNSAFE",
        }
        assert result.statistics.files_scanned == 4
        assert result.max_severity == Severity.CRITICAL
        assert result.errors == []

    def test_excluded_directories_are_skipped(self, project):
        result = ScanEngine(ScanOptions(target_directory=str(project), profile="node")).scan()

        files = {v.file_path for v in result.violations}
        assert not any("node_modules" in f for f in files)
        assert {"NODE_ENV_NOT_PRODUCTION", "JWT_WEAK_SECRET"} <= rule_ids(result)

    def test_scan_all_profile(self, project):
        result = ScanEngine(ScanOptions(target_directory=str(project), profile="all")).scan()

        assert {
            "SPRING_PROFILE_DEV_ACTIVE",
            "NODE_ENV_NOT_PRODUCTION",
            "DOTNET_DETAILED_ERRORS_ENABLED",
        } <= rule_ids(result)

    def test_output_independent_of_worker_count(self, project):
        """Concurrent reads never change the violation order."""
        def run(workers):
            options = ScanOptions(target_directory=str(project), profile="all", max_workers=workers)
            result = ScanEngine(options).scan()
            return [v.to_dict() for v in result.violations]

        assert run(1) == run(8)

    def test_policy_auto_discovery(self, tmp_path):
        """A conventional policy file in the target directory is applied."""
        write(tmp_path / ".prod-analyzer-policy.yml", DEBUG_POLICY)
        write(tmp_path / "application.properties", "logging.level.com.acme=DEBUG\n")

        result = ScanEngine(ScanOptions(target_directory=str(tmp_path))).scan()

        assert [v.rule_id for v in result.violations] == ["POLICY:NO_DEBUG"]
        assert result.violations[0].message == "[acme] Debug logging is forbidden"
        assert result.violations[0].line_number == 1

    def test_broken_auto_policy_is_skipped(self, tmp_path):
        """A discovered policy that fails validation is reported, not fatal."""
        write(tmp_path / ".prod-analyzer-policy.yml", "other: 1\n")
        write(tmp_path / "application.properties", "spring.profiles.active=dev\n")

        result = ScanEngine(ScanOptions(target_directory=str(tmp_path))).scan()

        assert rule_ids(result) == {"SPRING_PROFILE_DEV_ACTIVE"}
        assert any("Skipping policy" in e for e in result.errors)

    def test_explicit_bad_policy_raises(self, tmp_path):
        """An explicitly configured policy must load."""
        bad = write(tmp_path / "policy.yml", "policies: {}\n")
        options = ScanOptions(target_directory=str(tmp_path), policy_file=str(bad))

        with pytest.raises(PolicyError):
            ScanEngine(options).scan()

    def test_parse_failure_reported_as_warning(self, tmp_path):
        """One broken file does not stop the scan."""
        write(tmp_path / "application.yml", "a: b: c\n")
        write(tmp_path / "application.properties", "spring.profiles.active=dev\n")

        result = ScanEngine(ScanOptions(target_directory=str(tmp_path))).scan()

        assert rule_ids(result) == {"SPRING_PROFILE_DEV_ACTIVE"}
        assert len(result.errors) == 1
        assert "application.yml" in result.errors[0]

    def test_pathological_files_do_not_abort_scan(self, tmp_path):
        """A self-referencing YAML alias and deeply nested JSON are skipped with warnings."""
        write(tmp_path / "application.yml", "a: &x\n  - *x\n")
        write(tmp_path / "appsettings.json", "[" * 100000)
        write(tmp_path / "application.properties", "spring.profiles.active=dev\n")

        result = ScanEngine(ScanOptions(target_directory=str(tmp_path))).scan()

        assert rule_ids(result) == {"SPRING_PROFILE_DEV_ACTIVE"}
        assert len(result.errors) == 2
        assert any("application.yml" in e for e in result.errors)
        assert any("appsettings.json" in e for e in result.errors)

    def test_parser_exception_is_isolated_per_file(self, tmp_path, monkeypatch):
        """An unexpected parser error becomes a warning for that file only."""
        import configguard.core.engine as engine_module

        real_parse = engine_module.parse_config_file

        def flaky_parse(content, file_path, file_format):
            if file_path.endswith(".yml"):
                raise RuntimeError("parser blew up")
            return real_parse(content, file_path, file_format)

        monkeypatch.setattr(engine_module, "parse_config_file", flaky_parse)
        write(tmp_path / "application.yml", "server:\n  port: 1\n")
        write(tmp_path / "application.properties", "spring.profiles.active=dev\n")

        result = ScanEngine(ScanOptions(target_directory=str(tmp_path), max_workers=2)).scan()

        assert rule_ids(result) == {"SPRING_PROFILE_DEV_ACTIVE"}
        assert len(result.errors) == 1
        assert "parser blew up" in result.errors[0]

    def test_cancelled_engine_reads_nothing(self, tmp_path):
        path = write(tmp_path / "application.properties", "a=1\n")
        engine = ScanEngine()
        engine.cancel()

        assert engine.cancelled
        assert engine.read_and_parse(DiscoveredFile(str(path), ConfigFileFormat.PROPERTIES)) is None

    def test_scan_content(self):
        """In-memory content is scanned without touching the filesystem."""
        engine = ScanEngine(ScanOptions(profile=ScanProfile.NODE))
        result = engine.scan_content("NODE_ENV=development\n", ConfigFileFormat.ENV, ".env")

        assert [v.rule_id for v in result.violations] == ["NODE_ENV_NOT_PRODUCTION"]
        assert result.violations[0].line_number == 1
        assert result.statistics.entries_evaluated == 1

    def test_scan_content_with_extra_rules(self):
        from configguard.core.policy import compile_policy

        engine = ScanEngine()
        result = engine.scan_content(
            "logging.level.root=debug\n", ConfigFileFormat.PROPERTIES,
            extra_rules=compile_policy(DEBUG_POLICY),
        )
        assert rule_ids(result) == {"DEBUG_LOGGING_ENABLED", "POLICY:NO_DEBUG"}


class TestDiscovery:
    """Tests for config file discovery."""

    @pytest.mark.parametrize("name, expected", [
        ("application.yml", ConfigFileFormat.YAML),
        ("APPLICATION-PROD.YAML", ConfigFileFormat.YAML),
        ("bootstrap.properties", ConfigFileFormat.PROPERTIES),
        (".env", ConfigFileFormat.ENV),
        (".env.production", ConfigFileFormat.ENV),
        ("appsettings.Development.json", ConfigFileFormat.JSON),
        ("package.json", ConfigFileFormat.JSON),
        ("README.md", None),
        ("settings.yml", None),
    ])
    def test_detect_file_format(self, name, expected):
        assert detect_file_format(name) == expected

    def test_results_are_sorted(self, project):
        found = discover_config_files(str(project))
        paths = [f.file_path for f in found]

        assert paths == sorted(paths)
        assert len(paths) == 4

    def test_max_depth(self, tmp_path):
        write(tmp_path / "a" / "b" / "application.yml", "x: 1\n")

        assert discover_config_files(str(tmp_path), max_depth=1) == []
        assert len(discover_config_files(str(tmp_path))) == 1

    def test_custom_excludes(self, project):
        found = discover_config_files(str(project), exclude_dirs=["service"])
        names = [os.path.relpath(f.file_path, project.resolve()) for f in found]

        assert os.path.join("node_modules", "lib", ".env") in names
        assert not any(n.startswith("service") for n in names)

    def test_single_file_root(self, tmp_path):
        path = write(tmp_path / "application.properties", "a=1\n")
        found = discover_config_files(str(path))
        assert [f.format for f in found] == [ConfigFileFormat.PROPERTIES]

    def test_missing_directory(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            discover_config_files(str(tmp_path / "missing"))


class TestConfiguration:
    """Tests for scan options and config files."""

    def test_string_fields_are_parsed(self):
        options = ScanOptions(profile="dotnet", fail_on_severity="medium", output_format="sarif")

        assert options.profile == ScanProfile.DOTNET
        assert options.fail_on_severity == Severity.MEDIUM
        assert options.output_format == OutputFormat.SARIF

    def test_invalid_workers(self):
        with pytest.raises(ValueError):
            ScanOptions(max_workers=0)

    def test_from_dict_sections_and_aliases(self):
        options = ScanOptions.from_dict({
            "scan": {"profile": "all", "fail_on": "CRITICAL", "jobs": 8, "exclude": ["vendor"]},
            "output": {"format": "json", "file": "report.json", "color": False},
            "unknown": "ignored",
        })

        assert options.profile == ScanProfile.ALL
        assert options.fail_on_severity == Severity.CRITICAL
        assert options.max_workers == 8
        assert options.exclude_dirs == ["vendor"]
        assert options.output_format == OutputFormat.JSON
        assert options.output_file == "report.json"
        assert options.use_color is False

    def test_to_dict_round_trip(self):
        options = ScanOptions(profile="node", max_workers=2)
        assert ScanOptions.from_dict(options.to_dict()) == options

    def test_load_yaml_and_json(self, tmp_path):
        yaml_path = write(tmp_path / ".configguard.yaml", "scan:\n  profile: node\n")
        json_path = write(tmp_path / "cfg.json", '{"profile": "dotnet"}')

        assert load_config(str(yaml_path)) == {"scan": {"profile": "node"}}
        assert load_config(str(json_path)) == {"profile": "dotnet"}

    def test_invalid_config_file(self, tmp_path):
        path = write(tmp_path / ".configguard.yaml", "- just\n- a list\n")
        with pytest.raises(ConfigurationError):
            load_config(str(path))

    def test_load_scan_options_discovers_file(self, tmp_path):
        write(tmp_path / ".configguard.yml", "scan:\n  profile: all\n  max_workers: 2\n")
        nested = tmp_path / "svc"
        nested.mkdir()

        options = load_scan_options(start_dir=str(nested))

        assert options.profile == ScanProfile.ALL
        assert options.max_workers == 2
        assert options.target_directory == str(nested)

    def test_bad_value_in_config_file(self, tmp_path):
        path = write(tmp_path / "cfg.yaml", "profile: django\n")
        with pytest.raises(ConfigurationError):
            load_scan_options(str(path))


class TestFormatters:
    """Tests for output formatters."""

    @pytest.fixture
    def result(self, project):
        return ScanEngine(ScanOptions(target_directory=str(project))).scan()

    def test_json_output(self, result):
        data = json.loads(JSONFormatter().format_result(result))

        assert data["profile"] == "spring"
        assert data["passed"] is False
        assert data["summary"]["total_violations"] == 3
        assert data["grouped_violations"][0]["rule_id"] == "HIBERNATE_DDL_AUTO_UNSAFE"

    def test_sarif_output(self, result):
        engine = ScanEngine()
        data = json.loads(SARIFFormatter(rules=engine.rules).format_result(result))

        assert data["version"] == "2.1.0"
        run = data["runs"][0]
        assert run["tool"]["driver"]["name"] == "configguard"
        assert len(run["results"]) == 3
        rule_names = {r["id"]: r["name"] for r in run["tool"]["driver"]["rules"]}
        assert rule_names["ACTUATOR_ENDPOINTS_EXPOSED"] == "Actuator Endpoints Exposed"
        assert {r["level"] for r in run["results"]} == {"error"}

    def test_sarif_without_rule_metadata(self, result):
        data = json.loads(SARIFFormatter().format_result(result))
        assert len(data["runs"][0]["tool"]["driver"]["rules"]) == 3

    def test_console_failed(self, result):
        output = CLIFormatter(use_color=False).format_result(result)

        assert "FAILED" in output
        assert "HIBERNATE_DDL_AUTO_UNSAFE" in output
        assert "\033[" not in output

    def test_console_severity_counts_align_with_color(self, result):
        """Colour codes do not count toward the padding of the summary column."""
        formatter = CLIFormatter(use_color=False)
        formatter.use_color = True
        output = formatter.format_result(result)
        assert "\033[" in output

        visible = re.sub(r"\033\[[0-9;]*m", "", output)
        count_lines = [
            line for line in visible.splitlines()
            if re.match(r"^  \[(CRITICAL|HIGH|MEDIUM|LOW|INFO)\]\s+\d+$", line)
        ]
        assert len(count_lines) == 5
        assert {len(line) - len(line.split()[-1]) for line in count_lines} == {15}

    def test_console_verdict_follows_threshold(self, result):
        output = CLIFormatter(use_color=False, fail_on=Severity.CRITICAL).format_result(result)
        # create-drop is critical
        assert "FAILED" in output

        clean = ScanEngine().scan_content("server.port=8443\n", ConfigFileFormat.PROPERTIES)
        assert "PASSED" in CLIFormatter(use_color=False).format_result(clean)

    def test_get_formatter(self):
        assert isinstance(get_formatter("text"), CLIFormatter)
        assert isinstance(get_formatter("JSON"), JSONFormatter)
        with pytest.raises(ValueError):
            get_formatter("xml")


class TestCLI:
    """Tests for the command-line interface."""

    def test_clean_project_passes(self, tmp_path, capsys):
        write(tmp_path / "application.properties", "server.port=8443\n")

        assert main(["scan", "-d", str(tmp_path), "--no-color"]) == EXIT_SUCCESS
        assert "PASSED" in capsys.readouterr().out

    def test_violations_fail(self, tmp_path):
        write(tmp_path / "application.properties", "spring.profiles.active=dev\n")
        assert main(["scan", "-d", str(tmp_path), "--no-color"]) == EXIT_VIOLATIONS_FOUND

    def test_fail_on_threshold(self, tmp_path):
        """A HIGH finding passes when only CRITICAL fails the build."""
        write(tmp_path / "application.properties", "spring.profiles.active=dev\n")
        assert main(["scan", "-d", str(tmp_path), "-f", "critical"]) == EXIT_SUCCESS

    def test_json_report_to_file(self, tmp_path):
        write(tmp_path / "application.properties", "spring.profiles.active=dev\n")
        report = tmp_path / "report.json"

        code = main(["scan", "-d", str(tmp_path), "--format", "json", "-o", str(report)])

        assert code == EXIT_VIOLATIONS_FOUND
        data = json.loads(report.read_text(encoding="utf-8"))
        assert data["violations"][0]["rule_id"] == "SPRING_PROFILE_DEV_ACTIVE"

    def test_missing_directory(self, tmp_path):
        assert main(["scan", "-d", str(tmp_path / "missing")]) == EXIT_INVALID_ARGUMENTS

    @pytest.mark.parametrize("flags", [
        ["-p", "django"],
        ["-f", "severe"],
        ["-j", "0"],
        ["--format", "xml"],
    ])
    def test_invalid_arguments(self, tmp_path, flags):
        assert main(["scan", "-d", str(tmp_path)] + flags) == EXIT_INVALID_ARGUMENTS

    def test_broken_explicit_policy_is_an_error(self, tmp_path):
        assert main(["scan", "-d", str(tmp_path), "--policy", str(tmp_path / "none.yml")]) == EXIT_ERROR

    def test_list_rules(self, capsys):
        assert main(["list-rules", "-p", "node"]) == EXIT_SUCCESS
        output = capsys.readouterr().out

        assert "NODE_ENV_NOT_PRODUCTION" in output
        assert "SPRING_CSRF_DISABLED" not in output
        assert "Total: 14 rules" in output

    def test_no_command_prints_help(self, capsys):
        assert main([]) == EXIT_SUCCESS
        assert "usage" in capsys.readouterr().out.lower()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
