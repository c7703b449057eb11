"""
Rule engine and scan orchestration.

``execute_rules`` is the pure evaluation step: entries in, violations out.
``ScanEngine`` wraps it with file discovery, concurrent file reading,
policy loading and timing to produce a ScanResult.
"""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Set
import logging
import threading
import time

from configguard.config import ScanOptions
from configguard.core.entries import ConfigEntry, ConfigFileFormat, ParsedConfigFile
from configguard.core.findings import ScanResult, ScanStatistics, Violation, create_scan_result
from configguard.core.platforms import detect_platform
from configguard.core.policy import compile_policy, find_and_load_policy, load_policy_file
from configguard.core.rules import Rule, RuleRegistry, get_builtin_rules
from configguard.discovery import DiscoveredFile, discover_config_files, read_file_content
from configguard.errors import PolicyError
from configguard.parsers import parse_config_file


logger = logging.getLogger(__name__)


@dataclass
class RuleExecutionResult:
    violations: List[Violation] = field(default_factory=list)
    rules_executed: int = 0
    entries_evaluated: int = 0
    errors: List[str] = field(default_factory=list)


def execute_rules(entries: Iterable[ConfigEntry], registry: RuleRegistry) -> RuleExecutionResult:
    """
    Evaluate every applicable rule against every entry.

    Violations keep entry order. A rule that raises is logged and skipped
    for that entry; the rest of the scan is unaffected.
    """
    result = RuleExecutionResult()
    executed: Set[str] = set()

    for entry in entries:
        result.entries_evaluated += 1
        for rule in registry.get_rules_for_key(entry.key):
            executed.add(rule.rule_id)
            try:
                result.violations.extend(rule.evaluate(entry))
            except Exception as e:
                message = (f"Rule {rule.rule_id} failed on {entry.key} "
                           f"in {entry.source_file}: {e}")
                logger.warning(message)
                result.errors.append(message)

    result.rules_executed = len(executed)
    return result


class ScanEngine:
    """
    Runs a complete scan.

    The engine:
    1. Discovers config files under the target directory
    2. Reads and parses them with a bounded worker pool
    3. Builds a registry for the profile from built-in and policy rules
    4. Evaluates the merged entries and returns a ScanResult

    Parsed files are sorted by path before evaluation, so the worker pool
    never changes the output order. Each call to ``scan`` builds its own
    registry; nothing is shared between scans.
    """

    def __init__(
        self,
        options: Optional[ScanOptions] = None,
        rules: Optional[Iterable[Rule]] = None,
    ):
        self.options = options or ScanOptions()
        self.rules = list(rules) if rules is not None else get_builtin_rules()
        self.errors: List[str] = []
        self._cancel_event = threading.Event()

    @property
    def max_workers(self) -> int:
        return self.options.max_workers

    def cancel(self):
        """Let files already being read finish, and start no new ones."""
        self._cancel_event.set()

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

    def _record_error(self, message: str):
        logger.warning(message)
        self.errors.append(message)

    def load_policy_rules(self) -> List[Rule]:
        """
        Compile the policy for this scan.

        An explicitly configured policy file must load; failures raise
        PolicyError. An auto-discovered policy that fails to load is
        reported and skipped.
        """
        if self.options.policy_file:
            return compile_policy(load_policy_file(self.options.policy_file))

        try:
            policy = find_and_load_policy(self.options.target_directory)
        except PolicyError as e:
            self._record_error(f"Skipping policy: {e}")
            return []
        if policy is None:
            return []
        return compile_policy(policy)

    def build_registry(self, extra_rules: Iterable[Rule] = ()) -> RuleRegistry:
        registry = RuleRegistry(self.options.profile)
        registry.register_all(self.rules)
        registry.register_all(extra_rules)
        logger.debug("Registered %d rules for profile %s", registry.size, registry.profile.value)
        return registry

    def discover_files(self) -> List[DiscoveredFile]:
        return discover_config_files(
            self.options.target_directory,
            exclude_dirs=self.options.exclude_dirs,
            max_depth=self.options.max_depth,
        )

    def read_and_parse(self, discovered: DiscoveredFile) -> Optional[ParsedConfigFile]:
        """Read and parse one file. Returns None if cancelled or unreadable."""
        if self._cancel_event.is_set():
            return None
        try:
            content = read_file_content(discovered.file_path)
        except OSError as e:
            self._record_error(f"Error reading {discovered.file_path}: {e}")
            return None
        try:
            return parse_config_file(content, discovered.file_path, discovered.format)
        except Exception as e:
            # Reported like any other parse failure so one file never aborts the scan
            message = f"Error parsing {discovered.file_path}: {e}"
            logger.warning(message)
            return ParsedConfigFile(
                file_path=discovered.file_path,
                format=discovered.format,
                entries=[],
                warnings=[message],
            )

    def parse_files(self, files: List[DiscoveredFile]) -> List[ParsedConfigFile]:
        """Read and parse ``files`` concurrently; results are sorted by path."""
        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            results = list(executor.map(self.read_and_parse, files))

        parsed = [p for p in results if p is not None]
        parsed.sort(key=lambda p: p.file_path)
        for parsed_file in parsed:
            self.errors.extend(parsed_file.warnings)
        return parsed

    def scan(self, files: Optional[List[DiscoveredFile]] = None) -> ScanResult:
        """
        Scan the configured target directory, or an explicit file list.

        Raises:
            PolicyError: if an explicitly configured policy cannot be loaded.
            DuplicateRuleError: if two applicable rules share an id.
        """
        start = time.monotonic()
        self.errors = []
        self._cancel_event.clear()

        registry = self.build_registry(self.load_policy_rules())

        if files is None:
            files = self.discover_files()
        logger.info("Found %d config files (detected platform: %s)",
                    len(files), detect_platform(f.file_path for f in files).value)
        parsed_files = self.parse_files(files)

        entries = [entry for parsed in parsed_files for entry in parsed.entries]
        execution = execute_rules(entries, registry)
        self.errors.extend(execution.errors)

        statistics = ScanStatistics(
            files_scanned=len(parsed_files),
            entries_evaluated=execution.entries_evaluated,
            rules_executed=execution.rules_executed,
            duration_ms=int((time.monotonic() - start) * 1000),
        )
        return create_scan_result(
            target_directory=self.options.target_directory,
            environment=self.options.environment,
            profile=self.options.profile,
            violations=execution.violations,
            statistics=statistics,
            errors=self.errors,
        )

    def scan_content(
        self,
        content: str,
        file_format: ConfigFileFormat,
        file_path: str = "<memory>",
        extra_rules: Iterable[Rule] = (),
    ) -> ScanResult:
        """Scan in-memory config text without touching the filesystem."""
        start = time.monotonic()
        parsed = parse_config_file(content, file_path, file_format)
        execution = execute_rules(parsed.entries, self.build_registry(extra_rules))

        statistics = ScanStatistics(
            files_scanned=1,
            entries_evaluated=execution.entries_evaluated,
            rules_executed=execution.rules_executed,
            duration_ms=int((time.monotonic() - start) * 1000),
        )
        return create_scan_result(
            target_directory=self.options.target_directory,
            environment=self.options.environment,
            profile=self.options.profile,
            violations=execution.violations,
            statistics=statistics,
            errors=parsed.warnings + execution.errors,
        )
