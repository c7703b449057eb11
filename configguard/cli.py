"""
Command-line interface for configguard.

Exit codes:
    0  scan passed
    1  violations at or above the --fail-on severity
    2  invalid arguments
    3  scan error (unreadable config, broken policy, ...)
"""

import argparse
import logging
import os
import sys
from typing import List, Optional

from configguard import __version__
from configguard.config import OutputFormat, ScanOptions, load_scan_options, parse_output_format
from configguard.core.aggregation import has_violations_above_threshold
from configguard.core.engine import ScanEngine
from configguard.core.findings import parse_severity
from configguard.core.platforms import parse_profile
from configguard.core.rules import RuleRegistry, get_builtin_rules
from configguard.formatters import get_formatter


logger = logging.getLogger(__name__)

EXIT_SUCCESS = 0
EXIT_VIOLATIONS_FOUND = 1
EXIT_INVALID_ARGUMENTS = 2
EXIT_ERROR = 3


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="configguard",
        description="Scan application configuration files for settings that are unsafe in production.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  configguard scan                              # Scan the current directory (Spring profile)
  configguard scan -d ./service -p all          # Every platform's rules
  configguard scan -p node -f CRITICAL          # Fail only on CRITICAL
  configguard scan --format sarif -o out.sarif  # SARIF output to file
  configguard scan --policy acme-policy.yml     # Add organization policy rules
  configguard list-rules -p dotnet              # Show the .NET rule set
        """
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Scan command
    scan_parser = subparsers.add_parser("scan", help="Scan configuration files")
    scan_parser.add_argument(
        "-d", "--directory",
        default=".",
        help="Directory to scan (default: current directory)",
    )
    scan_parser.add_argument(
        "-e", "--env",
        help="Environment label shown in reports (default: prod)",
    )
    scan_parser.add_argument(
        "-p", "--profile",
        help="Rule profile: spring, node, dotnet or all (default: spring)",
    )
    scan_parser.add_argument(
        "-f", "--fail-on",
        help="Lowest severity that fails the scan (default: HIGH)",
    )
    scan_parser.add_argument(
        "--format",
        choices=[f.value for f in OutputFormat],
        help="Output format (default: console)",
    )
    scan_parser.add_argument(
        "-o", "--output",
        help="Output file (default: stdout)",
    )
    scan_parser.add_argument(
        "--policy",
        help="Policy YAML file (default: auto-discover in the scanned directory)",
    )
    scan_parser.add_argument(
        "-c", "--config",
        help="Path to a configguard configuration file",
    )
    scan_parser.add_argument(
        "-j", "--jobs",
        type=int,
        help="Number of parallel file readers (default: 4)",
    )
    scan_parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Verbose output",
    )
    scan_parser.add_argument(
        "--no-color",
        action="store_true",
        help="Disable colored output",
    )

    # List-rules command
    rules_parser = subparsers.add_parser("list-rules", help="List built-in rules")
    rules_parser.add_argument(
        "-p", "--profile",
        default="all",
        help="Only list rules active for this profile (default: all)",
    )

    return parser


def setup_logging(verbose: bool):
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def build_scan_options(args: argparse.Namespace) -> ScanOptions:
    """
    Merge the config file (if any) with command-line flags.

    Raises:
        ValueError: for an invalid profile, severity, format or job count.
    """
    options = load_scan_options(args.config, start_dir=args.directory)
    options.target_directory = args.directory

    if args.env:
        options.environment = args.env
    if args.profile:
        options.profile = parse_profile(args.profile)
    if args.fail_on:
        options.fail_on_severity = parse_severity(args.fail_on)
    if args.format:
        options.output_format = parse_output_format(args.format)
    if args.output:
        options.output_file = args.output
    if args.policy:
        options.policy_file = args.policy
    if args.jobs is not None:
        if args.jobs < 1:
            raise ValueError(f"--jobs must be at least 1, got {args.jobs}")
        options.max_workers = args.jobs
    if args.verbose:
        options.verbose = True
    if args.no_color:
        options.use_color = False
    return options


def cmd_scan(args: argparse.Namespace) -> int:
    """Execute the scan command."""
    if not os.path.isdir(args.directory):
        print(f"Error: directory not found: {args.directory}", file=sys.stderr)
        return EXIT_INVALID_ARGUMENTS

    try:
        options = build_scan_options(args)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_INVALID_ARGUMENTS

    setup_logging(options.verbose)
    logger.info("Scanning %s (profile=%s, env=%s)",
                os.path.abspath(options.target_directory),
                options.profile.value, options.environment)

    engine = ScanEngine(options)
    result = engine.scan()

    if options.output_format is OutputFormat.SARIF:
        formatter = get_formatter("sarif", rules=engine.rules)
    elif options.output_format is OutputFormat.JSON:
        formatter = get_formatter("json", fail_on=options.fail_on_severity)
    else:
        formatter = get_formatter(
            "console",
            use_color=options.use_color and not options.output_file,
            verbose=options.verbose,
            fail_on=options.fail_on_severity,
        )
    output = formatter.format_result(result)

    if options.output_file:
        with open(options.output_file, "w", encoding="utf-8") as f:
            f.write(output)
        print(f"Results written to {options.output_file}")
    else:
        print(output)

    if has_violations_above_threshold(result, options.fail_on_severity):
        return EXIT_VIOLATIONS_FOUND
    return EXIT_SUCCESS


def cmd_list_rules(args: argparse.Namespace) -> int:
    """Execute the list-rules command."""
    try:
        profile = parse_profile(args.profile)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_INVALID_ARGUMENTS

    registry = RuleRegistry(profile)
    registry.register_all(get_builtin_rules())

    print(f"\nRules for profile '{profile.value}'")
    print("=" * 78)
    for rule in registry.get_all_rules():
        meta = rule.metadata
        platforms = ", ".join(sorted(p.value for p in meta.platforms)) or "any"
        print(f"  {meta.rule_id:<36} {meta.severity.label:<9} {platforms}")
        print(f"      {meta.description}")

    print(f"\nTotal: {registry.size} rules")
    return EXIT_SUCCESS


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI."""
    parser = create_parser()
    try:
        args = parser.parse_args(argv)
    except SystemExit as e:
        # argparse exits with 2 on usage errors and 0 for --help/--version
        return e.code if isinstance(e.code, int) else EXIT_INVALID_ARGUMENTS

    if args.command is None:
        parser.print_help()
        return EXIT_SUCCESS

    try:
        if args.command == "scan":
            return cmd_scan(args)
        elif args.command == "list-rules":
            return cmd_list_rules(args)
        else:
            parser.print_help()
            return EXIT_SUCCESS

    except KeyboardInterrupt:
        print("\nScan interrupted.", file=sys.stderr)
        return 130
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        if os.environ.get("DEBUG"):
            raise
        return EXIT_ERROR


if __name__ == "__main__":
    sys.exit(main())
