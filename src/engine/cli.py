"""
CLI entry point for the autolint engine.

Examples:
  autolint
  autolint app/ lib/models.rb --format json
  autolint --only Style/RedundantParentheses --fix
  autolint --except Naming --fail-level warning
  autolint --gen-config
"""

import argparse
import logging
import os
import sys
from typing import List, Optional

from . import __version__
from .config import CONFIG_NAME, Config, load_config
from .errors import ConfigError
from .formatter import AVAILABLE_FORMATTERS, TODOFormatter
from .runner import Runner, RunReport
from .types import Severity

logger = logging.getLogger(__name__)


def _rule_list(value: str) -> List[str]:
    return [name.strip() for name in value.split(",") if name.strip()]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="autolint",
        description="Rule-based linter and autocorrector for Ruby-family source",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  autolint app/ --format json
  autolint --only Style/RedundantParentheses --fix
  autolint --except Naming --fail-level warning
        """
    )

    parser.add_argument(
        "paths",
        nargs="*",
        help="Files, directories or globs to inspect (default: Globs from the config)"
    )

    parser.add_argument(
        "--config", "-c",
        help="Path to configuration file (default: nearest .autolint.yml)"
    )

    parser.add_argument(
        "--format", "-f",
        choices=list(AVAILABLE_FORMATTERS),
        help="Output format (default: Formatter.Name from the config, or text)"
    )

    parser.add_argument(
        "--only",
        type=_rule_list,
        help="Run only these rules or groups (comma-separated)"
    )

    parser.add_argument(
        "--except",
        dest="except_rules",
        type=_rule_list,
        help="Disable these rules or groups (comma-separated)"
    )

    parser.add_argument(
        "--fix",
        action="store_true",
        help="Correct issues in place"
    )

    parser.add_argument(
        "--fail-level",
        type=Severity.parse,
        default=Severity.CONVENTION,
        help="Lowest severity that makes the run fail: error, warning or convention (default: convention)"
    )

    parser.add_argument(
        "--jobs", "-j",
        type=int,
        default=0,
        help="Number of parallel jobs (0=auto, 1=sequential, N=parallel)"
    )

    parser.add_argument(
        "--gen-config",
        action="store_true",
        help=f"Write a {CONFIG_NAME} that excludes every file with issues"
    )

    parser.add_argument(
        "--max-iterations",
        type=int,
        help="Maximum correction rounds per file"
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose output"
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"autolint {__version__}"
    )

    return parser


def configure(args: argparse.Namespace) -> Config:
    """Load the config file and apply command-line overrides."""
    config = load_config(args.config)

    if args.paths:
        config.globs = list(args.paths)
    if args.format:
        config.formatter = args.format
    if args.only:
        config.update_rules([rule.full_name for rule in config.rules], enabled=False)
        config.update_rules(args.only, enabled=True)
    if args.except_rules:
        config.update_rules(args.except_rules, enabled=False)
    if args.max_iterations is not None:
        config.max_iterations = args.max_iterations

    return config


def write_corrections(config: Config, report: RunReport) -> int:
    """Write corrected sources back to disk; returns the number of files written."""
    written = 0
    for source_report in report.sources:
        source = source_report.source
        if not source.path or not source.is_corrected:
            continue
        file_path = os.path.join(config.root, source.path)
        with open(file_path, 'w', encoding='utf-8') as f:
            f.write(source.code)
        written += 1
        logger.info(f"Corrected {source.path}")
    return written


def run(args: argparse.Namespace) -> int:
    config = configure(args)
    logger.info(f"Using config: {config.path or 'defaults'}")

    sources = config.sources()
    rules = config.enabled_rules()
    logger.info(f"Running {len(rules)} rules on {len(sources)} files")

    jobs = args.jobs
    if jobs == 0:
        jobs = min(4, len(sources), os.cpu_count() or 1)

    runner = Runner(rules, max_iterations=config.max_iterations, jobs=max(1, jobs))
    report = runner.run(sources, autocorrect=args.fix)

    if args.fix:
        write_corrections(config, report)

    if args.gen_config:
        todo = TODOFormatter(config_path=os.path.join(config.root, CONFIG_NAME))
        path = todo.write(report)
        if path:
            print(f"Created {os.path.relpath(path, config.root)}")
        else:
            print("No issues found, nothing to generate")
        return 0

    output = config.formatter.format(report)
    if output:
        print(output)

    return 0 if report.success(args.fail_level) else 1


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        return run(args)
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
