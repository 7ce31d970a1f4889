"""Command-line interface for the pattern catalog."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from enum import IntEnum
from pathlib import Path
from typing import Optional

from scripts.patterncatalog.config import (
    DEFAULT_CONFIG_PATH,
    LEGACY_CONFIG_PATH,
    CatalogConfig,
    ConfigError,
    load_config,
)
from scripts.patterncatalog.errors import CatalogValidationReport, NotFoundError
from scripts.patterncatalog.loader import LoadResult, load_catalog_dir
from scripts.patterncatalog.query import (
    get_entry,
    get_explanation_for_line,
    get_summary,
    list_categories,
    list_entries,
)
from scripts.patterncatalog.registry import CatalogRegistry


class ExitCode(IntEnum):
    """Process exit codes."""

    SUCCESS = 0
    CONFIG_ERROR = 1
    FILE_SYSTEM_ERROR = 2
    VALIDATION_FAILED = 3


def _get_config(config_path: Optional[str]) -> CatalogConfig:
    """Load config from path or use defaults.

    Search order:
    1. Explicit --config path
    2. .patterncatalog/config.yaml
    3. patterncatalog.yaml
    4. Built-in defaults
    """
    if config_path:
        return load_config(config_path)

    default_path = Path.cwd() / DEFAULT_CONFIG_PATH
    if default_path.exists():
        return load_config(default_path)

    legacy_path = Path.cwd() / LEGACY_CONFIG_PATH
    if legacy_path.exists():
        return load_config(legacy_path)

    return load_config(default_path)  # Will return defaults


def _has_data_dirs(config: CatalogConfig, root: Path) -> bool:
    return any((root / d).is_dir() for d in config.data_dirs)


def _print_load_errors(result: LoadResult) -> None:
    for error in result.errors:
        print(json.dumps(error.to_json()), file=sys.stderr)


def _build_registry(
    config: CatalogConfig, root: Path
) -> tuple[CatalogRegistry, LoadResult, CatalogValidationReport]:
    """Load data files and build a registry (which may end up FAILED)."""
    result = load_catalog_dir(root, config)
    registry = CatalogRegistry(config)
    report = registry.build(result.entries, result.categories)
    return registry, result, report


def _load_ready_registry(args: argparse.Namespace) -> tuple[Optional[CatalogRegistry], int]:
    """Shared setup for read-only commands: a READY registry or an exit code."""
    try:
        config = _get_config(args.config)
    except ConfigError as e:
        print(json.dumps(e.to_json()), file=sys.stderr)
        return None, ExitCode.CONFIG_ERROR

    root = Path.cwd()
    if not _has_data_dirs(config, root):
        print(f"No data directory found (looked for: {', '.join(config.data_dirs)})")
        return None, ExitCode.FILE_SYSTEM_ERROR

    registry, result, _report = _build_registry(config, root)
    if result.errors or not registry.is_ready:
        _print_load_errors(result)
        print("Catalog is invalid. Run 'patterncatalog validate' for details.", file=sys.stderr)
        return None, ExitCode.VALIDATION_FAILED

    return registry, ExitCode.SUCCESS


def cmd_validate(args: argparse.Namespace) -> int:
    """Lint every entry and print the full report."""
    try:
        config = _get_config(args.config)
    except ConfigError as e:
        print(json.dumps(e.to_json()), file=sys.stderr)
        return ExitCode.CONFIG_ERROR

    root = Path.cwd()
    if not _has_data_dirs(config, root):
        print(f"No data directory found (looked for: {', '.join(config.data_dirs)})")
        return ExitCode.FILE_SYSTEM_ERROR

    _registry, result, report = _build_registry(config, root)

    if args.format == "json":
        output = report.to_json()
        output["ok"] = report.ok and not result.errors
        output["record_errors"] = [e.to_json() for e in result.errors]
        output["files"] = len(result.files)
        output["entries"] = len(result.entries)
        print(json.dumps(output, indent=2))
    else:
        _print_load_errors(result)
        for violation in report:
            print(str(violation))
        print(
            f"Checked {len(result.entries)} entries from {len(result.files)} file(s):"
            f" {len(report.errors)} error(s), {len(report.warnings)} warning(s),"
            f" {len(result.errors)} load error(s)"
        )

    if result.errors or not report.ok:
        if args.format != "json":
            print("FAIL", file=sys.stderr)
        return ExitCode.VALIDATION_FAILED

    if args.format != "json":
        print("OK")
    return ExitCode.SUCCESS


def _parse_explain_target(target: str) -> Optional[tuple[str, str, int]]:
    """Split 'entry:language:line'; None if malformed."""
    parts = target.split(":")
    if len(parts) != 3:
        return None
    entry_id, language, line = parts
    try:
        return entry_id, language, int(line)
    except ValueError:
        return None


def cmd_query(args: argparse.Namespace) -> int:
    """Query the catalog."""
    if not (args.entry or args.category or args.explain or args.categories or args.summary):
        print("Please specify --entry, --category, --explain, --categories, or --summary")
        return ExitCode.CONFIG_ERROR

    registry, code = _load_ready_registry(args)
    if registry is None:
        return code

    if args.entry:
        try:
            entry = get_entry(registry, args.entry)
        except NotFoundError:
            print(f"Pattern not found: {args.entry}")
            return ExitCode.SUCCESS
        print(json.dumps(entry.to_json(), indent=2, ensure_ascii=False))

    elif args.category:
        for entry in list_entries(registry, args.category):
            print(entry.id)

    elif args.explain:
        target = _parse_explain_target(args.explain)
        if target is None:
            print("--explain expects ENTRY:LANGUAGE:LINE (e.g. singleton:java:3)")
            return ExitCode.CONFIG_ERROR
        entry_id, language, line = target
        try:
            texts = get_explanation_for_line(registry, entry_id, language, line)
        except NotFoundError:
            print(f"Pattern not found: {entry_id}")
            return ExitCode.SUCCESS
        if texts:
            for text in texts:
                print(text)
        else:
            print(f"No explanation for {entry_id} ({language}) line {line}")

    elif args.categories:
        for category in list_categories(registry):
            print(f"{category.id}: {category.name}")

    elif args.summary:
        print(json.dumps(get_summary(registry), indent=2))

    return ExitCode.SUCCESS


def cmd_status(args: argparse.Namespace) -> int:
    """Show catalog status."""
    try:
        config = _get_config(args.config)
    except ConfigError as e:
        print(json.dumps(e.to_json()), file=sys.stderr)
        return ExitCode.CONFIG_ERROR

    root = Path.cwd()

    print("Pattern Catalog Status")
    print("=" * 40)
    print(f"Languages: {', '.join(config.language_tags)}")
    print(f"Duplicate annotations: {config.duplicate_annotations}")
    print(f"Categories file: {config.categories_path(root)}")

    if not _has_data_dirs(config, root):
        print(f"\nData directories: NOT FOUND ({', '.join(config.data_dirs)})")
        print("\nRun 'patterncatalog init' to create them.")
        return ExitCode.SUCCESS

    registry, result, report = _build_registry(config, root)

    print(f"\nFiles: {len(result.files)} read, {len(result.errors)} load error(s)")
    print(f"Entries: {len(result.entries)}")
    print(f"State: {registry.state.value}")
    print(f"Errors: {len(report.errors)}")
    print(f"Warnings: {len(report.warnings)}")

    if registry.is_ready:
        print("  By category:")
        for category_id, count in get_summary(registry)["by_category"].items():
            print(f"    {category_id}: {count}")

    return ExitCode.SUCCESS


MINIMAL_CONFIG = '''# Pattern catalog configuration

version: "1.0"

language_tags: [cppTraditional, cppModern, java]
comparison_only_columns: []

# error: report lines annotated more than once; merge: accept them
duplicate_annotations: error
require_populated_categories: false

data_dirs: [patterns]
# categories_file: categories.yaml  # defaults to the bundled taxonomy
'''

EXAMPLE_ENTRY = '''id: singleton
category: creational
name: Singleton
description: Ensures a class has a single instance and provides a global access point to it.
theory:
  problem: Some resources must exist exactly once in a process.
  applicability:
    - There must be exactly one instance of a class, reachable from a well-known access point.
implementations:
  java:
    code: |
      public class Singleton {
          private static final Singleton INSTANCE = new Singleton();
          private Singleton() {}
          public static Singleton getInstance() { return INSTANCE; }
      }
    explanation:
      - {line: 2, text: The single instance is created when the class is loaded.}
      - {line: 3, text: A private constructor prevents outside instantiation.}
comparisons:
  - title: Initialization
    java: Eager, performed by the class loader.
'''


def cmd_init(_args: argparse.Namespace) -> int:
    """Initialize a pattern catalog in the current directory."""
    root = Path.cwd()
    config_path = root / DEFAULT_CONFIG_PATH
    patterns_dir = root / "patterns"

    print("Initializing pattern catalog...")

    config_path.parent.mkdir(parents=True, exist_ok=True)
    if config_path.exists():
        print(f"  Config already exists: {config_path}")
    else:
        config_path.write_text(MINIMAL_CONFIG, encoding="utf-8")
        print(f"  Created {config_path}")

    patterns_dir.mkdir(parents=True, exist_ok=True)
    example_path = patterns_dir / "singleton.yaml"
    if any(patterns_dir.iterdir()):
        print(f"  Pattern directory is not empty: {patterns_dir}")
    else:
        example_path.write_text(EXAMPLE_ENTRY, encoding="utf-8")
        print(f"  Created {example_path}")

    print("\nCatalog initialized! Next steps:")
    print(f"  1. Add pattern files under {patterns_dir}/")
    print("  2. Run 'patterncatalog validate' to lint them")
    print("  3. Query with 'patterncatalog query --category <id>'")

    return ExitCode.SUCCESS


def _add_config_arg(parser: argparse.ArgumentParser) -> None:
    """Add --config argument to a parser."""
    parser.add_argument(
        "--config",
        "-c",
        help=f"Path to config file (default: {DEFAULT_CONFIG_PATH})",
    )


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        prog="patterncatalog",
        description="Validate and query a design-pattern catalog",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Log build progress to stderr",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser(
        "init",
        help="Create a starter config and example pattern",
    )

    validate_parser = subparsers.add_parser(
        "validate",
        help="Lint the whole catalog and report every violation",
    )
    _add_config_arg(validate_parser)
    validate_parser.add_argument(
        "--format",
        choices=["text", "json"],
        default="text",
        help="Report format (default: text)",
    )

    query_parser = subparsers.add_parser(
        "query",
        help="Query the catalog",
    )
    _add_config_arg(query_parser)
    query_parser.add_argument("--entry", help="Show one pattern entry as JSON")
    query_parser.add_argument("--category", help="List pattern ids in a category")
    query_parser.add_argument("--explain", help="Explanations for ENTRY:LANGUAGE:LINE")
    query_parser.add_argument("--categories", action="store_true", help="List categories")
    query_parser.add_argument("--summary", action="store_true", help="Show summary stats")

    status_parser = subparsers.add_parser(
        "status",
        help="Show catalog status",
    )
    _add_config_arg(status_parser)

    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    commands = {
        "init": cmd_init,
        "validate": cmd_validate,
        "query": cmd_query,
        "status": cmd_status,
    }

    return commands[args.command](args)


if __name__ == "__main__":
    sys.exit(main())
