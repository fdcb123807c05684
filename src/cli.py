"""Command-line interface for layerguard."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from check import run_check
from errors import AnalysisAborted, ConfigurationError, LayerguardError
from logging_config import setup_logging
from report.reporter import EXIT_ABORTED, EXIT_CLEAN, EXIT_INCOMPLETE, render
from rules.config import LayerguardConfig, load_config
from scan.discovery import discover_modules

logger = logging.getLogger(__name__)


def _add_common_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "root",
        nargs="?",
        default=".",
        help="Workspace root (default: .)",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to layerguard.toml (default: <root>/layerguard.toml)",
    )
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument("-v", "--verbose", action="store_true", help="Debug logs")
    verbosity.add_argument("-q", "--quiet", action="store_true", help="Errors only")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="layerguard")
    subparsers = parser.add_subparsers(dest="command", required=True)

    check_parser = subparsers.add_parser(
        "check", help="Check import boundaries of a workspace"
    )
    _add_common_args(check_parser)
    check_parser.add_argument(
        "--format",
        choices=("text", "json"),
        default="text",
        help="Report format (default: text)",
    )
    check_parser.add_argument(
        "--check-external",
        action="store_true",
        default=None,
        help="Evaluate third-party imports against the [external] rules",
    )
    check_parser.add_argument(
        "--fail-on-warning",
        action="store_true",
        default=None,
        help="Exit with status 1 when warnings were reported",
    )
    check_parser.add_argument(
        "--jobs",
        type=int,
        default=None,
        help="Worker threads for parsing (1 = serial)",
    )
    check_parser.add_argument(
        "--no-cache",
        action="store_true",
        help="Ignore and do not update the declaration cache",
    )

    modules_parser = subparsers.add_parser(
        "modules", help="List discovered modules with their tag, scope and package"
    )
    _add_common_args(modules_parser)

    return parser


def _load(root: Path, config_path: str | None) -> LayerguardConfig:
    resolved = Path(config_path).expanduser().resolve() if config_path else None
    return load_config(root, resolved)


def _apply_overrides(
    config: LayerguardConfig, args: argparse.Namespace
) -> LayerguardConfig:
    updates: dict[str, object] = {}
    if args.check_external is not None:
        updates["check_external"] = args.check_external
    if args.fail_on_warning is not None:
        updates["fail_on_warning"] = args.fail_on_warning
    if args.jobs is not None:
        updates["jobs"] = max(args.jobs, 0)
    if args.no_cache:
        updates["cache"] = False
    return config.model_copy(update=updates) if updates else config


def _handle_check(root: Path, args: argparse.Namespace) -> int:
    config = _apply_overrides(_load(root, args.config), args)
    result = run_check(root, config=config)
    sys.stdout.write(render(result.report, args.format))
    return result.exit_code


def _handle_modules(root: Path, args: argparse.Namespace) -> int:
    config = _load(root, args.config)
    discovery = discover_modules(root, config)
    for module in discovery.modules.values():
        scope = module.scope or "-"
        package = module.package or "-"
        marker = " (root)" if module.is_package_root else ""
        sys.stdout.write(
            f"{module.id}\t{module.tag.value}\t{scope}\t{package}{marker}\n"
        )
    return EXIT_CLEAN


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    setup_logging(verbose=args.verbose, quiet=args.quiet)

    root = Path(args.root).expanduser().resolve()

    try:
        if args.command == "check":
            return _handle_check(root, args)

        if args.command == "modules":
            return _handle_modules(root, args)
    except ConfigurationError as exc:
        sys.stderr.write(f"configuration error: {exc}\n")
        return EXIT_INCOMPLETE
    except (AnalysisAborted, KeyboardInterrupt):
        sys.stderr.write("aborted: no report produced\n")
        return EXIT_ABORTED
    except LayerguardError as exc:
        sys.stderr.write(f"internal error: {exc}\n")
        return EXIT_INCOMPLETE
    except Exception as exc:
        logger.debug("unexpected failure", exc_info=True)
        sys.stderr.write(f"internal error: {type(exc).__name__}: {exc}\n")
        return EXIT_INCOMPLETE

    raise AssertionError


if __name__ == "__main__":
    raise SystemExit(main())
