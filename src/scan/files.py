"""File scanning utilities for layerguard."""

from __future__ import annotations

import logging
from fnmatch import fnmatch
from pathlib import PurePosixPath
from typing import TYPE_CHECKING, cast

from gitignore_parser import parse_gitignore  # type: ignore[import-untyped]

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator, Sequence
    from pathlib import Path

logger = logging.getLogger(__name__)

# Directories never treated as workspace sources.
ALWAYS_SKIPPED_DIRS = frozenset({"node_modules", ".git"})


def _has_source_extension(name: str, extensions: Sequence[str]) -> bool:
    if name.endswith(".d.ts"):
        return False
    return any(name.endswith(ext) for ext in extensions)


def _is_under(parts: tuple[str, ...], prefix: tuple[str, ...]) -> bool:
    return bool(prefix) and parts[: len(prefix)] == prefix


def _should_include_file(
    path: Path,
    directory: Path,
    skip_prefixes: Sequence[tuple[str, ...]],
    gitignore_matches: Callable[[str], bool] | None,
    include_patterns: list[str] | None,
    exclude_patterns: list[str] | None,
) -> bool:
    """Check if a file should be included based on all filtering rules."""
    if not path.is_file() or path.is_symlink():
        return False

    if not _is_within_root(path, directory):
        return False

    try:
        rel_path = path.relative_to(directory)
    except ValueError:
        return False

    rel_path_str = rel_path.as_posix()

    if any(part in ALWAYS_SKIPPED_DIRS for part in rel_path.parts[:-1]):
        return False

    if any(_is_under(rel_path.parts[:-1], prefix) for prefix in skip_prefixes):
        return False

    if gitignore_matches is not None and gitignore_matches(str(path)):
        return False

    if include_patterns and not any(
        fnmatch(rel_path_str, pat) for pat in include_patterns
    ):
        return False

    has_excluded_match = exclude_patterns and any(
        fnmatch(rel_path_str, pat) for pat in exclude_patterns
    )
    return not has_excluded_match


def _is_within_root(path: Path, root: Path) -> bool:
    """Return True when the resolved path stays within the resolved root."""
    try:
        root_resolved = root.resolve()
        path_resolved = path.resolve()
    except OSError:
        return False

    try:
        path_resolved.relative_to(root_resolved)
    except ValueError:
        return False

    return True


def _iter_gitignore_files(root: Path) -> list[Path]:
    """Return sorted list of .gitignore files under root (including root)."""
    gitignore_paths = [root / ".gitignore"]
    gitignore_paths.extend(
        path
        for path in root.rglob(".gitignore")
        if not ALWAYS_SKIPPED_DIRS.intersection(path.relative_to(root).parts)
    )
    unique_paths = {path for path in gitignore_paths if path.is_file()}
    return sorted(unique_paths, key=lambda p: p.relative_to(root).as_posix())


def _build_gitignore_matcher(
    root: Path,
    *,
    nested_gitignore: bool,
) -> Callable[[str], bool] | None:
    if not nested_gitignore:
        gitignore_path = root / ".gitignore"
        if gitignore_path.is_file():
            return cast("Callable[[str], bool]", parse_gitignore(gitignore_path))
        return None

    gitignore_paths = _iter_gitignore_files(root)
    if not gitignore_paths:
        return None

    matchers = [parse_gitignore(path) for path in gitignore_paths]

    def matches(path_str: str) -> bool:
        for matcher in matchers:
            try:
                if matcher(path_str):
                    return True
            except ValueError:
                continue
        return False

    return matches


def find_source_files(
    directory: Path,
    *,
    extensions: Sequence[str],
    skip_dirs: Sequence[str] = (),
    include_patterns: list[str] | None = None,
    exclude_patterns: list[str] | None = None,
    nested_gitignore: bool = False,
) -> Iterator[Path]:
    """Find all workspace source files in a directory, respecting .gitignore.

    Args:
        directory: Workspace root to search
        extensions: Source file extensions to collect (".d.ts" files never match)
        skip_dirs: Workspace-relative POSIX directories whose contents are
            never sources (the cache directory)
        include_patterns: Optional list of fnmatch patterns; if provided,
            files must match at least one pattern to be included
        exclude_patterns: Optional list of fnmatch patterns; files matching
            any pattern are excluded
        nested_gitignore: Compose every .gitignore below the root

    Yields:
        Path objects for each source file found, sorted lexicographically
        by relative path for deterministic ordering.
    """
    gitignore_matches = _build_gitignore_matcher(
        directory,
        nested_gitignore=nested_gitignore,
    )

    skip_prefixes = [PurePosixPath(skip).parts for skip in skip_dirs]
    skip_prefixes = [parts for parts in skip_prefixes if parts and ".." not in parts]

    matched_files = [
        path
        for path in directory.rglob("*")
        if _has_source_extension(path.name, extensions)
        and _should_include_file(
            path,
            directory,
            skip_prefixes,
            gitignore_matches,
            include_patterns,
            exclude_patterns,
        )
    ]

    matched_files.sort(key=lambda p: p.relative_to(directory).as_posix())
    logger.debug("found %d source files under %s", len(matched_files), directory)

    yield from matched_files


__all__ = ["ALWAYS_SKIPPED_DIRS", "_should_include_file", "find_source_files"]
