"""Module discovery and layer tagging."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from fnmatch import fnmatchcase
from typing import TYPE_CHECKING

from errors import ConfigurationError
from graph.models import Module
from report.models import Diagnostic, RuleId, Severity
from rules.config import resolve_cache_dir
from rules.layers import LayerTag
from scan.files import find_source_files
from utils import parent_dirs, strip_module_suffix, to_posix

if TYPE_CHECKING:
    from pathlib import Path

    from rules.config import LayerguardConfig, PackageDef

logger = logging.getLogger(__name__)

DEFAULT_ROOT_CANDIDATES = (
    "index.ts",
    "index.tsx",
    "index.js",
    "index.jsx",
    "index.mts",
    "index.mjs",
)


@dataclass(frozen=True)
class PackageMatch:
    """A package rule matched against a module path."""

    definition: PackageDef
    path: str
    is_module: bool

    @property
    def scope(self) -> str:
        return self.definition.scope or self.path.rsplit("/", 1)[-1]

    def identity(self) -> tuple[str, str, str]:
        return (self.path, self.definition.tag.value, self.scope)


@dataclass
class DiscoveryResult:
    """Tagged modules in deterministic order plus discovery warnings."""

    modules: dict[str, Module] = field(default_factory=dict)
    files: dict[str, Path] = field(default_factory=dict)
    diagnostics: list[Diagnostic] = field(default_factory=list)


def validate_package_table(packages: list[PackageDef]) -> None:
    """Reject duplicate patterns that disagree on tag, scope or root."""
    seen: dict[str, PackageDef] = {}
    for definition in packages:
        previous = seen.get(definition.pattern)
        if previous is None:
            seen[definition.pattern] = definition
            continue
        if (previous.tag, previous.scope, previous.root) != (
            definition.tag,
            definition.scope,
            definition.root,
        ):
            msg = (
                f"Contradictory package rules for pattern '{definition.pattern}': "
                f"{previous.tag.value} vs {definition.tag.value}"
            )
            raise ConfigurationError(msg)


def _segments_match(candidate: str, pattern: str) -> bool:
    candidate_parts = candidate.split("/")
    pattern_parts = pattern.split("/")
    if len(candidate_parts) != len(pattern_parts):
        return False
    return all(
        fnmatchcase(part, pat)
        for part, pat in zip(candidate_parts, pattern_parts, strict=True)
    )


def match_packages(module_id: str, packages: list[PackageDef]) -> list[PackageMatch]:
    """Return every package rule that claims the module, without duplicates."""
    module_path = strip_module_suffix(module_id)
    candidates = [(module_path, True)] + [(d, False) for d in parent_dirs(module_id)]

    matches: dict[tuple[str, str, str], PackageMatch] = {}
    for definition in packages:
        for candidate, is_module in candidates:
            if _segments_match(candidate, definition.pattern):
                match = PackageMatch(definition, candidate, is_module)
                matches.setdefault(match.identity(), match)
    return list(matches.values())


def _classify(module_id: str, packages: list[PackageDef]) -> PackageMatch | None:
    matches = match_packages(module_id, packages)
    if len(matches) > 1:
        claims = ", ".join(
            f"'{m.definition.pattern}' ({m.definition.tag.value} {m.path})"
            for m in matches
        )
        msg = f"Overlapping package patterns for {module_id}: {claims}"
        raise ConfigurationError(msg)
    return matches[0] if matches else None


def _find_root(
    match: PackageMatch, members: set[str], module_ids: set[str]
) -> str | None:
    if match.is_module:
        return min(members)
    candidates = (
        (match.definition.root,)
        if match.definition.root
        else DEFAULT_ROOT_CANDIDATES
    )
    for candidate in candidates:
        root_id = f"{match.path}/{to_posix(candidate)}"
        if root_id in module_ids:
            return root_id
    return None


def _cache_skip_dir(root: Path, cache_dir: str) -> str:
    cache_path = resolve_cache_dir(root, cache_dir)
    return cache_path.relative_to(root.resolve()).as_posix()


def discover_modules(root: Path, config: LayerguardConfig) -> DiscoveryResult:
    """Find every workspace module and assign its layer tag, scope and package.

    Raises:
        ConfigurationError: If the package pattern table is contradictory or
            two patterns claim the same module for different packages, or
            cache_dir does not stay inside the workspace.
    """
    validate_package_table(config.packages)

    result = DiscoveryResult()
    module_matches: dict[str, PackageMatch | None] = {}
    for file_path in find_source_files(
        root,
        extensions=config.extensions,
        skip_dirs=(_cache_skip_dir(root, config.cache_dir),),
        include_patterns=config.include,
        exclude_patterns=config.exclude,
        nested_gitignore=config.nested_gitignore,
    ):
        module_id = file_path.relative_to(root).as_posix()
        result.files[module_id] = file_path
        module_matches[module_id] = _classify(module_id, config.packages)

    module_ids = set(module_matches)
    package_members: dict[str, set[str]] = {}
    package_of: dict[str, PackageMatch] = {}
    for module_id, match in module_matches.items():
        if match is not None:
            package_members.setdefault(match.path, set()).add(module_id)
            package_of[match.path] = match

    roots: dict[str, str | None] = {}
    for package_path in sorted(package_members):
        match = package_of[package_path]
        roots[package_path] = _find_root(
            match, package_members[package_path], module_ids
        )
        if roots[package_path] is None and match.definition.tag in (
            LayerTag.FEATURE,
            LayerTag.ENTITY,
        ):
            result.diagnostics.append(
                Diagnostic(
                    file=package_path,
                    rule_id=RuleId.MISSING_ROOT.value,
                    severity=Severity.WARNING,
                    message=(
                        f"{match.definition.tag.value} package '{match.scope}' has no "
                        "entry module; none of its modules are public"
                    ),
                )
            )

    for module_id, match in module_matches.items():
        if match is None:
            result.modules[module_id] = Module(id=module_id, tag=LayerTag.UNTAGGED)
            result.diagnostics.append(
                Diagnostic(
                    file=module_id,
                    rule_id=RuleId.UNTAGGED.value,
                    severity=Severity.WARNING,
                    message="module matches no package pattern and is untagged",
                )
            )
            continue
        result.modules[module_id] = Module(
            id=module_id,
            tag=match.definition.tag,
            scope=match.scope,
            package=match.path,
            root_path=roots[match.path],
        )

    logger.info(
        "discovered %d modules (%d untagged)",
        len(result.modules),
        sum(1 for m in result.modules.values() if m.tag == LayerTag.UNTAGGED),
    )
    return result


__all__ = [
    "DEFAULT_ROOT_CANDIDATES",
    "DiscoveryResult",
    "PackageMatch",
    "discover_modules",
    "match_packages",
    "validate_package_table",
]
