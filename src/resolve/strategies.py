"""Interchangeable import-specifier resolution strategies."""

from __future__ import annotations

import posixpath
from typing import TYPE_CHECKING

from resolve.base import (
    External,
    Resolution,
    Resolved,
    Unresolved,
    is_relative,
    package_name,
    probe_module,
)
from utils import join_normalized, to_posix

if TYPE_CHECKING:
    from collections.abc import Collection, Mapping, Sequence

    from resolve.base import Resolver
    from resolve.manifests import WorkspacePackage


class RelativeResolver:
    """Resolves `./` and `../` specifiers against the importing module's directory."""

    def __init__(self, module_ids: Collection[str], extensions: Sequence[str]) -> None:
        self.module_ids = module_ids
        self.extensions = tuple(extensions)

    def resolve(self, specifier: str, from_module: str) -> Resolution | None:
        if not is_relative(specifier):
            return None
        target = join_normalized(posixpath.dirname(from_module), specifier)
        if target is None:
            return Unresolved(f"'{specifier}' escapes the workspace root")
        module_id = probe_module(target, self.module_ids, self.extensions)
        if module_id is None:
            return Unresolved(f"no module at '{target}'")
        return Resolved(module_id)


class AliasResolver:
    """Resolves tsconfig-style path aliases such as `@/*` -> `src/*`.

    The alias with the longest literal prefix wins; its targets are tried in order.
    """

    def __init__(
        self,
        aliases: Mapping[str, Sequence[str]],
        module_ids: Collection[str],
        extensions: Sequence[str],
    ) -> None:
        self.aliases = sorted(
            aliases.items(),
            key=lambda item: (-len(item[0].split("*", 1)[0]), item[0]),
        )
        self.module_ids = module_ids
        self.extensions = tuple(extensions)

    def _match(self, specifier: str) -> tuple[str, Sequence[str], str] | None:
        for pattern, targets in self.aliases:
            if "*" not in pattern:
                if specifier == pattern:
                    return pattern, targets, ""
                continue
            prefix, suffix = pattern.split("*", 1)
            if (
                specifier.startswith(prefix)
                and specifier.endswith(suffix)
                and len(specifier) >= len(prefix) + len(suffix)
            ):
                captured = specifier[len(prefix) : len(specifier) - len(suffix)]
                return pattern, targets, captured
        return None

    def resolve(self, specifier: str, from_module: str) -> Resolution | None:
        matched = self._match(specifier)
        if matched is None:
            return None
        pattern, targets, captured = matched
        for target in targets:
            path = join_normalized("", to_posix(target.replace("*", captured)))
            if path is None:
                continue
            module_id = probe_module(path, self.module_ids, self.extensions)
            if module_id is not None:
                return Resolved(module_id)
        return Unresolved(f"alias '{pattern}' matched but no target module exists")


class WorkspacePackageResolver:
    """Resolves bare specifiers naming a package declared in the workspace."""

    def __init__(
        self,
        packages: Sequence[WorkspacePackage],
        module_ids: Collection[str],
        extensions: Sequence[str],
    ) -> None:
        self.packages = {package.name: package for package in packages}
        self.module_ids = module_ids
        self.extensions = tuple(extensions)

    def resolve(self, specifier: str, from_module: str) -> Resolution | None:
        name = package_name(specifier)
        package = self.packages.get(name)
        if package is None:
            return None

        subpath = specifier[len(name) :].lstrip("/")
        if subpath:
            path = join_normalized(package.directory, subpath)
            module_id = (
                probe_module(path, self.module_ids, self.extensions)
                if path is not None
                else None
            )
        else:
            module_id = None
            if package.entry is not None:
                module_id = probe_module(
                    package.entry, self.module_ids, self.extensions
                )
            if module_id is None:
                module_id = probe_module(
                    package.directory, self.module_ids, self.extensions
                )
                if module_id is None:
                    module_id = probe_module(
                        join_normalized(package.directory, "src") or "",
                        self.module_ids,
                        self.extensions,
                    )
        if module_id is None:
            return Unresolved(f"workspace package '{name}' has no module for it")
        return Resolved(module_id)


class ChainResolver:
    """Tries strategies in order; unclaimed bare specifiers are external."""

    def __init__(self, strategies: Sequence[Resolver]) -> None:
        self.strategies = tuple(strategies)

    def resolve(self, specifier: str, from_module: str) -> Resolution:
        for strategy in self.strategies:
            resolution = strategy.resolve(specifier, from_module)
            if resolution is not None:
                return resolution
        if not specifier:
            return Unresolved("empty specifier")
        if is_relative(specifier) or specifier.startswith("/"):
            return Unresolved(f"no strategy resolves '{specifier}'")
        return External(package_name(specifier))


__all__ = [
    "AliasResolver",
    "ChainResolver",
    "RelativeResolver",
    "WorkspacePackageResolver",
]
