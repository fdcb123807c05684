"""Import-specifier resolution for layerguard."""

from __future__ import annotations

from typing import TYPE_CHECKING

from resolve.base import (
    External,
    Resolution,
    Resolved,
    Resolver,
    Unresolved,
    package_name,
)
from resolve.manifests import WorkspacePackage, read_workspace_manifests
from resolve.strategies import (
    AliasResolver,
    ChainResolver,
    RelativeResolver,
    WorkspacePackageResolver,
)

if TYPE_CHECKING:
    from collections.abc import Collection
    from pathlib import Path

    from rules.config import LayerguardConfig


def build_resolver(
    root: Path, config: LayerguardConfig, module_ids: Collection[str]
) -> ChainResolver:
    """Compose the resolution strategies the workspace configuration asks for."""
    strategies: list[Resolver] = [RelativeResolver(module_ids, config.extensions)]
    if config.resolve.aliases:
        strategies.append(
            AliasResolver(config.resolve.aliases, module_ids, config.extensions)
        )
    if config.resolve.manifests:
        strategies.append(
            WorkspacePackageResolver(
                read_workspace_manifests(root), module_ids, config.extensions
            )
        )
    return ChainResolver(strategies)


__all__ = [
    "AliasResolver",
    "ChainResolver",
    "External",
    "RelativeResolver",
    "Resolution",
    "Resolved",
    "Resolver",
    "Unresolved",
    "WorkspacePackage",
    "WorkspacePackageResolver",
    "build_resolver",
    "package_name",
    "read_workspace_manifests",
]
