"""Workspace package manifest reader (package.json)."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import orjson

from scan.files import ALWAYS_SKIPPED_DIRS
from utils import join_normalized

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

MANIFEST_FILENAME = "package.json"

# Entry fields in precedence order; `source` points at untranspiled code.
_ENTRY_FIELDS = ("source", "module", "main")


@dataclass(frozen=True)
class WorkspacePackage:
    """A named package inside the workspace."""

    name: str
    directory: str
    entry: str | None = None


def _exports_entry(exports: Any) -> str | None:
    """Pick the root entry from a package.json `exports` value."""
    if isinstance(exports, str):
        return exports
    if not isinstance(exports, dict):
        return None
    root = exports.get(".", exports)
    if isinstance(root, str):
        return root
    if isinstance(root, dict):
        for condition in ("source", "import", "default", "require"):
            value = root.get(condition)
            if isinstance(value, str):
                return value
    return None


def _entry_candidates(data: dict[str, Any]) -> list[str]:
    candidates = [data[key] for key in _ENTRY_FIELDS if isinstance(data.get(key), str)]
    exported = _exports_entry(data.get("exports"))
    if exported is not None:
        candidates.append(exported)
    return candidates


def read_workspace_manifests(root: Path) -> list[WorkspacePackage]:
    """Read every package.json below root, sorted by directory.

    Unreadable manifests and manifests without a name are skipped with a
    logged warning; they never abort analysis.
    """
    packages: list[WorkspacePackage] = []
    for manifest in sorted(root.rglob(MANIFEST_FILENAME)):
        rel_parts = manifest.relative_to(root).parts
        if ALWAYS_SKIPPED_DIRS.intersection(rel_parts[:-1]):
            continue
        try:
            data = orjson.loads(manifest.read_bytes())
        except (OSError, orjson.JSONDecodeError) as exc:
            logger.warning("skipping unreadable manifest %s: %s", manifest, exc)
            continue
        if not isinstance(data, dict) or not isinstance(data.get("name"), str):
            logger.debug("skipping unnamed manifest %s", manifest)
            continue

        directory = "/".join(rel_parts[:-1])
        entry: str | None = None
        for candidate in _entry_candidates(data):
            entry = join_normalized(directory, candidate)
            if entry is not None:
                break
        packages.append(
            WorkspacePackage(name=data["name"], directory=directory, entry=entry)
        )
    logger.debug("read %d workspace manifests", len(packages))
    return packages


__all__ = ["MANIFEST_FILENAME", "WorkspacePackage", "read_workspace_manifests"]
