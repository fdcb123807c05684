"""Shared path utilities for layerguard."""

from __future__ import annotations

import posixpath
from pathlib import Path

# Suffixes stripped when deriving an extension-less module path; ".d.ts" first.
_MODULE_SUFFIXES = (
    ".d.ts",
    ".tsx",
    ".ts",
    ".jsx",
    ".js",
    ".mts",
    ".cts",
    ".mjs",
    ".cjs",
)


def to_posix(file_path: str | Path) -> str:
    """Normalize a relative path to forward slashes without empty segments.

    Examples:
        >>> to_posix(Path("./src/ui/Modal.tsx"))
        'src/ui/Modal.tsx'
    """
    path_str = file_path.as_posix() if isinstance(file_path, Path) else str(file_path)
    parts = [part for part in path_str.replace("\\", "/").split("/") if part]
    return "/".join(part for part in parts if part != ".")


def strip_module_suffix(module_id: str) -> str:
    """Return the module path without its source extension.

    Examples:
        >>> strip_module_suffix("src/util/formatDate.ts")
        'src/util/formatDate'
        >>> strip_module_suffix("src/types.d.ts")
        'src/types'
        >>> strip_module_suffix("README")
        'README'
    """
    for suffix in _MODULE_SUFFIXES:
        if module_id.endswith(suffix):
            return module_id[: -len(suffix)]
    return module_id


def parent_dirs(module_id: str) -> list[str]:
    """Return ancestor directories of a module id, innermost first.

    Examples:
        >>> parent_dirs("src/features/Checkout/ui/Button.tsx")
        ['src/features/Checkout/ui', 'src/features/Checkout', 'src/features', 'src']
    """
    parts = module_id.split("/")[:-1]
    return ["/".join(parts[:i]) for i in range(len(parts), 0, -1)]


def join_normalized(base_dir: str, relative: str) -> str | None:
    """Join a relative specifier onto a workspace-relative directory.

    Returns None when the result escapes the workspace root.

    Examples:
        >>> join_normalized("src/features/Checkout", "../../entities/product")
        'src/entities/product'
        >>> join_normalized("src", "../../outside") is None
        True
    """
    joined = posixpath.normpath(posixpath.join(base_dir or ".", relative))
    if joined == ".":
        return ""
    if joined == ".." or joined.startswith("../") or joined.startswith("/"):
        return None
    return joined
