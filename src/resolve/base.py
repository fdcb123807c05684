"""Resolution outcomes and the resolver capability."""

from __future__ import annotations

from collections.abc import Collection, Sequence
from dataclasses import dataclass
from typing import Protocol, Union

from utils import strip_module_suffix

# ESM-style TypeScript imports name the emitted file (`./x.js` for `x.ts`).
_EMITTED_TO_SOURCE = {
    ".js": (".ts", ".tsx"),
    ".jsx": (".tsx",),
    ".mjs": (".mts",),
    ".cjs": (".cts",),
}


@dataclass(frozen=True)
class Resolved:
    module_id: str


@dataclass(frozen=True)
class External:
    package: str


@dataclass(frozen=True)
class Unresolved:
    reason: str


Resolution = Union[Resolved, External, Unresolved]


class Resolver(Protocol):
    """Maps an import specifier written in `from_module` to its target.

    Strategies return None for specifiers they do not handle so that a chain
    can try the next one.
    """

    def resolve(self, specifier: str, from_module: str) -> Resolution | None: ...


def is_relative(specifier: str) -> bool:
    return specifier in (".", "..") or specifier.startswith(("./", "../"))


def package_name(specifier: str) -> str:
    """Return the package part of a bare specifier.

    Examples:
        >>> package_name("react-dom/client")
        'react-dom'
        >>> package_name("@tanstack/react-query/build")
        '@tanstack/react-query'
        >>> package_name("node:fs")
        'node:fs'
    """
    parts = specifier.split("/")
    if specifier.startswith("@") and len(parts) > 1:
        return "/".join(parts[:2])
    return parts[0]


def probe_module(
    path: str,
    module_ids: Collection[str],
    extensions: Sequence[str],
) -> str | None:
    """Find the module a path refers to: exact file, added extension, or index file."""
    if path in module_ids:
        return path
    stem = strip_module_suffix(path)
    for emitted, sources in _EMITTED_TO_SOURCE.items():
        if path.endswith(emitted):
            for source_ext in sources:
                candidate = stem + source_ext
                if candidate in module_ids:
                    return candidate
    for ext in extensions:
        candidate = f"{path}{ext}"
        if candidate in module_ids:
            return candidate
    prefix = f"{path}/" if path else ""
    for ext in extensions:
        candidate = f"{prefix}index{ext}"
        if candidate in module_ids:
            return candidate
    return None


__all__ = [
    "External",
    "Resolution",
    "Resolved",
    "Resolver",
    "Unresolved",
    "is_relative",
    "package_name",
    "probe_module",
]
