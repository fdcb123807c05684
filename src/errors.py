"""Exception taxonomy for layerguard.

Only ``ConfigurationError`` and ``InternalError`` abort a run. ``ParseError`` and
``ResolutionError`` are raised per module or per specifier and are caught by the
graph builder, which degrades gracefully. Policy violations are never exceptions.
"""

from __future__ import annotations


class LayerguardError(Exception):
    """Base class for all layerguard errors."""


class ConfigurationError(LayerguardError):
    """Raised when the tagging or rule configuration is malformed or contradictory."""


class ParseError(LayerguardError):
    """Raised when a module's import declarations cannot be extracted."""

    def __init__(self, path: str, message: str, line: int | None = None) -> None:
        super().__init__(f"{path}: {message}")
        self.path = path
        self.message = message
        self.line = line


class ResolutionError(LayerguardError):
    """Raised when an import specifier cannot be mapped to a module or package."""

    def __init__(self, specifier: str, from_module: str, reason: str) -> None:
        super().__init__(f"cannot resolve '{specifier}' from {from_module}: {reason}")
        self.specifier = specifier
        self.from_module = from_module
        self.reason = reason


class InternalError(LayerguardError):
    """Raised when a graph invariant is broken and analysis cannot be trusted."""


class AnalysisAborted(LayerguardError):
    """Raised when a run is cancelled before it completed."""


__all__ = [
    "AnalysisAborted",
    "ConfigurationError",
    "InternalError",
    "LayerguardError",
    "ParseError",
    "ResolutionError",
]
