from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import tomllib
from pydantic import BaseModel, ConfigDict, Field, field_validator

from errors import ConfigurationError
from rules.layers import (
    LayerTag,
    TransitionTable,
    UnclassifiedBehavior,
    build_transition_table,
)

CONFIG_FILENAME = "layerguard.toml"

DEFAULT_EXTENSIONS = [".ts", ".tsx", ".js", ".jsx", ".mts", ".cts", ".mjs", ".cjs"]

DynamicImportMode = Literal["strict", "lenient"]
SeverityName = Literal["error", "warning"]


class PackageDef(BaseModel):
    """Path-pattern rule assigning a layer tag and scope to a package."""

    model_config = ConfigDict(extra="forbid")

    pattern: str = Field(
        description="Glob matching package directories or extension-less module paths"
    )
    tag: LayerTag = Field(description="Layer tag of every module in the package")
    scope: str | None = Field(
        default=None,
        description="Scope name (default: last segment of the matched path)",
    )
    root: str | None = Field(
        default=None,
        description="Entry file relative to the package directory (default: index.*)",
    )

    @field_validator("pattern")
    @classmethod
    def normalize_pattern(cls, v: str) -> str:
        normalized = v.strip().replace("\\", "/").strip("/")
        while normalized.startswith("./"):
            normalized = normalized[2:]
        if not normalized:
            msg = "package pattern must be a non-empty path glob"
            raise ValueError(msg)
        return normalized

    @field_validator("tag")
    @classmethod
    def reject_untagged(cls, v: LayerTag) -> LayerTag:
        if v == LayerTag.UNTAGGED:
            msg = "'untagged' is assigned automatically and cannot be configured"
            raise ValueError(msg)
        return v


class ResolveConfig(BaseModel):
    """Import-specifier resolution settings."""

    model_config = ConfigDict(extra="forbid")

    aliases: dict[str, list[str]] = Field(
        default_factory=dict,
        description="tsconfig-style path aliases, e.g. '@/*' -> ['src/*']",
    )
    manifests: bool = Field(
        default=True,
        description="Resolve workspace package names from package.json manifests",
    )

    @field_validator("aliases", mode="before")
    @classmethod
    def coerce_alias_targets(cls, v: Any) -> Any:
        if v is None:
            return {}
        if not isinstance(v, dict):
            msg = "aliases must be a mapping of pattern -> target(s)"
            raise TypeError(msg)
        coerced: dict[str, Any] = {}
        for pattern, targets in v.items():
            if isinstance(targets, str):
                targets = [targets]
            if pattern.count("*") > 1:
                msg = f"Alias '{pattern}' may contain at most one '*'"
                raise ValueError(msg)
            coerced[pattern] = targets
        return coerced


class ExternalConfig(BaseModel):
    """Per-tag rules for third-party packages, checked with check_external."""

    model_config = ConfigDict(extra="forbid")

    allow: dict[LayerTag, list[str]] = Field(
        default_factory=dict,
        description="Package globs a tag may import (tags without entry: any)",
    )
    deny: dict[LayerTag, list[str]] = Field(
        default_factory=dict,
        description="Package globs a tag may never import",
    )


class LayerguardConfig(BaseModel):
    """Configuration for a layerguard run over one workspace."""

    model_config = ConfigDict(extra="forbid")

    include: list[str] = Field(
        default_factory=list,
        description="Glob patterns for files to include (empty = all source files)",
    )
    exclude: list[str] = Field(
        default_factory=list,
        description="Glob patterns for files to exclude",
    )
    extensions: list[str] = Field(
        default_factory=lambda: list(DEFAULT_EXTENSIONS),
        description="Source file extensions analysed as modules",
    )
    nested_gitignore: bool = Field(
        default=False,
        description=(
            "Enable nested .gitignore composition (default: false for root-only)"
        ),
    )
    jobs: int = Field(
        default=0,
        ge=0,
        description="Worker threads for parsing (0 = executor default, 1 = serial)",
    )
    cache: bool = Field(
        default=False,
        description="Reuse extracted import declarations across runs",
    )
    cache_dir: str = Field(
        default=".layerguard",
        description="Directory (relative to root) holding the declaration cache",
    )
    reexport_max_depth: int = Field(
        default=8,
        ge=1,
        description="Maximum re-export chain length followed when flattening barrels",
    )
    dynamic_imports: DynamicImportMode = Field(
        default="lenient",
        description="strict: report dynamic imports as warnings; lenient: list only",
    )
    unclassified: UnclassifiedBehavior = Field(
        default="deny",
        description=(
            "Whether edges touching untagged modules are checked; edges into "
            "feature modules are checked either way"
        ),
    )
    check_external: bool = Field(
        default=False,
        description="Evaluate third-party imports against the [external] rules",
    )
    fail_on_warning: bool = Field(
        default=False,
        description="Exit with status 1 when only warnings were reported",
    )
    packages: list[PackageDef] = Field(
        default_factory=list,
        description="Package tagging rules",
    )
    layers: dict[LayerTag, list[LayerTag]] = Field(
        default_factory=dict,
        description="Overrides of the allowed-transition table, one row per tag",
    )
    cross_scope_tags: list[LayerTag] = Field(
        default_factory=lambda: [LayerTag.ENTITY, LayerTag.FEATURE],
        description="Tags whose same-tag edges are governed by the cross-scope rule",
    )
    cross_scope_allow: dict[str, list[str]] = Field(
        default_factory=dict,
        description="Whitelist: source scope (or tag.scope) -> allowed target scopes",
    )
    cross_scope_severity: SeverityName = Field(
        default="error",
        description="Severity of cross-scope findings",
    )
    resolve: ResolveConfig = Field(default_factory=ResolveConfig)
    external: ExternalConfig = Field(default_factory=ExternalConfig)

    @field_validator("extensions")
    @classmethod
    def validate_extensions(cls, v: list[str]) -> list[str]:
        for ext in v:
            if not ext.startswith(".") or len(ext) < 2:
                msg = f"Invalid extension '{ext}': expected e.g. '.ts'"
                raise ValueError(msg)
        return v

    def transition_table(self) -> TransitionTable:
        return build_transition_table(self.layers)


def resolve_cache_dir(root: Path, cache_dir: str) -> Path:
    """Resolve a config-provided cache_dir safely within the workspace root.

    The cache_dir must be a non-empty relative path that remains within the
    workspace root after resolution. Absolute paths and paths that escape the
    root are rejected.
    """
    if not cache_dir:
        msg = "cache_dir must be a non-empty relative path"
        raise ConfigurationError(msg)

    if cache_dir.startswith("~") or Path(cache_dir).is_absolute():
        msg = "cache_dir must be a relative path within the workspace root"
        raise ConfigurationError(msg)

    try:
        resolved_root = root.resolve()
        resolved_cache = (resolved_root / cache_dir).resolve()
    except OSError as exc:
        msg = f"Failed to resolve cache_dir '{cache_dir}': {exc}"
        raise ConfigurationError(msg) from exc

    try:
        resolved_cache.relative_to(resolved_root)
    except ValueError as exc:
        msg = f"cache_dir '{cache_dir}' escapes the workspace root"
        raise ConfigurationError(msg) from exc

    return resolved_cache


def load_config(root: Path, config_path: Path | None = None) -> LayerguardConfig:
    """Load configuration from layerguard.toml if it exists.

    An explicitly given config_path must exist.
    """
    if config_path is None:
        config_path = root / CONFIG_FILENAME
        if not config_path.is_file():
            return LayerguardConfig()
    elif not config_path.is_file():
        msg = f"Config file not found: {config_path}"
        raise ConfigurationError(msg)

    try:
        with config_path.open("rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        msg = f"Invalid TOML in {config_path}: {e}"
        raise ConfigurationError(msg) from e

    try:
        return LayerguardConfig.model_validate(data)
    except Exception as e:
        msg = f"Invalid config in {config_path}: {e}"
        raise ConfigurationError(msg) from e


__all__ = [
    "CONFIG_FILENAME",
    "DEFAULT_EXTENSIONS",
    "DynamicImportMode",
    "ExternalConfig",
    "LayerguardConfig",
    "PackageDef",
    "ResolveConfig",
    "SeverityName",
    "load_config",
    "resolve_cache_dir",
]
