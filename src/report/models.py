"""Diagnostic and report models.

Field aliases are the camelCase names of the stable report schema.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

REPORT_SCHEMA_VERSION = 1


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"


class RuleId(str, Enum):
    """Identifiers of every finding layerguard can report."""

    LAYER_BOUNDARY = "layer-boundary"
    ENCAPSULATION = "encapsulation"
    CROSS_SCOPE = "cross-scope"
    CYCLE = "cycle"
    EXTERNAL = "external"
    UNTAGGED = "untagged"
    MISSING_ROOT = "missing-root"
    UNRESOLVED = "unresolved"
    REEXPORT_CYCLE = "reexport-cycle"
    DYNAMIC_IMPORT = "dynamic-import"


class Diagnostic(BaseModel):
    """A single finding: a policy violation or an analysis warning.

    ``line`` is 0 for findings about a module as a whole.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    file: str
    line: int = 0
    column: int | None = None
    rule_id: str = Field(alias="ruleId")
    severity: Severity
    message: str
    related_modules: tuple[str, ...] | None = Field(
        default=None, alias="relatedModules"
    )

    @property
    def is_error(self) -> bool:
        return self.severity == Severity.ERROR

    def sort_key(self) -> tuple[str, int, str, int, str, str]:
        return (
            self.file,
            self.line,
            self.rule_id,
            self.column or 0,
            self.message,
            self.severity.value,
        )

    def location(self) -> str:
        if not self.line:
            return self.file
        if self.column is None:
            return f"{self.file}:{self.line}"
        return f"{self.file}:{self.line}:{self.column}"


class DegradedModule(BaseModel):
    """A module whose imports could not be extracted."""

    model_config = ConfigDict(frozen=True)

    file: str
    message: str
    line: int | None = None


class LowConfidenceEdge(BaseModel):
    """A dynamic import excluded from hard policy checks."""

    model_config = ConfigDict(frozen=True)

    file: str
    line: int
    column: int | None = None
    specifier: str | None = None
    target: str | None = None


class Summary(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    error_count: int = Field(alias="errorCount")
    warning_count: int = Field(alias="warningCount")
    module_count: int = Field(default=0, alias="moduleCount")
    edge_count: int = Field(default=0, alias="edgeCount")
    degraded_count: int = Field(default=0, alias="degradedCount")


class Report(BaseModel):
    """The complete, ordered outcome of a check run."""

    model_config = ConfigDict(populate_by_name=True)

    schema_version: int = Field(default=REPORT_SCHEMA_VERSION, alias="schemaVersion")
    diagnostics: list[Diagnostic] = Field(default_factory=list)
    degraded: list[DegradedModule] = Field(default_factory=list)
    low_confidence: list[LowConfidenceEdge] = Field(
        default_factory=list, alias="lowConfidence"
    )
    summary: Summary


__all__ = [
    "REPORT_SCHEMA_VERSION",
    "DegradedModule",
    "Diagnostic",
    "LowConfidenceEdge",
    "Report",
    "RuleId",
    "Severity",
    "Summary",
]
