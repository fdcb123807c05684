"""Diagnostics reporter: merging, ordering, rendering and exit status."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Literal

import orjson

from report.models import (
    DegradedModule,
    Diagnostic,
    LowConfidenceEdge,
    Report,
    Severity,
    Summary,
)

OutputFormat = Literal["text", "json"]

EXIT_CLEAN = 0
EXIT_VIOLATIONS = 1
EXIT_INCOMPLETE = 2
EXIT_ABORTED = 130


def build_report(
    diagnostic_streams: Iterable[Iterable[Diagnostic]],
    *,
    degraded: Iterable[DegradedModule] = (),
    low_confidence: Iterable[LowConfidenceEdge] = (),
    module_count: int = 0,
    edge_count: int = 0,
) -> Report:
    """Merge diagnostic streams into one deterministically ordered report.

    Identical diagnostics arriving from several streams are reported once.
    """
    unique: dict[tuple[object, ...], Diagnostic] = {}
    for stream in diagnostic_streams:
        for diagnostic in stream:
            key = (*diagnostic.sort_key(), diagnostic.related_modules)
            unique.setdefault(key, diagnostic)
    diagnostics = sorted(unique.values(), key=Diagnostic.sort_key)

    degraded_list = sorted(degraded, key=lambda d: (d.file, d.line or 0))
    low_confidence_list = sorted(
        low_confidence, key=lambda e: (e.file, e.line, e.column or 0)
    )
    errors = sum(1 for d in diagnostics if d.severity == Severity.ERROR)
    return Report(
        diagnostics=diagnostics,
        degraded=degraded_list,
        low_confidence=low_confidence_list,
        summary=Summary(
            error_count=errors,
            warning_count=len(diagnostics) - errors,
            module_count=module_count,
            edge_count=edge_count,
            degraded_count=len(degraded_list),
        ),
    )


def exit_status(report: Report, *, fail_on_warning: bool = False) -> int:
    """0 when clean, 1 when errors (or, if requested, warnings) were reported."""
    if report.summary.error_count:
        return EXIT_VIOLATIONS
    if fail_on_warning and report.summary.warning_count:
        return EXIT_VIOLATIONS
    return EXIT_CLEAN


def render_json(report: Report) -> str:
    payload = report.model_dump(mode="json", by_alias=True)
    opts = orjson.OPT_SORT_KEYS | orjson.OPT_INDENT_2
    return orjson.dumps(payload, option=opts).decode("utf-8") + "\n"


def _render_diagnostic(diagnostic: Diagnostic) -> str:
    line = (
        f"{diagnostic.location()}: {diagnostic.severity.value}"
        f"[{diagnostic.rule_id}] {diagnostic.message}"
    )
    if diagnostic.related_modules:
        line += f" (related: {', '.join(diagnostic.related_modules)})"
    return line


def render_text(report: Report) -> str:
    lines = [_render_diagnostic(d) for d in report.diagnostics]

    if report.degraded:
        lines.append("")
        lines.append("Degraded modules (imports could not be extracted):")
        for item in report.degraded:
            location = f"{item.file}:{item.line}" if item.line else item.file
            lines.append(f"  {location}: {item.message}")

    if report.low_confidence:
        lines.append("")
        lines.append("Reduced-confidence dynamic imports (not policy-checked):")
        for edge in report.low_confidence:
            target = edge.target or edge.specifier or "<computed>"
            lines.append(f"  {edge.file}:{edge.line}: import({target})")

    summary = report.summary
    if lines:
        lines.append("")
    lines.append(
        f"{summary.error_count} error(s), {summary.warning_count} warning(s) "
        f"in {summary.module_count} modules ({summary.edge_count} imports, "
        f"{summary.degraded_count} degraded)"
    )
    return "\n".join(lines) + "\n"


def render(report: Report, output_format: OutputFormat) -> str:
    if output_format == "json":
        return render_json(report)
    return render_text(report)


__all__ = [
    "EXIT_ABORTED",
    "EXIT_CLEAN",
    "EXIT_INCOMPLETE",
    "EXIT_VIOLATIONS",
    "OutputFormat",
    "build_report",
    "exit_status",
    "render",
    "render_json",
    "render_text",
]
