"""Diagnostics reporting for layerguard."""

from report.models import (
    DegradedModule,
    Diagnostic,
    LowConfidenceEdge,
    Report,
    RuleId,
    Severity,
    Summary,
)
from report.reporter import build_report, exit_status, render

__all__ = [
    "DegradedModule",
    "Diagnostic",
    "LowConfidenceEdge",
    "Report",
    "RuleId",
    "Severity",
    "Summary",
    "build_report",
    "exit_status",
    "render",
]
