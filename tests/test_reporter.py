from __future__ import annotations

import orjson

from report.models import DegradedModule, Diagnostic, LowConfidenceEdge, Severity
from report.reporter import (
    EXIT_CLEAN,
    EXIT_VIOLATIONS,
    build_report,
    exit_status,
    render_json,
    render_text,
)


def _diag(
    file: str,
    line: int,
    rule_id: str,
    severity: Severity = Severity.ERROR,
    message: str = "boom",
) -> Diagnostic:
    return Diagnostic(
        file=file, line=line, rule_id=rule_id, severity=severity, message=message
    )


def test_report_orders_by_file_line_and_rule() -> None:
    report = build_report(
        [
            [_diag("src/b.ts", 3, "layer-boundary"), _diag("src/a.ts", 9, "cycle")],
            [
                _diag("src/b.ts", 3, "cross-scope"),
                _diag("src/a.ts", 0, "untagged", Severity.WARNING),
            ],
        ]
    )

    assert [(d.file, d.line, d.rule_id) for d in report.diagnostics] == [
        ("src/a.ts", 0, "untagged"),
        ("src/a.ts", 9, "cycle"),
        ("src/b.ts", 3, "cross-scope"),
        ("src/b.ts", 3, "layer-boundary"),
    ]
    assert report.summary.error_count == 3
    assert report.summary.warning_count == 1


def test_report_order_is_independent_of_stream_order() -> None:
    streams = [
        [_diag("src/x.ts", 1, "encapsulation"), _diag("src/a.ts", 2, "cycle")],
        [_diag("src/m.ts", 5, "external")],
    ]

    forward = build_report(streams)
    backward = build_report([list(reversed(s)) for s in reversed(streams)])

    assert forward == backward


def test_identical_diagnostics_are_reported_once() -> None:
    duplicate = _diag("src/a.ts", 1, "layer-boundary")

    report = build_report([[duplicate], [duplicate]])

    assert len(report.diagnostics) == 1


def test_exit_status_reflects_errors_and_warning_policy() -> None:
    clean = build_report([])
    warned = build_report([[_diag("src/a.ts", 0, "untagged", Severity.WARNING)]])
    failed = build_report([[_diag("src/a.ts", 1, "cycle")]])

    assert exit_status(clean) == EXIT_CLEAN
    assert exit_status(warned) == EXIT_CLEAN
    assert exit_status(warned, fail_on_warning=True) == EXIT_VIOLATIONS
    assert exit_status(failed) == EXIT_VIOLATIONS


def test_json_rendering_uses_stable_camel_case_schema() -> None:
    report = build_report(
        [
            [
                Diagnostic(
                    file="src/ui/Modal.tsx",
                    line=1,
                    column=1,
                    rule_id="layer-boundary",
                    severity=Severity.ERROR,
                    message="ui module may not import infra module",
                    related_modules=("src/ui/Modal.tsx", "src/infra/logging.ts"),
                )
            ]
        ],
        degraded=[DegradedModule(file="src/broken.ts", message="syntax", line=1)],
        low_confidence=[LowConfidenceEdge(file="src/lazy.ts", line=2)],
        module_count=4,
        edge_count=3,
    )

    payload = orjson.loads(render_json(report))

    assert payload["schemaVersion"] == 1
    assert payload["summary"] == {
        "errorCount": 1,
        "warningCount": 0,
        "moduleCount": 4,
        "edgeCount": 3,
        "degradedCount": 1,
    }
    assert payload["diagnostics"] == [
        {
            "file": "src/ui/Modal.tsx",
            "line": 1,
            "column": 1,
            "ruleId": "layer-boundary",
            "severity": "error",
            "message": "ui module may not import infra module",
            "relatedModules": ["src/ui/Modal.tsx", "src/infra/logging.ts"],
        }
    ]
    assert payload["degraded"] == [
        {"file": "src/broken.ts", "message": "syntax", "line": 1}
    ]
    assert payload["lowConfidence"][0]["file"] == "src/lazy.ts"


def test_text_rendering_lists_findings_sections_and_summary() -> None:
    report = build_report(
        [
            [
                Diagnostic(
                    file="src/ui/Modal.tsx",
                    line=4,
                    column=1,
                    rule_id="layer-boundary",
                    severity=Severity.ERROR,
                    message="nope",
                    related_modules=("src/ui/Modal.tsx", "src/infra/logging.ts"),
                ),
                _diag("src/app.ts", 0, "untagged", Severity.WARNING, "untagged"),
            ]
        ],
        degraded=[DegradedModule(file="src/broken.ts", message="syntax error")],
        low_confidence=[LowConfidenceEdge(file="src/lazy.ts", line=2)],
        module_count=3,
    )

    lines = render_text(report).splitlines()

    assert lines[0] == "src/app.ts: warning[untagged] untagged"
    assert lines[1] == (
        "src/ui/Modal.tsx:4:1: error[layer-boundary] nope "
        "(related: src/ui/Modal.tsx, src/infra/logging.ts)"
    )
    assert "  src/broken.ts: syntax error" in lines
    assert "  src/lazy.ts:2: import(<computed>)" in lines
    assert lines[-1] == (
        "1 error(s), 1 warning(s) in 3 modules (0 imports, 1 degraded)"
    )


def test_clean_report_renders_only_the_summary() -> None:
    report = build_report([], module_count=2, edge_count=1)

    assert render_text(report) == (
        "0 error(s), 0 warning(s) in 2 modules (1 imports, 0 degraded)\n"
    )
