from __future__ import annotations

import shutil
from pathlib import Path

import pytest

from check import run_check
from errors import ConfigurationError
from graph.cache import CACHE_FILENAME
from graph.models import EdgeKind
from report.reporter import EXIT_CLEAN, EXIT_VIOLATIONS, render_json
from rules.config import load_config


def _copy_shop_fixture(root: Path) -> None:
    fixture_repo = Path(__file__).parent / "fixtures" / "shop_workspace"
    shutil.copytree(fixture_repo, root)


def _findings(root: Path) -> list[tuple[str, int, str, str]]:
    report = run_check(root).report
    return [
        (d.file, d.line, d.rule_id, d.severity.value) for d in report.diagnostics
    ]


def test_check_reports_every_violation_in_the_shop_workspace(tmp_path: Path) -> None:
    repo_root = tmp_path / "repo"
    _copy_shop_fixture(repo_root)

    assert _findings(repo_root) == [
        ("src/broken.ts", 0, "untagged", "warning"),
        ("src/features/Wishlist/index.ts", 1, "cross-scope", "error"),
        ("src/features/Wishlist/index.ts", 1, "encapsulation", "error"),
        ("src/legacy/loader.js", 0, "untagged", "warning"),
        ("src/legacy/loader.js", 1, "unresolved", "warning"),
        ("src/ui/Modal.tsx", 1, "layer-boundary", "error"),
        ("src/util/legacyLabel.ts", 1, "layer-boundary", "error"),
    ]


def test_check_summary_degraded_and_low_confidence(tmp_path: Path) -> None:
    repo_root = tmp_path / "repo"
    _copy_shop_fixture(repo_root)

    result = run_check(repo_root)
    report = result.report

    assert result.exit_code == EXIT_VIOLATIONS
    assert report.summary.error_count == 4
    assert report.summary.warning_count == 3
    assert report.summary.module_count == 13
    assert [d.file for d in report.degraded] == ["src/broken.ts"]
    assert [(e.file, e.line, e.specifier) for e in report.low_confidence] == [
        ("src/legacy/loader.js", 3, None)
    ]


def test_clean_feature_uses_entities_ui_and_externals_freely(tmp_path: Path) -> None:
    repo_root = tmp_path / "repo"
    _copy_shop_fixture(repo_root)

    result = run_check(repo_root)
    edges = result.graph.outgoing("src/features/ProductList/index.tsx")

    assert [(e.target, e.kind) for e in edges] == [
        ("react", EdgeKind.EXTERNAL),
        ("src/entities/product/index.ts", EdgeKind.DIRECT),
        ("src/ui/Modal.tsx", EdgeKind.DIRECT),
    ]
    assert not any(
        d.file == "src/features/ProductList/index.tsx"
        for d in result.report.diagnostics
    )


def test_fixing_the_violations_yields_a_clean_exit(tmp_path: Path) -> None:
    repo_root = tmp_path / "repo"
    _copy_shop_fixture(repo_root)
    for rel_path in (
        "src/broken.ts",
        "src/legacy/loader.js",
        "src/util/legacyLabel.ts",
        "src/features/Wishlist/index.ts",
    ):
        (repo_root / rel_path).unlink()
    (repo_root / "src" / "ui" / "Modal.tsx").write_text(
        'import { formatDate } from "../util/formatDate";\n\n'
        "export const Modal = () => formatDate(new Date());\n",
        encoding="utf-8",
    )

    result = run_check(repo_root)

    assert result.report.diagnostics == []
    assert result.exit_code == EXIT_CLEAN


def test_repeated_runs_produce_identical_reports(tmp_path: Path) -> None:
    repo_root = tmp_path / "repo"
    _copy_shop_fixture(repo_root)

    first = render_json(run_check(repo_root).report)
    second = render_json(run_check(repo_root).report)

    assert first == second


def test_cached_run_matches_uncached_run(tmp_path: Path) -> None:
    repo_root = tmp_path / "repo"
    _copy_shop_fixture(repo_root)
    config = load_config(repo_root)
    cached_config = config.model_copy(update={"cache": True})

    uncached = render_json(run_check(repo_root, config=config).report)
    cold = render_json(run_check(repo_root, config=cached_config).report)
    warm = render_json(run_check(repo_root, config=cached_config).report)

    assert (repo_root / ".layerguard" / CACHE_FILENAME).is_file()
    assert uncached == cold == warm


def test_serial_and_threaded_runs_agree(tmp_path: Path) -> None:
    repo_root = tmp_path / "repo"
    _copy_shop_fixture(repo_root)
    config = load_config(repo_root)

    serial = run_check(repo_root, config=config.model_copy(update={"jobs": 1}))
    threaded = run_check(repo_root, config=config.model_copy(update={"jobs": 4}))

    assert render_json(serial.report) == render_json(threaded.report)


def test_import_cycle_is_reported_once(tmp_path: Path) -> None:
    repo_root = tmp_path / "repo"
    (repo_root / "src").mkdir(parents=True)
    for name, target in (("A", "B"), ("B", "C"), ("C", "A")):
        (repo_root / "src" / f"{name}.ts").write_text(
            f'import {{ x }} from "./{target}";\nexport const x = 1;\n',
            encoding="utf-8",
        )
    config = load_config(repo_root).model_copy(update={"unclassified": "allow"})

    report = run_check(repo_root, config=config).report
    cycles = [d for d in report.diagnostics if d.rule_id == "cycle"]

    assert len(cycles) == 1
    assert cycles[0].file == "src/A.ts"
    assert cycles[0].related_modules == ("src/A.ts", "src/B.ts", "src/C.ts")


def test_overlapping_patterns_abort_the_check(tmp_path: Path) -> None:
    repo_root = tmp_path / "repo"
    _copy_shop_fixture(repo_root)
    with (repo_root / "layerguard.toml").open("a", encoding="utf-8") as f:
        f.write('\n[[packages]]\npattern = "src/*/product"\ntag = "util"\n')

    with pytest.raises(ConfigurationError):
        run_check(repo_root)


def test_cache_dir_nested_under_sources_skips_only_the_cache(tmp_path: Path) -> None:
    repo_root = tmp_path / "repo"
    _copy_shop_fixture(repo_root)
    config = load_config(repo_root)
    nested = config.model_copy(update={"cache": True, "cache_dir": "src/.layerguard"})

    baseline = run_check(repo_root, config=config)
    cold = run_check(repo_root, config=nested)
    warm = run_check(repo_root, config=nested)

    assert (repo_root / "src" / ".layerguard" / CACHE_FILENAME).is_file()
    assert len(cold.graph.modules) == 13
    assert (
        render_json(baseline.report)
        == render_json(cold.report)
        == render_json(warm.report)
    )
