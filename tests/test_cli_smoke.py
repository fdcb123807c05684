from __future__ import annotations

import shutil
from pathlib import Path

import orjson
import pytest

from cli import main


def _write_minimal_repo(root: Path) -> None:
    (root / "src" / "util").mkdir(parents=True, exist_ok=True)
    (root / "src" / "util" / "formatDate.ts").write_text(
        "export const formatDate = (d: Date) => d.toISOString();\n",
        encoding="utf-8",
    )
    (root / "layerguard.toml").write_text(
        '[[packages]]\npattern = "src/util/*"\ntag = "util"\n',
        encoding="utf-8",
    )


def _copy_shop_fixture(root: Path) -> None:
    fixture_repo = Path(__file__).parent / "fixtures" / "shop_workspace"
    shutil.copytree(fixture_repo, root)


def test_cli_check_clean_repo_exits_zero(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    repo_root = tmp_path / "repo"
    _write_minimal_repo(repo_root)

    exit_code = main(["check", str(repo_root)])

    assert exit_code == 0
    captured = capsys.readouterr()
    assert "0 error(s), 0 warning(s) in 1 modules" in captured.out


def test_cli_check_fixture_reports_violations_as_text(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    repo_root = tmp_path / "repo"
    _copy_shop_fixture(repo_root)

    exit_code = main(["check", str(repo_root)])

    assert exit_code == 1
    out = capsys.readouterr().out
    assert "src/ui/Modal.tsx:1:1: error[layer-boundary]" in out
    assert "src/features/Wishlist/index.ts:1:1: error[encapsulation]" in out
    assert "4 error(s), 3 warning(s)" in out


def test_cli_check_json_output_is_machine_readable(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    repo_root = tmp_path / "repo"
    _copy_shop_fixture(repo_root)

    exit_code = main(["check", str(repo_root), "--format", "json"])

    assert exit_code == 1
    payload = orjson.loads(capsys.readouterr().out)
    assert payload["summary"]["errorCount"] == 4
    assert {d["ruleId"] for d in payload["diagnostics"]} == {
        "cross-scope",
        "encapsulation",
        "layer-boundary",
        "unresolved",
        "untagged",
    }


def test_cli_fail_on_warning_turns_warnings_into_failure(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    repo_root = tmp_path / "repo"
    _write_minimal_repo(repo_root)
    (repo_root / "src" / "main.ts").write_text("export {};\n", encoding="utf-8")

    assert main(["check", str(repo_root)]) == 0
    assert main(["check", str(repo_root), "--fail-on-warning"]) == 1
    capsys.readouterr()


def test_cli_check_external_flag_enables_external_rules(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    repo_root = tmp_path / "repo"
    _write_minimal_repo(repo_root)
    (repo_root / "src" / "util" / "http.ts").write_text(
        'import axios from "axios";\nexport const http = axios;\n',
        encoding="utf-8",
    )
    with (repo_root / "layerguard.toml").open("a", encoding="utf-8") as f:
        f.write('\n[external.deny]\nutil = ["axios"]\n')

    assert main(["check", str(repo_root)]) == 0
    assert main(["check", str(repo_root), "--check-external"]) == 1
    assert "error[external]" in capsys.readouterr().out


def test_cli_invalid_config_exits_two(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    repo_root = tmp_path / "repo"
    _write_minimal_repo(repo_root)
    (repo_root / "layerguard.toml").write_text("bogus_key = true\n", encoding="utf-8")

    exit_code = main(["check", str(repo_root)])

    assert exit_code == 2
    captured = capsys.readouterr()
    assert "configuration error:" in captured.err
    assert captured.out == ""


def test_cli_missing_explicit_config_exits_two(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    repo_root = tmp_path / "repo"
    _write_minimal_repo(repo_root)

    exit_code = main(
        ["check", str(repo_root), "--config", str(tmp_path / "missing.toml")]
    )

    assert exit_code == 2
    assert "Config file not found" in capsys.readouterr().err


def test_cli_check_defaults_to_current_directory(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    repo_root = tmp_path / "repo"
    _write_minimal_repo(repo_root)

    monkeypatch.chdir(repo_root)
    exit_code = main(["check", "-q"])

    assert exit_code == 0
    assert "1 modules" in capsys.readouterr().out


def test_cli_modules_lists_tags_scopes_and_roots(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    repo_root = tmp_path / "repo"
    _copy_shop_fixture(repo_root)

    exit_code = main(["modules", str(repo_root)])

    assert exit_code == 0
    lines = capsys.readouterr().out.splitlines()
    assert (
        "src/features/Checkout/index.ts\tfeature\tCheckout\t"
        "src/features/Checkout (root)"
    ) in lines
    assert (
        "src/features/Checkout/model/cart.ts\tfeature\tCheckout\tsrc/features/Checkout"
    ) in lines
    assert "src/broken.ts\tuntagged\t-\t-" in lines
    assert len(lines) == 13


def test_cli_unwritable_cache_still_reports_and_exits_on_violations(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    repo_root = tmp_path / "repo"
    _copy_shop_fixture(repo_root)
    (repo_root / "cachefile").write_text("", encoding="utf-8")
    config_path = repo_root / "layerguard.toml"
    config_path.write_text(
        'cache = true\ncache_dir = "cachefile"\n'
        + config_path.read_text(encoding="utf-8"),
        encoding="utf-8",
    )

    exit_code = main(["check", str(repo_root)])

    assert exit_code == 1
    assert "4 error(s), 3 warning(s)" in capsys.readouterr().out


def test_cli_unexpected_failure_exits_two(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    repo_root = tmp_path / "repo"
    _write_minimal_repo(repo_root)

    def explode(*args: object, **kwargs: object) -> None:
        raise RuntimeError("disk vanished")

    monkeypatch.setattr("cli.run_check", explode)
    exit_code = main(["check", str(repo_root)])

    assert exit_code == 2
    captured = capsys.readouterr()
    assert "internal error: RuntimeError: disk vanished" in captured.err
    assert captured.out == ""


def test_cli_interrupt_exits_130_without_a_report(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    repo_root = tmp_path / "repo"
    _write_minimal_repo(repo_root)

    def interrupt(*args: object, **kwargs: object) -> None:
        raise KeyboardInterrupt

    monkeypatch.setattr("cli.run_check", interrupt)
    exit_code = main(["check", str(repo_root)])

    assert exit_code == 130
    captured = capsys.readouterr()
    assert captured.out == ""
    assert "aborted" in captured.err
