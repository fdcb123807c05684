from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import orjson

from graph.cache import CACHE_FILENAME, DeclarationCache, content_key
from parse.models import DeclarationKind, ImportDeclaration, ParsedModule

if TYPE_CHECKING:
    from pathlib import Path

    import pytest

_PARSED = ParsedModule(
    declarations=(
        ImportDeclaration(
            specifier="../util/formatDate",
            kind=DeclarationKind.IMPORT,
            line=1,
            column=1,
            symbols=("formatDate",),
        ),
    ),
    exports=frozenset({"Modal"}),
)


def test_content_key_depends_on_parser_version_and_source() -> None:
    assert content_key(b"a", "v1") == content_key(b"a", "v1")
    assert content_key(b"a", "v1") != content_key(b"b", "v1")
    assert content_key(b"a", "v1") != content_key(b"a", "v2")


def test_saved_entries_are_reused_for_unchanged_content(tmp_path: Path) -> None:
    path = tmp_path / CACHE_FILENAME
    key = content_key(b"source", "v1")

    cache = DeclarationCache(path, "v1")
    assert cache.get("src/ui/Modal.tsx", key) is None
    cache.put("src/ui/Modal.tsx", key, _PARSED)
    cache.save()

    reloaded = DeclarationCache(path, "v1")

    assert reloaded.get("src/ui/Modal.tsx", key) == _PARSED
    assert reloaded.get("src/ui/Modal.tsx", content_key(b"changed", "v1")) is None
    assert (reloaded.hits, reloaded.misses) == (1, 1)


def test_parser_version_change_invalidates_the_cache(tmp_path: Path) -> None:
    path = tmp_path / CACHE_FILENAME
    key = content_key(b"source", "v1")
    cache = DeclarationCache(path, "v1")
    cache.put("src/ui/Modal.tsx", key, _PARSED)
    cache.save()

    assert DeclarationCache(path, "v2").get("src/ui/Modal.tsx", key) is None


def test_untouched_entries_are_pruned_on_save(tmp_path: Path) -> None:
    path = tmp_path / CACHE_FILENAME
    first = DeclarationCache(path, "v1")
    first.put("src/a.ts", "k1", _PARSED)
    first.put("src/b.ts", "k2", _PARSED)
    first.save()

    second = DeclarationCache(path, "v1")
    second.get("src/a.ts", "k1")
    second.save()

    data = orjson.loads(path.read_bytes())
    assert sorted(data["entries"]) == ["src/a.ts"]
    assert not path.with_name(f"{CACHE_FILENAME}.tmp").exists()


def test_corrupt_cache_file_is_ignored(tmp_path: Path) -> None:
    path = tmp_path / CACHE_FILENAME
    path.write_text("{not json", encoding="utf-8")

    cache = DeclarationCache(path, "v1")

    assert cache.get("src/a.ts", "k1") is None


def test_unwritable_cache_location_is_logged_not_raised(
    tmp_path: Path, caplog: pytest.LogCaptureFixture
) -> None:
    blocker = tmp_path / "cachefile"
    blocker.write_text("not a directory\n", encoding="utf-8")
    cache = DeclarationCache(blocker / CACHE_FILENAME, "v1")
    cache.put("src/ui/Modal.tsx", content_key(b"source", "v1"), _PARSED)

    with caplog.at_level(logging.WARNING, logger="graph.cache"):
        cache.save()

    assert "could not write cache" in caplog.text
    assert blocker.read_text(encoding="utf-8") == "not a directory\n"
