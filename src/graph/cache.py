"""Content-hash keyed cache of extracted import declarations."""

from __future__ import annotations

import hashlib
import logging
import os
import threading
from typing import TYPE_CHECKING, Any

import orjson

from parse.models import ParsedModule

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

CACHE_FILENAME = "imports-cache.json"
CACHE_FORMAT_VERSION = 1


def content_key(source: bytes, parser_version: str) -> str:
    digest = hashlib.sha256()
    digest.update(parser_version.encode("utf-8"))
    digest.update(b"\0")
    digest.update(source)
    return digest.hexdigest()


class DeclarationCache:
    """Per-module parse results keyed by a hash of the module's content.

    Only extraction is cached; resolution, policy checks and cycle detection
    always run on the full graph. Entries not touched during a run are pruned
    on save, and the file is replaced atomically.
    """

    def __init__(self, path: Path | None, parser_version: str) -> None:
        self.path = path
        self.parser_version = parser_version
        self._entries: dict[str, dict[str, Any]] = {}
        self._fresh: dict[str, dict[str, Any]] = {}
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0
        if path is not None:
            self._load(path)

    def _load(self, path: Path) -> None:
        if not path.is_file():
            return
        try:
            data = orjson.loads(path.read_bytes())
        except (OSError, orjson.JSONDecodeError) as exc:
            logger.warning("ignoring unreadable cache %s: %s", path, exc)
            return
        if (
            not isinstance(data, dict)
            or data.get("version") != CACHE_FORMAT_VERSION
            or data.get("parser") != self.parser_version
        ):
            logger.info("cache %s is stale, rebuilding", path)
            return
        entries = data.get("entries")
        if isinstance(entries, dict):
            self._entries = entries

    def get(self, module_id: str, key: str) -> ParsedModule | None:
        entry = self._entries.get(module_id)
        if entry is None or entry.get("key") != key:
            with self._lock:
                self.misses += 1
            return None
        try:
            parsed = ParsedModule.from_dict(entry["parsed"])
        except (KeyError, TypeError, ValueError):
            with self._lock:
                self.misses += 1
            return None
        with self._lock:
            self.hits += 1
            self._fresh[module_id] = entry
        return parsed

    def put(self, module_id: str, key: str, parsed: ParsedModule) -> None:
        with self._lock:
            self._fresh[module_id] = {"key": key, "parsed": parsed.to_dict()}

    def save(self) -> None:
        if self.path is None:
            return
        payload = {
            "version": CACHE_FORMAT_VERSION,
            "parser": self.parser_version,
            "entries": dict(sorted(self._fresh.items())),
        }
        tmp_path = self.path.with_name(f"{self.path.name}.tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_bytes(orjson.dumps(payload, option=orjson.OPT_SORT_KEYS))
            os.replace(tmp_path, self.path)
        except OSError as exc:
            logger.warning("could not write cache %s: %s", self.path, exc)
            return
        logger.debug(
            "saved cache %s (%d hits, %d misses)", self.path, self.hits, self.misses
        )


__all__ = ["CACHE_FILENAME", "DeclarationCache", "content_key"]
