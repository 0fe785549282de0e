# tests/modforge/cache/test_db_cache.py
from __future__ import annotations

from pathlib import Path

from modforge.cache.db_cache import DBCache, fileMtime
from modforge.core.jsonutils import readJsonFile, writeJsonFile



def test_recordAndIsCurrent(tmp_path: Path) -> None:
    path = tmp_path / "Mods" / "M" / "a.json"
    path.parent.mkdir(parents=True)
    path.write_text("{}", encoding="utf-8")
    cache = DBCache(tmp_path)

    assert not cache.isCurrent(path, fileMtime(path))
    cache.record(path, fileMtime(path))
    assert cache.isCurrent(path, fileMtime(path))
    assert not cache.isCurrent(path, fileMtime(path) + 1)
    assert path in cache
    assert "Mods/M/a.json" in cache


def test_saveLoad_relativeKeys(tmp_path: Path) -> None:
    cachePath = tmp_path / "database_cache.json"
    cache = DBCache(tmp_path, isNew=True)
    cache.record(tmp_path / "x" / "y.json", 123)
    cache.save(cachePath)

    assert readJsonFile(cachePath) == {"x/y.json": 123}
    loaded = DBCache.load(cachePath, tmp_path)
    assert loaded.isNew is False
    assert loaded.keys() == ["x/y.json"]
    assert loaded.absolutePath("x/y.json") == tmp_path / "x" / "y.json"


def test_load_rewritesAbsoluteKeysAndRejectsBadShapes(tmp_path: Path) -> None:
    cachePath = tmp_path / "database_cache.json"
    writeJsonFile(cachePath, {str(tmp_path / "a.json"): 1})
    assert DBCache.load(cachePath, tmp_path).keys() == ["a.json"]

    writeJsonFile(cachePath, {"a.json": "yesterday"})
    assert DBCache.load(cachePath, tmp_path).isNew
    assert DBCache.load(tmp_path / "missing.json", tmp_path).isNew


def test_iterationAllowsDiscardWhileIterating(tmp_path: Path) -> None:
    cache = DBCache(tmp_path, {"a.json": 1, "b.json": 2})
    for key in cache:
        cache.discard(key)
    assert len(cache) == 0
