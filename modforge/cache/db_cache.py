# modforge/cache/db_cache.py
from __future__ import annotations

import logging
from collections.abc import Iterator
from pathlib import Path
from typing import Any

from modforge.cache.store import absoluteFromKey, cacheKey, readCacheFile, rewriteAbsoluteKeys
from modforge.core.jsonutils import writeJsonFile

logger = logging.getLogger(__name__)

__all__ = ["DBCache", "fileMtime"]



def fileMtime(path: Path) -> int:
    return path.stat().st_mtime_ns



def _isMtimeMap(data: Any) -> bool:
    return isinstance(data, dict) and all(
        isinstance(value, int) and not isinstance(value, bool) for value in data.values()
    )



class DBCache:
    """
    Content file path -> modification time (ns) at the moment its content was
    written into the database.
    """
    def __init__(self, root: Path, mtimes: dict[str, int] | None = None, *, isNew: bool = False) -> None:
        self.root = root
        self._mtimes: dict[str, int] = dict(mtimes or {})
        rewriteAbsoluteKeys(self._mtimes, root)
        self.isNew = isNew

    @classmethod
    def load(cls, path: Path, root: Path) -> DBCache:
        data = readCacheFile(path, "database cache", _isMtimeMap)
        if data is None:
            return cls(root, isNew=True)
        return cls(root, data)

    def save(self, path: Path) -> None:
        writeJsonFile(path, self._mtimes)

    def keys(self) -> list[str]:
        return list(self._mtimes)

    def absolutePath(self, key: str) -> Path:
        return absoluteFromKey(self.root, key)

    def isCurrent(self, path: Path, mtime: int) -> bool:
        return self._mtimes.get(cacheKey(self.root, path)) == mtime

    def record(self, path: Path, mtime: int) -> None:
        self._mtimes[cacheKey(self.root, path)] = mtime

    def discard(self, key: str) -> None:
        self._mtimes.pop(key, None)

    def clear(self) -> None:
        self._mtimes.clear()

    def __len__(self) -> int:
        return len(self._mtimes)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._mtimes))

    def __contains__(self, path: object) -> bool:
        return isinstance(path, (str, Path)) and cacheKey(self.root, path) in self._mtimes
