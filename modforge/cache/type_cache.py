# modforge/cache/type_cache.py
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from modforge.cache.store import cacheKey, readCacheFile, rewriteAbsoluteKeys
from modforge.catalog.catalog import BaseCatalog
from modforge.core.jsonutils import writeJsonFile

logger = logging.getLogger(__name__)

__all__ = ["TypeCache"]



def _isTypeMap(data: Any) -> bool:
    return isinstance(data, dict) and all(
        isinstance(types, list) and all(isinstance(name, str) for name in types)
        for types in data.values()
    )



class TypeCache:
    """
    Content file path -> catalog type names seen for it.

    Entries are filled lazily and only ever appended to.
    """
    def __init__(self, root: Path, types: dict[str, list[str]] | None = None, *, isNew: bool = False) -> None:
        self.root = root
        self._types: dict[str, list[str]] = dict(types or {})
        rewriteAbsoluteKeys(self._types, root)
        # A fresh cache means type lookups will hit the catalog for every entry
        self.isNew = isNew

    @classmethod
    def load(cls, path: Path, root: Path) -> TypeCache:
        data = readCacheFile(path, "type cache", _isTypeMap)
        if data is None:
            return cls(root, isNew=True)
        return cls(root, data)

    def save(self, path: Path) -> None:
        writeJsonFile(path, self._types)

    def get(self, absolutePath: Path) -> list[str] | None:
        return self._types.get(cacheKey(self.root, absolutePath))

    def getOrLookup(self, catalog: BaseCatalog, absolutePath: Path) -> list[str] | None:
        """Cached types for the path, else the types of catalog entries with exactly that path."""
        types = self.get(absolutePath)
        if types is not None:
            return types

        matching = catalog.findByPath(absolutePath)
        if not matching:
            return None

        types = []
        for entry in matching:
            if entry.type not in types:
                types.append(entry.type)
        self._types[cacheKey(self.root, absolutePath)] = types
        return types

    def add(self, absolutePath: Path, typeName: str) -> None:
        key = cacheKey(self.root, absolutePath)
        types = self._types.setdefault(key, [])
        if typeName not in types:
            types.append(typeName)

    def __len__(self) -> int:
        return len(self._types)

    def __contains__(self, absolutePath: object) -> bool:
        return isinstance(absolutePath, (str, Path)) and cacheKey(self.root, absolutePath) in self._types

    def asDict(self) -> dict[str, list[str]]:
        return {key: list(types) for key, types in self._types.items()}
