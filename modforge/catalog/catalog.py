# modforge/catalog/catalog.py
from __future__ import annotations

import logging
import os
from collections import defaultdict
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from modforge.core.errors import PipelineAbortError
from modforge.core.jsonutils import readJsonFile

logger = logging.getLogger(__name__)

__all__ = [
    "fullPath",
    "CatalogEntry",
    "BaseCatalog",
    "VersionManifest",
    "AugmentedCatalog",
]



def fullPath(path: Path | str) -> Path:
    """Absolute, lexically normalized path (no symlink resolution), used for path identity."""
    return Path(os.path.normpath(os.path.abspath(path)))



@dataclass(frozen=True, slots=True)
class CatalogEntry:
    id: str
    type: str
    filePath: Path
    addendum: str | None = None



class BaseCatalog(Protocol):
    """Read-only view of the host's authoritative content catalog."""

    def findByPath(self, path: Path) -> list[CatalogEntry]: ...

    def findById(self, entryId: str) -> CatalogEntry | None: ...

    def entries(self) -> Iterable[CatalogEntry]: ...

    def hasAddendum(self, name: str) -> bool: ...



class VersionManifest:
    """
    In-memory catalog.

    Loaded from a json5 document:

        {
          "entries": [{"id": "mechdef_atlas", "type": "MechDef", "path": "data/mech/mechdef_atlas.json"}],
          "addendums": ["StoryContent"]
        }

    Relative entry paths are resolved against `contentDir` (defaults to the
    directory holding the catalog file).
    """
    def __init__(self, entries: Iterable[CatalogEntry] = (), addendums: Iterable[str] = ()) -> None:
        self._entries: list[CatalogEntry] = []
        self._byPath: dict[Path, list[CatalogEntry]] = defaultdict(list)
        self._byId: dict[str, CatalogEntry] = {}
        self._addendums: set[str] = set(addendums)
        for entry in entries:
            self.add(entry)

    @classmethod
    def load(cls, catalogPath: Path, *, contentDir: Path | None = None) -> VersionManifest:
        if not catalogPath.is_file():
            raise PipelineAbortError(f"Catalog file '{catalogPath}' does not exist", path=catalogPath)
        try:
            raw = readJsonFile(catalogPath)
        except (OSError, ValueError) as err:
            raise PipelineAbortError(f"Cannot read catalog '{catalogPath}': {err}", path=catalogPath) from err

        base = contentDir if contentDir is not None else catalogPath.parent
        rawEntries = raw.get("entries", []) if isinstance(raw, dict) else []
        entries: list[CatalogEntry] = []
        for item in rawEntries:
            try:
                entries.append(CatalogEntry(
                    id=str(item["id"]),
                    type=str(item["type"]),
                    filePath=fullPath(base / str(item["path"])),
                    addendum=item.get("addendum"),
                ))
            except (KeyError, TypeError, AttributeError) as err:
                logger.warning("Skipping malformed catalog entry %r in '%s': %s", item, catalogPath, err)
        addendums = raw.get("addendums", []) if isinstance(raw, dict) else []
        catalog = cls(entries, addendums)
        logger.info("Loaded catalog '%s' (%d entries, %d addendums)", catalogPath, len(entries), len(catalog._addendums))
        return catalog

    def add(self, entry: CatalogEntry) -> None:
        entry = CatalogEntry(entry.id, entry.type, fullPath(entry.filePath), entry.addendum)
        self._entries.append(entry)
        self._byPath[entry.filePath].append(entry)
        # First entry with an id wins lookups by id
        self._byId.setdefault(entry.id, entry)
        if entry.addendum:
            self._addendums.add(entry.addendum)

    def findByPath(self, path: Path) -> list[CatalogEntry]:
        return list(self._byPath.get(fullPath(path), ()))

    def findById(self, entryId: str) -> CatalogEntry | None:
        return self._byId.get(entryId)

    def entries(self) -> Iterator[CatalogEntry]:
        return iter(self._entries)

    def hasAddendum(self, name: str) -> bool:
        return name in self._addendums

    def __len__(self) -> int:
        return len(self._entries)



@dataclass
class AugmentedCatalog:
    """Everything the pipeline adds on top of the base catalog."""
    # Direct add/replace entries, merged documents included, in application order
    entries: list[CatalogEntry] = field(default_factory=list)
    # addendum name -> entries routed into it
    addendums: dict[str, list[CatalogEntry]] = field(default_factory=dict)
    # asset bundle id -> bundle file
    assetBundles: dict[str, Path] = field(default_factory=dict)
    # ids of Texture2D entries provided by mods
    textures: set[str] = field(default_factory=set)
    # video file name -> file
    videos: dict[str, Path] = field(default_factory=dict)

    def add(self, entry: CatalogEntry) -> None:
        if entry.addendum:
            self.addendums.setdefault(entry.addendum, []).append(entry)
        else:
            self.entries.append(entry)

    def allEntries(self) -> Iterator[CatalogEntry]:
        yield from self.entries
        for grouped in self.addendums.values():
            yield from grouped
