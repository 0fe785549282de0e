# modforge/manifest/types.py
from __future__ import annotations

from dataclasses import dataclass, field, replace
from pathlib import Path

from modforge.catalog.catalog import CatalogEntry
from modforge.mods.descriptor import ManifestDeclaration

__all__ = ["ManifestEntry", "ModExpansion"]



@dataclass(slots=True)
class ManifestEntry:
    """
    One concrete file operation contributed by a mod.

    Created during expansion and never changed afterwards, except `type`,
    which the planner back-fills once it is known.
    """
    modName: str
    path: Path
    type: str | None
    id: str
    shouldMergeJSON: bool = False
    addToAddendum: str | None = None
    addToDB: bool = True
    assetBundleName: str | None = None
    # Prefabs point inside an asset bundle; their path is not a file on disk
    nested: bool = False

    @classmethod
    def fromDeclaration(cls, modName: str, decl: ManifestDeclaration, path: Path, entryId: str) -> ManifestEntry:
        return cls(
            modName=modName,
            path=path,
            type=decl.type,
            id=entryId,
            shouldMergeJSON=decl.shouldMergeJSON,
            addToAddendum=decl.addToAddendum,
            addToDB=decl.addToDB,
            assetBundleName=decl.assetBundleName,
        )

    def withType(self, typeName: str) -> ManifestEntry:
        return replace(self, type=typeName)

    def toCatalogEntry(self) -> CatalogEntry:
        return CatalogEntry(id=self.id, type=self.type or "", filePath=self.path, addendum=self.addToAddendum)



@dataclass
class ModExpansion:
    modName: str
    version: str
    entries: list[ManifestEntry] = field(default_factory=list)
    entryPointInvoked: bool = False

    @property
    def isEmpty(self) -> bool:
        return not self.entries and not self.entryPointInvoked
