# modforge/pipeline/paths.py
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from modforge.catalog.catalog import fullPath

__all__ = [
    "STATE_DIR_NAME",
    "LOAD_ORDER_FILE_NAME",
    "MERGE_CACHE_FILE_NAME",
    "TYPE_CACHE_FILE_NAME",
    "DB_CACHE_FILE_NAME",
    "LOG_FILE_NAME",
    "PipelinePaths",
]



# Private working directory inside the mods directory
STATE_DIR_NAME = ".modforge"
LOAD_ORDER_FILE_NAME = "load_order.json"
MERGE_CACHE_FILE_NAME = "merge_cache.json"
TYPE_CACHE_FILE_NAME = "type_cache.json"
DB_CACHE_FILE_NAME = "database_cache.json"
LOG_FILE_NAME = "modforge.log"



@dataclass(frozen=True)
class PipelinePaths:
    gameDir: Path                   # stable root every cache key is relative to
    modsDir: Path
    contentDir: Path                # base content the catalog points into
    catalogPath: Path
    baselineDbPath: Path
    databaseFileName: str = "MetadataDatabase.db"

    @classmethod
    def forGame(
        cls,
        gameDir: Path,
        *,
        modsDir: Path | None = None,
        contentDir: Path | None = None,
        catalogPath: Path | None = None,
        baselineDbPath: Path | None = None,
        databaseFileName: str = "MetadataDatabase.db",
    ) -> PipelinePaths:
        """Default layout: <game>/Mods, <game>/StreamingAssets with catalog.json5 and MDD/<db>."""
        gameDir = fullPath(gameDir)
        contentDir = fullPath(contentDir) if contentDir else gameDir / "StreamingAssets"
        return cls(
            gameDir=gameDir,
            modsDir=fullPath(modsDir) if modsDir else gameDir / "Mods",
            contentDir=contentDir,
            catalogPath=fullPath(catalogPath) if catalogPath else contentDir / "catalog.json5",
            baselineDbPath=fullPath(baselineDbPath) if baselineDbPath else contentDir / "MDD" / databaseFileName,
            databaseFileName=databaseFileName,
        )

    @property
    def stateDir(self) -> Path:
        return self.modsDir / STATE_DIR_NAME

    @property
    def cacheDir(self) -> Path:
        return self.stateDir / "Cache"

    @property
    def databaseDir(self) -> Path:
        return self.stateDir / "Database"

    @property
    def loadOrderPath(self) -> Path:
        return self.stateDir / LOAD_ORDER_FILE_NAME

    @property
    def mergeCachePath(self) -> Path:
        return self.cacheDir / MERGE_CACHE_FILE_NAME

    @property
    def typeCachePath(self) -> Path:
        return self.cacheDir / TYPE_CACHE_FILE_NAME

    @property
    def dbCachePath(self) -> Path:
        return self.databaseDir / DB_CACHE_FILE_NAME

    @property
    def workingDbPath(self) -> Path:
        return self.databaseDir / self.databaseFileName

    @property
    def logPath(self) -> Path:
        return self.stateDir / LOG_FILE_NAME

    @property
    def settingsPath(self) -> Path:
        return self.stateDir / "settings.json5"
