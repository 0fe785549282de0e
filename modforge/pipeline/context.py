# modforge/pipeline/context.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from modforge.cache.db_cache import DBCache
from modforge.cache.merge_cache import MergeCache
from modforge.cache.type_cache import TypeCache
from modforge.catalog.catalog import AugmentedCatalog, BaseCatalog, VersionManifest
from modforge.config.settings import loadSettings
from modforge.core.errors import ModforgeError
from modforge.database.store import ContentDatabase, SqliteContentDatabase
from modforge.manifest.entry_points import EntryPointInvoker
from modforge.manifest.types import ModExpansion
from modforge.mods.discover import DiscoveryResult
from modforge.mods.resolver import LoadOrderResult, saveLoadOrder
from modforge.pipeline.paths import PipelinePaths
from modforge.pipeline.progress import NullProgressReporter, ProgressReporter

logger = logging.getLogger(__name__)

__all__ = ["PipelineContext"]



@dataclass
class PipelineContext:
    """
    Everything one run shares: paths, settings, collaborators, caches and the
    results built so far. Created at run start, flushed by `close()`.
    """
    paths: PipelinePaths
    settings: dict[str, Any]
    catalog: BaseCatalog
    database: ContentDatabase
    typeCache: TypeCache
    mergeCache: MergeCache
    dbCache: DBCache
    invoker: EntryPointInvoker | None = None
    reporter: ProgressReporter = field(default_factory=NullProgressReporter)

    augmented: AugmentedCatalog = field(default_factory=AugmentedCatalog)
    failures: list[ModforgeError] = field(default_factory=list)
    discovery: DiscoveryResult | None = None
    loadOrder: LoadOrderResult | None = None
    # name -> expansion, load order; mods that expanded to nothing are absent
    expansions: dict[str, ModExpansion] = field(default_factory=dict)

    _flushed: set[str] = field(default_factory=set, repr=False)
    closed: bool = False

    @classmethod
    def create(
        cls,
        paths: PipelinePaths,
        *,
        settings: dict[str, Any] | None = None,
        catalog: BaseCatalog | None = None,
        database: ContentDatabase | None = None,
        invoker: EntryPointInvoker | None = None,
        reporter: ProgressReporter | None = None,
    ) -> PipelineContext:
        """
        Loads settings, the base catalog and every persisted cache.

        Raises PipelineAbortError when no catalog was given and the catalog file is missing.
        """
        if settings is None:
            settings = loadSettings(paths.settingsPath)
        if catalog is None:
            catalog = VersionManifest.load(paths.catalogPath, contentDir=paths.contentDir)
        if database is None:
            database = SqliteContentDatabase(paths.workingDbPath)

        return cls(
            paths=paths,
            settings=settings,
            catalog=catalog,
            database=database,
            typeCache=TypeCache.load(paths.typeCachePath, paths.gameDir),
            mergeCache=MergeCache.load(paths.mergeCachePath, paths.gameDir, paths.cacheDir),
            dbCache=DBCache.load(paths.dbCachePath, paths.gameDir),
            invoker=invoker,
            reporter=reporter or NullProgressReporter(),
        )

    # ------------------------------------------------------------------ #
    # Persistence
    # ------------------------------------------------------------------ #

    def flush(self, name: str) -> None:
        """Writes one piece of persisted state: loadOrder, typeCache, mergeCache or dbCache."""
        if name == "loadOrder":
            if self.loadOrder is None:
                return
            saveLoadOrder(self.paths.loadOrderPath, self.loadOrder.order)
        elif name == "typeCache":
            self.typeCache.save(self.paths.typeCachePath)
        elif name == "mergeCache":
            self.mergeCache.save(self.paths.mergeCachePath)
        elif name == "dbCache":
            self.dbCache.save(self.paths.dbCachePath)
        else:
            raise ValueError(f"Unknown persisted state '{name}'")
        self._flushed.add(name)
        logger.debug("Flushed %s", name)

    def close(self) -> None:
        """Persists whatever was not flushed yet. Safe to call twice."""
        if self.closed:
            return
        self.closed = True
        if not self.paths.modsDir.is_dir():
            return
        for name in ("loadOrder", "typeCache", "mergeCache", "dbCache"):
            if name in self._flushed:
                continue
            try:
                self.flush(name)
            except OSError as err:
                logger.error("Could not persist %s: %s", name, err)

    def recordFailure(self, err: ModforgeError) -> None:
        self.failures.append(err)
