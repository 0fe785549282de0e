# modforge/database/reconciler.py
from __future__ import annotations

import logging
import shutil
from collections.abc import Iterable, Sequence
from contextlib import ExitStack
from dataclasses import dataclass, field
from pathlib import Path

from modforge.cache.db_cache import DBCache, fileMtime
from modforge.cache.store import cacheKey
from modforge.catalog.catalog import BaseCatalog, fullPath
from modforge.core.errors import DatabaseEntryFailureError, DatabaseRebuildRequired, PipelineAbortError
from modforge.core.jsonutils import isJsonPath, readGameJson
from modforge.database.store import ContentDatabase, ContentSession
from modforge.manifest.types import ManifestEntry

logger = logging.getLogger(__name__)

__all__ = ["DatabaseWorkItem", "ReconcilePlan", "DatabaseReconciler"]



@dataclass(frozen=True, slots=True)
class DatabaseWorkItem:
    path: Path
    kind: str
    entryId: str



@dataclass
class ReconcilePlan:
    # Stale cache keys dropped in favour of a same-filename replacement
    removedKeys: list[str] = field(default_factory=list)
    replacements: list[DatabaseWorkItem] = field(default_factory=list)
    # Direct entries eligible for the database, in application order
    entries: list[DatabaseWorkItem] = field(default_factory=list)
    rebuilt: bool = False

    @property
    def items(self) -> list[DatabaseWorkItem]:
        return [*self.replacements, *self.entries]



class DatabaseReconciler:
    """
    Keeps the working content database in step with the current direct entries.

    Usage is `plan()` once, then `insert()` per work item, then `finish()`.
    `reconcile()` does all three. One database session spans the inserts of a
    batch and is released by `finish()`/`close()` even if an insert fails.
    """
    def __init__(
        self,
        *,
        database: ContentDatabase,
        dbCache: DBCache,
        catalog: BaseCatalog,
        workingDbPath: Path,
        baselineDbPath: Path,
        persistedKinds: Iterable[str],
    ) -> None:
        self.database = database
        self.dbCache = dbCache
        self.catalog = catalog
        self.workingDbPath = workingDbPath
        self.baselineDbPath = baselineDbPath
        self.persistedKinds = frozenset(persistedKinds)
        self.failures: list[DatabaseEntryFailureError] = []
        self.written: int = 0
        self._stack: ExitStack | None = None
        self._session: ContentSession | None = None

    # ------------------------------------------------------------------ #
    # Baseline handling
    # ------------------------------------------------------------------ #

    def resetFromBaseline(self) -> None:
        """Deletes the working database, recopies the pristine baseline and empties the cache."""
        if not self.baselineDbPath.is_file():
            raise PipelineAbortError(
                f"Baseline database '{self.baselineDbPath}' is missing; cannot rebuild the content database",
                path=self.baselineDbPath,
            )
        self.workingDbPath.unlink(missing_ok=True)
        self.workingDbPath.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(self.baselineDbPath, self.workingDbPath)
        self.dbCache.clear()
        logger.info("Copied baseline database '%s' to '%s'", self.baselineDbPath, self.workingDbPath)

    def ensureWorkingDatabase(self) -> bool:
        """Recopies the baseline when the cache or the working database is missing. Returns True if it did."""
        if self.dbCache.isNew or not self.workingDbPath.is_file():
            self.resetFromBaseline()
            self.dbCache.isNew = False
            return True
        return False

    # ------------------------------------------------------------------ #
    # Planning
    # ------------------------------------------------------------------ #

    def _workItem(self, path: Path, kind: str | None, entryId: str) -> DatabaseWorkItem | None:
        if not kind or kind not in self.persistedKinds or not isJsonPath(path):
            return None
        return DatabaseWorkItem(path=fullPath(path), kind=kind, entryId=entryId)

    def _findReplacement(self, fileName: str, directEntries: Sequence[ManifestEntry]) -> DatabaseWorkItem | None:
        for entry in directEntries:
            if entry.path.name == fileName:
                return DatabaseWorkItem(path=fullPath(entry.path), kind=entry.type or "", entryId=entry.id)
        for catalogEntry in self.catalog.entries():
            if catalogEntry.filePath.name == fileName:
                return DatabaseWorkItem(path=fullPath(catalogEntry.filePath), kind=catalogEntry.type, entryId=catalogEntry.id)
        return None

    def _planReplacements(self, directEntries: Sequence[ManifestEntry], plan: ReconcilePlan) -> None:
        referenced = {cacheKey(self.dbCache.root, entry.path) for entry in directEntries}
        for key in self.dbCache:
            if key in referenced:
                continue
            logger.info("Need to remove database entry from file in path: %s", key)
            replacement = self._findReplacement(Path(key).name, directEntries)
            if replacement is None:
                raise DatabaseRebuildRequired(
                    f"No current entry matches removed database entry '{key}'",
                    path=key,
                )
            plan.removedKeys.append(key)
            # Only persisted JSON kinds are ever written; others just drop out of the cache
            item = self._workItem(replacement.path, replacement.kind, replacement.entryId)
            if item is not None:
                plan.replacements.append(item)

    def plan(self, directEntries: Sequence[ManifestEntry]) -> ReconcilePlan:
        plan = ReconcilePlan()
        plan.rebuilt = self.ensureWorkingDatabase()

        try:
            self._planReplacements(directEntries, plan)
        except DatabaseRebuildRequired as err:
            logger.warning("Rebuilding content database: %s", err)
            self.resetFromBaseline()
            plan = ReconcilePlan(rebuilt=True)
        else:
            for key in plan.removedKeys:
                self.dbCache.discard(key)

        for entry in directEntries:
            if not entry.addToDB:
                continue
            item = self._workItem(entry.path, entry.type, entry.id)
            if item is not None:
                plan.entries.append(item)
        return plan

    # ------------------------------------------------------------------ #
    # Batch
    # ------------------------------------------------------------------ #

    def _ensureSession(self) -> ContentSession:
        if self._session is None:
            stack = ExitStack()
            self._session = stack.enter_context(self.database.open())
            self._stack = stack
        return self._session

    def insert(self, item: DatabaseWorkItem) -> bool:
        """
        Writes one content file if its modification time differs from the cached
        one. Returns True when written. Failures are logged and recorded.
        """
        try:
            mtime = fileMtime(item.path)
        except OSError as err:
            self._fail(item, f"cannot stat file: {err}")
            return False
        if self.dbCache.isCurrent(item.path, mtime):
            return False

        try:
            document = readGameJson(item.path)
            self._ensureSession().insertOrUpdate(
                item.kind, item.entryId, cacheKey(self.dbCache.root, item.path), document,
            )
        except Exception as err:
            self._fail(item, str(err))
            return False

        self.dbCache.record(item.path, mtime)
        self.written += 1
        logger.info("Added/Updated %s (%s)", item.entryId, item.kind)
        return True

    def _fail(self, item: DatabaseWorkItem, reason: str) -> None:
        err = DatabaseEntryFailureError(f"Add to database failed for '{item.path.name}': {reason}", path=item.path)
        logger.error("%s", err)
        self.failures.append(err)

    def finish(self) -> None:
        """Releases the batch's database session."""
        stack, self._stack, self._session = self._stack, None, None
        if stack is not None:
            stack.close()

    close = finish

    def reconcile(self, directEntries: Sequence[ManifestEntry]) -> ReconcilePlan:
        plan = self.plan(directEntries)
        try:
            for item in plan.items:
                self.insert(item)
        finally:
            self.finish()
        return plan
