# modforge/pipeline/orchestrator.py
from __future__ import annotations

import logging
import time
from collections import deque
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Literal

from modforge.catalog.catalog import AugmentedCatalog
from modforge.config.settings import setting, settingList
from modforge.core.errors import ModforgeError, PipelineAbortError
from modforge.core.logging import logContext
from modforge.database.reconciler import DatabaseReconciler, DatabaseWorkItem
from modforge.manifest.expander import ManifestExpander
from modforge.manifest.planner import MergePlanner
from modforge.manifest.types import ManifestEntry
from modforge.mods.descriptor import ModDescriptor
from modforge.mods.discover import discoverMods
from modforge.mods.resolver import loadLoadOrder, resolveLoadOrder
from modforge.pipeline.context import PipelineContext
from modforge.pipeline.paths import STATE_DIR_NAME
from modforge.pipeline.progress import ProgressReport

logger = logging.getLogger(__name__)

__all__ = ["PipelineStages", "DEFAULT_STAGE_ORDER", "PipelineStep", "ModPipeline"]



class PipelineStages(str, Enum):
    Discover = "Discover"
    ResolveLoadOrder = "ResolveLoadOrder"
    ExpandManifests = "ExpandManifests"
    Classify = "Classify"
    Merge = "Merge"
    SyncDatabase = "SyncDatabase"



DEFAULT_STAGE_ORDER: list[PipelineStages] = [
    PipelineStages.Discover,
    PipelineStages.ResolveLoadOrder,
    PipelineStages.ExpandManifests,
    PipelineStages.Classify,
    PipelineStages.Merge,
    PipelineStages.SyncDatabase,
]



@dataclass
class PipelineStep:
    stage: PipelineStages
    item: str
    action: Callable[[], None]
    index: int = 0
    total: int = 1
    modName: str | None = None



class ModPipeline:
    """
    Runs the mod pipeline as a queue of small units of work.

    The host calls `runNext()` between frames (each call runs one unit and
    reports progress) or `runAll()` to drain it. Units that fail are logged and
    recorded on the context; only PipelineAbortError stops the run.
    """
    def __init__(self, ctx: PipelineContext) -> None:
        self.ctx = ctx
        settings = ctx.settings
        mirrorDirName = str(setting(settings, "content.mirrorDirName", "StreamingAssets"))
        idFields = settingList(settings, "content.idFields")

        self.expander = ManifestExpander(
            mirrorDirName=mirrorDirName,
            denyList=settingList(settings, "content.denyList"),
            idFields=idFields,
            invoker=ctx.invoker,
        )
        self.planner = MergePlanner(
            catalog=ctx.catalog,
            typeCache=ctx.typeCache,
            baseContentDir=ctx.paths.contentDir,
            mirrorDirName=mirrorDirName,
            idFields=idFields,
            augmented=ctx.augmented,
        )
        self.reconciler = DatabaseReconciler(
            database=ctx.database,
            dbCache=ctx.dbCache,
            catalog=ctx.catalog,
            workingDbPath=ctx.paths.workingDbPath,
            baselineDbPath=ctx.paths.baselineDbPath,
            persistedKinds=settingList(settings, "database.persistedKinds"),
        )

        self.status: Literal["pending", "running", "succeeded", "failed"] = "pending"
        self.stage: PipelineStages | None = None
        self._queue: deque[PipelineStep] = deque()
        self._startedTs: float | None = None
        self._enqueuePhase(PipelineStages.Discover, [("mods", None, self._discover)])

    # ------------------------------------------------------------------ #
    # Step queue
    # ------------------------------------------------------------------ #

    def _enqueuePhase(
        self,
        stage: PipelineStages,
        units: Sequence[tuple[str, str | None, Callable[[], None]]],
        onComplete: Callable[[], None] | None = None,
    ) -> None:
        total = len(units) + (1 if onComplete else 0)
        for index, (item, modName, action) in enumerate(units):
            self._queue.append(PipelineStep(stage, item, action, index, total, modName))
        if onComplete is not None:
            self._queue.append(PipelineStep(stage, "", onComplete, len(units), total))

    @property
    def pending(self) -> int:
        return len(self._queue)

    def runNext(self) -> bool:
        """Runs one unit of work. Returns True while more units remain."""
        if not self._queue:
            return False
        if self.status == "pending":
            self.status = "running"
            self._startedTs = time.monotonic()

        step = self._queue.popleft()
        self.stage = step.stage
        self.ctx.reporter.report(ProgressReport(step.index / max(step.total, 1), step.stage.value, step.item))

        with logContext(phase=step.stage.value, modName=step.modName):
            try:
                step.action()
            except PipelineAbortError as err:
                logger.error("Aborting the mod pipeline: %s", err)
                self.status = "failed"
                self._queue.clear()
                self.reconciler.close()
                self.ctx.close()
                raise
            except ModforgeError as err:
                self._unitFailed(err)
            except Exception as err:
                logger.exception("Unexpected failure in %s unit '%s'", step.stage.value, step.item)
                self.ctx.recordFailure(
                    ModforgeError(f"{step.stage.value} unit '{step.item}' failed: {err}", modName=step.modName)
                )

        if not self._queue:
            self._finish()
        return bool(self._queue)

    def runAll(self) -> AugmentedCatalog:
        while self.runNext():
            pass
        return self.ctx.augmented

    def _finish(self) -> None:
        self.reconciler.close()
        self.ctx.close()
        self.status = "succeeded"
        elapsed = time.monotonic() - (self._startedTs or time.monotonic())
        logger.info(
            "Done. %d mod(s) loaded, %d direct entries, %d failure(s), %.2f seconds",
            len(self.ctx.expansions),
            len(self.planner.directEntries),
            len(self.ctx.failures),
            elapsed,
        )

    def _unitFailed(self, err: ModforgeError) -> None:
        logger.error("%s", err)
        self.ctx.recordFailure(err)

    # ------------------------------------------------------------------ #
    # Discovery & load order
    # ------------------------------------------------------------------ #

    def _discover(self) -> None:
        discovery = discoverMods(self.ctx.paths.modsDir, ignoredNames=frozenset({STATE_DIR_NAME}))
        self.ctx.discovery = discovery
        self.ctx.failures.extend(discovery.failures)
        self._enqueuePhase(PipelineStages.ResolveLoadOrder, [("load order", None, self._resolve)])

    def _resolve(self) -> None:
        discovery = self.ctx.discovery
        if discovery is None:
            raise PipelineAbortError("Load order requested before mod discovery ran")
        prior = loadLoadOrder(self.ctx.paths.loadOrderPath)
        result = resolveLoadOrder(discovery.accepted, prior)
        self.ctx.loadOrder = result
        self.ctx.failures.extend(result.excluded.values())
        if result.order:
            logger.info("Load order: %s", ", ".join(result.order))

        self._enqueuePhase(
            PipelineStages.ExpandManifests,
            [(name, name, self._expandUnit(discovery.accepted[name])) for name in result.order],
            self._endExpansion,
        )

    # ------------------------------------------------------------------ #
    # Expansion & classification
    # ------------------------------------------------------------------ #

    def _expandUnit(self, descriptor: ModDescriptor) -> Callable[[], None]:
        name = descriptor.name

        def run() -> None:
            try:
                expansion = self.expander.expand(descriptor)
            except ModforgeError as err:
                self._unitFailed(err)
                return
            if expansion.isEmpty:
                logger.debug("'%s' contributes nothing", name)
                return
            self.ctx.expansions[name] = expansion
        return run

    def _endExpansion(self) -> None:
        self.ctx.flush("loadOrder")
        self._enqueuePhase(
            PipelineStages.Classify,
            [(name, name, self._classifyUnit(name)) for name, expansion in self.ctx.expansions.items() if expansion.entries],
            self._endClassification,
        )

    def _classifyUnit(self, name: str) -> Callable[[], None]:
        def run() -> None:
            for entry in self.ctx.expansions[name].entries:
                try:
                    self.planner.classify(entry)
                except ModforgeError as err:
                    self._unitFailed(err)
        return run

    def _endClassification(self) -> None:
        self.ctx.flush("typeCache")
        mergeCache = self.ctx.mergeCache
        units: list[tuple[str, str | None, Callable[[], None]]] = []
        fresh = 0
        for target, overlays in self.planner.jsonMerges.items():
            if mergeCache.hasCachedEntry(target, overlays):
                item = f"{target.stem} (cached)"
            else:
                item = target.stem
                fresh += 1
            units.append((item, None, self._mergeUnit(target, overlays)))
        if units:
            logger.info("%d merge target(s), %d need merging", len(units), fresh)
        self._enqueuePhase(
            PipelineStages.Merge,
            units,
            self._endMerging,
        )

    # ------------------------------------------------------------------ #
    # Merging
    # ------------------------------------------------------------------ #

    def _mergeUnit(self, target: Path, overlays: list[Path]) -> Callable[[], None]:
        def run() -> None:
            mergedPath = self.ctx.mergeCache.resolve(target, overlays)
            # A failed merge drops only this target
            if mergedPath is not None:
                self.planner.addMergedEntry(target, mergedPath)
        return run

    def _endMerging(self) -> None:
        self.ctx.flush("mergeCache")
        self.ctx.failures.extend(self.ctx.mergeCache.failures)
        if self.ctx.mergeCache.createdThisRun:
            logger.info("Merge cache: %d new entr(y/ies)", self.ctx.mergeCache.createdThisRun)
        self._enqueuePhase(PipelineStages.SyncDatabase, [("plan", None, self._planDatabase)])

    # ------------------------------------------------------------------ #
    # Database
    # ------------------------------------------------------------------ #

    def _planDatabase(self) -> None:
        plan = self.reconciler.plan(self.planner.directEntries)
        if plan.rebuilt:
            logger.info("Content database was rebuilt from the baseline")
        self._enqueuePhase(
            PipelineStages.SyncDatabase,
            [(item.entryId, None, self._insertUnit(item)) for item in plan.items],
            self._endDatabase,
        )

    def _insertUnit(self, item: DatabaseWorkItem) -> Callable[[], None]:
        def run() -> None:
            self.reconciler.insert(item)
        return run

    def _endDatabase(self) -> None:
        self.reconciler.finish()
        self.ctx.failures.extend(self.reconciler.failures)
        self.ctx.flush("dbCache")

    # ------------------------------------------------------------------ #
    # Results
    # ------------------------------------------------------------------ #

    @property
    def augmented(self) -> AugmentedCatalog:
        return self.ctx.augmented

    @property
    def directEntries(self) -> list[ManifestEntry]:
        return list(self.planner.directEntries)
