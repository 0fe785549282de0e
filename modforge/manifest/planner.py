# modforge/manifest/planner.py
from __future__ import annotations

import logging
from pathlib import Path

from modforge.cache.type_cache import TypeCache
from modforge.catalog.catalog import AugmentedCatalog, BaseCatalog, fullPath
from modforge.core.jsonutils import isJsonPath
from modforge.manifest.advanced_merge import readAdvancedMerge
from modforge.manifest.expander import ASSET_BUNDLE_TYPE, inferId
from modforge.manifest.types import ManifestEntry

logger = logging.getLogger(__name__)

__all__ = ["VIDEO_TYPE", "ADVANCED_MERGE_TYPE", "TEXTURE_TYPE", "MergePlanner"]



VIDEO_TYPE = "Video"
ADVANCED_MERGE_TYPE = "AdvancedJSONMerge"
TEXTURE_TYPE = "Texture2D"



class MergePlanner:
    """
    Decides, per manifest entry, whether it replaces, merges into, or is
    registered beside the base catalog.

    Entries must be fed in load order, then declaration order; the merge groups
    inherit that order and later overlays win during the merge.
    """
    def __init__(
        self,
        *,
        catalog: BaseCatalog,
        typeCache: TypeCache,
        baseContentDir: Path,
        mirrorDirName: str,
        idFields: tuple[str, ...] | list[str] = (),
        augmented: AugmentedCatalog | None = None,
    ) -> None:
        self.catalog = catalog
        self.typeCache = typeCache
        self.baseContentDir = fullPath(baseContentDir)
        self.mirrorDirName = mirrorDirName
        self.idFields = tuple(idFields)
        self.augmented = augmented if augmented is not None else AugmentedCatalog()

        # Direct add/replace entries, in application order
        self.directEntries: list[ManifestEntry] = []
        # merge target -> overlays, first-insertion order of targets kept
        self.jsonMerges: dict[Path, list[Path]] = {}
        self._overlayOwners: dict[Path, str] = {}

    # ------------------------------------------------------------------ #
    # Classification
    # ------------------------------------------------------------------ #

    def classify(self, entry: ManifestEntry) -> None:
        if entry.type is None:
            self._classifyMirrorOverlay(entry)
            return
        if entry.type == VIDEO_TYPE:
            self._registerVideo(entry)
            return
        if entry.type == ADVANCED_MERGE_TYPE:
            self._classifyAdvancedMerge(entry)
            return

        if isJsonPath(entry.path) and entry.shouldMergeJSON:
            # The catalog entry with the same id is what this overlay merges onto
            matching = self.catalog.findById(entry.id)
            if matching is None:
                logger.warning("Could not find an existing catalog entry for '%s' (%s)", entry.id, entry.modName)
                return
            target = fullPath(matching.filePath)
            entry.type = matching.type
            self.typeCache.add(target, matching.type)
            self._addOverlay(target, entry)
            return

        self.addDirectEntry(entry)

    def _mirroredPath(self, entry: ManifestEntry) -> Path | None:
        """Maps a file under a mod's mirror directory onto the same relative path in base content."""
        parts = entry.path.parts
        for index in range(len(parts) - 1, -1, -1):
            if parts[index] == self.mirrorDirName:
                return fullPath(self.baseContentDir.joinpath(*parts[index + 1:]))
        return None

    def _classifyMirrorOverlay(self, entry: ManifestEntry) -> None:
        target = self._mirroredPath(entry)
        if target is None:
            logger.warning(
                "'%s' from '%s' has no type and is not under '%s'; dropping it",
                entry.path, entry.modName, self.mirrorDirName,
            )
            return

        types = self.typeCache.getOrLookup(self.catalog, target)
        if not types:
            logger.warning(
                "Could not find an existing catalog entry for '%s'. New entries cannot be added through '%s'.",
                entry.id, self.mirrorDirName,
            )
            return

        if isJsonPath(entry.path) and entry.shouldMergeJSON:
            # JSON content carries a single type
            entry.type = types[0]
            self._addOverlay(target, entry)
            return

        for typeName in types:
            self.addDirectEntry(entry.withType(typeName))

    def _registerVideo(self, entry: ManifestEntry) -> None:
        if not entry.path.is_file():
            logger.warning("Video '%s' from '%s' does not exist", entry.path, entry.modName)
            return
        logger.info("Video: '%s'", entry.path.name)
        self.augmented.videos[entry.path.name] = entry.path

    def _classifyAdvancedMerge(self, entry: ManifestEntry) -> None:
        try:
            directive = readAdvancedMerge(entry.path)
        except (OSError, ValueError) as err:
            logger.error("Skipping advanced merge '%s' from '%s': %s", entry.path, entry.modName, err)
            return

        if directive.targetFile:
            target = fullPath(self.baseContentDir / directive.targetFile)
        else:
            matching = self.catalog.findById(directive.targetId or "")
            if matching is None:
                logger.warning(
                    "Advanced merge '%s' targets unknown id '%s'", entry.path, directive.targetId,
                )
                return
            target = fullPath(matching.filePath)

        # Remember the target's types; merged output takes the first one
        self.typeCache.getOrLookup(self.catalog, target)
        self._addOverlay(target, entry)

    def _addOverlay(self, target: Path, entry: ManifestEntry) -> None:
        overlays = self.jsonMerges.setdefault(target, [])
        if entry.path in overlays:
            return
        logger.info("Merge: '%s' (%s) -> '%s'", entry.path.name, entry.type, target.name)
        overlays.append(entry.path)
        self._overlayOwners[entry.path] = entry.modName

    # ------------------------------------------------------------------ #
    # Direct entries
    # ------------------------------------------------------------------ #

    def addDirectEntry(self, entry: ManifestEntry) -> bool:
        """Records a replace/add entry. Returns False when it was skipped."""
        if entry.addToAddendum and not self.catalog.hasAddendum(entry.addToAddendum):
            logger.warning(
                "Cannot add '%s' to '%s' because that addendum doesn't exist in the catalog",
                entry.id, entry.addToAddendum,
            )
            return False

        if entry.type == ASSET_BUNDLE_TYPE:
            self.augmented.assetBundles[entry.id] = entry.path
        elif entry.type == TEXTURE_TYPE:
            self.augmented.textures.add(entry.id)

        if entry.addToAddendum:
            logger.info("Add/Replace: '%s' (%s) [%s]", entry.path.name, entry.type, entry.addToAddendum)
        else:
            logger.info("Add/Replace: '%s' (%s)", entry.path.name, entry.type)
        self.augmented.add(entry.toCatalogEntry())
        self.directEntries.append(entry)
        return True

    def addMergedEntry(self, target: Path, mergedPath: Path) -> ManifestEntry | None:
        """Substitutes the merged document for `target` as a direct entry."""
        types = self.typeCache.get(target)
        if not types:
            logger.warning("No known type for merge target '%s'; dropping merged '%s'", target, mergedPath)
            return None
        try:
            entryId = inferId(mergedPath, self.idFields)
        except ValueError:
            entryId = mergedPath.stem

        overlays = self.jsonMerges.get(target) or []
        owner = self._overlayOwners.get(overlays[-1], "") if overlays else ""
        entry = ManifestEntry(modName=owner, path=mergedPath, type=types[0], id=entryId)
        return entry if self.addDirectEntry(entry) else None
