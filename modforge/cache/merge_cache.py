# modforge/cache/merge_cache.py
from __future__ import annotations

import hashlib
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from modforge.cache.store import absoluteFromKey, cacheKey, readCacheFile
from modforge.core.document import deepMerge, fromPlain, toPlain
from modforge.core.errors import MergeFailureError
from modforge.core.jsonutils import readGameJson, writeJsonFile
from modforge.manifest.advanced_merge import AdvancedMergeDocument, applyInstructions, isAdvancedMergeDocument

logger = logging.getLogger(__name__)

__all__ = ["MergeCacheEntry", "MergeCache", "mergeTarget"]



@dataclass(frozen=True, slots=True)
class MergeCacheEntry:
    # Root-relative keys
    target: str
    overlays: tuple[str, ...]
    cachePath: str



def _isCacheMap(data: Any) -> bool:
    if not isinstance(data, dict):
        return False
    for value in data.values():
        if not isinstance(value, dict):
            return False
        if not isinstance(value.get("cachePath"), str) or not isinstance(value.get("overlays"), list):
            return False
    return True



def mergeTarget(target: Path, overlays: Sequence[Path]) -> Any:
    """
    Merges `overlays`, in order, onto the parsed `target` document.

    Advanced merge directives apply their instructions; every other overlay is
    deep merged (objects union, everything else last writer wins).

    Raises MergeFailureError when any document fails to parse or apply.
    """
    try:
        doc = readGameJson(target)
    except (OSError, ValueError) as err:
        raise MergeFailureError(f"Cannot parse merge target '{target}': {err}", path=target) from err

    for overlayPath in overlays:
        try:
            overlay = readGameJson(overlayPath)
            if isAdvancedMergeDocument(overlay):
                doc = applyInstructions(doc, AdvancedMergeDocument.model_validate(overlay))
            else:
                doc = toPlain(deepMerge(fromPlain(doc), fromPlain(overlay)))
        except (OSError, ValueError, TypeError) as err:
            raise MergeFailureError(
                f"Cannot merge '{overlayPath}' onto '{target}': {err}",
                path=overlayPath,
            ) from err
    return doc



class MergeCache:
    """
    (merge target, ordered overlay list) -> previously merged document.

    A hit is decided purely by path identity and order of the inputs; file
    contents and modification times are not consulted. A hit whose merged file
    was removed from disk counts as a miss.
    """
    def __init__(self, root: Path, cacheDir: Path, entries: dict[str, MergeCacheEntry] | None = None) -> None:
        self.root = root
        self.cacheDir = cacheDir
        self._entries: dict[str, MergeCacheEntry] = dict(entries or {})
        self.createdThisRun: int = 0
        self.failures: list[MergeFailureError] = []

    # ------------------------------------------------------------------ #
    # Persistence
    # ------------------------------------------------------------------ #

    @classmethod
    def load(cls, path: Path, root: Path, cacheDir: Path) -> MergeCache:
        data = readCacheFile(path, "merge cache", _isCacheMap)
        entries: dict[str, MergeCacheEntry] = {}
        for target, value in (data or {}).items():
            # Older runs may have stored absolute paths
            key = cacheKey(root, target)
            entries[key] = MergeCacheEntry(
                target=key,
                overlays=tuple(cacheKey(root, overlay) for overlay in value["overlays"]),
                cachePath=cacheKey(root, value["cachePath"]),
            )
        return cls(root, cacheDir, entries)

    def save(self, path: Path) -> None:
        writeJsonFile(path, {
            key: {"overlays": list(entry.overlays), "cachePath": entry.cachePath}
            for key, entry in self._entries.items()
        })

    # ------------------------------------------------------------------ #
    # Lookup
    # ------------------------------------------------------------------ #

    def _lookup(self, target: Path, overlays: Sequence[Path]) -> MergeCacheEntry | None:
        entry = self._entries.get(cacheKey(self.root, target))
        if entry is None:
            return None
        if entry.overlays != tuple(cacheKey(self.root, overlay) for overlay in overlays):
            return None
        return entry

    def hasCachedEntry(self, target: Path, overlays: Sequence[Path]) -> bool:
        entry = self._lookup(target, overlays)
        return entry is not None and absoluteFromKey(self.root, entry.cachePath).is_file()

    def cachePathFor(self, target: Path) -> Path:
        """Merged documents mirror the target's root-relative path inside the cache directory."""
        rel = cacheKey(self.root, target)
        if Path(rel).is_absolute() or rel.startswith("../") or rel == "..":
            digest = hashlib.sha256(rel.encode("utf-8")).hexdigest()[:16]
            return self.cacheDir / "external" / digest / Path(target).name
        return self.cacheDir / rel

    def resolve(self, target: Path, overlays: Sequence[Path]) -> Path | None:
        """
        Returns the merged document for (target, overlays).

        Hit: the stored path, as is. Miss: merges now, writes the result,
        records the entry. Returns None when the merge fails (logged), which
        only drops this target for this run.
        """
        entry = self._lookup(target, overlays)
        if entry is not None:
            cached = absoluteFromKey(self.root, entry.cachePath)
            if cached.is_file():
                logger.debug("Merge cache hit for '%s'", entry.target)
                return cached
            logger.info("Merged file '%s' vanished; merging again", cached)

        try:
            merged = mergeTarget(target, overlays)
        except MergeFailureError as err:
            self._fail(err)
            return None

        outPath = self.cachePathFor(target)
        try:
            writeJsonFile(outPath, merged)
        except (OSError, ValueError) as err:
            # Non-finite numbers parse as JSON5 but have no strict JSON form
            outPath.unlink(missing_ok=True)
            self._entries.pop(cacheKey(self.root, target), None)
            self._fail(MergeFailureError(f"Cannot write merged '{target}' to '{outPath}': {err}", path=target))
            return None
        key = cacheKey(self.root, target)
        self._entries[key] = MergeCacheEntry(
            target=key,
            overlays=tuple(cacheKey(self.root, overlay) for overlay in overlays),
            cachePath=cacheKey(self.root, outPath),
        )
        self.createdThisRun += 1
        logger.info("Merged %d overlay(s) onto '%s'", len(overlays), key)
        return outPath

    def _fail(self, err: MergeFailureError) -> None:
        logger.error("Merge failed: %s", err)
        self.failures.append(err)

    def __len__(self) -> int:
        return len(self._entries)
