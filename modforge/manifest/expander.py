# modforge/manifest/expander.py
from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Sequence
from pathlib import Path
from typing import Any

from modforge.catalog.catalog import fullPath
from modforge.core.dictpath import getByPath
from modforge.core.errors import (
    BundleOrderingViolationError,
    ConfigParseError,
    MissingAssetError,
)
from modforge.core.jsonutils import isJsonPath, readGameJson
from modforge.core.logging import getModLogger
from modforge.manifest.entry_points import EntryPointInvoker
from modforge.manifest.types import ManifestEntry, ModExpansion
from modforge.mods.descriptor import EntryPointSpec, ManifestDeclaration, ModDescriptor

logger = logging.getLogger(__name__)

__all__ = ["PREFAB_TYPE", "ASSET_BUNDLE_TYPE", "ManifestExpander", "isDenied", "inferId"]



PREFAB_TYPE = "Prefab"
ASSET_BUNDLE_TYPE = "AssetBundle"



def isDenied(path: Path | str, denyList: Sequence[str]) -> bool:
    text = str(path).lower()
    return any(text.endswith(suffix.lower()) for suffix in denyList)



def inferIdFromDocument(doc: Any, idFields: Iterable[str]) -> str | None:
    if not isinstance(doc, dict):
        return None
    for fieldPath in idFields:
        value = getByPath(doc, fieldPath)
        if isinstance(value, bool) or value is None:
            continue
        if isinstance(value, (str, int, float)):
            return str(value)
    return None



def inferId(path: Path, idFields: Iterable[str]) -> str:
    """
    Id of a content file: the identifier field of a JSON document when it has
    one, otherwise the file name without extension (the host's convention).

    Raises ValueError when a JSON file cannot be parsed.
    """
    if not isJsonPath(path) or not path.is_file():
        return path.stem
    return inferIdFromDocument(readGameJson(path), idFields) or path.stem



class ManifestExpander:
    """Turns a mod's declarations into concrete ManifestEntry items."""

    def __init__(
        self,
        *,
        mirrorDirName: str,
        denyList: Sequence[str],
        idFields: Sequence[str],
        invoker: EntryPointInvoker | None = None,
    ) -> None:
        self.mirrorDirName = mirrorDirName
        self.denyList = tuple(denyList)
        self.idFields = tuple(idFields)
        self.invoker = invoker

    # ------------------------------------------------------------------ #
    # Declarations
    # ------------------------------------------------------------------ #

    def _isMirror(self, modDir: Path, decl: ManifestDeclaration) -> bool:
        return fullPath(modDir / decl.path) == fullPath(modDir / self.mirrorDirName)

    def declarationsFor(self, descriptor: ModDescriptor) -> list[ManifestDeclaration]:
        """Declared rules plus the implicit base-content mirror, when requested and not declared."""
        decls = list(descriptor.manifest)
        if descriptor.loadImplicitManifest and not any(self._isMirror(descriptor.directory, decl) for decl in decls):
            decls.append(ManifestDeclaration(path=self.mirrorDirName, shouldMergeJSON=True))
        return decls

    def _inferId(self, modName: str, path: Path) -> str:
        try:
            return inferId(path, self.idFields)
        except ValueError as err:
            raise ConfigParseError(
                f"Cannot parse '{path}' to infer its id: {err}",
                kind="malformed",
                modName=modName,
                path=path,
            ) from err

    def _filesUnder(self, directory: Path) -> list[Path]:
        files = [path for path in directory.rglob("*") if path.is_file() and not isDenied(path, self.denyList)]
        files.sort(key=lambda path: path.relative_to(directory).as_posix())
        return files

    # ------------------------------------------------------------------ #
    # Expansion
    # ------------------------------------------------------------------ #

    def expand(self, descriptor: ModDescriptor) -> ModExpansion:
        """
        Expands every declaration of `descriptor`, in declaration order.

        Raises (aborting this mod only):
          - BundleOrderingViolationError: a prefab names a bundle not declared earlier in the mod
          - ConfigParseError: a declaration without path and type, or unparseable JSON content
          - MissingAssetError: the code entry point file does not exist
        """
        modName = descriptor.name
        modDir = descriptor.directory
        expansion = ModExpansion(modName=modName, version=descriptor.version)
        entries = expansion.entries

        for decl in self.declarationsFor(descriptor):
            # Prefabs live inside an asset bundle declared earlier in this mod
            if decl.type == PREFAB_TYPE and decl.assetBundleName:
                if not any(entry.type == ASSET_BUNDLE_TYPE and entry.id == decl.assetBundleName for entry in entries):
                    raise BundleOrderingViolationError(
                        f"'{modName}' has a Prefab referencing AssetBundle '{decl.assetBundleName}' "
                        "that hasn't been declared yet. Put the asset bundle first in the manifest!",
                        modName=modName,
                        path=decl.path,
                    )
                if not isDenied(decl.path, self.denyList):
                    entry = ManifestEntry.fromDeclaration(modName, decl, Path(decl.path), Path(decl.path).stem)
                    entry.nested = True
                    entries.append(entry)
                continue

            if not decl.path and not decl.type:
                raise ConfigParseError(
                    f"'{modName}' has a manifest entry that is missing its path or type",
                    kind="invalid",
                    modName=modName,
                )

            isMirror = self._isMirror(modDir, decl)
            target = fullPath(modDir / decl.path)
            if target.is_dir():
                for filePath in self._filesUnder(target):
                    entries.append(ManifestEntry.fromDeclaration(modName, decl, filePath, self._inferId(modName, filePath)))
            elif target.is_file() and not isDenied(target, self.denyList):
                entryId = decl.id or self._inferId(modName, target)
                entries.append(ManifestEntry.fromDeclaration(modName, decl, target, entryId))
            elif not isMirror:
                err = MissingAssetError(
                    f"Manifest specifies {decl.type or 'content'} at '{decl.path}', but it's not there",
                    modName=modName,
                    path=target,
                )
                getModLogger(modName).warning("Missing entry: %s. Continuing to load.", err)

        if descriptor.entryPoint is not None:
            self._invokeEntryPoint(descriptor, descriptor.entryPoint)
            expansion.entryPointInvoked = True

        if entries:
            logger.info(
                "%s %s : %d entries : %s",
                modName,
                descriptor.version,
                len(entries),
                descriptor.entryPoint.module if descriptor.entryPoint else "No entry point",
            )
        return expansion

    def _invokeEntryPoint(self, descriptor: ModDescriptor, entry: EntryPointSpec) -> None:
        modulePath = fullPath(descriptor.directory / entry.module)
        if not modulePath.is_file():
            raise MissingAssetError(
                f"'{descriptor.name}' has an entry point ({modulePath}), but it's missing",
                modName=descriptor.name,
                path=modulePath,
            )
        if self.invoker is None:
            logger.debug("No entry point invoker configured; skipping '%s'", modulePath)
            return
        settingsJson = json.dumps(descriptor.settings, ensure_ascii=False, separators=(",", ":"))
        self.invoker.invoke(descriptor.directory, settingsJson, modulePath, entry.symbol)
