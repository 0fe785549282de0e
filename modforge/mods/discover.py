# modforge/mods/discover.py
from __future__ import annotations
import logging
from dataclasses import dataclass, field
from pathlib import Path

from modforge.core.errors import ConfigParseError, DuplicateModError, ModforgeError, PipelineAbortError
from modforge.mods.descriptor import MOD_JSON_NAME, ModDescriptor, loadDescriptor

logger = logging.getLogger(__name__)

__all__ = ["DiscoveryResult", "listModDirectories", "discoverMods"]



@dataclass
class DiscoveryResult:
    # name -> descriptor, in directory enumeration order
    accepted: dict[str, ModDescriptor] = field(default_factory=dict)
    disabled: list[str] = field(default_factory=list)
    failures: list[ModforgeError] = field(default_factory=list)



def listModDirectories(modsDir: Path, *, ignoredNames: frozenset[str] = frozenset()) -> list[Path]:
    """
    Returns sub-directories of `modsDir` that carry a mod.json, sorted by
    folder name (case-insensitive, then exact) for a stable enumeration order.

    Raises PipelineAbortError when `modsDir` cannot be enumerated at all.
    """
    try:
        children = list(Path(modsDir).iterdir())
    except OSError as err:
        raise PipelineAbortError(f"Cannot enumerate mods directory '{modsDir}': {err}", path=modsDir) from err

    dirs = [
        child for child in children
        if child.is_dir() and child.name not in ignoredNames and (child / MOD_JSON_NAME).is_file()
    ]
    dirs.sort(key=lambda path: (path.name.lower(), path.name))
    return dirs



def discoverMods(modsDir: Path, *, ignoredNames: frozenset[str] = frozenset()) -> DiscoveryResult:
    """
    Loads every mod declaration under `modsDir`.

    A broken declaration only skips that mod. Disabled mods are filtered out.
    When two directories declare the same name, the first one enumerated wins.
    """
    result = DiscoveryResult()

    for modDir in listModDirectories(modsDir, ignoredNames=ignoredNames):
        try:
            descriptor = loadDescriptor(modDir)
        except ConfigParseError as err:
            logger.warning("Skipping mod at '%s' (%s): %s", modDir, err.kind, err)
            result.failures.append(err)
            continue

        if not descriptor.enabled:
            logger.info("Will not load '%s' because it's disabled.", descriptor.name)
            result.disabled.append(descriptor.name)
            continue

        existing = result.accepted.get(descriptor.name)
        if existing is not None:
            err = DuplicateModError(
                f"Already accepted a mod named '{descriptor.name}' from '{existing.directory}'",
                modName=descriptor.name,
                path=modDir,
            )
            logger.warning("%s. Skipping load from '%s'.", err, modDir)
            result.failures.append(err)
            continue

        result.accepted[descriptor.name] = descriptor

    logger.info(
        "Mods discovered: %d (disabled=%d, failed=%d)",
        len(result.accepted),
        len(result.disabled),
        len(result.failures),
    )
    return result
