# modforge/mods/resolver.py
from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path

from modforge.core.errors import ConstraintUnsatisfiableError
from modforge.core.jsonutils import readJsonFile, writeJsonFile
from modforge.mods.descriptor import ModDescriptor

logger = logging.getLogger(__name__)

__all__ = [
    "ModConstraints",
    "LoadOrderResult",
    "normalizeConstraints",
    "resolveLoadOrder",
    "loadLoadOrder",
    "saveLoadOrder",
]



@dataclass(frozen=True, slots=True)
class ModConstraints:
    """Effective constraints of one mod after normalization."""
    name: str
    dependsOn: frozenset[str]
    conflictsWith: frozenset[str]

    def isSatisfied(self, loaded: set[str]) -> bool:
        return self.dependsOn <= loaded and not (self.conflictsWith & loaded)



@dataclass
class LoadOrderResult:
    order: list[str] = field(default_factory=list)
    excluded: dict[str, ConstraintUnsatisfiableError] = field(default_factory=dict)



# ------------------------------------------------------------------ #
# Constraint normalization
# ------------------------------------------------------------------ #

def normalizeConstraints(descriptors: Mapping[str, ModDescriptor]) -> dict[str, ModConstraints]:
    """
    Builds effective constraints for every accepted descriptor:
      - conflicts are symmetric: "A conflictsWith B" also records "B conflictsWith A"
      - optional dependencies become hard ones when the named mod is present
    """
    conflicts: dict[str, set[str]] = {name: set(desc.conflictsWith) for name, desc in descriptors.items()}
    for name, desc in descriptors.items():
        for other in desc.conflictsWith:
            if other in conflicts:
                conflicts[other].add(name)

    out: dict[str, ModConstraints] = {}
    for name, desc in descriptors.items():
        depends = set(desc.dependsOn)
        depends.update(opt for opt in desc.optionallyDependsOn if opt in descriptors)
        out[name] = ModConstraints(
            name=name,
            dependsOn=frozenset(depends),
            conflictsWith=frozenset(conflicts[name] - {name}),
        )
    return out



# ------------------------------------------------------------------ #
# Resolution
# ------------------------------------------------------------------ #

def _exclusionFor(constraints: ModConstraints, loaded: set[str]) -> ConstraintUnsatisfiableError:
    missing = tuple(sorted(constraints.dependsOn - loaded))
    conflicting = tuple(sorted(constraints.conflictsWith & loaded))
    reasons: list[str] = []
    if missing:
        reasons.append(f"missing dependency: {', '.join(missing)}")
    if conflicting:
        reasons.append(f"conflict already loaded: {', '.join(conflicting)}")
    return ConstraintUnsatisfiableError(
        "; ".join(reasons) or "missing dependency or conflict already loaded",
        modName=constraints.name,
        missing=missing,
        conflicts=conflicting,
    )



def resolveLoadOrder(
    descriptors: Mapping[str, ModDescriptor],
    priorOrder: Iterable[str] = (),
) -> LoadOrderResult:
    """
    Produces the load order for the accepted descriptors.

    1) The persisted prior order is replayed first; a mod is taken only when its
       hard dependencies are already loaded and none of its conflicts are.
    2) The remaining mods are walked in ascending name order in repeated passes,
       each satisfiable mod is loaded immediately, until a pass loads nothing.
    3) Whatever is left is excluded with the reason it could not be placed.

    Cycles and conflict chains end up excluded; this never raises.
    """
    constraints = normalizeConstraints(descriptors)
    result = LoadOrderResult()
    loaded: set[str] = set()

    for name in priorOrder:
        if name not in constraints or name in loaded:
            continue
        if not constraints[name].isSatisfied(loaded):
            continue
        result.order.append(name)
        loaded.add(name)

    # Sorted descending and walked from the tail, so names are tried ascending
    # and removal by index stays valid.
    unloaded = sorted((name for name in constraints if name not in loaded), reverse=True)

    while unloaded:
        removedThisPass = 0
        for idx in range(len(unloaded) - 1, -1, -1):
            name = unloaded[idx]
            if not constraints[name].isSatisfied(loaded):
                continue
            del unloaded[idx]
            result.order.append(name)
            loaded.add(name)
            removedThisPass += 1
        if removedThisPass == 0:
            break

    for name in sorted(unloaded):
        err = _exclusionFor(constraints[name], loaded)
        result.excluded[name] = err
        logger.warning("Will not load '%s': %s", name, err)

    logger.info("Resolved load order: %d loaded, %d excluded", len(result.order), len(result.excluded))
    return result



# ------------------------------------------------------------------ #
# Persistence
# ------------------------------------------------------------------ #

def loadLoadOrder(path: Path) -> list[str]:
    """Returns the persisted order, or an empty hint when the file is missing or unreadable."""
    if not path.exists():
        logger.info("No cached load order; building a new one.")
        return []
    try:
        data = readJsonFile(path)
    except (OSError, ValueError) as err:
        logger.warning("Loading cached load order failed, rebuilding it: %s", err)
        return []
    if not isinstance(data, list) or not all(isinstance(name, str) for name in data):
        logger.warning("Cached load order at '%s' is not a list of names, rebuilding it.", path)
        return []
    logger.debug("Loaded cached load order (%d mods).", len(data))
    return data



def saveLoadOrder(path: Path, order: Iterable[str]) -> None:
    writeJsonFile(path, list(order))
