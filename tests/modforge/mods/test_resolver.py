# tests/modforge/mods/test_resolver.py
from __future__ import annotations

from pathlib import Path
from typing import Any

from modforge.mods.descriptor import ModDescriptor
from modforge.mods.resolver import (
    loadLoadOrder,
    normalizeConstraints,
    resolveLoadOrder,
    saveLoadOrder,
)



def mods(**specs: dict[str, Any]) -> dict[str, ModDescriptor]:
    return {
        name: ModDescriptor(name=name, directory=Path("/mods") / name, **fields)
        for name, fields in specs.items()
    }



def assert_valid_order(descriptors: dict[str, ModDescriptor], order: list[str]) -> None:
    constraints = normalizeConstraints(descriptors)
    seen: set[str] = set()
    for name in order:
        assert constraints[name].dependsOn <= seen, f"{name} loaded before a dependency"
        assert not constraints[name].conflictsWith & seen, f"{name} loaded after a conflict"
        seen.add(name)



def test_dependencyLoadsFirst() -> None:
    descriptors = mods(B={"dependsOn": ["A"]}, A={})
    result = resolveLoadOrder(descriptors)
    assert result.order == ["A", "B"]
    assert result.excluded == {}


def test_conflictWithAlreadyLoadedMod_isExcluded() -> None:
    descriptors = mods(A={}, B={"dependsOn": ["A"]}, C={"conflictsWith": ["A"]})
    result = resolveLoadOrder(descriptors)
    assert result.order == ["A", "B"]
    assert list(result.excluded) == ["C"]
    assert "conflict already loaded" in str(result.excluded["C"])
    assert result.excluded["C"].conflicts == ("A",)


def test_conflictsAreSymmetric() -> None:
    # Only Z declares the conflict, but A must not load after Z either
    descriptors = mods(Z={"conflictsWith": ["A"]}, A={})
    constraints = normalizeConstraints(descriptors)
    assert constraints["A"].conflictsWith == frozenset({"Z"})

    result = resolveLoadOrder(descriptors, priorOrder=["Z"])
    assert result.order == ["Z"]
    assert list(result.excluded) == ["A"]


def test_missingDependency_reasonNamesIt() -> None:
    result = resolveLoadOrder(mods(A={"dependsOn": ["Ghost"]}))
    assert result.order == []
    err = result.excluded["A"]
    assert err.missing == ("Ghost",)
    assert "missing dependency: Ghost" in str(err)


def test_cycle_degradesToExclusion() -> None:
    descriptors = mods(A={"dependsOn": ["B"]}, B={"dependsOn": ["A"]}, C={})
    result = resolveLoadOrder(descriptors)
    assert result.order == ["C"]
    assert sorted(result.excluded) == ["A", "B"]


def test_optionalDependency_promotedOnlyWhenPresent() -> None:
    present = mods(Addon={"optionallyDependsOn": ["Base"]}, Base={"dependsOn": ["Core"]}, Core={})
    assert resolveLoadOrder(present).order == ["Core", "Base", "Addon"]

    absent = mods(Addon={"optionallyDependsOn": ["Base"]})
    assert resolveLoadOrder(absent).order == ["Addon"]


def test_namesTriedInAscendingOrderPerPass() -> None:
    descriptors = mods(b={}, a={}, c={"dependsOn": ["d"]}, d={})
    # pass 1 takes a, b, d; c's dependency d comes after c in the pass
    assert resolveLoadOrder(descriptors).order == ["a", "b", "d", "c"]


def test_priorOrder_isReplayedWhenStillValid() -> None:
    descriptors = mods(A={}, B={}, C={"dependsOn": ["A"]})
    result = resolveLoadOrder(descriptors, priorOrder=["B", "A", "C"])
    assert result.order == ["B", "A", "C"]


def test_priorOrder_invalidEntriesAreRetriedNotDropped() -> None:
    descriptors = mods(A={}, B={"dependsOn": ["A"]})
    # B first in the hint is not satisfiable yet, it is retried after seeding
    result = resolveLoadOrder(descriptors, priorOrder=["B", "A", "Removed"])
    assert result.order == ["A", "B"]


def test_priorOrder_decidesWhichConflictingModWins() -> None:
    descriptors = mods(A={"conflictsWith": ["B"]}, B={})
    assert resolveLoadOrder(descriptors).order == ["A"]
    assert resolveLoadOrder(descriptors, priorOrder=["B"]).order == ["B"]


def test_largeGraph_orderIsAlwaysValid() -> None:
    specs: dict[str, dict[str, Any]] = {}
    for idx in range(30):
        fields: dict[str, Any] = {}
        if idx % 3:
            fields["dependsOn"] = [f"m{idx - 1:02d}"]
        if idx % 7 == 0 and idx:
            fields["conflictsWith"] = [f"m{idx - 4:02d}"]
        specs[f"m{idx:02d}"] = fields
    descriptors = mods(**specs)
    result = resolveLoadOrder(descriptors)
    assert_valid_order(descriptors, result.order)
    assert set(result.order) | set(result.excluded) == set(descriptors)
    # Same input, same answer
    assert resolveLoadOrder(descriptors).order == result.order
    # Feeding the result back as the hint is stable
    assert resolveLoadOrder(descriptors, priorOrder=result.order).order == result.order


def test_loadOrder_roundTripAndBadFile(tmp_path: Path) -> None:
    path = tmp_path / "state" / "load_order.json"
    assert loadLoadOrder(path) == []
    saveLoadOrder(path, ["A", "B"])
    assert loadLoadOrder(path) == ["A", "B"]
    path.write_text('{"not": "a list"}', encoding="utf-8")
    assert loadLoadOrder(path) == []
    path.write_text("{{{", encoding="utf-8")
    assert loadLoadOrder(path) == []
