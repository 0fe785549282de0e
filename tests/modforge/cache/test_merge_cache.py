# tests/modforge/cache/test_merge_cache.py
from __future__ import annotations

from modforge.cache.merge_cache import MergeCache
from modforge.core.jsonutils import readGameJson, readJsonFile, writeJsonFile



def make_cache(game) -> MergeCache:
    return MergeCache(game.gameDir, game.paths.cacheDir)



def test_twoModsOverlayDifferentKeys_bothChangesSurvive(game) -> None:
    target = game.add_content("data/thing.json", {"foo": {"bar": 1, "baz": 1, "keep": True}}, type="MechDef")
    x = game.write_mod_file("X", "StreamingAssets/data/thing.json", {"foo": {"bar": "X"}})
    y = game.write_mod_file("Y", "StreamingAssets/data/thing.json", {"foo": {"baz": "Y"}})

    merged = make_cache(game).resolve(target, [x, y])

    assert merged is not None
    assert readGameJson(merged) == {"foo": {"bar": "X", "baz": "Y", "keep": True}}


def test_twoModsOverlaySameKey_laterWins(game) -> None:
    target = game.add_content("data/thing.json", {"foo": {"bar": 1}}, type="MechDef")
    x = game.write_mod_file("X", "StreamingAssets/data/thing.json", {"foo": {"bar": "X"}})
    y = game.write_mod_file("Y", "StreamingAssets/data/thing.json", {"foo": {"bar": "Y"}})

    merged = make_cache(game).resolve(target, [x, y])
    assert readGameJson(merged) == {"foo": {"bar": "Y"}}


def test_mergedFileMirrorsTargetPathInsideCacheDir(game) -> None:
    target = game.add_content("data/mech/atlas.json", {"a": 1}, type="MechDef")
    overlay = game.write_mod_file("X", "StreamingAssets/data/mech/atlas.json", {"b": 2})

    merged = make_cache(game).resolve(target, [overlay])

    assert merged == game.paths.cacheDir / "StreamingAssets" / "data" / "mech" / "atlas.json"


def test_hit_ignoresOverlayContentChanges(game) -> None:
    target = game.add_content("data/thing.json", {"v": 0}, type="MechDef")
    overlay = game.write_mod_file("X", "StreamingAssets/data/thing.json", {"v": 1})
    cache = make_cache(game)

    first = cache.resolve(target, [overlay])
    assert cache.hasCachedEntry(target, [overlay])
    # Edit the overlay on disk without changing the overlay set
    writeJsonFile(overlay, {"v": 2})
    second = cache.resolve(target, [overlay])

    assert second == first
    assert readGameJson(second) == {"v": 1}
    assert cache.createdThisRun == 1


def test_differentOverlayListIsAMiss(game) -> None:
    target = game.add_content("data/thing.json", {"v": 0}, type="MechDef")
    x = game.write_mod_file("X", "StreamingAssets/data/thing.json", {"v": "x"})
    y = game.write_mod_file("Y", "StreamingAssets/data/thing.json", {"v": "y"})
    cache = make_cache(game)

    cache.resolve(target, [x, y])
    assert not cache.hasCachedEntry(target, [y, x])
    merged = cache.resolve(target, [y, x])

    assert readGameJson(merged) == {"v": "x"}
    assert cache.createdThisRun == 2
    assert len(cache) == 1


def test_vanishedMergedFile_isMergedAgain(game) -> None:
    target = game.add_content("data/thing.json", {"v": 0}, type="MechDef")
    overlay = game.write_mod_file("X", "StreamingAssets/data/thing.json", {"v": 1})
    cache = make_cache(game)

    merged = cache.resolve(target, [overlay])
    merged.unlink()
    assert not cache.hasCachedEntry(target, [overlay])
    assert cache.resolve(target, [overlay]) == merged
    assert merged.is_file()


def test_unparseableOverlay_dropsOnlyThatTarget(game) -> None:
    good = game.add_content("data/good.json", {"v": 0}, type="MechDef")
    bad = game.add_content("data/bad.json", {"v": 0}, type="MechDef")
    goodOverlay = game.write_mod_file("X", "StreamingAssets/data/good.json", {"v": 1})
    badOverlay = game.modsDir / "X" / "StreamingAssets" / "data" / "bad.json"
    badOverlay.write_text("{ [ broken", encoding="utf-8")
    cache = make_cache(game)

    assert cache.resolve(bad, [badOverlay]) is None
    assert cache.resolve(good, [goodOverlay]) is not None
    assert len(cache) == 1


def test_advancedMergeOverlay_appliesInstructions(game) -> None:
    target = game.add_content("data/weapon/laser.json", {"Damage": 25, "Tags": ["a"]}, type="WeaponDef")
    directive = game.write_mod_file("X", "merges/laser.json", {
        "TargetFile": "data/weapon/laser.json",
        "Instructions": [
            {"JSONPath": "Damage", "Action": "Replace", "Value": 30},
            {"JSONPath": "Tags", "Action": "ArrayAdd", "Value": "b"},
        ],
    })
    plain = game.write_mod_file("Y", "StreamingAssets/data/weapon/laser.json", {"Heat": 5})

    merged = make_cache(game).resolve(target, [directive, plain])
    assert readGameJson(merged) == {"Damage": 30, "Tags": ["a", "b"], "Heat": 5}


def test_saveAndLoad_keysAreRelativeAndHitsPersist(game) -> None:
    target = game.add_content("data/thing.json", {"v": 0}, type="MechDef")
    overlay = game.write_mod_file("X", "StreamingAssets/data/thing.json", {"v": 1})
    cache = make_cache(game)
    merged = cache.resolve(target, [overlay])
    cache.save(game.paths.mergeCachePath)

    stored = readJsonFile(game.paths.mergeCachePath)
    assert stored == {
        "StreamingAssets/data/thing.json": {
            "overlays": ["Mods/X/StreamingAssets/data/thing.json"],
            "cachePath": "Mods/.modforge/Cache/StreamingAssets/data/thing.json",
        },
    }

    reloaded = MergeCache.load(game.paths.mergeCachePath, game.gameDir, game.paths.cacheDir)
    assert reloaded.resolve(target, [overlay]) == merged
    assert reloaded.createdThisRun == 0


def test_load_rewritesAbsolutePaths(game) -> None:
    target = game.add_content("data/thing.json", {"v": 0}, type="MechDef")
    overlay = game.write_mod_file("X", "StreamingAssets/data/thing.json", {"v": 1})
    merged = game.paths.cacheDir / "StreamingAssets" / "data" / "thing.json"
    writeJsonFile(merged, {"v": 1})
    writeJsonFile(game.paths.mergeCachePath, {
        str(target): {"overlays": [str(overlay)], "cachePath": str(merged)},
    })

    cache = MergeCache.load(game.paths.mergeCachePath, game.gameDir, game.paths.cacheDir)
    assert cache.hasCachedEntry(target, [overlay])


def test_nonFiniteNumber_dropsTargetAndRecordsFailure(game) -> None:
    target = game.add_content("data/mech/atlas.json", {"Heat": 10}, type="MechDef")
    overlay = game.modsDir / "X" / "StreamingAssets" / "data" / "mech" / "atlas.json"
    overlay.parent.mkdir(parents=True)
    overlay.write_text('{"Heat": NaN}', encoding="utf-8")
    cache = make_cache(game)

    assert cache.resolve(target, [overlay]) is None
    assert len(cache) == 0
    assert cache.createdThisRun == 0
    assert [err.path for err in cache.failures] == [target]
    assert not cache.cachePathFor(target).exists()
