# tests/modforge/manifest/test_planner.py
from __future__ import annotations

from pathlib import Path

from modforge.cache.type_cache import TypeCache
from modforge.catalog.catalog import fullPath
from modforge.manifest.planner import MergePlanner
from modforge.manifest.types import ManifestEntry



def make_planner(game) -> MergePlanner:
    return MergePlanner(
        catalog=game.catalog(),
        typeCache=TypeCache(game.gameDir, isNew=True),
        baseContentDir=game.contentDir,
        mirrorDirName="StreamingAssets",
        idFields=["Description.Id", "id"],
    )



def entry(path: Path, *, modName: str = "M", type: str | None = None, id: str | None = None, **kw) -> ManifestEntry:
    return ManifestEntry(modName=modName, path=fullPath(path), type=type, id=id or path.stem, **kw)



def test_untypedMirrorJson_joinsMergeGroup(game) -> None:
    base = game.add_content("data/mech/mechdef_atlas.json", {"Tonnage": 100}, type="MechDef")
    overlay = game.write_mod_file("X", "StreamingAssets/data/mech/mechdef_atlas.json", {"Tonnage": 95})
    planner = make_planner(game)

    item = entry(overlay, shouldMergeJSON=True)
    planner.classify(item)

    assert planner.jsonMerges == {fullPath(base): [fullPath(overlay)]}
    assert item.type == "MechDef"
    assert planner.directEntries == []
    assert planner.typeCache.get(base) == ["MechDef"]


def test_untypedMirror_nonMergeable_becomesDirectEntryPerType(game) -> None:
    game.add_content("sprites/icon.png", {}, type="Sprite", id="icon")
    game.catalogEntries.append({"id": "icon", "type": "Texture2D", "path": "sprites/icon.png"})
    overlay = game.write_mod_file("X", "StreamingAssets/sprites/icon.png", {})
    planner = make_planner(game)

    planner.classify(entry(overlay))

    assert [(item.type, item.path) for item in planner.directEntries] == [
        ("Sprite", fullPath(overlay)),
        ("Texture2D", fullPath(overlay)),
    ]
    assert planner.augmented.textures == {"icon"}


def test_untypedMirror_unknownToCatalog_isDropped(game) -> None:
    overlay = game.write_mod_file("X", "StreamingAssets/data/new_thing.json", {"id": "new"})
    planner = make_planner(game)

    planner.classify(entry(overlay, shouldMergeJSON=True))

    assert planner.jsonMerges == {}
    assert planner.directEntries == []


def test_explicitTypeMergeable_mergesOntoCatalogEntryWithSameId(game) -> None:
    base = game.add_content("data/weapon/laser.json", {"Damage": 25}, type="WeaponDef", id="Weapon_Laser")
    overlay = game.write_mod_file("X", "weapons/laser_patch.json", {"Damage": 30})
    planner = make_planner(game)

    item = entry(overlay, type="JsonPatch", id="Weapon_Laser", shouldMergeJSON=True)
    planner.classify(item)

    assert planner.jsonMerges == {fullPath(base): [fullPath(overlay)]}
    assert item.type == "WeaponDef"
    assert planner.typeCache.get(base) == ["WeaponDef"]


def test_explicitTypeMergeable_withoutCatalogEntry_isDropped(game) -> None:
    overlay = game.write_mod_file("X", "weapons/ghost.json", {"Damage": 30})
    planner = make_planner(game)
    planner.classify(entry(overlay, type="WeaponDef", id="Ghost", shouldMergeJSON=True))
    assert planner.jsonMerges == {}
    assert planner.directEntries == []


def test_explicitTypeNotMergeable_isDirectEntry(game) -> None:
    game.add_content("data/weapon/laser.json", {"Damage": 25}, type="WeaponDef", id="Weapon_Laser")
    replacement = game.write_mod_file("X", "weapons/laser.json", {"Damage": 99})
    planner = make_planner(game)

    planner.classify(entry(replacement, type="WeaponDef", id="Weapon_Laser"))

    assert [item.id for item in planner.directEntries] == ["Weapon_Laser"]
    assert [catalogEntry.id for catalogEntry in planner.augmented.entries] == ["Weapon_Laser"]


def test_video_isRegisteredByFileName(game) -> None:
    video = game.write_mod_file("X", "video/intro.bk2", {})
    planner = make_planner(game)

    planner.classify(entry(video, type="Video"))
    planner.classify(entry(video.with_name("missing.bk2"), type="Video"))

    assert planner.augmented.videos == {"intro.bk2": fullPath(video)}
    assert planner.directEntries == []


def test_advancedMerge_targetFileAndTargetId(game) -> None:
    laser = game.add_content("data/weapon/laser.json", {"Damage": 25}, type="WeaponDef", id="Weapon_Laser")
    byFile = game.write_mod_file("X", "merges/a.json", {
        "TargetFile": "data/weapon/laser.json",
        "Instructions": [{"JSONPath": "Damage", "Action": "Replace", "Value": 1}],
    })
    byId = game.write_mod_file("Y", "merges/b.json", {
        "TargetID": "Weapon_Laser",
        "Instructions": [{"JSONPath": "Damage", "Action": "Replace", "Value": 2}],
    })
    unknown = game.write_mod_file("Y", "merges/c.json", {"TargetID": "Nope", "Instructions": []})
    planner = make_planner(game)

    for path in (byFile, byId, unknown):
        planner.classify(entry(path, type="AdvancedJSONMerge"))

    assert planner.jsonMerges == {fullPath(laser): [fullPath(byFile), fullPath(byId)]}
    assert planner.typeCache.get(laser) == ["WeaponDef"]


def test_mergeGroups_keepOrderAndDropDuplicateOverlays(game) -> None:
    first = game.add_content("data/a.json", {}, type="MechDef")
    second = game.add_content("data/b.json", {}, type="MechDef")
    x_b = game.write_mod_file("X", "StreamingAssets/data/b.json", {"x": 1})
    x_a = game.write_mod_file("X", "StreamingAssets/data/a.json", {"x": 1})
    y_b = game.write_mod_file("Y", "StreamingAssets/data/b.json", {"y": 1})
    planner = make_planner(game)

    for path, mod in ((x_b, "X"), (x_a, "X"), (x_b, "X"), (y_b, "Y")):
        planner.classify(entry(path, modName=mod, shouldMergeJSON=True))

    assert list(planner.jsonMerges) == [fullPath(second), fullPath(first)]
    assert planner.jsonMerges[fullPath(second)] == [fullPath(x_b), fullPath(y_b)]


def test_addendum_mustExist(game) -> None:
    game.addendums.append("StoryContent")
    bundle = game.write_mod_file("X", "bundles/lasers", {})
    story = game.write_mod_file("X", "story/event.json", {"id": "event"})
    planner = make_planner(game)

    assert planner.addDirectEntry(entry(bundle, type="AssetBundle", id="lasers", addToAddendum="Missing")) is False
    assert planner.addDirectEntry(entry(story, type="SimGameEventDef", addToAddendum="StoryContent")) is True
    assert planner.addDirectEntry(entry(bundle, type="AssetBundle", id="lasers")) is True

    assert [item.id for item in planner.augmented.addendums["StoryContent"]] == ["event"]
    assert planner.augmented.assetBundles == {"lasers": fullPath(bundle)}
    assert [item.id for item in planner.directEntries] == ["event", "lasers"]


def test_addMergedEntry_usesTargetTypeAndDocumentId(game) -> None:
    base = game.add_content("data/mech/atlas.json", {"Description": {"Id": "mechdef_atlas"}}, type="MechDef")
    overlay = game.write_mod_file("X", "StreamingAssets/data/mech/atlas.json", {"Tonnage": 95})
    merged = game.write_mod_file("X", "merged/atlas.json", {"Description": {"Id": "mechdef_atlas"}, "Tonnage": 95})
    planner = make_planner(game)
    planner.classify(entry(overlay, modName="X", shouldMergeJSON=True))

    added = planner.addMergedEntry(fullPath(base), fullPath(merged))

    assert added is not None
    assert (added.type, added.id, added.modName) == ("MechDef", "mechdef_atlas", "X")
    assert planner.directEntries[-1] is added
