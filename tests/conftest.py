import sqlite3
import sys
from pathlib import Path
from typing import Any

import json5
import pytest

from modforge.catalog.catalog import VersionManifest
from modforge.pipeline.context import PipelineContext
from modforge.pipeline.paths import PipelinePaths



def pytest_configure(config: pytest.Config) -> None:
    if sys.flags.optimize:
        raise RuntimeError("Assertions are disabled (optimize > 0)")



def write_json(path: Path, payload: Any) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json5.dumps(payload, ensure_ascii=False, indent=2, quote_keys=True), encoding="utf-8")
    return path



class GameTree:
    """
    Miniature game install:

        <root>/game/StreamingAssets/...       base content + catalog.json5
        <root>/game/StreamingAssets/MDD/...   pristine content database
        <root>/game/Mods/<mod>/mod.json
    """
    def __init__(self, root: Path) -> None:
        self.gameDir = root / "game"
        self.contentDir = self.gameDir / "StreamingAssets"
        self.modsDir = self.gameDir / "Mods"
        self.modsDir.mkdir(parents=True)
        self.catalogEntries: list[dict[str, Any]] = []
        self.addendums: list[str] = []
        self.paths = PipelinePaths.forGame(self.gameDir)
        self.make_baseline_db()

    def make_baseline_db(self) -> Path:
        path = self.paths.baselineDbPath
        path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(str(path))
        try:
            conn.execute("CREATE TABLE IF NOT EXISTS baseline_marker (id INTEGER PRIMARY KEY)")
            conn.commit()
        finally:
            conn.close()
        return path

    def add_content(self, rel: str, payload: Any, *, type: str, id: str | None = None) -> Path:
        path = write_json(self.contentDir / rel, payload)
        self.catalogEntries.append({"id": id or path.stem, "type": type, "path": rel})
        self.write_catalog()
        return path

    def write_catalog(self) -> Path:
        return write_json(
            self.paths.catalogPath,
            {"entries": self.catalogEntries, "addendums": self.addendums},
        )

    def catalog(self) -> VersionManifest:
        self.write_catalog()
        return VersionManifest.load(self.paths.catalogPath, contentDir=self.contentDir)

    def add_mod(self, name: str, **fields: Any) -> Path:
        modDir = self.modsDir / fields.pop("folder", name)
        write_json(modDir / "mod.json", {"name": name, **fields})
        return modDir

    def write_mod_file(self, modName: str, rel: str, payload: Any) -> Path:
        return write_json(self.modsDir / modName / rel, payload)

    def context(self, **kwargs: Any) -> PipelineContext:
        self.write_catalog()
        return PipelineContext.create(self.paths, **kwargs)



@pytest.fixture()
def game(tmp_path: Path) -> GameTree:
    return GameTree(tmp_path)
