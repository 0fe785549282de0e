# modforge/__main__.py
"""
Runs the mod pipeline for one game install.

Usage:
    python -m modforge --game-dir DIR [--mods-dir DIR] [--content-dir DIR]
                       [--catalog FILE] [--baseline-db FILE] [--dev]
"""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from modforge.config.settings import loadSettings, setting, settingBool
from modforge.core.errors import PipelineAbortError
from modforge.core.logging import configureLogging
from modforge.manifest.entry_points import PythonEntryPointInvoker
from modforge.pipeline.context import PipelineContext
from modforge.pipeline.orchestrator import ModPipeline
from modforge.pipeline.paths import PipelinePaths
from modforge.pipeline.progress import LoggingProgressReporter

logger = logging.getLogger(__name__)



def buildParser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="modforge",
        description="Resolve, expand, merge and sync game mods.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("--game-dir", required=True, type=Path, help="Game install directory (cache root)")
    parser.add_argument("--mods-dir", type=Path, help="Mods directory (default: <game-dir>/Mods)")
    parser.add_argument("--content-dir", type=Path, help="Base content directory (default: <game-dir>/StreamingAssets)")
    parser.add_argument("--catalog", type=Path, help="Catalog file (default: <content-dir>/catalog.json5)")
    parser.add_argument("--baseline-db", type=Path, help="Pristine content database (default: <content-dir>/MDD/<db>)")
    parser.add_argument("--dev", action="store_true", help="Debug logging on the console")
    return parser



def main(argv: list[str] | None = None) -> int:
    args = buildParser().parse_args(argv)

    # The state dir holds settings.json5, which may rename the database file
    defaults = PipelinePaths.forGame(args.game_dir, modsDir=args.mods_dir, contentDir=args.content_dir)
    settings = loadSettings(defaults.settingsPath)
    paths = PipelinePaths.forGame(
        args.game_dir,
        modsDir=args.mods_dir,
        contentDir=args.content_dir,
        catalogPath=args.catalog,
        baselineDbPath=args.baseline_db,
        databaseFileName=str(setting(settings, "database.fileName", "MetadataDatabase.db")),
    )

    devMode = args.dev or settingBool(settings, "logging.devMode")
    configureLogging(paths.logPath if paths.modsDir.is_dir() else None, devMode=devMode)

    try:
        ctx = PipelineContext.create(
            paths,
            settings=settings,
            invoker=PythonEntryPointInvoker(),
            reporter=LoggingProgressReporter(),
        )
        pipeline = ModPipeline(ctx)
        augmented = pipeline.runAll()
    except PipelineAbortError as err:
        logger.error("Mod pipeline aborted: %s", err)
        return 1

    print(f"Loaded mods: {len(ctx.expansions)}")
    print(f"Direct entries: {len(augmented.entries)} (+{sum(len(group) for group in augmented.addendums.values())} in addendums)")
    print(f"Asset bundles: {len(augmented.assetBundles)}, textures: {len(augmented.textures)}, videos: {len(augmented.videos)}")
    if ctx.failures:
        print(f"Failures: {len(ctx.failures)}")
        for err in ctx.failures:
            print(f"  - {type(err).__name__}: {err}")
    return 0



if __name__ == "__main__":
    sys.exit(main())
