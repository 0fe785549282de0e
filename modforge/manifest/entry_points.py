# modforge/manifest/entry_points.py
from __future__ import annotations

import importlib.util
import logging
from pathlib import Path
from typing import Any, Protocol

__all__ = ["EntryPointInvoker", "PythonEntryPointInvoker"]

logger = logging.getLogger(__name__)



class EntryPointInvoker(Protocol):
    """Hands a mod's code entry point to the host. Fire-and-forget for the pipeline."""

    def invoke(self, modDirectory: Path, settingsJson: str, modulePath: Path, symbol: str) -> None: ...



class PythonEntryPointInvoker:
    """
    Imports a Python file and calls `symbol(modDirectory, settingsJson)`.

    Failures inside the mod's code are logged and never propagate.
    """
    def __init__(self) -> None:
        self.loaded: dict[Path, Any] = {}

    def invoke(self, modDirectory: Path, settingsJson: str, modulePath: Path, symbol: str) -> None:
        try:
            module = _quickImport(modulePath.resolve())
            target = module
            # Dotted symbols walk attributes, e.g. "Plugin.init"
            for part in symbol.split("."):
                target = getattr(target, part)
            if not callable(target):
                raise TypeError(f"'{symbol}' in '{modulePath}' is not callable")
            target(str(modDirectory), settingsJson)
            self.loaded[modulePath] = module
            logger.info("Invoked entry point '%s' in '%s'", symbol, modulePath)
        except Exception as err:
            logger.exception("Entry point '%s' in '%s' failed: %s", symbol, modulePath, err)



def _quickImport(path: Path) -> Any:
    spec = importlib.util.spec_from_file_location(path.stem, path)
    if spec is None or spec.loader is None:
        raise ImportError(f"Could not load module from {path}")
    mod = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(mod)
    return mod
