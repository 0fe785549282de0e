# modforge/core/logging/setup.py
from __future__ import annotations
import logging
import logging.handlers
from pathlib import Path

from .formatters import DevFormatter, JsonFormatter

__all__ = ["configureLogging", "getModLogger"]



def configureLogging(logPath: Path | str | None = None, *, devMode: bool = False) -> None:
    """
    Initiate the logging configuration for a standalone run.

      - Console pretty logs (DEBUG in dev mode, INFO otherwise)
      - JSON file log at `logPath`, recreated on every run
    
    Hosts that own logging simply never call this.
    """
    rootLevel = logging.DEBUG if devMode else logging.INFO

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(rootLevel)

    consoleHandler = logging.StreamHandler()
    consoleHandler.setLevel(rootLevel)
    consoleHandler.setFormatter(DevFormatter())
    root.addHandler(consoleHandler)

    if logPath is not None:
        logPath = Path(logPath)
        logPath.parent.mkdir(parents=True, exist_ok=True)
        # Rotating handlers always append, so start the run with a fresh file.
        logPath.unlink(missing_ok=True)
        fileHandler = logging.handlers.RotatingFileHandler(
            logPath,
            maxBytes=10 * 1024 * 1024,
            backupCount=1,
            encoding="utf-8",
        )
        fileHandler.setLevel(logging.DEBUG)
        fileHandler.setFormatter(JsonFormatter())
        root.addHandler(fileHandler)



def getModLogger(modName: str) -> logging.Logger:
    return logging.getLogger(f"mods.{str(modName).strip()}")
