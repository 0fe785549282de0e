# modforge/cache/store.py
from __future__ import annotations

import logging
from collections.abc import Callable, MutableMapping
from pathlib import Path
from typing import Any, TypeVar

from modforge.core.jsonutils import readJsonFile, toRelPath

logger = logging.getLogger(__name__)

__all__ = ["cacheKey", "absoluteFromKey", "rewriteAbsoluteKeys", "readCacheFile"]

V = TypeVar("V")



def cacheKey(root: Path, path: Path | str) -> str:
    """Cache keys are POSIX paths relative to the stable root (the game directory)."""
    return toRelPath(root, path)



def absoluteFromKey(root: Path, key: str) -> Path:
    path = Path(key)
    return path if path.is_absolute() else root / path



def rewriteAbsoluteKeys(cache: MutableMapping[str, V], root: Path) -> int:
    """
    Rewrites absolute keys (left by older runs or other install locations)
    to root-relative form, in place. Returns how many keys were rewritten.
    """
    toRewrite = [key for key in cache if Path(key).is_absolute()]
    for key in toRewrite:
        value = cache.pop(key)
        cache[cacheKey(root, key)] = value
    if toRewrite:
        logger.debug("Rewrote %d absolute cache key(s) relative to '%s'", len(toRewrite), root)
    return len(toRewrite)



def readCacheFile(path: Path, label: str, validate: Callable[[Any], bool]) -> Any | None:
    """
    Reads a persisted cache document. Returns None (and logs) when the file is
    missing, unreadable or fails `validate`, so the caller rebuilds it.
    """
    if not path.exists():
        logger.info("No %s at '%s'; building a new one.", label, path)
        return None
    try:
        data = readJsonFile(path)
    except (OSError, ValueError) as err:
        logger.warning("Loading %s failed, will rebuild it: %s", label, err)
        return None
    if not validate(data):
        logger.warning("%s at '%s' has an unexpected shape, will rebuild it.", label.capitalize(), path)
        return None
    logger.info("Loaded %s.", label)
    return data
