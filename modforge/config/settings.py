# modforge/config/settings.py
from __future__ import annotations
import copy
import logging
from pathlib import Path
from typing import Any, cast

import json5
from pydantic import JsonValue

from modforge.core.dictpath import getByPath

logger = logging.getLogger(__name__)

__all__ = [
    "SETTINGS_FILE_NAME", "DEFAULT_SETTINGS", "loadUserSettings",
    "loadSettings", "deepMerge", "setting", "settingList", "settingBool",
]



SETTINGS_FILE_NAME = "settings.json5"

DEFAULT_SETTINGS: dict[str, JsonValue] = {
    "content": {
        # Directory name inside a mod that mirrors the game's base content tree
        "mirrorDirName": "StreamingAssets",
        # Suffixes (case-insensitive) of OS/editor noise files
        "denyList": [".DS_STORE", "~", ".nomedia", "Thumbs.db", "desktop.ini"],
        # Where structured content keeps its identifier, first match wins
        "idFields": ["Description.Id", "id", "Id", "ID", "identifier", "Identifier"],
    },
    "database": {
        "fileName": "MetadataDatabase.db",
        "persistedKinds": [
            "TurretDef", "UpgradeDef", "VehicleDef", "ContractOverride",
            "SimGameEventDef", "LanceDef", "MechDef", "PilotDef", "WeaponDef",
        ],
    },
    "logging": {"devMode": False},
}



def loadUserSettings(path: Path | None) -> JsonValue:
    if path is not None and path.exists():
        try:
            return json5.loads(path.read_text(encoding="utf-8"))
        except Exception as err:
            logger.error("Failed to parse '%s': %s", path, err)
    return {}



def loadSettings(path: Path | None = None) -> dict[str, JsonValue]:
    """Returns the built-in defaults with the user's overrides from `path` on top."""
    merged = deepMerge(copy.deepcopy(DEFAULT_SETTINGS), loadUserSettings(path))
    if not isinstance(merged, dict):
        logger.error("Settings file '%s' must hold an object; using defaults", path)
        return copy.deepcopy(DEFAULT_SETTINGS)
    return merged



def deepMerge(first: JsonValue, second: JsonValue) -> JsonValue:
    """
    Returns a new JsonValue where keys from `second` override/extend `first`.
    Only merges recursively when BOTH sides are JSON objects (dicts).
    For all other JSON types (lists, strings, numbers, booleans, null),
    the right-hand value `second` replaces `first`.
    """
    if isinstance(first, dict) and isinstance(second, dict):
        out: dict[str, JsonValue] = dict(first)
        for key, value in second.items():
            if key in out:
                out[key] = deepMerge(out[key], cast(JsonValue, value))
            else:
                out[key] = cast(JsonValue, value)
        return cast(JsonValue, out)

    return cast(JsonValue, second)

# ---------- Ergonomic accessors over merged settings ----------

def setting(settings: dict[str, Any], path: str, default: Any = None) -> Any:
    """Returns value at `path` from merged settings, or `default` if missing."""
    val = getByPath(settings, path)
    return default if val is None else val



def settingList(settings: dict[str, Any], path: str, default: list[str] | None = None) -> list[str]:
    val = getByPath(settings, path)
    if isinstance(val, list):
        return [str(item) for item in val]
    return list(default or [])



def settingBool(settings: dict[str, Any], path: str, default: bool = False) -> bool:
    val = getByPath(settings, path)
    if isinstance(val, bool):
        return val
    if val is None:
        return default
    return bool(val)
