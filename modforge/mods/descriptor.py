# modforge/mods/descriptor.py
from __future__ import annotations
from pathlib import Path
from typing import Any

import json5
from pydantic import BaseModel, ConfigDict, Field, JsonValue, ValidationError, field_validator

from modforge.catalog.catalog import fullPath
from modforge.core.errors import ConfigParseError

__all__ = ["MOD_JSON_NAME", "EntryPointSpec", "ManifestDeclaration", "ModDescriptor", "loadDescriptor"]



MOD_JSON_NAME = "mod.json"



class EntryPointSpec(BaseModel):
    """Code entry point of a mod: a module file inside the mod directory and a callable in it."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    module: str
    symbol: str = "init"

    @classmethod
    def parse(cls, text: str) -> EntryPointSpec:
        """Accepts the short form "path/to/module.py:symbol" (symbol optional)."""
        module, sep, symbol = text.strip().rpartition(":")
        if not sep:
            return cls(module=text.strip())
        # Keep Windows drive letters ("C:\\...") intact
        if len(module) == 1 and symbol.startswith(("\\", "/")):
            return cls(module=text.strip())
        return cls(module=module, symbol=symbol or "init")



class ManifestDeclaration(BaseModel):
    """One user-authored content rule from the mod's manifest list."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    path: str = ""
    type: str | None = None
    id: str | None = None
    shouldMergeJSON: bool = False
    addToAddendum: str | None = None
    addToDB: bool = True
    assetBundleName: str | None = None



class ModDescriptor(BaseModel):
    """Represents a validated mod declaration (mod.json)."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    name: str
    version: str = "0.0.0"
    enabled: bool = True
    description: str | None = None
    author: str | None = None
    website: str | None = None

    dependsOn: frozenset[str] = Field(default_factory=frozenset)
    optionallyDependsOn: frozenset[str] = Field(default_factory=frozenset)
    conflictsWith: frozenset[str] = Field(default_factory=frozenset)

    manifest: tuple[ManifestDeclaration, ...] = ()
    loadImplicitManifest: bool = True
    entryPoint: EntryPointSpec | None = None
    settings: dict[str, JsonValue] = Field(default_factory=dict)

    directory: Path

    @field_validator("name")
    @classmethod
    def _nameNotBlank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("mod name must not be empty")
        return value

    @field_validator("entryPoint", mode="before")
    @classmethod
    def _entryPointShortForm(cls, value: Any) -> Any:
        if isinstance(value, str):
            return EntryPointSpec.parse(value) if value.strip() else None
        return value

    @field_validator("dependsOn", "optionallyDependsOn", "conflictsWith", mode="before")
    @classmethod
    def _namesFromList(cls, value: Any) -> Any:
        if value is None:
            return frozenset()
        if isinstance(value, str):
            return frozenset([value])
        return value



def loadDescriptor(modDir: Path) -> ModDescriptor:
    """
    Reads and validates `<modDir>/mod.json`.

    Raises ConfigParseError tagged with:
      - "missing":    no declaration file
      - "unreadable": the file cannot be read
      - "malformed":  the file is not valid JSON/JSON5
      - "invalid":    the content does not match the descriptor schema
    """
    modDir = Path(modDir)
    declPath = modDir / MOD_JSON_NAME
    if not declPath.is_file():
        raise ConfigParseError(f"No {MOD_JSON_NAME} in '{modDir}'", kind="missing", path=declPath)

    try:
        text = declPath.read_text(encoding="utf-8-sig")
    except (OSError, UnicodeDecodeError) as err:
        raise ConfigParseError(f"Cannot read '{declPath}': {err}", kind="unreadable", path=declPath) from err

    try:
        raw = json5.loads(text)
    except ValueError as err:
        raise ConfigParseError(f"Malformed '{declPath}': {err}", kind="malformed", path=declPath) from err

    if not isinstance(raw, dict):
        raise ConfigParseError(f"'{declPath}' must contain an object", kind="invalid", path=declPath)

    try:
        return ModDescriptor.model_validate({**raw, "directory": fullPath(modDir)})
    except ValidationError as err:
        raise ConfigParseError(
            f"Invalid '{declPath}': {err}",
            kind="invalid",
            modName=raw.get("name") if isinstance(raw.get("name"), str) else None,
            path=declPath,
        ) from err
