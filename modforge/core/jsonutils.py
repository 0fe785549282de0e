# modforge/core/jsonutils.py
from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any

import json5

__all__ = [
    "isJsonPath",
    "parseGameJson",
    "readGameJson",
    "dumpJson",
    "writeJsonFile",
    "readJsonFile",
    "toRelPath",
]



# A value end followed by a newline and a value start, without a comma in between.
_MISSING_COMMA_RE = re.compile(r'(\]|\}|"|[A-Za-z0-9])\s*\n\s*(\[|\{|")', re.DOTALL)



def isJsonPath(path: Path | str) -> bool:
    return Path(path).suffix.lower() == ".json"



def parseGameJson(text: str) -> Any:
    """
    Parses game-authored JSON.

    Game content tolerates comments, trailing commas and missing commas
    between lines. json5 handles the first two; the regex inserts a comma
    wherever a value ends on one line and another starts on the next.
    """
    repaired = _MISSING_COMMA_RE.sub(r"\1,\n\2", text)
    return json5.loads(repaired)



def readGameJson(path: Path | str) -> Any:
    return parseGameJson(Path(path).read_text(encoding="utf-8-sig"))



def dumpJson(obj: Any) -> str:
    """Serializes to indented, strict JSON (quoted keys, no trailing commas)."""
    return json5.dumps(
        obj,
        ensure_ascii=False,
        indent=2,
        quote_keys=True,
        trailing_commas=False,
        allow_nan=False,
    )



def writeJsonFile(path: Path | str, obj: Any) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(dumpJson(obj), encoding="utf-8")



def readJsonFile(path: Path | str) -> Any:
    return json5.loads(Path(path).read_text(encoding="utf-8-sig"))



def toRelPath(base: Path, path: Path | str) -> str:
    """
    Returns a POSIX-style path of `path` relative to `base`.

    Relative inputs are returned unchanged (normalized to POSIX separators).
    """
    path = Path(path)
    if not path.is_absolute():
        return path.as_posix()
    try:
        rel = os.path.relpath(path, base)
    except ValueError:
        # Different drive on Windows: keep it absolute.
        return path.as_posix()
    return Path(rel).as_posix()
