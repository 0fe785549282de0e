# modforge/core/dictpath.py
from __future__ import annotations
from typing import Any
from collections.abc import Mapping, MutableMapping, MutableSequence

__all__ = ["PathKey", "splitPath", "getByPath", "setByPath", "deleteByPath", "resolveParent"]



PathKey = str | int

_MISSING = object()



# ----------------------------------------------
#                  path parsing
# ----------------------------------------------

def splitPath(path: str) -> list[PathKey]:
    """
    Splits a JSON document path into keys.

    '.' separates object keys, '[n]' addresses list items and a backslash
    escapes the next character (including '.', '[' and ']').

    Examples:
      - Description.Id   -> ["Description", "Id"]
      - Locations[2].x   -> ["Locations", 2, "x"]
      - a\\.b[0]         -> ["a.b", 0]
    """
    if not isinstance(path, str) or not path:
        raise ValueError("Path must be a non-empty string")

    parts: list[PathKey] = []
    curr: list[str] = []
    esc = False
    idx = 0
    # True right after a "[n]" hop, where the next char must be "." or "["
    afterIndex = False
    while idx < len(path):
        ch = path[idx]
        if esc:
            curr.append(ch)
            esc = False
            idx += 1
            continue
        if ch == "\\":
            esc = True
            idx += 1
            continue
        if ch == ".":
            if not afterIndex:
                if not curr:
                    raise ValueError(f"Path '{path}' contains empty segment(s)")
                parts.append("".join(curr))
                curr = []
            afterIndex = False
            idx += 1
            continue
        if ch == "[":
            if curr:
                parts.append("".join(curr))
                curr = []
            close = path.find("]", idx)
            if close < 0:
                raise ValueError(f"Path '{path}' has an unclosed '['")
            token = path[idx + 1:close].strip()
            if not token.lstrip("-").isdigit():
                raise ValueError(f"Path '{path}' has a non-integer index '{token}'")
            parts.append(int(token))
            afterIndex = True
            idx = close + 1
            continue
        if afterIndex:
            raise ValueError(f"Path '{path}' expects '.' or '[' after an index")
        curr.append(ch)
        idx += 1

    if esc:
        raise ValueError("Path ends with a dangling escape (trailing backslash)")
    if curr:
        parts.append("".join(curr))
    elif not afterIndex:
        raise ValueError(f"Path '{path}' contains empty segment(s)")
    return parts



def _step(current: Any, key: PathKey) -> Any:
    if isinstance(key, int):
        if isinstance(current, list) and -len(current) <= key < len(current):
            return current[key]
        return _MISSING
    if isinstance(current, Mapping) and key in current:
        return current[key]
    return _MISSING



# ----------------------------------------------
#                   Public API
# ----------------------------------------------

def getByPath(obj: Any, path: str, default: Any | None = None) -> Any:
    """
    Returns the value at `path` inside a JSON-like tree, or `default` when the
    chain cannot be resolved. Invalid paths are treated as "not found".
    """
    try:
        parts = splitPath(path)
    except ValueError:
        return default

    current: Any = obj
    for part in parts:
        current = _step(current, part)
        if current is _MISSING:
            return default
    return current



def resolveParent(obj: Any, path: str, *, createIfMissing: bool = False) -> tuple[Any, PathKey]:
    """
    Walks to the container holding the last key of `path`.

    Returns (container, lastKey). Missing object keys are created as dicts when
    createIfMissing is set; list items are never created.

    Raises KeyError when the chain is broken.
    """
    parts = splitPath(path)
    current: Any = obj
    for part in parts[:-1]:
        nxt = _step(current, part)
        if nxt is _MISSING:
            if createIfMissing and isinstance(part, str) and isinstance(current, MutableMapping):
                nxt = {}
                current[part] = nxt
            else:
                raise KeyError(f"path segment {part!r} not found while resolving '{path}'")
        current = nxt
    return current, parts[-1]



def setByPath(obj: Any, path: str, value: Any, *, createIfMissing: bool = False) -> None:
    """
    Sets the value at `path`. Object keys are created on the last hop; list
    indexes must already exist.
    """
    parent, last = resolveParent(obj, path, createIfMissing=createIfMissing)
    if isinstance(last, int):
        if not isinstance(parent, MutableSequence) or not -len(parent) <= last < len(parent):
            raise KeyError(f"index {last} out of range for '{path}'")
        parent[last] = value
        return
    if not isinstance(parent, MutableMapping):
        raise TypeError(f"Cannot set key {last!r} on {type(parent).__name__} at '{path}'")
    parent[last] = value



def deleteByPath(obj: Any, path: str) -> bool:
    """Deletes the value at `path`. Returns True if something was removed."""
    try:
        parent, last = resolveParent(obj, path)
    except (KeyError, ValueError):
        return False
    if isinstance(last, int):
        if isinstance(parent, MutableSequence) and -len(parent) <= last < len(parent):
            del parent[last]
            return True
        return False
    if isinstance(parent, MutableMapping) and last in parent:
        del parent[last]
        return True
    return False
