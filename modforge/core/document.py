# modforge/core/document.py
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

__all__ = ["NodeKind", "DocNode", "fromPlain", "toPlain", "deepMerge", "mergeDocuments"]



class NodeKind(Enum):
    OBJECT = "object"
    ARRAY = "array"
    SCALAR = "scalar"



@dataclass(slots=True)
class DocNode:
    """
    One node of a JSON document.

    Exactly one payload is meaningful, selected by `kind`:
      - OBJECT: `members`, insertion ordered
      - ARRAY:  `items`
      - SCALAR: `value` (None, bool, int, float or str)
    """
    kind: NodeKind
    members: dict[str, DocNode] = field(default_factory=dict)
    items: list[DocNode] = field(default_factory=list)
    value: Any = None

    @classmethod
    def obj(cls, members: dict[str, DocNode] | None = None) -> DocNode:
        return cls(NodeKind.OBJECT, members=dict(members or {}))

    @classmethod
    def array(cls, items: list[DocNode] | None = None) -> DocNode:
        return cls(NodeKind.ARRAY, items=list(items or []))

    @classmethod
    def scalar(cls, value: Any) -> DocNode:
        return cls(NodeKind.SCALAR, value=value)



def fromPlain(value: Any) -> DocNode:
    """Builds a document tree from parsed JSON (dict/list/scalars)."""
    if isinstance(value, dict):
        return DocNode.obj({str(key): fromPlain(child) for key, child in value.items()})
    if isinstance(value, (list, tuple)):
        return DocNode.array([fromPlain(child) for child in value])
    if value is None or isinstance(value, (bool, int, float, str)):
        return DocNode.scalar(value)
    raise TypeError(f"Unsupported JSON value of type {type(value).__name__}")



def toPlain(node: DocNode) -> Any:
    if node.kind is NodeKind.OBJECT:
        return {key: toPlain(child) for key, child in node.members.items()}
    if node.kind is NodeKind.ARRAY:
        return [toPlain(child) for child in node.items]
    return node.value



def _copy(node: DocNode) -> DocNode:
    if node.kind is NodeKind.OBJECT:
        return DocNode.obj({key: _copy(child) for key, child in node.members.items()})
    if node.kind is NodeKind.ARRAY:
        return DocNode.array([_copy(child) for child in node.items])
    return DocNode.scalar(node.value)



def deepMerge(base: DocNode, overlay: DocNode) -> DocNode:
    """
    Returns a new tree with `overlay` merged onto `base`.

    Only when BOTH sides are objects are members merged recursively (keys
    of `base` keep their position, new keys are appended). Everything else,
    arrays included, is replaced by the overlay.
    """
    if base.kind is NodeKind.OBJECT and overlay.kind is NodeKind.OBJECT:
        out: dict[str, DocNode] = {key: _copy(child) for key, child in base.members.items()}
        for key, child in overlay.members.items():
            if key in out:
                out[key] = deepMerge(out[key], child)
            else:
                out[key] = _copy(child)
        return DocNode.obj(out)
    return _copy(overlay)



def mergeDocuments(base: Any, *overlays: Any) -> Any:
    """Plain-JSON convenience: merges overlays onto base in order."""
    merged = fromPlain(base)
    for overlay in overlays:
        merged = deepMerge(merged, fromPlain(overlay))
    return toPlain(merged)
