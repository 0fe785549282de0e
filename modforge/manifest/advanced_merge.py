# modforge/manifest/advanced_merge.py
from __future__ import annotations

import copy
from collections.abc import Mapping, MutableMapping, MutableSequence
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, JsonValue, ValidationError

from modforge.core.dictpath import deleteByPath, getByPath, resolveParent, setByPath
from modforge.core.document import mergeDocuments
from modforge.core.jsonutils import readGameJson

__all__ = [
    "AdvancedMergeAction",
    "MergeInstruction",
    "AdvancedMergeDocument",
    "isAdvancedMergeDocument",
    "readAdvancedMerge",
    "applyInstructions",
]



AdvancedMergeAction = Literal[
    "Replace",
    "Remove",
    "ObjectMerge",
    "ArrayAdd",
    "ArrayAddAfter",
    "ArrayAddBefore",
    "ArrayConcat",
]



class MergeInstruction(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    jsonPath: str = Field(alias="JSONPath")
    action: AdvancedMergeAction = Field(alias="Action")
    value: JsonValue = Field(default=None, alias="Value")



class AdvancedMergeDocument(BaseModel):
    """
    Cross-file merge directive:

        {
          "TargetFile": "data/weapon/Weapon_Laser_SmallLaser_0-STOCK.json",
          "Instructions": [
            {"JSONPath": "Damage", "Action": "Replace", "Value": 30},
            {"JSONPath": "ComponentTags.items", "Action": "ArrayAdd", "Value": "component_type_variant"}
          ]
        }

    `TargetFile` is relative to the base content directory. `TargetID` names a
    catalog entry instead.
    """
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    targetFile: str | None = Field(default=None, alias="TargetFile")
    targetId: str | None = Field(default=None, alias="TargetID")
    instructions: list[MergeInstruction] = Field(default_factory=list, alias="Instructions")



def isAdvancedMergeDocument(doc: Any) -> bool:
    return isinstance(doc, Mapping) and "Instructions" in doc and ("TargetFile" in doc or "TargetID" in doc)



def readAdvancedMerge(path: Path) -> AdvancedMergeDocument:
    """Raises ValueError when the file is not a valid directive."""
    raw = readGameJson(path)
    if not isAdvancedMergeDocument(raw):
        raise ValueError(f"'{path}' is not an advanced merge document (needs TargetFile/TargetID and Instructions)")
    try:
        return AdvancedMergeDocument.model_validate(raw)
    except ValidationError as err:
        raise ValueError(f"Invalid advanced merge document '{path}': {err}") from err



def _locate(doc: Any, path: str) -> tuple[Any, str | int]:
    try:
        return resolveParent(doc, path)
    except KeyError as err:
        raise ValueError(f"JSONPath '{path}' does not resolve: {err}") from err



def _targetList(doc: Any, path: str) -> MutableSequence[Any]:
    target = getByPath(doc, path)
    if not isinstance(target, list):
        raise ValueError(f"JSONPath '{path}' does not point at an array")
    return target



def _applyOne(doc: Any, instruction: MergeInstruction) -> Any:
    path = instruction.jsonPath
    value = copy.deepcopy(instruction.value)
    action = instruction.action

    if action == "ArrayAdd":
        _targetList(doc, path).append(value)
        return doc
    if action == "ArrayConcat":
        if not isinstance(value, list):
            raise ValueError(f"ArrayConcat at '{path}' needs an array value")
        _targetList(doc, path).extend(value)
        return doc

    if action == "Remove":
        if not deleteByPath(doc, path):
            raise ValueError(f"Remove at '{path}' names a missing key or index")
        return doc
    if action == "Replace":
        try:
            setByPath(doc, path, value)
        except (KeyError, TypeError) as err:
            raise ValueError(f"Replace at '{path}' does not resolve: {err}") from err
        return doc

    container, key = _locate(doc, path)

    if action in ("ArrayAddAfter", "ArrayAddBefore"):
        if not isinstance(key, int) or not isinstance(container, list):
            raise ValueError(f"{action} at '{path}' must address an array item")
        if not -len(container) <= key < len(container):
            raise ValueError(f"{action} at '{path}' is out of range")
        index = key % len(container)
        container.insert(index + 1 if action == "ArrayAddAfter" else index, value)
        return doc

    if action != "ObjectMerge":
        raise ValueError(f"Unknown action '{action}'")
    if isinstance(key, int):
        if not isinstance(container, list) or not -len(container) <= key < len(container):
            raise ValueError(f"ObjectMerge at '{path}' is out of range")
        current = container[key]
    else:
        if not isinstance(container, MutableMapping):
            raise ValueError(f"ObjectMerge at '{path}' does not address an object member")
        current = container.get(key)
    if not isinstance(current, dict) or not isinstance(value, dict):
        raise ValueError(f"ObjectMerge at '{path}' needs objects on both sides")
    container[key] = mergeDocuments(current, value)
    return doc



def applyInstructions(doc: Any, directive: AdvancedMergeDocument) -> Any:
    """
    Applies the directive's instructions, in order, to a copy of `doc`.

    Raises ValueError on the first instruction that cannot be applied.
    """
    out = copy.deepcopy(doc)
    for instruction in directive.instructions:
        out = _applyOne(out, instruction)
    return out
