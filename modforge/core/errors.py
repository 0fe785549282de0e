# modforge/core/errors.py
from __future__ import annotations

from pathlib import Path

__all__ = [
    "ModforgeError",
    "PipelineAbortError",
    "ConfigParseError",
    "DuplicateModError",
    "ConstraintUnsatisfiableError",
    "MissingAssetError",
    "BundleOrderingViolationError",
    "MergeFailureError",
    "DatabaseRebuildRequired",
    "DatabaseEntryFailureError",
]



class ModforgeError(RuntimeError):
    """Base class for failures raised by the mod pipeline."""

    def __init__(
        self,
        message: str,
        *,
        modName: str | None = None,
        path: Path | str | None = None,
    ) -> None:
        super().__init__(message)
        self.modName: str | None = modName
        self.path: Path | None = Path(path) if path is not None else None



class PipelineAbortError(ModforgeError):
    """Raised when the whole run cannot continue (no mods dir, no baseline database)."""



class ConfigParseError(ModforgeError):
    """
    Raised when a mod declaration cannot be turned into a descriptor.

    `kind` tags the failure: "missing", "unreadable", "malformed" or "invalid".
    """

    def __init__(
        self,
        message: str,
        *,
        kind: str,
        modName: str | None = None,
        path: Path | str | None = None,
    ) -> None:
        super().__init__(message, modName=modName, path=path)
        self.kind: str = kind



class DuplicateModError(ModforgeError):
    """Raised when a second directory declares an already accepted mod name."""



class ConstraintUnsatisfiableError(ModforgeError):
    """Describes why a mod could not be placed in the load order."""

    def __init__(
        self,
        message: str,
        *,
        modName: str,
        missing: tuple[str, ...] = (),
        conflicts: tuple[str, ...] = (),
    ) -> None:
        super().__init__(message, modName=modName)
        self.missing: tuple[str, ...] = missing
        self.conflicts: tuple[str, ...] = conflicts



class MissingAssetError(ModforgeError):
    """Raised when a declared path does not exist."""



class BundleOrderingViolationError(ModforgeError):
    """Raised when a prefab references an asset bundle not declared earlier in the same mod."""



class MergeFailureError(ModforgeError):
    """Raised when a merge target or one of its overlays cannot be parsed or applied."""



class DatabaseRebuildRequired(ModforgeError):
    """Raised when a stale database record has no replacement and the database must be rebuilt."""



class DatabaseEntryFailureError(ModforgeError):
    """Raised when one content file cannot be written into the database."""
