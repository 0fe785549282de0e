# modforge/core/logging/__init__.py
from __future__ import annotations

from .context import getLogContext, logContext
from .setup import configureLogging, getModLogger

__all__ = [
    "configureLogging",
    "getModLogger",
    "getLogContext",
    "logContext",
]
