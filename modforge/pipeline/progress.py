# modforge/pipeline/progress.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol

logger = logging.getLogger(__name__)

__all__ = ["ProgressReport", "ProgressReporter", "LoggingProgressReporter", "NullProgressReporter"]



@dataclass(frozen=True, slots=True)
class ProgressReport:
    progress: float     # 0.0 .. 1.0 within the phase
    phase: str
    item: str = ""



class ProgressReporter(Protocol):
    def report(self, report: ProgressReport) -> None: ...



class NullProgressReporter:
    def report(self, report: ProgressReport) -> None:
        pass



class LoggingProgressReporter:
    """Logs a line whenever the phase changes, and each item at debug level."""

    def __init__(self) -> None:
        self._phase: str | None = None

    def report(self, report: ProgressReport) -> None:
        if report.phase != self._phase:
            self._phase = report.phase
            logger.info("== %s ==", report.phase)
        logger.debug("[%3d%%] %s: %s", int(report.progress * 100), report.phase, report.item)
