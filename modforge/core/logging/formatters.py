# modforge/core/logging/formatters.py
from __future__ import annotations

import json
import logging
from typing import Any

from .context import getLogContext

__all__ = ["JsonFormatter", "DevFormatter"]



def _describeException(exc: BaseException, stack: str | None) -> dict[str, Any]:
    info: dict[str, Any] = {"type": type(exc).__name__, "message": str(exc), "stack": stack}
    # Pipeline errors carry the mod and file they are about
    for attr in ("modName", "path", "kind"):
        value = getattr(exc, attr, None)
        if value is not None:
            info[attr] = str(value)
    return info



class JsonFormatter(logging.Formatter):
    """
    One JSON object per line for the run log.

    The pipeline position (`phase`, `mod`) is lifted to the top level so the
    log can be filtered per mod; any other context keys stay under `ctx`.
    """
    def format(self, record: logging.LogRecord) -> str:
        ctx = dict(getLogContext() or {})
        payload: dict[str, Any] = {
            "ts": int(record.created * 1000),
            "level": record.levelname.lower(),
            "logger": record.name,
            "phase": ctx.pop("phase", None),
            "mod": ctx.pop("modName", None),
            "msg": record.getMessage(),
        }
        if ctx:
            payload["ctx"] = ctx

        if record.exc_info and record.exc_info[1] is not None:
            try:
                stack = self.formatException(record.exc_info)
            except Exception:
                stack = None
            payload["exc"] = _describeException(record.exc_info[1], stack)

        return json.dumps(payload, ensure_ascii=False, separators=(",", ":"), default=str)



class DevFormatter(logging.Formatter):
    """Console lines: level, pipeline position, logger, message."""
    def format(self, record: logging.LogRecord) -> str:
        ctx = getLogContext() or {}
        where = "/".join(str(ctx[key]) for key in ("phase", "modName") if ctx.get(key))
        head = f"{record.levelname:<7} [{where}]" if where else f"{record.levelname:<7}"

        msg = record.getMessage()
        if record.exc_info:
            msg += "\n" + self.formatException(record.exc_info)
        if record.stack_info:
            msg += "\n" + self.formatStack(record.stack_info)
        return f"{head} {record.name}: {msg}"
