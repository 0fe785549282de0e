# modforge/core/logging/context.py
from __future__ import annotations
import contextvars
from collections.abc import Iterator
from contextlib import contextmanager

# Pipeline-wide log context (phase, modName, ...). Filled by the orchestrator per unit of work.
_logContextVar: contextvars.ContextVar[dict[str, object] | None] = contextvars.ContextVar("modforge.logctx", default=None)

def getLogContext():
    """Return current context dict or None."""
    return _logContextVar.get()

@contextmanager
def logContext(**kvs) -> Iterator[None]:
    """Adds context values for the duration of the block; None values are skipped."""
    token = _logContextVar.set({
        **(_logContextVar.get() or {}),
        **{key: value for key, value in kvs.items() if value is not None},
    })
    try:
        yield
    finally:
        _logContextVar.reset(token)
