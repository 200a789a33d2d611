# Deferred one-shot continuations
#
# Some editor steps must run after the current UI update finishes (e.g. generating the
# zone marker preview once the authoring collection exists). Inside Blender these are
# one-shot bpy.app.timers callbacks; elsewhere they wait in a FIFO until run_pending().
# Either way they run on the main thread and never concurrently with the caller.

from __future__ import annotations

import logging
from collections import deque
from typing import Callable, Deque

try:
    import bpy  # for timers and main-thread execution
except Exception:
    bpy = None

logger = logging.getLogger(__name__)

_pending: Deque[Callable[[], None]] = deque()


def _has_timers() -> bool:
    return bool(bpy and hasattr(bpy, "app") and hasattr(bpy.app, "timers"))


def defer(fn: Callable[[], None], label: str = "task") -> None:
    """Schedule fn to run once after the current update cycle. Fire-and-forget."""

    def _run() -> None:
        try:
            fn()
        except Exception as ex:
            logger.error(f"Deferred {label} failed: {ex}")
        return None  # one-shot timer

    if _has_timers():
        bpy.app.timers.register(_run, first_interval=0.0)
        logger.debug(f"Deferred {label} scheduled on bpy.app.timers")
    else:
        _pending.append(_run)
        logger.debug(f"Deferred {label} queued ({len(_pending)} pending)")


def run_pending() -> int:
    """Run queued continuations in FIFO order (no-op inside Blender). Returns how many ran."""
    ran = 0
    while _pending:
        _pending.popleft()()
        ran += 1
    return ran


def pending_count() -> int:
    return len(_pending)
