"""
Runtime collaborators: schedulers, environment signals and the headless engine.
"""

from __future__ import annotations

from .headless import HeadlessEngine, HeadlessRegion
from .scheduling import (
    RESIZE_THROTTLE_SECONDS,
    AsyncioScheduler,
    ManualScheduler,
    ResizeSignal,
    Scheduler,
    Throttle,
)

__all__ = [
    "AsyncioScheduler",
    "HeadlessEngine",
    "HeadlessRegion",
    "ManualScheduler",
    "RESIZE_THROTTLE_SECONDS",
    "ResizeSignal",
    "Scheduler",
    "Throttle",
]
