"""
wavesync: declarative state synchronisation for event-driven audio engines.

A :class:`LifecycleController` turns successive player prop snapshots into
imperative engine commands and feeds engine events back as positions and user
callbacks.  A :class:`RegionReconciler` keeps the engine's live regions equal
to a declarative mapping once the controller reports the engine ready.
"""

from __future__ import annotations

from dataclasses import dataclass

__all__ = [
    "LifecycleController",
    "LifecycleState",
    "PlaybackSnapshot",
    "Player",
    "PlayerConfig",
    "PlayerProps",
    "RegionDescriptor",
    "RegionProps",
    "RegionReconciler",
    "diff_regions",
]


@dataclass
class PlayerConfig:
    """
    Top level configuration for the control server.
    """

    profile: str = "default"
    host: str = "127.0.0.1"
    port: int = 8080
    decode_delay: float = 0.05
    default_duration: float = 60.0
    event_history: int = 256


from .lifecycle import LifecycleController, LifecycleState, PlaybackSnapshot  # noqa: E402
from .player import Player  # noqa: E402
from .props import PlayerProps, RegionDescriptor, RegionProps  # noqa: E402
from .regions import RegionReconciler, diff_regions  # noqa: E402
