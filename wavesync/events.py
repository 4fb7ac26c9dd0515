"""
Static event tables.

Each table maps an emitter event name to the callback slot that receives it
and the camelCase alias accepted in declarative payloads.  Keeping the whole
event surface here avoids deriving callback names from event strings at
runtime.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Tuple


@dataclass(frozen=True, slots=True)
class EventSlot:
    event: str
    slot: str
    alias: str


# Engine events forwarded by the lifecycle controller.
ENGINE_EVENTS: Tuple[EventSlot, ...] = (
    EventSlot("audioprocess", "on_audioprocess", "onAudioprocess"),
    EventSlot("error", "on_error", "onError"),
    EventSlot("finish", "on_finish", "onFinish"),
    EventSlot("loading", "on_loading", "onLoading"),
    EventSlot("mouseup", "on_mouseup", "onMouseup"),
    EventSlot("pause", "on_pause", "onPause"),
    EventSlot("play", "on_play", "onPlay"),
    EventSlot("ready", "on_ready", "onReady"),
    EventSlot("scroll", "on_scroll", "onScroll"),
    EventSlot("seek", "on_seek", "onSeek"),
    EventSlot("zoom", "on_zoom", "onZoom"),
)

# Controller-level slot that is not tied to a single engine event.
POS_CHANGE = EventSlot("audioprocess|seek", "on_pos_change", "onPosChange")

# Whole-engine region events wired once by the region reconciler.
REGIONS_EVENTS: Tuple[EventSlot, ...] = (
    EventSlot("region-in", "on_region_in", "onRegionIn"),
    EventSlot("region-out", "on_region_out", "onRegionOut"),
    EventSlot("region-mouseenter", "on_region_mouseenter", "onRegionMouseenter"),
    EventSlot("region-mouseleave", "on_region_mouseleave", "onRegionMouseleave"),
    EventSlot("region-click", "on_region_click", "onRegionClick"),
    EventSlot("region-dblclick", "on_region_dblclick", "onRegionDblclick"),
    EventSlot("region-updated", "on_region_updated", "onRegionUpdated"),
    EventSlot("region-update-end", "on_region_update_end", "onRegionUpdateEnd"),
    EventSlot("region-removed", "on_region_removed", "onRegionRemoved"),
    EventSlot("region-play", "on_region_play", "onRegionPlay"),
)

# Events emitted by an individual live region.
REGION_EVENTS: Tuple[EventSlot, ...] = (
    EventSlot("in", "on_single_region_in", "onSingleRegionIn"),
    EventSlot("out", "on_single_region_out", "onSingleRegionOut"),
    EventSlot("remove", "on_single_region_remove", "onSingleRegionRemove"),
    EventSlot("update", "on_single_region_update", "onSingleRegionUpdate"),
    EventSlot("click", "on_single_region_click", "onSingleRegionClick"),
    EventSlot("dblclick", "on_single_region_dblclick", "onSingleRegionDblclick"),
    EventSlot("over", "on_single_region_over", "onSingleRegionOver"),
    EventSlot("leave", "on_single_region_leave", "onSingleRegionLeave"),
)

PLAYER_SLOTS: Tuple[EventSlot, ...] = ENGINE_EVENTS + (POS_CHANGE,)
REGION_SLOTS: Tuple[EventSlot, ...] = REGIONS_EVENTS + REGION_EVENTS


def alias_map(table: Tuple[EventSlot, ...]) -> Dict[str, str]:
    """
    Map both the camelCase alias and the slot name to the slot name.
    """

    mapping: Dict[str, str] = {}
    for entry in table:
        mapping[entry.alias] = entry.slot
        mapping[entry.slot] = entry.slot
    return mapping


__all__ = [
    "ENGINE_EVENTS",
    "EventSlot",
    "PLAYER_SLOTS",
    "POS_CHANGE",
    "REGIONS_EVENTS",
    "REGION_EVENTS",
    "REGION_SLOTS",
    "alias_map",
]
