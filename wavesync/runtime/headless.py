"""
In-memory engine implementing the capability contract without decoding.

The headless engine keeps just enough playback state (duration, progress,
playing flag, live regions) to emit the same events a rendering engine would.
It journals every command in :attr:`HeadlessEngine.calls`, which makes it
usable both behind the control API and as the engine in tests.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from ..bridge import EventEmitter
from .scheduling import ScheduledCall, Scheduler

LOG = logging.getLogger(__name__)


class HeadlessRegion(EventEmitter):
    """
    Live region owned by a :class:`HeadlessEngine`.
    """

    def __init__(self, engine: "HeadlessEngine", descriptor: Mapping[str, Any]) -> None:
        super().__init__()
        self.engine = engine
        self.id = str(descriptor["id"])
        self.start = float(descriptor.get("start", 0.0))
        self.end = float(descriptor.get("end", self.start))
        self.attributes: Dict[str, Any] = {
            key: value for key, value in descriptor.items() if key not in {"id", "start", "end"}
        }
        self.removed = False
        self.inside = False

    def update(self, partial: Mapping[str, Any]) -> None:
        self.engine.calls.append(("region.update", (self.id, dict(partial))))
        if "start" in partial:
            self.start = float(partial["start"])
        if "end" in partial:
            self.end = float(partial["end"])
        for key, value in partial.items():
            if key not in {"start", "end", "id"}:
                self.attributes[key] = value
        self.fire_event("update")
        self.engine.fire_event("region-updated", self)

    def remove(self) -> None:
        if self.removed:
            return
        self.engine.calls.append(("region.remove", (self.id,)))
        self.removed = True
        if self.engine.regions is not None:
            self.engine.regions.pop(self.id, None)
        self.fire_event("remove")
        self.engine.fire_event("region-removed", self)

    def play(self) -> None:
        duration = self.engine.get_duration()
        self.engine.seek_to(self.start / duration if duration else 0.0)
        self.engine.play()
        self.fire_event("play")
        self.engine.fire_event("region-play", self)

    def to_dict(self) -> dict:
        return {"id": self.id, "start": self.start, "end": self.end, **self.attributes}

    def __repr__(self) -> str:
        return f"<HeadlessRegion {self.id} {self.start:.3f}-{self.end:.3f}>"


class HeadlessEngine(EventEmitter):
    """
    Engine that tracks playback state in memory.

    When a ``scheduler`` is supplied, every load completes automatically after
    ``decode_delay`` seconds with ``default_duration``; otherwise call
    :meth:`complete_load` to emit ``ready``.
    """

    def __init__(
        self,
        *,
        scheduler: Optional[Scheduler] = None,
        decode_delay: float = 0.0,
        default_duration: float = 0.0,
        region_support: bool = True,
    ) -> None:
        super().__init__()
        self.calls: List[Tuple[str, Tuple[Any, ...]]] = []
        self.options: Dict[str, Any] = {}
        self.regions: Optional[Dict[str, HeadlessRegion]] = {} if region_support else None
        self._region_support = region_support
        self._scheduler = scheduler
        self._decode_delay = float(decode_delay)
        self._default_duration = float(default_duration)
        self._pending_load: Optional[ScheduledCall] = None
        self.source: Any = None
        self.peaks: Optional[Sequence[float]] = None
        self.duration = 0.0
        self.progress = 0.0
        self.playing = False
        self.volume = 1.0
        self.zoom_level: Optional[float] = None
        self.playback_rate = 1.0
        self.initialised = False
        self.destroyed = False

    # ------------------------------------------------------------------ setup

    def init(self, options: Mapping[str, Any]) -> None:
        self.calls.append(("init", (dict(options),)))
        self.options = dict(options)
        self.playback_rate = float(self.options.get("audio_rate") or 1.0)
        self.initialised = True
        self.destroyed = False
        if self.regions is None and self._region_support:
            self.regions = {}

    def destroy(self) -> None:
        self.calls.append(("destroy", ()))
        self._cancel_pending_load()
        if self.regions:
            for region in list(self.regions.values()):
                region.remove()
        self.playing = False
        self.un_all()
        self.destroyed = True
        self.initialised = False

    # ------------------------------------------------------------------ loading

    def load(self, url: str, peaks: Optional[Sequence[float]] = None) -> None:
        self.calls.append(("load", (url, peaks)))
        self._begin_load(url, peaks)

    def load_blob(self, blob: Any, peaks: Optional[Sequence[float]] = None) -> None:
        self.calls.append(("load_blob", (blob, peaks)))
        self._begin_load(blob, peaks)

    def load_media_element(self, element: Any, peaks: Optional[Sequence[float]] = None) -> None:
        self.calls.append(("load_media_element", (element, peaks)))
        self._begin_load(element, peaks)

    def complete_load(self, duration: Optional[float] = None) -> None:
        """
        Finish the pending load and emit ``ready``.
        """

        self._cancel_pending_load()
        self.duration = max(0.0, float(self._default_duration if duration is None else duration))
        self.progress = 0.0
        LOG.debug("Headless engine ready (duration=%.3fs)", self.duration)
        self.fire_event("loading", 100)
        self.fire_event("ready")

    def _begin_load(self, source: Any, peaks: Optional[Sequence[float]]) -> None:
        self._cancel_pending_load()
        self.source = source
        self.peaks = list(peaks) if peaks is not None else None
        self.playing = False
        self.fire_event("loading", 0)
        if self._scheduler is not None:
            self._pending_load = self._scheduler.schedule_after(self._decode_delay, self.complete_load)

    def _cancel_pending_load(self) -> None:
        pending, self._pending_load = self._pending_load, None
        if pending is not None:
            pending.cancel()

    # ------------------------------------------------------------------ transport

    def play(self) -> None:
        self.calls.append(("play", ()))
        if self.playing:
            return
        self.playing = True
        self.fire_event("play")

    def pause(self) -> None:
        self.calls.append(("pause", ()))
        if not self.playing:
            return
        self.playing = False
        self.fire_event("pause")

    def is_playing(self) -> bool:
        return self.playing

    def seek_to(self, progress: float) -> None:
        self.calls.append(("seek_to", (progress,)))
        self._seek(progress)

    def seek_and_center(self, progress: float) -> None:
        self.calls.append(("seek_and_center", (progress,)))
        self._seek(progress)
        self.fire_event("scroll")

    def _seek(self, progress: float) -> None:
        self.progress = max(0.0, min(1.0, float(progress)))
        self.fire_event("seek", self.progress)

    def advance(self, seconds: float) -> None:
        """
        Simulate ``seconds`` of playback, emitting ``audioprocess``.
        """

        if not self.playing or self.duration <= 0:
            return
        elapsed = max(0.0, float(seconds)) * self.playback_rate
        position = min(self.duration, self.progress * self.duration + elapsed)
        self.progress = position / self.duration
        self.fire_event("audioprocess", self.progress)
        self._fire_region_crossings(position)
        if position >= self.duration:
            self.playing = False
            self.fire_event("finish")

    def _fire_region_crossings(self, position: float) -> None:
        if not self.regions:
            return
        for region in list(self.regions.values()):
            inside = region.start <= position < region.end
            was_inside = region.inside
            if inside and not was_inside:
                region.inside = True
                region.fire_event("in")
                self.fire_event("region-in", region)
            elif was_inside and not inside:
                region.inside = False
                region.fire_event("out")
                self.fire_event("region-out", region)

    def get_duration(self) -> float:
        return self.duration

    def get_current_time(self) -> float:
        return self.progress * self.duration

    # ------------------------------------------------------------------ rendering knobs

    def set_volume(self, volume: float) -> None:
        self.calls.append(("set_volume", (volume,)))
        self.volume = float(volume)

    def zoom(self, level: float) -> None:
        self.calls.append(("zoom", (level,)))
        self.zoom_level = level
        self.fire_event("zoom", level)

    def set_playback_rate(self, rate: float) -> None:
        self.calls.append(("set_playback_rate", (rate,)))
        self.playback_rate = float(rate)

    def draw_buffer(self) -> None:
        self.calls.append(("draw_buffer", ()))

    # ------------------------------------------------------------------ regions

    def add_region(self, descriptor: Mapping[str, Any]) -> HeadlessRegion:
        if self.regions is None:
            raise RuntimeError("Region support is disabled on this engine.")
        region = HeadlessRegion(self, descriptor)
        self.calls.append(("add_region", (region.id,)))
        previous = self.regions.get(region.id)
        if previous is not None:
            previous.remove()
        self.regions[region.id] = region
        self.fire_event("region-created", region)
        return region

    # ------------------------------------------------------------------ inspection

    def commands(self, *names: str) -> List[Tuple[str, Tuple[Any, ...]]]:
        """
        Journal entries, optionally filtered by command name.
        """

        if not names:
            return list(self.calls)
        return [entry for entry in self.calls if entry[0] in names]

    def clear_calls(self) -> None:
        self.calls.clear()


__all__ = ["HeadlessEngine", "HeadlessRegion"]
