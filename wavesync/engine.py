"""
Typing contracts for the external audio engine.

The synchroniser never decodes or draws audio itself; it drives an engine
object that satisfies :class:`Engine`.  :mod:`wavesync.runtime.headless`
provides an in-memory implementation.
"""

from __future__ import annotations

from typing import Any, Callable, Mapping, Optional, Protocol, Sequence

Handler = Callable[..., None]
Peaks = Optional[Sequence[float]]


class Emitter(Protocol):
    def on(self, event: str, handler: Handler) -> None:
        ...

    def un(self, event: str, handler: Optional[Handler] = None) -> None:
        ...


class LiveRegion(Emitter, Protocol):
    id: str
    start: float
    end: float

    def update(self, partial: Mapping[str, Any]) -> None:
        ...

    def remove(self) -> None:
        ...


class Engine(Emitter, Protocol):
    regions: Optional[Mapping[str, LiveRegion]]

    def init(self, options: Mapping[str, Any]) -> None:
        ...

    def load(self, url: str, peaks: Peaks = None) -> None:
        ...

    def load_blob(self, blob: Any, peaks: Peaks = None) -> None:
        ...

    def load_media_element(self, element: Any, peaks: Peaks = None) -> None:
        ...

    def play(self) -> None:
        ...

    def pause(self) -> None:
        ...

    def is_playing(self) -> bool:
        ...

    def set_volume(self, volume: float) -> None:
        ...

    def zoom(self, level: float) -> None:
        ...

    def set_playback_rate(self, rate: float) -> None:
        ...

    def seek_to(self, progress: float) -> None:
        ...

    def seek_and_center(self, progress: float) -> None:
        ...

    def get_duration(self) -> float:
        ...

    def draw_buffer(self) -> None:
        ...

    def destroy(self) -> None:
        ...

    def add_region(self, descriptor: Mapping[str, Any]) -> LiveRegion:
        ...


def has_region_support(engine: Any) -> bool:
    return engine is not None and getattr(engine, "regions", None) is not None


__all__ = ["Emitter", "Engine", "Handler", "LiveRegion", "Peaks", "has_region_support"]
