"""Tests covering the in-memory engine used by the control server."""

from __future__ import annotations

import pytest

from wavesync.engine import has_region_support
from wavesync.runtime.headless import HeadlessEngine
from wavesync.runtime.scheduling import ManualScheduler


def record(engine: HeadlessEngine, *events: str) -> list:
    seen = []
    for event in events:
        engine.on(event, lambda *args, _event=event: seen.append((_event, args)))
    return seen


def test_scheduled_load_completes_after_decode_delay() -> None:
    scheduler = ManualScheduler()
    engine = HeadlessEngine(scheduler=scheduler, decode_delay=0.5, default_duration=30.0)
    seen = record(engine, "loading", "ready")

    engine.init({})
    engine.load("a.mp3")
    scheduler.advance(0.4)
    assert seen == [("loading", (0,))]

    scheduler.advance(0.2)
    assert seen == [("loading", (0,)), ("loading", (100,)), ("ready", ())]
    assert engine.get_duration() == 30.0


def test_new_load_cancels_pending_one() -> None:
    scheduler = ManualScheduler()
    engine = HeadlessEngine(scheduler=scheduler, decode_delay=0.5)
    seen = record(engine, "ready")

    engine.load("a.mp3")
    scheduler.advance(0.3)
    engine.load("b.mp3")
    scheduler.advance(1.0)

    assert seen == [("ready", ())]
    assert engine.source == "b.mp3"


def test_playback_advances_and_finishes() -> None:
    engine = HeadlessEngine()
    seen = record(engine, "audioprocess", "finish", "play", "pause")
    engine.load("a.mp3")
    engine.complete_load(4.0)

    engine.advance(1.0)
    assert seen == []

    engine.play()
    engine.play()
    engine.advance(1.0)
    engine.advance(5.0)

    assert seen == [
        ("play", ()),
        ("audioprocess", (0.25,)),
        ("audioprocess", (1.0,)),
        ("finish", ()),
    ]
    assert engine.is_playing() is False
    assert engine.get_current_time() == 4.0
    assert engine.commands("play") == [("play", ()), ("play", ())]


def test_seek_clamps_progress() -> None:
    engine = HeadlessEngine()
    seen = record(engine, "seek", "scroll")
    engine.complete_load(10.0)

    engine.seek_to(1.5)
    engine.seek_and_center(-0.2)

    assert seen == [("seek", (1.0,)), ("seek", (0.0,)), ("scroll", ())]


def test_region_lifecycle_events() -> None:
    engine = HeadlessEngine()
    seen = record(engine, "region-created", "region-updated", "region-removed")

    first = engine.add_region({"id": "a", "start": 1, "end": 2, "color": "red"})
    first.update({"end": 3})
    replacement = engine.add_region({"id": "a", "start": 0, "end": 1})

    assert first.removed is True
    assert engine.regions == {"a": replacement}
    assert [name for name, _ in seen] == [
        "region-created",
        "region-updated",
        "region-removed",
        "region-created",
    ]
    assert first.to_dict() == {"id": "a", "start": 1.0, "end": 3.0, "color": "red"}


def test_destroy_removes_regions_and_listeners() -> None:
    engine = HeadlessEngine()
    engine.init({})
    region = engine.add_region({"id": "a", "start": 0, "end": 1})
    removed = []
    region.on("remove", lambda: removed.append(region.id))
    engine.on("ready", lambda: None)

    engine.destroy()

    assert removed == ["a"]
    assert engine.regions == {}
    assert engine.listener_count() == 0


def test_region_support_flag() -> None:
    engine = HeadlessEngine(region_support=False)

    assert has_region_support(engine) is False
    assert has_region_support(HeadlessEngine()) is True
    with pytest.raises(RuntimeError):
        engine.add_region({"id": "a", "start": 0, "end": 1})
