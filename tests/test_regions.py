"""Tests covering region reconciliation against a live engine."""

from __future__ import annotations

from wavesync.lifecycle import LifecycleController
from wavesync.player import Player
from wavesync.props import PlayerProps, RegionDescriptor, RegionProps
from wavesync.regions import RegionDiff, RegionReconciler, diff_regions
from wavesync.runtime.headless import HeadlessEngine
from wavesync.runtime.scheduling import ManualScheduler, ResizeSignal


def make_reconciler(regions=None, callbacks=None, *, engine=None):
    engine = engine or HeadlessEngine()
    controller = LifecycleController(
        engine,
        PlayerProps(audio_file="a.mp3"),
        resize_signal=ResizeSignal(),
        scheduler=ManualScheduler(),
    )
    reconciler = RegionReconciler(controller, RegionProps(regions=regions or {}, callbacks=callbacks or {}))
    controller.mount()
    reconciler.mount()
    return reconciler, controller, engine


def test_diff_regions_is_minimal() -> None:
    live = {"a": (0.0, 1.0), "b": (2.0, 3.0), "c": (4.0, 5.0)}
    desired = {
        "a": RegionDescriptor("a", 0.0, 1.0),
        "c": RegionDescriptor("c", 4.0, 6.0),
        "d": RegionDescriptor("d", 7.0, 8.0),
    }

    diff = diff_regions(live, desired)

    assert diff == RegionDiff(added=("d",), updated=("c",), removed=("b",))
    assert diff.to_dict() == {"added": ["d"], "updated": ["c"], "removed": ["b"]}
    assert diff_regions(live, {}).removed == ("a", "b", "c")
    assert diff_regions({}, {}).is_empty


def test_regions_wait_for_ready() -> None:
    reconciler, _, engine = make_reconciler({"a": {"start": 0, "end": 1}})
    assert engine.regions == {}

    diff = reconciler.update(RegionProps(regions={"a": {"start": 0, "end": 1}, "b": {"start": 2, "end": 3}}))
    assert diff.is_empty
    assert engine.regions == {}

    engine.complete_load(10.0)

    assert list(engine.regions) == ["a", "b"]
    assert engine.regions["b"].start == 2.0


def test_reconcile_updates_adds_then_removes() -> None:
    reconciler, _, engine = make_reconciler(
        {"a": {"start": 1, "end": 2}, "b": {"start": 5, "end": 6, "color": "red"}}
    )
    engine.complete_load(10.0)
    assert engine.commands("add_region") == [("add_region", ("a",)), ("add_region", ("b",))]
    region_b = engine.regions["b"]
    assert region_b.attributes == {"color": "red"}
    engine.clear_calls()

    diff = reconciler.update(RegionProps(regions={"a": {"start": 1, "end": 3}, "c": {"start": 7, "end": 8}}))

    assert diff == RegionDiff(added=("c",), updated=("a",), removed=("b",))
    assert engine.calls == [
        ("region.update", ("a", {"start": 1.0, "end": 3.0})),
        ("add_region", ("c",)),
        ("region.remove", ("b",)),
    ]
    assert sorted(engine.regions) == ["a", "c"]
    assert engine.regions["a"].end == 3.0
    assert region_b.listener_count() == 0


def test_reconcile_is_idempotent() -> None:
    regions = {"a": {"start": 0, "end": 1}}
    reconciler, _, engine = make_reconciler(regions)
    engine.complete_load(10.0)
    engine.clear_calls()

    assert reconciler.update(RegionProps(regions=regions)).is_empty
    assert reconciler.reconcile().is_empty
    assert engine.calls == []


def test_single_region_callbacks_receive_region() -> None:
    clicks = []
    reconciler, _, engine = make_reconciler(
        {"a": {"start": 0, "end": 1}}, {"on_single_region_click": clicks.append}
    )
    engine.complete_load(10.0)

    region = engine.regions["a"]
    region.fire_event("click", "mouse-event")

    assert len(clicks) == 1
    assert clicks[0].region is region
    assert clicks[0].engine is engine
    assert clicks[0].original_args == ("mouse-event",)
    assert clicks[0].to_dict() == {"originalArgs": ["mouse-event"], "region": "a"}


def test_engine_region_events_are_forwarded() -> None:
    entered = []
    reconciler, controller, engine = make_reconciler(
        {"a": {"start": 0, "end": 1}}, {"on_region_in": entered.append}
    )
    engine.complete_load(10.0)

    controller.update(controller.props.evolve(playing=True))
    engine.advance(0.5)

    assert len(entered) == 1
    assert entered[0].original_args[0] is engine.regions["a"]


def test_externally_removed_region_is_restored() -> None:
    reconciler, _, engine = make_reconciler({"a": {"start": 0, "end": 1}})
    engine.complete_load(10.0)
    region = engine.regions["a"]
    per_region = reconciler.active_subscriptions

    region.remove()

    assert region.listener_count() == 0
    assert reconciler.active_subscriptions < per_region

    diff = reconciler.reconcile()
    assert diff.added == ("a",)
    assert engine.regions["a"] is not region
    assert reconciler.active_subscriptions == per_region


def test_new_source_reconciles_on_next_ready() -> None:
    reconciler, controller, engine = make_reconciler({"a": {"start": 0, "end": 1}})
    engine.complete_load(10.0)

    controller.update(controller.props.evolve(audio_file="b.mp3"))
    assert reconciler.update(RegionProps(regions={"z": {"start": 3, "end": 4}})).is_empty
    assert list(engine.regions) == ["a"]

    engine.complete_load(20.0)

    assert list(engine.regions) == ["z"]


def test_unmount_removes_live_regions_and_listeners() -> None:
    reconciler, _, engine = make_reconciler({"a": {"start": 0, "end": 1}, "b": {"start": 2, "end": 3}})
    engine.complete_load(10.0)
    regions = list(engine.regions.values())

    reconciler.unmount()

    assert engine.regions == {}
    assert all(region.listener_count() == 0 for region in regions)
    assert engine.listener_count("region-in") == 0
    assert reconciler.active_subscriptions == 0


def test_player_unmount_releases_everything() -> None:
    engine = HeadlessEngine()
    player = Player(
        engine,
        PlayerProps(audio_file="a.mp3"),
        RegionProps(regions={"a": {"start": 0, "end": 1}}),
        resize_signal=ResizeSignal(),
        scheduler=ManualScheduler(),
    )
    player.mount()
    engine.complete_load(10.0)
    region = engine.regions["a"]
    assert player.describe()["regions"] == ["a"]

    player.unmount()

    assert engine.listener_count() == 0
    assert region.listener_count() == 0
    assert player.describe()["subscriptions"] == 0


def test_engine_without_region_support_is_left_alone() -> None:
    engine = HeadlessEngine(region_support=False)
    player = Player(
        engine,
        PlayerProps(audio_file="a.mp3"),
        RegionProps(regions={"a": {"start": 0, "end": 1}}),
        resize_signal=ResizeSignal(),
        scheduler=ManualScheduler(),
    )
    player.mount()
    engine.complete_load(10.0)

    diff = player.update(regions={"regions": {"b": {"start": 1, "end": 2}}})

    assert diff is not None and diff.is_empty
    assert engine.regions is None
    assert player.describe()["regions"] == []
