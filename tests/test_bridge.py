"""Tests covering event bridging and subscription bookkeeping."""

from __future__ import annotations

import logging

from wavesync.bridge import (
    EventEmitter,
    EventPayload,
    SubscriptionSet,
    bridge,
    bridge_once,
    listen,
    listen_once,
)


def test_bridge_wraps_original_arguments() -> None:
    emitter = EventEmitter()
    engine = object()
    received = []

    bridge(emitter, "zoom", received.append, engine=engine)
    emitter.fire_event("zoom", 40, "extra")

    assert len(received) == 1
    payload = received[0]
    assert isinstance(payload, EventPayload)
    assert payload.original_args == (40, "extra")
    assert payload.engine is engine
    assert payload.region is None
    assert payload.to_dict() == {"originalArgs": [40, "extra"]}


def test_dispose_detaches_exactly_once() -> None:
    emitter = EventEmitter()
    subscription = bridge(emitter, "play", lambda payload: None)
    assert emitter.listener_count("play") == 1

    subscription.dispose()
    subscription.dispose()

    assert subscription.disposed is True
    assert emitter.listener_count() == 0


def test_subscription_set_forgets_individually_disposed_entries() -> None:
    emitter = EventEmitter()
    subscriptions = SubscriptionSet()
    first = subscriptions.add(listen(emitter, "a", lambda: None))
    subscriptions.add(listen(emitter, "b", lambda: None))
    subscriptions.add(listen(emitter, "c", lambda: None))

    first.dispose()
    assert len(subscriptions) == 2

    assert subscriptions.dispose_all() == 2
    assert not subscriptions
    assert emitter.listener_count() == 0


def test_lookup_resolves_callback_at_delivery_time() -> None:
    emitter = EventEmitter()
    slots = {}
    seen = []

    bridge(emitter, "finish", lambda: slots.get("on_finish"), lookup=True)
    emitter.fire_event("finish")
    assert seen == []

    slots["on_finish"] = lambda payload: seen.append("first")
    emitter.fire_event("finish")
    slots["on_finish"] = lambda payload: seen.append("second")
    emitter.fire_event("finish")

    assert seen == ["first", "second"]


def test_listen_once_fires_a_single_time() -> None:
    emitter = EventEmitter()
    calls = []

    subscription = listen_once(emitter, "ready", lambda *args: calls.append(args))
    emitter.fire_event("ready", 1)
    emitter.fire_event("ready", 2)

    assert calls == [(1,)]
    assert subscription.disposed is True
    assert emitter.listener_count("ready") == 0


def test_bridge_once_delivers_payload_once() -> None:
    emitter = EventEmitter()
    received = []

    bridge_once(emitter, "seek", received.append, engine="engine")
    emitter.fire_event("seek", 0.5)
    emitter.fire_event("seek", 0.75)

    assert [payload.original_args for payload in received] == [(0.5,)]
    assert received[0].engine == "engine"


def test_failing_callback_is_logged_and_does_not_stop_others(caplog) -> None:
    emitter = EventEmitter()
    seen = []

    def explode(payload: EventPayload) -> None:
        raise ValueError("boom")

    bridge(emitter, "error", explode)
    bridge(emitter, "error", seen.append)

    with caplog.at_level(logging.ERROR, logger="wavesync.bridge"):
        emitter.fire_event("error", "decode failed")

    assert len(seen) == 1
    assert "Callback for event 'error' failed." in caplog.text


def test_handler_removing_itself_does_not_skip_the_next() -> None:
    emitter = EventEmitter()
    order = []
    subscription = None

    def first() -> None:
        order.append("first")
        subscription.dispose()

    subscription = listen(emitter, "tick", first)
    listen(emitter, "tick", lambda: order.append("second"))

    emitter.fire_event("tick")
    emitter.fire_event("tick")

    assert order == ["first", "second", "second"]
