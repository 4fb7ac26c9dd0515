"""Tests covering the FastAPI control surface."""

from __future__ import annotations

from fastapi.testclient import TestClient

from wavesync import PlayerConfig
from wavesync.api.server import create_app
from wavesync.api.state import PlayerState
from wavesync.media import ElementRegistry, MediaElement
from wavesync.runtime.scheduling import ManualScheduler


def make_client(profile: str = "compact"):
    state = PlayerState(
        PlayerConfig(profile=profile, event_history=32),
        scheduler=ManualScheduler(),
        resolver=ElementRegistry(MediaElement("deck", src="deck.ogg")),
    )
    return TestClient(create_app(state=state)), state


def test_healthz_and_profiles() -> None:
    client, _ = make_client()

    health = client.get("/healthz")
    assert health.status_code == 200
    assert health.json() == {"status": "ok", "profile": "compact"}

    profiles = client.get("/profiles").json()["profiles"]
    assert "podcast" in profiles


def test_props_drive_the_headless_engine() -> None:
    client, state = make_client()

    response = client.put("/props", json={"audioFile": "song.mp3", "pos": 0})
    assert response.status_code == 200
    body = response.json()
    assert body["mounted"] is True
    assert body["player"]["state"] == "initializing"
    assert state.engine.commands("load") == [("load", ("song.mp3", None))]
    init_options = state.engine.commands("init")[0][1][0]
    assert init_options["height"] == 48

    ready = client.post("/engine/ready", json={"duration": 100}).json()
    assert ready["player"]["isReady"] is True

    client.put("/props", json={"playing": True})
    assert state.engine.is_playing() is True

    advanced = client.post("/engine/advance", json={"seconds": 12.5}).json()
    assert advanced["player"]["position"] == 12.5
    assert advanced["player"]["lastReportedPosition"] == 12.5

    events = client.get("/events").json()["events"]
    slots = [event["slot"] for event in events]
    assert "on_ready" in slots
    assert "on_play" in slots
    assert "on_audioprocess" not in slots
    position = [event for event in events if event["slot"] == "on_pos_change"][-1]
    assert position["originalArgs"] == [12.5]

    assert len(client.get("/events", params={"limit": 1}).json()["events"]) == 1


def test_regions_endpoint_reconciles() -> None:
    client, state = make_client()
    client.put("/props", json={"audioFile": "song.mp3"})

    pending = client.put("/regions", json={"regions": {"a": {"start": 1, "end": 2}}}).json()
    assert pending["regionDiff"] == {"added": [], "updated": [], "removed": []}

    client.post("/engine/ready", json={"duration": 10})
    assert client.get("/state").json()["player"]["regions"] == ["a"]

    body = client.put(
        "/regions", json={"regions": {"a": {"start": 1, "end": 3}, "b": {"start": 4, "end": 5}}}
    ).json()
    assert body["regionDiff"] == {"added": ["b"], "updated": ["a"], "removed": []}
    assert sorted(state.engine.regions) == ["a", "b"]

    body = client.put("/props", json={"regions": {"b": {"start": 4, "end": 5}}}).json()
    assert body["regionDiff"]["removed"] == ["a"]
    removed = [event for event in state.recent_events() if event["slot"] == "on_region_removed"]
    assert "region" not in removed[-1]
    assert removed[-1]["originalArgs"][0]["id"] == "a"


def test_media_element_props() -> None:
    client, state = make_client()

    response = client.put("/props", json={"mediaElt": "#deck"})

    assert response.status_code == 200
    loaded = state.engine.commands("load_media_element")
    assert loaded[0][1][0].element_id == "deck"


def test_player_errors_map_to_422() -> None:
    client, _ = make_client()
    client.put("/props", json={"audioFile": "song.mp3"})

    response = client.put("/props", json={"mediaElt": "#missing"})

    assert response.status_code == 422
    assert response.json()["error"] == "MediaElementNotFoundError"


def test_invalid_payloads_are_rejected() -> None:
    client, _ = make_client()

    assert client.put("/props", json={"volume": -1}).status_code == 422
    assert client.put("/props", json={"colour": "red"}).status_code == 422
    assert client.put("/regions", json={"regions": {"a": {"start": 5, "end": 1}}}).status_code == 422
    assert client.post("/engine/advance", json={"seconds": -3}).status_code == 422


def test_resize_endpoint_queues_redraw() -> None:
    client, state = make_client()
    client.put("/props", json={"audioFile": "song.mp3"})
    client.post("/engine/ready", json={"duration": 10})
    state.engine.clear_calls()

    body = client.post("/resize").json()
    assert body == {"status": "queued", "responsive": True}

    state.scheduler.advance(0.1)
    assert state.engine.commands("draw_buffer") == [("draw_buffer", ())]


def test_websocket_sends_state_and_answers_ping() -> None:
    client, _ = make_client()

    with client.websocket_connect("/ws") as websocket:
        greeting = websocket.receive_json()
        assert greeting["type"] == "state"
        assert greeting["state"]["profile"] == "compact"

        websocket.send_json({"type": "ping"})
        assert websocket.receive_json() == {"type": "pong"}
