"""Tests for live delivery over WebSocket and Server-Sent Events."""

from __future__ import annotations

import json

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from honeytrap.sensor.app import app
from honeytrap.sensor.hub import BroadcastHub
from honeytrap.sensor.routers.live import sse_events
from honeytrap.sensor.settings import _get_settings_cached
from honeytrap.sensor.store.memory import BoundedEventStore

# -- WebSocket ---------------------------------------------------------------


def test_handshake_is_sent_first(client: TestClient) -> None:
    with client.websocket_connect("/api/live") as ws:
        message = ws.receive_json()
    assert message["type"] == "status"
    assert message["data"]["message"] == "Connected"
    assert "serverTime" in message["data"]


def test_request_latest_attacks(client: TestClient) -> None:
    ids = [client.get("/honeypot/router").json()["data"]["attackId"] for _ in range(12)]

    with client.websocket_connect("/api/live") as ws:
        ws.receive_json()
        ws.send_json({"type": "request_latest_attacks"})
        message = ws.receive_json()

    assert message["type"] == "latest_attacks"
    assert [a["id"] for a in message["data"]] == list(reversed(ids))[:10]


def test_request_latest_attacks_on_empty_store(client: TestClient) -> None:
    with client.websocket_connect("/api/live") as ws:
        ws.receive_json()
        ws.send_json({"type": "request_latest_attacks"})
        assert ws.receive_json() == {"type": "latest_attacks", "data": []}


def test_new_hits_are_pushed(client: TestClient) -> None:
    with client.websocket_connect("/api/live") as ws:
        ws.receive_json()
        attack_id = client.post("/honeypot/camera", json={"x": 1}).json()["data"]["attackId"]
        message = ws.receive_json()

    assert message["type"] == "attack"
    assert message["data"]["id"] == attack_id
    assert message["data"]["endpoint"] == "/honeypot/camera"
    assert message["data"]["payload"] == '{"x":1}'


def test_push_reaches_every_connection(client: TestClient) -> None:
    with client.websocket_connect("/api/live") as first, client.websocket_connect("/api/live") as second:
        first.receive_json()
        second.receive_json()
        attack_id = client.get("/honeypot/lock").json()["data"]["attackId"]
        assert first.receive_json()["data"]["id"] == attack_id
        assert second.receive_json()["data"]["id"] == attack_id


def test_malformed_messages_are_ignored(client: TestClient) -> None:
    with client.websocket_connect("/api/live") as ws:
        ws.receive_json()
        ws.send_text("not json")
        ws.send_json({"type": "launch_missiles"})
        ws.send_json({"type": "request_latest_attacks"})
        assert ws.receive_json()["type"] == "latest_attacks"


def test_disconnect_unsubscribes(client: TestClient) -> None:
    hub = client.app.state.hub
    with client.websocket_connect("/api/live") as ws:
        ws.receive_json()
        assert hub.subscriber_count == 1
    client.get("/api/health")
    assert hub.subscriber_count == 0


def test_websocket_disabled(sensor_env: None, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("HONEY_WEBSOCKET_ENABLED", "false")
    _get_settings_cached.cache_clear()

    with TestClient(app) as client:
        with pytest.raises(WebSocketDisconnect) as exc_info, client.websocket_connect("/api/live"):
            pass
        assert exc_info.value.code == 1008


def test_websocket_refused_while_shutting_down(client: TestClient) -> None:
    client.app.state.hub.close()
    with pytest.raises(WebSocketDisconnect) as exc_info, client.websocket_connect("/api/live"):
        pass
    assert exc_info.value.code == 1001


def test_stream_unavailable_while_shutting_down(client: TestClient) -> None:
    client.app.state.hub.close()
    response = client.get("/api/stream")
    assert response.status_code == 503


# -- Server-Sent Events ------------------------------------------------------


@pytest.fixture
def hub() -> BroadcastHub:
    return BroadcastHub(BoundedEventStore(), bootstrap_size=10)


async def test_sse_handshake_bootstrap_and_push(hub: BroadcastHub, make_event) -> None:
    stored = make_event(1)
    hub._store.append(stored)
    subscriber = hub.subscribe()
    frames = sse_events(hub, subscriber, bootstrap=True)

    status = await anext(frames)
    assert status["event"] == "status"
    assert json.loads(status["data"])["message"] == "Connected"

    batch = await anext(frames)
    assert batch["event"] == "latest_attacks"
    assert [a["id"] for a in json.loads(batch["data"])] == [stored.id]

    pushed = make_event(2)
    hub.publish(pushed)
    frame = await anext(frames)
    assert frame["event"] == "attack"
    assert frame["id"] == pushed.id
    assert json.loads(frame["data"])["sourceIP"] == pushed.origin_address

    hub.close()
    with pytest.raises(StopAsyncIteration):
        await anext(frames)


async def test_sse_without_bootstrap(hub: BroadcastHub, make_event) -> None:
    hub._store.append(make_event(1))
    subscriber = hub.subscribe()
    frames = sse_events(hub, subscriber, bootstrap=False)

    assert (await anext(frames))["event"] == "status"
    hub.publish(make_event(2))
    assert (await anext(frames))["event"] == "attack"
    await frames.aclose()


async def test_sse_client_gone_unsubscribes(hub: BroadcastHub) -> None:
    subscriber = hub.subscribe()
    frames = sse_events(hub, subscriber, bootstrap=False)
    await anext(frames)
    assert hub.subscriber_count == 1

    await frames.aclose()

    assert hub.subscriber_count == 0
    assert subscriber.closed
