"""Tests for EventWatcher against a mocked sensor."""

from __future__ import annotations

import json

import httpx
import pytest

from honeytrap.observer.watcher import EventWatcher, iter_sse, parse_events


async def _lines(*lines: str):
    for line in lines:
        yield line


def _sse_body(*frames: tuple[str, object]) -> bytes:
    chunks = [": ping\n\n"]
    for event_type, data in frames:
        chunks.append(f"event: {event_type}\ndata: {json.dumps(data)}\n\n")
    return "".join(chunks).encode()


def _watcher(handler, announced: list | None = None) -> EventWatcher:
    client = httpx.AsyncClient(base_url="http://sensor.test", transport=httpx.MockTransport(handler))
    sink = announced if announced is not None else []
    return EventWatcher("http://sensor.test", client=client, on_new=sink.append)


async def test_iter_sse_parses_frames() -> None:
    frames = [
        frame
        async for frame in iter_sse(
            _lines(
                ": keep-alive",
                "",
                "event: status",
                'data: {"message": "Connected"}',
                "",
                "event: attack",
                "id: abc",
                "data: {\"a\":",
                "data: 1}",
                "",
                "data: trailing",
            )
        )
    ]
    assert frames == [
        ("status", '{"message": "Connected"}'),
        ("attack", '{"a":\n1}'),
        ("message", "trailing"),
    ]


def test_parse_events_skips_malformed(make_event) -> None:
    good = make_event(1).to_wire()
    events = parse_events([good, {"id": "broken"}, "junk"])
    assert [e.id for e in events] == [good["id"]]
    assert parse_events(good)[0].id == good["id"]
    assert parse_events(None) == []


def test_handle_frame_routes_by_type(make_event) -> None:
    announced: list = []
    watcher = _watcher(lambda request: httpx.Response(500), announced)
    boot, pushed = make_event(1), make_event(2)

    assert watcher.handle_frame("status", json.dumps({"message": "Connected", "serverTime": "now"})) == []
    assert watcher.handle_frame("latest_attacks", json.dumps([boot.to_wire()])) == []
    assert not watcher.reconciler.needs_bootstrap

    fresh = watcher.handle_frame("attack", json.dumps(pushed.to_wire()))
    assert [e.id for e in fresh] == [pushed.id]
    assert [e.id for e in announced] == [pushed.id]

    # Replays and noise announce nothing.
    assert watcher.handle_frame("attack", json.dumps(pushed.to_wire())) == []
    assert watcher.handle_frame("attack", "{not json") == []
    assert watcher.handle_frame("heartbeat", "{}") == []
    assert len(watcher.reconciler) == 2


async def test_refresh_snapshot_marks_seen(make_event) -> None:
    events = [make_event(2), make_event(1)]
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json={"data": [e.to_wire() for e in events]})

    announced: list = []
    watcher = _watcher(handler, announced)
    await watcher.refresh_snapshot()

    assert requests[0].url.path == "/api/attacks"
    assert requests[0].url.params["limit"] == "50"
    assert [e.id for e in watcher.reconciler.events] == [e.id for e in events]
    assert announced == []


async def test_poll_latest_announces_once(make_event) -> None:
    latest = make_event(3)
    watcher = _watcher(lambda request: httpx.Response(200, json={"data": latest.to_wire()}))

    assert [e.id for e in await watcher.poll_latest()] == [latest.id]
    assert await watcher.poll_latest() == []


async def test_poll_latest_handles_empty_sensor() -> None:
    watcher = _watcher(lambda request: httpx.Response(404, json={"error": "No attacks recorded yet"}))
    assert await watcher.poll_latest() == []


async def test_poll_latest_raises_on_server_error() -> None:
    watcher = _watcher(lambda request: httpx.Response(500, json={"error": "Internal server error"}))
    with pytest.raises(httpx.HTTPStatusError):
        await watcher.poll_latest()


async def test_consume_stream_merges_all_paths(make_event) -> None:
    boot = [make_event(2), make_event(1)]
    pushed = make_event(3)
    body = _sse_body(
        ("status", {"message": "Connected", "serverTime": "2026-01-01T12:00:00+00:00"}),
        ("latest_attacks", [e.to_wire() for e in boot]),
        ("attack", pushed.to_wire()),
        ("attack", boot[0].to_wire()),
    )

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/api/stream"
        assert request.url.params["bootstrap"] == "true"
        return httpx.Response(200, content=body, headers={"content-type": "text/event-stream"})

    announced: list = []
    watcher = _watcher(handler, announced)
    watcher.reconciler.mark_disconnected()

    assert await watcher.consume_stream() == 4
    assert [e.id for e in announced] == [pushed.id]
    assert [e.id for e in watcher.reconciler.events] == [pushed.id, boot[0].id, boot[1].id]
    assert not watcher.reconciler.needs_bootstrap


async def test_push_after_poll_is_not_announced_twice(make_event) -> None:
    event = make_event(7)

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/api/attacks/latest":
            return httpx.Response(200, json={"data": event.to_wire()})
        return httpx.Response(200, content=_sse_body(("attack", event.to_wire())))

    announced: list = []
    watcher = _watcher(handler, announced)
    await watcher.poll_latest()
    await watcher.consume_stream()

    assert [e.id for e in announced] == [event.id]
