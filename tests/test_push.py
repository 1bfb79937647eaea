import json
import logging
from datetime import datetime

import anyio
import httpx
import pytest
from starlette.testclient import TestClient

from starlette_relay import push
from starlette_relay.client import parse_data_line, run_push_client
from starlette_relay.sse import AppStatus

_log = logging.getLogger(__name__)


def _data_lines(body: str):
    return [line for line in body.split("\n") if line.startswith("data:")]


def test_make_notification_has_iso_timestamp():
    payload = push.make_notification("hi")
    assert payload["msg"] == "hi"
    assert datetime.fromisoformat(payload["time"]).tzinfo is not None


@pytest.mark.anyio
async def test_notification_stream_emits_on_interval():
    events = []
    with anyio.fail_after(2):
        async for event in push.notification_stream(0.05, "tick", limit=3):
            events.append(event.encode())

    assert len(events) == 3
    for raw in events:
        assert raw.startswith(b"data: {")
        assert raw.endswith(b"\n\n")
        payload = json.loads(raw[len(b"data: ") :])
        assert payload["msg"] == "tick"
        assert "time" in payload


def test_events_endpoint(reset_appstatus_event):
    app = push.create_app(interval=0.05, message="Hello from fetch SSE", limit=3)
    client = TestClient(app)
    response = client.get("/events")

    assert response.status_code == 200
    assert response.headers["content-type"] == "text/event-stream; charset=utf-8"
    assert response.headers["cache-control"] == "no-cache"
    assert response.headers["connection"] == "keep-alive"

    lines = _data_lines(response.text)
    assert len(lines) == 3
    for line in lines:
        assert parse_data_line(line)["msg"] == "Hello from fetch SSE"
    # each event is terminated by a blank line
    assert response.text.count("\n\n") == 3


def test_events_stop_on_server_exit(reset_appstatus_event):
    AppStatus.should_exit = True
    app = push.create_app(interval=0.05)
    response = TestClient(app).get("/events")
    assert response.status_code == 200
    assert _data_lines(response.text) == []


@pytest.mark.anyio
async def test_push_client_prints_parsed_payloads(reset_appstatus_event):
    app = push.create_app(interval=0.01, message="ping", limit=2)
    printed = []
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app), base_url="http://testserver"
    ) as client:
        await run_push_client("/events", out=printed.append, client=client)

    parsed = [p for p in printed if p.startswith("Parsed Data:")]
    assert len(parsed) == 2
    assert all("'msg': 'ping'" in p for p in parsed)
    assert any(p.startswith("All headers:") for p in printed)
