from __future__ import annotations

import asyncio
import signal
import threading
import time

import pytest
import uvicorn
from fastapi.testclient import TestClient

from main import ChatServer, app
from models import Empty, Shutdown
from schemas import Message
from utilities import Settings


@pytest.fixture()
def client() -> TestClient:
    with TestClient(app) as test_client:
        yield test_client


def _form(room: str = "lobby", username: str = "alice", message: str = "hi") -> dict:
    return {"room": room, "username": username, "message": message}


def test_publish_without_subscribers_succeeds(client: TestClient) -> None:
    response = client.post("/message", data=_form())
    assert response.status_code == 200
    assert response.content == b""


def test_publish_reaches_subscriber_verbatim(client: TestClient) -> None:
    sub = app.state.hub.subscribe()
    response = client.post("/message", data=_form())
    assert response.status_code == 200
    assert sub.try_recv() == Message(room="lobby", username="alice", message="hi")
    sub.close()


def test_publish_accepts_bounds(client: TestClient) -> None:
    sub = app.state.hub.subscribe()
    response = client.post("/message", data=_form(room="r" * 30, username="u" * 20))
    assert response.status_code == 200
    assert sub.try_recv().room == "r" * 30
    sub.close()


@pytest.mark.parametrize(
    "form",
    [
        _form(room="r" * 31),
        _form(username="u" * 21),
        {"room": "lobby", "username": "alice"},
    ],
)
def test_publish_rejects_invalid_form(client: TestClient, form: dict) -> None:
    sub = app.state.hub.subscribe()
    response = client.post("/message", data=form)
    assert response.status_code == 422
    with pytest.raises(Empty):
        sub.try_recv()
    assert app.state.hub.messages_published == 0
    sub.close()


def test_publish_after_hub_closed_is_unavailable(client: TestClient) -> None:
    app.state.hub.close()
    response = client.post("/message", data=_form())
    assert response.status_code == 503


def test_events_stream_ends_on_shutdown(client: TestClient) -> None:
    app.state.shutdown.fire()
    response = client.get("/events")
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/event-stream")
    assert response.headers["cache-control"] == "no-cache"
    assert response.text == ""
    assert app.state.hub.subscriber_count == 0


def test_health_reports_hub_state(client: TestClient) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    payload = response.json()
    assert payload["capacity"] == 8
    assert payload["subscribers"] == 0
    assert payload["published"] == 0
    assert payload["shutting_down"] is False


def test_static_chat_page_is_served(client: TestClient) -> None:
    response = client.get("/")
    assert response.status_code == 200
    assert "EventSource" in response.text


def test_health_reports_length_bounds(client: TestClient) -> None:
    payload = client.get("/health").json()
    assert payload["room_max_length"] == 30
    assert payload["username_max_length"] == 20
    assert "room_max_length" not in Settings.model_fields
    assert "username_max_length" not in Settings.model_fields


def test_health_counts_publishes_without_subscribers(client: TestClient) -> None:
    client.post("/message", data=_form())
    client.post("/message", data=_form())
    assert client.get("/health").json()["published"] == 2


def test_events_stream_delivers_published_message(client: TestClient) -> None:
    hub = app.state.hub

    def _publish_then_close() -> None:
        deadline = time.monotonic() + 5
        while hub.subscriber_count == 0 and time.monotonic() < deadline:
            time.sleep(0.01)
        assert client.post("/message", data=_form()).status_code == 200
        # runs on the app's loop; buffered messages drain before the stream ends
        client.portal.call(hub.close)

    publisher = threading.Thread(target=_publish_then_close)
    publisher.start()
    with client.stream("GET", "/events") as response:
        body = "".join(response.iter_text())
    publisher.join(5)

    assert response.status_code == 200
    assert body == 'data:{"room":"lobby","username":"alice","message":"hi"}\n\n'
    assert hub.subscriber_count == 0


def test_server_exit_fires_shutdown() -> None:
    async def _test():
        shutdown = Shutdown()
        shutdown.bind()
        app.state.shutdown = shutdown
        server = ChatServer(uvicorn.Config(app), app)
        server.handle_exit(signal.SIGINT, None)
        assert shutdown.fired
        await asyncio.wait_for(shutdown.wait(), 1)
        assert server.should_exit
    asyncio.run(_test())
