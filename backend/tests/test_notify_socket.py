import json

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from allo import db as db_module
from allo.modules.auth.service import CreateAccessToken
from allo.modules.notify.channels.base import ChannelSerializationError
from allo.modules.notify.channels.fixture import FixtureChannelBackend
from allo.modules.notify.channels.local import LocalChannelBackend
from allo.modules.notify.dispatcher import ConfigureDispatcher
from allo.modules.notify.events import LogoutEvent, PingEvent
from allo.modules.notify.router import router as notify_router


@pytest.fixture
def client(monkeypatch, session_factory):
    monkeypatch.setattr(db_module, "SessionLocal", session_factory)
    app = FastAPI()
    app.include_router(notify_router)
    return TestClient(app)


def _auth_headers(user_id: str) -> dict:
    token, _ = CreateAccessToken(user_id, 0)
    return {"Authorization": f"Bearer {token}"}


def test_logout_closes_the_socket_and_drops_buffered_events(client, household):
    backend = FixtureChannelBackend([PingEvent(), LogoutEvent(), PingEvent()])
    ConfigureDispatcher(backend)

    with client.websocket_connect("/api/notify", headers=_auth_headers(household.ChildA)) as websocket:
        assert json.loads(websocket.receive_text()) == {"type": "Ping"}
        with pytest.raises(WebSocketDisconnect):
            websocket.receive_text()

    assert backend.Subscribed == [household.ChildA]


def test_stream_errors_are_skipped(client, household):
    backend = FixtureChannelBackend([ChannelSerializationError("garbled"), PingEvent(), LogoutEvent()])
    ConfigureDispatcher(backend)

    with client.websocket_connect("/api/notify", headers=_auth_headers(household.ParentA)) as websocket:
        assert json.loads(websocket.receive_text()) == {"type": "Ping"}
        with pytest.raises(WebSocketDisconnect):
            websocket.receive_text()


def test_socket_closes_when_the_stream_ends(client, household):
    ConfigureDispatcher(FixtureChannelBackend([PingEvent()]))

    with client.websocket_connect("/api/notify", headers=_auth_headers(household.ParentA)) as websocket:
        assert json.loads(websocket.receive_text()) == {"type": "Ping"}
        with pytest.raises(WebSocketDisconnect):
            websocket.receive_text()


def test_session_cookie_authenticates_the_socket(client, household):
    ConfigureDispatcher(FixtureChannelBackend([PingEvent(), LogoutEvent()]))
    token, _ = CreateAccessToken(household.ChildB, 0)
    client.cookies.set("allo_session", token)

    with client.websocket_connect("/api/notify") as websocket:
        assert json.loads(websocket.receive_text()) == {"type": "Ping"}


def test_anonymous_socket_is_rejected(client, household):
    backend = FixtureChannelBackend([PingEvent()])
    ConfigureDispatcher(backend)

    with pytest.raises(WebSocketDisconnect) as exc:
        with client.websocket_connect("/api/notify"):
            pass

    assert exc.value.code == 1008
    assert backend.Subscribed == []


def test_stale_session_is_rejected(client, household):
    ConfigureDispatcher(FixtureChannelBackend([PingEvent()]))
    token, _ = CreateAccessToken(household.ChildA, 5)

    with pytest.raises(WebSocketDisconnect):
        with client.websocket_connect("/api/notify", headers={"Authorization": f"Bearer {token}"}):
            pass


def test_live_events_reach_the_socket_and_disconnect_releases_the_subscription(client, household):
    backend = LocalChannelBackend()
    ConfigureDispatcher(backend)

    with client.websocket_connect("/api/notify", headers=_auth_headers(household.ChildA)) as websocket:
        assert backend.SubscriberCount(household.ChildA) == 1
        websocket.send_text("hello?")
        backend.Publish(household.ChildA, PingEvent())
        assert json.loads(websocket.receive_text()) == {"type": "Ping"}

    assert backend.SubscriberCount(household.ChildA) == 0
