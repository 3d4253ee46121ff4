import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from allo import db as db_module
from allo.modules.auth.models import User
from allo.modules.auth.router import router as auth_router
from allo.modules.auth.service import HashPassword
from allo.modules.notify.channels.base import ChannelBackend
from allo.modules.notify.dispatcher import ConfigureDispatcher
from allo.modules.notify.events import LogoutEvent


class _RecordingBackend(ChannelBackend):
    def __init__(self):
        self.Published = []

    def Publish(self, channel, event):
        self.Published.append((channel, event))

    async def Subscribe(self, channel):
        raise NotImplementedError


@pytest.fixture
def backend():
    recording = _RecordingBackend()
    ConfigureDispatcher(recording)
    return recording


@pytest.fixture
def client(monkeypatch, session_factory, backend):
    monkeypatch.setattr(db_module, "SessionLocal", session_factory)
    app = FastAPI()
    app.include_router(auth_router)
    return TestClient(app)


@pytest.fixture
def credentials(db, household):
    record = db.query(User).filter(User.Id == household.ParentA).one()
    record.PasswordHash = HashPassword("correct horse")
    db.commit()
    return record.Email, "correct horse"


def _login(client, email, password):
    return client.post("/api/session/login", json={"Email": email, "Password": password})


def test_login_sets_the_session_cookie(client, credentials, household):
    email, password = credentials

    response = _login(client, email.upper(), password)

    assert response.status_code == 200
    body = response.json()
    assert body["UserId"] == household.ParentA
    assert body["FamilyId"] == household.FamilyId
    assert "allo_session" in response.cookies
    assert client.get("/api/session").json()["UserId"] == household.ParentA


def test_login_rejects_a_wrong_password(client, credentials):
    email, _ = credentials

    response = _login(client, email, "battery staple")

    assert response.status_code == 401


def test_logout_ends_the_session_and_closes_live_sockets(client, credentials, household, backend):
    email, password = credentials
    token = _login(client, email, password).json()["AccessToken"]
    headers = {"Authorization": f"Bearer {token}"}

    response = client.post("/api/session/logout", headers=headers)

    assert response.status_code == 200
    assert backend.Published == [(household.ParentA, LogoutEvent())]
    client.cookies.clear()
    assert client.get("/api/session", headers=headers).status_code == 401


def test_change_password_forces_logout(client, credentials, household, backend):
    email, password = credentials
    token = _login(client, email, password).json()["AccessToken"]
    headers = {"Authorization": f"Bearer {token}"}

    response = client.post(
        "/api/session/password",
        headers=headers,
        json={"CurrentPassword": password, "NewPassword": "a much longer secret"},
    )

    assert response.status_code == 200
    assert backend.Published == [(household.ParentA, LogoutEvent())]
    client.cookies.clear()
    assert _login(client, email, password).status_code == 401
    assert _login(client, email, "a much longer secret").status_code == 200


def test_change_password_requires_the_current_password(client, credentials, backend):
    email, password = credentials
    token = _login(client, email, password).json()["AccessToken"]

    response = client.post(
        "/api/session/password",
        headers={"Authorization": f"Bearer {token}"},
        json={"CurrentPassword": "guess", "NewPassword": "a much longer secret"},
    )

    assert response.status_code == 401
    assert backend.Published == []
