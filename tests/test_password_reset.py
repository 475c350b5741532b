from datetime import datetime, timedelta

from app.bitsa.constants import RESET_REQUESTED_MESSAGE
from app.bitsa.db import session_scope
from app.bitsa.models import AuthSession, User
from conftest import MEMBER_EMAIL, PASSWORD, login


def _request_token(client, email=MEMBER_EMAIL) -> str:
    r = client.post("/api/auth/forgot-password", json={"email": email})
    assert r.status_code == 200
    return r.json["token"]


def test_forgot_password_same_answer_for_unknown_email(client):
    known = client.post("/api/auth/forgot-password", json={"email": MEMBER_EMAIL})
    unknown = client.post("/api/auth/forgot-password", json={"email": "ghost@example.com"})
    assert known.status_code == unknown.status_code == 200
    assert known.json["message"] == unknown.json["message"] == RESET_REQUESTED_MESSAGE
    assert "token" not in unknown.json


def test_forgot_password_rejects_malformed_email(client):
    r = client.post("/api/auth/forgot-password", json={"email": "nope"})
    assert r.status_code == 400


def test_token_hidden_when_exposure_disabled(app, client):
    app.config["EXPOSE_RESET_TOKEN"] = False
    r = client.post("/api/auth/forgot-password", json={"email": MEMBER_EMAIL})
    assert r.status_code == 200
    assert "token" not in r.json
    with session_scope(app) as s:
        u = s.query(User).filter(User.email == MEMBER_EMAIL).one()
        assert u.reset_token and len(u.reset_token) == 64
        assert u.reset_token_expiry > datetime.utcnow() + timedelta(minutes=59)


def test_reset_password_flow(client):
    token = _request_token(client)
    assert client.get(f"/api/auth/reset-password/{token}").json == {"valid": True}

    r = client.post("/api/auth/reset-password", json={"token": token, "password": "brand-new"})
    assert r.status_code == 200

    assert login(client).status_code == 401
    assert login(client, password="brand-new").status_code == 200


def test_reset_token_is_single_use(client):
    token = _request_token(client)
    assert client.post("/api/auth/reset-password", json={"token": token, "password": "brand-new"}).status_code == 200

    again = client.post("/api/auth/reset-password", json={"token": token, "password": "other-pass"})
    assert again.status_code == 400
    assert client.get(f"/api/auth/reset-password/{token}").status_code == 400
    assert login(client, password="brand-new").status_code == 200


def test_new_request_replaces_previous_token(client):
    first = _request_token(client)
    second = _request_token(client)
    assert first != second
    assert client.post("/api/auth/reset-password", json={"token": first, "password": "brand-new"}).status_code == 400
    assert client.post("/api/auth/reset-password", json={"token": second, "password": "brand-new"}).status_code == 200


def test_expired_token_rejected(app, client):
    token = _request_token(client)
    with session_scope(app) as s:
        u = s.query(User).filter(User.email == MEMBER_EMAIL).one()
        u.reset_token_expiry = datetime.utcnow() - timedelta(seconds=1)

    r = client.post("/api/auth/reset-password", json={"token": token, "password": "brand-new"})
    assert r.status_code == 400
    assert login(client).status_code == 200


def test_unknown_token_rejected(client):
    r = client.post("/api/auth/reset-password", json={"token": "f" * 64, "password": "brand-new"})
    assert r.status_code == 400
    assert client.get("/api/auth/reset-password/" + "f" * 64).status_code == 400


def test_reset_password_enforces_minimum_length(client):
    token = _request_token(client)
    r = client.post("/api/auth/reset-password", json={"token": token, "password": "abc"})
    assert r.status_code == 400
    # Token is still usable after a rejected body.
    assert client.get(f"/api/auth/reset-password/{token}").status_code == 200


def test_reset_revokes_existing_sessions(app, client):
    login(client, password=PASSWORD)
    assert client.get("/api/auth/user").status_code == 200

    token = _request_token(client)
    assert client.post("/api/auth/reset-password", json={"token": token, "password": "brand-new"}).status_code == 200

    assert client.get("/api/auth/user").status_code == 401
    with session_scope(app) as s:
        assert s.query(AuthSession).count() == 0
