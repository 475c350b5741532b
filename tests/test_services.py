import base64
from datetime import datetime, timedelta

import pytest

from app.bitsa.db import session_scope
from app.bitsa.errors import AlreadyRegistered, InvalidFormat, InvalidOrExpiredToken, NotFound, PayloadTooLarge
from app.bitsa.models import AuthSession, User
from app.bitsa.modules.accounts.service import (
    purge_expired_reset_tokens,
    request_password_reset,
    reset_password,
    verify_reset_token,
)
from app.bitsa.modules.events.models import Event
from app.bitsa.modules.events.service import (
    attendee_count,
    is_registered,
    register_for_event,
    unregister_from_event,
)
from app.bitsa.sessions import issue_session, load_session, purge_expired_sessions
from app.bitsa.utils import slugify, validate_image_data
from conftest import make_user


def _event(app) -> str:
    with session_scope(app) as s:
        e = Event(title="T", description="D", date=datetime(2026, 5, 1), time="10:00", location="L", attendee_count="0")
        s.add(e)
        s.flush()
        return e.id


def test_ledger_register_twice_keeps_one_row(app):
    uid = make_user(app, "ledger@example.com")
    eid = _event(app)

    with app.test_request_context(), session_scope(app) as s:
        assert register_for_event(s, eid, s.get(User, uid)) == 1

    with app.test_request_context(), session_scope(app) as s:
        with pytest.raises(AlreadyRegistered):
            register_for_event(s, eid, s.get(User, uid))

    with session_scope(app) as s:
        assert attendee_count(s, eid) == 1
        assert is_registered(s, eid, uid)
        assert s.get(Event, eid).attendee_count == "1"


def test_ledger_unregister_idempotent(app):
    uid = make_user(app, "ledger@example.com")
    eid = _event(app)

    with app.test_request_context(), session_scope(app) as s:
        register_for_event(s, eid, s.get(User, uid))
    for _ in range(2):
        with app.test_request_context(), session_scope(app) as s:
            assert unregister_from_event(s, eid, s.get(User, uid)) == 0

    with session_scope(app) as s:
        assert not is_registered(s, eid, uid)
        assert s.get(Event, eid).attendee_count == "0"


def test_ledger_unknown_event(app):
    uid = make_user(app, "ledger@example.com")
    with app.test_request_context(), session_scope(app) as s:
        with pytest.raises(NotFound):
            register_for_event(s, "missing", s.get(User, uid))


def test_reset_token_expiry_boundary(app):
    make_user(app, "reset@example.com")
    issued = datetime(2026, 3, 1, 12, 0, 0)

    with app.app_context(), session_scope(app) as s:
        token = request_password_reset(s, "reset@example.com", now=issued)
    assert token and len(token) == 64

    with app.app_context(), session_scope(app) as s:
        assert verify_reset_token(s, token, now=issued + timedelta(minutes=60)).email == "reset@example.com"
        with pytest.raises(InvalidOrExpiredToken):
            verify_reset_token(s, token, now=issued + timedelta(minutes=60, seconds=1))


def test_request_reset_for_unknown_email_returns_none(app):
    with app.app_context(), session_scope(app) as s:
        assert request_password_reset(s, "ghost@example.com") is None


def test_reset_password_clears_token_and_sessions(app):
    uid = make_user(app, "reset@example.com")
    with app.app_context(), session_scope(app) as s:
        user = s.get(User, uid)
        issue_session(s, user, ttl=timedelta(hours=1))
        token = request_password_reset(s, user.email)

    with app.app_context(), session_scope(app) as s:
        reset_password(s, token, "new-password")

    with session_scope(app) as s:
        user = s.get(User, uid)
        assert user.reset_token is None
        assert user.reset_token_expiry is None
        assert s.query(AuthSession).filter(AuthSession.user_id == uid).count() == 0


def test_purge_expired_reset_tokens(app):
    make_user(app, "reset@example.com")
    with app.app_context(), session_scope(app) as s:
        request_password_reset(s, "reset@example.com", now=datetime.utcnow() - timedelta(hours=2))

    with app.app_context(), session_scope(app) as s:
        assert purge_expired_reset_tokens(s) == 1
    with session_scope(app) as s:
        assert s.query(User).filter(User.reset_token.isnot(None)).count() == 0


def test_session_store_expiry_and_purge(app):
    uid = make_user(app, "sess@example.com")
    now = datetime(2026, 6, 1, 8, 0, 0)

    with session_scope(app) as s:
        user = s.get(User, uid)
        live = issue_session(s, user, ttl=timedelta(hours=24), now=now).sid
        stale = issue_session(s, user, ttl=timedelta(hours=1), now=now).sid

    with session_scope(app) as s:
        claims = load_session(s, live, now=now + timedelta(hours=2))
        assert claims["sub"] == uid
        assert claims["email"] == "sess@example.com"
        assert load_session(s, stale, now=now + timedelta(hours=2)) is None
        assert load_session(s, "nope") is None
        assert load_session(s, None) is None

    with session_scope(app) as s:
        assert s.get(AuthSession, stale) is None
        assert purge_expired_sessions(s, now=now + timedelta(days=2)) == 1
        assert s.query(AuthSession).count() == 0


def test_validate_image_data():
    ok = "data:image/jpeg;base64," + base64.b64encode(b"\xff\xd8\xff").decode()
    assert validate_image_data(ok) == ok

    with pytest.raises(InvalidFormat):
        validate_image_data("data:text/html;base64,PGI+")
    with pytest.raises(InvalidFormat):
        validate_image_data("data:image/png;base64,***")
    with pytest.raises(InvalidFormat):
        validate_image_data("")


def test_validate_image_data_size_limit(monkeypatch):
    monkeypatch.setattr("app.bitsa.utils.MAX_IMAGE_BYTES", 16)
    at_limit = "data:image/png;base64," + base64.b64encode(b"x" * 16).decode()
    assert validate_image_data(at_limit) == at_limit

    over = "data:image/png;base64," + base64.b64encode(b"x" * 17).decode()
    with pytest.raises(PayloadTooLarge):
        validate_image_data(over)


def test_slugify():
    assert slugify("  Hello, World! 2026 ") == "hello-world-2026"
    assert slugify("---") == ""


def test_expired_session_delete_is_left_to_caller(app):
    uid = make_user(app, "sess@example.com")
    now = datetime(2026, 6, 1, 8, 0, 0)
    with session_scope(app) as s:
        sid = issue_session(s, s.get(User, uid), ttl=timedelta(hours=1), now=now).sid

    with session_scope(app) as s:
        assert load_session(s, sid, now=now + timedelta(hours=2)) is None
        s.rollback()
        assert s.get(AuthSession, sid) is not None
