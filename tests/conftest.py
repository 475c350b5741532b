import pytest

from app.bitsa import create_app
from app.bitsa.db import session_scope
from app.bitsa.models import Base, User
from app.bitsa.security import hash_password

ADMIN_EMAIL = "admin@example.com"
MEMBER_EMAIL = "member@example.com"
PASSWORD = "secret1"


@pytest.fixture()
def app(tmp_path, monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'test.db'}")
    monkeypatch.setenv("ENV", "test")
    monkeypatch.setenv("BCRYPT_ROUNDS", "4")
    for k in ("EXPOSE_RESET_TOKEN", "MAX_CONTENT_LENGTH", "SESSION_TTL_HOURS", "RESET_TOKEN_TTL_MINUTES"):
        monkeypatch.delenv(k, raising=False)

    app = create_app()
    app.config["TESTING"] = True

    engine = app.extensions["sqlalchemy_engine"]
    Base.metadata.create_all(bind=engine)
    return app


@pytest.fixture()
def client(app):
    make_user(app, ADMIN_EMAIL, is_admin=True, first_name="Ada", last_name="Admin")
    make_user(app, MEMBER_EMAIL, first_name="Mo", last_name="Member")
    return app.test_client()


def make_user(app, email, password=PASSWORD, *, is_admin=False, first_name="Test", last_name="User") -> str:
    with session_scope(app) as s:
        u = User(
            email=email,
            password_hash=hash_password(password, rounds=4) if password else None,
            first_name=first_name,
            last_name=last_name,
            is_admin=is_admin,
        )
        s.add(u)
        s.flush()
        return u.id


def login(client, email=MEMBER_EMAIL, password=PASSWORD):
    return client.post("/api/auth/login", json={"email": email, "password": password})
