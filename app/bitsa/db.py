from __future__ import annotations

from contextlib import contextmanager
from collections.abc import Generator
from typing import Any

from flask import Flask, g
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker


def engine_options(db_url: str) -> dict[str, Any]:
    opts: dict[str, Any] = {"future": True, "pool_pre_ping": True}
    if db_url.startswith("postgres"):
        opts.update(pool_recycle=1800, pool_size=5, max_overflow=10, pool_timeout=30)
    return opts


def enable_sqlite_foreign_keys(engine: Engine) -> None:
    """SQLite ignores ON DELETE CASCADE unless foreign keys are switched on per connection."""

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_connection, connection_record):  # type: ignore[no-redef]
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def make_sessionmaker(engine: Engine) -> sessionmaker:
    # Serializers read attributes after commit.
    return sessionmaker(bind=engine, class_=Session, autoflush=False, expire_on_commit=False, future=True)


def init_db(app: Flask) -> None:
    db_url = app.config["DATABASE_URL"]
    engine = create_engine(db_url, **engine_options(db_url))
    if db_url.startswith("sqlite"):
        enable_sqlite_foreign_keys(engine)

    app.extensions["sqlalchemy_engine"] = engine
    app.extensions["sqlalchemy_sessionmaker"] = make_sessionmaker(engine)
    app.logger.debug("Database engine ready (%s)", engine.url.render_as_string(hide_password=True))


def db_session(app: Flask | None = None) -> Session:
    """
    Request-scoped session. Use inside request handlers.

    Views commit explicitly; anything left uncommitted when the request ends is
    rolled back by `teardown_db_session`.
    """
    if getattr(g, "db_session", None) is not None:
        return g.db_session
    if app is None:
        from flask import current_app

        app = current_app
    g.db_session = app.extensions["sqlalchemy_sessionmaker"]()  # type: ignore[assignment]
    return g.db_session


def teardown_db_session(exc: BaseException | None) -> None:
    s: Session | None = getattr(g, "db_session", None)
    if s is None:
        return
    try:
        if exc is not None:
            s.rollback()
        s.close()
    finally:
        g.db_session = None


@contextmanager
def session_scope(app: Flask) -> Generator[Session, None, None]:
    """
    Non-request helper for scripts and tests: yields a session and commits/rolls back.
    """
    s: Session = app.extensions["sqlalchemy_sessionmaker"]()
    try:
        yield s
        s.commit()
    except Exception:
        s.rollback()
        raise
    finally:
        s.close()
