from __future__ import annotations

from collections.abc import Generator
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.orm import Session

from app.bitsa.db import enable_sqlite_foreign_keys, engine_options, make_sessionmaker


@contextmanager
def script_session(db_url: str) -> Generator[Session, None, None]:
    """One-shot engine + session for CLI scripts; commits on success, disposes the engine on exit."""
    engine = create_engine(db_url, **engine_options(db_url))
    if db_url.startswith("sqlite"):
        enable_sqlite_foreign_keys(engine)
    s: Session = make_sessionmaker(engine)()
    try:
        yield s
        s.commit()
    except Exception:
        s.rollback()
        raise
    finally:
        s.close()
        engine.dispose()
