"""
Release phase, run once per deploy before the web workers start.

Steps:
  1. alembic upgrade head
  2. seed the admin account (never overwrites an existing password)
  3. drop expired sessions and reset tokens

Usage:
  python scripts/release.py
"""

from __future__ import annotations

import os
import sys
from pathlib import Path


ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.bitsa.config import is_production  # noqa: E402


def _database_url() -> str:
    db_url = (os.environ.get("DATABASE_URL") or "").strip()
    if not db_url:
        raise RuntimeError("Missing required environment variable DATABASE_URL.")
    if is_production(os.environ.get("ENV")) and db_url.startswith("sqlite"):
        raise RuntimeError("Refusing to release against sqlite in production. Set DATABASE_URL to Postgres.")
    return db_url


def migrate(db_url: str) -> None:
    from alembic import command
    from alembic.config import Config

    cfg = Config(str(ROOT / "alembic.ini"))
    cfg.set_main_option("script_location", str(ROOT / "migrations"))
    cfg.set_main_option("sqlalchemy.url", db_url)
    command.upgrade(cfg, "head")


def run_release() -> None:
    db_url = _database_url()
    from scripts.init_db import seed_only
    from scripts.purge_sessions import run_purge

    print(f"[release] ENV={os.environ.get('ENV') or '(unset)'}", flush=True)
    print("[release] migrating...", flush=True)
    migrate(db_url)

    print("[release] seeding admin...", flush=True)
    seed_only(database_url=db_url)

    sessions_removed, tokens_cleared = run_purge(db_url)
    print(f"[release] purged {sessions_removed} expired sessions, {tokens_cleared} expired reset tokens", flush=True)
    print("[release] done", flush=True)


if __name__ == "__main__":
    run_release()
