"""
Delete expired server-side sessions and clear expired password reset tokens.

Safe to run repeatedly (e.g. from a daily cron job).

Usage:
  python scripts/purge_sessions.py
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.bitsa.models import User  # noqa: E402,F401
from app.bitsa.modules.accounts.service import purge_expired_reset_tokens  # noqa: E402
from app.bitsa.sessions import purge_expired_sessions  # noqa: E402
from scripts._db_utils import script_session  # noqa: E402


def run_purge(database_url: str) -> tuple[int, int]:
    with script_session(database_url) as s:
        sessions_removed = purge_expired_sessions(s)
        tokens_cleared = purge_expired_reset_tokens(s)
    return sessions_removed, tokens_cleared


def main() -> None:
    db_url = (os.environ.get("DATABASE_URL") or "sqlite:///bitsa.db").strip()
    sessions_removed, tokens_cleared = run_purge(db_url)
    print(f"Expired sessions removed: {sessions_removed}", flush=True)
    print(f"Expired reset tokens cleared: {tokens_cleared}", flush=True)


if __name__ == "__main__":
    main()
