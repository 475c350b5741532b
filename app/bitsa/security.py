import secrets

import bcrypt
from flask import current_app

from app.bitsa.constants import RESET_TOKEN_BYTES


def hash_password(password: str, rounds: int | None = None) -> str:
    """Salted bcrypt hash; cost factor comes from BCRYPT_ROUNDS (10 by default)."""
    if rounds is None:
        rounds = int(current_app.config.get("BCRYPT_ROUNDS", 10))
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def check_password(password_hash: str | None, password: str) -> bool:
    if not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Stored value is not a bcrypt hash.
        return False


_DUMMY_HASHES: dict[int, bytes] = {}


def dummy_password_check(password: str) -> bool:
    """Run a full bcrypt comparison against a throwaway hash; always False."""
    rounds = int(current_app.config.get("BCRYPT_ROUNDS", 10))
    dummy = _DUMMY_HASHES.get(rounds)
    if dummy is None:
        dummy = _DUMMY_HASHES[rounds] = bcrypt.hashpw(secrets.token_bytes(16), bcrypt.gensalt(rounds=rounds))
    bcrypt.checkpw(password.encode("utf-8"), dummy)
    return False


def generate_reset_token() -> str:
    return secrets.token_hex(RESET_TOKEN_BYTES)


def generate_session_id() -> str:
    return secrets.token_urlsafe(32)
