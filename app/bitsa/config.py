import os
from dataclasses import dataclass


@dataclass(frozen=True)
class Settings:
    secret_key: str
    env: str
    database_url: str

    session_ttl_hours: int
    reset_token_ttl_minutes: int
    bcrypt_rounds: int
    expose_reset_token: bool
    max_content_length: int


def _getenv(name: str, default: str = "") -> str:
    return (os.environ.get(name) or default).strip()


def _getenv_int(name: str, default: int) -> int:
    raw = _getenv(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise RuntimeError(f"{name} must be an integer (got {raw!r}).")


def load_settings() -> Settings:
    return Settings(
        secret_key=_getenv("SECRET_KEY", "change-me"),
        env=_getenv("ENV", "development"),
        database_url=_getenv("DATABASE_URL", "sqlite:///bitsa.db"),
        session_ttl_hours=_getenv_int("SESSION_TTL_HOURS", 24),
        reset_token_ttl_minutes=_getenv_int("RESET_TOKEN_TTL_MINUTES", 60),
        bcrypt_rounds=_getenv_int("BCRYPT_ROUNDS", 10),
        expose_reset_token=_getenv("EXPOSE_RESET_TOKEN").lower() in ("1", "true", "yes"),
        # inline base64 images (5MB decoded) need headroom for the encoding overhead
        max_content_length=_getenv_int("MAX_CONTENT_LENGTH", 10 * 1024 * 1024),
    )


def is_production(env: str | None) -> bool:
    return (env or "").strip().lower() in ("prod", "production")


def load_config() -> dict:
    s = load_settings()
    prod = is_production(s.env)
    return {
        "SECRET_KEY": s.secret_key,
        "ENV": s.env,
        "DATABASE_URL": s.database_url,
        "SESSION_TTL_HOURS": s.session_ttl_hours,
        "RESET_TOKEN_TTL_MINUTES": s.reset_token_ttl_minutes,
        "BCRYPT_ROUNDS": s.bcrypt_rounds,
        # diagnostic mode: hand the reset token back to the caller instead of mailing it
        "EXPOSE_RESET_TOKEN": s.expose_reset_token or not prod,
        # security defaults
        "SESSION_COOKIE_HTTPONLY": True,
        "SESSION_COOKIE_SAMESITE": "Lax",
        "SESSION_COOKIE_SECURE": prod,  # Require HTTPS in production
        "MAX_CONTENT_LENGTH": s.max_content_length,
    }
