import os
import sys
from pathlib import Path

# Ensure repo root is on sys.path when running as a script (Windows-friendly).
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.bitsa.models import User  # noqa: E402
from app.bitsa.security import hash_password  # noqa: E402
from scripts._db_utils import script_session  # noqa: E402


def seed_only(*, database_url: str | None = None) -> None:
    """
    Seed the admin account in an idempotent way.
    Does NOT overwrite an existing admin user's password.
    """
    admin_email = (os.environ.get("ADMIN_EMAIL") or "admin@bitsa.local").strip().lower()
    admin_password = os.environ.get("ADMIN_PASSWORD") or "change-me"
    rounds = int(os.environ.get("BCRYPT_ROUNDS") or 10)

    db_url = (database_url or os.environ.get("DATABASE_URL") or "sqlite:///bitsa.db").strip()

    # Direct engine/session so this can run in release without importing app.wsgi.
    with script_session(db_url) as s:
        user = s.query(User).filter(User.email == admin_email).one_or_none()
        if not user:
            user = User(
                email=admin_email,
                password_hash=hash_password(admin_password, rounds=rounds),
                first_name="Site",
                last_name="Admin",
                is_admin=True,
            )
            s.add(user)
        elif not user.is_admin:
            user.is_admin = True

    print("Initialized database (seed_only).")
    print(f"Admin email: {admin_email}")
    print("Admin password: (from ADMIN_PASSWORD)")


def main() -> None:
    seed_only(database_url=None)


if __name__ == "__main__":
    main()
