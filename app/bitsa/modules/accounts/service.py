"""
Member accounts: registration, credential checks, profile edits and the
password reset flow.

Reset token lifecycle per user:

    no token --request_password_reset--> token issued --reset_password--> cleared
                                              |
                                              +-- expiry passes --> unusable

Unknown and expired tokens fail with the same error so callers cannot tell
which condition applied.
"""
from __future__ import annotations

from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any

from flask import current_app
from sqlalchemy.exc import IntegrityError

from app.bitsa.audit import record_event
from app.bitsa.errors import (
    DuplicateEmail,
    InvalidCredentials,
    InvalidFormat,
    InvalidOrExpiredToken,
    NotFound,
    PayloadTooLarge,
)
from app.bitsa.models import User
from app.bitsa.security import check_password, dummy_password_check, generate_reset_token, hash_password
from app.bitsa.sessions import revoke_user_sessions
from app.bitsa.utils import isoformat, validate_image_data

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.bitsa.schemas import ProfileUpdateRequest, RegisterRequest


PROFILE_FIELDS = ("first_name", "last_name", "student_id", "course", "year_of_study", "phone")


def get_user(s: "Session", user_id: str) -> User | None:
    return s.get(User, user_id)


def get_user_by_email(s: "Session", email: str) -> User | None:
    email = (email or "").strip().lower()
    if not email:
        return None
    return s.query(User).filter(User.email == email).one_or_none()


def serialize_user(user: User) -> dict[str, Any]:
    """Public profile. Never includes the password hash or reset token."""
    return {
        "id": user.id,
        "email": user.email,
        "firstName": user.first_name,
        "lastName": user.last_name,
        "profileImageUrl": user.profile_image_url,
        "studentId": user.student_id,
        "course": user.course,
        "yearOfStudy": user.year_of_study,
        "phone": user.phone,
        "isAdmin": bool(user.is_admin),
        "createdAt": isoformat(user.created_at),
        "updatedAt": isoformat(user.updated_at),
    }


def register_user(s: "Session", req: "RegisterRequest") -> User:
    """Create a local account. Raises DuplicateEmail when the email is taken."""
    if get_user_by_email(s, req.email) is not None:
        raise DuplicateEmail()

    now = datetime.utcnow()
    user = User(
        email=req.email,
        password_hash=hash_password(req.password),
        first_name=req.first_name,
        last_name=req.last_name,
        student_id=req.student_id,
        course=req.course,
        year_of_study=req.year_of_study,
        phone=req.phone,
        is_admin=False,
        created_at=now,
        updated_at=now,
    )
    s.add(user)
    try:
        s.flush()  # Force unique constraint check
    except IntegrityError:
        # Lost a race with a concurrent registration for the same email.
        s.rollback()
        if get_user_by_email(s, req.email) is not None:
            raise DuplicateEmail()
        raise

    record_event(s, actor=user, action="auth.register", entity_type="User", entity_id=user.id)
    return user


def authenticate(s: "Session", email: str, password: str) -> User:
    """
    Return the user for a matching email/password pair.

    Accounts without a local password (external identity only) can never log in
    here; all failure modes raise the same InvalidCredentials.
    """
    user = get_user_by_email(s, email)
    if user is None or not user.password_hash:
        # same bcrypt cost as a real check so timing does not reveal the account
        dummy_password_check(password)
        raise InvalidCredentials()
    if not check_password(user.password_hash, password):
        raise InvalidCredentials()
    return user


def update_profile(s: "Session", user_id: str, req: "ProfileUpdateRequest") -> User:
    user = get_user(s, user_id)
    if user is None:
        raise NotFound("User not found")

    changes = {}
    for field, value in req.model_dump(exclude_unset=True).items():
        if field not in PROFILE_FIELDS:
            continue
        if field in ("first_name", "last_name") and value is None:
            # names can be changed but not removed
            continue
        if getattr(user, field) != value:
            changes[field] = {"old": getattr(user, field), "new": value}
            setattr(user, field, value)

    user.updated_at = datetime.utcnow()
    if changes:
        record_event(
            s,
            actor=user,
            action="user.profile_update",
            entity_type="User",
            entity_id=user.id,
            metadata={"changes": changes},
        )
    return user


def set_avatar(s: "Session", user_id: str, image_data: str) -> User:
    """Store an inline image as the user's avatar. Any rejected image, oversized included, is InvalidFormat."""
    try:
        validate_image_data(image_data)
    except PayloadTooLarge:
        raise InvalidFormat("Image must be 5MB or smaller.")
    user = get_user(s, user_id)
    if user is None:
        raise NotFound("User not found")
    user.profile_image_url = image_data
    user.updated_at = datetime.utcnow()
    return user


# ---------- Password reset ----------


def _reset_ttl() -> timedelta:
    return timedelta(minutes=int(current_app.config.get("RESET_TOKEN_TTL_MINUTES", 60)))


def request_password_reset(s: "Session", email: str, *, now: datetime | None = None) -> str | None:
    """
    Issue a reset token for `email` if an account exists.

    Returns the token (for the mailer / diagnostic response) or None. Callers
    must answer identically in both cases.
    """
    user = get_user_by_email(s, email)
    if user is None:
        current_app.logger.info("Password reset requested for unknown email")
        return None

    now = now or datetime.utcnow()
    token = generate_reset_token()
    user.reset_token = token
    user.reset_token_expiry = now + _reset_ttl()
    user.updated_at = now
    record_event(s, actor=user, action="auth.password_reset_requested", entity_type="User", entity_id=user.id)
    # No mailer: the log line is the delivery channel.
    current_app.logger.info("Password reset token issued for user_id=%s token=%s", user.id, token)
    return token


def verify_reset_token(s: "Session", token: str, *, now: datetime | None = None) -> User:
    if not token:
        raise InvalidOrExpiredToken()
    user = s.query(User).filter(User.reset_token == token).one_or_none()
    if user is None or user.reset_token_expiry is None:
        raise InvalidOrExpiredToken()
    now = now or datetime.utcnow()
    if now > user.reset_token_expiry:
        raise InvalidOrExpiredToken()
    return user


def reset_password(s: "Session", token: str, new_password: str, *, now: datetime | None = None) -> User:
    """
    Replace the password for the token's owner and burn the token.

    Hash replacement, token clearing and session revocation are staged on the
    same session; the caller commits them together.
    """
    user = verify_reset_token(s, token, now=now)
    user.password_hash = hash_password(new_password)
    user.reset_token = None
    user.reset_token_expiry = None
    user.updated_at = now or datetime.utcnow()
    revoke_user_sessions(s, user.id)
    record_event(s, actor=user, action="auth.password_reset", entity_type="User", entity_id=user.id)
    return user


def purge_expired_reset_tokens(s: "Session", *, now: datetime | None = None) -> int:
    now = now or datetime.utcnow()
    users = (
        s.query(User)
        .filter(User.reset_token.isnot(None))
        .filter(User.reset_token_expiry < now)
        .all()
    )
    for u in users:
        u.reset_token = None
        u.reset_token_expiry = None
    return len(users)
