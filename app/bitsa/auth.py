from __future__ import annotations

import uuid
from datetime import datetime, timedelta

from flask import Blueprint, current_app, g, jsonify, request, session

from app.bitsa.audit import record_event
from app.bitsa.constants import LOGIN_RATE_LIMIT, LOGIN_RATE_WINDOW, RESET_REQUESTED_MESSAGE, SESSION_SID_KEY
from app.bitsa.db import db_session
from app.bitsa.errors import InvalidCredentials, RateLimited, Unauthenticated
from app.bitsa.models import User
from app.bitsa.modules.accounts.service import (
    authenticate,
    get_user,
    register_user,
    request_password_reset,
    reset_password,
    serialize_user,
    set_avatar,
    update_profile,
    verify_reset_token,
)
from app.bitsa.rbac import AuthContext, require_auth
from app.bitsa.schemas import (
    AvatarUploadRequest,
    ForgotPasswordRequest,
    LoginRequest,
    ProfileUpdateRequest,
    RegisterRequest,
    ResetPasswordRequest,
    parse_body,
)
from app.bitsa.sessions import destroy_session, issue_session, load_session

bp = Blueprint("auth", __name__)


def _login_attempts() -> dict[str, list[datetime]]:
    return current_app.extensions.setdefault("login_attempts", {})


def _check_rate_limit(ip: str) -> bool:
    now = datetime.utcnow()
    cutoff = now - timedelta(seconds=LOGIN_RATE_WINDOW)
    attempts = _login_attempts()
    recent = [t for t in attempts.get(ip, []) if t > cutoff]
    if recent:
        attempts[ip] = recent
    else:
        attempts.pop(ip, None)
    limit = int(current_app.config.get("LOGIN_RATE_LIMIT", LOGIN_RATE_LIMIT))
    return len(recent) >= limit


def _record_attempt(ip: str) -> None:
    _login_attempts().setdefault(ip, []).append(datetime.utcnow())


def load_current_user() -> None:
    """
    Builds g.auth (an AuthContext or None) from the session cookie.
    Also assigns a simple per-request request_id (for audit/log correlation).
    """
    if not getattr(g, "request_id", None):
        g.request_id = uuid.uuid4().hex
    g.auth = None
    if request.path.startswith(("/static/", "/health", "/healthz")):
        return

    sid = session.get(SESSION_SID_KEY)
    if not sid:
        return

    try:
        s = db_session()
        claims = load_session(s, sid)
        if not claims:
            s.commit()
            session.pop(SESSION_SID_KEY, None)
            return
        user = s.get(User, claims.get("sub"))
        if user is None:
            destroy_session(s, sid)
            s.commit()
            session.pop(SESSION_SID_KEY, None)
            return
        g.auth = AuthContext(
            sid=sid,
            user_id=user.id,
            email=user.email,
            name=user.display_name,
            is_admin=bool(user.is_admin),
            expires_at=int(claims.get("exp") or 0),
        )
    except Exception as e:
        current_app.logger.error("load_current_user DB error (clearing session): %s", e)
        session.pop(SESSION_SID_KEY, None)
        g.auth = None


def _start_session(s, user: User) -> None:
    """Replace any existing server-side session with a fresh one for `user`."""
    destroy_session(s, session.get(SESSION_SID_KEY))
    ttl = timedelta(hours=int(current_app.config.get("SESSION_TTL_HOURS", 24)))
    row = issue_session(s, user, ttl=ttl)
    session[SESSION_SID_KEY] = row.sid
    session.permanent = True


def _end_session(s) -> None:
    destroy_session(s, session.get(SESSION_SID_KEY))
    session.pop(SESSION_SID_KEY, None)


@bp.post("/register")
def register():
    req = parse_body(RegisterRequest)
    s = db_session()
    user = register_user(s, req)
    _start_session(s, user)
    s.commit()
    current_app.logger.info("Registered user_id=%s", user.id)
    return jsonify(
        {
            "id": user.id,
            "email": user.email,
            "firstName": user.first_name,
            "lastName": user.last_name,
        }
    ), 201


@bp.post("/login")
def login():
    ip = request.remote_addr or "unknown"
    if _check_rate_limit(ip):
        raise RateLimited()
    _record_attempt(ip)

    req = parse_body(LoginRequest)
    s = db_session()
    try:
        user = authenticate(s, req.email, req.password)
    except InvalidCredentials:
        record_event(
            s,
            actor=None,
            action="auth.login_failed",
            entity_type="User",
            entity_id=req.email,
            reason="Invalid credentials",
            metadata={"email": req.email},
        )
        s.commit()
        current_app.logger.warning("Login failed (email=%s request_id=%s)", req.email, g.request_id)
        raise

    _start_session(s, user)
    _login_attempts().pop(ip, None)
    record_event(s, actor=user, action="auth.login", entity_type="User", entity_id=user.id)
    s.commit()
    return jsonify(
        {
            "id": user.id,
            "email": user.email,
            "firstName": user.first_name,
            "lastName": user.last_name,
            "isAdmin": bool(user.is_admin),
        }
    )


@bp.post("/logout")
def logout():
    s = db_session()
    auth: AuthContext | None = getattr(g, "auth", None)
    if auth:
        record_event(
            s,
            actor=auth,
            action="auth.logout",
            entity_type="User",
            entity_id=auth.user_id,
        )
    _end_session(s)
    s.commit()
    return jsonify({"message": "Logged out successfully"})


@bp.get("/user")
@require_auth
def current_user(auth: AuthContext):
    user = get_user(db_session(), auth.user_id)
    if user is None:
        raise Unauthenticated()
    return jsonify(serialize_user(user))


@bp.put("/profile")
@require_auth
def profile_update(auth: AuthContext):
    req = parse_body(ProfileUpdateRequest)
    s = db_session()
    user = update_profile(s, auth.user_id, req)
    s.commit()
    return jsonify({"message": "Profile updated successfully", "user": serialize_user(user)})


@bp.post("/upload-avatar")
@require_auth
def upload_avatar(auth: AuthContext):
    req = parse_body(AvatarUploadRequest)
    s = db_session()
    user = set_avatar(s, auth.user_id, req.image_data)
    s.commit()
    return jsonify({"message": "Avatar uploaded successfully", "user": serialize_user(user)})


@bp.post("/forgot-password")
def forgot_password():
    req = parse_body(ForgotPasswordRequest)
    s = db_session()
    token = request_password_reset(s, req.email)
    s.commit()
    body = {"message": RESET_REQUESTED_MESSAGE}
    if token and current_app.config.get("EXPOSE_RESET_TOKEN"):
        body["token"] = token
    return jsonify(body)


@bp.get("/reset-password/<token>")
def reset_password_check(token: str):
    verify_reset_token(db_session(), token)
    return jsonify({"valid": True})


@bp.post("/reset-password")
def reset_password_post():
    req = parse_body(ResetPasswordRequest)
    s = db_session()
    user = reset_password(s, req.token, req.password)
    s.commit()
    # All of the user's sessions were revoked; drop the cookie too if it was theirs.
    auth: AuthContext | None = getattr(g, "auth", None)
    if auth and auth.user_id == user.id:
        session.pop(SESSION_SID_KEY, None)
    return jsonify({"message": "Password has been reset successfully"})
