import logging
from datetime import timedelta

from flask import Flask, g, jsonify, request
from dotenv import load_dotenv
from sqlalchemy import inspect as sa_inspect
from werkzeug.exceptions import HTTPException, RequestEntityTooLarge

from app.bitsa.config import is_production, load_config
from app.bitsa.db import init_db, teardown_db_session
from app.bitsa.errors import AppError, InternalError, PayloadTooLarge
from app.bitsa.routes import bp as routes_bp
from app.bitsa.auth import bp as auth_bp, load_current_user
from app.bitsa.models import Base
from app.bitsa.modules.blog.api import bp as blog_bp
from app.bitsa.modules.events.api import bp as events_bp
from app.bitsa.modules.gallery.api import bp as gallery_bp
from app.bitsa.modules.discussions.api import bp as discussions_bp


def create_app() -> Flask:
    load_dotenv()
    app = Flask(__name__)
    app.config.from_mapping(load_config())
    app.config["PERMANENT_SESSION_LIFETIME"] = timedelta(hours=app.config["SESSION_TTL_HOURS"])
    app.config["SESSION_REFRESH_EACH_REQUEST"] = False

    # Production guardrails (fail fast with clear logs)
    if is_production(app.config.get("ENV")):
        if not app.config.get("DATABASE_URL") or str(app.config["DATABASE_URL"]).strip() == "":
            raise RuntimeError("DATABASE_URL is required in production.")
        if str(app.config["DATABASE_URL"]).startswith("sqlite"):
            raise RuntimeError("DATABASE_URL must be Postgres in production (not sqlite).")
        if not app.config.get("SECRET_KEY") or str(app.config["SECRET_KEY"]) in ("", "change-me"):
            raise RuntimeError("SECRET_KEY must be set to a strong value in production (not default).")

    init_db(app)

    def _dispose_engine_on_fork() -> None:
        import os
        if hasattr(os, "register_at_fork"):
            def _after_fork_child():
                engine = app.extensions.get("sqlalchemy_engine")
                if engine:
                    engine.dispose()
                    app.logger.info("Disposed DB engine after fork (pid=%s)", os.getpid())

            os.register_at_fork(after_in_child=_after_fork_child)

    _dispose_engine_on_fork()

    app.register_blueprint(routes_bp)
    app.register_blueprint(auth_bp, url_prefix="/api/auth")
    app.register_blueprint(blog_bp, url_prefix="/api/blog")
    app.register_blueprint(events_bp, url_prefix="/api/events")
    app.register_blueprint(gallery_bp, url_prefix="/api/gallery")
    app.register_blueprint(discussions_bp, url_prefix="/api/discussions")

    app.before_request(load_current_user)
    app.teardown_appcontext(teardown_db_session)

    # Migration health (lean): detect tables the models expect but the DB lacks.
    # Checked on the first request rather than at import so tooling that creates
    # the schema after create_app() is not flagged.
    app.config.setdefault("_schema_health_ok", None)
    app.config.setdefault("_schema_health_missing", [])

    def _run_schema_health_check() -> None:
        missing: list[str] = []
        try:
            insp = sa_inspect(app.extensions["sqlalchemy_engine"])
            for table in sorted(Base.metadata.tables):
                if not insp.has_table(table):
                    missing.append(table)
        except Exception as e:
            app.logger.exception("Schema health check failed: %s", e)
            return
        if missing:
            app.logger.error("DB schema out of date; run `alembic upgrade head`. Missing tables: %s", ", ".join(missing))
        app.config["_schema_health_missing"] = missing
        app.config["_schema_health_ok"] = not missing

    @app.before_request
    def _schema_health_guardrail():  # type: ignore[no-redef]
        if app.config.get("_schema_health_ok") is None:
            _run_schema_health_check()
        if app.config.get("_schema_health_ok") is False and request.path.startswith("/api/"):
            return jsonify({"message": "Service unavailable: database schema is out of date."}), 503
        return None

    @app.errorhandler(AppError)
    def _app_error(e: AppError):  # type: ignore[no-redef]
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(RequestEntityTooLarge)
    def _err_413(e):  # type: ignore[no-redef]
        app.logger.warning("Request body too large path=%s request_id=%s", request.path, getattr(g, "request_id", None))
        err = PayloadTooLarge()
        return jsonify(err.to_dict()), err.status_code

    @app.errorhandler(HTTPException)
    def _http_error(e: HTTPException):  # type: ignore[no-redef]
        return jsonify({"message": e.description or e.name}), e.code or 500

    @app.errorhandler(Exception)
    def _err_500(e):  # type: ignore[no-redef]
        # Ensure stack trace shows in the logs; never leak details to the client.
        app.logger.exception("Unhandled 500 (request_id=%s)", getattr(g, "request_id", None))
        err = InternalError()
        return jsonify(err.to_dict()), err.status_code

    logging.getLogger(__name__).info("create_app() complete; app ready to serve")

    return app
