"""
Application entry point for Barangay Connect.

This module creates the Flask application, loads configuration, initializes
extensions, registers blueprints and error handlers, and seeds the bootstrap
admin accounts from configuration.  Running `flask --app wsgi run` starts
the development server.
"""
import json
import logging
import os
import time
import uuid
from datetime import datetime, timezone

import click
from dotenv import load_dotenv
from flask import Flask, g, jsonify, request
from flask_mail import Message
from sqlalchemy import inspect, text
from werkzeug.exceptions import HTTPException

from .admin import admin_bp
from .auth import auth_bp
from .config import DevelopmentConfig
from .errors import ApiError, InternalError
from .extensions import db, mail, migrate
from .forum import forum_bp
from .routes import main_bp


MIGRATIONS_DIR = os.path.join(os.path.dirname(__file__), "migrations")


def create_app(config_class=DevelopmentConfig):
    """
    Application factory.  Creates and configures the Flask app instance.

    Args:
        config_class: The configuration class to use (e.g., DevelopmentConfig or ProductionConfig).
    Returns:
        A configured Flask app instance.
    """
    # Load .env from the current working directory and/or the package directory.
    load_dotenv(os.path.join(os.getcwd(), ".env"), override=False)
    load_dotenv(os.path.join(os.path.dirname(__file__), ".env"), override=False)

    app = Flask(__name__)
    app.config.from_object(config_class)

    # Logging configuration
    level_name = str(app.config.get("LOG_LEVEL", "INFO")).upper()
    app.logger.setLevel(getattr(logging, level_name, logging.INFO))

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db, directory=MIGRATIONS_DIR)
    mail.init_app(app)

    register_request_hooks(app)
    register_error_handlers(app)

    app.register_blueprint(main_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(admin_bp)
    app.register_blueprint(forum_bp)

    @app.get("/healthz")
    def healthz():
        """Basic health check with DB connectivity."""
        db_ok = True
        try:
            db.session.execute(text("SELECT 1"))
        except Exception:
            db.session.rollback()
            db_ok = False
        status = "ok" if db_ok else "degraded"
        code = 200 if db_ok else 503
        return jsonify({"status": status, "db": db_ok, "time": datetime.now(timezone.utc).isoformat()}), code

    init_database(app)
    register_cli(app)
    return app


def _principal_label():
    principal = getattr(g, "principal", None)
    if principal is None:
        return None
    return f"{principal.kind}:{principal.account.id}"


def register_request_hooks(app: Flask) -> None:
    @app.before_request
    def assign_request_id():
        g.request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
        g.request_start = time.time()
        g.pop("principal", None)
        g.pop("session_token", None)

    @app.after_request
    def log_request(response):
        duration_ms = None
        if hasattr(g, "request_start"):
            duration_ms = int((time.time() - g.request_start) * 1000)
        response.headers["X-Request-ID"] = getattr(g, "request_id", "")

        payload = {
            "event": "request",
            "request_id": getattr(g, "request_id", None),
            "method": request.method,
            "path": request.path,
            "status": response.status_code,
            "duration_ms": duration_ms,
            "principal": _principal_label(),
        }
        if app.config.get("LOG_JSON", True):
            app.logger.info(json.dumps(payload))
        else:
            app.logger.info(
                "%s %s %s %sms principal=%s",
                request.method,
                request.path,
                response.status_code,
                duration_ms,
                payload["principal"],
            )
        return response

    @app.after_request
    def apply_security_headers(response):
        """Set security headers (HSTS/nosniff/etc.)."""
        if app.config.get("SECURITY_HEADERS_ENABLED", True):
            response.headers["X-Content-Type-Options"] = "nosniff"
            response.headers["X-Frame-Options"] = "DENY"
            response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
            if request.is_secure:
                hsts = int(app.config.get("HSTS_SECONDS", 0) or 0)
                if hsts > 0:
                    response.headers["Strict-Transport-Security"] = f"max-age={hsts}; includeSubDomains"
        return response


def _report_error(app: Flask, exc: Exception) -> None:
    """Log an unexpected exception and optionally email a report."""
    payload = {
        "event": "error",
        "request_id": getattr(g, "request_id", None),
        "path": request.path,
        "method": request.method,
        "principal": _principal_label(),
        "error": str(exc),
    }
    if app.config.get("LOG_JSON", True):
        app.logger.exception(json.dumps(payload))
    else:
        app.logger.exception("Unhandled exception: %s", exc)

    report_to = str(app.config.get("ERROR_REPORT_EMAIL", "")).strip()
    if not report_to:
        return
    try:
        subject = f"[Barangay Connect] Error {request.method} {request.path}"
        body = (
            "An unhandled exception occurred.\n\n"
            f"Time (UTC): {datetime.now(timezone.utc).isoformat()}\n"
            f"Request ID: {payload['request_id']}\n"
            f"Principal: {payload['principal']}\n"
            f"Method: {request.method}\n"
            f"Path: {request.path}\n"
            f"IP: {request.remote_addr}\n"
            f"Error: {exc}\n"
        )
        mail.send(Message(subject=subject, recipients=[report_to], body=body))
    except Exception:
        app.logger.exception("Failed to send error report email.")


def register_error_handlers(app: Flask) -> None:
    """Render every failure as `{"message": ..., "errors"?: ...}`."""

    @app.errorhandler(ApiError)
    def handle_api_error(exc: ApiError):
        if exc.status_code >= 500:
            db.session.rollback()
            _report_error(app, exc)
        return jsonify(exc.to_dict()), exc.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(exc: HTTPException):
        if exc.code is None or exc.code < 400:
            # Routing redirects keep their Location header.
            return exc.get_response()
        return jsonify({"message": exc.description or exc.name}), exc.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(exc: Exception):
        db.session.rollback()
        _report_error(app, exc)
        return jsonify(InternalError().to_dict()), 500


def init_database(app: Flask) -> None:
    """Create or migrate tables and seed the bootstrap admin accounts."""
    if app.config.get("AUTO_MIGRATE", False):
        from flask_migrate import upgrade as alembic_upgrade

        with app.app_context():
            alembic_upgrade(directory=MIGRATIONS_DIR)
        app.logger.info("Auto migration completed.")

    with app.app_context():
        # Ensure all models are registered on metadata before create_all.
        from . import models

        try:
            db.engine.connect().close()
        except Exception as exc:
            app.logger.error(
                "Database connection failed. Check DATABASE_URL / .env. Error: %s",
                exc,
            )
            raise

        if app.config.get("AUTO_CREATE_DB", True):
            db.create_all()

        if not inspect(db.engine).has_table(models.Admin.__tablename__):
            return

        seed_admin(
            app,
            email=app.config.get("SEED_SUPER_ADMIN_EMAIL"),
            password=app.config.get("SEED_SUPER_ADMIN_PASSWORD"),
            role=models.ROLE_SUPER_ADMIN,
        )
        seed_admin(
            app,
            email=app.config.get("SEED_UNIT_ADMIN_EMAIL"),
            password=app.config.get("SEED_UNIT_ADMIN_PASSWORD"),
            role=models.ROLE_UNIT_ADMIN,
            unit_name=app.config.get("SEED_UNIT_ADMIN_UNIT"),
        )


def seed_admin(app: Flask, *, email, password, role, unit_name=None):
    """Create a bootstrap admin unless it exists or is not configured.

    Returns the created admin, or None when nothing was seeded.
    """
    from .models import ROLE_UNIT_ADMIN, Admin, Unit

    if not email or not password:
        return None
    if Admin.query.filter_by(email=email).first() is not None:
        return None

    unit_id = None
    if role == ROLE_UNIT_ADMIN:
        unit = Unit.query.filter_by(name=unit_name, is_active=True).first() if unit_name else None
        if unit is None:
            app.logger.warning("Skipping unit admin seed %s: barangay %r not found.", email, unit_name)
            return None
        unit_id = unit.id

    admin = Admin(
        email=email,
        first_name="Barangay" if role == ROLE_UNIT_ADMIN else "Super",
        last_name="Administrator",
        role=role,
        unit_id=unit_id,
    )
    admin.set_password(password)
    db.session.add(admin)
    db.session.commit()
    app.logger.info("Seeded %s account %s.", role, email)
    return admin


def register_cli(app: Flask) -> None:
    from .models import ROLE_SUPER_ADMIN, Admin, Unit
    from .sessions import purge_expired_sessions

    @app.cli.command("init-db")
    def init_db_command():
        """Create all tables."""
        db.create_all()
        click.echo("Database initialized.")

    @app.cli.command("create-unit")
    @click.option("--name", required=True)
    @click.option("--municipality", required=True)
    @click.option("--province", required=True)
    @click.option("--description", default=None)
    def create_unit_command(name: str, municipality: str, province: str, description: str | None):
        """Provision a barangay."""
        if Unit.query.filter_by(name=name).first() is not None:
            raise click.ClickException(f"Barangay {name!r} already exists.")
        unit = Unit(name=name, municipality=municipality, province=province, description=description)
        db.session.add(unit)
        db.session.commit()
        click.echo(f"Created barangay {unit.name} (id={unit.id}).")

    @app.cli.command("create-super-admin")
    @click.option("--email", required=True)
    @click.option("--password", prompt=True, hide_input=True, confirmation_prompt=True)
    @click.option("--first-name", default="Super")
    @click.option("--last-name", default="Administrator")
    def create_super_admin_command(email: str, password: str, first_name: str, last_name: str):
        """Create a super-admin account."""
        min_len = int(app.config.get("PASSWORD_MIN_LENGTH", 8))
        if len(password) < min_len:
            raise click.ClickException(f"Password must be at least {min_len} characters.")
        if Admin.query.filter_by(email=email).first() is not None:
            raise click.ClickException(f"Admin {email} already exists.")
        admin = Admin(email=email, first_name=first_name, last_name=last_name, role=ROLE_SUPER_ADMIN)
        admin.set_password(password)
        db.session.add(admin)
        db.session.commit()
        click.echo(f"Created super admin {email}.")

    @app.cli.command("purge-sessions")
    def purge_sessions_command():
        """Delete expired resident and admin sessions."""
        removed = purge_expired_sessions()
        click.echo("Expired sessions removed: resident={resident}, admin={admin}".format(**removed))


if __name__ == "__main__":
    # Create an app using the default development configuration
    app = create_app()
    app.run()
