"""
Configuration settings for Barangay Connect.

This module defines configuration classes for the supported environments
(development, testing, production).  Every value can be overridden through
environment variables; `create_app` loads a `.env` file first so local
setups only need to edit that file.

The default database is a SQLite file in the working directory.  Point
`DATABASE_URL` at PostgreSQL for real deployments.
"""
import os


def _flag(name: str, default: str) -> bool:
    return os.environ.get(name, default).lower() in {"1", "true", "yes", "on"}


class Config:
    """Base configuration with default settings."""

    SECRET_KEY = os.environ.get("SECRET_KEY", "change-me")
    DATABASE_URL = os.environ.get(
        "DATABASE_URL",
        "sqlite:///" + os.path.join(os.getcwd(), "barangay_connect.db"),
    )
    SQLALCHEMY_DATABASE_URI = DATABASE_URL
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Convenience for local development.
    # For real deployments, set AUTO_CREATE_DB=false and use Alembic:
    #   flask db upgrade
    AUTO_CREATE_DB = _flag("AUTO_CREATE_DB", "true")
    AUTO_MIGRATE = _flag("AUTO_MIGRATE", "false")

    # Complaint photos live in one flat directory, served from /uploads/.
    UPLOAD_FOLDER = os.environ.get("UPLOAD_FOLDER", os.path.join(os.getcwd(), "uploads"))
    PHOTO_MAX_BYTES = int(os.environ.get("PHOTO_MAX_BYTES", 5 * 1024 * 1024))  # 5MB
    # Whole-request ceiling; leaves room for the form fields around a 5MB photo.
    MAX_CONTENT_LENGTH = int(os.environ.get("MAX_CONTENT_LENGTH", 6 * 1024 * 1024))

    # Bearer sessions: residents are long-lived, admins short-lived.
    RESIDENT_SESSION_TTL_SECONDS = int(os.environ.get("RESIDENT_SESSION_TTL_SECONDS", 7 * 24 * 60 * 60))
    ADMIN_SESSION_TTL_SECONDS = int(os.environ.get("ADMIN_SESSION_TTL_SECONDS", 24 * 60 * 60))

    PASSWORD_MIN_LENGTH = int(os.environ.get("PASSWORD_MIN_LENGTH", 8))

    # Login rate limiting (per IP and per username)
    LOGIN_RATE_LIMIT_WINDOW_SECONDS = int(os.environ.get("LOGIN_RATE_LIMIT_WINDOW_SECONDS", 600))
    LOGIN_RATE_LIMIT_MAX = int(os.environ.get("LOGIN_RATE_LIMIT_MAX", 5))

    # Ops / logging
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
    LOG_JSON = _flag("LOG_JSON", "true")
    ERROR_REPORT_EMAIL = os.environ.get("ERROR_REPORT_EMAIL", "")

    SECURITY_HEADERS_ENABLED = _flag("SECURITY_HEADERS_ENABLED", "true")
    HSTS_SECONDS = int(os.environ.get("HSTS_SECONDS", 31536000))

    # Bootstrap admin accounts.  Nothing is seeded unless both the email
    # and the password are provided.
    SEED_SUPER_ADMIN_EMAIL = os.environ.get("SEED_SUPER_ADMIN_EMAIL", "")
    SEED_SUPER_ADMIN_PASSWORD = os.environ.get("SEED_SUPER_ADMIN_PASSWORD", "")
    SEED_UNIT_ADMIN_EMAIL = os.environ.get("SEED_UNIT_ADMIN_EMAIL", "")
    SEED_UNIT_ADMIN_PASSWORD = os.environ.get("SEED_UNIT_ADMIN_PASSWORD", "")
    SEED_UNIT_ADMIN_UNIT = os.environ.get("SEED_UNIT_ADMIN_UNIT", "")

    # Flask-Mail settings, used for unhandled-error reports.
    MAIL_SERVER = os.environ.get("MAIL_SERVER", None)
    MAIL_PORT = int(os.environ.get("MAIL_PORT", 587)) if os.environ.get("MAIL_PORT") else None
    MAIL_USE_TLS = _flag("MAIL_USE_TLS", "true")
    MAIL_USE_SSL = _flag("MAIL_USE_SSL", "false")
    MAIL_USERNAME = os.environ.get("MAIL_USERNAME", None)
    MAIL_PASSWORD = os.environ.get("MAIL_PASSWORD", None)
    MAIL_DEFAULT_SENDER = os.environ.get("MAIL_DEFAULT_SENDER", None)


class DevelopmentConfig(Config):
    """Configuration for development environment."""

    DEBUG = True


class ProductionConfig(Config):
    """Configuration for production environment."""

    DEBUG = False
    AUTO_CREATE_DB = _flag("AUTO_CREATE_DB", "false")


class TestingConfig(Config):
    """Configuration for testing (uses an in-memory SQLite DB)."""

    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    MAIL_SUPPRESS_SEND = True
    SECURITY_HEADERS_ENABLED = False
