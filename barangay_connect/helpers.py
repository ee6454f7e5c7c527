"""
Utility functions shared by the blueprints.

This module holds the request guards that resolve bearer tokens into
principals, the audit-log writer, login rate limiting and photo storage.
Centralizing them here avoids circular imports and keeps the route
modules focused on view logic.
"""
from __future__ import annotations

import os
import uuid
from datetime import timedelta
from functools import wraps

from flask import current_app, g, has_request_context, request
from werkzeug.utils import secure_filename

from .errors import AuthenticationError, AuthorizationError, ValidationError
from .extensions import db
from .models import AuditLog, LoginAttempt
from .sessions import ADMIN, RESIDENT, Principal, validate_session
from .time_utils import utcnow


def get_bearer_token() -> str | None:
    """Return the token from an `Authorization: Bearer <token>` header."""
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def authenticate(kind: str) -> Principal:
    """Resolve the request's bearer token against the `kind` session table.

    The principal is attached to `g.principal` for downstream handlers.

    Raises:
        AuthenticationError: no token, or the token is unknown/expired.
    """
    token = get_bearer_token()
    if token is None:
        raise AuthenticationError("Authentication required")
    principal = validate_session(token, kind)
    if principal is None:
        raise AuthenticationError("Invalid or expired session")
    g.principal = principal
    g.session_token = token
    return principal


def optional_resident() -> Principal | None:
    """Resolve a resident token if one is presented, without requiring it."""
    token = get_bearer_token()
    if token is None:
        return None
    principal = validate_session(token, RESIDENT)
    if principal is not None:
        g.principal = principal
    return principal


def resident_required(view_func):
    """Require a valid resident session.

    Usage:
        @resident_required
        def view(...):
            resident = g.principal.account
    """

    @wraps(view_func)
    def wrapper(*args, **kwargs):
        authenticate(RESIDENT)
        return view_func(*args, **kwargs)

    return wrapper


def admin_required(*roles: str):
    """Require a valid admin session, optionally with one of `roles`.

    Usage:
        @admin_required()
        def any_admin_view(...): ...

        @admin_required("super_admin")
        def super_admin_view(...): ...
    """

    def decorator(view_func):
        @wraps(view_func)
        def wrapper(*args, **kwargs):
            principal = authenticate(ADMIN)
            if roles and principal.account.role not in roles:
                current_app.logger.warning(
                    "Admin %s (%s) denied access to %s",
                    principal.account.id,
                    principal.account.role,
                    request.path,
                )
                raise AuthorizationError()
            return view_func(*args, **kwargs)

        return wrapper

    return decorator


def validated(form):
    """Validate a form, raising a ValidationError with its field messages."""
    if not form.validate():
        raise ValidationError("Validation error", errors=form.errors)
    return form


def get_client_ip() -> str | None:
    """Best-effort client IP for rate limiting and audit logs."""
    if not has_request_context():
        return None
    forwarded = request.headers.get("X-Forwarded-For", "")
    if forwarded:
        return forwarded.split(",")[0].strip() or None
    return request.remote_addr


def log_action(
    action: str,
    *,
    entity_type: str | None = None,
    entity_id=None,
    meta: dict | None = None,
    commit: bool = True,
) -> None:
    """Record an action in the audit log.

    The actor is the principal attached to the current request, if any.
    Pass `commit=False` to stage the row in the caller's transaction.
    """
    principal = getattr(g, "principal", None) if has_request_context() else None
    ua = None
    if has_request_context() and request.user_agent:
        ua = (request.user_agent.string or "")[:255] or None

    db.session.add(
        AuditLog(
            actor_kind=principal.kind if principal else None,
            actor_id=principal.account.id if principal else None,
            action=action,
            entity_type=entity_type,
            entity_id=str(entity_id) if entity_id is not None else None,
            ip_address=get_client_ip(),
            user_agent=ua,
            meta=meta,
        )
    )
    if commit:
        db.session.commit()


def record_login_attempt(kind: str, username: str | None, ip: str | None, success: bool) -> None:
    db.session.add(
        LoginAttempt(
            kind=kind,
            username=username or None,
            ip_address=ip or None,
            success=success,
        )
    )
    db.session.commit()


def is_rate_limited(kind: str, username: str | None, ip: str | None) -> bool:
    max_attempts = int(current_app.config.get("LOGIN_RATE_LIMIT_MAX", 5))
    window_seconds = int(current_app.config.get("LOGIN_RATE_LIMIT_WINDOW_SECONDS", 600))
    if max_attempts <= 0 or window_seconds <= 0:
        return False

    cutoff = utcnow() - timedelta(seconds=window_seconds)
    base_query = LoginAttempt.query.filter(
        LoginAttempt.kind == kind,
        LoginAttempt.success.is_(False),
        LoginAttempt.created_at >= cutoff,
    )
    ip_count = base_query.filter(LoginAttempt.ip_address == ip).count() if ip else 0
    user_count = base_query.filter(LoginAttempt.username == username).count() if username else 0
    return max(ip_count, user_count) >= max_attempts


def save_uploaded_photo(file_storage) -> str | None:
    """Store a validated photo under UPLOAD_FOLDER and return its filename.

    The upload is written to a temporary name first and renamed into place,
    so a half-written file is never served.
    """
    if not file_storage or not getattr(file_storage, "filename", ""):
        return None

    filename = secure_filename(file_storage.filename)
    ext = ""
    if "." in filename:
        ext = "." + filename.rsplit(".", 1)[1].lower()

    upload_root = current_app.config["UPLOAD_FOLDER"]
    os.makedirs(upload_root, exist_ok=True)

    unique_name = f"{uuid.uuid4().hex}{ext}"
    final_path = os.path.join(upload_root, unique_name)
    partial_path = final_path + ".part"
    file_storage.save(partial_path)
    os.replace(partial_path, final_path)
    return unique_name


def remove_uploaded_photo(filename: str | None) -> None:
    if not filename:
        return
    path = os.path.join(current_app.config["UPLOAD_FOLDER"], filename)
    if os.path.exists(path):
        os.remove(path)
