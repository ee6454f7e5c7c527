"""
Bearer sessions for the two principal kinds.

Residents and admins each have their own session table, so a resident
token looked up as an admin token simply does not exist.  Tokens are
256-bit random strings handed to the client once; only their SHA-256
digest is stored.  Expiry is enforced lazily: an expired row found at
validation time is deleted and treated as unknown.
"""
from __future__ import annotations

import hashlib
import secrets
from datetime import datetime, timedelta
from typing import NamedTuple

from flask import current_app

from .extensions import db
from .models import Admin, AdminSession, Resident, ResidentSession
from .time_utils import utcnow


RESIDENT = "resident"
ADMIN = "admin"

_KINDS = {
    RESIDENT: (ResidentSession, Resident, "RESIDENT_SESSION_TTL_SECONDS"),
    ADMIN: (AdminSession, Admin, "ADMIN_SESSION_TTL_SECONDS"),
}


class Principal(NamedTuple):
    """The authenticated caller attached to a request."""

    kind: str
    account: Resident | Admin
    expires_at: datetime


def _kind(kind: str):
    try:
        return _KINDS[kind]
    except KeyError:
        raise ValueError(f"Unknown session kind: {kind!r}") from None


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def create_session(principal_id: int, kind: str) -> tuple[str, datetime]:
    """Mint a token for `principal_id` and persist its session row.

    Returns:
        The plaintext token (never stored) and its expiry.
    """
    session_model, _, ttl_key = _kind(kind)
    token = secrets.token_urlsafe(32)
    expires_at = utcnow() + timedelta(seconds=int(current_app.config[ttl_key]))
    db.session.add(
        session_model(
            principal_id=principal_id,
            token_hash=hash_token(token),
            expires_at=expires_at,
        )
    )
    db.session.commit()
    return token, expires_at


def validate_session(token: str | None, kind: str) -> Principal | None:
    """Resolve `token` in the `kind` session table.

    Returns None when the token is unknown, expired, or its principal no
    longer exists or has been deactivated.
    """
    session_model, principal_model, _ = _kind(kind)
    if not token:
        return None

    row = session_model.query.filter_by(token_hash=hash_token(token)).first()
    if row is None:
        return None

    if row.expires_at <= utcnow():
        db.session.delete(row)
        db.session.commit()
        return None

    account = db.session.get(principal_model, row.principal_id)
    if account is None or not account.is_active:
        return None
    return Principal(kind=kind, account=account, expires_at=row.expires_at)


def destroy_session(token: str | None, kind: str) -> None:
    """Delete the session for `token`; a no-op if it is already gone."""
    session_model, _, _ = _kind(kind)
    if not token:
        return
    session_model.query.filter_by(token_hash=hash_token(token)).delete()
    db.session.commit()


def purge_expired_sessions() -> dict[str, int]:
    """Delete expired rows from both session tables."""
    now = utcnow()
    removed = {}
    for kind, (session_model, _, _) in _KINDS.items():
        removed[kind] = session_model.query.filter(session_model.expires_at <= now).delete()
    db.session.commit()
    return removed
