"""
Resident authentication blueprint.

Residents sign up themselves, log in with email and password and receive a
bearer token valid for RESIDENT_SESSION_TTL_SECONDS.  Admin login lives in
`admin.py` and issues tokens from a separate session table.
"""
from flask import Blueprint, current_app, g, jsonify

from .errors import AuthenticationError, ConflictError
from .extensions import db
from .forms import LoginForm, SignupForm
from .helpers import (
    get_client_ip,
    is_rate_limited,
    record_login_attempt,
    resident_required,
    validated,
)
from .models import Resident, Unit
from .sessions import RESIDENT, create_session, destroy_session

auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/signup")
def signup():
    """Create a resident account in an active barangay."""
    form = validated(SignupForm())
    email = form.email.data

    if Resident.query.filter_by(email=email).first() is not None:
        raise ConflictError("Email already registered")

    resident = Resident(
        email=email,
        first_name=form.firstName.data,
        last_name=form.lastName.data,
        contact_number=form.contactNumber.data,
        address=form.address.data,
        unit_id=form.barangayId.data,
    )
    resident.set_password(form.password.data)
    db.session.add(resident)
    db.session.commit()

    current_app.logger.info("Resident %s signed up in unit %s", resident.id, resident.unit_id)
    return jsonify({"message": "Account created successfully", "userId": resident.id}), 201


@auth_bp.post("/login")
def login():
    form = validated(LoginForm())
    email = form.email.data
    ip = get_client_ip()
    if is_rate_limited(RESIDENT, email, ip):
        current_app.logger.warning("Resident login rate limited for %s from %s", email, ip)
        raise AuthenticationError("Too many failed login attempts. Please try again later.")

    resident = Resident.query.filter_by(email=email, is_active=True).first()
    if resident is None or not resident.check_password(form.password.data):
        record_login_attempt(RESIDENT, email, ip, success=False)
        raise AuthenticationError("Invalid email or password")

    record_login_attempt(RESIDENT, email, ip, success=True)
    token, expires_at = create_session(resident.id, RESIDENT)
    unit = db.session.get(Unit, resident.unit_id)

    user = resident.to_dict()
    user["barangay"] = unit.to_dict() if unit else None
    return jsonify({"sessionToken": token, "expiresAt": expires_at.isoformat(), "user": user})


@auth_bp.post("/logout")
@resident_required
def logout():
    destroy_session(g.session_token, RESIDENT)
    return jsonify({"message": "Logged out successfully"})


@auth_bp.get("/me")
@resident_required
def me():
    return jsonify(g.principal.account.to_dict(with_unit=True))
