"""
Administrative blueprint.

Admins log in here and receive a bearer token from the admin session table
(valid for ADMIN_SESSION_TTL_SECONDS).  One set of endpoints serves both
admin roles; the super-admin-only sections (admin accounts, barangay
provisioning) are gated with `admin_required("super_admin")`, and
everything else is scoped to the caller's unit through `policy.py`.
"""
import io

from flask import Blueprint, current_app, g, jsonify, request, send_file

from .complaints import compute_stats, export_csv, list_complaints
from .errors import AuthenticationError, ConflictError, NotFoundError
from .extensions import db
from .forms import AdminCreateForm, AdminLoginForm, UnitForm
from .helpers import (
    admin_required,
    get_client_ip,
    is_rate_limited,
    log_action,
    record_login_attempt,
    validated,
)
from .models import ROLE_SUPER_ADMIN, ROLE_UNIT_ADMIN, Admin, Unit
from .policy import admin_unit_scope
from .sessions import ADMIN, create_session, destroy_session
from .time_utils import utcnow

admin_bp = Blueprint("admin", __name__, url_prefix="/api/admin")


@admin_bp.post("/login")
def login():
    """Authenticate an admin by email (sent as `username`) and password."""
    form = validated(AdminLoginForm())
    username = form.username.data
    ip = get_client_ip()
    if is_rate_limited(ADMIN, username, ip):
        current_app.logger.warning("Admin login rate limited for %s from %s", username, ip)
        raise AuthenticationError("Too many failed login attempts. Please try again later.")

    admin = Admin.query.filter_by(email=username, is_active=True).first()
    if admin is None or not admin.check_password(form.password.data):
        record_login_attempt(ADMIN, username, ip, success=False)
        current_app.logger.warning("Failed admin login for %s from %s", username, ip)
        raise AuthenticationError("Invalid credentials")

    record_login_attempt(ADMIN, username, ip, success=True)
    token, expires_at = create_session(admin.id, ADMIN)
    log_action("Admin logged in", entity_type="admin", entity_id=admin.id, meta={"role": admin.role})

    return jsonify(
        {
            "sessionToken": token,
            "expiresAt": expires_at.isoformat(),
            "isSuperAdmin": admin.is_super_admin,
            "user": admin.to_dict(with_unit=True),
        }
    )


@admin_bp.post("/logout")
@admin_required()
def logout():
    log_action("Admin logged out", entity_type="admin", entity_id=g.principal.account.id)
    destroy_session(g.session_token, ADMIN)
    return jsonify({"message": "Logged out successfully"})


@admin_bp.get("/me")
@admin_required()
def me():
    admin = g.principal.account
    data = admin.to_dict(with_unit=True)
    data["isSuperAdmin"] = admin.is_super_admin
    return jsonify(data)


@admin_bp.get("/stats")
@admin_required()
def stats():
    """Complaint statistics for the caller's unit (all units for super-admin)."""
    unit_id = admin_unit_scope(g.principal.account, request.args.get("barangayId", type=int))
    return jsonify(compute_stats(unit_id))


@admin_bp.get("/export")
@admin_required()
def export_complaints():
    """Download the caller's visible complaints as CSV."""
    unit_id = admin_unit_scope(g.principal.account, request.args.get("barangayId", type=int))
    complaints = list_complaints(unit_id)
    data = io.BytesIO(export_csv(complaints).encode("utf-8"))
    log_action("Exported complaints (CSV)", entity_type="complaint", meta={"unit_id": unit_id, "rows": len(complaints)})
    return send_file(
        data,
        mimetype="text/csv",
        as_attachment=True,
        download_name=f"complaints-{utcnow().date().isoformat()}.csv",
    )


@admin_bp.get("/users")
@admin_required(ROLE_SUPER_ADMIN)
def list_admins():
    """All active admin accounts with their barangay."""
    admins = Admin.query.filter_by(is_active=True).order_by(Admin.id.asc()).all()
    return jsonify([a.to_dict(with_unit=True) for a in admins])


@admin_bp.post("/create")
@admin_required(ROLE_SUPER_ADMIN)
def create_admin():
    """Provision a unit-admin account bound to one barangay."""
    form = validated(AdminCreateForm())
    if Admin.query.filter_by(email=form.email.data).first() is not None:
        raise ConflictError("Admin with this email already exists")

    admin = Admin(
        email=form.email.data,
        first_name=form.firstName.data,
        last_name=form.lastName.data,
        role=ROLE_UNIT_ADMIN,
        unit_id=form.barangayId.data,
    )
    admin.set_password(form.password.data)
    db.session.add(admin)
    db.session.flush()

    log_action(
        "Created admin",
        entity_type="admin",
        entity_id=admin.id,
        meta={"email": admin.email, "role": admin.role, "unit_id": admin.unit_id},
        commit=False,
    )
    db.session.commit()
    current_app.logger.info("Admin %s created unit admin %s", g.principal.account.id, admin.id)
    return jsonify(admin.to_dict(with_unit=True)), 201


@admin_bp.post("/units")
@admin_required(ROLE_SUPER_ADMIN)
def create_unit():
    form = validated(UnitForm())
    unit = Unit(
        name=form.name.data,
        municipality=form.municipality.data,
        province=form.province.data,
        description=form.description.data or None,
    )
    db.session.add(unit)
    db.session.flush()
    log_action("Created barangay", entity_type="unit", entity_id=unit.id, meta={"name": unit.name}, commit=False)
    db.session.commit()
    return jsonify(unit.to_dict()), 201


@admin_bp.post("/units/<int:unit_id>/deactivate")
@admin_required(ROLE_SUPER_ADMIN)
def deactivate_unit(unit_id: int):
    unit = db.session.get(Unit, unit_id)
    if unit is None:
        raise NotFoundError("Barangay not found")
    unit.is_active = False
    log_action(
        "Deactivated barangay", entity_type="unit", entity_id=unit.id, meta={"name": unit.name}, commit=False
    )
    db.session.commit()
    return jsonify(unit.to_dict())
