"""Main API routes.

This blueprint covers the complaint workflow and directory listings:

- Public: barangay list, global statistics, complaint filing and tracking
- Admin: complaint list, status updates, notes, resident directory

Resident auth is in `auth.py`, admin accounts in `admin.py`, the
community forum in `forum.py`.
"""

from __future__ import annotations

from flask import Blueprint, current_app, g, jsonify, request, send_from_directory

from . import complaints as lifecycle
from .errors import NotFoundError
from .extensions import db
from .forms import ComplaintForm, NoteForm, StatusForm
from .helpers import (
    admin_required,
    log_action,
    optional_resident,
    remove_uploaded_photo,
    save_uploaded_photo,
    validated,
)
from .models import Resident, Unit
from .policy import admin_unit_scope, can_manage_complaint, can_manage_resident


main_bp = Blueprint("main", __name__)


def _managed_complaint(complaint_id: str):
    """Load a complaint the calling admin may act on, else 404."""
    complaint = lifecycle.get_by_public_id(complaint_id)
    if complaint is None or not can_manage_complaint(g.principal.account, complaint):
        raise NotFoundError("Complaint not found")
    return complaint


@main_bp.get("/api/units")
@main_bp.get("/api/barangays")
def list_units():
    """Active barangays, for signup and filing forms."""
    units = Unit.query.filter_by(is_active=True).order_by(Unit.name.asc()).all()
    return jsonify([u.to_dict() for u in units])


@main_bp.get("/api/stats")
def stats():
    """Global complaint statistics (public)."""
    return jsonify(lifecycle.compute_stats())


@main_bp.post("/api/complaints")
def file_complaint():
    """File a complaint, with or without an account.

    A resident token, when presented, files the complaint under the
    resident's barangay unless the form names one explicitly.
    """
    form = validated(ComplaintForm())

    unit_id = form.barangayId.data
    if unit_id is None:
        principal = optional_resident()
        if principal is not None:
            unit_id = principal.account.unit_id

    photo_filename = save_uploaded_photo(form.photo.data)
    try:
        complaint = lifecycle.file_complaint(
            full_name=form.fullName.data,
            contact_number=form.contactNumber.data,
            email=form.email.data,
            category=form.category.data,
            description=form.description.data,
            location=form.location.data,
            priority=form.priority.data,
            photo_filename=photo_filename,
            unit_id=unit_id,
        )
    except Exception:
        remove_uploaded_photo(photo_filename)
        raise
    return jsonify(complaint.to_dict()), 201


@main_bp.get("/api/complaints/<string:complaint_id>")
def get_complaint(complaint_id: str):
    """Track a complaint by its public id; returns the record and its notes."""
    complaint = lifecycle.get_by_public_id(complaint_id)
    if complaint is None:
        raise NotFoundError("Complaint not found")
    return jsonify(lifecycle.complaint_detail(complaint))


@main_bp.get("/api/complaints")
@admin_required()
def list_complaints():
    unit_id = admin_unit_scope(g.principal.account, request.args.get("barangayId", type=int))
    return jsonify([c.to_dict() for c in lifecycle.list_complaints(unit_id)])


@main_bp.route("/api/complaints/<string:complaint_id>/status", methods=["PUT", "PATCH"])
@admin_required()
def update_complaint_status(complaint_id: str):
    form = validated(StatusForm())
    complaint = _managed_complaint(complaint_id)
    previous = complaint.status

    complaint = lifecycle.update_status(complaint_id, form.status.data, commit=False)
    if complaint is None:
        raise NotFoundError("Complaint not found")

    log_action(
        "Updated complaint status",
        entity_type="complaint",
        entity_id=complaint_id,
        meta={"from": previous, "to": complaint.status},
        commit=False,
    )
    db.session.commit()
    return jsonify(complaint.to_dict())


@main_bp.post("/api/complaints/<string:complaint_id>/notes")
@admin_required()
def add_complaint_note(complaint_id: str):
    _managed_complaint(complaint_id)
    form = validated(NoteForm())
    note = lifecycle.add_note(complaint_id, form.note.data, admin_id=g.principal.account.id, commit=False)
    log_action(
        "Added complaint note",
        entity_type="complaint",
        entity_id=complaint_id,
        meta={"note_id": note.id},
        commit=False,
    )
    db.session.commit()
    return jsonify(note.to_dict()), 201


@main_bp.get("/api/complaints/<string:complaint_id>/notes")
@admin_required()
def list_complaint_notes(complaint_id: str):
    _managed_complaint(complaint_id)
    return jsonify([n.to_dict() for n in lifecycle.list_notes(complaint_id)])


@main_bp.get("/api/users")
@main_bp.get("/api/users/<int:unit_id>")
@admin_required()
def list_residents(unit_id: int | None = None):
    """Active residents with their barangay.

    Super-admins may filter by `barangayId` or see every active barangay;
    unit-admins always get their own barangay.
    """
    if unit_id is None:
        unit_id = request.args.get("barangayId", type=int)
    scope = admin_unit_scope(g.principal.account, unit_id)

    query = Resident.query.join(Unit, Resident.unit_id == Unit.id).filter(Resident.is_active.is_(True))
    if scope is not None:
        query = query.filter(Resident.unit_id == scope)
    else:
        query = query.filter(Unit.is_active.is_(True))
    residents = query.order_by(Resident.last_name.asc(), Resident.first_name.asc()).all()
    return jsonify([r.to_dict(with_unit=True) for r in residents])


@main_bp.post("/api/users/<int:user_id>/verify")
@admin_required()
def verify_resident(user_id: int):
    resident = db.session.get(Resident, user_id)
    if resident is None or not can_manage_resident(g.principal.account, resident):
        raise NotFoundError("Resident not found")
    resident.is_verified = True
    log_action("Verified resident", entity_type="resident", entity_id=resident.id, commit=False)
    db.session.commit()
    return jsonify(resident.to_dict(with_unit=True))


@main_bp.get("/uploads/<path:filename>")
def uploaded_photo(filename: str):
    """Serve a stored complaint photo read-only."""
    return send_from_directory(current_app.config["UPLOAD_FOLDER"], filename)
