"""
Complaint lifecycle: filing, lookup, status changes, notes and statistics.

Callers validate request input with the forms in `forms.py` and apply the
tenancy rules in `policy.py`; the functions here own persistence and the
invariants of the records themselves:

- every complaint gets one public id, ``BC-<year>-<8 hex>``, never reused;
- status is one of Submitted / Under Review / Resolved.  Any value may be
  set at any time, backward moves included, and every change bumps
  `updated_at`;
- notes are append-only.

Statistics are recomputed with aggregate counts on every call, which is
linear in the number of complaints.
"""
from __future__ import annotations

import csv
import io
import secrets
from datetime import datetime

from flask import current_app
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from .errors import InternalError, NotFoundError, ValidationError
from .extensions import db
from .models import COMPLAINT_STATUSES, PENDING_STATUSES, AdminNote, Complaint
from .time_utils import month_bounds, utcnow


COMPLAINT_ID_ATTEMPTS = 5
CSV_HEADERS = [
    "ID",
    "Name",
    "Contact",
    "Email",
    "Category",
    "Priority",
    "Status",
    "Location",
    "Description",
    "Created At",
]


def generate_complaint_id(now: datetime | None = None) -> str:
    year = (now or utcnow()).year
    return f"BC-{year}-{secrets.token_hex(4).upper()}"


def file_complaint(
    *,
    full_name: str,
    contact_number: str,
    category: str,
    description: str,
    location: str,
    priority: str = "Low",
    email: str | None = None,
    photo_filename: str | None = None,
    unit_id: int | None = None,
) -> Complaint:
    """Persist a new complaint with status Submitted and a fresh public id."""
    for _ in range(COMPLAINT_ID_ATTEMPTS):
        complaint_id = generate_complaint_id()
        if Complaint.query.filter_by(complaint_id=complaint_id).first() is not None:
            continue

        now = utcnow()
        complaint = Complaint(
            complaint_id=complaint_id,
            full_name=full_name,
            contact_number=contact_number,
            email=email or None,
            category=category,
            description=description,
            location=location,
            priority=priority or "Low",
            status="Submitted",
            photo_filename=photo_filename,
            unit_id=unit_id,
            created_at=now,
            updated_at=now,
        )
        db.session.add(complaint)
        try:
            db.session.commit()
        except IntegrityError:
            # Lost a race for the same id; draw another.
            db.session.rollback()
            continue

        current_app.logger.info(
            "Complaint filed: %s category=%s priority=%s unit=%s",
            complaint.complaint_id,
            complaint.category,
            complaint.priority,
            complaint.unit_id,
        )
        return complaint

    raise InternalError("Could not allocate a complaint id. Please try again.")


def get_by_public_id(complaint_id: str) -> Complaint | None:
    return Complaint.query.filter_by(complaint_id=complaint_id).first()


def list_complaints(unit_id: int | None = None) -> list[Complaint]:
    """All complaints, newest first, optionally restricted to one unit."""
    query = Complaint.query
    if unit_id is not None:
        query = query.filter(Complaint.unit_id == unit_id)
    return query.order_by(Complaint.created_at.desc(), Complaint.id.desc()).all()


def update_status(complaint_id: str, new_status: str, *, commit: bool = True) -> Complaint | None:
    """Set the status of a complaint.

    With `commit=False` the change is only staged, so the caller can add
    related rows and commit them together.

    Returns:
        The updated complaint, or None if no complaint has that public id.

    Raises:
        ValidationError: `new_status` is not one of the allowed values.
    """
    if new_status not in COMPLAINT_STATUSES:
        raise ValidationError("Invalid status", errors={"status": [f"Must be one of: {', '.join(COMPLAINT_STATUSES)}."]})

    complaint = get_by_public_id(complaint_id)
    if complaint is None:
        return None

    previous = complaint.status
    complaint.status = new_status
    complaint.updated_at = utcnow()
    if commit:
        db.session.commit()
    current_app.logger.info("Complaint %s status %s -> %s", complaint_id, previous, new_status)
    return complaint


def add_note(complaint_id: str, text: str | None, admin_id: int | None = None, *, commit: bool = True) -> AdminNote:
    """Append a note to a complaint.  The complaint's status is untouched."""
    text = (text or "").strip()
    if not text:
        raise ValidationError(errors={"note": ["Note cannot be empty."]})
    if get_by_public_id(complaint_id) is None:
        raise NotFoundError("Complaint not found")

    note = AdminNote(complaint_id=complaint_id, note=text, admin_id=admin_id)
    db.session.add(note)
    if commit:
        db.session.commit()
    else:
        db.session.flush()
    current_app.logger.info("Note %s added to complaint %s", note.id, complaint_id)
    return note


def list_notes(complaint_id: str) -> list[AdminNote]:
    """Notes for a complaint in insertion order."""
    return AdminNote.query.filter_by(complaint_id=complaint_id).order_by(AdminNote.id.asc()).all()


def complaint_detail(complaint: Complaint) -> dict:
    data = complaint.to_dict()
    data["notes"] = [n.to_dict() for n in list_notes(complaint.complaint_id)]
    return data


def compute_stats(unit_id: int | None = None, now: datetime | None = None) -> dict[str, int]:
    """Counts of all, resolved, pending and this-month complaints.

    "This month" is the calendar month of the server clock at call time.
    """
    base = db.session.query(func.count(Complaint.id))
    if unit_id is not None:
        base = base.filter(Complaint.unit_id == unit_id)
    month_start, month_end = month_bounds(now or utcnow())

    return {
        "total": int(base.scalar() or 0),
        "resolved": int(base.filter(Complaint.status == "Resolved").scalar() or 0),
        "pending": int(base.filter(Complaint.status.in_(PENDING_STATUSES)).scalar() or 0),
        "thisMonth": int(
            base.filter(
                Complaint.created_at >= month_start,
                Complaint.created_at < month_end,
            ).scalar()
            or 0
        ),
    }


def export_csv(complaints: list[Complaint]) -> str:
    """Render complaints as CSV; fields with commas or quotes are quoted."""
    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(CSV_HEADERS)
    for c in complaints:
        writer.writerow(
            [
                c.complaint_id,
                c.full_name,
                c.contact_number,
                c.email or "",
                c.category,
                c.priority,
                c.status,
                c.location,
                c.description,
                c.created_at.date().isoformat() if c.created_at else "",
            ]
        )
    return output.getvalue()
