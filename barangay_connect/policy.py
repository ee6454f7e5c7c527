"""
Tenancy rules: which principal may see or change which rows.

- Anonymous callers may file complaints and read one by its exact public id.
- Residents see forum content of their own unit only.
- Unit-admins act on complaints and residents of their own unit only.
- Super-admins act across every unit and alone may provision admins/units.

The acting principal's unit always wins over a unit id supplied by the
client; a request naming a foreign unit is refused outright.
"""
from __future__ import annotations

from .errors import AuthorizationError
from .models import Admin, Complaint, Resident


def admin_unit_scope(admin: Admin, requested_unit_id: int | None = None) -> int | None:
    """Return the unit an admin query must be restricted to.

    None means "every unit" and is only ever returned for a super-admin
    who did not ask for a specific unit.
    """
    if admin.is_super_admin:
        return requested_unit_id
    if requested_unit_id is not None and requested_unit_id != admin.unit_id:
        raise AuthorizationError("You can only access your own barangay")
    return admin.unit_id


def resident_unit_scope(resident: Resident, requested_unit_id: int | None = None) -> int:
    """Return the resident's unit, refusing requests for any other unit."""
    if requested_unit_id is not None and requested_unit_id != resident.unit_id:
        raise AuthorizationError("You can only access your own barangay")
    return resident.unit_id


def can_manage_complaint(admin: Admin, complaint: Complaint) -> bool:
    """Unit-admins manage only complaints filed under their unit."""
    if admin.is_super_admin:
        return True
    return complaint.unit_id is not None and complaint.unit_id == admin.unit_id


def can_manage_resident(admin: Admin, resident: Resident) -> bool:
    return admin.is_super_admin or resident.unit_id == admin.unit_id
