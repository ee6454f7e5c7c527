import pytest

from barangay_connect.errors import AuthorizationError
from barangay_connect.models import Admin, AuditLog, Unit
from barangay_connect.policy import admin_unit_scope, can_manage_complaint, resident_unit_scope


def _auth(token):
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def two_units(make_unit):
    return make_unit(name="San Isidro"), make_unit(name="Santa Cruz", municipality="Manila")


@pytest.fixture
def unit_admin_token(make_admin, admin_token, two_units):
    make_admin(email="isidro.admin@example.com", unit=two_units[0])
    return admin_token("isidro.admin@example.com")


@pytest.fixture
def super_admin_token(make_admin, admin_token):
    make_admin(email="super@example.com")
    return admin_token("super@example.com")


def test_scope_helpers(make_admin, make_resident, make_complaint, two_units):
    isidro, cruz = two_units
    unit_admin = make_admin(email="isidro.admin@example.com", unit=isidro)
    super_admin = make_admin(email="super@example.com")
    resident = make_resident(cruz)

    assert admin_unit_scope(super_admin) is None
    assert admin_unit_scope(super_admin, cruz.id) == cruz.id
    assert admin_unit_scope(unit_admin) == isidro.id
    assert admin_unit_scope(unit_admin, isidro.id) == isidro.id
    with pytest.raises(AuthorizationError):
        admin_unit_scope(unit_admin, cruz.id)

    assert resident_unit_scope(resident) == cruz.id
    with pytest.raises(AuthorizationError):
        resident_unit_scope(resident, isidro.id)

    anonymous = make_complaint()
    assert can_manage_complaint(super_admin, anonymous)
    assert not can_manage_complaint(unit_admin, anonymous)
    assert can_manage_complaint(unit_admin, make_complaint(unit=isidro))
    assert not can_manage_complaint(unit_admin, make_complaint(unit=cruz))


def test_unit_admin_sees_only_own_complaints(client, two_units, make_complaint, unit_admin_token, super_admin_token):
    isidro, cruz = two_units
    own = make_complaint(unit=isidro)
    make_complaint(unit=cruz)
    make_complaint()

    resp = client.get("/api/complaints", headers=_auth(unit_admin_token))
    assert resp.status_code == 200
    assert [c["complaintId"] for c in resp.get_json()] == [own.complaint_id]

    resp = client.get(f"/api/complaints?barangayId={cruz.id}", headers=_auth(unit_admin_token))
    assert resp.status_code == 403

    resp = client.get("/api/complaints", headers=_auth(super_admin_token))
    assert len(resp.get_json()) == 3

    resp = client.get(f"/api/complaints?barangayId={cruz.id}", headers=_auth(super_admin_token))
    assert [c["barangayId"] for c in resp.get_json()] == [cruz.id]


def test_unit_admin_cannot_touch_foreign_complaint(client, two_units, make_complaint, unit_admin_token):
    _, cruz = two_units
    foreign = make_complaint(unit=cruz)

    resp = client.put(
        f"/api/complaints/{foreign.complaint_id}/status",
        json={"status": "Resolved"},
        headers=_auth(unit_admin_token),
    )
    assert resp.status_code == 404

    resp = client.post(
        f"/api/complaints/{foreign.complaint_id}/notes",
        json={"note": "Not my barangay."},
        headers=_auth(unit_admin_token),
    )
    assert resp.status_code == 404

    assert client.get(f"/api/complaints/{foreign.complaint_id}").get_json()["status"] == "Submitted"


def test_status_change_is_audited(client, two_units, make_complaint, unit_admin_token):
    complaint = make_complaint(unit=two_units[0])

    resp = client.put(
        f"/api/complaints/{complaint.complaint_id}/status",
        json={"status": "Under Review"},
        headers=_auth(unit_admin_token),
    )
    assert resp.status_code == 200

    entry = AuditLog.query.filter_by(action="Updated complaint status").one()
    assert entry.actor_kind == "admin"
    assert entry.entity_id == complaint.complaint_id
    assert entry.meta == {"from": "Submitted", "to": "Under Review"}


def test_admin_stats_are_scoped(client, two_units, make_complaint, unit_admin_token, super_admin_token):
    isidro, cruz = two_units
    make_complaint(unit=isidro)
    make_complaint(unit=cruz)
    make_complaint(unit=cruz)

    assert client.get("/api/admin/stats", headers=_auth(unit_admin_token)).get_json()["total"] == 1
    assert client.get("/api/admin/stats", headers=_auth(super_admin_token)).get_json()["total"] == 3
    resp = client.get(f"/api/admin/stats?barangayId={cruz.id}", headers=_auth(super_admin_token))
    assert resp.get_json()["total"] == 2


def test_csv_export_is_scoped(client, two_units, make_complaint, unit_admin_token):
    isidro, cruz = two_units
    own = make_complaint(unit=isidro)
    foreign = make_complaint(unit=cruz)

    text = client.get("/api/admin/export", headers=_auth(unit_admin_token)).data.decode("utf-8")
    assert own.complaint_id in text
    assert foreign.complaint_id not in text


def test_super_admin_creates_unit_admin(client, two_units, super_admin_token):
    isidro, _ = two_units
    payload = {
        "email": "new.admin@example.com",
        "password": "Welcome123!",
        "firstName": "Pedro",
        "lastName": "Garcia",
        "barangayId": isidro.id,
    }

    resp = client.post("/api/admin/create", json=payload, headers=_auth(super_admin_token))
    assert resp.status_code == 201
    body = resp.get_json()
    assert body["role"] == "unit_admin"
    assert body["barangayId"] == isidro.id

    resp = client.post("/api/admin/create", json=payload, headers=_auth(super_admin_token))
    assert resp.status_code == 400
    assert Admin.query.filter_by(email="new.admin@example.com").count() == 1

    resp = client.post("/api/admin/login", json={"username": "new.admin@example.com", "password": "Welcome123!"})
    assert resp.status_code == 200


def test_unit_admin_cannot_use_super_admin_endpoints(client, two_units, unit_admin_token):
    isidro, _ = two_units
    payload = {
        "email": "sneaky@example.com",
        "password": "Welcome123!",
        "firstName": "Sneaky",
        "lastName": "Admin",
        "barangayId": isidro.id,
    }

    assert client.post("/api/admin/create", json=payload, headers=_auth(unit_admin_token)).status_code == 403
    assert client.get("/api/admin/users", headers=_auth(unit_admin_token)).status_code == 403
    resp = client.post(
        "/api/admin/units",
        json={"name": "Rogue", "municipality": "Nowhere", "province": "Nowhere"},
        headers=_auth(unit_admin_token),
    )
    assert resp.status_code == 403
    assert Admin.query.filter_by(email="sneaky@example.com").first() is None


def test_super_admin_manages_units(client, super_admin_token):
    resp = client.post(
        "/api/admin/units",
        json={"name": "Bagong Silang", "municipality": "Caloocan", "province": "Metro Manila"},
        headers=_auth(super_admin_token),
    )
    assert resp.status_code == 201
    unit_id = resp.get_json()["id"]
    assert [u["name"] for u in client.get("/api/barangays").get_json()] == ["Bagong Silang"]

    resp = client.post(
        "/api/admin/units",
        json={"name": "Bagong Silang", "municipality": "Caloocan", "province": "Metro Manila"},
        headers=_auth(super_admin_token),
    )
    assert resp.status_code == 400
    assert "name" in resp.get_json()["errors"]

    resp = client.post(f"/api/admin/units/{unit_id}/deactivate", headers=_auth(super_admin_token))
    assert resp.status_code == 200
    assert resp.get_json()["isActive"] is False
    assert client.get("/api/barangays").get_json() == []
    assert Unit.query.count() == 1


def test_resident_directory_is_scoped(client, two_units, make_resident, unit_admin_token, super_admin_token):
    isidro, cruz = two_units
    own = make_resident(isidro, email="own@example.com")
    make_resident(cruz, email="other@example.com")

    resp = client.get("/api/users", headers=_auth(unit_admin_token))
    assert [r["email"] for r in resp.get_json()] == ["own@example.com"]
    assert resp.get_json()[0]["barangay"]["name"] == "San Isidro"

    assert client.get(f"/api/users/{cruz.id}", headers=_auth(unit_admin_token)).status_code == 403
    assert client.get(f"/api/users/{isidro.id}", headers=_auth(unit_admin_token)).status_code == 200

    assert len(client.get("/api/users", headers=_auth(super_admin_token)).get_json()) == 2
    resp = client.get(f"/api/users/{cruz.id}", headers=_auth(super_admin_token))
    assert [r["email"] for r in resp.get_json()] == ["other@example.com"]

    resp = client.post(f"/api/users/{own.id}/verify", headers=_auth(unit_admin_token))
    assert resp.status_code == 200
    assert resp.get_json()["isVerified"] is True


def test_unit_admin_cannot_verify_foreign_resident(client, two_units, make_resident, unit_admin_token):
    _, cruz = two_units
    foreign = make_resident(cruz, email="other@example.com")

    resp = client.post(f"/api/users/{foreign.id}/verify", headers=_auth(unit_admin_token))
    assert resp.status_code == 404
