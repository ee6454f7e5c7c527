from barangay_connect.models import AuditLog, Resident


def _auth(token):
    return {"Authorization": f"Bearer {token}"}


def _signup_payload(unit, **overrides):
    payload = {
        "email": "ana@example.com",
        "password": "Secret123!",
        "firstName": "Ana",
        "lastName": "Reyes",
        "contactNumber": "0917 123 4567",
        "address": "45 Mabini Street, Purok 2",
        "barangayId": unit.id,
    }
    payload.update(overrides)
    return payload


def test_signup_login_and_me(client, make_unit):
    unit = make_unit()

    resp = client.post("/api/auth/signup", json=_signup_payload(unit))
    assert resp.status_code == 201
    user_id = resp.get_json()["userId"]

    resp = client.post("/api/auth/login", json={"email": "ana@example.com", "password": "Secret123!"})
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["sessionToken"]
    assert body["user"]["id"] == user_id
    assert body["user"]["barangay"]["name"] == unit.name
    assert "passwordHash" not in body["user"]

    resp = client.get("/api/auth/me", headers=_auth(body["sessionToken"]))
    assert resp.status_code == 200
    assert resp.get_json()["email"] == "ana@example.com"


def test_signup_duplicate_email_creates_no_row(client, make_unit):
    unit = make_unit()
    assert client.post("/api/auth/signup", json=_signup_payload(unit)).status_code == 201

    resp = client.post("/api/auth/signup", json=_signup_payload(unit, firstName="Other"))
    assert resp.status_code == 400
    assert resp.get_json()["message"] == "Email already registered"
    assert Resident.query.filter_by(email="ana@example.com").count() == 1


def test_signup_validation_errors(client, make_unit):
    unit = make_unit()
    inactive = make_unit(name="Closed Barangay", is_active=False)

    resp = client.post(
        "/api/auth/signup",
        json=_signup_payload(unit, password="short", contactNumber="12345", address="Short"),
    )
    assert resp.status_code == 400
    errors = resp.get_json()["errors"]
    assert set(errors) >= {"password", "contactNumber", "address"}

    resp = client.post("/api/auth/signup", json=_signup_payload(inactive))
    assert resp.status_code == 400
    assert "barangayId" in resp.get_json()["errors"]
    assert Resident.query.count() == 0


def test_login_wrong_password(client, make_unit, make_resident):
    make_resident(make_unit())

    resp = client.post("/api/auth/login", json={"email": "juan@example.com", "password": "nope-nope"})
    assert resp.status_code == 401
    assert resp.get_json()["message"] == "Invalid email or password"


def test_logout_invalidates_token(client, make_unit, make_resident, resident_token):
    make_resident(make_unit())
    token = resident_token()

    resp = client.post("/api/auth/logout", headers=_auth(token))
    assert resp.status_code == 200

    resp = client.get("/api/auth/me", headers=_auth(token))
    assert resp.status_code == 401

    # A destroyed token cannot log out again.
    resp = client.post("/api/auth/logout", headers=_auth(token))
    assert resp.status_code == 401


def test_missing_and_malformed_tokens(client):
    resp = client.get("/api/auth/me")
    assert resp.status_code == 401
    assert resp.get_json()["message"] == "Authentication required"

    resp = client.get("/api/auth/me", headers={"Authorization": "Token abc"})
    assert resp.status_code == 401

    resp = client.get("/api/auth/me", headers=_auth("not-a-real-token"))
    assert resp.status_code == 401
    assert resp.get_json()["message"] == "Invalid or expired session"


def test_login_rate_limit(client, app, make_unit, make_resident):
    make_resident(make_unit())
    max_attempts = int(app.config.get("LOGIN_RATE_LIMIT_MAX", 3))

    for _ in range(max_attempts):
        client.post("/api/auth/login", json={"email": "juan@example.com", "password": "WrongPass123!"})

    resp = client.post("/api/auth/login", json={"email": "juan@example.com", "password": "Resident123!"})
    assert resp.status_code == 401
    assert "Too many failed login attempts" in resp.get_json()["message"]


def test_admin_login_and_logout(client, make_admin):
    admin = make_admin()

    resp = client.post("/api/admin/login", json={"username": admin.email, "password": "wrong-password"})
    assert resp.status_code == 401
    assert resp.get_json()["message"] == "Invalid credentials"

    resp = client.post("/api/admin/login", json={"username": admin.email, "password": "Admin123!"})
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["isSuperAdmin"] is True
    assert body["user"]["role"] == "super_admin"
    token = body["sessionToken"]

    resp = client.get("/api/admin/me", headers=_auth(token))
    assert resp.status_code == 200
    assert resp.get_json()["isSuperAdmin"] is True

    assert client.post("/api/admin/logout", headers=_auth(token)).status_code == 200
    assert client.get("/api/admin/me", headers=_auth(token)).status_code == 401

    actions = [log.action for log in AuditLog.query.order_by(AuditLog.id).all()]
    assert "Admin logged in" in actions
    assert "Admin logged out" in actions


def test_unit_admin_login_reports_not_super(client, make_unit, make_admin):
    unit = make_unit()
    make_admin(email="unit@example.com", unit=unit)

    resp = client.post("/api/admin/login", json={"username": "unit@example.com", "password": "Admin123!"})
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["isSuperAdmin"] is False
    assert body["user"]["barangay"]["id"] == unit.id


def test_numeric_password_is_a_validation_error(client, make_unit, make_resident):
    unit = make_unit()
    make_resident(unit)

    resp = client.post("/api/auth/signup", json=_signup_payload(unit, password=123456789012))
    assert resp.status_code == 400
    assert "password" in resp.get_json()["errors"]

    resp = client.post("/api/auth/login", json={"email": "juan@example.com", "password": 12345678})
    assert resp.status_code == 400
    assert "password" in resp.get_json()["errors"]
