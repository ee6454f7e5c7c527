import pytest

from barangay_connect import complaints as lifecycle
from barangay_connect.app import create_app
from barangay_connect.config import TestingConfig
from barangay_connect.extensions import db
from barangay_connect.models import ROLE_SUPER_ADMIN, ROLE_UNIT_ADMIN, Admin, Resident, Unit


@pytest.fixture
def app(tmp_path):
    db_path = tmp_path / "test.sqlite"
    upload_dir = tmp_path / "uploads"

    class TestConfig(TestingConfig):
        SQLALCHEMY_DATABASE_URI = f"sqlite:///{db_path}"
        LOGIN_RATE_LIMIT_MAX = 3
        LOGIN_RATE_LIMIT_WINDOW_SECONDS = 60
        MAIL_SUPPRESS_SEND = True
        AUTO_MIGRATE = False
        AUTO_CREATE_DB = True
        UPLOAD_FOLDER = str(upload_dir)
        PHOTO_MAX_BYTES = 1024
        SECURITY_HEADERS_ENABLED = False
        ERROR_REPORT_EMAIL = ""
        SEED_SUPER_ADMIN_EMAIL = ""
        SEED_SUPER_ADMIN_PASSWORD = ""
        SEED_UNIT_ADMIN_EMAIL = ""
        SEED_UNIT_ADMIN_PASSWORD = ""

    app = create_app(TestConfig)
    return app


@pytest.fixture(autouse=True)
def _setup_db(app):
    with app.app_context():
        db.drop_all()
        db.create_all()
        yield
        db.session.remove()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def db_session(app):
    with app.app_context():
        yield db.session


@pytest.fixture
def make_unit(db_session):
    def _make_unit(name="San Isidro", municipality="Quezon City", province="Metro Manila", is_active=True):
        unit = Unit(name=name, municipality=municipality, province=province, is_active=is_active)
        db_session.add(unit)
        db_session.commit()
        return unit

    return _make_unit


@pytest.fixture
def make_resident(db_session):
    def _make_resident(unit, email="juan@example.com", password="Resident123!", first_name="Juan", last_name="Dela Cruz"):
        resident = Resident(
            email=email,
            first_name=first_name,
            last_name=last_name,
            contact_number="09171234567",
            address="123 Rizal Street, Purok 3",
            unit_id=unit.id,
        )
        resident.set_password(password)
        db_session.add(resident)
        db_session.commit()
        return resident

    return _make_resident


@pytest.fixture
def make_admin(db_session):
    def _make_admin(email="admin@example.com", password="Admin123!", unit=None):
        admin = Admin(
            email=email,
            first_name="Maria",
            last_name="Santos",
            role=ROLE_UNIT_ADMIN if unit is not None else ROLE_SUPER_ADMIN,
            unit_id=unit.id if unit is not None else None,
        )
        admin.set_password(password)
        db_session.add(admin)
        db_session.commit()
        return admin

    return _make_admin


@pytest.fixture
def make_complaint(db_session):
    def _make_complaint(unit=None, **overrides):
        fields = {
            "full_name": "Juan Dela Cruz",
            "contact_number": "09171234567",
            "category": "noise",
            "description": "Loud karaoke every night past midnight",
            "location": "Purok 3, San Isidro",
            "unit_id": unit.id if unit is not None else None,
        }
        fields.update(overrides)
        return lifecycle.file_complaint(**fields)

    return _make_complaint


@pytest.fixture
def resident_token(client):
    def _login(email="juan@example.com", password="Resident123!"):
        resp = client.post("/api/auth/login", json={"email": email, "password": password})
        assert resp.status_code == 200, resp.get_json()
        return resp.get_json()["sessionToken"]

    return _login


@pytest.fixture
def admin_token(client):
    def _login(email="admin@example.com", password="Admin123!"):
        resp = client.post("/api/admin/login", json={"username": email, "password": password})
        assert resp.status_code == 200, resp.get_json()
        return resp.get_json()["sessionToken"]

    return _login
