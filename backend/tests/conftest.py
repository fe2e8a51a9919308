import itertools
import uuid
from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker

from digital_archive.database import get_db
from digital_archive.main import app
from digital_archive.config import settings
from digital_archive.models.user import User
from digital_archive.services.auth_service import auth_service
from digital_archive.utils.security import hash_password

API = "/api/v1"
PASSWORD = "correct-horse-battery"
ADMIN_EMAIL = "admin@example.com"


def _set_sqlite_pragmas(dbapi_conn, connection_record):
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


@pytest.fixture
def tmp_data(tmp_path):
    data_path = tmp_path / "DigitalArchive"
    data_path.mkdir()
    return data_path


@pytest.fixture
def test_db(tmp_data):
    db_path = tmp_data / "archive.sqlite"
    engine = create_engine(
        f"sqlite:///{db_path}",
        connect_args={"check_same_thread": False},
    )
    event.listen(engine, "connect", _set_sqlite_pragmas)
    TestSession = sessionmaker(bind=engine, autoflush=False, autocommit=False)

    from digital_archive.database import init_db
    init_db(db_path)

    def override_get_db():
        db = TestSession()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestSession
    app.dependency_overrides.clear()
    engine.dispose()


@pytest.fixture
def fresh_auth_service():
    """Reset session and throttle state for each test."""
    auth_service.clear()
    yield auth_service
    auth_service.clear()


@pytest.fixture
def client(tmp_data, test_db, fresh_auth_service):
    original_data_path = settings.data_path
    settings.data_path = tmp_data
    c = TestClient(app)
    yield c
    settings.data_path = original_data_path


@pytest.fixture
def login(client):
    def _login(email, password=PASSWORD):
        r = client.post(f"{API}/auth/login", json={"email": email, "password": password})
        assert r.status_code == 200, r.text
        return {"Authorization": f"Bearer {r.json()['token']}"}
    return _login


@pytest.fixture
def admin_headers(test_db, login):
    db = test_db()
    db.add(User(
        id=str(uuid.uuid4()),
        name="Platform Admin",
        email=ADMIN_EMAIL,
        role="admin",
        password_hash=hash_password(PASSWORD),
        status="active",
        created_at=datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
    ))
    db.commit()
    db.close()
    return login(ADMIN_EMAIL)


@pytest.fixture
def make_company(client, admin_headers, login):
    """Create a plan and a company on it; returns the plan, company and owner headers."""
    counter = itertools.count(1)

    def _make(active=True, **plan_fields):
        n = next(counter)
        plan = client.post(f"{API}/plans", json={"name": f"Plan {n}", **plan_fields}, headers=admin_headers)
        assert plan.status_code == 201, plan.text
        email = f"owner{n}@example.com"
        company = client.post(f"{API}/companies", json={
            "name": f"Company {n}",
            "contact_email": email,
            "admin_name": f"Owner {n}",
            "password": PASSWORD,
            "plan_id": plan.json()["id"],
        }, headers=admin_headers)
        assert company.status_code == 201, company.text
        if active:
            client.put(f"{API}/companies/{company.json()['id']}/status",
                       json={"status": "active"}, headers=admin_headers)
        return {"plan": plan.json(), "company": company.json(), "owner": login(email)}
    return _make


@pytest.fixture
def make_staff(client, login):
    """Create a staff user through the owner's account and sign them in."""
    counter = itertools.count(1)

    def _make(owner_headers, role, **fields):
        email = f"{role}{next(counter)}@example.com"
        r = client.post(f"{API}/users", json={
            "name": f"{role.title()} User",
            "email": email,
            "role": role,
            "password": PASSWORD,
            **fields,
        }, headers=owner_headers)
        assert r.status_code == 201, r.text
        return r.json(), login(email)
    return _make
