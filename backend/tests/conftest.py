import os
import tempfile
import uuid
from pathlib import Path

import pytest

_TEST_DB = Path(tempfile.mkdtemp(prefix="dental-chart-tests-")) / "test.db"

# Must be set before the app (and its engine) is imported.
os.environ["DATABASE_URL"] = os.getenv("TEST_DATABASE_URL", f"sqlite:///{_TEST_DB}")
os.environ.setdefault("SECRET_KEY", "test-secret-key-that-is-long-enough-1234567890")
os.environ.setdefault("PROCEDURE_REVISION_RETENTION", "20")
os.environ.setdefault("LOGIN_ATTEMPTS_PER_MINUTE", "1000")


@pytest.fixture(scope="session")
def admin_credentials():
    email = os.getenv("ADMIN_EMAIL", "admin@example.com")
    password = os.getenv("ADMIN_PASSWORD", "ChangeMe123!")
    return email, password


@pytest.fixture(scope="session")
def api_client():
    from fastapi.testclient import TestClient

    from app.main import app

    with TestClient(app) as client:
        yield client


@pytest.fixture(scope="session")
def auth_headers(api_client, admin_credentials):
    email, password = admin_credentials
    response = api_client.post("/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200, response.text
    token = response.json().get("access_token")
    assert token, "Missing access_token in login response"
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def db_session(api_client):
    from app.db.session import SessionLocal

    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def make_user_headers(api_client, db_session):
    """Create a throwaway user (optionally in a new organization) and log in as them."""
    from app.core.settings import settings
    from app.models.user import Role
    from app.services.users import create_user, ensure_organization

    def _make(role: str = "dentist", organization_name: str | None = None):
        organization = ensure_organization(
            db_session, organization_name or settings.default_organization_name
        )
        email = f"{role}-{uuid.uuid4().hex[:8]}@example.com"
        password = "ChangeMe12345!"
        create_user(
            db_session,
            organization_id=organization.id,
            email=email,
            password=password,
            full_name=f"Test {role}",
            role=Role(role),
        )
        response = api_client.post("/auth/login", json={"email": email, "password": password})
        assert response.status_code == 200, response.text
        return {"Authorization": f"Bearer {response.json()['access_token']}"}

    return _make


@pytest.fixture(scope="session")
def code_ids(api_client, auth_headers):
    response = api_client.get("/dental-codes", headers=auth_headers)
    assert response.status_code == 200, response.text
    return {item["code"]: item["id"] for item in response.json()}


@pytest.fixture()
def patient_id(api_client, auth_headers):
    payload = {"first_name": "Chart", "last_name": f"Patient-{uuid.uuid4().hex[:6]}"}
    response = api_client.post("/patients", json=payload, headers=auth_headers)
    assert response.status_code == 201, response.text
    return response.json()["id"]
