"""
Shared pytest fixtures.

Every test gets a fresh in-memory SQLite database. The API uses the same
session as the test so data created through either is visible to both.
"""

import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENVIRONMENT"] = "test"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from erp_api.database.database import Base, get_db, enable_sqlite_foreign_keys
import erp_api.modules.models  # noqa: F401
from erp_api.main import app


engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool
)
enable_sqlite_foreign_keys(engine)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


ADMIN_CREDENTIALS = {
    "name": "Admin User",
    "email": "admin@example.com",
    "password": "Admin123!",
}


@pytest.fixture
def db_session():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db_session):
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def admin_tokens(client):
    """Register the first user, who becomes the Admin"""
    response = client.post("/auth/register", json=ADMIN_CREDENTIALS)
    assert response.status_code == 201, response.text
    return response.json()


@pytest.fixture
def admin_user(admin_tokens):
    return admin_tokens["user"]


@pytest.fixture
def auth_headers(admin_tokens):
    return {"Authorization": f"Bearer {admin_tokens['access_token']}"}


@pytest.fixture
def make_user_headers(client, auth_headers):
    """Create a user with the given permissions and return their auth headers"""
    created = []

    def _make(permissions, role="Staff", email=None):
        email = email or f"user{len(created) + 1}@example.com"
        response = client.post("/users/", headers=auth_headers, json={
            "name": "Staff Member",
            "email": email,
            "role": role,
            "permissions": permissions,
            "password": "Staff123!",
        })
        assert response.status_code == 201, response.text
        created.append(response.json())

        login = client.post("/auth/login", data={"username": email, "password": "Staff123!"})
        assert login.status_code == 200, login.text
        return {"Authorization": f"Bearer {login.json()['access_token']}"}

    return _make
