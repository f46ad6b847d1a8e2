"""
Tests for the Auth module

Covers registration (first user becomes Admin), login with the OAuth2
password form, token refresh and permission checks.
"""

import pytest
from fastapi import HTTPException
from datetime import timedelta

from erp_api.modules.auth.models import Permission, ADMIN_ROLE, DEFAULT_ROLE, ALL_PERMISSIONS
from erp_api.modules.auth.utils import (
    hash_password, verify_password, create_access_token, create_refresh_token, verify_token
)


# ===== FIXTURES =====

@pytest.fixture
def second_user_data():
    return {"name": "Second User", "email": "second@example.com", "password": "Second123!"}


# ===== UTILS =====

class TestAuthUtils:
    """Password hashing and JWT helpers"""

    def test_hash_and_verify_password(self):
        hashed = hash_password("Secret123!")
        assert hashed != "Secret123!"
        assert verify_password("Secret123!", hashed)
        assert not verify_password("wrong-password", hashed)

    def test_access_token_round_trip(self):
        token = create_access_token({"sub": "abc"})
        payload = verify_token(token, expected_type="access")
        assert payload["sub"] == "abc"

    def test_refresh_token_rejected_as_access(self):
        token = create_refresh_token("abc")
        with pytest.raises(HTTPException) as exc:
            verify_token(token, expected_type="access")
        assert exc.value.status_code == 401

    def test_expired_token_rejected(self):
        token = create_access_token({"sub": "abc"}, expires_delta=timedelta(seconds=-1))
        with pytest.raises(HTTPException):
            verify_token(token)


# ===== REGISTRATION =====

class TestRegister:
    """Registration endpoint"""

    def test_first_user_is_admin(self, admin_tokens):
        user = admin_tokens["user"]
        assert user["role"] == ADMIN_ROLE
        assert set(user["permissions"]) == set(ALL_PERMISSIONS)
        assert admin_tokens["token_type"] == "bearer"
        assert admin_tokens["refresh_token"]

    def test_later_users_have_no_permissions(self, client, admin_tokens, second_user_data):
        response = client.post("/auth/register", json=second_user_data)
        assert response.status_code == 201
        user = response.json()["user"]
        assert user["role"] == DEFAULT_ROLE
        assert user["permissions"] == []

    def test_duplicate_email(self, client, admin_tokens):
        response = client.post("/auth/register", json={
            "name": "Another Admin",
            "email": "ADMIN@example.com",
            "password": "Another123!",
        })
        assert response.status_code == 409

    def test_short_password(self, client):
        response = client.post("/auth/register", json={
            "name": "Short", "email": "short@example.com", "password": "abc"
        })
        assert response.status_code == 422


# ===== LOGIN =====

class TestLogin:
    """Login, refresh and current user"""

    def test_login_success(self, client, admin_tokens):
        response = client.post("/auth/login", data={
            "username": "admin@example.com", "password": "Admin123!"
        })
        assert response.status_code == 200
        data = response.json()
        assert data["access_token"]
        assert data["user"]["last_login"] is not None

    def test_login_wrong_password(self, client, admin_tokens):
        response = client.post("/auth/login", data={
            "username": "admin@example.com", "password": "wrong-password"
        })
        assert response.status_code == 401

    def test_login_disabled_user(self, client, auth_headers, make_user_headers):
        make_user_headers([], email="disabled@example.com")
        users = client.get("/users/", headers=auth_headers, params={"search": "disabled"}).json()["users"]
        client.patch(f"/users/{users[0]['id']}", headers=auth_headers, json={"is_active": False})

        response = client.post("/auth/login", data={
            "username": "disabled@example.com", "password": "Staff123!"
        })
        assert response.status_code == 403

    def test_refresh(self, client, admin_tokens):
        response = client.post("/auth/refresh", json={"refresh_token": admin_tokens["refresh_token"]})
        assert response.status_code == 200
        assert response.json()["access_token"]

    def test_refresh_with_access_token_fails(self, client, admin_tokens):
        response = client.post("/auth/refresh", json={"refresh_token": admin_tokens["access_token"]})
        assert response.status_code == 401

    def test_me(self, client, auth_headers):
        response = client.get("/auth/me", headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["email"] == "admin@example.com"

    def test_me_without_token(self, client):
        response = client.get("/auth/me")
        assert response.status_code == 401

    def test_logout(self, client, auth_headers):
        response = client.post("/auth/logout", headers=auth_headers)
        assert response.status_code == 200


# ===== PERMISSIONS =====

class TestPermissions:
    """Module permissions guard every endpoint"""

    def test_user_without_permission_is_forbidden(self, client, make_user_headers):
        headers = make_user_headers([Permission.INVENTORY.value])
        response = client.get("/customers/", headers=headers)
        assert response.status_code == 403
        assert "customer-management" in response.json()["detail"]

    def test_user_with_permission_is_allowed(self, client, make_user_headers):
        headers = make_user_headers([Permission.CUSTOMER_MANAGEMENT.value])
        response = client.get("/customers/", headers=headers)
        assert response.status_code == 200
