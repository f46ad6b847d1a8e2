"""
Tests for the Users module

User administration requires the user-management permission; the Admin
role holds it implicitly.
"""

import pytest

from erp_api.modules.auth.models import Permission, ALL_PERMISSIONS


# ===== FIXTURES =====

@pytest.fixture
def sample_user_data():
    return {
        "name": "Jane Accountant",
        "email": "jane@example.com",
        "role": "Accountant",
        "permissions": [Permission.ACCOUNTING.value, Permission.REPORTING.value],
        "password": "Jane1234!",
    }


# ===== CRUD =====

class TestUserCrud:
    """Create, read, update and delete users"""

    def test_create_user(self, client, auth_headers, sample_user_data):
        response = client.post("/users/", headers=auth_headers, json=sample_user_data)
        assert response.status_code == 201
        data = response.json()
        assert data["email"] == "jane@example.com"
        assert data["role"] == "Accountant"
        assert data["permissions"] == ["accounting", "reporting"]
        assert "password" not in data

    def test_create_user_duplicate_email(self, client, auth_headers, sample_user_data):
        client.post("/users/", headers=auth_headers, json=sample_user_data)
        response = client.post("/users/", headers=auth_headers, json=sample_user_data)
        assert response.status_code == 409

    def test_create_user_unknown_permission(self, client, auth_headers, sample_user_data):
        sample_user_data["permissions"] = ["accounting", "time-travel"]
        response = client.post("/users/", headers=auth_headers, json=sample_user_data)
        assert response.status_code == 422

    def test_create_user_short_name(self, client, auth_headers, sample_user_data):
        sample_user_data["name"] = "J"
        response = client.post("/users/", headers=auth_headers, json=sample_user_data)
        assert response.status_code == 422

    def test_list_users_with_search(self, client, auth_headers, sample_user_data):
        client.post("/users/", headers=auth_headers, json=sample_user_data)

        response = client.get("/users/", headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["total"] == 2

        response = client.get("/users/", headers=auth_headers, params={"search": "jane"})
        data = response.json()
        assert data["total"] == 1
        assert data["users"][0]["name"] == "Jane Accountant"

    def test_list_users_by_role(self, client, auth_headers, sample_user_data):
        client.post("/users/", headers=auth_headers, json=sample_user_data)
        response = client.get("/users/", headers=auth_headers, params={"role": "Accountant"})
        assert response.json()["total"] == 1

    def test_update_user_permissions(self, client, auth_headers, sample_user_data):
        user_id = client.post("/users/", headers=auth_headers, json=sample_user_data).json()["id"]

        response = client.patch(f"/users/{user_id}", headers=auth_headers, json={
            "permissions": [Permission.INVENTORY.value],
            "role": "Storekeeper",
        })
        assert response.status_code == 200
        assert response.json()["permissions"] == ["inventory"]
        assert response.json()["role"] == "Storekeeper"

    def test_update_password_allows_login(self, client, auth_headers, sample_user_data):
        user_id = client.post("/users/", headers=auth_headers, json=sample_user_data).json()["id"]
        client.patch(f"/users/{user_id}", headers=auth_headers, json={"password": "Changed123!"})

        response = client.post("/auth/login", data={"username": "jane@example.com", "password": "Changed123!"})
        assert response.status_code == 200

    def test_delete_user(self, client, auth_headers, sample_user_data):
        user_id = client.post("/users/", headers=auth_headers, json=sample_user_data).json()["id"]

        response = client.delete(f"/users/{user_id}", headers=auth_headers)
        assert response.status_code == 200
        assert client.get(f"/users/{user_id}", headers=auth_headers).status_code == 404

    def test_cannot_delete_self(self, client, auth_headers, admin_user):
        response = client.delete(f"/users/{admin_user['id']}", headers=auth_headers)
        assert response.status_code == 400

    def test_list_permissions(self, client, auth_headers):
        response = client.get("/users/permissions", headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["permissions"] == ALL_PERMISSIONS


class TestUserAccess:
    """Only user managers can administer users"""

    def test_requires_user_management(self, client, make_user_headers):
        headers = make_user_headers([Permission.ACCOUNTING.value])
        assert client.get("/users/", headers=headers).status_code == 403

    def test_user_manager_can_list(self, client, make_user_headers):
        headers = make_user_headers([Permission.USER_MANAGEMENT.value])
        assert client.get("/users/", headers=headers).status_code == 200
