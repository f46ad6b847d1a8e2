"""
Tests for the Customers module

CRUD, search, tax id uniqueness and the delete guard for customers that
are referenced by documents.
"""

import pytest

from erp_api.modules.customers.schemas import CustomerCreate


# ===== FIXTURES =====

@pytest.fixture
def sample_customer_data():
    return {
        "name": "Acme Corporation",
        "contact_person": "Wile E. Coyote",
        "email": "orders@acme.example.com",
        "phone": "+1 (555) 123-4567",
        "address": "1 Desert Road",
        "city": "Phoenix",
        "state": "AZ",
        "country": "USA",
        "postal_code": "85001",
        "tax_id": "US-12345678",
        "notes": "Pays on time",
    }


@pytest.fixture
def customer(client, auth_headers, sample_customer_data):
    response = client.post("/customers/", headers=auth_headers, json=sample_customer_data)
    assert response.status_code == 201, response.text
    return response.json()


# ===== VALIDATION =====

class TestCustomerValidation:
    """Schema level validation"""

    def test_phone_is_normalized(self, sample_customer_data):
        sample_customer_data["phone"] = "+1   555 123 4567 "
        assert CustomerCreate(**sample_customer_data).phone == "+1 555 123 4567"

    def test_invalid_phone(self, sample_customer_data):
        sample_customer_data["phone"] = "call me"
        with pytest.raises(ValueError):
            CustomerCreate(**sample_customer_data)

    def test_invalid_tax_id(self, sample_customer_data):
        sample_customer_data["tax_id"] = "12"
        with pytest.raises(ValueError):
            CustomerCreate(**sample_customer_data)

    def test_blank_optional_fields_become_none(self, sample_customer_data):
        sample_customer_data["phone"] = ""
        sample_customer_data["tax_id"] = " "
        customer = CustomerCreate(**sample_customer_data)
        assert customer.phone is None
        assert customer.tax_id is None

    def test_name_required(self, client, auth_headers):
        response = client.post("/customers/", headers=auth_headers, json={"name": "A"})
        assert response.status_code == 422


# ===== CRUD =====

class TestCustomerCrud:
    """Customer endpoints"""

    def test_create_customer(self, customer):
        assert customer["name"] == "Acme Corporation"
        assert customer["tax_id"] == "US-12345678"

    def test_duplicate_tax_id(self, client, auth_headers, customer, sample_customer_data):
        sample_customer_data["name"] = "Acme Clone"
        response = client.post("/customers/", headers=auth_headers, json=sample_customer_data)
        assert response.status_code == 409
        assert "Acme Corporation" in response.json()["detail"]

    def test_list_and_search(self, client, auth_headers, customer):
        client.post("/customers/", headers=auth_headers, json={"name": "Globex", "country": "Canada"})

        response = client.get("/customers/", headers=auth_headers)
        assert response.json()["total"] == 2

        response = client.get("/customers/", headers=auth_headers, params={"search": "coyote"})
        data = response.json()
        assert data["total"] == 1
        assert data["customers"][0]["name"] == "Acme Corporation"

        response = client.get("/customers/", headers=auth_headers, params={"country": "canada"})
        assert response.json()["customers"][0]["name"] == "Globex"

    def test_pagination(self, client, auth_headers):
        for i in range(5):
            client.post("/customers/", headers=auth_headers, json={"name": f"Customer {i}"})

        response = client.get("/customers/", headers=auth_headers, params={"limit": 2, "offset": 2})
        data = response.json()
        assert data["total"] == 5
        assert len(data["customers"]) == 2
        assert data["customers"][0]["name"] == "Customer 2"

    def test_get_customer_not_found(self, client, auth_headers):
        response = client.get("/customers/00000000-0000-0000-0000-000000000000", headers=auth_headers)
        assert response.status_code == 404

    def test_update_customer(self, client, auth_headers, customer):
        response = client.patch(f"/customers/{customer['id']}", headers=auth_headers, json={
            "city": "Tucson",
        })
        assert response.status_code == 200
        assert response.json()["city"] == "Tucson"
        assert response.json()["name"] == "Acme Corporation"

    def test_delete_customer(self, client, auth_headers, customer):
        response = client.delete(f"/customers/{customer['id']}", headers=auth_headers)
        assert response.status_code == 200
        assert client.get(f"/customers/{customer['id']}", headers=auth_headers).status_code == 404

    def test_delete_referenced_customer(self, client, auth_headers, customer):
        project = client.post("/projects/", headers=auth_headers, json={
            "name": "Website",
            "customer_id": customer["id"],
            "start_date": "2024-01-01",
        })
        assert project.status_code == 201

        response = client.delete(f"/customers/{customer['id']}", headers=auth_headers)
        assert response.status_code == 409
        assert "1 projects" in response.json()["detail"]

    def test_delete_customer_with_journal_lines(self, client, auth_headers, customer):
        accounts = [
            client.post("/accounts/", headers=auth_headers, json={"code": code, "name": name, "type": kind}).json()
            for code, name, kind in (("1300", "Receivables", "asset"), ("4000", "Sales Revenue", "revenue"))
        ]
        entry = client.post("/journal-entries/", headers=auth_headers, json={
            "date": "2024-03-15",
            "description": "Invoice for Acme",
            "lines": [
                {"account_id": accounts[0]["id"], "debit": "250.00", "customer_id": customer["id"]},
                {"account_id": accounts[1]["id"], "credit": "250.00"},
            ],
        })
        assert entry.status_code == 201, entry.text

        response = client.delete(f"/customers/{customer['id']}", headers=auth_headers)
        assert response.status_code == 409
        assert "1 journal lines" in response.json()["detail"]
        assert client.get(f"/customers/{customer['id']}", headers=auth_headers).status_code == 200
