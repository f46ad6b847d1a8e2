"""
Tests for the Quotations module

Quotation totals, the status workflow, automatic expiry and templates.
"""

import pytest
from datetime import date, timedelta
from decimal import Decimal
from uuid import UUID

from erp_api.modules.quotations.models import Quotation, QuotationStatus
from erp_api.modules.quotations.schemas import QuotationCreate


TODAY = date.today()


# ===== FIXTURES =====

@pytest.fixture
def customer(client, auth_headers):
    response = client.post("/customers/", headers=auth_headers, json={"name": "Acme Corporation"})
    assert response.status_code == 201, response.text
    return response.json()


@pytest.fixture
def sample_items():
    return [
        {"description": "Consulting hours", "quantity": "2", "unit_price": "50.00",
         "tax_rate": "10", "discount_rate": "20"},
        {"description": "Setup fee", "quantity": "1", "unit_price": "25.00"},
    ]


@pytest.fixture
def quotation(client, auth_headers, customer, sample_items):
    response = client.post("/quotations/", headers=auth_headers, json={
        "customer_id": customer["id"],
        "date": TODAY.isoformat(),
        "notes": "Thanks for asking",
        "items": sample_items,
    })
    assert response.status_code == 201, response.text
    return response.json()


def set_status(client, headers, quotation_id, new_status):
    return client.post(f"/quotations/{quotation_id}/status", headers=headers, json={"status": new_status})


# ===== VALIDATION =====

class TestQuotationValidation:

    def test_items_required(self):
        with pytest.raises(ValueError):
            QuotationCreate(customer_id="00000000-0000-0000-0000-000000000001", items=[])

    def test_valid_until_before_date(self, sample_items):
        with pytest.raises(ValueError):
            QuotationCreate(
                customer_id="00000000-0000-0000-0000-000000000001",
                date="2024-05-10",
                valid_until="2024-05-01",
                items=sample_items
            )

    def test_zero_quantity_rejected(self, sample_items):
        sample_items[0]["quantity"] = "0"
        with pytest.raises(ValueError):
            QuotationCreate(customer_id="00000000-0000-0000-0000-000000000001", items=sample_items)


# ===== QUOTATIONS =====

class TestQuotations:
    """Quotation endpoints"""

    def test_create_calculates_totals(self, quotation):
        assert quotation["number"] == f"QT-{TODAY.year}-001"
        assert quotation["status"] == "draft"
        assert Decimal(quotation["subtotal"]) == Decimal("125.00")
        assert Decimal(quotation["discount_amount"]) == Decimal("20.00")
        assert Decimal(quotation["tax_amount"]) == Decimal("8.00")
        assert Decimal(quotation["total"]) == Decimal("113.00")
        assert [Decimal(i["total"]) for i in quotation["items"]] == [Decimal("88.00"), Decimal("25.00")]

    def test_default_validity(self, quotation):
        assert quotation["valid_until"] == (TODAY + timedelta(days=30)).isoformat()

    def test_unknown_customer(self, client, auth_headers, sample_items):
        response = client.post("/quotations/", headers=auth_headers, json={
            "customer_id": "00000000-0000-0000-0000-000000000000", "items": sample_items
        })
        assert response.status_code == 404

    def test_unknown_inventory_item(self, client, auth_headers, customer, sample_items):
        sample_items[0]["inventory_item_id"] = "00000000-0000-0000-0000-000000000000"
        response = client.post("/quotations/", headers=auth_headers, json={
            "customer_id": customer["id"], "items": sample_items
        })
        assert response.status_code == 404

    def test_list_filters(self, client, auth_headers, quotation, customer):
        response = client.get("/quotations/", headers=auth_headers, params={"search": "acme"})
        assert response.json()["total"] == 1

        response = client.get("/quotations/", headers=auth_headers, params={"status": "sent"})
        assert response.json()["total"] == 0

        response = client.get("/quotations/", headers=auth_headers, params={"customer_id": customer["id"]})
        assert response.json()["quotations"][0]["customer"]["name"] == "Acme Corporation"

    def test_update_items_recalculates(self, client, auth_headers, quotation):
        response = client.patch(f"/quotations/{quotation['id']}", headers=auth_headers, json={
            "items": [{"description": "Flat fee", "quantity": "1", "unit_price": "300.00", "tax_rate": "5"}]
        })
        assert response.status_code == 200
        data = response.json()
        assert Decimal(data["total"]) == Decimal("315.00")
        assert len(data["items"]) == 1

    def test_update_validity_before_date(self, client, auth_headers, quotation):
        response = client.patch(f"/quotations/{quotation['id']}", headers=auth_headers, json={
            "valid_until": (TODAY - timedelta(days=1)).isoformat()
        })
        assert response.status_code == 400

    def test_delete_draft(self, client, auth_headers, quotation):
        response = client.delete(f"/quotations/{quotation['id']}", headers=auth_headers)
        assert response.status_code == 200


# ===== STATUS WORKFLOW =====

class TestQuotationWorkflow:
    """draft -> sent -> accepted | rejected, with expiry"""

    def test_send_and_accept(self, client, auth_headers, quotation):
        assert set_status(client, auth_headers, quotation["id"], "sent").json()["status"] == "sent"
        response = set_status(client, auth_headers, quotation["id"], "accepted")
        assert response.status_code == 200
        assert response.json()["status"] == "accepted"

    def test_cannot_accept_draft(self, client, auth_headers, quotation):
        response = set_status(client, auth_headers, quotation["id"], "accepted")
        assert response.status_code == 400
        assert "from 'draft' to 'accepted'" in response.json()["detail"]

    def test_rejected_is_final(self, client, auth_headers, quotation):
        set_status(client, auth_headers, quotation["id"], "sent")
        set_status(client, auth_headers, quotation["id"], "rejected")
        response = set_status(client, auth_headers, quotation["id"], "sent")
        assert response.status_code == 400

    def test_accepted_cannot_be_edited_or_deleted(self, client, auth_headers, quotation):
        set_status(client, auth_headers, quotation["id"], "sent")
        set_status(client, auth_headers, quotation["id"], "accepted")

        response = client.patch(f"/quotations/{quotation['id']}", headers=auth_headers, json={"notes": "Late change"})
        assert response.status_code == 400

        response = client.delete(f"/quotations/{quotation['id']}", headers=auth_headers)
        assert response.status_code == 400

    def test_sent_quotation_expires(self, client, auth_headers, db_session, quotation):
        set_status(client, auth_headers, quotation["id"], "sent")

        stored = db_session.get(Quotation, UUID(quotation["id"]))
        stored.date = TODAY - timedelta(days=40)
        stored.valid_until = TODAY - timedelta(days=10)
        db_session.commit()

        response = client.get(f"/quotations/{quotation['id']}", headers=auth_headers)
        assert response.json()["status"] == "expired"
        assert stored.status == QuotationStatus.EXPIRED


# ===== TEMPLATES =====

class TestQuotationTemplates:
    """Reusable quotation templates"""

    @pytest.fixture
    def template(self, client, auth_headers, sample_items):
        response = client.post("/quotations/templates", headers=auth_headers, json={
            "name": "Standard consulting",
            "terms": "Net 30",
            "items": sample_items,
        })
        assert response.status_code == 201, response.text
        return response.json()

    def test_create_and_list(self, client, auth_headers, template):
        assert len(template["items"]) == 2
        response = client.get("/quotations/templates", headers=auth_headers)
        assert [t["name"] for t in response.json()] == ["Standard consulting"]

    def test_duplicate_name(self, client, auth_headers, template, sample_items):
        response = client.post("/quotations/templates", headers=auth_headers, json={
            "name": "Standard consulting", "items": sample_items
        })
        assert response.status_code == 409

    def test_update_template(self, client, auth_headers, template):
        response = client.patch(f"/quotations/templates/{template['id']}", headers=auth_headers, json={
            "name": "Premium consulting",
            "items": [{"description": "Senior hours", "quantity": "10", "unit_price": "120.00"}],
        })
        assert response.status_code == 200
        assert response.json()["name"] == "Premium consulting"
        assert [i["description"] for i in response.json()["items"]] == ["Senior hours"]

    def test_create_quotation_from_template(self, client, auth_headers, template, customer):
        response = client.post(f"/quotations/from-template/{template['id']}", headers=auth_headers, json={
            "customer_id": customer["id"]
        })
        assert response.status_code == 201
        data = response.json()
        assert data["template_id"] == template["id"]
        assert data["terms"] == "Net 30"
        assert data["status"] == "draft"
        assert Decimal(data["total"]) == Decimal("113.00")

    def test_from_unknown_template(self, client, auth_headers, customer):
        response = client.post(
            "/quotations/from-template/00000000-0000-0000-0000-000000000000",
            headers=auth_headers,
            json={"customer_id": customer["id"]}
        )
        assert response.status_code == 404

    def test_delete_template_keeps_quotations(self, client, auth_headers, template, customer):
        quotation = client.post(f"/quotations/from-template/{template['id']}", headers=auth_headers, json={
            "customer_id": customer["id"]
        }).json()

        response = client.delete(f"/quotations/templates/{template['id']}", headers=auth_headers)
        assert response.status_code == 200

        response = client.get(f"/quotations/{quotation['id']}", headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["template_id"] is None
