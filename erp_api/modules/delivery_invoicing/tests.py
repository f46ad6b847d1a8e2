"""
Tests for the Delivery & Invoicing module

Delivery notes issue stock when delivered; invoices carry calculated
totals and move through sent, partially paid and paid as payments are
registered.
"""

import pytest
from datetime import date, timedelta
from decimal import Decimal

from erp_api.modules.delivery_invoicing.schemas import InvoiceCreate


TODAY = date.today()


# ===== FIXTURES =====

@pytest.fixture
def customer(client, auth_headers):
    response = client.post("/customers/", headers=auth_headers, json={"name": "Acme Corporation"})
    assert response.status_code == 201, response.text
    return response.json()


@pytest.fixture
def stock_item(client, auth_headers):
    response = client.post("/inventory/items", headers=auth_headers, json={
        "sku": "WID-001", "name": "Widget", "cost_price": "4.00", "selling_price": "10.00", "quantity": "10"
    })
    assert response.status_code == 201, response.text
    return response.json()


@pytest.fixture
def delivery_note(client, auth_headers, customer, stock_item):
    response = client.post("/delivery-notes/", headers=auth_headers, json={
        "customer_id": customer["id"],
        "date": TODAY.isoformat(),
        "items": [
            {"inventory_item_id": stock_item["id"], "description": "Widget", "quantity": "3", "unit_price": "10.00"},
            {"description": "Installation", "quantity": "1", "unit_price": "50.00"},
        ],
    })
    assert response.status_code == 201, response.text
    return response.json()


@pytest.fixture
def invoice(client, auth_headers, customer):
    response = client.post("/invoices/", headers=auth_headers, json={
        "customer_id": customer["id"],
        "date": TODAY.isoformat(),
        "items": [
            {"description": "Consulting", "quantity": "2", "unit_price": "50.00",
             "tax_rate": "10", "discount_rate": "20"},
            {"description": "Setup fee", "quantity": "1", "unit_price": "25.00"},
        ],
    })
    assert response.status_code == 201, response.text
    return response.json()


@pytest.fixture
def sent_invoice(client, auth_headers, invoice):
    response = client.post(f"/invoices/{invoice['id']}/send", headers=auth_headers)
    assert response.status_code == 200, response.text
    return response.json()


def stock_of(client, headers, item_id):
    return Decimal(client.get(f"/inventory/items/{item_id}", headers=headers).json()["quantity"])


def pay(client, headers, invoice_id, amount, method="bank-transfer"):
    return client.post(f"/invoices/{invoice_id}/payments", headers=headers, json={
        "amount": amount, "method": method, "date": TODAY.isoformat()
    })


# ===== DELIVERY NOTES =====

class TestDeliveryNotes:
    """Delivery note lifecycle and stock issue"""

    def test_create_delivery_note(self, delivery_note):
        assert delivery_note["number"] == f"DN-{TODAY.year}-001"
        assert delivery_note["status"] == "draft"
        assert Decimal(delivery_note["total"]) == Decimal("80.00")

    def test_create_does_not_touch_stock(self, client, auth_headers, delivery_note, stock_item):
        assert stock_of(client, auth_headers, stock_item["id"]) == Decimal("10")

    def test_project_must_belong_to_customer(self, client, auth_headers, customer):
        other = client.post("/customers/", headers=auth_headers, json={"name": "Globex"}).json()
        project = client.post("/projects/", headers=auth_headers, json={
            "name": "Globex rollout", "customer_id": other["id"], "start_date": "2024-01-01"
        }).json()

        response = client.post("/delivery-notes/", headers=auth_headers, json={
            "customer_id": customer["id"],
            "project_id": project["id"],
            "items": [{"description": "Cable", "quantity": "1"}],
        })
        assert response.status_code == 400

    def test_update_draft(self, client, auth_headers, delivery_note):
        response = client.patch(f"/delivery-notes/{delivery_note['id']}", headers=auth_headers, json={
            "notes": "Leave at reception",
            "items": [{"description": "Installation", "quantity": "2", "unit_price": "50.00"}],
        })
        assert response.status_code == 200
        assert response.json()["notes"] == "Leave at reception"
        assert Decimal(response.json()["total"]) == Decimal("100.00")

    def test_deliver_issues_stock(self, client, auth_headers, delivery_note, stock_item):
        response = client.post(f"/delivery-notes/{delivery_note['id']}/deliver", headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["status"] == "delivered"
        assert response.json()["delivered_at"] is not None

        assert stock_of(client, auth_headers, stock_item["id"]) == Decimal("7")

        movements = client.get("/inventory/movements", headers=auth_headers).json()["movements"]
        assert len(movements) == 1
        assert movements[0]["type"] == "sale"
        assert movements[0]["reference"] == delivery_note["number"]
        assert movements[0]["delivery_note_id"] == delivery_note["id"]

    def test_deliver_without_stock_is_all_or_nothing(self, client, auth_headers, customer, stock_item):
        second = client.post("/inventory/items", headers=auth_headers, json={
            "sku": "BLT-001", "name": "Bolt", "quantity": "1"
        }).json()
        note = client.post("/delivery-notes/", headers=auth_headers, json={
            "customer_id": customer["id"],
            "items": [
                {"inventory_item_id": stock_item["id"], "description": "Widget", "quantity": "2"},
                {"inventory_item_id": second["id"], "description": "Bolt", "quantity": "5"},
            ],
        }).json()

        response = client.post(f"/delivery-notes/{note['id']}/deliver", headers=auth_headers)
        assert response.status_code == 400
        assert stock_of(client, auth_headers, stock_item["id"]) == Decimal("10")
        assert client.get(f"/delivery-notes/{note['id']}", headers=auth_headers).json()["status"] == "draft"

    def test_delivered_note_is_immutable(self, client, auth_headers, delivery_note):
        client.post(f"/delivery-notes/{delivery_note['id']}/deliver", headers=auth_headers)

        response = client.patch(f"/delivery-notes/{delivery_note['id']}", headers=auth_headers, json={"notes": "x"})
        assert response.status_code == 400
        assert client.post(f"/delivery-notes/{delivery_note['id']}/cancel", headers=auth_headers).status_code == 400
        assert client.delete(f"/delivery-notes/{delivery_note['id']}", headers=auth_headers).status_code == 400

    def test_delivery_movement_cannot_be_deleted(self, client, auth_headers, delivery_note):
        client.post(f"/delivery-notes/{delivery_note['id']}/deliver", headers=auth_headers)
        movement = client.get("/inventory/movements", headers=auth_headers).json()["movements"][0]

        response = client.delete(f"/inventory/movements/{movement['id']}", headers=auth_headers)
        assert response.status_code == 400

    def test_cancel_and_delete(self, client, auth_headers, delivery_note):
        response = client.post(f"/delivery-notes/{delivery_note['id']}/cancel", headers=auth_headers)
        assert response.json()["status"] == "cancelled"
        assert client.post(f"/delivery-notes/{delivery_note['id']}/deliver", headers=auth_headers).status_code == 400
        assert client.delete(f"/delivery-notes/{delivery_note['id']}", headers=auth_headers).status_code == 200

    def test_list_filters(self, client, auth_headers, delivery_note):
        client.post(f"/delivery-notes/{delivery_note['id']}/deliver", headers=auth_headers)

        response = client.get("/delivery-notes/", headers=auth_headers, params={"status": "delivered"})
        assert response.json()["total"] == 1

        response = client.get("/delivery-notes/", headers=auth_headers, params={"search": "acme"})
        assert response.json()["delivery_notes"][0]["number"] == delivery_note["number"]


# ===== INVOICES =====

class TestInvoices:
    """Invoice creation, editing and status changes"""

    def test_due_date_before_date(self):
        with pytest.raises(ValueError):
            InvoiceCreate(
                customer_id="00000000-0000-0000-0000-000000000001",
                date="2024-05-10",
                due_date="2024-05-01",
                items=[{"description": "Fee", "quantity": "1", "unit_price": "1"}]
            )

    def test_create_invoice(self, invoice):
        assert invoice["number"] == f"INV-{TODAY.year}-001"
        assert invoice["status"] == "draft"
        assert Decimal(invoice["subtotal"]) == Decimal("125.00")
        assert Decimal(invoice["discount_amount"]) == Decimal("20.00")
        assert Decimal(invoice["tax_amount"]) == Decimal("8.00")
        assert Decimal(invoice["total"]) == Decimal("113.00")
        assert Decimal(invoice["amount_due"]) == Decimal("113.00")
        assert invoice["due_date"] == (TODAY + timedelta(days=30)).isoformat()

    def test_update_draft(self, client, auth_headers, invoice):
        response = client.patch(f"/invoices/{invoice['id']}", headers=auth_headers, json={
            "items": [{"description": "Flat fee", "quantity": "1", "unit_price": "200.00"}]
        })
        assert response.status_code == 200
        assert Decimal(response.json()["total"]) == Decimal("200.00")
        assert Decimal(response.json()["amount_due"]) == Decimal("200.00")

    def test_send(self, sent_invoice):
        assert sent_invoice["status"] == "sent"
        assert sent_invoice["sent_at"] is not None

    def test_sent_invoice_cannot_be_edited_or_deleted(self, client, auth_headers, sent_invoice):
        response = client.patch(f"/invoices/{sent_invoice['id']}", headers=auth_headers, json={"notes": "x"})
        assert response.status_code == 400
        assert client.delete(f"/invoices/{sent_invoice['id']}", headers=auth_headers).status_code == 400
        assert client.post(f"/invoices/{sent_invoice['id']}/send", headers=auth_headers).status_code == 400

    def test_past_due_invoice_becomes_overdue(self, client, auth_headers, customer):
        past = TODAY - timedelta(days=60)
        invoice = client.post("/invoices/", headers=auth_headers, json={
            "customer_id": customer["id"],
            "date": past.isoformat(),
            "due_date": (past + timedelta(days=30)).isoformat(),
            "items": [{"description": "Old work", "quantity": "1", "unit_price": "100.00"}],
        }).json()

        client.post(f"/invoices/{invoice['id']}/send", headers=auth_headers)
        response = client.get(f"/invoices/{invoice['id']}", headers=auth_headers)
        assert response.json()["status"] == "overdue"

        response = pay(client, auth_headers, invoice["id"], "40.00")
        assert response.status_code == 201
        assert response.json()["status"] == "overdue"

    def test_cancel_and_delete(self, client, auth_headers, sent_invoice):
        response = client.post(f"/invoices/{sent_invoice['id']}/cancel", headers=auth_headers)
        assert response.json()["status"] == "cancelled"
        assert client.post(f"/invoices/{sent_invoice['id']}/cancel", headers=auth_headers).status_code == 400
        assert client.delete(f"/invoices/{sent_invoice['id']}", headers=auth_headers).status_code == 200

    def test_list_filters(self, client, auth_headers, sent_invoice, customer):
        response = client.get("/invoices/", headers=auth_headers, params={"status": "sent"})
        assert response.json()["total"] == 1

        response = client.get("/invoices/", headers=auth_headers, params={"search": sent_invoice["number"]})
        assert response.json()["invoices"][0]["customer"]["name"] == "Acme Corporation"

        response = client.get("/invoices/", headers=auth_headers, params={"end_date": "2000-01-01"})
        assert response.json()["total"] == 0


# ===== INVOICE FROM DELIVERY NOTE =====

class TestInvoiceFromDeliveryNote:

    def test_draft_note_cannot_be_invoiced(self, client, auth_headers, delivery_note):
        response = client.post(f"/invoices/from-delivery-note/{delivery_note['id']}", headers=auth_headers, json={})
        assert response.status_code == 400

    def test_invoice_delivered_note(self, client, auth_headers, delivery_note):
        client.post(f"/delivery-notes/{delivery_note['id']}/deliver", headers=auth_headers)

        response = client.post(f"/invoices/from-delivery-note/{delivery_note['id']}", headers=auth_headers, json={
            "tax_rate": "10"
        })
        assert response.status_code == 201
        data = response.json()
        assert data["delivery_note_id"] == delivery_note["id"]
        assert Decimal(data["subtotal"]) == Decimal("80.00")
        assert Decimal(data["tax_amount"]) == Decimal("8.00")
        assert Decimal(data["total"]) == Decimal("88.00")
        assert [i["delivery_item_id"] for i in data["items"]] == [i["id"] for i in delivery_note["items"]]

    def test_note_invoiced_once(self, client, auth_headers, delivery_note):
        client.post(f"/delivery-notes/{delivery_note['id']}/deliver", headers=auth_headers)
        first = client.post(f"/invoices/from-delivery-note/{delivery_note['id']}", headers=auth_headers, json={}).json()

        response = client.post(f"/invoices/from-delivery-note/{delivery_note['id']}", headers=auth_headers, json={})
        assert response.status_code == 409

        client.post(f"/invoices/{first['id']}/cancel", headers=auth_headers)
        response = client.post(f"/invoices/from-delivery-note/{delivery_note['id']}", headers=auth_headers, json={})
        assert response.status_code == 201


# ===== PAYMENTS =====

class TestPayments:
    """Payments drive the invoice status"""

    def test_draft_invoice_rejects_payments(self, client, auth_headers, invoice):
        response = pay(client, auth_headers, invoice["id"], "10.00")
        assert response.status_code == 400

    def test_partial_then_full_payment(self, client, auth_headers, sent_invoice):
        response = pay(client, auth_headers, sent_invoice["id"], "50.00")
        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "partially-paid"
        assert Decimal(data["amount_paid"]) == Decimal("50.00")
        assert Decimal(data["amount_due"]) == Decimal("63.00")

        response = pay(client, auth_headers, sent_invoice["id"], "63.00", method="cash")
        data = response.json()
        assert data["status"] == "paid"
        assert Decimal(data["amount_due"]) == Decimal("0.00")
        assert len(data["payments"]) == 2

    def test_overpayment_rejected(self, client, auth_headers, sent_invoice):
        response = pay(client, auth_headers, sent_invoice["id"], "113.01")
        assert response.status_code == 400
        assert "exceeds the amount due" in response.json()["detail"]

    def test_paid_invoice_rejects_payments(self, client, auth_headers, sent_invoice):
        pay(client, auth_headers, sent_invoice["id"], "113.00")
        response = pay(client, auth_headers, sent_invoice["id"], "1.00")
        assert response.status_code == 400

    def test_delete_payment_restores_status(self, client, auth_headers, sent_invoice):
        invoice = pay(client, auth_headers, sent_invoice["id"], "113.00").json()
        payment_id = invoice["payments"][0]["id"]

        response = client.delete(f"/invoices/{sent_invoice['id']}/payments/{payment_id}", headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["status"] == "sent"
        assert Decimal(response.json()["amount_due"]) == Decimal("113.00")

    def test_list_payments(self, client, auth_headers, sent_invoice):
        pay(client, auth_headers, sent_invoice["id"], "13.00", method="check")
        response = client.get(f"/invoices/{sent_invoice['id']}/payments", headers=auth_headers)
        assert [p["method"] for p in response.json()] == ["check"]

    def test_invoice_with_payments_cannot_be_cancelled(self, client, auth_headers, sent_invoice):
        pay(client, auth_headers, sent_invoice["id"], "13.00")
        response = client.post(f"/invoices/{sent_invoice['id']}/cancel", headers=auth_headers)
        assert response.status_code == 400

    def test_unknown_payment(self, client, auth_headers, sent_invoice):
        response = client.delete(
            f"/invoices/{sent_invoice['id']}/payments/00000000-0000-0000-0000-000000000000", headers=auth_headers
        )
        assert response.status_code == 404
