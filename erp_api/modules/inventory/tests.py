"""
Tests for the Inventory module

Items, signed stock movements and replenishment alerts.
"""

import pytest
from decimal import Decimal

from erp_api.modules.inventory.models import MovementType, signed_quantity, InventoryItem
from erp_api.modules.inventory.schemas import InventoryItemCreate, InventoryItemUpdate


# ===== FIXTURES =====

@pytest.fixture
def sample_item_data():
    return {
        "sku": "wid-001",
        "name": "Widget",
        "category": "Hardware",
        "unit_of_measure": "unit",
        "cost_price": "4.00",
        "selling_price": "10.00",
        "quantity": "10",
        "reorder_level": "5",
        "location": "Main",
    }


@pytest.fixture
def item(client, auth_headers, sample_item_data):
    response = client.post("/inventory/items", headers=auth_headers, json=sample_item_data)
    assert response.status_code == 201, response.text
    return response.json()


def movement_payload(item_id, movement_type, quantity, **extra):
    payload = {
        "date": "2024-03-10",
        "type": movement_type,
        "inventory_item_id": item_id,
        "quantity": quantity,
    }
    payload.update(extra)
    return payload


def stock_of(client, headers, item_id):
    return Decimal(client.get(f"/inventory/items/{item_id}", headers=headers).json()["quantity"])


# ===== MODELS =====

class TestInventoryModel:
    """Sign handling and derived values"""

    def test_signed_quantity(self):
        assert signed_quantity(MovementType.PURCHASE, 5) == Decimal("5")
        assert signed_quantity(MovementType.TRANSFER, "2.5") == Decimal("2.5")
        assert signed_quantity(MovementType.SALE, 5) == Decimal("-5")
        assert signed_quantity(MovementType.ADJUSTMENT, -3) == Decimal("-3")

    def test_needs_reorder_and_value(self):
        item = InventoryItem(quantity=Decimal("5"), reorder_level=Decimal("5"), cost_price=Decimal("2.50"))
        assert item.needs_reorder
        assert item.stock_value == Decimal("12.50")

    def test_negative_cost_rejected(self, sample_item_data):
        sample_item_data["cost_price"] = "-1"
        with pytest.raises(ValueError):
            InventoryItemCreate(**sample_item_data)


# ===== ITEMS =====

class TestInventoryItems:
    """Item endpoints"""

    def test_create_item(self, item):
        assert item["sku"] == "WID-001"
        assert Decimal(item["quantity"]) == Decimal("10")
        assert item["needs_reorder"] is False

    def test_duplicate_sku(self, client, auth_headers, item, sample_item_data):
        sample_item_data["name"] = "Widget copy"
        response = client.post("/inventory/items", headers=auth_headers, json=sample_item_data)
        assert response.status_code == 409

    def test_list_filters(self, client, auth_headers, item):
        client.post("/inventory/items", headers=auth_headers, json={
            "sku": "BLT-001", "name": "Bolt", "category": "Fasteners", "location": "Annex"
        })

        assert client.get("/inventory/items", headers=auth_headers).json()["total"] == 2

        response = client.get("/inventory/items", headers=auth_headers, params={"search": "wid"})
        assert [i["sku"] for i in response.json()["items"]] == ["WID-001"]

        response = client.get("/inventory/items", headers=auth_headers, params={"location": "Annex"})
        assert [i["sku"] for i in response.json()["items"]] == ["BLT-001"]

        response = client.get("/inventory/items", headers=auth_headers, params={"category": "Hardware"})
        assert response.json()["total"] == 1

    def test_update_item(self, client, auth_headers, item):
        response = client.patch(f"/inventory/items/{item['id']}", headers=auth_headers, json={
            "selling_price": "12.50", "reorder_level": "20"
        })
        assert response.status_code == 200
        assert Decimal(response.json()["selling_price"]) == Decimal("12.50")
        assert response.json()["needs_reorder"] is True

    def test_blank_sku_rejected(self, client, auth_headers, item):
        with pytest.raises(ValueError):
            InventoryItemUpdate(sku="   ")

        response = client.patch(f"/inventory/items/{item['id']}", headers=auth_headers, json={"sku": "  "})
        assert response.status_code == 422

    def test_quantity_not_editable(self, client, auth_headers, item):
        client.patch(f"/inventory/items/{item['id']}", headers=auth_headers, json={"quantity": "99"})
        assert stock_of(client, auth_headers, item["id"]) == Decimal("10")

    def test_delete_unused_item(self, client, auth_headers, item):
        response = client.delete(f"/inventory/items/{item['id']}", headers=auth_headers)
        assert response.status_code == 200

    def test_delete_item_with_movements(self, client, auth_headers, item):
        client.post("/inventory/movements", headers=auth_headers, json=movement_payload(item["id"], "purchase", "1"))
        response = client.delete(f"/inventory/items/{item['id']}", headers=auth_headers)
        assert response.status_code == 409

    def test_replenishment_alerts(self, client, auth_headers, item):
        client.post("/inventory/items", headers=auth_headers, json={
            "sku": "BLT-001", "name": "Bolt", "quantity": "1", "reorder_level": "10"
        })
        client.post("/inventory/items", headers=auth_headers, json={
            "sku": "NUT-001", "name": "Nut", "quantity": "4", "reorder_level": "5"
        })
        client.post("/inventory/items", headers=auth_headers, json={
            "sku": "OLD-001", "name": "Retired", "quantity": "0", "reorder_level": "5", "is_active": False
        })

        response = client.get("/inventory/replenishment-alerts", headers=auth_headers)
        assert response.status_code == 200
        alerts = response.json()
        assert [a["sku"] for a in alerts] == ["BLT-001", "NUT-001"]
        assert Decimal(alerts[0]["shortfall"]) == Decimal("9")


# ===== MOVEMENTS =====

class TestInventoryMovements:
    """Movements keep the item quantity in sync"""

    def test_purchase_increases_stock(self, client, auth_headers, item):
        response = client.post("/inventory/movements", headers=auth_headers, json=movement_payload(
            item["id"], "purchase", "5", unit_cost="3.50", reference="PO-1"
        ))
        assert response.status_code == 201
        data = response.json()
        assert Decimal(data["quantity"]) == Decimal("5")
        assert Decimal(data["total_cost"]) == Decimal("17.50")
        assert data["item"]["sku"] == "WID-001"
        assert stock_of(client, auth_headers, item["id"]) == Decimal("15")

    def test_sale_decreases_stock_at_cost_price(self, client, auth_headers, item):
        response = client.post("/inventory/movements", headers=auth_headers,
                               json=movement_payload(item["id"], "sale", "3"))
        data = response.json()
        assert Decimal(data["quantity"]) == Decimal("-3")
        assert Decimal(data["unit_cost"]) == Decimal("4.00")
        assert stock_of(client, auth_headers, item["id"]) == Decimal("7")

    def test_adjustment_and_transfer(self, client, auth_headers, item):
        client.post("/inventory/movements", headers=auth_headers, json=movement_payload(item["id"], "adjustment", "2"))
        client.post("/inventory/movements", headers=auth_headers, json=movement_payload(item["id"], "transfer", "4"))
        assert stock_of(client, auth_headers, item["id"]) == Decimal("12")

    def test_insufficient_stock(self, client, auth_headers, item):
        response = client.post("/inventory/movements", headers=auth_headers,
                               json=movement_payload(item["id"], "sale", "11"))
        assert response.status_code == 400
        assert "Insufficient stock" in response.json()["detail"]
        assert stock_of(client, auth_headers, item["id"]) == Decimal("10")

    def test_quantity_must_be_positive(self, client, auth_headers, item):
        response = client.post("/inventory/movements", headers=auth_headers,
                               json=movement_payload(item["id"], "sale", "0"))
        assert response.status_code == 422

    def test_unknown_item(self, client, auth_headers):
        response = client.post("/inventory/movements", headers=auth_headers, json=movement_payload(
            "00000000-0000-0000-0000-000000000000", "purchase", "1"
        ))
        assert response.status_code == 404

    def test_list_filters(self, client, auth_headers, item):
        client.post("/inventory/movements", headers=auth_headers, json=movement_payload(
            item["id"], "purchase", "5", reference="PO-7"
        ))
        client.post("/inventory/movements", headers=auth_headers, json=movement_payload(
            item["id"], "sale", "2", date="2024-04-02"
        ))

        response = client.get("/inventory/movements", headers=auth_headers)
        movements = response.json()["movements"]
        assert [m["type"] for m in movements] == ["sale", "purchase"]

        response = client.get("/inventory/movements", headers=auth_headers, params={"type": "purchase"})
        assert response.json()["total"] == 1

        response = client.get("/inventory/movements", headers=auth_headers, params={"end_date": "2024-03-31"})
        assert response.json()["total"] == 1

        response = client.get("/inventory/movements", headers=auth_headers, params={"search": "PO-7"})
        assert response.json()["movements"][0]["reference"] == "PO-7"

        response = client.get("/inventory/movements", headers=auth_headers, params={"item_id": item["id"]})
        assert response.json()["total"] == 2

    def test_delete_movement_reverses_stock(self, client, auth_headers, item):
        movement = client.post("/inventory/movements", headers=auth_headers,
                               json=movement_payload(item["id"], "sale", "4")).json()

        response = client.delete(f"/inventory/movements/{movement['id']}", headers=auth_headers)
        assert response.status_code == 200
        assert stock_of(client, auth_headers, item["id"]) == Decimal("10")

    def test_delete_purchase_cannot_go_negative(self, client, auth_headers, item):
        purchase = client.post("/inventory/movements", headers=auth_headers,
                               json=movement_payload(item["id"], "purchase", "5")).json()
        client.post("/inventory/movements", headers=auth_headers, json=movement_payload(item["id"], "sale", "12"))

        response = client.delete(f"/inventory/movements/{purchase['id']}", headers=auth_headers)
        assert response.status_code == 400

    def test_requires_inventory_permission(self, client, make_user_headers):
        headers = make_user_headers(["quotation"])
        assert client.get("/inventory/items", headers=headers).status_code == 403
