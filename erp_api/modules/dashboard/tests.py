"""
Tests for the Dashboard module
"""

import pytest
from datetime import date
from decimal import Decimal


TODAY = date.today()


# ===== FIXTURES =====

@pytest.fixture
def customer(client, auth_headers):
    return client.post("/customers/", headers=auth_headers, json={"name": "Acme Corporation"}).json()


@pytest.fixture
def activity(client, auth_headers, customer):
    """
    One invoice this month partly paid, one long overdue invoice, two
    projects and one item below its reorder level.
    """
    def sent_invoice(invoice_date, amount):
        invoice = client.post("/invoices/", headers=auth_headers, json={
            "customer_id": customer["id"], "date": invoice_date,
            "items": [{"description": "Services", "quantity": "1", "unit_price": amount}],
        }).json()
        client.post(f"/invoices/{invoice['id']}/send", headers=auth_headers)
        return invoice

    current = sent_invoice(TODAY.isoformat(), "100.00")
    late = sent_invoice("2024-01-10", "100.00")
    client.post(f"/invoices/{current['id']}/payments", headers=auth_headers, json={
        "date": TODAY.isoformat(), "amount": "40.00", "method": "bank-transfer"
    })

    client.post("/projects/", headers=auth_headers, json={
        "name": "Renovation", "customer_id": customer["id"], "start_date": "2024-01-01", "status": "in-progress"
    })
    client.post("/projects/", headers=auth_headers, json={
        "name": "Archive", "start_date": "2023-01-01", "status": "completed"
    })

    client.post("/inventory/items", headers=auth_headers, json={
        "sku": "BLT-001", "name": "Bolt", "quantity": "2", "reorder_level": "5"
    })
    client.post("/inventory/items", headers=auth_headers, json={
        "sku": "WID-001", "name": "Widget", "quantity": "50", "reorder_level": "5"
    })
    return {"current": current, "late": late}


# ===== DASHBOARD =====

class TestDashboard:
    """GET /dashboard"""

    def test_requires_authentication(self, client):
        assert client.get("/dashboard").status_code == 401

    def test_any_user_can_view(self, client, make_user_headers):
        response = client.get("/dashboard", headers=make_user_headers([]))
        assert response.status_code == 200

    def test_empty_dashboard(self, client, auth_headers):
        data = client.get("/dashboard", headers=auth_headers).json()
        metrics = data["metrics"]
        assert Decimal(metrics["revenue_this_month"]) == Decimal("0")
        assert Decimal(metrics["outstanding_receivables"]) == Decimal("0")
        assert metrics["overdue_invoices"] == 0
        assert metrics["active_projects"] == 0
        assert data["recent_projects"] == []
        assert data["recent_invoices"] == []
        assert data["alerts"] == []

    def test_metrics(self, client, auth_headers, activity):
        metrics = client.get("/dashboard", headers=auth_headers).json()["metrics"]
        assert Decimal(metrics["revenue_this_month"]) == Decimal("40.00")
        assert Decimal(metrics["outstanding_receivables"]) == Decimal("160.00")
        assert metrics["overdue_invoices"] == 1
        assert metrics["active_projects"] == 1
        assert metrics["total_customers"] == 1
        assert metrics["low_stock_items"] == 1

    def test_recent_records(self, client, auth_headers, activity):
        data = client.get("/dashboard", headers=auth_headers).json()

        assert [i["id"] for i in data["recent_invoices"]] == [activity["current"]["id"], activity["late"]["id"]]
        assert data["recent_invoices"][0]["status"] == "partially-paid"
        assert data["recent_invoices"][1]["status"] == "overdue"

        projects = {p["name"]: p for p in data["recent_projects"]}
        assert set(projects) == {"Renovation", "Archive"}
        assert projects["Renovation"]["customer_name"] == "Acme Corporation"
        assert projects["Archive"]["progress"] == 100

    def test_alerts(self, client, auth_headers, activity):
        alerts = client.get("/dashboard", headers=auth_headers).json()["alerts"]
        assert [a["sku"] for a in alerts] == ["BLT-001"]
        assert Decimal(alerts[0]["shortfall"]) == Decimal("3")

    def test_recent_lists_are_limited(self, client, auth_headers):
        for number in range(7):
            client.post("/projects/", headers=auth_headers, json={
                "name": f"Project {number}", "start_date": "2024-01-01"
            })
        data = client.get("/dashboard", headers=auth_headers).json()
        assert len(data["recent_projects"]) == 5
        assert data["metrics"]["active_projects"] == 7
