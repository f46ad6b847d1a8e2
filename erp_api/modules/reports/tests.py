"""
Tests for the Reports module

Period resolution, the report catalogue, every report family and the CSV
export. Figures are checked against small hand-computed data sets.
"""

import csv
import io
import pytest
from datetime import date
from decimal import Decimal

from erp_api.modules.reports.schemas import ReportPeriod
from erp_api.modules.reports.utils import resolve_period, months_between, percentage, format_csv_value


Q1_2024 = {"period": "custom", "start_date": "2024-01-01", "end_date": "2024-03-31"}
YEAR_2024 = {"period": "custom", "start_date": "2024-01-01", "end_date": "2024-12-31"}


def get_report(client, headers, path, **params):
    response = client.get(f"/reports/{path}", headers=headers, params=params)
    assert response.status_code == 200, response.text
    return response.json()


def by_key(rows, key):
    return {row[key]: row for row in rows}


# ===== FIXTURES =====

@pytest.fixture
def customers(client, auth_headers):
    acme = client.post("/customers/", headers=auth_headers, json={"name": "Acme Corporation"}).json()
    globex = client.post("/customers/", headers=auth_headers, json={"name": "Globex"}).json()
    return {"acme": acme, "globex": globex}


@pytest.fixture
def ledger(client, auth_headers):
    """Posted entries: capital 1000, sales 500, rent 200; one unposted draft."""
    accounts = {}
    for code, name, account_type in (
        ("1100", "Cash", "asset"),
        ("2000", "Bank Loan", "liability"),
        ("3000", "Owner Equity", "equity"),
        ("4000", "Sales Revenue", "revenue"),
        ("6100", "Rent Expense", "expense"),
    ):
        response = client.post("/accounts/", headers=auth_headers, json={
            "code": code, "name": name, "type": account_type
        })
        accounts[code] = response.json()["id"]

    def entry(entry_date, debit, credit, amount, entry_status="posted"):
        response = client.post("/journal-entries/", headers=auth_headers, json={
            "date": entry_date,
            "description": f"{debit} / {credit}",
            "status": entry_status,
            "lines": [
                {"account_id": accounts[debit], "debit": amount},
                {"account_id": accounts[credit], "credit": amount},
            ],
        })
        assert response.status_code == 201, response.text

    entry("2024-01-15", "1100", "3000", "1000.00")
    entry("2024-02-01", "1100", "4000", "500.00")
    entry("2024-02-10", "6100", "1100", "200.00")
    entry("2024-02-12", "6100", "1100", "999.00", entry_status="draft")
    return accounts


@pytest.fixture
def widget(client, auth_headers):
    return client.post("/inventory/items", headers=auth_headers, json={
        "sku": "WID-001", "name": "Widget", "category": "Hardware", "location": "Main",
        "cost_price": "4.00", "selling_price": "10.00", "quantity": "10", "reorder_level": "5"
    }).json()


@pytest.fixture
def sales(client, auth_headers, customers, widget):
    """
    Acme: invoice of 140.00 in February, 40.00 paid.
    Globex: invoice of 100.00 in March, unpaid.
    A draft invoice for Acme is ignored.
    """
    def invoice(customer, invoice_date, items, send=True):
        response = client.post("/invoices/", headers=auth_headers, json={
            "customer_id": customer["id"], "date": invoice_date, "items": items
        })
        assert response.status_code == 201, response.text
        created = response.json()
        if send:
            client.post(f"/invoices/{created['id']}/send", headers=auth_headers)
        return created

    first = invoice(customers["acme"], "2024-02-10", [
        {"inventory_item_id": widget["id"], "description": "Widget", "quantity": "3", "unit_price": "10.00"},
        {"description": "Consulting", "quantity": "1", "unit_price": "100.00", "tax_rate": "10"},
    ])
    invoice(customers["globex"], "2024-03-05", [
        {"description": "Consulting", "quantity": "2", "unit_price": "50.00"},
    ])
    invoice(customers["acme"], "2024-03-06", [
        {"description": "Draft work", "quantity": "1", "unit_price": "999.00"},
    ], send=False)

    response = client.post(f"/invoices/{first['id']}/payments", headers=auth_headers, json={
        "date": "2024-02-20", "amount": "40.00", "method": "cash"
    })
    assert response.status_code == 201, response.text
    return first


@pytest.fixture
def stock(client, auth_headers, widget):
    """Widget in stock, Bolt low, Nut out of stock, plus an inactive item."""
    for payload in (
        {"sku": "BLT-001", "name": "Bolt", "category": "Fasteners", "location": "Annex",
         "cost_price": "1.00", "selling_price": "3.00", "quantity": "2", "reorder_level": "5"},
        {"sku": "NUT-001", "name": "Nut", "category": "Fasteners", "location": "Main",
         "cost_price": "1.00", "selling_price": "2.00", "quantity": "0", "reorder_level": "3"},
        {"sku": "OLD-001", "name": "Retired", "quantity": "1", "reorder_level": "5", "is_active": False},
    ):
        response = client.post("/inventory/items", headers=auth_headers, json=payload)
        assert response.status_code == 201, response.text
    return widget


@pytest.fixture
def projects(client, auth_headers, customers, admin_user):
    renovation = client.post("/projects/", headers=auth_headers, json={
        "name": "Renovation", "customer_id": customers["acme"]["id"],
        "start_date": "2024-01-01", "end_date": "2024-06-30", "status": "in-progress",
        "budget": "1000.00", "actual_cost": "1200.00", "progress": 40, "manager_id": admin_user["id"],
    }).json()
    website = client.post("/projects/", headers=auth_headers, json={
        "name": "Website", "start_date": "2024-02-01", "status": "completed",
        "budget": "500.00", "actual_cost": "100.00",
    }).json()
    client.post("/projects/", headers=auth_headers, json={
        "name": "Old Project", "start_date": "2023-01-01", "end_date": "2023-06-30",
    })

    client.post(f"/projects/{renovation['id']}/tasks", headers=auth_headers, json={"title": "Demolition", "status": "done"})
    client.post(f"/projects/{renovation['id']}/tasks", headers=auth_headers, json={"title": "Rebuild"})

    invoice = client.post("/invoices/", headers=auth_headers, json={
        "customer_id": customers["acme"]["id"], "project_id": renovation["id"], "date": "2024-03-01",
        "items": [{"description": "Milestone 1", "quantity": "1", "unit_price": "2000.00",
                   "discount_rate": "10", "tax_rate": "10"}],
    }).json()
    client.post(f"/invoices/{invoice['id']}/send", headers=auth_headers)
    return {"renovation": renovation, "website": website}


# ===== PERIODS =====

class TestPeriods:
    """Named periods resolve to date ranges"""

    TODAY = date(2024, 5, 15)

    def test_current_periods_end_today(self):
        assert resolve_period(ReportPeriod.CURRENT_MONTH, today=self.TODAY) == (date(2024, 5, 1), self.TODAY)
        assert resolve_period(ReportPeriod.CURRENT_QUARTER, today=self.TODAY) == (date(2024, 4, 1), self.TODAY)
        assert resolve_period(ReportPeriod.CURRENT_YEAR, today=self.TODAY) == (date(2024, 1, 1), self.TODAY)

    def test_last_month(self):
        assert resolve_period(ReportPeriod.LAST_MONTH, today=self.TODAY) == (date(2024, 4, 1), date(2024, 4, 30))
        assert resolve_period(ReportPeriod.LAST_MONTH, today=date(2024, 1, 10)) == (
            date(2023, 12, 1), date(2023, 12, 31)
        )
        assert resolve_period(ReportPeriod.LAST_MONTH, today=date(2024, 3, 31)) == (
            date(2024, 2, 1), date(2024, 2, 29)
        )

    def test_last_quarter(self):
        assert resolve_period(ReportPeriod.LAST_QUARTER, today=self.TODAY) == (date(2024, 1, 1), date(2024, 3, 31))

    def test_last_quarter_from_first_quarter(self):
        assert resolve_period(ReportPeriod.LAST_QUARTER, today=date(2024, 2, 10)) == (
            date(2023, 10, 1), date(2023, 12, 31)
        )

    def test_last_year(self):
        assert resolve_period(ReportPeriod.LAST_YEAR, today=self.TODAY) == (date(2023, 1, 1), date(2023, 12, 31))

    def test_custom(self):
        assert resolve_period(ReportPeriod.CUSTOM, date(2024, 1, 5), date(2024, 1, 6)) == (
            date(2024, 1, 5), date(2024, 1, 6)
        )
        with pytest.raises(ValueError):
            resolve_period(ReportPeriod.CUSTOM, date(2024, 1, 5))
        with pytest.raises(ValueError):
            resolve_period(ReportPeriod.CUSTOM, date(2024, 1, 5), date(2024, 1, 4))

    def test_helpers(self):
        assert months_between(date(2023, 11, 20), date(2024, 2, 1)) == ["2023-11", "2023-12", "2024-01", "2024-02"]
        assert percentage(1, 3) == Decimal("33.3")
        assert percentage(5, 0) == Decimal("0.0")
        assert format_csv_value(True) == "Yes"
        assert format_csv_value(None) == ""
        assert format_csv_value(ReportPeriod.CUSTOM) == "custom"
        assert format_csv_value(date(2024, 1, 2)) == "2024-01-02"


# ===== CATALOG AND ACCESS =====

class TestReportCatalog:

    def test_catalog(self, client, auth_headers):
        response = client.get("/reports", headers=auth_headers)
        assert response.status_code == 200
        entries = response.json()
        assert len(entries) == 19
        assert entries[0] == {
            "category": "financial",
            "report_type": "trial-balance",
            "title": "Trial Balance",
            "path": "/reports/financial/trial-balance",
        }

    def test_catalog_by_category(self, client, auth_headers):
        response = client.get("/reports", headers=auth_headers, params={"category": "sales"})
        assert len(response.json()) == 5

    def test_catalog_paths_exist(self, client, auth_headers):
        for entry in client.get("/reports", headers=auth_headers).json():
            response = client.get(entry["path"], headers=auth_headers)
            assert response.status_code == 200, entry["path"]
            assert response.json()["report_type"] == entry["report_type"]

    def test_requires_reporting_permission(self, client, make_user_headers):
        headers = make_user_headers(["accounting"])
        assert client.get("/reports/financial/trial-balance", headers=headers).status_code == 403

    def test_custom_period_requires_dates(self, client, auth_headers):
        response = client.get("/reports/financial/trial-balance", headers=auth_headers, params={"period": "custom"})
        assert response.status_code == 422

    def test_unknown_export_format(self, client, auth_headers):
        response = client.get("/reports/financial/trial-balance", headers=auth_headers, params={"export": "pdf"})
        assert response.status_code == 422

    def test_default_period_is_current_year(self, client, auth_headers):
        report = get_report(client, auth_headers, "financial/trial-balance")
        assert report["period_start"] == date(date.today().year, 1, 1).isoformat()
        assert report["period_end"] == date.today().isoformat()


# ===== FINANCIAL =====

class TestFinancialReports:

    def test_trial_balance(self, client, auth_headers, ledger):
        report = get_report(client, auth_headers, "financial/trial-balance", **YEAR_2024)
        rows = by_key(report["rows"], "code")

        assert Decimal(rows["1100"]["debit"]) == Decimal("1300.00")
        assert Decimal(rows["6100"]["debit"]) == Decimal("200.00")
        assert Decimal(rows["3000"]["credit"]) == Decimal("1000.00")
        assert Decimal(rows["4000"]["credit"]) == Decimal("500.00")
        assert Decimal(report["summary"]["total_debit"]) == Decimal("1500.00")
        assert report["summary"]["is_balanced"] is True

    def test_trial_balance_period_activity(self, client, auth_headers, ledger):
        report = get_report(client, auth_headers, "financial/trial-balance",
                            period="custom", start_date="2024-02-01", end_date="2024-02-29")
        cash = by_key(report["rows"], "code")["1100"]
        assert Decimal(cash["period_debit"]) == Decimal("500.00")
        assert Decimal(cash["period_credit"]) == Decimal("200.00")

    def test_profit_loss(self, client, auth_headers, ledger):
        report = get_report(client, auth_headers, "financial/profit-loss", **Q1_2024)
        assert [(row["section"], row["code"]) for row in report["rows"]] == [("Revenue", "4000"), ("Expenses", "6100")]
        summary = report["summary"]
        assert Decimal(summary["total_revenue"]) == Decimal("500.00")
        assert Decimal(summary["total_expenses"]) == Decimal("200.00")
        assert Decimal(summary["net_profit"]) == Decimal("300.00")
        assert Decimal(summary["profit_margin"]) == Decimal("60.0")

    def test_profit_loss_outside_period(self, client, auth_headers, ledger):
        report = get_report(client, auth_headers, "financial/profit-loss", **{**Q1_2024, "end_date": "2024-01-31"})
        assert report["rows"] == []
        assert Decimal(report["summary"]["net_profit"]) == Decimal("0.00")

    def test_balance_sheet(self, client, auth_headers, ledger):
        report = get_report(client, auth_headers, "financial/balance-sheet", **YEAR_2024)
        assert [row["name"] for row in report["rows"]] == ["Cash", "Bank Loan", "Owner Equity", "Current Earnings"]
        assert Decimal(report["rows"][-1]["balance"]) == Decimal("300.00")
        summary = report["summary"]
        assert Decimal(summary["total_assets"]) == Decimal("1300.00")
        assert Decimal(summary["total_equity"]) == Decimal("1300.00")
        assert summary["is_balanced"] is True

    def test_expense_by_category(self, client, auth_headers, ledger):
        report = get_report(client, auth_headers, "financial/expense-by-category", **Q1_2024)
        assert len(report["rows"]) == 1
        assert report["rows"][0]["category"] == "Rent Expense"
        assert Decimal(report["rows"][0]["share"]) == Decimal("100.0")

    def test_cash_flow(self, client, auth_headers, sales, widget):
        client.post("/inventory/movements", headers=auth_headers, json={
            "date": "2024-02-15", "type": "purchase", "inventory_item_id": widget["id"], "quantity": "5"
        })
        report = get_report(client, auth_headers, "financial/cash-flow", **Q1_2024)
        assert [row["month"] for row in report["rows"]] == ["2024-01", "2024-02", "2024-03"]
        february = report["rows"][1]
        assert Decimal(february["inflows"]) == Decimal("40.00")
        assert Decimal(february["outflows"]) == Decimal("20.00")
        assert Decimal(february["net"]) == Decimal("20.00")
        assert Decimal(report["summary"]["net_cash_flow"]) == Decimal("20.00")

    def test_income_by_customer(self, client, auth_headers, sales):
        report = get_report(client, auth_headers, "financial/income-by-customer", **Q1_2024)
        assert [row["customer_name"] for row in report["rows"]] == ["Acme Corporation"]
        assert Decimal(report["summary"]["total_income"]) == Decimal("40.00")


# ===== SALES =====

class TestSalesReports:

    def test_sales_by_customer(self, client, auth_headers, sales):
        report = get_report(client, auth_headers, "sales/sales-by-customer", **Q1_2024)
        assert [row["customer_name"] for row in report["rows"]] == ["Acme Corporation", "Globex"]
        acme = report["rows"][0]
        assert Decimal(acme["total"]) == Decimal("140.00")
        assert Decimal(acme["amount_due"]) == Decimal("100.00")
        summary = report["summary"]
        assert summary["invoice_count"] == 2
        assert Decimal(summary["total_sales"]) == Decimal("240.00")
        assert Decimal(summary["total_collected"]) == Decimal("40.00")
        assert Decimal(summary["total_outstanding"]) == Decimal("200.00")

    def test_sales_by_product(self, client, auth_headers, sales):
        report = get_report(client, auth_headers, "sales/sales-by-product", **Q1_2024)
        rows = by_key(report["rows"], "description")

        consulting = rows["Consulting"]
        assert Decimal(consulting["quantity"]) == Decimal("3")
        assert Decimal(consulting["revenue"]) == Decimal("200.00")
        assert Decimal(consulting["average_price"]) == Decimal("66.67")
        assert consulting["invoice_count"] == 2

        widget = rows["Widget"]
        assert widget["sku"] == "WID-001"
        assert Decimal(widget["revenue"]) == Decimal("30.00")
        assert report["rows"][0]["description"] == "Consulting"

    def test_sales_by_month(self, client, auth_headers, sales):
        report = get_report(client, auth_headers, "sales/sales-by-month", **Q1_2024)
        months = by_key(report["rows"], "month")
        assert months["2024-01"]["invoice_count"] == 0
        assert Decimal(months["2024-02"]["total"]) == Decimal("140.00")
        assert Decimal(months["2024-02"]["collected"]) == Decimal("40.00")
        assert Decimal(months["2024-03"]["total"]) == Decimal("100.00")

    def test_customer_retention(self, client, auth_headers, sales, customers):
        response = client.post("/invoices/", headers=auth_headers, json={
            "customer_id": customers["acme"]["id"], "date": "2024-03-20",
            "items": [{"description": "Support", "quantity": "1", "unit_price": "10.00"}],
        }).json()
        client.post(f"/invoices/{response['id']}/send", headers=auth_headers)

        report = get_report(client, auth_headers, "sales/customer-retention",
                            period="custom", start_date="2024-03-01", end_date="2024-03-31")
        statuses = {row["customer_name"]: row["status"] for row in report["rows"]}
        assert statuses == {"Acme Corporation": "retained", "Globex": "new"}
        assert report["summary"]["previous_period_end"] == "2024-02-29"
        assert Decimal(report["summary"]["retention_rate"]) == Decimal("100.0")

    def test_quotation_conversion(self, client, auth_headers, customers):
        item = [{"description": "Work", "quantity": "1", "unit_price": "100.00"}]
        ids = []
        for _ in range(3):
            response = client.post("/quotations/", headers=auth_headers, json={
                "customer_id": customers["acme"]["id"], "items": item
            })
            ids.append(response.json()["id"])
        for quotation_id, final in ((ids[1], "accepted"), (ids[2], "rejected")):
            client.post(f"/quotations/{quotation_id}/status", headers=auth_headers, json={"status": "sent"})
            client.post(f"/quotations/{quotation_id}/status", headers=auth_headers, json={"status": final})

        report = get_report(client, auth_headers, "sales/quotation-conversion", period="current-month")
        counts = {row["status"]: row["count"] for row in report["rows"]}
        assert counts == {"draft": 1, "sent": 0, "accepted": 1, "rejected": 1, "expired": 0}
        summary = report["summary"]
        assert summary["issued_quotations"] == 2
        assert Decimal(summary["conversion_rate"]) == Decimal("50.0")
        assert Decimal(summary["accepted_value"]) == Decimal("100.00")


# ===== INVENTORY =====

class TestInventoryReports:

    def test_inventory_valuation(self, client, auth_headers, stock):
        report = get_report(client, auth_headers, "inventory/inventory-valuation")
        assert [row["sku"] for row in report["rows"]] == ["BLT-001", "NUT-001", "WID-001"]
        summary = report["summary"]
        assert Decimal(summary["total_value"]) == Decimal("42.00")
        assert Decimal(summary["total_retail_value"]) == Decimal("106.00")
        assert {k: Decimal(v) for k, v in summary["value_by_category"].items()} == {
            "Fasteners": Decimal("2.00"), "Hardware": Decimal("40.00")
        }

    def test_valuation_by_location(self, client, auth_headers, stock):
        report = get_report(client, auth_headers, "inventory/inventory-valuation", location="Main")
        assert [row["sku"] for row in report["rows"]] == ["NUT-001", "WID-001"]
        assert report["filters"] == {"location": "Main"}

    def test_stock_levels(self, client, auth_headers, stock):
        report = get_report(client, auth_headers, "inventory/stock-levels")
        levels = {row["sku"]: row["stock_status"] for row in report["rows"]}
        assert levels == {"BLT-001": "low-stock", "NUT-001": "out-of-stock", "WID-001": "in-stock"}
        assert report["summary"]["low_stock"] == 1

    def test_inventory_movement(self, client, auth_headers, stock):
        for movement_date, movement_type, quantity in (("2024-02-15", "purchase", "5"), ("2024-03-01", "sale", "3")):
            client.post("/inventory/movements", headers=auth_headers, json={
                "date": movement_date, "type": movement_type, "inventory_item_id": stock["id"], "quantity": quantity
            })

        report = get_report(client, auth_headers, "inventory/inventory-movement", **Q1_2024)
        row = report["rows"][0]
        assert Decimal(row["purchased"]) == Decimal("5")
        assert Decimal(row["sold"]) == Decimal("3")
        assert Decimal(row["net_change"]) == Decimal("2")
        assert Decimal(row["total_cost"]) == Decimal("32.00")
        assert report["summary"]["movement_count"] == 2

    def test_slow_moving(self, client, auth_headers, stock):
        client.post("/inventory/movements", headers=auth_headers, json={
            "date": "2024-03-01", "type": "sale", "inventory_item_id": stock["id"], "quantity": "1"
        })

        report = get_report(client, auth_headers, "inventory/slow-moving", **Q1_2024)
        assert [row["sku"] for row in report["rows"]] == ["BLT-001"]
        assert report["summary"]["never_sold"] == 1

        report = get_report(client, auth_headers, "inventory/slow-moving")
        assert [row["sku"] for row in report["rows"]] == ["BLT-001", "WID-001"]
        assert report["rows"][1]["last_sale_date"] == "2024-03-01"

    def test_reorder_report(self, client, auth_headers, stock):
        report = get_report(client, auth_headers, "inventory/reorder-report")
        rows = by_key(report["rows"], "sku")
        assert set(rows) == {"BLT-001", "NUT-001"}
        assert Decimal(rows["BLT-001"]["suggested_quantity"]) == Decimal("8")
        assert Decimal(rows["NUT-001"]["estimated_cost"]) == Decimal("6.00")
        assert Decimal(report["summary"]["total_estimated_cost"]) == Decimal("14.00")


# ===== PROJECTS =====

class TestProjectReports:

    def test_project_profitability(self, client, auth_headers, projects):
        report = get_report(client, auth_headers, "projects/project-profitability", **YEAR_2024)
        rows = by_key(report["rows"], "name")
        assert set(rows) == {"Renovation", "Website"}

        renovation = rows["Renovation"]
        assert renovation["customer_name"] == "Acme Corporation"
        assert Decimal(renovation["revenue"]) == Decimal("1800.00")
        assert Decimal(renovation["profit"]) == Decimal("600.00")
        assert Decimal(renovation["margin"]) == Decimal("33.3")
        assert Decimal(rows["Website"]["profit"]) == Decimal("-100.00")

    def test_project_status(self, client, auth_headers, projects):
        report = get_report(client, auth_headers, "projects/project-status", **YEAR_2024)
        rows = by_key(report["rows"], "name")
        assert rows["Renovation"]["is_late"] is True
        assert rows["Renovation"]["tasks_total"] == 2
        assert rows["Renovation"]["tasks_done"] == 1
        assert rows["Website"]["is_late"] is False
        summary = report["summary"]
        assert summary["by_status"]["completed"] == 1
        assert Decimal(summary["average_progress"]) == Decimal("70.0")

    def test_budget_variance(self, client, auth_headers, projects):
        report = get_report(client, auth_headers, "projects/budget-variance", **YEAR_2024)
        assert [row["name"] for row in report["rows"]] == ["Renovation", "Website"]
        renovation = report["rows"][0]
        assert Decimal(renovation["variance"]) == Decimal("-200.00")
        assert Decimal(renovation["variance_pct"]) == Decimal("-20.0")
        assert renovation["over_budget"] is True
        assert report["summary"]["over_budget_count"] == 1
        assert Decimal(report["summary"]["total_variance"]) == Decimal("200.00")

    def test_filter_by_manager(self, client, auth_headers, projects, admin_user):
        report = get_report(client, auth_headers, "projects/budget-variance",
                            manager_id=admin_user["id"], **YEAR_2024)
        assert [row["name"] for row in report["rows"]] == ["Renovation"]
        assert report["filters"] == {"manager_id": admin_user["id"]}


# ===== CSV EXPORT =====

class TestCsvExport:

    def test_trial_balance_csv(self, client, auth_headers, ledger):
        response = client.get("/reports/financial/trial-balance", headers=auth_headers,
                              params={**YEAR_2024, "export": "csv"})
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert "trial_balance_2024-01-01_2024-12-31.csv" in response.headers["content-disposition"]

        rows = list(csv.reader(io.StringIO(response.text)))
        assert rows[0] == [
            "Account Code", "Account Name", "Type", "Period Debit", "Period Credit",
            "Debit Balance", "Credit Balance",
        ]
        assert rows[1][:3] == ["1100", "Cash", "asset"]
        assert len(rows) == 6

    def test_empty_report_keeps_headers(self, client, auth_headers):
        response = client.get("/reports/inventory/stock-levels", headers=auth_headers, params={"export": "csv"})
        assert response.status_code == 200
        assert response.text.strip() == "SKU,Item,Location,Quantity,Reorder Level,Status"

    def test_boolean_columns(self, client, auth_headers, projects):
        response = client.get("/reports/projects/budget-variance", headers=auth_headers,
                              params={**YEAR_2024, "export": "csv"})
        rows = list(csv.reader(io.StringIO(response.text)))
        assert [row[-1] for row in rows[1:]] == ["Yes", "No"]
