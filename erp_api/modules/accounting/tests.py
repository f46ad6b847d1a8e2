"""
Tests for the Accounting module

Covers the chart of accounts (hierarchy, parent rules, delete guards),
currencies with base currency conversion and double-entry journal
entries with posting.
"""

import pytest
from decimal import Decimal

from erp_api.modules.accounting.models import Account, AccountType, JournalEntry
from erp_api.modules.accounting.schemas import JournalLineCreate, CurrencyCreate, AccountUpdate


# ===== FIXTURES =====

@pytest.fixture
def create_account(client, auth_headers):
    def _create(code, name, account_type, parent_id=None, balance="0"):
        response = client.post("/accounts/", headers=auth_headers, json={
            "code": code,
            "name": name,
            "type": account_type,
            "parent_id": parent_id,
            "balance": balance,
        })
        assert response.status_code == 201, response.text
        return response.json()
    return _create


@pytest.fixture
def chart(create_account):
    """A small chart of accounts"""
    assets = create_account("1000", "Assets", "asset")
    cash = create_account("1100", "Cash", "asset", parent_id=assets["id"])
    bank = create_account("1200", "Bank", "asset", parent_id=assets["id"])
    revenue = create_account("4000", "Sales Revenue", "revenue")
    rent = create_account("6100", "Rent Expense", "expense")
    return {"assets": assets, "cash": cash, "bank": bank, "revenue": revenue, "rent": rent}


def entry_payload(debit_account, credit_account, amount="100.00", **extra):
    payload = {
        "date": "2024-03-15",
        "description": "Cash sale",
        "lines": [
            {"account_id": debit_account, "debit": amount},
            {"account_id": credit_account, "credit": amount},
        ],
    }
    payload.update(extra)
    return payload


# ===== MODELS =====

class TestAccountModel:
    """Balance direction per account type"""

    def test_debit_normal_account(self):
        account = Account(code="1", name="Cash", type=AccountType.ASSET, balance=Decimal("0"))
        account.apply_movement(Decimal("100"), Decimal("30"))
        assert account.balance == Decimal("70")

    def test_credit_normal_account(self):
        account = Account(code="4", name="Revenue", type=AccountType.REVENUE, balance=Decimal("0"))
        account.apply_movement(Decimal("10"), Decimal("100"))
        assert account.balance == Decimal("90")

    def test_unbalanced_entry_warns(self):
        entry = JournalEntry(debit_total=Decimal("100"), credit_total=Decimal("90"))
        assert not entry.is_balanced
        assert entry.warnings == ["Debits must equal credits"]

    def test_line_with_both_sides_rejected(self):
        with pytest.raises(ValueError):
            JournalLineCreate(
                account_id="00000000-0000-0000-0000-000000000001", debit="10", credit="10"
            )


# ===== ACCOUNTS =====

class TestAccounts:
    """Chart of accounts endpoints"""

    def test_create_account_normalizes_code(self, create_account):
        account = create_account(" 1000a ", "Petty Cash", "asset")
        assert account["code"] == "1000A"
        assert account["currency"] == "USD"

    def test_duplicate_code(self, client, auth_headers, chart):
        response = client.post("/accounts/", headers=auth_headers, json={
            "code": "1100", "name": "Other Cash", "type": "asset"
        })
        assert response.status_code == 409

    def test_short_name(self, client, auth_headers):
        response = client.post("/accounts/", headers=auth_headers, json={
            "code": "9", "name": "X", "type": "asset"
        })
        assert response.status_code == 422

    def test_unknown_parent(self, client, auth_headers):
        response = client.post("/accounts/", headers=auth_headers, json={
            "code": "9", "name": "Orphan", "type": "asset",
            "parent_id": "00000000-0000-0000-0000-000000000000"
        })
        assert response.status_code == 404

    def test_list_with_filters(self, client, auth_headers, chart):
        response = client.get("/accounts/", headers=auth_headers, params={"type": "asset"})
        assert response.json()["total"] == 3

        response = client.get("/accounts/", headers=auth_headers, params={"search": "rent"})
        assert [a["code"] for a in response.json()["accounts"]] == ["6100"]

    def test_tree(self, client, auth_headers, chart):
        response = client.get("/accounts/tree", headers=auth_headers)
        assert response.status_code == 200
        roots = response.json()
        assert [root["code"] for root in roots] == ["1000", "4000", "6100"]
        assert [child["code"] for child in roots[0]["children"]] == ["1100", "1200"]

    def test_tree_search_keeps_ancestors(self, client, auth_headers, chart):
        response = client.get("/accounts/tree", headers=auth_headers, params={"search": "bank"})
        roots = response.json()
        assert len(roots) == 1
        assert roots[0]["code"] == "1000"
        assert [child["code"] for child in roots[0]["children"]] == ["1200"]

    def test_parent_options_exclude_descendants(self, client, auth_headers, chart):
        response = client.get(f"/accounts/{chart['assets']['id']}/parent-options", headers=auth_headers)
        codes = [a["code"] for a in response.json()]
        assert codes == ["4000", "6100"]

    def test_cannot_be_own_parent(self, client, auth_headers, chart):
        account_id = chart["cash"]["id"]
        response = client.patch(f"/accounts/{account_id}", headers=auth_headers, json={"parent_id": account_id})
        assert response.status_code == 400

    def test_cannot_move_under_descendant(self, client, auth_headers, chart):
        response = client.patch(
            f"/accounts/{chart['assets']['id']}",
            headers=auth_headers,
            json={"parent_id": chart["cash"]["id"]}
        )
        assert response.status_code == 400

    def test_update_account(self, client, auth_headers, chart):
        response = client.patch(f"/accounts/{chart['rent']['id']}", headers=auth_headers, json={
            "name": "Office Rent"
        })
        assert response.status_code == 200
        assert response.json()["name"] == "Office Rent"

    def test_blank_code_rejected(self):
        with pytest.raises(ValueError):
            AccountUpdate(code="   ")

    def test_update_with_blank_code(self, client, auth_headers, chart):
        response = client.patch(f"/accounts/{chart['rent']['id']}", headers=auth_headers, json={"code": "   "})
        assert response.status_code == 422
        rent = client.get(f"/accounts/{chart['rent']['id']}", headers=auth_headers).json()
        assert rent["code"] == "6100"

    def test_delete_parent_with_children(self, client, auth_headers, chart):
        response = client.delete(f"/accounts/{chart['assets']['id']}", headers=auth_headers)
        assert response.status_code == 400
        assert response.json()["detail"] == "This account has sub-accounts. Please delete them first."

    def test_delete_account_used_by_journal(self, client, auth_headers, chart):
        client.post("/journal-entries/", headers=auth_headers,
                    json=entry_payload(chart["cash"]["id"], chart["revenue"]["id"]))
        response = client.delete(f"/accounts/{chart['revenue']['id']}", headers=auth_headers)
        assert response.status_code == 409

    def test_delete_leaf_account(self, client, auth_headers, chart):
        response = client.delete(f"/accounts/{chart['rent']['id']}", headers=auth_headers)
        assert response.status_code == 200


# ===== CURRENCIES =====

class TestCurrencies:
    """Currencies and conversion through the base currency"""

    @pytest.fixture
    def currencies(self, client, auth_headers):
        created = {}
        for payload in (
            {"code": "usd", "name": "US Dollar", "symbol": "$", "exchange_rate": "1", "is_base_currency": True},
            {"code": "EUR", "name": "Euro", "symbol": "€", "exchange_rate": "0.9"},
            {"code": "GBP", "name": "Pound Sterling", "symbol": "£", "exchange_rate": "0.8", "is_active": False},
        ):
            response = client.post("/currencies/", headers=auth_headers, json=payload)
            assert response.status_code == 201, response.text
            created[response.json()["code"]] = response.json()
        return created

    def test_code_must_have_three_letters(self):
        with pytest.raises(ValueError):
            CurrencyCreate(code="EU", name="Euro", symbol="€", exchange_rate="1")

    def test_duplicate_code(self, client, auth_headers, currencies):
        response = client.post("/currencies/", headers=auth_headers, json={
            "code": "EUR", "name": "Euro again", "symbol": "€", "exchange_rate": "1"
        })
        assert response.status_code == 409

    def test_list_active_only(self, client, auth_headers, currencies):
        assert len(client.get("/currencies/", headers=auth_headers).json()) == 3
        active = client.get("/currencies/", headers=auth_headers, params={"active_only": True}).json()
        assert {c["code"] for c in active} == {"USD", "EUR"}

    def test_new_base_currency_replaces_old(self, client, auth_headers, currencies):
        response = client.patch(
            f"/currencies/{currencies['EUR']['id']}", headers=auth_headers, json={"is_base_currency": True}
        )
        assert response.status_code == 200
        assert Decimal(response.json()["exchange_rate"]) == Decimal("1")

        usd = client.get(f"/currencies/{currencies['USD']['id']}", headers=auth_headers).json()
        assert usd["is_base_currency"] is False

    def test_cannot_unset_base_flag(self, client, auth_headers, currencies):
        response = client.patch(
            f"/currencies/{currencies['USD']['id']}", headers=auth_headers, json={"is_base_currency": False}
        )
        assert response.status_code == 400

    def test_cannot_delete_base_currency(self, client, auth_headers, currencies):
        response = client.delete(f"/currencies/{currencies['USD']['id']}", headers=auth_headers)
        assert response.status_code == 400
        assert response.json()["detail"] == "Cannot delete base currency"

    def test_delete_currency(self, client, auth_headers, currencies):
        response = client.delete(f"/currencies/{currencies['GBP']['id']}", headers=auth_headers)
        assert response.status_code == 200

    def test_convert(self, client, auth_headers, currencies):
        response = client.get("/currencies/convert", headers=auth_headers, params={
            "amount": "100", "from": "EUR", "to": "GBP"
        })
        assert response.status_code == 200
        data = response.json()
        assert Decimal(data["converted_amount"]) == Decimal("88.89")
        assert data["from_currency"] == "EUR"

    def test_convert_unknown_currency(self, client, auth_headers, currencies):
        response = client.get("/currencies/convert", headers=auth_headers, params={
            "amount": "100", "from": "EUR", "to": "JPY"
        })
        assert response.status_code == 404


# ===== JOURNAL ENTRIES =====

class TestJournalEntries:
    """Double-entry bookkeeping"""

    def test_create_draft_with_generated_reference(self, client, auth_headers, chart):
        response = client.post("/journal-entries/", headers=auth_headers,
                               json=entry_payload(chart["cash"]["id"], chart["revenue"]["id"]))
        assert response.status_code == 201
        data = response.json()
        assert data["reference"] == "JE-000001"
        assert data["status"] == "draft"
        assert data["is_balanced"] is True
        assert Decimal(data["debit_total"]) == Decimal("100.00")

        cash = client.get(f"/accounts/{chart['cash']['id']}", headers=auth_headers).json()
        assert Decimal(cash["balance"]) == Decimal("0")

    def test_unbalanced_draft_has_warning(self, client, auth_headers, chart):
        payload = entry_payload(chart["cash"]["id"], chart["revenue"]["id"])
        payload["lines"][1]["credit"] = "90.00"
        response = client.post("/journal-entries/", headers=auth_headers, json=payload)
        assert response.status_code == 201
        assert response.json()["warnings"] == ["Debits must equal credits"]

    def test_post_updates_balances(self, client, auth_headers, chart):
        entry = client.post("/journal-entries/", headers=auth_headers,
                            json=entry_payload(chart["cash"]["id"], chart["revenue"]["id"])).json()

        response = client.post(f"/journal-entries/{entry['id']}/post", headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["status"] == "posted"
        assert response.json()["posted_at"] is not None

        cash = client.get(f"/accounts/{chart['cash']['id']}", headers=auth_headers).json()
        revenue = client.get(f"/accounts/{chart['revenue']['id']}", headers=auth_headers).json()
        assert Decimal(cash["balance"]) == Decimal("100.00")
        assert Decimal(revenue["balance"]) == Decimal("100.00")

    def test_create_posted(self, client, auth_headers, chart):
        response = client.post("/journal-entries/", headers=auth_headers, json=entry_payload(
            chart["rent"]["id"], chart["bank"]["id"], amount="50.00", status="posted"
        ))
        assert response.status_code == 201
        bank = client.get(f"/accounts/{chart['bank']['id']}", headers=auth_headers).json()
        assert Decimal(bank["balance"]) == Decimal("-50.00")

    def test_cannot_post_unbalanced(self, client, auth_headers, chart):
        payload = entry_payload(chart["cash"]["id"], chart["revenue"]["id"], status="posted")
        payload["lines"][1]["credit"] = "90.00"
        response = client.post("/journal-entries/", headers=auth_headers, json=payload)
        assert response.status_code == 400
        assert response.json()["detail"] == "Debits must equal credits"

    def test_cannot_post_single_line(self, client, auth_headers, chart):
        payload = {
            "date": "2024-03-15",
            "description": "Half an entry",
            "lines": [{"account_id": chart["cash"]["id"], "debit": "10"}],
        }
        entry = client.post("/journal-entries/", headers=auth_headers, json=payload).json()
        response = client.post(f"/journal-entries/{entry['id']}/post", headers=auth_headers)
        assert response.status_code == 400

    def test_unknown_account(self, client, auth_headers, chart):
        payload = entry_payload(chart["cash"]["id"], "00000000-0000-0000-0000-000000000000")
        response = client.post("/journal-entries/", headers=auth_headers, json=payload)
        assert response.status_code == 404

    def test_duplicate_reference(self, client, auth_headers, chart):
        payload = entry_payload(chart["cash"]["id"], chart["revenue"]["id"], reference="REF-1")
        assert client.post("/journal-entries/", headers=auth_headers, json=payload).status_code == 201
        assert client.post("/journal-entries/", headers=auth_headers, json=payload).status_code == 409

    def test_generated_reference_skips_typed_one(self, client, auth_headers, chart):
        typed = entry_payload(chart["cash"]["id"], chart["revenue"]["id"], reference="JE-000001")
        assert client.post("/journal-entries/", headers=auth_headers, json=typed).status_code == 201

        response = client.post("/journal-entries/", headers=auth_headers,
                               json=entry_payload(chart["cash"]["id"], chart["revenue"]["id"]))
        assert response.status_code == 201
        assert response.json()["reference"] == "JE-000002"

    def test_unknown_line_customer_or_project(self, client, auth_headers, chart):
        unknown = "00000000-0000-0000-0000-000000000000"
        for field, label in (("customer_id", "Customer"), ("project_id", "Project")):
            payload = entry_payload(chart["cash"]["id"], chart["revenue"]["id"])
            payload["lines"][0][field] = unknown
            response = client.post("/journal-entries/", headers=auth_headers, json=payload)
            assert response.status_code == 404
            assert response.json()["detail"].startswith(f"{label} not found")

    def test_update_draft_lines(self, client, auth_headers, chart):
        entry = client.post("/journal-entries/", headers=auth_headers,
                            json=entry_payload(chart["cash"]["id"], chart["revenue"]["id"])).json()

        response = client.patch(f"/journal-entries/{entry['id']}", headers=auth_headers, json={
            "lines": entry_payload(chart["bank"]["id"], chart["revenue"]["id"], amount="75.00")["lines"]
        })
        assert response.status_code == 200
        assert Decimal(response.json()["debit_total"]) == Decimal("75.00")
        assert response.json()["lines"][0]["account_id"] == chart["bank"]["id"]

    def test_posted_entry_is_immutable(self, client, auth_headers, chart):
        entry = client.post("/journal-entries/", headers=auth_headers, json=entry_payload(
            chart["cash"]["id"], chart["revenue"]["id"], status="posted"
        )).json()

        response = client.patch(f"/journal-entries/{entry['id']}", headers=auth_headers, json={
            "description": "Changed"
        })
        assert response.status_code == 400

        response = client.delete(f"/journal-entries/{entry['id']}", headers=auth_headers)
        assert response.status_code == 400

        response = client.post(f"/journal-entries/{entry['id']}/post", headers=auth_headers)
        assert response.status_code == 400

    def test_delete_draft(self, client, auth_headers, chart):
        entry = client.post("/journal-entries/", headers=auth_headers,
                            json=entry_payload(chart["cash"]["id"], chart["revenue"]["id"])).json()
        response = client.delete(f"/journal-entries/{entry['id']}", headers=auth_headers)
        assert response.status_code == 200

    def test_list_filters(self, client, auth_headers, chart):
        client.post("/journal-entries/", headers=auth_headers,
                    json=entry_payload(chart["cash"]["id"], chart["revenue"]["id"]))
        client.post("/journal-entries/", headers=auth_headers, json=entry_payload(
            chart["rent"]["id"], chart["bank"]["id"], status="posted", date="2024-05-01", description="May rent"
        ))

        response = client.get("/journal-entries/", headers=auth_headers, params={"status": "posted"})
        assert response.json()["total"] == 1

        response = client.get("/journal-entries/", headers=auth_headers, params={"start_date": "2024-04-01"})
        assert response.json()["journal_entries"][0]["description"] == "May rent"

        response = client.get("/journal-entries/", headers=auth_headers, params={"search": "cash sale"})
        assert response.json()["total"] == 1
