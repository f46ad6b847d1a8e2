"""
Tests for the shared helpers: line math, document numbering and validators
"""

from datetime import date
from decimal import Decimal
from types import SimpleNamespace

from erp_api.common.calculator import LineCalculator, to_money
from erp_api.common.numbering import next_document_number
from erp_api.common.validators import (
    validate_phone, validate_currency_code, normalize_code, validate_tax_id
)


# ===== CALCULATOR =====

class TestLineCalculator:
    """Discount from the gross amount, tax on the discounted base"""

    def test_to_money_rounds_half_up(self):
        assert to_money("2.345") == Decimal("2.35")
        assert to_money("2.344") == Decimal("2.34")
        assert to_money(None) == Decimal("0.00")

    def test_plain_line(self):
        line = LineCalculator.calculate_line(3, "10.00")
        assert line.base == Decimal("30.00")
        assert line.discount == Decimal("0.00")
        assert line.tax == Decimal("0.00")
        assert line.total == Decimal("30.00")

    def test_line_with_discount_and_tax(self):
        line = LineCalculator.calculate_line(2, "50.00", tax_rate=10, discount_rate=20)
        assert line.base == Decimal("100.00")
        assert line.discount == Decimal("20.00")
        assert line.tax == Decimal("8.00")
        assert line.total == Decimal("88.00")

    def test_fractional_quantity(self):
        line = LineCalculator.calculate_line("1.5", "3.33")
        assert line.total == Decimal("5.00")

    def test_document_totals(self):
        items = [
            SimpleNamespace(quantity=2, unit_price=Decimal("50"), tax_rate=10, discount_rate=20),
            SimpleNamespace(quantity=1, unit_price=Decimal("25"), tax_rate=0, discount_rate=0),
        ]
        totals = LineCalculator.calculate_document(items)
        assert totals.subtotal == Decimal("125.00")
        assert totals.discount_amount == Decimal("20.00")
        assert totals.tax_amount == Decimal("8.00")
        assert totals.total == Decimal("113.00")
        assert len(totals.lines) == 2

    def test_items_without_rates(self):
        items = [SimpleNamespace(quantity=4, unit_price=Decimal("2.50"))]
        assert LineCalculator.calculate_document(items).total == Decimal("10.00")


# ===== NUMBERING =====

class TestDocumentNumbering:
    """Sequential numbers per prefix and year"""

    def test_yearly_sequence(self, db_session):
        assert next_document_number(db_session, "INV", date(2024, 3, 1)) == "INV-2024-001"
        assert next_document_number(db_session, "INV", date(2024, 5, 1)) == "INV-2024-002"

    def test_sequence_restarts_each_year(self, db_session):
        next_document_number(db_session, "QT", date(2024, 12, 31))
        assert next_document_number(db_session, "QT", date(2025, 1, 1)) == "QT-2025-001"

    def test_prefixes_are_independent(self, db_session):
        next_document_number(db_session, "DN", date(2024, 1, 1))
        assert next_document_number(db_session, "INV", date(2024, 1, 1)) == "INV-2024-001"

    def test_global_sequence(self, db_session):
        assert next_document_number(db_session, "PRJ", yearly=False) == "PRJ-001"
        assert next_document_number(db_session, "JE", width=6, yearly=False) == "JE-000001"

    def test_taken_numbers_are_skipped(self, db_session):
        taken = {"PRJ-001", "PRJ-002"}
        assert next_document_number(db_session, "PRJ", yearly=False, is_taken=taken.__contains__) == "PRJ-003"
        assert next_document_number(db_session, "PRJ", yearly=False, is_taken=taken.__contains__) == "PRJ-004"


# ===== VALIDATORS =====

class TestValidators:

    def test_phone(self):
        assert validate_phone("+1 (555) 123-4567")
        assert validate_phone("555.123.4567")
        assert not validate_phone("12345")
        assert not validate_phone("phone")

    def test_currency_code(self):
        assert validate_currency_code("usd")
        assert not validate_currency_code("US")
        assert not validate_currency_code("US1")

    def test_normalize_code(self):
        assert normalize_code("  sku-01 ") == "SKU-01"
        assert normalize_code(None) is None

    def test_tax_id(self):
        assert validate_tax_id("12.345.678/0001-90")
        assert not validate_tax_id("123")
        assert not validate_tax_id("12#45")
