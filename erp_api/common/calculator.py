"""
Line and document totals for priced documents (quotations, invoices, delivery notes)
"""

from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, List

CENT = Decimal("0.01")
HUNDRED = Decimal("100")


def to_money(value) -> Decimal:
    """Round a value half-up to cents."""
    return Decimal(str(value or 0)).quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass
class LineTotals:
    base: Decimal
    discount: Decimal
    tax: Decimal
    total: Decimal


@dataclass
class DocumentTotals:
    subtotal: Decimal = Decimal("0.00")
    discount_amount: Decimal = Decimal("0.00")
    tax_amount: Decimal = Decimal("0.00")
    total: Decimal = Decimal("0.00")
    lines: List[LineTotals] = field(default_factory=list)


class LineCalculator:
    """Compute line totals with percentage discount and tax"""

    @staticmethod
    def calculate_line(
        quantity,
        unit_price,
        tax_rate=0,
        discount_rate=0
    ) -> LineTotals:
        """
        Discount is taken from the gross amount and tax is charged on what
        remains: total = base - discount + tax
        """
        base = to_money(Decimal(str(quantity)) * Decimal(str(unit_price)))
        discount = to_money(base * Decimal(str(discount_rate or 0)) / HUNDRED)
        tax = to_money((base - discount) * Decimal(str(tax_rate or 0)) / HUNDRED)
        return LineTotals(base=base, discount=discount, tax=tax, total=base - discount + tax)

    @classmethod
    def calculate_document(cls, items: Iterable) -> DocumentTotals:
        """
        Sum line totals for any iterable of objects exposing quantity,
        unit_price and optionally tax_rate/discount_rate.
        """
        totals = DocumentTotals()
        for item in items:
            line = cls.calculate_line(
                item.quantity,
                item.unit_price,
                getattr(item, "tax_rate", 0),
                getattr(item, "discount_rate", 0)
            )
            totals.lines.append(line)
            totals.subtotal += line.base
            totals.discount_amount += line.discount
            totals.tax_amount += line.tax
            totals.total += line.total
        return totals
