"""
Sales Reports Service
"""

from collections import defaultdict
from datetime import date, timedelta
from decimal import Decimal
from typing import Any, Dict

from erp_api.common.calculator import to_money
from erp_api.modules.inventory.models import InventoryItem
from erp_api.modules.quotations.models import Quotation, QuotationStatus
from .base import BaseReportService
from ..utils import month_key, months_between, percentage


class SalesReportService(BaseReportService):
    """Service for sales reports, built from issued invoices"""

    def get_sales_by_customer(self, start_date: date, end_date: date) -> Dict[str, Any]:
        grouped = {}
        for invoice in self._issued_invoices(start_date, end_date):
            customer = invoice.customer
            row = grouped.setdefault(customer.id, {
                "customer_id": customer.id,
                "customer_name": customer.name,
                "invoice_count": 0,
                "subtotal": Decimal("0.00"),
                "tax_amount": Decimal("0.00"),
                "total": Decimal("0.00"),
                "amount_paid": Decimal("0.00"),
                "amount_due": Decimal("0.00"),
            })
            row["invoice_count"] += 1
            for field in ("subtotal", "tax_amount", "total", "amount_paid", "amount_due"):
                row[field] += to_money(getattr(invoice, field))

        rows = sorted(grouped.values(), key=lambda r: r["total"], reverse=True)
        summary = {
            "customer_count": len(rows),
            "invoice_count": sum(row["invoice_count"] for row in rows),
            "total_sales": self._sum(row["total"] for row in rows),
            "total_collected": self._sum(row["amount_paid"] for row in rows),
            "total_outstanding": self._sum(row["amount_due"] for row in rows),
        }
        return self._envelope("sales-by-customer", "Sales by Customer", start_date, end_date, rows, summary)

    def get_sales_by_product(self, start_date: date, end_date: date) -> Dict[str, Any]:
        """
        Invoice lines grouped by inventory item. Lines without an item are
        grouped by their description. Revenue excludes tax.
        """
        grouped = {}
        for invoice in self._issued_invoices(start_date, end_date):
            for line in invoice.items:
                key = line.inventory_item_id or line.description
                row = grouped.setdefault(key, {
                    "inventory_item_id": line.inventory_item_id,
                    "sku": "",
                    "description": line.description,
                    "quantity": Decimal("0"),
                    "revenue": Decimal("0.00"),
                    "invoices": set(),
                })
                quantity = Decimal(line.quantity)
                gross = quantity * Decimal(line.unit_price)
                row["quantity"] += quantity
                row["revenue"] += to_money(gross - gross * Decimal(line.discount_rate) / 100)
                row["invoices"].add(invoice.id)

        item_ids = [row["inventory_item_id"] for row in grouped.values() if row["inventory_item_id"]]
        if item_ids:
            items = {
                item.id: item
                for item in self.db.query(InventoryItem).filter(InventoryItem.id.in_(item_ids)).all()
            }
        else:
            items = {}

        rows = []
        for row in grouped.values():
            item = items.get(row["inventory_item_id"])
            if item:
                row["sku"] = item.sku
                row["description"] = item.name
            row["invoice_count"] = len(row.pop("invoices"))
            row["average_price"] = to_money(row["revenue"] / row["quantity"]) if row["quantity"] else Decimal("0.00")
            rows.append(row)
        rows.sort(key=lambda r: r["revenue"], reverse=True)

        summary = {
            "product_count": len(rows),
            "total_quantity": sum((row["quantity"] for row in rows), Decimal("0")),
            "total_revenue": self._sum(row["revenue"] for row in rows),
        }
        return self._envelope("sales-by-product", "Sales by Product", start_date, end_date, rows, summary)

    def get_sales_by_month(self, start_date: date, end_date: date) -> Dict[str, Any]:
        invoiced = defaultdict(Decimal)
        counts = defaultdict(int)
        for invoice in self._issued_invoices(start_date, end_date):
            key = month_key(invoice.date)
            invoiced[key] += Decimal(invoice.total)
            counts[key] += 1

        collected = defaultdict(Decimal)
        for payment in self._payments(start_date, end_date):
            collected[month_key(payment.date)] += Decimal(payment.amount)

        rows = [
            {
                "month": month,
                "invoice_count": counts[month],
                "total": to_money(invoiced[month]),
                "collected": to_money(collected[month]),
            }
            for month in months_between(start_date, end_date)
        ]

        summary = {
            "invoice_count": sum(counts.values()),
            "total_sales": self._sum(row["total"] for row in rows),
            "total_collected": self._sum(row["collected"] for row in rows),
        }
        return self._envelope("sales-by-month", "Sales by Month", start_date, end_date, rows, summary)

    def get_quotation_conversion(self, start_date: date, end_date: date) -> Dict[str, Any]:
        """
        Quotations dated in the period by status. The conversion rate is
        accepted quotations over every quotation that left draft.
        """
        quotations = self.db.query(Quotation).filter(
            Quotation.date >= start_date,
            Quotation.date <= end_date
        ).all()

        rows = []
        for quotation_status in QuotationStatus:
            matching = [q for q in quotations if q.status == quotation_status]
            rows.append({
                "status": quotation_status.value,
                "count": len(matching),
                "total_value": self._sum(q.total for q in matching),
                "share": percentage(len(matching), len(quotations)),
            })

        counts = {row["status"]: row["count"] for row in rows}
        values = {row["status"]: row["total_value"] for row in rows}
        issued = len(quotations) - counts[QuotationStatus.DRAFT.value]
        summary = {
            "total_quotations": len(quotations),
            "issued_quotations": issued,
            "accepted_quotations": counts[QuotationStatus.ACCEPTED.value],
            "conversion_rate": percentage(counts[QuotationStatus.ACCEPTED.value], issued),
            "accepted_value": values[QuotationStatus.ACCEPTED.value],
            "total_value": self._sum(values.values()),
        }
        return self._envelope(
            "quotation-conversion", "Quotation Conversion", start_date, end_date, rows, summary
        )

    def get_customer_retention(self, start_date: date, end_date: date) -> Dict[str, Any]:
        """
        Compare invoiced customers in the period with the preceding period
        of the same length.
        """
        length = end_date - start_date
        previous_end = start_date - timedelta(days=1)
        previous_start = previous_end - length

        def invoice_counts(invoices):
            counts = defaultdict(int)
            names = {}
            for invoice in invoices:
                counts[invoice.customer_id] += 1
                names[invoice.customer_id] = invoice.customer.name
            return counts, names

        current, current_names = invoice_counts(self._issued_invoices(start_date, end_date))
        previous, previous_names = invoice_counts(self._issued_invoices(previous_start, previous_end))
        names = {**previous_names, **current_names}

        rows = []
        for customer_id in set(current) | set(previous):
            if customer_id in current and customer_id in previous:
                retention_status = "retained"
            elif customer_id in current:
                retention_status = "new"
            else:
                retention_status = "lost"
            rows.append({
                "customer_id": customer_id,
                "customer_name": names[customer_id],
                "previous_invoices": previous.get(customer_id, 0),
                "current_invoices": current.get(customer_id, 0),
                "status": retention_status,
            })
        rows.sort(key=lambda r: (r["status"], r["customer_name"]))

        retained = sum(1 for row in rows if row["status"] == "retained")
        summary = {
            "previous_period_start": previous_start,
            "previous_period_end": previous_end,
            "previous_customers": len(previous),
            "current_customers": len(current),
            "retained_customers": retained,
            "new_customers": sum(1 for row in rows if row["status"] == "new"),
            "lost_customers": sum(1 for row in rows if row["status"] == "lost"),
            "retention_rate": percentage(retained, len(previous)),
        }
        return self._envelope(
            "customer-retention", "Customer Retention", start_date, end_date, rows, summary
        )
