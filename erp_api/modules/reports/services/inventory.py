"""
Inventory Reports Service

Stock reports read the current state of the item catalogue; the period
only applies to the movement and slow-moving reports.
"""

from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import func

from erp_api.core.config import settings
from erp_api.common.calculator import to_money
from erp_api.modules.inventory.models import InventoryItem, InventoryMovement, MovementType
from .base import BaseReportService


class InventoryReportService(BaseReportService):
    """Service for inventory reports"""

    def _items(self, category: Optional[str] = None, location: Optional[str] = None) -> List[InventoryItem]:
        query = self.db.query(InventoryItem).filter(InventoryItem.is_active.is_(True))
        if category:
            query = query.filter(InventoryItem.category == category)
        if location:
            query = query.filter(InventoryItem.location == location)
        return query.order_by(InventoryItem.sku).all()

    def get_inventory_valuation(
        self, start_date: date, end_date: date, category: Optional[str] = None, location: Optional[str] = None
    ) -> Dict[str, Any]:
        rows = []
        for item in self._items(category, location):
            quantity = Decimal(item.quantity)
            rows.append({
                "inventory_item_id": item.id,
                "sku": item.sku,
                "name": item.name,
                "category": item.category,
                "location": item.location,
                "quantity": quantity,
                "cost_price": to_money(item.cost_price),
                "stock_value": to_money(quantity * Decimal(item.cost_price)),
                "retail_value": to_money(quantity * Decimal(item.selling_price)),
            })

        by_category = defaultdict(Decimal)
        for row in rows:
            by_category[row["category"] or "Uncategorized"] += row["stock_value"]

        total_value = self._sum(row["stock_value"] for row in rows)
        total_retail = self._sum(row["retail_value"] for row in rows)
        summary = {
            "item_count": len(rows),
            "total_quantity": sum((row["quantity"] for row in rows), Decimal("0")),
            "total_value": total_value,
            "total_retail_value": total_retail,
            "potential_margin": total_retail - total_value,
            "value_by_category": {name: to_money(value) for name, value in sorted(by_category.items())},
        }
        return self._envelope(
            "inventory-valuation", "Inventory Valuation", start_date, end_date, rows, summary,
            {"category": category, "location": location}
        )

    def get_stock_levels(
        self, start_date: date, end_date: date, category: Optional[str] = None, location: Optional[str] = None
    ) -> Dict[str, Any]:
        rows = []
        for item in self._items(category, location):
            quantity = Decimal(item.quantity)
            if quantity <= 0:
                stock_status = "out-of-stock"
            elif item.needs_reorder:
                stock_status = "low-stock"
            else:
                stock_status = "in-stock"
            rows.append({
                "inventory_item_id": item.id,
                "sku": item.sku,
                "name": item.name,
                "location": item.location,
                "quantity": quantity,
                "reorder_level": Decimal(item.reorder_level),
                "stock_status": stock_status,
            })

        summary = {
            "item_count": len(rows),
            "in_stock": sum(1 for row in rows if row["stock_status"] == "in-stock"),
            "low_stock": sum(1 for row in rows if row["stock_status"] == "low-stock"),
            "out_of_stock": sum(1 for row in rows if row["stock_status"] == "out-of-stock"),
        }
        return self._envelope(
            "stock-levels", "Stock Levels", start_date, end_date, rows, summary,
            {"category": category, "location": location}
        )

    def get_inventory_movement(
        self, start_date: date, end_date: date, category: Optional[str] = None, location: Optional[str] = None
    ) -> Dict[str, Any]:
        """Movement quantities per item and type within the period."""
        items = {item.id: item for item in self._items(category, location)}
        movements = self.db.query(InventoryMovement).filter(
            InventoryMovement.date >= start_date,
            InventoryMovement.date <= end_date
        ).all()

        columns = {
            MovementType.PURCHASE: "purchased",
            MovementType.SALE: "sold",
            MovementType.ADJUSTMENT: "adjusted",
            MovementType.TRANSFER: "transferred",
        }
        grouped = {}
        for movement in movements:
            item = items.get(movement.inventory_item_id)
            if item is None:
                continue
            row = grouped.setdefault(item.id, {
                "inventory_item_id": item.id,
                "sku": item.sku,
                "name": item.name,
                "purchased": Decimal("0"),
                "sold": Decimal("0"),
                "adjusted": Decimal("0"),
                "transferred": Decimal("0"),
                "net_change": Decimal("0"),
                "total_cost": Decimal("0.00"),
            })
            quantity = Decimal(movement.quantity)
            row[columns[movement.type]] += abs(quantity)
            row["net_change"] += quantity
            row["total_cost"] += to_money(movement.total_cost)

        rows = sorted(grouped.values(), key=lambda r: r["sku"])
        summary = {
            "movement_count": sum(1 for m in movements if m.inventory_item_id in items),
            "item_count": len(rows),
            "total_purchased": sum((row["purchased"] for row in rows), Decimal("0")),
            "total_sold": sum((row["sold"] for row in rows), Decimal("0")),
            "total_cost": self._sum(row["total_cost"] for row in rows),
        }
        return self._envelope(
            "inventory-movement", "Inventory Movement", start_date, end_date, rows, summary,
            {"category": category, "location": location}
        )

    def get_slow_moving(
        self, start_date: date, end_date: date, category: Optional[str] = None, location: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Items in stock without a sale in the last SLOW_MOVING_DAYS days,
        counted back from the end of the period.
        """
        threshold = settings.SLOW_MOVING_DAYS
        last_sales = dict(
            self.db.query(InventoryMovement.inventory_item_id, func.max(InventoryMovement.date)).filter(
                InventoryMovement.type == MovementType.SALE,
                InventoryMovement.date <= end_date
            ).group_by(InventoryMovement.inventory_item_id).all()
        )

        rows = []
        for item in self._items(category, location):
            if Decimal(item.quantity) <= 0:
                continue
            last_sale = last_sales.get(item.id)
            days_since = (end_date - last_sale).days if last_sale else None
            if days_since is not None and days_since < threshold:
                continue
            rows.append({
                "inventory_item_id": item.id,
                "sku": item.sku,
                "name": item.name,
                "quantity": Decimal(item.quantity),
                "last_sale_date": last_sale,
                "days_since_last_sale": days_since,
                "stock_value": to_money(item.stock_value),
            })
        # Never sold first, then the longest idle
        rows.sort(key=lambda r: (r["days_since_last_sale"] is not None, -(r["days_since_last_sale"] or 0)))

        summary = {
            "threshold_days": threshold,
            "item_count": len(rows),
            "never_sold": sum(1 for row in rows if row["last_sale_date"] is None),
            "tied_up_value": self._sum(row["stock_value"] for row in rows),
        }
        return self._envelope(
            "slow-moving", "Slow Moving Items", start_date, end_date, rows, summary,
            {"category": category, "location": location}
        )

    def get_reorder_report(
        self, start_date: date, end_date: date, category: Optional[str] = None, location: Optional[str] = None
    ) -> Dict[str, Any]:
        """Items at or below their reorder level with a suggested order that restocks to twice the level."""
        rows = []
        for item in self._items(category, location):
            if not item.needs_reorder:
                continue
            quantity = Decimal(item.quantity)
            reorder_level = Decimal(item.reorder_level)
            suggested = max(reorder_level * 2 - quantity, Decimal("0"))
            rows.append({
                "inventory_item_id": item.id,
                "sku": item.sku,
                "name": item.name,
                "location": item.location,
                "quantity": quantity,
                "reorder_level": reorder_level,
                "shortfall": reorder_level - quantity,
                "suggested_quantity": suggested,
                "estimated_cost": to_money(suggested * Decimal(item.cost_price)),
            })
        rows.sort(key=lambda r: r["shortfall"], reverse=True)

        summary = {
            "item_count": len(rows),
            "total_estimated_cost": self._sum(row["estimated_cost"] for row in rows),
        }
        return self._envelope(
            "reorder-report", "Reorder Report", start_date, end_date, rows, summary,
            {"category": category, "location": location}
        )
