"""
Base service class for Reports module

Provides the common queries every report service builds on: issued
invoices, payments and posted journal lines inside a period.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session, joinedload

from erp_api.common.calculator import to_money
from erp_api.modules.accounting.models import Account, JournalEntry, JournalEntryStatus, JournalLine
from erp_api.modules.delivery_invoicing.models import Invoice, Payment, ISSUED_STATUSES


class BaseReportService:
    """Base service class for all report services"""

    def __init__(self, db: Session):
        self.db = db

    def _issued_invoices(self, start_date: date, end_date: date) -> List[Invoice]:
        """Invoices sent to customers (not drafts, not cancelled) dated in the period"""
        return self.db.query(Invoice).options(joinedload(Invoice.customer)).filter(
            Invoice.status.in_(ISSUED_STATUSES),
            Invoice.date >= start_date,
            Invoice.date <= end_date
        ).order_by(Invoice.date).all()

    def _payments(self, start_date: date, end_date: date) -> List[Payment]:
        return self.db.query(Payment).options(joinedload(Payment.invoice)).filter(
            Payment.date >= start_date,
            Payment.date <= end_date
        ).order_by(Payment.date).all()

    def _posted_lines(self, start_date: Optional[date], end_date: date) -> List[JournalLine]:
        """Journal lines of posted entries dated in the period"""
        query = self.db.query(JournalLine).join(JournalEntry).options(
            joinedload(JournalLine.account)
        ).filter(
            JournalEntry.status == JournalEntryStatus.POSTED,
            JournalEntry.date <= end_date
        )
        if start_date:
            query = query.filter(JournalEntry.date >= start_date)
        return query.all()

    def _accounts(self) -> List[Account]:
        return self.db.query(Account).order_by(Account.code).all()

    @staticmethod
    def _sum(values) -> Decimal:
        return to_money(sum((Decimal(str(v or 0)) for v in values), Decimal("0")))

    @staticmethod
    def _envelope(
        report_type: str,
        title: str,
        start_date: date,
        end_date: date,
        rows: List[Dict[str, Any]],
        summary: Dict[str, Any],
        filters: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        return {
            "report_type": report_type,
            "title": title,
            "period_start": start_date,
            "period_end": end_date,
            "generated_at": datetime.now(timezone.utc),
            "filters": {k: v for k, v in (filters or {}).items() if v is not None},
            "summary": summary,
            "rows": rows
        }
