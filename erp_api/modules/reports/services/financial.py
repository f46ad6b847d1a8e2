"""
Financial Reports Service

Accounting reports are built from account balances and posted journal
lines; cash reports from invoice payments and purchase movements.
"""

from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Any, Dict
import logging

from erp_api.common.calculator import to_money
from erp_api.modules.accounting.models import AccountType
from erp_api.modules.inventory.models import InventoryMovement, MovementType
from .base import BaseReportService
from ..utils import month_key, months_between, percentage

logger = logging.getLogger(__name__)


class FinancialReportService(BaseReportService):
    """Service for financial reports"""

    def get_trial_balance(self, start_date: date, end_date: date) -> Dict[str, Any]:
        """
        Every account with its period activity and its current balance
        split into the debit or credit column.
        """
        activity = defaultdict(lambda: [Decimal("0"), Decimal("0")])
        for line in self._posted_lines(start_date, end_date):
            activity[line.account_id][0] += Decimal(line.debit)
            activity[line.account_id][1] += Decimal(line.credit)

        rows = []
        for account in self._accounts():
            balance = to_money(account.balance)
            # A positive balance sits on the account's normal side
            on_debit_side = (balance >= 0) == account.is_debit_normal
            period_debit, period_credit = activity[account.id]
            rows.append({
                "code": account.code,
                "name": account.name,
                "type": account.type.value,
                "period_debit": to_money(period_debit),
                "period_credit": to_money(period_credit),
                "debit": abs(balance) if on_debit_side else Decimal("0.00"),
                "credit": Decimal("0.00") if on_debit_side else abs(balance),
            })

        total_debit = self._sum(row["debit"] for row in rows)
        total_credit = self._sum(row["credit"] for row in rows)
        summary = {
            "total_debit": total_debit,
            "total_credit": total_credit,
            "difference": total_debit - total_credit,
            "is_balanced": total_debit == total_credit,
        }
        return self._envelope("trial-balance", "Trial Balance", start_date, end_date, rows, summary)

    def _account_activity(self, start_date: date, end_date: date, account_types) -> Dict[Any, Decimal]:
        """Net period movement per account, signed to the account's normal side."""
        amounts = defaultdict(Decimal)
        accounts = {}
        for line in self._posted_lines(start_date, end_date):
            account = line.account
            if account.type not in account_types:
                continue
            accounts[account.id] = account
            if account.is_debit_normal:
                amounts[account.id] += Decimal(line.debit) - Decimal(line.credit)
            else:
                amounts[account.id] += Decimal(line.credit) - Decimal(line.debit)
        return {accounts[acc_id]: to_money(amount) for acc_id, amount in amounts.items()}

    def get_profit_loss(self, start_date: date, end_date: date) -> Dict[str, Any]:
        activity = self._account_activity(start_date, end_date, (AccountType.REVENUE, AccountType.EXPENSE))

        rows = []
        for section, account_type in (("Revenue", AccountType.REVENUE), ("Expenses", AccountType.EXPENSE)):
            for account in sorted((a for a in activity if a.type == account_type), key=lambda a: a.code):
                rows.append({
                    "section": section,
                    "code": account.code,
                    "name": account.name,
                    "amount": activity[account],
                })

        total_revenue = self._sum(row["amount"] for row in rows if row["section"] == "Revenue")
        total_expenses = self._sum(row["amount"] for row in rows if row["section"] == "Expenses")
        net_profit = total_revenue - total_expenses
        summary = {
            "total_revenue": total_revenue,
            "total_expenses": total_expenses,
            "net_profit": net_profit,
            "profit_margin": percentage(net_profit, total_revenue),
        }
        return self._envelope("profit-loss", "Profit and Loss", start_date, end_date, rows, summary)

    def get_balance_sheet(self, start_date: date, end_date: date) -> Dict[str, Any]:
        """
        Current balances of asset, liability and equity accounts. Revenue
        less expenses is shown as current earnings inside equity.
        """
        sections = (
            ("Assets", AccountType.ASSET),
            ("Liabilities", AccountType.LIABILITY),
            ("Equity", AccountType.EQUITY),
        )
        accounts = self._accounts()

        rows = []
        totals = {}
        for section, account_type in sections:
            section_accounts = [a for a in accounts if a.type == account_type]
            for account in section_accounts:
                rows.append({
                    "section": section,
                    "code": account.code,
                    "name": account.name,
                    "balance": to_money(account.balance),
                })
            totals[account_type] = self._sum(a.balance for a in section_accounts)

        current_earnings = (
            self._sum(a.balance for a in accounts if a.type == AccountType.REVENUE)
            - self._sum(a.balance for a in accounts if a.type == AccountType.EXPENSE)
        )
        rows.append({"section": "Equity", "code": "", "name": "Current Earnings", "balance": current_earnings})

        total_assets = totals[AccountType.ASSET]
        total_liabilities = totals[AccountType.LIABILITY]
        total_equity = totals[AccountType.EQUITY] + current_earnings
        summary = {
            "total_assets": total_assets,
            "total_liabilities": total_liabilities,
            "total_equity": total_equity,
            "total_liabilities_and_equity": total_liabilities + total_equity,
            "is_balanced": total_assets == total_liabilities + total_equity,
        }
        return self._envelope("balance-sheet", "Balance Sheet", start_date, end_date, rows, summary)

    def get_cash_flow(self, start_date: date, end_date: date) -> Dict[str, Any]:
        """Monthly cash in (invoice payments) against cash out (purchases)."""
        inflows = defaultdict(Decimal)
        for payment in self._payments(start_date, end_date):
            inflows[month_key(payment.date)] += Decimal(payment.amount)

        outflows = defaultdict(Decimal)
        purchases = self.db.query(InventoryMovement).filter(
            InventoryMovement.type == MovementType.PURCHASE,
            InventoryMovement.date >= start_date,
            InventoryMovement.date <= end_date
        ).all()
        for movement in purchases:
            outflows[month_key(movement.date)] += Decimal(movement.total_cost)

        rows = []
        for month in months_between(start_date, end_date):
            cash_in = to_money(inflows[month])
            cash_out = to_money(outflows[month])
            rows.append({"month": month, "inflows": cash_in, "outflows": cash_out, "net": cash_in - cash_out})

        total_in = self._sum(row["inflows"] for row in rows)
        total_out = self._sum(row["outflows"] for row in rows)
        summary = {
            "total_inflows": total_in,
            "total_outflows": total_out,
            "net_cash_flow": total_in - total_out,
        }
        return self._envelope("cash-flow", "Cash Flow", start_date, end_date, rows, summary)

    def get_income_by_customer(self, start_date: date, end_date: date) -> Dict[str, Any]:
        """Payments received in the period grouped by the paying customer."""
        grouped = {}
        for payment in self._payments(start_date, end_date):
            customer = payment.invoice.customer
            entry = grouped.setdefault(customer.id, {
                "customer_id": customer.id,
                "customer_name": customer.name,
                "payment_count": 0,
                "amount_received": Decimal("0.00"),
            })
            entry["payment_count"] += 1
            entry["amount_received"] += to_money(payment.amount)

        total = self._sum(entry["amount_received"] for entry in grouped.values())
        rows = sorted(grouped.values(), key=lambda r: r["amount_received"], reverse=True)
        for row in rows:
            row["share"] = percentage(row["amount_received"], total)

        summary = {"total_income": total, "customer_count": len(rows)}
        return self._envelope("income-by-customer", "Income by Customer", start_date, end_date, rows, summary)

    def get_expense_by_category(self, start_date: date, end_date: date) -> Dict[str, Any]:
        """Posted expense account movements, one category per expense account."""
        activity = self._account_activity(start_date, end_date, (AccountType.EXPENSE,))

        total = self._sum(activity.values())
        rows = [
            {
                "code": account.code,
                "category": account.name,
                "amount": amount,
                "share": percentage(amount, total),
            }
            for account, amount in sorted(activity.items(), key=lambda item: item[1], reverse=True)
        ]

        summary = {"total_expenses": total, "category_count": len(rows)}
        return self._envelope("expense-by-category", "Expenses by Category", start_date, end_date, rows, summary)
