from fastapi import APIRouter, Depends, status, Query
from sqlalchemy.orm import Session
from typing import Optional, List
from uuid import UUID
from datetime import date
from decimal import Decimal

from erp_api.database.database import get_db
from erp_api.common.pagination import PageParams, page_params, MessageResponse
from erp_api.modules.auth.dependencies import AuthDependencies
from erp_api.modules.auth.models import Permission, User
from erp_api.modules.accounting.models import AccountType, JournalEntryStatus
from erp_api.modules.accounting.services import AccountService, CurrencyService, JournalEntryService
from erp_api.modules.accounting.schemas import (
    AccountCreate, AccountUpdate, AccountOut, AccountList, AccountTreeNode,
    CurrencyCreate, CurrencyUpdate, CurrencyOut, ConversionOut,
    JournalEntryCreate, JournalEntryUpdate, JournalEntryOut, JournalEntryList
)

require_accounting = AuthDependencies.require_permission(Permission.ACCOUNTING)

accounts_router = APIRouter(prefix="/accounts", tags=["Accounting"])
currencies_router = APIRouter(prefix="/currencies", tags=["Accounting"])
journal_router = APIRouter(prefix="/journal-entries", tags=["Accounting"])


# ===== CHART OF ACCOUNTS =====

@accounts_router.post("/", response_model=AccountOut, status_code=status.HTTP_201_CREATED)
def create_account(
    account: AccountCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_accounting)
):
    return AccountService(db).create_account(account)


@accounts_router.get("/", response_model=AccountList)
def list_accounts(
    search: Optional[str] = Query(None, description="Search by name or code"),
    type: Optional[AccountType] = Query(None),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_accounting)
):
    return AccountService(db).list_accounts(limit, offset, search, type)


@accounts_router.get("/tree", response_model=List[AccountTreeNode])
def get_account_tree(
    search: Optional[str] = Query(None, description="Keep accounts matching the term and their ancestors"),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_accounting)
):
    return AccountService(db).get_account_tree(search)


@accounts_router.get("/parent-options", response_model=List[AccountOut])
def get_parent_options_for_new_account(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_accounting)
):
    return AccountService(db).get_parent_options()


@accounts_router.get("/{account_id}", response_model=AccountOut)
def get_account(
    account_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_accounting)
):
    return AccountService(db).get_account(account_id)


@accounts_router.get("/{account_id}/parent-options", response_model=List[AccountOut])
def get_parent_options(
    account_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_accounting)
):
    return AccountService(db).get_parent_options(account_id)


@accounts_router.patch("/{account_id}", response_model=AccountOut)
def update_account(
    account_id: UUID,
    update: AccountUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_accounting)
):
    return AccountService(db).update_account(account_id, update)


@accounts_router.delete("/{account_id}", response_model=MessageResponse)
def delete_account(
    account_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_accounting)
):
    return AccountService(db).delete_account(account_id)


# ===== CURRENCIES =====

@currencies_router.post("/", response_model=CurrencyOut, status_code=status.HTTP_201_CREATED)
def create_currency(
    currency: CurrencyCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_accounting)
):
    return CurrencyService(db).create_currency(currency)


@currencies_router.get("/", response_model=List[CurrencyOut])
def list_currencies(
    active_only: bool = Query(False),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_accounting)
):
    return CurrencyService(db).list_currencies(active_only)


@currencies_router.get("/convert", response_model=ConversionOut)
def convert_amount(
    amount: Decimal = Query(..., ge=0),
    from_currency: str = Query(..., min_length=3, max_length=3, alias="from"),
    to_currency: str = Query(..., min_length=3, max_length=3, alias="to"),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_accounting)
):
    return CurrencyService(db).convert(amount, from_currency, to_currency)


@currencies_router.get("/{currency_id}", response_model=CurrencyOut)
def get_currency(
    currency_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_accounting)
):
    return CurrencyService(db).get_currency(currency_id)


@currencies_router.patch("/{currency_id}", response_model=CurrencyOut)
def update_currency(
    currency_id: UUID,
    update: CurrencyUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_accounting)
):
    return CurrencyService(db).update_currency(currency_id, update)


@currencies_router.delete("/{currency_id}", response_model=MessageResponse)
def delete_currency(
    currency_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_accounting)
):
    return CurrencyService(db).delete_currency(currency_id)


# ===== JOURNAL ENTRIES =====

@journal_router.post("/", response_model=JournalEntryOut, status_code=status.HTTP_201_CREATED)
def create_journal_entry(
    entry: JournalEntryCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_accounting)
):
    return JournalEntryService(db).create_entry(entry, current_user.id)


@journal_router.get("/", response_model=JournalEntryList)
def list_journal_entries(
    status_filter: Optional[JournalEntryStatus] = Query(None, alias="status"),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    search: Optional[str] = Query(None, description="Search by reference or description"),
    page: PageParams = Depends(page_params),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_accounting)
):
    return JournalEntryService(db).list_entries(
        page.limit, page.offset, status_filter, start_date, end_date, search
    )


@journal_router.get("/{entry_id}", response_model=JournalEntryOut)
def get_journal_entry(
    entry_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_accounting)
):
    return JournalEntryService(db).get_entry(entry_id)


@journal_router.patch("/{entry_id}", response_model=JournalEntryOut)
def update_journal_entry(
    entry_id: UUID,
    update: JournalEntryUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_accounting)
):
    return JournalEntryService(db).update_entry(entry_id, update)


@journal_router.post("/{entry_id}/post", response_model=JournalEntryOut)
def post_journal_entry(
    entry_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_accounting)
):
    return JournalEntryService(db).post_entry(entry_id)


@journal_router.delete("/{entry_id}", response_model=MessageResponse)
def delete_journal_entry(
    entry_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_accounting)
):
    return JournalEntryService(db).delete_entry(entry_id)
