from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from sqlalchemy import or_
from fastapi import HTTPException, status
from uuid import UUID
from typing import Dict, Any, List, Optional, Set
from collections import defaultdict
import logging

from erp_api.common.pagination import paginate
from erp_api.modules.accounting.models import Account, AccountType, JournalLine
from erp_api.modules.accounting.schemas import AccountCreate, AccountUpdate

logger = logging.getLogger(__name__)


class AccountService:
    """Chart of accounts"""

    def __init__(self, db: Session):
        self.db = db

    def _code_taken(self, code: str, exclude_id: Optional[UUID] = None) -> bool:
        query = self.db.query(Account).filter(Account.code == code)
        if exclude_id:
            query = query.filter(Account.id != exclude_id)
        return query.first() is not None

    def _descendant_ids(self, account_id: UUID) -> Set[UUID]:
        """Ids of every account below the given one in the hierarchy."""
        children_by_parent = defaultdict(list)
        for acc_id, parent_id in self.db.query(Account.id, Account.parent_id).all():
            children_by_parent[parent_id].append(acc_id)

        descendants = set()
        pending = list(children_by_parent.get(account_id, []))
        while pending:
            current = pending.pop()
            if current in descendants:
                continue
            descendants.add(current)
            pending.extend(children_by_parent.get(current, []))
        return descendants

    def create_account(self, account_data: AccountCreate) -> Account:
        """
        Create a new account

        Raises:
            HTTPException: 409 on duplicate code, 404 when the parent does not exist
        """
        try:
            if self._code_taken(account_data.code):
                raise HTTPException(
                    status_code=status.HTTP_409_CONFLICT,
                    detail=f"An account with code '{account_data.code}' already exists"
                )

            if account_data.parent_id:
                self.get_account(account_data.parent_id)

            account = Account(**account_data.model_dump())
            self.db.add(account)
            self.db.commit()
            self.db.refresh(account)

            logger.info(f"Account created: {account.code} {account.name}")
            return account

        except HTTPException:
            raise
        except IntegrityError:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Database integrity error"
            )
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error creating account: {e}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Internal error: {str(e)}"
            )

    def list_accounts(
        self,
        limit: int = 100,
        offset: int = 0,
        search: Optional[str] = None,
        account_type: Optional[AccountType] = None
    ) -> Dict[str, Any]:
        query = self.db.query(Account)

        if search:
            term = f"%{search}%"
            query = query.filter(or_(Account.name.ilike(term), Account.code.ilike(term)))
        if account_type:
            query = query.filter(Account.type == account_type)

        page = paginate(query.order_by(Account.code), limit, offset)
        return {
            "accounts": page["items"],
            "total": page["total"],
            "limit": limit,
            "offset": offset
        }

    def get_account_tree(self, search: Optional[str] = None) -> List[Dict[str, Any]]:
        """
        Build the account hierarchy from the flat list by grouping on parent_id.

        With a search term a node is kept when its name or code matches,
        or when any of its descendants does.
        """
        accounts = self.db.query(Account).order_by(Account.code).all()
        known_ids = {acc.id for acc in accounts}

        children_by_parent = defaultdict(list)
        for acc in accounts:
            # Orphans are shown as roots
            parent_key = acc.parent_id if acc.parent_id in known_ids else None
            children_by_parent[parent_key].append(acc)

        term = search.lower().strip() if search else None

        def build(acc: Account) -> Optional[Dict[str, Any]]:
            children = [node for node in (build(child) for child in children_by_parent.get(acc.id, [])) if node]
            matches = term is None or term in acc.name.lower() or term in acc.code.lower()
            if not matches and not children:
                return None
            return {
                "id": acc.id,
                "code": acc.code,
                "name": acc.name,
                "type": acc.type,
                "parent_id": acc.parent_id,
                "balance": acc.balance,
                "currency": acc.currency,
                "children": children
            }

        return [node for node in (build(root) for root in children_by_parent.get(None, [])) if node]

    def get_account(self, account_id: UUID) -> Account:
        account = self.db.query(Account).filter(Account.id == account_id).first()
        if not account:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Account not found"
            )
        return account

    def get_parent_options(self, account_id: Optional[UUID] = None) -> List[Account]:
        """Accounts that may be chosen as parent: all but the account itself and its descendants."""
        query = self.db.query(Account).order_by(Account.code)
        if account_id is None:
            return query.all()

        self.get_account(account_id)
        excluded = self._descendant_ids(account_id) | {account_id}
        return [acc for acc in query.all() if acc.id not in excluded]

    def update_account(self, account_id: UUID, update_data: AccountUpdate) -> Account:
        try:
            account = self.get_account(account_id)
            update_dict = update_data.model_dump(exclude_unset=True)

            if update_dict.get("code") and self._code_taken(update_dict["code"], exclude_id=account_id):
                raise HTTPException(
                    status_code=status.HTTP_409_CONFLICT,
                    detail=f"An account with code '{update_dict['code']}' already exists"
                )

            if update_dict.get("parent_id"):
                parent_id = update_dict["parent_id"]
                if parent_id == account_id:
                    raise HTTPException(
                        status_code=status.HTTP_400_BAD_REQUEST,
                        detail="An account cannot be its own parent"
                    )
                if parent_id in self._descendant_ids(account_id):
                    raise HTTPException(
                        status_code=status.HTTP_400_BAD_REQUEST,
                        detail="An account cannot be moved under one of its sub-accounts"
                    )
                self.get_account(parent_id)

            for field in ("code", "name", "type", "currency", "is_active"):
                if field in update_dict and update_dict[field] is None:
                    update_dict.pop(field)

            for field, value in update_dict.items():
                setattr(account, field, value)

            self.db.commit()
            self.db.refresh(account)

            logger.info(f"Account updated: {account.code} {account.name}")
            return account

        except HTTPException:
            raise
        except IntegrityError:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Database integrity error"
            )
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error updating account {account_id}: {e}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error updating account: {str(e)}"
            )

    def delete_account(self, account_id: UUID) -> Dict[str, str]:
        try:
            account = self.get_account(account_id)

            has_children = self.db.query(Account).filter(Account.parent_id == account_id).first()
            if has_children:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="This account has sub-accounts. Please delete them first."
                )

            has_lines = self.db.query(JournalLine).filter(JournalLine.account_id == account_id).first()
            if has_lines:
                raise HTTPException(
                    status_code=status.HTTP_409_CONFLICT,
                    detail="This account is used by journal entries and cannot be deleted"
                )

            self.db.delete(account)
            self.db.commit()

            logger.info(f"Account deleted: {account.code}")
            return {"message": "The account has been successfully deleted"}

        except HTTPException:
            raise
        except Exception as e:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error deleting account: {str(e)}"
            )
