from sqlalchemy.orm import Session, selectinload
from sqlalchemy.exc import IntegrityError
from sqlalchemy import or_
from fastapi import HTTPException, status
from uuid import UUID
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Dict, Any, List, Optional
import logging

from erp_api.common.calculator import to_money
from erp_api.common.numbering import next_document_number
from erp_api.common.pagination import paginate
from erp_api.modules.accounting.models import Account, JournalEntry, JournalEntryStatus, JournalLine
from erp_api.modules.accounting.schemas import JournalEntryCreate, JournalEntryUpdate, JournalLineCreate
from erp_api.modules.customers.models import Customer
from erp_api.modules.projects.models import Project

logger = logging.getLogger(__name__)

UNBALANCED_MESSAGE = "Debits must equal credits"


class JournalEntryService:
    """
    Journal entries with double-entry validation.

    Drafts may be saved unbalanced and carry a warning; posting requires
    at least two lines with equal debit and credit totals and applies the
    lines to the account balances.
    """

    def __init__(self, db: Session):
        self.db = db

    def _ensure_exist(self, model, ids, label: str) -> None:
        ids = {record_id for record_id in ids if record_id}
        if not ids:
            return
        found = {record_id for (record_id,) in self.db.query(model.id).filter(model.id.in_(ids)).all()}
        missing = ids - found
        if missing:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"{label} not found: {', '.join(str(m) for m in missing)}"
            )

    def _build_lines(self, lines_data: List[JournalLineCreate]) -> List[JournalLine]:
        self._ensure_exist(Account, (line.account_id for line in lines_data), "Account")
        self._ensure_exist(Project, (line.project_id for line in lines_data), "Project")
        self._ensure_exist(Customer, (line.customer_id for line in lines_data), "Customer")

        return [
            JournalLine(
                position=index,
                account_id=line.account_id,
                description=line.description,
                debit=to_money(line.debit),
                credit=to_money(line.credit),
                project_id=line.project_id,
                customer_id=line.customer_id
            )
            for index, line in enumerate(lines_data)
        ]

    @staticmethod
    def _refresh_totals(entry: JournalEntry) -> None:
        entry.debit_total = sum((to_money(line.debit) for line in entry.lines), Decimal("0.00"))
        entry.credit_total = sum((to_money(line.credit) for line in entry.lines), Decimal("0.00"))

    def _post(self, entry: JournalEntry) -> None:
        if len(entry.lines) < 2:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="A journal entry needs at least two lines to be posted"
            )
        if not entry.is_balanced:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=UNBALANCED_MESSAGE
            )

        for line in entry.lines:
            account = self.db.get(Account, line.account_id)
            account.apply_movement(to_money(line.debit), to_money(line.credit))

        entry.status = JournalEntryStatus.POSTED
        entry.posted_at = datetime.now(timezone.utc)

    def _reference_taken(self, reference: str, exclude_id: Optional[UUID] = None) -> bool:
        query = self.db.query(JournalEntry).filter(JournalEntry.reference == reference)
        if exclude_id:
            query = query.filter(JournalEntry.id != exclude_id)
        return query.first() is not None

    def create_entry(self, entry_data: JournalEntryCreate, user_id: Optional[UUID] = None) -> JournalEntry:
        """
        Create a journal entry, posting it right away when requested

        Raises:
            HTTPException: 409 on duplicate reference, 400 when a posted entry is unbalanced
        """
        try:
            reference = entry_data.reference.strip() if entry_data.reference else None
            if reference and self._reference_taken(reference):
                raise HTTPException(
                    status_code=status.HTTP_409_CONFLICT,
                    detail=f"Journal entry reference '{reference}' already exists"
                )

            entry = JournalEntry(
                date=entry_data.date,
                reference=reference or next_document_number(
                    self.db, "JE", width=6, yearly=False, is_taken=self._reference_taken
                ),
                description=entry_data.description,
                status=JournalEntryStatus.DRAFT,
                created_by=user_id
            )
            entry.lines = self._build_lines(entry_data.lines)
            self._refresh_totals(entry)

            if entry_data.status == JournalEntryStatus.POSTED:
                self._post(entry)

            self.db.add(entry)
            self.db.commit()
            self.db.refresh(entry)

            logger.info(f"Journal entry created: {entry.reference} ({entry.status.value})")
            return entry

        except HTTPException:
            self.db.rollback()
            raise
        except IntegrityError:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Database integrity error"
            )
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error creating journal entry: {e}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Internal error: {str(e)}"
            )

    def list_entries(
        self,
        limit: int = 20,
        offset: int = 0,
        entry_status: Optional[JournalEntryStatus] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        search: Optional[str] = None
    ) -> Dict[str, Any]:
        query = self.db.query(JournalEntry).options(selectinload(JournalEntry.lines))

        if entry_status:
            query = query.filter(JournalEntry.status == entry_status)
        if start_date:
            query = query.filter(JournalEntry.date >= start_date)
        if end_date:
            query = query.filter(JournalEntry.date <= end_date)
        if search:
            term = f"%{search}%"
            query = query.filter(or_(JournalEntry.reference.ilike(term), JournalEntry.description.ilike(term)))

        page = paginate(query.order_by(JournalEntry.date.desc(), JournalEntry.reference.desc()), limit, offset)
        return {
            "journal_entries": page["items"],
            "total": page["total"],
            "limit": limit,
            "offset": offset
        }

    def get_entry(self, entry_id: UUID) -> JournalEntry:
        entry = self.db.query(JournalEntry).filter(JournalEntry.id == entry_id).first()
        if not entry:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Journal entry not found"
            )
        return entry

    def _ensure_draft(self, entry: JournalEntry, action: str) -> None:
        if entry.status == JournalEntryStatus.POSTED:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Posted journal entries cannot be {action}"
            )

    def update_entry(self, entry_id: UUID, update_data: JournalEntryUpdate) -> JournalEntry:
        try:
            entry = self.get_entry(entry_id)
            self._ensure_draft(entry, "modified")

            update_dict = update_data.model_dump(exclude_unset=True)

            if update_dict.get("reference"):
                reference = update_dict["reference"].strip()
                if self._reference_taken(reference, exclude_id=entry_id):
                    raise HTTPException(
                        status_code=status.HTTP_409_CONFLICT,
                        detail=f"Journal entry reference '{reference}' already exists"
                    )
                entry.reference = reference
            if update_dict.get("date"):
                entry.date = update_dict["date"]
            if update_dict.get("description"):
                entry.description = update_dict["description"]

            if update_data.lines is not None:
                entry.lines = self._build_lines(update_data.lines)
                self._refresh_totals(entry)

            if update_dict.get("status") == JournalEntryStatus.POSTED:
                self._post(entry)

            self.db.commit()
            self.db.refresh(entry)

            logger.info(f"Journal entry updated: {entry.reference} ({entry.status.value})")
            return entry

        except HTTPException:
            self.db.rollback()
            raise
        except IntegrityError:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Database integrity error"
            )
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error updating journal entry {entry_id}: {e}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error updating journal entry: {str(e)}"
            )

    def post_entry(self, entry_id: UUID) -> JournalEntry:
        try:
            entry = self.get_entry(entry_id)
            if entry.status == JournalEntryStatus.POSTED:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="Journal entry is already posted"
                )

            self._post(entry)
            self.db.commit()
            self.db.refresh(entry)

            logger.info(f"Journal entry posted: {entry.reference}")
            return entry

        except HTTPException:
            self.db.rollback()
            raise
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error posting journal entry {entry_id}: {e}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error posting journal entry: {str(e)}"
            )

    def delete_entry(self, entry_id: UUID) -> Dict[str, str]:
        try:
            entry = self.get_entry(entry_id)
            self._ensure_draft(entry, "deleted")

            self.db.delete(entry)
            self.db.commit()

            logger.info(f"Journal entry deleted: {entry.reference}")
            return {"message": "The journal entry has been successfully deleted"}

        except HTTPException:
            raise
        except Exception as e:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error deleting journal entry: {str(e)}"
            )
