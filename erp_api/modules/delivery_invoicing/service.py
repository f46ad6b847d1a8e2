from sqlalchemy.orm import Session, selectinload
from sqlalchemy.exc import IntegrityError
from sqlalchemy import or_
from fastapi import HTTPException, status
from uuid import UUID
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Dict, Any, List, Optional, Iterable
import logging

from erp_api.core.config import settings
from erp_api.common.calculator import LineCalculator, to_money
from erp_api.common.numbering import next_document_number
from erp_api.common.pagination import paginate
from erp_api.modules.customers.models import Customer
from erp_api.modules.projects.models import Project
from erp_api.modules.inventory.models import InventoryItem, MovementType
from erp_api.modules.inventory.service import InventoryService
from erp_api.modules.delivery_invoicing.models import (
    DeliveryNote, DeliveryItem, DeliveryStatus,
    Invoice, InvoiceItem, InvoiceStatus, Payment, PAYABLE_STATUSES
)
from erp_api.modules.delivery_invoicing.schemas import (
    DeliveryNoteCreate, DeliveryNoteUpdate, DeliveryItemCreate,
    InvoiceCreate, InvoiceUpdate, InvoiceItemCreate, InvoiceFromDeliveryNote, PaymentCreate
)

logger = logging.getLogger(__name__)


class DocumentPartyMixin:
    """Customer/project checks shared by delivery notes and invoices"""

    db: Session

    def _ensure_customer(self, customer_id: UUID) -> None:
        if not self.db.query(Customer.id).filter(Customer.id == customer_id).first():
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Customer not found"
            )

    def _ensure_project(self, project_id: Optional[UUID], customer_id: UUID) -> None:
        if not project_id:
            return
        project = self.db.query(Project).filter(Project.id == project_id).first()
        if not project:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Project not found"
            )
        if project.customer_id != customer_id:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="The project does not belong to this customer"
            )

    def _ensure_inventory_items(self, lines: Iterable) -> None:
        item_ids = {line.inventory_item_id for line in lines if line.inventory_item_id}
        if not item_ids:
            return
        found = {iid for (iid,) in self.db.query(InventoryItem.id).filter(InventoryItem.id.in_(item_ids)).all()}
        missing = item_ids - found
        if missing:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Inventory item not found: {', '.join(str(m) for m in missing)}"
            )


class DeliveryNoteService(DocumentPartyMixin):
    """
    Delivery notes. Delivering a note issues its stocked lines from
    inventory as sale movements, all or nothing.
    """

    def __init__(self, db: Session):
        self.db = db

    def _build_items(self, items_data: List[DeliveryItemCreate]) -> List[DeliveryItem]:
        self._ensure_inventory_items(items_data)
        return [
            DeliveryItem(
                position=position,
                inventory_item_id=line.inventory_item_id,
                description=line.description,
                quantity=line.quantity,
                unit_price=line.unit_price,
                total=to_money(line.quantity * line.unit_price)
            )
            for position, line in enumerate(items_data)
        ]

    def create_delivery_note(self, note_data: DeliveryNoteCreate, user_id: Optional[UUID] = None) -> DeliveryNote:
        try:
            self._ensure_customer(note_data.customer_id)
            self._ensure_project(note_data.project_id, note_data.customer_id)

            note = DeliveryNote(
                number=next_document_number(self.db, "DN", note_data.date),
                date=note_data.date,
                customer_id=note_data.customer_id,
                project_id=note_data.project_id,
                status=DeliveryStatus.DRAFT,
                notes=note_data.notes,
                created_by=user_id
            )
            note.items = self._build_items(note_data.items)

            self.db.add(note)
            self.db.commit()
            self.db.refresh(note)

            logger.info(f"Delivery note created: {note.number}")
            return note

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
            logger.error(f"Error creating delivery note: {e}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Internal error: {str(e)}"
            )

    def list_delivery_notes(
        self,
        limit: int = 20,
        offset: int = 0,
        note_status: Optional[DeliveryStatus] = None,
        customer_id: Optional[UUID] = None,
        project_id: Optional[UUID] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        search: Optional[str] = None
    ) -> Dict[str, Any]:
        query = self.db.query(DeliveryNote).options(selectinload(DeliveryNote.items))

        if note_status:
            query = query.filter(DeliveryNote.status == note_status)
        if customer_id:
            query = query.filter(DeliveryNote.customer_id == customer_id)
        if project_id:
            query = query.filter(DeliveryNote.project_id == project_id)
        if start_date:
            query = query.filter(DeliveryNote.date >= start_date)
        if end_date:
            query = query.filter(DeliveryNote.date <= end_date)
        if search:
            term = f"%{search}%"
            query = query.join(Customer).filter(or_(DeliveryNote.number.ilike(term), Customer.name.ilike(term)))

        page = paginate(query.order_by(DeliveryNote.date.desc(), DeliveryNote.number.desc()), limit, offset)
        return {
            "delivery_notes": page["items"],
            "total": page["total"],
            "limit": limit,
            "offset": offset
        }

    def get_delivery_note(self, note_id: UUID) -> DeliveryNote:
        note = self.db.query(DeliveryNote).filter(DeliveryNote.id == note_id).first()
        if not note:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Delivery note not found"
            )
        return note

    def _ensure_draft(self, note: DeliveryNote, action: str) -> None:
        if note.status != DeliveryStatus.DRAFT:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Only draft delivery notes can be {action}"
            )

    def update_delivery_note(self, note_id: UUID, update_data: DeliveryNoteUpdate) -> DeliveryNote:
        try:
            note = self.get_delivery_note(note_id)
            self._ensure_draft(note, "edited")

            update_dict = update_data.model_dump(exclude_unset=True, exclude={"items"})
            for field in ("customer_id", "date"):
                if field in update_dict and update_dict[field] is None:
                    update_dict.pop(field)

            customer_id = update_dict.get("customer_id", note.customer_id)
            project_id = update_dict.get("project_id", note.project_id)
            if "customer_id" in update_dict:
                self._ensure_customer(customer_id)
            self._ensure_project(project_id, customer_id)

            for field, value in update_dict.items():
                setattr(note, field, value)

            if update_data.items is not None:
                note.items = self._build_items(update_data.items)

            self.db.commit()
            self.db.refresh(note)

            logger.info(f"Delivery note updated: {note.number}")
            return note

        except HTTPException:
            self.db.rollback()
            raise
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error updating delivery note {note_id}: {e}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error updating delivery note: {str(e)}"
            )

    def deliver(self, note_id: UUID) -> DeliveryNote:
        """
        Mark a draft note delivered and issue a sale movement per stocked line.

        Raises:
            HTTPException: 400 when any line exceeds the available stock; no
            movement is kept in that case
        """
        try:
            note = self.get_delivery_note(note_id)
            self._ensure_draft(note, "delivered")

            inventory = InventoryService(self.db)
            for line in note.items:
                if not line.inventory_item_id:
                    continue
                item = inventory.get_item(line.inventory_item_id)
                inventory.record_movement(
                    item,
                    MovementType.SALE,
                    line.quantity,
                    movement_date=note.date,
                    reference=note.number,
                    notes=f"Delivery note {note.number}",
                    delivery_note_id=note.id
                )

            note.status = DeliveryStatus.DELIVERED
            note.delivered_at = datetime.now(timezone.utc)

            self.db.commit()
            self.db.refresh(note)

            logger.info(f"Delivery note delivered: {note.number}")
            return note

        except HTTPException:
            self.db.rollback()
            raise
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error delivering delivery note {note_id}: {e}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error delivering delivery note: {str(e)}"
            )

    def cancel(self, note_id: UUID) -> DeliveryNote:
        try:
            note = self.get_delivery_note(note_id)
            self._ensure_draft(note, "cancelled")

            note.status = DeliveryStatus.CANCELLED
            self.db.commit()
            self.db.refresh(note)

            logger.info(f"Delivery note cancelled: {note.number}")
            return note

        except HTTPException:
            raise
        except Exception as e:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error cancelling delivery note: {str(e)}"
            )

    def delete_delivery_note(self, note_id: UUID) -> Dict[str, str]:
        try:
            note = self.get_delivery_note(note_id)
            if note.status == DeliveryStatus.DELIVERED:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="Delivered delivery notes cannot be deleted"
                )

            self.db.delete(note)
            self.db.commit()

            logger.info(f"Delivery note deleted: {note.number}")
            return {"message": "The delivery note has been successfully deleted"}

        except HTTPException:
            raise
        except Exception as e:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error deleting delivery note: {str(e)}"
            )


class InvoiceService(DocumentPartyMixin):
    """Invoices and the payments applied to them"""

    def __init__(self, db: Session):
        self.db = db

    # ===== HELPERS =====

    def _build_items(self, items_data: List[InvoiceItemCreate]) -> List[InvoiceItem]:
        self._ensure_inventory_items(items_data)
        items = []
        for position, line in enumerate(items_data):
            totals = LineCalculator.calculate_line(line.quantity, line.unit_price, line.tax_rate, line.discount_rate)
            items.append(InvoiceItem(
                position=position,
                inventory_item_id=line.inventory_item_id,
                delivery_item_id=line.delivery_item_id,
                description=line.description,
                quantity=line.quantity,
                unit_price=line.unit_price,
                tax_rate=line.tax_rate,
                discount_rate=line.discount_rate,
                total=totals.total
            ))
        return items

    @staticmethod
    def _apply_totals(invoice: Invoice) -> None:
        totals = LineCalculator.calculate_document(invoice.items)
        invoice.subtotal = totals.subtotal
        invoice.discount_amount = totals.discount_amount
        invoice.tax_amount = totals.tax_amount
        invoice.total = totals.total
        invoice.amount_due = totals.total - to_money(invoice.amount_paid)

    @staticmethod
    def _apply_payments(invoice: Invoice) -> None:
        """Recompute paid/due amounts and derive the payment status."""
        paid = sum((to_money(payment.amount) for payment in invoice.payments), Decimal("0.00"))
        invoice.amount_paid = paid
        invoice.amount_due = to_money(invoice.total) - paid

        if paid >= to_money(invoice.total):
            invoice.status = InvoiceStatus.PAID
        elif paid > 0:
            invoice.status = InvoiceStatus.PARTIALLY_PAID
        else:
            invoice.status = InvoiceStatus.SENT

    @staticmethod
    def _default_due_date(invoice_date: date) -> date:
        return invoice_date + timedelta(days=settings.DEFAULT_INVOICE_DUE_DAYS)

    def _mark_overdue(self, invoices: Iterable[Invoice]) -> None:
        """Unpaid sent invoices past their due date become overdue."""
        today = date.today()
        overdue = []
        for invoice in invoices:
            if (
                invoice.status in (InvoiceStatus.SENT, InvoiceStatus.PARTIALLY_PAID)
                and invoice.due_date < today
                and to_money(invoice.amount_due) > 0
            ):
                invoice.status = InvoiceStatus.OVERDUE
                overdue.append(invoice.number)
        if overdue:
            self.db.commit()
            logger.info(f"Invoices marked overdue: {', '.join(overdue)}")

    def _ensure_draft(self, invoice: Invoice, action: str) -> None:
        if invoice.status != InvoiceStatus.DRAFT:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Only draft invoices can be {action}"
            )

    # ===== INVOICES =====

    def create_invoice(self, invoice_data: InvoiceCreate, user_id: Optional[UUID] = None,
                       delivery_note_id: Optional[UUID] = None) -> Invoice:
        """
        Create a draft invoice with calculated totals

        Raises:
            HTTPException: 404 for unknown customer, project or inventory
            items, 400 when the project belongs to another customer
        """
        try:
            self._ensure_customer(invoice_data.customer_id)
            self._ensure_project(invoice_data.project_id, invoice_data.customer_id)

            invoice = Invoice(
                number=next_document_number(self.db, "INV", invoice_data.date),
                date=invoice_data.date,
                due_date=invoice_data.due_date or self._default_due_date(invoice_data.date),
                customer_id=invoice_data.customer_id,
                project_id=invoice_data.project_id,
                delivery_note_id=delivery_note_id,
                status=InvoiceStatus.DRAFT,
                amount_paid=Decimal("0.00"),
                notes=invoice_data.notes,
                terms=invoice_data.terms,
                created_by=user_id
            )
            invoice.items = self._build_items(invoice_data.items)
            self._apply_totals(invoice)

            self.db.add(invoice)
            self.db.commit()
            self.db.refresh(invoice)

            logger.info(f"Invoice created: {invoice.number} total {invoice.total}")
            return invoice

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
            logger.error(f"Error creating invoice: {e}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Internal error: {str(e)}"
            )

    def create_from_delivery_note(
        self,
        note_id: UUID,
        request: InvoiceFromDeliveryNote,
        user_id: Optional[UUID] = None
    ) -> Invoice:
        """Build a draft invoice from the lines of a delivered delivery note."""
        note = DeliveryNoteService(self.db).get_delivery_note(note_id)
        if note.status != DeliveryStatus.DELIVERED:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Only delivered delivery notes can be invoiced"
            )

        already_invoiced = self.db.query(Invoice).filter(
            Invoice.delivery_note_id == note.id,
            Invoice.status != InvoiceStatus.CANCELLED
        ).first()
        if already_invoiced:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"Delivery note {note.number} is already invoiced in {already_invoiced.number}"
            )

        invoice_data = InvoiceCreate(
            customer_id=note.customer_id,
            project_id=note.project_id,
            date=request.date,
            due_date=request.due_date,
            notes=f"Delivery note {note.number}",
            items=[
                InvoiceItemCreate(
                    inventory_item_id=line.inventory_item_id,
                    delivery_item_id=line.id,
                    description=line.description,
                    quantity=line.quantity,
                    unit_price=line.unit_price,
                    tax_rate=request.tax_rate
                )
                for line in note.items
            ]
        )
        return self.create_invoice(invoice_data, user_id, delivery_note_id=note.id)

    def list_invoices(
        self,
        limit: int = 20,
        offset: int = 0,
        invoice_status: Optional[InvoiceStatus] = None,
        customer_id: Optional[UUID] = None,
        project_id: Optional[UUID] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        search: Optional[str] = None
    ) -> Dict[str, Any]:
        self._mark_overdue(
            self.db.query(Invoice).filter(
                Invoice.status.in_([InvoiceStatus.SENT, InvoiceStatus.PARTIALLY_PAID]),
                Invoice.due_date < date.today()
            ).all()
        )

        query = self.db.query(Invoice).options(selectinload(Invoice.items), selectinload(Invoice.payments))

        if invoice_status:
            query = query.filter(Invoice.status == invoice_status)
        if customer_id:
            query = query.filter(Invoice.customer_id == customer_id)
        if project_id:
            query = query.filter(Invoice.project_id == project_id)
        if start_date:
            query = query.filter(Invoice.date >= start_date)
        if end_date:
            query = query.filter(Invoice.date <= end_date)
        if search:
            term = f"%{search}%"
            query = query.join(Customer).filter(or_(Invoice.number.ilike(term), Customer.name.ilike(term)))

        page = paginate(query.order_by(Invoice.date.desc(), Invoice.number.desc()), limit, offset)
        return {
            "invoices": page["items"],
            "total": page["total"],
            "limit": limit,
            "offset": offset
        }

    def get_invoice(self, invoice_id: UUID) -> Invoice:
        invoice = self.db.query(Invoice).filter(Invoice.id == invoice_id).first()
        if not invoice:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Invoice not found"
            )
        self._mark_overdue([invoice])
        return invoice

    def update_invoice(self, invoice_id: UUID, update_data: InvoiceUpdate) -> Invoice:
        try:
            invoice = self.get_invoice(invoice_id)
            self._ensure_draft(invoice, "edited")

            update_dict = update_data.model_dump(exclude_unset=True, exclude={"items"})
            for field in ("customer_id", "date", "due_date"):
                if field in update_dict and update_dict[field] is None:
                    update_dict.pop(field)

            customer_id = update_dict.get("customer_id", invoice.customer_id)
            project_id = update_dict.get("project_id", invoice.project_id)
            if "customer_id" in update_dict:
                self._ensure_customer(customer_id)
            self._ensure_project(project_id, customer_id)

            new_date = update_dict.get("date", invoice.date)
            new_due = update_dict.get("due_date", invoice.due_date)
            if new_due < new_date:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="Due date must be on or after the invoice date"
                )

            for field, value in update_dict.items():
                setattr(invoice, field, value)

            if update_data.items is not None:
                invoice.items = self._build_items(update_data.items)
                self._apply_totals(invoice)

            self.db.commit()
            self.db.refresh(invoice)

            logger.info(f"Invoice updated: {invoice.number} total {invoice.total}")
            return invoice

        except HTTPException:
            self.db.rollback()
            raise
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error updating invoice {invoice_id}: {e}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error updating invoice: {str(e)}"
            )

    def send_invoice(self, invoice_id: UUID) -> Invoice:
        try:
            invoice = self.get_invoice(invoice_id)
            self._ensure_draft(invoice, "sent")

            invoice.status = InvoiceStatus.SENT
            invoice.sent_at = datetime.now(timezone.utc)
            self.db.commit()
            self.db.refresh(invoice)

            logger.info(f"Invoice sent: {invoice.number}")
            self._mark_overdue([invoice])
            return invoice

        except HTTPException:
            raise
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error sending invoice {invoice_id}: {e}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error sending invoice: {str(e)}"
            )

    def cancel_invoice(self, invoice_id: UUID) -> Invoice:
        try:
            invoice = self.get_invoice(invoice_id)
            if invoice.status == InvoiceStatus.CANCELLED:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="Invoice is already cancelled"
                )
            if invoice.payments:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="Invoices with payments cannot be cancelled. Delete the payments first."
                )

            invoice.status = InvoiceStatus.CANCELLED
            self.db.commit()
            self.db.refresh(invoice)

            logger.info(f"Invoice cancelled: {invoice.number}")
            return invoice

        except HTTPException:
            raise
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error cancelling invoice {invoice_id}: {e}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error cancelling invoice: {str(e)}"
            )

    def delete_invoice(self, invoice_id: UUID) -> Dict[str, str]:
        try:
            invoice = self.get_invoice(invoice_id)
            if invoice.status not in (InvoiceStatus.DRAFT, InvoiceStatus.CANCELLED):
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="Only draft or cancelled invoices can be deleted"
                )

            self.db.delete(invoice)
            self.db.commit()

            logger.info(f"Invoice deleted: {invoice.number}")
            return {"message": "The invoice has been successfully deleted"}

        except HTTPException:
            raise
        except Exception as e:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error deleting invoice: {str(e)}"
            )

    # ===== PAYMENTS =====

    def add_payment(self, invoice_id: UUID, payment_data: PaymentCreate) -> Invoice:
        """
        Register a payment against a sent, partially paid or overdue invoice

        Raises:
            HTTPException: 400 when the invoice does not accept payments or the
            amount exceeds what is due
        """
        try:
            invoice = self.get_invoice(invoice_id)
            if invoice.status not in PAYABLE_STATUSES:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail=f"Payments cannot be registered on {invoice.status.value} invoices"
                )

            amount = to_money(payment_data.amount)
            if amount > to_money(invoice.amount_due):
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail=f"Payment of {amount} exceeds the amount due of {invoice.amount_due}"
                )

            invoice.payments.append(Payment(
                date=payment_data.date,
                amount=amount,
                method=payment_data.method,
                reference=payment_data.reference,
                notes=payment_data.notes
            ))
            self._apply_payments(invoice)

            self.db.commit()
            self.db.refresh(invoice)

            logger.info(f"Payment of {amount} registered on {invoice.number} ({invoice.status.value})")
            self._mark_overdue([invoice])
            return invoice

        except HTTPException:
            self.db.rollback()
            raise
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error registering payment on invoice {invoice_id}: {e}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error registering payment: {str(e)}"
            )

    def list_payments(self, invoice_id: UUID) -> List[Payment]:
        return self.get_invoice(invoice_id).payments

    def delete_payment(self, invoice_id: UUID, payment_id: UUID) -> Invoice:
        try:
            invoice = self.get_invoice(invoice_id)
            payment = next((p for p in invoice.payments if p.id == payment_id), None)
            if payment is None:
                raise HTTPException(
                    status_code=status.HTTP_404_NOT_FOUND,
                    detail="Payment not found"
                )

            invoice.payments.remove(payment)
            self._apply_payments(invoice)

            self.db.commit()
            self.db.refresh(invoice)

            logger.info(f"Payment {payment_id} removed from {invoice.number} ({invoice.status.value})")
            self._mark_overdue([invoice])
            return invoice

        except HTTPException:
            self.db.rollback()
            raise
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error deleting payment {payment_id}: {e}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error deleting payment: {str(e)}"
            )
