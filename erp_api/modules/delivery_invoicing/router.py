from fastapi import APIRouter, Depends, status, Query
from sqlalchemy.orm import Session
from typing import Optional, List
from uuid import UUID
from datetime import date

from erp_api.database.database import get_db
from erp_api.common.pagination import PageParams, page_params, MessageResponse
from erp_api.modules.auth.dependencies import AuthDependencies
from erp_api.modules.auth.models import Permission, User
from erp_api.modules.delivery_invoicing.models import DeliveryStatus, InvoiceStatus
from erp_api.modules.delivery_invoicing.service import DeliveryNoteService, InvoiceService
from erp_api.modules.delivery_invoicing.schemas import (
    DeliveryNoteCreate, DeliveryNoteUpdate, DeliveryNoteOut, DeliveryNoteList,
    InvoiceCreate, InvoiceUpdate, InvoiceOut, InvoiceList, InvoiceFromDeliveryNote,
    PaymentCreate, PaymentOut
)

require_delivery_invoicing = AuthDependencies.require_permission(Permission.DELIVERY_INVOICING)

delivery_notes_router = APIRouter(prefix="/delivery-notes", tags=["Delivery & Invoicing"])
invoices_router = APIRouter(prefix="/invoices", tags=["Delivery & Invoicing"])


# ===== DELIVERY NOTES =====

@delivery_notes_router.post("/", response_model=DeliveryNoteOut, status_code=status.HTTP_201_CREATED)
def create_delivery_note(
    note: DeliveryNoteCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_delivery_invoicing)
):
    return DeliveryNoteService(db).create_delivery_note(note, current_user.id)


@delivery_notes_router.get("/", response_model=DeliveryNoteList)
def list_delivery_notes(
    status_filter: Optional[DeliveryStatus] = Query(None, alias="status"),
    customer_id: Optional[UUID] = Query(None),
    project_id: Optional[UUID] = Query(None),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    search: Optional[str] = Query(None, description="Search by number or customer name"),
    page: PageParams = Depends(page_params),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_delivery_invoicing)
):
    return DeliveryNoteService(db).list_delivery_notes(
        page.limit, page.offset, status_filter, customer_id, project_id, start_date, end_date, search
    )


@delivery_notes_router.get("/{note_id}", response_model=DeliveryNoteOut)
def get_delivery_note(
    note_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_delivery_invoicing)
):
    return DeliveryNoteService(db).get_delivery_note(note_id)


@delivery_notes_router.patch("/{note_id}", response_model=DeliveryNoteOut)
def update_delivery_note(
    note_id: UUID,
    update: DeliveryNoteUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_delivery_invoicing)
):
    return DeliveryNoteService(db).update_delivery_note(note_id, update)


@delivery_notes_router.post("/{note_id}/deliver", response_model=DeliveryNoteOut)
def deliver_delivery_note(
    note_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_delivery_invoicing)
):
    """Mark the note delivered and issue its stocked lines from inventory."""
    return DeliveryNoteService(db).deliver(note_id)


@delivery_notes_router.post("/{note_id}/cancel", response_model=DeliveryNoteOut)
def cancel_delivery_note(
    note_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_delivery_invoicing)
):
    return DeliveryNoteService(db).cancel(note_id)


@delivery_notes_router.delete("/{note_id}", response_model=MessageResponse)
def delete_delivery_note(
    note_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_delivery_invoicing)
):
    return DeliveryNoteService(db).delete_delivery_note(note_id)


# ===== INVOICES =====

@invoices_router.post("/", response_model=InvoiceOut, status_code=status.HTTP_201_CREATED)
def create_invoice(
    invoice: InvoiceCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_delivery_invoicing)
):
    return InvoiceService(db).create_invoice(invoice, current_user.id)


@invoices_router.post(
    "/from-delivery-note/{note_id}", response_model=InvoiceOut, status_code=status.HTTP_201_CREATED
)
def create_invoice_from_delivery_note(
    note_id: UUID,
    request: InvoiceFromDeliveryNote,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_delivery_invoicing)
):
    return InvoiceService(db).create_from_delivery_note(note_id, request, current_user.id)


@invoices_router.get("/", response_model=InvoiceList)
def list_invoices(
    status_filter: Optional[InvoiceStatus] = Query(None, alias="status"),
    customer_id: Optional[UUID] = Query(None),
    project_id: Optional[UUID] = Query(None),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    search: Optional[str] = Query(None, description="Search by number or customer name"),
    page: PageParams = Depends(page_params),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_delivery_invoicing)
):
    return InvoiceService(db).list_invoices(
        page.limit, page.offset, status_filter, customer_id, project_id, start_date, end_date, search
    )


@invoices_router.get("/{invoice_id}", response_model=InvoiceOut)
def get_invoice(
    invoice_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_delivery_invoicing)
):
    return InvoiceService(db).get_invoice(invoice_id)


@invoices_router.patch("/{invoice_id}", response_model=InvoiceOut)
def update_invoice(
    invoice_id: UUID,
    update: InvoiceUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_delivery_invoicing)
):
    return InvoiceService(db).update_invoice(invoice_id, update)


@invoices_router.post("/{invoice_id}/send", response_model=InvoiceOut)
def send_invoice(
    invoice_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_delivery_invoicing)
):
    return InvoiceService(db).send_invoice(invoice_id)


@invoices_router.post("/{invoice_id}/cancel", response_model=InvoiceOut)
def cancel_invoice(
    invoice_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_delivery_invoicing)
):
    return InvoiceService(db).cancel_invoice(invoice_id)


@invoices_router.delete("/{invoice_id}", response_model=MessageResponse)
def delete_invoice(
    invoice_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_delivery_invoicing)
):
    return InvoiceService(db).delete_invoice(invoice_id)


# ===== PAYMENTS =====

@invoices_router.get("/{invoice_id}/payments", response_model=List[PaymentOut])
def list_payments(
    invoice_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_delivery_invoicing)
):
    return InvoiceService(db).list_payments(invoice_id)


@invoices_router.post("/{invoice_id}/payments", response_model=InvoiceOut, status_code=status.HTTP_201_CREATED)
def add_payment(
    invoice_id: UUID,
    payment: PaymentCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_delivery_invoicing)
):
    return InvoiceService(db).add_payment(invoice_id, payment)


@invoices_router.delete("/{invoice_id}/payments/{payment_id}", response_model=InvoiceOut)
def delete_payment(
    invoice_id: UUID,
    payment_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_delivery_invoicing)
):
    return InvoiceService(db).delete_payment(invoice_id, payment_id)
