from fastapi import APIRouter, Depends, status, Query
from sqlalchemy.orm import Session
from typing import Optional, List
from uuid import UUID
from datetime import date

from erp_api.database.database import get_db
from erp_api.common.pagination import PageParams, page_params, MessageResponse
from erp_api.modules.auth.dependencies import AuthDependencies
from erp_api.modules.auth.models import Permission, User
from erp_api.modules.quotations.models import QuotationStatus
from erp_api.modules.quotations.service import QuotationService
from erp_api.modules.quotations.schemas import (
    QuotationCreate, QuotationUpdate, QuotationOut, QuotationList, QuotationStatusUpdate,
    TemplateCreate, TemplateUpdate, TemplateOut, QuotationFromTemplate
)

require_quotations = AuthDependencies.require_permission(Permission.QUOTATION)

quotations_router = APIRouter(prefix="/quotations", tags=["Quotations"])


# ===== TEMPLATES =====
# Declared before /{quotation_id} so the literal paths win

@quotations_router.get("/templates", response_model=List[TemplateOut])
def list_templates(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_quotations)
):
    return QuotationService(db).list_templates()


@quotations_router.post("/templates", response_model=TemplateOut, status_code=status.HTTP_201_CREATED)
def create_template(
    template: TemplateCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_quotations)
):
    return QuotationService(db).create_template(template)


@quotations_router.get("/templates/{template_id}", response_model=TemplateOut)
def get_template(
    template_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_quotations)
):
    return QuotationService(db).get_template(template_id)


@quotations_router.patch("/templates/{template_id}", response_model=TemplateOut)
def update_template(
    template_id: UUID,
    update: TemplateUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_quotations)
):
    return QuotationService(db).update_template(template_id, update)


@quotations_router.delete("/templates/{template_id}", response_model=MessageResponse)
def delete_template(
    template_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_quotations)
):
    return QuotationService(db).delete_template(template_id)


@quotations_router.post(
    "/from-template/{template_id}", response_model=QuotationOut, status_code=status.HTTP_201_CREATED
)
def create_from_template(
    template_id: UUID,
    request: QuotationFromTemplate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_quotations)
):
    return QuotationService(db).create_from_template(template_id, request, current_user.id)


# ===== QUOTATIONS =====

@quotations_router.post("/", response_model=QuotationOut, status_code=status.HTTP_201_CREATED)
def create_quotation(
    quotation: QuotationCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_quotations)
):
    return QuotationService(db).create_quotation(quotation, current_user.id)


@quotations_router.get("/", response_model=QuotationList)
def list_quotations(
    status_filter: Optional[QuotationStatus] = Query(None, alias="status"),
    customer_id: Optional[UUID] = Query(None),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    search: Optional[str] = Query(None, description="Search by number or customer name"),
    page: PageParams = Depends(page_params),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_quotations)
):
    return QuotationService(db).list_quotations(
        page.limit, page.offset, status_filter, customer_id, start_date, end_date, search
    )


@quotations_router.get("/{quotation_id}", response_model=QuotationOut)
def get_quotation(
    quotation_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_quotations)
):
    return QuotationService(db).get_quotation(quotation_id)


@quotations_router.patch("/{quotation_id}", response_model=QuotationOut)
def update_quotation(
    quotation_id: UUID,
    update: QuotationUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_quotations)
):
    return QuotationService(db).update_quotation(quotation_id, update)


@quotations_router.post("/{quotation_id}/status", response_model=QuotationOut)
def change_quotation_status(
    quotation_id: UUID,
    status_update: QuotationStatusUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_quotations)
):
    return QuotationService(db).change_status(quotation_id, status_update.status)


@quotations_router.delete("/{quotation_id}", response_model=MessageResponse)
def delete_quotation(
    quotation_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_quotations)
):
    return QuotationService(db).delete_quotation(quotation_id)
