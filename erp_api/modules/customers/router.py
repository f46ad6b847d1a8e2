from fastapi import APIRouter, Depends, status, Query
from sqlalchemy.orm import Session
from typing import Optional
from uuid import UUID

from erp_api.database.database import get_db
from erp_api.common.pagination import PageParams, page_params, MessageResponse
from erp_api.modules.auth.dependencies import AuthDependencies
from erp_api.modules.auth.models import Permission, User
from erp_api.modules.customers.service import CustomerService
from erp_api.modules.customers.schemas import CustomerCreate, CustomerUpdate, CustomerOut, CustomerList

customers_router = APIRouter(prefix="/customers", tags=["Customers"])

require_customers = AuthDependencies.require_permission(Permission.CUSTOMER_MANAGEMENT)


@customers_router.post("/", response_model=CustomerOut, status_code=status.HTTP_201_CREATED)
def create_customer(
    customer: CustomerCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_customers)
):
    return CustomerService(db).create_customer(customer)


@customers_router.get("/", response_model=CustomerList)
def list_customers(
    search: Optional[str] = Query(None, description="Search by name, contact person, email or tax id"),
    country: Optional[str] = Query(None),
    page: PageParams = Depends(page_params),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_customers)
):
    return CustomerService(db).list_customers(page.limit, page.offset, search, country)


@customers_router.get("/{customer_id}", response_model=CustomerOut)
def get_customer(
    customer_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_customers)
):
    return CustomerService(db).get_customer(customer_id)


@customers_router.patch("/{customer_id}", response_model=CustomerOut)
def update_customer(
    customer_id: UUID,
    update: CustomerUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_customers)
):
    return CustomerService(db).update_customer(customer_id, update)


@customers_router.delete("/{customer_id}", response_model=MessageResponse)
def delete_customer(
    customer_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_customers)
):
    return CustomerService(db).delete_customer(customer_id)
