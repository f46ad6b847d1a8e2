from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from sqlalchemy import or_
from fastapi import HTTPException, status
from uuid import UUID
from typing import Dict, Any, Optional
import logging

from erp_api.common.pagination import paginate
from erp_api.modules.accounting.models import JournalLine
from erp_api.modules.customers.models import Customer
from erp_api.modules.customers.schemas import CustomerCreate, CustomerUpdate
from erp_api.modules.projects.models import Project
from erp_api.modules.quotations.models import Quotation
from erp_api.modules.delivery_invoicing.models import DeliveryNote, Invoice

logger = logging.getLogger(__name__)


class CustomerService:
    """Customer management"""

    def __init__(self, db: Session):
        self.db = db

    def create_customer(self, customer_data: CustomerCreate) -> Customer:
        """
        Create a new customer

        Raises:
            HTTPException: 409 if another customer already uses the tax id
        """
        try:
            if customer_data.tax_id:
                existing = self.db.query(Customer).filter(
                    Customer.tax_id == customer_data.tax_id
                ).first()
                if existing:
                    raise HTTPException(
                        status_code=status.HTTP_409_CONFLICT,
                        detail=f"Customer '{existing.name}' already uses tax id {customer_data.tax_id}"
                    )

            customer = Customer(**customer_data.model_dump())
            self.db.add(customer)
            self.db.commit()
            self.db.refresh(customer)

            logger.info(f"Customer created: {customer.name} ({customer.id})")
            return customer

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
            logger.error(f"Error creating customer: {e}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Internal error: {str(e)}"
            )

    def list_customers(
        self,
        limit: int = 20,
        offset: int = 0,
        search: Optional[str] = None,
        country: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        List customers with text search over name, contact person,
        email and tax id
        """
        query = self.db.query(Customer)

        if search:
            term = f"%{search}%"
            query = query.filter(
                or_(
                    Customer.name.ilike(term),
                    Customer.contact_person.ilike(term),
                    Customer.email.ilike(term),
                    Customer.tax_id.ilike(term)
                )
            )
        if country:
            query = query.filter(Customer.country.ilike(country))

        page = paginate(query.order_by(Customer.name), limit, offset)
        return {
            "customers": page["items"],
            "total": page["total"],
            "limit": limit,
            "offset": offset
        }

    def get_customer(self, customer_id: UUID) -> Customer:
        customer = self.db.query(Customer).filter(Customer.id == customer_id).first()
        if not customer:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Customer not found"
            )
        return customer

    def update_customer(self, customer_id: UUID, update_data: CustomerUpdate) -> Customer:
        try:
            customer = self.get_customer(customer_id)
            update_dict = update_data.model_dump(exclude_unset=True)

            if update_dict.get("tax_id") and update_dict["tax_id"] != customer.tax_id:
                existing = self.db.query(Customer).filter(
                    Customer.tax_id == update_dict["tax_id"],
                    Customer.id != customer_id
                ).first()
                if existing:
                    raise HTTPException(
                        status_code=status.HTTP_409_CONFLICT,
                        detail=f"Customer '{existing.name}' already uses tax id {update_dict['tax_id']}"
                    )

            if "name" in update_dict and update_dict["name"] is None:
                update_dict.pop("name")

            for field, value in update_dict.items():
                setattr(customer, field, value)

            self.db.commit()
            self.db.refresh(customer)

            logger.info(f"Customer updated: {customer.name} ({customer.id})")
            return customer

        except HTTPException:
            raise
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error updating customer {customer_id}: {e}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error updating customer: {str(e)}"
            )

    def _count_references(self, customer_id: UUID) -> Dict[str, int]:
        return {
            "projects": self.db.query(Project).filter(Project.customer_id == customer_id).count(),
            "quotations": self.db.query(Quotation).filter(Quotation.customer_id == customer_id).count(),
            "delivery notes": self.db.query(DeliveryNote).filter(DeliveryNote.customer_id == customer_id).count(),
            "invoices": self.db.query(Invoice).filter(Invoice.customer_id == customer_id).count(),
            "journal lines": self.db.query(JournalLine).filter(JournalLine.customer_id == customer_id).count(),
        }

    def delete_customer(self, customer_id: UUID) -> Dict[str, str]:
        try:
            customer = self.get_customer(customer_id)

            references = {name: count for name, count in self._count_references(customer_id).items() if count}
            if references:
                used_by = ", ".join(f"{count} {name}" for name, count in references.items())
                raise HTTPException(
                    status_code=status.HTTP_409_CONFLICT,
                    detail=f"Customer is referenced by {used_by} and cannot be deleted"
                )

            self.db.delete(customer)
            self.db.commit()

            logger.info(f"Customer deleted: {customer_id}")
            return {"message": "The customer has been successfully deleted"}

        except HTTPException:
            raise
        except IntegrityError:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="The customer is referenced by other records and cannot be deleted"
            )
        except Exception as e:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error deleting customer: {str(e)}"
            )
