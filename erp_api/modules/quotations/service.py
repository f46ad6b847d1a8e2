from sqlalchemy.orm import Session, selectinload
from sqlalchemy.exc import IntegrityError
from sqlalchemy import or_
from fastapi import HTTPException, status
from uuid import UUID
from datetime import date, timedelta
from typing import Dict, Any, List, Optional, Iterable
import logging

from erp_api.core.config import settings
from erp_api.common.calculator import LineCalculator
from erp_api.common.numbering import next_document_number
from erp_api.common.pagination import paginate
from erp_api.modules.customers.models import Customer
from erp_api.modules.inventory.models import InventoryItem
from erp_api.modules.quotations.models import (
    Quotation, QuotationItem, QuotationStatus, QuotationTemplate, QuotationTemplateItem,
    QUOTATION_TRANSITIONS, EDITABLE_QUOTATION_STATUSES
)
from erp_api.modules.quotations.schemas import (
    QuotationCreate, QuotationUpdate, QuotationItemCreate,
    TemplateCreate, TemplateUpdate, TemplateItemCreate, QuotationFromTemplate
)

logger = logging.getLogger(__name__)


class QuotationService:
    """Quotations, their status workflow and reusable templates"""

    def __init__(self, db: Session):
        self.db = db

    # ===== HELPERS =====

    def _ensure_customer(self, customer_id: UUID) -> None:
        if not self.db.query(Customer.id).filter(Customer.id == customer_id).first():
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Customer not found"
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

    def _build_items(self, items_data: List[QuotationItemCreate]) -> List[QuotationItem]:
        self._ensure_inventory_items(items_data)
        items = []
        for position, line in enumerate(items_data):
            totals = LineCalculator.calculate_line(line.quantity, line.unit_price, line.tax_rate, line.discount_rate)
            items.append(QuotationItem(
                position=position,
                inventory_item_id=line.inventory_item_id,
                description=line.description,
                quantity=line.quantity,
                unit_price=line.unit_price,
                tax_rate=line.tax_rate,
                discount_rate=line.discount_rate,
                total=totals.total
            ))
        return items

    @staticmethod
    def _apply_totals(quotation: Quotation) -> None:
        totals = LineCalculator.calculate_document(quotation.items)
        quotation.subtotal = totals.subtotal
        quotation.discount_amount = totals.discount_amount
        quotation.tax_amount = totals.tax_amount
        quotation.total = totals.total

    @staticmethod
    def _default_valid_until(quotation_date: date) -> date:
        return quotation_date + timedelta(days=settings.DEFAULT_QUOTATION_VALIDITY_DAYS)

    def _expire_stale(self, quotations: Iterable[Quotation]) -> None:
        """Sent quotations past their validity date become expired."""
        today = date.today()
        expired = []
        for quotation in quotations:
            if quotation.status == QuotationStatus.SENT and quotation.valid_until < today:
                quotation.status = QuotationStatus.EXPIRED
                expired.append(quotation.number)
        if expired:
            self.db.commit()
            logger.info(f"Quotations expired: {', '.join(expired)}")

    # ===== QUOTATIONS =====

    def create_quotation(self, quotation_data: QuotationCreate, user_id: Optional[UUID] = None) -> Quotation:
        """
        Create a draft quotation with calculated line and header totals

        Raises:
            HTTPException: 404 for unknown customer or inventory items
        """
        try:
            self._ensure_customer(quotation_data.customer_id)

            quotation = Quotation(
                number=next_document_number(self.db, "QT", quotation_data.date),
                date=quotation_data.date,
                valid_until=quotation_data.valid_until or self._default_valid_until(quotation_data.date),
                customer_id=quotation_data.customer_id,
                status=QuotationStatus.DRAFT,
                notes=quotation_data.notes,
                terms=quotation_data.terms,
                created_by=user_id
            )
            quotation.items = self._build_items(quotation_data.items)
            self._apply_totals(quotation)

            self.db.add(quotation)
            self.db.commit()
            self.db.refresh(quotation)

            logger.info(f"Quotation created: {quotation.number} total {quotation.total}")
            return quotation

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
            logger.error(f"Error creating quotation: {e}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Internal error: {str(e)}"
            )

    def list_quotations(
        self,
        limit: int = 20,
        offset: int = 0,
        quotation_status: Optional[QuotationStatus] = None,
        customer_id: Optional[UUID] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        search: Optional[str] = None
    ) -> Dict[str, Any]:
        self._expire_stale(
            self.db.query(Quotation).filter(
                Quotation.status == QuotationStatus.SENT,
                Quotation.valid_until < date.today()
            ).all()
        )

        query = self.db.query(Quotation).options(selectinload(Quotation.items))

        if quotation_status:
            query = query.filter(Quotation.status == quotation_status)
        if customer_id:
            query = query.filter(Quotation.customer_id == customer_id)
        if start_date:
            query = query.filter(Quotation.date >= start_date)
        if end_date:
            query = query.filter(Quotation.date <= end_date)
        if search:
            term = f"%{search}%"
            query = query.join(Customer).filter(or_(Quotation.number.ilike(term), Customer.name.ilike(term)))

        page = paginate(query.order_by(Quotation.date.desc(), Quotation.number.desc()), limit, offset)
        return {
            "quotations": page["items"],
            "total": page["total"],
            "limit": limit,
            "offset": offset
        }

    def get_quotation(self, quotation_id: UUID) -> Quotation:
        quotation = self.db.query(Quotation).filter(Quotation.id == quotation_id).first()
        if not quotation:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Quotation not found"
            )
        self._expire_stale([quotation])
        return quotation

    def update_quotation(self, quotation_id: UUID, update_data: QuotationUpdate) -> Quotation:
        try:
            quotation = self.get_quotation(quotation_id)
            if quotation.status not in EDITABLE_QUOTATION_STATUSES:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail=f"Quotations in status '{quotation.status.value}' cannot be edited"
                )

            update_dict = update_data.model_dump(exclude_unset=True, exclude={"items"})
            update_dict = {k: v for k, v in update_dict.items() if v is not None or k in ("notes", "terms")}

            if "customer_id" in update_dict:
                self._ensure_customer(update_dict["customer_id"])

            new_date = update_dict.get("date", quotation.date)
            new_valid_until = update_dict.get("valid_until", quotation.valid_until)
            if new_valid_until < new_date:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="Valid until date must be on or after the quotation date"
                )

            for field, value in update_dict.items():
                setattr(quotation, field, value)

            if update_data.items is not None:
                quotation.items = self._build_items(update_data.items)
                self._apply_totals(quotation)

            self.db.commit()
            self.db.refresh(quotation)

            logger.info(f"Quotation updated: {quotation.number} total {quotation.total}")
            return quotation

        except HTTPException:
            self.db.rollback()
            raise
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error updating quotation {quotation_id}: {e}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error updating quotation: {str(e)}"
            )

    def change_status(self, quotation_id: UUID, new_status: QuotationStatus) -> Quotation:
        """
        Move a quotation through its workflow:
        draft -> sent -> accepted | rejected, draft | sent -> expired
        """
        try:
            quotation = self.get_quotation(quotation_id)
            current = quotation.status

            if new_status not in QUOTATION_TRANSITIONS[current]:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail=f"Cannot change quotation status from '{current.value}' to '{new_status.value}'"
                )

            quotation.status = new_status
            self.db.commit()
            self.db.refresh(quotation)

            logger.info(f"Quotation {quotation.number}: {current.value} -> {new_status.value}")
            return quotation

        except HTTPException:
            raise
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error changing status of quotation {quotation_id}: {e}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error changing quotation status: {str(e)}"
            )

    def delete_quotation(self, quotation_id: UUID) -> Dict[str, str]:
        try:
            quotation = self.get_quotation(quotation_id)
            if quotation.status == QuotationStatus.ACCEPTED:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="Accepted quotations cannot be deleted"
                )

            self.db.delete(quotation)
            self.db.commit()

            logger.info(f"Quotation deleted: {quotation.number}")
            return {"message": "The quotation has been successfully deleted"}

        except HTTPException:
            raise
        except Exception as e:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error deleting quotation: {str(e)}"
            )

    # ===== TEMPLATES =====

    def _build_template_items(self, items_data: List[TemplateItemCreate]) -> List[QuotationTemplateItem]:
        self._ensure_inventory_items(items_data)
        return [
            QuotationTemplateItem(position=position, **line.model_dump())
            for position, line in enumerate(items_data)
        ]

    def _template_name_taken(self, name: str, exclude_id: Optional[UUID] = None) -> bool:
        query = self.db.query(QuotationTemplate).filter(QuotationTemplate.name == name)
        if exclude_id:
            query = query.filter(QuotationTemplate.id != exclude_id)
        return query.first() is not None

    def create_template(self, template_data: TemplateCreate) -> QuotationTemplate:
        try:
            if self._template_name_taken(template_data.name):
                raise HTTPException(
                    status_code=status.HTTP_409_CONFLICT,
                    detail=f"A template named '{template_data.name}' already exists"
                )

            template = QuotationTemplate(**template_data.model_dump(exclude={"items"}))
            template.items = self._build_template_items(template_data.items)

            self.db.add(template)
            self.db.commit()
            self.db.refresh(template)

            logger.info(f"Quotation template created: {template.name}")
            return template

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
            logger.error(f"Error creating quotation template: {e}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Internal error: {str(e)}"
            )

    def list_templates(self) -> List[QuotationTemplate]:
        return self.db.query(QuotationTemplate).order_by(QuotationTemplate.name).all()

    def get_template(self, template_id: UUID) -> QuotationTemplate:
        template = self.db.query(QuotationTemplate).filter(QuotationTemplate.id == template_id).first()
        if not template:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Quotation template not found"
            )
        return template

    def update_template(self, template_id: UUID, update_data: TemplateUpdate) -> QuotationTemplate:
        try:
            template = self.get_template(template_id)
            update_dict = update_data.model_dump(exclude_unset=True, exclude={"items"})

            if update_dict.get("name") and self._template_name_taken(update_dict["name"], exclude_id=template_id):
                raise HTTPException(
                    status_code=status.HTTP_409_CONFLICT,
                    detail=f"A template named '{update_dict['name']}' already exists"
                )
            if "name" in update_dict and update_dict["name"] is None:
                update_dict.pop("name")

            for field, value in update_dict.items():
                setattr(template, field, value)

            if update_data.items is not None:
                template.items = self._build_template_items(update_data.items)

            self.db.commit()
            self.db.refresh(template)

            logger.info(f"Quotation template updated: {template.name}")
            return template

        except HTTPException:
            raise
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error updating quotation template {template_id}: {e}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error updating quotation template: {str(e)}"
            )

    def delete_template(self, template_id: UUID) -> Dict[str, str]:
        try:
            template = self.get_template(template_id)

            self.db.delete(template)
            self.db.commit()

            logger.info(f"Quotation template deleted: {template.name}")
            return {"message": "The quotation template has been successfully deleted"}

        except HTTPException:
            raise
        except Exception as e:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error deleting quotation template: {str(e)}"
            )

    def create_from_template(
        self,
        template_id: UUID,
        request: QuotationFromTemplate,
        user_id: Optional[UUID] = None
    ) -> Quotation:
        """Create a draft quotation for a customer from the template's lines."""
        template = self.get_template(template_id)

        quotation_data = QuotationCreate(
            customer_id=request.customer_id,
            date=request.date,
            valid_until=request.valid_until,
            notes=template.notes,
            terms=template.terms,
            items=[
                QuotationItemCreate(
                    inventory_item_id=item.inventory_item_id,
                    description=item.description,
                    quantity=item.quantity,
                    unit_price=item.unit_price,
                    tax_rate=item.tax_rate,
                    discount_rate=item.discount_rate
                )
                for item in template.items
            ]
        )

        quotation = self.create_quotation(quotation_data, user_id)
        quotation.template_id = template.id
        self.db.commit()
        self.db.refresh(quotation)
        return quotation
