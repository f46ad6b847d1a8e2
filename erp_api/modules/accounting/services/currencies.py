from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from fastapi import HTTPException, status
from uuid import UUID
from decimal import Decimal
from typing import Dict, Any, List, Optional
import logging

from erp_api.common.calculator import to_money
from erp_api.modules.accounting.models import Currency
from erp_api.modules.accounting.schemas import CurrencyCreate, CurrencyUpdate

logger = logging.getLogger(__name__)


class CurrencyService:
    """Currencies and exchange rates relative to the base currency"""

    def __init__(self, db: Session):
        self.db = db

    def _clear_base_flag(self, keep_id: Optional[UUID] = None) -> None:
        query = self.db.query(Currency).filter(Currency.is_base_currency.is_(True))
        if keep_id:
            query = query.filter(Currency.id != keep_id)
        for currency in query.all():
            currency.is_base_currency = False

    def create_currency(self, currency_data: CurrencyCreate) -> Currency:
        try:
            existing = self.db.query(Currency).filter(Currency.code == currency_data.code).first()
            if existing:
                raise HTTPException(
                    status_code=status.HTTP_409_CONFLICT,
                    detail=f"Currency {currency_data.code} already exists"
                )

            currency = Currency(**currency_data.model_dump())
            if currency.is_base_currency:
                self._clear_base_flag()
                currency.exchange_rate = Decimal("1")

            self.db.add(currency)
            self.db.commit()
            self.db.refresh(currency)

            logger.info(f"Currency created: {currency.code}")
            return currency

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
            logger.error(f"Error creating currency: {e}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Internal error: {str(e)}"
            )

    def list_currencies(self, active_only: bool = False) -> List[Currency]:
        query = self.db.query(Currency)
        if active_only:
            query = query.filter(Currency.is_active.is_(True))
        return query.order_by(Currency.is_base_currency.desc(), Currency.code).all()

    def get_currency(self, currency_id: UUID) -> Currency:
        currency = self.db.query(Currency).filter(Currency.id == currency_id).first()
        if not currency:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Currency not found"
            )
        return currency

    def get_by_code(self, code: str) -> Currency:
        currency = self.db.query(Currency).filter(Currency.code == code.upper()).first()
        if not currency:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Currency {code.upper()} not found"
            )
        return currency

    def update_currency(self, currency_id: UUID, update_data: CurrencyUpdate) -> Currency:
        try:
            currency = self.get_currency(currency_id)
            update_dict = {k: v for k, v in update_data.model_dump(exclude_unset=True).items() if v is not None}

            if currency.is_base_currency and update_dict.get("is_base_currency") is False:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="Set another currency as base instead"
                )

            for field, value in update_dict.items():
                setattr(currency, field, value)

            if currency.is_base_currency:
                self._clear_base_flag(keep_id=currency.id)
                currency.exchange_rate = Decimal("1")

            self.db.commit()
            self.db.refresh(currency)

            logger.info(f"Currency updated: {currency.code}")
            return currency

        except HTTPException:
            raise
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error updating currency {currency_id}: {e}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error updating currency: {str(e)}"
            )

    def delete_currency(self, currency_id: UUID) -> Dict[str, str]:
        try:
            currency = self.get_currency(currency_id)
            if currency.is_base_currency:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="Cannot delete base currency"
                )

            self.db.delete(currency)
            self.db.commit()

            logger.info(f"Currency deleted: {currency.code}")
            return {"message": "The currency has been successfully deleted"}

        except HTTPException:
            raise
        except Exception as e:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error deleting currency: {str(e)}"
            )

    def convert(self, amount: Decimal, from_code: str, to_code: str) -> Dict[str, Any]:
        """
        Convert through the base currency: rates are units per base unit,
        so amount / from_rate gives base units and * to_rate the target.
        """
        source = self.get_by_code(from_code)
        target = self.get_by_code(to_code)

        rate = Decimal(target.exchange_rate) / Decimal(source.exchange_rate)
        converted = to_money(Decimal(str(amount)) / Decimal(source.exchange_rate) * Decimal(target.exchange_rate))

        return {
            "amount": amount,
            "from_currency": source.code,
            "to_currency": target.code,
            "rate": rate.quantize(Decimal("0.000001")),
            "converted_amount": converted
        }
