from sqlalchemy import Column, String, Text
from erp_api.database.database import Base
from erp_api.common.mixins import BaseMixin


class Customer(Base, BaseMixin):
    __tablename__ = "customers"

    name = Column(String(200), nullable=False, index=True)
    contact_person = Column(String(200), nullable=True)
    email = Column(String(100), nullable=True, index=True)
    phone = Column(String(50), nullable=True)

    # Address
    address = Column(String(255), nullable=True)
    city = Column(String(100), nullable=True)
    state = Column(String(100), nullable=True)
    country = Column(String(100), nullable=True)
    postal_code = Column(String(20), nullable=True)

    tax_id = Column(String(50), nullable=True, index=True)
    notes = Column(Text, nullable=True)
