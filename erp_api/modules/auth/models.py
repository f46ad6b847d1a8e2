from sqlalchemy import Column, String, Boolean, DateTime, JSON, Uuid
from uuid import uuid4
from erp_api.database.database import Base
from erp_api.common.mixins import TimestampMixin
import enum


class Permission(str, enum.Enum):
    USER_MANAGEMENT = "user-management"
    CUSTOMER_MANAGEMENT = "customer-management"
    ACCOUNTING = "accounting"
    INVENTORY = "inventory"
    QUOTATION = "quotation"
    PROJECT = "project"
    DELIVERY_INVOICING = "delivery-invoicing"
    REPORTING = "reporting"


ALL_PERMISSIONS = [p.value for p in Permission]

ADMIN_ROLE = "Admin"
DEFAULT_ROLE = "User"


class User(Base, TimestampMixin):
    __tablename__ = "users"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    name = Column(String(100), nullable=False)
    email = Column(String, unique=True, nullable=False, index=True)
    password = Column(String, nullable=False)
    role = Column(String(50), nullable=False, default=DEFAULT_ROLE)  # Admin, Project Manager, Accountant, ...
    permissions = Column(JSON, nullable=False, default=list)
    is_active = Column(Boolean, default=True, nullable=False)
    last_login = Column(DateTime(timezone=True), nullable=True)

    @property
    def is_admin(self) -> bool:
        return self.role == ADMIN_ROLE

    def has_permission(self, permission: str) -> bool:
        if self.is_admin:
            return True
        return permission in (self.permissions or [])
