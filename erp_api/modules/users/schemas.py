from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import Optional, List
from erp_api.modules.auth.models import ALL_PERMISSIONS
from erp_api.modules.auth.schemas import UserOut


def _check_permissions(values: Optional[List[str]]) -> Optional[List[str]]:
    if values is None:
        return values
    unknown = [p for p in values if p not in ALL_PERMISSIONS]
    if unknown:
        raise ValueError(f"Unknown permissions: {', '.join(unknown)}")
    # Keep order, drop duplicates
    return list(dict.fromkeys(values))


class UserCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=100, description="Name must be at least 2 characters")
    email: EmailStr
    role: str = Field(..., min_length=1, max_length=50, description="Please select a role")
    permissions: List[str] = Field(default_factory=list)
    password: str = Field(..., min_length=8)
    is_active: bool = True

    @field_validator('permissions')
    @classmethod
    def validate_permissions(cls, v):
        return _check_permissions(v)


class UserUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    email: Optional[EmailStr] = None
    role: Optional[str] = Field(None, min_length=1, max_length=50)
    permissions: Optional[List[str]] = None
    password: Optional[str] = Field(None, min_length=8)
    is_active: Optional[bool] = None

    @field_validator('permissions')
    @classmethod
    def validate_permissions(cls, v):
        return _check_permissions(v)


class UserList(BaseModel):
    users: List[UserOut]
    total: int
    limit: int
    offset: int


class PermissionList(BaseModel):
    permissions: List[str]
