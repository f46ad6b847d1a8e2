from fastapi import APIRouter, Depends, status, Query
from sqlalchemy.orm import Session
from typing import Optional
from uuid import UUID

from erp_api.database.database import get_db
from erp_api.common.pagination import PageParams, page_params, MessageResponse
from erp_api.modules.auth.dependencies import AuthDependencies
from erp_api.modules.auth.models import Permission, User, ALL_PERMISSIONS
from erp_api.modules.auth.schemas import UserOut
from erp_api.modules.users.service import UserService
from erp_api.modules.users.schemas import UserCreate, UserUpdate, UserList, PermissionList

users_router = APIRouter(prefix="/users", tags=["Users"])

require_user_management = AuthDependencies.require_permission(Permission.USER_MANAGEMENT)


@users_router.get("/permissions", response_model=PermissionList)
def list_permissions(current_user: User = Depends(require_user_management)):
    return {"permissions": ALL_PERMISSIONS}


@users_router.get("/", response_model=UserList)
def list_users(
    search: Optional[str] = Query(None),
    role: Optional[str] = Query(None),
    page: PageParams = Depends(page_params),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_user_management)
):
    return UserService(db).list_users(page.limit, page.offset, search, role)


@users_router.post("/", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def create_user(
    user: UserCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_user_management)
):
    return UserService(db).create_user(user)


@users_router.get("/{user_id}", response_model=UserOut)
def get_user(
    user_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_user_management)
):
    return UserService(db).get_user(user_id)


@users_router.patch("/{user_id}", response_model=UserOut)
def update_user(
    user_id: UUID,
    update: UserUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_user_management)
):
    return UserService(db).update_user(user_id, update)


@users_router.delete("/{user_id}", response_model=MessageResponse)
def delete_user(
    user_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_user_management)
):
    return UserService(db).delete_user(user_id, current_user)
