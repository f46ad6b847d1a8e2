from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from sqlalchemy import or_
from fastapi import HTTPException, status
from typing import Optional, Dict, Any
from uuid import UUID
import logging

from erp_api.common.pagination import paginate
from erp_api.modules.auth.models import User
from erp_api.modules.auth.utils import hash_password
from erp_api.modules.users.schemas import UserCreate, UserUpdate

logger = logging.getLogger(__name__)


class UserService:
    """User management"""

    def __init__(self, db: Session):
        self.db = db

    def _email_taken(self, email: str, exclude_id: Optional[UUID] = None) -> bool:
        query = self.db.query(User).filter(User.email == email.lower())
        if exclude_id:
            query = query.filter(User.id != exclude_id)
        return query.first() is not None

    def list_users(
        self,
        limit: int = 20,
        offset: int = 0,
        search: Optional[str] = None,
        role: Optional[str] = None
    ) -> Dict[str, Any]:
        query = self.db.query(User)

        if search:
            term = f"%{search}%"
            query = query.filter(or_(User.name.ilike(term), User.email.ilike(term)))
        if role:
            query = query.filter(User.role == role)

        page = paginate(query.order_by(User.name), limit, offset)
        return {
            "users": page["items"],
            "total": page["total"],
            "limit": limit,
            "offset": offset
        }

    def get_user(self, user_id: UUID) -> User:
        user = self.db.query(User).filter(User.id == user_id).first()
        if not user:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="User not found"
            )
        return user

    def create_user(self, user_data: UserCreate) -> User:
        try:
            if self._email_taken(user_data.email):
                raise HTTPException(
                    status_code=status.HTTP_409_CONFLICT,
                    detail="A user with this email already exists"
                )

            user = User(
                name=user_data.name.strip(),
                email=user_data.email.lower(),
                password=hash_password(user_data.password),
                role=user_data.role,
                permissions=user_data.permissions,
                is_active=user_data.is_active
            )
            self.db.add(user)
            self.db.commit()
            self.db.refresh(user)

            logger.info(f"User created: {user.email}")
            return user

        except HTTPException:
            raise
        except IntegrityError:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="A user with this email already exists"
            )
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error creating user: {e}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error creating user: {str(e)}"
            )

    def update_user(self, user_id: UUID, update_data: UserUpdate) -> User:
        try:
            user = self.get_user(user_id)

            update_dict = update_data.model_dump(exclude_unset=True)
            if "email" in update_dict and update_dict["email"]:
                if self._email_taken(update_dict["email"], exclude_id=user_id):
                    raise HTTPException(
                        status_code=status.HTTP_409_CONFLICT,
                        detail="Another user already uses this email"
                    )
                update_dict["email"] = update_dict["email"].lower()

            if update_dict.get("password"):
                update_dict["password"] = hash_password(update_dict["password"])
            else:
                update_dict.pop("password", None)

            for field, value in update_dict.items():
                if value is None and field in ("name", "email", "role", "permissions", "is_active"):
                    continue
                setattr(user, field, value)

            self.db.commit()
            self.db.refresh(user)

            logger.info(f"User updated: {user.email}")
            return user

        except HTTPException:
            raise
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error updating user {user_id}: {e}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error updating user: {str(e)}"
            )

    def delete_user(self, user_id: UUID, current_user: User) -> Dict[str, str]:
        try:
            user = self.get_user(user_id)

            if user.id == current_user.id:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="You cannot delete your own account"
                )

            self.db.delete(user)
            self.db.commit()

            logger.info(f"User deleted: {user.email}")
            return {"message": "The user has been successfully deleted"}

        except HTTPException:
            raise
        except IntegrityError:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="The user is referenced by other records and cannot be deleted"
            )
        except Exception as e:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error deleting user: {str(e)}"
            )
