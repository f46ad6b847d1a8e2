"""
Authentication and permission dependencies for FastAPI.
"""
from typing import Optional
from uuid import UUID
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from erp_api.database.database import get_db
from erp_api.modules.auth.models import User, Permission
from erp_api.modules.auth.utils import verify_token

# Security scheme
security = HTTPBearer(auto_error=False)


class AuthDependencies:
    """Reusable authentication dependencies."""

    @staticmethod
    def get_current_user(
        credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
        db: Session = Depends(get_db)
    ) -> User:
        """
        Resolve the current user from the bearer access token.
        """
        credentials_exception = HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

        if credentials is None or not credentials.credentials:
            raise credentials_exception

        payload = verify_token(credentials.credentials, expected_type="access")
        user_id = payload.get("sub")
        if user_id is None:
            raise credentials_exception

        try:
            user_uuid = UUID(user_id)
        except ValueError:
            raise credentials_exception

        user = db.query(User).filter(User.id == user_uuid).first()
        if user is None or not user.is_active:
            raise credentials_exception

        return user

    @staticmethod
    def require_permission(permission: Permission):
        """
        Dependency that requires the current user to hold a module permission.
        The Admin role holds every permission.
        """
        def permission_checker(current_user: User = Depends(AuthDependencies.get_current_user)) -> User:
            if not current_user.has_permission(permission.value):
                raise HTTPException(
                    status_code=status.HTTP_403_FORBIDDEN,
                    detail=f"Permission '{permission.value}' is required"
                )
            return current_user
        return permission_checker


# Dependency instances
get_current_user = AuthDependencies.get_current_user
require_permission = AuthDependencies.require_permission
