from datetime import datetime, timezone
from uuid import UUID
import logging

from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from erp_api.core.config import settings
from erp_api.modules.auth.models import User, ADMIN_ROLE, DEFAULT_ROLE, ALL_PERMISSIONS
from erp_api.modules.auth.schemas import (
    UserRegister, UserOut, TokenResponse, AccessTokenResponse
)
from erp_api.modules.auth.utils import (
    hash_password, verify_password, create_access_token,
    create_refresh_token, verify_token
)

logger = logging.getLogger(__name__)


class AuthService:
    """Registration, login and token refresh"""

    def __init__(self, db: Session):
        self.db = db

    def _token_response(self, user: User) -> TokenResponse:
        access_token = create_access_token({"sub": str(user.id), "role": user.role})
        refresh_token = create_refresh_token(str(user.id))
        return TokenResponse(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_in=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
            user=UserOut.model_validate(user)
        )

    def register(self, user_data: UserRegister) -> TokenResponse:
        """
        Register a new user.

        The very first account becomes the Admin so a fresh installation
        can be administered; later accounts start without permissions.
        """
        email = user_data.email.lower()
        try:
            if self.db.query(User).filter(User.email == email).first():
                raise HTTPException(
                    status_code=status.HTTP_409_CONFLICT,
                    detail="A user with this email already exists"
                )

            is_first_user = self.db.query(User).count() == 0

            user = User(
                name=user_data.name,
                email=email,
                password=hash_password(user_data.password),
                role=ADMIN_ROLE if is_first_user else DEFAULT_ROLE,
                permissions=list(ALL_PERMISSIONS) if is_first_user else [],
                is_active=True
            )
            self.db.add(user)
            self.db.commit()
            self.db.refresh(user)

            logger.info(f"User registered: {user.email} (role={user.role})")
            return self._token_response(user)

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
            logger.error(f"Error registering user: {e}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Internal error: {str(e)}"
            )

    def login(self, email: str, password: str) -> TokenResponse:
        """Authenticate by email and password."""
        if not email or not password:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Email and password are required",
                headers={"WWW-Authenticate": "Bearer"},
            )

        user = self.db.query(User).filter(User.email == email.lower()).first()
        if not user or not verify_password(password, user.password):
            logger.info(f"Failed login attempt for {email}")
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Incorrect email or password",
                headers={"WWW-Authenticate": "Bearer"},
            )

        if not user.is_active:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="User account is disabled"
            )

        user.last_login = datetime.now(timezone.utc)
        self.db.commit()
        self.db.refresh(user)

        logger.info(f"User logged in: {user.email}")
        return self._token_response(user)

    def refresh(self, refresh_token: str) -> AccessTokenResponse:
        """Exchange a refresh token for a new access token."""
        payload = verify_token(refresh_token, expected_type="refresh")

        user = self.db.query(User).filter(User.id == _as_uuid(payload.get("sub"))).first()
        if not user or not user.is_active:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Could not validate credentials",
                headers={"WWW-Authenticate": "Bearer"},
            )

        return AccessTokenResponse(
            access_token=create_access_token({"sub": str(user.id), "role": user.role}),
            expires_in=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60
        )


def _as_uuid(value) -> UUID:
    try:
        return UUID(str(value))
    except (TypeError, ValueError):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        )
