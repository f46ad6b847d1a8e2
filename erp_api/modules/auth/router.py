from fastapi import APIRouter, Depends
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.orm import Session

from erp_api.database.database import get_db
from erp_api.common.pagination import MessageResponse
from erp_api.modules.auth.service import AuthService
from erp_api.modules.auth.dependencies import get_current_user
from erp_api.modules.auth.models import User
from erp_api.modules.auth.schemas import (
    UserRegister, UserOut, TokenResponse, AccessTokenResponse, RefreshTokenRequest
)

auth_router = APIRouter()


@auth_router.post("/register", response_model=TokenResponse, status_code=201)
def register(user_data: UserRegister, db: Session = Depends(get_db)):
    """
    Register a new user and return a token pair.
    """
    return AuthService(db).register(user_data)


@auth_router.post("/login", response_model=TokenResponse)
def login(form_data: OAuth2PasswordRequestForm = Depends(), db: Session = Depends(get_db)):
    """
    Log in with email (as username) and password.
    """
    return AuthService(db).login(form_data.username, form_data.password)


@auth_router.post("/refresh", response_model=AccessTokenResponse)
def refresh_token(request_data: RefreshTokenRequest, db: Session = Depends(get_db)):
    """
    Exchange a refresh token for a new access token.
    """
    return AuthService(db).refresh(request_data.refresh_token)


@auth_router.get("/me", response_model=UserOut)
def get_current_user_info(current_user: User = Depends(get_current_user)):
    """
    Current user information.
    """
    return current_user


@auth_router.post("/logout", response_model=MessageResponse)
def logout(current_user: User = Depends(get_current_user)):
    """
    Tokens are stateless; the client discards them.
    """
    return {"message": "You have been successfully logged out"}
