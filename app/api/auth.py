#app/api/auth.py
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.orm import Session
from datetime import timedelta
import logging

from app.schemas.auth import SignUpRequest, LoginResponse, TokenRefreshRequest, TokenRefreshResponse
from app.schemas.user import UserRead
from app.schemas.response import MessageResponse
from app.crud.user import authenticate_user, create_user, get_user_by_username, set_last_login
from app.crud import auth as crud_auth
from app.core.security import create_access_token, create_refresh_token, verify_refresh_token
from app.core.exceptions import DuplicateUser, UserValidationError
from app.dependencies import get_db, get_current_active_user
from app.core.settings import settings
from app.models.user import User as DBUser

router = APIRouter(prefix="/auth", tags=["Auth"])
logger = logging.getLogger("ResearchTracker.Auth")


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _token_pair(db: Session, user: DBUser) -> dict:
    """Mint, record and return a fresh access/refresh pair for user."""
    access, access_expires = create_access_token(
        {"sub": user.username, "user_id": user.id, "role": user.role},
        expires_delta=timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
    )
    refresh, refresh_expires, jti = create_refresh_token(
        {"sub": user.username, "user_id": user.id},
        expires_delta=timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS),
    )
    crud_auth.store_token_info(db, user.id, access, "access", expires_at=access_expires)
    crud_auth.store_token_info(db, user.id, refresh, "refresh", expires_at=refresh_expires, jti=jti)
    return {
        "access_token": access,
        "refresh_token": refresh,
        "token_type": "bearer",
        "expires_in": settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
    }


@router.post("/signup", response_model=UserRead, status_code=status.HTTP_201_CREATED)
def sign_up(data: SignUpRequest, db: Session = Depends(get_db)):
    """
    Register by email. The username is the email and the profile gets role 'user'.
    """
    try:
        user = create_user(db, {"email": data.email, "password": data.password, "name": data.name, "role": "user"})
    except DuplicateUser as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except UserValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    logger.info(f"New sign-up: {user.email}")
    return user


@router.post("/login", response_model=LoginResponse)
def login(form_data: OAuth2PasswordRequestForm = Depends(), db: Session = Depends(get_db)):
    """
    OAuth2 password form; `username` may hold the username or the email.
    """
    user = authenticate_user(db, form_data.username, form_data.password)
    if user is None or not user.is_active:
        logger.info(f"Rejected login for '{form_data.username}'")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid login credentials")
    tokens = _token_pair(db, user)
    set_last_login(db, user.id)
    return LoginResponse(**tokens)


@router.post("/refresh", response_model=TokenRefreshResponse)
def refresh_token(data: TokenRefreshRequest, db: Session = Depends(get_db)):
    """
    Rotate tokens. The presented refresh token stops working.
    """
    claims = verify_refresh_token(data.refresh_token)
    if not claims or "jti" not in claims or "sub" not in claims:
        raise _unauthorized("Invalid refresh token payload")
    if not crud_auth.is_refresh_token_active(db, token_jti=claims["jti"]):
        raise _unauthorized("Refresh token revoked or invalid")

    user = get_user_by_username(db, claims["sub"])
    if user is None or not user.is_active:
        raise _unauthorized("User not found or inactive")

    crud_auth.revoke_refresh_token(db, token_jti=claims["jti"])
    return TokenRefreshResponse(**_token_pair(db, user))


@router.post("/logout", response_model=MessageResponse)
def logout(data: TokenRefreshRequest, db: Session = Depends(get_db)):
    claims = verify_refresh_token(data.refresh_token)
    if not claims or "jti" not in claims:
        raise _unauthorized("Invalid refresh token for logout")
    if crud_auth.revoke_refresh_token(db, token_jti=claims["jti"]):
        return MessageResponse(message="Logout successful.")
    return MessageResponse(message="Logout successful (token already invalid or not found).")


@router.post("/logout_all", response_model=MessageResponse)
def logout_all(db: Session = Depends(get_db), user: DBUser = Depends(get_current_active_user)):
    """
    Revoke every token of the current user, including the one making this call.
    """
    count = crud_auth.revoke_all_tokens_for_user(db, user_id=user.id)
    return MessageResponse(message=f"Logged out from {count} sessions.")


@router.get("/me", response_model=UserRead)
def get_me(current_user: DBUser = Depends(get_current_active_user)):
    return current_user
