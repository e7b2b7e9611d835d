# app/dependencies.py

from typing import Generator
from fastapi import Depends, HTTPException, status
from sqlalchemy.orm import Session
from app.core.security import oauth2_scheme, verify_access_token
from app.core.exceptions import SubjectNotFound
from app.models.user import User
from app.models.subject import Subject
from app.database import SessionLocal
from app.crud.user import get_user_by_username, get_user as get_user_crud
from app.crud.subject import get_subject as get_subject_crud
from app.crud.auth import is_access_token_revoked
from app.services.storage_service import StorageService, get_storage_service

def get_db() -> Generator[Session, None, None]:
    """
    Yield a database session and always close it afterwards.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: Session = Depends(get_db)
) -> User:
    """
    Decode the bearer JWT and load its user.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    payload = verify_access_token(token)
    if payload is None or payload.get("sub") is None:
        raise credentials_exception
    if is_access_token_revoked(db, token):
        raise credentials_exception
    user = get_user_by_username(db, username=payload["sub"])
    if user is None:
        raise credentials_exception
    return user

def get_current_active_user(
    current_user: User = Depends(get_current_user)
) -> User:
    if not current_user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Inactive user")
    return current_user

def get_current_admin(
    current_user: User = Depends(get_current_active_user)
) -> User:
    if not current_user.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin privileges required")
    return current_user

def get_storage() -> StorageService:
    return get_storage_service()

async def get_subject_or_404(
    subject_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
) -> Subject:
    try:
        return get_subject_crud(db, subject_id)
    except SubjectNotFound:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Subject not found")

async def get_subject_for_owner_or_404_403(
    subject: Subject = Depends(get_subject_or_404),
    current_user: User = Depends(get_current_active_user)
) -> Subject:
    """
    Subject the current user may modify: its owner or an admin.
    """
    if not current_user.is_admin and subject.owner_id != current_user.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not authorized to modify this subject"
        )
    return subject

async def get_target_user_or_404_403(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
) -> User:
    """
    Target user by id, allowed for the user themself or an admin.
    """
    target_user = get_user_crud(db, user_id)
    if not target_user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    if not current_user.is_admin and target_user.id != current_user.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not authorized to access this user's information"
        )
    return target_user
