#app/api/user.py
from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.orm import Session
from typing import List, Optional

from app.schemas.user import UserCreate, UserUpdate, UserRead
from app.crud.user import create_user, get_users, update_user, delete_user
from app.dependencies import (
    get_db, get_current_active_user, get_current_admin, get_target_user_or_404_403,
)
from app.models.user import User as DBUser
from app.core.exceptions import DuplicateUser, UserNotFound, UserValidationError

router = APIRouter(prefix="/users", tags=["Users"])

@router.get("/", response_model=List[UserRead])
def list_users(
    is_active: Optional[bool] = Query(None),
    search: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    current_user: DBUser = Depends(get_current_admin)
):
    """
    List users (admins only).
    """
    filters = {"is_active": is_active, "search": search}
    return get_users(db, filters={k: v for k, v in filters.items() if v is not None})

@router.post("/", response_model=UserRead, status_code=status.HTTP_201_CREATED)
def create_new_user(
    data: UserCreate,
    db: Session = Depends(get_db),
    current_user: DBUser = Depends(get_current_admin)
):
    """
    Create a user on someone's behalf (admins only).
    """
    try:
        return create_user(db, data.model_dump())
    except DuplicateUser as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except UserValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

@router.get("/{user_id}", response_model=UserRead)
def get_user_profile(target_user: DBUser = Depends(get_target_user_or_404_403)):
    """
    User by ID (the user themself or an admin).
    """
    return target_user

@router.put("/{user_id}", response_model=UserRead)
def update_one_user(
    data: UserUpdate,
    target_user: DBUser = Depends(get_target_user_or_404_403),
    db: Session = Depends(get_db),
    current_user: DBUser = Depends(get_current_active_user)
):
    payload = data.model_dump(exclude_unset=True)
    if not current_user.is_admin and ("is_superuser" in payload or "is_active" in payload):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only admins can change account flags")
    try:
        return update_user(db, target_user.id, payload)
    except DuplicateUser as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except UserValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_one_user(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: DBUser = Depends(get_current_admin)
):
    try:
        delete_user(db, user_id)
    except UserNotFound as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return Response(status_code=status.HTTP_204_NO_CONTENT)
