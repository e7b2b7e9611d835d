#app/api/profile.py
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from typing import List

from app.schemas.profile import ProfileRead, ProfileUpdate
from app.crud.profile import get_profile, get_all_profiles, create_profile, update_profile
from app.dependencies import get_db, get_current_active_user
from app.core.exceptions import ProfileNotFound, ProfileValidationError, DuplicateProfile
from app.models.user import User as DBUser

router = APIRouter(prefix="/profiles", tags=["Profiles"])

@router.get("/", response_model=List[ProfileRead])
def list_profiles(
    db: Session = Depends(get_db),
    current_user: DBUser = Depends(get_current_active_user)
):
    """
    All profiles ordered by name (e.g. for the subject owner picker).
    """
    return get_all_profiles(db)

@router.post("/", response_model=ProfileRead, status_code=status.HTTP_201_CREATED)
def create_own_profile(
    data: ProfileUpdate,
    db: Session = Depends(get_db),
    current_user: DBUser = Depends(get_current_active_user)
):
    """
    Create the current user's profile when it is missing. Role is always 'user'.
    """
    try:
        return create_profile(db, {"user_id": current_user.id, "name": data.name, "avatar_path": data.avatar_path})
    except DuplicateProfile as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except ProfileValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

@router.get("/{user_id}", response_model=ProfileRead)
def get_one_profile(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: DBUser = Depends(get_current_active_user)
):
    try:
        return get_profile(db, user_id)
    except ProfileNotFound as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

@router.patch("/{user_id}", response_model=ProfileRead)
def update_one_profile(
    user_id: int,
    data: ProfileUpdate,
    db: Session = Depends(get_db),
    current_user: DBUser = Depends(get_current_active_user)
):
    """
    Update a profile: the user themself or an admin. Only admins change roles.
    """
    if not current_user.is_admin and current_user.id != user_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not authorized to update this profile")
    payload = data.model_dump(exclude_unset=True)
    if "role" in payload and not current_user.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only admins can change roles")
    try:
        return update_profile(db, user_id, payload)
    except ProfileNotFound as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ProfileValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
