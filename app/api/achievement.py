#app/api/achievement.py
from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.orm import Session
from typing import List, Optional

from app.schemas.achievement import AchievementCreate, AchievementRead, AchievementUpdate
from app.crud.achievement import (
    get_achievements,
    get_achievement,
    create_achievement,
    update_achievement,
    delete_achievement,
)
from app.dependencies import get_db, get_current_active_user
from app.core.exceptions import AchievementNotFound, AchievementValidationError
from app.models.user import User as DBUser

import logging

router = APIRouter(prefix="/achievements", tags=["Achievements"])
logger = logging.getLogger("ResearchTracker.AchievementsAPI")

@router.get("/", response_model=List[AchievementRead])
def list_achievements(
    subject_id: Optional[int] = Query(None),
    db: Session = Depends(get_db),
    current_user: DBUser = Depends(get_current_active_user)
):
    """
    Achievements newest first, optionally of one subject.
    """
    return get_achievements(db, subject_id=subject_id)

@router.get("/{achievement_id}", response_model=AchievementRead)
def get_one_achievement(
    achievement_id: int,
    db: Session = Depends(get_db),
    current_user: DBUser = Depends(get_current_active_user)
):
    try:
        return get_achievement(db, achievement_id)
    except AchievementNotFound as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

@router.post("/", response_model=AchievementRead, status_code=status.HTTP_201_CREATED)
def create_new_achievement(
    data: AchievementCreate,
    db: Session = Depends(get_db),
    current_user: DBUser = Depends(get_current_active_user)
):
    try:
        return create_achievement(db, data.model_dump())
    except AchievementValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

@router.patch("/{achievement_id}", response_model=AchievementRead)
def update_one_achievement(
    achievement_id: int,
    data: AchievementUpdate,
    db: Session = Depends(get_db),
    current_user: DBUser = Depends(get_current_active_user)
):
    try:
        return update_achievement(db, achievement_id, data.model_dump(exclude_unset=True))
    except AchievementNotFound as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except AchievementValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

@router.delete("/{achievement_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_one_achievement(
    achievement_id: int,
    db: Session = Depends(get_db),
    current_user: DBUser = Depends(get_current_active_user)
):
    try:
        delete_achievement(db, achievement_id)
    except AchievementNotFound as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except AchievementValidationError as e:
        logger.error(f"Failed to delete achievement {achievement_id}: {e}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))
    return Response(status_code=status.HTTP_204_NO_CONTENT)
