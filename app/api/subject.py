#app/api/subject.py
from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.orm import Session
from typing import List, Optional
from pydantic import ValidationError as PydanticValidationError

from app.schemas.subject import (
    SubjectCreate, SubjectRead, SubjectUpdate, SubjectStats, SubjectFilters,
    SortField, SortOrder,
)
from app.crud.subject import (
    create_subject,
    get_all_subjects,
    get_subject_stats,
    update_subject,
    delete_subject,
)
from app.dependencies import (
    get_db, get_current_active_user,
    get_subject_or_404, get_subject_for_owner_or_404_403,
)
from app.core.exceptions import SubjectValidationError, SubjectInUse, SubjectNotFound
from app.models.user import User as DBUser
from app.models.subject import Subject as SubjectModel

import logging

router = APIRouter(prefix="/subjects", tags=["Subjects"])
logger = logging.getLogger("ResearchTracker.SubjectsAPI")

@router.get("/", response_model=List[SubjectRead])
def list_subjects(
    search: str = Query(""),
    subject_status: str = Query("all", alias="status"),
    owner_id: Optional[int] = Query(None),
    sort_by: SortField = Query("created_at"),
    sort_order: SortOrder = Query("desc"),
    db: Session = Depends(get_db),
    current_user: DBUser = Depends(get_current_active_user)
):
    """
    List subjects with search, status filter and sorting.
    """
    try:
        filters = SubjectFilters(search=search, status=subject_status, sort_by=sort_by, sort_order=sort_order)
    except PydanticValidationError:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=f"Invalid status filter: {subject_status}")
    try:
        return get_all_subjects(db, filters=filters, owner_id=owner_id)
    except Exception as e:
        logger.error(f"Failed to list subjects: {e}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to fetch subjects.")

@router.get("/stats", response_model=SubjectStats)
def subject_stats(
    db: Session = Depends(get_db),
    current_user: DBUser = Depends(get_current_active_user)
):
    """
    Counts per status plus the launched subjects due within 7 days.
    """
    return get_subject_stats(db)

@router.get("/{subject_id}", response_model=SubjectRead)
async def get_one_subject(subject: SubjectModel = Depends(get_subject_or_404)):
    return subject

@router.post("/", response_model=SubjectRead, status_code=status.HTTP_201_CREATED)
def create_new_subject(
    data: SubjectCreate,
    db: Session = Depends(get_db),
    current_user: DBUser = Depends(get_current_active_user)
):
    """
    Create a subject. Without an owner_id the caller owns it; an explicit null leaves it unowned.
    """
    fields = data.model_dump()
    if "owner_id" not in data.model_fields_set:
        fields["owner_id"] = current_user.id
    try:
        return create_subject(db, fields)
    except SubjectValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except Exception as e:
        logger.error(f"Unexpected error in create_new_subject: {e}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="An unexpected error occurred while creating the subject.")

@router.patch("/{subject_id}", response_model=SubjectRead)
def update_one_subject(
    data: SubjectUpdate,
    subject: SubjectModel = Depends(get_subject_for_owner_or_404_403),
    db: Session = Depends(get_db)
):
    """
    Partially update a subject (owner or admin).
    """
    try:
        return update_subject(db, subject.id, data.model_dump(exclude_unset=True))
    except SubjectNotFound as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except SubjectValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except Exception as e:
        logger.error(f"Failed to update subject {subject.id}: {e}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="An unexpected error occurred during subject update.")

@router.delete("/{subject_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_one_subject(
    subject: SubjectModel = Depends(get_subject_for_owner_or_404_403),
    db: Session = Depends(get_db)
):
    """
    Delete a subject (owner or admin). 409 while achievements reference it.
    """
    try:
        delete_subject(db, subject.id)
    except SubjectInUse as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except SubjectNotFound as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except SubjectValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return Response(status_code=status.HTTP_204_NO_CONTENT)
