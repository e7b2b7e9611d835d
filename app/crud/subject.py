# app/crud/subject.py
from sqlalchemy.orm import Session
from datetime import datetime, timezone
from typing import Optional, List
import logging

from app.models.subject import Subject
from app.models.achievement import Achievement
from app.models.user import User
from app.core.exceptions import (
    SubjectNotFound,
    SubjectValidationError,
    SubjectInUse,
)
from app.core.subject_metrics import SUBJECT_STATUSES, compute_stats, filter_subjects
from app.schemas.subject import SubjectFilters, SubjectStats

logger = logging.getLogger("ResearchTracker.Subjects")

UPDATABLE_FIELDS = ("title", "status", "owner_id", "kickoff_date", "deadline_date")

def _validate(db: Session, title: Optional[str], status: Optional[str], owner_id, kickoff_date, deadline_date) -> None:
    if not title or not title.strip():
        raise SubjectValidationError("Subject title is required.")
    if len(title) > 200:
        raise SubjectValidationError("Subject title must be at most 200 characters.")
    if status not in SUBJECT_STATUSES:
        raise SubjectValidationError(f"Invalid subject status: {status}")
    if kickoff_date and deadline_date and deadline_date < kickoff_date:
        raise SubjectValidationError("Deadline date cannot be earlier than kickoff date.")
    if owner_id is not None and not db.query(User.id).filter(User.id == owner_id).first():
        raise SubjectValidationError(f"Owner with id={owner_id} does not exist.")

def create_subject(db: Session, data: dict) -> Subject:
    """
    Create a subject; id and created_at are assigned here and never change.
    """
    title = (data.get("title") or "").strip()
    status = data.get("status") or "preparing"
    _validate(db, title, status, data.get("owner_id"), data.get("kickoff_date"), data.get("deadline_date"))

    subject = Subject(
        title=title,
        status=status,
        owner_id=data.get("owner_id"),
        kickoff_date=data.get("kickoff_date"),
        deadline_date=data.get("deadline_date"),
    )
    db.add(subject)
    try:
        db.commit()
        db.refresh(subject)
        logger.info(f"Created subject '{subject.title}' (ID: {subject.id})")
        return subject
    except Exception as e:
        db.rollback()
        logger.error(f"Exception during save: {e}")
        raise SubjectValidationError("Database error while creating subject.")

def get_subject(db: Session, subject_id: int) -> Subject:
    subject = db.query(Subject).filter(Subject.id == subject_id).first()
    if not subject:
        raise SubjectNotFound(f"Subject with id={subject_id} not found.")
    return subject

def get_all_subjects(
    db: Session,
    filters: Optional[SubjectFilters] = None,
    owner_id: Optional[int] = None,
) -> List[Subject]:
    """
    All subjects (optionally of one owner), filtered and sorted in memory
    with the same rules the client store applies.
    """
    query = db.query(Subject)
    if owner_id is not None:
        query = query.filter(Subject.owner_id == owner_id)
    rows = query.order_by(Subject.created_at.desc(), Subject.id.desc()).all()
    return filter_subjects(rows, filters or SubjectFilters())

def get_subject_stats(db: Session, now: Optional[datetime] = None) -> SubjectStats:
    rows = db.query(Subject.status, Subject.deadline_date).all()
    return compute_stats(rows, now=now)

def update_subject(db: Session, subject_id: int, data: dict) -> Subject:
    """
    Partial update of any subset of title/status/owner/dates.
    """
    subject = get_subject(db, subject_id)
    pre_update_snapshot = {field: getattr(subject, field) for field in UPDATABLE_FIELDS}

    merged = dict(pre_update_snapshot)
    for field in UPDATABLE_FIELDS:
        if field in data:
            merged[field] = data[field]
    if isinstance(merged["title"], str):
        merged["title"] = merged["title"].strip()
    owner_to_check = merged["owner_id"] if "owner_id" in data else None
    _validate(db, merged["title"], merged["status"], owner_to_check, merged["kickoff_date"], merged["deadline_date"])

    for field in UPDATABLE_FIELDS:
        setattr(subject, field, merged[field])
    subject.updated_at = datetime.now(timezone.utc)

    try:
        db.commit()
        db.refresh(subject)
        changes = {
            k: (pre_update_snapshot[k], merged[k])
            for k in UPDATABLE_FIELDS
            if pre_update_snapshot[k] != merged[k]
        }
        if changes:
            logger.info(f"Updated subject {subject.id} fields: {changes}")
        else:
            logger.info(f"Update called but no changes for subject {subject.id}")
        return subject
    except Exception as e:
        db.rollback()
        logger.error(f"Failed to update subject: {e}")
        raise SubjectValidationError("Database error while updating subject.")

def delete_subject(db: Session, subject_id: int) -> None:
    """
    Delete a subject. Refused while achievements still reference it.
    """
    subject = get_subject(db, subject_id)
    if db.query(Achievement.id).filter(Achievement.subject_id == subject_id).first():
        raise SubjectInUse("Cannot delete subject: related achievements exist.")
    db.delete(subject)
    try:
        db.commit()
        logger.info(f"Deleted subject {subject_id}")
    except Exception as e:
        db.rollback()
        logger.error(f"Failed to delete subject {subject_id}: {e}")
        raise SubjectValidationError("Database error while deleting subject.")
