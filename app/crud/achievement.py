# app/crud/achievement.py
from sqlalchemy.orm import Session
from typing import Optional, List
import logging

from app.models.achievement import Achievement
from app.models.subject import Subject
from app.core.exceptions import AchievementNotFound, AchievementValidationError

logger = logging.getLogger("ResearchTracker.Achievements")

def get_achievements(db: Session, subject_id: Optional[int] = None) -> List[Achievement]:
    """
    Achievements newest first, optionally of one subject.
    """
    query = db.query(Achievement)
    if subject_id is not None:
        query = query.filter(Achievement.subject_id == subject_id)
    return query.order_by(Achievement.created_at.desc(), Achievement.id.desc()).all()

def get_achievement(db: Session, achievement_id: int) -> Achievement:
    achievement = db.query(Achievement).filter(Achievement.id == achievement_id).first()
    if not achievement:
        raise AchievementNotFound(f"Achievement with id={achievement_id} not found.")
    return achievement

def create_achievement(db: Session, data: dict) -> Achievement:
    title = (data.get("title") or "").strip()
    if not title:
        raise AchievementValidationError("Achievement title is required.")
    subject_id = data.get("subject_id")
    if subject_id is None or not db.query(Subject.id).filter(Subject.id == subject_id).first():
        raise AchievementValidationError("Related subject does not exist.")

    achievement = Achievement(
        title=title,
        subject_id=subject_id,
        type=data.get("type") or None,
        doc_path=data.get("doc_path") or None,
        pdf_path=data.get("pdf_path") or None,
    )
    db.add(achievement)
    try:
        db.commit()
        db.refresh(achievement)
        logger.info(f"Created achievement '{achievement.title}' (ID: {achievement.id}) for subject {subject_id}")
        return achievement
    except Exception as e:
        db.rollback()
        logger.error(f"Exception during save: {e}")
        raise AchievementValidationError("Database error while creating achievement.")

def update_achievement(db: Session, achievement_id: int, data: dict) -> Achievement:
    achievement = get_achievement(db, achievement_id)
    if "title" in data:
        title = (data["title"] or "").strip()
        if not title:
            raise AchievementValidationError("Achievement title is required.")
        data = {**data, "title": title}

    changes = {}
    for field in ("title", "type", "doc_path", "pdf_path"):
        if field in data and getattr(achievement, field) != data[field]:
            changes[field] = (getattr(achievement, field), data[field])
            setattr(achievement, field, data[field])

    try:
        db.commit()
        db.refresh(achievement)
        if changes:
            logger.info(f"Updated achievement {achievement.id} fields: {changes}")
        return achievement
    except Exception as e:
        db.rollback()
        logger.error(f"Failed to update achievement: {e}")
        raise AchievementValidationError("Database error while updating achievement.")

def delete_achievement(db: Session, achievement_id: int) -> None:
    achievement = get_achievement(db, achievement_id)
    db.delete(achievement)
    try:
        db.commit()
        logger.info(f"Deleted achievement {achievement_id}")
    except Exception as e:
        db.rollback()
        logger.error(f"Failed to delete achievement {achievement_id}: {e}")
        raise AchievementValidationError("Database error while deleting achievement.")
