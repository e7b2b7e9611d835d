# app/crud/profile.py
from sqlalchemy.orm import Session
from typing import List
import logging

from app.models.profile import Profile
from app.core.exceptions import ProfileNotFound, ProfileValidationError, DuplicateProfile

logger = logging.getLogger("ResearchTracker.Profiles")

PROFILE_ROLES = ("admin", "user")

def get_profile(db: Session, user_id: int) -> Profile:
    profile = db.query(Profile).filter(Profile.user_id == user_id).first()
    if not profile:
        raise ProfileNotFound(f"Profile for user id={user_id} not found.")
    return profile

def get_all_profiles(db: Session) -> List[Profile]:
    return db.query(Profile).order_by(Profile.name.asc(), Profile.user_id.asc()).all()

def create_profile(db: Session, data: dict) -> Profile:
    user_id = data.get("user_id")
    if user_id is None:
        raise ProfileValidationError("Profile user_id is required.")
    if db.query(Profile).filter(Profile.user_id == user_id).first():
        raise DuplicateProfile(f"Profile for user id={user_id} already exists.")
    role = data.get("role") or "user"
    if role not in PROFILE_ROLES:
        raise ProfileValidationError(f"Invalid role: {role}")

    profile = Profile(
        user_id=user_id,
        name=data.get("name"),
        role=role,
        avatar_path=data.get("avatar_path"),
    )
    db.add(profile)
    try:
        db.commit()
        db.refresh(profile)
        logger.info(f"Created profile for user {user_id}")
        return profile
    except Exception as e:
        db.rollback()
        logger.error(f"Exception during save: {e}")
        raise ProfileValidationError("Database error while creating profile.")

def update_profile(db: Session, user_id: int, data: dict) -> Profile:
    """
    Update name, avatar_path and role; fields missing from data are left alone.
    """
    profile = get_profile(db, user_id)
    if "role" in data and data["role"] not in PROFILE_ROLES:
        raise ProfileValidationError(f"Invalid role: {data['role']}")

    changes = {}
    for field in ("name", "avatar_path", "role"):
        if field in data and getattr(profile, field) != data[field]:
            changes[field] = (getattr(profile, field), data[field])
            setattr(profile, field, data[field])

    try:
        db.commit()
        db.refresh(profile)
        if changes:
            logger.info(f"Updated profile of user {user_id} fields: {changes}")
        else:
            logger.info(f"Update called but no changes for profile of user {user_id}")
        return profile
    except Exception as e:
        db.rollback()
        logger.error(f"Failed to update profile: {e}")
        raise ProfileValidationError("Database error while updating profile.")
