# app/crud/user.py
from sqlalchemy.orm import Session
from sqlalchemy import or_
from datetime import datetime, timezone
from typing import Optional, List, Dict, Any
import logging

from app.models.user import User
from app.models.profile import Profile
from app.core.security import get_password_hash, verify_password
from app.core.exceptions import DuplicateUser, UserNotFound, UserValidationError

logger = logging.getLogger("ResearchTracker.Users")

def get_user(db: Session, user_id: int) -> Optional[User]:
    return db.query(User).filter(User.id == user_id).first()

def get_user_by_username(db: Session, username: str) -> Optional[User]:
    return db.query(User).filter(User.username == username).first()

def get_user_by_email(db: Session, email: str) -> Optional[User]:
    return db.query(User).filter(User.email == email).first()

def create_user(db: Session, data: dict) -> User:
    """
    Create a user together with its profile. Username defaults to the email.
    """
    email = (data.get("email") or "").strip().lower()
    username = (data.get("username") or email).strip()
    password = data.get("password")
    if not email or not password:
        raise UserValidationError("Email and password are required.")

    if get_user_by_email(db, email):
        raise DuplicateUser(f"User with email '{email}' already registered.")
    if get_user_by_username(db, username):
        raise DuplicateUser(f"User with username '{username}' already registered.")

    is_superuser = bool(data.get("is_superuser", False))
    user = User(
        username=username,
        email=email,
        password_hash=get_password_hash(password),
        is_active=data.get("is_active", True),
        is_superuser=is_superuser,
    )
    user.profile = Profile(
        name=data.get("name"),
        role=data.get("role") or ("admin" if is_superuser else "user"),
        avatar_path=data.get("avatar_path"),
    )
    db.add(user)
    try:
        db.commit()
        db.refresh(user)
        logger.info(f"Created user '{user.username}' (ID: {user.id})")
        return user
    except Exception as e:
        db.rollback()
        logger.error(f"Exception during save: {e}")
        raise UserValidationError("Database error while creating user.")

def authenticate_user(db: Session, login: str, password: str) -> Optional[User]:
    """
    Look the user up by username or email and check the password.
    """
    user = db.query(User).filter(
        or_(User.username == login, User.email == login.strip().lower())
    ).first()
    if not user or not verify_password(password, user.password_hash):
        return None
    return user

def set_last_login(db: Session, user_id: int) -> None:
    user = get_user(db, user_id)
    if not user:
        return
    user.last_login_at = datetime.now(timezone.utc)
    try:
        db.commit()
    except Exception as e:
        db.rollback()
        logger.error(f"Failed to set last login for user {user_id}: {e}")

def get_users(
    db: Session,
    filters: Optional[Dict[str, Any]] = None,
) -> List[User]:
    query = db.query(User)
    filters = filters or {}
    if "is_active" in filters:
        query = query.filter(User.is_active == filters["is_active"])
    if "search" in filters:
        search = f"%{filters['search']}%"
        query = query.filter(or_(User.username.ilike(search), User.email.ilike(search)))
    return query.order_by(User.created_at.desc(), User.id.desc()).all()

def update_user(db: Session, user_id: int, data: dict) -> User:
    user = get_user(db, user_id)
    if not user:
        raise UserNotFound(f"User with id={user_id} not found.")

    if data.get("email") is not None:
        email = data["email"].strip().lower()
        existing = get_user_by_email(db, email)
        if existing and existing.id != user.id:
            raise DuplicateUser(f"User with email '{email}' already registered.")
        user.email = email
    for field in ("is_active", "is_superuser"):
        if data.get(field) is not None:
            setattr(user, field, data[field])
    if data.get("password"):
        user.password_hash = get_password_hash(data["password"])

    try:
        db.commit()
        db.refresh(user)
        logger.info(f"Updated user {user.id} fields: {sorted(k for k, v in data.items() if v is not None and k != 'password')}")
        return user
    except Exception as e:
        db.rollback()
        logger.error(f"Failed to update user: {e}")
        raise UserValidationError("Database error while updating user.")

def delete_user(db: Session, user_id: int) -> None:
    """
    Hard-delete a user; their subjects are kept with owner_id cleared.
    """
    user = get_user(db, user_id)
    if not user:
        raise UserNotFound(f"User with id={user_id} not found.")
    db.delete(user)
    try:
        db.commit()
        logger.info(f"Deleted user {user_id}")
    except Exception as e:
        db.rollback()
        logger.error(f"Failed to delete user {user_id}: {e}")
        raise UserValidationError("Database error while deleting user.")
