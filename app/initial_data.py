# app/initial_data.py

import logging
from sqlalchemy.orm import Session
from app.database import SessionLocal, init_db
from app.crud.user import create_user as crud_create_user, get_user_by_username
from app.crud.auth import cleanup_expired_tokens
from app.core.settings import settings
from app.core.exceptions import DuplicateUser, UserValidationError

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("ResearchTracker.InitialData")

def create_initial_admin_user(db: Session) -> None:
    logger.info("Checking if initial admin user needs to be created...")
    superuser_username = settings.FIRST_SUPERUSER_USERNAME

    if get_user_by_username(db, username=superuser_username):
        logger.info(f"Admin user '{superuser_username}' already exists. No action taken.")
        return

    logger.info(f"Admin user '{superuser_username}' not found. Creating...")
    try:
        crud_create_user(db=db, data={
            "username": superuser_username,
            "email": settings.FIRST_SUPERUSER_EMAIL,
            "password": settings.FIRST_SUPERUSER_PASSWORD,
            "name": "Admin",
            "role": "admin",
            "is_active": True,
            "is_superuser": True,
        })
        logger.info(f"Admin user '{superuser_username}' created successfully.")
    except (DuplicateUser, UserValidationError) as e:
        logger.error(f"Failed to create admin user: {e}")

def main() -> None:
    logger.info("Creating tables and initial data...")
    init_db()
    db = SessionLocal()
    try:
        create_initial_admin_user(db)
        cleanup_expired_tokens(db)
    finally:
        db.close()
    logger.info("Finished initial data setup.")

if __name__ == "__main__":
    main()
