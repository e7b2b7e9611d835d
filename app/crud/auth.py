#app/crud/auth.py
"""
Issued-token bookkeeping: every access/refresh token is recorded so it can be
revoked by logout, logout-all or refresh rotation.
"""
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from typing import Iterable, List, Optional
from datetime import datetime, timezone
import logging

from app.models.auth import AccessToken
from app.core.exceptions import AuthError

logger = logging.getLogger("ResearchTracker.Tokens")

TOKEN_TYPES = ("access", "refresh")


def _live(db: Session):
    return db.query(AccessToken).filter(AccessToken.is_active.is_(True), AccessToken.revoked.is_(False))


def _revoke(tokens: Iterable[AccessToken]) -> int:
    count = 0
    for entry in tokens:
        entry.revoked = True
        entry.is_active = False
        count += 1
    return count


def _commit(db: Session, action: str) -> None:
    try:
        db.commit()
    except Exception as e:
        db.rollback()
        logger.error(f"Database error while {action}: {e}")
        raise AuthError(f"Database error while {action}.")


def store_token_info(
    db: Session,
    user_id: int,
    token: str,
    token_type: str,
    expires_at: Optional[datetime] = None,
    jti: Optional[str] = None,
) -> AccessToken:
    if token_type not in TOKEN_TYPES:
        raise ValueError("Invalid token_type. Must be 'access' or 'refresh'.")
    if token_type == "refresh" and not jti:
        raise ValueError("JTI must be provided for refresh tokens.")

    entry = AccessToken(
        user_id=user_id,
        token=token,
        token_type=token_type,
        expires_at=expires_at,
        jti=jti if token_type == "refresh" else None,
        is_active=True,
        revoked=False,
    )
    db.add(entry)
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        logger.error(f"Duplicate {token_type} token for user {user_id}: {e}")
        raise AuthError(f"Failed to store {token_type} token due to a conflict.")
    except Exception as e:
        db.rollback()
        logger.error(f"Database error while storing {token_type} token: {e}")
        raise AuthError(f"Database error while storing {token_type} token.")
    db.refresh(entry)
    logger.debug(f"Recorded {token_type} token for user {user_id}")
    return entry


def get_active_tokens_by_user(db: Session, user_id: int) -> List[AccessToken]:
    return _live(db).filter(AccessToken.user_id == user_id).order_by(AccessToken.created_at.desc()).all()


def is_access_token_revoked(db: Session, token: str) -> bool:
    """Unrecorded tokens (minted outside login, e.g. in tests) are not revoked."""
    entry = db.query(AccessToken).filter(
        AccessToken.token == token,
        AccessToken.token_type == "access",
    ).first()
    return entry is not None and (entry.revoked or not entry.is_active)


def is_refresh_token_active(db: Session, token_jti: str) -> bool:
    return _live(db).filter(
        AccessToken.jti == token_jti,
        AccessToken.token_type == "refresh",
    ).first() is not None


def revoke_refresh_token(db: Session, token_jti: str) -> bool:
    """False when the jti is unknown or already revoked."""
    entry = db.query(AccessToken).filter(
        AccessToken.jti == token_jti,
        AccessToken.token_type == "refresh",
    ).first()
    if entry is None or entry.revoked:
        logger.info(f"Refresh token {token_jti} is unknown or already revoked")
        return False
    _revoke([entry])
    try:
        _commit(db, "revoking a refresh token")
    except AuthError:
        return False
    logger.info(f"Revoked refresh token {token_jti} of user {entry.user_id}")
    return True


def revoke_all_tokens_for_user(db: Session, user_id: int) -> int:
    count = _revoke(get_active_tokens_by_user(db, user_id))
    _commit(db, "revoking tokens")
    logger.info(f"Revoked {count} tokens of user {user_id}")
    return count


def cleanup_expired_tokens(db: Session) -> int:
    """Deactivate every live token whose expiry has passed."""
    candidates = _live(db).filter(AccessToken.expires_at.isnot(None)).all()
    count = _revoke(t for t in candidates if t.is_expired)
    _commit(db, "cleaning up expired tokens")
    logger.info(f"Expired {count} of {len(candidates)} live tokens at {datetime.now(timezone.utc).isoformat()}")
    return count
