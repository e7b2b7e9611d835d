import pytest
from sqlalchemy.orm import Session
from app.crud.auth import (
    store_token_info,
    get_active_tokens_by_user,
    is_access_token_revoked,
    revoke_refresh_token,
    is_refresh_token_active,
    revoke_all_tokens_for_user,
    cleanup_expired_tokens,
)
from app.models.user import User as UserModel
from app.models.auth import AccessToken as AccessTokenModel
from datetime import datetime, timedelta, timezone
import uuid


def test_store_access_token_success(db: Session, test_user: UserModel):
    token_str = f"test_access_token_{uuid.uuid4().hex}"
    expires_at = datetime.now(timezone.utc) + timedelta(hours=1)

    token_obj = store_token_info(
        db=db, user_id=test_user.id, token=token_str, token_type="access", expires_at=expires_at,
    )
    assert token_obj.user_id == test_user.id
    assert token_obj.token_type == "access"
    assert token_obj.jti is None
    assert token_obj.is_active is True
    assert token_obj.revoked is False
    # SQLite drops tzinfo on the way back
    assert abs(token_obj.expires_at.replace(tzinfo=None) - expires_at.replace(tzinfo=None)).total_seconds() < 1

def test_store_refresh_token_requires_jti(db: Session, test_user: UserModel):
    with pytest.raises(ValueError, match="JTI must be provided"):
        store_token_info(db=db, user_id=test_user.id, token="r", token_type="refresh")

def test_store_token_rejects_unknown_type(db: Session, test_user: UserModel):
    with pytest.raises(ValueError, match="Invalid token_type"):
        store_token_info(db=db, user_id=test_user.id, token="x", token_type="session")

def test_access_token_revocation_check(db: Session, test_user: UserModel):
    token_str = f"acc_{uuid.uuid4().hex}"
    assert is_access_token_revoked(db, token_str) is False
    entry = store_token_info(db=db, user_id=test_user.id, token=token_str, token_type="access")
    assert is_access_token_revoked(db, token_str) is False
    entry.revoked = True
    db.commit()
    assert is_access_token_revoked(db, token_str) is True

def test_revoke_refresh_token(db: Session, test_user: UserModel):
    jti = uuid.uuid4().hex
    store_token_info(db=db, user_id=test_user.id, token=f"ref_{jti}", token_type="refresh", jti=jti)
    assert is_refresh_token_active(db, jti) is True
    assert revoke_refresh_token(db, jti) is True
    assert is_refresh_token_active(db, jti) is False
    assert revoke_refresh_token(db, jti) is False
    assert revoke_refresh_token(db, "unknown-jti") is False

def test_revoke_all_tokens_for_user(db: Session, test_user: UserModel):
    for _ in range(2):
        store_token_info(db=db, user_id=test_user.id, token=f"acc_{uuid.uuid4().hex}", token_type="access")
    jti = uuid.uuid4().hex
    store_token_info(db=db, user_id=test_user.id, token=f"ref_{jti}", token_type="refresh", jti=jti)

    assert revoke_all_tokens_for_user(db, test_user.id) == 3
    assert get_active_tokens_by_user(db, test_user.id) == []

def test_cleanup_expired_tokens(db: Session, test_user: UserModel):
    now = datetime.now(timezone.utc)
    expired = store_token_info(
        db=db, user_id=test_user.id, token=f"old_{uuid.uuid4().hex}", token_type="access",
        expires_at=now - timedelta(hours=1),
    )
    fresh = store_token_info(
        db=db, user_id=test_user.id, token=f"new_{uuid.uuid4().hex}", token_type="access",
        expires_at=now + timedelta(hours=1),
    )
    assert cleanup_expired_tokens(db) == 1
    assert db.get(AccessTokenModel, expired.id).revoked is True
    assert db.get(AccessTokenModel, fresh.id).revoked is False
