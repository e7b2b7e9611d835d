#app/core/security.py
"""
Password hashing (bcrypt) and JWT issuing/verification (python-jose).

Access and refresh tokens share one format; the "type" claim tells them apart
and every token carries a random "jti".
"""
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional, Any, Dict, Tuple

import bcrypt
from jose import JWTError, jwt
from fastapi.security import OAuth2PasswordBearer

from app.core.settings import settings

SECRET_KEY = settings.SECRET_KEY
ALGORITHM = settings.JWT_ALGORITHM

# bcrypt ignores everything past 72 bytes
_BCRYPT_MAX_BYTES = 72

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")


def get_password_hash(password: str) -> str:
    salt = bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS)
    return bcrypt.hashpw(password.encode("utf-8")[:_BCRYPT_MAX_BYTES], salt).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    try:
        return bcrypt.checkpw(
            plain_password.encode("utf-8")[:_BCRYPT_MAX_BYTES],
            hashed_password.encode("utf-8"),
        )
    except ValueError:
        # malformed stored hash
        return False


def _encode(data: dict, token_type: str, lifetime: timedelta) -> Tuple[str, datetime, str]:
    jti = uuid.uuid4().hex
    expires_at = datetime.now(timezone.utc) + lifetime
    claims = {**data, "exp": expires_at, "type": token_type, "jti": jti}
    return jwt.encode(claims, SECRET_KEY, algorithm=ALGORITHM), expires_at, jti


def _decode(token: str, token_type: str) -> Optional[Dict[str, Any]]:
    try:
        claims = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        return None
    return claims if claims.get("type") == token_type else None


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> Tuple[str, datetime]:
    """Returns (token, expires_at)."""
    lifetime = expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    token, expires_at, _ = _encode(data, "access", lifetime)
    return token, expires_at


def create_refresh_token(data: dict, expires_delta: Optional[timedelta] = None) -> Tuple[str, datetime, str]:
    """Returns (token, expires_at, jti); the jti is what gets revoked."""
    lifetime = expires_delta or timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)
    return _encode(data, "refresh", lifetime)


def verify_access_token(token: str) -> Optional[Dict[str, Any]]:
    return _decode(token, "access")


def verify_refresh_token(token: str) -> Optional[Dict[str, Any]]:
    return _decode(token, "refresh")
