#app/services/session_store.py
"""
Signed-in user state for a client process.

Only the slice {user, is_authenticated, refresh_token} survives restarts; it
is written as JSON by SessionPersistence. Session changes reported by the
ApiClient (sign-in, token refresh, sign-out) all flow through
SessionStore.handle_session_change.
"""
import logging
from pathlib import Path
from typing import Optional, Union

from pydantic import BaseModel, ValidationError as PydanticValidationError

from app.core.settings import settings
from app.core.exceptions import AuthError, NotFoundError, ValidationError
from app.schemas.user import UserRead
from app.services.api_client import (
    ApiClient,
    AuthSession,
    SIGNED_IN,
    SIGNED_OUT,
    TOKEN_REFRESHED,
)

logger = logging.getLogger("ResearchTracker.SessionStore")


class PersistedSession(BaseModel):
    user: Optional[UserRead] = None
    is_authenticated: bool = False
    refresh_token: Optional[str] = None


class SessionPersistence:
    def __init__(self, path: Union[str, Path, None] = None):
        self.path = Path(path or settings.SESSION_FILE)

    def load(self) -> PersistedSession:
        if not self.path.exists():
            return PersistedSession()
        try:
            return PersistedSession.model_validate_json(self.path.read_bytes())
        except (PydanticValidationError, UnicodeDecodeError, OSError) as e:
            logger.warning(f"Ignoring unreadable session file {self.path}: {e}")
            return PersistedSession()

    def save(self, state: PersistedSession) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(state.model_dump_json(), encoding="utf-8")

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)


class SessionStore:
    def __init__(self, client: ApiClient, persistence: Optional[SessionPersistence] = None):
        self.client = client
        self.persistence = persistence or SessionPersistence()

        restored = self.persistence.load()
        self.user: Optional[UserRead] = restored.user
        self.is_authenticated: bool = restored.is_authenticated
        self._refresh_token: Optional[str] = restored.refresh_token
        self.is_loading = False
        self.is_initializing = False

        self._unsubscribe = client.on_session_change(self.handle_session_change)
        self._persist()

    def _persist(self) -> None:
        self.persistence.save(PersistedSession(
            user=self.user,
            is_authenticated=self.is_authenticated,
            refresh_token=self._refresh_token,
        ))

    def _reset(self) -> None:
        self.user = None
        self.is_authenticated = False
        self._refresh_token = None

    async def handle_session_change(self, event: str, session: Optional[AuthSession]) -> None:
        logger.info(f"Session change: {event}")
        if event == SIGNED_OUT or session is None:
            self._reset()
        elif event in (SIGNED_IN, TOKEN_REFRESHED):
            self._refresh_token = session.refresh_token
            try:
                self.user = await self.client.get_me()
                self.is_authenticated = True
            except (AuthError, NotFoundError) as e:
                logger.warning(f"Could not load the signed-in user: {e}")
                self._reset()
        self._persist()

    async def sign_up(self, email: str, password: str, name: str) -> UserRead:
        if not name or not name.strip():
            raise ValidationError("Sign up failed: name is required")
        self.is_loading = True
        try:
            return await self.client.sign_up(email, password, name.strip())
        finally:
            self.is_loading = False

    async def sign_in(self, login: str, password: str) -> Optional[UserRead]:
        self.is_loading = True
        try:
            await self.client.sign_in(login, password)
        finally:
            self.is_loading = False
        return self.user

    async def sign_out(self) -> None:
        self.is_loading = True
        try:
            await self.client.sign_out()
        finally:
            self.is_loading = False

    async def initialize(self) -> Optional[UserRead]:
        """
        Restore the session from the persisted refresh token. A rejected
        token clears the session; transport errors propagate and leave the
        persisted state as it was.
        """
        self.is_initializing = True
        try:
            if self._refresh_token:
                try:
                    await self.client.refresh(self._refresh_token)
                except AuthError as e:
                    logger.info(f"Persisted session is no longer valid: {e}")
                    self._reset()
                    self._persist()
            else:
                self._reset()
                self._persist()
        finally:
            self.is_initializing = False
        return self.user

    async def update_profile(self, name: Optional[str] = None, avatar_path: Optional[str] = None) -> UserRead:
        if self.user is None:
            raise AuthError("Updating profile failed: not signed in")
        updates = {k: v for k, v in {"name": name, "avatar_path": avatar_path}.items() if v is not None}
        self.is_loading = True
        try:
            profile = await self.client.update_profile(self.user.id, **updates)
        finally:
            self.is_loading = False
        self.user = self.user.model_copy(update={
            "name": profile.name,
            "avatar_path": profile.avatar_path,
            "role": profile.role,
        })
        self._persist()
        return self.user

    def is_admin(self) -> bool:
        return self.user is not None and (self.user.is_superuser or self.user.role == "admin")

    def has_role(self, role: str) -> bool:
        return self.user is not None and self.user.role == role

    def close(self) -> None:
        self._persist()
        self._unsubscribe()
