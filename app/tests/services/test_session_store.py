import json
import pytest
from datetime import datetime, timezone
from typing import List, Optional

from app.core.exceptions import AuthError, ValidationError
from app.schemas.profile import ProfileRead
from app.schemas.user import UserRead
from app.services.api_client import AuthSession, SIGNED_IN, SIGNED_OUT, TOKEN_REFRESHED
from app.services.session_store import PersistedSession, SessionPersistence, SessionStore

NOW = datetime(2024, 6, 1, tzinfo=timezone.utc)


def _user(**fields) -> UserRead:
    data = {
        "id": 7,
        "username": "jane@example.com",
        "email": "jane@example.com",
        "name": "Jane",
        "role": "user",
        "created_at": NOW,
        "updated_at": NOW,
    }
    data.update(fields)
    return UserRead(**data)


class _FakeAuthClient:
    """Mimics ApiClient's auth calls and its session-change channel."""

    def __init__(self, user: UserRead):
        self.user = user
        self.listeners = []
        self.calls: List[str] = []
        self.valid_refresh_tokens = {"refresh-1"}

    def on_session_change(self, listener):
        self.listeners.append(listener)
        return lambda: self.listeners.remove(listener)

    async def _emit(self, event: str, session: Optional[AuthSession]) -> None:
        for listener in list(self.listeners):
            await listener(event, session)

    async def sign_up(self, email, password, name) -> UserRead:
        self.calls.append("sign_up")
        return self.user

    async def sign_in(self, login, password) -> AuthSession:
        self.calls.append("sign_in")
        if password != "secret1":
            raise AuthError("Sign in failed: Invalid login credentials")
        session = AuthSession(access_token="access-1", refresh_token="refresh-1")
        await self._emit(SIGNED_IN, session)
        return session

    async def refresh(self, refresh_token=None) -> AuthSession:
        self.calls.append("refresh")
        if refresh_token not in self.valid_refresh_tokens:
            raise AuthError("Refreshing session failed: Refresh token revoked or invalid")
        session = AuthSession(access_token="access-2", refresh_token="refresh-2")
        await self._emit(TOKEN_REFRESHED, session)
        return session

    async def sign_out(self) -> None:
        self.calls.append("sign_out")
        await self._emit(SIGNED_OUT, None)

    async def get_me(self) -> UserRead:
        return self.user

    async def update_profile(self, user_id, **fields) -> ProfileRead:
        self.calls.append("update_profile")
        self.user = self.user.model_copy(update=fields)
        return ProfileRead(
            user_id=user_id,
            name=self.user.name,
            role=self.user.role,
            avatar_path=self.user.avatar_path,
            created_at=NOW,
        )


@pytest.fixture
def persistence(tmp_path) -> SessionPersistence:
    return SessionPersistence(tmp_path / "session.json")


@pytest.fixture
def auth_client() -> _FakeAuthClient:
    return _FakeAuthClient(_user())


def test_fresh_store_is_signed_out(auth_client, persistence):
    store = SessionStore(auth_client, persistence)
    assert store.user is None
    assert store.is_authenticated is False
    assert persistence.path.exists()

@pytest.mark.asyncio
async def test_sign_in_sets_user_and_persists_slice(auth_client, persistence):
    store = SessionStore(auth_client, persistence)
    user = await store.sign_in("jane@example.com", "secret1")
    assert user.name == "Jane"
    assert store.is_authenticated is True
    assert store.is_loading is False

    saved = json.loads(persistence.path.read_text())
    assert set(saved) == {"user", "is_authenticated", "refresh_token"}
    assert saved["refresh_token"] == "refresh-1"
    assert saved["user"]["email"] == "jane@example.com"

@pytest.mark.asyncio
async def test_sign_in_failure_propagates(auth_client, persistence):
    store = SessionStore(auth_client, persistence)
    with pytest.raises(AuthError):
        await store.sign_in("jane@example.com", "wrong")
    assert store.is_authenticated is False
    assert store.is_loading is False

@pytest.mark.asyncio
async def test_state_survives_restart(auth_client, persistence):
    first = SessionStore(auth_client, persistence)
    await first.sign_in("jane@example.com", "secret1")
    first.close()

    second = SessionStore(_FakeAuthClient(_user()), persistence)
    assert second.is_authenticated is True
    assert second.user.email == "jane@example.com"

@pytest.mark.asyncio
async def test_initialize_restores_from_refresh_token(auth_client, persistence):
    first = SessionStore(auth_client, persistence)
    await first.sign_in("jane@example.com", "secret1")
    first.close()

    client = _FakeAuthClient(_user(name="Jane Updated"))
    store = SessionStore(client, persistence)
    user = await store.initialize()
    assert client.calls == ["refresh"]
    assert user.name == "Jane Updated"
    assert store.is_initializing is False
    assert json.loads(persistence.path.read_text())["refresh_token"] == "refresh-2"

@pytest.mark.asyncio
async def test_initialize_with_revoked_token_signs_out(auth_client, persistence):
    first = SessionStore(auth_client, persistence)
    await first.sign_in("jane@example.com", "secret1")
    first.close()

    client = _FakeAuthClient(_user())
    client.valid_refresh_tokens = set()
    store = SessionStore(client, persistence)
    assert await store.initialize() is None
    assert store.is_authenticated is False
    assert json.loads(persistence.path.read_text())["refresh_token"] is None

@pytest.mark.asyncio
async def test_initialize_without_token(auth_client, persistence):
    store = SessionStore(auth_client, persistence)
    assert await store.initialize() is None
    assert auth_client.calls == []

@pytest.mark.asyncio
async def test_sign_out_clears_state(auth_client, persistence):
    store = SessionStore(auth_client, persistence)
    await store.sign_in("jane@example.com", "secret1")
    await store.sign_out()
    assert store.user is None
    assert store.is_authenticated is False
    saved = json.loads(persistence.path.read_text())
    assert saved == {"user": None, "is_authenticated": False, "refresh_token": None}

@pytest.mark.asyncio
async def test_sign_up_requires_name(auth_client, persistence):
    store = SessionStore(auth_client, persistence)
    with pytest.raises(ValidationError, match="name is required"):
        await store.sign_up("jane@example.com", "secret1", "  ")
    assert auth_client.calls == []

    user = await store.sign_up("jane@example.com", "secret1", "Jane")
    assert user.email == "jane@example.com"
    # signing up does not sign in
    assert store.is_authenticated is False

@pytest.mark.asyncio
async def test_update_profile(auth_client, persistence):
    store = SessionStore(auth_client, persistence)
    with pytest.raises(AuthError):
        await store.update_profile(name="Nobody")

    await store.sign_in("jane@example.com", "secret1")
    user = await store.update_profile(name="Jane D.", avatar_path="avatars/j.png")
    assert user.name == "Jane D."
    assert user.avatar_path == "avatars/j.png"
    assert json.loads(persistence.path.read_text())["user"]["name"] == "Jane D."

@pytest.mark.asyncio
async def test_roles(persistence):
    store = SessionStore(_FakeAuthClient(_user(role="admin")), persistence)
    assert store.is_admin() is False
    await store.sign_in("jane@example.com", "secret1")
    assert store.is_admin() is True
    assert store.has_role("admin") is True
    assert store.has_role("user") is False

    store = SessionStore(_FakeAuthClient(_user(is_superuser=True)), persistence)
    await store.sign_in("jane@example.com", "secret1")
    assert store.is_admin() is True

@pytest.mark.asyncio
async def test_close_unsubscribes(auth_client, persistence):
    store = SessionStore(auth_client, persistence)
    store.close()
    assert auth_client.listeners == []
    await auth_client.sign_in("jane@example.com", "secret1")
    assert store.is_authenticated is False

def test_unreadable_session_file_is_ignored(auth_client, persistence):
    persistence.path.write_text("{not json")
    store = SessionStore(auth_client, persistence)
    assert store.is_authenticated is False

def test_session_file_with_bad_bytes_is_ignored(auth_client, persistence):
    persistence.path.write_bytes(b"\xff\xfe garbage")
    assert persistence.load() == PersistedSession()
    store = SessionStore(auth_client, persistence)
    assert store.user is None
    assert store.is_authenticated is False

def test_save_creates_missing_directory(tmp_path):
    persistence = SessionPersistence(tmp_path / "state" / "nested" / "session.json")
    persistence.save(PersistedSession(is_authenticated=False))
    assert persistence.path.exists()
    assert persistence.load() == PersistedSession()

def test_persistence_clear(persistence):
    persistence.clear()
    persistence.save(persistence.load())
    assert persistence.path.exists()
    persistence.clear()
    assert not persistence.path.exists()
