#app/services/api_client.py
"""
Async HTTP client for the tracker REST service.

Every HTTP failure is translated here, once, into the application's
exception hierarchy with a readable message; callers never see httpx
errors. There is no retry.
"""
import inspect
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Type, Union

import httpx
from pydantic import BaseModel

from app.core.settings import settings
from app.core.exceptions import (
    AchievementNotFound,
    AuthError,
    BaseAppException,
    ConflictError,
    FileTooLarge,
    NotFoundError,
    ProfileNotFound,
    ServiceUnavailable,
    SubjectNotFound,
    ValidationError,
)
from app.schemas.achievement import AchievementCreate, AchievementRead, AchievementUpdate
from app.schemas.profile import ProfileRead, ProfileUpdate
from app.schemas.subject import SubjectCreate, SubjectFilters, SubjectRead, SubjectStats, SubjectUpdate
from app.schemas.user import UserRead

logger = logging.getLogger("ResearchTracker.ApiClient")

SIGNED_IN = "SIGNED_IN"
SIGNED_OUT = "SIGNED_OUT"
TOKEN_REFRESHED = "TOKEN_REFRESHED"


class AuthSession(BaseModel):
    access_token: str
    refresh_token: Optional[str] = None
    token_type: str = "bearer"
    expires_in: int = 0


SessionListener = Callable[[str, Optional[AuthSession]], Union[None, Awaitable[None]]]


def _error_detail(response: httpx.Response) -> str:
    try:
        detail = response.json().get("detail")
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(detail, list) and detail:
        # FastAPI request validation errors
        first = detail[0]
        return first.get("msg", str(first)) if isinstance(first, dict) else str(first)
    return str(detail) if detail else response.reason_phrase


def translate_error(
    action: str,
    response: httpx.Response,
    not_found: Type[NotFoundError] = NotFoundError,
) -> BaseAppException:
    message = f"{action} failed: {_error_detail(response)}"
    code = response.status_code
    if code in (400, 422):
        return ValidationError(message)
    if code in (401, 403):
        return AuthError(message)
    if code == 404:
        return not_found(message)
    if code == 409:
        return ConflictError(message)
    if code == 413:
        return FileTooLarge(message)
    return ServiceUnavailable(message)


class ApiClient:
    """
    Thin async wrapper over the REST endpoints. Holds the current tokens and
    notifies session listeners on sign-in, refresh and sign-out.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._http = httpx.AsyncClient(
            base_url=base_url or settings.API_BASE_URL,
            timeout=httpx.Timeout(timeout or settings.API_TIMEOUT_SECONDS),
            transport=transport,
        )
        self.session: Optional[AuthSession] = None
        self._listeners: List[SessionListener] = []

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    # ---- session-change channel ----

    def on_session_change(self, listener: SessionListener) -> Callable[[], None]:
        """Register listener; returns a function that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def _emit(self, event: str, session: Optional[AuthSession]) -> None:
        for listener in list(self._listeners):
            result = listener(event, session)
            if inspect.isawaitable(result):
                await result

    # ---- transport ----

    async def _request(
        self,
        action: str,
        method: str,
        path: str,
        not_found: Type[NotFoundError] = NotFoundError,
        **kwargs: Any,
    ) -> Any:
        headers = kwargs.pop("headers", {})
        if self.session is not None:
            headers["Authorization"] = f"Bearer {self.session.access_token}"
        logger.debug(f"{method} {path}")
        try:
            response = await self._http.request(method, path, headers=headers, **kwargs)
        except httpx.TimeoutException:
            logger.warning(f"{action}: request to {path} timed out")
            raise ServiceUnavailable(f"{action} failed: the service did not respond in time")
        except httpx.RequestError as e:
            logger.warning(f"{action}: request to {path} failed: {e.__class__.__name__}")
            raise ServiceUnavailable(f"{action} failed: the service is unreachable")

        if response.is_error:
            error = translate_error(action, response, not_found=not_found)
            logger.warning(f"{action}: HTTP {response.status_code}: {error}")
            raise error
        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    # ---- auth ----

    async def sign_up(self, email: str, password: str, name: str) -> UserRead:
        data = await self._request(
            "Sign up", "POST", "/auth/signup",
            json={"email": email, "password": password, "name": name},
        )
        return UserRead.model_validate(data)

    async def sign_in(self, login: str, password: str) -> AuthSession:
        data = await self._request(
            "Sign in", "POST", "/auth/login",
            data={"username": login, "password": password},
        )
        self.session = AuthSession.model_validate(data)
        await self._emit(SIGNED_IN, self.session)
        return self.session

    async def refresh(self, refresh_token: Optional[str] = None) -> AuthSession:
        token = refresh_token or (self.session.refresh_token if self.session else None)
        if not token:
            raise AuthError("Refreshing session failed: no refresh token")
        data = await self._request(
            "Refreshing session", "POST", "/auth/refresh",
            json={"refresh_token": token},
        )
        self.session = AuthSession.model_validate(data)
        await self._emit(TOKEN_REFRESHED, self.session)
        return self.session

    async def sign_out(self) -> None:
        if self.session is not None and self.session.refresh_token:
            await self._request(
                "Sign out", "POST", "/auth/logout",
                json={"refresh_token": self.session.refresh_token},
            )
        self.session = None
        await self._emit(SIGNED_OUT, None)

    def get_session(self) -> Optional[AuthSession]:
        return self.session

    async def get_me(self) -> UserRead:
        data = await self._request("Fetching current user", "GET", "/auth/me")
        return UserRead.model_validate(data)

    # ---- subjects ----

    async def list_subjects(
        self,
        filters: Optional[SubjectFilters] = None,
        owner_id: Optional[int] = None,
    ) -> List[SubjectRead]:
        params: Dict[str, Any] = filters.model_dump() if filters else {}
        if owner_id is not None:
            params["owner_id"] = owner_id
        data = await self._request("Fetching subjects", "GET", "/subjects/", params=params)
        return [SubjectRead.model_validate(row) for row in data]

    async def list_subjects_by_owner(self, owner_id: int) -> List[SubjectRead]:
        return await self.list_subjects(owner_id=owner_id)

    async def list_subjects_by_status(self, status: str) -> List[SubjectRead]:
        return await self.list_subjects(SubjectFilters(status=status))

    async def get_subject(self, subject_id: int) -> SubjectRead:
        data = await self._request(
            "Fetching subject", "GET", f"/subjects/{subject_id}", not_found=SubjectNotFound,
        )
        return SubjectRead.model_validate(data)

    async def get_stats(self) -> SubjectStats:
        data = await self._request("Fetching subject statistics", "GET", "/subjects/stats")
        return SubjectStats.model_validate(data)

    async def create_subject(self, data: Union[SubjectCreate, Dict[str, Any]]) -> SubjectRead:
        payload = SubjectCreate.model_validate(data).model_dump(mode="json", exclude_unset=True)
        created = await self._request("Creating subject", "POST", "/subjects/", json=payload)
        return SubjectRead.model_validate(created)

    async def update_subject(self, subject_id: int, patch: Union[SubjectUpdate, Dict[str, Any]]) -> SubjectRead:
        payload = SubjectUpdate.model_validate(patch).model_dump(mode="json", exclude_unset=True)
        updated = await self._request(
            "Updating subject", "PATCH", f"/subjects/{subject_id}",
            not_found=SubjectNotFound, json=payload,
        )
        return SubjectRead.model_validate(updated)

    async def delete_subject(self, subject_id: int) -> None:
        await self._request(
            "Deleting subject", "DELETE", f"/subjects/{subject_id}", not_found=SubjectNotFound,
        )

    # ---- achievements ----

    async def list_achievements(self, subject_id: Optional[int] = None) -> List[AchievementRead]:
        params = {"subject_id": subject_id} if subject_id is not None else {}
        data = await self._request("Fetching achievements", "GET", "/achievements/", params=params)
        return [AchievementRead.model_validate(row) for row in data]

    async def get_achievement(self, achievement_id: int) -> AchievementRead:
        data = await self._request(
            "Fetching achievement", "GET", f"/achievements/{achievement_id}", not_found=AchievementNotFound,
        )
        return AchievementRead.model_validate(data)

    async def create_achievement(self, data: Union[AchievementCreate, Dict[str, Any]]) -> AchievementRead:
        payload = AchievementCreate.model_validate(data).model_dump(mode="json")
        created = await self._request("Creating achievement", "POST", "/achievements/", json=payload)
        return AchievementRead.model_validate(created)

    async def update_achievement(
        self, achievement_id: int, patch: Union[AchievementUpdate, Dict[str, Any]]
    ) -> AchievementRead:
        payload = AchievementUpdate.model_validate(patch).model_dump(mode="json", exclude_unset=True)
        updated = await self._request(
            "Updating achievement", "PATCH", f"/achievements/{achievement_id}",
            not_found=AchievementNotFound, json=payload,
        )
        return AchievementRead.model_validate(updated)

    async def delete_achievement(self, achievement_id: int) -> None:
        await self._request(
            "Deleting achievement", "DELETE", f"/achievements/{achievement_id}", not_found=AchievementNotFound,
        )

    # ---- profiles ----

    async def list_profiles(self) -> List[ProfileRead]:
        data = await self._request("Fetching profiles", "GET", "/profiles/")
        return [ProfileRead.model_validate(row) for row in data]

    async def get_profile(self, user_id: int) -> ProfileRead:
        data = await self._request(
            "Fetching profile", "GET", f"/profiles/{user_id}", not_found=ProfileNotFound,
        )
        return ProfileRead.model_validate(data)

    async def update_profile(self, user_id: int, **fields: Any) -> ProfileRead:
        payload = ProfileUpdate.model_validate(fields).model_dump(mode="json", exclude_unset=True)
        data = await self._request(
            "Updating profile", "PATCH", f"/profiles/{user_id}",
            not_found=ProfileNotFound, json=payload,
        )
        return ProfileRead.model_validate(data)
