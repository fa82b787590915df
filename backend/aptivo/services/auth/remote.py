"""
Authentication against the remote auth service.

The service exposes a password-grant token endpoint and a user endpoint
in the GoTrue style:

    POST {base}/auth/v1/token?grant_type=password   {email, password}
    GET  {base}/auth/v1/user                        Bearer <access token>
    POST {base}/auth/v1/logout                      Bearer <access token>

The authoritative profile (role, institution, timezone) comes from the
profile store. If that read fails, the role and institution embedded in
the auth service's user metadata are used instead.
"""

import logging
from typing import Any, Optional

import httpx

from aptivo.db.redis import SessionCache
from aptivo.enums.learning import UserRole
from aptivo.middleware.error_handling import AuthenticationError
from aptivo.models.auth import AuthSession, UserProfile
from aptivo.services.auth.base import AuthBackend
from aptivo.stores.ports import DirectoryStore

logger = logging.getLogger(__name__)

# Role spellings used in remote user metadata
ROLE_ALIASES: dict[str, UserRole] = {
    "SUPER_ADMIN": UserRole.SUPER_ADMIN,
    "ADMIN": UserRole.ADMIN,
    "INSTITUTE_ADMIN": UserRole.ADMIN,
    "INSTITUTION_ADMIN": UserRole.ADMIN,
    "STUDENT": UserRole.STUDENT,
}


def parse_role(value: Any) -> Optional[UserRole]:
    if not value:
        return None
    return ROLE_ALIASES.get(str(value).upper())


def profile_from_metadata(auth_user: dict[str, Any]) -> Optional[UserProfile]:
    """Build a profile from the auth service's user record, if it names a role."""
    metadata = auth_user.get("user_metadata") or {}
    role = parse_role(metadata.get("role"))
    if role is None:
        return None
    return UserProfile(
        id=auth_user["id"],
        email=auth_user.get("email", ""),
        name=metadata.get("full_name") or "User",
        role=role,
        institution_id=metadata.get("institute_id"),
    )


class RemoteAuthBackend(AuthBackend):
    """Password login against the remote service, profiles from the directory store."""

    DEFAULT_TIMEOUT_SECONDS: float = 10.0

    def __init__(
        self,
        base_url: str,
        api_key: str,
        profiles: DirectoryStore,
        cache: SessionCache,
        timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        super().__init__(cache)
        self.base_url = base_url.rstrip("/")
        self.profiles = profiles
        self.client: httpx.AsyncClient = client or httpx.AsyncClient(
            headers={"apikey": api_key},
            timeout=timeout if timeout is not None else self.DEFAULT_TIMEOUT_SECONDS,
        )

    async def login(self, email: str, password: str, remember: bool = False) -> AuthSession:
        try:
            response = await self.client.post(
                f"{self.base_url}/auth/v1/token",
                params={"grant_type": "password"},
                json={"email": email, "password": password},
            )
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            logger.info(f"Remote login rejected for {email}: {e.response.status_code}")
            raise AuthenticationError("Invalid credentials") from e
        except httpx.HTTPError as e:
            logger.error(f"Remote auth service unreachable: {e}")
            raise AuthenticationError("Authentication service unavailable") from e

        token = data.get("access_token")
        auth_user = data.get("user") or {}
        if not token or not auth_user.get("id"):
            raise AuthenticationError("Malformed response from authentication service")

        user = await self._resolve_profile(auth_user)
        await self.cache.store(token, user, remember=remember)
        logger.info(f"Remote login for {user.id} ({user.role.value})")
        return AuthSession(token=token, user=user, remember=remember)

    async def get_session(self, token: str) -> Optional[UserProfile]:
        """Cached user for the token, else ask the auth service who it belongs to."""
        cached = await self.cache.load(token)
        if cached is not None:
            return cached

        try:
            response = await self.client.get(
                f"{self.base_url}/auth/v1/user",
                headers={"Authorization": f"Bearer {token}"},
            )
            response.raise_for_status()
            auth_user = response.json()
        except httpx.HTTPError as e:
            logger.debug(f"Remote session lookup failed: {e}")
            return None

        try:
            user = await self._resolve_profile(auth_user)
        except AuthenticationError:
            return None
        await self.cache.store(token, user)
        return user

    async def logout(self, token: str) -> None:
        await self.cache.clear(token)
        try:
            response = await self.client.post(
                f"{self.base_url}/auth/v1/logout",
                headers={"Authorization": f"Bearer {token}"},
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning(f"Remote logout failed, local session cleared anyway: {e}")

    async def get_profile(self, user_id: str) -> Optional[UserProfile]:
        return await self.profiles.get_profile(user_id)

    async def close(self) -> None:
        await self.client.aclose()

    async def _resolve_profile(self, auth_user: dict[str, Any]) -> UserProfile:
        user_id = auth_user["id"]
        try:
            profile = await self.profiles.get_profile(user_id)
        except Exception as e:
            logger.warning(f"Profile fetch failed for {user_id}, using auth metadata: {e}")
            profile = None

        if profile is not None:
            return profile

        fallback = profile_from_metadata(auth_user)
        if fallback is None:
            raise AuthenticationError("No profile found for this account")
        return fallback
