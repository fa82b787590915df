"""
Authentication backend interface.

Exactly one implementation is active per process, chosen at startup by
build_auth_backend() from configuration. Callers never branch on which
one it is.
"""

from abc import ABC, abstractmethod
from typing import Optional

from aptivo.db.redis import SessionCache
from aptivo.models.auth import AuthSession, UserProfile


class AuthBackend(ABC):
    """Login, logout and session lookup against one identity source."""

    def __init__(self, cache: SessionCache):
        self.cache = cache

    @abstractmethod
    async def login(self, email: str, password: str, remember: bool = False) -> AuthSession:
        """
        Authenticate and open a session.

        Raises:
            AuthenticationError: Bad credentials.
            AuthorizationError: Credentials valid but access is not allowed.
        """

    @abstractmethod
    async def get_profile(self, user_id: str) -> Optional[UserProfile]:
        """Current profile for a user, or None if unknown."""

    async def get_session(self, token: str) -> Optional[UserProfile]:
        """User for a session token, or None if the session is unknown or expired."""
        return await self.cache.load(token)

    async def logout(self, token: str) -> None:
        await self.cache.clear(token)

    async def close(self) -> None:
        """Release any held resources."""
