"""Authentication against the in-process mock backend."""

import logging
from typing import Optional
from uuid import uuid4

from aptivo.db.redis import SessionCache
from aptivo.models.auth import AuthSession, UserProfile
from aptivo.services.auth.base import AuthBackend
from aptivo.stores.mock import MockBackend

logger = logging.getLogger(__name__)


class MockAuthBackend(AuthBackend):
    """
    Checks credentials stored in the MockBackend.

    Institution admins and students can only log in while their
    institution is approved.
    """

    def __init__(self, store: MockBackend, cache: SessionCache):
        super().__init__(cache)
        self.store = store

    async def login(self, email: str, password: str, remember: bool = False) -> AuthSession:
        user = await self.store.authenticate(email, password)
        token = f"mock-{uuid4().hex}"
        await self.cache.store(token, user, remember=remember)
        logger.info(f"Mock login for {user.id} ({user.role.value})")
        return AuthSession(token=token, user=user, remember=remember)

    async def get_profile(self, user_id: str) -> Optional[UserProfile]:
        return await self.store.get_profile(user_id)
