"""
Unit Tests for the Login Session Cache

Tests the Redis-backed SessionCache with a mocked client.

These tests verify:
- TTL choice between short-lived and remember-me sessions
- Writing one namespace clears the other
- Sliding expiration for short-lived sessions
- Unreadable entries are discarded
"""

import pytest

from aptivo.db.redis import DEFAULT_SESSION_TTL, REMEMBER_ME_TTL, SessionCache
from aptivo.enums.learning import UserRole
from aptivo.models.auth import UserProfile


@pytest.fixture
def user() -> UserProfile:
    return UserProfile(id="u-1", email="a@b.c", name="A", role=UserRole.STUDENT)


@pytest.fixture
def cache(mock_redis) -> SessionCache:
    return SessionCache(mock_redis, prefix="test_session")


class TestSessionCache:
    def test_ttls_come_from_yaml(self) -> None:
        assert DEFAULT_SESSION_TTL == 3600
        assert REMEMBER_ME_TTL == 2592000

    @pytest.mark.asyncio
    async def test_short_lived_session(self, cache, mock_redis, user) -> None:
        await cache.store("tok", user)

        assert mock_redis.ttls == {"test_session:session:tok": 3600}
        assert await cache.load("tok") == user

    @pytest.mark.asyncio
    async def test_remember_me_session(self, cache, mock_redis, user) -> None:
        await cache.store("tok", user, remember=True)

        assert mock_redis.ttls == {"test_session:remember:tok": 2592000}
        assert await cache.load("tok") == user

    @pytest.mark.asyncio
    async def test_switching_namespace_clears_the_other(self, cache, mock_redis, user) -> None:
        await cache.store("tok", user, remember=True)
        await cache.store("tok", user, remember=False)

        assert "test_session:remember:tok" not in mock_redis.storage
        assert "test_session:session:tok" in mock_redis.storage

    @pytest.mark.asyncio
    async def test_load_refreshes_short_ttl(self, cache, mock_redis, user) -> None:
        await cache.store("tok", user)
        mock_redis.ttls["test_session:session:tok"] = 10

        await cache.load("tok")

        mock_redis.expire.assert_awaited_with("test_session:session:tok", 3600)

    @pytest.mark.asyncio
    async def test_missing_token(self, cache) -> None:
        assert await cache.load("nope") is None

    @pytest.mark.asyncio
    async def test_clear_removes_both(self, cache, mock_redis, user) -> None:
        await cache.store("tok", user)

        await cache.clear("tok")

        assert mock_redis.storage == {}

    @pytest.mark.asyncio
    async def test_unreadable_entry_discarded(self, cache, mock_redis) -> None:
        mock_redis.storage["test_session:session:tok"] = "{not json"

        assert await cache.load("tok") is None
        assert mock_redis.storage == {}
