"""
FastAPI Dependencies

Application service wiring and request-level dependencies (current user,
role checks, resolved timezone).

The services for one process are assembled once at startup into an
AppServices instance stored on app.state; route dependencies read from it.
"""

import logging
from dataclasses import dataclass
from datetime import tzinfo
from typing import Callable, Optional

import redis.asyncio as redis
from fastapi import Depends, HTTPException, Query, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from aptivo.config.settings import Settings
from aptivo.db.redis import SessionCache
from aptivo.enums.learning import UserRole
from aptivo.models.auth import UserProfile
from aptivo.services.auth import AuthBackend, build_auth_backend
from aptivo.services.background import drain_background_tasks
from aptivo.services.learning import (
    AnalyticsService,
    AttemptRecorder,
    PracticeSessionService,
    StreakTrackingService,
)
from aptivo.services.learning.timeutils import resolve_timezone
from aptivo.stores import StoreBundle
from aptivo.stores.mock import MockBackend

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


# ===========================================
# Service wiring
# ===========================================


@dataclass
class AppServices:
    """Everything the routers need, built for one backend."""

    stores: StoreBundle
    auth: AuthBackend
    recorder: AttemptRecorder
    analytics: AnalyticsService
    streaks: StreakTrackingService
    sessions: PracticeSessionService
    mock_store: Optional[MockBackend] = None

    async def start(self) -> None:
        if self.mock_store is not None and not self.mock_store.loaded:
            await self.mock_store.load()

    async def close(self) -> None:
        await self.sessions.shutdown()
        await drain_background_tasks(timeout=5.0)
        await self.auth.close()


def build_services(
    config: Settings,
    redis_client: redis.Redis,
    mock_store: Optional[MockBackend] = None,
    stores: Optional[StoreBundle] = None,
) -> AppServices:
    """
    Assemble services for the configured backend.

    Without a remote backend the mock store serves every capability group.
    With one, the SQL store does (unless stores are passed in).
    """
    cache = SessionCache(redis_client)

    if config.remote_backend_enabled:
        if stores is None:
            from aptivo.db.base import async_session_maker
            from aptivo.stores.sql import SqlStore

            stores = StoreBundle.from_single(SqlStore(async_session_maker))
        mock_store = None
    else:
        mock_store = mock_store or MockBackend(path=config.MOCK_STORE_PATH or None)
        stores = stores or StoreBundle.from_single(mock_store)

    auth = build_auth_backend(config, cache, mock_store=mock_store, profiles=stores.directory)
    recorder = AttemptRecorder(stores.attempts, stores.mistakes)

    return AppServices(
        stores=stores,
        auth=auth,
        recorder=recorder,
        analytics=AnalyticsService(stores),
        streaks=StreakTrackingService(stores.streaks),
        sessions=PracticeSessionService(
            stores.questions,
            recorder,
            tick_seconds=config.SESSION_TICK_SECONDS,
            idle_timeout=config.SESSION_IDLE_TIMEOUT_SECONDS,
        ),
        mock_store=mock_store,
    )


def get_services(request: Request) -> AppServices:
    return request.app.state.services


# ===========================================
# Request dependencies
# ===========================================


async def get_bearer_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> str:
    if credentials is None or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing bearer token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return credentials.credentials


async def get_current_user(
    token: str = Depends(get_bearer_token),
    services: AppServices = Depends(get_services),
) -> UserProfile:
    """
    Resolve the bearer token to a user.

    Raises:
        HTTPException: 401 if the session is unknown or expired.
    """
    user = await services.auth.get_session(token)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Session expired or invalid",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


def require_roles(*roles: UserRole) -> Callable:
    """Dependency factory allowing only the given roles."""

    async def checker(user: UserProfile = Depends(get_current_user)) -> UserProfile:
        if user.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Requires role: {' or '.join(r.value for r in roles)}",
            )
        return user

    return checker


def get_timezone(
    timezone: Optional[str] = Query(None, description="IANA timezone of the client"),
    user: UserProfile = Depends(get_current_user),
) -> tzinfo:
    """Client-detected timezone, else the stored one, else DEFAULT_TIMEZONE."""
    return resolve_timezone(timezone or user.timezone)
