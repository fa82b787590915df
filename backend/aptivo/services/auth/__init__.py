"""
Authentication backends.

Usage:
    from aptivo.services.auth import build_auth_backend

    auth = build_auth_backend(settings, cache, mock_store=backend, profiles=stores.directory)
"""

import logging
from typing import Optional

from aptivo.config.settings import Settings
from aptivo.db.redis import SessionCache
from aptivo.services.auth.base import AuthBackend
from aptivo.services.auth.mock import MockAuthBackend
from aptivo.services.auth.remote import RemoteAuthBackend
from aptivo.stores.mock import MockBackend
from aptivo.stores.ports import DirectoryStore

logger = logging.getLogger(__name__)


def build_auth_backend(
    config: Settings,
    cache: SessionCache,
    mock_store: Optional[MockBackend] = None,
    profiles: Optional[DirectoryStore] = None,
) -> AuthBackend:
    """
    Pick the auth implementation from configuration.

    The remote backend is used when its URL and API key are both set;
    otherwise the mock backend.
    """
    if config.remote_backend_enabled:
        if profiles is None:
            raise ValueError("Remote auth requires a profile store")
        logger.info(f"Using remote auth backend at {config.REMOTE_AUTH_URL}")
        return RemoteAuthBackend(
            base_url=config.REMOTE_AUTH_URL,
            api_key=config.REMOTE_AUTH_API_KEY,
            profiles=profiles,
            cache=cache,
            timeout=config.REMOTE_AUTH_TIMEOUT_SECONDS,
        )

    if mock_store is None:
        raise ValueError("Mock auth requires a mock store")
    logger.info("Using mock auth backend")
    return MockAuthBackend(mock_store, cache)


__all__ = [
    "AuthBackend",
    "MockAuthBackend",
    "RemoteAuthBackend",
    "build_auth_backend",
]
