"""
Middleware Package

Provides FastAPI middleware and the service exception hierarchy.
"""

from aptivo.middleware.error_handling import (
    AuthenticationError,
    AuthorizationError,
    ErrorHandlingMiddleware,
    NotFoundError,
    PersistenceError,
    ServiceError,
    TransitionNotAllowedError,
    ValidationError,
    handle_endpoint_errors,
    setup_error_handling,
)

__all__ = [
    "AuthenticationError",
    "AuthorizationError",
    "ErrorHandlingMiddleware",
    "NotFoundError",
    "PersistenceError",
    "ServiceError",
    "TransitionNotAllowedError",
    "ValidationError",
    "handle_endpoint_errors",
    "setup_error_handling",
]
