"""
API Error Handling

Every failure leaves the API as the same JSON shape:

    {"error": <code>, "message": <text>, "error_id": <8 chars>,
     "details": <debug only>, "timestamp": <iso>}

The error_id is also written to the log line, so a user report can be
matched to the server-side trace.

Usage:
    from aptivo.middleware.error_handling import setup_error_handling, NotFoundError

    setup_error_handling(app, debug=settings.DEBUG)

    raise NotFoundError(f"Practice session {session_id} not found")

Precedence:
    - HTTPException is left to FastAPI
    - ServiceError subclasses carry their own status and code
    - anything else becomes a 500 with no internals unless debug is on
"""

import functools
import logging
import traceback
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Optional, TypeVar
from uuid import uuid4

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)

T = TypeVar("T")


# =============================================================================
# Exceptions
# =============================================================================


class ServiceError(Exception):
    """
    An expected failure inside a service.

    Subclasses pin the HTTP status and machine-readable code; both can be
    overridden per instance.

    Example:
        raise ServiceError("Question store unavailable", status_code=503)
    """

    status_code: int = 500
    error_code: str = "service_error"

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        error_code: Optional[str] = None,
        details: Optional[dict] = None,
    ):
        super().__init__(message)
        self.message = message
        self.details = details
        if status_code is not None:
            self.status_code = status_code
        if error_code is not None:
            self.error_code = error_code


class ValidationError(ServiceError):
    status_code = 422
    error_code = "validation_error"


class NotFoundError(ServiceError):
    status_code = 404
    error_code = "not_found"


class AuthenticationError(ServiceError):
    """Missing, wrong or expired credentials."""

    status_code = 401
    error_code = "unauthenticated"


class AuthorizationError(ServiceError):
    """Authenticated, but not allowed (role or institution status)."""

    status_code = 403
    error_code = "forbidden"


class PersistenceError(ServiceError):
    """
    A write to the backing store was rejected.

    Shown to the user as a non-blocking notice; local session bookkeeping
    is never rolled back because of it.
    """

    status_code = 502
    error_code = "persistence_error"


class TransitionNotAllowedError(ServiceError):
    """A practice-session action that the current phase does not offer."""

    status_code = 409
    error_code = "transition_not_allowed"


# =============================================================================
# Responses
# =============================================================================


def new_error_id() -> str:
    return uuid4().hex[:8]


def create_error_response(
    error_code: str,
    message: str,
    status_code: int = 500,
    details: Optional[dict] = None,
    error_id: Optional[str] = None,
) -> JSONResponse:
    """Build the JSON error body; a correlation id is generated if not given."""
    return JSONResponse(
        status_code=status_code,
        content={
            "error": error_code,
            "message": message,
            "error_id": error_id or new_error_id(),
            "details": details,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
    )


# =============================================================================
# Middleware
# =============================================================================


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Converts exceptions escaping a route into the JSON error body."""

    def __init__(self, app, debug: bool = False):
        super().__init__(app)
        self.debug = debug

    async def dispatch(self, request: Request, call_next):
        try:
            return await call_next(request)
        except HTTPException:
            raise
        except ServiceError as e:
            return self._service_error(request, e)
        except Exception as e:
            return self._unexpected_error(request, e)

    def _service_error(self, request: Request, error: ServiceError) -> JSONResponse:
        error_id = new_error_id()
        logger.error(
            f"[{error_id}] {request.method} {request.url.path} -> "
            f"{error.error_code}: {error.message}"
        )
        return create_error_response(
            error.error_code,
            error.message,
            status_code=error.status_code,
            details=error.details if self.debug else None,
            error_id=error_id,
        )

    def _unexpected_error(self, request: Request, error: Exception) -> JSONResponse:
        error_id = new_error_id()
        trace = traceback.format_exc()
        logger.error(
            f"[{error_id}] {request.method} {request.url.path} -> "
            f"unhandled {type(error).__name__}: {error}\n{trace}"
        )
        details = None
        if self.debug:
            details = {"exception": type(error).__name__, "message": str(error), "traceback": trace}
        return create_error_response(
            "internal_server_error",
            "An unexpected error occurred",
            status_code=500,
            details=details,
            error_id=error_id,
        )


def setup_error_handling(app: FastAPI, debug: bool = False) -> None:
    """Install the error middleware; debug exposes details and tracebacks."""
    app.add_middleware(ErrorHandlingMiddleware, debug=debug)
    logger.info(f"Error handling enabled (debug={debug})")


# =============================================================================
# Route decorator
# =============================================================================


def handle_endpoint_errors(
    operation: str,
) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """
    Map service exceptions raised by a route handler to HTTPException.

    HTTPException passes through untouched. A ServiceError keeps its status
    and becomes a {"error", "message"} detail. Anything else is logged and
    reported as a generic 500 naming the operation.

    Usage:
        @router.get("/student")
        @handle_endpoint_errors("Get student analytics")
        async def get_student_analytics(...):
            ...
    """

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            try:
                return await func(*args, **kwargs)
            except HTTPException:
                raise
            except ServiceError as e:
                if e.status_code >= 500:
                    logger.error(f"{operation} failed: {e.message}")
                raise HTTPException(
                    status_code=e.status_code,
                    detail={"error": e.error_code, "message": e.message},
                )
            except Exception as e:
                logger.error(f"{operation} failed: {type(e).__name__}: {e}")
                raise HTTPException(status_code=500, detail=f"{operation} failed")

        return wrapper

    return decorator
