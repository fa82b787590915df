"""
Auth API Router

Endpoints:
- POST /api/auth/login - Log in and receive a bearer token
- POST /api/auth/logout - End the current session
- GET /api/auth/me - Current user profile
"""

import logging

from fastapi import APIRouter, Depends

from aptivo.dependencies import AppServices, get_bearer_token, get_current_user, get_services
from aptivo.middleware.error_handling import handle_endpoint_errors
from aptivo.models.auth import AuthSession, LoginRequest, UserProfile
from aptivo.models.base import SuccessResponse

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/login", response_model=AuthSession)
@handle_endpoint_errors("Login")
async def login(
    request: LoginRequest,
    services: AppServices = Depends(get_services),
) -> AuthSession:
    """
    Authenticate with email and password.

    With remember=true the session is kept for the long remember-me TTL;
    otherwise it expires after the short session TTL of inactivity.
    """
    return await services.auth.login(request.email, request.password, remember=request.remember)


@router.post("/logout", response_model=SuccessResponse)
@handle_endpoint_errors("Logout")
async def logout(
    token: str = Depends(get_bearer_token),
    services: AppServices = Depends(get_services),
) -> SuccessResponse:
    await services.auth.logout(token)
    return SuccessResponse(message="Logged out")


@router.get("/me", response_model=UserProfile)
async def me(user: UserProfile = Depends(get_current_user)) -> UserProfile:
    return user
