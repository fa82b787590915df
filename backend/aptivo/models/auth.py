"""
Authentication API Models (Pydantic)

The unified user record is the same whichever auth backend is active.
"""

from typing import Optional

from pydantic import BaseModel

from aptivo.enums.learning import UserRole
from aptivo.models.base import StrictRequest, StrictResponse


class UserProfile(BaseModel):
    """Unified user record shared by the mock and remote auth backends."""

    id: str
    email: str
    name: str
    role: UserRole
    institution_id: Optional[str] = None
    timezone: Optional[str] = None


class LoginRequest(StrictRequest):
    """Credentials plus the remember-me flag choosing the session lifetime."""

    email: str
    password: str
    remember: bool = False


class AuthSession(StrictResponse):
    """An authenticated session: bearer token plus the user it belongs to."""

    token: str
    user: UserProfile
    remember: bool = False
