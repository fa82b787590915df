"""Pydantic models package."""

from aptivo.models.auth import AuthSession, LoginRequest, UserProfile
from aptivo.models.base import StrictRequest, StrictResponse, SuccessResponse
from aptivo.models.learning import (
    Attempt,
    AttemptCreate,
    MistakeLogEntry,
    Question,
    QuestionPublic,
    StreakState,
    TodayProgress,
)

__all__ = [
    "Attempt",
    "AttemptCreate",
    "AuthSession",
    "LoginRequest",
    "MistakeLogEntry",
    "Question",
    "QuestionPublic",
    "StreakState",
    "StrictRequest",
    "StrictResponse",
    "SuccessResponse",
    "TodayProgress",
    "UserProfile",
]
