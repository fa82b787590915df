"""
Centralized enum definitions for the application.

Usage:
    from aptivo.enums import LearningMode, SessionPhase, UserRole
"""

from aptivo.enums.learning import (
    InstitutionStatus,
    LearningMode,
    MistakeType,
    SessionPhase,
    UserRole,
)

__all__ = [
    "InstitutionStatus",
    "LearningMode",
    "MistakeType",
    "SessionPhase",
    "UserRole",
]
