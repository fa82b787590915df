"""
Learning System Enums

Defines enums for user roles, the practice session state machine,
learning modes and mistake categorization.
"""

from enum import Enum


class UserRole(str, Enum):
    """Roles recognised by the authorization layer."""

    SUPER_ADMIN = "SUPER_ADMIN"
    ADMIN = "ADMIN"  # Institution administrator
    STUDENT = "STUDENT"


class InstitutionStatus(str, Enum):
    """Approval lifecycle of a registered institution."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    BLOCKED = "BLOCKED"


class LearningMode(str, Enum):
    """
    Pedagogical context inferred from the current navigation path.

    - UNDERSTAND: reading study material
    - APPLY: practicing MCQs
    - NEUTRAL: anywhere else (dashboards, curriculum overview)
    """

    NEUTRAL = "NEUTRAL"
    UNDERSTAND = "UNDERSTAND"
    APPLY = "APPLY"


class SessionPhase(str, Enum):
    """
    Phases of a practice session.

    State transitions:
    - LOADING → ANSWERING (questions fetched) or NO_CONTENT (empty set)
    - ANSWERING → SUBMITTED (submit with a selection)
    - SUBMITTED → ANSWERING (advance, more questions) or FINISHED (advance, last question)
    - FINISHED → ANSWERING (restart)

    NO_CONTENT is terminal and only offers back-navigation.
    """

    LOADING = "loading"
    NO_CONTENT = "no_content"
    ANSWERING = "answering"
    SUBMITTED = "submitted"
    FINISHED = "finished"


class MistakeType(str, Enum):
    """Categories for mistake log entries. Only CONCEPT is assigned today."""

    CONCEPT = "CONCEPT"
    CALCULATION = "CALCULATION"
    CARELESS = "CARELESS"
