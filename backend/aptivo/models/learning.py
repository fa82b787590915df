"""
Learning System API Models (Pydantic)

Schemas for questions, attempts, streaks, analytics and practice sessions.

ARCHITECTURE NOTE:
    This file contains PYDANTIC models shared by services and routers.
    The SQLAlchemy counterparts live in aptivo/db/models.py.

    Data flows: Store → Pydantic → Service → Router
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from aptivo.config import settings
from aptivo.enums.learning import LearningMode, MistakeType, SessionPhase
from aptivo.models.base import StrictRequest, StrictResponse


# ===========================================
# Questions
# ===========================================


class QuestionPublic(StrictResponse):
    """
    Student-facing view of a question.

    Never carries the correct answer or explanation; those are only
    revealed in feedback after the question has been submitted.
    """

    id: str
    university_id: Optional[str] = None
    subject: str = ""
    topic: str = ""
    text: str
    options: list[str]


class Question(QuestionPublic):
    """Full question including correctness metadata (privileged read)."""

    correct_answer: int = Field(..., ge=0)
    explanation: str = ""

    def to_public(self) -> QuestionPublic:
        """Strip correctness metadata for a student-facing response."""
        return QuestionPublic(**self.model_dump(exclude={"correct_answer", "explanation"}))


# ===========================================
# Attempts & Mistakes
# ===========================================


class AttemptCreate(BaseModel):
    """
    A question attempt about to be persisted.

    is_correct is computed by the caller and trusted as-is.
    """

    student_id: str
    question_id: str
    selected_option: int = Field(..., ge=0)
    is_correct: bool
    subject: str = ""
    topic: Optional[str] = None


class Attempt(AttemptCreate):
    """
    One recorded answer event.

    Frozen: is_correct is fixed at creation time and never recomputed,
    even if the underlying question is edited later.
    """

    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: str
    submitted_at: datetime


class MistakeLogEntry(BaseModel):
    """Denormalized record of an incorrect attempt for mistake review queries."""

    attempt_id: str
    topic: str = ""
    subtopic: Optional[str] = None
    mistake_type: MistakeType = MistakeType.CONCEPT


class MistakeReviewItem(StrictResponse):
    """An incorrect attempt paired with the question it answered."""

    attempt: Attempt
    question: Question


class AttemptSubmitRequest(StrictRequest):
    """Direct attempt recording (outside a server-held practice session)."""

    question_id: str
    selected_option: int = Field(..., ge=0)
    is_correct: bool
    subject: str = ""
    topic: Optional[str] = None


# ===========================================
# Streaks
# ===========================================


class StreakState(BaseModel):
    """
    Per-user streak counters, maintained by the owning backend.

    longest_streak may transiently lag current_streak in fetched data;
    display code clamps it (see StreakStatus.displayed_longest).
    """

    user_id: str
    current_streak: int = Field(0, ge=0)
    longest_streak: int = Field(0, ge=0)
    threshold: int = Field(default_factory=lambda: settings.STREAK_DEFAULT_THRESHOLD, ge=1)
    timezone: Optional[str] = None


class TodayProgress(BaseModel):
    """Attempt count for the current calendar day in the user's timezone."""

    attempt_count: int = Field(0, ge=0)
    is_streak_day: bool = False


class StreakStatus(StrictResponse):
    """Derived streak information for the dashboard widget."""

    current_streak: int
    displayed_longest: int
    attempt_count: int
    threshold: int
    is_streak_day: bool
    remaining_to_qualify: int
    progress_percent: int
    timezone_sync_scheduled: bool = False


# ===========================================
# Analytics
# ===========================================


class TopicStat(StrictResponse):
    """Per-topic rollup."""

    name: str
    total: int
    accuracy: int


class TrendPoint(StrictResponse):
    """One day of the accuracy trend."""

    name: str  # Weekday short name
    date: date
    accuracy: int
    total: int = 0


class EngagementPoint(StrictResponse):
    """One day of the attempt-count trend."""

    name: str
    date: date
    attempts: int


class HourlyTraffic(StrictResponse):
    """One hour-of-day bucket over the trailing 24 hours."""

    name: str  # "H:00"
    hits: int


class RecentAttempt(StrictResponse):
    """Reduced attempt for the recent-activity feed."""

    id: str
    is_correct: bool
    topic: str
    timestamp: datetime


class StudentAnalytics(StrictResponse):
    """Analytics for a single student."""

    total_attempts: int = 0
    correct_attempts: int = 0
    accuracy: int = 0
    trend_data: list[TrendPoint] = Field(default_factory=list)
    topics: list[TopicStat] = Field(default_factory=list)
    recent_attempts: list[RecentAttempt] = Field(default_factory=list)


class InstitutionAnalytics(StrictResponse):
    """Analytics across all students of an institution."""

    total_students: int = 0
    average_accuracy: int = 0
    total_attempts: int = 0
    topics: list[TopicStat] = Field(default_factory=list)
    struggling_topics: list[TopicStat] = Field(default_factory=list)
    engagement_trend: list[EngagementPoint] = Field(default_factory=list)
    recent_attempts: list[RecentAttempt] = Field(default_factory=list)


class GlobalAnalytics(StrictResponse):
    """System-wide analytics for the super admin."""

    institute_count: int = 0
    question_count: int = 0
    student_count: int = 0
    total_attempts: int = 0
    global_accuracy: int = 0
    hit_data: list[HourlyTraffic] = Field(default_factory=list)


# ===========================================
# Practice Sessions
# ===========================================


class SessionStartRequest(StrictRequest):
    """Start a practice run over one topic of a university curriculum."""

    university_id: str
    topic: str = Field(..., min_length=1)


class SelectOptionRequest(StrictRequest):
    """Select an answer option for the current question."""

    option_index: int = Field(..., ge=0)


class SubmitFeedback(StrictResponse):
    """Feedback shown after a submission, revealing the answer."""

    question_id: str
    selected_option: int
    is_correct: bool
    correct_answer: int
    explanation: str = ""


class SessionSummary(StrictResponse):
    """Terminal summary of a finished practice session."""

    total_questions: int
    score: int
    accuracy: int
    elapsed_seconds: int
    elapsed_display: str  # m:ss
    best_streak: int


class SessionView(StrictResponse):
    """Snapshot of a practice session for the client."""

    session_id: str
    university_id: str
    topic: str
    phase: SessionPhase
    total_questions: int
    current_index: int
    current_question: Optional[QuestionPublic] = None
    selected_option: Optional[int] = None
    is_submitted: bool = False
    feedback: Optional[SubmitFeedback] = None
    score: int = 0
    current_streak: int = 0
    best_streak: int = 0
    elapsed_seconds: int = 0
    summary: Optional[SessionSummary] = None
    notices: list[str] = Field(default_factory=list)


# ===========================================
# Navigation
# ===========================================


class ModeSwitchRequest(StrictRequest):
    """Request to switch learning mode from the given path."""

    path: str
    mode: LearningMode


class ModeResponse(StrictResponse):
    """Derived or switched learning mode, with a navigation target if any."""

    mode: LearningMode
    navigate_to: Optional[str] = None
