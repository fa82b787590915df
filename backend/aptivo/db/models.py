"""
SQLAlchemy Database Models

PostgreSQL schema for the learning core.

Tables:
- institutes: Registered institutions and their approval status
- profiles: Users (super admins, institution admins, students)
- questions: MCQs scoped to a university or global
- attempts: Insert-only answer history
- mistake_log: Denormalized entries for incorrect attempts
- student_streaks: Streak counters maintained per student
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from aptivo.db.base import Base


class Institute(Base):
    __tablename__ = "institutes"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(255))
    status: Mapped[str] = mapped_column(String(20), default="PENDING")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )


class Profile(Base):
    """
    User profile.

    Authentication itself is owned by the remote auth service; this row
    carries role, institution membership and the last detected timezone.
    """

    __tablename__ = "profiles"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    email: Mapped[str] = mapped_column(String(255), unique=True)
    name: Mapped[str] = mapped_column(String(255), default="")
    role: Mapped[str] = mapped_column(String(20), default="STUDENT")
    institution_id: Mapped[Optional[str]] = mapped_column(
        ForeignKey("institutes.id", ondelete="SET NULL"), index=True
    )
    timezone: Mapped[Optional[str]] = mapped_column(String(64))


class QuestionRecord(Base):
    __tablename__ = "questions"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    university_id: Mapped[Optional[str]] = mapped_column(String(64), index=True)
    subject: Mapped[str] = mapped_column(String(255), default="")
    topic: Mapped[str] = mapped_column(String(255), default="", index=True)
    text: Mapped[str] = mapped_column(Text)
    options: Mapped[list] = mapped_column(JSON)
    correct_answer: Mapped[int] = mapped_column(Integer)
    explanation: Mapped[str] = mapped_column(Text, default="")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )


class AttemptRecord(Base):
    """
    One answer event. Never updated after insert.

    No uniqueness constraint on (student_id, question_id): re-attempts are
    separate rows.
    """

    __tablename__ = "attempts"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    student_id: Mapped[str] = mapped_column(ForeignKey("profiles.id"), index=True)
    question_id: Mapped[str] = mapped_column(ForeignKey("questions.id"), index=True)
    selected_option: Mapped[int] = mapped_column(Integer)
    is_correct: Mapped[bool] = mapped_column(Boolean)
    submitted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), index=True
    )

    question: Mapped["QuestionRecord"] = relationship(lazy="joined")


class MistakeLogRecord(Base):
    __tablename__ = "mistake_log"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    attempt_id: Mapped[str] = mapped_column(
        ForeignKey("attempts.id", ondelete="CASCADE"), index=True
    )
    topic: Mapped[str] = mapped_column(String(255), default="")
    subtopic: Mapped[Optional[str]] = mapped_column(String(255))
    mistake_type: Mapped[str] = mapped_column(String(20), default="CONCEPT")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )


class StudentStreakRecord(Base):
    """Streak counters; absent rows read as a zero streak."""

    __tablename__ = "student_streaks"

    user_id: Mapped[str] = mapped_column(ForeignKey("profiles.id"), primary_key=True)
    current_streak: Mapped[int] = mapped_column(Integer, default=0)
    longest_streak: Mapped[int] = mapped_column(Integer, default=0)
    threshold: Mapped[int] = mapped_column(Integer, default=5)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )
