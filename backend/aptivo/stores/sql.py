"""
SQL Store

Implements every store capability group against PostgreSQL with async
SQLAlchemy. Each call opens its own session from the injected session
factory, so fire-and-forget writes may outlive the request that started
them.

Usage:
    from aptivo.db.base import async_session_maker
    from aptivo.stores.sql import SqlStore

    stores = StoreBundle.from_single(SqlStore(async_session_maker))
"""

import logging
from datetime import tzinfo
from typing import Optional
from uuid import uuid4

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import joinedload

from aptivo.config import settings
from aptivo.enums.learning import UserRole
from aptivo.db.models import (
    AttemptRecord,
    Institute,
    MistakeLogRecord,
    Profile,
    QuestionRecord,
    StudentStreakRecord,
)
from aptivo.models.auth import UserProfile
from aptivo.models.learning import (
    Attempt,
    AttemptCreate,
    MistakeLogEntry,
    MistakeReviewItem,
    Question,
    StreakState,
    TodayProgress,
)
from aptivo.services.learning.timeutils import local_midnight_utc, utc_now

logger = logging.getLogger(__name__)


def _to_question(record: QuestionRecord) -> Question:
    return Question(
        id=record.id,
        university_id=record.university_id,
        subject=record.subject or "",
        topic=record.topic or "",
        text=record.text,
        options=list(record.options or []),
        correct_answer=record.correct_answer,
        explanation=record.explanation or "",
    )


def _to_attempt(record: AttemptRecord) -> Attempt:
    """Map a row to an Attempt, denormalizing subject/topic from its question."""
    question = record.question
    return Attempt(
        id=record.id,
        student_id=record.student_id,
        question_id=record.question_id,
        selected_option=record.selected_option,
        is_correct=record.is_correct,
        subject=question.subject if question else "",
        topic=(question.topic or None) if question else None,
        submitted_at=record.submitted_at,
    )


def _to_profile(record: Profile) -> UserProfile:
    return UserProfile(
        id=record.id,
        email=record.email,
        name=record.name,
        role=UserRole(record.role),
        institution_id=record.institution_id,
        timezone=record.timezone,
    )


class SqlStore:
    """PostgreSQL-backed store for attempts, streaks, questions and profiles."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    # =========================================================================
    # Attempts
    # =========================================================================

    async def insert_attempt(self, attempt: AttemptCreate) -> Attempt:
        record = AttemptRecord(
            id=str(uuid4()),
            student_id=attempt.student_id,
            question_id=attempt.question_id,
            selected_option=attempt.selected_option,
            is_correct=attempt.is_correct,
            submitted_at=utc_now(),
        )
        async with self.session_factory() as session:
            session.add(record)
            await session.commit()

        return Attempt(
            id=record.id,
            submitted_at=record.submitted_at,
            **attempt.model_dump(),
        )

    async def list_attempts(self, user_id: str) -> list[Attempt]:
        return await self.list_attempts_for_users([user_id])

    async def list_attempts_for_users(self, user_ids: list[str]) -> list[Attempt]:
        if not user_ids:
            return []
        query = (
            select(AttemptRecord)
            .options(joinedload(AttemptRecord.question))
            .where(AttemptRecord.student_id.in_(user_ids))
            .order_by(AttemptRecord.submitted_at.asc())
        )
        async with self.session_factory() as session:
            result = await session.execute(query)
            return [_to_attempt(r) for r in result.scalars().all()]

    async def list_all_attempts(self) -> list[Attempt]:
        query = (
            select(AttemptRecord)
            .options(joinedload(AttemptRecord.question))
            .order_by(AttemptRecord.submitted_at.asc())
        )
        async with self.session_factory() as session:
            result = await session.execute(query)
            return [_to_attempt(r) for r in result.scalars().all()]

    async def list_mistakes(self, user_id: str) -> list[MistakeReviewItem]:
        query = (
            select(AttemptRecord)
            .options(joinedload(AttemptRecord.question))
            .where(
                AttemptRecord.student_id == user_id,
                AttemptRecord.is_correct.is_(False),
            )
            .order_by(AttemptRecord.submitted_at.desc())
        )
        async with self.session_factory() as session:
            result = await session.execute(query)
            return [
                MistakeReviewItem(attempt=_to_attempt(r), question=_to_question(r.question))
                for r in result.scalars().all()
                if r.question is not None
            ]

    async def insert_mistake(self, entry: MistakeLogEntry) -> None:
        async with self.session_factory() as session:
            session.add(
                MistakeLogRecord(
                    attempt_id=entry.attempt_id,
                    topic=entry.topic,
                    subtopic=entry.subtopic,
                    mistake_type=entry.mistake_type.value,
                )
            )
            await session.commit()

    # =========================================================================
    # Streaks
    # =========================================================================

    async def _get_streak_row(
        self, session: AsyncSession, user_id: str
    ) -> Optional[StudentStreakRecord]:
        result = await session.execute(
            select(StudentStreakRecord).where(StudentStreakRecord.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def get_streak_state(self, user_id: str) -> StreakState:
        async with self.session_factory() as session:
            row = await self._get_streak_row(session, user_id)
            tz_result = await session.execute(
                select(Profile.timezone).where(Profile.id == user_id)
            )
            timezone = tz_result.scalar_one_or_none()

        if row is None:
            return StreakState(user_id=user_id, timezone=timezone)
        return StreakState(
            user_id=user_id,
            current_streak=row.current_streak,
            longest_streak=row.longest_streak,
            threshold=row.threshold or settings.STREAK_DEFAULT_THRESHOLD,
            timezone=timezone,
        )

    async def get_today_progress(self, user_id: str, tz: tzinfo) -> TodayProgress:
        """Count attempts since local midnight in the caller's timezone."""
        since = local_midnight_utc(tz)
        async with self.session_factory() as session:
            count_result = await session.execute(
                select(func.count(AttemptRecord.id)).where(
                    AttemptRecord.student_id == user_id,
                    AttemptRecord.submitted_at >= since,
                )
            )
            count = count_result.scalar() or 0
            row = await self._get_streak_row(session, user_id)

        threshold = row.threshold if row and row.threshold else settings.STREAK_DEFAULT_THRESHOLD
        return TodayProgress(attempt_count=count, is_streak_day=count >= threshold)

    async def update_timezone(self, user_id: str, timezone: str) -> None:
        async with self.session_factory() as session:
            await session.execute(
                update(Profile).where(Profile.id == user_id).values(timezone=timezone)
            )
            await session.commit()

    # =========================================================================
    # Questions
    # =========================================================================

    async def list_questions_by_topic(self, university_id: str, topic: str) -> list[Question]:
        query = (
            select(QuestionRecord)
            .where(
                QuestionRecord.topic == topic,
                (QuestionRecord.university_id == university_id)
                | QuestionRecord.university_id.is_(None),
            )
            .order_by(QuestionRecord.created_at.asc(), QuestionRecord.id.asc())
        )
        async with self.session_factory() as session:
            result = await session.execute(query)
            return [_to_question(r) for r in result.scalars().all()]

    # =========================================================================
    # Directory
    # =========================================================================

    async def get_profile(self, user_id: str) -> Optional[UserProfile]:
        async with self.session_factory() as session:
            result = await session.execute(select(Profile).where(Profile.id == user_id))
            record = result.scalar_one_or_none()
        return _to_profile(record) if record else None

    async def list_student_ids(self, institution_id: str) -> list[str]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(Profile.id).where(
                    Profile.institution_id == institution_id,
                    Profile.role == UserRole.STUDENT.value,
                )
            )
            return list(result.scalars().all())

    async def count_institutes(self) -> int:
        return await self._count(select(func.count(Institute.id)))

    async def count_questions(self) -> int:
        return await self._count(select(func.count(QuestionRecord.id)))

    async def count_students(self) -> int:
        return await self._count(
            select(func.count(Profile.id)).where(Profile.role == UserRole.STUDENT.value)
        )

    async def _count(self, query) -> int:
        async with self.session_factory() as session:
            result = await session.execute(query)
            return result.scalar() or 0
