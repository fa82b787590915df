"""
Store Ports

Capability groups the learning core consumes from its backing store.
Two implementations exist: the SQL store (managed Postgres service) and
the in-process mock backend. Services depend only on these protocols.
"""

from datetime import tzinfo
from typing import Optional, Protocol

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


class AttemptStore(Protocol):
    """Insert-only attempt history, read back with topic denormalized."""

    async def insert_attempt(self, attempt: AttemptCreate) -> Attempt: ...

    async def list_attempts(self, user_id: str) -> list[Attempt]:
        """All attempts of one user, oldest first."""
        ...

    async def list_attempts_for_users(self, user_ids: list[str]) -> list[Attempt]:
        """All attempts of the given users, oldest first."""
        ...

    async def list_all_attempts(self) -> list[Attempt]: ...

    async def list_mistakes(self, user_id: str) -> list[MistakeReviewItem]:
        """Incorrect attempts joined with their questions, newest first."""
        ...


class MistakeLogStore(Protocol):
    async def insert_mistake(self, entry: MistakeLogEntry) -> None: ...


class StreakStore(Protocol):
    async def get_streak_state(self, user_id: str) -> StreakState: ...

    async def get_today_progress(self, user_id: str, tz: tzinfo) -> TodayProgress: ...

    async def update_timezone(self, user_id: str, timezone: str) -> None: ...


class QuestionStore(Protocol):
    async def list_questions_by_topic(self, university_id: str, topic: str) -> list[Question]:
        """Questions for a topic scoped to the university or global, in a stable order."""
        ...


class DirectoryStore(Protocol):
    """Profile and catalogue lookups used by the admin-level analytics."""

    async def get_profile(self, user_id: str) -> Optional[UserProfile]: ...

    async def list_student_ids(self, institution_id: str) -> list[str]: ...

    async def count_institutes(self) -> int: ...

    async def count_questions(self) -> int: ...

    async def count_students(self) -> int: ...
