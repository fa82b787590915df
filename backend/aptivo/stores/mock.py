"""
Mock Backend

In-process store used when no remote service is configured. Implements
every store capability group plus the account data needed by mock auth.

Lifecycle is explicit: construct, then load() once (from the JSON
snapshot at MOCK_STORE_PATH when present, otherwise from seed data), then
every write persists the whole snapshot again. Each instance is isolated,
so tests can build as many as they like.

Usage:
    backend = MockBackend(path=settings.MOCK_STORE_PATH)
    await backend.load()
    stores = StoreBundle.from_single(backend)
"""

import json
import logging
from datetime import datetime, tzinfo
from pathlib import Path
from typing import Callable, Optional, Union
from uuid import uuid4

import aiofiles
from pydantic import BaseModel, Field

from aptivo.config import settings
from aptivo.enums.learning import InstitutionStatus, UserRole
from aptivo.middleware.error_handling import (
    AuthenticationError,
    AuthorizationError,
    NotFoundError,
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
from aptivo.services.learning.streak_tracking import (
    calculate_current_streak,
    calculate_longest_streak,
    qualifying_days,
)
from aptivo.services.learning.timeutils import local_date, resolve_timezone, utc_now

logger = logging.getLogger(__name__)


# ===========================================
# Snapshot schema
# ===========================================


class MockAccount(UserProfile):
    """A user record with its (mock) password."""

    password: str


class MockInstitution(BaseModel):
    id: str
    name: str
    domain: str = ""
    status: InstitutionStatus = InstitutionStatus.PENDING


class MockUniversity(BaseModel):
    id: str
    name: str
    location: str = ""


class MockSnapshot(BaseModel):
    """Everything the mock backend persists."""

    users: list[MockAccount] = Field(default_factory=list)
    institutions: list[MockInstitution] = Field(default_factory=list)
    universities: list[MockUniversity] = Field(default_factory=list)
    questions: list[Question] = Field(default_factory=list)
    attempts: list[Attempt] = Field(default_factory=list)
    mistakes: list[MistakeLogEntry] = Field(default_factory=list)
    streak_thresholds: dict[str, int] = Field(default_factory=dict)


def seed_snapshot() -> MockSnapshot:
    """Initial data: one super admin, three universities, three questions."""
    return MockSnapshot(
        users=[
            MockAccount(
                id="u-super-admin",
                email="Admin@123",
                name="Super Administrator",
                role=UserRole.SUPER_ADMIN,
                password="Admin@123",
            )
        ],
        universities=[
            MockUniversity(id="univ-1", name="Harvard University", location="Cambridge, MA"),
            MockUniversity(id="univ-2", name="Stanford University", location="Stanford, CA"),
            MockUniversity(id="univ-3", name="MIT", location="Cambridge, MA"),
        ],
        questions=[
            Question(
                id="q1",
                university_id="univ-1",
                subject="Computer Science",
                topic="Algorithms",
                text="What is the time complexity of binary search on a sorted array?",
                options=["O(n)", "O(log n)", "O(n^2)", "O(1)"],
                correct_answer=1,
                explanation=(
                    "Binary search divides the search interval in half at each step, "
                    "resulting in logarithmic time complexity."
                ),
            ),
            Question(
                id="q2",
                university_id="univ-1",
                subject="Computer Science",
                topic="Algorithms",
                text="Which of the following represents linear time complexity?",
                options=["O(1)", "O(n^2)", "O(n)", "O(log n)"],
                correct_answer=2,
                explanation="O(n) means the execution time increases linearly with the size of the input.",
            ),
            Question(
                id="q3",
                university_id="univ-1",
                subject="Quantitative Aptitude",
                topic="Time and Work",
                text=(
                    "A can do a bit of work in 8 days, which B alone can do in 10 days. "
                    "In how many days can both do it cooperatively?"
                ),
                options=["40/9 days", "41/9 days", "42/9 days", "43/9 days"],
                correct_answer=0,
                explanation=(
                    "A's 1 day work = 1/8. B's 1 day work = 1/10. "
                    "Together = 9/40. Time taken = 40/9 days."
                ),
            ),
        ],
    )


class MockBackend:
    """
    Isolated in-memory store with optional JSON persistence.

    Streak counters are computed from attempt history on read: a day
    qualifies once it has at least `threshold` attempts in the user's
    stored timezone.
    """

    def __init__(
        self,
        path: Union[str, Path, None] = None,
        snapshot: Optional[MockSnapshot] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.path = Path(path) if path else None
        self.clock = clock
        self.data = snapshot or MockSnapshot()
        self.loaded = snapshot is not None

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def load(self) -> None:
        """Initialize from the persisted snapshot, or from seed data."""
        if self.path is not None and self.path.exists():
            async with aiofiles.open(self.path, "r") as f:
                raw = await f.read()
            self.data = MockSnapshot.model_validate_json(raw)
            logger.info(
                f"Loaded mock store from {self.path} "
                f"({len(self.data.users)} users, {len(self.data.attempts)} attempts)"
            )
        else:
            self.data = seed_snapshot()
            logger.info("Initialized mock store from seed data")
        self.loaded = True

    async def persist(self) -> None:
        """Write the full snapshot; a no-op for in-memory stores."""
        if self.path is None:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = json.dumps(self.data.model_dump(mode="json"), indent=2)
        async with aiofiles.open(self.path, "w") as f:
            await f.write(payload)

    async def _commit(self, apply: Callable[[], None], undo: Callable[[], None]) -> None:
        """Apply an in-memory change and persist it; a failed write undoes the change."""
        apply()
        try:
            await self.persist()
        except Exception as e:
            undo()
            logger.error(f"Mock store write failed, change rolled back: {e}")
            raise

    # =========================================================================
    # Accounts
    # =========================================================================

    def find_account(self, user_id: str) -> Optional[MockAccount]:
        return next((u for u in self.data.users if u.id == user_id), None)

    def find_institution(self, institution_id: Optional[str]) -> Optional[MockInstitution]:
        return next((i for i in self.data.institutions if i.id == institution_id), None)

    async def authenticate(self, email: str, password: str) -> UserProfile:
        """
        Check credentials and institution status.

        Raises:
            AuthenticationError: Unknown email or wrong password.
            AuthorizationError: The user's institution is not approved.
        """
        account = next(
            (u for u in self.data.users if u.email == email and u.password == password),
            None,
        )
        if account is None:
            raise AuthenticationError("Invalid credentials")

        if account.role in (UserRole.ADMIN, UserRole.STUDENT):
            institution = self.find_institution(account.institution_id)
            if institution is None or institution.status != InstitutionStatus.APPROVED:
                if account.role == UserRole.ADMIN:
                    raise AuthorizationError("Institution is not approved or has been blocked.")
                raise AuthorizationError("Your institution account is inactive.")

        return UserProfile(**account.model_dump(exclude={"password"}))

    async def add_institution(self, institution: MockInstitution) -> MockInstitution:
        institutions = self.data.institutions
        await self._commit(
            lambda: institutions.append(institution),
            lambda: institutions.remove(institution),
        )
        return institution

    async def set_institution_status(self, institution_id: str, status: InstitutionStatus) -> None:
        institution = self.find_institution(institution_id)
        if institution is None:
            raise NotFoundError(f"Institution {institution_id} not found")
        previous = institution.status
        await self._commit(
            lambda: setattr(institution, "status", status),
            lambda: setattr(institution, "status", previous),
        )

    async def add_account(self, account: MockAccount) -> MockAccount:
        users = self.data.users
        await self._commit(lambda: users.append(account), lambda: users.remove(account))
        return account

    async def add_question(self, question: Question) -> Question:
        questions = self.data.questions
        await self._commit(lambda: questions.append(question), lambda: questions.remove(question))
        return question

    # =========================================================================
    # Attempts
    # =========================================================================

    async def insert_attempt(self, attempt: AttemptCreate) -> Attempt:
        record = Attempt(
            id=f"att-{uuid4().hex[:12]}",
            submitted_at=self.clock(),
            **attempt.model_dump(),
        )
        attempts = self.data.attempts
        await self._commit(lambda: attempts.append(record), lambda: attempts.remove(record))
        return record

    async def list_attempts(self, user_id: str) -> list[Attempt]:
        return [a for a in self.data.attempts if a.student_id == user_id]

    async def list_attempts_for_users(self, user_ids: list[str]) -> list[Attempt]:
        wanted = set(user_ids)
        return [a for a in self.data.attempts if a.student_id in wanted]

    async def list_all_attempts(self) -> list[Attempt]:
        return list(self.data.attempts)

    async def list_mistakes(self, user_id: str) -> list[MistakeReviewItem]:
        questions = {q.id: q for q in self.data.questions}
        wrong = [a for a in self.data.attempts if a.student_id == user_id and not a.is_correct]
        wrong.sort(key=lambda a: a.submitted_at, reverse=True)
        return [
            MistakeReviewItem(attempt=a, question=questions[a.question_id])
            for a in wrong
            if a.question_id in questions
        ]

    async def insert_mistake(self, entry: MistakeLogEntry) -> None:
        mistakes = self.data.mistakes
        await self._commit(lambda: mistakes.append(entry), lambda: mistakes.remove(entry))

    # =========================================================================
    # Streaks
    # =========================================================================

    def _threshold(self, user_id: str) -> int:
        return self.data.streak_thresholds.get(user_id, settings.STREAK_DEFAULT_THRESHOLD)

    async def get_streak_state(self, user_id: str) -> StreakState:
        account = self.find_account(user_id)
        stored_tz = account.timezone if account else None
        tz = resolve_timezone(stored_tz)
        threshold = self._threshold(user_id)

        days = qualifying_days(await self.list_attempts(user_id), tz, threshold)
        today = local_date(self.clock(), tz)
        return StreakState(
            user_id=user_id,
            current_streak=calculate_current_streak(days, today),
            longest_streak=calculate_longest_streak(days),
            threshold=threshold,
            timezone=stored_tz,
        )

    async def get_today_progress(self, user_id: str, tz: tzinfo) -> TodayProgress:
        today = local_date(self.clock(), tz)
        count = sum(
            1
            for a in self.data.attempts
            if a.student_id == user_id and local_date(a.submitted_at, tz) == today
        )
        return TodayProgress(attempt_count=count, is_streak_day=count >= self._threshold(user_id))

    async def update_timezone(self, user_id: str, timezone: str) -> None:
        account = self.find_account(user_id)
        if account is None:
            raise NotFoundError(f"User {user_id} not found")
        previous = account.timezone
        await self._commit(
            lambda: setattr(account, "timezone", timezone),
            lambda: setattr(account, "timezone", previous),
        )

    # =========================================================================
    # Questions & directory
    # =========================================================================

    async def list_questions_by_topic(self, university_id: str, topic: str) -> list[Question]:
        return [
            q
            for q in self.data.questions
            if q.topic == topic and (q.university_id == university_id or q.university_id is None)
        ]

    async def get_profile(self, user_id: str) -> Optional[UserProfile]:
        account = self.find_account(user_id)
        if account is None:
            return None
        return UserProfile(**account.model_dump(exclude={"password"}))

    async def list_student_ids(self, institution_id: str) -> list[str]:
        return [
            u.id
            for u in self.data.users
            if u.role == UserRole.STUDENT and u.institution_id == institution_id
        ]

    async def count_institutes(self) -> int:
        return len(self.data.institutions)

    async def count_questions(self) -> int:
        return len(self.data.questions)

    async def count_students(self) -> int:
        return sum(1 for u in self.data.users if u.role == UserRole.STUDENT)
