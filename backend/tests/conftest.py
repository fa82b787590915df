"""
Shared Test Fixtures and Configuration

This module provides pytest fixtures used across the unit tests.
"""

import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest
from dotenv import load_dotenv

# Load .env file from project root BEFORE any fixtures run
_project_root = Path(__file__).parent.parent.parent
_env_file = _project_root / ".env"
if _env_file.exists():
    load_dotenv(_env_file)

# Tests always run against the in-process mock backend, regardless of .env
os.environ.update(
    {
        "REMOTE_AUTH_URL": "",
        "REMOTE_AUTH_API_KEY": "",
        "MOCK_STORE_PATH": "",
        "DEFAULT_TIMEZONE": "UTC",
        "STREAK_DEFAULT_THRESHOLD": "5",
    }
)

from aptivo.enums.learning import InstitutionStatus, UserRole  # noqa: E402
from aptivo.models.learning import Attempt, Question  # noqa: E402
from aptivo.stores.mock import (  # noqa: E402
    MockAccount,
    MockBackend,
    MockInstitution,
    seed_snapshot,
)


# ============================================================================
# Time
# ============================================================================


@pytest.fixture
def fixed_now() -> datetime:
    """A fixed instant (Wednesday 2026-03-11 15:30 UTC)."""
    return datetime(2026, 3, 11, 15, 30, tzinfo=timezone.utc)


# ============================================================================
# Factories
# ============================================================================


@pytest.fixture
def make_attempt() -> Callable[..., Attempt]:
    """Build Attempt records with sensible defaults."""
    counter = {"n": 0}

    def _make(
        submitted_at: datetime,
        is_correct: bool = True,
        topic: Optional[str] = "Algorithms",
        student_id: str = "u-stu-1",
        question_id: str = "q1",
    ) -> Attempt:
        counter["n"] += 1
        return Attempt(
            id=f"att-{counter['n']}",
            student_id=student_id,
            question_id=question_id,
            selected_option=1 if is_correct else 0,
            is_correct=is_correct,
            subject="Computer Science",
            topic=topic,
            submitted_at=submitted_at,
        )

    return _make


@pytest.fixture
def make_question() -> Callable[..., Question]:
    def _make(qid: str, correct_answer: int = 0, topic: str = "Algorithms") -> Question:
        return Question(
            id=qid,
            university_id="univ-1",
            subject="Computer Science",
            topic=topic,
            text=f"Question {qid}",
            options=["A", "B", "C", "D"],
            correct_answer=correct_answer,
            explanation=f"Explanation for {qid}",
        )

    return _make


# ============================================================================
# Mock backend
# ============================================================================


@pytest.fixture
def mock_backend(fixed_now: datetime) -> MockBackend:
    """
    Seeded in-memory backend with one approved institution and a student.

    Accounts:
        Admin@123 / Admin@123         super admin
        admin@inst.edu / Password@123 institution admin (inst-1)
        s1@inst.edu / Student@123     student u-stu-1 (inst-1)
    """
    snapshot = seed_snapshot()
    snapshot.institutions.append(
        MockInstitution(
            id="inst-1",
            name="Test Institute",
            domain="inst.edu",
            status=InstitutionStatus.APPROVED,
        )
    )
    snapshot.users.extend(
        [
            MockAccount(
                id="u-admin-inst-1",
                email="admin@inst.edu",
                name="Test Institute Admin",
                role=UserRole.ADMIN,
                institution_id="inst-1",
                password="Password@123",
            ),
            MockAccount(
                id="u-stu-1",
                email="s1@inst.edu",
                name="Student One",
                role=UserRole.STUDENT,
                institution_id="inst-1",
                timezone="UTC",
                password="Student@123",
            ),
        ]
    )
    return MockBackend(snapshot=snapshot, clock=lambda: fixed_now)


# ============================================================================
# Mock Fixtures
# ============================================================================


@pytest.fixture
def mock_redis() -> MagicMock:
    """
    Create a mock Redis client backed by a dict.

    Records TTLs in `mock.ttls` so tests can assert on expirations.
    """
    storage: dict[str, Any] = {}
    ttls: dict[str, int] = {}

    async def _get(key):
        return storage.get(key)

    async def _setex(key, ttl, value):
        storage[key] = value
        ttls[key] = ttl
        return True

    async def _delete(*keys):
        removed = 0
        for key in keys:
            if storage.pop(key, None) is not None:
                removed += 1
            ttls.pop(key, None)
        return removed

    async def _expire(key, ttl):
        if key in storage:
            ttls[key] = ttl
            return True
        return False

    async def _exists(key):
        return int(key in storage)

    mock = MagicMock()
    mock.storage = storage
    mock.ttls = ttls
    mock.get = AsyncMock(side_effect=_get)
    mock.setex = AsyncMock(side_effect=_setex)
    mock.delete = AsyncMock(side_effect=_delete)
    mock.expire = AsyncMock(side_effect=_expire)
    mock.exists = AsyncMock(side_effect=_exists)
    mock.ping = AsyncMock(return_value=True)
    return mock


@pytest.fixture
def mock_db_session() -> MagicMock:
    """Create a mock database session for unit testing."""
    mock = MagicMock()
    mock.execute = AsyncMock()
    mock.commit = AsyncMock()
    mock.rollback = AsyncMock()
    mock.close = AsyncMock()
    return mock
