"""
Unit Tests for the Attempt Recorder

These tests verify:
- One attempt row per call, correctness trusted as supplied
- Mistake-log entries for incorrect answers only
- Mistake-log failures never fail the recorded attempt
- Attempt insert failures surface as PersistenceError
"""

import logging
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from aptivo.enums.learning import MistakeType
from aptivo.middleware.error_handling import PersistenceError
from aptivo.models.learning import Attempt, AttemptCreate, MistakeLogEntry
from aptivo.services.learning.attempt_recorder import AttemptRecorder


def _stored(draft: AttemptCreate) -> Attempt:
    return Attempt(
        id="att-1",
        submitted_at=datetime(2026, 3, 11, 12, 0, tzinfo=timezone.utc),
        **draft.model_dump(),
    )


@pytest.fixture
def attempt_store() -> MagicMock:
    store = MagicMock()
    store.insert_attempt = AsyncMock(side_effect=_stored)
    store.list_mistakes = AsyncMock(return_value=[])
    return store


@pytest.fixture
def mistake_store() -> MagicMock:
    store = MagicMock()
    store.insert_mistake = AsyncMock(return_value=None)
    return store


@pytest.fixture
def recorder(attempt_store, mistake_store) -> AttemptRecorder:
    return AttemptRecorder(attempt_store, mistake_store)


class TestRecordAttempt:
    """Primary write behaviour."""

    @pytest.mark.asyncio
    async def test_correct_attempt_inserts_one_row_and_no_mistake(
        self, recorder, attempt_store, mistake_store
    ) -> None:
        attempt = await recorder.record_attempt(
            "u-stu-1", "q1", 1, True, subject="Computer Science", topic="Algorithms"
        )

        attempt_store.insert_attempt.assert_awaited_once()
        mistake_store.insert_mistake.assert_not_awaited()
        assert attempt.id == "att-1"
        assert attempt.is_correct is True
        assert attempt.student_id == "u-stu-1"

    @pytest.mark.asyncio
    async def test_correctness_is_trusted_not_recomputed(self, recorder, attempt_store) -> None:
        """The recorder stores whatever correctness the caller computed."""
        await recorder.record_attempt("u-stu-1", "q1", 3, True)

        draft = attempt_store.insert_attempt.call_args[0][0]
        assert draft.selected_option == 3
        assert draft.is_correct is True

    @pytest.mark.asyncio
    async def test_insert_failure_raises_persistence_error(
        self, recorder, attempt_store, mistake_store
    ) -> None:
        attempt_store.insert_attempt = AsyncMock(side_effect=RuntimeError("connection reset"))

        with pytest.raises(PersistenceError) as exc_info:
            await recorder.record_attempt("u-stu-1", "q1", 0, False)

        assert exc_info.value.status_code == 502
        assert exc_info.value.details == {"question_id": "q1"}
        mistake_store.insert_mistake.assert_not_awaited()


class TestMistakeLogging:
    """Secondary write behaviour."""

    @pytest.mark.asyncio
    async def test_incorrect_attempt_logs_concept_mistake(self, recorder, mistake_store) -> None:
        await recorder.record_attempt(
            "u-stu-1", "q1", 0, False, subject="Computer Science", topic="Algorithms"
        )

        mistake_store.insert_mistake.assert_awaited_once()
        entry: MistakeLogEntry = mistake_store.insert_mistake.call_args[0][0]
        assert entry.attempt_id == "att-1"
        assert entry.topic == "Computer Science"
        assert entry.subtopic == "Algorithms"
        assert entry.mistake_type == MistakeType.CONCEPT

    @pytest.mark.asyncio
    async def test_mistake_log_failure_is_swallowed(self, recorder, mistake_store, caplog) -> None:
        """A failed mistake-log write still resolves with the recorded attempt."""
        mistake_store.insert_mistake = AsyncMock(side_effect=RuntimeError("mistake_log denied"))

        with caplog.at_level(logging.ERROR):
            attempt = await recorder.record_attempt("u-stu-1", "q1", 0, False)

        assert attempt.id == "att-1"
        assert attempt.is_correct is False
        assert "mistake_log denied" in caplog.text


class TestWithMockBackend:
    """Recorder wired to the in-process store."""

    @pytest.mark.asyncio
    async def test_reattempts_are_all_recorded(self, mock_backend) -> None:
        recorder = AttemptRecorder(mock_backend, mock_backend)

        for option in (0, 2, 1):
            await recorder.record_attempt(
                "u-stu-1", "q1", option, option == 1, subject="Computer Science", topic="Algorithms"
            )

        attempts = await mock_backend.list_attempts("u-stu-1")
        assert [a.selected_option for a in attempts] == [0, 2, 1]
        assert len({a.id for a in attempts}) == 3
        assert len(mock_backend.data.mistakes) == 2

    @pytest.mark.asyncio
    async def test_get_mistakes_joins_questions(self, mock_backend) -> None:
        recorder = AttemptRecorder(mock_backend, mock_backend)
        await recorder.record_attempt("u-stu-1", "q1", 0, False, topic="Algorithms")
        await recorder.record_attempt("u-stu-1", "q2", 2, True, topic="Algorithms")

        mistakes = await recorder.get_mistakes("u-stu-1")

        assert len(mistakes) == 1
        assert mistakes[0].question.id == "q1"
        assert mistakes[0].question.correct_answer == 1
