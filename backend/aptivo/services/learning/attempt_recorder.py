"""
Attempt Recorder

Persists a student's answer to a question and, when the answer is wrong,
files a mistake-log entry for later review.

The attempt insert is the primary write and its failure propagates to the
caller as PersistenceError. The mistake-log insert is secondary: it is
attempted only after the attempt exists and its failure is logged without
undoing or failing the recorded attempt.

Usage:
    recorder = AttemptRecorder(stores.attempts, stores.mistakes)
    attempt = await recorder.record_attempt(
        user_id, question_id, selected_option=1, is_correct=False,
        subject="Computer Science", topic="Algorithms",
    )
"""

import logging
from typing import Optional

from aptivo.enums.learning import MistakeType
from aptivo.middleware.error_handling import PersistenceError
from aptivo.models.learning import (
    Attempt,
    AttemptCreate,
    MistakeLogEntry,
    MistakeReviewItem,
)
from aptivo.stores.ports import AttemptStore, MistakeLogStore

logger = logging.getLogger(__name__)


class AttemptRecorder:
    """Writes attempts and their mistake-log side entries."""

    def __init__(self, attempts: AttemptStore, mistakes: MistakeLogStore):
        self.attempts = attempts
        self.mistakes = mistakes

    async def record_attempt(
        self,
        user_id: str,
        question_id: str,
        selected_option: int,
        is_correct: bool,
        subject: str = "",
        topic: Optional[str] = None,
    ) -> Attempt:
        """
        Record one answer event.

        is_correct is trusted as supplied; the recorder never re-checks it
        against the question. Repeat answers to the same question are all
        recorded.

        Args:
            user_id: Answering student.
            question_id: Question answered.
            selected_option: Zero-based option index chosen.
            is_correct: Correctness computed by the caller.
            subject: Question subject; becomes the mistake-log topic.
            topic: Question topic; becomes the mistake-log subtopic.

        Returns:
            The stored Attempt.

        Raises:
            PersistenceError: If the attempt itself could not be stored.
        """
        draft = AttemptCreate(
            student_id=user_id,
            question_id=question_id,
            selected_option=selected_option,
            is_correct=is_correct,
            subject=subject,
            topic=topic,
        )

        try:
            attempt = await self.attempts.insert_attempt(draft)
        except Exception as e:
            logger.error(f"Failed to record attempt for {user_id} on {question_id}: {e}")
            raise PersistenceError(
                "Failed to record attempt",
                details={"question_id": question_id},
            ) from e

        if not is_correct:
            await self._log_mistake(attempt, subject, topic)

        logger.debug(
            f"Recorded attempt {attempt.id} for {user_id} "
            f"({'correct' if is_correct else 'incorrect'})"
        )
        return attempt

    async def _log_mistake(self, attempt: Attempt, subject: str, topic: Optional[str]) -> None:
        entry = MistakeLogEntry(
            attempt_id=attempt.id,
            topic=subject,
            subtopic=topic,
            mistake_type=MistakeType.CONCEPT,
        )
        try:
            await self.mistakes.insert_mistake(entry)
        except Exception as e:
            logger.error(f"Failed to log mistake for attempt {attempt.id}: {e}")

    async def get_mistakes(self, user_id: str) -> list[MistakeReviewItem]:
        """Incorrect attempts with their questions, newest first."""
        return await self.attempts.list_mistakes(user_id)
