"""
Practice Session State Machine

One student's run through the questions of a single topic.

    LOADING ──load──► ANSWERING ◄──advance── SUBMITTED
       │                 │  ▲                   ▲
       │                 │  └───restart──┐      │
       ▼                 └────submit─────┼──────┘
    NO_CONTENT                       FINISHED (after the last advance)

Transitions that are not legal in the current phase are disabled rather
than erroneous: they leave the session untouched and return a falsy value.

Local bookkeeping (score, streaks) is optimistic. submit() updates it
before handing the attempt to the injected sink, and nothing the sink does
afterwards can roll it back.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, Optional, Sequence
from uuid import uuid4

from aptivo.config import settings
from aptivo.enums.learning import SessionPhase
from aptivo.models.learning import (
    Question,
    SessionSummary,
    SessionView,
    SubmitFeedback,
)
from aptivo.services.learning.analytics import calculate_accuracy

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AttemptDraft:
    """What a submit hands to the attempt sink."""

    question_id: str
    selected_option: int
    is_correct: bool
    subject: str
    topic: Optional[str]


@dataclass(frozen=True)
class SubmitResult:
    """Outcome of a submit, including the revealed answer."""

    question_id: str
    selected_option: int
    is_correct: bool
    correct_answer: int
    explanation: str

    def to_feedback(self) -> SubmitFeedback:
        return SubmitFeedback(
            question_id=self.question_id,
            selected_option=self.selected_option,
            is_correct=self.is_correct,
            correct_answer=self.correct_answer,
            explanation=self.explanation,
        )


AttemptSink = Callable[[AttemptDraft], None]


def format_elapsed(seconds: int) -> str:
    """Format seconds as minutes:seconds with two-digit seconds (e.g. 2:05)."""
    minutes, secs = divmod(max(0, seconds), 60)
    return f"{minutes}:{secs:02d}"


class PracticeSession:
    """
    Client-visible practice state for one topic.

    The question list is fetched once and kept in order for the life of
    the session; restart() replays the same sequence.
    """

    def __init__(
        self,
        university_id: str,
        topic: str,
        attempt_sink: Optional[AttemptSink] = None,
        session_id: Optional[str] = None,
    ):
        self.session_id = session_id or str(uuid4())
        self.university_id = university_id
        self.topic = topic
        self.attempt_sink = attempt_sink

        self.phase = SessionPhase.LOADING
        self.ordered_questions: tuple[Question, ...] = ()
        self.current_index = 0
        self.selected_option: Optional[int] = None
        self.is_submitted = False
        self.last_result: Optional[SubmitResult] = None
        self.score = 0
        self.current_session_streak = 0
        self.best_session_streak = 0
        self.elapsed_seconds = 0

    # =========================================================================
    # State
    # =========================================================================

    @property
    def total_questions(self) -> int:
        return len(self.ordered_questions)

    @property
    def current_question(self) -> Optional[Question]:
        if self.phase in (SessionPhase.ANSWERING, SessionPhase.SUBMITTED):
            return self.ordered_questions[self.current_index]
        return None

    @property
    def is_timing(self) -> bool:
        """The clock runs while a question is on screen, answered or not."""
        return self.phase in (SessionPhase.ANSWERING, SessionPhase.SUBMITTED)

    # =========================================================================
    # Transitions
    # =========================================================================

    def load(self, questions: Sequence[Question]) -> bool:
        """
        Install the fetched question set.

        An empty set moves the session to NO_CONTENT, a terminal state that
        never enters ANSWERING and is distinct from FINISHED.
        """
        if self.phase != SessionPhase.LOADING:
            return False

        self.ordered_questions = tuple(questions)
        if not self.ordered_questions:
            self.phase = SessionPhase.NO_CONTENT
            logger.info(f"Session {self.session_id}: no questions for topic {self.topic!r}")
        else:
            self.phase = SessionPhase.ANSWERING
        return True

    def select(self, option_index: int) -> bool:
        """Choose an answer for the current question; only while answering."""
        if self.phase != SessionPhase.ANSWERING or self.is_submitted:
            return False
        question = self.current_question
        if option_index < 0 or option_index >= len(question.options):
            return False
        self.selected_option = option_index
        return True

    def submit(self) -> Optional[SubmitResult]:
        """
        Lock in the selected option.

        Requires a selection and an unsubmitted question. Updates score and
        streaks, then hands the attempt to the sink.

        Returns:
            SubmitResult, or None if submitting is not currently allowed.
        """
        if (
            self.phase != SessionPhase.ANSWERING
            or self.is_submitted
            or self.selected_option is None
        ):
            return None

        question = self.current_question
        is_correct = self.selected_option == question.correct_answer

        self.is_submitted = True
        self.phase = SessionPhase.SUBMITTED

        if is_correct:
            self.score += 1
            self.current_session_streak += 1
            self.best_session_streak = max(self.best_session_streak, self.current_session_streak)
        else:
            self.current_session_streak = 0

        self.last_result = SubmitResult(
            question_id=question.id,
            selected_option=self.selected_option,
            is_correct=is_correct,
            correct_answer=question.correct_answer,
            explanation=question.explanation,
        )

        if self.attempt_sink is not None:
            draft = AttemptDraft(
                question_id=question.id,
                selected_option=self.selected_option,
                is_correct=is_correct,
                subject=question.subject,
                topic=question.topic,
            )
            try:
                self.attempt_sink(draft)
            except Exception as e:
                logger.error(f"Session {self.session_id}: attempt sink failed: {e}")

        return self.last_result

    def advance(self) -> bool:
        """Move past a submitted question; the last one finishes the session."""
        if self.phase != SessionPhase.SUBMITTED:
            return False

        self.selected_option = None
        self.is_submitted = False
        self.last_result = None
        self.current_index += 1

        if self.current_index >= self.total_questions:
            self.phase = SessionPhase.FINISHED
            logger.info(
                f"Session {self.session_id} finished: {self.score}/{self.total_questions} "
                f"in {format_elapsed(self.elapsed_seconds)}"
            )
        else:
            self.phase = SessionPhase.ANSWERING
        return True

    def restart(self) -> bool:
        """Replay the same questions in the same order; only from FINISHED."""
        if self.phase != SessionPhase.FINISHED:
            return False

        self.current_index = 0
        self.selected_option = None
        self.is_submitted = False
        self.last_result = None
        self.score = 0
        self.current_session_streak = 0
        self.best_session_streak = 0
        self.elapsed_seconds = 0
        self.phase = SessionPhase.ANSWERING
        return True

    def tick(self) -> None:
        """Count one second of session time."""
        if self.is_timing:
            self.elapsed_seconds += 1

    # =========================================================================
    # Views
    # =========================================================================

    def summary(self) -> Optional[SessionSummary]:
        """Terminal summary, available once the session is finished."""
        if self.phase != SessionPhase.FINISHED:
            return None
        return SessionSummary(
            total_questions=self.total_questions,
            score=self.score,
            accuracy=calculate_accuracy(self.score, self.total_questions),
            elapsed_seconds=self.elapsed_seconds,
            elapsed_display=format_elapsed(self.elapsed_seconds),
            best_streak=self.best_session_streak,
        )

    def to_view(self, notices: Optional[list[str]] = None) -> SessionView:
        """Snapshot for the client; the answer is only present in feedback."""
        question = self.current_question
        return SessionView(
            session_id=self.session_id,
            university_id=self.university_id,
            topic=self.topic,
            phase=self.phase,
            total_questions=self.total_questions,
            current_index=self.current_index,
            current_question=question.to_public() if question else None,
            selected_option=self.selected_option,
            is_submitted=self.is_submitted,
            feedback=self.last_result.to_feedback() if self.last_result else None,
            score=self.score,
            current_streak=self.current_session_streak,
            best_streak=self.best_session_streak,
            elapsed_seconds=self.elapsed_seconds,
            summary=self.summary(),
            notices=list(notices or []),
        )


class SessionClock:
    """
    Once-per-interval ticker for a PracticeSession.

    Stops on its own when the session leaves the timed phases. Must be
    cancelled with stop() when the session is abandoned so ticks never leak
    into a later session.
    """

    def __init__(self, session: PracticeSession, interval: Optional[float] = None):
        self.session = session
        self.interval = interval if interval is not None else settings.SESSION_TICK_SECONDS
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running or not self.session.is_timing:
            return
        self._task = asyncio.get_running_loop().create_task(self._run())

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            if not self.session.is_timing:
                break
            self.session.tick()

    def stop(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None
