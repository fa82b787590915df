"""
Practice Session Service

Hosts live practice sessions for the HTTP API.

Responsibilities:
- Start a session: fetch the topic's questions once and load them
- Keep a registry of live sessions keyed by id and owned by one user
- Persist every submitted answer through the AttemptRecorder as a
  fire-and-forget task; failures become non-blocking notices
- Drive each session's clock and tear it down when the session ends
- Reap sessions the client abandoned without ending them: a session not
  touched for SESSION_IDLE_TIMEOUT_SECONDS is discarded and its clock stopped

Usage:
    from aptivo.services.learning.session_service import PracticeSessionService

    service = PracticeSessionService(stores.questions, recorder)
    view = await service.start_session(user_id, "univ-1", "Algorithms")
    view = await service.select_option(view.session_id, user_id, 1)
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Optional

from aptivo.config import settings
from aptivo.middleware.error_handling import NotFoundError
from aptivo.models.learning import SessionView
from aptivo.services.background import fire_and_forget
from aptivo.services.learning.attempt_recorder import AttemptRecorder
from aptivo.services.learning.practice_session import (
    AttemptDraft,
    PracticeSession,
    SessionClock,
)
from aptivo.stores.ports import QuestionStore

logger = logging.getLogger(__name__)

SAVE_FAILED_NOTICE = "Your answer could not be saved. Your score is unaffected."
LOAD_FAILED_NOTICE = "Questions could not be loaded for this topic."


@dataclass
class LiveSession:
    """A registered session with its owner, clock and pending notices."""

    session: PracticeSession
    owner_id: str
    clock: SessionClock
    notices: list[str] = field(default_factory=list)
    last_seen: float = 0.0

    def view(self) -> SessionView:
        return self.session.to_view(self.notices)


class PracticeSessionService:
    """
    Registry and orchestration for live practice sessions.

    Transition methods return None when the transition is disabled in the
    session's current phase; the caller decides how to report that.
    """

    def __init__(
        self,
        questions: QuestionStore,
        recorder: AttemptRecorder,
        tick_seconds: Optional[float] = None,
        idle_timeout: Optional[float] = None,
        monotonic: Callable[[], float] = time.monotonic,
    ):
        self.questions = questions
        self.recorder = recorder
        self.tick_seconds = tick_seconds
        self.idle_timeout = (
            idle_timeout if idle_timeout is not None else settings.SESSION_IDLE_TIMEOUT_SECONDS
        )
        self.monotonic = monotonic
        self._sessions: dict[str, LiveSession] = {}
        self._reaper: Optional[asyncio.Task] = None

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def start_session(self, owner_id: str, university_id: str, topic: str) -> SessionView:
        """
        Create a session for a topic and load its questions.

        A failed question fetch is rendered as the no-content state with a
        notice rather than an error.
        """
        self.sweep_idle()

        session = PracticeSession(university_id=university_id, topic=topic)
        live = LiveSession(
            session=session,
            owner_id=owner_id,
            clock=SessionClock(session, self.tick_seconds),
            last_seen=self.monotonic(),
        )
        session.attempt_sink = self._make_sink(live)

        try:
            questions = await self.questions.list_questions_by_topic(university_id, topic)
        except Exception as e:
            logger.warning(f"Failed to load questions for {university_id}/{topic}: {e}")
            questions = []
            live.notices.append(LOAD_FAILED_NOTICE)

        session.load(questions)
        live.clock.start()

        self._sessions[session.session_id] = live
        self._ensure_reaper()
        logger.info(
            f"Started practice session {session.session_id} for {owner_id} "
            f"({topic!r}, {session.total_questions} questions)"
        )
        return live.view()

    async def end_session(self, session_id: str, owner_id: str) -> None:
        """Discard a session and cancel its clock."""
        live = self._get(session_id, owner_id)
        live.clock.stop()
        del self._sessions[session_id]
        logger.info(f"Ended practice session {session_id}")

    def sweep_idle(self) -> int:
        """
        Discard sessions idle for longer than the timeout.

        Returns:
            Number of sessions discarded.
        """
        cutoff = self.monotonic() - self.idle_timeout
        idle = [sid for sid, live in self._sessions.items() if live.last_seen < cutoff]
        for sid in idle:
            self._sessions.pop(sid).clock.stop()
        if idle:
            logger.info(f"Discarded {len(idle)} idle practice session(s)")
        return len(idle)

    async def shutdown(self) -> None:
        """Stop the reaper and every clock, and forget all sessions."""
        if self._reaper is not None and not self._reaper.done():
            self._reaper.cancel()
        self._reaper = None
        for live in self._sessions.values():
            live.clock.stop()
        count = len(self._sessions)
        self._sessions.clear()
        if count:
            logger.info(f"Discarded {count} live practice sessions")

    @property
    def active_count(self) -> int:
        return len(self._sessions)

    # =========================================================================
    # Transitions
    # =========================================================================

    async def get_view(self, session_id: str, owner_id: str) -> SessionView:
        return self._get(session_id, owner_id).view()

    async def select_option(
        self, session_id: str, owner_id: str, option_index: int
    ) -> Optional[SessionView]:
        live = self._get(session_id, owner_id)
        if not live.session.select(option_index):
            return None
        return live.view()

    async def submit(self, session_id: str, owner_id: str) -> Optional[SessionView]:
        live = self._get(session_id, owner_id)
        if live.session.submit() is None:
            return None
        return live.view()

    async def advance(self, session_id: str, owner_id: str) -> Optional[SessionView]:
        live = self._get(session_id, owner_id)
        if not live.session.advance():
            return None
        if not live.session.is_timing:
            live.clock.stop()
        return live.view()

    async def restart(self, session_id: str, owner_id: str) -> Optional[SessionView]:
        live = self._get(session_id, owner_id)
        if not live.session.restart():
            return None
        live.notices.clear()
        live.clock.stop()
        live.clock.start()
        return live.view()

    # =========================================================================
    # Helpers
    # =========================================================================

    def _get(self, session_id: str, owner_id: str) -> LiveSession:
        self.sweep_idle()
        live = self._sessions.get(session_id)
        if live is None or live.owner_id != owner_id:
            raise NotFoundError(f"Practice session {session_id} not found")
        live.last_seen = self.monotonic()
        return live

    def _ensure_reaper(self) -> None:
        if self._reaper is None or self._reaper.done():
            self._reaper = asyncio.get_running_loop().create_task(self._reap())

    async def _reap(self) -> None:
        """Sweep periodically so abandoned clocks stop even without new requests."""
        interval = max(1.0, self.idle_timeout / 2)
        while self._sessions:
            await asyncio.sleep(interval)
            self.sweep_idle()

    def _make_sink(self, live: LiveSession):
        """Route submitted answers to the recorder without awaiting them."""

        def on_error(exc: BaseException) -> None:
            live.notices.append(SAVE_FAILED_NOTICE)

        def sink(draft: AttemptDraft) -> None:
            fire_and_forget(
                self.recorder.record_attempt(
                    live.owner_id,
                    draft.question_id,
                    draft.selected_option,
                    draft.is_correct,
                    subject=draft.subject,
                    topic=draft.topic,
                ),
                f"attempt {draft.question_id} for {live.owner_id}",
                on_error=on_error,
            )

        return sink
