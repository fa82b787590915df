"""
Unit Tests for the Practice Session Service

These tests verify:
- Starting sessions and the session registry
- Background persistence of submitted answers
- Non-blocking notices when persistence fails
- Clock teardown when sessions end
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from aptivo.enums.learning import SessionPhase
from aptivo.middleware.error_handling import NotFoundError
from aptivo.services.background import drain_background_tasks
from aptivo.services.learning.attempt_recorder import AttemptRecorder
from aptivo.services.learning.session_service import (
    LOAD_FAILED_NOTICE,
    SAVE_FAILED_NOTICE,
    PracticeSessionService,
)


@pytest.fixture
def service(mock_backend) -> PracticeSessionService:
    recorder = AttemptRecorder(mock_backend, mock_backend)
    return PracticeSessionService(mock_backend, recorder, tick_seconds=60)


class TestStartSession:
    @pytest.mark.asyncio
    async def test_start_loads_topic_questions(self, service) -> None:
        view = await service.start_session("u-stu-1", "univ-1", "Algorithms")

        assert view.phase == SessionPhase.ANSWERING
        assert view.total_questions == 2
        assert view.current_question.id == "q1"
        assert service.active_count == 1
        await service.shutdown()

    @pytest.mark.asyncio
    async def test_unknown_topic_is_no_content(self, service) -> None:
        view = await service.start_session("u-stu-1", "univ-1", "Quantum Basket Weaving")

        assert view.phase == SessionPhase.NO_CONTENT
        assert view.current_question is None
        assert view.notices == []

    @pytest.mark.asyncio
    async def test_fetch_failure_is_no_content_with_notice(self, mock_backend) -> None:
        questions = MagicMock()
        questions.list_questions_by_topic = AsyncMock(side_effect=RuntimeError("timeout"))
        service = PracticeSessionService(questions, AttemptRecorder(mock_backend, mock_backend))

        view = await service.start_session("u-stu-1", "univ-1", "Algorithms")

        assert view.phase == SessionPhase.NO_CONTENT
        assert view.notices == [LOAD_FAILED_NOTICE]


class TestRegistry:
    @pytest.mark.asyncio
    async def test_other_users_cannot_see_session(self, service) -> None:
        view = await service.start_session("u-stu-1", "univ-1", "Algorithms")

        with pytest.raises(NotFoundError):
            await service.get_view(view.session_id, "u-stu-2")
        await service.shutdown()

    @pytest.mark.asyncio
    async def test_end_session_stops_clock(self, service) -> None:
        view = await service.start_session("u-stu-1", "univ-1", "Algorithms")
        clock = service._sessions[view.session_id].clock
        assert clock.running is True

        await service.end_session(view.session_id, "u-stu-1")

        assert clock.running is False
        assert service.active_count == 0
        with pytest.raises(NotFoundError):
            await service.get_view(view.session_id, "u-stu-1")


class TestTransitions:
    @pytest.mark.asyncio
    async def test_submit_persists_attempt_in_background(self, service, mock_backend) -> None:
        view = await service.start_session("u-stu-1", "univ-1", "Algorithms")
        sid = view.session_id

        await service.select_option(sid, "u-stu-1", 0)
        view = await service.submit(sid, "u-stu-1")
        await drain_background_tasks()

        assert view.feedback.is_correct is False
        assert view.feedback.correct_answer == 1
        attempts = await mock_backend.list_attempts("u-stu-1")
        assert len(attempts) == 1
        assert attempts[0].question_id == "q1"
        assert attempts[0].is_correct is False
        assert mock_backend.data.mistakes[0].subtopic == "Algorithms"
        await service.shutdown()

    @pytest.mark.asyncio
    async def test_persistence_failure_adds_notice_without_rollback(self, mock_backend) -> None:
        recorder = MagicMock()
        recorder.record_attempt = AsyncMock(side_effect=RuntimeError("insert rejected"))
        service = PracticeSessionService(mock_backend, recorder, tick_seconds=60)
        view = await service.start_session("u-stu-1", "univ-1", "Algorithms")
        sid = view.session_id

        await service.select_option(sid, "u-stu-1", 1)
        await service.submit(sid, "u-stu-1")
        await drain_background_tasks()
        view = await service.get_view(sid, "u-stu-1")

        assert view.score == 1
        assert view.current_streak == 1
        assert view.notices == [SAVE_FAILED_NOTICE]
        await service.shutdown()

    @pytest.mark.asyncio
    async def test_disabled_transitions_return_none(self, service) -> None:
        view = await service.start_session("u-stu-1", "univ-1", "Algorithms")
        sid = view.session_id

        assert await service.submit(sid, "u-stu-1") is None
        assert await service.advance(sid, "u-stu-1") is None
        assert await service.restart(sid, "u-stu-1") is None
        assert await service.select_option(sid, "u-stu-1", 9) is None
        await service.shutdown()

    @pytest.mark.asyncio
    async def test_full_run_and_restart(self, service) -> None:
        view = await service.start_session("u-stu-1", "univ-1", "Algorithms")
        sid = view.session_id
        live = service._sessions[sid]

        for option in (1, 2):
            await service.select_option(sid, "u-stu-1", option)
            await service.submit(sid, "u-stu-1")
            view = await service.advance(sid, "u-stu-1")
        await drain_background_tasks()

        assert view.phase == SessionPhase.FINISHED
        assert view.summary.score == 2
        assert view.summary.accuracy == 100
        assert live.clock.running is False

        view = await service.restart(sid, "u-stu-1")

        assert view.phase == SessionPhase.ANSWERING
        assert view.score == 0
        assert view.current_question.id == "q1"
        assert live.clock.running is True
        await service.shutdown()
        assert live.clock.running is False


class TestIdleSessions:
    @pytest.fixture
    def now(self) -> dict:
        return {"t": 1000.0}

    @pytest.fixture
    def idle_service(self, mock_backend, now) -> PracticeSessionService:
        recorder = AttemptRecorder(mock_backend, mock_backend)
        return PracticeSessionService(
            mock_backend,
            recorder,
            tick_seconds=60,
            idle_timeout=300,
            monotonic=lambda: now["t"],
        )

    @pytest.mark.asyncio
    async def test_abandoned_sessions_are_discarded(self, idle_service, now) -> None:
        views = [
            await idle_service.start_session("u-stu-1", "univ-1", "Algorithms") for _ in range(5)
        ]
        clocks = [idle_service._sessions[v.session_id].clock for v in views]
        assert all(clock.running for clock in clocks)

        now["t"] += 301
        discarded = idle_service.sweep_idle()

        assert discarded == 5
        assert idle_service.active_count == 0
        assert not any(clock.running for clock in clocks)
        await idle_service.shutdown()

    @pytest.mark.asyncio
    async def test_starting_a_session_sweeps_stale_ones(self, idle_service, now) -> None:
        stale = await idle_service.start_session("u-stu-1", "univ-1", "Algorithms")

        now["t"] += 301
        fresh = await idle_service.start_session("u-stu-1", "univ-1", "Algorithms")

        assert idle_service.active_count == 1
        with pytest.raises(NotFoundError):
            await idle_service.get_view(stale.session_id, "u-stu-1")
        assert (await idle_service.get_view(fresh.session_id, "u-stu-1")).phase == (
            SessionPhase.ANSWERING
        )
        await idle_service.shutdown()

    @pytest.mark.asyncio
    async def test_activity_keeps_session_alive(self, idle_service, now) -> None:
        view = await idle_service.start_session("u-stu-1", "univ-1", "Algorithms")

        for _ in range(3):
            now["t"] += 200
            await idle_service.select_option(view.session_id, "u-stu-1", 1)

        assert idle_service.sweep_idle() == 0
        assert idle_service.active_count == 1
        await idle_service.shutdown()

    @pytest.mark.asyncio
    async def test_shutdown_stops_reaper(self, idle_service) -> None:
        await idle_service.start_session("u-stu-1", "univ-1", "Algorithms")
        reaper = idle_service._reaper
        assert reaper is not None and not reaper.done()

        await idle_service.shutdown()
        await asyncio.sleep(0)

        assert reaper.cancelled() or reaper.done()


class TestQuestionScope:
    @pytest.mark.asyncio
    async def test_shared_questions_follow_university_ones(
        self, service, mock_backend, make_question
    ) -> None:
        shared = make_question("q-shared", topic="Algorithms").model_copy(
            update={"university_id": None}
        )
        await mock_backend.add_question(shared)

        view = await service.start_session("u-stu-1", "univ-2", "Algorithms")

        assert view.total_questions == 1
        assert view.current_question.id == "q-shared"
        await service.shutdown()
