"""
Unit Tests for the Practice Session State Machine

These tests verify:
- Loading and the no-content terminal state
- select/submit/advance/restart gating
- Score and streak bookkeeping and the terminal summary
- Optimistic local state when the attempt sink fails
- The elapsed-time clock
"""

import asyncio
from unittest.mock import MagicMock

import pytest

from aptivo.enums.learning import SessionPhase
from aptivo.services.learning.practice_session import (
    PracticeSession,
    SessionClock,
    format_elapsed,
)


@pytest.fixture
def questions(make_question):
    return [make_question("q1", 0), make_question("q2", 1), make_question("q3", 2)]


@pytest.fixture
def sink() -> MagicMock:
    return MagicMock()


@pytest.fixture
def session(questions, sink) -> PracticeSession:
    s = PracticeSession("univ-1", "Algorithms", attempt_sink=sink)
    s.load(questions)
    return s


def answer(session: PracticeSession, option: int) -> None:
    assert session.select(option)
    assert session.submit() is not None
    assert session.advance()


class TestLoading:
    def test_starts_loading(self) -> None:
        s = PracticeSession("univ-1", "Algorithms")

        assert s.phase == SessionPhase.LOADING
        assert s.current_question is None

    def test_load_enters_answering(self, session, questions) -> None:
        assert session.phase == SessionPhase.ANSWERING
        assert session.current_question == questions[0]

    def test_empty_set_is_no_content(self) -> None:
        s = PracticeSession("univ-1", "Empty Topic")
        s.load([])

        assert s.phase == SessionPhase.NO_CONTENT
        assert s.select(0) is False
        assert s.submit() is None
        assert s.advance() is False
        assert s.restart() is False
        assert s.summary() is None

    def test_load_only_once(self, session, make_question) -> None:
        assert session.load([make_question("other")]) is False
        assert session.total_questions == 3


class TestScenario:
    def test_correct_incorrect_correct(self, session) -> None:
        """Three answers: right, wrong, right."""
        answer(session, 0)
        answer(session, 0)
        answer(session, 2)

        assert session.phase == SessionPhase.FINISHED
        assert session.score == 2
        assert session.best_session_streak == 1
        assert session.current_session_streak == 1

        summary = session.summary()
        assert summary.accuracy == 67
        assert summary.total_questions == 3
        assert summary.best_streak == 1

    def test_streak_tracking(self, session) -> None:
        answer(session, 0)
        answer(session, 1)
        assert session.current_session_streak == 2
        answer(session, 0)

        assert session.current_session_streak == 0
        assert session.best_session_streak == 2

    @pytest.mark.parametrize(
        "choices",
        [
            pytest.param([0, 1, 2], id="all_correct"),
            pytest.param([3, 3, 3], id="all_wrong"),
            pytest.param([0, 3, 2], id="mixed"),
            pytest.param([3, 1, 2], id="late_run"),
        ],
    )
    def test_invariants_hold_throughout(self, session, choices) -> None:
        for choice in choices:
            assert session.best_session_streak >= session.current_session_streak
            session.select(choice)
            session.submit()
            assert session.best_session_streak >= session.current_session_streak
            session.advance()
            assert session.score <= session.current_index
            assert 0 <= session.current_index <= session.total_questions


class TestGating:
    def test_submit_requires_selection(self, session, sink) -> None:
        assert session.submit() is None
        assert session.is_submitted is False
        sink.assert_not_called()

    def test_select_ignored_after_submit(self, session) -> None:
        session.select(1)
        session.submit()
        before = (session.selected_option, session.score, session.is_submitted, session.phase)

        assert session.select(2) is False
        assert (session.selected_option, session.score, session.is_submitted, session.phase) == before

    def test_select_rejects_out_of_range(self, session) -> None:
        assert session.select(4) is False
        assert session.select(-1) is False
        assert session.selected_option is None

    def test_select_can_change_before_submit(self, session) -> None:
        session.select(1)
        session.select(0)

        assert session.selected_option == 0

    def test_double_submit_rejected(self, session, sink) -> None:
        session.select(0)
        session.submit()

        assert session.submit() is None
        assert session.score == 1
        sink.assert_called_once()

    def test_advance_requires_submit(self, session) -> None:
        session.select(0)

        assert session.advance() is False
        assert session.current_index == 0

    def test_restart_only_when_finished(self, session) -> None:
        assert session.restart() is False


class TestSubmit:
    def test_result_reveals_answer(self, session) -> None:
        session.select(2)
        result = session.submit()

        assert result.is_correct is False
        assert result.correct_answer == 0
        assert result.explanation == "Explanation for q1"
        assert session.phase == SessionPhase.SUBMITTED

    def test_sink_receives_draft(self, session, sink) -> None:
        session.select(0)
        session.submit()

        draft = sink.call_args[0][0]
        assert draft.question_id == "q1"
        assert draft.selected_option == 0
        assert draft.is_correct is True
        assert draft.subject == "Computer Science"
        assert draft.topic == "Algorithms"

    def test_sink_failure_keeps_local_score(self, session, sink) -> None:
        sink.side_effect = RuntimeError("insert rejected")
        session.select(0)

        result = session.submit()

        assert result.is_correct is True
        assert session.score == 1
        assert session.current_session_streak == 1
        assert session.is_submitted is True

    def test_advance_clears_selection(self, session) -> None:
        answer(session, 0)

        assert session.selected_option is None
        assert session.is_submitted is False
        assert session.last_result is None
        assert session.current_index == 1


class TestRestart:
    def test_restart_replays_same_questions(self, session, questions) -> None:
        order_before = [q.id for q in session.ordered_questions]
        for choice in (0, 1, 2):
            answer(session, choice)
        session.elapsed_seconds = 42

        assert session.restart() is True

        assert session.phase == SessionPhase.ANSWERING
        assert session.current_index == 0
        assert session.score == 0
        assert session.current_session_streak == 0
        assert session.best_session_streak == 0
        assert session.elapsed_seconds == 0
        assert session.selected_option is None
        assert [q.id for q in session.ordered_questions] == order_before


class TestTiming:
    def test_tick_counts_while_answering_and_submitted(self, session) -> None:
        session.tick()
        session.select(0)
        session.submit()
        session.tick()

        assert session.elapsed_seconds == 2

    def test_tick_stops_at_finish(self, session) -> None:
        for choice in (0, 1, 2):
            answer(session, choice)
        session.elapsed_seconds = 125

        session.tick()

        assert session.elapsed_seconds == 125
        assert session.summary().elapsed_display == "2:05"

    def test_tick_ignored_before_load(self) -> None:
        s = PracticeSession("univ-1", "Algorithms")
        s.tick()

        assert s.elapsed_seconds == 0

    @pytest.mark.parametrize(
        "seconds,expected",
        [
            pytest.param(0, "0:00", id="zero"),
            pytest.param(9, "0:09", id="single_digit"),
            pytest.param(65, "1:05", id="over_a_minute"),
            pytest.param(600, "10:00", id="ten_minutes"),
        ],
    )
    def test_format_elapsed(self, seconds, expected) -> None:
        assert format_elapsed(seconds) == expected

    @pytest.mark.asyncio
    async def test_clock_ticks_and_stops(self, session) -> None:
        clock = SessionClock(session, interval=0.01)
        clock.start()
        await asyncio.sleep(0.1)
        clock.stop()
        ticked = session.elapsed_seconds
        await asyncio.sleep(0.05)

        assert ticked > 0
        assert session.elapsed_seconds == ticked
        assert clock.running is False

    @pytest.mark.asyncio
    async def test_clock_does_not_start_without_questions(self) -> None:
        s = PracticeSession("univ-1", "Empty")
        s.load([])
        clock = SessionClock(s, interval=0.01)

        clock.start()

        assert clock.running is False


class TestView:
    def test_view_hides_answer_until_submitted(self, session) -> None:
        view = session.to_view()

        dumped = view.model_dump()
        assert "correct_answer" not in dumped["current_question"]
        assert "explanation" not in dumped["current_question"]
        assert view.feedback is None

    def test_view_after_submit_has_feedback(self, session) -> None:
        session.select(1)
        session.submit()

        view = session.to_view(["notice"])

        assert view.feedback.correct_answer == 0
        assert view.is_submitted is True
        assert view.notices == ["notice"]
