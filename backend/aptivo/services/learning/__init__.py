"""
Learning core services: attempt recording, analytics, streaks and
practice sessions.
"""

from aptivo.services.learning.analytics import AnalyticsService
from aptivo.services.learning.attempt_recorder import AttemptRecorder
from aptivo.services.learning.practice_session import PracticeSession, SessionClock
from aptivo.services.learning.session_service import PracticeSessionService
from aptivo.services.learning.streak_tracking import StreakTrackingService

__all__ = [
    "AnalyticsService",
    "AttemptRecorder",
    "PracticeSession",
    "PracticeSessionService",
    "SessionClock",
    "StreakTrackingService",
]
