"""
Streak Tracking Service

Derives "is today a streak day" from today's attempt count and the
user's threshold, and exposes current/longest streak for the dashboard.

Responsibilities:
- Derive streak status from fetched StreakState and TodayProgress
- Clamp the displayed longest streak so it never reads below the current one
- Keep the stored timezone in sync with the detected one (fire-and-forget)
- Compute streak counters from raw attempt history (used by the mock backend,
  where no external process maintains them)

Usage:
    from aptivo.services.learning.streak_tracking import StreakTrackingService

    service = StreakTrackingService(streak_store)
    status = await service.get_streak_status(user_id, tz)
"""

import logging
from collections import Counter
from datetime import date, timedelta, tzinfo
from typing import Iterable, Optional

from aptivo.models.learning import Attempt, StreakState, StreakStatus, TodayProgress
from aptivo.services.background import fire_and_forget
from aptivo.services.learning.analytics import calculate_accuracy
from aptivo.services.learning.timeutils import local_date
from aptivo.stores.ports import StreakStore

logger = logging.getLogger(__name__)


def is_streak_day(attempt_count: int, threshold: int) -> bool:
    """A day qualifies once its attempt count reaches the threshold."""
    return attempt_count >= threshold


def remaining_to_qualify(attempt_count: int, threshold: int) -> int:
    """Attempts still needed today; never negative."""
    return max(0, threshold - attempt_count)


def derive_streak_status(
    state: StreakState,
    today: TodayProgress,
    timezone_sync_scheduled: bool = False,
) -> StreakStatus:
    """
    Combine stored counters with today's progress.

    The fetched is_streak_day flag is ignored in favour of recomputing it
    from the count and the threshold, so both always agree.

    Args:
        state: Stored streak counters for the user.
        today: Attempt count for the current local day.
        timezone_sync_scheduled: Passed through for the response.

    Returns:
        StreakStatus ready for the dashboard widget.
    """
    count = today.attempt_count
    threshold = state.threshold
    progress = min(100, calculate_accuracy(count, threshold))
    return StreakStatus(
        current_streak=state.current_streak,
        displayed_longest=max(state.longest_streak, state.current_streak),
        attempt_count=count,
        threshold=threshold,
        is_streak_day=is_streak_day(count, threshold),
        remaining_to_qualify=remaining_to_qualify(count, threshold),
        progress_percent=progress,
        timezone_sync_scheduled=timezone_sync_scheduled,
    )


# =============================================================================
# Streak computation from attempt history
# =============================================================================


def daily_attempt_counts(attempts: Iterable[Attempt], tz: tzinfo) -> Counter:
    """Number of attempts per local calendar day."""
    return Counter(local_date(a.submitted_at, tz) for a in attempts)


def qualifying_days(attempts: Iterable[Attempt], tz: tzinfo, threshold: int) -> list[date]:
    """
    Local dates whose attempt count met the threshold.

    Returns:
        Qualifying dates in descending order (most recent first).
    """
    counts = daily_attempt_counts(attempts, tz)
    return sorted((d for d, n in counts.items() if n >= threshold), reverse=True)


def calculate_current_streak(days: list[date], today: date) -> int:
    """
    Count consecutive qualifying days ending today or yesterday.

    The streak stays alive while today is still in progress: if the most
    recent qualifying day is yesterday, the run up to yesterday counts.

    Args:
        days: Qualifying dates in descending order.
        today: Current local date.
    """
    if not days:
        return 0

    most_recent = days[0]
    if most_recent != today and most_recent != today - timedelta(days=1):
        return 0

    streak = 0
    expected = most_recent
    for day in days:
        if day == expected:
            streak += 1
            expected = expected - timedelta(days=1)
        elif day < expected:
            break

    return streak


def calculate_longest_streak(days: list[date]) -> int:
    """Length of the longest run of consecutive qualifying days."""
    if not days:
        return 0

    sorted_days = sorted(set(days))
    longest = 1
    current = 1
    for i in range(1, len(sorted_days)):
        if sorted_days[i] == sorted_days[i - 1] + timedelta(days=1):
            current += 1
            longest = max(longest, current)
        else:
            current = 1

    return longest


# =============================================================================
# Service
# =============================================================================


class StreakTrackingService:
    """Loads streak records and derives the dashboard streak status."""

    def __init__(self, streaks: StreakStore):
        self.streaks = streaks

    async def get_streak_status(
        self,
        user_id: str,
        tz: tzinfo,
        detected_timezone: Optional[str] = None,
    ) -> StreakStatus:
        """
        Load StreakState and TodayProgress for a user and derive status.

        A failed read renders as a zero streak instead of an error. When a
        detected timezone is given, a timezone sync is scheduled in the
        background if it differs from the stored one; a state that could not
        be loaded is never used for that comparison.
        """
        state_loaded = True
        try:
            state = await self.streaks.get_streak_state(user_id)
        except Exception as e:
            logger.warning(f"Failed to load streak state for {user_id}, rendering zero state: {e}")
            state = StreakState(user_id=user_id)
            state_loaded = False

        try:
            today = await self.streaks.get_today_progress(user_id, tz)
        except Exception as e:
            logger.warning(f"Failed to load today's progress for {user_id}, rendering zero state: {e}")
            today = TodayProgress(attempt_count=0, is_streak_day=False)

        scheduled = False
        if detected_timezone and state_loaded:
            scheduled = self.sync_timezone(user_id, state.timezone, detected_timezone)

        return derive_streak_status(state, today, timezone_sync_scheduled=scheduled)

    def sync_timezone(
        self,
        user_id: str,
        stored_timezone: Optional[str],
        detected_timezone: str,
    ) -> bool:
        """
        Fire a timezone update when the stored value is stale.

        Never blocks and never raises: the update runs as a background task
        whose failure is only logged.

        Returns:
            True if an update was scheduled.
        """
        if not detected_timezone or stored_timezone == detected_timezone:
            return False

        logger.info(f"Syncing timezone for {user_id}: {stored_timezone} -> {detected_timezone}")
        fire_and_forget(
            self.streaks.update_timezone(user_id, detected_timezone),
            f"timezone sync for {user_id}",
        )
        return True
