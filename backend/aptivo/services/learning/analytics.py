"""
Learning Analytics Service

Aggregates attempt history into the figures shown on the student,
institution and super-admin dashboards.

Responsibilities:
- Overall accuracy and per-topic mastery rollups
- 7-day accuracy trend (students) and attempt-count trend (institutions)
- Hour-of-day traffic over the trailing 24 hours (global)
- Struggling-topic detection and the recent-activity feed

All aggregation helpers are pure functions over attempt lists so they can be
tested without a store. Empty input never raises: rates default to 0 and
day/hour buckets are zero-filled.

Usage:
    from aptivo.services.learning.analytics import AnalyticsService

    service = AnalyticsService(stores)
    analytics = await service.get_student_analytics(user_id, tz)
"""

import logging
import math
from collections import defaultdict
from datetime import datetime, timedelta, tzinfo
from typing import Awaitable, Iterable, Optional, Sequence, TypeVar

from aptivo.config import settings
from aptivo.models.learning import (
    Attempt,
    EngagementPoint,
    GlobalAnalytics,
    HourlyTraffic,
    InstitutionAnalytics,
    RecentAttempt,
    StudentAnalytics,
    TopicStat,
    TrendPoint,
)
from aptivo.services.learning.timeutils import local_date, to_local, utc_now
from aptivo.stores import StoreBundle

logger = logging.getLogger(__name__)

T = TypeVar("T")

WEEKDAY_NAMES = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")


# =============================================================================
# Pure aggregation helpers
# =============================================================================


def round_half_up(value: float) -> int:
    """Round .5 upwards, unlike Python's banker's rounding."""
    return int(math.floor(value + 0.5))


def calculate_accuracy(correct: int, total: int) -> int:
    """
    Percentage of correct attempts.

    Returns:
        round(100 * correct / total), or 0 when total is 0.
    """
    if total <= 0:
        return 0
    return round_half_up(correct * 100 / total)


def count_correct(attempts: Iterable[Attempt]) -> int:
    return sum(1 for a in attempts if a.is_correct)


def build_topic_stats(attempts: Iterable[Attempt], fallback_label: str) -> list[TopicStat]:
    """
    Group attempts by topic and compute per-topic accuracy.

    Attempts without a topic are bucketed under fallback_label. Topics are
    returned in order of first appearance.
    """
    totals: dict[str, list[int]] = {}
    for attempt in attempts:
        name = attempt.topic or fallback_label
        bucket = totals.setdefault(name, [0, 0])
        bucket[0] += 1
        if attempt.is_correct:
            bucket[1] += 1

    return [
        TopicStat(name=name, total=total, accuracy=calculate_accuracy(correct, total))
        for name, (total, correct) in totals.items()
    ]


def select_struggling_topics(
    topics: Sequence[TopicStat],
    accuracy_threshold: int,
    limit: int,
) -> list[TopicStat]:
    """Topics below the accuracy threshold, weakest first, capped at limit."""
    struggling = [t for t in topics if t.accuracy < accuracy_threshold]
    struggling.sort(key=lambda t: t.accuracy)
    return struggling[:limit]


def _day_buckets(now: datetime, tz: tzinfo, days: int) -> list:
    """Local dates for today and the preceding days, oldest first."""
    today = local_date(now, tz)
    return [today - timedelta(days=days - 1 - i) for i in range(days)]


def build_daily_trend(
    attempts: Iterable[Attempt],
    now: datetime,
    tz: tzinfo,
    days: int = 7,
) -> list[TrendPoint]:
    """
    Accuracy per local calendar day for today and the preceding days.

    Always returns exactly `days` buckets, oldest to newest, zero-filled
    when a day has no attempts. Attempts are matched on their local
    submission date, not time.
    """
    dates = _day_buckets(now, tz, days)
    stats: dict = defaultdict(lambda: [0, 0])
    for attempt in attempts:
        bucket = stats[local_date(attempt.submitted_at, tz)]
        bucket[0] += 1
        if attempt.is_correct:
            bucket[1] += 1

    trend = []
    for day in dates:
        total, correct = stats.get(day, (0, 0))
        trend.append(
            TrendPoint(
                name=WEEKDAY_NAMES[day.weekday()],
                date=day,
                accuracy=calculate_accuracy(correct, total),
                total=total,
            )
        )
    return trend


def build_engagement_trend(
    attempts: Iterable[Attempt],
    now: datetime,
    tz: tzinfo,
    days: int = 7,
) -> list[EngagementPoint]:
    """Attempt counts per local calendar day; same buckets as build_daily_trend."""
    dates = _day_buckets(now, tz, days)
    counts: dict = defaultdict(int)
    for attempt in attempts:
        counts[local_date(attempt.submitted_at, tz)] += 1

    return [
        EngagementPoint(name=WEEKDAY_NAMES[day.weekday()], date=day, attempts=counts.get(day, 0))
        for day in dates
    ]


def build_hourly_traffic(
    attempts: Iterable[Attempt],
    now: datetime,
    tz: tzinfo,
) -> list[HourlyTraffic]:
    """
    Attempts per local hour-of-day over the trailing 24 hours.

    Returns 24 buckets labeled "0:00" to "23:00". Only attempts strictly
    newer than now - 24h are counted.
    """
    hits = [0] * 24
    cutoff = now - timedelta(hours=24)
    for attempt in attempts:
        local = to_local(attempt.submitted_at, tz)
        if local > cutoff:
            hits[local.hour] += 1

    return [HourlyTraffic(name=f"{hour}:00", hits=hits[hour]) for hour in range(24)]


def build_recent_attempts(
    attempts: Iterable[Attempt],
    limit: int,
    fallback_label: str,
) -> list[RecentAttempt]:
    """The most recent attempts, newest first, reduced for the activity feed."""
    newest_first = sorted(attempts, key=lambda a: a.submitted_at, reverse=True)
    return [
        RecentAttempt(
            id=a.id,
            is_correct=a.is_correct,
            topic=a.topic or fallback_label,
            timestamp=a.submitted_at,
        )
        for a in newest_first[:limit]
    ]


# =============================================================================
# Service
# =============================================================================


class AnalyticsService:
    """
    Loads attempt history from the stores and shapes dashboard analytics.

    Read failures degrade to a zero-state result with a warning rather than
    an error, so a dashboard always renders.
    """

    def __init__(self, stores: StoreBundle):
        self.stores = stores

    async def get_student_analytics(
        self,
        user_id: str,
        tz: tzinfo,
        now: Optional[datetime] = None,
    ) -> StudentAnalytics:
        """
        Accuracy, topic mastery, 7-day trend and recent activity for one student.

        Topics without a name are grouped under UNKNOWN_TOPIC_LABEL.
        """
        now = now or utc_now()
        attempts = await self._load_or_default(
            self.stores.attempts.list_attempts(user_id), [], f"attempts for {user_id}"
        )

        total = len(attempts)
        correct = count_correct(attempts)
        label = settings.UNKNOWN_TOPIC_LABEL

        return StudentAnalytics(
            total_attempts=total,
            correct_attempts=correct,
            accuracy=calculate_accuracy(correct, total),
            trend_data=build_daily_trend(attempts, now, tz, settings.ANALYTICS_TREND_DAYS),
            topics=build_topic_stats(attempts, label),
            recent_attempts=build_recent_attempts(
                attempts, settings.ANALYTICS_RECENT_LIMIT, label
            ),
        )

    async def get_institution_analytics(
        self,
        institution_id: str,
        tz: tzinfo,
        now: Optional[datetime] = None,
    ) -> InstitutionAnalytics:
        """
        Same rollups across every student of an institution, plus struggling
        topics and a 7-day attempt-count engagement trend.

        Topics without a name are grouped under GENERAL_TOPIC_LABEL.
        """
        now = now or utc_now()
        student_ids = await self._load_or_default(
            self.stores.directory.list_student_ids(institution_id),
            [],
            f"students of {institution_id}",
        )

        if not student_ids:
            return InstitutionAnalytics()

        attempts = await self._load_or_default(
            self.stores.attempts.list_attempts_for_users(student_ids),
            [],
            f"attempts for institution {institution_id}",
        )

        label = settings.GENERAL_TOPIC_LABEL
        topics = build_topic_stats(attempts, label)
        total = len(attempts)

        return InstitutionAnalytics(
            total_students=len(student_ids),
            average_accuracy=calculate_accuracy(count_correct(attempts), total),
            total_attempts=total,
            topics=topics,
            struggling_topics=select_struggling_topics(
                topics,
                settings.STRUGGLING_TOPIC_ACCURACY,
                settings.STRUGGLING_TOPIC_LIMIT,
            ),
            engagement_trend=build_engagement_trend(
                attempts, now, tz, settings.ANALYTICS_TREND_DAYS
            ),
            recent_attempts=build_recent_attempts(
                attempts, settings.ANALYTICS_RECENT_LIMIT, label
            ),
        )

    async def get_global_analytics(
        self,
        tz: tzinfo,
        now: Optional[datetime] = None,
    ) -> GlobalAnalytics:
        """System-wide counts, accuracy and 24-hour traffic by hour of day."""
        now = now or utc_now()
        directory = self.stores.directory

        institute_count = await self._load_or_default(directory.count_institutes(), 0, "institute count")
        question_count = await self._load_or_default(directory.count_questions(), 0, "question count")
        student_count = await self._load_or_default(directory.count_students(), 0, "student count")
        attempts = await self._load_or_default(
            self.stores.attempts.list_all_attempts(), [], "all attempts"
        )

        total = len(attempts)
        return GlobalAnalytics(
            institute_count=institute_count,
            question_count=question_count,
            student_count=student_count,
            total_attempts=total,
            global_accuracy=calculate_accuracy(count_correct(attempts), total),
            hit_data=build_hourly_traffic(attempts, now, tz),
        )

    @staticmethod
    async def _load_or_default(awaitable: Awaitable[T], default: T, what: str) -> T:
        """Await a store read, degrading to a default on failure."""
        try:
            return await awaitable
        except Exception as e:
            logger.warning(f"Failed to load {what}, rendering zero state: {e}")
            return default
