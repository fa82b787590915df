"""
Analytics API Router

Endpoints:
- GET /api/analytics/student - Current student's analytics
- GET /api/analytics/institution/{id} - Analytics across an institution
- GET /api/analytics/global - System-wide analytics (super admin)
- GET /api/analytics/streak - Current user's streak status

All analytics accept an optional `timezone` query parameter naming the
client's IANA timezone. Day and hour buckets use it; when absent the
user's stored timezone is used.
"""

import logging
from datetime import tzinfo
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from aptivo.dependencies import (
    AppServices,
    get_current_user,
    get_services,
    get_timezone,
    require_roles,
)
from aptivo.enums.learning import UserRole
from aptivo.middleware.error_handling import handle_endpoint_errors
from aptivo.models.auth import UserProfile
from aptivo.models.learning import (
    GlobalAnalytics,
    InstitutionAnalytics,
    StreakStatus,
    StudentAnalytics,
)
from aptivo.services.learning.timeutils import resolve_timezone

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/analytics", tags=["analytics"])


@router.get("/student", response_model=StudentAnalytics)
@handle_endpoint_errors("Get student analytics")
async def get_student_analytics(
    user: UserProfile = Depends(require_roles(UserRole.STUDENT)),
    tz: tzinfo = Depends(get_timezone),
    services: AppServices = Depends(get_services),
) -> StudentAnalytics:
    return await services.analytics.get_student_analytics(user.id, tz)


@router.get("/institution/{institution_id}", response_model=InstitutionAnalytics)
@handle_endpoint_errors("Get institution analytics")
async def get_institution_analytics(
    institution_id: str,
    user: UserProfile = Depends(require_roles(UserRole.ADMIN, UserRole.SUPER_ADMIN)),
    tz: tzinfo = Depends(get_timezone),
    services: AppServices = Depends(get_services),
) -> InstitutionAnalytics:
    """Institution admins may only read their own institution."""
    if user.role == UserRole.ADMIN and user.institution_id != institution_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not an administrator of this institution",
        )
    return await services.analytics.get_institution_analytics(institution_id, tz)


@router.get("/global", response_model=GlobalAnalytics)
@handle_endpoint_errors("Get global analytics")
async def get_global_analytics(
    user: UserProfile = Depends(require_roles(UserRole.SUPER_ADMIN)),
    tz: tzinfo = Depends(get_timezone),
    services: AppServices = Depends(get_services),
) -> GlobalAnalytics:
    return await services.analytics.get_global_analytics(tz)


@router.get("/streak", response_model=StreakStatus)
@handle_endpoint_errors("Get streak status")
async def get_streak_status(
    timezone: Optional[str] = Query(None, description="IANA timezone detected on the client"),
    user: UserProfile = Depends(get_current_user),
    services: AppServices = Depends(get_services),
) -> StreakStatus:
    """
    Streak counters plus today's progress toward the threshold.

    When the detected timezone differs from the stored one, the stored
    value is updated in the background.
    """
    tz = resolve_timezone(timezone or user.timezone)
    return await services.streaks.get_streak_status(user.id, tz, detected_timezone=timezone)
