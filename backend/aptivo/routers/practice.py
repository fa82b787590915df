"""
Practice API Router

Endpoints for practice sessions and attempt recording.

Endpoints:
- POST /api/practice/sessions - Start a session for a topic
- GET /api/practice/sessions/{id} - Current session state
- POST /api/practice/sessions/{id}/select - Select an answer option
- POST /api/practice/sessions/{id}/submit - Submit the selected option
- POST /api/practice/sessions/{id}/advance - Move to the next question
- POST /api/practice/sessions/{id}/restart - Replay a finished session
- DELETE /api/practice/sessions/{id} - Leave a session
- POST /api/practice/attempts - Record an attempt directly
- GET /api/practice/mistakes - Incorrect attempts for review

A transition that is not available in the session's current phase returns
409 and leaves the session unchanged.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends

from aptivo.dependencies import AppServices, get_services, require_roles
from aptivo.enums.learning import UserRole
from aptivo.middleware.error_handling import (
    TransitionNotAllowedError,
    handle_endpoint_errors,
)
from aptivo.models.auth import UserProfile
from aptivo.models.base import SuccessResponse
from aptivo.models.learning import (
    Attempt,
    AttemptSubmitRequest,
    MistakeReviewItem,
    SelectOptionRequest,
    SessionStartRequest,
    SessionView,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/practice", tags=["practice"])

require_student = require_roles(UserRole.STUDENT)


def _allowed(view: Optional[SessionView], transition: str) -> SessionView:
    if view is None:
        raise TransitionNotAllowedError(f"Cannot {transition} in the current session state")
    return view


# ===========================================
# Session Endpoints
# ===========================================


@router.post("/sessions", response_model=SessionView)
@handle_endpoint_errors("Start practice session")
async def start_session(
    request: SessionStartRequest,
    user: UserProfile = Depends(require_student),
    services: AppServices = Depends(get_services),
) -> SessionView:
    """
    Start practicing a topic.

    Questions are fetched once. If none exist (or the fetch fails) the
    session is in the no_content phase and only offers leaving.
    """
    return await services.sessions.start_session(user.id, request.university_id, request.topic)


@router.get("/sessions/{session_id}", response_model=SessionView)
@handle_endpoint_errors("Get practice session")
async def get_session(
    session_id: str,
    user: UserProfile = Depends(require_student),
    services: AppServices = Depends(get_services),
) -> SessionView:
    return await services.sessions.get_view(session_id, user.id)


@router.post("/sessions/{session_id}/select", response_model=SessionView)
@handle_endpoint_errors("Select option")
async def select_option(
    session_id: str,
    request: SelectOptionRequest,
    user: UserProfile = Depends(require_student),
    services: AppServices = Depends(get_services),
) -> SessionView:
    view = await services.sessions.select_option(session_id, user.id, request.option_index)
    return _allowed(view, "select an option")


@router.post("/sessions/{session_id}/submit", response_model=SessionView)
@handle_endpoint_errors("Submit answer")
async def submit_answer(
    session_id: str,
    user: UserProfile = Depends(require_student),
    services: AppServices = Depends(get_services),
) -> SessionView:
    """
    Submit the selected option and reveal the answer.

    The attempt is saved in the background. If saving fails, the score
    stands and a notice appears on a later session view.
    """
    view = await services.sessions.submit(session_id, user.id)
    return _allowed(view, "submit")


@router.post("/sessions/{session_id}/advance", response_model=SessionView)
@handle_endpoint_errors("Advance session")
async def advance_session(
    session_id: str,
    user: UserProfile = Depends(require_student),
    services: AppServices = Depends(get_services),
) -> SessionView:
    view = await services.sessions.advance(session_id, user.id)
    return _allowed(view, "advance")


@router.post("/sessions/{session_id}/restart", response_model=SessionView)
@handle_endpoint_errors("Restart session")
async def restart_session(
    session_id: str,
    user: UserProfile = Depends(require_student),
    services: AppServices = Depends(get_services),
) -> SessionView:
    view = await services.sessions.restart(session_id, user.id)
    return _allowed(view, "restart")


@router.delete("/sessions/{session_id}", response_model=SuccessResponse)
@handle_endpoint_errors("End practice session")
async def end_session(
    session_id: str,
    user: UserProfile = Depends(require_student),
    services: AppServices = Depends(get_services),
) -> SuccessResponse:
    await services.sessions.end_session(session_id, user.id)
    return SuccessResponse(message=f"Session {session_id} ended")


# ===========================================
# Attempt Endpoints
# ===========================================


@router.post("/attempts", response_model=Attempt)
@handle_endpoint_errors("Record attempt")
async def record_attempt(
    request: AttemptSubmitRequest,
    user: UserProfile = Depends(require_student),
    services: AppServices = Depends(get_services),
) -> Attempt:
    return await services.recorder.record_attempt(
        user.id,
        request.question_id,
        request.selected_option,
        request.is_correct,
        subject=request.subject,
        topic=request.topic,
    )


@router.get("/mistakes", response_model=list[MistakeReviewItem])
@handle_endpoint_errors("Get mistakes")
async def get_mistakes(
    user: UserProfile = Depends(require_student),
    services: AppServices = Depends(get_services),
) -> list[MistakeReviewItem]:
    """Incorrect attempts with their questions (answers revealed), newest first."""
    return await services.recorder.get_mistakes(user.id)
