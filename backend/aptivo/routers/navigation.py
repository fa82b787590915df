"""
Navigation API Router

Endpoints:
- GET /api/navigation/mode?path= - Learning mode for a path
- POST /api/navigation/mode - Switch mode from a path
"""

from fastapi import APIRouter, Query

from aptivo.models.learning import ModeResponse, ModeSwitchRequest
from aptivo.services.navigation import derive_mode, resolve_mode_switch

router = APIRouter(prefix="/api/navigation", tags=["navigation"])


@router.get("/mode", response_model=ModeResponse)
async def get_mode(path: str = Query(..., description="Current client route")) -> ModeResponse:
    return ModeResponse(mode=derive_mode(path))


@router.post("/mode", response_model=ModeResponse)
async def switch_mode(request: ModeSwitchRequest) -> ModeResponse:
    """
    Switch to the requested mode.

    On learn routes the switch is a navigation; navigate_to names the
    target. Elsewhere navigate_to is null and the mode simply changes.
    """
    switch = resolve_mode_switch(request.path, derive_mode(request.path), request.mode)
    return ModeResponse(mode=switch.mode, navigate_to=switch.navigate_to)
