"""Notice visibility settings API routes."""

from __future__ import annotations

from typing import Literal

import structlog
from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel

from noticeguard.api.deps import get_guard, get_request_context, require_capability
from noticeguard.bootstrap import NoticeGuard
from noticeguard.notices.policy import RequestContext

router = APIRouter()
logger = structlog.get_logger()


class GlobalToggleRequest(BaseModel):
    show_notices: Literal["yes", "no"]


class GlobalToggleResponse(BaseModel):
    show_notices: str


class UserToggleResponse(BaseModel):
    preference: str
    notices_visible: bool


class NoticeStateResponse(BaseModel):
    has_full_access: bool
    notices_visible: bool
    hide_site_health: bool


@router.get("/settings/global-toggle", response_model=GlobalToggleResponse)
def get_global_toggle(
    _context: RequestContext = Depends(require_capability),  # noqa: B008
    guard: NoticeGuard = Depends(get_guard),  # noqa: B008
) -> GlobalToggleResponse:
    return GlobalToggleResponse(show_notices=guard.gate.global_toggle())


@router.post("/settings/global-toggle", response_model=GlobalToggleResponse)
def set_global_toggle(
    body: GlobalToggleRequest,
    context: RequestContext = Depends(require_capability),  # noqa: B008
    guard: NoticeGuard = Depends(get_guard),  # noqa: B008
) -> GlobalToggleResponse:
    """Show notices to everyone (``yes``) or suppress them (``no``)."""
    value = guard.gate.set_global_toggle(body.show_notices)
    logger.info("global_toggle_changed", show_notices=value, user_id=context.user_id)
    return GlobalToggleResponse(show_notices=value)


@router.post("/settings/user-toggle", response_model=UserToggleResponse)
def toggle_user_preference(
    context: RequestContext = Depends(require_capability),  # noqa: B008
    guard: NoticeGuard = Depends(get_guard),  # noqa: B008
) -> UserToggleResponse:
    """Flip the viewer's own notice visibility preference."""
    value = guard.gate.toggle_user_preference(context.user_id)
    if value is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update preference",
        )
    return UserToggleResponse(preference=value, notices_visible=value == "yes")


@router.get("/settings/notice-state", response_model=NoticeStateResponse)
def notice_state(
    context: RequestContext = Depends(get_request_context),  # noqa: B008
    guard: NoticeGuard = Depends(get_guard),  # noqa: B008
) -> NoticeStateResponse:
    """Flags the admin page uses to style notice visibility."""
    state = guard.gate.notice_state(context)
    return NoticeStateResponse(
        has_full_access=state["has_full_access"],
        notices_visible=state["notices_visible"],
        hide_site_health=guard.gate.should_hide_site_health(context),
    )
