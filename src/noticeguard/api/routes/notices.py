"""Decision log API routes."""

from __future__ import annotations

from datetime import datetime

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel

from noticeguard.api.deps import get_guard, require_capability
from noticeguard.bootstrap import NoticeGuard
from noticeguard.domain.models import PatternType
from noticeguard.notices.policy import RequestContext

router = APIRouter()
logger = structlog.get_logger()


# -- Request / Response Models --


class LogEntryItem(BaseModel):
    id: int
    callback_name: str
    hook_name: str
    hook_priority: int
    action_taken: str
    reason: str
    user_id: int | None
    site_id: int | None
    created_at: datetime | None


class UniqueNoticeItem(BaseModel):
    callback_name: str
    hook_name: str
    last_seen: datetime | None


class TopCallback(BaseModel):
    callback_name: str
    count: int


class StatisticsResponse(BaseModel):
    total: int
    unique_callback_count: int
    top_callbacks: list[TopCallback]
    action_breakdown: dict[str, int]


class DeleteRequest(BaseModel):
    ids: list[int]


class CountResponse(BaseModel):
    deleted: int


class PromoteResponse(BaseModel):
    message: str
    pattern: str


# -- Endpoints --


@router.get("/notices/recent", response_model=list[LogEntryItem])
def recent_entries(
    limit: int = Query(default=100, ge=1, le=1000),
    context: RequestContext = Depends(require_capability),  # noqa: B008
    guard: NoticeGuard = Depends(get_guard),  # noqa: B008
) -> list[LogEntryItem]:
    """Most recent decisions for the tenant, newest first."""
    return [
        LogEntryItem(
            id=entry.id,
            callback_name=entry.callback_name,
            hook_name=entry.hook_name,
            hook_priority=entry.hook_priority,
            action_taken=entry.action_taken.value,
            reason=entry.reason.value,
            user_id=entry.user_id,
            site_id=entry.site_id,
            created_at=entry.created_at,
        )
        for entry in guard.log.recent_entries(limit=limit, site_id=context.tenant_id)
    ]


@router.get("/notices/unique", response_model=list[UniqueNoticeItem])
def unique_entries(
    context: RequestContext = Depends(require_capability),  # noqa: B008
    guard: NoticeGuard = Depends(get_guard),  # noqa: B008
) -> list[UniqueNoticeItem]:
    """One row per callback and channel with its last sighting."""
    return [
        UniqueNoticeItem(
            callback_name=notice.callback_name,
            hook_name=notice.hook_name,
            last_seen=notice.last_seen,
        )
        for notice in guard.log.unique_entries(site_id=context.tenant_id)
    ]


@router.get("/notices/stats", response_model=StatisticsResponse)
def statistics(
    context: RequestContext = Depends(require_capability),  # noqa: B008
    guard: NoticeGuard = Depends(get_guard),  # noqa: B008
) -> StatisticsResponse:
    stats = guard.log.statistics(site_id=context.tenant_id)
    return StatisticsResponse(
        total=stats.total,
        unique_callback_count=stats.unique_callback_count,
        top_callbacks=[
            TopCallback(callback_name=name, count=count) for name, count in stats.top_callbacks
        ],
        action_breakdown=stats.action_breakdown,
    )


@router.post("/notices/cleanup", response_model=CountResponse)
def cleanup(
    days: int | None = Query(default=None, ge=0),
    context: RequestContext = Depends(require_capability),  # noqa: B008
    guard: NoticeGuard = Depends(get_guard),  # noqa: B008
) -> CountResponse:
    """Delete the tenant's entries older than ``days`` (default: configured retention)."""
    retain = guard.settings.log_retention_days if days is None else days
    return CountResponse(deleted=guard.log.cleanup(retain, site_id=context.tenant_id))


@router.post("/notices/delete", response_model=CountResponse)
def delete_entries(
    body: DeleteRequest,
    context: RequestContext = Depends(require_capability),  # noqa: B008
    guard: NoticeGuard = Depends(get_guard),  # noqa: B008
) -> CountResponse:
    return CountResponse(deleted=guard.log.delete_entries(body.ids, site_id=context.tenant_id))


@router.post(
    "/notices/{entry_id}/allowlist",
    status_code=status.HTTP_201_CREATED,
    response_model=PromoteResponse,
)
def promote_entry(
    entry_id: int,
    context: RequestContext = Depends(require_capability),  # noqa: B008
    guard: NoticeGuard = Depends(get_guard),  # noqa: B008
) -> PromoteResponse:
    """Allowlist the callback of a logged decision as an exact pattern."""
    entry = guard.log.get_entry(entry_id, site_id=context.tenant_id)
    if entry is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Log entry not found")

    store = guard.for_context(context)
    if not store.add_pattern(entry.callback_name, PatternType.exact, created_by=context.user_id):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Failed to add pattern. It may already exist.",
        )

    logger.info(
        "log_entry_promoted",
        entry_id=entry_id,
        pattern=entry.callback_name,
        user_id=context.user_id,
    )
    return PromoteResponse(message="Pattern added successfully", pattern=entry.callback_name)
