"""Allowlist pattern API routes."""

from __future__ import annotations

from datetime import datetime

import structlog
from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel

from noticeguard.api.deps import require_capability, tenant_allowlist
from noticeguard.core.errors import PersistenceError, ValidationError
from noticeguard.domain.models import AllowlistPattern, PatternType
from noticeguard.notices.allowlist import AllowlistStore
from noticeguard.notices.identifier import CallbackIdentifier
from noticeguard.notices.policy import RequestContext

router = APIRouter()
logger = structlog.get_logger()


# -- Request / Response Models --


class PatternRequest(BaseModel):
    pattern: str
    pattern_type: str = PatternType.exact.value


class RemoveByValueRequest(BaseModel):
    pattern: str


class PatternItem(BaseModel):
    id: int
    pattern_value: str
    pattern_type: str
    is_active: bool
    created_by: int | None
    created_at: datetime | None
    updated_at: datetime | None


class ClientPattern(BaseModel):
    value: str
    type: str
    case_sensitive: bool


class MessageResponse(BaseModel):
    message: str
    pattern: str | None = None


def _item(pattern: AllowlistPattern) -> PatternItem:
    return PatternItem(
        id=pattern.id,
        pattern_value=pattern.pattern_value,
        pattern_type=pattern.pattern_type.value,
        is_active=pattern.is_active,
        created_by=pattern.created_by,
        created_at=pattern.created_at,
        updated_at=pattern.updated_at,
    )


# -- Endpoints --


@router.get("/allowlist", response_model=list[PatternItem])
def list_patterns(
    include_inactive: bool = True,
    _context: RequestContext = Depends(require_capability),  # noqa: B008
    store: AllowlistStore = Depends(tenant_allowlist),  # noqa: B008
) -> list[PatternItem]:
    """All patterns for the tenant, newest first."""
    try:
        patterns = store.list_patterns(include_inactive=include_inactive)
    except PersistenceError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=exc.message
        ) from exc
    return [_item(pattern) for pattern in patterns]


@router.get("/allowlist/client", response_model=list[ClientPattern])
def client_patterns(
    _context: RequestContext = Depends(require_capability),  # noqa: B008
    store: AllowlistStore = Depends(tenant_allowlist),  # noqa: B008
) -> list[ClientPattern]:
    """Active patterns for the admin page scripts."""
    return [ClientPattern(**row) for row in store.client_patterns()]


@router.post(
    "/allowlist",
    status_code=status.HTTP_201_CREATED,
    response_model=MessageResponse,
)
def add_pattern(
    body: PatternRequest,
    context: RequestContext = Depends(require_capability),  # noqa: B008
    store: AllowlistStore = Depends(tenant_allowlist),  # noqa: B008
) -> MessageResponse:
    """Add an allowlist pattern."""
    value = CallbackIdentifier.sanitize_pattern(body.pattern)
    try:
        kind = store.validate_pattern(value, body.pattern_type)
    except ValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=exc.message) from exc

    if not store.add_pattern(value, kind, created_by=context.user_id):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Failed to add pattern. It may already exist.",
        )

    return MessageResponse(message="Pattern added successfully", pattern=value)


@router.post("/allowlist/remove", response_model=MessageResponse)
def remove_pattern_by_value(
    body: RemoveByValueRequest,
    _context: RequestContext = Depends(require_capability),  # noqa: B008
    store: AllowlistStore = Depends(tenant_allowlist),  # noqa: B008
) -> MessageResponse:
    """Remove a pattern by its value."""
    value = CallbackIdentifier.sanitize_pattern(body.pattern)
    if not value:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Pattern cannot be empty"
        )

    if not store.remove_pattern_by_value(value):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Pattern not found")

    return MessageResponse(message="Pattern removed successfully", pattern=value)


@router.delete("/allowlist/{pattern_id}", response_model=MessageResponse)
def remove_pattern(
    pattern_id: int,
    _context: RequestContext = Depends(require_capability),  # noqa: B008
    store: AllowlistStore = Depends(tenant_allowlist),  # noqa: B008
) -> MessageResponse:
    if not store.remove_pattern(pattern_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Pattern not found")
    return MessageResponse(message="Pattern removed successfully")


@router.post("/allowlist/{pattern_id}/activate", response_model=MessageResponse)
def activate_pattern(
    pattern_id: int,
    _context: RequestContext = Depends(require_capability),  # noqa: B008
    store: AllowlistStore = Depends(tenant_allowlist),  # noqa: B008
) -> MessageResponse:
    if not store.activate_pattern(pattern_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Pattern not found")
    return MessageResponse(message="Pattern activated")


@router.post("/allowlist/{pattern_id}/deactivate", response_model=MessageResponse)
def deactivate_pattern(
    pattern_id: int,
    _context: RequestContext = Depends(require_capability),  # noqa: B008
    store: AllowlistStore = Depends(tenant_allowlist),  # noqa: B008
) -> MessageResponse:
    if not store.deactivate_pattern(pattern_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Pattern not found")
    return MessageResponse(message="Pattern deactivated")
