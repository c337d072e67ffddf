from __future__ import annotations

from fastapi import Depends, Header, HTTPException, status

from noticeguard.bootstrap import NoticeGuard
from noticeguard.config import Settings, get_settings
from noticeguard.notices.allowlist import AllowlistStore
from noticeguard.notices.policy import RequestContext

_guard: NoticeGuard | None = None


def get_guard(settings: Settings = Depends(get_settings)) -> NoticeGuard:  # noqa: B008
    global _guard

    if _guard is None:
        _guard = NoticeGuard.create(settings)
        _guard.migrator.run_migrations()
    return _guard


def reset_guard() -> None:
    """Drop the cached service and release its connection pool."""
    global _guard

    if _guard is not None:
        _guard.db_engine.dispose()
    _guard = None


def get_request_context(
    x_user_id: int = Header(default=0),
    x_tenant_id: int = Header(default=1),
    x_capabilities: str = Header(default=""),
) -> RequestContext:
    """Viewer identity as forwarded by the authenticating proxy."""
    capabilities = frozenset(cap.strip() for cap in x_capabilities.split(",") if cap.strip())
    return RequestContext(user_id=x_user_id, tenant_id=x_tenant_id, capabilities=capabilities)


def require_capability(
    context: RequestContext = Depends(get_request_context),  # noqa: B008
    guard: NoticeGuard = Depends(get_guard),  # noqa: B008
) -> RequestContext:
    if not guard.gate.has_capability(context):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Permission denied")
    return context


def tenant_allowlist(
    context: RequestContext = Depends(get_request_context),  # noqa: B008
    guard: NoticeGuard = Depends(get_guard),  # noqa: B008
) -> AllowlistStore:
    return guard.for_context(context)
