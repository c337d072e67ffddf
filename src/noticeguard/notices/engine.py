"""
Suppression engine.

Runs once per admin render, registered at the last position of the
admin-header phase so every notice producer has already attached its
callbacks and none of them has rendered yet. For each callback on the
four notice channels it either keeps it (name matches the allowlist) or
removes it from the live registry, and records the decision.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import structlog

from noticeguard.domain.models import NoticeAction, NoticeReason
from noticeguard.hooks import HookRegistry
from noticeguard.notices.allowlist import AllowlistStore
from noticeguard.notices.identifier import CallbackIdentifier
from noticeguard.notices.log import DecisionLog
from noticeguard.notices.policy import PolicyGate, RequestContext

logger = structlog.get_logger()

NOTICE_CHANNELS = (
    "admin_notices",
    "network_admin_notices",
    "user_admin_notices",
    "all_admin_notices",
)

RENDER_PHASE = "in_admin_header"
ENGINE_PRIORITY = 100000


@dataclass
class Decision:
    channel: str
    priority: int
    callback_id: str
    callback_name: str
    action: NoticeAction


@dataclass
class SuppressionReport:
    """Outcome of one engine run."""

    skipped_reason: str | None = None
    decisions: list[Decision] = field(default_factory=list)

    @property
    def skipped(self) -> bool:
        return self.skipped_reason is not None

    @property
    def kept(self) -> int:
        return sum(1 for d in self.decisions if d.action is NoticeAction.kept_allowlisted)

    @property
    def removed(self) -> int:
        return sum(1 for d in self.decisions if d.action is NoticeAction.removed)


class SuppressionEngine:
    """Removes non-allowlisted notice callbacks from the hook registry."""

    def __init__(
        self,
        registry: HookRegistry,
        allowlist: AllowlistStore,
        log: DecisionLog,
        identifier: CallbackIdentifier,
        gate: PolicyGate,
        channels: tuple[str, ...] = NOTICE_CHANNELS,
    ) -> None:
        self.registry = registry
        self.allowlist = allowlist
        self.log = log
        self.identifier = identifier
        self.gate = gate
        self.channels = channels

    def register(self, registry: Any | None = None, phase: str = RENDER_PHASE) -> str:
        """Attach ``run`` to the render phase at the last-to-run priority."""
        target = registry or self.registry
        return target.add(phase, self.run, ENGINE_PRIORITY)

    def run(self, context: RequestContext | None = None) -> SuppressionReport:
        context = context or RequestContext()

        reason = self.gate.skip_reason(context)
        if reason is not None:
            logger.debug("notice_suppression_skipped", reason=reason, user_id=context.user_id)
            return SuppressionReport(skipped_reason=reason)

        allowlist = self.allowlist.for_tenant(context.tenant_id)
        report = SuppressionReport()

        for channel in self.channels:
            for priority, callbacks in self.registry.list(channel).items():
                for cb_id, callback in callbacks.items():
                    report.decisions.append(
                        self._decide(context, allowlist, channel, priority, cb_id, callback)
                    )

        logger.info(
            "notice_suppression_completed",
            user_id=context.user_id,
            tenant_id=context.tenant_id,
            kept=report.kept,
            removed=report.removed,
        )
        return report

    def _decide(
        self,
        context: RequestContext,
        allowlist: AllowlistStore,
        channel: str,
        priority: int,
        cb_id: str,
        callback: Any,
    ) -> Decision:
        name = self.identifier.name(callback)

        try:
            keep = allowlist.matches(name)
        except Exception:
            logger.warning(
                "allowlist_match_failed", callback=name, channel=channel, exc_info=True
            )
            keep = False

        if keep:
            action, reason = NoticeAction.kept_allowlisted, NoticeReason.matches_allowlist_pattern
            logger.debug("notice_kept", callback=name, channel=channel, priority=priority)
        else:
            self.registry.remove(channel, priority, cb_id)
            action, reason = NoticeAction.removed, NoticeReason.no_access
            logger.debug("notice_removed", callback=name, channel=channel, priority=priority)

        try:
            self.log.record_decision(
                name,
                channel,
                priority,
                action,
                reason,
                user_id=context.user_id or None,
                site_id=context.tenant_id,
            )
        except Exception:
            logger.warning("notice_log_write_failed", callback=name, channel=channel, exc_info=True)

        return Decision(
            channel=channel,
            priority=priority,
            callback_id=cb_id,
            callback_name=name,
            action=action,
        )
