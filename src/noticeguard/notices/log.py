"""
Decision log.

Append-only record of keep/remove decisions, deduplicated to one row per
callback per channel per UTC day. The today-query is a fast path; the
``(notice_hash, hook_name, log_date)`` unique constraint is what actually
guarantees one row when requests race.

Logging is best-effort: ``record_decision`` never raises, so a failing
log write cannot undo or block a suppression decision.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from datetime import datetime, time, timedelta

import structlog
from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from noticeguard.db.models import NoticeLogModel, utcnow
from noticeguard.db.session import session_scope
from noticeguard.domain.models import (
    DecisionLogEntry,
    LogStatistics,
    NoticeAction,
    NoticeReason,
    UniqueNotice,
)
from noticeguard.notices.callbacks import Named
from noticeguard.notices.identifier import CallbackIdentifier

logger = structlog.get_logger()

DEFAULT_RETENTION_DAYS = 30
TOP_CALLBACKS_LIMIT = 10


class DecisionLog:
    """Records and queries suppression decisions."""

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        identifier: CallbackIdentifier | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.session_factory = session_factory
        self.identifier = identifier or CallbackIdentifier()
        self.clock = clock

    def record_decision(
        self,
        callback_name: str,
        hook_name: str,
        priority: int,
        action: NoticeAction | str,
        reason: NoticeReason | str,
        *,
        user_id: int | None = None,
        site_id: int | None = None,
    ) -> bool:
        """Insert a decision unless one was already logged today.

        Returns True when a row was written.
        """
        now = self.clock()
        today_start = datetime.combine(now.date(), time.min)

        try:
            with session_scope(self.session_factory) as session:
                existing = session.scalar(
                    select(NoticeLogModel.id)
                    .where(
                        NoticeLogModel.callback_name == callback_name,
                        NoticeLogModel.hook_name == hook_name,
                        _site_filter(site_id),
                        NoticeLogModel.created_at >= today_start,
                    )
                    .limit(1)
                )
                if existing is not None:
                    return False

                session.add(
                    NoticeLogModel(
                        notice_hash=self.identifier.hash(
                            Named(callback_name), hook_name, tenant_id=site_id
                        ),
                        callback_name=callback_name,
                        hook_name=hook_name,
                        hook_priority=priority,
                        action_taken=NoticeAction(action),
                        reason=NoticeReason(reason),
                        user_id=user_id,
                        site_id=site_id,
                        log_date=now.date(),
                        created_at=now,
                    )
                )
        except IntegrityError:
            logger.debug("notice_log_duplicate", callback=callback_name, hook=hook_name)
            return False
        except Exception:
            logger.warning(
                "notice_log_write_failed",
                callback=callback_name,
                hook=hook_name,
                action=str(action),
                exc_info=True,
            )
            return False

        return True

    def recent_entries(
        self, limit: int = 100, site_id: int | None = None
    ) -> list[DecisionLogEntry]:
        """Most recent entries, newest first."""
        stmt = select(NoticeLogModel)
        if site_id is not None:
            stmt = stmt.where(NoticeLogModel.site_id == site_id)
        stmt = stmt.order_by(NoticeLogModel.created_at.desc(), NoticeLogModel.id.desc()).limit(
            limit
        )

        try:
            with session_scope(self.session_factory) as session:
                return [self._to_domain(model) for model in session.scalars(stmt).all()]
        except SQLAlchemyError:
            logger.warning("notice_log_read_failed", query="recent", exc_info=True)
            return []

    def unique_entries(self, site_id: int | None = None) -> list[UniqueNotice]:
        """One row per (callback, channel) with its most recent sighting."""
        last_seen = func.max(NoticeLogModel.created_at).label("last_seen")
        stmt = select(NoticeLogModel.callback_name, NoticeLogModel.hook_name, last_seen)
        if site_id is not None:
            stmt = stmt.where(NoticeLogModel.site_id == site_id)
        stmt = stmt.group_by(NoticeLogModel.callback_name, NoticeLogModel.hook_name).order_by(
            last_seen.desc()
        )

        try:
            with session_scope(self.session_factory) as session:
                return [
                    UniqueNotice(callback_name=name, hook_name=hook, last_seen=seen)
                    for name, hook, seen in session.execute(stmt).all()
                ]
        except SQLAlchemyError:
            logger.warning("notice_log_read_failed", query="unique", exc_info=True)
            return []

    def statistics(self, site_id: int | None = None) -> LogStatistics:
        """Totals, unique callbacks, top callbacks and action breakdown."""
        where = [NoticeLogModel.site_id == site_id] if site_id is not None else []
        count = func.count(NoticeLogModel.id).label("count")

        try:
            with session_scope(self.session_factory) as session:
                total = session.scalar(select(func.count(NoticeLogModel.id)).where(*where))
                unique = session.scalar(
                    select(func.count(func.distinct(NoticeLogModel.callback_name))).where(*where)
                )
                top = session.execute(
                    select(NoticeLogModel.callback_name, count)
                    .where(*where)
                    .group_by(NoticeLogModel.callback_name)
                    .order_by(count.desc(), NoticeLogModel.callback_name)
                    .limit(TOP_CALLBACKS_LIMIT)
                ).all()
                actions = session.execute(
                    select(NoticeLogModel.action_taken, count)
                    .where(*where)
                    .group_by(NoticeLogModel.action_taken)
                ).all()
        except SQLAlchemyError:
            logger.warning("notice_log_read_failed", query="statistics", exc_info=True)
            return LogStatistics()

        return LogStatistics(
            total=int(total or 0),
            unique_callback_count=int(unique or 0),
            top_callbacks=[(name, int(n)) for name, n in top],
            action_breakdown={NoticeAction(action).value: int(n) for action, n in actions},
        )

    def cleanup(
        self, retain_days: int = DEFAULT_RETENTION_DAYS, *, site_id: int | None = None
    ) -> int:
        """Delete entries older than ``retain_days``; returns rows deleted.

        Without ``site_id`` every tenant's entries are pruned.
        """
        cutoff = self.clock() - timedelta(days=retain_days)
        stmt = delete(NoticeLogModel).where(NoticeLogModel.created_at < cutoff)
        if site_id is not None:
            stmt = stmt.where(NoticeLogModel.site_id == site_id)

        try:
            with session_scope(self.session_factory) as session:
                deleted = session.execute(stmt).rowcount  # type: ignore[attr-defined]
        except SQLAlchemyError:
            logger.warning("notice_log_cleanup_failed", retain_days=retain_days, exc_info=True)
            return 0

        logger.info(
            "notice_log_cleaned", retain_days=retain_days, site_id=site_id, deleted=deleted
        )
        return int(deleted or 0)

    def delete_entries(self, entry_ids: Iterable[int], *, site_id: int | None = None) -> int:
        """Bulk delete selected entries; returns rows deleted.

        With ``site_id`` set, ids belonging to other tenants are left alone.
        """
        ids = list(entry_ids)
        if not ids:
            return 0

        stmt = delete(NoticeLogModel).where(NoticeLogModel.id.in_(ids))
        if site_id is not None:
            stmt = stmt.where(NoticeLogModel.site_id == site_id)

        try:
            with session_scope(self.session_factory) as session:
                deleted = session.execute(stmt).rowcount  # type: ignore[attr-defined]
        except SQLAlchemyError:
            logger.warning("notice_log_delete_failed", count=len(ids), exc_info=True)
            return 0

        return int(deleted or 0)

    def get_entry(self, entry_id: int, *, site_id: int | None = None) -> DecisionLogEntry | None:
        stmt = select(NoticeLogModel).where(NoticeLogModel.id == entry_id)
        if site_id is not None:
            stmt = stmt.where(NoticeLogModel.site_id == site_id)

        try:
            with session_scope(self.session_factory) as session:
                model = session.scalar(stmt)
                return self._to_domain(model) if model else None
        except SQLAlchemyError:
            logger.warning(
                "notice_log_read_failed", query="entry", entry_id=entry_id, exc_info=True
            )
            return None

    @staticmethod
    def _to_domain(model: NoticeLogModel) -> DecisionLogEntry:
        return DecisionLogEntry(
            id=model.id,
            notice_hash=model.notice_hash,
            callback_name=model.callback_name,
            hook_name=model.hook_name,
            hook_priority=model.hook_priority,
            action_taken=NoticeAction(model.action_taken),
            reason=NoticeReason(model.reason),
            user_id=model.user_id,
            site_id=model.site_id,
            created_at=model.created_at,
        )


def _site_filter(site_id: int | None):
    if site_id is None:
        return NoticeLogModel.site_id.is_(None)
    return NoticeLogModel.site_id == site_id
