from __future__ import annotations

from datetime import date, datetime, timezone

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    Enum,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from noticeguard.domain.models import NoticeAction, NoticeReason, PatternType


def utcnow() -> datetime:
    """Naive UTC timestamp, the form every DateTime column stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Base(DeclarativeBase):
    pass


class AllowlistPatternModel(Base):
    """Allowlist patterns that exempt callbacks from notice suppression."""

    __tablename__ = "notice_allowlist"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    site_id: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    pattern_value: Mapped[str] = mapped_column(String(255), nullable=False)
    pattern_type: Mapped[PatternType] = mapped_column(
        Enum(PatternType, name="pattern_type", native_enum=False),
        nullable=False,
        default=PatternType.exact,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_by: Mapped[int | None] = mapped_column(Integer)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, onupdate=utcnow, nullable=False
    )

    __table_args__ = (
        UniqueConstraint("site_id", "pattern_value", name="uq_allowlist_pattern"),
        Index("idx_allowlist_active", "site_id", "is_active"),
    )


class NoticeLogModel(Base):
    """Per-day deduplicated log of keep/remove decisions."""

    __tablename__ = "notice_decision_log"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    notice_hash: Mapped[str] = mapped_column(String(32), nullable=False)
    callback_name: Mapped[str] = mapped_column(String(255), nullable=False)
    hook_name: Mapped[str] = mapped_column(String(100), nullable=False)
    hook_priority: Mapped[int] = mapped_column(Integer, nullable=False, default=10)
    action_taken: Mapped[NoticeAction] = mapped_column(
        Enum(NoticeAction, name="notice_action", native_enum=False), nullable=False
    )
    reason: Mapped[NoticeReason] = mapped_column(
        Enum(NoticeReason, name="notice_reason", native_enum=False), nullable=False
    )
    user_id: Mapped[int | None] = mapped_column(Integer)
    site_id: Mapped[int | None] = mapped_column(Integer)
    log_date: Mapped[date] = mapped_column(Date, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("notice_hash", "hook_name", "log_date", name="uq_notice_log_dedup"),
        Index("idx_notice_log_callback", "callback_name", "hook_name"),
        Index("idx_notice_log_created", "created_at"),
        Index("idx_notice_log_site", "site_id"),
    )


class OptionModel(Base):
    """Site-wide options: schema version, global toggle, active plugins."""

    __tablename__ = "noticeguard_options"

    name: Mapped[str] = mapped_column(String(191), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False, default="")
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, onupdate=utcnow, nullable=False
    )


class UserMetaModel(Base):
    """Per-user preferences keyed by meta key."""

    __tablename__ = "noticeguard_user_meta"

    user_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    meta_key: Mapped[str] = mapped_column(String(191), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False, default="")
