from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any


class PatternType(StrEnum):
    """How an allowlist pattern is matched against a callback name."""

    exact = "exact"
    wildcard = "wildcard"
    regex = "regex"


class NoticeAction(StrEnum):
    """Outcome of a suppression decision."""

    removed = "removed"
    kept_allowlisted = "kept_allowlisted"


class NoticeReason(StrEnum):
    """Why a suppression decision was taken."""

    no_access = "no_access"
    matches_allowlist_pattern = "matches_allowlist_pattern"


@dataclass
class AllowlistPattern:
    """A stored rule that exempts matching callbacks from suppression."""

    id: int
    pattern_value: str
    pattern_type: PatternType
    is_active: bool = True
    created_by: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "pattern_value": self.pattern_value,
            "pattern_type": self.pattern_type.value,
            "is_active": self.is_active,
            "created_by": self.created_by,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AllowlistPattern:
        created_at = data.get("created_at")
        updated_at = data.get("updated_at")
        return cls(
            id=int(data["id"]),
            pattern_value=data["pattern_value"],
            pattern_type=PatternType(data["pattern_type"]),
            is_active=bool(data.get("is_active", True)),
            created_by=data.get("created_by"),
            created_at=datetime.fromisoformat(created_at) if created_at else None,
            updated_at=datetime.fromisoformat(updated_at) if updated_at else None,
        )


@dataclass
class DecisionLogEntry:
    """Immutable record of one keep/remove decision."""

    id: int
    notice_hash: str
    callback_name: str
    hook_name: str
    hook_priority: int
    action_taken: NoticeAction
    reason: NoticeReason
    user_id: int | None
    site_id: int | None
    created_at: datetime


@dataclass
class UniqueNotice:
    """One row per distinct (callback, channel) pair with its last sighting."""

    callback_name: str
    hook_name: str
    last_seen: datetime


@dataclass
class LogStatistics:
    """Aggregate view over the decision log."""

    total: int = 0
    unique_callback_count: int = 0
    top_callbacks: list[tuple[str, int]] = field(default_factory=list)
    action_breakdown: dict[str, int] = field(default_factory=dict)
