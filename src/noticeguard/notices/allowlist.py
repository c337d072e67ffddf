"""
Allowlist store.

CRUD over allowlist patterns with a per-tenant read-through cache. Every
write clears the tenant's cache entry, whether or not the write succeeded,
so an immediately following read always reflects the database.

Failure semantics:
- read errors degrade to an empty pattern list (nothing allowlisted,
  which means more suppression rather than less)
- write errors are reported as ``False``
"""

from __future__ import annotations

from typing import Any

import structlog
from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from noticeguard.cache import PatternCache
from noticeguard.core.errors import PersistenceError, ValidationError
from noticeguard.db.models import AllowlistPatternModel, utcnow
from noticeguard.db.session import session_scope
from noticeguard.domain.models import AllowlistPattern, PatternType
from noticeguard.notices.patterns import PatternMatcher

logger = structlog.get_logger()

CACHE_KEY_PREFIX = "noticeguard_allowlist_patterns_"
CACHE_TTL = 3600
MAX_PATTERN_LENGTH = 255


class AllowlistStore:
    """Allowlist patterns for one tenant."""

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        cache: PatternCache,
        tenant_id: int = 1,
        matcher: PatternMatcher | None = None,
        cache_ttl: int = CACHE_TTL,
    ) -> None:
        self.session_factory = session_factory
        self.cache = cache
        self.tenant_id = tenant_id
        self.matcher = matcher or PatternMatcher()
        self.cache_ttl = cache_ttl

    def for_tenant(self, tenant_id: int) -> AllowlistStore:
        """Store sharing backend and cache, scoped to another tenant."""
        if tenant_id == self.tenant_id:
            return self
        return AllowlistStore(
            self.session_factory,
            self.cache,
            tenant_id=tenant_id,
            matcher=self.matcher,
            cache_ttl=self.cache_ttl,
        )

    @property
    def cache_key(self) -> str:
        return f"{CACHE_KEY_PREFIX}{self.tenant_id}"

    def clear_cache(self) -> None:
        try:
            self.cache.delete(self.cache_key)
        except Exception:
            logger.warning("allowlist_cache_clear_failed", key=self.cache_key, exc_info=True)

    # -- Validation --

    def validate_pattern(self, value: str, pattern_type: PatternType | str) -> PatternType:
        """Check a pattern before it is written. Raises ValidationError."""
        try:
            kind = PatternType(pattern_type)
        except ValueError as exc:
            raise ValidationError(
                "Unknown pattern type", details={"pattern_type": str(pattern_type)}
            ) from exc

        if not value or not value.strip():
            raise ValidationError("Pattern cannot be empty")
        if len(value) > MAX_PATTERN_LENGTH:
            raise ValidationError(
                "Pattern is too long", details={"max_length": MAX_PATTERN_LENGTH}
            )
        if kind is PatternType.regex and not self.matcher.is_valid_pattern(value):
            raise ValidationError("Invalid regular expression", details={"pattern": value})

        return kind

    # -- Writes --

    def add_pattern(
        self,
        value: str,
        pattern_type: PatternType | str = PatternType.exact,
        created_by: int | None = None,
    ) -> bool:
        """Add an active pattern. False on validation or database failure."""
        try:
            kind = self.validate_pattern(value, pattern_type)
        except ValidationError as exc:
            logger.info(
                "allowlist_pattern_rejected",
                pattern=value,
                pattern_type=str(pattern_type),
                reason=exc.message,
            )
            self.clear_cache()
            return False

        now = utcnow()
        try:
            with session_scope(self.session_factory) as session:
                session.add(
                    AllowlistPatternModel(
                        site_id=self.tenant_id,
                        pattern_value=value,
                        pattern_type=kind,
                        is_active=True,
                        created_by=created_by,
                        created_at=now,
                        updated_at=now,
                    )
                )
        except SQLAlchemyError:
            logger.warning(
                "allowlist_pattern_add_failed",
                pattern=value,
                tenant_id=self.tenant_id,
                exc_info=True,
            )
            return False
        finally:
            self.clear_cache()

        logger.info(
            "allowlist_pattern_added",
            pattern=value,
            pattern_type=kind.value,
            tenant_id=self.tenant_id,
            created_by=created_by,
        )
        return True

    def remove_pattern(self, pattern_id: int) -> bool:
        """Delete a pattern by id."""
        return self._delete(AllowlistPatternModel.id == pattern_id, pattern_id=pattern_id)

    def remove_pattern_by_value(self, value: str) -> bool:
        """Delete a pattern by its value."""
        return self._delete(AllowlistPatternModel.pattern_value == value, pattern=value)

    def activate_pattern(self, pattern_id: int) -> bool:
        return self._set_active(pattern_id, True)

    def deactivate_pattern(self, pattern_id: int) -> bool:
        """Keep the pattern but stop using it for matching."""
        return self._set_active(pattern_id, False)

    def _delete(self, condition: Any, **log_fields: Any) -> bool:
        stmt = delete(AllowlistPatternModel).where(
            AllowlistPatternModel.site_id == self.tenant_id, condition
        )
        try:
            with session_scope(self.session_factory) as session:
                removed = session.execute(stmt).rowcount  # type: ignore[attr-defined]
        except SQLAlchemyError:
            logger.warning("allowlist_pattern_remove_failed", exc_info=True, **log_fields)
            return False
        finally:
            self.clear_cache()

        if removed:
            logger.info("allowlist_pattern_removed", tenant_id=self.tenant_id, **log_fields)
        return removed > 0

    def _set_active(self, pattern_id: int, active: bool) -> bool:
        stmt = (
            update(AllowlistPatternModel)
            .where(
                AllowlistPatternModel.site_id == self.tenant_id,
                AllowlistPatternModel.id == pattern_id,
            )
            .values(is_active=active, updated_at=utcnow())
        )
        try:
            with session_scope(self.session_factory) as session:
                affected = session.execute(stmt).rowcount  # type: ignore[attr-defined]
        except SQLAlchemyError:
            logger.warning(
                "allowlist_pattern_update_failed",
                pattern_id=pattern_id,
                is_active=active,
                exc_info=True,
            )
            return False
        finally:
            self.clear_cache()

        return affected > 0

    # -- Reads --

    def all_patterns(self) -> list[AllowlistPattern]:
        """Active patterns, newest first, served from the tenant cache."""
        cached = self._cache_get()
        if cached is not None:
            return [AllowlistPattern.from_dict(row) for row in cached]

        try:
            patterns = self._query(active_only=True)
        except PersistenceError:
            logger.warning("allowlist_read_failed", tenant_id=self.tenant_id, exc_info=True)
            return []

        self._cache_set([pattern.to_dict() for pattern in patterns])
        return patterns

    def list_patterns(self, include_inactive: bool = True) -> list[AllowlistPattern]:
        """Uncached listing for the admin screens. Raises PersistenceError."""
        return self._query(active_only=not include_inactive)

    def get_pattern(self, pattern_id: int) -> AllowlistPattern | None:
        stmt = select(AllowlistPatternModel).where(
            AllowlistPatternModel.site_id == self.tenant_id,
            AllowlistPatternModel.id == pattern_id,
        )
        try:
            with session_scope(self.session_factory) as session:
                model = session.scalars(stmt).one_or_none()
                return self._to_domain(model) if model else None
        except SQLAlchemyError as exc:
            raise PersistenceError("Failed to read allowlist pattern") from exc

    def matches(self, callback_name: str) -> bool:
        """Whether any active pattern matches; stops at the first match."""
        for pattern in self.all_patterns():
            if self.matcher.matches(callback_name, pattern.pattern_value, pattern.pattern_type):
                return True
        return False

    def client_patterns(self) -> list[dict[str, Any]]:
        """Active patterns in the shape the admin page scripts consume.

        Wildcards are flagged case-insensitive: the browser-side matcher
        has always compared them that way.
        """
        return [
            {
                "value": pattern.pattern_value,
                "type": pattern.pattern_type.value,
                "case_sensitive": pattern.pattern_type is not PatternType.wildcard,
            }
            for pattern in self.all_patterns()
        ]

    def _query(self, active_only: bool) -> list[AllowlistPattern]:
        stmt = select(AllowlistPatternModel).where(
            AllowlistPatternModel.site_id == self.tenant_id
        )
        if active_only:
            stmt = stmt.where(AllowlistPatternModel.is_active.is_(True))
        stmt = stmt.order_by(
            AllowlistPatternModel.created_at.desc(), AllowlistPatternModel.id.desc()
        )

        try:
            with session_scope(self.session_factory) as session:
                return [self._to_domain(model) for model in session.scalars(stmt).all()]
        except SQLAlchemyError as exc:
            raise PersistenceError(
                "Failed to read allowlist patterns", details={"tenant_id": self.tenant_id}
            ) from exc

    def _cache_get(self) -> list[dict[str, Any]] | None:
        try:
            return self.cache.get(self.cache_key)
        except Exception:
            logger.warning("allowlist_cache_read_failed", key=self.cache_key, exc_info=True)
            return None

    def _cache_set(self, rows: list[dict[str, Any]]) -> None:
        try:
            self.cache.set(self.cache_key, rows, ttl=self.cache_ttl)
        except Exception:
            logger.warning("allowlist_cache_write_failed", key=self.cache_key, exc_info=True)

    @staticmethod
    def _to_domain(model: AllowlistPatternModel) -> AllowlistPattern:
        return AllowlistPattern(
            id=model.id,
            pattern_value=model.pattern_value,
            pattern_type=PatternType(model.pattern_type),
            is_active=bool(model.is_active),
            created_by=model.created_by,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )
