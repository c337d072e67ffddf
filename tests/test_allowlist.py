"""Tests for the allowlist store."""

from unittest.mock import MagicMock, patch

import pytest
from noticeguard.cache import MemoryCache
from noticeguard.core.errors import PersistenceError, ValidationError
from noticeguard.db.models import AllowlistPatternModel
from noticeguard.domain.models import PatternType
from noticeguard.notices.allowlist import MAX_PATTERN_LENGTH, AllowlistStore
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError


def _row_count(session_factory) -> int:
    with session_factory() as session:
        return session.scalar(select(func.count(AllowlistPatternModel.id)))


class TestAddPattern:
    def test_adds_active_pattern(self, allowlist):
        assert allowlist.add_pattern("rocket_*", PatternType.wildcard, created_by=7)

        [pattern] = allowlist.all_patterns()
        assert pattern.pattern_value == "rocket_*"
        assert pattern.pattern_type is PatternType.wildcard
        assert pattern.is_active
        assert pattern.created_by == 7
        assert pattern.created_at is not None

    def test_default_type_is_exact(self, allowlist):
        assert allowlist.add_pattern("rocket_bad_deactivations")
        assert allowlist.all_patterns()[0].pattern_type is PatternType.exact

    @pytest.mark.parametrize("pattern", ["/[unterminated", "a{4294967296}"])
    def test_invalid_regex_rejected_without_write(self, allowlist, session_factory, pattern):
        assert not allowlist.add_pattern(pattern, PatternType.regex)
        assert _row_count(session_factory) == 0

    def test_empty_pattern_rejected(self, allowlist, session_factory):
        assert not allowlist.add_pattern("   ")
        assert _row_count(session_factory) == 0

    def test_unknown_type_rejected(self, allowlist, session_factory):
        assert not allowlist.add_pattern("rocket", "glob")
        assert _row_count(session_factory) == 0

    def test_duplicate_rejected(self, allowlist, session_factory):
        assert allowlist.add_pattern("rocket_*", "wildcard")
        assert not allowlist.add_pattern("rocket_*", "exact")
        assert _row_count(session_factory) == 1

    def test_same_value_allowed_on_other_tenant(self, allowlist):
        assert allowlist.add_pattern("rocket_*", "wildcard")
        assert allowlist.for_tenant(2).add_pattern("rocket_*", "wildcard")

    def test_cache_cleared_even_on_failure(self, allowlist):
        allowlist.cache = MagicMock(wraps=MemoryCache())
        allowlist.add_pattern("/[unterminated", "regex")
        allowlist.cache.delete.assert_called_with(allowlist.cache_key)


class TestValidatePattern:
    def test_returns_type(self, allowlist):
        assert allowlist.validate_pattern("^a$", "regex") is PatternType.regex

    @pytest.mark.parametrize(
        "value,kind,message",
        [
            ("", "exact", "Pattern cannot be empty"),
            ("x" * (MAX_PATTERN_LENGTH + 1), "exact", "Pattern is too long"),
            ("(", "regex", "Invalid regular expression"),
            ("a{4294967296}", "regex", "Invalid regular expression"),
            ("rocket", "glob", "Unknown pattern type"),
        ],
    )
    def test_rejections(self, allowlist, value, kind, message):
        with pytest.raises(ValidationError) as exc_info:
            allowlist.validate_pattern(value, kind)
        assert exc_info.value.message == message


class TestCacheCoherence:
    def test_add_visible_immediately(self, allowlist):
        assert allowlist.all_patterns() == []
        allowlist.add_pattern("rocket_*", "wildcard")
        assert [p.pattern_value for p in allowlist.all_patterns()] == ["rocket_*"]

    def test_empty_result_is_cached(self, allowlist, cache):
        assert allowlist.all_patterns() == []
        assert cache.get(allowlist.cache_key) == []

    def test_reads_served_from_cache(self, allowlist, session_factory):
        allowlist.add_pattern("rocket_*", "wildcard")
        allowlist.all_patterns()

        with session_factory() as session:
            session.query(AllowlistPatternModel).delete()
            session.commit()

        assert [p.pattern_value for p in allowlist.all_patterns()] == ["rocket_*"]

    def test_tenants_do_not_share_cache(self, allowlist):
        allowlist.add_pattern("tenant_one_*", "wildcard")
        other = allowlist.for_tenant(2)

        assert allowlist.matches("tenant_one_notice")
        assert not other.matches("tenant_one_notice")
        assert other.cache_key != allowlist.cache_key

    def test_cache_failure_falls_back_to_database(self, allowlist):
        allowlist.add_pattern("rocket_*", "wildcard")
        allowlist.cache = MagicMock()
        allowlist.cache.get.side_effect = ConnectionError("redis down")

        assert allowlist.matches("rocket_notice")


class TestRemoveAndToggle:
    def test_remove_by_id(self, allowlist):
        allowlist.add_pattern("rocket_*", "wildcard")
        pattern_id = allowlist.all_patterns()[0].id

        assert allowlist.remove_pattern(pattern_id)
        assert allowlist.all_patterns() == []
        assert not allowlist.remove_pattern(pattern_id)

    def test_remove_by_value(self, allowlist):
        allowlist.add_pattern("rocket_*", "wildcard")
        assert allowlist.remove_pattern_by_value("rocket_*")
        assert not allowlist.remove_pattern_by_value("rocket_*")
        assert allowlist.all_patterns() == []

    def test_remove_only_touches_own_tenant(self, allowlist):
        other = allowlist.for_tenant(2)
        other.add_pattern("shared", "exact")

        assert not allowlist.remove_pattern_by_value("shared")
        assert other.matches("shared")

    def test_deactivate_hides_from_matching(self, allowlist):
        allowlist.add_pattern("rocket_*", "wildcard")
        pattern = allowlist.list_patterns()[0]

        assert allowlist.deactivate_pattern(pattern.id)
        assert not allowlist.matches("rocket_notice")
        assert allowlist.list_patterns()[0].is_active is False
        assert allowlist.list_patterns(include_inactive=False) == []

    def test_activate_bumps_updated_at(self, allowlist):
        allowlist.add_pattern("rocket_*", "wildcard")
        pattern = allowlist.list_patterns()[0]
        allowlist.deactivate_pattern(pattern.id)

        assert allowlist.activate_pattern(pattern.id)
        refreshed = allowlist.get_pattern(pattern.id)
        assert refreshed.is_active
        assert refreshed.updated_at >= pattern.updated_at
        assert allowlist.matches("rocket_notice")

    def test_toggle_missing_pattern(self, allowlist):
        assert not allowlist.activate_pattern(999)
        assert not allowlist.deactivate_pattern(999)


class TestReads:
    def test_newest_first(self, allowlist):
        for value in ("first", "second", "third"):
            allowlist.add_pattern(value)
        assert [p.pattern_value for p in allowlist.all_patterns()] == ["third", "second", "first"]

    def test_matches_any_type(self, allowlist):
        allowlist.add_pattern("exact_one")
        allowlist.add_pattern("wc_*", "wildcard")
        allowlist.add_pattern("^Yoast", "regex")

        assert allowlist.matches("exact_one")
        assert allowlist.matches("wc_notice")
        assert allowlist.matches("Yoast_Notice::render")
        assert not allowlist.matches("other_notice")

    def test_client_patterns(self, allowlist):
        allowlist.add_pattern("wc_*", "wildcard")
        allowlist.add_pattern("exact_one")

        assert allowlist.client_patterns() == [
            {"value": "exact_one", "type": "exact", "case_sensitive": True},
            {"value": "wc_*", "type": "wildcard", "case_sensitive": False},
        ]

    def test_get_pattern_missing(self, allowlist):
        assert allowlist.get_pattern(999) is None


class TestFailureSemantics:
    def test_read_error_is_empty_list(self, allowlist):
        with patch.object(
            AllowlistStore,
            "_query",
            side_effect=PersistenceError("Failed to read allowlist patterns"),
        ):
            assert allowlist.all_patterns() == []
            assert not allowlist.matches("anything")

    def test_list_patterns_raises(self, cache):
        factory = MagicMock(side_effect=OperationalError("SELECT", {}, Exception("down")))
        store = AllowlistStore(factory, cache)
        with pytest.raises(PersistenceError):
            store.list_patterns()

    def test_write_error_is_false(self, cache):
        factory = MagicMock(side_effect=OperationalError("INSERT", {}, Exception("down")))
        store = AllowlistStore(factory, cache)
        assert store.add_pattern("rocket_*", "wildcard") is False
        assert store.remove_pattern(1) is False
        assert store.deactivate_pattern(1) is False
