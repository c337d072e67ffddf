"""Tests for the suppression engine.

End-to-end scenarios run against the in-memory hook registry and an
in-memory SQLite database.
"""

from unittest.mock import MagicMock

import pytest
from noticeguard.db.models import NoticeLogModel
from noticeguard.domain.models import NoticeAction
from noticeguard.notices.engine import ENGINE_PRIORITY, NOTICE_CHANNELS, RENDER_PHASE
from noticeguard.notices.policy import (
    SKIP_GLOBAL_TOGGLE,
    SKIP_PRIVILEGED,
    SKIP_USER_PREFERENCE,
    RequestContext,
)
from sqlalchemy import select


def rocket_bad_deactivations():
    return "Rocket notice"


class YoastNotices:
    def render(self):
        return "Yoast notice"


def _log_rows(session_factory):
    with session_factory() as session:
        return session.scalars(select(NoticeLogModel)).all()


class TestScenarios:
    def test_allowlisted_callback_is_kept(
        self, engine, registry, allowlist, viewer, session_factory, gate
    ):
        gate.set_global_toggle("no")
        registry.add("admin_notices", rocket_bad_deactivations, 10)
        allowlist.add_pattern("rocket_*", "wildcard")

        report = engine.run(viewer)

        assert registry.has("admin_notices", rocket_bad_deactivations)
        assert report.kept == 1
        assert report.removed == 0
        [row] = _log_rows(session_factory)
        assert row.callback_name == "rocket_bad_deactivations"
        assert row.hook_name == "admin_notices"
        assert row.action_taken is NoticeAction.kept_allowlisted

    def test_unlisted_callback_is_removed(self, engine, registry, viewer, session_factory):
        registry.add("admin_notices", rocket_bad_deactivations, 10)

        report = engine.run(viewer)

        assert not registry.has("admin_notices", rocket_bad_deactivations)
        assert report.removed == 1
        [row] = _log_rows(session_factory)
        assert row.action_taken is NoticeAction.removed

    def test_privileged_viewer_changes_nothing(self, engine, registry, admin, session_factory):
        registry.add("admin_notices", rocket_bad_deactivations, 10)

        report = engine.run(admin)

        assert report.skipped_reason == SKIP_PRIVILEGED
        assert registry.has("admin_notices", rocket_bad_deactivations)
        assert _log_rows(session_factory) == []

    def test_invalid_regex_is_rejected(self, allowlist):
        assert allowlist.add_pattern("/[unterminated", "regex") is False
        assert allowlist.list_patterns() == []


class TestPolicyShortCircuit:
    def test_global_show_skips(self, engine, registry, gate, viewer, session_factory):
        gate.set_global_toggle("yes")
        registry.add("admin_notices", rocket_bad_deactivations)

        assert engine.run(viewer).skipped_reason == SKIP_GLOBAL_TOGGLE
        assert registry.count("admin_notices") == 1
        assert _log_rows(session_factory) == []

    def test_user_preference_skips(self, engine, registry, gate, viewer):
        gate.set_user_preference(viewer.user_id, "yes")
        registry.add("admin_notices", rocket_bad_deactivations)

        assert engine.run(viewer).skipped_reason == SKIP_USER_PREFERENCE
        assert registry.count("admin_notices") == 1

    def test_privileged_viewer_makes_no_registry_calls(self, engine, admin):
        engine.registry = MagicMock()
        engine.log = MagicMock()

        engine.run(admin)

        engine.registry.list.assert_not_called()
        engine.registry.remove.assert_not_called()
        engine.log.record_decision.assert_not_called()


class TestEnumeration:
    def test_all_four_channels(self, engine, registry, viewer):
        for channel in NOTICE_CHANNELS:
            registry.add(channel, rocket_bad_deactivations, 10)

        report = engine.run(viewer)

        assert report.removed == 4
        assert [d.channel for d in report.decisions] == list(NOTICE_CHANNELS)
        assert all(registry.count(channel) == 0 for channel in NOTICE_CHANNELS)

    def test_other_channels_untouched(self, engine, registry, viewer):
        registry.add("admin_footer", rocket_bad_deactivations)
        engine.run(viewer)
        assert registry.count("admin_footer") == 1

    def test_empty_registry_is_no_work(self, engine, viewer):
        report = engine.run(viewer)
        assert report.decisions == []
        assert not report.skipped

    def test_every_callback_processed_once(self, engine, registry, allowlist, viewer):
        yoast = YoastNotices()
        registry.add("admin_notices", rocket_bad_deactivations, 5)
        registry.add("admin_notices", yoast.render, 10)
        registry.add("admin_notices", lambda: "anon", 10)
        registry.add("admin_notices", "keep_me", 10)
        registry.add("admin_notices", "drop_me", 20)
        allowlist.add_pattern("keep_me")
        allowlist.add_pattern("YoastNotices::*", "wildcard")

        report = engine.run(viewer)

        names = [d.callback_name for d in report.decisions]
        assert names == [
            "rocket_bad_deactivations",
            "YoastNotices::render",
            "Closure",
            "keep_me",
            "drop_me",
        ]
        assert registry.has("admin_notices", "keep_me")
        assert registry.has("admin_notices", yoast.render)
        assert registry.count("admin_notices") == 2

    def test_allowlist_error_removes_only_that_callback(self, engine, registry, viewer):
        registry.add("admin_notices", "boom")
        registry.add("admin_notices", "fine")

        def matches(name):
            if name == "boom":
                raise RuntimeError("bad pattern")
            return True

        store = MagicMock()
        store.matches.side_effect = matches
        engine.allowlist = MagicMock()
        engine.allowlist.for_tenant.return_value = store

        report = engine.run(viewer)

        assert not registry.has("admin_notices", "boom")
        assert registry.has("admin_notices", "fine")
        assert report.removed == 1
        assert report.kept == 1

    def test_log_failure_does_not_undo_removal(self, engine, registry, viewer):
        registry.add("admin_notices", rocket_bad_deactivations)
        engine.log = MagicMock()
        engine.log.record_decision.side_effect = RuntimeError("db down")

        report = engine.run(viewer)

        assert report.removed == 1
        assert registry.count("admin_notices") == 0

    def test_second_run_same_day_logs_once(
        self, engine, registry, allowlist, viewer, session_factory
    ):
        allowlist.add_pattern("rocket_*", "wildcard")
        registry.add("admin_notices", rocket_bad_deactivations)

        engine.run(viewer)
        engine.run(viewer)

        assert len(_log_rows(session_factory)) == 1

    def test_uses_viewer_tenant(self, engine, registry, allowlist, session_factory):
        allowlist.for_tenant(3).add_pattern("rocket_*", "wildcard")
        registry.add("admin_notices", rocket_bad_deactivations)

        report = engine.run(RequestContext(user_id=9, tenant_id=3))

        assert report.kept == 1
        [row] = _log_rows(session_factory)
        assert row.site_id == 3
        assert row.user_id == 9


class TestRegistration:
    def test_runs_last_in_render_phase(self, engine, registry):
        registry.add(RENDER_PHASE, lambda ctx: None, 10)
        engine.register(registry)
        registry.add(RENDER_PHASE, lambda ctx: None, 999)

        listing = registry.list(RENDER_PHASE)
        assert max(listing) == ENGINE_PRIORITY
        assert list(listing[ENGINE_PRIORITY].values()) == [engine.run]

    def test_late_registered_notice_is_suppressed(self, engine, registry, viewer):
        engine.register(registry)
        registry.add(
            RENDER_PHASE,
            lambda ctx: registry.add("admin_notices", rocket_bad_deactivations),
            50,
        )

        registry.dispatch(RENDER_PHASE, viewer)

        assert registry.count("admin_notices") == 0


@pytest.mark.parametrize("channel", NOTICE_CHANNELS)
def test_removal_is_by_id_per_channel(engine, registry, viewer, channel):
    registry.add(channel, "one", 10)
    registry.add(channel, "two", 10)
    engine.run(viewer)
    assert registry.list(channel) == {}
