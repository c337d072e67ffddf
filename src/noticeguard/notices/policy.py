"""
Policy gate.

Decides whether suppression runs for the current viewer. Checks
short-circuit in this order:

1. Viewer holds the elevated capability -> skip (privileged viewers see
   every notice)
2. Global toggle says show notices -> skip
3. Viewer's personal preference says show notices -> skip
4. Otherwise suppress

The global toggle is stored under ``noticeguard_show_notices``: ``"yes"``
shows notices to everyone, ``"no"`` (the default) suppresses them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from noticeguard.options import OptionStore

DEFAULT_CAPABILITY = "noticeguard_full_access"

SHOW_NOTICES_OPTION = "noticeguard_show_notices"
SHOW_NOTICES_META = "noticeguard_show_notices"
HIDE_SITE_HEALTH_OPTION = "noticeguard_hide_site_health_for_all"
SHOW_SITE_HEALTH_UNPRIVILEGED_OPTION = "noticeguard_show_site_health_for_unprivileged"

SKIP_PRIVILEGED = "privileged_viewer"
SKIP_GLOBAL_TOGGLE = "global_toggle_show"
SKIP_USER_PREFERENCE = "user_preference_show"


def sanitize_yes_no(value: Any) -> str:
    return "yes" if value == "yes" else "no"


@dataclass(frozen=True)
class RequestContext:
    """Who is viewing, on which tenant, with which capabilities."""

    user_id: int = 0
    tenant_id: int = 1
    capabilities: frozenset[str] = field(default_factory=frozenset)
    is_admin: bool = True

    @property
    def is_logged_in(self) -> bool:
        return self.user_id > 0

    def can(self, capability: str) -> bool:
        return capability in self.capabilities


class PolicyGate:
    """Capability, global toggle and per-user preference checks."""

    def __init__(self, options: OptionStore, capability: str = DEFAULT_CAPABILITY) -> None:
        self.options = options
        self.capability = capability

    def has_capability(self, context: RequestContext, capability: str | None = None) -> bool:
        """Admin context, logged in, and holding the capability."""
        if not context.is_admin:
            return False
        if not context.is_logged_in:
            return False
        return context.can(capability or self.capability)

    # -- Global toggle --

    def global_toggle(self) -> str:
        return sanitize_yes_no(self.options.get_option(SHOW_NOTICES_OPTION, "no"))

    def set_global_toggle(self, value: str) -> str:
        cleaned = sanitize_yes_no(value)
        self.options.update_option(SHOW_NOTICES_OPTION, cleaned)
        return cleaned

    # -- Per-user preference --

    def user_preference(self, user_id: int) -> str:
        """``"yes"``, ``"no"`` or ``""`` when the user never chose."""
        if user_id <= 0:
            return ""
        value = self.options.get_user_meta(user_id, SHOW_NOTICES_META)
        if value in ("yes", "no"):
            return value
        return ""

    def set_user_preference(self, user_id: int, value: str) -> bool:
        return self.options.update_user_meta(user_id, SHOW_NOTICES_META, sanitize_yes_no(value))

    def toggle_user_preference(self, user_id: int) -> str | None:
        """Flip the viewer's preference: ``yes`` becomes ``no``, anything
        else becomes ``yes``. Returns the new value, None if not stored."""
        new_value = "no" if self.user_preference(user_id) == "yes" else "yes"
        if not self.set_user_preference(user_id, new_value):
            return None
        return new_value

    # -- Decisions --

    def skip_reason(self, context: RequestContext) -> str | None:
        """Why suppression should not run for this viewer, or None."""
        if self.has_capability(context):
            return SKIP_PRIVILEGED
        if self.global_toggle() == "yes":
            return SKIP_GLOBAL_TOGGLE
        if self.user_preference(context.user_id) == "yes":
            return SKIP_USER_PREFERENCE
        return None

    def should_suppress(self, context: RequestContext) -> bool:
        return self.skip_reason(context) is None

    def should_see_notices(self, context: RequestContext) -> bool:
        """Privileged viewers always may; others only by explicit preference."""
        if self.has_capability(context):
            return True
        if not context.is_logged_in:
            return False
        return self.user_preference(context.user_id) == "yes"

    def notice_state(self, context: RequestContext) -> dict[str, bool]:
        """Visibility flags the admin page scripts key their styling on.

        A privileged viewer who toggled notices off in the admin bar gets
        them hidden client-side even though nothing is suppressed.
        """
        has_access = self.has_capability(context)
        if has_access:
            visible = self.user_preference(context.user_id) != "no"
        else:
            visible = not self.should_suppress(context)
        return {"has_full_access": has_access, "notices_visible": visible}

    def should_hide_site_health(self, context: RequestContext) -> bool:
        hide_for_all = self.options.get_option(HIDE_SITE_HEALTH_OPTION, "yes")
        show_for_unprivileged = self.options.get_option(
            SHOW_SITE_HEALTH_UNPRIVILEGED_OPTION, "no"
        )

        if hide_for_all == "yes":
            return True
        if show_for_unprivileged == "yes":
            return False
        return not self.has_capability(context)
