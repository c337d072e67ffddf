"""Third-party plugin tweaks."""

from __future__ import annotations

from typing import Any

ADMIN_INIT = "admin_init"


class WooCommerceCompat:
    """Drops the WooThemes updater nag, which no allowlist should revive."""

    NOTICE_CALLBACK = "woothemes_updater_notice"
    PRIORITY = 15

    def __init__(self, registry: Any) -> None:
        self.registry = registry

    def register(self) -> None:
        self.registry.add(ADMIN_INIT, self.remove_updater_notice, self.PRIORITY)

    def remove_updater_notice(self, *_args: Any) -> bool:
        return self.registry.remove("admin_notices", 10, self.NOTICE_CALLBACK)
