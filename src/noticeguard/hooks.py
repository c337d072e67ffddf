"""
Hook registry: named channels holding callbacks grouped by priority.

The suppression engine only needs ``list`` and ``remove``; hosts embedding
noticeguard can either adapt their own hook system to ``HookRegistry`` or
use ``InMemoryHookRegistry``, which also dispatches channels.
"""

from __future__ import annotations

import inspect
from typing import Any, Protocol

import structlog

logger = structlog.get_logger()

DEFAULT_PRIORITY = 10

Callback = Any


class HookRegistry(Protocol):
    def list(self, channel: str) -> dict[int, dict[str, Callback]]:
        """Snapshot of ``priority -> callback id -> callback`` for a channel."""
        ...

    def remove(self, channel: str, priority: int, callback_id: str) -> bool:
        """Remove one callback by id; True if something was removed."""
        ...


def callback_id(callback: Callback) -> str:
    """Stable registry id for a callback.

    Named functions registered by string keep their name, method pairs are
    keyed by owner identity plus method name, everything else by object
    identity.
    """
    if isinstance(callback, str):
        return callback
    if isinstance(callback, (tuple, list)) and len(callback) >= 2:
        owner, method = callback[0], callback[1]
        owner_key = owner if isinstance(owner, str) else f"{id(owner):x}"
        return f"{owner_key}::{method}"
    if inspect.ismethod(callback):
        return f"{id(callback.__self__):x}::{callback.__name__}"
    return f"{id(callback):x}"


class InMemoryHookRegistry:
    """Process-local hook registry."""

    def __init__(self) -> None:
        self._hooks: dict[str, dict[int, dict[str, Callback]]] = {}

    def add(self, channel: str, callback: Callback, priority: int = DEFAULT_PRIORITY) -> str:
        """Attach a callback to a channel and return its id."""
        cb_id = callback_id(callback)
        self._hooks.setdefault(channel, {}).setdefault(priority, {})[cb_id] = callback
        return cb_id

    def list(self, channel: str) -> dict[int, dict[str, Callback]]:
        buckets = self._hooks.get(channel, {})
        return {priority: dict(buckets[priority]) for priority in sorted(buckets)}

    def remove(self, channel: str, priority: int, callback_id: str) -> bool:
        bucket = self._hooks.get(channel, {}).get(priority)
        if not bucket or callback_id not in bucket:
            return False

        del bucket[callback_id]
        if not bucket:
            del self._hooks[channel][priority]
        return True

    def remove_callback(
        self, channel: str, callback: Callback, priority: int = DEFAULT_PRIORITY
    ) -> bool:
        return self.remove(channel, priority, callback_id(callback))

    def has(self, channel: str, callback: Callback | None = None) -> bool:
        """Whether the channel has any callbacks, or the given one."""
        buckets = self._hooks.get(channel, {})
        if callback is None:
            return any(buckets.values())

        cb_id = callback_id(callback)
        return any(cb_id in bucket for bucket in buckets.values())

    def count(self, channel: str) -> int:
        return sum(len(bucket) for bucket in self._hooks.get(channel, {}).values())

    def dispatch(self, channel: str, *args: Any) -> None:
        """Run every callback on a channel in priority order.

        Callbacks removed by an earlier callback in the same dispatch are
        skipped.
        """
        for priority, callbacks in self.list(channel).items():
            for cb_id in callbacks:
                bucket = self._hooks.get(channel, {}).get(priority, {})
                if cb_id not in bucket:
                    continue

                target = _resolve(bucket[cb_id])
                if target is None:
                    logger.debug("hook_callback_not_callable", channel=channel, callback_id=cb_id)
                    continue
                target(*args)


def _resolve(callback: Callback) -> Any:
    if isinstance(callback, (tuple, list)) and len(callback) >= 2:
        owner, method = callback[0], callback[1]
        if isinstance(owner, str):
            return None
        return getattr(owner, method, None)
    if callable(callback):
        return callback
    return None
