"""
Admin notice suppression.

Names and hashes notice callbacks, matches them against allowlist
patterns, removes the rest from the hook registry and records every
decision in a per-day deduplicated log.
"""

from noticeguard.notices.allowlist import AllowlistStore
from noticeguard.notices.callbacks import (
    Anonymous,
    CallbackRef,
    Invokable,
    Method,
    Named,
    Unrecognized,
    callback_ref,
)
from noticeguard.notices.engine import NOTICE_CHANNELS, SuppressionEngine, SuppressionReport
from noticeguard.notices.identifier import CallbackIdentifier
from noticeguard.notices.log import DecisionLog
from noticeguard.notices.migration import SCHEMA_VERSION, SchemaMigrator
from noticeguard.notices.patterns import PatternMatcher
from noticeguard.notices.policy import PolicyGate, RequestContext

__all__ = [
    "AllowlistStore",
    "Anonymous",
    "CallbackIdentifier",
    "CallbackRef",
    "DecisionLog",
    "Invokable",
    "Method",
    "NOTICE_CHANNELS",
    "Named",
    "PatternMatcher",
    "PolicyGate",
    "RequestContext",
    "SCHEMA_VERSION",
    "SchemaMigrator",
    "SuppressionEngine",
    "SuppressionReport",
    "Unrecognized",
    "callback_ref",
]
