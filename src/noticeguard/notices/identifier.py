"""
Callback identification.

Derives a human-readable name and a deterministic hash for a notice
callback without ever executing it. Names are what allowlist patterns
match against; hashes key the decision log's per-day dedup constraint.
"""

from __future__ import annotations

import hashlib
import re
from typing import Any

from noticeguard.notices.callbacks import (
    Anonymous,
    Invokable,
    Method,
    Named,
    callback_ref,
    owner_name,
)

CLOSURE_NAME = "Closure"
UNKNOWN_NAME = "Unknown"

_TAGS = re.compile(r"</?[a-zA-Z][^<>]*>")
_CONTROL = re.compile(r"[\x00-\x1f\x7f]+")


class CallbackIdentifier:
    """Names and hashes callbacks for one tenant.

    Hash strategy:
    - Callback-based only, never content-based
    - MD5 over ``name::channel::{tenant}_{secret}``
    - Channel is part of the digest so one callback on two channels
      produces two identifiers
    """

    def __init__(self, tenant_id: int = 1, secret: str = "") -> None:
        self.tenant_id = tenant_id
        self.secret = secret

    def name(self, callback: Any) -> str:
        """Human-readable name for a callback.

        - Named function: the name unchanged
        - Method: ``Type::method``
        - Invokable object: ``Type::__invoke``
        - Anonymous unit: ``Closure``
        - Anything else: ``Unknown``
        """
        ref = callback_ref(callback)

        if isinstance(ref, Named):
            return ref.name
        if isinstance(ref, Method):
            owner = owner_name(ref.owner)
            if owner is None:
                return UNKNOWN_NAME
            return f"{owner}::{ref.method}"
        if isinstance(ref, Invokable):
            return f"{type(ref.owner).__qualname__}::__invoke"
        if isinstance(ref, Anonymous):
            return CLOSURE_NAME
        return UNKNOWN_NAME

    def hash(self, callback: Any, channel: str, tenant_id: int | None = None) -> str:
        """32-character hex digest identifying a callback on a channel."""
        tenant = self.tenant_id if tenant_id is None else tenant_id
        site_salt = f"{tenant}_{self.secret}"
        hash_string = f"{self.name(callback)}::{channel}::{site_salt}"
        return hashlib.md5(hash_string.encode("utf-8"), usedforsecurity=False).hexdigest()

    def is_closure(self, callback: Any) -> bool:
        return isinstance(callback_ref(callback), Anonymous)

    @staticmethod
    def sanitize_pattern(pattern: str) -> str:
        """Clean user-supplied pattern text.

        Strips markup, control characters and surrounding whitespace while
        leaving wildcard and regex syntax intact.
        """
        cleaned = _TAGS.sub("", pattern)
        cleaned = _CONTROL.sub(" ", cleaned)
        return cleaned.strip()
