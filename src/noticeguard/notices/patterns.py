"""
Allowlist pattern matching.

Three pattern types:
    exact     'rocket_bad_deactivations' matches only itself (case-sensitive)
    wildcard  'rocket_*' matches 'rocket_notice', not 'my_rocket_notice';
              '*' is zero or more of any character, the rest is literal
    regex     '^rocket_.*$' or delimited '/^rocket_/i', searched against
              the name

An invalid regex never raises out of ``matches``; it is a non-match.
"""

from __future__ import annotations

import re
from functools import lru_cache

from noticeguard.domain.models import PatternType

# Delimited regex form: /body/flags, #body#flags, ~body~flags ...
_DELIMITED = re.compile(r"^([/#~@%!|])(.*)\1([imsxu]*)$", re.DOTALL)

_FLAGS = {
    "i": re.IGNORECASE,
    "m": re.MULTILINE,
    "s": re.DOTALL,
    "x": re.VERBOSE,
    "u": 0,
}


@lru_cache(maxsize=512)
def compile_regex(pattern: str) -> re.Pattern[str]:
    """Compile a stored regex pattern. Raises ``re.error`` when invalid."""
    if not pattern:
        raise re.error("empty pattern")

    delimited = _DELIMITED.match(pattern)
    if delimited:
        body, modifiers = delimited.group(2), delimited.group(3)
        flags = 0
        for modifier in modifiers:
            flags |= _FLAGS[modifier]
        return _compile(body, flags)

    return _compile(pattern)


def _compile(pattern: str, flags: int = 0) -> re.Pattern[str]:
    # Oversized repeat counts and deeply nested groups fail outside re.error.
    try:
        return re.compile(pattern, flags)
    except (OverflowError, RecursionError) as exc:
        raise re.error(str(exc)) from exc


@lru_cache(maxsize=512)
def compile_wildcard(pattern: str, case_sensitive: bool = True) -> re.Pattern[str]:
    """Translate a wildcard pattern into an anchored regex."""
    body = re.escape(pattern).replace(r"\*", ".*")
    flags = re.DOTALL if case_sensitive else re.DOTALL | re.IGNORECASE
    return re.compile(body, flags)


def is_valid_pattern(pattern: str) -> bool:
    """Whether ``pattern`` compiles as a regular expression."""
    try:
        compile_regex(pattern)
    except re.error:
        return False
    return True


class PatternMatcher:
    """Decides whether a callback name matches a stored pattern.

    ``case_sensitive_wildcards`` selects between the server-side behaviour
    (case-sensitive, the default) and the client-side behaviour the admin
    page scripts use (case-insensitive).
    """

    def __init__(self, case_sensitive_wildcards: bool = True) -> None:
        self.case_sensitive_wildcards = case_sensitive_wildcards

    def matches(self, name: str, pattern: str, pattern_type: PatternType | str) -> bool:
        try:
            kind = PatternType(pattern_type)
        except ValueError:
            return False

        if kind is PatternType.exact:
            return name == pattern
        if kind is PatternType.wildcard:
            return self.matches_wildcard(name, pattern)
        return self.matches_regex(name, pattern)

    def matches_wildcard(self, name: str, pattern: str) -> bool:
        regex = compile_wildcard(pattern, self.case_sensitive_wildcards)
        return regex.fullmatch(name) is not None

    @staticmethod
    def matches_regex(name: str, pattern: str) -> bool:
        try:
            regex = compile_regex(pattern)
        except re.error:
            return False
        return regex.search(name) is not None

    @staticmethod
    def is_valid_pattern(pattern: str) -> bool:
        return is_valid_pattern(pattern)
