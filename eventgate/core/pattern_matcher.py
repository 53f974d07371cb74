"""Name and property pattern matching for rule predicates.

Glob-style patterns support ``*`` (any run of characters) and ``?`` (a
single character); every other character is literal.  Regex matching is a
case-insensitive search.

Compiled patterns are cached by pattern string in a bounded cache.  When
the cache is full it is cleared wholesale rather than evicting entries one
by one; a cache hit is the common path and only needs a dict lookup under
the lock.
"""

from __future__ import annotations

import re
import threading
from collections.abc import Iterable, Mapping
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict

MAX_CACHE_SIZE = 100

_cache: dict[str, re.Pattern[str]] = {}
_cache_lock = threading.Lock()


# ---------------------------------------------------------------------------
# Compiled pattern cache
# ---------------------------------------------------------------------------


def compile_pattern(pattern: str) -> re.Pattern[str]:
    """Return the case-insensitive compiled form of *pattern*.

    Raises
    ------
    re.error
        If *pattern* is not valid regex syntax.  Nothing is cached in that
        case.
    """
    with _cache_lock:
        cached = _cache.get(pattern)
        if cached is not None:
            return cached
    compiled = re.compile(pattern, re.IGNORECASE)
    with _cache_lock:
        if len(_cache) >= MAX_CACHE_SIZE:
            _cache.clear()
        _cache[pattern] = compiled
    return compiled


def clear_cache() -> None:
    """Drop every cached pattern."""
    with _cache_lock:
        _cache.clear()


def cache_stats() -> dict[str, int]:
    """Return the current cache size and its bound."""
    with _cache_lock:
        return {"size": len(_cache), "max_size": MAX_CACHE_SIZE}


def glob_to_regex(pattern: str) -> str:
    """Translate a ``*``/``?`` glob into an anchored regex string."""
    parts: list[str] = []
    for char in pattern:
        if char == "*":
            parts.append(".*")
        elif char == "?":
            parts.append(".")
        else:
            parts.append(re.escape(char))
    return "^" + "".join(parts) + "$"


# ---------------------------------------------------------------------------
# Name matching
# ---------------------------------------------------------------------------


def matches_simple(name: str, pattern: str) -> bool:
    """Match *name* against a glob *pattern* (``*`` and ``?`` wildcards)."""
    if pattern == "*" or pattern == name:
        return True
    return compile_pattern(glob_to_regex(pattern)).search(name) is not None


def matches_regex(name: str, compiled: re.Pattern[str]) -> bool:
    """Return True when *compiled* finds a match anywhere in *name*."""
    return compiled.search(name) is not None


def matches_any(name: str, patterns: Iterable[str]) -> bool:
    """OR over several glob patterns."""
    return any(matches_simple(name, p) for p in patterns)


def matches_any_regex(name: str, patterns: Iterable[re.Pattern[str]]) -> bool:
    return any(matches_regex(name, p) for p in patterns)


def matches_any_prefix(name: str, prefixes: Iterable[str]) -> bool:
    return any(name.startswith(p) for p in prefixes)


def matches_any_suffix(name: str, suffixes: Iterable[str]) -> bool:
    return any(name.endswith(s) for s in suffixes)


def matches_any_substring(name: str, substrings: Iterable[str]) -> bool:
    return any(s in name for s in substrings)


# ---------------------------------------------------------------------------
# Named category patterns
# ---------------------------------------------------------------------------


class CategoryPattern(str, Enum):
    """Common event-name families, each backed by a prefix regex."""

    USER_INTERACTION = "user_interaction"
    NAVIGATION = "navigation"
    BUSINESS = "business"
    ERROR = "error"
    PERFORMANCE = "performance"
    DEBUG = "debug"
    SYSTEM = "system"
    NETWORK = "network"


CATEGORY_PATTERNS: dict[CategoryPattern, str] = {
    CategoryPattern.USER_INTERACTION: r"(click|tap|touch|swipe|scroll|input|select|focus|blur)_.*",
    CategoryPattern.NAVIGATION: r"(page_view|navigate|route|screen|tab)_.*",
    CategoryPattern.BUSINESS: r"(purchase|payment|signup|login|subscription|conversion)_.*",
    CategoryPattern.ERROR: r"(error|exception|crash|failure|timeout)_.*",
    CategoryPattern.PERFORMANCE: r"(load|render|response|latency|memory|cpu)_.*",
    CategoryPattern.DEBUG: r"(debug|test|dev|trace|log)_.*",
    CategoryPattern.SYSTEM: r"(system|health|heartbeat|status|config)_.*",
    CategoryPattern.NETWORK: r"(api|http|request|response|network|download|upload)_.*",
}


def category_pattern(kind: CategoryPattern) -> re.Pattern[str]:
    """Return the cached compiled regex for a named category."""
    return compile_pattern(CATEGORY_PATTERNS[kind])


def matches_category(name: str, kind: CategoryPattern) -> bool:
    return matches_regex(name, category_pattern(kind))


# ---------------------------------------------------------------------------
# Property matching
# ---------------------------------------------------------------------------


class PropertyMatcher(BaseModel):
    """How a single property value is checked.

    At most one of ``expected_value``, ``pattern`` (glob) or ``regex`` is
    normally set; with none set the matcher only checks existence.
    """

    model_config = ConfigDict(frozen=True)

    expected_value: Any = None
    pattern: str | None = None
    regex: str | None = None

    @classmethod
    def equals(cls, value: Any) -> PropertyMatcher:
        return cls(expected_value=value)

    @classmethod
    def glob(cls, pattern: str) -> PropertyMatcher:
        return cls(pattern=pattern)

    @classmethod
    def matching(cls, regex: str) -> PropertyMatcher:
        return cls(regex=regex)

    def __str__(self) -> str:
        if self.expected_value is not None:
            return f"equals({self.expected_value!r})"
        if self.pattern is not None:
            return f"pattern({self.pattern})"
        if self.regex is not None:
            return f"regex({self.regex})"
        return "exists"


def match_property(
    properties: Mapping[str, Any] | None,
    property_name: str,
    matcher: PropertyMatcher | None = None,
) -> bool:
    """Check one property against *matcher* (existence only when None)."""
    if not properties or property_name not in properties:
        return False
    if matcher is None:
        return True

    value = properties[property_name]
    if matcher.expected_value is not None:
        return value == matcher.expected_value
    if matcher.pattern is not None and isinstance(value, str):
        return matches_simple(value, matcher.pattern)
    if matcher.regex is not None and isinstance(value, str):
        return matches_regex(value, compile_pattern(matcher.regex))
    return True


def match_all_properties(
    properties: Mapping[str, Any] | None, matchers: Mapping[str, PropertyMatcher]
) -> bool:
    """AND over several property matchers."""
    if properties is None:
        return False
    return all(match_property(properties, k, m) for k, m in matchers.items())


def match_any_property(
    properties: Mapping[str, Any] | None, matchers: Mapping[str, PropertyMatcher]
) -> bool:
    """OR over several property matchers."""
    if properties is None:
        return False
    return any(match_property(properties, k, m) for k, m in matchers.items())


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


class PatternValidation(BaseModel):
    """Outcome of :func:`validate_pattern`."""

    model_config = ConfigDict(frozen=True)

    is_valid: bool
    error: str | None = None

    def __str__(self) -> str:
        return "Valid" if self.is_valid else f"Invalid: {self.error}"


def validate_pattern(pattern: str) -> PatternValidation:
    """Check that *pattern* compiles, as a glob if it has wildcards else as regex."""
    source = glob_to_regex(pattern) if ("*" in pattern or "?" in pattern) else pattern
    try:
        re.compile(source)
    except re.error as exc:
        return PatternValidation(is_valid=False, error=f"Invalid pattern: {exc}")
    return PatternValidation(is_valid=True)
