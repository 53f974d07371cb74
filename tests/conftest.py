"""Shared test fixtures for eventgate."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pytest

from eventgate.core import pattern_matcher
from eventgate.core.policy_set import PolicySet
from eventgate.core.routing_engine import RoutingEngine
from eventgate.models.events import ConsentState, Event
from eventgate.models.groups import ALL_SINKS, SinkGroup
from eventgate.models.rules import Rule


@pytest.fixture(autouse=True)
def _clear_pattern_cache():
    """Each test starts with an empty compiled-pattern cache."""
    pattern_matcher.clear_cache()
    yield
    pattern_matcher.clear_cache()


@pytest.fixture
def available_sinks() -> frozenset[str]:
    """The sinks that are live in most tests."""
    return frozenset({"s1", "s2"})


@pytest.fixture
def s1_only() -> SinkGroup:
    return SinkGroup(name="s1-only", sink_ids=("s1",))


@pytest.fixture
def granted() -> ConsentState:
    return ConsentState.granted()


@pytest.fixture
def denied() -> ConsentState:
    return ConsentState.denied()


# ---------------------------------------------------------------------------
# Factories shared across test modules
# ---------------------------------------------------------------------------


@pytest.fixture
def make_event() -> Callable[..., Event]:
    """Factory fixture: build an Event with sensible defaults."""

    def _factory(name: str = "test_event", **overrides: Any) -> Event:
        return Event(name=name, **overrides)

    return _factory


@pytest.fixture
def make_policy() -> Callable[..., PolicySet]:
    """Factory fixture: build a PolicySet with sampling disabled by default."""

    def _factory(rules: list[Rule], **overrides: Any) -> PolicySet:
        values: dict[str, Any] = {"rules": rules, "enable_sampling": False}
        values.update(overrides)
        return PolicySet(**values)

    return _factory


@pytest.fixture
def make_engine(make_policy: Callable[..., PolicySet]) -> Callable[..., RoutingEngine]:
    """Factory fixture: build a RoutingEngine over a fresh PolicySet."""

    def _factory(rules: list[Rule], **overrides: Any) -> RoutingEngine:
        return RoutingEngine(make_policy(rules, **overrides))

    return _factory


@pytest.fixture
def default_rule() -> Rule:
    """Catch-all rule targeting every available sink."""
    return Rule(id="default", is_default=True, target_group=ALL_SINKS, priority=0)
