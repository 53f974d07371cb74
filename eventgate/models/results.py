"""Routing outcome models — results, skip records, and debug traces."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict

from eventgate.models.events import event_to_map
from eventgate.models.rules import Rule


class SkippedRule(BaseModel):
    """A matching rule that did not contribute sinks, and why."""

    model_config = ConfigDict(frozen=True)

    rule: Rule
    reason: str

    def __str__(self) -> str:
        return f"SkippedRule({self.rule.label}: {self.reason})"

    def to_map(self) -> dict[str, Any]:
        return {"rule": self.rule.to_map(), "reason": self.reason}


class RoutingResult(BaseModel):
    """Where one event goes, which rules decided it, and what was skipped.

    ``target_sinks`` has set semantics; ``to_map`` lists it sorted so dumps
    are stable.
    """

    model_config = ConfigDict(frozen=True)

    event: Any  # any TrackableEvent; not revalidated
    target_sinks: frozenset[str] = frozenset()
    applied_rules: tuple[Rule, ...] = ()
    skipped_rules: tuple[SkippedRule, ...] = ()
    warnings: tuple[str, ...] = ()

    @property
    def will_be_tracked(self) -> bool:
        return bool(self.target_sinks)

    @property
    def has_issues(self) -> bool:
        return bool(self.warnings or self.skipped_rules)

    def __str__(self) -> str:
        return (
            f"RoutingResult({len(self.target_sinks)} sinks, "
            f"{len(self.applied_rules)} rules applied)"
        )

    def to_map(self) -> dict[str, Any]:
        return {
            "event": event_to_map(self.event),
            "target_sinks": sorted(self.target_sinks),
            "applied_rules_count": len(self.applied_rules),
            "skipped_rules_count": len(self.skipped_rules),
            "warnings": list(self.warnings),
            "will_be_tracked": self.will_be_tracked,
            "has_issues": self.has_issues,
            "applied_rules": [r.to_map() for r in self.applied_rules],
            "skipped_rules": [s.to_map() for s in self.skipped_rules],
        }


class RuleDebugInfo(BaseModel):
    """Per-rule verdict in a debug trace."""

    model_config = ConfigDict(frozen=True)

    rule: Rule
    matches: bool
    reason: str

    def to_map(self) -> dict[str, Any]:
        return {"rule": self.rule.to_map(), "matches": self.matches, "reason": self.reason}


class DebugTrace(BaseModel):
    """Full, non-short-circuited evaluation of every rule against one event."""

    model_config = ConfigDict(frozen=True)

    event: Any  # any TrackableEvent; not revalidated
    all_rules: tuple[Rule, ...]
    matching_rules: tuple[Rule, ...]
    non_matching_rules: tuple[RuleDebugInfo, ...]
    routing_result: RoutingResult
    debug_mode: bool = False

    def to_map(self) -> dict[str, Any]:
        return {
            "event": event_to_map(self.event),
            "debug_mode": self.debug_mode,
            "total_rules_count": len(self.all_rules),
            "matching_rules_count": len(self.matching_rules),
            "non_matching_rules_count": len(self.non_matching_rules),
            "routing_result": self.routing_result.to_map(),
            "matching_rules": [r.to_map() for r in self.matching_rules],
            "non_matching_rules": [i.to_map() for i in self.non_matching_rules],
        }
