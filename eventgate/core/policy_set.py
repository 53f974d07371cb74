"""Policy set — the ordered rule collection plus group/category tables.

Rules are stored in insertion order.  Priority ordering happens at
evaluation time in :meth:`PolicySet.matching_rules`, with a stable sort so
that rules of equal priority keep their relative insertion order.  Which
rule comes first among equals decides whose obligations are evaluated
first, so the tie-break must not change.

A ``PolicySet`` is frozen once built; share one instance across threads
freely.
"""

from __future__ import annotations

import logging
import math
from collections import Counter
from collections.abc import Mapping
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, field_serializer, field_validator

from eventgate.core.group_registry import SinkGroupRegistry
from eventgate.models.events import PREDEFINED_CATEGORIES, EventCategory, TrackableEvent
from eventgate.models.groups import ALL_SINKS, PREDEFINED_GROUPS, SinkGroup
from eventgate.models.issues import IssueCode, IssueSeverity, ValidationIssue
from eventgate.models.rules import Rule

if TYPE_CHECKING:
    from eventgate.config import EngineSettings

logger = logging.getLogger(__name__)


class PolicySet(BaseModel):
    """Rules, custom groups and categories, fallback group, global toggles.

    Examples
    --------
    >>> from eventgate.models.groups import ALL_SINKS
    >>> policy = PolicySet(rules=[Rule(is_default=True, target_group=ALL_SINKS)])
    >>> policy.validate()
    []
    """

    model_config = ConfigDict(frozen=True)

    rules: tuple[Rule, ...] = ()
    custom_groups: Mapping[str, SinkGroup] = Field(default_factory=dict, validate_default=True)
    custom_categories: Mapping[str, EventCategory] = Field(
        default_factory=dict, validate_default=True
    )
    fallback_group: SinkGroup | None = None
    enable_sampling: bool = True
    enable_consent_checking: bool = True
    debug_mode: bool = False
    deterministic_sampling: bool = False

    _registry: SinkGroupRegistry = PrivateAttr()

    @field_validator("custom_groups", "custom_categories")
    @classmethod
    def _read_only_table(cls, value: Mapping[str, Any]) -> Mapping[str, Any]:
        return MappingProxyType(dict(value))

    @field_serializer("custom_groups", "custom_categories")
    def _dump_table(self, value: Mapping[str, Any]) -> dict[str, Any]:
        return dict(value)

    def model_post_init(self, __context: Any) -> None:
        self._registry = SinkGroupRegistry(self.custom_groups)

    # ------------------------------------------------------------------
    # Construction helpers
    # ------------------------------------------------------------------

    @classmethod
    def empty(cls) -> PolicySet:
        return cls()

    @classmethod
    def from_settings(
        cls,
        rules: list[Rule] | tuple[Rule, ...],
        settings: EngineSettings | None = None,
        **overrides: Any,
    ) -> PolicySet:
        """Build a policy set whose global toggles come from *settings*."""
        if settings is None:
            from eventgate.config import settings as default_settings

            settings = default_settings
        values: dict[str, Any] = {
            "rules": tuple(rules),
            "enable_sampling": settings.enable_sampling,
            "enable_consent_checking": settings.enable_consent_checking,
            "debug_mode": settings.debug,
            "deterministic_sampling": settings.deterministic_sampling,
        }
        values.update(overrides)
        return cls(**values)

    @classmethod
    def with_smart_defaults(cls, **overrides: Any) -> PolicySet:
        """The smart-defaults preset with ``ALL_SINKS`` as fallback group."""
        from eventgate.core.presets import smart_defaults

        values: dict[str, Any] = {"rules": smart_defaults(), "fallback_group": ALL_SINKS}
        values.update(overrides)
        return cls(**values)

    def copy_with(self, **changes: Any) -> PolicySet:
        """Return a new, revalidated policy set with *changes* applied."""
        return type(self).model_validate({**dict(self), **changes})

    # ------------------------------------------------------------------
    # Rule selection
    # ------------------------------------------------------------------

    def matching_rules(self, event: TrackableEvent) -> list[Rule]:
        """Rules matching *event*, highest priority first.

        Falls back to the first default rule, then to a synthetic rule
        targeting ``fallback_group``, then to an empty list.  Never raises
        for "no match".
        """
        matched = [r for r in self.rules if r.matches(event, self.debug_mode)]

        if not matched:
            default_rule = next((r for r in self.rules if r.is_default), None)
            if default_rule is not None:
                return [default_rule]
            if self.fallback_group is not None:
                return [
                    Rule(
                        target_group=self.fallback_group,
                        is_default=True,
                        description="Fallback default rule",
                    )
                ]
            return []

        # sorted() is stable: equal priorities keep insertion order.
        return sorted(matched, key=lambda r: r.priority, reverse=True)

    def primary_rule(self, event: TrackableEvent) -> Rule | None:
        """The highest-priority matching rule, if any."""
        matched = self.matching_rules(event)
        return matched[0] if matched else None

    # ------------------------------------------------------------------
    # Group / category tables
    # ------------------------------------------------------------------

    @property
    def group_registry(self) -> SinkGroupRegistry:
        return self._registry

    def get_custom_group(self, name: str) -> SinkGroup | None:
        return self.custom_groups.get(name)

    def get_custom_category(self, name: str) -> EventCategory | None:
        return self.custom_categories.get(name)

    def all_groups(self) -> list[SinkGroup]:
        return [*PREDEFINED_GROUPS, *self.custom_groups.values()]

    def all_categories(self) -> list[EventCategory]:
        return [*PREDEFINED_CATEGORIES, *self.custom_categories.values()]

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def validate(self) -> list[ValidationIssue]:  # type: ignore[override]
        """Report configuration problems.  Never mutates, never raises."""
        issues: list[ValidationIssue] = []

        ids = [r.id for r in self.rules if r.id is not None]
        duplicates = [rid for rid, count in Counter(ids).items() if count > 1]
        if duplicates:
            issues.append(
                ValidationIssue(
                    severity=IssueSeverity.ERROR,
                    code=IssueCode.DUPLICATE_RULE_ID,
                    message=f"Duplicate rule IDs found: {', '.join(duplicates)}",
                )
            )

        for index, rule in enumerate(self.rules):
            if rule.id is not None and not rule.id.strip():
                issues.append(
                    ValidationIssue(
                        severity=IssueSeverity.ERROR,
                        code=IssueCode.EMPTY_RULE_ID,
                        message=f"Rule at position {index} has an empty identifier",
                    )
                )

        invalid_rates = [
            r.id or "unnamed"
            for r in self.rules
            if not math.isfinite(r.sample_rate) or not 0.0 <= r.sample_rate <= 1.0
        ]
        if invalid_rates:
            issues.append(
                ValidationIssue(
                    severity=IssueSeverity.ERROR,
                    code=IssueCode.INVALID_SAMPLE_RATE,
                    message=f"Invalid sample rates in rules: {', '.join(invalid_rates)}",
                )
            )

        if not any(r.is_default for r in self.rules) and self.fallback_group is None:
            issues.append(
                ValidationIssue(
                    severity=IssueSeverity.WARNING,
                    code=IssueCode.NO_DEFAULT,
                    message="No default rule or fallback group specified",
                )
            )

        referenced = {r.group_name for r in self.rules}
        unreferenced = [name for name in self.custom_groups if name not in referenced]
        if unreferenced:
            issues.append(
                ValidationIssue(
                    severity=IssueSeverity.WARNING,
                    code=IssueCode.UNREFERENCED_GROUP,
                    message=f"Unreferenced custom groups: {', '.join(unreferenced)}",
                )
            )

        for rule in self.rules:
            if self._registry.lookup(rule.target_group) is None:
                issues.append(
                    ValidationIssue(
                        severity=IssueSeverity.WARNING,
                        code=IssueCode.UNKNOWN_GROUP,
                        message=f'Rule "{rule.label}" targets unknown group "{rule.group_name}"',
                        rule_id=rule.id,
                    )
                )
            if rule.debug_only and rule.production_only:
                issues.append(
                    ValidationIssue(
                        severity=IssueSeverity.WARNING,
                        code=IssueCode.CONFLICTING_ENVIRONMENT,
                        message=f'Rule "{rule.label}" is both debug-only and production-only',
                        rule_id=rule.id,
                    )
                )

        return issues

    # ------------------------------------------------------------------
    # Dump
    # ------------------------------------------------------------------

    def to_map(self) -> dict[str, Any]:
        return {
            "rules": [r.to_map() for r in self.rules],
            "custom_groups": {k: v.to_map() for k, v in self.custom_groups.items()},
            "custom_categories": {k: v.to_map() for k, v in self.custom_categories.items()},
            "fallback_group": self.fallback_group.to_map() if self.fallback_group else None,
            "enable_sampling": self.enable_sampling,
            "enable_consent_checking": self.enable_consent_checking,
            "debug_mode": self.debug_mode,
            "deterministic_sampling": self.deterministic_sampling,
            "rules_count": len(self.rules),
            "custom_groups_count": len(self.custom_groups),
            "custom_categories_count": len(self.custom_categories),
        }

    def __str__(self) -> str:
        return (
            f"PolicySet({len(self.rules)} rules, "
            f"{len(self.custom_groups)} custom groups, "
            f"{len(self.custom_categories)} custom categories)"
        )
