"""Routing rules — immutable predicate + destination + obligations records.

A rule matches an event when every populated predicate holds (unset
predicates match anything).  Obligations (consent, sampling, environment
gates) are checked by the routing engine once a rule has matched.
"""

from __future__ import annotations

import logging
import re
from typing import Any, NamedTuple

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from eventgate.core import pattern_matcher, sampling
from eventgate.models.events import (
    ConsentState,
    EventCategory,
    PropertyValue,
    TrackableEvent,
    coerce_category,
)
from eventgate.models.groups import SinkGroup

logger = logging.getLogger(__name__)


class _Mismatch(NamedTuple):
    check: str
    expected: Any
    actual: Any


def _values_equal(actual: Any, expected: Any) -> bool:
    # True == 1 in Python; property checks must not conflate them.
    if isinstance(actual, bool) or isinstance(expected, bool):
        return type(actual) is type(expected) and actual == expected
    return actual == expected


class Rule(BaseModel):
    """A single routing rule.

    Examples
    --------
    >>> from eventgate.models.groups import ALL_SINKS
    >>> rule = Rule(category="business", target_group="s1-only", priority=10)
    >>> rule.group_name
    's1-only'
    >>> Rule(is_default=True, target_group=ALL_SINKS).sample_rate
    1.0
    """

    model_config = ConfigDict(frozen=True)

    id: str | None = None

    # Predicates
    event_type: str | None = None
    event_name_pattern: str | None = None
    event_name_regex: str | None = None
    category: EventCategory | None = None
    has_property: str | None = None
    property_value: PropertyValue | None = None
    contains_pii: bool | None = None
    is_high_volume: bool | None = None
    is_essential: bool | None = None
    is_default: bool = False

    # Destination
    target_group: SinkGroup | str

    # Obligations
    sample_rate: float = 1.0
    require_consent: bool = True
    require_pii_consent: bool = False
    debug_only: bool = False
    production_only: bool = False

    priority: int = 0
    description: str | None = None

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    @field_validator("category", mode="before")
    @classmethod
    def _coerce_category(cls, value: Any) -> Any:
        return coerce_category(value)

    @field_validator("sample_rate")
    @classmethod
    def _check_sample_rate(cls, value: float) -> float:
        problems = sampling.validate_sample_rate(value)
        if problems:
            raise ValueError(problems[0])
        return value

    @field_validator("event_name_regex")
    @classmethod
    def _check_regex(cls, value: str | None) -> str | None:
        if value is not None:
            try:
                pattern_matcher.compile_pattern(value)
            except re.error as exc:
                raise ValueError(f"Invalid event name regex {value!r}: {exc}") from exc
        return value

    @model_validator(mode="after")
    def _warn_conflicting_environment(self) -> Rule:
        if self.debug_only and self.production_only:
            logger.warning(
                "Rule %s is both debug_only and production_only and can never match",
                self.id or self.description or "<unnamed>",
            )
        return self

    # ------------------------------------------------------------------
    # Identity
    # ------------------------------------------------------------------

    def _identity(self) -> tuple[Any, ...]:
        return (
            self.id,
            self.event_type,
            self.event_name_pattern,
            self.event_name_regex,
            self.category,
            self.target_group,
        )

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Rule):
            return self._identity() == other._identity()
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._identity())

    def __str__(self) -> str:
        conditions: list[str] = []
        if self.event_type is not None:
            conditions.append(f"type: {self.event_type}")
        if self.event_name_pattern is not None:
            conditions.append(f"pattern: {self.event_name_pattern}")
        if self.event_name_regex is not None:
            conditions.append(f"regex: {self.event_name_regex}")
        if self.category is not None:
            conditions.append(f"category: {self.category.name}")
        if self.has_property is not None:
            conditions.append(f"property: {self.has_property}")
        if self.is_default:
            conditions.append("default")
        return f"Rule({', '.join(conditions)} -> {self.group_name})"

    @property
    def group_name(self) -> str:
        if isinstance(self.target_group, SinkGroup):
            return self.target_group.name
        return self.target_group

    @property
    def label(self) -> str:
        """Human-readable name used in warnings and skip reasons."""
        return self.description or str(self)

    # ------------------------------------------------------------------
    # Predicate evaluation
    # ------------------------------------------------------------------

    def _first_mismatch(
        self, event: TrackableEvent, is_debug_mode: bool
    ) -> _Mismatch | None:
        """Walk the predicates in evaluation order; stop at the first failure."""
        if self.debug_only and not is_debug_mode:
            return _Mismatch("debug_only", "debug mode", "production mode")
        if self.production_only and is_debug_mode:
            return _Mismatch("production_only", "production mode", "debug mode")

        if self.event_type is not None and event.event_type != self.event_type:
            return _Mismatch("event_type", self.event_type, event.event_type)

        name = event.name
        if self.event_name_pattern is not None and self.event_name_pattern not in name:
            return _Mismatch("event_name_pattern", self.event_name_pattern, name)

        if self.event_name_regex is not None and not pattern_matcher.matches_regex(
            name, pattern_matcher.compile_pattern(self.event_name_regex)
        ):
            return _Mismatch("event_name_regex", self.event_name_regex, name)

        if self.category is not None and event.category != self.category:
            actual = event.category.name if event.category is not None else None
            return _Mismatch("category", self.category.name, actual)

        if self.has_property is not None:
            props = event.properties
            if not props or self.has_property not in props:
                return _Mismatch("has_property", self.has_property, sorted(props or {}))
            if self.property_value is not None and not _values_equal(
                props[self.has_property], self.property_value
            ):
                return _Mismatch(
                    "property_value", self.property_value, props[self.has_property]
                )

        if self.contains_pii is not None and event.contains_pii != self.contains_pii:
            return _Mismatch("contains_pii", self.contains_pii, event.contains_pii)
        if self.is_high_volume is not None and event.is_high_volume != self.is_high_volume:
            return _Mismatch("is_high_volume", self.is_high_volume, event.is_high_volume)
        if self.is_essential is not None and event.is_essential != self.is_essential:
            return _Mismatch("is_essential", self.is_essential, event.is_essential)

        return None

    def matches(self, event: TrackableEvent, is_debug_mode: bool = False) -> bool:
        """Return True when every populated predicate holds for *event*."""
        return self._first_mismatch(event, is_debug_mode) is None

    def mismatch_reason(
        self, event: TrackableEvent, is_debug_mode: bool = False
    ) -> str | None:
        """Describe the first failing predicate, or None when the rule matches."""
        miss = self._first_mismatch(event, is_debug_mode)
        if miss is None:
            return None
        return _REASON_FORMATS[miss.check].format(
            expected=miss.expected, actual=miss.actual, name=event.name
        )

    # ------------------------------------------------------------------
    # Obligations
    # ------------------------------------------------------------------

    def should_apply(self, event: TrackableEvent, consent: ConsentState) -> bool:
        """Check consent obligations.  Essential events always pass."""
        if event.is_essential:
            return True
        if self.require_consent and not consent.general:
            return False
        if self.require_pii_consent and not consent.pii:
            return False
        if event.requires_consent and not consent.general:
            return False
        return True

    def should_sample(self, key: str | None = None) -> bool:
        """Sampling decision at this rule's rate; deterministic when keyed."""
        if key:
            return sampling.should_sample_deterministic(key, self.sample_rate)
        return sampling.should_sample(self.sample_rate)

    # ------------------------------------------------------------------
    # Copy / dump
    # ------------------------------------------------------------------

    def copy_with(self, **changes: Any) -> Rule:
        """Return a new, revalidated rule with *changes* applied."""
        return type(self).model_validate({**dict(self), **changes})

    def to_map(self) -> dict[str, Any]:
        target = self.target_group
        return {
            "id": self.id,
            "event_type": self.event_type,
            "event_name_pattern": self.event_name_pattern,
            "event_name_regex": self.event_name_regex,
            "category": self.category.name if self.category is not None else None,
            "has_property": self.has_property,
            "property_value": self.property_value,
            "contains_pii": self.contains_pii,
            "is_high_volume": self.is_high_volume,
            "is_essential": self.is_essential,
            "is_default": self.is_default,
            "target_group": target.to_map() if isinstance(target, SinkGroup) else target,
            "sample_rate": self.sample_rate,
            "require_consent": self.require_consent,
            "require_pii_consent": self.require_pii_consent,
            "debug_only": self.debug_only,
            "production_only": self.production_only,
            "priority": self.priority,
            "description": self.description,
        }


_REASON_FORMATS: dict[str, str] = {
    "debug_only": "Rule is debug-only but not in debug mode",
    "production_only": "Rule is production-only but in debug mode",
    "event_type": "Event type mismatch: expected {expected}, got {actual}",
    "event_name_pattern": 'Event name pattern mismatch: "{actual}" does not contain "{expected}"',
    "event_name_regex": 'Event name regex mismatch: "{actual}" does not match /{expected}/',
    "category": "Category mismatch: expected {expected}, got {actual}",
    "has_property": 'Missing property: expected "{expected}" in {actual}',
    "property_value": "Property value mismatch: expected {expected!r}, got {actual!r}",
    "contains_pii": "PII flag mismatch: expected {expected}, got {actual}",
    "is_high_volume": "High-volume flag mismatch: expected {expected}, got {actual}",
    "is_essential": "Essential flag mismatch: expected {expected}, got {actual}",
}
