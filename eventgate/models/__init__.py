"""eventgate data models — all Pydantic v2, all frozen (immutable)."""

from eventgate.models.events import (
    BUSINESS,
    MARKETING,
    PREDEFINED_CATEGORIES,
    SECURITY,
    SENSITIVE,
    SYSTEM,
    TECHNICAL,
    USER,
    ConsentState,
    Event,
    EventCategory,
    PropertyValue,
    TrackableEvent,
)
from eventgate.models.groups import (
    ALL_SINKS,
    DEVELOPMENT_SINKS,
    PREDEFINED_GROUPS,
    WILDCARD,
    SinkGroup,
)
from eventgate.models.issues import IssueCode, IssueSeverity, ValidationIssue
from eventgate.models.results import DebugTrace, RoutingResult, RuleDebugInfo, SkippedRule
from eventgate.models.rules import Rule

__all__ = [
    # events
    "TrackableEvent",
    "Event",
    "PropertyValue",
    "EventCategory",
    "ConsentState",
    "PREDEFINED_CATEGORIES",
    "BUSINESS",
    "USER",
    "TECHNICAL",
    "SENSITIVE",
    "MARKETING",
    "SYSTEM",
    "SECURITY",
    # groups
    "SinkGroup",
    "WILDCARD",
    "ALL_SINKS",
    "DEVELOPMENT_SINKS",
    "PREDEFINED_GROUPS",
    # rules
    "Rule",
    # results
    "RoutingResult",
    "SkippedRule",
    "RuleDebugInfo",
    "DebugTrace",
    # issues
    "IssueSeverity",
    "IssueCode",
    "ValidationIssue",
]
