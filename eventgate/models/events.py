"""Event, category and consent models.

The engine reads events through the ``TrackableEvent`` protocol and never
mutates them.  ``Event`` is the stock frozen implementation; applications
may pass any object exposing the same attributes.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any, Protocol, Union, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Closed scalar variant allowed as a property value.
PropertyValue = Union[bool, int, float, str, datetime]


# ---------------------------------------------------------------------------
# Categories
# ---------------------------------------------------------------------------


class EventCategory(BaseModel):
    """A named routing category.  Two categories are equal when their names are."""

    model_config = ConfigDict(frozen=True)

    name: str
    description: str | None = None

    def __eq__(self, other: object) -> bool:
        if isinstance(other, EventCategory):
            return self.name == other.name
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self.name)

    def __str__(self) -> str:
        return f"EventCategory({self.name})"

    def create_subcategory(
        self, subcategory_name: str, description: str | None = None
    ) -> EventCategory:
        """Return ``<self.name>_<subcategory_name>``."""
        return EventCategory(
            name=f"{self.name}_{subcategory_name}",
            description=description
            or f"Subcategory of {self.name}: {subcategory_name}",
        )

    def is_subcategory_of(self, parent: EventCategory) -> bool:
        return self.name.startswith(f"{parent.name}_")

    @property
    def parent_category(self) -> EventCategory | None:
        head, sep, _ = self.name.partition("_")
        return EventCategory(name=head) if sep else None

    def to_map(self) -> dict[str, Any]:
        parent = self.parent_category
        return {
            "name": self.name,
            "description": self.description,
            "is_subcategory": parent is not None,
            "parent_category": parent.name if parent else None,
        }


BUSINESS = EventCategory(
    name="business", description="Revenue, conversions, and key business metrics"
)
USER = EventCategory(name="user", description="User behavior, preferences, and actions")
TECHNICAL = EventCategory(
    name="technical", description="Errors, debugging, and performance metrics"
)
SENSITIVE = EventCategory(
    name="sensitive", description="Events containing personally identifiable information"
)
MARKETING = EventCategory(
    name="marketing", description="Marketing campaigns, attribution, and advertising"
)
SYSTEM = EventCategory(name="system", description="Internal system events and health checks")
SECURITY = EventCategory(
    name="security", description="Security events, authentication, and access control"
)

PREDEFINED_CATEGORIES: tuple[EventCategory, ...] = (
    BUSINESS,
    USER,
    TECHNICAL,
    SENSITIVE,
    MARKETING,
    SYSTEM,
    SECURITY,
)


def coerce_category(value: Any) -> Any:
    """Turn a bare category name into an ``EventCategory``."""
    if isinstance(value, str):
        return EventCategory(name=value)
    return value


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------


@runtime_checkable
class TrackableEvent(Protocol):
    """Capability set the routing engine reads from an event.

    ``user_id`` and ``session_id`` are optional extras read with
    ``getattr`` and are therefore not part of the protocol.
    """

    name: str
    event_type: str
    properties: Mapping[str, PropertyValue]
    category: EventCategory | None
    contains_pii: bool
    requires_consent: bool
    is_high_volume: bool
    is_essential: bool
    timestamp: datetime


class Event(BaseModel):
    """A discrete application event.

    Examples
    --------
    >>> ev = Event(name="purchase_completed", category="business",
    ...            properties={"amount": 42.0})
    >>> ev.category.name
    'business'
    """

    model_config = ConfigDict(frozen=True)

    name: str
    event_type: str = "event"
    properties: dict[str, PropertyValue] = {}
    category: EventCategory | None = None
    contains_pii: bool = False
    requires_consent: bool = True
    is_high_volume: bool = False
    is_essential: bool = False
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    user_id: str | None = None
    session_id: str | None = None

    @field_validator("category", mode="before")
    @classmethod
    def _coerce_category(cls, value: Any) -> Any:
        return coerce_category(value)

    def __str__(self) -> str:
        if self.category is not None:
            return f"Event({self.name}, category: {self.category.name})"
        return f"Event({self.name})"

    def to_map(self) -> dict[str, Any]:
        return event_to_map(self)


def event_to_map(event: TrackableEvent) -> dict[str, Any]:
    """Plain key/value dump of any ``TrackableEvent``."""
    category = event.category
    return {
        "name": event.name,
        "event_type": event.event_type,
        "properties": dict(event.properties or {}),
        "category": category.name if category is not None else None,
        "contains_pii": event.contains_pii,
        "requires_consent": event.requires_consent,
        "is_high_volume": event.is_high_volume,
        "is_essential": event.is_essential,
        "timestamp": event.timestamp.isoformat(),
        "user_id": getattr(event, "user_id", None),
        "session_id": getattr(event, "session_id", None),
    }


# ---------------------------------------------------------------------------
# Consent
# ---------------------------------------------------------------------------


class ConsentState(BaseModel):
    """General and PII consent, supplied by the caller on every route call."""

    model_config = ConfigDict(frozen=True)

    general: bool = False
    pii: bool = False

    @classmethod
    def granted(cls) -> ConsentState:
        return cls(general=True, pii=True)

    @classmethod
    def denied(cls) -> ConsentState:
        return cls(general=False, pii=False)

    def with_general(self, value: bool) -> ConsentState:
        return self.model_copy(update={"general": value})

    def with_pii(self, value: bool) -> ConsentState:
        return self.model_copy(update={"pii": value})

    def to_map(self) -> dict[str, bool]:
        return {"general": self.general, "pii": self.pii}
