"""eventgate: consent-aware, priority-ordered event routing.

Given an application event, the consent state of the user, and the sinks
currently live, eventgate decides which sinks receive the event:

  - Declarative, immutable rules (predicates + target group + obligations)
  - Highest-priority rules win; rules tied at the top priority share sinks
  - Consent, PII consent, environment gates and sampling as obligations
  - Essential events bypass consent obligations
  - Explain mode: per-rule match/mismatch reasons for any event
"""

__version__ = "0.1.0"
__description__ = "Consent-aware, priority-ordered event routing engine"

from eventgate.core.policy_set import PolicySet
from eventgate.core.routing_engine import RoutingEngine, RoutingError
from eventgate.models.events import ConsentState, Event, EventCategory
from eventgate.models.groups import ALL_SINKS, DEVELOPMENT_SINKS, SinkGroup
from eventgate.models.rules import Rule

__all__ = [
    "PolicySet",
    "RoutingEngine",
    "RoutingError",
    "ConsentState",
    "Event",
    "EventCategory",
    "SinkGroup",
    "ALL_SINKS",
    "DEVELOPMENT_SINKS",
    "Rule",
    "__version__",
]
