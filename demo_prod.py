"""Smoke test — routes a handful of events through the full eventgate pipeline.

Usage:
    python demo_prod.py
"""

from __future__ import annotations

from eventgate import __version__
from eventgate.config import configure_logging, settings
from eventgate.core.policy_guard import enforce_policy_constraints
from eventgate.core.policy_set import PolicySet
from eventgate.core.presets import gdpr_defaults
from eventgate.core.routing_engine import RoutingEngine
from eventgate.models.events import ConsentState, Event
from eventgate.routing.dispatcher import SinkDispatcher
from eventgate.routing.sinks.console import ConsoleSink, NoOpSink


def main() -> None:
    """Route sample events with the GDPR preset and print where they went."""
    configure_logging(settings)
    print(f"eventgate v{__version__}")
    print(f"Environment: {settings.environment} | Debug: {settings.debug}")
    print()

    policy = PolicySet.from_settings(gdpr_defaults(["console"]), settings)
    for warning in enforce_policy_constraints(policy):
        print(f"  warning: {warning}")

    dispatcher = SinkDispatcher(RoutingEngine(policy))
    dispatcher.register_sink(ConsoleSink())
    dispatcher.register_sink(NoOpSink("warehouse"))

    consent = ConsentState(general=True, pii=False)
    events = [
        Event(name="login_failed", category="security"),
        Event(name="signup", contains_pii=True, properties={"email": "a@example.com"}),
        Event(name="purchase_completed", category="business", properties={"amount": 42.0}),
        Event(name="heartbeat", is_essential=True),
    ]
    for outcome in dispatcher.dispatch_batch(events, consent):
        result = outcome.routing_result
        sinks = ", ".join(sorted(result.target_sinks)) or "-"
        print(f"  {result.event.name}: {sinks}")
        for skipped in result.skipped_rules:
            print(f"      skipped {skipped.rule.label}: {skipped.reason}")

    print()
    print("Routing smoke test complete")


if __name__ == "__main__":
    main()
