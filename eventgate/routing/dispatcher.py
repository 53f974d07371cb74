"""SinkDispatcher — routes events and delivers them to the selected sinks.

The dispatcher owns the set of live sinks.  For every event it asks the
routing engine which of them should receive it (passing the ids of the
currently registered sinks as the available set), then calls ``accept``
on each target.  Sink failures are logged and recorded but do not prevent
delivery to the remaining sinks.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict

from eventgate.core.routing_engine import RoutingEngine
from eventgate.models.events import ConsentState, TrackableEvent
from eventgate.models.results import RoutingResult

if TYPE_CHECKING:
    from eventgate.routing.sinks import BaseSink

logger = logging.getLogger(__name__)

DISABLED_WARNING = "Sink dispatcher is disabled"


class SinkDispatchError(RuntimeError):
    """Raised when every sink selected for an event fails."""


class DispatchOutcome(BaseModel):
    """What happened to one event: its routing result and per-sink delivery."""

    model_config = ConfigDict(frozen=True)

    routing_result: RoutingResult
    delivered: tuple[str, ...] = ()
    failed: dict[str, str] = {}

    @property
    def was_routed(self) -> bool:
        return self.routing_result.will_be_tracked

    @property
    def was_delivered(self) -> bool:
        return bool(self.delivered)

    def to_map(self) -> dict[str, Any]:
        return {
            "routing_result": self.routing_result.to_map(),
            "delivered": list(self.delivered),
            "failed": dict(self.failed),
            "was_routed": self.was_routed,
            "was_delivered": self.was_delivered,
        }


class SinkDispatcher:
    """Delivers events to the sinks the routing engine selects.

    Usage
    -----
    >>> dispatcher = SinkDispatcher(RoutingEngine(policy_set))
    >>> dispatcher.register_sink(ConsoleSink())
    >>> outcome = dispatcher.dispatch(event, ConsentState.granted())
    """

    def __init__(self, engine: RoutingEngine) -> None:
        self._engine = engine
        self._sinks: dict[str, BaseSink] = {}
        self._enabled = True

    # ------------------------------------------------------------------
    # Sink management
    # ------------------------------------------------------------------

    def register_sink(self, sink: BaseSink) -> None:
        """Register a sink under its ``sink_id``.

        Registering a different sink with an id already in use replaces
        the previous one.  Re-registering the same instance is a no-op.
        """
        existing = self._sinks.get(sink.sink_id)
        if existing is sink:
            return
        if existing is not None:
            logger.warning("Replacing sink registered as %s", sink.sink_id)
        self._sinks[sink.sink_id] = sink
        logger.info("Registered sink: %s", sink.sink_id)

    def unregister_sink(self, sink_id: str) -> None:
        """Remove a previously registered sink; unknown ids are ignored."""
        if self._sinks.pop(sink_id, None) is not None:
            logger.info("Unregistered sink: %s", sink_id)

    @property
    def registered_sinks(self) -> list[BaseSink]:
        """Return a copy of the registered sinks, in registration order."""
        return list(self._sinks.values())

    @property
    def available_sink_ids(self) -> frozenset[str]:
        return frozenset(self._sinks)

    @property
    def engine(self) -> RoutingEngine:
        return self._engine

    @property
    def is_enabled(self) -> bool:
        return self._enabled

    def enable(self) -> None:
        self._enabled = True

    def disable(self) -> None:
        self._enabled = False

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def dispatch(
        self, event: TrackableEvent, consent: ConsentState | None = None
    ) -> DispatchOutcome:
        """Route *event* and deliver it to every selected sink.

        Raises
        ------
        RoutingError
            If routing itself fails.
        SinkDispatchError
            If *every* selected sink fails.  Individual failures are
            tolerated and reported in ``DispatchOutcome.failed``.
        """
        outcome = self._deliver(event, consent)
        if outcome.failed and not outcome.delivered:
            raise SinkDispatchError(
                f"All {len(outcome.failed)} sinks failed for event {event.name}: "
                + "; ".join(f"{sid}: {msg}" for sid, msg in outcome.failed.items())
            )
        return outcome

    def dispatch_batch(
        self, events: list[TrackableEvent], consent: ConsentState | None = None
    ) -> list[DispatchOutcome]:
        """Dispatch several events in order.

        An event whose sinks all fail yields an outcome with no deliveries
        instead of aborting the batch.
        """
        return [self._deliver(event, consent) for event in events]

    def _deliver(
        self, event: TrackableEvent, consent: ConsentState | None
    ) -> DispatchOutcome:
        if not self._enabled:
            return DispatchOutcome(
                routing_result=RoutingResult(event=event, warnings=(DISABLED_WARNING,))
            )

        result = self._engine.route(event, consent, self.available_sink_ids)
        if not result.target_sinks:
            logger.debug("Event %s routed to no sinks", event.name)
            return DispatchOutcome(routing_result=result)

        delivered: list[str] = []
        failed: dict[str, str] = {}

        for sink_id in sorted(result.target_sinks):
            sink = self._sinks.get(sink_id)
            if sink is None:
                failed[sink_id] = "Sink not registered"
                continue
            try:
                sink.accept(event)
                delivered.append(sink_id)
            except Exception as exc:  # noqa: BLE001
                logger.error(
                    "Sink %s failed for event %s: %s", sink_id, event.name, exc
                )
                failed[sink_id] = str(exc)

        if failed and delivered:
            logger.warning(
                "Event %s: %d/%d sinks succeeded, %d failed",
                event.name,
                len(delivered),
                len(result.target_sinks),
                len(failed),
            )

        return DispatchOutcome(
            routing_result=result, delivered=tuple(delivered), failed=failed
        )

    def debug_info(self) -> dict[str, Any]:
        return {
            "enabled": self._enabled,
            "sinks": sorted(self._sinks),
            "policy_set": self._engine.policy_set.to_map(),
        }
