"""Routing engine — decides which sinks receive an event.

``route`` walks the matching rules in priority order and applies each
rule's obligations:

1. consent (essential events always pass),
2. sampling (when enabled on the policy set),
3. group resolution against the currently available sinks.

Priority cutoff: once one rule has been applied, only rules sharing that
rule's priority are still considered; the first rule with a different
priority ends the walk.  Rules tied at the top priority therefore share
the destination set, and lower tiers never contribute once a higher tier
has.

"No destination" outcomes (no match, consent denied, sampled out, no
available sinks) are normal results, described by ``skipped_rules`` and
``warnings``.  Only unexpected faults raise, as ``RoutingError``.

The engine holds no mutable state; a single instance may serve
concurrent ``route`` calls.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from eventgate.core.policy_set import PolicySet
from eventgate.models.events import ConsentState, TrackableEvent
from eventgate.models.issues import ValidationIssue
from eventgate.models.results import DebugTrace, RoutingResult, RuleDebugInfo, SkippedRule
from eventgate.models.rules import Rule

logger = logging.getLogger(__name__)

NO_MATCH_WARNING = "No routing rules matched the event"
CONSENT_NOT_MET = "Consent requirements not met"
NO_AVAILABLE_SINKS = "No available sinks in target group"


class RoutingError(RuntimeError):
    """Raised when routing an event fails unexpectedly.

    Always attributable to one event: ``event_name`` is set, ``rule_id``
    names the rule being evaluated when known, and the original exception
    is chained as ``__cause__``.
    """

    def __init__(
        self, message: str, *, event_name: str, rule_id: str | None = None
    ) -> None:
        super().__init__(message)
        self.event_name = event_name
        self.rule_id = rule_id


def _event_name(event: TrackableEvent) -> str:
    try:
        return str(event.name)
    except Exception:  # noqa: BLE001
        return "<unknown>"


class RoutingEngine:
    """Evaluates a ``PolicySet`` against events.

    Parameters
    ----------
    policy_set:
        The rules and toggles to route with.  Treated as immutable.

    Usage
    -----
    >>> engine = RoutingEngine(policy_set)
    >>> result = engine.route(event, ConsentState.granted(), {"s1", "s2"})
    >>> sorted(result.target_sinks)
    ['s1', 's2']
    """

    def __init__(self, policy_set: PolicySet) -> None:
        self._policy = policy_set

    @property
    def policy_set(self) -> PolicySet:
        return self._policy

    # ------------------------------------------------------------------
    # Routing
    # ------------------------------------------------------------------

    def route(
        self,
        event: TrackableEvent,
        consent: ConsentState | None = None,
        available_sink_ids: Iterable[str] = (),
    ) -> RoutingResult:
        """Decide which of *available_sink_ids* receive *event*.

        Raises
        ------
        RoutingError
            On any unexpected fault while evaluating the event.
        """
        consent = consent if consent is not None else ConsentState.granted()
        available = frozenset(available_sink_ids)
        current: Rule | None = None
        try:
            matching = self._policy.matching_rules(event)
            if not matching:
                logger.warning("No routing rules matched event %s", event.name)
                return RoutingResult(event=event, warnings=(NO_MATCH_WARNING,))

            targets: set[str] = set()
            applied: list[Rule] = []
            skipped: list[SkippedRule] = []
            warnings: list[str] = []
            sampling_key = self._sampling_key(event)

            for rule in matching:
                current = rule
                if applied and rule.priority != applied[0].priority:
                    break

                if self._policy.enable_consent_checking and not rule.should_apply(
                    event, consent
                ):
                    logger.debug("Rule %s skipped for %s: consent", rule.label, event.name)
                    skipped.append(SkippedRule(rule=rule, reason=CONSENT_NOT_MET))
                    continue

                if self._policy.enable_sampling and not rule.should_sample(sampling_key):
                    logger.debug("Rule %s skipped for %s: sampled out", rule.label, event.name)
                    skipped.append(
                        SkippedRule(
                            rule=rule,
                            reason=(
                                "Event was sampled out "
                                f"({rule.sample_rate * 100:.1f}% sample rate)"
                            ),
                        )
                    )
                    continue

                resolved = self._policy.group_registry.resolve(rule.target_group, available)
                if not resolved:
                    message = f'Rule "{rule.label}" resolved to no available sinks'
                    logger.warning("%s (event %s)", message, event.name)
                    warnings.append(message)
                    skipped.append(SkippedRule(rule=rule, reason=NO_AVAILABLE_SINKS))
                    continue

                targets.update(resolved)
                applied.append(rule)
                logger.debug(
                    "Rule %s applied to %s -> %s", rule.label, event.name, sorted(resolved)
                )

            return RoutingResult(
                event=event,
                target_sinks=frozenset(targets),
                applied_rules=tuple(applied),
                skipped_rules=tuple(skipped),
                warnings=tuple(warnings),
            )
        except Exception as exc:
            name = _event_name(event)
            logger.error("Failed to route event %s: %s", name, exc)
            raise RoutingError(
                f"Failed to route event {name}: {exc}",
                event_name=name,
                rule_id=current.id if current is not None else None,
            ) from exc

    def _sampling_key(self, event: TrackableEvent) -> str | None:
        if not self._policy.deterministic_sampling:
            return None
        return getattr(event, "user_id", None) or getattr(event, "session_id", None)

    # ------------------------------------------------------------------
    # Explain
    # ------------------------------------------------------------------

    def explain(
        self,
        event: TrackableEvent,
        consent: ConsentState | None = None,
        available_sink_ids: Iterable[str] = (),
    ) -> DebugTrace:
        """Evaluate every rule against *event* and embed the routing result.

        Non-matching rules carry the first failing predicate, with the
        expected and actual values, as their reason.  Consent and sampling
        do not affect the per-rule verdicts.
        """
        available = frozenset(available_sink_ids)
        debug_mode = self._policy.debug_mode
        current: Rule | None = None
        try:
            matching: list[Rule] = []
            non_matching: list[RuleDebugInfo] = []
            for rule in self._policy.rules:
                current = rule
                reason = rule.mismatch_reason(event, debug_mode)
                if reason is None:
                    matching.append(rule)
                else:
                    non_matching.append(
                        RuleDebugInfo(rule=rule, matches=False, reason=reason)
                    )
        except Exception as exc:
            name = _event_name(event)
            logger.error("Failed to explain event %s: %s", name, exc)
            raise RoutingError(
                f"Failed to explain event {name}: {exc}",
                event_name=name,
                rule_id=current.id if current is not None else None,
            ) from exc

        result = self.route(event, consent, available)
        return DebugTrace(
            event=event,
            all_rules=self._policy.rules,
            matching_rules=tuple(matching),
            non_matching_rules=tuple(non_matching),
            routing_result=result,
            debug_mode=debug_mode,
        )

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def validate_configuration(self) -> list[ValidationIssue]:
        """Delegate to ``PolicySet.validate``."""
        return self._policy.validate()
