"""Ready-made rule sets for common routing policies.

Each preset returns a plain list of ``Rule`` values; combine them with your
own rules and wrap the result in a ``PolicySet``.

Variants that extend a base preset put their extra rules around the base
list, so their ids never collide with the base ids.
"""

from __future__ import annotations

from collections.abc import Sequence
from enum import Enum

from eventgate.models.events import MARKETING, SECURITY, SENSITIVE, SYSTEM, TECHNICAL, USER
from eventgate.models.groups import ALL_SINKS, DEVELOPMENT_SINKS, SinkGroup
from eventgate.models.rules import Rule

NO_SAMPLING = 1.0
LIGHT_SAMPLING = 0.1
MEDIUM_SAMPLING = 0.5
HEAVY_SAMPLING = 0.01

GDPR_GROUP_NAME = "gdpr_compliant"


# ---------------------------------------------------------------------------
# Smart defaults
# ---------------------------------------------------------------------------


def smart_defaults() -> list[Rule]:
    """General-purpose routing keyed on event classification."""
    return [
        Rule(
            id="smart.essential",
            is_essential=True,
            target_group=ALL_SINKS,
            require_consent=False,
            priority=20,
            description="Essential events - bypass all restrictions",
        ),
        Rule(
            id="smart.security",
            category=SECURITY,
            target_group=ALL_SINKS,
            require_consent=False,
            priority=15,
            description="Security events - always tracked",
        ),
        Rule(
            id="smart.sensitive",
            category=SENSITIVE,
            target_group=ALL_SINKS,
            require_pii_consent=True,
            priority=12,
            description="Sensitive events requiring full consent",
        ),
        Rule(
            id="smart.pii",
            contains_pii=True,
            target_group=ALL_SINKS,
            require_pii_consent=True,
            priority=10,
            description="PII events requiring specific consent",
        ),
        Rule(
            id="smart.technical_debug",
            category=TECHNICAL,
            target_group=DEVELOPMENT_SINKS,
            debug_only=True,
            sample_rate=LIGHT_SAMPLING,
            priority=8,
            description="Technical events for debugging",
        ),
        Rule(
            id="smart.system",
            category=SYSTEM,
            target_group=ALL_SINKS,
            require_consent=False,
            sample_rate=LIGHT_SAMPLING,
            priority=7,
            description="System events - no consent required",
        ),
        Rule(
            id="smart.high_volume",
            is_high_volume=True,
            target_group=ALL_SINKS,
            sample_rate=HEAVY_SAMPLING,
            priority=5,
            description="High volume events with reduced sampling",
        ),
        Rule(
            id="smart.default",
            is_default=True,
            target_group=ALL_SINKS,
            priority=0,
            description="Default routing for unmatched events",
        ),
    ]


def smart_performance_focused_defaults() -> list[Rule]:
    """Smart defaults plus extra sampling for frequent and batchable events."""
    return smart_defaults() + [
        Rule(
            id="smart.high_frequency",
            has_property="high_frequency",
            target_group=ALL_SINKS,
            sample_rate=HEAVY_SAMPLING,
            priority=6,
            description="High frequency events - heavy sampling",
        ),
        Rule(
            id="smart.batchable",
            has_property="batchable",
            target_group=ALL_SINKS,
            sample_rate=MEDIUM_SAMPLING,
            priority=4,
            description="Batchable events - medium sampling",
        ),
    ]


def smart_privacy_focused_defaults() -> list[Rule]:
    """Smart defaults with explicit consent gates on user and marketing events."""
    return [
        Rule(
            id="smart.user",
            category=USER,
            target_group=ALL_SINKS,
            priority=9,
            description="User events - consent required",
        ),
        Rule(
            id="smart.marketing",
            category=MARKETING,
            target_group=ALL_SINKS,
            priority=11,
            description="Marketing events - consent required",
        ),
    ] + smart_defaults()


def smart_development_friendly_defaults() -> list[Rule]:
    """Smart defaults plus unsampled debug/test/dev events in debug mode."""
    rules = [
        Rule(
            id=f"smart.{prefix}",
            event_name_regex=rf"{prefix}_.*",
            target_group=DEVELOPMENT_SINKS,
            debug_only=True,
            priority=priority,
            description=f"{prefix.capitalize()} events - development sinks only",
        )
        for prefix, priority in (("debug", 15), ("test", 14), ("dev", 13))
    ]
    return rules + smart_defaults()


# ---------------------------------------------------------------------------
# Privacy regulation defaults
# ---------------------------------------------------------------------------


class GdprRegion(str, Enum):
    """Regions with different privacy compliance requirements."""

    EU = "eu"
    UK = "uk"
    CALIFORNIA = "california"
    GLOBAL = "global"


def gdpr_compliant_group(sink_ids: Sequence[str]) -> SinkGroup:
    return SinkGroup(
        name=GDPR_GROUP_NAME,
        sink_ids=tuple(sink_ids),
        description="GDPR and privacy compliant sinks",
    )


def _private_group(compliant_sinks: Sequence[str] | None) -> SinkGroup:
    return gdpr_compliant_group(compliant_sinks) if compliant_sinks else ALL_SINKS


def gdpr_defaults(compliant_sinks: Sequence[str] | None = None) -> list[Rule]:
    """Privacy-first routing: PII only with PII consent, no sampling of PII.

    When *compliant_sinks* is given, personal data is confined to a
    ``gdpr_compliant`` group made of those sinks; otherwise it goes to all
    sinks (still behind PII consent).
    """
    private = _private_group(compliant_sinks)

    rules = [
        Rule(
            id="gdpr.security",
            category=SECURITY,
            target_group=ALL_SINKS,
            require_consent=False,
            priority=25,
            description="Security events - legitimate interest basis",
        ),
        Rule(
            id="gdpr.essential",
            is_essential=True,
            target_group=ALL_SINKS,
            require_consent=False,
            priority=24,
            description="Essential events - legitimate interest basis",
        ),
        Rule(
            id="gdpr.sensitive",
            category=SENSITIVE,
            target_group=private,
            require_consent=True,
            require_pii_consent=True,
            priority=20,
            description="Sensitive data - GDPR compliant sinks only",
        ),
        Rule(
            id="gdpr.pii",
            contains_pii=True,
            target_group=private,
            require_pii_consent=True,
            priority=18,
            description="PII events requiring explicit consent",
        ),
        Rule(
            id="gdpr.marketing",
            category=MARKETING,
            target_group=ALL_SINKS,
            require_pii_consent=True,
            sample_rate=LIGHT_SAMPLING,
            priority=15,
            description="Marketing events requiring full consent",
        ),
        Rule(
            id="gdpr.user",
            category=USER,
            target_group=ALL_SINKS,
            sample_rate=MEDIUM_SAMPLING,
            priority=12,
            description="User behavior events requiring consent",
        ),
        Rule(
            id="gdpr.system",
            category=SYSTEM,
            target_group=ALL_SINKS,
            require_consent=False,
            sample_rate=LIGHT_SAMPLING,
            priority=8,
            description="System events - no personal data",
        ),
        Rule(
            id="gdpr.technical",
            category=TECHNICAL,
            target_group=DEVELOPMENT_SINKS,
            require_consent=False,
            sample_rate=LIGHT_SAMPLING,
            debug_only=True,
            priority=6,
            description="Technical events - anonymous debug data",
        ),
        Rule(
            id="gdpr.default",
            is_default=True,
            target_group=ALL_SINKS,
            sample_rate=MEDIUM_SAMPLING,
            priority=0,
            description="Default GDPR-compliant routing",
        ),
    ]

    for prop, priority in (
        ("email", 19),
        ("phone", 19),
        ("ip_address", 19),
        ("location", 17),
        ("latitude", 17),
    ):
        rules.append(
            Rule(
                id=f"gdpr.property.{prop}",
                has_property=prop,
                target_group=private,
                require_pii_consent=True,
                priority=priority,
                description=f"Events with {prop} - PII consent required",
            )
        )
    return rules


def gdpr_strict_defaults(compliant_sinks: Sequence[str] | None = None) -> list[Rule]:
    """GDPR defaults plus consent gates on user ids, sessions and behaviour."""
    private = _private_group(compliant_sinks)
    return gdpr_defaults(compliant_sinks) + [
        Rule(
            id="gdpr.property.user_id",
            has_property="user_id",
            target_group=private,
            require_pii_consent=True,
            priority=22,
            description="User ID events - strict PII consent",
        ),
        Rule(
            id="gdpr.property.session_id",
            has_property="session_id",
            target_group=private,
            sample_rate=LIGHT_SAMPLING,
            priority=13,
            description="Session tracking - consent required",
        ),
        Rule(
            id="gdpr.behavioral",
            event_name_regex=r"(click|view|scroll|interaction)_.*",
            target_group=ALL_SINKS,
            sample_rate=MEDIUM_SAMPLING,
            priority=14,
            description="Behavioral events - consent required",
        ),
    ]


def gdpr_minimal_defaults(compliant_sinks: Sequence[str] | None = None) -> list[Rule]:
    """Relaxed but compliant: only PII and sensitive data get special handling."""
    private = _private_group(compliant_sinks)
    return [
        Rule(
            id="gdpr.minimal.pii",
            contains_pii=True,
            target_group=private,
            require_pii_consent=True,
            priority=16,
            description="PII events - minimal GDPR compliance",
        ),
        Rule(
            id="gdpr.minimal.sensitive",
            category=SENSITIVE,
            target_group=private,
            require_pii_consent=True,
            priority=15,
            description="Sensitive events - minimal GDPR compliance",
        ),
        Rule(
            id="gdpr.minimal.essential",
            is_essential=True,
            target_group=ALL_SINKS,
            require_consent=False,
            priority=20,
            description="Essential events - legitimate interest",
        ),
        Rule(
            id="gdpr.minimal.security",
            category=SECURITY,
            target_group=ALL_SINKS,
            require_consent=False,
            priority=18,
            description="Security events - legitimate interest",
        ),
        Rule(
            id="gdpr.minimal.default",
            is_default=True,
            target_group=ALL_SINKS,
            priority=0,
            description="Default minimal GDPR routing",
        ),
    ]


def ccpa_defaults(compliant_sinks: Sequence[str] | None = None) -> list[Rule]:
    """California Consumer Privacy Act routing: general consent for personal data."""
    return [
        Rule(
            id="ccpa.pii",
            contains_pii=True,
            target_group=_private_group(compliant_sinks),
            priority=15,
            description="PII events - CCPA compliance",
        ),
        Rule(
            id="ccpa.marketing",
            category=MARKETING,
            target_group=ALL_SINKS,
            priority=12,
            description="Marketing events - CCPA compliance",
        ),
        Rule(
            id="ccpa.default",
            is_default=True,
            target_group=ALL_SINKS,
            priority=0,
            description="Default CCPA-compliant routing",
        ),
    ]


def gdpr_region_defaults(
    region: GdprRegion | str, compliant_sinks: Sequence[str] | None = None
) -> list[Rule]:
    """Pick the privacy preset that fits *region*.

    Raises:
        ValueError: If *region* is not a known ``GdprRegion`` value.
    """
    region = GdprRegion(region)
    if region is GdprRegion.EU:
        return gdpr_strict_defaults(compliant_sinks)
    if region is GdprRegion.UK:
        return gdpr_defaults(compliant_sinks)
    if region is GdprRegion.CALIFORNIA:
        return ccpa_defaults(compliant_sinks)
    return gdpr_minimal_defaults(compliant_sinks)


# ---------------------------------------------------------------------------
# Performance defaults
# ---------------------------------------------------------------------------


def _sampled(rule_id: str, regex: str, rate: float, priority: int, description: str) -> Rule:
    return Rule(
        id=rule_id,
        event_name_regex=regex,
        target_group=ALL_SINKS,
        sample_rate=rate,
        priority=priority,
        description=description,
    )


def performance_defaults() -> list[Rule]:
    """Volume-reduction routing: sample chatty events, never sample critical ones."""
    return [
        Rule(
            id="perf.high_volume",
            is_high_volume=True,
            target_group=ALL_SINKS,
            sample_rate=HEAVY_SAMPLING,
            priority=15,
            description="High volume events - aggressive sampling",
        ),
        _sampled(
            "perf.user_interaction",
            r"(click|tap|scroll|swipe|gesture)_.*",
            HEAVY_SAMPLING,
            12,
            "UI interaction events - heavy sampling",
        ),
        _sampled(
            "perf.pointer",
            r"(mouse|pointer|hover)_.*",
            0.001,
            14,
            "Mouse/pointer events - extreme sampling",
        ),
        _sampled("perf.scroll", r"scroll_.*", 0.01, 13, "Scroll events - heavy sampling"),
        _sampled(
            "perf.heartbeat",
            r"(heartbeat|ping|alive)_.*",
            0.05,
            11,
            "Heartbeat events - moderate sampling",
        ),
        Rule(
            id="perf.technical_debug",
            category=TECHNICAL,
            target_group=DEVELOPMENT_SINKS,
            debug_only=True,
            sample_rate=LIGHT_SAMPLING,
            priority=8,
            description="Performance events - debug only",
        ),
        _sampled(
            "perf.network",
            r"(api|network|http|request)_.*",
            LIGHT_SAMPLING,
            9,
            "Network events - light sampling",
        ),
        _sampled(
            "perf.timer",
            r"(timer|interval|periodic)_.*",
            0.02,
            10,
            "Timer events - heavy sampling",
        ),
        _sampled(
            "perf.animation",
            r"(frame|animation|render)_.*",
            0.0001,
            16,
            "Animation events - minimal sampling",
        ),
        _sampled(
            "perf.critical",
            r"(purchase|payment|transaction|error)_.*",
            NO_SAMPLING,
            20,
            "Critical events - no sampling",
        ),
        Rule(
            id="perf.essential",
            is_essential=True,
            target_group=ALL_SINKS,
            priority=25,
            description="Essential events - no sampling",
        ),
        Rule(
            id="perf.security",
            category=SECURITY,
            target_group=ALL_SINKS,
            priority=22,
            description="Security events - no sampling",
        ),
        Rule(
            id="perf.default",
            is_default=True,
            target_group=ALL_SINKS,
            sample_rate=MEDIUM_SAMPLING,
            priority=0,
            description="Default performance-optimized routing",
        ),
    ]


def performance_mobile_defaults() -> list[Rule]:
    """Performance defaults tightened for battery and data limited devices."""
    return [
        Rule(
            id="perf.mobile.high_volume",
            is_high_volume=True,
            target_group=ALL_SINKS,
            sample_rate=0.005,
            priority=15,
            description="Mobile: ultra-aggressive sampling for high volume",
        ),
        _sampled(
            "perf.mobile.touch",
            r"(touch|swipe|pinch|rotate|shake)_.*",
            0.01,
            12,
            "Mobile: touch events with heavy sampling",
        ),
        Rule(
            id="perf.mobile.location",
            has_property="location",
            target_group=ALL_SINKS,
            sample_rate=LIGHT_SAMPLING,
            priority=13,
            description="Mobile: location events - battery conscious",
        ),
    ] + performance_defaults()


def performance_web_defaults() -> list[Rule]:
    """Performance defaults plus sampling for navigation and DOM events."""
    return [
        _sampled(
            "perf.web.navigation",
            r"(page_view|route_change|navigation)_.*",
            LIGHT_SAMPLING,
            14,
            "Web: navigation events with light sampling",
        ),
        _sampled(
            "perf.web.dom",
            r"(focus|blur|resize|load)_.*",
            0.05,
            11,
            "Web: DOM events with moderate sampling",
        ),
    ] + performance_defaults()


def performance_server_defaults() -> list[Rule]:
    """Performance defaults plus sampling for request, database and cache events."""
    return [
        _sampled(
            "perf.server.http",
            r"(request|response|endpoint)_.*",
            MEDIUM_SAMPLING,
            12,
            "Server: HTTP events with medium sampling",
        ),
        _sampled(
            "perf.server.database",
            r"(query|database|sql)_.*",
            LIGHT_SAMPLING,
            11,
            "Server: database events with light sampling",
        ),
        _sampled(
            "perf.server.cache",
            r"(cache|redis|memcached)_.*",
            0.01,
            10,
            "Server: cache events with heavy sampling",
        ),
    ] + performance_defaults()


def performance_low_latency_defaults() -> list[Rule]:
    """Minimal rule set: essential and critical events, 1% of everything else."""
    return [
        Rule(
            id="perf.low_latency.essential",
            is_essential=True,
            target_group=ALL_SINKS,
            priority=20,
            description="Low-latency: essential events only",
        ),
        _sampled(
            "perf.low_latency.critical",
            r"(error|failure|critical)_.*",
            NO_SAMPLING,
            18,
            "Low-latency: critical events only",
        ),
        Rule(
            id="perf.low_latency.default",
            is_default=True,
            target_group=ALL_SINKS,
            sample_rate=0.01,
            priority=0,
            description="Low-latency: minimal default tracking",
        ),
    ]


def performance_bandwidth_conscious_defaults() -> list[Rule]:
    """Send business-critical events and errors, almost nothing else."""
    return [
        Rule(
            id="perf.bandwidth.essential",
            is_essential=True,
            target_group=ALL_SINKS,
            priority=20,
            description="Bandwidth: essential events only",
        ),
        _sampled(
            "perf.bandwidth.business",
            r"(purchase|payment|signup|login)_.*",
            NO_SAMPLING,
            18,
            "Bandwidth: business-critical events",
        ),
        _sampled(
            "perf.bandwidth.errors",
            r"(error|crash|exception)_.*",
            LIGHT_SAMPLING,
            15,
            "Bandwidth: error events with sampling",
        ),
        Rule(
            id="perf.bandwidth.default",
            is_default=True,
            target_group=ALL_SINKS,
            sample_rate=0.001,
            priority=0,
            description="Bandwidth: minimal default tracking",
        ),
    ]


def performance_high_throughput_defaults() -> list[Rule]:
    """For pipelines handling millions of events: everything is sampled."""
    return [
        Rule(
            id="perf.throughput.high_volume",
            is_high_volume=True,
            target_group=ALL_SINKS,
            sample_rate=0.0001,
            priority=15,
            description="High-throughput: ultra-minimal sampling",
        ),
        Rule(
            id="perf.throughput.essential",
            is_essential=True,
            target_group=ALL_SINKS,
            sample_rate=LIGHT_SAMPLING,
            priority=20,
            description="High-throughput: sampled essential events",
        ),
        _sampled(
            "perf.throughput.errors",
            r"error_.*",
            0.01,
            18,
            "High-throughput: sampled error tracking",
        ),
        Rule(
            id="perf.throughput.default",
            is_default=True,
            target_group=ALL_SINKS,
            sample_rate=0.00001,
            priority=0,
            description="High-throughput: extremely minimal default",
        ),
    ]
