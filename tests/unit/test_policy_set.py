"""Unit tests for PolicySet rule selection, tables and validation."""

from __future__ import annotations

import pytest

from eventgate.config import EngineSettings
from eventgate.core.group_registry import SinkGroupRegistry, resolve_group
from eventgate.core.policy_set import PolicySet
from eventgate.models.events import PREDEFINED_CATEGORIES, EventCategory
from eventgate.models.groups import ALL_SINKS, DEVELOPMENT_SINKS, PREDEFINED_GROUPS, SinkGroup
from eventgate.models.issues import IssueCode, IssueSeverity
from eventgate.models.rules import Rule


def _codes(issues):
    return [i.code for i in issues]


# ---------------------------------------------------------------------------
# Test: matching_rules
# ---------------------------------------------------------------------------


class TestMatchingRules:
    """Matching rules come back highest priority first, ties in insertion order."""

    def test_sorted_by_priority_descending(self, make_event):
        low = Rule(id="low", priority=1, target_group=ALL_SINKS)
        high = Rule(id="high", priority=9, target_group=ALL_SINKS)
        mid = Rule(id="mid", priority=5, target_group=ALL_SINKS)
        policy = PolicySet(rules=[low, high, mid])
        assert [r.id for r in policy.matching_rules(make_event())] == ["high", "mid", "low"]

    def test_ties_keep_insertion_order(self, make_event):
        rules = [Rule(id=f"r{i}", priority=3, target_group=ALL_SINKS) for i in range(5)]
        policy = PolicySet(rules=rules)
        assert [r.id for r in policy.matching_rules(make_event())] == [
            "r0",
            "r1",
            "r2",
            "r3",
            "r4",
        ]

    def test_default_rule_when_nothing_matches(self, make_event):
        business = Rule(id="biz", category="business", target_group=ALL_SINKS)
        first_default = Rule(
            id="d1", is_default=True, category="marketing", target_group=ALL_SINKS
        )
        second_default = Rule(
            id="d2", is_default=True, category="security", target_group=ALL_SINKS
        )
        policy = PolicySet(rules=[business, first_default, second_default])
        matched = policy.matching_rules(make_event(category="user"))
        assert [r.id for r in matched] == ["d1"]

    def test_structurally_matching_default_is_a_regular_match(self, make_event):
        biz = Rule(id="biz", category="business", priority=10, target_group=ALL_SINKS)
        default = Rule(id="default", is_default=True, priority=0, target_group=ALL_SINKS)
        policy = PolicySet(rules=[default, biz])
        assert [r.id for r in policy.matching_rules(make_event(category="business"))] == [
            "biz",
            "default",
        ]

    def test_fallback_group_synthesizes_rule(self, make_event):
        policy = PolicySet(
            rules=[Rule(category="business", target_group=ALL_SINKS)],
            fallback_group=DEVELOPMENT_SINKS,
        )
        matched = policy.matching_rules(make_event())
        assert len(matched) == 1
        assert matched[0].is_default
        assert matched[0].target_group == DEVELOPMENT_SINKS
        assert matched[0].description == "Fallback default rule"

    def test_empty_when_no_default_and_no_fallback(self, make_event):
        policy = PolicySet(rules=[Rule(category="business", target_group=ALL_SINKS)])
        assert policy.matching_rules(make_event()) == []
        assert policy.primary_rule(make_event()) is None

    def test_debug_mode_enables_debug_only_rules(self, make_event):
        rule = Rule(id="dbg", debug_only=True, target_group=ALL_SINKS)
        assert PolicySet(rules=[rule]).matching_rules(make_event()) == []
        assert PolicySet(rules=[rule], debug_mode=True).matching_rules(make_event()) == [rule]

    def test_primary_rule(self, make_event):
        high = Rule(id="high", priority=9, target_group=ALL_SINKS)
        policy = PolicySet(rules=[Rule(id="low", target_group=ALL_SINKS), high])
        assert policy.primary_rule(make_event()) == high


# ---------------------------------------------------------------------------
# Test: construction helpers and tables
# ---------------------------------------------------------------------------


class TestPolicySetConstruction:
    def test_empty(self):
        policy = PolicySet.empty()
        assert policy.rules == ()
        assert policy.enable_sampling is True
        assert policy.enable_consent_checking is True
        assert policy.debug_mode is False

    def test_from_settings(self):
        settings = EngineSettings(debug=True, enable_sampling=False, deterministic_sampling=True)
        policy = PolicySet.from_settings([], settings)
        assert policy.debug_mode is True
        assert policy.enable_sampling is False
        assert policy.deterministic_sampling is True

    def test_from_settings_overrides_win(self):
        settings = EngineSettings(debug=True)
        policy = PolicySet.from_settings([], settings, debug_mode=False)
        assert policy.debug_mode is False

    def test_with_smart_defaults(self):
        policy = PolicySet.with_smart_defaults()
        assert policy.fallback_group == ALL_SINKS
        assert any(r.is_default for r in policy.rules)
        assert not [i for i in policy.validate() if i.is_error]

    def test_copy_with_rebuilds_registry(self):
        custom = SinkGroup(name="warehouse", sink_ids=("bq",))
        policy = PolicySet.empty().copy_with(custom_groups={"warehouse": custom})
        assert "warehouse" in policy.group_registry
        assert policy.get_custom_group("warehouse") == custom

    def test_tables(self):
        category = EventCategory(name="billing")
        group = SinkGroup(name="warehouse", sink_ids=("bq",))
        policy = PolicySet(
            custom_groups={"warehouse": group}, custom_categories={"billing": category}
        )
        assert policy.get_custom_category("billing") == category
        assert policy.get_custom_category("missing") is None
        assert policy.all_groups() == [*PREDEFINED_GROUPS, group]
        assert policy.all_categories() == [*PREDEFINED_CATEGORIES, category]

    def test_tables_are_read_only(self):
        source = {"warehouse": SinkGroup(name="warehouse", sink_ids=("bq",))}
        policy = PolicySet(
            custom_groups=source, custom_categories={"billing": EventCategory(name="billing")}
        )
        with pytest.raises(TypeError):
            policy.custom_groups["rogue"] = SinkGroup(name="rogue", sink_ids=("x",))
        with pytest.raises(TypeError):
            policy.custom_categories["rogue"] = EventCategory(name="rogue")
        with pytest.raises(TypeError):
            PolicySet().custom_groups["rogue"] = ALL_SINKS
        assert "rogue" not in policy.group_registry
        assert policy.get_custom_group("rogue") is None

    def test_tables_detached_from_caller_dict(self):
        source = {"warehouse": SinkGroup(name="warehouse", sink_ids=("bq",))}
        policy = PolicySet(custom_groups=source)
        source["late"] = SinkGroup(name="late", sink_ids=("x",))
        assert list(policy.custom_groups) == ["warehouse"]
        assert policy.copy_with(debug_mode=True).get_custom_group("warehouse") is not None

    def test_model_dump_of_tables(self):
        group = SinkGroup(name="warehouse", sink_ids=("bq",))
        dumped = PolicySet(custom_groups={"warehouse": group}).model_dump()
        assert isinstance(dumped["custom_groups"], dict)
        assert list(dumped["custom_groups"]) == ["warehouse"]
        assert dumped["custom_categories"] == {}

    def test_to_map_and_str(self):
        policy = PolicySet(rules=[Rule(is_default=True, target_group=ALL_SINKS)])
        data = policy.to_map()
        assert data["rules_count"] == 1
        assert data["fallback_group"] is None
        assert str(policy) == "PolicySet(1 rules, 0 custom groups, 0 custom categories)"


# ---------------------------------------------------------------------------
# Test: validate
# ---------------------------------------------------------------------------


class TestPolicySetValidate:
    """validate() reports every problem as a value and never raises."""

    def test_clean_policy(self):
        policy = PolicySet(rules=[Rule(id="d", is_default=True, target_group=ALL_SINKS)])
        assert policy.validate() == []

    def test_duplicate_ids(self):
        policy = PolicySet(
            rules=[
                Rule(id="dup", is_default=True, target_group=ALL_SINKS),
                Rule(id="dup", category="user", target_group=ALL_SINKS),
            ]
        )
        issues = policy.validate()
        assert _codes(issues) == [IssueCode.DUPLICATE_RULE_ID]
        assert issues[0].severity == IssueSeverity.ERROR
        assert issues[0].message == "Duplicate rule IDs found: dup"

    def test_empty_id(self):
        policy = PolicySet(rules=[Rule(id="  ", is_default=True, target_group=ALL_SINKS)])
        assert IssueCode.EMPTY_RULE_ID in _codes(policy.validate())

    def test_invalid_sample_rate_on_unvalidated_rule(self):
        """Rules built with model_construct skip validation; validate() catches them."""
        bad = Rule.model_construct(id="bad", is_default=True, target_group=ALL_SINKS, sample_rate=2.0)
        issues = PolicySet(rules=[bad]).validate()
        assert _codes(issues) == [IssueCode.INVALID_SAMPLE_RATE]
        assert issues[0].message == "Invalid sample rates in rules: bad"

    def test_no_default(self):
        policy = PolicySet(rules=[Rule(category="user", target_group=ALL_SINKS)])
        issues = policy.validate()
        assert _codes(issues) == [IssueCode.NO_DEFAULT]
        assert issues[0].severity == IssueSeverity.WARNING
        assert issues[0].message == "No default rule or fallback group specified"

    def test_fallback_group_satisfies_default_check(self):
        policy = PolicySet(
            rules=[Rule(category="user", target_group=ALL_SINKS)], fallback_group=ALL_SINKS
        )
        assert policy.validate() == []

    def test_unreferenced_group(self):
        policy = PolicySet(
            rules=[Rule(is_default=True, target_group=ALL_SINKS)],
            custom_groups={"orphan": SinkGroup(name="orphan", sink_ids=("x",))},
        )
        issues = policy.validate()
        assert _codes(issues) == [IssueCode.UNREFERENCED_GROUP]
        assert issues[0].message == "Unreferenced custom groups: orphan"

    def test_symbolic_reference_counts_as_referenced(self):
        policy = PolicySet(
            rules=[Rule(is_default=True, target_group="warehouse")],
            custom_groups={"warehouse": SinkGroup(name="warehouse", sink_ids=("bq",))},
        )
        assert policy.validate() == []

    def test_unknown_group(self):
        policy = PolicySet(rules=[Rule(id="r", is_default=True, target_group="nowhere")])
        issues = policy.validate()
        assert _codes(issues) == [IssueCode.UNKNOWN_GROUP]
        assert issues[0].rule_id == "r"

    def test_conflicting_environment(self):
        policy = PolicySet(
            rules=[
                Rule(is_default=True, target_group=ALL_SINKS),
                Rule(id="both", debug_only=True, production_only=True, target_group=ALL_SINKS),
            ]
        )
        issues = policy.validate()
        assert _codes(issues) == [IssueCode.CONFLICTING_ENVIRONMENT]
        assert not issues[0].is_error

    def test_validate_does_not_mutate(self):
        rules = (Rule(id="dup", target_group=ALL_SINKS), Rule(id="dup", target_group=ALL_SINKS))
        policy = PolicySet(rules=rules)
        policy.validate()
        assert policy.rules == rules


# ---------------------------------------------------------------------------
# Test: group registry
# ---------------------------------------------------------------------------


class TestGroupResolution:
    def test_wildcard_resolves_to_available(self):
        assert resolve_group(ALL_SINKS, {"s1", "s2"}) == frozenset({"s1", "s2"})

    def test_wildcard_with_explicit_ids_still_exactly_available(self):
        group = SinkGroup(name="mixed", sink_ids=("*", "ghost"))
        assert resolve_group(group, {"s1"}) == frozenset({"s1"})

    def test_intersection_drops_unavailable(self):
        group = SinkGroup(name="g", sink_ids=("s1", "ghost"))
        assert resolve_group(group, {"s1", "s2"}) == frozenset({"s1"})

    def test_nothing_available(self):
        assert resolve_group(ALL_SINKS, ()) == frozenset()

    def test_registry_lookup(self):
        custom = SinkGroup(name="warehouse", sink_ids=("bq",))
        registry = SinkGroupRegistry({"warehouse": custom})
        assert registry.lookup("warehouse") == custom
        assert registry.lookup("all") == ALL_SINKS
        assert registry.lookup(custom) is custom
        assert registry.lookup("missing") is None
        assert registry.resolve("missing", {"bq"}) == frozenset()
        assert registry.resolve("warehouse", {"bq", "s1"}) == frozenset({"bq"})
        assert set(registry.names()) == {"all", "development", "warehouse"}

    def test_custom_group_shadows_predefined(self):
        override = SinkGroup(name="development", sink_ids=("s1",))
        registry = SinkGroupRegistry({"development": override})
        assert registry.resolve("development", {"s1", "console"}) == frozenset({"s1"})
