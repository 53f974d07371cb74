"""Unit tests for SinkDispatcher, ConsoleSink and LocalFileSink.

Tests dispatcher delivery to routed sinks, partial failure, all-sinks-fail,
and LocalFileSink write/read round-trip.
"""

from __future__ import annotations

import io
import json
from pathlib import Path
from typing import Any

import pytest
from rich.console import Console

from eventgate.core.routing_engine import RoutingEngine
from eventgate.models.events import ConsentState, Event, TrackableEvent
from eventgate.models.groups import ALL_SINKS, SinkGroup
from eventgate.models.rules import Rule
from eventgate.routing.dispatcher import DISABLED_WARNING, SinkDispatchError, SinkDispatcher
from eventgate.routing.sinks import BaseSink
from eventgate.routing.sinks.console import ConsoleSink, NoOpSink
from eventgate.routing.sinks.local_file import LocalFileSink


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class _SuccessSink:
    """A sink that always succeeds."""

    def __init__(self, sink_id: str = "success_sink") -> None:
        self._id = sink_id
        self.received: list[TrackableEvent] = []

    @property
    def sink_id(self) -> str:
        return self._id

    def accept(self, event: TrackableEvent) -> None:
        self.received.append(event)


class _FailingSink:
    """A sink that always raises."""

    def __init__(self, sink_id: str = "failing_sink") -> None:
        self._id = sink_id

    @property
    def sink_id(self) -> str:
        return self._id

    def accept(self, event: TrackableEvent) -> None:
        raise RuntimeError("Sink failure for testing")


@pytest.fixture
def dispatcher(make_policy, default_rule) -> SinkDispatcher:
    """Dispatcher whose only rule routes everything to every sink."""
    return SinkDispatcher(RoutingEngine(make_policy([default_rule])))


# ---------------------------------------------------------------------------
# Test: SinkDispatcher
# ---------------------------------------------------------------------------


class TestSinkDispatcher:
    """SinkDispatcher delivers to routed sinks, tolerating partial failure."""

    def test_dispatch_to_single_sink(self, dispatcher, make_event):
        """A single registered sink should receive the event."""
        sink = _SuccessSink()
        dispatcher.register_sink(sink)

        event = make_event()
        outcome = dispatcher.dispatch(event, ConsentState.granted())

        assert outcome.delivered == ("success_sink",)
        assert sink.received == [event]
        assert outcome.was_routed and outcome.was_delivered

    def test_dispatch_to_multiple_sinks(self, dispatcher, make_event):
        sinks = [_SuccessSink(f"sink_{i}") for i in range(3)]
        for sink in sinks:
            dispatcher.register_sink(sink)

        outcome = dispatcher.dispatch(make_event())
        assert outcome.delivered == ("sink_0", "sink_1", "sink_2")
        assert all(len(s.received) == 1 for s in sinks)

    def test_only_routed_sinks_receive(self, make_policy, make_event):
        rule = Rule(is_default=True, target_group=SinkGroup(name="a", sink_ids=("a",)))
        dispatcher = SinkDispatcher(RoutingEngine(make_policy([rule])))
        a, b = _SuccessSink("a"), _SuccessSink("b")
        dispatcher.register_sink(a)
        dispatcher.register_sink(b)

        dispatcher.dispatch(make_event())
        assert len(a.received) == 1
        assert b.received == []

    def test_partial_failure_tolerated(self, dispatcher, make_event):
        good = _SuccessSink("good")
        dispatcher.register_sink(good)
        dispatcher.register_sink(_FailingSink("bad"))

        outcome = dispatcher.dispatch(make_event())
        assert outcome.delivered == ("good",)
        assert outcome.failed == {"bad": "Sink failure for testing"}

    def test_all_sinks_fail_raises(self, dispatcher, make_event):
        dispatcher.register_sink(_FailingSink("bad1"))
        dispatcher.register_sink(_FailingSink("bad2"))

        with pytest.raises(SinkDispatchError, match="All 2 sinks failed"):
            dispatcher.dispatch(make_event("boom"))

    def test_no_sinks_registered(self, dispatcher, make_event):
        outcome = dispatcher.dispatch(make_event())
        assert not outcome.was_routed
        assert outcome.delivered == ()
        assert outcome.failed == {}

    def test_consent_denied_delivers_nothing(self, dispatcher, make_event):
        sink = _SuccessSink()
        dispatcher.register_sink(sink)
        outcome = dispatcher.dispatch(make_event(), ConsentState.denied())
        assert sink.received == []
        assert not outcome.was_delivered

    def test_disabled_dispatcher(self, dispatcher, make_event):
        sink = _SuccessSink()
        dispatcher.register_sink(sink)
        dispatcher.disable()
        assert not dispatcher.is_enabled

        outcome = dispatcher.dispatch(make_event())
        assert outcome.routing_result.warnings == (DISABLED_WARNING,)
        assert sink.received == []

        dispatcher.enable()
        assert dispatcher.dispatch(make_event()).was_delivered

    def test_batch_dispatch_never_raises(self, dispatcher, make_event):
        dispatcher.register_sink(_FailingSink("bad"))
        outcomes = dispatcher.dispatch_batch([make_event("a"), make_event("b")])
        assert len(outcomes) == 2
        assert all(not o.was_delivered for o in outcomes)
        assert all(o.failed == {"bad": "Sink failure for testing"} for o in outcomes)

    def test_outcome_to_map(self, dispatcher, make_event):
        dispatcher.register_sink(_SuccessSink())
        data = dispatcher.dispatch(make_event()).to_map()
        assert data["delivered"] == ["success_sink"]
        assert data["routing_result"]["target_sinks"] == ["success_sink"]


class TestSinkRegistration:
    def test_register_same_instance_twice_is_noop(self, dispatcher):
        sink = _SuccessSink()
        dispatcher.register_sink(sink)
        dispatcher.register_sink(sink)
        assert dispatcher.registered_sinks == [sink]

    def test_register_replaces_same_id(self, dispatcher):
        first, second = _SuccessSink("x"), _SuccessSink("x")
        dispatcher.register_sink(first)
        dispatcher.register_sink(second)
        assert dispatcher.registered_sinks == [second]

    def test_unregister(self, dispatcher):
        dispatcher.register_sink(_SuccessSink("x"))
        dispatcher.unregister_sink("x")
        dispatcher.unregister_sink("never-registered")
        assert dispatcher.available_sink_ids == frozenset()

    def test_registered_sinks_is_a_copy(self, dispatcher):
        dispatcher.register_sink(_SuccessSink())
        dispatcher.registered_sinks.clear()
        assert len(dispatcher.registered_sinks) == 1

    def test_sinks_satisfy_protocol(self, tmp_path: Path):
        for sink in (_SuccessSink(), NoOpSink(), ConsoleSink(), LocalFileSink(tmp_path)):
            assert isinstance(sink, BaseSink)

    def test_debug_info(self, dispatcher):
        dispatcher.register_sink(_SuccessSink("b"))
        dispatcher.register_sink(_SuccessSink("a"))
        info = dispatcher.debug_info()
        assert info["sinks"] == ["a", "b"]
        assert info["enabled"] is True
        assert info["policy_set"]["rules_count"] == 1


# ---------------------------------------------------------------------------
# Test: ConsoleSink / NoOpSink
# ---------------------------------------------------------------------------


class TestConsoleSink:
    def _console(self) -> tuple[Console, io.StringIO]:
        buffer = io.StringIO()
        return Console(file=buffer, width=120, color_system=None), buffer

    def test_prints_event_line(self):
        console, buffer = self._console()
        sink = ConsoleSink(console)
        sink.accept(Event(name="purchase", category="business", contains_pii=True))
        output = buffer.getvalue()
        assert "purchase" in output
        assert "business" in output
        assert "PII" in output

    def test_markup_in_names_is_escaped(self):
        console, buffer = self._console()
        ConsoleSink(console).accept(Event(name="[bold]sneaky[/bold]"))
        assert "[bold]sneaky[/bold]" in buffer.getvalue()

    def test_properties_optional(self):
        console, buffer = self._console()
        ConsoleSink(console, show_properties=False).accept(
            Event(name="x", properties={"secret_key": "v"})
        )
        assert "secret_key" not in buffer.getvalue()

    def test_default_id_matches_development_group(self):
        assert ConsoleSink().sink_id == "console"


class TestNoOpSink:
    def test_counts(self):
        sink = NoOpSink()
        sink.accept(Event(name="a"))
        sink.accept(Event(name="b"))
        assert sink.accepted == 2
        assert sink.sink_id == "noop"


# ---------------------------------------------------------------------------
# Test: LocalFileSink
# ---------------------------------------------------------------------------


class TestLocalFileSink:
    """LocalFileSink must write and read back events correctly."""

    def test_write_and_read(self, tmp_path: Path):
        sink = LocalFileSink(base_path=tmp_path / "events")
        sink.accept(Event(name="purchase", properties={"amount": 42.0}, user_id="u1"))

        files = sink.list_events("purchase")
        assert len(files) == 1
        data: dict[str, Any] = sink.read_event(files[0])
        assert data["name"] == "purchase"
        assert data["properties"] == {"amount": 42.0}
        assert data["user_id"] == "u1"

    def test_output_is_canonical_json(self, tmp_path: Path):
        sink = LocalFileSink(base_path=tmp_path)
        sink.accept(Event(name="x"))
        raw = sink.list_events()[0].read_text()
        assert raw == json.dumps(json.loads(raw), sort_keys=True, separators=(",", ":"))

    def test_unsafe_names_are_sanitized(self, tmp_path: Path):
        sink = LocalFileSink(base_path=tmp_path)
        sink.accept(Event(name="../escape attempt"))
        files = sink.list_events()
        assert len(files) == 1
        assert files[0].resolve().is_relative_to(tmp_path.resolve())

    def test_list_unknown_event(self, tmp_path: Path):
        assert LocalFileSink(base_path=tmp_path).list_events("nothing") == []

    def test_dispatch_through_file_sink(self, tmp_path: Path, make_policy):
        rule = Rule(is_default=True, target_group=ALL_SINKS)
        dispatcher = SinkDispatcher(RoutingEngine(make_policy([rule])))
        sink = LocalFileSink(base_path=tmp_path)
        dispatcher.register_sink(sink)

        dispatcher.dispatch_batch([Event(name="a"), Event(name="a"), Event(name="b")])
        assert len(sink.list_events("a")) == 2
        assert len(sink.list_events()) == 3
