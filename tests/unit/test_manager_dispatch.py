"""
Unit Tests for Manager dispatch
===============================

Test Coverage
-------------
- Ordering (priority desc, FIFO among equals)
- Early stop on cancelable events
- Payload rewrites visible downstream
- Return value and response collection
- Namespaced fire() with type and full-key channels
- Listener failures and re-entrant dispatch

Testing Strategy
----------------
- Listeners built by the `recorder` fixture record their labels in call
  order, so assertions read as invocation sequences.
"""

import pytest

from eventmanager.core.event import (
    Event,
    IllegalCancellation,
    InvalidEventName,
    ListenerInvocationFailure,
    Manager,
)


# ============================================================================
# EMPTY DISPATCH
# ============================================================================


@pytest.mark.unit
@pytest.mark.event
class TestNoListeners:
    """Test dispatching names nobody listens to."""

    def test_trigger_without_listeners_returns_none(self, manager):
        assert manager.trigger("nobody.listens", payload={"x": 1}) is None

    def test_fire_without_listeners_returns_none(self, manager):
        assert manager.fire("nobody:listens") is None

    def test_empty_dispatch_not_counted(self, manager):
        manager.trigger("nobody.listens")

        assert manager.get_metrics_summary()["total_events_dispatched"] == 0

    def test_empty_name_rejected(self, manager):
        with pytest.raises(InvalidEventName):
            manager.trigger("")

    @pytest.mark.parametrize("name", ["user", ":created", "user:"])
    def test_malformed_fire_rejected(self, manager, name):
        with pytest.raises(InvalidEventName):
            manager.fire(name)


# ============================================================================
# ORDERING
# ============================================================================


@pytest.mark.unit
@pytest.mark.event
class TestOrdering:
    """Test invocation order."""

    def test_scenario_a_higher_priority_first(self, manager, recorder):
        """H1 at 100 and H2 at 200 on user.created run as [H2, H1]."""
        manager.subscribe("user.created", recorder.listener("H1"), 100)
        manager.subscribe("user.created", recorder.listener("H2"), 200)

        manager.trigger("user.created", payload={"id": 1})

        assert recorder.calls == ["H2", "H1"]
        assert recorder.payloads == [{"id": 1}, {"id": 1}]

    def test_equal_priority_is_subscription_order(self, manager, recorder):
        for label in ("first", "second", "third"):
            manager.subscribe("evt", recorder.listener(label), 50)

        manager.trigger("evt")

        assert recorder.calls == ["first", "second", "third"]

    def test_priority_beats_subscription_order(self, manager, recorder):
        manager.subscribe("evt", recorder.listener("low"), 1)
        manager.subscribe("evt", recorder.listener("mid-a"), 50)
        manager.subscribe("evt", recorder.listener("high"), 99)
        manager.subscribe("evt", recorder.listener("mid-b"), 50)

        manager.trigger("evt")

        assert recorder.calls == ["high", "mid-a", "mid-b", "low"]

    def test_listener_receives_event_source_and_payload(self, manager):
        seen = []
        manager.subscribe("evt", lambda e, s, p: seen.append((e, s, p)))
        source = object()

        manager.trigger("evt", source, {"id": 1})

        event, got_source, got_payload = seen[0]
        assert isinstance(event, Event)
        assert event.name == "evt"
        assert got_source is source
        assert got_payload == {"id": 1}


# ============================================================================
# CANCELLATION
# ============================================================================


@pytest.mark.unit
@pytest.mark.event
class TestCancellation:
    """Test early stop."""

    def test_scenario_b_stop_skips_lower_priority(self, manager, recorder):
        """A stopping listener at 200 prevents the one at 100 from running."""
        manager.subscribe(
            "order.paid", recorder.listener("stopper", "stopped", stop=True), 200
        )
        manager.subscribe("order.paid", recorder.listener("after", "after"), 100)

        result = manager.trigger("order.paid")

        assert recorder.calls == ["stopper"]
        assert result == "stopped"
        assert recorder.events[0].is_stopped() is True

    def test_stop_at_k_runs_first_k_exactly_once(self, manager, recorder):
        for index in range(5):
            manager.subscribe(
                "evt", recorder.listener(str(index), stop=index == 2), 100 - index
            )

        manager.trigger("evt")

        assert recorder.calls == ["0", "1", "2"]

    def test_stop_is_recorded_in_metrics(self, manager, recorder):
        manager.subscribe("evt", recorder.listener("stopper", stop=True))

        manager.trigger("evt")

        assert manager.get_metrics().events_stopped == {"evt": 1}

    def test_stop_counted_under_dispatched_name_after_rename(self, manager, recorder):
        def rename_and_stop(event, source, payload):
            event.set_name("renamed").stop()

        manager.subscribe("evt", rename_and_stop, 200)
        manager.subscribe("evt", recorder.listener("after"), 100)

        manager.trigger("evt")

        metrics = manager.get_metrics()
        assert recorder.calls == []
        assert metrics.events_stopped == {"evt": 1}
        assert metrics.events_dispatched == {"evt": 1}

    def test_failure_reported_under_dispatched_name_after_rename(self, manager):
        def rename_and_fail(event, source, payload):
            event.set_name("renamed")
            raise RuntimeError("boom")

        manager.subscribe("evt", rename_and_fail)

        with pytest.raises(ListenerInvocationFailure) as exc_info:
            manager.trigger("evt")

        assert exc_info.value.event_name == "evt"
        assert manager.get_metrics().listener_errors == {"evt": 1}

    def test_stop_on_non_cancelable_is_listener_failure(self, manager, recorder):
        manager.subscribe("evt", recorder.listener("stopper", stop=True), 200)
        manager.subscribe("evt", recorder.listener("after"), 100)

        with pytest.raises(ListenerInvocationFailure) as exc_info:
            manager.trigger("evt", cancelable=False)

        assert isinstance(exc_info.value.original_error, IllegalCancellation)
        assert isinstance(exc_info.value.__cause__, IllegalCancellation)
        assert recorder.calls == ["stopper"]
        assert recorder.events[0].is_stopped() is False


# ============================================================================
# PAYLOAD REWRITES & RESULTS
# ============================================================================


@pytest.mark.unit
@pytest.mark.event
class TestPayloadAndResults:
    """Test payload propagation and the dispatch result."""

    def test_payload_rewrite_seen_downstream(self, manager, recorder):
        def rewrite(event, source, payload):
            event.set_payload({**payload, "rewritten": True})

        manager.subscribe("evt", rewrite, 200)
        manager.subscribe("evt", recorder.listener("a"), 100)
        manager.subscribe("evt", recorder.listener("b"), 50)

        manager.trigger("evt", payload={"id": 1})

        assert recorder.payloads == [
            {"id": 1, "rewritten": True},
            {"id": 1, "rewritten": True},
        ]

    def test_result_is_last_listener_return(self, manager, recorder):
        manager.subscribe("evt", recorder.listener("a", "first"), 200)
        manager.subscribe("evt", recorder.listener("b", "last"), 100)

        assert manager.trigger("evt") == "last"

    def test_events_are_not_shared_between_dispatches(self, manager, recorder):
        manager.subscribe("evt", recorder.listener("a", stop=True))

        manager.trigger("evt")
        manager.trigger("evt")

        first, second = recorder.events
        assert first is not second
        assert recorder.calls == ["a", "a"]


# ============================================================================
# RESPONSE COLLECTION
# ============================================================================


@pytest.mark.unit
@pytest.mark.event
class TestResponses:
    """Test the opt-in response buffer."""

    def test_scenario_c_collects_in_invocation_order(self, manager, recorder):
        """Three listeners returning 1, 2, 3 give [1, 2, 3] and result 3."""
        manager.collect_responses(True)
        manager.subscribe("evt", recorder.listener("one", 1), 300)
        manager.subscribe("evt", recorder.listener("two", 2), 200)
        manager.subscribe("evt", recorder.listener("three", 3), 100)

        result = manager.trigger("evt")

        assert result == 3
        assert manager.get_responses() == [1, 2, 3]

    def test_not_collected_by_default(self, manager, recorder):
        manager.subscribe("evt", recorder.listener("one", 1))

        manager.trigger("evt")

        assert manager.collecting_responses is False
        assert manager.get_responses() == []

    def test_buffer_reset_per_dispatch(self, manager, recorder):
        manager.collect_responses()
        manager.subscribe("a", recorder.listener("a", "from-a"))
        manager.subscribe("b", recorder.listener("b", "from-b"))

        manager.trigger("a")
        manager.trigger("b")

        assert manager.get_responses() == ["from-b"]

    def test_buffer_reset_when_nobody_listens(self, manager, recorder):
        manager.collect_responses()
        manager.subscribe("a", recorder.listener("a", "from-a"))

        manager.trigger("a")
        manager.trigger("nobody")

        assert manager.get_responses() == []

    def test_partial_responses_kept_on_failure(self, manager, recorder):
        def boom(event, source, payload):
            raise RuntimeError("boom")

        manager.collect_responses()
        manager.subscribe("evt", recorder.listener("ok", "ok"), 200)
        manager.subscribe("evt", boom, 100)

        with pytest.raises(ListenerInvocationFailure):
            manager.trigger("evt")

        assert manager.get_responses() == ["ok"]

    def test_returned_list_is_a_copy(self, manager, recorder):
        manager.collect_responses()
        manager.subscribe("evt", recorder.listener("a", 1))
        manager.trigger("evt")

        manager.get_responses().append("junk")

        assert manager.get_responses() == [1]


# ============================================================================
# NAMESPACED FIRE
# ============================================================================


class UserEvents:
    def __init__(self, calls):
        self.calls = calls

    def created(self, event, source, payload):
        self.calls.append(("created", event.name))
        return "created"

    def deleted(self, event, source, payload):
        self.calls.append(("deleted", event.name))
        return "deleted"


@pytest.mark.unit
@pytest.mark.event
class TestFire:
    """Test namespaced dispatch."""

    def test_type_channel_then_full_key(self, manager, recorder):
        manager.attach("user:created", recorder.listener("full"), 999)
        manager.attach("user", recorder.listener("type"), 1)

        result = manager.fire("user:created", None, {"id": 1})

        assert recorder.calls == ["type", "full"]
        assert result is None
        first, second = recorder.events
        assert first is second
        assert first.name == "user:created"

    def test_object_method_named_after_sub_name(self, manager):
        calls = []
        manager.attach("user", UserEvents(calls))

        assert manager.fire("user:created") == "created"
        assert manager.fire("user:deleted") == "deleted"
        assert calls == [("created", "user:created"), ("deleted", "user:deleted")]

    def test_object_without_method_is_skipped(self, manager, recorder):
        calls = []
        manager.attach("user", UserEvents(calls))
        manager.attach("user", recorder.listener("fallback", "fallback"), 1)

        result = manager.fire("user:renamed")

        assert calls == []
        assert recorder.calls == ["fallback"]
        assert result == "fallback"

    def test_full_key_object_handler(self, manager):
        calls = []
        manager.attach("user:deleted", UserEvents(calls))

        manager.fire("user:deleted")

        assert calls == [("deleted", "user:deleted")]

    def test_stop_in_type_phase_skips_full_key(self, manager, recorder):
        manager.attach("user", recorder.listener("type", "type", stop=True))
        manager.attach("user:created", recorder.listener("full", "full"))

        result = manager.fire("user:created")

        assert recorder.calls == ["type"]
        assert result == "type"

    def test_only_full_key_listeners(self, manager, recorder):
        manager.attach("user:created", recorder.listener("full", "full"))

        assert manager.fire("user:created") == "full"

    def test_fire_does_not_reach_sibling_keys(self, manager, recorder):
        manager.attach("user:deleted", recorder.listener("deleted"))

        assert manager.fire("user:created") is None
        assert recorder.calls == []

    def test_responses_span_both_phases(self, manager, recorder):
        manager.collect_responses()
        manager.attach("user", recorder.listener("type", 1))
        manager.attach("user:created", recorder.listener("full", 2))

        assert manager.fire("user:created") == 2
        assert manager.get_responses() == [1, 2]

    def test_subscribe_handler_object_used_by_fire(self, manager):
        class Audit:
            def handler(self, event, source, payload):
                return "audited"

        manager.subscribe("user", Audit())

        assert manager.fire("user:created") == "audited"


# ============================================================================
# FAILURES
# ============================================================================


@pytest.mark.unit
@pytest.mark.event
class TestListenerFailures:
    """Test fail-fast listener error handling."""

    def test_failure_aborts_remaining_listeners(self, manager, recorder):
        def boom(event, source, payload):
            raise ValueError("bad payload")

        manager.subscribe("evt", recorder.listener("before"), 300)
        manager.subscribe("evt", boom, 200)
        manager.subscribe("evt", recorder.listener("after"), 100)

        with pytest.raises(ListenerInvocationFailure) as exc_info:
            manager.trigger("evt")

        failure = exc_info.value
        assert recorder.calls == ["before"]
        assert isinstance(failure.original_error, ValueError)
        assert failure.event_name == "evt"
        assert failure.listener_id.endswith("boom")
        assert failure.details["error_type"] == "ValueError"

    def test_failure_counted_in_metrics(self, manager):
        def boom(event, source, payload):
            raise RuntimeError("boom")

        manager.subscribe("evt", boom)

        with pytest.raises(ListenerInvocationFailure):
            manager.trigger("evt")

        summary = manager.get_metrics_summary()
        assert summary["errors_by_event"] == {"evt": 1}
        assert summary["error_rate"] == 100.0

    def test_failure_is_logged(self, manager, caplog):
        def boom(event, source, payload):
            raise RuntimeError("boom")

        manager.subscribe("evt", boom)

        with caplog.at_level("ERROR", logger="eventmanager.core.event.manager"):
            with pytest.raises(ListenerInvocationFailure):
                manager.trigger("evt")

        record = caplog.records[-1]
        assert record.message == "Manager: listener error"
        assert record.event_name == "evt"
        assert record.error_type == "RuntimeError"

    def test_manager_usable_after_failure(self, manager, recorder):
        def boom(event, source, payload):
            raise RuntimeError("boom")

        manager.subscribe("evt", boom)
        with pytest.raises(ListenerInvocationFailure):
            manager.trigger("evt")

        manager.detach("evt", boom)
        manager.subscribe("evt", recorder.listener("ok", "ok"))

        assert manager.trigger("evt") == "ok"


# ============================================================================
# RE-ENTRANCY & SNAPSHOTS
# ============================================================================


@pytest.mark.unit
@pytest.mark.event
class TestReentrancy:
    """Test registry edits and nested dispatch from inside listeners."""

    def test_self_detach_does_not_affect_running_dispatch(self, manager, recorder):
        def once(event, source, payload):
            recorder.calls.append("once")
            manager.detach("evt", once)

        manager.subscribe("evt", once, 200)
        manager.subscribe("evt", recorder.listener("next"), 100)

        manager.trigger("evt")
        manager.trigger("evt")

        assert recorder.calls == ["once", "next", "next"]

    def test_subscribe_during_dispatch_applies_next_time(self, manager, recorder):
        late = recorder.listener("late")

        def adder(event, source, payload):
            recorder.calls.append("adder")
            manager.subscribe("evt", late, 1000)

        manager.subscribe("evt", adder)

        manager.trigger("evt")
        assert recorder.calls == ["adder"]

        recorder.calls.clear()
        manager.detach("evt", adder)
        manager.trigger("evt")
        assert recorder.calls == ["late"]

    def test_nested_dispatch(self, manager, recorder):
        def outer(event, source, payload):
            recorder.calls.append("outer")
            return manager.trigger("inner", payload=payload + 1)

        manager.subscribe("outer", outer, 200)
        manager.subscribe("outer", recorder.listener("outer-tail", "tail"), 100)
        manager.subscribe("inner", recorder.listener("inner", "inner-result"))

        result = manager.trigger("outer", payload=1)

        assert recorder.calls == ["outer", "inner", "outer-tail"]
        assert recorder.payloads[0] == 2
        assert result == "tail"

    def test_nested_dispatch_keeps_outer_responses(self, manager, recorder):
        manager.collect_responses()

        def outer(event, source, payload):
            manager.trigger("inner")
            return "outer"

        manager.subscribe("outer", outer, 200)
        manager.subscribe("outer", recorder.listener("tail", "tail"), 100)
        manager.subscribe("inner", recorder.listener("inner", "inner"))

        manager.trigger("outer")

        assert manager.get_responses() == ["outer", "tail"]

    def test_nested_failure_is_not_wrapped_twice(self, manager, recorder, caplog):
        def outer(event, source, payload):
            manager.trigger("inner")

        def inner(event, source, payload):
            raise ValueError("root")

        manager.subscribe("outer", outer, 200)
        manager.subscribe("outer", recorder.listener("tail"), 100)
        manager.subscribe("inner", inner)

        with caplog.at_level("ERROR", logger="eventmanager.core.event.manager"):
            with pytest.raises(ListenerInvocationFailure) as exc_info:
                manager.trigger("outer")

        failure = exc_info.value
        assert isinstance(failure.original_error, ValueError)
        assert failure.event_name == "inner"
        assert recorder.calls == []
        assert manager.get_metrics_summary()["errors_by_event"] == {"inner": 1}
        assert len([r for r in caplog.records if r.levelname == "ERROR"]) == 1

    def test_nested_stop_does_not_stop_outer(self, manager, recorder):
        def outer(event, source, payload):
            manager.trigger("inner")

        manager.subscribe("outer", outer, 200)
        manager.subscribe("outer", recorder.listener("tail"), 100)
        manager.subscribe("inner", recorder.listener("inner", stop=True))

        manager.trigger("outer")

        assert recorder.calls == ["inner", "tail"]


@pytest.mark.unit
@pytest.mark.event
class TestConfigDefaults:
    """Test Manager picks defaults from Config."""

    def test_defaults_from_environment(self, reload_config, recorder):
        reload_config(
            EVENTS_COLLECT_RESPONSES="true",
            EVENTS_DEFAULT_PRIORITY="7",
            EVENTS_ENABLE_METRICS="false",
        )

        manager = Manager()
        manager.subscribe("evt", recorder.listener("a", "a"))
        manager.trigger("evt")

        assert manager.default_priority == 7
        assert manager.collecting_responses is True
        assert manager.get_responses() == ["a"]
        assert manager.get_metrics() is None
        assert manager.get_metrics_summary() == {}

    def test_overrides_beat_config(self, reload_config):
        reload_config(EVENTS_ENABLE_PRIORITIES="false")

        manager = Manager(enable_priorities=True)

        assert manager.priorities_enabled is True
