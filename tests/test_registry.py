"""Tests for the listener registry."""

import functools

import pytest

from earshot.core.registry import ListenerRegistry, describe_target
from earshot.events import EventTarget
from earshot.models.runtime import HandlerError, RegistrationIdentity


def _wrap(record):
    handler = record.identity.handler

    @functools.wraps(handler)
    def wrapped(*args, **kwargs):
        return handler(*args, **kwargs)

    return wrapped


@pytest.fixture
def registry():
    return ListenerRegistry(_wrap, max_errors=3)


def on_click(event):
    return event


class TestTrack:
    def test_returns_wrapper(self, registry):
        identity = RegistrationIdentity.from_call(EventTarget(), "click", on_click)
        wrapped = registry.track(identity)
        assert wrapped is not on_click
        assert wrapped.__wrapped__ is on_click
        assert registry.count() == 1

    def test_same_identity_reuses_record(self, registry):
        target = EventTarget()
        first = registry.track(RegistrationIdentity.from_call(target, "click", on_click), {"passive": True})
        record, created = registry.track_record(RegistrationIdentity.from_call(target, "click", on_click), None)
        assert created is False
        assert record.wrapped is first
        assert record.options is None
        assert registry.count() == 1

    def test_same_handler_on_two_targets(self, registry):
        registry.track(RegistrationIdentity.from_call(EventTarget("a"), "click", on_click))
        registry.track(RegistrationIdentity.from_call(EventTarget("b"), "click", on_click))
        assert registry.count() == 2

    def test_listener_ids_are_unique(self, registry):
        target = EventTarget()
        a, _ = registry.track_record(RegistrationIdentity.from_call(target, "click", on_click))
        b, _ = registry.track_record(RegistrationIdentity.from_call(target, "click", on_click, True))
        assert a.listener_id != b.listener_id
        assert a.listener_id.startswith("click-")


class TestUntrack:
    def test_removes_exactly_one(self, registry):
        target = EventTarget()
        identity = RegistrationIdentity.from_call(target, "click", on_click)
        registry.track(identity)
        registry.track(RegistrationIdentity.from_call(target, "click", on_click, True))

        assert registry.untrack(RegistrationIdentity.from_call(target, "click", on_click)) is True
        assert registry.count() == 1
        assert identity not in registry

    def test_unknown_identity_is_silent(self, registry):
        identity = RegistrationIdentity.from_call(EventTarget(), "click", on_click)
        assert registry.untrack(identity) is False

    def test_count_by_type(self, registry):
        target = EventTarget()
        registry.track(RegistrationIdentity.from_call(target, "click", on_click))
        registry.track(RegistrationIdentity.from_call(target, "click", lambda e: e))
        registry.track(RegistrationIdentity.from_call(target, "keydown", on_click))
        assert registry.count_by_type() == {"click": 2, "keydown": 1}

        registry.clear()
        assert registry.count_by_type() == {}


class TestListenerRecord:
    def test_record_timing_average(self, registry):
        record, _ = registry.track_record(RegistrationIdentity.from_call(EventTarget(), "click", on_click))
        record.record_timing(2.0)
        record.record_timing(4.0)
        assert record.call_count == 2
        assert record.total_time == 6.0
        assert record.avg_time == 3.0

    def test_errors_bounded(self, registry):
        record, _ = registry.track_record(RegistrationIdentity.from_call(EventTarget(), "click", on_click))
        for i in range(5):
            record.errors.append(HandlerError(message=str(i), error_type="ValueError", execution_time=0.1))
        assert [e.message for e in record.errors] == ["2", "3", "4"]

    def test_view(self, registry):
        record, _ = registry.track_record(RegistrationIdentity.from_call(EventTarget("save"), "click", on_click))
        view = record.view()
        assert view.listener_id == record.listener_id
        assert view.target == "EventTarget:save"
        assert view.handler == "on_click"
        assert view.errors == 0


class TestDescribeTarget:
    def test_unnamed(self):
        assert describe_target(object()) == "object"

    def test_module(self):
        assert describe_target(functools) == "module:functools"
